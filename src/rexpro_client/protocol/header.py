"""Fixed 11-byte RexPro message header.

Header layout (big-endian)::

    +---------+------------+----------+--------------+-----------+
    | version | serializer | reserved | message type | body size |
    | 1 byte  | 1 byte     | 4 bytes  | 1 byte       | 4 bytes   |
    +---------+------------+----------+--------------+-----------+

- version: always 1
- serializer: 0 = msgpack, 1 = json
- reserved: zero
- body size: exact byte count of the body that follows
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ..errors import MalformedPacketError, UnsupportedSerializerError
from .constants import HEADER_SIZE, MAX_BODY_SIZE, PROTOCOL_VERSION, SerializerKind

_HEADER = struct.Struct(">BBIBI")


@dataclass(frozen=True)
class MessageHeader:
    """A decoded message header."""

    serializer_id: int
    message_type: int
    body_size: int
    protocol_version: int = PROTOCOL_VERSION
    reserved: int = 0

    @property
    def total_size(self) -> int:
        """Header plus body, in bytes."""
        return HEADER_SIZE + self.body_size

    @property
    def serializer(self) -> SerializerKind:
        return SerializerKind.from_wire_id(self.serializer_id)


def resolve_serializer(serializer: SerializerKind | str) -> SerializerKind:
    """Map a serializer name to its kind.

    Raises:
        UnsupportedSerializerError: If the name is not "json" or "msgpack".
    """
    if isinstance(serializer, SerializerKind):
        return serializer
    try:
        return SerializerKind(serializer)
    except ValueError:
        raise UnsupportedSerializerError(
            f"Serializer type {serializer!r} is not supported"
        ) from None


def encode_header(
    serializer: SerializerKind | str,
    message_type: int,
    body_size: int,
) -> bytes:
    """Encode the 11-byte header for a message.

    Args:
        serializer: Serializer name or kind used for the body.
        message_type: Message type byte.
        body_size: Length of the encoded body in bytes.

    Raises:
        UnsupportedSerializerError: Unknown serializer.
        ValueError: Body size does not fit in an unsigned 32-bit integer.
    """
    kind = resolve_serializer(serializer)
    if not 0 <= body_size <= MAX_BODY_SIZE:
        raise ValueError(f"Body size must be 0-{MAX_BODY_SIZE}, got {body_size}")
    return _HEADER.pack(
        PROTOCOL_VERSION,
        kind.wire_id,
        0,
        int(message_type),
        body_size,
    )


def decode_header(data: bytes) -> MessageHeader:
    """Decode the first 11 bytes of a message.

    Only the shape is checked; field values are taken as the server wrote them.
    """
    if len(data) < HEADER_SIZE:
        raise MalformedPacketError(
            f"Header needs {HEADER_SIZE} bytes, got {len(data)}"
        )
    version, serializer_id, reserved, message_type, body_size = _HEADER.unpack(
        bytes(data[:HEADER_SIZE])
    )
    return MessageHeader(
        serializer_id=serializer_id,
        message_type=message_type,
        body_size=body_size,
        protocol_version=version,
        reserved=reserved,
    )
