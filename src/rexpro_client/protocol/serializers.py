"""Body serializers.

The body of every message is a single positional array encoded either as
one JSON document (serializer id 1) or one msgpack document (id 0). The
encoding is chosen per call; both must round-trip the same structures.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import msgpack

from ..errors import BindingsSerializationError, MalformedPacketError
from .constants import SerializerKind
from .header import resolve_serializer
from .messages import ScriptRequest, SessionRequest

logger = logging.getLogger(__name__)


class BodySerializer(Protocol):
    """Encodes and decodes a message body."""

    kind: SerializerKind

    def dumps(self, body: list[Any]) -> bytes: ...

    def loads(self, data: bytes) -> Any: ...


class JSONSerializer:
    """Compact UTF-8 JSON."""

    kind = SerializerKind.JSON

    def dumps(self, body: list[Any]) -> bytes:
        try:
            data = json.dumps(body, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
            return data.encode("utf-8")
        except (TypeError, ValueError) as e:
            raise BindingsSerializationError(f"Cannot encode body as JSON: {e}") from e

    def loads(self, data: bytes) -> Any:
        try:
            return json.loads(bytes(data).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedPacketError(f"Invalid JSON body: {e}") from e


class MsgpackSerializer:
    """msgpack with the str/bin distinction preserved."""

    kind = SerializerKind.MSGPACK

    def dumps(self, body: list[Any]) -> bytes:
        try:
            return msgpack.packb(body, use_bin_type=True)
        except (TypeError, ValueError, OverflowError) as e:
            raise BindingsSerializationError(f"Cannot encode body as msgpack: {e}") from e

    def loads(self, data: bytes) -> Any:
        try:
            return msgpack.unpackb(bytes(data), raw=False, strict_map_key=False)
        except (ValueError, msgpack.UnpackException) as e:
            raise MalformedPacketError(f"Invalid msgpack body: {e}") from e


_SERIALIZERS: dict[SerializerKind, BodySerializer] = {
    SerializerKind.JSON: JSONSerializer(),
    SerializerKind.MSGPACK: MsgpackSerializer(),
}


def get_serializer(serializer: SerializerKind | str) -> BodySerializer:
    """Look up a serializer by name or kind.

    Raises:
        UnsupportedSerializerError: If the name is not recognized.
    """
    return _SERIALIZERS[resolve_serializer(serializer)]


def serialize_body(serializer: SerializerKind | str, body: list[Any]) -> bytes:
    """Encode a positional body with the given serializer."""
    return get_serializer(serializer).dumps(body)


def serialize_script_request(
    serializer: SerializerKind | str,
    request: ScriptRequest,
) -> bytes:
    """Encode [sessionUUID, requestUUID, meta, language, script, bindings]."""
    return serialize_body(serializer, request.to_tuple())


def serialize_session_request(
    serializer: SerializerKind | str,
    request: SessionRequest,
) -> bytes:
    """Encode [sessionUUID, requestUUID, meta, username, password]."""
    return serialize_body(serializer, request.to_tuple())


def deserialize_body(serializer: SerializerKind | str, data: bytes) -> tuple[Any, ...]:
    """Decode a response body into its positional fields.

    Raises:
        UnsupportedSerializerError: If the serializer is not recognized.
        MalformedPacketError: If the body does not decode to an array.
    """
    decoded = get_serializer(serializer).loads(data)
    if not isinstance(decoded, list | tuple):
        raise MalformedPacketError(
            f"Body must decode to an array, got {type(decoded).__name__}"
        )
    logger.debug(f"Decoded {len(data)} byte body into {len(decoded)} fields")
    return tuple(decoded)
