"""Wire-level constants for the RexPro protocol."""

from __future__ import annotations

from enum import Enum, IntEnum

PROTOCOL_VERSION = 1
HEADER_SIZE = 11
MAX_BODY_SIZE = 2**32 - 1


class SerializerKind(str, Enum):
    """Body encodings, keyed by the name used in configuration."""

    MSGPACK = "msgpack"
    JSON = "json"

    @property
    def wire_id(self) -> int:
        """Serializer id written in header byte 1."""
        return SERIALIZER_IDS[self]

    @classmethod
    def from_wire_id(cls, wire_id: int) -> SerializerKind:
        for kind, value in SERIALIZER_IDS.items():
            if value == wire_id:
                return kind
        raise ValueError(f"Unknown serializer id: {wire_id}")


SERIALIZER_IDS: dict[SerializerKind, int] = {
    SerializerKind.MSGPACK: 0,
    SerializerKind.JSON: 1,
}


class MessageType(IntEnum):
    """Message type byte (header byte 6)."""

    # Responses
    ERROR = 0
    SESSION_RESPONSE = 2
    SCRIPT_RESPONSE = 5

    # Requests
    SESSION_REQUEST = 1
    SCRIPT_REQUEST = 3


class ErrorFlag(IntEnum):
    """Flag carried in the meta map of an error response."""

    MALFORMED_PACKET = 0
    SESSION_DOES_NOT_EXIST = 1
    SCRIPT_FAILURE = 2
    AUTHENTICATION_FAILED = 3
    GRAPH_DOES_NOT_EXIST = 4
    BINDINGS_SERIALIZATION = 6
