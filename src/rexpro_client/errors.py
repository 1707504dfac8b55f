"""Error taxonomy for the RexPro client.

Every failure surfaced by the client is a RexProError carrying a `kind`
and a human-readable `detail`. Server-reported errors map one-to-one onto
the flag carried in an error response; the remaining kinds are raised by
the client itself (bad configuration, broken transport).
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """All error kinds the client can report."""

    # Server-reported (error response flag)
    MALFORMED_PACKET = "MalformedPacket"
    SESSION_DOES_NOT_EXIST = "SessionDoesNotExist"
    SCRIPT_FAILURE = "ScriptFailure"
    AUTHENTICATION_FAILED = "AuthenticationFailed"
    GRAPH_DOES_NOT_EXIST = "GraphDoesNotExist"
    BINDINGS_SERIALIZATION = "BindingsSerializationError"
    UNKNOWN = "UnknownError"

    # Client-side
    UNSUPPORTED_SERIALIZER = "UnsupportedSerializer"
    TRANSPORT = "TransportError"


class RexProError(Exception):
    """Base class for all RexPro client errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.kind.value}: {detail}" if detail else self.kind.value)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, detail={self.detail!r})"


class MalformedPacketError(RexProError):
    """The server (or the client decoder) could not make sense of a packet."""

    kind = ErrorKind.MALFORMED_PACKET


class SessionDoesNotExistError(RexProError):
    """The session UUID is unknown to the server, or was closed."""

    kind = ErrorKind.SESSION_DOES_NOT_EXIST


class ScriptFailureError(RexProError):
    """The script raised or failed to compile on the server."""

    kind = ErrorKind.SCRIPT_FAILURE


class AuthenticationFailedError(RexProError):
    kind = ErrorKind.AUTHENTICATION_FAILED


class GraphDoesNotExistError(RexProError):
    kind = ErrorKind.GRAPH_DOES_NOT_EXIST


class BindingsSerializationError(RexProError):
    """Bindings could not be (de)serialized on one side of the wire."""

    kind = ErrorKind.BINDINGS_SERIALIZATION


class UnknownRexProError(RexProError):
    kind = ErrorKind.UNKNOWN


class UnsupportedSerializerError(RexProError, ValueError):
    """Raised before any I/O when a serializer name is not recognized."""

    kind = ErrorKind.UNSUPPORTED_SERIALIZER


class TransportError(RexProError, ConnectionError):
    """The connection failed, was reset, or closed mid-response."""

    kind = ErrorKind.TRANSPORT


ERRORS_BY_KIND: dict[ErrorKind, type[RexProError]] = {
    cls.kind: cls
    for cls in (
        MalformedPacketError,
        SessionDoesNotExistError,
        ScriptFailureError,
        AuthenticationFailedError,
        GraphDoesNotExistError,
        BindingsSerializationError,
        UnknownRexProError,
        UnsupportedSerializerError,
        TransportError,
    )
}


def error_from_kind(kind: ErrorKind | str, detail: str = "") -> RexProError:
    """Build the typed error for a kind (enum member or its value)."""
    return ERRORS_BY_KIND[ErrorKind(kind)](detail)
