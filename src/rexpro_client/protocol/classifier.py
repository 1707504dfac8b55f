"""Maps a decoded response onto a success view or a typed error."""

from __future__ import annotations

from ..errors import (
    AuthenticationFailedError,
    BindingsSerializationError,
    GraphDoesNotExistError,
    MalformedPacketError,
    RexProError,
    ScriptFailureError,
    SessionDoesNotExistError,
    UnknownRexProError,
)
from .constants import ErrorFlag, MessageType
from .messages import ErrorResponse, Response, ScriptResponse, SessionResponse

ERRORS_BY_FLAG: dict[int, type[RexProError]] = {
    ErrorFlag.MALFORMED_PACKET: MalformedPacketError,
    ErrorFlag.SESSION_DOES_NOT_EXIST: SessionDoesNotExistError,
    ErrorFlag.SCRIPT_FAILURE: ScriptFailureError,
    ErrorFlag.AUTHENTICATION_FAILED: AuthenticationFailedError,
    ErrorFlag.GRAPH_DOES_NOT_EXIST: GraphDoesNotExistError,
    ErrorFlag.BINDINGS_SERIALIZATION: BindingsSerializationError,
}

_VIEWS: dict[int, type[ScriptResponse] | type[SessionResponse]] = {
    MessageType.SCRIPT_RESPONSE: ScriptResponse,
    MessageType.SESSION_RESPONSE: SessionResponse,
}


def error_for_flag(flag: int | None, detail: str) -> RexProError:
    """Build (without raising) the error for a server flag.

    Unrecognized or missing flags map to UnknownRexProError.
    """
    if flag is None:
        return UnknownRexProError(detail)
    return ERRORS_BY_FLAG.get(flag, UnknownRexProError)(detail)


def classify(
    response: Response,
    expected: MessageType | None = None,
) -> ScriptResponse | SessionResponse:
    """Return the success view of a response, or raise its typed error.

    Args:
        response: A fully received and decoded response.
        expected: Success type the caller is waiting for. When given, any
            other non-error type is treated as a malformed exchange.

    Raises:
        RexProError: The subclass matching the error flag.
        MalformedPacketError: Unexpected or unknown message type.
    """
    if response.is_error:
        error = ErrorResponse.from_tuple(response.decoded)
        raise error_for_flag(error.flag, error.message)

    message_type = response.message_type
    if expected is not None and message_type != expected:
        raise MalformedPacketError(
            f"Expected message type {int(expected)}, got {message_type}"
        )
    view = _VIEWS.get(message_type)
    if view is None:
        raise MalformedPacketError(f"Unknown response message type {message_type}")
    return view.from_tuple(response.decoded)
