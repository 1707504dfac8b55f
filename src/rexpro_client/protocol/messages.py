"""Request and response message definitions.

Requests are pydantic models that know how to lay themselves out as the
positional tuple the server expects. Responses arrive as positional tuples
and are turned into named views right after decoding, so nothing past this
module indexes into a response by position.

Script request tuple:
    [sessionUUID, requestUUID, meta, language, script, bindings]

Session request tuple:
    [sessionUUID, requestUUID, meta, username, password]

Responses:
    error:   [sessionUUID, requestUUID, {flag, ...}, message]
    session: [sessionUUID, requestUUID, meta, languages]
    script:  [sessionUUID, requestUUID, meta, results, bindings]
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import MalformedPacketError
from .constants import MessageType
from .header import MessageHeader

_V = TypeVar("_V", bound=BaseModel)

# =============================================================================
# Requests
# =============================================================================


class ScriptRequestMeta(BaseModel):
    """Meta map of a script request."""

    model_config = ConfigDict(populate_by_name=True)

    in_session: bool = Field(default=False, alias="inSession")
    isolate: bool = True
    transaction: bool = True
    graph_name: str = Field(default="tinkerpop", alias="graphName")
    graph_obj_name: str = Field(default="g", alias="graphObjName")


class SessionRequestMeta(BaseModel):
    """Meta map of a session request."""

    model_config = ConfigDict(populate_by_name=True)

    graph_name: str = Field(default="tinkerpop", alias="graphName")
    graph_obj_name: str = Field(default="g", alias="graphObjName")
    kill_session: bool = Field(default=False, alias="killSession")


class ScriptRequest(BaseModel):
    """A script to evaluate, optionally inside an open session."""

    message_type: ClassVar[MessageType] = MessageType.SCRIPT_REQUEST

    session_uuid: str
    request_uuid: str
    meta: ScriptRequestMeta = Field(default_factory=ScriptRequestMeta)
    language: str = "groovy"
    script: str = ""
    bindings: dict[str, Any] = Field(default_factory=dict)

    def to_tuple(self) -> list[Any]:
        """Positional layout written on the wire."""
        return [
            self.session_uuid,
            self.request_uuid,
            self.meta.model_dump(by_alias=True),
            self.language,
            self.script,
            self.bindings,
        ]


class SessionRequest(BaseModel):
    """Open (or, with kill_session, close) a server-side session."""

    message_type: ClassVar[MessageType] = MessageType.SESSION_REQUEST

    session_uuid: str
    request_uuid: str
    meta: SessionRequestMeta = Field(default_factory=SessionRequestMeta)
    username: str = ""
    password: str = ""

    def to_tuple(self) -> list[Any]:
        """Positional layout written on the wire."""
        return [
            self.session_uuid,
            self.request_uuid,
            self.meta.model_dump(by_alias=True),
            self.username,
            self.password,
        ]


# =============================================================================
# Responses
# =============================================================================


@dataclass(frozen=True)
class Response:
    """One fully received response, before classification."""

    header: MessageHeader
    raw_bytes: bytes
    decoded: tuple[Any, ...]

    @property
    def message_type(self) -> int:
        return self.header.message_type

    @property
    def is_error(self) -> bool:
        return self.header.message_type == MessageType.ERROR


def _require(fields: Sequence[Any], count: int, name: str) -> None:
    if len(fields) < count:
        raise MalformedPacketError(
            f"{name} needs at least {count} fields, got {len(fields)}"
        )


def _meta(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _build(cls: type[_V], name: str, **fields: Any) -> _V:
    """Validate a view, reporting bad field shapes as a malformed packet."""
    try:
        return cls(**fields)
    except ValidationError as e:
        raise MalformedPacketError(
            f"{name} has invalid fields: {e.error_count()} validation error(s)"
        ) from e


class ErrorResponse(BaseModel):
    """Named view over an error response."""

    session_uuid: Any = None
    request_uuid: Any = None
    meta: dict[str, Any] = Field(default_factory=dict)
    message: str = ""

    @property
    def flag(self) -> int | None:
        flag = self.meta.get("flag")
        return flag if isinstance(flag, int) else None

    @classmethod
    def from_tuple(cls, fields: Sequence[Any]) -> ErrorResponse:
        _require(fields, 3, "Error response")
        message = fields[3] if len(fields) > 3 else ""
        return _build(
            cls,
            "Error response",
            session_uuid=fields[0],
            request_uuid=fields[1],
            meta=_meta(fields[2]),
            message="" if message is None else str(message),
        )


class SessionResponse(BaseModel):
    """Named view over a session response.

    After an open, session_uuid is the new session. Kill responses may carry
    a null session, so the view accepts None; open_session() checks for it.
    """

    session_uuid: str | None = None
    request_uuid: Any = None
    meta: dict[str, Any] = Field(default_factory=dict)
    languages: list[str] = Field(default_factory=list)

    @classmethod
    def from_tuple(cls, fields: Sequence[Any]) -> SessionResponse:
        _require(fields, 1, "Session response")
        if fields[0] is not None and not isinstance(fields[0], str):
            raise MalformedPacketError(
                f"Session UUID must be a string, got {type(fields[0]).__name__}"
            )
        languages = fields[3] if len(fields) > 3 and fields[3] else []
        if not isinstance(languages, (list, tuple)):
            raise MalformedPacketError(
                f"Session languages must be an array, got {type(languages).__name__}"
            )
        return _build(
            cls,
            "Session response",
            session_uuid=fields[0],
            request_uuid=fields[1] if len(fields) > 1 else None,
            meta=_meta(fields[2]) if len(fields) > 2 else {},
            languages=[str(lang) for lang in languages],
        )


class ScriptResponse(BaseModel):
    """Named view over a script response."""

    session_uuid: Any = None
    request_uuid: Any = None
    meta: dict[str, Any] = Field(default_factory=dict)
    results: Any = None
    bindings: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_tuple(cls, fields: Sequence[Any]) -> ScriptResponse:
        _require(fields, 4, "Script response")
        bindings = fields[4] if len(fields) > 4 and isinstance(fields[4], dict) else {}
        return _build(
            cls,
            "Script response",
            session_uuid=fields[0],
            request_uuid=fields[1],
            meta=_meta(fields[2]),
            results=fields[3],
            bindings=bindings,
        )
