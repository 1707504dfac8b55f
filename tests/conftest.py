"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import uuid
from typing import Any

import pytest

from rexpro_client.protocol import (
    ErrorFlag,
    MessageType,
    SerializerKind,
    decode_header,
    deserialize_body,
    encode_header,
    serialize_body,
)


def frame(
    serializer: SerializerKind | str,
    message_type: int,
    body: list[Any],
) -> bytes:
    """Header + encoded body, as a server would send it."""
    encoded = serialize_body(serializer, body)
    return encode_header(serializer, message_type, len(encoded)) + encoded


class FakeRexsterServer:
    """In-memory stand-in for a Rexster server.

    Understands session and script requests well enough to drive the
    client through open/execute/close:
    - graphs not in `graphs` answer GraphDoesNotExist
    - in-session scripts on unknown sessions answer SessionDoesNotExist
    - the script "fail()" answers ScriptFailure
    - any other script returns [visible bindings]; with isolate=False the
      bindings persist in the session
    """

    def __init__(self, graphs: tuple[str, ...] = ("tinkerpop",)) -> None:
        self.graphs = set(graphs)
        self.sessions: dict[str, dict[str, Any]] = {}
        self.requests: list[tuple[int, SerializerKind, tuple[Any, ...]]] = []

    def respond(self, data: bytes) -> bytes:
        header = decode_header(data)
        serializer = header.serializer
        body = deserialize_body(serializer, data[11:])
        self.requests.append((header.message_type, serializer, body))

        if header.message_type == MessageType.SESSION_REQUEST:
            return self._session(serializer, body)
        if header.message_type == MessageType.SCRIPT_REQUEST:
            return self._script(serializer, body)
        return self._error(serializer, body, ErrorFlag.MALFORMED_PACKET, "bad type")

    def _error(self, serializer, body, flag: int, message: str) -> bytes:
        fields = [body[0], body[1], {"flag": int(flag)}, message]
        return frame(serializer, MessageType.ERROR, fields)

    def _session(self, serializer, body) -> bytes:
        session_uuid, request_uuid, meta = body[0], body[1], body[2]
        if meta["graphName"] not in self.graphs:
            return self._error(serializer, body, ErrorFlag.GRAPH_DOES_NOT_EXIST, "no graph")
        if meta["killSession"]:
            if session_uuid not in self.sessions:
                return self._error(
                    serializer, body, ErrorFlag.SESSION_DOES_NOT_EXIST, "no session"
                )
            del self.sessions[session_uuid]
            return frame(
                serializer, MessageType.SESSION_RESPONSE, [session_uuid, request_uuid, {}, []]
            )

        new_session = str(uuid.uuid1())
        self.sessions[new_session] = {}
        return frame(
            serializer,
            MessageType.SESSION_RESPONSE,
            [new_session, request_uuid, {}, ["groovy"]],
        )

    def _script(self, serializer, body) -> bytes:
        session_uuid, request_uuid, meta, _language, script, bindings = body
        if meta["graphName"] not in self.graphs:
            message = f"Graph [{meta['graphName']}] could not be found"
            return self._error(serializer, body, ErrorFlag.GRAPH_DOES_NOT_EXIST, message)

        visible = dict(bindings)
        if meta["inSession"]:
            if session_uuid not in self.sessions:
                return self._error(
                    serializer,
                    body,
                    ErrorFlag.SESSION_DOES_NOT_EXIST,
                    "There is no Rexster session with the requested ID",
                )
            stored = self.sessions[session_uuid]
            if not meta["isolate"]:
                stored.update(bindings)
                visible = dict(stored)

        if script == "fail()":
            return self._error(serializer, body, ErrorFlag.SCRIPT_FAILURE, "No such property: fail")

        return frame(
            serializer,
            MessageType.SCRIPT_RESPONSE,
            [session_uuid, request_uuid, {}, [visible], visible],
        )


@pytest.fixture
def fake_server() -> FakeRexsterServer:
    return FakeRexsterServer()


@pytest.fixture
def make_frame():
    """Build a framed server message: make_frame(serializer, type, body)."""
    return frame
