"""Unit tests for RexProClient against an in-memory server."""

from __future__ import annotations

import re

import pytest

from rexpro_client import (
    Call,
    CallState,
    GraphDoesNotExistError,
    MalformedPacketError,
    MockConnection,
    MockConnectionFactory,
    RexProClient,
    RexProConfig,
    ScriptFailureError,
    SessionDoesNotExistError,
    TransportError,
    UnsupportedSerializerError,
)
from rexpro_client.errors import BindingsSerializationError
from rexpro_client.protocol import (
    MessageType,
    decode_header,
    deserialize_body,
)

UUID1 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-1[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}$")


def sent_request(connection: MockConnection) -> tuple:
    """Decode the single request written on a mock connection."""
    data = connection.sent[0]
    header = decode_header(data)
    return header, deserialize_body(header.serializer, data[11:])


@pytest.fixture
def factory(fake_server) -> MockConnectionFactory:
    return MockConnectionFactory(fake_server.respond, chunk_size=3)


@pytest.fixture
def client(factory) -> RexProClient:
    return RexProClient(connection_factory=factory)


# =============================================================================
# Tests: Sessions
# =============================================================================


class TestSessionLifecycle:
    """open_session -> execute in session -> close_session."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("serializer", ["json", "msgpack"])
    async def test_full_lifecycle(self, fake_server, factory, serializer: str) -> None:
        client = RexProClient(connection_factory=factory, serializer=serializer)

        session = await client.open_session()
        assert UUID1.match(session)
        assert session in fake_server.sessions

        await client.execute("g.V", session=session)
        header, body = sent_request(factory.connections[1])
        assert header.message_type == MessageType.SCRIPT_REQUEST
        assert body[0] == session
        assert body[2]["inSession"] is True

        assert await client.close_session(session) is True
        _, body = sent_request(factory.connections[2])
        assert body[0] == session
        assert body[2]["killSession"] is True
        assert session not in fake_server.sessions

        with pytest.raises(SessionDoesNotExistError):
            await client.execute("g.V", session=session)

    @pytest.mark.asyncio
    async def test_open_session_sends_credentials(self, client, factory) -> None:
        await client.open_session("rexster", "secret")

        header, body = sent_request(factory.connections[0])
        assert header.message_type == MessageType.SESSION_REQUEST
        assert body[2] == {"graphName": "tinkerpop", "graphObjName": "g", "killSession": False}
        assert body[3:] == ("rexster", "secret")
        assert UUID1.match(body[0])

    @pytest.mark.asyncio
    async def test_bindings_persist_without_isolation(self, client) -> None:
        session = await client.open_session()

        await client.execute("x = 1", {"x": 1}, session=session, isolate=False)
        results = await client.execute("y", {"y": 2}, session=session, isolate=False)

        assert results == [{"x": 1, "y": 2}]

    @pytest.mark.asyncio
    async def test_close_unknown_session(self, client) -> None:
        with pytest.raises(SessionDoesNotExistError):
            await client.close_session("8a0f7c4e-1dd2-11b2-8000-000000000000")


# =============================================================================
# Tests: Script execution
# =============================================================================


class TestExecute:
    """Sessionless script execution."""

    @pytest.mark.asyncio
    async def test_returns_results(self, client) -> None:
        results = await client.execute("g.V.has('name', name)", {"name": "saturn"})
        assert results == [{"name": "saturn"}]

    @pytest.mark.asyncio
    async def test_request_layout(self, client, factory) -> None:
        await client.execute("g.V", {"a": 1}, language="gremlin-groovy")

        header, body = sent_request(factory.connections[0])
        assert header.serializer_id == 1
        assert UUID1.match(body[0])
        assert UUID1.match(body[1])
        assert body[2] == {
            "inSession": False,
            "isolate": True,
            "transaction": True,
            "graphName": "tinkerpop",
            "graphObjName": "g",
        }
        assert body[3:] == ("gremlin-groovy", "g.V", {"a": 1})

    @pytest.mark.asyncio
    async def test_execute_raw_includes_bindings(self, client) -> None:
        response = await client.execute_raw("x", {"x": 5})

        assert response.results == [{"x": 5}]
        assert response.bindings == {"x": 5}

    @pytest.mark.asyncio
    async def test_fresh_request_uuid_per_call(self, client, factory) -> None:
        await client.execute("a")
        await client.execute("b")

        first = sent_request(factory.connections[0])[1][1]
        second = sent_request(factory.connections[1])[1][1]
        assert first != second

    @pytest.mark.asyncio
    async def test_one_connection_per_call_all_closed(self, client, factory) -> None:
        await client.execute("a")
        await client.open_session()

        assert len(factory.connections) == 2
        assert all(len(c.sent) == 1 for c in factory.connections)
        assert all(c.closed for c in factory.connections)


# =============================================================================
# Tests: Errors
# =============================================================================


class TestServerErrors:
    """Server error responses surface as typed errors."""

    @pytest.mark.asyncio
    async def test_unknown_graph(self, client, factory) -> None:
        with pytest.raises(GraphDoesNotExistError) as exc_info:
            await client.execute("g.V", graph="nope")

        assert exc_info.value.detail == "Graph [nope] could not be found"
        assert factory.connections[0].closed

    @pytest.mark.asyncio
    async def test_script_failure(self, client) -> None:
        with pytest.raises(ScriptFailureError, match="No such property"):
            await client.execute("fail()")

    @pytest.mark.asyncio
    async def test_unexpected_response_type(self, make_frame) -> None:
        data = make_frame("json", MessageType.SESSION_RESPONSE, ["s", "r", {}, []])
        conn = MockConnection([data])
        client = RexProClient(connection_factory=conn.factory)

        with pytest.raises(MalformedPacketError):
            await client.execute("g.V")


class TestClientSideErrors:
    """Errors raised before or during I/O."""

    @pytest.mark.asyncio
    async def test_unsupported_serializer_opens_no_connection(self, client, factory) -> None:
        with pytest.raises(UnsupportedSerializerError):
            await client.execute("g.V", serializer="yaml")
        assert factory.connections == []

    def test_unsupported_serializer_in_constructor(self) -> None:
        with pytest.raises(UnsupportedSerializerError):
            RexProClient(serializer="yaml")

    @pytest.mark.asyncio
    async def test_unencodable_bindings_open_no_connection(self, client, factory) -> None:
        with pytest.raises(BindingsSerializationError):
            await client.execute("x", {"x": b"\x00"})
        assert factory.connections == []

    @pytest.mark.asyncio
    async def test_connection_closed_mid_response(self, make_frame) -> None:
        data = make_frame("json", MessageType.SCRIPT_RESPONSE, ["s", "r", {}, [1], {}])
        conn = MockConnection([data[:5], data[5:-2]])
        client = RexProClient(connection_factory=conn.factory)

        with pytest.raises(TransportError, match="closed before full response"):
            await client.execute("g.V")
        assert conn.closed

    @pytest.mark.asyncio
    async def test_connect_failure(self) -> None:
        async def refuse(config: RexProConfig):
            raise ConnectionRefusedError("refused")

        client = RexProClient(connection_factory=refuse)

        with pytest.raises(TransportError, match="ConnectionRefusedError"):
            await client.execute("g.V")

    @pytest.mark.asyncio
    async def test_receive_failure_closes_connection(self) -> None:
        conn = MockConnection(fail_on_receive=ConnectionResetError("reset by peer"))
        client = RexProClient(connection_factory=conn.factory)

        with pytest.raises(TransportError, match="reset by peer"):
            await client.execute("g.V")
        assert conn.closed


# =============================================================================
# Tests: Call state
# =============================================================================


class TestCallState:
    """A Call records every state it passes through."""

    @pytest.mark.asyncio
    async def test_successful_call_history(self, client) -> None:
        request = client.build_script_request(client.config, "g.V")
        call = Call()

        await client.send(request, call=call)

        assert call.history == [
            CallState.IDLE,
            CallState.CONNECTING,
            CallState.AWAITING_HEADER,
            CallState.ACCUMULATING_BODY,
            CallState.COMPLETE,
        ]
        assert call.done
        assert call.request_uuid == request.request_uuid
        assert call.response is not None
        assert call.error is None

    @pytest.mark.asyncio
    async def test_server_error_fails_call(self, client) -> None:
        request = client.build_script_request(client.config, "fail()")
        call = Call()

        with pytest.raises(ScriptFailureError):
            await client.send(request, call=call)

        assert call.state is CallState.FAILED
        assert isinstance(call.error, ScriptFailureError)
        assert call.response is not None

    @pytest.mark.asyncio
    async def test_eof_before_header_skips_accumulating(self) -> None:
        conn = MockConnection([b"\x01\x01"])
        client = RexProClient(connection_factory=conn.factory)
        call = Call()

        with pytest.raises(TransportError):
            await client.send(client.build_script_request(client.config, "g.V"), call=call)

        assert call.history == [
            CallState.IDLE,
            CallState.CONNECTING,
            CallState.AWAITING_HEADER,
            CallState.FAILED,
        ]


class TestRequestBuilding:
    def test_session_forces_in_session(self) -> None:
        request = RexProClient.build_script_request(RexProConfig(), "x", session="abc")

        assert request.session_uuid == "abc"
        assert request.meta.in_session is True

    def test_config_in_session_without_session(self) -> None:
        request = RexProClient.build_script_request(RexProConfig(in_session=True), "x")

        assert request.meta.in_session is True
        assert UUID1.match(request.session_uuid)

    def test_kill_request(self) -> None:
        request = RexProClient.build_session_request(RexProConfig(), session="abc", kill=True)

        assert request.session_uuid == "abc"
        assert request.meta.kill_session is True

    @pytest.mark.asyncio
    async def test_async_context_manager(self, factory) -> None:
        async with RexProClient(connection_factory=factory) as client:
            assert await client.execute("x", {"x": 1}) == [{"x": 1}]


class TestMalformedReplies:
    """Replies that decode but have the wrong shape fail the call with a typed error."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("serializer", "message_type", "body"),
        [
            ("msgpack", MessageType.SCRIPT_RESPONSE, ["s", "r", {}, [1], {1: "x"}]),
            ("msgpack", MessageType.SCRIPT_RESPONSE, ["s", "r", {1: "m"}, [1], {}]),
            ("json", MessageType.SESSION_RESPONSE, ["s", "r", {}, 5]),
        ],
    )
    async def test_bad_shape_fails_call(
        self, make_frame, serializer: str, message_type: int, body: list
    ) -> None:
        conn = MockConnection([make_frame(serializer, message_type, body)])
        client = RexProClient(connection_factory=conn.factory, serializer=serializer)
        if message_type == MessageType.SESSION_RESPONSE:
            request = client.build_session_request(client.config)
        else:
            request = client.build_script_request(client.config, "g.V")
        call = Call()

        with pytest.raises(MalformedPacketError):
            await client.send(request, call=call)

        assert call.state is CallState.FAILED
        assert isinstance(call.error, MalformedPacketError)
        assert conn.closed

    @pytest.mark.asyncio
    async def test_close_accepts_null_session_in_reply(self, make_frame) -> None:
        """Closing only needs a non-error reply; the returned UUID is not used."""
        data = make_frame("json", MessageType.SESSION_RESPONSE, [None, "r", {}, []])
        client = RexProClient(connection_factory=MockConnection([data]).factory)

        assert await client.close_session("8a0f7c4e-1dd2-11b2-8000-000000000000") is True

    @pytest.mark.asyncio
    async def test_open_requires_session_in_reply(self, make_frame) -> None:
        data = make_frame("json", MessageType.SESSION_RESPONSE, [None, "r", {}, ["groovy"]])
        client = RexProClient(connection_factory=MockConnection([data]).factory)

        with pytest.raises(MalformedPacketError, match="session UUID"):
            await client.open_session()
