"""RexPro client: sessions and script execution.

Each public call runs one full exchange on a connection of its own:

    IDLE -> CONNECTING -> AWAITING_HEADER -> ACCUMULATING_BODY -> COMPLETE
                                                              \\-> FAILED

The request is built and encoded before the connection is opened, so
configuration errors (an unknown serializer, unencodable bindings) surface
without any socket activity. The connection is closed whatever the outcome.

Session identity crosses calls only through the UUID string returned by
open_session(); pass it back as `session=` to execute() and close_session().
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, cast

from .config import RexProConfig, resolve_config
from .errors import MalformedPacketError, RexProError, TransportError
from .protocol.accumulator import ResponseAccumulator
from .protocol.classifier import classify
from .protocol.constants import MessageType
from .protocol.header import encode_header
from .protocol.messages import (
    Response,
    ScriptRequest,
    ScriptRequestMeta,
    ScriptResponse,
    SessionRequest,
    SessionRequestMeta,
    SessionResponse,
)
from .protocol.serializers import serialize_body
from .transport import Connection, ConnectionFactory, open_tcp_connection

logger = logging.getLogger(__name__)

_EXPECTED_RESPONSE: dict[MessageType, MessageType] = {
    MessageType.SCRIPT_REQUEST: MessageType.SCRIPT_RESPONSE,
    MessageType.SESSION_REQUEST: MessageType.SESSION_RESPONSE,
}


def new_uuid() -> str:
    """Time-based (version 1) UUID string, as the server issues them."""
    return str(uuid.uuid1())


class CallState(str, Enum):
    """Lifecycle of a single request/response exchange."""

    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_HEADER = "awaiting_header"
    ACCUMULATING_BODY = "accumulating_body"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class Call:
    """Bookkeeping for one exchange. Never shared between calls."""

    request_uuid: str = ""
    state: CallState = CallState.IDLE
    history: list[CallState] = field(default_factory=lambda: [CallState.IDLE])
    response: Response | None = None
    error: RexProError | None = None

    @property
    def done(self) -> bool:
        return self.state in (CallState.COMPLETE, CallState.FAILED)

    def transition(self, state: CallState) -> None:
        logger.debug(f"[call:{self.request_uuid}] {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)


class RexProClient:
    """Client for a RexPro server.

    Usage:
        client = RexProClient(host="localhost", graph="tinkerpop")
        results = await client.execute("g.V.has('name', name)", {"name": "saturn"})

        session = await client.open_session()
        await client.execute("x = 1", session=session, isolate=False)
        await client.execute("x + 1", session=session, isolate=False)
        await client.close_session(session)
    """

    def __init__(
        self,
        config: RexProConfig | None = None,
        *,
        connection_factory: ConnectionFactory | None = None,
        **options: Any,
    ) -> None:
        """Create a client.

        Args:
            config: Base configuration (defaults if omitted)
            connection_factory: Opens one connection per call (TCP by default)
            **options: Overrides merged over `config` (host, port, serializer, ...)

        Raises:
            UnsupportedSerializerError: Configured serializer is not recognized
        """
        self.config = resolve_config(config, **options)
        self._connection_factory = connection_factory or open_tcp_connection

    async def __aenter__(self) -> RexProClient:
        """Enter a client scope. Connections are per call, so nothing opens here."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Leave a client scope. Every call has already closed its connection."""

    # =========================================================================
    # Public API
    # =========================================================================

    async def open_session(
        self,
        username: str = "",
        password: str = "",
        *,
        serializer: str | None = None,
        graph: str | None = None,
        graph_obj_name: str | None = None,
    ) -> str:
        """Open a server-side session and return its UUID.

        Servers without authentication accept any credentials.
        """
        config = resolve_config(
            self.config, serializer=serializer, graph=graph, graph_obj_name=graph_obj_name
        )
        request = self.build_session_request(config, username=username, password=password)
        response = cast(SessionResponse, await self.send(request, config))
        if not response.session_uuid:
            raise MalformedPacketError("Session response did not carry a session UUID")
        logger.info(f"Opened session {response.session_uuid}")
        return response.session_uuid

    async def execute(
        self,
        script: str,
        bindings: dict[str, Any] | None = None,
        *,
        session: str | None = None,
        **options: Any,
    ) -> Any:
        """Evaluate a script and return its result list.

        Args:
            script: Script source in the configured language
            bindings: Named arguments for the script
            session: UUID from open_session(); runs the script in that session
            **options: Per-call overrides (serializer, language, isolate,
                transaction, graph, graph_obj_name)
        """
        response = await self.execute_raw(script, bindings, session=session, **options)
        return response.results

    async def execute_raw(
        self,
        script: str,
        bindings: dict[str, Any] | None = None,
        *,
        session: str | None = None,
        **options: Any,
    ) -> ScriptResponse:
        """Like execute(), but return the full response (results and bindings)."""
        config = resolve_config(self.config, **options)
        request = self.build_script_request(config, script, bindings, session=session)
        return cast(ScriptResponse, await self.send(request, config))

    async def close_session(
        self,
        session: str,
        *,
        serializer: str | None = None,
        graph: str | None = None,
        graph_obj_name: str | None = None,
    ) -> bool:
        """Close a session. Returns True once the server confirms."""
        config = resolve_config(
            self.config, serializer=serializer, graph=graph, graph_obj_name=graph_obj_name
        )
        request = self.build_session_request(config, session=session, kill=True)
        await self.send(request, config)
        logger.info(f"Closed session {session}")
        return True

    # =========================================================================
    # Request building
    # =========================================================================

    @staticmethod
    def build_script_request(
        config: RexProConfig,
        script: str,
        bindings: dict[str, Any] | None = None,
        *,
        session: str | None = None,
    ) -> ScriptRequest:
        """Script request for `config`; a session forces inSession=True."""
        meta = ScriptRequestMeta(
            in_session=True if session else config.in_session,
            isolate=config.isolate,
            transaction=config.transaction,
            graph_name=config.graph,
            graph_obj_name=config.graph_obj_name,
        )
        return ScriptRequest(
            session_uuid=session or new_uuid(),
            request_uuid=new_uuid(),
            meta=meta,
            language=config.language,
            script=script,
            bindings=bindings or {},
        )

    @staticmethod
    def build_session_request(
        config: RexProConfig,
        *,
        session: str | None = None,
        kill: bool = False,
        username: str = "",
        password: str = "",
    ) -> SessionRequest:
        """Session open (or, with kill=True, close) request."""
        meta = SessionRequestMeta(
            graph_name=config.graph,
            graph_obj_name=config.graph_obj_name,
            kill_session=kill,
        )
        return SessionRequest(
            session_uuid=session or new_uuid(),
            request_uuid=new_uuid(),
            meta=meta,
            username=username,
            password=password,
        )

    # =========================================================================
    # Exchange
    # =========================================================================

    async def send(
        self,
        request: ScriptRequest | SessionRequest,
        config: RexProConfig | None = None,
        call: Call | None = None,
    ) -> ScriptResponse | SessionResponse:
        """Run one exchange for a prepared request on a fresh connection.

        Raises:
            UnsupportedSerializerError: Before any I/O
            BindingsSerializationError: Bindings cannot be encoded, before any I/O
            TransportError: Connect/read/write failed or stream ended early
            RexProError: Typed error reported by the server
        """
        config = config or self.config
        body = serialize_body(config.serializer, request.to_tuple())
        packet = encode_header(config.serializer, request.message_type, len(body)) + body

        call = call or Call()
        call.request_uuid = request.request_uuid
        try:
            response = await self._exchange(call, config, packet)
            result = classify(response, _EXPECTED_RESPONSE[request.message_type])
        except RexProError as e:
            call.error = e
            call.transition(CallState.FAILED)
            raise
        call.transition(CallState.COMPLETE)
        return result

    async def _exchange(self, call: Call, config: RexProConfig, packet: bytes) -> Response:
        """Send a packet and accumulate exactly one response."""
        call.transition(CallState.CONNECTING)
        connection: Connection | None = None
        try:
            connection = await self._connection_factory(config)
            await connection.send(packet)
            call.transition(CallState.AWAITING_HEADER)

            accumulator = ResponseAccumulator(config.serializer)
            response: Response | None = None
            while response is None:
                chunk = await connection.receive()
                if not chunk:
                    accumulator.finish()
                response = accumulator.feed(chunk)
                if accumulator.header_parsed and call.state == CallState.AWAITING_HEADER:
                    call.transition(CallState.ACCUMULATING_BODY)

            call.response = response
            return response
        except TransportError:
            raise
        except (OSError, asyncio.IncompleteReadError) as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        finally:
            if connection is not None:
                await connection.close()
