"""Byte-stream transports for the RexPro client.

Every call gets its own connection: the client opens one, writes a single
request, reads until one response is complete, and closes it. Connections
never carry more than one in-flight request.

Implementations:
- TCPConnection: asyncio streams to a RexPro server
- MockConnection: in-memory, replays canned response bytes for testing
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol, runtime_checkable

from .config import RexProConfig
from .errors import TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class Connection(Protocol):
    """A duplex byte stream owned by exactly one call."""

    async def send(self, data: bytes) -> None:
        """Write all of `data`.

        Raises:
            TransportError: If the write fails
        """
        ...

    async def receive(self) -> bytes:
        """Read the next chunk; b"" means the peer closed the stream.

        Raises:
            TransportError: If the read fails
        """
        ...

    async def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...


ConnectionFactory = Callable[[RexProConfig], Awaitable[Connection]]


class TCPConnection:
    """Connection over asyncio TCP streams."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        read_size: int = 65536,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._read_size = read_size
        self._closed = False

    @classmethod
    async def open(cls, host: str, port: int, read_size: int = 65536) -> TCPConnection:
        """Connect to host:port.

        Raises:
            TransportError: Connection refused or unreachable.
        """
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError as e:
            raise TransportError(f"Failed to connect to {host}:{port}: {e}") from e
        logger.debug(f"Connected to {host}:{port}")
        return cls(reader, writer, read_size)

    async def send(self, data: bytes) -> None:
        if self._closed:
            raise TransportError("Connection is closed")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, ConnectionError) as e:
            raise TransportError(f"Write failed: {e}") from e
        logger.debug(f"Sent {len(data)} bytes")

    async def receive(self) -> bytes:
        if self._closed:
            raise TransportError("Connection is closed")
        try:
            chunk = await self._reader.read(self._read_size)
        except (OSError, ConnectionError, asyncio.IncompleteReadError) as e:
            raise TransportError(f"Read failed: {e}") from e
        logger.debug(f"Received {len(chunk)} bytes")
        return chunk

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (OSError, ConnectionError) as e:
            logger.warning(f"Error closing connection: {e}")


async def open_tcp_connection(config: RexProConfig) -> Connection:
    """Default connection factory."""
    return await TCPConnection.open(config.host, config.port, config.read_size)


class MockConnection:
    """In-memory connection for testing.

    Records everything sent and replays a canned response split into the
    given chunks. No actual I/O.

    Usage:
        conn = MockConnection([response_bytes[:5], response_bytes[5:]])
        client = RexProClient(connection_factory=conn.factory)
        await client.execute("g.V")

        assert conn.sent[0][6] == MessageType.SCRIPT_REQUEST

    With a `responder`, each sent request is answered by queueing
    `responder(request)` split into `chunk_size` pieces.
    """

    def __init__(
        self,
        chunks: Iterable[bytes] = (),
        *,
        fail_on_send: Exception | None = None,
        fail_on_receive: Exception | None = None,
        responder: Callable[[bytes], bytes] | None = None,
        chunk_size: int | None = None,
    ) -> None:
        self._chunks: deque[bytes] = deque(chunks)
        self._responder = responder
        self._chunk_size = chunk_size
        self._fail_on_send = fail_on_send
        self._fail_on_receive = fail_on_receive
        self.sent: list[bytes] = []
        self.opened = 0
        self.closed = False

    async def factory(self, config: RexProConfig) -> Connection:
        """Connection factory that hands out this connection."""
        self.opened += 1
        self.closed = False
        return self

    def feed(self, chunk: bytes) -> None:
        """Queue another chunk to be received."""
        self._chunks.append(chunk)

    async def send(self, data: bytes) -> None:
        if self._fail_on_send is not None:
            raise TransportError(str(self._fail_on_send)) from self._fail_on_send
        self.sent.append(bytes(data))
        if self._responder is not None:
            response = self._responder(bytes(data))
            if self._chunk_size:
                self._chunks.extend(split_chunks(response, self._chunk_size))
            else:
                self._chunks.append(response)

    async def receive(self) -> bytes:
        if self._fail_on_receive is not None:
            raise TransportError(str(self._fail_on_receive)) from self._fail_on_receive
        if not self._chunks:
            return b""
        return self._chunks.popleft()

    async def close(self) -> None:
        self.closed = True


def split_chunks(data: bytes, size: int) -> list[bytes]:
    """Split bytes into fixed-size chunks (the last may be shorter)."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [data[i : i + size] for i in range(0, len(data), size)]


class MockConnectionFactory:
    """Hands out a fresh responder-backed MockConnection per call.

    Usage:
        factory = MockConnectionFactory(fake_server.respond, chunk_size=3)
        client = RexProClient(connection_factory=factory)
        await client.open_session()

        assert len(factory.connections) == 1
        assert factory.connections[0].closed
    """

    def __init__(
        self,
        responder: Callable[[bytes], bytes],
        chunk_size: int | None = None,
    ) -> None:
        self._responder = responder
        self._chunk_size = chunk_size
        self.connections: list[MockConnection] = []

    async def __call__(self, config: RexProConfig) -> Connection:
        connection = MockConnection(responder=self._responder, chunk_size=self._chunk_size)
        connection.opened = 1
        self.connections.append(connection)
        return connection
