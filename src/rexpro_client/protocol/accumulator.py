"""Reassembles one response from an arbitrarily chunked byte stream.

A connection carries exactly one response. Chunks are appended in arrival
order; the header is decoded once at least 11 bytes have been buffered, and
the response is complete when header + body_size bytes have arrived.
"""

from __future__ import annotations

import logging

from ..errors import MalformedPacketError, TransportError
from .constants import HEADER_SIZE, SerializerKind
from .header import MessageHeader, decode_header, resolve_serializer
from .messages import Response
from .serializers import deserialize_body

logger = logging.getLogger(__name__)


class ResponseAccumulator:
    """Collects chunks until exactly one full message has arrived.

    Usage::

        acc = ResponseAccumulator("json")
        for chunk in chunks:
            response = acc.feed(chunk)
            if response is not None:
                break
        else:
            acc.finish()  # raises TransportError
    """

    def __init__(self, serializer: SerializerKind | str = SerializerKind.JSON) -> None:
        self._serializer = resolve_serializer(serializer)
        self._buffer: list[bytes] = []
        self._bytes_received = 0
        self._header: MessageHeader | None = None
        self._response: Response | None = None

    @property
    def header_parsed(self) -> bool:
        return self._header is not None

    @property
    def header(self) -> MessageHeader | None:
        return self._header

    @property
    def bytes_received(self) -> int:
        return self._bytes_received

    @property
    def complete(self) -> bool:
        return self._response is not None

    @property
    def response(self) -> Response | None:
        return self._response

    def feed(self, chunk: bytes) -> Response | None:
        """Append a chunk.

        Returns:
            The completed Response on the chunk that completes it, else None.

        Raises:
            MalformedPacketError: Data arrived after completion, the stream
                overran the announced size, or the body failed to decode.
        """
        if self._response is not None:
            raise MalformedPacketError(
                f"Received {len(chunk)} bytes after the response was complete"
            )
        if not chunk:
            return None

        self._buffer.append(bytes(chunk))
        self._bytes_received += len(chunk)

        if self._header is None:
            if self._bytes_received < HEADER_SIZE:
                return None
            self._header = decode_header(self._joined()[:HEADER_SIZE])
            logger.debug(
                f"Header parsed: type={self._header.message_type} "
                f"serializer={self._header.serializer_id} size={self._header.body_size}"
            )

        expected = self._header.total_size
        if self._bytes_received < expected:
            return None
        if self._bytes_received > expected:
            raise MalformedPacketError(
                f"Received {self._bytes_received} bytes, expected {expected}"
            )

        raw = self._joined()[HEADER_SIZE:]
        decoded = deserialize_body(self._serializer, raw)
        self._response = Response(header=self._header, raw_bytes=raw, decoded=decoded)
        self._buffer.clear()
        return self._response

    def finish(self) -> Response:
        """Signal end of stream; return the response or fail if incomplete.

        Raises:
            TransportError: The stream ended before a full response arrived.
        """
        if self._response is None:
            expected = self._header.total_size if self._header else HEADER_SIZE
            raise TransportError(
                f"Connection closed before full response "
                f"({self._bytes_received} of {expected} bytes)"
            )
        return self._response

    def _joined(self) -> bytes:
        if len(self._buffer) > 1:
            self._buffer = [b"".join(self._buffer)]
        return self._buffer[0]
