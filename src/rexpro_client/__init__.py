"""RexPro client - talk to a Rexster graph server over the RexPro binary protocol.

Usage:
    from rexpro_client import RexProClient

    client = RexProClient(host="localhost", graph="tinkerpop", serializer="msgpack")
    results = await client.execute("g.V.has('name', name)", {"name": "saturn"})
"""

from .client import Call, CallState, RexProClient, new_uuid
from .config import RexProConfig, resolve_config
from .errors import (
    AuthenticationFailedError,
    BindingsSerializationError,
    ErrorKind,
    GraphDoesNotExistError,
    MalformedPacketError,
    RexProError,
    ScriptFailureError,
    SessionDoesNotExistError,
    TransportError,
    UnknownRexProError,
    UnsupportedSerializerError,
)
from .transport import (
    Connection,
    ConnectionFactory,
    MockConnection,
    MockConnectionFactory,
    TCPConnection,
    open_tcp_connection,
)

__all__ = [
    # Client
    "RexProClient",
    "Call",
    "CallState",
    "new_uuid",
    # Configuration
    "RexProConfig",
    "resolve_config",
    # Errors
    "ErrorKind",
    "RexProError",
    "MalformedPacketError",
    "SessionDoesNotExistError",
    "ScriptFailureError",
    "AuthenticationFailedError",
    "GraphDoesNotExistError",
    "BindingsSerializationError",
    "UnknownRexProError",
    "UnsupportedSerializerError",
    "TransportError",
    # Transports
    "Connection",
    "ConnectionFactory",
    "TCPConnection",
    "MockConnection",
    "MockConnectionFactory",
    "open_tcp_connection",
]
