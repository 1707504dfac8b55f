"""RexPro wire protocol.

Pure, I/O-free building blocks:
- Header codec: the fixed 11-byte frame header
- Body serializers: JSON and msgpack encodings of the positional body
- Response accumulator: one response out of an arbitrarily chunked stream
- Classifier: error flag to typed error, success to named view
"""

from .accumulator import ResponseAccumulator
from .classifier import classify, error_for_flag
from .constants import (
    HEADER_SIZE,
    PROTOCOL_VERSION,
    ErrorFlag,
    MessageType,
    SerializerKind,
)
from .header import MessageHeader, decode_header, encode_header, resolve_serializer
from .messages import (
    ErrorResponse,
    Response,
    ScriptRequest,
    ScriptRequestMeta,
    ScriptResponse,
    SessionRequest,
    SessionRequestMeta,
    SessionResponse,
)
from .serializers import (
    JSONSerializer,
    MsgpackSerializer,
    deserialize_body,
    get_serializer,
    serialize_body,
    serialize_script_request,
    serialize_session_request,
)

__all__ = [
    # Constants
    "HEADER_SIZE",
    "PROTOCOL_VERSION",
    "ErrorFlag",
    "MessageType",
    "SerializerKind",
    # Header
    "MessageHeader",
    "encode_header",
    "decode_header",
    "resolve_serializer",
    # Messages
    "ScriptRequest",
    "ScriptRequestMeta",
    "SessionRequest",
    "SessionRequestMeta",
    "Response",
    "ErrorResponse",
    "ScriptResponse",
    "SessionResponse",
    # Serializers
    "JSONSerializer",
    "MsgpackSerializer",
    "get_serializer",
    "serialize_body",
    "serialize_script_request",
    "serialize_session_request",
    "deserialize_body",
    # Accumulation and classification
    "ResponseAccumulator",
    "classify",
    "error_for_flag",
]
