"""
http_message - Immutable HTTP message values

Headers, URIs, byte streams and the request/response types built
from them. Every value is copy-on-write: ``with_*`` methods return new
instances and never alter the original.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .exceptions import (
    HTTPMessageError,
    InvalidArgumentError,
    ParserError,
    ProtocolError,
    StreamDetachedError,
    StreamError,
)
from .headers import HeaderTable, headers_from_environ, normalize_header_key
from .message import SUPPORTED_PROTOCOL_VERSIONS, Message
from .request import Request
from .response import STATUS_PHRASES, Response
from .streams import Stream, create_stream, open_stream
from .uri import Uri, resolve_proxy_scheme
from .environ import request_from_environ
from .wire import serialize_request, serialize_response

__all__ = [
    "HTTPMessageError",
    "InvalidArgumentError",
    "ParserError",
    "ProtocolError",
    "StreamDetachedError",
    "StreamError",
    "HeaderTable",
    "headers_from_environ",
    "normalize_header_key",
    "Message",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "Request",
    "Response",
    "STATUS_PHRASES",
    "Stream",
    "create_stream",
    "open_stream",
    "Uri",
    "resolve_proxy_scheme",
    "request_from_environ",
    "serialize_request",
    "serialize_response",
]
