"""
HTTP response for http_message.

Response composes a Message with a status code and a reason phrase,
the latter defaulting to the standard phrase for the code.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from .exceptions import InvalidArgumentError
from .headers import HeaderInput, HeaderTable
from .message import DEFAULT_PROTOCOL_VERSION, Message, MessageMixin
from .streams import Stream, create_stream


StatusCode = int

STATUS_PHRASES: Dict[int, str] = {
    # Informational 1xx
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    # Successful 2xx
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi-Status",
    208: "Already Reported",
    226: "IM Used",
    # Redirection 3xx
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    306: "(Unused)",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    # Client Error 4xx
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Timeout",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Request Entity Too Large",
    414: "Request-URI Too Long",
    415: "Unsupported Media Type",
    416: "Requested Range Not Satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",
    421: "Misdirected Request",
    422: "Unprocessable Entity",
    423: "Locked",
    424: "Failed Dependency",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    444: "Connection Closed Without Response",
    451: "Unavailable For Legal Reasons",
    499: "Client Closed Request",
    # Server Error 5xx
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    510: "Not Extended",
    511: "Network Authentication Required",
    599: "Network Connect Timeout Error",
}


def get_status_phrase(code: StatusCode) -> str:
    """
    Get the standard reason phrase for a status code.

    Raises:
        InvalidArgumentError: If the code has no standard phrase
    """
    try:
        return STATUS_PHRASES[code]
    except KeyError:
        raise InvalidArgumentError(f"Invalid status code: {code}") from None


def filter_status(status: Any) -> StatusCode:
    """
    Validate a status code.

    Numeric input is taken by absolute value and must be an integer in
    the 100-599 range; numeric strings are accepted.

    Raises:
        InvalidArgumentError: If the status is not a valid code
    """
    if isinstance(status, str):
        try:
            status = int(status.strip())
        except ValueError:
            raise InvalidArgumentError(f"Invalid HTTP status code: {status!r}") from None
    if not isinstance(status, int) or isinstance(status, bool):
        raise InvalidArgumentError(f"Invalid HTTP status code: {status!r}")

    status = abs(status)
    if status < 100 or status > 599:
        raise InvalidArgumentError(f"Invalid HTTP status code: {status}")
    return status


@dataclass(frozen=True)
class Response(MessageMixin):
    """
    Immutable HTTP response.

    The reason phrase defaults to the standard phrase for the status
    code. Use ``Response.create`` to build one from plain headers.
    """

    status_code: StatusCode = 200
    reason_phrase: str = ""
    message: Message = field(default_factory=Message)

    def __post_init__(self) -> None:
        """Validate response data after initialization."""
        object.__setattr__(self, "status_code", filter_status(self.status_code))
        if not isinstance(self.reason_phrase, str):
            raise InvalidArgumentError(
                f"Reason phrase must be a string, {type(self.reason_phrase).__name__} given"
            )
        if self.reason_phrase == "":
            object.__setattr__(self, "reason_phrase", STATUS_PHRASES.get(self.status_code, ""))
        if not isinstance(self.message, Message):
            raise InvalidArgumentError(
                f"message must be a Message, {type(self.message).__name__} given"
            )

    @classmethod
    def create(
        cls,
        status: StatusCode = 200,
        headers: Optional[HeaderInput] = None,
        body: Optional[Stream] = None,
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    ) -> "Response":
        """
        Create a Response with proper validation.

        Args:
            status: HTTP status code
            headers: Optional mapping or (name, value) pairs
            body: Optional body stream; an empty writable stream by default
            protocol_version: HTTP protocol version

        Returns:
            New Response instance
        """
        status = filter_status(status)
        message = Message(
            headers=HeaderTable(headers),
            body=body if body is not None else create_stream(),
            protocol_version=protocol_version,
        )
        return cls(status_code=status, message=message)

    def with_status(self, code: StatusCode, reason_phrase: str = "") -> "Response":
        """
        Create a new response with a different status.

        An empty reason phrase is replaced by the standard phrase for
        the code.

        Raises:
            InvalidArgumentError: If the code is invalid, or has no standard
                phrase and none was given
        """
        code = filter_status(code)
        if not isinstance(reason_phrase, str):
            raise InvalidArgumentError(
                f"Reason phrase must be a string, {type(reason_phrase).__name__} given"
            )
        if reason_phrase == "":
            reason_phrase = get_status_phrase(code)
        return replace(self, status_code=code, reason_phrase=reason_phrase)
