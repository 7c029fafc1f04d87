"""
HTTP message value for http_message.

Message bundles the protocol version, a HeaderTable and a body Stream.
Request and Response compose a Message and get the header and body
operations from MessageMixin instead of inheriting from Message.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, TypeVar

from .exceptions import InvalidArgumentError
from .headers import HeaderTable, HeaderValue
from .streams import Stream, create_stream


HTTP_1_0 = "1.0"
HTTP_1_1 = "1.1"
HTTP_2 = "2"
HTTP_2_0 = "2.0"

SUPPORTED_PROTOCOL_VERSIONS = (HTTP_1_0, HTTP_1_1, HTTP_2, HTTP_2_0)
DEFAULT_PROTOCOL_VERSION = HTTP_1_1


def _check_protocol_version(version: Any) -> str:
    if not isinstance(version, str):
        raise InvalidArgumentError(
            f"Protocol version must be a string, {type(version).__name__} given"
        )
    return version


def _check_body(body: Any) -> Stream:
    if not isinstance(body, Stream):
        raise InvalidArgumentError(
            f"Body must be a Stream, {type(body).__name__} given"
        )
    return body


@dataclass(frozen=True)
class Message:
    """
    Immutable HTTP message: protocol version, headers and body.

    The body stream is shared, not copied, between a message and the
    messages derived from it.
    """

    headers: HeaderTable = field(default_factory=HeaderTable)
    body: Stream = field(default_factory=create_stream)
    protocol_version: str = DEFAULT_PROTOCOL_VERSION

    def __post_init__(self) -> None:
        """Validate message data after initialization."""
        _check_protocol_version(self.protocol_version)
        _check_body(self.body)
        if not isinstance(self.headers, HeaderTable):
            object.__setattr__(self, "headers", HeaderTable(self.headers))

    def get_headers(self) -> Dict[str, List[str]]:
        """Get all headers by original name, in insertion order."""
        return self.headers.to_dict()

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def get_header(self, name: str) -> List[str]:
        """Get the values of a header (case-insensitive); empty if absent."""
        return list(self.headers.get(name))

    def get_header_line(self, name: str) -> str:
        return self.headers.get_line(name)

    def with_header(self, name: str, value: HeaderValue) -> "Message":
        """Create a new message with a header replaced."""
        return replace(self, headers=self.headers.set(name, value))

    def with_added_header(self, name: str, value: HeaderValue) -> "Message":
        """Create a new message with values appended to a header."""
        return replace(self, headers=self.headers.add(name, value))

    def without_header(self, name: str) -> "Message":
        """Create a new message without a header."""
        return replace(self, headers=self.headers.remove(name))

    def with_protocol_version(self, version: str) -> "Message":
        """Create a new message with a different protocol version."""
        return replace(self, protocol_version=_check_protocol_version(version))

    def with_body(self, body: Stream) -> "Message":
        """Create a new message with a different body stream."""
        return replace(self, body=_check_body(body))


M = TypeVar("M", bound="MessageMixin")


class MessageMixin:
    """
    Header and body operations for types that compose a Message.

    Implementers are frozen dataclasses with a ``message`` field; every
    ``with_*`` method returns a copy with that field replaced.
    """

    message: Message

    def _with_message(self: M, message: Message) -> M:
        return replace(self, message=message)  # type: ignore[type-var]

    @property
    def protocol_version(self) -> str:
        return self.message.protocol_version

    @property
    def headers(self) -> HeaderTable:
        return self.message.headers

    @property
    def body(self) -> Stream:
        return self.message.body

    def get_headers(self) -> Dict[str, List[str]]:
        return self.message.get_headers()

    def has_header(self, name: str) -> bool:
        return self.message.has_header(name)

    def get_header(self, name: str) -> List[str]:
        return self.message.get_header(name)

    def get_header_line(self, name: str) -> str:
        return self.message.get_header_line(name)

    def with_header(self: M, name: str, value: HeaderValue) -> M:
        return self._with_message(self.message.with_header(name, value))

    def with_added_header(self: M, name: str, value: HeaderValue) -> M:
        return self._with_message(self.message.with_added_header(name, value))

    def without_header(self: M, name: str) -> M:
        return self._with_message(self.message.without_header(name))

    def with_protocol_version(self: M, version: str) -> M:
        return self._with_message(self.message.with_protocol_version(version))

    def with_body(self: M, body: Stream) -> M:
        return self._with_message(self.message.with_body(body))
