"""
HTTP server request for http_message.

Request composes a Message with the method, Uri, server parameters,
cookies, uploaded files, attributes and a registry of body parsers
keyed by media type. Like every other value in the package it is
immutable: ``with_*`` methods return new instances.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import InvalidArgumentError, ParserError
from .headers import HeaderInput, HeaderTable
from .message import DEFAULT_PROTOCOL_VERSION, Message, MessageMixin
from .parsers import (
    DEFAULT_BODY_PARSERS,
    BodyParser,
    is_parsed_body,
    parse_form_urlencoded,
    parse_media_type,
    resolve_parser_key,
)
from .streams import Stream, create_stream
from .uri import Uri

logger = logging.getLogger(__name__)


class _NotParsed:
    """Marker for a parsed body that has not been resolved yet."""

    def __repr__(self) -> str:
        return "NOT_PARSED"


NOT_PARSED: Any = _NotParsed()

_WHITESPACE = re.compile(r"\s")


def _coerce_uri(uri: Any) -> Uri:
    if isinstance(uri, Uri):
        return uri
    if isinstance(uri, str):
        return Uri.parse(uri)
    raise InvalidArgumentError(
        f"Parameter uri must be a string or an instance of Uri, {type(uri).__name__} given"
    )


def _check_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidArgumentError(f"{what} must be a mapping, {type(value).__name__} given")
    return value


def _protocol_from_server_params(server_params: Mapping[str, Any]) -> str:
    server_protocol = str(server_params.get("SERVER_PROTOCOL", "HTTP/" + DEFAULT_PROTOCOL_VERSION))
    return server_protocol.upper().replace("HTTP/", "")


@dataclass(frozen=True, eq=False)
class Request(MessageMixin):
    """
    Immutable HTTP server request.

    The request target, query parameters and parsed body are computed
    lazily and cached on the instance. The ``*_override`` fields hold
    values set explicitly through ``with_request_target``,
    ``with_query_params`` and ``with_parsed_body``.
    """

    method: str
    uri: Uri
    message: Message = field(default_factory=Message)
    server_params: Mapping[str, Any] = field(default_factory=dict)
    cookie_params: Mapping[str, Any] = field(default_factory=dict)
    uploaded_files: Mapping[str, Any] = field(default_factory=dict)
    attributes: Mapping[str, Any] = field(default_factory=dict)
    body_parsers: Mapping[str, BodyParser] = field(
        default_factory=lambda: dict(DEFAULT_BODY_PARSERS), repr=False
    )
    request_target_override: Optional[str] = None
    query_params_override: Optional[Mapping[str, Any]] = None
    parsed_body_override: Any = NOT_PARSED

    _request_target: Optional[str] = field(default=None, init=False, repr=False)
    _query_params: Optional[Dict[str, Any]] = field(default=None, init=False, repr=False)
    _parsed_body: Any = field(default=NOT_PARSED, init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        object.__setattr__(
            self, "method", self.method.upper() if isinstance(self.method, str) else ""
        )
        object.__setattr__(self, "uri", _coerce_uri(self.uri))
        if not isinstance(self.message, Message):
            raise InvalidArgumentError(
                f"message must be a Message, {type(self.message).__name__} given"
            )

        for name in (
            "server_params", "cookie_params", "uploaded_files", "attributes", "body_parsers"
        ):
            value = _check_mapping(getattr(self, name), name)
            object.__setattr__(self, name, MappingProxyType(dict(value)))
        if self.query_params_override is not None:
            value = _check_mapping(self.query_params_override, "query_params")
            object.__setattr__(self, "query_params_override", MappingProxyType(dict(value)))

    @classmethod
    def create(
        cls,
        method: str,
        uri: Union[str, Uri],
        headers: Optional[HeaderInput] = None,
        server_params: Optional[Mapping[str, Any]] = None,
        cookie_params: Optional[Mapping[str, Any]] = None,
        body: Optional[Stream] = None,
        uploaded_files: Optional[Mapping[str, Any]] = None,
    ) -> "Request":
        """
        Create a Request the way a server front end would.

        The Host header is seeded from the Uri, the protocol version is
        taken from ``SERVER_PROTOCOL`` and the built-in body parsers are
        registered.

        Args:
            method: HTTP method (GET, POST, etc.)
            uri: Uri instance or URI string
            headers: Optional mapping or (name, value) pairs
            server_params: Optional server environment snapshot
            cookie_params: Optional cookie name to value mapping
            body: Optional body stream; an empty in-memory stream by default
            uploaded_files: Optional field name to uploaded file mapping

        Returns:
            New Request instance
        """
        uri = _coerce_uri(uri)
        server_params = dict(server_params or {})

        table = HeaderTable(headers)
        if "Host" not in table or uri.host != "":
            table = table.set("Host", uri.host)

        message = Message(
            headers=table,
            body=body if body is not None else create_stream(),
            protocol_version=_protocol_from_server_params(server_params),
        )
        return cls(
            method=method,
            uri=uri,
            message=message,
            server_params=server_params,
            cookie_params=dict(cookie_params or {}),
            uploaded_files=dict(uploaded_files or {}),
        )

    def get_request_target(self) -> str:
        """
        Get the request target.

        Returns the target set with ``with_request_target``, else the
        Uri path (made absolute) plus its query string.
        """
        if self.request_target_override is not None:
            return self.request_target_override

        if self._request_target is None:
            target = self.uri.path
            if not target.startswith("/"):
                target = "/" + target
            if self.uri.query:
                target += "?" + self.uri.query
            object.__setattr__(self, "_request_target", target)
        return self._request_target  # type: ignore[return-value]

    def with_request_target(self, request_target: str) -> "Request":
        """Create a new request with an explicit request target."""
        if not isinstance(request_target, str) or _WHITESPACE.search(request_target):
            raise InvalidArgumentError(
                "Invalid request target provided; must be a string and cannot contain whitespace"
            )
        return replace(self, request_target_override=request_target)

    def with_method(self, method: str) -> "Request":
        """Create a new request with a different method."""
        if not isinstance(method, str):
            raise InvalidArgumentError(
                f"Method must be a string, {type(method).__name__} given"
            )
        return replace(self, method=method.upper())

    def with_uri(self, uri: Union[str, Uri], preserve_host: bool = False) -> "Request":
        """
        Create a new request with a different Uri.

        The Host header follows the new Uri's host, unless
        ``preserve_host`` is set and the request already has one.
        """
        uri = _coerce_uri(uri)
        message = self.message
        if uri.host and (not preserve_host or not message.get_header_line("Host")):
            message = message.with_header("Host", uri.host)
        return replace(self, uri=uri, message=message)

    def with_cookie_params(self, cookies: Mapping[str, Any]) -> "Request":
        """Create a new request with different cookie parameters."""
        return replace(self, cookie_params=_check_mapping(cookies, "cookies"))

    def get_uploaded_files(self) -> Dict[str, Any]:
        return dict(self.uploaded_files)

    def with_uploaded_files(self, uploaded_files: Mapping[str, Any]) -> "Request":
        """
        Create a new request with a different uploaded file table.

        The table maps form field names to whatever the front end uses
        to describe an upload; its values are not inspected.
        """
        return replace(
            self, uploaded_files=_check_mapping(uploaded_files, "uploaded_files")
        )

    def get_query_params(self) -> Dict[str, Any]:
        """Get the query parameters, decoding the Uri query on first use."""
        if self.query_params_override is not None:
            return dict(self.query_params_override)

        if self._query_params is None:
            object.__setattr__(self, "_query_params", parse_form_urlencoded(self.uri.query))
        return dict(self._query_params)  # type: ignore[arg-type]

    def with_query_params(self, query: Mapping[str, Any]) -> "Request":
        """Create a new request with explicit query parameters."""
        return replace(self, query_params_override=_check_mapping(query, "query"))

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def with_attribute(self, name: str, value: Any) -> "Request":
        """Create a new request with an attribute set."""
        attributes = dict(self.attributes)
        attributes[name] = value
        return replace(self, attributes=attributes)

    def without_attribute(self, name: str) -> "Request":
        """Create a new request without an attribute."""
        attributes = dict(self.attributes)
        attributes.pop(name, None)
        return replace(self, attributes=attributes)

    def get_content_type(self) -> Optional[str]:
        """Get the first Content-Type value, if any."""
        values = self.get_header("Content-Type")
        return values[0] if values else None

    def get_media_type(self) -> Optional[str]:
        """Get the lowercased media type, without content-type parameters."""
        return parse_media_type(self.get_content_type())

    def register_media_type_parser(self, media_type: str, parser: BodyParser) -> "Request":
        """
        Create a new request with a body parser installed.

        The parser is keyed by the exact media type string and replaces
        any parser already registered under it.

        Args:
            media_type: Media type without parameters, e.g. ``application/json``
            parser: Callable taking the body text

        Returns:
            New Request instance
        """
        if not callable(parser):
            raise InvalidArgumentError("Media type parser must be callable")
        parsers = dict(self.body_parsers)
        parsers[str(media_type)] = parser
        return replace(self, body_parsers=parsers)

    def _find_parser(self, media_type: str) -> Optional[BodyParser]:
        return self.body_parsers.get(resolve_parser_key(media_type))

    def get_parsed_body(self) -> Any:
        """
        Get the parsed body.

        A value set with ``with_parsed_body`` wins. Otherwise the body is
        read and handed to the parser registered for the request's media
        type; a ``type/x+suffix`` media type is always looked up as
        ``application/suffix``. The result is cached.

        Returns:
            The parsed body, or None when no parser applies

        Raises:
            ParserError: If the parser returns something other than None,
                a mapping or an object
        """
        if self.parsed_body_override is not NOT_PARSED:
            return self.parsed_body_override
        if self._parsed_body is not NOT_PARSED:
            return self._parsed_body

        media_type = self.get_media_type()
        if media_type is None:
            return None
        parser = self._find_parser(media_type)
        if parser is None:
            logger.debug(f"No body parser registered for {media_type}")
            return None

        parsed = parser(str(self.body))
        if not is_parsed_body(parsed):
            raise ParserError(
                "Request body media type parser return value must be a mapping, an object, or None"
            )

        logger.debug(f"Parsed {media_type} request body")
        object.__setattr__(self, "_parsed_body", parsed)
        return parsed

    def with_parsed_body(self, data: Any) -> "Request":
        """Create a new request with an explicit parsed body."""
        if not is_parsed_body(data):
            raise InvalidArgumentError(
                "Parsed body value must be a mapping, an object, or None"
            )
        return replace(self, parsed_body_override=data)
