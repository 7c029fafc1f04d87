"""
URI value type for http_message.

This module defines the immutable Uri class together with the
percent-encoding helpers it relies on and the construction of a
Uri from a server environment snapshot.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit

from .exceptions import InvalidArgumentError


# Well-known ports elided from the authority when they match the scheme
DEFAULT_PORTS: Dict[str, int] = {
    "http": 80,
    "https": 443,
    "ftp": 21,
    "gopher": 70,
    "nntp": 119,
    "news": 119,
    "telnet": 23,
    "tn3270": 23,
    "imap": 143,
    "pop": 110,
    "ldap": 389,
}

UNRESERVED_CHARACTERS = r"a-zA-Z0-9_\-\.~"
SUB_DELIMITERS = r"!\$&'\(\)\*\+,;="

# Runs of characters outside the allowed set, or a "%" that does not start
# a valid percent-triplet.
_PATH_PATTERN = re.compile(
    r"(?:[^" + UNRESERVED_CHARACTERS + SUB_DELIMITERS + r"%:@/]+|%(?![A-Fa-f0-9]{2}))"
)
_QUERY_PATTERN = re.compile(
    r"(?:[^" + UNRESERVED_CHARACTERS + SUB_DELIMITERS + r"%:@/\?]+|%(?![A-Fa-f0-9]{2}))"
)

_IPV6_HOST_PATTERN = re.compile(r"^(\[[a-fA-F0-9:.]+\])(?::(\d*))?\Z")


def _quote_match(match: "re.Match[str]") -> str:
    return quote(match.group(0), safe="")


def _encode(pattern: "re.Pattern[str]", value: str) -> str:
    try:
        return pattern.sub(_quote_match, value)
    except UnicodeEncodeError as e:
        # Lone surrogates have no UTF-8 form
        raise InvalidArgumentError(f"Cannot percent-encode {value!r}", e) from e


def encode_path(path: str) -> str:
    """
    Percent-encode a URI path.

    Characters outside unreserved, sub-delims and ``:@/`` are encoded.
    Existing percent-triplets are left alone, so encoding twice gives
    the same result as encoding once.

    Args:
        path: The raw path

    Returns:
        The encoded path

    Raises:
        InvalidArgumentError: If path is not a string or is not encodable
    """
    if not isinstance(path, str):
        raise InvalidArgumentError("Path must be a string")
    return _encode(_PATH_PATTERN, path)


def encode_query_or_fragment(value: str) -> str:
    """Percent-encode a query string or fragment (``?`` is also allowed)."""
    if not isinstance(value, str):
        raise InvalidArgumentError("Query and fragment must be a string")
    return _encode(_QUERY_PATTERN, value)


def _filter_scheme(scheme: Any) -> str:
    if not isinstance(scheme, str):
        raise InvalidArgumentError("Scheme must be a string")
    return scheme.strip().lower()


def _filter_host(host: Any) -> str:
    if not isinstance(host, str):
        raise InvalidArgumentError("Host must be a string")
    return host.strip().lower()


def _filter_port(port: Any) -> Optional[int]:
    if port is None:
        return None
    if isinstance(port, bool):
        raise InvalidArgumentError(f"Port must be an integer, {type(port).__name__} given")
    try:
        port = int(port)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid port: {port!r}", e) from e
    if port < 1 or port > 0xFFFF:
        raise InvalidArgumentError(f"Invalid port: {port}. Must be between 1 and 65535")
    return port


def _split_authority(netloc: str) -> Tuple[str, Optional[str], str, Optional[str]]:
    """Split ``user:pass@host:port`` into its raw parts."""
    userinfo, at, hostport = netloc.rpartition("@")
    user, password = "", None
    if at:
        user, colon, secret = userinfo.partition(":")
        password = secret if colon else None

    host, port = _split_host_port(hostport)
    return user, password, host, port


def _split_host_port(hostport: str) -> Tuple[str, Optional[str]]:
    """Split a host field into host and port text, keeping IPv6 brackets."""
    match = _IPV6_HOST_PATTERN.match(hostport)
    if match:
        return match.group(1), match.group(2) or None

    host, colon, port = hostport.partition(":")
    return host, (port or None) if colon else None


@dataclass(frozen=True)
class Uri:
    """
    Immutable URI value.

    Scheme and host are lowercased, path, query and fragment are
    percent-encoded, and a port equal to the scheme's default is
    dropped unless ``remove_default_port`` is disabled. Every
    ``with_*`` method returns a new instance that goes through the
    same normalization.
    """

    scheme: str = ""
    user: str = ""
    password: Optional[str] = None
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""
    remove_default_port: bool = field(default=True, compare=False, repr=False)

    def __post_init__(self) -> None:
        """Validate and normalize components after initialization."""
        user = "" if self.user is None else self.user
        if not isinstance(user, str):
            raise InvalidArgumentError("User must be a string")
        if self.password is not None and not isinstance(self.password, str):
            raise InvalidArgumentError(
                f"Password must be a string or None, {type(self.password).__name__} given"
            )

        scheme = _filter_scheme(self.scheme)
        port = _filter_port(self.port)
        if (
            self.remove_default_port
            and port is not None
            and DEFAULT_PORTS.get(scheme) == port
        ):
            port = None

        object.__setattr__(self, "scheme", scheme)
        object.__setattr__(self, "user", user)
        object.__setattr__(self, "host", _filter_host(self.host))
        object.__setattr__(self, "port", port)
        object.__setattr__(self, "path", encode_path(self.path))
        if self.authority != "" or scheme == "file":
            if self.path != "" and not self.path.startswith("/"):
                object.__setattr__(self, "path", "/" + self.path)
        elif self.path.startswith("//"):
            # "//" would be read back as the start of an authority
            object.__setattr__(self, "path", "/" + self.path.lstrip("/"))
        object.__setattr__(self, "query", encode_query_or_fragment(self.query))
        object.__setattr__(self, "fragment", encode_query_or_fragment(self.fragment))

    @classmethod
    def parse(cls, uri: str, remove_default_port: bool = True) -> "Uri":
        """
        Create a Uri from a URI string.

        Args:
            uri: The URI string
            remove_default_port: Whether to drop a port equal to the scheme default

        Returns:
            New Uri instance

        Raises:
            InvalidArgumentError: If the string is empty or cannot be parsed
        """
        if not isinstance(uri, str):
            raise InvalidArgumentError(
                f"URI must be a string, {type(uri).__name__} given"
            )
        if uri == "":
            raise InvalidArgumentError("URI cannot be empty")

        try:
            parts = urlsplit(uri)
            user, password, host, port = _split_authority(parts.netloc)
        except ValueError as e:
            raise InvalidArgumentError(f"Unable to parse URI: {uri}", e) from e

        return cls(
            scheme=parts.scheme,
            user=user,
            password=password,
            host=host,
            port=port,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
            remove_default_port=remove_default_port,
        )

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "Uri":
        """
        Create a Uri from a server environment snapshot.

        The scheme comes from ``HTTPS`` (after folding proxy headers in),
        host and port from ``HTTP_HOST``/``SERVER_NAME``/``SERVER_PORT``,
        and path and query from ``REQUEST_URI``/``QUERY_STRING``.

        Args:
            environ: CGI-style environment mapping

        Returns:
            New Uri instance
        """
        environ = resolve_proxy_scheme(environ)

        is_secure = environ.get("HTTPS")
        scheme = "http" if not is_secure or str(is_secure).lower() == "off" else "https"

        username = environ.get("PHP_AUTH_USER")
        password = environ.get("PHP_AUTH_PW")

        if "HTTP_HOST" in environ:
            hostport = environ["HTTP_HOST"]
        elif "SERVER_NAME" in environ:
            hostport = environ["SERVER_NAME"]
        else:
            hostport = "localhost"

        host, host_port = _split_host_port(str(hostport))
        port = _filter_port(host_port if host_port is not None else environ.get("SERVER_PORT", 80))

        # A stand-in authority lets urlsplit treat the target as a path
        request_uri = str(environ.get("REQUEST_URI", ""))
        target = urlsplit("http://example.com" + request_uri)
        path = unquote(target.path)

        query = str(environ.get("QUERY_STRING", ""))
        if query == "":
            query = target.query

        return cls(
            scheme=scheme,
            user=username or "",
            password=password if username is not None else None,
            host=host,
            port=port,
            path=path,
            query=query,
        )

    @property
    def user_info(self) -> str:
        """Get ``user[:password]``."""
        user_info = self.user
        if self.password is not None:
            user_info += ":" + self.password
        return user_info

    @property
    def authority(self) -> str:
        """Get ``[userinfo@]host[:port]``."""
        authority = self.host
        user_info = self.user_info
        if user_info != "":
            authority = user_info + "@" + authority
        if self.port is not None:
            authority += ":" + str(self.port)
        return authority

    def with_scheme(self, scheme: str) -> "Uri":
        """Create a new Uri with a different scheme."""
        return replace(self, scheme=scheme)

    def with_user_info(self, user: str, password: Optional[str] = None) -> "Uri":
        """Create a new Uri with different user information."""
        return replace(self, user=user, password=password)

    def with_host(self, host: str) -> "Uri":
        """Create a new Uri with a different host."""
        return replace(self, host=host)

    def with_port(self, port: Optional[int]) -> "Uri":
        """Create a new Uri with a different port."""
        return replace(self, port=port)

    def with_path(self, path: str) -> "Uri":
        """Create a new Uri with a different path."""
        return replace(self, path=path)

    def with_query(self, query: str) -> "Uri":
        """Create a new Uri with a different query string."""
        return replace(self, query=query)

    def with_fragment(self, fragment: str) -> "Uri":
        """Create a new Uri with a different fragment."""
        return replace(self, fragment=fragment)

    def with_default_port_removal(self, remove_default_port: bool) -> "Uri":
        """Create a new Uri with default-port elision switched on or off."""
        return replace(self, remove_default_port=bool(remove_default_port))

    def to_uri_string(self) -> str:
        """
        Assemble the URI string.

        The authority is emitted for ``file`` URIs even when empty.
        """
        uri = ""
        if self.scheme != "":
            uri += self.scheme + ":"

        authority = self.authority
        if authority != "" or self.scheme == "file":
            uri += "//" + authority

        uri += self.path
        if self.query != "":
            uri += "?" + self.query
        if self.fragment != "":
            uri += "#" + self.fragment
        return uri

    def __str__(self) -> str:
        return self.to_uri_string()


def resolve_proxy_scheme(environ: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Fold proxy scheme indicators into the ``HTTPS`` flag.

    ``X-Forwarded-Proto: https`` and ``Front-End-Https`` (any value but
    ``off``) mark the request as secure the same way ``HTTPS`` does.

    Args:
        environ: CGI-style environment mapping

    Returns:
        A copy of the environment, with ``HTTPS`` set to ``"on"`` when secure
    """
    resolved = dict(environ)

    def _is_on(key: str) -> bool:
        value = resolved.get(key)
        return bool(value) and str(value).lower() != "off"

    if (
        _is_on("HTTPS")
        or resolved.get("HTTP_X_FORWARDED_PROTO") == "https"
        or _is_on("HTTP_FRONT_END_HTTPS")
    ):
        resolved["HTTPS"] = "on"
    return resolved
