"""
Header table for http_message.

HeaderTable is an ordered, case-insensitive multimap of header names to
values. Like the message types built on it, it is immutable: every
mutator returns a new table.
"""

from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .exceptions import InvalidArgumentError


HeaderValue = Union[str, Sequence[str]]
HeaderInput = Union[Mapping[str, HeaderValue], Iterable[Tuple[str, HeaderValue]]]

# Environment keys carrying headers without the HTTP_ prefix
SPECIAL_ENVIRON_HEADERS = frozenset({
    "CONTENT_TYPE",
    "CONTENT_LENGTH",
    "PHP_AUTH_USER",
    "PHP_AUTH_PW",
    "PHP_AUTH_DIGEST",
    "AUTH_TYPE",
})


def normalize_header_key(name: str) -> str:
    """
    Normalize a header name for case-insensitive lookup.

    ``Content_Type``, ``content-type`` and ``HTTP_CONTENT_TYPE`` all
    map to ``content-type``.
    """
    if not isinstance(name, str):
        raise InvalidArgumentError(
            f"Header name must be a string, {type(name).__name__} given"
        )
    key = name.lower().replace("_", "-")
    if key.startswith("http-"):
        key = key[5:]
    return key


def trim_header_values(value: Any) -> Tuple[str, ...]:
    """
    Turn a header value into a tuple of trimmed strings.

    Only spaces and tabs are stripped (RFC 7230 OWS).
    """
    if isinstance(value, (str, bytes, int, float)):
        values: Iterable[Any] = [value]
    elif isinstance(value, (list, tuple)):
        values = value
    else:
        raise InvalidArgumentError(
            f"Header value must be a string or a sequence of strings, "
            f"{type(value).__name__} given"
        )

    trimmed: List[str] = []
    for item in values:
        if isinstance(item, bytes):
            item = item.decode("latin-1")
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            item = str(item)
        elif not isinstance(item, str):
            raise InvalidArgumentError(
                f"Header values must be strings, {type(item).__name__} given"
            )
        trimmed.append(item.strip(" \t"))
    return tuple(trimmed)


class HeaderTable:
    """
    Immutable, ordered, case-insensitive header multimap.

    Each normalized key keeps exactly one original-case name: the
    spelling from ``set``, or the first spelling seen by ``add``.
    """

    __slots__ = ("_entries",)

    def __init__(self, headers: Optional[HeaderInput] = None) -> None:
        """
        Initialize HeaderTable.

        Args:
            headers: HeaderTable, mapping or sequence of (name, value) pairs. Values may
                be a string or a sequence of strings. Names that normalize to
                the same key are merged under the first spelling.
        """
        entries: Dict[str, Tuple[str, Tuple[str, ...]]] = {}
        if isinstance(headers, HeaderTable):
            entries = dict(headers._entries)
        elif headers is not None:
            pairs = headers.items() if isinstance(headers, Mapping) else headers
            for name, value in pairs:
                key = normalize_header_key(name)
                values = trim_header_values(value)
                if key in entries:
                    original, existing = entries[key]
                    entries[key] = (original, existing + values)
                else:
                    entries[key] = (name, values)
        self._entries = entries

    @classmethod
    def _from_entries(cls, entries: Dict[str, Tuple[str, Tuple[str, ...]]]) -> "HeaderTable":
        table = cls.__new__(cls)
        table._entries = entries
        return table

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "_entries"):
            raise AttributeError("HeaderTable is immutable")
        object.__setattr__(self, name, value)

    def items(self) -> List[Tuple[str, Tuple[str, ...]]]:
        """Get (original name, values) pairs in insertion order."""
        return [entry for entry in self._entries.values()]

    def to_dict(self) -> Dict[str, List[str]]:
        """Get a plain dict of original name to list of values."""
        return {name: list(values) for name, values in self._entries.values()}

    def names(self) -> List[str]:
        return [name for name, _ in self._entries.values()]

    def get(self, name: str) -> Tuple[str, ...]:
        """Get the values of a header, or an empty tuple if absent."""
        entry = self._entries.get(normalize_header_key(name))
        return entry[1] if entry is not None else ()

    def get_line(self, name: str) -> str:
        """Get the values of a header joined with ``", "``."""
        return ", ".join(self.get(name))

    def set(self, name: str, value: HeaderValue) -> "HeaderTable":
        """Replace a header, taking the given name spelling."""
        values = trim_header_values(value)
        key = normalize_header_key(name)
        entries = dict(self._entries)
        # Re-setting moves the entry to the end, like a fresh registration
        entries.pop(key, None)
        entries[key] = (name, values)
        return self._from_entries(entries)

    def add(self, name: str, value: HeaderValue) -> "HeaderTable":
        """Append values to a header, keeping its existing spelling."""
        values = trim_header_values(value)
        key = normalize_header_key(name)
        entries = dict(self._entries)
        if key in entries:
            original, existing = entries[key]
            entries[key] = (original, existing + values)
        else:
            entries[key] = (name, values)
        return self._from_entries(entries)

    def remove(self, name: str) -> "HeaderTable":
        """Drop a header; no-op if absent."""
        key = normalize_header_key(name)
        if key not in self._entries:
            return self
        entries = dict(self._entries)
        del entries[key]
        return self._from_entries(entries)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return normalize_header_key(name) in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderTable):
            return NotImplemented
        return list(self._entries.items()) == list(other._entries.items())

    def __hash__(self) -> int:
        return hash(tuple(self._entries.items()))

    def __repr__(self) -> str:
        return f"HeaderTable({self.to_dict()!r})"


def reconstruct_header_name(key: str) -> str:
    """
    Turn an environment key back into a header name.

    ``HTTP_USER_AGENT`` becomes ``User-Agent`` and ``CONTENT_TYPE``
    becomes ``Content-Type``.
    """
    if key.startswith("HTTP_"):
        key = key[5:]
    words = key.lower().replace("_", " ").split(" ")
    return "-".join(word[:1].upper() + word[1:] for word in words)


def headers_from_environ(environ: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Collect the headers carried by a CGI-style environment.

    Args:
        environ: Environment mapping

    Returns:
        Dict of reconstructed header name to value
    """
    headers: Dict[str, Any] = {}
    for key, value in environ.items():
        key = str(key).upper()
        if key in SPECIAL_ENVIRON_HEADERS or key.startswith("HTTP_"):
            # CONTENT_LENGTH is authoritative over the client-sent copy
            if key != "HTTP_CONTENT_LENGTH":
                headers[reconstruct_header_name(key)] = value
    return headers
