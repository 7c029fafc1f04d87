"""
Request body parsers for http_message.

Parsers take the body text and return None, a mapping, or an object.
The built-in ones cover JSON, XML and form-urlencoded bodies.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qsl

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError, fromstring

logger = logging.getLogger(__name__)


BodyParser = Callable[[str], Any]

_MEDIA_TYPE_SEPARATOR = re.compile(r"\s*[;,]\s*")


def parse_form_urlencoded(text: str) -> Dict[str, Any]:
    """
    Decode a form-urlencoded string.

    Repeated plain keys keep the last value; keys ending in ``[]``
    collect their values into a list.

    Example:
        >>> parse_form_urlencoded("a=1&b=2&c[]=x&c[]=y")
        {'a': '1', 'b': '2', 'c': ['x', 'y']}
    """
    result: Dict[str, Any] = {}
    for key, value in parse_qsl(text, keep_blank_values=True):
        if key.endswith("[]"):
            name = key[:-2]
            values = result.get(name)
            if not isinstance(values, list):
                values = []
                result[name] = values
            values.append(value)
        else:
            result[key] = value
    return result


def parse_json(text: str) -> Optional[Dict[str, Any]]:
    """Decode a JSON object; anything else, or invalid JSON, gives None."""
    try:
        result = json.loads(text)
    except ValueError:
        return None
    if not isinstance(result, dict):
        return None
    return result


def parse_xml(text: str) -> Any:
    """
    Parse an XML document into an Element.

    External entities and DTDs are refused; any parse failure gives None.
    """
    try:
        return fromstring(text)
    except (ParseError, DefusedXmlException) as e:
        logger.debug(f"XML body rejected: {e}")
        return None


DEFAULT_BODY_PARSERS: Mapping[str, BodyParser] = {
    "application/json": parse_json,
    "application/xml": parse_xml,
    "text/xml": parse_xml,
    "application/x-www-form-urlencoded": parse_form_urlencoded,
}


def parse_media_type(content_type: Optional[str]) -> Optional[str]:
    """
    Get the media type from a Content-Type value, without parameters.

    Example:
        >>> parse_media_type("Application/JSON; charset=utf-8")
        'application/json'
    """
    if not content_type:
        return None
    media_type = _MEDIA_TYPE_SEPARATOR.split(content_type.strip())[0]
    return media_type.lower() or None


def resolve_parser_key(media_type: str) -> str:
    """
    Collapse a structured-syntax suffix (RFC 6839) for parser lookup.

    ``application/vnd.api+json`` resolves to ``application/json``.
    """
    parts = media_type.split("+")
    if len(parts) >= 2:
        return "application/" + parts[-1]
    return media_type


_SCALAR_TYPES = (str, bytes, bytearray, int, float, complex, bool)
_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def is_parsed_body(value: Any) -> bool:
    """Check that a value is None, a mapping, or an object-like value."""
    if value is None or isinstance(value, Mapping):
        return True
    return not isinstance(value, _SCALAR_TYPES + _SEQUENCE_TYPES)
