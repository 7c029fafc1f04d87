"""
Build requests from a server environment snapshot.

The environment is always passed in explicitly (a WSGI/CGI-style
mapping); nothing here reads ``os.environ``.
"""

import logging
from typing import Any, Mapping, Optional

from .headers import headers_from_environ
from .request import Request
from .streams import Stream
from .uri import Uri, resolve_proxy_scheme

logger = logging.getLogger(__name__)

# Media types whose POST bodies a front end decodes into a form table
FORM_MEDIA_TYPES = frozenset({
    "application/x-www-form-urlencoded",
    "multipart/form-data",
})


def request_from_environ(
    environ: Mapping[str, Any],
    body: Optional[Stream] = None,
    cookie_params: Optional[Mapping[str, Any]] = None,
    uploaded_files: Optional[Mapping[str, Any]] = None,
    parsed_body: Any = None,
) -> Request:
    """
    Create a Request from a server environment snapshot.

    Args:
        environ: Mapping with REQUEST_METHOD, REQUEST_URI, HTTP_* keys, etc.
        body: Optional body stream; an empty in-memory stream by default
        cookie_params: Optional cookie table produced from the Cookie header
        uploaded_files: Optional field name to uploaded file mapping
        parsed_body: Optional form table already decoded by the front end.
            It becomes the parsed body of a POST request sent as a form;
            any other request parses its own body on demand.

    Returns:
        New Request instance
    """
    environ = resolve_proxy_scheme(environ)

    method = environ.get("REQUEST_METHOD") or ""
    uri = Uri.from_environ(environ)
    headers = headers_from_environ(environ)

    logger.debug(f"Request from environment: {method} {uri}")
    request = Request.create(
        method,
        uri,
        headers=headers,
        server_params=environ,
        cookie_params=cookie_params,
        body=body,
        uploaded_files=uploaded_files,
    )

    if (
        parsed_body is not None
        and request.method == "POST"
        and request.get_media_type() in FORM_MEDIA_TYPES
    ):
        request = request.with_parsed_body(parsed_body)
    return request
