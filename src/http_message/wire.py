"""
HTTP/1.1 wire form of http_message values.

This module converts Request and Response values into h11 events and
serializes them to bytes with an h11 connection. It performs no I/O;
a transport layer writes the result wherever it needs to.
"""

import logging
from typing import List, Tuple, Union

import h11

from .exceptions import ProtocolError
from .message import HTTP_1_0, HTTP_1_1, Message
from .request import Request
from .response import Response

logger = logging.getLogger(__name__)


Headers = List[Tuple[str, str]]

SERIALIZABLE_VERSIONS = (HTTP_1_0, HTTP_1_1)


def _check_version(message: Message) -> str:
    version = message.protocol_version
    if version not in SERIALIZABLE_VERSIONS:
        raise ProtocolError(f"HTTP/{version} messages cannot be serialized as HTTP/1.x")
    return version


def _header_pairs(message: Message) -> Headers:
    """Flatten the header table into (name, value) pairs."""
    return [
        (name, value)
        for name, values in message.headers.items()
        for value in values
    ]


def _framed_headers(message: Message, body: bytes, always: bool = False) -> Headers:
    headers = _header_pairs(message)
    framed = "Content-Length" in message.headers or "Transfer-Encoding" in message.headers
    if (body or always) and not framed:
        headers.append(("Content-Length", str(len(body))))
    return headers


def to_h11_request(request: Request) -> h11.Request:
    """
    Convert a Request into an h11 Request event.

    Raises:
        ProtocolError: If the request cannot be expressed as HTTP/1.x
    """
    version = _check_version(request.message)
    try:
        return h11.Request(
            method=request.method,
            target=request.get_request_target(),
            headers=_header_pairs(request.message),
            http_version=version,
        )
    except h11.LocalProtocolError as e:
        raise ProtocolError(str(e), e) from e


def to_h11_response(
    response: Response,
) -> Union[h11.Response, h11.InformationalResponse]:
    """
    Convert a Response into an h11 event.

    1xx statuses map to InformationalResponse, everything else to Response.
    """
    version = _check_version(response.message)
    event_type = h11.InformationalResponse if response.status_code < 200 else h11.Response
    try:
        return event_type(
            status_code=response.status_code,
            reason=response.reason_phrase,
            headers=_header_pairs(response.message),
            http_version=version,
        )
    except h11.LocalProtocolError as e:
        raise ProtocolError(str(e), e) from e


def _send_all(connection: h11.Connection, events: List[h11.Event]) -> bytes:
    data = b""
    try:
        for event in events:
            chunk = connection.send(event)
            if chunk:
                data += chunk
    except h11.LocalProtocolError as e:
        raise ProtocolError(str(e), e) from e
    return data


def serialize_request(request: Request) -> bytes:
    """
    Serialize a Request, head and body, as HTTP/1.x bytes.

    A Content-Length header is added when the body is not empty and
    the request carries no framing header.
    """
    version = _check_version(request.message)
    body = bytes(request.body)

    try:
        head = h11.Request(
            method=request.method,
            target=request.get_request_target(),
            headers=_framed_headers(request.message, body),
            http_version=version,
        )
    except h11.LocalProtocolError as e:
        raise ProtocolError(str(e), e) from e

    events: List[h11.Event] = [head]
    if body:
        events.append(h11.Data(data=body))
    events.append(h11.EndOfMessage())

    data = _send_all(h11.Connection(our_role=h11.CLIENT), events)
    logger.debug(f"Serialized request {request.method} {head.target!r}: {len(data)} bytes")
    return data


def serialize_response(response: Response) -> bytes:
    """
    Serialize a final Response, head and body, as HTTP/1.x bytes.

    Informational (1xx) responses only exist ahead of a final response
    on a live connection and are rejected here.
    """
    if response.status_code < 200:
        raise ProtocolError(
            f"Informational response {response.status_code} cannot be serialized on its own"
        )

    version = _check_version(response.message)
    body = bytes(response.body)
    if response.status_code in (204, 304):
        body = b""

    try:
        head = h11.Response(
            status_code=response.status_code,
            reason=response.reason_phrase,
            headers=_framed_headers(
                response.message, body, always=response.status_code not in (204, 304)
            ),
            http_version=version,
        )
    except h11.LocalProtocolError as e:
        raise ProtocolError(str(e), e) from e

    events: List[h11.Event] = [head]
    if body:
        events.append(h11.Data(data=body))
    events.append(h11.EndOfMessage())

    data = _send_all(h11.Connection(our_role=h11.SERVER), events)
    logger.debug(f"Serialized response {response.status_code}: {len(data)} bytes")
    return data
