"""
Server-side request example using http_message.

This example builds a Request from a WSGI environment, reads its
parsed body and query parameters, and answers with a serialized
Response.
"""

import json
import logging
from wsgiref.util import setup_testing_defaults

from http_message import (
    Response,
    create_stream,
    request_from_environ,
    serialize_response,
)

# Configure logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


def build_environ():
    """Create a WSGI environment for a JSON POST behind a TLS proxy."""
    environ = {
        "REQUEST_METHOD": "POST",
        "PATH_INFO": "/orders",
        "REQUEST_URI": "/orders?notify=1",
        "QUERY_STRING": "notify=1",
        "HTTP_HOST": "shop.example.com",
        "HTTP_X_FORWARDED_PROTO": "https",
        "CONTENT_TYPE": "application/vnd.shop+json; charset=utf-8",
    }
    setup_testing_defaults(environ)
    return environ


def handle_order():
    """Turn the environment into a Request and answer it."""
    body = create_stream(b'{"item": "widget", "quantity": 3}')
    request = request_from_environ(build_environ(), body=body)

    logger.info(f"Request: {request.method} {request.uri}")
    logger.info(f"Media type: {request.get_media_type()}")
    logger.info(f"Query params: {request.get_query_params()}")

    order = request.get_parsed_body()
    logger.info(f"Parsed body: {order}")

    payload = json.dumps({"accepted": order["quantity"]}).encode("utf-8")
    response = (
        Response.create(201)
        .with_header("Content-Type", "application/json")
        .with_header("Location", "/orders/1")
        .with_body(create_stream(payload))
    )

    data = serialize_response(response)
    logger.info(f"Serialized response ({len(data)} bytes):\n{data.decode('latin-1')}")


def main():
    """Run the example."""
    logger.info("Starting server-side request example...")
    handle_order()
    logger.info("Example completed successfully!")


if __name__ == "__main__":
    main()
