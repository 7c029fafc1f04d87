"""
URI and stream example using http_message.

This example shows Uri normalization and copy-on-write updates, and
how Streams wrap in-memory buffers and gzip files.
"""

import logging
import os
import tempfile

from http_message import Uri, create_stream, open_stream

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def uri_demo():
    """Demonstrate Uri parsing and derivation."""
    uri = Uri.parse("HTTPS://Example.COM:443/docs/getting started?lang=en")
    logger.info(f"Normalized: {uri}")
    logger.info(f"Host: {uri.host}, port: {uri.port}, path: {uri.path}")

    staging = uri.with_host("staging.example.com").with_port(8443).with_fragment("install")
    logger.info(f"Derived: {staging}")
    logger.info(f"Original untouched: {uri}")


def stream_demo():
    """Demonstrate in-memory and gzip streams."""
    stream = create_stream(b"Hello")
    stream.seek(0, os.SEEK_END)
    stream.write(", World!")
    logger.info(f"Memory stream: {str(stream)!r} ({stream.get_size()} bytes)")

    with tempfile.TemporaryDirectory() as directory:
        path = os.path.join(directory, "payload.gz")
        with open_stream(path, "wb") as compressed:
            compressed.write(b"compressed payload")

        with open_stream(path) as compressed:
            logger.info(f"Gzip metadata: {compressed.get_metadata()}")
            logger.info(f"Gzip size: {compressed.get_size()}")
            logger.info(f"Gzip contents: {compressed.get_contents()!r}")


def main():
    """Run all examples."""
    logger.info("Starting URI and stream examples...")
    uri_demo()
    print()
    stream_demo()
    logger.info("All examples completed successfully!")


if __name__ == "__main__":
    main()
