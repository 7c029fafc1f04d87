"""
Pytest configuration for http_message tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

import gzip
import io
from typing import Dict, List

import pytest

from http_message.streams import Stream


class RecordingHandle(io.BytesIO):
    """BytesIO that records every read call."""

    def __init__(self, data: bytes = b"") -> None:
        super().__init__(data)
        self.read_calls: List[int] = []

    def read(self, size: int = -1) -> bytes:
        self.read_calls.append(size)
        return super().read(size)


@pytest.fixture
def recording_handle():
    """Create a BytesIO handle that records reads."""
    def _create_handle(data: bytes = b"") -> RecordingHandle:
        return RecordingHandle(data)
    return _create_handle


@pytest.fixture
def sample_headers() -> Dict[str, object]:
    """Sample headers for testing."""
    return {
        "Content-Type": "application/json",
        "Authorization": "Bearer token123",
        "User-Agent": "http_message/0.1.0",
        "Accept": ["text/html", "application/json"],
    }


@pytest.fixture
def sample_environ() -> Dict[str, str]:
    """Sample server environment for testing."""
    return {
        "REQUEST_METHOD": "post",
        "REQUEST_URI": "/api/v1/items%20list?page=2",
        "QUERY_STRING": "page=2",
        "SERVER_PROTOCOL": "HTTP/1.0",
        "SERVER_NAME": "fallback.local",
        "SERVER_PORT": "8080",
        "HTTP_HOST": "Example.COM:8443",
        "HTTP_USER_AGENT": "pytest",
        "HTTP_ACCEPT_LANGUAGE": "en",
        "HTTP_CONTENT_LENGTH": "999",
        "CONTENT_TYPE": "application/x-www-form-urlencoded",
        "CONTENT_LENGTH": "7",
        "PATH": "/usr/bin",
    }


@pytest.fixture
def file_stream(tmp_path):
    """Create a Stream over a real file opened for reading and writing."""
    path = tmp_path / "body.bin"
    path.write_bytes(b"Hello, World!")
    stream = Stream(open(path, "r+b"))
    yield stream
    stream.close()


@pytest.fixture
def gzip_path(tmp_path):
    """Create a gzip file with known content."""
    path = tmp_path / "body.gz"
    with gzip.open(path, "wb") as f:
        f.write(b"compressed content")
    return path
