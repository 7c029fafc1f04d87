"""
Custom exceptions for http_message.

This module defines the exception hierarchy used throughout
the library for error handling and debugging.
"""

from typing import Optional


class HTTPMessageError(Exception):
    """Base exception for all http_message errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidArgumentError(HTTPMessageError, ValueError):
    """Raised when a caller passes a value of the wrong type or shape."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Invalid argument: {message}", cause)


class StreamError(HTTPMessageError):
    """Raised when there's an error with stream operations."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Stream error: {message}", cause)


class StreamDetachedError(StreamError):
    """Raised when operating on a stream whose handle was released."""

    def __init__(self, message: str = "Stream is detached") -> None:
        super().__init__(message)


class ParserError(HTTPMessageError, RuntimeError):
    """Raised when a body parser breaks its return value contract."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Parser error: {message}", cause)


class ProtocolError(HTTPMessageError):
    """Raised when a message cannot be expressed on the wire."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Protocol error: {message}", cause)
