"""
Stream abstraction for http_message.

This module wraps one open, byte-oriented file-like handle behind a
capability-gated interface. Readable/writable flags are derived once
from the handle's open mode and every delegated operation goes through
a backend chosen at construction: plain file objects or gzip files.
"""

import gzip
import io
import logging
import os
from abc import ABC, abstractmethod
from typing import (
    Any,
    BinaryIO,
    Dict,
    IO,
    Optional,
    Union,
)

from .exceptions import (
    HTTPMessageError,
    InvalidArgumentError,
    StreamDetachedError,
    StreamError,
)

logger = logging.getLogger(__name__)


# Open modes that allow reading, as reported by file objects' ``mode``
READABLE_MODES = frozenset({
    "r", "rb", "rt",
    "r+", "r+b", "rb+", "r+t", "rt+",
    "w+", "w+b", "wb+", "w+t", "wt+",
    "x+", "x+b", "xb+", "x+t", "xt+",
    "a+", "a+b", "ab+", "a+t", "at+",
})

# Open modes that allow writing
WRITABLE_MODES = frozenset({
    "w", "wb", "wt",
    "w+", "w+b", "wb+", "w+t", "wt+",
    "r+", "r+b", "rb+", "r+t", "rt+",
    "x", "xb", "xt",
    "x+", "x+b", "xb+", "x+t", "xt+",
    "a", "ab", "at",
    "a+", "a+b", "ab+", "a+t", "at+",
})


def _has_capability(handle: Any, capability: str) -> bool:
    """Call a capability method such as ``readable()`` if the handle has one."""
    method = getattr(handle, capability, None)
    if not callable(method):
        return False
    try:
        return bool(method())
    except (OSError, ValueError):
        return False


class StreamBackend(ABC):
    """
    Base interface for stream backends.

    A backend performs the raw operations on a handle. It does not
    check capability flags; the owning Stream does that.
    """

    stream_type = ""

    def __init__(self, handle: IO[Any]) -> None:
        self._handle = handle

    @property
    def handle(self) -> IO[Any]:
        """Get the wrapped handle."""
        return self._handle

    @property
    @abstractmethod
    def mode(self) -> Optional[str]:
        """Open mode of the handle, in ``open()`` notation."""
        pass

    @abstractmethod
    def read(self, length: int) -> bytes:
        """Read up to length bytes, or everything left when length is negative."""
        pass

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write data and return the number of bytes written."""
        pass

    @abstractmethod
    def seek(self, offset: int, whence: int) -> int:
        """Move the position and return the new one."""
        pass

    @abstractmethod
    def tell(self) -> int:
        """Get the current position."""
        pass

    @abstractmethod
    def eof(self) -> bool:
        """Check whether no readable data is left."""
        pass

    @abstractmethod
    def stat(self) -> Optional[Dict[str, Any]]:
        """Get stat information, or None when the backend has none."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the handle."""
        pass

    def seekable(self) -> bool:
        return _has_capability(self._handle, "seekable")

    def metadata(self) -> Dict[str, Any]:
        """Get the metadata reported by the handle."""
        name = getattr(self._handle, "name", None)
        if isinstance(name, os.PathLike):
            name = os.fspath(name)
        return {
            "stream_type": self.stream_type,
            "mode": self.mode,
            "seekable": self.seekable(),
            "uri": name if isinstance(name, str) and name else None,
            "closed": bool(getattr(self._handle, "closed", False)),
        }


class PlainBackend(StreamBackend):
    """Backend for regular file objects and in-memory buffers."""

    def __init__(self, handle: IO[Any]) -> None:
        super().__init__(handle)
        self._text = isinstance(handle, io.TextIOBase)
        self._reached_eof = False
        # Encoded bytes of characters already taken from a text handle
        self._pending = b""
        self.stream_type = "MEMORY" if isinstance(handle, io.BytesIO) else "STDIO"

    @property
    def mode(self) -> Optional[str]:
        mode = getattr(self._handle, "mode", None)
        if isinstance(mode, str):
            return mode

        # In-memory buffers carry no mode string
        readable = _has_capability(self._handle, "readable")
        writable = _has_capability(self._handle, "writable")
        if readable and writable:
            return "r+b"
        if readable:
            return "rb"
        if writable:
            return "wb"
        return None

    def read(self, length: int) -> bytes:
        if self._text:
            return self._read_text(length)

        data = self._handle.read(length)
        if data is None:
            # Non-blocking handle with nothing available
            return b""
        if length < 0 or len(data) < length:
            self._reached_eof = True
        return data

    def _read_text(self, length: int) -> bytes:
        """Read from a text handle, returning at most length UTF-8 bytes."""
        if length < 0:
            data = self._pending + self._handle.read().encode("utf-8")
            self._pending = b""
            self._reached_eof = True
            return data

        data = self._pending
        while len(data) < length:
            chunk = self._handle.read(length - len(data))
            if not chunk:
                self._reached_eof = True
                break
            data += chunk.encode("utf-8")
        data, self._pending = data[:length], data[length:]
        return data

    def write(self, data: bytes) -> int:
        if self._text:
            self._handle.write(data.decode("utf-8"))
            return len(data)
        written = self._handle.write(data)
        return len(data) if written is None else written

    def seek(self, offset: int, whence: int) -> int:
        self._reached_eof = False
        self._pending = b""
        return self._handle.seek(offset, whence)

    def tell(self) -> int:
        return self._handle.tell()

    def eof(self) -> bool:
        if self._pending:
            return False
        if self._reached_eof:
            return True
        if not self.seekable():
            return False
        position = self._handle.tell()
        end = self._handle.seek(0, os.SEEK_END)
        self._handle.seek(position, os.SEEK_SET)
        return position >= end

    def stat(self) -> Optional[Dict[str, Any]]:
        # Buffered writes are not visible to fstat until flushed
        if _has_capability(self._handle, "writable"):
            self._handle.flush()

        if isinstance(self._handle, io.BytesIO):
            with self._handle.getbuffer() as view:
                return {"size": view.nbytes}

        try:
            fileno = self._handle.fileno()
        except (OSError, AttributeError):
            return None
        result = os.fstat(fileno)
        return {
            "size": result.st_size,
            "mode": result.st_mode,
            "mtime": result.st_mtime,
        }

    def close(self) -> None:
        self._handle.close()


class GzipBackend(StreamBackend):
    """
    Backend for ``gzip.GzipFile`` handles.

    Compressed streams have no stat-based size and only support
    forward seeks when writing.
    """

    stream_type = "ZLIB"

    @property
    def mode(self) -> Optional[str]:
        return "rb" if self._handle.mode == gzip.READ else "wb"

    def read(self, length: int) -> bytes:
        return self._handle.read(length)

    def write(self, data: bytes) -> int:
        return self._handle.write(data)

    def seek(self, offset: int, whence: int) -> int:
        return self._handle.seek(offset, whence)

    def tell(self) -> int:
        return self._handle.tell()

    def eof(self) -> bool:
        # A write-only gzip file has nothing to read
        if self._handle.mode != gzip.READ:
            return True
        return self._handle.peek(1) == b""

    def stat(self) -> Optional[Dict[str, Any]]:
        return None

    def close(self) -> None:
        self._handle.close()


def select_backend(handle: IO[Any]) -> StreamBackend:
    """Choose the backend matching a handle's type."""
    if isinstance(handle, gzip.GzipFile):
        return GzipBackend(handle)
    return PlainBackend(handle)


class Stream:
    """
    Byte stream over one exclusively owned file-like handle.

    The stream closes its handle when it is closed, used as a context
    manager, or garbage collected while still bound. ``detach()``
    releases the handle without closing it.
    """

    def __init__(
        self,
        handle: IO[Any],
        size: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize Stream.

        Args:
            handle: An open file-like object
            size: Known size of the stream in bytes, if any
            metadata: Custom metadata overriding what the handle reports

        Raises:
            InvalidArgumentError: If handle is not an open file-like object
                or size is not an integer
        """
        self._backend: Optional[StreamBackend] = None

        if handle is None or not (hasattr(handle, "read") or hasattr(handle, "write")):
            raise InvalidArgumentError("Stream must be an open file-like object")
        if getattr(handle, "closed", False):
            raise InvalidArgumentError("Stream handle is already closed")
        if size is not None and (not isinstance(size, int) or isinstance(size, bool)):
            raise InvalidArgumentError(
                f"Option size must be an integer, {type(size).__name__} given"
            )

        backend = select_backend(handle)
        mode = backend.mode

        self._size = size
        self._custom_metadata: Dict[str, Any] = dict(metadata or {})
        self._readable = mode in READABLE_MODES
        self._writable = mode in WRITABLE_MODES
        self._seekable = backend.seekable()
        self._backend = backend
        self._uri = self.get_metadata("uri")

        logger.debug(
            f"Stream bound: type={backend.stream_type} mode={mode} "
            f"readable={self._readable} writable={self._writable} seekable={self._seekable}"
        )

    def _require_backend(self) -> StreamBackend:
        if self._backend is None:
            raise StreamDetachedError()
        return self._backend

    def is_readable(self) -> bool:
        return self._readable

    def is_writable(self) -> bool:
        return self._writable

    def is_seekable(self) -> bool:
        return self._seekable

    @property
    def uri(self) -> Optional[str]:
        """Get the location of the underlying file, if known."""
        return self._uri

    @property
    def detached(self) -> bool:
        return self._backend is None

    def read(self, length: int) -> bytes:
        """
        Read up to length bytes from the stream.

        Args:
            length: Maximum number of bytes to read

        Returns:
            The bytes read; empty at end of stream

        Raises:
            StreamDetachedError: If the stream is detached
            InvalidArgumentError: If length is not a non-negative integer
            StreamError: If the stream is not readable or the read fails
        """
        backend = self._require_backend()
        if not isinstance(length, int) or isinstance(length, bool):
            raise InvalidArgumentError(
                f"Length must be an integer, {type(length).__name__} given"
            )
        if length < 0:
            raise InvalidArgumentError("Length parameter cannot be negative")
        if length == 0:
            return b""
        if not self._readable:
            raise StreamError("Cannot read from non-readable stream")

        try:
            return backend.read(length)
        except (OSError, ValueError) as e:
            raise StreamError("Unable to read from stream", e) from e

    def write(self, data: Union[bytes, bytearray, memoryview, str]) -> int:
        """
        Write data to the stream.

        Strings are encoded as UTF-8. The cached size is dropped since
        it cannot be known after writing.

        Returns:
            Number of bytes written
        """
        backend = self._require_backend()
        if isinstance(data, str):
            data = data.encode("utf-8")
        elif isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        elif not isinstance(data, bytes):
            raise InvalidArgumentError(
                f"Data must be bytes or str, {type(data).__name__} given"
            )
        if not self._writable:
            raise StreamError("Cannot write to a non-writable stream")

        self._size = None
        try:
            return backend.write(data)
        except (OSError, ValueError) as e:
            raise StreamError("Unable to write to stream", e) from e

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> None:
        """
        Move the stream position.

        Raises:
            StreamDetachedError: If the stream is detached
            InvalidArgumentError: If offset is not an integer
            StreamError: If the stream is not seekable or the seek fails
        """
        backend = self._require_backend()
        if not isinstance(offset, int) or isinstance(offset, bool):
            raise InvalidArgumentError(
                f"Offset must be an integer, {type(offset).__name__} given"
            )
        if not self._seekable:
            raise StreamError("Stream is not seekable")

        try:
            backend.seek(offset, whence)
        except (OSError, ValueError) as e:
            raise StreamError(
                f"Unable to seek to stream position {offset} with whence {whence!r}", e
            ) from e

    def rewind(self) -> None:
        self.seek(0)

    def tell(self) -> int:
        backend = self._require_backend()
        try:
            return backend.tell()
        except (OSError, ValueError) as e:
            raise StreamError("Unable to determine stream position", e) from e

    def eof(self) -> bool:
        backend = self._require_backend()
        try:
            return backend.eof()
        except (OSError, ValueError) as e:
            raise StreamError("Unable to determine end of stream", e) from e

    def get_contents(self) -> bytes:
        """Read everything from the current position to the end."""
        backend = self._require_backend()
        if not self._readable:
            raise StreamError("Cannot read from non-readable stream")
        try:
            return backend.read(-1)
        except (OSError, ValueError) as e:
            raise StreamError("Unable to read stream contents", e) from e

    def get_size(self) -> Optional[int]:
        """
        Get the size of the stream in bytes, if known.

        The size is cached until the next write. Gzip streams report
        no size.
        """
        if self._size is not None:
            return self._size
        if self._backend is None:
            return None

        try:
            stats = self._backend.stat()
        except (OSError, ValueError) as e:
            logger.debug(f"Unable to stat stream: {e}")
            return None

        if stats is not None and "size" in stats:
            self._size = stats["size"]
        return self._size

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """
        Get stream metadata.

        Custom metadata given at construction overrides what the handle
        reports.

        Args:
            key: A single metadata key, or None for everything

        Returns:
            The whole metadata dict when key is None, else the value or None
        """
        if self._backend is None:
            return None if key else {}

        if not key:
            metadata = self._backend.metadata()
            metadata.update(self._custom_metadata)
            return metadata
        if key in self._custom_metadata:
            return self._custom_metadata[key]
        return self._backend.metadata().get(key)

    def detach(self) -> Optional[IO[Any]]:
        """
        Release the handle without closing it.

        Returns:
            The handle, or None if the stream was already detached
        """
        if self._backend is None:
            return None

        handle = self._backend.handle
        self._backend = None
        self._size = None
        self._uri = None
        self._readable = False
        self._writable = False
        self._seekable = False
        logger.debug("Stream detached")
        return handle

    def close(self) -> None:
        """Close the handle and detach from it."""
        if self._backend is None:
            return

        backend = self._backend
        try:
            if not getattr(backend.handle, "closed", False):
                backend.close()
        except OSError as e:
            raise StreamError("Unable to close stream", e) from e
        finally:
            self.detach()
        logger.debug("Stream closed")

    def __bytes__(self) -> bytes:
        try:
            self.seek(0)
            return self.get_contents()
        except HTTPMessageError as e:
            logger.debug(f"Unable to serialize stream contents: {e}")
            return b""

    def __str__(self) -> str:
        return bytes(self).decode("utf-8", errors="replace")

    def __enter__(self) -> "Stream":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_backend", None) is not None:
            try:
                self.close()
            except StreamError as e:
                logger.warning(f"Error closing stream: {e}")

    def __repr__(self) -> str:
        if self._backend is None:
            return "<Stream detached>"
        return f"<Stream type={self._backend.stream_type} mode={self._backend.mode}>"


# Factory functions for creating streams
def create_stream(data: Union[bytes, str] = b"") -> Stream:
    """
    Factory function to create an in-memory Stream.

    Args:
        data: Initial content; strings are encoded as UTF-8

    Returns:
        Readable, writable and seekable Stream positioned at the start
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return Stream(io.BytesIO(data))


def open_stream(path: Union[str, "os.PathLike[str]"], mode: str = "rb") -> Stream:
    """
    Factory function to open a file as a Stream.

    Paths ending in ``.gz`` are opened through gzip.

    Args:
        path: File system path
        mode: Open mode, as for ``open()``

    Returns:
        Stream owning the opened file

    Raises:
        StreamError: If the file cannot be opened
    """
    try:
        if os.fspath(path).endswith(".gz"):
            handle: BinaryIO = gzip.open(path, mode)  # type: ignore[assignment]
        else:
            handle = open(path, mode)
    except OSError as e:
        raise StreamError(f"Unable to open {path!r}", e) from e
    return Stream(handle)
