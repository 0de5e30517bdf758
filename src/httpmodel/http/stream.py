"""
=============================================================================
STREAM: MESSAGE BODY ABSTRACTION
=============================================================================

A Stream wraps a binary file object and tracks what it can do with it.
Every message body is a Stream, whether it lives in memory or on disk.

=============================================================================
STREAM SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        STREAM CONSTRUCTION                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Stream("hello")          ──►  io.BytesIO(b"hello")  r/w/seekable │
    │   Stream(b"\\x00\\x01")      ──►  io.BytesIO(...)        r/w/seekable │
    │   Stream(open(p, "rb"))    ──►  file object            mode-derived │
    │   Stream(sys.stdin.buffer) ──►  pipe                   not seekable │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Capabilities are decided ONCE, when the stream is built:

    seekable = resource.seekable() and resource.tell() works
    readable = resource.mode in READ_MODES   (or resource.readable())
    writable = resource.mode in WRITE_MODES  (or resource.writable())

=============================================================================
LIFECYCLE
=============================================================================

    open ──── close() ────► closed (resource closed, stream detached)
      │                        ▲
      └──── detach() ──────────┘ (resource handed back, still open)

After close() or detach() the stream reports size None, eof() True, and
every I/O operation raises StreamError.

Streams are NOT thread-safe. The cursor is shared state; callers that hand
a stream to several threads must serialize access themselves.

=============================================================================
"""

import io
import os
from typing import Any, BinaryIO, Dict, Optional, Union

from ..exceptions import HttpModelError, StreamError, ValidationError


# fopen()-style and Python-normalized mode strings, by capability.
READ_MODES = frozenset({
    "r", "r+", "w+", "a+", "x+", "c+",
    "rb", "rb+", "r+b", "wb+", "w+b", "ab+", "a+b", "xb+", "x+b", "c+b",
    "rt", "r+t", "w+t", "a+t", "x+t", "c+t",
})

WRITE_MODES = frozenset({
    "w", "w+", "rw", "r+", "a", "a+", "x", "x+", "c", "c+",
    "wb", "wb+", "w+b", "rb+", "r+b", "ab", "ab+", "a+b",
    "xb", "xb+", "x+b", "cb", "c+b",
    "wt", "w+t", "r+t", "a+t", "x+t", "c+t",
})

StreamSource = Union[str, bytes, bytearray, BinaryIO]


class Stream:
    """
    Byte stream over an in-memory buffer or an open binary file object.

    Usage:
        body = Stream("hello")
        body.seek(0, io.SEEK_END)
        body.write(" world")
        str(body)                       # "hello world"

        with Stream(open("upload.bin", "rb")) as s:
            chunk = s.read(8192)
    """

    def __init__(self, body: StreamSource = b""):
        self._resource: Optional[BinaryIO] = None
        self._size: Optional[int] = None
        self._seekable = False
        self._readable = False
        self._writable = False
        self._short_read = False

        if isinstance(body, str):
            body = body.encode("utf-8")
        if isinstance(body, (bytes, bytearray)):
            self._resource = io.BytesIO(body)
            self._seekable = self._readable = self._writable = True
            return

        if not hasattr(body, "read") and not hasattr(body, "write"):
            raise ValidationError(
                f"Stream body must be str, bytes or a file object, "
                f"{type(body).__name__} given"
            )
        if isinstance(body, io.TextIOBase):
            raise ValidationError("Stream requires a binary file object, text stream given")
        if getattr(body, "closed", False):
            raise ValidationError("Cannot wrap a closed file object")

        self._resource = body
        self._seekable = self._probe_seekable(body)

        mode = getattr(body, "mode", None)
        if isinstance(mode, str) and (mode in READ_MODES or mode in WRITE_MODES):
            self._readable = mode in READ_MODES
            self._writable = mode in WRITE_MODES
        else:
            self._readable = self._probe(body, "readable")
            self._writable = self._probe(body, "writable")

    @staticmethod
    def _probe_seekable(resource: Any) -> bool:
        try:
            if not resource.seekable():
                return False
            resource.tell()
        except (AttributeError, OSError, ValueError):
            return False
        return True

    @staticmethod
    def _probe(resource: Any, capability: str) -> bool:
        check = getattr(resource, capability, None)
        if check is None:
            return False
        try:
            return bool(check())
        except (OSError, ValueError):
            return False

    # =========================================================================
    # CAPABILITIES
    # =========================================================================

    def is_seekable(self) -> bool:
        return self._seekable

    def is_readable(self) -> bool:
        return self._readable

    def is_writable(self) -> bool:
        return self._writable

    def _require_resource(self) -> BinaryIO:
        if self._resource is None:
            raise StreamError("Stream is detached")
        return self._resource

    # =========================================================================
    # CURSOR
    # =========================================================================

    def tell(self) -> int:
        """Current cursor position. StreamError when unavailable."""
        resource = self._require_resource()
        try:
            return resource.tell()
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to determine stream position: {e}") from e

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> None:
        """
        Move the cursor.

        The target position (after applying ``whence``) must lie within
        ``0..size``; seeking past the end is refused rather than silently
        creating a gap.
        """
        resource = self._require_resource()
        if not self._seekable:
            raise StreamError("Stream is not seekable")

        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self.tell() + offset
        elif whence == io.SEEK_END:
            size = self.get_size()
            if size is None:
                raise StreamError("Unable to seek from end: stream size unknown")
            target = size + offset
        else:
            raise StreamError(f"Invalid whence value {whence!r}")

        size = self.get_size()
        if target < 0 or (size is not None and target > size):
            raise StreamError(
                f"Unable to seek to stream position {offset} with whence {whence}"
            )

        try:
            resource.seek(target, io.SEEK_SET)
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to seek to position {target}: {e}") from e
        self._short_read = False

    def rewind(self) -> None:
        self.seek(0)

    def eof(self) -> bool:
        """True when detached or the cursor sits at or after the end."""
        if self._resource is None:
            return True
        if self._short_read:
            return True
        if not self._seekable:
            return False
        size = self.get_size()
        if size is None:
            return False
        return self.tell() >= size

    # =========================================================================
    # I/O
    # =========================================================================

    def read(self, length: int = -1) -> bytes:
        """
        Read up to ``length`` bytes (everything remaining when negative).

        Returns ``b""`` at end of stream.
        """
        resource = self._require_resource()
        if not self._readable:
            raise StreamError("Cannot read from non-readable stream")
        try:
            data = resource.read(length)
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to read from stream: {e}") from e
        if data is None:
            data = b""
        self._short_read = length < 0 or len(data) < length
        return data

    def write(self, data: Union[str, bytes]) -> int:
        """Write ``data`` at the cursor and return the number of bytes written."""
        resource = self._require_resource()
        if not self._writable:
            raise StreamError("Cannot write to a non-writable stream")
        if isinstance(data, str):
            data = data.encode("utf-8")

        # Size changes with every write; measure again on the next request.
        self._size = None

        try:
            written = resource.write(data)
        except (OSError, ValueError, TypeError) as e:
            raise StreamError(f"Unable to write to stream: {e}") from e
        return len(data) if written is None else written

    def get_contents(self) -> bytes:
        """Read everything from the cursor to the end."""
        resource = self._require_resource()
        if not self._readable:
            raise StreamError("Unable to read stream contents: stream is not readable")
        try:
            data = resource.read()
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to read stream contents: {e}") from e
        self._short_read = True
        return data or b""

    # =========================================================================
    # SIZE & METADATA
    # =========================================================================

    def get_size(self) -> Optional[int]:
        """
        Total size in bytes, or None when it cannot be known.

        Measured via ``os.fstat`` for real files and by seeking to the end
        for in-memory buffers; the result is cached until the next write.
        """
        if self._resource is None:
            return None
        if self._size is not None:
            return self._size

        resource = self._resource
        if self._writable:
            try:
                resource.flush()
            except (AttributeError, OSError, ValueError):
                pass

        try:
            self._size = os.fstat(resource.fileno()).st_size
            return self._size
        except (AttributeError, OSError, ValueError):
            pass

        if not self._seekable:
            return None
        try:
            position = resource.tell()
            self._size = resource.seek(0, io.SEEK_END)
            resource.seek(position, io.SEEK_SET)
        except (OSError, ValueError):
            return None
        return self._size

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """
        Describe the underlying resource.

        Returns a dict (``{}`` when detached), or the single value for
        ``key`` (None when detached or unknown).
        """
        if self._resource is None:
            return None if key is not None else {}

        resource = self._resource
        in_memory = isinstance(resource, io.BytesIO)
        name = getattr(resource, "name", None)
        metadata: Dict[str, Any] = {
            "mode": "w+b" if in_memory else getattr(resource, "mode", ""),
            "seekable": self._seekable,
            "uri": "memory" if in_memory else (name if isinstance(name, str) else ""),
            "stream_type": type(resource).__name__,
            "wrapper_type": "memory" if in_memory else "file",
            "closed": bool(getattr(resource, "closed", False)),
        }
        if key is None:
            return metadata
        return metadata.get(key)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def detach(self) -> Optional[BinaryIO]:
        """Hand back the raw resource, leaving this stream unusable."""
        resource = self._resource
        self._resource = None
        self._size = 0
        self._seekable = self._readable = self._writable = False
        self._short_read = False
        return resource

    def close(self) -> None:
        resource = self.detach()
        if resource is not None:
            resource.close()

    @property
    def closed(self) -> bool:
        return self._resource is None

    def __enter__(self) -> "Stream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __bytes__(self) -> bytes:
        """Whole contents from the start; ``b""`` on any failure."""
        try:
            if self._seekable:
                self.seek(0)
            return self.get_contents()
        except (HttpModelError, OSError, ValueError):
            return b""

    def __str__(self) -> str:
        return bytes(self).decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        if self._resource is None:
            return "<Stream detached>"
        return f"<Stream {type(self._resource).__name__} size={self.get_size()}>"
