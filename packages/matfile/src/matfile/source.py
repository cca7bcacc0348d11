"""Random-access byte sources and bounded views over them."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from .errors import InvalidOffsetError, SourceClosedError


@runtime_checkable
class ByteSource(Protocol):
    """Offset-addressed read contract shared by files, buffers and views.

    ``read_at`` returns at most ``size`` bytes starting at ``offset``. A short
    result means the range ran past the end of the source; an empty result at
    ``offset >= len(source)`` is end-of-data, not an error.
    """

    def read_at(self, offset: int, size: int) -> bytes: ...

    def __len__(self) -> int: ...


class BytesSource:
    """In-memory source over ``bytes``, ``bytearray``, ``memoryview`` or ``mmap``."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._view = memoryview(data).cast("B")

    def __len__(self) -> int:
        return len(self._view)

    def read_at(self, offset: int, size: int) -> bytes:
        if offset < 0:
            raise InvalidOffsetError(f"negative offset {offset}")
        if size <= 0 or offset >= len(self._view):
            return b""
        return bytes(self._view[offset : offset + size])


class FileSource:
    """Source backed by an open binary file handle.

    Seek and read happen under one lock so a shared handle can serve several
    views. The handle is closed by :meth:`close` only when the source opened it.
    """

    def __init__(self, handle: BinaryIO, *, owns_handle: bool = False) -> None:
        self._handle = handle
        self._owns_handle = owns_handle
        self._lock = threading.Lock()
        self._closed = False
        self._size = os.fstat(handle.fileno()).st_size

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> "FileSource":
        return cls(Path(path).open("rb"), owns_handle=True)

    def __len__(self) -> int:
        return self._size

    def read_at(self, offset: int, size: int) -> bytes:
        with self._lock:
            if self._closed:
                raise SourceClosedError("read from a closed file source")
            if offset < 0:
                raise InvalidOffsetError(f"negative offset {offset}")
            if size <= 0 or offset >= self._size:
                return b""
            self._handle.seek(offset)
            return self._handle.read(min(size, self._size - offset))

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._owns_handle:
                self._handle.close()

    def __enter__(self) -> "FileSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SectionView:
    """Zero-based, bounded window over another source.

    No bytes are copied until :meth:`read_at` is called. Views of views are
    flattened onto the underlying source so lookups never chain.
    """

    __slots__ = ("_source", "_start", "_length")

    def __init__(self, source: ByteSource, start: int, length: int) -> None:
        if start < 0 or length < 0:
            raise InvalidOffsetError(
                f"invalid section start={start} length={length}"
            )
        if start + length > len(source):
            raise InvalidOffsetError(
                f"section [{start}, {start + length}) exceeds source of "
                f"{len(source)} bytes"
            )
        if isinstance(source, SectionView):
            start += source._start
            source = source._source
        self._source = source
        self._start = start
        self._length = length

    @property
    def source(self) -> ByteSource:
        return self._source

    @property
    def start(self) -> int:
        """Offset of the view inside the underlying source."""

        return self._start

    def __len__(self) -> int:
        return self._length

    def read_at(self, offset: int, size: int) -> bytes:
        if offset < 0:
            raise InvalidOffsetError(f"negative offset {offset}")
        if size <= 0 or offset >= self._length:
            return b""
        size = min(size, self._length - offset)
        return self._source.read_at(self._start + offset, size)

    def view(self, offset: int, length: int) -> "SectionView":
        """Return a sub-view; ``offset`` is relative to this view."""

        if offset < 0 or length < 0 or offset + length > self._length:
            raise InvalidOffsetError(
                f"sub-view [{offset}, {offset + length}) exceeds view of "
                f"{self._length} bytes"
            )
        return SectionView(self._source, self._start + offset, length)

    def tobytes(self) -> bytes:
        """Materialise the whole view."""

        return self.read_at(0, self._length)

    def __repr__(self) -> str:
        return f"SectionView(start={self._start}, length={self._length})"
