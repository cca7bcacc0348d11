"""Lazy zlib inflation behind the random-access source contract."""

from __future__ import annotations

import enum
import threading
import zlib

from .errors import (
    CorruptDataError,
    InvalidOffsetError,
    SourceClosedError,
    TruncatedStreamError,
)
from .source import ByteSource

INFLATE_WINDOW = 256
INFLATE_CHUNK = 4096


class InflateState(enum.Enum):
    WINDOW = "window"
    FULL = "full"


class LazyInflateSource:
    """Random-access view of the inflated form of a zlib stream.

    Construction inflates only the first ``min(length, window)`` bytes. The
    first read that reaches past that window inflates everything that is left
    in one pass; after that every read is served from memory. Array metadata
    (flags, dimensions, name) sits at the front of a compressed matrix, so a
    metadata-only pass never pays for the bulk payload.

    ``length`` is the known inflated size. All state is guarded by one lock.
    """

    def __init__(
        self,
        compressed: ByteSource,
        length: int,
        *,
        window: int = INFLATE_WINDOW,
        chunk_size: int = INFLATE_CHUNK,
    ) -> None:
        if length < 0:
            raise InvalidOffsetError(f"negative inflated length {length}")
        if window <= 0 or chunk_size <= 0:
            raise ValueError("window and chunk_size must be positive")
        self._lock = threading.Lock()
        self._compressed = compressed
        self._consumed = 0
        self._chunk_size = chunk_size
        self._length = length
        self._decompressor = zlib.decompressobj()
        self._closed = False
        self.inflate_calls = 0

        with self._lock:
            initial = min(length, window)
            self._buffer = self._inflate(initial)
            if initial == length:
                self._state = InflateState.FULL
            else:
                self._state = InflateState.WINDOW

    @property
    def state(self) -> InflateState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self._length

    def read_at(self, offset: int, size: int) -> bytes:
        with self._lock:
            if self._closed:
                raise SourceClosedError("read from a closed inflate source")
            if offset < 0:
                raise InvalidOffsetError(f"negative offset {offset}")
            if size <= 0 or offset >= self._length:
                return b""
            end = min(offset + size, self._length)
            if self._state is InflateState.WINDOW and end > len(self._buffer):
                self._expand()
            return bytes(self._buffer[offset:end])

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._compressed = None
            self._decompressor = None
            self._buffer = b""

    def __enter__(self) -> "LazyInflateSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _expand(self) -> None:
        remainder = self._inflate(self._length - len(self._buffer))
        self._buffer = self._buffer + remainder
        self._state = InflateState.FULL

    def _inflate(self, count: int) -> bytes:
        """Produce exactly ``count`` more inflated bytes."""

        assert self._decompressor is not None and self._compressed is not None
        self.inflate_calls += 1
        out, self._consumed = _pull(
            self._decompressor,
            self._compressed,
            self._consumed,
            count,
            self._chunk_size,
        )
        return out


def inflate_prefix(
    compressed: ByteSource, count: int, *, chunk_size: int = INFLATE_CHUNK
) -> bytes:
    """Inflate just the first ``count`` bytes of a zlib stream."""

    out, _ = _pull(zlib.decompressobj(), compressed, 0, count, chunk_size)
    return out


def _pull(
    decompressor: "zlib._Decompress",
    compressed: ByteSource,
    consumed: int,
    count: int,
    chunk_size: int,
) -> tuple[bytes, int]:
    """Inflate exactly ``count`` bytes, reading input from offset ``consumed``.

    Returns the output and the new input offset. Input already handed to zlib
    but not yet used stays in ``unconsumed_tail`` for the next call.
    """

    out = bytearray()
    while len(out) < count and not decompressor.eof:
        chunk = decompressor.unconsumed_tail
        if not chunk:
            chunk = compressed.read_at(consumed, chunk_size)
            consumed += len(chunk)
        try:
            produced = decompressor.decompress(chunk, count - len(out))
        except zlib.error as exc:
            raise CorruptDataError(f"invalid zlib data: {exc}") from exc
        # input exhausted and nothing left buffered inside zlib
        if not chunk and not produced:
            break
        out += produced
    if len(out) < count:
        raise TruncatedStreamError(
            f"zlib stream ended after {len(out)} of {count} requested bytes"
        )
    return bytes(out), consumed
