"""Top-level element dispatch and the sequential variable reader."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterator

from .arrays import ArrayClass, Variable, VariableInfo, decode_matrix, read_matrix_info
from .config import ReaderConfig
from .errors import (
    MatFileError,
    SourceClosedError,
    TruncatedStreamError,
    UnsupportedNestingError,
)
from .header import HEADER_SIZE, Header, parse_header
from .inflate import LazyInflateSource, inflate_prefix
from .primitive import decode_primitive
from .source import ByteSource, BytesSource, FileSource, SectionView
from .stream import DataElement, ElementStream
from .tags import TAG_SIZE, ByteOrder, DataType, decode_tag


def inflated_length(element: DataElement, *, chunk_size: int) -> int:
    """Size of the element stream held inside a compressed element.

    The outer tag counts compressed bytes, so the inflated size is taken from
    the tag of the single element the stream wraps.
    """

    head = inflate_prefix(element.payload, TAG_SIZE, chunk_size=chunk_size)
    inner = decode_tag(head, element.byte_order)
    if inner.short_format:
        return TAG_SIZE
    return TAG_SIZE + inner.length


def open_compressed(
    element: DataElement, config: ReaderConfig | None = None
) -> LazyInflateSource:
    """Open a lazily inflated view of a compressed element's payload."""

    config = config or ReaderConfig()
    return LazyInflateSource(
        element.payload,
        inflated_length(element, chunk_size=config.inflate_chunk),
        window=config.inflate_window,
        chunk_size=config.inflate_chunk,
    )


def inner_element(inflated: ByteSource, byte_order: ByteOrder) -> DataElement:
    """The one element a compressed element wraps."""

    element = ElementStream(inflated, byte_order).next_element()
    if element is None:
        raise TruncatedStreamError("compressed element holds no data element")
    if element.data_type is DataType.COMPRESSED:
        raise UnsupportedNestingError(
            "compressed element directly wraps another compressed element"
        )
    return element


def decode_element(
    element: DataElement, config: ReaderConfig | None = None
) -> Variable:
    """Decode any top-level element into a :class:`Variable`."""

    config = config or ReaderConfig()
    if element.data_type is DataType.COMPRESSED:
        with open_compressed(element, config) as inflated:
            return decode_element(inner_element(inflated, element.byte_order), config)
    if element.data_type is DataType.MATRIX:
        return decode_matrix(element, cast_numeric=config.cast_numeric)
    return _primitive_variable(element)


def element_info(element: DataElement) -> VariableInfo:
    """Metadata of a non-compressed element without decoding its payload.

    Text elements are the exception: they are decoded so the reported length
    counts characters, as :func:`decode_element` does.
    """

    if element.data_type is DataType.MATRIX:
        return read_matrix_info(element)
    if element.data_type is DataType.COMPRESSED:
        raise UnsupportedNestingError("compressed elements must be opened first")
    if element.data_type.is_text:
        return _primitive_info(element, len(decode_primitive(element)))
    return _primitive_info(element, element.length // element.data_type.width)


def _primitive_info(element: DataElement, count: int) -> VariableInfo:
    return VariableInfo(
        name="",
        array_class=ArrayClass.for_data_type(element.data_type),
        dimensions=(1, count),
    )


def _primitive_variable(element: DataElement) -> Variable:
    values = decode_primitive(element)
    return Variable(info=_primitive_info(element, len(values)), real=values)


@dataclass(slots=True)
class _OpenCompressed:
    offset: int
    inflated: LazyInflateSource
    inner: DataElement


class FileReader:
    """Reads the header, then one top-level variable per call.

    ``peek_info`` decodes only the array flags, dimensions and name of the
    next element and does not advance; a compressed element opened by the
    peek is reused by the following ``next_variable`` or ``skip``.

    Once a decode fails the reader stops: later calls raise the same error.
    """

    def __init__(
        self,
        source: ByteSource,
        *,
        config: ReaderConfig | None = None,
        owns_source: bool = False,
    ) -> None:
        self._source = source
        self._owns_source = owns_source
        self._config = config or ReaderConfig()
        self._header = parse_header(source.read_at(0, HEADER_SIZE))
        body = SectionView(source, HEADER_SIZE, len(source) - HEADER_SIZE)
        self._stream = ElementStream(body, self._header.byte_order)
        self._open: _OpenCompressed | None = None
        self._failure: MatFileError | None = None
        self._closed = False

    @classmethod
    def from_bytes(
        cls, data: bytes | bytearray | memoryview, *, config: ReaderConfig | None = None
    ) -> "FileReader":
        return cls(BytesSource(data), config=config)

    @property
    def header(self) -> Header:
        return self._header

    @property
    def byte_order(self) -> ByteOrder:
        return self._header.byte_order

    @property
    def config(self) -> ReaderConfig:
        return self._config

    def next_variable(self) -> Variable | None:
        """Decode the next top-level element, or return ``None`` at the end."""

        self._check_usable()
        try:
            element = self._stream.next_element()
            if element is None:
                return None
            if element.data_type is not DataType.COMPRESSED:
                return decode_element(element, self._config)
            try:
                return decode_element(self._inner_of(element), self._config)
            finally:
                self._release()
        except MatFileError as exc:
            self._failure = exc
            raise

    def peek_info(self) -> VariableInfo | None:
        """Metadata of the next top-level element without consuming it."""

        self._check_usable()
        try:
            element = self._stream.peek_element()
            if element is None:
                return None
            if element.data_type is DataType.COMPRESSED:
                element = self._inner_of(element)
            return element_info(element)
        except MatFileError as exc:
            self._failure = exc
            raise

    def skip(self) -> bool:
        """Advance past the next element without decoding it."""

        self._check_usable()
        try:
            element = self._stream.next_element()
        except MatFileError as exc:
            self._failure = exc
            raise
        self._release()
        return element is not None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()
        if self._owns_source:
            close = getattr(self._source, "close", None)
            if close is not None:
                close()

    def __iter__(self) -> Iterator[Variable]:
        while True:
            variable = self.next_variable()
            if variable is None:
                return
            yield variable

    def __enter__(self) -> "FileReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _check_usable(self) -> None:
        if self._closed:
            raise SourceClosedError("reader is closed")
        if self._failure is not None:
            raise self._failure.with_traceback(None)

    def _inner_of(self, element: DataElement) -> DataElement:
        if self._open is not None and self._open.offset == element.offset:
            return self._open.inner
        self._release()
        inflated = open_compressed(element, self._config)
        try:
            inner = inner_element(inflated, element.byte_order)
        except MatFileError:
            inflated.close()
            raise
        self._open = _OpenCompressed(element.offset, inflated, inner)
        return inner

    def _release(self) -> None:
        if self._open is not None:
            self._open.inflated.close()
            self._open = None


def open_file(
    path: str | os.PathLike[str], config: ReaderConfig | None = None
) -> FileReader:
    """Open a MAT-file for sequential reading. Close it when done."""

    source = FileSource.open(path)
    try:
        return FileReader(source, config=config, owns_source=True)
    except BaseException:
        source.close()
        raise


def load_variables(
    path: str | os.PathLike[str], config: ReaderConfig | None = None
) -> dict[str, Variable]:
    """Decode every top-level variable, keyed by name (later names win)."""

    with open_file(path, config) as reader:
        return {variable.name: variable for variable in reader}
