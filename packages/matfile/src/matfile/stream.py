"""Sequential cursor over a stream of tagged data elements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .errors import TruncatedStreamError
from .source import ByteSource, SectionView
from .tags import (
    SHORT_PAYLOAD_MAX,
    TAG_SIZE,
    ByteOrder,
    DataType,
    Tag,
    decode_tag,
    padding_for,
)


@dataclass(frozen=True, slots=True)
class DataElement:
    """One tag plus a borrowed view of its payload.

    ``offset`` is the position of the tag inside the stream's source. The
    payload must not be read after that source is closed.
    """

    data_type: DataType
    tag: Tag
    byte_order: ByteOrder
    offset: int
    payload: SectionView

    @property
    def length(self) -> int:
        return self.tag.length

    def read(self) -> bytes:
        return self.payload.tobytes()


class ElementStream:
    """Reads elements back to back from ``source`` starting at ``offset``."""

    def __init__(
        self, source: ByteSource, byte_order: ByteOrder, offset: int = 0
    ) -> None:
        self._source = source
        self._byte_order = byte_order
        self._cursor = offset

    @property
    def byte_order(self) -> ByteOrder:
        return self._byte_order

    @property
    def source(self) -> ByteSource:
        return self._source

    @property
    def cursor(self) -> int:
        return self._cursor

    def at_end(self) -> bool:
        return self._cursor >= len(self._source)

    def next_element(self) -> DataElement | None:
        """Return the next element and advance, or ``None`` at end of stream."""

        located = self._locate(self._cursor)
        if located is None:
            return None
        element, next_cursor = located
        self._cursor = next_cursor
        return element

    def peek_element(self) -> DataElement | None:
        """Return the next element without moving the cursor."""

        located = self._locate(self._cursor)
        return None if located is None else located[0]

    def __iter__(self) -> Iterator[DataElement]:
        while True:
            element = self.next_element()
            if element is None:
                return
            yield element

    def _locate(self, cursor: int) -> tuple[DataElement, int] | None:
        total = len(self._source)
        if cursor >= total:
            return None

        raw = self._source.read_at(cursor, TAG_SIZE)
        if len(raw) < TAG_SIZE:
            raise TruncatedStreamError(
                f"element tag at offset {cursor} needs {TAG_SIZE} bytes, "
                f"{len(raw)} available"
            )
        tag = decode_tag(raw, self._byte_order)
        data_type = DataType.from_code(tag.type_code)

        if tag.short_format:
            if tag.length > SHORT_PAYLOAD_MAX:
                raise TruncatedStreamError(
                    f"short-format element at offset {cursor} declares "
                    f"{tag.length} bytes but at most {SHORT_PAYLOAD_MAX} fit inline"
                )
            payload = SectionView(self._source, cursor + SHORT_PAYLOAD_MAX, tag.length)
            next_cursor = cursor + TAG_SIZE
        else:
            start = cursor + TAG_SIZE
            if start + tag.length > total:
                raise TruncatedStreamError(
                    f"element at offset {cursor} declares {tag.length} payload "
                    f"bytes, {total - start} available"
                )
            payload = SectionView(self._source, start, tag.length)
            next_cursor = start + tag.length
            # compressed byte counts are not padded to 8
            if data_type is not DataType.COMPRESSED:
                next_cursor += padding_for(tag.length)

        element = DataElement(
            data_type=data_type,
            tag=tag,
            byte_order=self._byte_order,
            offset=cursor,
            payload=payload,
        )
        return element, next_cursor
