"""Data element tags: type codes, byte order and the 8-byte tag layout."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Final

from .errors import UnknownTypeCodeError

TAG_SIZE: Final[int] = 8
SHORT_PAYLOAD_MAX: Final[int] = 4


class ByteOrder(enum.Enum):
    """Byte order of every multi-byte field in a file, as a struct prefix."""

    LITTLE = "<"
    BIG = ">"

    @property
    def prefix(self) -> str:
        return self.value


class DataType(enum.IntEnum):
    INT8 = 1
    UINT8 = 2
    INT16 = 3
    UINT16 = 4
    INT32 = 5
    UINT32 = 6
    SINGLE = 7
    DOUBLE = 9
    INT64 = 12
    UINT64 = 13
    MATRIX = 14
    COMPRESSED = 15
    UTF8 = 16
    UTF16 = 17
    UTF32 = 18

    @classmethod
    def from_code(cls, code: int) -> "DataType":
        try:
            return cls(code)
        except ValueError:
            raise UnknownTypeCodeError(f"unknown data type code {code}") from None

    @property
    def is_container(self) -> bool:
        return self in (DataType.MATRIX, DataType.COMPRESSED)

    @property
    def is_text(self) -> bool:
        return self in (DataType.UTF8, DataType.UTF16, DataType.UTF32)

    @property
    def is_numeric(self) -> bool:
        return not (self.is_container or self.is_text)

    @property
    def width(self) -> int:
        """Size in bytes of one element (one code unit for text types)."""

        return _WIDTHS[self]

    @property
    def dtype_code(self) -> str:
        """numpy type code without byte order, e.g. ``"f8"``."""

        return _DTYPE_CODES[self]


_WIDTHS: Final[dict[DataType, int]] = {
    DataType.INT8: 1,
    DataType.UINT8: 1,
    DataType.INT16: 2,
    DataType.UINT16: 2,
    DataType.INT32: 4,
    DataType.UINT32: 4,
    DataType.SINGLE: 4,
    DataType.DOUBLE: 8,
    DataType.INT64: 8,
    DataType.UINT64: 8,
    DataType.MATRIX: 1,
    DataType.COMPRESSED: 1,
    DataType.UTF8: 1,
    DataType.UTF16: 2,
    DataType.UTF32: 4,
}

_DTYPE_CODES: Final[dict[DataType, str]] = {
    DataType.INT8: "i1",
    DataType.UINT8: "u1",
    DataType.INT16: "i2",
    DataType.UINT16: "u2",
    DataType.INT32: "i4",
    DataType.UINT32: "u4",
    DataType.SINGLE: "f4",
    DataType.DOUBLE: "f8",
    DataType.INT64: "i8",
    DataType.UINT64: "u8",
    DataType.MATRIX: "u1",
    DataType.COMPRESSED: "u1",
    DataType.UTF8: "u1",
    DataType.UTF16: "u2",
    DataType.UTF32: "u4",
}


@dataclass(frozen=True, slots=True)
class Tag:
    """Decoded element header.

    ``type_code`` is kept raw; :meth:`DataType.from_code` validates it.
    """

    type_code: int
    length: int
    short_format: bool

    @property
    def payload_offset(self) -> int:
        """Offset of the payload relative to the start of the tag."""

        return SHORT_PAYLOAD_MAX if self.short_format else TAG_SIZE


def decode_tag(data: bytes, byte_order: ByteOrder) -> Tag:
    """Decode the first 8 bytes of ``data`` as a tag."""

    first, second = struct.unpack(byte_order.prefix + "II", data[:TAG_SIZE])
    upper = first >> 16
    if upper:
        return Tag(type_code=first & 0xFFFF, length=upper, short_format=True)
    return Tag(type_code=first, length=second, short_format=False)


def encode_tag(
    type_code: int,
    length: int,
    byte_order: ByteOrder,
    *,
    short_format: bool = False,
) -> bytes:
    """Encode a tag; a short-format tag leaves its inline payload word zeroed."""

    if short_format:
        if not 0 < length <= SHORT_PAYLOAD_MAX:
            raise ValueError(f"short-format payload must be 1-4 bytes, got {length}")
        return struct.pack(byte_order.prefix + "II", (length << 16) | type_code, 0)
    return struct.pack(byte_order.prefix + "II", type_code, length)


def padding_for(length: int) -> int:
    """Bytes needed after a payload of ``length`` to reach an 8-byte boundary."""

    return (8 - length % 8) % 8
