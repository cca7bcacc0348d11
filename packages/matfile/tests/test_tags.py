"""Tests for tag encoding and decoding."""

from __future__ import annotations

import struct

import pytest

from matfile.errors import UnknownTypeCodeError
from matfile.tags import ByteOrder, DataType, decode_tag, encode_tag, padding_for


@pytest.mark.parametrize("byte_order", list(ByteOrder))
@pytest.mark.parametrize("length", [1, 2, 3, 4])
@pytest.mark.parametrize(
    "data_type", [DataType.INT8, DataType.UINT16, DataType.INT32, DataType.UTF8]
)
def test_short_format_tag_law(
    byte_order: ByteOrder, length: int, data_type: DataType
) -> None:
    raw = encode_tag(data_type, length, byte_order, short_format=True)
    tag = decode_tag(raw, byte_order)

    assert len(raw) == 8
    assert tag.type_code == data_type
    assert tag.length == length
    assert tag.short_format is True
    assert tag.payload_offset == 4


@pytest.mark.parametrize("byte_order", list(ByteOrder))
@pytest.mark.parametrize("length", [0, 5, 8, 255, 65536, 2**31])
def test_long_format_tag_law(byte_order: ByteOrder, length: int) -> None:
    raw = encode_tag(DataType.DOUBLE, length, byte_order)
    tag = decode_tag(raw, byte_order)

    assert tag.type_code == DataType.DOUBLE
    assert tag.length == length
    assert tag.short_format is False
    assert tag.payload_offset == 8


def test_short_format_word_layout_little_endian() -> None:
    # type code in the low half, length in the high half of the first word
    raw = struct.pack("<I", (3 << 16) | 1) + b"abc\x00"
    tag = decode_tag(raw, ByteOrder.LITTLE)

    assert (tag.type_code, tag.length, tag.short_format) == (1, 3, True)


def test_big_endian_tag_reads_other_order() -> None:
    raw = struct.pack(">II", 9, 24)

    assert decode_tag(raw, ByteOrder.BIG).length == 24
    assert decode_tag(raw, ByteOrder.LITTLE).short_format is True


def test_encode_short_format_rejects_large_payload() -> None:
    with pytest.raises(ValueError):
        encode_tag(DataType.INT8, 5, ByteOrder.LITTLE, short_format=True)


@pytest.mark.parametrize(
    ("length", "expected"), [(0, 0), (1, 7), (4, 4), (7, 1), (8, 0), (13, 3)]
)
def test_padding_for(length: int, expected: int) -> None:
    assert padding_for(length) == expected


def test_unknown_type_code() -> None:
    assert DataType.from_code(14) is DataType.MATRIX
    with pytest.raises(UnknownTypeCodeError):
        DataType.from_code(8)
