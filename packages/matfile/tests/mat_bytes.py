"""Hand-built MAT-File Level 5 byte fixtures, independent of the writer."""

from __future__ import annotations

import struct
import zlib

MI_INT8 = 1
MI_UINT8 = 2
MI_INT16 = 3
MI_UINT16 = 4
MI_INT32 = 5
MI_UINT32 = 6
MI_SINGLE = 7
MI_DOUBLE = 9
MI_INT64 = 12
MI_UINT64 = 13
MI_MATRIX = 14
MI_COMPRESSED = 15
MI_UTF8 = 16
MI_UTF16 = 17
MI_UTF32 = 18

MX_CELL = 1
MX_STRUCT = 2
MX_OBJECT = 3
MX_CHAR = 4
MX_SPARSE = 5
MX_DOUBLE = 6
MX_SINGLE = 7
MX_INT16 = 10
MX_UINT8 = 9

LOGICAL = 0x0200
GLOBAL = 0x0400
COMPLEX = 0x0800


def header(order: str = "<", description: bytes = b"MATLAB 5.0 MAT-file, test") -> bytes:
    indicator = b"IM" if order == "<" else b"MI"
    return (
        description.ljust(116, b" ")
        + b"\x00" * 8
        + struct.pack(order + "H", 0x0100)
        + indicator
    )


def tag(type_code: int, length: int, order: str = "<") -> bytes:
    return struct.pack(order + "II", type_code, length)


def short(type_code: int, payload: bytes, order: str = "<") -> bytes:
    assert 0 < len(payload) <= 4
    return struct.pack(order + "I", (len(payload) << 16) | type_code) + payload.ljust(
        4, b"\x00"
    )


def element(type_code: int, payload: bytes, order: str = "<") -> bytes:
    padding = (8 - len(payload) % 8) % 8
    return tag(type_code, len(payload), order) + payload + b"\x00" * padding


def doubles(values: list[float], order: str = "<") -> bytes:
    return element(MI_DOUBLE, struct.pack(f"{order}{len(values)}d", *values), order)


def int32s(values: list[int], order: str = "<") -> bytes:
    return element(MI_INT32, struct.pack(f"{order}{len(values)}i", *values), order)


def name(text: str, order: str = "<") -> bytes:
    return element(MI_INT8, text.encode("ascii"), order)


def matrix(
    array_class: int,
    dims: list[int],
    array_name: str,
    *subelements: bytes,
    flags: int = 0,
    nzmax: int = 0,
    order: str = "<",
) -> bytes:
    body = (
        element(MI_UINT32, struct.pack(order + "II", array_class | flags, nzmax), order)
        + int32s(dims, order)
        + name(array_name, order)
        + b"".join(subelements)
    )
    return element(MI_MATRIX, body, order)


def compressed(inner: bytes, order: str = "<") -> bytes:
    data = zlib.compress(inner)
    return tag(MI_COMPRESSED, len(data), order) + data


def mat_file(*elements: bytes, order: str = "<") -> bytes:
    return header(order) + b"".join(elements)
