"""Decoding of primitive (numeric and text) element payloads."""

from __future__ import annotations

import numpy as np

from .errors import CorruptDataError
from .stream import DataElement
from .tags import ByteOrder, DataType

_TEXT_CODECS: dict[tuple[DataType, ByteOrder], str] = {
    (DataType.UTF8, ByteOrder.LITTLE): "utf-8",
    (DataType.UTF8, ByteOrder.BIG): "utf-8",
    (DataType.UTF16, ByteOrder.LITTLE): "utf-16-le",
    (DataType.UTF16, ByteOrder.BIG): "utf-16-be",
    (DataType.UTF32, ByteOrder.LITTLE): "utf-32-le",
    (DataType.UTF32, ByteOrder.BIG): "utf-32-be",
}


def numpy_dtype(data_type: DataType, byte_order: ByteOrder) -> np.dtype:
    """Return the on-disk numpy dtype for ``data_type`` in ``byte_order``."""

    return np.dtype(byte_order.prefix + data_type.dtype_code)


def decode_numeric(
    raw: bytes, data_type: DataType, byte_order: ByteOrder
) -> np.ndarray:
    """Decode ``len(raw) // width`` values and return them in native byte order.

    Trailing bytes that do not fill a whole value are ignored.
    """

    dtype = numpy_dtype(data_type, byte_order)
    count = len(raw) // dtype.itemsize
    values = np.frombuffer(raw, dtype=dtype, count=count)
    return values.astype(dtype.newbyteorder("="), copy=True)


def decode_text(raw: bytes, data_type: DataType, byte_order: ByteOrder) -> str:
    codec = _TEXT_CODECS[(data_type, byte_order)]
    if len(raw) % data_type.width:
        raise CorruptDataError(
            f"{data_type.name} payload of {len(raw)} bytes ends inside a code unit"
        )
    try:
        return raw.decode(codec)
    except UnicodeDecodeError as exc:
        raise CorruptDataError(f"invalid {data_type.name} text: {exc}") from exc


def decode_primitive(element: DataElement) -> np.ndarray | str:
    """Decode a numeric element into an array or a text element into ``str``."""

    data_type = element.data_type
    if data_type.is_container:
        raise TypeError(f"{data_type.name} elements are not primitive")
    raw = element.read()
    if data_type.is_text:
        return decode_text(raw, data_type, element.byte_order)
    return decode_numeric(raw, data_type, element.byte_order)
