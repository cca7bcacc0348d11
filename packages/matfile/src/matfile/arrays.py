"""Structured decoding of ``miMATRIX`` elements into variables."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Final

import numpy as np

from .errors import (
    CorruptDataError,
    TruncatedStreamError,
    UnexpectedElementError,
    UnknownTypeCodeError,
)
from .primitive import decode_numeric, decode_primitive, decode_text
from .stream import DataElement, ElementStream
from .tags import DataType

FLAG_LOGICAL: Final[int] = 0x0200
FLAG_GLOBAL: Final[int] = 0x0400
FLAG_COMPLEX: Final[int] = 0x0800
CLASS_MASK: Final[int] = 0x00FF
_MAX_CODE_POINT: Final[int] = 0x10FFFF

_NAME_TYPES: Final[frozenset[DataType]] = frozenset(
    {DataType.INT8, DataType.UINT8, DataType.UTF8}
)


class ArrayClass(enum.IntEnum):
    CELL = 1
    STRUCT = 2
    OBJECT = 3
    CHAR = 4
    SPARSE = 5
    DOUBLE = 6
    SINGLE = 7
    INT8 = 8
    UINT8 = 9
    INT16 = 10
    UINT16 = 11
    INT32 = 12
    UINT32 = 13
    INT64 = 14
    UINT64 = 15

    @classmethod
    def from_code(cls, code: int) -> "ArrayClass":
        try:
            return cls(code)
        except ValueError:
            raise UnknownTypeCodeError(f"unsupported array class {code}") from None

    @classmethod
    def for_data_type(cls, data_type: DataType) -> "ArrayClass":
        """Array class a bare primitive element of ``data_type`` stands for."""

        if data_type.is_text:
            return cls.CHAR
        return _CLASS_FOR_TYPE[data_type]

    @property
    def is_numeric(self) -> bool:
        return self in _NUMERIC_DTYPES

    @property
    def has_fields(self) -> bool:
        return self in (ArrayClass.STRUCT, ArrayClass.OBJECT)

    @property
    def dtype(self) -> np.dtype:
        """Native numpy dtype of a numeric class."""

        return np.dtype(_NUMERIC_DTYPES[self])

    @property
    def data_type(self) -> DataType:
        """Element type a numeric class is written with."""

        return _TYPE_FOR_CLASS[self]


_NUMERIC_DTYPES: Final[dict[ArrayClass, str]] = {
    ArrayClass.DOUBLE: "f8",
    ArrayClass.SINGLE: "f4",
    ArrayClass.INT8: "i1",
    ArrayClass.UINT8: "u1",
    ArrayClass.INT16: "i2",
    ArrayClass.UINT16: "u2",
    ArrayClass.INT32: "i4",
    ArrayClass.UINT32: "u4",
    ArrayClass.INT64: "i8",
    ArrayClass.UINT64: "u8",
}

_TYPE_FOR_CLASS: Final[dict[ArrayClass, DataType]] = {
    ArrayClass.DOUBLE: DataType.DOUBLE,
    ArrayClass.SINGLE: DataType.SINGLE,
    ArrayClass.INT8: DataType.INT8,
    ArrayClass.UINT8: DataType.UINT8,
    ArrayClass.INT16: DataType.INT16,
    ArrayClass.UINT16: DataType.UINT16,
    ArrayClass.INT32: DataType.INT32,
    ArrayClass.UINT32: DataType.UINT32,
    ArrayClass.INT64: DataType.INT64,
    ArrayClass.UINT64: DataType.UINT64,
}

_CLASS_FOR_TYPE: Final[dict[DataType, ArrayClass]] = {
    data_type: array_class for array_class, data_type in _TYPE_FOR_CLASS.items()
}


@dataclass(slots=True)
class VariableInfo:
    """Array metadata: everything in front of the payload sub-elements."""

    name: str
    array_class: ArrayClass
    dimensions: tuple[int, ...]
    is_complex: bool = False
    is_global: bool = False
    is_logical: bool = False
    nzmax: int = 0

    @property
    def element_count(self) -> int:
        if not self.dimensions:
            return 0
        return math.prod(self.dimensions)

    @property
    def flags_word(self) -> int:
        word = int(self.array_class)
        if self.is_logical:
            word |= FLAG_LOGICAL
        if self.is_global:
            word |= FLAG_GLOBAL
        if self.is_complex:
            word |= FLAG_COMPLEX
        return word


@dataclass(slots=True)
class Variable:
    """A decoded array and, for containers, its child arrays.

    Which fields are populated depends on ``info.array_class``:

    - numeric and char arrays: ``real`` (``str`` for char) and ``imag``;
    - sparse arrays: ``row_index``, ``col_index``, ``real`` and ``imag``;
    - cell arrays: ``cells`` in stream order;
    - struct and object arrays: ``field_name_length``, ``field_names`` and one
      entry in ``cells`` per (array element, field), element-major;
      objects also carry ``class_name``.
    """

    info: VariableInfo
    real: np.ndarray | str | None = None
    imag: np.ndarray | None = None
    row_index: np.ndarray | None = None
    col_index: np.ndarray | None = None
    cells: list["Variable"] = field(default_factory=list)
    field_name_length: int | None = None
    field_names: list[str] = field(default_factory=list)
    class_name: str | None = None

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def array_class(self) -> ArrayClass:
        return self.info.array_class

    @property
    def dimensions(self) -> tuple[int, ...]:
        return self.info.dimensions

    def cell(self, index: int) -> "Variable":
        if self.array_class is not ArrayClass.CELL:
            raise TypeError(f"{self.array_class.name} array has no cells")
        return self.cells[index]

    def field_value(self, name: str, index: int = 0) -> "Variable":
        """Value of field ``name`` in array element ``index`` (column-major)."""

        if not self.array_class.has_fields:
            raise TypeError(f"{self.array_class.name} array has no fields")
        try:
            position = self.field_names.index(name)
        except ValueError:
            raise KeyError(name) from None
        return self.cells[index * len(self.field_names) + position]

    def to_numpy(self) -> np.ndarray:
        """Return numeric or char data shaped to the dimensions (column-major)."""

        if self.array_class is ArrayClass.SPARSE:
            return self.to_dense()
        if self.array_class is ArrayClass.CHAR:
            assert isinstance(self.real, str)
            data = np.array(list(self.real), dtype="<U1")
        elif self.array_class.is_numeric:
            assert isinstance(self.real, np.ndarray)
            data = self.real
            if self.imag is not None:
                data = data + 1j * self.imag
            if self.info.is_logical:
                data = data.astype(bool)
        else:
            raise TypeError(f"{self.array_class.name} array has no numeric payload")
        if not self.dimensions:
            return data
        return data.reshape(self.dimensions, order="F")

    def to_dense(self) -> np.ndarray:
        """Expand a sparse array stored in compressed-sparse-column form."""

        if self.array_class is not ArrayClass.SPARSE:
            raise TypeError(f"{self.array_class.name} array is not sparse")
        assert isinstance(self.real, np.ndarray)
        assert self.row_index is not None and self.col_index is not None
        rows, cols = self.dimensions[0], self.dimensions[1]
        values: np.ndarray = self.real
        if self.imag is not None:
            values = values + 1j * self.imag
        dtype = bool if self.info.is_logical else values.dtype
        dense = np.zeros((rows, cols), dtype=dtype)
        for col in range(min(cols, len(self.col_index) - 1)):
            start, stop = int(self.col_index[col]), int(self.col_index[col + 1])
            dense[self.row_index[start:stop], col] = values[start:stop]
        return dense


def read_info(stream: ElementStream) -> VariableInfo:
    """Decode array flags, dimensions and name from a matrix payload stream."""

    flags = _require(stream, "array flags")
    words = _numeric(flags, "array flags", (DataType.UINT32, DataType.INT32))
    if len(words) < 1:
        raise UnexpectedElementError("array flags element is empty")
    flags_word = int(words[0])
    nzmax = int(words[1]) if len(words) > 1 else 0

    dims_element = _require(stream, "dimensions")
    dimensions = tuple(
        int(value)
        for value in _numeric(dims_element, "dimensions", (DataType.INT32,))
    )
    if any(size < 0 for size in dimensions):
        raise UnexpectedElementError(f"negative array dimension in {dimensions}")

    name = _decode_name(_require(stream, "array name"))

    return VariableInfo(
        name=name,
        array_class=ArrayClass.from_code(flags_word & CLASS_MASK),
        dimensions=dimensions,
        is_complex=bool(flags_word & FLAG_COMPLEX),
        is_global=bool(flags_word & FLAG_GLOBAL),
        is_logical=bool(flags_word & FLAG_LOGICAL),
        nzmax=nzmax,
    )


def read_matrix_info(element: DataElement) -> VariableInfo:
    """Metadata of a ``miMATRIX`` element without touching its payload data."""

    if element.data_type is not DataType.MATRIX:
        raise UnexpectedElementError(
            f"expected MATRIX element, found {element.data_type.name}"
        )
    if element.length == 0:
        return _empty_info()
    return read_info(ElementStream(element.payload, element.byte_order))


def decode_matrix(
    element: DataElement, *, cast_numeric: bool = True
) -> Variable:
    """Decode a ``miMATRIX`` element, recursing into cell and struct contents."""

    if element.data_type is not DataType.MATRIX:
        raise UnexpectedElementError(
            f"expected MATRIX element, found {element.data_type.name}"
        )
    if element.length == 0:
        return Variable(info=_empty_info(), real=np.zeros(0, dtype=np.float64))
    stream = ElementStream(element.payload, element.byte_order)
    info = read_info(stream)
    variable = Variable(info=info)
    array_class = info.array_class

    if array_class.is_numeric or array_class is ArrayClass.CHAR:
        variable.real = _decode_values(stream, info, "real part", cast_numeric)
        if info.is_complex:
            variable.imag = _decode_imag(stream, info, cast_numeric)
    elif array_class is ArrayClass.SPARSE:
        variable.row_index = _decode_index(stream, "row index")
        variable.col_index = _decode_index(stream, "column index")
        variable.real = _decode_sparse_values(stream, info, "real part")
        if info.is_complex:
            variable.imag = _decode_sparse_values(stream, info, "imaginary part")
    elif array_class is ArrayClass.CELL:
        for index in range(info.element_count):
            child = _require(stream, f"cell {index}")
            variable.cells.append(decode_matrix(child, cast_numeric=cast_numeric))
    else:
        if array_class is ArrayClass.OBJECT:
            variable.class_name = _decode_name(_require(stream, "class name"))
        length_element = _require(stream, "field name length")
        lengths = _numeric(length_element, "field name length", (DataType.INT32,))
        if len(lengths) != 1:
            raise UnexpectedElementError(
                f"field name length must be a scalar, found {len(lengths)} values"
            )
        variable.field_name_length = int(lengths[0])
        variable.field_names = _split_field_names(
            _require(stream, "field names"), variable.field_name_length
        )
        for index in range(info.element_count):
            for field_name in variable.field_names:
                child = _require(stream, f"field {field_name!r} of element {index}")
                variable.cells.append(decode_matrix(child, cast_numeric=cast_numeric))

    return variable


def _require(stream: ElementStream, what: str) -> DataElement:
    element = stream.next_element()
    if element is None:
        raise TruncatedStreamError(f"matrix ended before its {what} sub-element")
    return element


def _numeric(
    element: DataElement, what: str, allowed: tuple[DataType, ...]
) -> np.ndarray:
    if element.data_type not in allowed:
        expected = "/".join(data_type.name for data_type in allowed)
        raise UnexpectedElementError(
            f"{what} must be {expected}, found {element.data_type.name}"
        )
    return decode_numeric(element.read(), element.data_type, element.byte_order)


def _decode_name(element: DataElement) -> str:
    if element.data_type not in _NAME_TYPES:
        raise UnexpectedElementError(
            f"names must be INT8 text, found {element.data_type.name}"
        )
    return element.read().rstrip(b"\x00").decode("utf-8", errors="replace")


def _split_field_names(element: DataElement, width: int) -> list[str]:
    if element.data_type not in _NAME_TYPES:
        raise UnexpectedElementError(
            f"field names must be INT8 text, found {element.data_type.name}"
        )
    raw = element.read()
    if not raw:
        return []
    if width <= 0:
        raise UnexpectedElementError(
            f"field name length {width} cannot slice {len(raw)} bytes of names"
        )
    names: list[str] = []
    for start in range(0, len(raw) - width + 1, width):
        record = raw[start : start + width].split(b"\x00", 1)[0]
        names.append(record.decode("utf-8", errors="replace"))
    return names


def _primitive(element: DataElement, what: str) -> None:
    if element.data_type.is_container:
        raise UnexpectedElementError(
            f"{what} must be a primitive element, found {element.data_type.name}"
        )


def _decode_values(
    stream: ElementStream, info: VariableInfo, what: str, cast_numeric: bool
) -> np.ndarray | str:
    element = _require(stream, what)
    _primitive(element, what)
    if info.array_class is ArrayClass.CHAR:
        return _decode_chars(element)
    values = decode_primitive(element)
    if isinstance(values, str):
        raise UnexpectedElementError(
            f"{what} of a {info.array_class.name} array cannot be text"
        )
    if cast_numeric:
        values = values.astype(info.array_class.dtype, copy=False)
    return values


def _decode_chars(element: DataElement) -> str:
    data_type = element.data_type
    raw = element.read()
    if data_type.is_text:
        return decode_text(raw, data_type, element.byte_order)
    if data_type is DataType.UINT16 or data_type is DataType.INT16:
        return decode_text(raw, DataType.UTF16, element.byte_order)
    if data_type is DataType.UINT8 or data_type is DataType.INT8:
        return raw.decode("latin-1")
    units = decode_numeric(raw, data_type, element.byte_order)
    in_range = np.isfinite(units) & (units >= 0) & (units <= _MAX_CODE_POINT)
    if not in_range.all():
        raise CorruptDataError(
            f"character data holds values outside 0..0x{_MAX_CODE_POINT:X}"
        )
    return "".join(chr(int(unit)) for unit in units)


def _decode_imag(
    stream: ElementStream, info: VariableInfo, cast_numeric: bool
) -> np.ndarray:
    element = _require(stream, "imaginary part")
    _primitive(element, "imaginary part")
    values = decode_primitive(element)
    if isinstance(values, str):
        raise UnexpectedElementError("imaginary part cannot be text")
    if cast_numeric and info.array_class.is_numeric:
        values = values.astype(info.array_class.dtype, copy=False)
    return values


def _decode_index(stream: ElementStream, what: str) -> np.ndarray:
    element = _require(stream, what)
    _primitive(element, what)
    values = decode_primitive(element)
    if isinstance(values, str):
        raise UnexpectedElementError(f"{what} cannot be text")
    return values.astype(np.int32, copy=False)


def _decode_sparse_values(
    stream: ElementStream, info: VariableInfo, what: str
) -> np.ndarray:
    element = _require(stream, what)
    _primitive(element, what)
    values = decode_primitive(element)
    if isinstance(values, str):
        raise UnexpectedElementError(f"sparse {what} cannot be text")
    if info.is_logical:
        return values.astype(np.uint8, copy=False)
    return values.astype(np.float64, copy=False)


def _empty_info() -> VariableInfo:
    # empty cell contents are written as a bare zero-length MATRIX tag
    return VariableInfo(name="", array_class=ArrayClass.DOUBLE, dimensions=(0, 0))
