"""Sequential MAT-File Level 5 writer."""

from __future__ import annotations

import zlib
from pathlib import Path
from typing import BinaryIO, Iterable, Mapping, Sequence

import numpy as np

from .arrays import ArrayClass, Variable, VariableInfo
from .header import encode_header
from .primitive import numpy_dtype
from .tags import SHORT_PAYLOAD_MAX, ByteOrder, DataType, encode_tag, padding_for

_UTF16_CODECS = {ByteOrder.LITTLE: "utf-16-le", ByteOrder.BIG: "utf-16-be"}


class WriteError(RuntimeError):
    """Raised when a variable cannot be represented in a MAT-file."""


def encode_element(data_type: DataType, payload: bytes, byte_order: ByteOrder) -> bytes:
    """Encode one data element, inlining payloads of 1-4 bytes."""

    if 0 < len(payload) <= SHORT_PAYLOAD_MAX and not data_type.is_container:
        tag = encode_tag(data_type, len(payload), byte_order, short_format=True)
        return tag[:SHORT_PAYLOAD_MAX] + payload.ljust(SHORT_PAYLOAD_MAX, b"\x00")
    if data_type is DataType.COMPRESSED:
        return encode_tag(data_type, len(payload), byte_order) + payload
    return (
        encode_tag(data_type, len(payload), byte_order)
        + payload
        + b"\x00" * padding_for(len(payload))
    )


def encode_variable(variable: Variable, byte_order: ByteOrder) -> bytes:
    """Serialise a variable as a complete ``miMATRIX`` element."""

    info = variable.info
    if info.name and not info.name.isidentifier():
        raise WriteError(f"Invalid MATLAB variable name: {info.name}")

    parts = [
        _numeric_element(
            np.array([info.flags_word, info.nzmax], dtype=np.uint32),
            DataType.UINT32,
            byte_order,
        ),
        _numeric_element(
            np.array(info.dimensions, dtype=np.int32), DataType.INT32, byte_order
        ),
        encode_element(DataType.INT8, info.name.encode("utf-8"), byte_order),
    ]

    array_class = info.array_class
    if array_class is ArrayClass.CHAR:
        if not isinstance(variable.real, str):
            raise WriteError(f"char array {info.name!r} needs str data")
        parts.append(
            encode_element(
                DataType.UINT16,
                variable.real.encode(_UTF16_CODECS[byte_order]),
                byte_order,
            )
        )
    elif array_class.is_numeric:
        parts.extend(_payload_parts(variable, array_class.data_type, byte_order))
    elif array_class is ArrayClass.SPARSE:
        if variable.row_index is None or variable.col_index is None:
            raise WriteError(f"sparse array {info.name!r} needs row and column indices")
        parts.append(_numeric_element(variable.row_index, DataType.INT32, byte_order))
        parts.append(_numeric_element(variable.col_index, DataType.INT32, byte_order))
        parts.extend(_payload_parts(variable, DataType.DOUBLE, byte_order))
    elif array_class is ArrayClass.CELL:
        parts.extend(encode_variable(child, byte_order) for child in variable.cells)
    else:
        if array_class is ArrayClass.OBJECT:
            parts.append(
                encode_element(
                    DataType.INT8, (variable.class_name or "").encode("utf-8"), byte_order
                )
            )
        width = variable.field_name_length or _field_name_width(variable.field_names)
        parts.append(
            _numeric_element(np.array([width], dtype=np.int32), DataType.INT32, byte_order)
        )
        names = b"".join(
            _field_name_record(name, width) for name in variable.field_names
        )
        parts.append(encode_element(DataType.INT8, names, byte_order))
        parts.extend(encode_variable(child, byte_order) for child in variable.cells)

    return encode_element(DataType.MATRIX, b"".join(parts), byte_order)


class MatWriter:
    """Writes a header on construction, then one variable per ``put_variable``."""

    def __init__(
        self,
        handle: BinaryIO,
        *,
        byte_order: ByteOrder = ByteOrder.LITTLE,
        description: str | None = None,
        compress: bool = False,
        level: int = 6,
    ) -> None:
        self._handle = handle
        self._byte_order = byte_order
        self._compress = compress
        self._level = level
        handle.write(encode_header(byte_order, description=description))

    def put_variable(self, variable: Variable) -> None:
        element = encode_variable(variable, self._byte_order)
        if self._compress:
            element = encode_element(
                DataType.COMPRESSED, zlib.compress(element, self._level), self._byte_order
            )
        self._handle.write(element)


def write_mat(
    path: Path,
    variables: Iterable[Variable],
    *,
    byte_order: ByteOrder = ByteOrder.LITTLE,
    description: str | None = None,
    compress: bool = False,
) -> None:
    """Write variables to a MAT-File Level 5 file."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        writer = MatWriter(
            handle, byte_order=byte_order, description=description, compress=compress
        )
        for variable in variables:
            if not variable.name:
                raise WriteError("top-level variables must be named")
            writer.put_variable(variable)


def numeric_variable(
    name: str,
    values: object,
    *,
    array_class: ArrayClass | None = None,
    is_global: bool = False,
) -> Variable:
    """Build a numeric (or logical, for ``bool`` input) array variable.

    One-dimensional input becomes a ``1 x n`` row vector and scalars ``1 x 1``.
    """

    array = np.asarray(values)
    is_logical = array.dtype == np.bool_
    if array_class is None:
        array_class = _class_for_dtype(array.dtype)
    if not array_class.is_numeric:
        raise WriteError(f"{array_class.name} is not a numeric array class")
    shape = _matlab_shape(array)
    real = np.real(array).astype(array_class.dtype).ravel(order="F")
    imag = None
    if np.iscomplexobj(array):
        imag = np.imag(array).astype(array_class.dtype).ravel(order="F")
    info = VariableInfo(
        name=name,
        array_class=array_class,
        dimensions=shape,
        is_complex=imag is not None,
        is_global=is_global,
        is_logical=is_logical,
    )
    return Variable(info=info, real=real, imag=imag)


def char_variable(name: str, text: str) -> Variable:
    units = len(text.encode("utf-16-le")) // 2
    info = VariableInfo(name=name, array_class=ArrayClass.CHAR, dimensions=(1, units))
    return Variable(info=info, real=text)


def sparse_variable(name: str, dense: object) -> Variable:
    """Build a sparse array from a dense 2-D array (compressed sparse column)."""

    matrix = np.asarray(dense)
    if matrix.ndim != 2:
        raise WriteError("sparse arrays must be two-dimensional")
    rows: list[int] = []
    col_index = [0]
    values: list[complex] = []
    for col in range(matrix.shape[1]):
        nonzero = np.flatnonzero(matrix[:, col])
        rows.extend(int(row) for row in nonzero)
        values.extend(matrix[nonzero, col].tolist())
        col_index.append(len(rows))
    data = np.asarray(values, dtype=matrix.dtype if values else np.float64)
    is_complex = np.iscomplexobj(matrix)
    info = VariableInfo(
        name=name,
        array_class=ArrayClass.SPARSE,
        dimensions=(int(matrix.shape[0]), int(matrix.shape[1])),
        is_complex=is_complex,
        is_logical=matrix.dtype == np.bool_,
        nzmax=max(len(rows), 1),
    )
    return Variable(
        info=info,
        real=np.real(data).astype(np.float64),
        imag=np.imag(data).astype(np.float64) if is_complex else None,
        row_index=np.asarray(rows, dtype=np.int32),
        col_index=np.asarray(col_index, dtype=np.int32),
    )


def cell_variable(
    name: str,
    cells: Sequence[Variable],
    dimensions: tuple[int, ...] | None = None,
) -> Variable:
    dims = dimensions if dimensions is not None else (1, len(cells))
    info = VariableInfo(name=name, array_class=ArrayClass.CELL, dimensions=dims)
    if info.element_count != len(cells):
        raise WriteError(
            f"cell array {name!r} has {len(cells)} cells for dimensions {dims}"
        )
    return Variable(info=info, cells=list(cells))


def struct_variable(
    name: str,
    elements: Mapping[str, Variable] | Sequence[Mapping[str, Variable]],
    *,
    class_name: str | None = None,
) -> Variable:
    """Build a ``1 x n`` struct array (an object array when ``class_name`` is set).

    Every element must define the same fields, in the same order.
    """

    records = [elements] if isinstance(elements, Mapping) else list(elements)
    field_names = list(records[0]) if records else []
    cells: list[Variable] = []
    for record in records:
        if list(record) != field_names:
            raise WriteError(f"struct array {name!r} elements disagree on fields")
        cells.extend(record[field_name] for field_name in field_names)
    array_class = ArrayClass.STRUCT if class_name is None else ArrayClass.OBJECT
    info = VariableInfo(name=name, array_class=array_class, dimensions=(1, len(records)))
    return Variable(
        info=info,
        cells=cells,
        field_name_length=_field_name_width(field_names),
        field_names=field_names,
        class_name=class_name,
    )


def _payload_parts(
    variable: Variable, data_type: DataType, byte_order: ByteOrder
) -> list[bytes]:
    if not isinstance(variable.real, np.ndarray):
        raise WriteError(f"array {variable.name!r} needs numeric data")
    parts = [_numeric_element(variable.real, data_type, byte_order)]
    if variable.info.is_complex:
        if variable.imag is None:
            raise WriteError(f"complex array {variable.name!r} has no imaginary part")
        parts.append(_numeric_element(variable.imag, data_type, byte_order))
    return parts


def _numeric_element(
    values: np.ndarray, data_type: DataType, byte_order: ByteOrder
) -> bytes:
    payload = np.asarray(values).astype(numpy_dtype(data_type, byte_order)).tobytes()
    return encode_element(data_type, payload, byte_order)


def _field_name_width(field_names: Sequence[str]) -> int:
    longest = max((len(name.encode("utf-8")) for name in field_names), default=0)
    return longest + 1


def _field_name_record(name: str, width: int) -> bytes:
    encoded = name.encode("utf-8")
    if len(encoded) >= width:
        raise WriteError(f"field name {name!r} does not fit in {width} bytes")
    return encoded.ljust(width, b"\x00")


def _class_for_dtype(dtype: np.dtype) -> ArrayClass:
    if dtype == np.bool_:
        return ArrayClass.UINT8
    dtype = dtype.newbyteorder("=")
    if dtype.kind == "c":
        dtype = np.dtype(f"f{dtype.itemsize // 2}")
    for array_class in ArrayClass:
        if array_class.is_numeric and array_class.dtype == dtype:
            return array_class
    if dtype.kind in "iuf":
        return ArrayClass.DOUBLE
    raise WriteError(f"cannot store dtype {dtype} in a numeric array")


def _matlab_shape(array: np.ndarray) -> tuple[int, ...]:
    if array.ndim == 0:
        return (1, 1)
    if array.ndim == 1:
        return (1, int(array.shape[0]))
    return tuple(int(size) for size in array.shape)
