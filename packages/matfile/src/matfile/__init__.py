"""Public exports for the matfile package."""

from .arrays import ArrayClass, Variable, VariableInfo
from .config import ConfigError, ReaderConfig, load_config
from .errors import (
    CorruptDataError,
    HeaderError,
    InvalidOffsetError,
    MatFileError,
    SourceClosedError,
    TruncatedStreamError,
    UnexpectedElementError,
    UnknownTypeCodeError,
    UnsupportedNestingError,
)
from .header import Header
from .inflate import LazyInflateSource
from .reader import FileReader, load_variables, open_file
from .source import ByteSource, BytesSource, FileSource, SectionView
from .stream import DataElement, ElementStream
from .tags import ByteOrder, DataType, Tag
from .writer import (
    MatWriter,
    WriteError,
    cell_variable,
    char_variable,
    numeric_variable,
    sparse_variable,
    struct_variable,
    write_mat,
)

__all__ = [
    "ArrayClass",
    "ByteOrder",
    "ByteSource",
    "BytesSource",
    "ConfigError",
    "CorruptDataError",
    "DataElement",
    "DataType",
    "ElementStream",
    "FileReader",
    "FileSource",
    "Header",
    "HeaderError",
    "InvalidOffsetError",
    "LazyInflateSource",
    "MatFileError",
    "MatWriter",
    "ReaderConfig",
    "SectionView",
    "SourceClosedError",
    "Tag",
    "TruncatedStreamError",
    "UnexpectedElementError",
    "UnknownTypeCodeError",
    "UnsupportedNestingError",
    "Variable",
    "VariableInfo",
    "WriteError",
    "cell_variable",
    "char_variable",
    "load_config",
    "load_variables",
    "numeric_variable",
    "open_file",
    "sparse_variable",
    "struct_variable",
    "write_mat",
]
