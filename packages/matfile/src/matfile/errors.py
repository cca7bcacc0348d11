"""Exception hierarchy raised while reading MAT-File Level 5 containers."""

from __future__ import annotations


class MatFileError(RuntimeError):
    """Base class for container decoding failures.

    Every subclass carries a stable ``code`` so callers (the CLI in particular)
    can report failures without matching on message text.
    """

    code = "MATFILE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TruncatedStreamError(MatFileError):
    """Raised when fewer bytes are available than a tag or length declares."""

    code = "TRUNCATED_STREAM"


class InvalidOffsetError(MatFileError):
    """Raised for negative or out-of-range offsets on a random-access source."""

    code = "INVALID_OFFSET"


class SourceClosedError(MatFileError):
    """Raised when reading from a source that has been closed."""

    code = "SOURCE_CLOSED"


class UnsupportedNestingError(MatFileError):
    """Raised when a compressed element directly wraps another compressed element."""

    code = "UNSUPPORTED_NESTING"


class UnknownTypeCodeError(MatFileError):
    """Raised for a tag type code or array class outside the recognised set."""

    code = "UNKNOWN_TYPE_CODE"


class UnexpectedElementError(MatFileError):
    """Raised when a matrix sub-element has the wrong type or shape."""

    code = "UNEXPECTED_ELEMENT"


class CorruptDataError(MatFileError):
    """Raised when compressed or text payloads cannot be decoded."""

    code = "CORRUPT_DATA"


class HeaderError(MatFileError):
    """Raised when the 128-byte file header is missing or malformed."""

    code = "INVALID_HEADER"


__all__ = [
    "CorruptDataError",
    "HeaderError",
    "InvalidOffsetError",
    "MatFileError",
    "SourceClosedError",
    "TruncatedStreamError",
    "UnexpectedElementError",
    "UnknownTypeCodeError",
    "UnsupportedNestingError",
]
