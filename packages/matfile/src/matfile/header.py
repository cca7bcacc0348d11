"""The fixed 128-byte MAT-File Level 5 header."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final

from .errors import HeaderError
from .tags import ByteOrder

HEADER_SIZE: Final[int] = 128
DESCRIPTION_SIZE: Final[int] = 116
SUBSYSTEM_OFFSET_SIZE: Final[int] = 8
MAT5_VERSION: Final[int] = 0x0100

# 'MI' written as a 16-bit value reads back as 'IM' on a little-endian writer
_ENDIAN_PATTERNS: Final[dict[bytes, ByteOrder]] = {
    b"IM": ByteOrder.LITTLE,
    b"MI": ByteOrder.BIG,
}


@dataclass(frozen=True, slots=True)
class Header:
    """Parsed file header. ``subsystem_offset`` is passed through untouched."""

    description: str
    subsystem_offset: bytes
    version: int
    byte_order: ByteOrder

    @property
    def has_subsystem_data(self) -> bool:
        return self.subsystem_offset.strip(b" \x00") != b""


def parse_header(data: bytes) -> Header:
    """Parse the first :data:`HEADER_SIZE` bytes of a file.

    The endian indicator is matched by byte pattern before any multi-byte
    field is interpreted, then the version is read in the selected order.

    Raises:
        HeaderError: If the header is short, the endian indicator is not one
            of the two known patterns, or the version is not 0x0100.
    """

    if len(data) < HEADER_SIZE:
        raise HeaderError(
            f"file header needs {HEADER_SIZE} bytes, {len(data)} available"
        )

    indicator = bytes(data[126:128])
    byte_order = _ENDIAN_PATTERNS.get(indicator)
    if byte_order is None:
        raise HeaderError(
            f"unrecognised endian indicator {indicator!r}; "
            "not a MAT-File Level 5 container"
        )

    (version,) = struct.unpack(byte_order.prefix + "H", data[124:126])
    if version != MAT5_VERSION:
        raise HeaderError(f"unsupported MAT-file version 0x{version:04X}")

    description = (
        bytes(data[:DESCRIPTION_SIZE]).decode("latin-1").rstrip(" \x00")
    )
    return Header(
        description=description,
        subsystem_offset=bytes(data[DESCRIPTION_SIZE : DESCRIPTION_SIZE + 8]),
        version=version,
        byte_order=byte_order,
    )


def default_description(now: datetime | None = None) -> str:
    """Description text in the form MATLAB and Octave write it."""

    moment = now or datetime.now(tz=UTC)
    return (
        "MATLAB 5.0 MAT-file, Platform: python, Created on: "
        + moment.strftime("%a %b %d %H:%M:%S %Y")
    )


def encode_header(
    byte_order: ByteOrder = ByteOrder.LITTLE,
    *,
    description: str | None = None,
    subsystem_offset: bytes = b"\x00" * SUBSYSTEM_OFFSET_SIZE,
) -> bytes:
    """Build a 128-byte header; the description is space padded to 116 bytes."""

    text = (description if description is not None else default_description())
    encoded = text.encode("latin-1", errors="replace")[:DESCRIPTION_SIZE]
    if len(subsystem_offset) != SUBSYSTEM_OFFSET_SIZE:
        raise ValueError("subsystem_offset must be exactly 8 bytes")
    return (
        encoded.ljust(DESCRIPTION_SIZE, b" ")
        + subsystem_offset
        + struct.pack(byte_order.prefix + "H", MAT5_VERSION)
        + struct.pack(byte_order.prefix + "H", 0x4D49)
    )
