from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

from .constants import PACKING_HEADER_EXT, PACKING_STORED
from .errors import FormatError, TruncatedArchiveError


# Fixed part following the name (little endian):
#  - packing_method u32
#  - original_size u32
#  - reserved u32
#  - timestamp u32
#  - data_size u32
_HDR_STRUCT = struct.Struct("<IIIII")


def read_exact(f: BinaryIO, n: int) -> bytes:
    b = f.read(n)
    if len(b) != n:
        raise TruncatedArchiveError(f"Unexpected EOF (wanted {n} bytes, got {len(b)})")
    return b


def read_cstring(f: BinaryIO) -> str:
    """Read a NUL-terminated UTF-8 string; the terminator is consumed."""
    buf = bytearray()
    while True:
        c = f.read(1)
        if not c:
            raise TruncatedArchiveError("Unexpected EOF inside string")
        if c == b"\x00":
            break
        buf += c
    try:
        return buf.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError(f"String is not valid UTF-8: {bytes(buf)!r}") from exc


def write_cstring(f: BinaryIO, s: str) -> None:
    f.write(s.encode("utf-8"))
    f.write(b"\x00")


@dataclass
class EntryHeader:
    filename: str
    packing_method: int = PACKING_STORED
    original_size: int = 0
    reserved: int = 0
    timestamp: int = 0
    data_size: int = 0

    @property
    def is_header_ext(self) -> bool:
        return self.packing_method == PACKING_HEADER_EXT

    @property
    def is_terminator(self) -> bool:
        return not self.filename and not self.is_header_ext

    @classmethod
    def decode(cls, f: BinaryIO) -> "EntryHeader":
        name = read_cstring(f)
        method, orig, reserved, ts, size = _HDR_STRUCT.unpack(read_exact(f, _HDR_STRUCT.size))
        return cls(
            filename=name,
            packing_method=method,
            original_size=orig,
            reserved=reserved,
            timestamp=ts,
            data_size=size,
        )

    def encode(self, f: BinaryIO) -> None:
        write_cstring(f, self.filename)
        f.write(
            _HDR_STRUCT.pack(
                self.packing_method,
                self.original_size,
                self.reserved,
                self.timestamp,
                self.data_size,
            )
        )
