from __future__ import annotations

import io
from typing import BinaryIO, Dict, Iterator, List, Optional, Tuple

from .constants import (
    CHECKSUM_PAD,
    CHECKSUM_SIZE,
    MAX_ENTRY_SIZE,
    META_PREFIX,
    PACKING_HEADER_EXT,
    PACKING_STORED,
)
from .errors import EntryNotFoundError, FormatError, SentinelPositionError
from .hashutil import HashingWriter, content_hash, name_hash
from .header import EntryHeader, read_cstring, read_exact, write_cstring


def sort_key(name: str) -> str:
    return name.lower()


class PboArchive:
    """In-memory PBO: ordered entries plus header-extension metadata.

    ``entries`` keeps insertion order, which for a read archive is the on-disk
    order. ``write`` re-sorts case-insensitively so output never depends on
    how the entries were gathered.
    """

    def __init__(
        self,
        entries: Optional[Dict[str, bytes]] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.entries: Dict[str, bytes] = {}
        self.metadata: Dict[str, str] = dict(metadata or {})
        self.headers: List[EntryHeader] = []
        self.checksum: Optional[bytes] = None
        for name, data in (entries or {}).items():
            self.add(name, data)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    @property
    def prefix(self) -> Optional[str]:
        return self.metadata.get(META_PREFIX)

    def add(self, name: str, data: bytes) -> None:
        # Last write wins; the stored buffer is never mutated afterwards.
        self.entries[name] = bytes(data)

    def get(self, name: str) -> bytes:
        try:
            return self.entries[name]
        except KeyError:
            raise EntryNotFoundError(name) from None

    def sorted_entries(self) -> List[Tuple[str, bytes]]:
        return sorted(self.entries.items(), key=lambda kv: sort_key(kv[0]))

    # reading

    @classmethod
    def read(cls, f: BinaryIO) -> "PboArchive":
        """Parse an archive from a stream positioned at its first header.

        The trailing checksum is stored but not checked, and entries with a
        packing method other than stored are kept as raw bytes.
        """
        pbo = cls()
        first = True
        while True:
            header = EntryHeader.decode(f)
            if header.is_header_ext:
                if not first:
                    raise SentinelPositionError("Header extension block after the first header")
                while True:
                    key = read_cstring(f)
                    if not key:
                        break
                    pbo.metadata[key] = read_cstring(f)
            elif header.is_terminator:
                break
            else:
                pbo.headers.append(header)
            first = False

        for header in pbo.headers:
            pbo.entries[header.filename] = read_exact(f, header.data_size)

        # One padding byte precedes the digest
        read_exact(f, len(CHECKSUM_PAD))
        pbo.checksum = read_exact(f, CHECKSUM_SIZE)
        return pbo

    @classmethod
    def open(cls, path: str) -> "PboArchive":
        with open(path, "rb") as fh:
            return cls.read(fh)

    # writing

    def _build_headers(self, files: List[Tuple[str, bytes]]) -> bytes:
        buf = io.BytesIO()
        ext = EntryHeader(filename="", packing_method=PACKING_HEADER_EXT)
        ext.encode(buf)
        prefix = self.metadata.get(META_PREFIX)
        if prefix is not None:
            write_cstring(buf, META_PREFIX)
            write_cstring(buf, prefix)
        for key, value in self.metadata.items():
            if key == META_PREFIX:
                continue
            write_cstring(buf, key)
            write_cstring(buf, value)
        write_cstring(buf, "")

        for name, data in files:
            if len(data) > MAX_ENTRY_SIZE:
                raise FormatError(f"Entry too large for the format: {name} ({len(data)} bytes)")
            EntryHeader(
                filename=name,
                packing_method=PACKING_STORED,
                original_size=len(data),
                data_size=len(data),
            ).encode(buf)
        EntryHeader(filename="", packing_method=PACKING_STORED).encode(buf)
        return buf.getvalue()

    def write(self, f: BinaryIO) -> bytes:
        """Serialize to ``f`` and return the SHA-1 written after the payload."""
        files = self.sorted_entries()
        headers = self._build_headers(files)
        out = HashingWriter(f)
        out.write(headers)
        for _name, data in files:
            out.write(data)
        digest = out.digest()
        f.write(CHECKSUM_PAD)
        f.write(digest)
        return digest

    def to_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.write(buf)
        return buf.getvalue()

    def save(self, path: str) -> bytes:
        with open(path, "wb") as fh:
            return self.write(fh)

    # identity

    def name_hash(self) -> bytes:
        return name_hash(self.entries.keys())

    def content_hash(self) -> bytes:
        return content_hash(self.entries.items())

    def verify_checksum(self) -> bool:
        """Recompute the trailing digest and compare with the stored one.

        Only meaningful for archives whose header section is in canonical
        (sorted, stored-only) form, since the digest is recomputed from a fresh
        serialization.
        """
        if self.checksum is None:
            return False
        buf = io.BytesIO()
        return self.write(buf) == self.checksum
