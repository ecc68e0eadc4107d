from __future__ import annotations

from typing import BinaryIO, Iterable, Tuple

from Cryptodome.Hash import SHA1

from .constants import CONTENT_HASH_EMPTY, CONTENT_HASH_SKIP_EXTS


def new_sha1(data: bytes = b""):
    h = SHA1.new()
    if data:
        h.update(data)
    return h


class HashingWriter:
    """Write-through wrapper that feeds every byte written into a SHA-1."""

    def __init__(self, fh: BinaryIO):
        self.fh = fh
        self._h = new_sha1()

    def write(self, data: bytes) -> int:
        self.fh.write(data)
        self._h.update(data)
        return len(data)

    def digest(self) -> bytes:
        return self._h.digest()


def name_hash(names: Iterable[str]) -> bytes:
    # Lowercase first, then sort: the sort key and the hashed text are the same string.
    h = new_sha1()
    for name in sorted(n.lower() for n in names):
        h.update(name.encode("utf-8"))
    return h.digest()


def _hash_skipped(name: str) -> bool:
    ext = name.rsplit(".", 1)[-1]
    return ext in CONTENT_HASH_SKIP_EXTS


def content_hash(items: Iterable[Tuple[str, bytes]]) -> bytes:
    """SHA-1 over entry contents in the given order, minus denylisted media.

    When nothing is left to hash the digest of a fixed placeholder is returned
    so empty and media-only archives still get a stable value.
    """
    h = new_sha1()
    nothing = True
    for name, data in items:
        if _hash_skipped(name):
            continue
        h.update(data)
        nothing = False
    if nothing:
        h.update(CONTENT_HASH_EMPTY)
    return h.digest()
