from __future__ import annotations

import io
import os
import struct
import tempfile
import unittest
from pathlib import Path

from Cryptodome.Hash import SHA1

from pbokit.archive import PboArchive
from pbokit.constants import CHECKSUM_SIZE, PACKING_HEADER_EXT
from pbokit.errors import (
    EntryNotFoundError,
    FormatError,
    SentinelPositionError,
    TruncatedArchiveError,
)
from pbokit.header import EntryHeader


def _sample_archive() -> PboArchive:
    pbo = PboArchive(metadata={"prefix": "x\\sample", "author": "tester", "version": "1.2"})
    pbo.add("scripts\\Init.sqf", b"hint 'hello';\n")
    pbo.add("README.txt", b"readme\n" * 10)
    pbo.add("data\\logo.paa", os.urandom(256))
    pbo.add("empty.txt", b"")
    return pbo


def _written_names(raw: bytes):
    """Entry header names in the order they appear on disk."""
    f = io.BytesIO(raw)
    names = []
    while True:
        h = EntryHeader.decode(f)
        if h.is_header_ext:
            while True:
                key = _cstr(f)
                if not key:
                    break
                _cstr(f)
            continue
        if h.is_terminator:
            return names
        names.append(h.filename)


def _cstr(f) -> str:
    out = bytearray()
    while True:
        c = f.read(1)
        if c == b"\x00":
            return out.decode("utf-8")
        out += c


class ArchiveRoundTripTests(unittest.TestCase):
    def test_roundtrip_entries_and_metadata(self):
        pbo = _sample_archive()
        raw = pbo.to_bytes()
        back = PboArchive.read(io.BytesIO(raw))
        self.assertEqual(back.entries, pbo.entries)
        self.assertEqual(back.metadata, pbo.metadata)
        self.assertEqual(len(back.checksum), CHECKSUM_SIZE)
        self.assertEqual([h.filename for h in back.headers], list(back.entries))
        self.assertIsNone(pbo.checksum)
        self.assertEqual(pbo.headers, [])

    def test_write_is_deterministic(self):
        pbo = _sample_archive()
        self.assertEqual(pbo.to_bytes(), pbo.to_bytes())

    def test_insertion_order_does_not_matter(self):
        a = PboArchive(entries={"b.txt": b"2", "A.txt": b"1", "c.txt": b"3"}, metadata={"prefix": "p"})
        b = PboArchive(entries={"c.txt": b"3", "b.txt": b"2", "A.txt": b"1"}, metadata={"prefix": "p"})
        self.assertEqual(a.to_bytes(), b.to_bytes())

    def test_headers_sorted_case_insensitively(self):
        pbo = PboArchive(entries={"b.sqf": b"", "C.sqf": b"", "a.sqf": b"", "B2.sqf": b""})
        names = _written_names(pbo.to_bytes())
        self.assertEqual(names, ["a.sqf", "b.sqf", "B2.sqf", "C.sqf"])
        lowered = [n.lower() for n in names]
        self.assertEqual(lowered, sorted(lowered))

    def test_read_keeps_disk_order(self):
        pbo = PboArchive(entries={"z.txt": b"z", "a.txt": b"a"})
        back = PboArchive.read(io.BytesIO(pbo.to_bytes()))
        self.assertEqual(list(back.entries), ["a.txt", "z.txt"])

    def test_layout_and_checksum(self):
        pbo = PboArchive(entries={"a.txt": b"abc"}, metadata={"prefix": "pre", "k": "v"})
        raw = pbo.to_bytes()
        expected_headers = (
            b"\x00" + struct.pack("<IIIII", PACKING_HEADER_EXT, 0, 0, 0, 0)
            + b"prefix\x00pre\x00k\x00v\x00\x00"
            + b"a.txt\x00" + struct.pack("<IIIII", 0, 3, 0, 0, 3)
            + b"\x00" + struct.pack("<IIIII", 0, 0, 0, 0, 0)
        )
        body = expected_headers + b"abc"
        self.assertEqual(raw[: len(body)], body)
        self.assertEqual(raw[len(body)], 0)
        self.assertEqual(raw[len(body) + 1 :], SHA1.new(body).digest())
        self.assertEqual(len(raw), len(body) + 1 + CHECKSUM_SIZE)

    def test_prefix_written_first(self):
        pbo = PboArchive(metadata={"a": "1", "prefix": "p", "b": "2"})
        raw = pbo.to_bytes()
        self.assertTrue(raw[21:].startswith(b"prefix\x00p\x00"))

    def test_empty_archive(self):
        pbo = PboArchive()
        back = PboArchive.read(io.BytesIO(pbo.to_bytes()))
        self.assertEqual(back.entries, {})
        self.assertEqual(back.metadata, {})
        self.assertTrue(back.verify_checksum())

    def test_write_returns_digest(self):
        pbo = _sample_archive()
        buf = io.BytesIO()
        digest = pbo.write(buf)
        self.assertEqual(buf.getvalue()[-CHECKSUM_SIZE:], digest)

    def test_prefix_property(self):
        self.assertEqual(_sample_archive().prefix, "x\\sample")
        self.assertIsNone(PboArchive().prefix)

    def test_duplicate_add_last_write_wins(self):
        pbo = PboArchive()
        pbo.add("a.txt", b"one")
        pbo.add("a.txt", b"two")
        self.assertEqual(len(pbo), 1)
        self.assertEqual(pbo.get("a.txt"), b"two")

    def test_save_and_open(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out.pbo"
            pbo = _sample_archive()
            pbo.save(str(path))
            back = PboArchive.open(str(path))
            self.assertEqual(back.entries, pbo.entries)
            self.assertTrue(back.verify_checksum())


class ArchiveReadErrorTests(unittest.TestCase):
    def test_truncated_payload(self):
        raw = PboArchive(entries={"a.txt": b"0123456789"}).to_bytes()
        cut = raw[: -(CHECKSUM_SIZE + 1 + 5)]
        with self.assertRaises(TruncatedArchiveError):
            PboArchive.read(io.BytesIO(cut))

    def test_truncated_checksum(self):
        raw = PboArchive(entries={"a.txt": b"x"}).to_bytes()
        with self.assertRaises(TruncatedArchiveError):
            PboArchive.read(io.BytesIO(raw[:-3]))

    def test_missing_terminator(self):
        buf = io.BytesIO()
        EntryHeader("a.txt", 0, 1, 0, 0, 1).encode(buf)
        with self.assertRaises(FormatError):
            PboArchive.read(io.BytesIO(buf.getvalue()))

    def test_late_sentinel_rejected(self):
        buf = io.BytesIO()
        EntryHeader("a.txt", 0, 1, 0, 0, 1).encode(buf)
        EntryHeader("", PACKING_HEADER_EXT).encode(buf)
        buf.write(b"\x00")
        with self.assertRaises(SentinelPositionError):
            PboArchive.read(io.BytesIO(buf.getvalue()))

    def test_archive_without_extension_block(self):
        buf = io.BytesIO()
        EntryHeader("a.txt", 0, 2, 0, 0, 2).encode(buf)
        EntryHeader("").encode(buf)
        buf.write(b"hi" + b"\x00" + b"\x11" * CHECKSUM_SIZE)
        pbo = PboArchive.read(io.BytesIO(buf.getvalue()))
        self.assertEqual(pbo.entries, {"a.txt": b"hi"})
        self.assertEqual(pbo.metadata, {})
        self.assertEqual(pbo.checksum, b"\x11" * CHECKSUM_SIZE)

    def test_checksum_not_verified_on_read(self):
        raw = bytearray(_sample_archive().to_bytes())
        raw[-1] ^= 0xFF
        pbo = PboArchive.read(io.BytesIO(bytes(raw)))
        self.assertFalse(pbo.verify_checksum())

    def test_unknown_packing_method_kept_raw(self):
        buf = io.BytesIO()
        EntryHeader("", PACKING_HEADER_EXT).encode(buf)
        buf.write(b"\x00")
        EntryHeader("packed.bin", 0x43707273, 10, 0, 0, 4).encode(buf)
        EntryHeader("").encode(buf)
        buf.write(b"\x01\x02\x03\x04" + b"\x00" + b"\x22" * CHECKSUM_SIZE)
        pbo = PboArchive.read(io.BytesIO(buf.getvalue()))
        self.assertEqual(pbo.get("packed.bin"), b"\x01\x02\x03\x04")
        self.assertEqual(pbo.headers[0].packing_method, 0x43707273)
        self.assertEqual(pbo.headers[0].original_size, 10)

    def test_get_missing_entry(self):
        pbo = _sample_archive()
        with self.assertRaises(EntryNotFoundError) as cm:
            pbo.get("nope.txt")
        self.assertIn("nope.txt", str(cm.exception))
        # still usable as a plain lookup error
        with self.assertRaises(KeyError):
            pbo.get("nope.txt")


class IdentityHashTests(unittest.TestCase):
    def test_name_hash_ignores_content_and_case(self):
        a = PboArchive(entries={"Data\\A.sqf": b"1", "b.txt": b"2"})
        b = PboArchive(entries={"b.TXT": b"other", "data\\a.sqf": b"different"})
        self.assertEqual(a.name_hash(), b.name_hash())

    def test_name_hash_value(self):
        pbo = PboArchive(entries={"B.txt": b"", "a.txt": b""})
        self.assertEqual(pbo.name_hash(), SHA1.new(b"a.txtb.txt").digest())

    def test_name_hash_depends_on_names(self):
        a = PboArchive(entries={"a.txt": b""})
        b = PboArchive(entries={"b.txt": b""})
        self.assertNotEqual(a.name_hash(), b.name_hash())

    def test_content_hash_skips_media(self):
        only_media = PboArchive(entries={"texture.paa": b"\x00" * 64})
        empty = PboArchive()
        self.assertEqual(only_media.content_hash(), empty.content_hash())
        self.assertEqual(empty.content_hash(), SHA1.new(b"nothing").digest())

    def test_content_hash_uses_iteration_order(self):
        pbo = PboArchive()
        pbo.add("z.sqf", b"zz")
        pbo.add("model.p3d", b"mesh")
        pbo.add("a.sqf", b"aa")
        self.assertEqual(pbo.content_hash(), SHA1.new(b"zzaa").digest())

    def test_content_hash_extension_is_case_sensitive(self):
        pbo = PboArchive(entries={"TEXTURE.PAA": b"abc"})
        self.assertEqual(pbo.content_hash(), SHA1.new(b"abc").digest())


if __name__ == "__main__":
    unittest.main()
