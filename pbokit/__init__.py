"""
pbokit — reader/writer for PBO archives.

Features:

- Bit-exact read/write of the flat, uncompressed PBO container: header-extension
  block, entry header table, payloads, padding byte and trailing SHA-1.
- Deterministic output: entries are written in case-insensitive name order.
- Directory packing with single-wildcard exclude patterns, ``$PBOPREFIX$``
  handling and an external config compiler turning ``config.cpp`` into ``config.bin``.
- Name hash and content hash identities for external signing tools.
- CLI (``pbokit``): inspect, cat, unpack, pack, build, hash, verify.

The trailing checksum is informational; reading never validates it.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "header",
    "globfilter",
    "archive",
    "packer",
    "cli",
]

# Importable programmatic API is available via pbokit.archive.PboArchive and
# pbokit.packer.pack_directory; the CLI functions in pbokit.cli (cmd_pack/cmd_unpack)
# take normal parameters.
