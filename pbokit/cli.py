from __future__ import annotations

import argparse
import io
import os
import sys
from typing import Iterable, List, Optional

from pbokit import __version__
from pbokit.archive import PboArchive
from pbokit.configc import load_compiler
from pbokit.constants import (
    INSPECT_NAME_WIDTH,
    INSPECT_NUM_WIDTH,
    META_PREFIX,
    PREFIX_FILE,
)
from pbokit.errors import EntryNotFoundError, PboError, TargetExistsError
from pbokit.globfilter import file_allowed, matches_glob
from pbokit.packer import pack_directory
from pbokit.pathutil import entry_to_relpath


def _read_source(source: Optional[str]) -> PboArchive:
    """Load an archive from a path, or from stdin when no path is given."""
    if source is None:
        return PboArchive.read(io.BytesIO(sys.stdin.buffer.read()))
    return PboArchive.open(source)


def _check_target(target: Optional[str], force: bool) -> None:
    if target is not None and os.path.exists(target) and not force:
        raise TargetExistsError(f"Target already exists: {target} (use --force to overwrite)")


def _write_target(target: Optional[str], data: bytes) -> None:
    if target is None:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    with open(target, "wb") as fh:
        fh.write(data)


def cmd_inspect(source: Optional[str] = None) -> bool:
    """Print header extensions and the header table of an archive.

    Args:
        source: Archive path; stdin when None.
    """
    pbo = _read_source(source)
    if pbo.metadata:
        print("Header extensions:")
        for key, value in pbo.metadata.items():
            print(f"- {key}={value}")
        print("")

    print(f"# Files: {len(pbo.entries)}\n")

    w = INSPECT_NAME_WIDTH
    n = INSPECT_NUM_WIDTH
    print(f"{'Path':<{w}} {'Method':>{n}} {'Original':>{n}} {'Packed':>{n}}")
    print(f"{'':<{w}} {'':>{n}} {'Size':>{n}} {'Size':>{n}}")
    print("=" * (w + 3 * (n + 1)))
    for h in pbo.headers:
        print(f"{h.filename:<{w}} {h.packing_method:>{n}} {h.original_size:>{n}} {h.data_size:>{n}}")
    return True


def cmd_cat(source: Optional[str], name: str, target: Optional[str] = None, *, force: bool = False) -> bool:
    """Write a single entry to ``target`` (stdout when None).

    Returns False when the entry is missing; that is reported, not raised.
    """
    pbo = _read_source(source)
    try:
        data = pbo.get(name)
    except EntryNotFoundError:
        print("not found", file=sys.stderr)
        return False
    _check_target(target, force)
    _write_target(target, data)
    return True


def _unpack_selected(name: str, includes: List[str], excludes: List[str]) -> bool:
    if includes and not any(matches_glob(name, p) for p in includes):
        return False
    return file_allowed(name, excludes)


def cmd_unpack(
    source: Optional[str],
    outdir: str,
    *,
    force: bool = False,
    includes: Optional[Iterable[str]] = None,
    excludes: Optional[Iterable[str]] = None,
) -> bool:
    """Extract every entry into ``outdir`` and re-create ``$PBOPREFIX$``.

    Args:
        source: Archive path; stdin when None.
        outdir: Destination folder, created when missing.
        force: Allow extracting into a non-empty folder, overwriting files.
        includes: When given, only entries matching one of these patterns are written.
        excludes: Entries matching any of these patterns are skipped.
    """
    includes = list(includes or [])
    excludes = list(excludes or [])
    if os.path.isdir(outdir) and os.listdir(outdir) and not force:
        raise TargetExistsError(f"Target folder is not empty: {outdir} (use --force to overwrite)")
    pbo = _read_source(source)
    os.makedirs(outdir, exist_ok=True)

    if pbo.metadata:
        with open(os.path.join(outdir, PREFIX_FILE), "w", encoding="utf-8", newline="\n") as fh:
            prefix = pbo.prefix
            if prefix is not None:
                fh.write(f"{META_PREFIX}={prefix}\n")
            for key, value in pbo.metadata.items():
                if key == META_PREFIX:
                    continue
                fh.write(f"{key}={value}\n")

    written = 0
    for name, data in pbo.entries.items():
        if not _unpack_selected(name, includes, excludes):
            continue
        dst = os.path.join(outdir, entry_to_relpath(name))
        os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
        with open(dst, "wb") as fh:
            fh.write(data)
        written += 1
    print(f"Unpacked {written} file(s) to {outdir}", file=sys.stderr)
    return True


def cmd_pack(
    sourcefolder: str,
    target: Optional[str] = None,
    *,
    excludes: Optional[Iterable[str]] = None,
    force: bool = False,
    compiler_ref: Optional[str] = None,
) -> bool:
    """Pack a folder into an archive written to ``target`` (stdout when None).

    Args:
        sourcefolder: Folder to pack.
        target: Output archive path.
        excludes: Single-wildcard patterns of relative names to leave out.
        force: Overwrite an existing target.
        compiler_ref: ``module:function`` of the config compiler turning a
            ``config.cpp`` into ``config.bin``; packing fails on a ``config.cpp``
            without one.
    """
    _check_target(target, force)
    compiler = load_compiler(compiler_ref) if compiler_ref else None
    pbo = pack_directory(sourcefolder, excludes or (), compiler=compiler)
    buf = io.BytesIO()
    digest = pbo.write(buf)
    data = buf.getvalue()
    _write_target(target, data)
    if target is not None:
        print(
            f"Packed {len(pbo.entries)} file(s) into {target} "
            f"({len(data)} bytes, sha1 {digest.hex()})",
            file=sys.stderr,
        )
    return True


def cmd_hash(source: Optional[str] = None) -> bool:
    """Print the name hash and content hash consumed by signing tools."""
    pbo = _read_source(source)
    print(f"namehash\t{pbo.name_hash().hex()}")
    print(f"contenthash\t{pbo.content_hash().hex()}")
    return True


def cmd_verify(source: Optional[str] = None) -> bool:
    """Recompute the trailing checksum and compare it with the stored one."""
    pbo = _read_source(source)
    ok = pbo.verify_checksum()
    print("OK" if ok else "FAIL")
    return ok


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="pbokit",
        description="PBO archive tool",
        epilog="Archive paths default to stdin, output paths to stdout.",
    )
    ap.add_argument("--version", action="version", version=f"pbokit {__version__}")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_inspect = sub.add_parser("inspect", help="Inspect a PBO")
    ap_inspect.add_argument("source", nargs="?", help="Archive path (default: stdin)")

    ap_cat = sub.add_parser("cat", help="Read a single file from a PBO")
    ap_cat.add_argument("source", help="Archive path")
    ap_cat.add_argument("filename", help="Entry name, e.g. 'data\\file.sqf'")
    ap_cat.add_argument("target", nargs="?", help="Output path (default: stdout)")
    ap_cat.add_argument("-f", "--force", action="store_true", help="Overwrite the target if it exists")

    ap_unpack = sub.add_parser("unpack", help="Unpack a PBO")
    ap_unpack.add_argument("source", help="Archive path")
    ap_unpack.add_argument("targetfolder", help="Output folder")
    ap_unpack.add_argument("-f", "--force", action="store_true", help="Extract into a non-empty folder")
    ap_unpack.add_argument(
        "-i", "--include", action="append", default=[], metavar="PATTERN",
        help="Only extract entries matching this pattern (repeatable)",
    )
    ap_unpack.add_argument(
        "-x", "--exclude", action="append", default=[], metavar="PATTERN",
        help="Do not extract entries matching this pattern (repeatable)",
    )

    for name, help_text in (
        ("pack", "Pack a folder into a PBO, compiling config.cpp into config.bin"),
        ("build", "Pack a folder into a PBO (alias of pack)"),
    ):
        ap_p = sub.add_parser(name, help=help_text)
        ap_p.add_argument("sourcefolder", help="Folder to pack")
        ap_p.add_argument("target", nargs="?", help="Output path (default: stdout)")
        ap_p.add_argument("-f", "--force", action="store_true", help="Overwrite the target if it exists")
        ap_p.add_argument(
            "-x", "--exclude", action="append", default=[], metavar="PATTERN",
            help="Glob pattern to exclude from the PBO (repeatable, one '*' per pattern)",
        )
        ap_p.add_argument(
            "--config-compiler", metavar="MODULE:FUNC",
            help="Callable compiling config.cpp to config.bin (required when config.cpp is packed)",
        )

    ap_hash = sub.add_parser("hash", help="Print the name and content hashes of a PBO")
    ap_hash.add_argument("source", nargs="?", help="Archive path (default: stdin)")

    ap_verify = sub.add_parser("verify", help="Check the trailing SHA-1 of a PBO")
    ap_verify.add_argument("source", nargs="?", help="Archive path (default: stdin)")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "inspect":
            ok = cmd_inspect(args.source)
        elif args.cmd == "cat":
            ok = cmd_cat(args.source, args.filename, args.target, force=args.force)
        elif args.cmd == "unpack":
            ok = cmd_unpack(
                args.source,
                args.targetfolder,
                force=args.force,
                includes=args.include,
                excludes=args.exclude,
            )
        elif args.cmd in ("pack", "build"):
            ok = cmd_pack(
                args.sourcefolder,
                args.target,
                excludes=args.exclude,
                force=args.force,
                compiler_ref=args.config_compiler,
            )
        elif args.cmd == "hash":
            ok = cmd_hash(args.source)
        elif args.cmd == "verify":
            ok = cmd_verify(args.source)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: no such file or directory: {e.filename or e}", file=sys.stderr)
        return 2
    except (PboError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
