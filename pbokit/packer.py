from __future__ import annotations

import os
from typing import Dict, Iterable, List, Optional

from .archive import PboArchive
from .configc import ConfigCompiler, compile_config
from .constants import CONFIG_BINARY, CONFIG_SOURCE, META_PREFIX, PREFIX_FILE
from .errors import ConfigCompileError
from .globfilter import file_allowed
from .pathutil import norm_entry_name


def list_files(directory: str) -> List[str]:
    """Return every regular file below ``directory``; directories are only descended."""
    files: List[str] = []
    with os.scandir(directory) as it:
        for entry in it:
            if entry.is_dir():
                files.extend(list_files(entry.path))
            else:
                files.append(entry.path)
    return files


def parse_prefix_file(text: str) -> Dict[str, str]:
    """Parse ``$PBOPREFIX$`` contents into header extensions.

    Parsing stops at the first empty line. A line without ``=`` is the prefix
    itself; otherwise it is split on the first ``=`` into key and value.
    """
    meta: Dict[str, str] = {}
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if not line:
            break
        key, sep, value = line.partition("=")
        if not sep:
            meta[META_PREFIX] = line
        else:
            meta[key] = value
    return meta


def pack_directory(
    directory: str,
    exclude_patterns: Iterable[str] = (),
    *,
    compiler: Optional[ConfigCompiler] = None,
) -> PboArchive:
    """Build an archive from a directory tree.

    Args:
        directory: Root folder; entry names are relative to it with ``\\`` separators.
        exclude_patterns: Single-wildcard patterns; matching files are skipped.
        compiler: Config compiler callable. A ``config.cpp`` that survives the
            excludes is always compiled and stored as ``config.bin``, so packing
            such a tree without a compiler fails.
    """
    if not os.path.isdir(directory):
        raise NotADirectoryError(f"Not a directory: {directory}")
    exclude_patterns = list(exclude_patterns)
    pbo = PboArchive()
    config_bin: Optional[bytes] = None

    for path in list_files(directory):
        name = norm_entry_name(os.path.relpath(path, directory))
        if not file_allowed(name, exclude_patterns):
            continue

        if name == PREFIX_FILE:
            with open(path, "r", encoding="utf-8") as fh:
                pbo.metadata.update(parse_prefix_file(fh.read()))
        elif name == CONFIG_SOURCE:
            if compiler is None:
                raise ConfigCompileError(f"No config compiler available for {path}")
            with open(path, "rb") as fh:
                config_bin = compile_config(compiler, path, fh)
        else:
            with open(path, "rb") as fh:
                pbo.add(name, fh.read())

    # Compiled output wins over a literal config.bin regardless of walk order
    if config_bin is not None:
        pbo.add(CONFIG_BINARY, config_bin)

    if META_PREFIX not in pbo.metadata:
        pbo.metadata[META_PREFIX] = os.path.basename(os.path.normpath(os.path.abspath(directory)))
    return pbo
