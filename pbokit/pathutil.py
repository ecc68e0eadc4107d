from __future__ import annotations

import os


def norm_entry_name(p: str) -> str:
    """Normalize a filesystem-relative path to the archive's backslash form."""
    return p.replace(os.sep, "\\").replace("/", "\\")


def entry_to_relpath(name: str) -> str:
    """Map an archive entry name to a safe relative filesystem path.

    Rules:
    - Accept both backslashes and slashes as separators
    - Strip leading/trailing separators
    - Remove empty and '.' segments
    - Reject '..' segments and segments carrying a drive or stream (':')
    """
    parts = [q for q in name.replace("\\", "/").strip("/").split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError(f"Entry name may not contain '..': {name}")
        if ":" in q:
            raise ValueError(f"Entry name may not contain ':': {name}")
    if not parts:
        raise ValueError(f"Entry name has no path components: {name!r}")
    return os.path.join(*parts)
