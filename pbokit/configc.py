"""Boundary to the external config compiler.

A compiler is any callable taking the path of a ``config.cpp`` and an open
binary handle on it, and returning a seekable binary buffer holding the
compiled ``config.bin``. pbokit ships no compiler of its own; ``pack`` and
``build`` load one by dotted reference.
"""

from __future__ import annotations

import importlib
from typing import BinaryIO, Callable

from .errors import ConfigCompileError


ConfigCompiler = Callable[[str, BinaryIO], BinaryIO]


def load_compiler(ref: str) -> ConfigCompiler:
    """Resolve ``"package.module:function"`` to a compiler callable."""
    mod_name, sep, attr = ref.partition(":")
    if not sep or not mod_name or not attr:
        raise ConfigCompileError(f"Compiler reference must look like 'module:function', got {ref!r}")
    try:
        mod = importlib.import_module(mod_name)
    except ImportError as exc:
        raise ConfigCompileError(f"Cannot import compiler module {mod_name!r}: {exc}") from exc
    fn = getattr(mod, attr, None)
    if fn is None or not callable(fn):
        raise ConfigCompileError(f"{ref!r} is not a callable")
    return fn


def compile_config(compiler: ConfigCompiler, path: str, fh: BinaryIO) -> bytes:
    try:
        out = compiler(path, fh)
    except ConfigCompileError:
        raise
    except Exception as exc:
        raise ConfigCompileError(f"Failed to compile {path}: {exc}") from exc
    out.seek(0)
    return out.read()
