"""Paths to data files that sit next to the running program."""

from __future__ import annotations

import functools
import os
import sys


@functools.lru_cache(maxsize=None)
def _program_dir() -> str:
    program = sys.argv[0] if sys.argv and sys.argv[0] else ""
    if not program:
        return os.getcwd()
    return os.path.dirname(os.path.abspath(program))


def data_path(suffix: str) -> str:
    """``suffix`` joined onto the directory of the running program."""
    return _program_dir() + "/" + suffix