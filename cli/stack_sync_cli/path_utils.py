from __future__ import annotations

import os
from pathlib import Path


def home_dir() -> Path:
    return Path(os.path.expanduser("~")).resolve()


def expand_tilde(value: str, home: Path) -> str:
    if value == "~":
        return str(home)
    if value.startswith("~/"):
        return str(home / value[2:])
    return value


def resolve_relative(value: str, base_dir: Path, home: Path) -> Path:
    expanded = Path(expand_tilde(value, home))
    if expanded.is_absolute():
        return expanded
    return base_dir / expanded
