"""I/O helpers for scenario files and simulation artefacts."""

from __future__ import annotations

import json
import re
from pathlib import Path

import yaml

__all__ = [
    "ensure_dir",
    "safe_path_segment",
    "read_yaml",
    "write_yaml",
    "write_json",
]


# Characters rejected by common filesystems.
INVALID_FS_CHARS = r'[<>:"/\\|?*\x00-\x1F]'


def ensure_dir(path: Path | str) -> Path:
    """Create ``path`` (with parents) if needed and return it as a :class:`Path`."""

    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj


def safe_path_segment(name: str) -> str:
    """Return ``name`` with characters forbidden in file names replaced by ``-``."""

    safe = re.sub(INVALID_FS_CHARS, "-", str(name))
    return safe.rstrip(" .")


def read_yaml(path: Path | str) -> object:
    """Load a YAML document and return the corresponding Python object."""

    with Path(path).open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def write_yaml(data: object, path: Path | str) -> Path:
    """Write ``data`` to ``path`` as YAML with sorted keys."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=True)
    return target


def write_json(data: object, path: Path | str, *, indent: int = 2) -> Path:
    """Serialise ``data`` to JSON, terminating the file with a newline."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=indent, sort_keys=True)
        handle.write("\n")
    return target
