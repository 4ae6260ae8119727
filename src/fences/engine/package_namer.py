"""Package namer: map a file path to its canonical package identifier."""

from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from os import PathLike


def normalize_path(path: str | PathLike[str]) -> str:
    """Unify separators to ``/`` and collapse ``.``/``..`` segments."""
    raw = str(path).replace("\\", "/")
    if not raw:
        return ""
    return posixpath.normpath(raw)


def strip_base_dir(path: str, base_dir: str | None) -> str:
    """Drop *base_dir* and the separator after it from the front of *path*.

    Only whole segments are stripped: ``/proj/src2`` does not start with
    the base ``/proj/src``.  A *path* equal to *base_dir* becomes ``""``.
    """
    if not base_dir:
        return path
    base = normalize_path(base_dir).rstrip("/")
    if not base:
        # Filesystem root: every absolute path lives under it.
        return path[1:] if path.startswith("/") else path
    if path == base:
        return ""
    if path.startswith(base + "/"):
        return path[len(base) + 1 :]
    return path


def to_package(file_path: str | PathLike[str], base_dir: str | None) -> str:
    """Return the package identifier for *file_path*.

    The identifier is the file's directory relative to *base_dir* joined
    with the file name minus its last extension, e.g.
    ``/proj/src/domain/order.ts`` with base ``/proj/src`` gives
    ``domain/order``.  When the directory is empty after stripping, the
    bare stem is returned.
    """
    normalized = normalize_path(file_path)
    directory, filename = posixpath.split(normalized)
    stem = posixpath.splitext(filename)[0]

    directory = strip_base_dir(directory, base_dir)
    if not directory:
        return stem
    return f"{directory}/{stem}"
