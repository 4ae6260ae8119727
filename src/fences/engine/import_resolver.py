"""Import resolver: turn an import specifier into a package identifier."""

from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING

from fences.engine.package_namer import normalize_path, strip_base_dir

if TYPE_CHECKING:
    from os import PathLike

_QUOTES: frozenset[str] = frozenset({"'", '"', "`"})

# Script extensions dropped from resolved relative imports so the result has
# the same shape as a package identifier built from a file path.
_SCRIPT_EXTENSIONS: tuple[str, ...] = (
    ".d.ts",
    ".ts",
    ".tsx",
    ".mts",
    ".cts",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
)


def strip_quotes(text: str) -> str:
    """Remove one pair of matching enclosing quote characters, if present."""
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] == text[0]:
        return text[1:-1]
    return text


def is_relative_specifier(specifier: str) -> bool:
    """Return True when *specifier* contains a ``./`` or ``../`` segment."""
    return "./" in specifier or "../" in specifier


def _drop_script_extension(path: str) -> str:
    lowered = path.lower()
    for ext in _SCRIPT_EXTENSIONS:
        if lowered.endswith(ext):
            return path[: -len(ext)]
    return path


def resolve_import(
    specifier_text: str,
    importing_file: str | PathLike[str],
    base_dir: str | None,
) -> str:
    """Resolve an import specifier found in *importing_file*.

    *specifier_text* may still carry its quotes (tree-sitter hands back the
    literal token).  Specifiers without a relative segment are external
    package references and come back unchanged; relative ones are joined
    against the importing file's directory and made relative to *base_dir*::

        >>> resolve_import("'../infra/db'", "/p/src/domain/order.ts", "/p/src")
        'infra/db'
        >>> resolve_import("'some-lib'", "/p/src/domain/order.ts", "/p/src")
        'some-lib'
    """
    specifier = strip_quotes(specifier_text)
    if not is_relative_specifier(specifier):
        return specifier

    importing_dir = posixpath.dirname(normalize_path(importing_file))
    joined = normalize_path(posixpath.join(importing_dir, specifier.replace("\\", "/")))
    return _drop_script_extension(strip_base_dir(joined, base_dir))
