"""Syntax-tree capability interface and its tree-sitter implementation.

The walker only needs a handful of things from a node, captured by
:class:`SyntaxNode`.  :class:`TreeSitterNode` provides them for trees
produced by the tree-sitter TypeScript/TSX grammars.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from tree_sitter import Language, Parser

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from tree_sitter import Node as TSNode


class SyntaxNode(Protocol):
    """What the boundary walker needs from a syntax-tree node."""

    @property
    def kind(self) -> str: ...

    @property
    def text(self) -> str: ...

    @property
    def start(self) -> int: ...

    @property
    def end(self) -> int: ...

    @property
    def line(self) -> int:
        """1-based line of the node start."""
        ...

    @property
    def column(self) -> int:
        """0-based column of the node start."""
        ...

    def children(self) -> Sequence[SyntaxNode]: ...

    def is_import(self) -> bool:
        """True for the string-literal specifier of an import-like construct."""
        ...


# ---------------------------------------------------------------------------
# tree-sitter adapter
# ---------------------------------------------------------------------------

# Statements whose ``source`` field holds a module specifier.
_SOURCE_PARENTS: frozenset[str] = frozenset({"import_statement", "export_statement"})


class TreeSitterNode:
    """:class:`SyntaxNode` over a ``tree_sitter.Node``."""

    __slots__ = ("_node",)

    def __init__(self, node: TSNode) -> None:
        self._node = node

    def __repr__(self) -> str:
        return f"TreeSitterNode({self._node.type!r}, {self.start}..{self.end})"

    @property
    def kind(self) -> str:
        return self._node.type

    @property
    def text(self) -> str:
        raw = self._node.text
        return raw.decode("utf-8", errors="replace") if raw else ""

    @property
    def start(self) -> int:
        return self._node.start_byte

    @property
    def end(self) -> int:
        return self._node.end_byte

    @property
    def line(self) -> int:
        return self._node.start_point.row + 1

    @property
    def column(self) -> int:
        return self._node.start_point.column

    def children(self) -> list[TreeSitterNode]:
        return [TreeSitterNode(child) for child in self._node.children]

    def is_import(self) -> bool:
        node = self._node
        if node.type != "string":
            return False
        parent = node.parent
        if parent is None:
            return False
        if parent.type == "import_require_clause":
            # import x = require("./y")
            return True
        if parent.type not in _SOURCE_PARENTS:
            return False
        source = parent.child_by_field_name("source")
        return (
            source is not None
            and source.start_byte == node.start_byte
            and source.end_byte == node.end_byte
        )


# ---------------------------------------------------------------------------
# Grammar loading (lazy)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LangConfig:
    """Tree-sitter grammar for a family of file extensions."""

    name: str
    language: Language


def _load_typescript() -> LangConfig:
    import tree_sitter_typescript as tstypescript

    return LangConfig(name="typescript", language=Language(tstypescript.language_typescript()))


def _load_tsx() -> LangConfig:
    import tree_sitter_typescript as tstypescript

    return LangConfig(name="tsx", language=Language(tstypescript.language_tsx()))


# Extension -> loader function mapping.
_EXTENSION_LOADERS: dict[str, Callable[[], LangConfig]] = {
    ".ts": _load_typescript,
    ".mts": _load_typescript,
    ".cts": _load_typescript,
    ".js": _load_tsx,
    ".mjs": _load_tsx,
    ".cjs": _load_tsx,
    ".tsx": _load_tsx,
    ".jsx": _load_tsx,
}

# Cache for loaded grammars (None means "tried and failed").
_LANG_CACHE: dict[str, LangConfig | None] = {}


def get_lang_config(extension: str) -> LangConfig | None:
    """Get the grammar for a file extension, or ``None`` if unsupported/unavailable."""
    extension = extension.lower()
    if extension in _LANG_CACHE:
        return _LANG_CACHE[extension]

    loader = _EXTENSION_LOADERS.get(extension)
    if loader is None:
        _LANG_CACHE[extension] = None
        return None

    try:
        config = loader()
    except ImportError:
        _LANG_CACHE[extension] = None
        return None

    _LANG_CACHE[extension] = config
    return config


def supported_extensions() -> frozenset[str]:
    """Return every file extension the parser knows about."""
    return frozenset(_EXTENSION_LOADERS)


def clear_cache() -> None:
    """Clear the grammar cache (useful for testing)."""
    _LANG_CACHE.clear()


def parse_source(source: str | bytes, extension: str = ".ts") -> TreeSitterNode:
    """Parse *source* with the grammar for *extension* and return the root node.

    Raises ``ValueError`` if no grammar is available for *extension*.
    """
    config = get_lang_config(extension)
    if config is None:
        msg = f"no parser available for '{extension}' files"
        raise ValueError(msg)

    content = source.encode("utf-8") if isinstance(source, str) else source
    tree = Parser(config.language).parse(content)
    return TreeSitterNode(tree.root_node)


def parse_file(file_path: Path) -> TreeSitterNode | None:
    """Parse a source file, returning ``None`` when it cannot be read or parsed."""
    if get_lang_config(file_path.suffix) is None:
        return None
    try:
        content = file_path.read_bytes()
    except OSError:
        return None
    return parse_source(content, file_path.suffix)
