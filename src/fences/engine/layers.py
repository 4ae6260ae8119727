"""Layer matcher: classify a package identifier into a layer by glob patterns.

Layers are tested in declaration order and the first layer with any
matching pattern wins.  Specificity plays no part: with

.. code-block:: yaml

    layers:
      app: ["foo/*"]
      feature: ["foo/bar"]

the package ``foo/bar`` belongs to ``app``.  Policy authors must therefore
list layers from most specific to least specific.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from fences.engine.tracing import GLOBS, PATTERNS, RESOLUTION, trace

logger = logging.getLogger(__name__)

# (candidate, pattern) -> matched?
GlobMatcher = Callable[[str, str], bool]


@dataclass(frozen=True)
class LayerDef:
    """A named layer and the glob patterns that select its packages."""

    name: str
    patterns: tuple[str, ...]


def layers_from_mapping(table: Mapping[str, Sequence[str]]) -> tuple[LayerDef, ...]:
    """Build an ordered layer table from a ``{name: [patterns]}`` mapping."""
    return tuple(LayerDef(name=name, patterns=tuple(patterns)) for name, patterns in table.items())


def _match_segments(parts: Sequence[str], pattern_parts: Sequence[str]) -> bool:
    if not pattern_parts:
        return not parts
    head, rest = pattern_parts[0], pattern_parts[1:]
    if head == "**":
        # A trailing ``**`` needs at least one segment: ``app/**`` is not ``app``.
        first = 0 if rest else 1
        return any(_match_segments(parts[i:], rest) for i in range(first, len(parts) + 1))
    if not parts or not fnmatch.fnmatchcase(parts[0], head):
        return False
    return _match_segments(parts[1:], rest)


def glob_match(candidate: str, pattern: str) -> bool:
    """Case-insensitive, base-name-aware glob match.

    A pattern without ``/`` is tested against the last path segment only.
    Otherwise the match is made segment by segment: ``*``, ``?`` and
    ``[...]`` stay within one segment and only a ``**`` segment spans
    directories.  A ``**`` may match zero directories, except at the end
    of a pattern, where it needs at least one.
    """
    candidate = candidate.lower()
    pattern = pattern.lower()

    if "/" not in pattern:
        candidate = candidate.rsplit("/", 1)[-1]
        return fnmatch.fnmatchcase(candidate, pattern)

    return _match_segments(candidate.split("/"), pattern.split("/"))


def match_layer(
    layers: Iterable[LayerDef],
    package: str,
    *,
    matcher: GlobMatcher = glob_match,
    debug: int = 0,
) -> str | None:
    """Return the first layer whose patterns match *package*, or ``None``."""
    trace(logger, debug, RESOLUTION, "resolving %s against layers", package)

    for layer in layers:
        for pattern in layer.patterns:
            trace(logger, debug, PATTERNS, ".... testing %s (%s)", pattern, layer.name)
            if matcher(package, pattern):
                trace(logger, debug, GLOBS, ".... %s matched %s", package, pattern)
                trace(logger, debug, RESOLUTION, ".... got %s", layer.name)
                return layer.name

    trace(logger, debug, RESOLUTION, ".... got nothing")
    return None


def is_excluded(
    package: str,
    excluded: Iterable[str],
    *,
    matcher: GlobMatcher = glob_match,
) -> bool:
    """Return True if *package* matches any exclusion pattern."""
    return any(matcher(package, pattern) for pattern in excluded)
