"""Boundary walker: check every import in one file against the layer policy.

Each file runs through a small state machine::

    UNCLASSIFIED --excluded-------------------------------> DONE
    UNCLASSIFIED --no layer (1 violation)-----------------> ABORTED
    UNCLASSIFIED --layer found--> CLASSIFIED --all nodes--> DONE

A file without a layer gets exactly one violation and none of its nodes
are visited, so it never produces a flood of import violations.  In the
classified state every import node is checked and traversal always goes
on, whether or not the import was allowed.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fences.engine.import_resolver import resolve_import
from fences.engine.layers import GlobMatcher, glob_match, is_excluded, match_layer
from fences.engine.package_namer import to_package
from fences.engine.tracing import NODES, RESOLUTION, SKIPS, trace

if TYPE_CHECKING:
    from fences.engine.policy import Policy
    from fences.engine.syntax import SyntaxNode

logger = logging.getLogger(__name__)

UNCLASSIFIED_FILE = "unclassified_file"
UNMATCHED_IMPORT = "unmatched_import"
FORBIDDEN_IMPORT = "forbidden_import"


class WalkState(enum.Enum):
    UNCLASSIFIED = "unclassified"
    CLASSIFIED = "classified"
    ABORTED = "aborted"
    DONE = "done"


class Step(enum.Enum):
    """What the traversal does after visiting a node."""

    DESCEND = "descend"
    STOP = "stop"


@dataclass(frozen=True)
class ImportEdge:
    """One import found while walking a file."""

    file_path: str
    start: int
    end: int
    specifier: str  # raw text, quotes included
    package: str  # resolved target package
    layer: str | None  # resolved target layer


@dataclass(frozen=True)
class Violation:
    """A single boundary violation."""

    file_path: str
    start: int  # byte offset
    end: int  # byte offset
    line: int  # 1-based
    column: int  # 0-based
    rule_type: str  # "unclassified_file" | "unmatched_import" | "forbidden_import"
    message: str
    package: str | None = None  # imported package, for import violations


@dataclass
class BoundaryWalker:
    """Checks one file.  Create a fresh walker per file."""

    policy: Policy
    file_path: str
    matcher: GlobMatcher = glob_match
    state: WalkState = WalkState.UNCLASSIFIED
    package: str = ""
    layer: str | None = None
    violations: list[Violation] = field(default_factory=list)
    edges: list[ImportEdge] = field(default_factory=list)

    def run(self, root: SyntaxNode) -> list[Violation]:
        """Classify the file and walk *root*; return violations in document order."""
        if self.state is not WalkState.UNCLASSIFIED:
            msg = f"walker for {self.file_path} already ran (state {self.state.value})"
            raise RuntimeError(msg)

        debug = self.policy.debug
        self.package = to_package(self.file_path, self.policy.base_dir)

        if is_excluded(self.package, self.policy.excluded, matcher=self.matcher):
            trace(
                logger,
                debug,
                SKIPS,
                "Skipping %s in package %s because it was excluded",
                self.file_path,
                self.package,
            )
            self.state = WalkState.DONE
            return self.violations

        self.layer = match_layer(
            self.policy.layers, self.package, matcher=self.matcher, debug=debug
        )
        if self.layer is None:
            children = root.children()
            anchor = children[0] if children else root
            self._add(
                anchor,
                UNCLASSIFIED_FILE,
                f"File not found in layers config and was not excluded. ({self.package})",
            )
            self.state = WalkState.ABORTED
            return self.violations

        self.state = WalkState.CLASSIFIED
        self._traverse(root)
        self.state = WalkState.DONE
        return self.violations

    # -- traversal ---------------------------------------------------------

    def _traverse(self, root: SyntaxNode) -> None:
        """Pre-order walk over the descendants of *root*."""
        stack: list[tuple[SyntaxNode, str]] = [
            (child, "") for child in reversed(root.children())
        ]
        while stack:
            node, parent_path = stack.pop()
            if self.visit(node, parent_path) is Step.STOP:
                return
            path = f"{parent_path}:{node.kind}"
            stack.extend((child, path) for child in reversed(node.children()))

    def visit(self, node: SyntaxNode, parent_path: str = "") -> Step:
        """Check *node* if it is an import; tell the traversal how to go on."""
        if self.state is not WalkState.CLASSIFIED:
            return Step.STOP

        if node.is_import():
            self._check_import(node)

        if self.policy.debug >= NODES:
            trace(logger, self.policy.debug, NODES, "%s:%s %s", parent_path, node.kind, node.text)
        return Step.DESCEND

    def _check_import(self, node: SyntaxNode) -> None:
        assert self.layer is not None
        debug = self.policy.debug

        package = resolve_import(node.text, self.file_path, self.policy.base_dir)
        trace(logger, debug, RESOLUTION, "%s found import %s", self.package, package)
        target = match_layer(self.policy.layers, package, matcher=self.matcher, debug=debug)
        self.edges.append(
            ImportEdge(
                file_path=self.file_path,
                start=node.start,
                end=node.end,
                specifier=node.text,
                package=package,
                layer=target,
            )
        )

        if target is None:
            self._add(node, UNMATCHED_IMPORT, f"{package} not matched to any layer", package)
            return

        # Same-layer imports are always allowed.
        if target == self.layer:
            return

        allowed = self.policy.allowed_targets(self.layer)
        trace(
            logger,
            debug,
            RESOLUTION,
            "tested: %s imported %s from layer %s, allowed: %s",
            self.package,
            package,
            target,
            allowed,
        )
        if allowed is None or target not in allowed:
            self._add(
                node,
                FORBIDDEN_IMPORT,
                f"'{self.layer}' is not allowed to import '{target}' ({package})",
                package,
            )

    def _add(
        self, node: SyntaxNode, rule_type: str, message: str, package: str | None = None
    ) -> None:
        self.violations.append(
            Violation(
                file_path=self.file_path,
                start=node.start,
                end=node.end,
                line=node.line,
                column=node.column,
                rule_type=rule_type,
                message=message,
                package=package,
            )
        )


def check_file(
    root: SyntaxNode,
    file_path: str,
    policy: Policy,
    *,
    matcher: GlobMatcher = glob_match,
) -> list[Violation]:
    """Check one parsed file against *policy*.

    Pure with respect to its inputs: *policy* is only read and all working
    state lives in a walker created for this call, so files may be checked
    concurrently.
    """
    return BoundaryWalker(policy=policy, file_path=file_path, matcher=matcher).run(root)
