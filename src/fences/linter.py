"""Linter orchestrator: load the policy, collect files, check each one, format results."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

from fences.engine.policy import (
    ConfigError,
    find_policy_file,
    load_policy,
    validate_policy,
)
from fences.engine.syntax import parse_file, supported_extensions
from fences.engine.walker import BoundaryWalker, Violation, WalkState

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from fences.engine.policy import Policy

logger = logging.getLogger(__name__)

# Directories never descended into while collecting files.
_SKIP_DIRS: frozenset[str] = frozenset({"node_modules"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LintError(Exception):
    """Raised when lint encounters a configuration error."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Result of a lint run."""

    violations: list[Violation] = field(default_factory=list)
    files_scanned: int = 0
    files_excluded: int = 0
    files_skipped: int = 0
    imports_checked: int = 0
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0


# ---------------------------------------------------------------------------
# Policy + file collection
# ---------------------------------------------------------------------------


def load_checked_policy(
    project_root: Path,
    *,
    config_path: Path | None = None,
    debug: int | None = None,
) -> tuple[Policy, list[str]] | None:
    """Load and validate the policy for *project_root*.

    Returns ``None`` when no policy file exists.  Any configuration
    problem is raised as :class:`LintError` so the run stops before a
    single file is checked.
    """
    if config_path is None:
        config_path = find_policy_file(project_root)
        if config_path is None:
            return None
    elif not config_path.is_file():
        msg = f"Policy file not found: {config_path}"
        raise LintError(msg)

    try:
        policy = load_policy(config_path)
        if debug is not None:
            policy = replace(policy, debug=debug)
        warnings = validate_policy(policy)
    except ConfigError as exc:
        msg = f"Invalid policy configuration: {exc}"
        raise LintError(msg) from exc

    return policy, warnings


def collect_source_files(roots: Iterable[Path]) -> list[Path]:
    """Collect supported source files under *roots* (files are taken as-is)."""
    exts = supported_extensions()
    found: set[Path] = set()

    for root in roots:
        root = root.resolve()
        if root.is_file():
            if root.suffix.lower() in exts:
                found.add(root)
            continue
        if not root.is_dir():
            logger.warning("Path does not exist: %s", root)
            continue
        for path in root.rglob("*"):
            if path.suffix.lower() not in exts or not path.is_file():
                continue
            rel_parts = path.relative_to(root).parts[:-1]
            if any(part in _SKIP_DIRS or part.startswith(".") for part in rel_parts):
                continue
            found.add(path)

    return sorted(found)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def lint(
    project_root: Path,
    *,
    config_path: Path | None = None,
    paths: Sequence[Path] | None = None,
    debug: int | None = None,
) -> LintResult:
    """Run the lint process: load policy, check every source file, return results.

    Parameters
    ----------
    project_root:
        Root of the project (where ``fences.yml`` lives).
    config_path:
        Optional explicit policy path.  When *None*, ``fences.yml`` or
        ``.fences.yml`` in *project_root* is used.
    paths:
        Files or directories to check.  Defaults to the policy's base
        directory.
    debug:
        Overrides the policy's ``debug`` level when given.

    Returns
    -------
    LintResult
        Summary with violations (ordered by file path, then document
        order), counts, and timing.

    Raises
    ------
    LintError
        When the policy is present but contains invalid configuration.
    """
    start = time.monotonic()

    loaded = load_checked_policy(project_root, config_path=config_path, debug=debug)
    if loaded is None:
        elapsed = (time.monotonic() - start) * 1000
        return LintResult(elapsed_ms=elapsed)
    policy, warnings = loaded

    roots = list(paths) if paths else [Path(policy.base_dir)]
    result = LintResult(warnings=warnings)

    for file_path in collect_source_files(roots):
        root = parse_file(file_path)
        if root is None:
            logger.warning("Cannot read file: %s", file_path)
            result.files_skipped += 1
            continue

        walker = BoundaryWalker(policy=policy, file_path=str(file_path))
        violations = walker.run(root)
        if walker.state is WalkState.DONE and walker.layer is None:
            result.files_excluded += 1
        else:
            result.files_scanned += 1
        result.imports_checked += len(walker.edges)
        result.violations.extend(violations)

    result.elapsed_ms = (time.monotonic() - start) * 1000
    return result


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _display_path(path: str, project_root: Path | None) -> str:
    if project_root is None:
        return path
    try:
        return Path(path).relative_to(project_root.resolve()).as_posix()
    except ValueError:
        return path


def format_rich(result: LintResult, project_root: Path | None = None) -> str:
    """Format a LintResult as human-readable text.

    Example output with violations::

        Files: 12 scanned, 2 excluded, 31 imports checked

        x src/domain/order.ts:3:19
          'domain' is not allowed to import 'infra' (infra/db)

        1 violations found (0.1s)
    """
    lines: list[str] = []

    lines.append(
        f"Files: {result.files_scanned} scanned, {result.files_excluded} excluded, "
        f"{result.imports_checked} imports checked"
    )
    if result.files_skipped:
        lines.append(f"Skipped: {result.files_skipped} unreadable files")
    for warning in result.warnings:
        lines.append(f"Warning: {warning}")
    lines.append("")

    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"

    if result.violations:
        for v in result.violations:
            loc = f"{_display_path(v.file_path, project_root)}:{v.line}:{v.column + 1}"
            lines.append(f"✗ {loc}")
            lines.append(f"  {v.message}")
            lines.append("")
        lines.append(f"{len(result.violations)} violations found ({elapsed_str})")
    else:
        lines.append(f"✓ No violations found ({elapsed_str})")

    return "\n".join(lines)


def format_json(result: LintResult, project_root: Path | None = None) -> str:
    """Format a LintResult as structured JSON.

    Returns a JSON string with ``violations`` array and ``summary`` object.
    """
    violations_list: list[dict[str, object]] = []
    for v in result.violations:
        violations_list.append(
            {
                "file_path": _display_path(v.file_path, project_root),
                "start": v.start,
                "end": v.end,
                "line": v.line,
                "column": v.column + 1,
                "rule_type": v.rule_type,
                "package": v.package,
                "message": v.message,
            }
        )

    output: dict[str, object] = {
        "violations": violations_list,
        "summary": {
            "violations_count": len(result.violations),
            "files_scanned": result.files_scanned,
            "files_excluded": result.files_excluded,
            "files_skipped": result.files_skipped,
            "imports_checked": result.imports_checked,
            "warnings": result.warnings,
            "elapsed_ms": result.elapsed_ms,
        },
    }

    return json.dumps(output, indent=2)


def format_porcelain(result: LintResult, project_root: Path | None = None) -> str:
    """Format a LintResult as one line per violation.

    Format: ``file_path:line:column:rule_type:message``

    Returns empty string when there are no violations.
    """
    if not result.violations:
        return ""

    lines: list[str] = []
    for v in result.violations:
        path = _display_path(v.file_path, project_root)
        lines.append(f"{path}:{v.line}:{v.column + 1}:{v.rule_type}:{v.message}")

    return "\n".join(lines)
