"""Tests for fences.linter, the lint orchestrator: load policy, check files, format."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from fences.engine.walker import FORBIDDEN_IMPORT, UNCLASSIFIED_FILE, UNMATCHED_IMPORT
from fences.linter import (
    LintError,
    LintResult,
    collect_source_files,
    format_json,
    format_porcelain,
    format_rich,
    lint,
)

if TYPE_CHECKING:
    from pathlib import Path


# ---------------------------------------------------------------------------
# lint()
# ---------------------------------------------------------------------------


class TestLint:
    def test_no_policy_file(self, tmp_path: Path) -> None:
        result = lint(tmp_path)
        assert result.violations == []
        assert result.files_scanned == 0

    def test_violations_ordered_by_file(self, tmp_project: Path) -> None:
        result = lint(tmp_project)
        summary = [
            (v.file_path.rsplit("/src/", 1)[1], v.rule_type) for v in result.violations
        ]
        assert summary == [
            ("app/main.ts", UNMATCHED_IMPORT),
            ("domain/order.ts", FORBIDDEN_IMPORT),
            ("misc/stray.ts", UNCLASSIFIED_FILE),
        ]

    def test_messages(self, tmp_project: Path) -> None:
        result = lint(tmp_project)
        messages = [v.message for v in result.violations]
        assert messages == [
            "lodash not matched to any layer",
            "'domain' is not allowed to import 'infra' (infra/db)",
            "File not found in layers config and was not excluded. (misc/stray)",
        ]

    def test_counts(self, tmp_project: Path) -> None:
        result = lint(tmp_project)
        assert result.files_scanned == 5
        assert result.files_excluded == 1
        assert result.files_skipped == 0
        # order.ts: 2, db.ts: 1, main.ts: 2; stray.ts aborts before its import
        assert result.imports_checked == 5
        assert result.warnings == []
        assert result.elapsed_ms >= 0

    def test_explicit_paths(self, tmp_project: Path) -> None:
        result = lint(tmp_project, paths=[tmp_project / "src" / "infra"])
        assert result.violations == []
        assert result.files_scanned == 1

    def test_explicit_config(self, tmp_project: Path) -> None:
        other = tmp_project / "policies" / "strict.yml"
        other.parent.mkdir()
        other.write_text(
            "base_dir: ../src\n"
            "layers:\n"
            "  everything: ['*/**']\n"
        )
        result = lint(tmp_project, config_path=other)
        # Nothing is excluded here, and only the external package has no layer.
        assert result.files_excluded == 0
        assert [(v.rule_type, v.package) for v in result.violations] == [
            (UNMATCHED_IMPORT, "lodash"),
        ]

    def test_missing_explicit_config(self, tmp_project: Path) -> None:
        with pytest.raises(LintError, match="not found"):
            lint(tmp_project, config_path=tmp_project / "nope.yml")

    def test_undeclared_layer_is_fatal(self, tmp_project: Path) -> None:
        (tmp_project / "fences.yml").write_text(
            "base_dir: src\n"
            "layers:\n"
            "  ui: ['ui/**']\n"
            "  core: ['core/**']\n"
            "rules:\n"
            "  ui: [core, ghost]\n"
        )
        with pytest.raises(LintError, match="ghost"):
            lint(tmp_project)

    def test_missing_base_dir_is_fatal(self, tmp_project: Path) -> None:
        (tmp_project / "fences.yml").write_text("layers:\n  a: ['**']\n")
        with pytest.raises(LintError, match="base directory"):
            lint(tmp_project)

    def test_tsconfig_base_url(self, tmp_project: Path) -> None:
        policy = (tmp_project / "fences.yml").read_text().replace("base_dir: src\n", "")
        (tmp_project / "fences.yml").write_text(policy)
        (tmp_project / "tsconfig.json").write_text(
            json.dumps({"compilerOptions": {"baseUrl": "src"}})
        )
        result = lint(tmp_project)
        assert len(result.violations) == 3

    def test_absolute_base_dir_through_symlink(self, tmp_project: Path, tmp_path: Path) -> None:
        link = tmp_path / "checkout"
        link.symlink_to(tmp_project, target_is_directory=True)
        policy = (tmp_project / "fences.yml").read_text()
        (tmp_project / "fences.yml").write_text(
            policy.replace("base_dir: src\n", f"base_dir: {(link / 'src').as_posix()}\n")
        )
        result = lint(tmp_project)
        assert [v.rule_type for v in result.violations] == [
            UNMATCHED_IMPORT,
            FORBIDDEN_IMPORT,
            UNCLASSIFIED_FILE,
        ]

    def test_warnings_reported(self, tmp_project: Path) -> None:
        policy = (tmp_project / "fences.yml").read_text()
        (tmp_project / "fences.yml").write_text(
            policy.replace('  app: ["app/**"]\n', '  app: ["app/**"]\n  legacy: []\n')
        )
        result = lint(tmp_project)
        assert any("'legacy'" in w for w in result.warnings)

    def test_debug_override(self, tmp_project: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("DEBUG", logger="fences"):
            lint(tmp_project, debug=2)
        assert any("found import" in r.getMessage() for r in caplog.records)


class TestCollectSourceFiles:
    def test_skips_node_modules_and_dot_dirs(self, tmp_project: Path) -> None:
        hidden = tmp_project / "src" / ".cache" / "x.ts"
        hidden.parent.mkdir()
        hidden.write_text("export {};\n")
        (tmp_project / "src" / "README.md").write_text("# docs\n")

        files = collect_source_files([tmp_project / "src"])
        names = [f.relative_to((tmp_project / "src").resolve()).as_posix() for f in files]
        assert names == [
            "app/main.ts",
            "domain/money.ts",
            "domain/order.spec.ts",
            "domain/order.ts",
            "infra/db.ts",
            "misc/stray.ts",
        ]

    def test_explicit_file(self, tmp_project: Path) -> None:
        target = tmp_project / "src" / "app" / "main.ts"
        assert collect_source_files([target]) == [target.resolve()]


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class TestFormatters:
    def test_rich_with_violations(self, tmp_project: Path) -> None:
        output = format_rich(lint(tmp_project), tmp_project)
        assert "Files: 5 scanned, 1 excluded, 5 imports checked" in output
        assert "src/domain/order.ts:1:20" in output
        assert "'domain' is not allowed to import 'infra' (infra/db)" in output
        assert "3 violations found" in output

    def test_rich_clean(self) -> None:
        output = format_rich(LintResult())
        assert "No violations found" in output

    def test_json(self, tmp_project: Path) -> None:
        parsed = json.loads(format_json(lint(tmp_project), tmp_project))
        assert parsed["summary"]["violations_count"] == 3
        assert parsed["summary"]["files_excluded"] == 1
        first = parsed["violations"][0]
        assert first["file_path"] == "src/app/main.ts"
        assert first["rule_type"] == UNMATCHED_IMPORT
        assert first["package"] == "lodash"
        assert first["line"] == 2

    def test_porcelain(self, tmp_project: Path) -> None:
        lines = format_porcelain(lint(tmp_project), tmp_project).split("\n")
        assert lines == [
            "src/app/main.ts:2:20:unmatched_import:lodash not matched to any layer",
            "src/domain/order.ts:1:20:forbidden_import:"
            "'domain' is not allowed to import 'infra' (infra/db)",
            "src/misc/stray.ts:1:1:unclassified_file:"
            "File not found in layers config and was not excluded. (misc/stray)",
        ]

    def test_porcelain_clean(self) -> None:
        assert format_porcelain(LintResult()) == ""
