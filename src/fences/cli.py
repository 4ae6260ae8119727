"""Fences CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from fences import __version__


@click.group()
@click.version_option(version=__version__, prog_name="fences")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output (engine trace on stderr).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool) -> None:
    """Fences - enforce import boundaries between architecture layers."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


_project_option = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Policy file (default: fences.yml in the project root).",
)


@main.command()
@click.argument(
    "paths",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 if violations found.",
)
@click.option(
    "--debug",
    type=click.IntRange(min=0),
    default=None,
    help="Override the policy's debug trace level (needs --verbose to show).",
)
@_project_option
@_config_option
def lint(
    *,
    paths: tuple[Path, ...],
    fmt: str | None,
    strict: bool,
    debug: int | None,
    project: Path | None,
    config_path: Path | None,
) -> None:
    """Check imports in PATHS (default: the base directory) against the layer policy.

    Exit codes: 0 = clean or violations without --strict,
    1 = violations with --strict, 2 = configuration error.
    """
    from fences.linter import LintError
    from fences.linter import format_json as _format_json
    from fences.linter import format_porcelain as _format_porcelain
    from fences.linter import format_rich as _format_rich
    from fences.linter import lint as run_lint

    project_root = project or Path.cwd()

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_lint(
            project_root,
            config_path=config_path,
            paths=list(paths) or None,
            debug=debug,
        )
    except LintError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    output = formatters[fmt](result, project_root)
    if output:
        click.echo(output)

    if strict and result.violations:
        sys.exit(1)


@main.command("check-config")
@_project_option
@_config_option
def check_config(*, project: Path | None, config_path: Path | None) -> None:
    """Load and validate the layer policy without checking any file."""
    from rich.console import Console
    from rich.table import Table

    from fences.linter import LintError, load_checked_policy

    project_root = project or Path.cwd()

    try:
        loaded = load_checked_policy(project_root, config_path=config_path)
    except LintError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if loaded is None:
        click.echo("Error: no fences.yml found. Pass --config or create one.", err=True)
        sys.exit(2)
    policy, warnings = loaded

    console = Console()
    console.print(f"Base dir: [bold]{policy.base_dir}[/]")
    console.print()

    table = Table(title="Layers (first match wins)")
    table.add_column("#", justify="right")
    table.add_column("layer", style="cyan")
    table.add_column("patterns")
    table.add_column("may import")
    for idx, layer in enumerate(policy.layers, start=1):
        allowed = policy.allowed_targets(layer.name)
        table.add_row(
            str(idx),
            layer.name,
            ", ".join(layer.patterns) or "[dim](none)[/]",
            ", ".join(allowed) if allowed else "[dim](own layer only)[/]",
        )
    console.print(table)

    if policy.excluded:
        console.print(f"Excluded: {', '.join(policy.excluded)}")
    for warning in warnings:
        console.print(f"[yellow]Warning:[/] {warning}")
    console.print("[green]✓[/] Policy is valid")


@main.command()
@click.argument("file", type=click.Path(path_type=Path))
@_project_option
@_config_option
def which(*, file: Path, project: Path | None, config_path: Path | None) -> None:
    """Show the package identifier and layer of FILE."""
    from fences.engine.layers import is_excluded, match_layer
    from fences.engine.package_namer import to_package
    from fences.linter import LintError, load_checked_policy

    project_root = project or Path.cwd()

    try:
        loaded = load_checked_policy(project_root, config_path=config_path)
    except LintError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if loaded is None:
        click.echo("Error: no fences.yml found. Pass --config or create one.", err=True)
        sys.exit(2)
    policy, _warnings = loaded

    package = to_package(file.resolve(), policy.base_dir)
    if is_excluded(package, policy.excluded):
        layer = "excluded"
    else:
        layer = match_layer(policy.layers, package, debug=policy.debug) or "unclassified"

    click.echo(f"package: {package}")
    click.echo(f"layer:   {layer}")
