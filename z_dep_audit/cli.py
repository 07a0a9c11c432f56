"""CLI entry point: z-dep-audit.

Subcommands:
    z-dep-audit scan ./bin                       # audit every *.dll in ./bin
    z-dep-audit scan ./bin --json                # machine-readable report
    z-dep-audit scan ./bin --ambient-dir /opt/x  # extra runtime directory
    z-dep-audit ambient-dirs                     # show discovered runtime dirs

The exit status of ``scan`` is the number of distinct issues (capped at 255).
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from z_dep_audit.core.config import AuditSettings
from z_dep_audit.core.logging import setup_logging
from z_dep_audit.loaders import AmbientResolver, AssemblyLoader, default_ambient_dirs
from z_dep_audit.report import render_json, render_text
from z_dep_audit.scanner import discover_modules, scan_directory

_MAX_EXIT_CODE = 255


def _exit_code(issue_count: int) -> int:
    return min(issue_count, _MAX_EXIT_CODE)


def _ambient_dirs(settings: AuditSettings, extra: tuple[Path, ...], no_default: bool) -> list[Path]:
    dirs = list(extra) + list(settings.ambient_dirs)
    if settings.use_default_ambient and not no_default:
        dirs.extend(default_ambient_dirs())
    return dirs


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Z-Dep-Audit: static dependency audit for directories of .NET assemblies."""
    try:
        settings = AuditSettings.from_env()
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    setup_logging(level="DEBUG" if verbose else settings.log_level, log_format=settings.log_format)
    ctx.obj = settings


@main.command("scan")
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--ambient-dir",
    "ambient_dir",
    multiple=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Extra directory searched when a dependency is not in DIRECTORY (repeatable)",
)
@click.option("--no-default-ambient", is_flag=True, help="Do not search installed .NET runtimes or the GAC")
@click.option("--pattern", default=None, help="Glob for top-level modules (default: *.dll)")
@click.option("-j", "--jobs", type=click.IntRange(min=1), default=None, help="Modules scanned concurrently")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_obj
def scan(
    settings: AuditSettings,
    directory: Path,
    ambient_dir: tuple[Path, ...],
    no_default_ambient: bool,
    pattern: str | None,
    jobs: int | None,
    as_json: bool,
    no_color: bool,
) -> None:
    """Audit every module in DIRECTORY and report missing or redirected dependencies."""
    directory = directory.resolve()
    pattern = pattern or settings.pattern

    if not discover_modules(directory, pattern):
        click.echo("No files to inspect.")
        sys.exit(0)

    loader = AssemblyLoader()
    ambient = AmbientResolver(loader, _ambient_dirs(settings, ambient_dir, no_default_ambient))
    result = scan_directory(
        directory,
        loader,
        ambient,
        pattern=pattern,
        jobs=jobs or settings.jobs,
    )

    if as_json:
        click.echo(render_json(result))
    else:
        click.echo(render_text(result, color=not no_color))
    sys.exit(_exit_code(result.issue_count))


@main.command("ambient-dirs")
@click.pass_obj
def ambient_dirs(settings: AuditSettings) -> None:
    """List the directories used for ambient resolution."""
    dirs = _ambient_dirs(settings, (), no_default=False)
    if not dirs:
        click.echo("No ambient directories found.")
        return
    for d in dirs:
        click.echo(str(d))
