"""cradlemap CLI - inspect the container-key index of a JavaScript workspace."""

from __future__ import annotations

import logging
import os
import sys

import click

from cradlemap.config import AnalysisConfig, Position, Severity
from cradlemap.graph.index import Index
from cradlemap.output import build_status, write_output
from cradlemap.pipeline import build_index
from cradlemap.providers import (
    evaluate_diagnostics,
    find_definition,
    provide_completions,
    provide_hover,
)


@click.group()
def cli() -> None:
    """cradlemap - Map container keys to their registrations and usages."""
    pass


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logging.basicConfig(level=level, handlers=[handler], force=True)


def _index_options(fn):
    fn = click.option("--ignore", multiple=True, help="Additional glob patterns to exclude")(fn)
    fn = click.option(
        "--container", "containers", multiple=True,
        help="Container variable name to recognise (repeatable, default: container)",
    )(fn)
    fn = click.option(
        "--any-container", is_flag=True,
        help="Recognise register/resolve/cradle on any receiver",
    )(fn)
    fn = click.option("--verbose", is_flag=True, help="Log every file and key")(fn)
    fn = click.option("--quiet", is_flag=True, help="Suppress all output except errors")(fn)
    return fn


def _make_config(
    roots: tuple[str, ...],
    ignore: tuple[str, ...],
    containers: tuple[str, ...],
    any_container: bool,
) -> AnalysisConfig:
    config = AnalysisConfig(
        roots=[os.path.abspath(r) for r in roots],
        ignore_patterns=list(ignore),
    )
    if any_container:
        config.container_names = []
    elif containers:
        config.container_names = list(containers)
    return config


def _build_with_progress(config: AnalysisConfig):
    """Run the build with Rich progress display."""
    from rich.console import Console
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    ) as progress:
        task = progress.add_task("Initialising...", total=None)

        def on_phase(name, label):
            progress.update(task, description=label)

        return build_index(config, progress_callback=on_phase)


@cli.command("status")
@click.argument("roots", nargs=-1, type=click.Path(exists=True, file_okay=False))
@click.option("-o", "--output", "output_path", default=None, help="Write the report as JSON")
@_index_options
def status_cmd(
    roots: tuple[str, ...],
    output_path: str | None,
    ignore: tuple[str, ...],
    containers: tuple[str, ...],
    any_container: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Show every registered key and a usage breakdown."""
    from rich.console import Console
    from rich.table import Table

    _configure_logging(verbose, quiet)
    config = _make_config(roots or (".",), ignore, containers, any_container)

    if quiet:
        index, stats = build_index(config)
    else:
        index, stats = _build_with_progress(config)

    report = build_status(index, stats)
    if output_path:
        write_output(report, output_path)

    if quiet:
        return

    console = Console()
    summary = Table(title="cradlemap index", show_edge=False)
    summary.add_column("Metric", style="bold")
    summary.add_column("Value", justify="right")
    summary.add_row("Files indexed", str(stats.files_indexed))
    summary.add_row("Files skipped", str(stats.files_failed))
    summary.add_row("Keys", str(len(index.keys)))
    summary.add_row("Usages", str(len(index.references)))
    summary.add_row("Duplicate registrations", str(len(index.duplicates)))
    summary.add_row("Duration", f"{stats.duration_ms:.1f}ms")
    console.print(summary)

    keys = Table(title="Registered keys", show_edge=False)
    keys.add_column("Key", style="bold")
    keys.add_column("Kind")
    keys.add_column("Lifetime")
    keys.add_column("Origin")
    keys.add_column("Export")
    for entry in report["keys"]:
        keys.add_row(
            entry["key"],
            entry["kind"],
            entry["lifetime"] or "",
            os.path.relpath(entry["origin_file"]),
            entry["export_name"] or "",
        )
    console.print(keys)

    usages = Table(title="Usages by kind", show_edge=False)
    usages.add_column("Kind", style="bold")
    usages.add_column("Count", justify="right")
    for kind, count in sorted(report["usages_by_kind"].items()):
        usages.add_row(kind, str(count))
    console.print(usages)

    if output_path:
        console.print(f"[green]Report written to:[/green] {output_path}")


@cli.command("check")
@click.argument("roots", nargs=-1, type=click.Path(exists=True, file_okay=False))
@click.option("--duplicates", is_flag=True, help="Also warn about keys registered twice")
@_index_options
def check_cmd(
    roots: tuple[str, ...],
    duplicates: bool,
    ignore: tuple[str, ...],
    containers: tuple[str, ...],
    any_container: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Report usages of keys that are never registered."""
    from rich.console import Console

    _configure_logging(verbose, quiet)
    config = _make_config(roots or (".",), ignore, containers, any_container)
    config.report_duplicates = duplicates
    index, _ = build_index(config)

    by_file = evaluate_diagnostics(index, config.report_duplicates)
    console = Console()
    errors = 0
    for file_path in sorted(by_file):
        for diag in by_file[file_path]:
            if diag.severity == Severity.ERROR:
                errors += 1
            if quiet:
                continue
            style = "red" if diag.severity == Severity.ERROR else "yellow"
            console.print(
                f"{os.path.relpath(file_path)}:{diag.range.start.line + 1}:"
                f"{diag.range.start.character + 1}: "
                f"[{style}]{diag.severity.value}[/{style}] {diag.message} ({diag.code})",
                highlight=False,
            )

    if not quiet:
        console.print(f"{errors} unregistered key usage(s)")
    if errors:
        sys.exit(1)


def _cursor_args(fn):
    fn = click.argument("character", type=click.IntRange(min=1))(fn)
    fn = click.argument("line", type=click.IntRange(min=1))(fn)
    fn = click.argument("file", type=click.Path(exists=True, dir_okay=False))(fn)
    fn = click.option(
        "--root", "roots", multiple=True, type=click.Path(exists=True, file_okay=False),
        help="Workspace root to index (repeatable, default: current directory)",
    )(fn)
    return fn


def _query_index(roots, ignore, containers, any_container, verbose, quiet) -> Index:
    _configure_logging(verbose, quiet)
    config = _make_config(roots or (".",), ignore, containers, any_container)
    index, _ = build_index(config)
    return index


@cli.command("definition")
@_cursor_args
@_index_options
def definition_cmd(file, line, character, roots, ignore, containers, any_container, verbose, quiet):
    """Print where the key at FILE:LINE:CHARACTER (1-based) is bound."""
    index = _query_index(roots, ignore, containers, any_container, verbose, quiet)
    location = find_definition(index, file, Position(line - 1, character - 1))
    if location is None:
        click.echo("No definition found")
        sys.exit(1)
    if location.range is None:
        click.echo(location.file)
    else:
        start = location.range.start
        click.echo(f"{location.file}:{start.line + 1}:{start.character + 1}")


@cli.command("hover")
@_cursor_args
@_index_options
def hover_cmd(file, line, character, roots, ignore, containers, any_container, verbose, quiet):
    """Describe the key at FILE:LINE:CHARACTER (1-based)."""
    index = _query_index(roots, ignore, containers, any_container, verbose, quiet)
    info = provide_hover(index, file, Position(line - 1, character - 1))
    if info is None:
        click.echo("Nothing to show")
        sys.exit(1)
    click.echo(info.to_markdown())


@cli.command("complete")
@_cursor_args
@_index_options
def complete_cmd(file, line, character, roots, ignore, containers, any_container, verbose, quiet):
    """List key completions for the cursor at FILE:LINE:CHARACTER (1-based)."""
    index = _query_index(roots, ignore, containers, any_container, verbose, quiet)
    result = provide_completions(index, file, Position(line - 1, character - 1))
    if result is None:
        click.echo("No completion context")
        sys.exit(1)
    for item in result.items:
        click.echo(f"{item.key}\t{item.detail}\t{item.origin_file}")


if __name__ == "__main__":
    cli()
