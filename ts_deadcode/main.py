"""ts-deadcode CLI - find exports that nothing in the project imports."""
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import click
import typer
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .analyzer.config_parser import package_entry_points
from .analyzer.dead_exports import DeadExport, DeadExportAnalyzer
from .analyzer.discovery import discover_sources, match_entry_globs
from .analyzer.errors import AnalysisError, MalformedSyntaxError, ParseError
from .analyzer.graph_builder import ReexportGraphBuilder, find_reexport_cycles
from .analyzer.resolver import RESOLVER_STRATEGIES, RelativeResolver, Resolver, create_resolver, describe
from .config import Config, __version__, get_config
from .utils.logger import configure_logging
from .utils.safe_console import SafeConsole

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="ts-deadcode",
    help="Find exported TypeScript/JavaScript symbols that nothing imports",
    add_completion=False,
)
# Report on stdout; progress, logs and errors on stderr so --json stays clean
console = SafeConsole()
err_console = SafeConsole(stderr=True)


@dataclass
class ProjectAnalysis:
    """Everything one analysis run produced, for the commands to print."""
    root: Path
    resolver: Resolver
    analyzer: DeadExportAnalyzer
    modules: List[Path]
    skipped: List[AnalysisError] = field(default_factory=list)
    elapsed: float = 0.0


def _display_path(path: Path, root: Path) -> str:
    try:
        return Path(path).relative_to(root).as_posix()
    except ValueError:
        return str(path)


def _load_config(project_path: Path) -> Config:
    try:
        return get_config(project_path)
    except AnalysisError as exc:
        err_console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1)


def _check_project_path(project_path: str) -> Path:
    root = Path(project_path).resolve()
    if not root.is_dir():
        err_console.print(f"[bold red]Error:[/bold red] Project path does not exist: {escape(str(root))}")
        raise typer.Exit(1)
    return root


def analyze_project(root: Path, strategy: str, excluded_dirs: List[str], exclude_tests: bool,
                    jobs: int = 1, keep_going: bool = False, show_progress: bool = True) -> ProjectAnalysis:
    """Shared analysis logic for the audit and graph commands.

    1. Discovery: source files under root
    2. Resolution policy: picked once for the project layout
    3. Extraction: every file, committed in path order

    Raises:
        AnalysisError: A file failed to parse (without keep_going) or the
            configuration is invalid
    """
    start = time.time()
    modules = discover_sources(root, extra_excluded_dirs=excluded_dirs, exclude_tests=exclude_tests)
    resolver = create_resolver(root, strategy)
    logger.info("Analyzing %d files with %s resolution", len(modules), describe(resolver))

    analyzer = DeadExportAnalyzer(resolver)
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
        disable=not show_progress,
    )
    with progress:
        task = progress.add_task("[cyan]Extracting exports and usages...", total=len(modules))
        skipped = analyzer.add_files(
            modules,
            jobs=jobs,
            keep_going=keep_going,
            progress=lambda _module: progress.advance(task),
        )

    return ProjectAnalysis(
        root=root,
        resolver=resolver,
        analyzer=analyzer,
        modules=modules,
        skipped=skipped,
        elapsed=time.time() - start,
    )


def _entry_modules(analysis: ProjectAnalysis, patterns: Optional[List[str]]) -> set:
    """Public API modules: package.json entry points plus --entry globs."""
    entries = match_entry_globs(analysis.modules, analysis.root, patterns)
    for declared in package_entry_points(analysis.root):
        if isinstance(analysis.resolver, RelativeResolver):
            found = analysis.resolver.probe(declared)
            if found is not None:
                entries.add(found)
        elif declared.is_file():
            entries.add(declared)
    return entries


def _print_dead_exports(rows: List[DeadExport], root: Path) -> None:
    table = Table(title="Dead Exports")
    table.add_column("File", style="magenta", no_wrap=False)
    table.add_column("Export", style="cyan")
    table.add_column("Kind", style="yellow")
    table.add_column("Local name", style="green")
    table.add_column("Note", style="dim")

    for row in rows:
        local = row.local_name if row.local_name != row.name else ""
        note = "used locally - drop the export keyword only" if row.used_locally else ""
        table.add_row(_display_path(row.module, root), row.name, row.kind, local, note)

    console.print(table)


@app.command()
def audit(
    project_path: str = typer.Argument(".", help="Project root path to analyze"),
    resolver: Optional[str] = typer.Option(
        None, "--resolver", "-r",
        click_type=click.Choice(RESOLVER_STRATEGIES),
        help="Module resolution strategy (default: TS_DEADCODE_RESOLVER or auto)",
    ),
    exclude_tests: Optional[bool] = typer.Option(
        None, "--exclude-tests/--include-tests",
        help="Skip *.test.*, *.spec.* and __tests__ files",
    ),
    exclude_dir: Optional[List[str]] = typer.Option(
        None, "--exclude-dir", "-x", help="Extra directory name to skip (repeatable)",
    ),
    entry: Optional[List[str]] = typer.Option(
        None, "--entry", "-e",
        help="Glob of public entry modules whose exports are never reported (repeatable)",
    ),
    keep_going: bool = typer.Option(False, "--keep-going", "-k", help="Skip files that fail to parse instead of aborting"),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Extraction worker processes"),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    same_file_check: bool = typer.Option(
        True, "--same-file-check/--no-same-file-check",
        help="Note dead exports whose name is still used inside their own file",
    ),
    fail: bool = typer.Option(False, "--fail", help="Exit with status 1 when dead exports are found"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and a list of skipped syntax"),
):
    """Scan a project and list exports that no module consumes."""
    root = _check_project_path(project_path)
    config = _load_config(root)
    configure_logging("DEBUG" if verbose else config.log_level, err_console)

    if not json_output:
        console.print(f"[bold blue]Analyzing project:[/bold blue] {escape(str(root))}\n")

    try:
        analysis = analyze_project(
            root,
            strategy=resolver or config.resolver_strategy,
            excluded_dirs=config.excluded_dirs + list(exclude_dir or []),
            exclude_tests=config.exclude_tests if exclude_tests is None else exclude_tests,
            jobs=jobs or config.jobs,
            keep_going=keep_going,
            show_progress=not json_output,
        )
    except (ParseError, MalformedSyntaxError) as exc:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        err_console.print("[dim]Use --keep-going to skip files that cannot be analyzed[/dim]")
        raise typer.Exit(1)
    except AnalysisError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1)

    context = analysis.analyzer.context
    graph = ReexportGraphBuilder(context.exports).build_graph()
    cycles = find_reexport_cycles(graph)
    for cycle in cycles:
        logger.warning("Re-export cycle: %s", " -> ".join(_display_path(p, root) for p in cycle + cycle[:1]))

    entries = _entry_modules(analysis, entry)
    rows = analysis.analyzer.dead_exports(entry_modules=entries, same_file_check=same_file_check)

    if json_output:
        payload = {
            "project": str(root),
            "resolver": describe(analysis.resolver),
            "files_analyzed": len(analysis.modules) - len(analysis.skipped),
            "files_skipped": [str(exc) for exc in analysis.skipped],
            "dead_exports": [
                {
                    "file": _display_path(row.module, root),
                    "export": row.name,
                    "kind": row.kind,
                    "local_name": row.local_name,
                    "used_locally": row.used_locally,
                }
                for row in rows
            ],
            "reexport_cycles": [[_display_path(p, root) for p in cycle] for cycle in cycles],
            "diagnostics": [
                {"file": _display_path(d.module, root), "line": d.line, "message": d.message}
                for d in context.diagnostics
            ],
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        if rows:
            _print_dead_exports(rows, root)
        else:
            console.print("[bold green]No dead exports found![/bold green]\n")

        if verbose and context.diagnostics:
            console.print("\n[bold yellow]Skipped syntax:[/bold yellow]")
            for diagnostic in context.diagnostics:
                console.print(f"  {escape(_display_path(diagnostic.module, root))}:{diagnostic.line}: "
                              f"{escape(diagnostic.message)}")

        console.print("\n[bold yellow]Summary:[/bold yellow]")
        console.print(f"  Files analyzed: {len(analysis.modules) - len(analysis.skipped)}")
        if analysis.skipped:
            console.print(f"  Files skipped: [bold red]{len(analysis.skipped)}[/bold red] (parse errors)")
        console.print(f"  Dead exports: {len(rows)}")
        if entries:
            console.print(f"  Entry modules (not reported): {len(entries)}")
        console.print(f"  Resolver: {describe(analysis.resolver)}")
        console.print(f"[dim]Finished in {analysis.elapsed:.2f}s[/dim]")

    if fail and rows:
        raise typer.Exit(1)


@app.command()
def graph(
    project_path: str = typer.Argument(".", help="Project root path to analyze"),
    resolver: Optional[str] = typer.Option(
        None, "--resolver", "-r",
        click_type=click.Choice(RESOLVER_STRATEGIES),
        help="Module resolution strategy",
    ),
    keep_going: bool = typer.Option(True, "--keep-going/--no-keep-going", help="Skip files that fail to parse"),
):
    """Show `export * from` statistics and re-export cycles."""
    root = _check_project_path(project_path)
    config = _load_config(root)
    configure_logging(config.log_level, err_console)

    try:
        analysis = analyze_project(
            root,
            strategy=resolver or config.resolver_strategy,
            excluded_dirs=config.excluded_dirs,
            exclude_tests=config.exclude_tests,
            jobs=config.jobs,
            keep_going=keep_going,
        )
    except AnalysisError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1)

    builder = ReexportGraphBuilder(analysis.analyzer.context.exports)
    reexports = builder.build_graph()
    cycles = find_reexport_cycles(reexports)

    stats = Table(title="Re-export Graph")
    stats.add_column("Metric", style="cyan")
    stats.add_column("Value", style="green")
    stats.add_row("Modules", str(reexports.number_of_nodes()))
    stats.add_row("export * edges", str(reexports.number_of_edges()))
    stats.add_row("Cycles", str(len(cycles)))
    console.print(stats)

    barrels = builder.barrels()
    if barrels:
        table = Table(title="Barrel Modules")
        table.add_column("File", style="magenta")
        table.add_column("export * count", style="yellow")
        for module, degree in barrels:
            table.add_row(_display_path(module, root), str(degree))
        console.print(table)

    if cycles:
        console.print("\n[bold red]Re-export cycles:[/bold red]")
        for cycle in cycles:
            console.print("  " + " → ".join(escape(_display_path(p, root)) for p in cycle + cycle[:1]))
    else:
        console.print("[bold green]No re-export cycles.[/bold green]")


def _version_callback(value: bool):
    if value:
        typer.echo(f"ts-deadcode {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit",
    ),
):
    """ts-deadcode - dead export detection for TypeScript/JavaScript projects."""


if __name__ == "__main__":
    app()
