"""propdeps CLI - check memo() dependency lists against the props a component reads."""
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape

from propdeps.analyzer.engine import FileReport, analyze_file
from propdeps.analyzer.parser import LanguageParser
from propdeps.config import Config, __version__, get_config, merge_names
from propdeps.utils.logger import configure_logging
from propdeps.utils.safe_console import SafeConsole

app = typer.Typer(
    name="propdeps",
    help="Check memo() dependency lists and declared props against the props components read",
    add_completion=False
)
console = SafeConsole(highlight=False)

# Directories never scanned
EXCLUDED_DIRS = {
    'node_modules', 'bower_components', 'vendor', 'third_party',
    'dist', 'build', 'out', 'coverage', '.next', '.cache',
    '.git', '.hg', '.venv', 'venv', '__pycache__',
}


def _validate_language(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in LanguageParser.LANGUAGES:
        raise typer.BadParameter(
            f"'{value}' is not one of {', '.join(LanguageParser.LANGUAGES)}"
        )
    return value


def _load_config() -> Config:
    try:
        return get_config()
    except ValueError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(e))}")
        raise typer.Exit(2)


def collect_files(paths: List[Path]) -> List[Path]:
    """Expand directories into supported source files, skipping EXCLUDED_DIRS.

    Args:
        paths: Files and directories given on the command line

    Returns:
        Sorted, de-duplicated list of files
    """
    files = set()
    for path in paths:
        if path.is_file():
            files.add(path)
            continue
        for extension in LanguageParser.SUPPORTED_LANGUAGES:
            for file_path in path.rglob(f"*{extension}"):
                relative = file_path.relative_to(path)
                if not any(part in EXCLUDED_DIRS for part in relative.parts):
                    files.add(file_path)
    return sorted(files)


def _report_to_dict(report: FileReport) -> dict:
    return {
        'path': report.path,
        'language': report.language,
        'components': [
            {
                'name': component.name,
                'line': component.span.start_line if component.span else None,
                'used': component.used.strings(),
                'consumed': component.consumed.strings(),
                'skipped': component.skipped,
                'error': component.error,
                'findings': [finding.to_dict() for finding in component.findings],
            }
            for component in report.components
        ],
    }


@app.command()
def check(
    paths: List[Path] = typer.Argument(..., help="Files or directories to check"),
    language: Optional[str] = typer.Option(None, "--language", "-l", callback=_validate_language,
                                           help="Force a grammar (javascript, typescript, tsx) instead of the file extension"),
    ignore: Optional[List[str]] = typer.Option(None, "--ignore", "-i", help="Root prop key to ignore (repeatable)"),
    skip_undeclared: bool = typer.Option(False, "--skip-undeclared", help="Do not report root props missing from the declared shape"),
    custom_validator: Optional[List[str]] = typer.Option(None, "--custom-validator", help="Custom PropTypes validator name (repeatable)"),
    check_unused: bool = typer.Option(False, "--check-unused", help="Also report dependency entries that are never read"),
    strict: bool = typer.Option(False, "--strict", help="Require exact dependency entries (no ancestor/descendant matching)"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
):
    """Analyze components and report dependency list and props declaration problems."""
    config = _load_config()
    options = config.analysis_options(
        ignore=merge_names(config.ignore, ignore),
        custom_validators=merge_names(config.custom_validators, custom_validator),
        skip_undeclared=True if skip_undeclared else None,
        check_unused_dependencies=True if check_unused else None,
        match_descendants=False if strict else None,
    )

    missing = [path for path in paths if not path.exists()]
    if missing:
        console.print(f"[bold red]Error:[/bold red] Path does not exist: {escape(str(missing[0]))}")
        raise typer.Exit(1)

    files = collect_files(paths)
    total = 0
    results = []
    for file_path in files:
        report = analyze_file(file_path, options, language)
        if report is None:
            continue
        total += len(report.findings)
        if as_json:
            results.append(_report_to_dict(report))
            continue
        for component in report.components:
            if component.skipped:
                console.print(
                    f"[yellow]Skipped[/yellow] {escape(component.name)} "
                    f"({escape(str(file_path))}:{component.span}): {escape(component.error)}"
                )
        console.print_findings(str(file_path), report.findings)

    if as_json:
        typer.echo(json.dumps(results, indent=2))
    elif total:
        console.print(f"\n[bold red]✗ {total} finding(s)[/bold red] in {len(files)} file(s)")
    else:
        console.print(f"[green]✓ No findings[/green] in {len(files)} file(s)")

    if total:
        raise typer.Exit(1)


@app.command("paths")
def show_paths(
    file: Path = typer.Argument(..., help="Source file to inspect"),
    language: Optional[str] = typer.Option(None, "--language", "-l", callback=_validate_language,
                                           help="Force a grammar (javascript, typescript, tsx)"),
):
    """Print each component's used paths, consumed objects and declared keys."""
    config = _load_config()
    if not file.is_file():
        console.print(f"[bold red]Error:[/bold red] File does not exist: {escape(str(file))}")
        raise typer.Exit(1)

    report = analyze_file(file, config.analysis_options(), language)
    if report is None:
        console.print(f"[bold red]Error:[/bold red] Unsupported or unreadable file: {escape(str(file))}")
        raise typer.Exit(1)
    if not report.components:
        console.print(f"[dim]No components found in {escape(str(file))}[/dim]")
        return

    rows = []
    for component in report.components:
        declared = None if component.shape.is_unknown else component.shape.known_keys()
        rows.append((component.name, component.used.strings(), component.consumed.strings(), declared))
    console.print_paths(str(file), rows)


def _version_callback(value: bool):
    if value:
        typer.echo(f"propdeps {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """propdeps - props dependency checker for React components."""
    config = _load_config()
    configure_logging(logging.DEBUG if verbose else config.log_level_value)


if __name__ == "__main__":
    app()
