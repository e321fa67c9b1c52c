"""Terminal-safe Console wrapper for Rich.

Wraps Rich's Console to sanitize Unicode icons on terminals that don't
support UTF-8, and knows how to render analysis reports.
"""
from typing import Any, Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .logger import is_utf8_capable, sanitize_for_terminal


class SafeConsole(Console):
    """Console that sanitizes Unicode output on non UTF-8 terminals."""

    def __init__(self, *args, **kwargs):
        """All arguments are passed through to Rich's Console."""
        self._needs_sanitization = not is_utf8_capable()
        if self._needs_sanitization:
            kwargs['legacy_windows'] = True
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        """Print with automatic Unicode sanitization.

        Args:
            *objects: Objects to print (same as Rich Console.print)
            **kwargs: Keyword arguments (same as Rich Console.print)
        """
        if self._needs_sanitization:
            objects = tuple(sanitize_for_terminal(obj) if isinstance(obj, str) else obj
                            for obj in objects)
        super().print(*objects, **kwargs)

    def print_findings(self, title: str, findings: Iterable) -> int:
        """Render findings as a table.

        Args:
            title: Table title (usually the file path)
            findings: Finding objects

        Returns:
            Number of rows printed
        """
        findings = list(findings)
        if not findings:
            return 0

        table = Table(title=escape(title), show_header=True, header_style="bold magenta")
        table.add_column("Location", style="dim", no_wrap=True)
        table.add_column("Kind", style="yellow")
        table.add_column("Path", style="cyan")
        table.add_column("Message")
        for finding in findings:
            location = str(finding.location) if finding.location is not None else "-"
            table.add_row(location, finding.kind.value, escape(finding.path), escape(finding.message))
        self.print(table)
        return len(findings)

    def print_paths(self, title: str, rows: Iterable[tuple]) -> None:
        """Render (component, used, consumed, declared) rows."""
        table = Table(title=escape(title), show_header=True, header_style="bold magenta")
        table.add_column("Component", style="bold")
        table.add_column("Used paths", style="cyan")
        table.add_column("Consumed", style="green")
        table.add_column("Declared keys", style="dim")
        for component, used, consumed, declared in rows:
            table.add_row(
                escape(component),
                escape("\n".join(used)) or "-",
                escape(", ".join(consumed)) or "-",
                escape(", ".join(declared)) if declared is not None else "unknown",
            )
        self.print(table)
