"""Shared console output for CLI commands.

This module provides the rich console wrapper used by every command,
report rendering, and the standard error handling decorator.
"""

from collections.abc import Callable, Sequence

import typer
from rich.console import Console, ConsoleRenderable
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from rich.table import Table

from chart_forge.core.findings import Severity, ValidationReport


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the CLI console."""
        self.console = console or Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def status(self, status: str) -> Status:
        return self.console.status(status)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def handle_error(
        self, message: str, details: str | None = None, exit_code: int = 1
    ) -> None:
        """Handle an error by printing a message and exiting.

        Args:
            message: Error message to display
            details: Optional additional details
            exit_code: Exit code to use
        """
        self.error(f"[bold red]{escape(message)}[/bold red]")
        if details:
            panel = Panel(escape(details), title="Details", border_style="red")
            self.console.print(panel)
        raise typer.Exit(exit_code)

    def print_header(self, title: str, style: str = "blue") -> None:
        """Print a styled header panel.

        Args:
            title: Header title text
            style: Border style color
        """
        self.console.print(
            Panel.fit(
                f"[bold {style}]{title}[/bold {style}]",
                border_style=style,
            )
        )

    def print_subheader(self, title: str) -> None:
        self.console.print(f"\n[bold underline]{title}[/bold underline]\n")

    def print_report(self, report: ValidationReport, title: str) -> None:
        """Render a report as a findings table followed by a summary line."""
        if report.is_clean:
            self.ok(f"{title}: no findings")
            return

        table = Table(title=title, show_lines=False)
        table.add_column("Severity", no_wrap=True)
        table.add_column("Rule", style="bold")
        table.add_column("Resource", style="cyan")
        table.add_column("Message")

        for finding in report.findings:
            severity = (
                "[red]ERROR[/red]"
                if finding.severity is Severity.ERROR
                else "[yellow]WARNING[/yellow]"
            )
            table.add_row(
                severity,
                finding.rule_id,
                str(finding.subject) if finding.subject else "-",
                escape(finding.message),
            )
        self.console.print(table)

        summary = f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        if report.passed:
            self.ok(f"{title} passed ({summary})")
        else:
            self.error(f"{title} failed ({summary})")

    def print_list(self, title: str, items: Sequence[str]) -> None:
        self.console.print(f"\n[bold]{title}[/bold]")
        for item in items:
            self.console.print(f"  • {escape(item)}")


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Decorator to wrap command functions with standard error handling.

    Catches chart-forge errors and formats them consistently.

    Args:
        func: The command function to wrap

    Returns:
        Wrapped function with error handling
    """
    from functools import wraps

    from chart_forge.core.errors import ChartForgeError

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except ChartForgeError as e:
            console.handle_error(e.message, e.details)
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


# Shared console instance for consistent output
console = CLIConsole()
