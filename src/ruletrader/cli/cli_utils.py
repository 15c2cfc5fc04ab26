"""
Shared console helpers for the CLI.
"""

import logging
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

console = Console()


def setup_logging(level: str = "WARNING") -> None:
    """Route all logging through a single RichHandler."""
    logging.basicConfig(
        level=level,
        format="%(name)s | %(message)s",
        handlers=[
            RichHandler(console=console, rich_tracebacks=True, show_time=False, show_path=False)
        ],
        force=True,
    )


def get_version() -> str:
    try:
        return version("ruletrader")
    except PackageNotFoundError:
        from ruletrader import __version__

        return __version__


def print_success(message: str) -> None:
    console.print(f"[bold green]OK[/] {escape(message)}")


def print_error(message: str) -> None:
    console.print(f"[bold red]Error:[/] {escape(message)}")


def print_warning(message: str) -> None:
    console.print(f"[bold yellow]Warning:[/] {escape(message)}")


def print_info(message: str) -> None:
    console.print(escape(message), style="cyan")


def print_table(headers: list[str], rows: list[list[Any]], title: str | None = None) -> None:
    """Print a formatted table"""
    table = Table(title=title, show_header=True, header_style="bold magenta")

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)


def format_currency(value: float, symbol: str = "$") -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_percentage(value: float, decimals: int = 2) -> str:
    """Format a fraction (0.125) as a percentage (12.50%)"""
    return f"{value * 100:.{decimals}f}%"


def format_ratio(value: float, decimals: int = 4) -> str:
    if value == float("inf"):
        return "inf"
    return f"{value:.{decimals}f}"
