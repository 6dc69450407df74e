from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

_consoles: dict[bool, Console] = {}


def get_console(stderr: bool = False) -> Console:
    """Return the shared console for stdout, or for stderr when ``stderr`` is set.

    Results go to stdout; logs, banners and errors go to stderr so the output of
    ``mirrorsync diff`` can be piped.
    """
    if stderr not in _consoles:
        _consoles[stderr] = Console(stderr=stderr)
    return _consoles[stderr]


def print_panel(content: str, title: str | None = None, style: str = "bold blue"):
    get_console(stderr=True).print(Panel(content, title=title, border_style=style))


def print_error(message: str, title: str = "mirrorsync"):
    get_console(stderr=True).print(Panel(message, title=f"{title}: error", border_style="bold red"))


def print_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str | None = None,
    row_styles: list[str | None] | None = None,
):
    """Print rows as a table on stdout.

    Args:
        headers: Column headers
        rows: One list of cells per row; cells are converted with ``str``
        title: Optional table title
        row_styles: Optional rich style per row, matched by position
    """
    table = Table(title=title)
    for header in headers:
        table.add_column(header)
    styles = row_styles or [None] * len(rows)
    for row, style in zip(rows, styles):
        table.add_row(*(str(cell) for cell in row), style=style)
    get_console().print(table)
