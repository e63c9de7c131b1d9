"""Rich Console factory and theme for acctgraph output.

Consoles render into a StringIO buffer so every renderer keeps the
``format_result() -> str`` contract. Outside a terminal (tests, pipes)
Rich drops color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

ACG_THEME = Theme(
    {
        "acg.ok": "bold green",
        "acg.error": "bold red",
        "acg.warning": "bold yellow",
        "acg.op": "bold cyan",
        "acg.key": "dim",
        "acg.id": "bold blue",
        "acg.name": "bold",
        "acg.cycle": "bold magenta",
        "acg.status.active": "green",
        "acg.status.inactive": "dim",
        "acg.status.pending": "yellow",
        "acg.status.closed": "red",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=ACG_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str | None) -> str:
    if not status:
        return ""
    return f"acg.status.{status.lower()}"
