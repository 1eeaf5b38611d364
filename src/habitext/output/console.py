"""Rich Console factory and theme for habitext output.

Consoles render to a StringIO buffer so renderers return plain strings.
In non-TTY environments (tests, pipes) Rich disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

HABITEXT_THEME = Theme(
    {
        "hx.ok": "bold green",
        "hx.error": "bold red",
        "hx.warning": "bold yellow",
        "hx.op": "bold cyan",
        "hx.key": "dim",
        "hx.name": "bold blue",
        "hx.version": "dim",
        "hx.health.healthy": "green",
        "hx.health.degraded": "yellow",
        "hx.health.unhealthy": "bold red",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=HABITEXT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_health(status: str) -> str:
    return f"hx.health.{status}" if status in ("healthy", "degraded", "unhealthy") else ""
