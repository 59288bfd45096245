"""Rich Console factory and theme for svcmap output.

Consoles render to a StringIO buffer so formatters keep a
``format_result() -> str`` contract.  In non-TTY environments (tests,
pipes) Rich disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

SVCMAP_THEME = Theme(
    {
        "svc.ok": "bold green",
        "svc.error": "bold red",
        "svc.warning": "bold yellow",
        "svc.op": "bold cyan",
        "svc.key": "dim",
        "svc.id": "bold blue",
        "svc.name": "bold",
        "svc.env": "magenta",
        "svc.type.application": "green",
        "svc.type.library": "blue",
        "svc.type.job": "yellow",
        "svc.type.proxy": "cyan",
    }
)

_TYPE_STYLES: dict[str, str] = {
    "APPLICATION": "svc.type.application",
    "LIBRARY": "svc.type.library",
    "JOB": "svc.type.job",
    "PROXY": "svc.type.proxy",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=SVCMAP_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_service_type(service_type: str) -> str:
    return _TYPE_STYLES.get(service_type, "")
