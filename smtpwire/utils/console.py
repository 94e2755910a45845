"""Shared rich consoles for CLI output.

Status and success lines go to stdout, errors to stderr. Text is escaped
before printing because server replies and file names may contain
``[brackets]`` that rich would otherwise read as markup.
"""

from typing import Dict, Optional

from rich.console import Console
from rich.markup import escape

_consoles: Dict[str, Console] = {}


def get_console(stderr: bool = False) -> Console:
    """Return the shared stdout (or stderr) console, creating it on first use."""
    key = "stderr" if stderr else "stdout"

    if key not in _consoles:
        _consoles[key] = Console(stderr=stderr)

    return _consoles[key]


def reset_console() -> None:
    """Drop the shared consoles so the next call binds to the current streams"""
    _consoles.clear()


async def _print(message: str, style: str, console: Optional[Console], stderr: bool = False) -> None:
    (console or get_console(stderr)).print(f"[{style}]{escape(message)}[/]", highlight=False)


async def print_success(message: str, console: Optional[Console] = None) -> None:
    await _print(message, "green", console)


async def print_status(message: str, console: Optional[Console] = None) -> None:
    await _print(message, "cyan", console)


async def print_error(message: str, console: Optional[Console] = None) -> None:
    await _print(message, "bold red", console, stderr=True)
