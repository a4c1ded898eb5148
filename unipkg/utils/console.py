"""
Console output utilities for unipkg using Rich.

User-facing status lines (restored packages, confirmations, failures)
go through this module; diagnostics go through
:mod:`unipkg.utils.logger` and never through here.
"""

from __future__ import annotations

import os
import sys
import threading
from typing import Optional

from rich.theme import Theme
from rich.console import Console

UNIPKG_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "package": "bold magenta",
        "dim": "dim",
    }
)

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color() -> bool:
    if os.environ.get("NO_COLOR") or os.environ.get("CI"):
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError):
        return False


def _get_console() -> Console:
    """Return the process-wide Rich console, creating it on first use."""
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                use_color = _should_use_color()
                _console = Console(
                    theme=UNIPKG_THEME,
                    no_color=not use_color,
                    highlight=False,
                )
    return _console


def reconfigure_console() -> None:
    """Drop the cached console so the next call re-reads ``NO_COLOR``."""
    global _console
    with _console_lock:
        _console = None


def get_raw_console() -> Console:
    """Return the underlying Rich Console instance."""
    return _get_console()


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    _get_console().print(f"{prefix} {message}", style="success", markup=False)


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    _get_console().print(f"{prefix} {message}", style="error", markup=False)


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    _get_console().print(f"{prefix} {message}", style="warning", markup=False)


def print_restored(package_id: str, version: str) -> None:
    """Print the one-line summary for a restored package."""
    _get_console().print(f"Restored: {package_id}: {version}", markup=False)


def confirm(message: str, *, default: bool = False) -> bool:
    """Prompt the user for a yes/no answer.

    ``y``/``yes`` and ``n``/``no`` are recognized case-insensitively; an
    empty or unrecognized answer returns ``default``; Ctrl+C or EOF
    returns ``False``.
    """
    console = _get_console()
    suffix = " [Y/n]: " if default else " [y/N]: "
    console.print(f"{message}{suffix}", end="", style="info", markup=False)

    try:
        response = input().strip().lower()
    except (KeyboardInterrupt, EOFError):
        console.print()
        return False

    if response in ("y", "yes"):
        return True
    if response in ("n", "no"):
        return False
    return default
