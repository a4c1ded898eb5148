"""
Shared context object for unipkg CLI commands.

This module defines the global Click context used to share configuration
and runtime options across CLI subcommands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from unipkg.config import UniPkgConfig


class UniPkgContext:
    """Global context object for unipkg CLI commands.

    Attributes:
        config_path: Path to the unipkg configuration file, if provided.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        config: Loaded configuration, or ``None`` before the group callback runs.
    """

    __slots__ = ("config_path", "verbose", "color", "config")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.config: Optional[UniPkgConfig] = None

    def get_config(self) -> UniPkgConfig:
        """Return the loaded configuration, falling back to defaults."""
        if self.config is None:
            self.config = UniPkgConfig()
        return self.config


#: Click decorator for injecting :class:`UniPkgContext` into commands.
pass_context = click.make_pass_decorator(UniPkgContext, ensure=True)
