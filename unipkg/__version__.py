"""
unipkg version information.

This module provides a single source of truth for the package version.

Version format:
    MAJOR.MINOR.PATCH[-PRERELEASE]
"""

from __future__ import annotations

__version__ = "0.1.0"
