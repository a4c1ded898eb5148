"""
unipkg: dependency restore for Unity package projects

unipkg reads a project's ``UnityPackages.json``, resolves each declared
dependency against a local repository, GitHub releases, or NuGet, and
merges the resulting packages into the project tree, removing files that
an upgraded package no longer ships.

Typical usage::

    from unipkg import restore_project

    resolved = asyncio.run(restore_project(Path("UnityPackages.json")))
"""

from __future__ import annotations

from unipkg.__version__ import __version__
from unipkg.core.restore import restore_project
from unipkg.models.version import Version, VersionRange, parse_range, parse_version

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "unipkg Contributors"
__license__ = "Apache-2.0"
__description__ = "Dependency restore for Unity package projects."

__all__ = [
    "__version__",
    "restore_project",
    "Version",
    "VersionRange",
    "parse_version",
    "parse_range",
]
