"""
Unified data model exports for unipkg.

Example:
    >>> from unipkg.models import Manifest, Version, parse_range
"""

from __future__ import annotations

from unipkg.models.version import Version, VersionRange, parse_range, parse_version
from unipkg.models.manifest import (
    Dependency,
    FileItem,
    LocalSourceSpec,
    Manifest,
    MergedDependency,
    RegistrySourceSpec,
    ReleaseFeedSourceSpec,
    SourceSpec,
    installed_manifest_path,
    parse_source,
)

__all__ = [
    "Version",
    "VersionRange",
    "parse_version",
    "parse_range",
    "Dependency",
    "FileItem",
    "Manifest",
    "MergedDependency",
    "LocalSourceSpec",
    "RegistrySourceSpec",
    "ReleaseFeedSourceSpec",
    "SourceSpec",
    "parse_source",
    "installed_manifest_path",
]
