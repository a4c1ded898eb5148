"""
Core functionality exports for unipkg.

Importing from here keeps user-facing imports short:

    from unipkg.core import PackageRestorer, extract_package
"""

from __future__ import annotations

from unipkg.core.sources import (
    LocalSource,
    PackageSource,
    RegistryLayout,
    RegistrySource,
    ReleaseFeedSource,
    ResolvedPackage,
    default_cache_root,
)
from unipkg.core.extractor import ExtractionReport, extract_package, install_registry_package
from unipkg.core.remover import remove_installed_packages
from unipkg.core.restore import PackageRestorer, RestoreContext, restore_project

__all__ = [
    "LocalSource",
    "PackageSource",
    "RegistryLayout",
    "RegistrySource",
    "ReleaseFeedSource",
    "ResolvedPackage",
    "default_cache_root",
    "ExtractionReport",
    "extract_package",
    "install_registry_package",
    "remove_installed_packages",
    "PackageRestorer",
    "RestoreContext",
    "restore_project",
]
