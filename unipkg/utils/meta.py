"""
Metadata sidecar generation.

Packages fetched from a unitypackage archive ship their own ``.meta``
sidecars. Files unipkg creates itself (registry libraries and their proxy
manifests) need sidecars too, so the engine can import them. GUIDs are
derived from the asset path so that restoring twice produces identical
sidecars and does not break references between assets.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Union

from unipkg.constants import META_SUFFIX
from unipkg.utils.filesystem import atomic_write_text

_GUID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://github.com/unipkg/unipkg/meta")


def asset_guid(asset_path: str) -> str:
    """Return the deterministic 32-hex-digit GUID for ``asset_path``."""
    return uuid.uuid5(_GUID_NAMESPACE, asset_path.replace("\\", "/")).hex


def generate_meta(
    asset_path: str,
    *,
    folder: bool = False,
    plugin: bool = False,
    analyzer: bool = False,
) -> str:
    """Build the text of a sidecar for ``asset_path``.

    Args:
        asset_path: Logical path of the asset (``Assets/...``).
        folder: The asset is a directory.
        plugin: The asset is a managed plugin assembly.
        analyzer: The asset is a Roslyn analyzer assembly; implies
            ``plugin`` with every platform disabled.
    """
    lines = [
        "fileFormatVersion: 2",
        f"guid: {asset_guid(asset_path)}",
    ]

    if folder:
        lines += [
            "folderAsset: yes",
            "DefaultImporter:",
            "  userData: ",
            "  assetBundleName: ",
            "  assetBundleVariant: ",
        ]
    elif analyzer:
        lines += [
            "labels:",
            "- RoslynAnalyzer",
            "PluginImporter:",
            "  serializedVersion: 2",
            "  isPreloaded: 0",
            "  isOverridable: 0",
            "  platformData:",
            "  - first:",
            "      Any: ",
            "    second:",
            "      enabled: 0",
            "      settings: {}",
            "  - first:",
            "      Editor: Editor",
            "    second:",
            "      enabled: 0",
            "      settings:",
            "        DefaultValueInitialized: true",
            "  userData: ",
        ]
    elif plugin:
        lines += [
            "PluginImporter:",
            "  serializedVersion: 2",
            "  isPreloaded: 0",
            "  isOverridable: 0",
            "  platformData:",
            "  - first:",
            "      Any: ",
            "    second:",
            "      enabled: 1",
            "      settings: {}",
            "  userData: ",
        ]
    else:
        lines += [
            "DefaultImporter:",
            "  userData: ",
            "  assetBundleName: ",
            "  assetBundleVariant: ",
        ]

    return "\n".join(lines) + "\n"


def write_meta(
    path: Union[str, Path],
    asset_path: str,
    **kwargs: bool,
) -> Path:
    """Write the sidecar for the file or directory at ``path``.

    Returns:
        Path of the written sidecar (``path`` plus ``.meta``).
    """
    meta_path = Path(f"{path}{META_SUFFIX}")
    atomic_write_text(meta_path, generate_meta(asset_path, **kwargs))
    return meta_path
