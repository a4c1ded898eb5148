"""Removal of installed packages.

Every package applied to a project leaves an installed manifest under
``Assets/UnityPackages/``. Removing packages means deleting the files
those manifests list, the manifests themselves, and any directory the
deletions leave empty.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Set, Union

from unipkg.utils.logger import get_logger
from unipkg.utils.filesystem import delete_file, resolve_within
from unipkg.models.manifest import Manifest
from unipkg.exceptions import FileOperationError
from unipkg.constants import INSTALLED_PACKAGES_DIR, MANIFEST_SUFFIX, META_SUFFIX

logger = get_logger("remover")

__all__ = ["remove_installed_packages"]


def _prune_empty_dirs(directories: Set[Path], stop: Path) -> None:
    # Deepest first so a parent sees its children already gone.
    for directory in sorted(directories, key=lambda p: len(p.parts), reverse=True):
        current = directory
        while current != stop and stop in current.parents:
            if not current.is_dir() or any(current.iterdir()):
                break
            try:
                current.rmdir()
            except OSError as exc:
                raise FileOperationError(
                    f"Cannot remove directory: {exc}",
                    file_path=str(current),
                    operation="delete",
                    original_error=exc,
                ) from exc
            delete_file(f"{current}{META_SUFFIX}", best_effort=True)
            logger.debug("Removed empty directory %s", current)
            current = current.parent


def remove_installed_packages(output_dir: Union[str, Path]) -> List[str]:
    """Remove every package installed into ``output_dir``.

    Returns:
        Identifiers of the removed packages, sorted.

    Raises:
        ManifestParseError: An installed manifest is unreadable.
        FileOperationError: A listed file cannot be deleted.
    """
    output_dir = Path(output_dir)
    packages_dir = resolve_within(output_dir, INSTALLED_PACKAGES_DIR)
    if not packages_dir.is_dir():
        logger.debug("No installed packages in %s", output_dir)
        return []

    removed: List[str] = []
    touched: Set[Path] = set()

    for manifest_file in sorted(packages_dir.glob(f"*{MANIFEST_SUFFIX}")):
        package_id = manifest_file.name[: -len(MANIFEST_SUFFIX)]
        manifest = Manifest.load(manifest_file)

        for target in manifest.file_map():
            path = resolve_within(output_dir, target)
            delete_file(path)
            delete_file(f"{path}{META_SUFFIX}", best_effort=True)
            touched.add(path.parent)

        delete_file(manifest_file)
        delete_file(f"{manifest_file}{META_SUFFIX}", best_effort=True)
        logger.info("Removed package %s", package_id)
        removed.append(package_id)

    _prune_empty_dirs(touched, output_dir.resolve())
    return sorted(removed)
