"""Apply packages to a project tree.

:func:`extract_package` merges a ``.unitypackage`` archive into a target
tree. The archive is a gzip tar whose top-level directories are opaque
identifiers, each holding up to three members::

    <guid>/asset        file content (absent for directories)
    <guid>/asset.meta   metadata sidecar
    <guid>/pathname     logical target path, e.g. Assets/Foo/Bar.cs

The package's own manifest (shipped inside the archive) marks files as
``extra`` or ``merged``. Those are skipped unless the dependent opted in.
Files listed by the previously installed manifest but missing from the
new one are deleted after the new content is written.

:func:`install_registry_package` is the counterpart for NuGet packages.
It copies assemblies from the located layout, generates their sidecars
and writes a proxy manifest so later runs can diff against it.
"""

from __future__ import annotations

import tarfile
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Set, Union

from unipkg.utils.logger import get_logger
from unipkg.utils.meta import write_meta
from unipkg.utils.filesystem import (
    copy_file,
    delete_file,
    resolve_within,
    scratch_directory,
)
from unipkg.models.manifest import FileItem, Manifest, installed_manifest_path
from unipkg.core.sources import RegistryLayout, ResolvedPackage
from unipkg.exceptions import FileOperationError
from unipkg.constants import (
    ARCHIVE_ASSET,
    ARCHIVE_ASSET_META,
    ARCHIVE_PATHNAME,
    INSTALLED_PACKAGES_DIR,
    META_SUFFIX,
)

logger = get_logger("extractor")

__all__ = ["ExtractionReport", "extract_package", "install_registry_package"]

PathLike = Union[str, Path]


@dataclass
class ExtractionReport:
    """What one extraction did to the target tree (logical paths)."""

    package_id: str
    copied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)


@dataclass
class _ArchiveContents:
    # logical path -> scratch directory of the entry
    files: Dict[str, Path] = field(default_factory=dict)
    folders: Dict[str, Path] = field(default_factory=dict)


def _unpack(archive_path: Path, scratch: Path) -> None:
    try:
        with tarfile.open(archive_path, "r:gz") as archive:
            if hasattr(tarfile, "data_filter"):
                archive.extractall(scratch, filter="data")
            else:
                archive.extractall(scratch)
    except (tarfile.TarError, OSError) as exc:
        raise FileOperationError(
            f"Cannot unpack archive: {exc}",
            file_path=str(archive_path),
            operation="extract",
            original_error=exc,
        ) from exc


def _read_contents(scratch: Path) -> _ArchiveContents:
    contents = _ArchiveContents()

    for entry in sorted(scratch.iterdir()):
        pathname_file = entry / ARCHIVE_PATHNAME
        if not entry.is_dir() or not pathname_file.is_file():
            continue

        lines = pathname_file.read_text(encoding="utf-8", errors="replace").strip().splitlines()
        logical_path = lines[0].strip() if lines else ""
        if not logical_path:
            logger.debug("Ignoring entry %s with empty pathname", entry.name)
            continue

        if (entry / ARCHIVE_ASSET).is_file():
            contents.files[logical_path] = entry
        else:
            contents.folders[logical_path] = entry

    return contents


def _load_file_map(path: Path) -> Dict[str, FileItem]:
    return Manifest.load(path).file_map()


def _ancestors(logical_path: str) -> List[str]:
    parts = logical_path.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


def extract_package(
    archive_path: PathLike,
    output_dir: PathLike,
    package_id: str,
    *,
    include_extra: bool = False,
    include_merged: bool = False,
) -> ExtractionReport:
    """Merge a package archive into ``output_dir``.

    Args:
        archive_path: ``.unitypackage`` file.
        output_dir: Root of the target project tree.
        package_id: Identifier of the package being applied; selects the
            embedded and previously installed manifests.
        include_extra: Also write files flagged ``extra``.
        include_merged: Also write files flagged ``merged``.

    Returns:
        An :class:`ExtractionReport` listing copied, skipped and deleted
        logical paths.

    Raises:
        FileOperationError: The archive cannot be unpacked, a path escapes
            ``output_dir``, or a content copy/delete fails.
        ManifestParseError: The embedded or installed manifest is invalid.
    """
    archive_path = Path(archive_path)
    output_dir = Path(output_dir)
    report = ExtractionReport(package_id=package_id)
    manifest_path = installed_manifest_path(package_id)

    logger.info("Extracting %s into %s", archive_path.name, output_dir)

    with scratch_directory() as scratch:
        _unpack(archive_path, scratch)
        contents = _read_contents(scratch)

        # Flags from the package's own manifest, and the files the
        # previously installed version shipped but this one does not.
        file_map: Dict[str, FileItem] = {}
        stale: Dict[str, FileItem] = {}
        embedded = contents.files.get(manifest_path)
        if embedded is not None:
            file_map = _load_file_map(embedded / ARCHIVE_ASSET)

            installed = resolve_within(output_dir, manifest_path)
            if installed.is_file():
                for target, item in _load_file_map(installed).items():
                    if target not in file_map:
                        stale[target] = item

        folders_for_copied: Set[str] = set()
        for logical_path, entry in contents.files.items():
            item = file_map.get(logical_path)
            if item is not None:
                if item.extra and not include_extra:
                    report.skipped.append(logical_path)
                    continue
                if item.merged and not include_merged:
                    report.skipped.append(logical_path)
                    continue

            destination = resolve_within(output_dir, logical_path)
            copy_file(entry / ARCHIVE_ASSET, destination)
            meta = entry / ARCHIVE_ASSET_META
            if meta.is_file():
                copy_file(meta, f"{destination}{META_SUFFIX}")
            else:
                logger.warning("Archive has no metadata for %s", logical_path)
            report.copied.append(logical_path)

            folders_for_copied.update(_ancestors(logical_path))

        for folder in sorted(folders_for_copied):
            entry = contents.folders.get(folder)
            if entry is None:
                continue
            meta = entry / ARCHIVE_ASSET_META
            if meta.is_file():
                destination = resolve_within(output_dir, folder)
                copy_file(meta, f"{destination}{META_SUFFIX}")

        # Deletions run last so files common to both versions never go missing.
        for logical_path in stale:
            target = resolve_within(output_dir, logical_path)
            if delete_file(target):
                logger.info("Deleting file '%s'", target)
                report.deleted.append(logical_path)
            delete_file(f"{target}{META_SUFFIX}", best_effort=True)

    logger.debug(
        "%s: %d copied, %d skipped, %d deleted",
        package_id,
        len(report.copied),
        len(report.skipped),
        len(report.deleted),
    )
    return report


def install_registry_package(
    package: ResolvedPackage,
    target_framework: str,
    output_dir: PathLike,
) -> Path:
    """Materialize a NuGet package's assemblies into ``output_dir``.

    Library layouts land in ``Assets/UnityPackages/{id}``; analyzer
    layouts land in ``Assets/UnityPackages/Analyzers/{id}``. A proxy
    manifest listing the written files is saved at the package's
    installed-manifest path.

    Returns:
        The directory the assemblies were written to.
    """
    if package.layout is None or package.layout_dir is None:
        raise ValueError(f"{package.package_id} is not a registry package")

    output_dir = Path(output_dir)
    analyzer = package.layout is RegistryLayout.ANALYZER
    if analyzer:
        folder = f"{INSTALLED_PACKAGES_DIR}/Analyzers/{package.package_id}"
    else:
        folder = f"{INSTALLED_PACKAGES_DIR}/{package.package_id}"

    target_dir = resolve_within(output_dir, folder)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileOperationError(
            f"Cannot create directory: {exc}",
            file_path=str(target_dir),
            operation="write",
            original_error=exc,
        ) from exc
    write_meta(target_dir, folder, folder=True)

    written: List[str] = []
    for assembly in sorted(package.layout_dir.glob("*.dll")):
        asset_path = f"{folder}/{assembly.name}"
        copy_file(assembly, target_dir / assembly.name)
        write_meta(target_dir / assembly.name, asset_path, plugin=True, analyzer=analyzer)
        written.append(asset_path)

        symbols = assembly.with_name(assembly.name + ".mdb")
        if symbols.is_file() and not analyzer:
            copy_file(symbols, target_dir / symbols.name)
            write_meta(target_dir / symbols.name, f"{folder}/{symbols.name}")
            written.append(f"{folder}/{symbols.name}")

    manifest_path = installed_manifest_path(package.package_id)
    proxy = Manifest(
        id=package.package_id,
        version=str(package.version),
        description=f"NuGet package (TFM:{target_framework})",
        files=[FileItem(target=path) for path in written],
    )
    destination = resolve_within(output_dir, manifest_path)
    proxy.save(destination)
    write_meta(destination, manifest_path)

    logger.info(
        "Installed %d assembl%s for %s into %s",
        len(written),
        "y" if len(written) == 1 else "ies",
        package.package_id,
        folder,
    )
    return target_dir
