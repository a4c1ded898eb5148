"""Shared fixtures for building package archives and project manifests."""

from __future__ import annotations

import io
import json
import uuid
import tarfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import pytest

from unipkg.models.manifest import installed_manifest_path

Content = Union[str, bytes]
FileSpec = Union[str, Dict[str, Any]]


def _add_member(archive: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    archive.addfile(info, io.BytesIO(data))


def _entry_id(logical_path: str) -> str:
    return uuid.uuid5(uuid.NAMESPACE_URL, logical_path).hex


def write_archive(
    path: Path,
    files: Mapping[str, Content],
    *,
    with_folders: bool = True,
    without_meta: Optional[List[str]] = None,
) -> Path:
    """Write a ``.unitypackage`` holding ``files`` (logical path -> content).

    Every ancestor directory of a file gets its own folder entry unless
    ``with_folders`` is False. Paths listed in ``without_meta`` get no
    ``asset.meta`` member.
    """
    without_meta = without_meta or []
    folders = set()
    if with_folders:
        for logical_path in files:
            parts = logical_path.split("/")[:-1]
            folders.update("/".join(parts[: i + 1]) for i in range(len(parts)))

    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as archive:
        for logical_path, content in files.items():
            entry = _entry_id(logical_path)
            data = content.encode("utf-8") if isinstance(content, str) else content
            _add_member(archive, f"{entry}/asset", data)
            if logical_path not in without_meta:
                _add_member(archive, f"{entry}/asset.meta", f"guid: {entry}\n".encode())
            _add_member(archive, f"{entry}/pathname", f"{logical_path}\n00\n".encode())

        for folder in sorted(folders):
            entry = _entry_id(folder)
            _add_member(archive, f"{entry}/asset.meta", f"guid: {entry}\nfolderAsset: yes\n".encode())
            _add_member(archive, f"{entry}/pathname", folder.encode())

    return path


def _target(item: FileSpec) -> str:
    return item if isinstance(item, str) else item["target"]


@pytest.fixture
def make_archive() -> Callable[..., Path]:
    """Return :func:`write_archive`."""
    return write_archive


@pytest.fixture
def make_package() -> Callable[..., Path]:
    """Return a builder writing ``{id}.{version}.unitypackage`` into a directory.

    The archive embeds the package's manifest at its installed path and
    one file per ``files`` entry, whose content is ``"{target}@{version}"``.
    """

    def _make(
        directory: Path,
        package_id: str,
        version: str,
        files: List[FileSpec],
        *,
        dependencies: Optional[Dict[str, Dict[str, Any]]] = None,
        merged_dependencies: Optional[Dict[str, str]] = None,
        name: Optional[str] = None,
    ) -> Path:
        manifest: Dict[str, Any] = {"id": package_id, "version": version, "files": files}
        if dependencies:
            manifest["dependencies"] = dependencies
        if merged_dependencies:
            manifest["mergedDependencies"] = {
                key: {"version": value} for key, value in merged_dependencies.items()
            }

        contents: Dict[str, Content] = {
            _target(item): f"{_target(item)}@{version}" for item in files
        }
        contents[installed_manifest_path(package_id)] = json.dumps(manifest, indent=2)

        archive_name = name or f"{package_id}.{version}.unitypackage"
        return write_archive(directory / archive_name, contents)

    return _make


@pytest.fixture
def write_project() -> Callable[..., Path]:
    """Return a helper writing ``UnityPackages.json`` into a directory."""

    def _write(directory: Path, dependencies: Optional[Dict[str, Dict[str, Any]]] = None) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        project_file = directory / "UnityPackages.json"
        project_file.write_text(
            json.dumps({"id": "Project", "dependencies": dependencies or {}}, indent=2),
            encoding="utf-8",
        )
        return project_file

    return _write
