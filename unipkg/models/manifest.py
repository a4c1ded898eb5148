"""
Manifest data models for unipkg.

A manifest describes either a project (what to restore) or a package (what
it contains and what it depends on). Both share one JSON schema::

    {
      "id": "DepD",
      "version": "1.0.0",
      "description": "...",
      "dependencies": {
        "DepA": {"version": "^1.0.0", "source": "local"},
        "Json": {"version": "10.0.3", "source": "nuget:net45"}
      },
      "mergedDependencies": {"DepC": {"version": "1.0.0"}},
      "files": [
        "Assets/UnityPackages/DepD/FileD.txt",
        {"target": "Assets/UnityPackages/DepD-Sample/FileD.txt", "extra": true}
      ]
    }

Dependency and merged-dependency maps keep their declaration order, which
is the order a restore walks them in.
"""

from __future__ import annotations

import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from unipkg.utils.logger import get_logger
from unipkg.utils.filesystem import atomic_write_text, safe_read_file
from unipkg.exceptions import ManifestParseError, UnrecognizedSource
from unipkg.models.version import VersionRange, parse_range
from unipkg.constants import (
    INSTALLED_PACKAGES_DIR,
    MANIFEST_SUFFIX,
    SOURCE_GITHUB_PREFIX,
    SOURCE_LOCAL,
    SOURCE_NUGET_PREFIX,
)

logger = get_logger("manifest")


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocalSourceSpec:
    """Packages come from the configured local repository directory."""

    def __str__(self) -> str:
        return SOURCE_LOCAL


@dataclass(frozen=True)
class RegistrySourceSpec:
    """Packages come from NuGet, restricted to one target framework.

    Attributes:
        target_framework: Target framework moniker, e.g. ``net45``.
    """

    target_framework: str

    def __str__(self) -> str:
        return f"{SOURCE_NUGET_PREFIX}{self.target_framework}"


@dataclass(frozen=True)
class ReleaseFeedSourceSpec:
    """Packages come from the release assets of a GitHub repository."""

    owner: str
    repo: str

    def __str__(self) -> str:
        return f"{SOURCE_GITHUB_PREFIX}{self.owner}/{self.repo}"


SourceSpec = Union[LocalSourceSpec, RegistrySourceSpec, ReleaseFeedSourceSpec]


def parse_source(text: str) -> SourceSpec:
    """Parse a dependency's ``source`` string.

    Accepted forms are exactly ``local``, ``github:{owner}/{repo}`` and
    ``nuget:{targetFrameworkMoniker}``.

    Raises:
        UnrecognizedSource: Any other value.
    """
    if text == SOURCE_LOCAL:
        return LocalSourceSpec()

    if isinstance(text, str) and text.startswith(SOURCE_GITHUB_PREFIX):
        parts = text[len(SOURCE_GITHUB_PREFIX):].split("/")
        if len(parts) != 2 or not all(parts):
            raise UnrecognizedSource(
                f"Cannot determine GitHub repository from source: {text}",
                source=text,
            )
        return ReleaseFeedSourceSpec(owner=parts[0], repo=parts[1])

    if isinstance(text, str) and text.startswith(SOURCE_NUGET_PREFIX):
        moniker = text[len(SOURCE_NUGET_PREFIX):]
        if not moniker:
            raise UnrecognizedSource(
                f"Missing target framework in source: {text}",
                source=text,
            )
        return RegistrySourceSpec(target_framework=moniker)

    raise UnrecognizedSource(f"Cannot recognize source: {text}", source=str(text))


# ---------------------------------------------------------------------------
# Manifest entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dependency:
    """One declared dependency edge.

    Attributes:
        id: Package identifier.
        version: Raw constraint text. Registry sources use it verbatim as
            an exact version.
        version_range: Parsed form of ``version``.
        source: Where the package is fetched from.
        include_extra: Materialize files flagged ``extra``.
        include_merged: Materialize files flagged ``merged``.
    """

    id: str
    version: str
    version_range: VersionRange
    source: SourceSpec
    include_extra: bool = False
    include_merged: bool = False

    @classmethod
    def from_dict(cls, package_id: str, data: Mapping[str, Any]) -> "Dependency":
        version = data.get("version", "")
        if not isinstance(version, str):
            raise ManifestParseError(f"Dependency {package_id}: 'version' must be a string")
        source = data.get("source", SOURCE_LOCAL)
        if not isinstance(source, str):
            raise ManifestParseError(f"Dependency {package_id}: 'source' must be a string")

        return cls(
            id=package_id,
            version=version,
            version_range=parse_range(version),
            source=parse_source(source),
            include_extra=_flag(data, "includeExtra", package_id),
            include_merged=_flag(data, "includeMerged", package_id),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"version": self.version, "source": str(self.source)}
        if self.include_extra:
            result["includeExtra"] = True
        if self.include_merged:
            result["includeMerged"] = True
        return result


@dataclass(frozen=True)
class MergedDependency:
    """A dependency whose files are bundled inside the declaring package."""

    version: str

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version}


@dataclass(frozen=True)
class FileItem:
    """One file shipped by a package.

    Attributes:
        target: Forward-slash path relative to the project root.
        source: Original path the file was packed from (informational).
        extra: Only materialized when the dependent opts in.
        merged: Comes from a merged dependency; only materialized when the
            dependent opts in.
    """

    target: str
    source: Optional[str] = None
    extra: bool = False
    merged: bool = False

    @classmethod
    def from_json(cls, value: Any) -> "FileItem":
        """Build a file item from a bare path string or an object."""
        if isinstance(value, str):
            return cls(target=value)

        if isinstance(value, Mapping):
            target = value.get("target")
            if not isinstance(target, str) or not target:
                raise ManifestParseError(f"File entry without a target: {value!r}")
            source = value.get("source")
            return cls(
                target=target,
                source=source if isinstance(source, str) else None,
                extra=_flag(value, "extra", target),
                merged=_flag(value, "merged", target),
            )

        raise ManifestParseError(f"Invalid file entry: {value!r}")

    def to_json(self) -> Union[str, Dict[str, Any]]:
        if self.source is None and not self.extra and not self.merged:
            return self.target
        result: Dict[str, Any] = {"target": self.target}
        if self.source is not None:
            result["source"] = self.source
        if self.extra:
            result["extra"] = True
        if self.merged:
            result["merged"] = True
        return result


def _flag(data: Mapping[str, Any], key: str, owner: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ManifestParseError(f"{owner}: '{key}' must be a boolean, got {type(value).__name__}")
    return value


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


@dataclass
class Manifest:
    """A project or package manifest.

    Attributes:
        id: Package identifier (may be empty for a project manifest).
        version: Package version text.
        description: Free-form description.
        dependencies: Declared dependencies, in declaration order.
        merged_dependencies: Dependencies bundled into this package.
        files: Files shipped by the package.
    """

    id: str = ""
    version: str = ""
    description: str = ""
    dependencies: Dict[str, Dependency] = field(default_factory=dict)
    merged_dependencies: Dict[str, MergedDependency] = field(default_factory=dict)
    files: List[FileItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Manifest":
        """Build a manifest from decoded JSON.

        Raises:
            ManifestParseError: The document does not follow the schema.
            InvalidRangeFormat: A dependency constraint is malformed.
            UnrecognizedSource: A dependency names an unknown source.
        """
        if not isinstance(data, Mapping):
            raise ManifestParseError("Manifest must be a JSON object")

        dependencies: Dict[str, Dependency] = {}
        for package_id, dep in _mapping(data, "dependencies").items():
            if not isinstance(dep, Mapping):
                raise ManifestParseError(f"Dependency {package_id} must be an object")
            dependencies[package_id] = Dependency.from_dict(package_id, dep)

        merged: Dict[str, MergedDependency] = {}
        for package_id, dep in _mapping(data, "mergedDependencies").items():
            if not isinstance(dep, Mapping) or not isinstance(dep.get("version"), str):
                raise ManifestParseError(
                    f"Merged dependency {package_id} must be an object with a 'version'"
                )
            merged[package_id] = MergedDependency(version=dep["version"])

        files = data.get("files") or []
        if not isinstance(files, list):
            raise ManifestParseError("'files' must be an array")

        return cls(
            id=_text(data, "id"),
            version=_text(data, "version"),
            description=_text(data, "description"),
            dependencies=dependencies,
            merged_dependencies=merged,
            files=[FileItem.from_json(item) for item in files],
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Manifest":
        """Read and parse the manifest at ``path``.

        Raises:
            FileOperationError: The file is missing or unreadable.
            ManifestParseError: The file is not a valid manifest.
        """
        text = safe_read_file(path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ManifestParseError(
                f"Invalid JSON in manifest: {exc}", file_path=str(path)
            ) from exc

        try:
            return cls.from_dict(data)
        except ManifestParseError as exc:
            if exc.file_path is None:
                raise ManifestParseError(exc.message, file_path=str(path)) from exc
            raise

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON form, omitting empty fields."""
        result: Dict[str, Any] = {}
        for key, value in (
            ("id", self.id),
            ("version", self.version),
            ("description", self.description),
        ):
            if value:
                result[key] = value
        if self.dependencies:
            result["dependencies"] = {k: d.to_dict() for k, d in self.dependencies.items()}
        if self.merged_dependencies:
            result["mergedDependencies"] = {
                k: d.to_dict() for k, d in self.merged_dependencies.items()
            }
        if self.files:
            result["files"] = [item.to_json() for item in self.files]
        return result

    def save(self, path: Union[str, Path]) -> None:
        """Atomically write the manifest as indented JSON."""
        atomic_write_text(path, json.dumps(self.to_dict(), indent=2) + "\n")

    def file_map(self) -> Dict[str, FileItem]:
        """Index ``files`` by target path.

        A target listed more than once keeps its last declaration.
        """
        result: Dict[str, FileItem] = {}
        for item in self.files:
            if item.target in result:
                logger.debug("Replacing item '%s' (%s)", item.target, item.source)
            result[item.target] = item
        return result


def _mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ManifestParseError(f"'{key}' must be an object")
    return value


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ManifestParseError(f"'{key}' must be a string")
    return value


def installed_manifest_path(package_id: str) -> str:
    """Return the logical path of a package's installed manifest.

    Example:
        >>> installed_manifest_path("DepA")
        'Assets/UnityPackages/DepA.unitypackage.json'
    """
    return f"{INSTALLED_PACKAGES_DIR}/{package_id}{MANIFEST_SUFFIX}"
