"""Package sources for unipkg.

Three interchangeable strategies turn a dependency into something that
can be applied to a project tree:

- :class:`LocalSource` picks an archive from a local repository
  directory.
- :class:`ReleaseFeedSource` picks a release asset from a GitHub
  repository and caches the download.
- :class:`RegistrySource` installs a NuGet package into the cache and
  locates its library (or analyzer) assemblies.

They share no base class; each one satisfies :class:`PackageSource`
structurally. Local and release-feed sources match the dependency's
version *range*. The registry source takes the declared version string
as an exact version, because NuGet dependencies are pinned by their
declaring manifest.

Typical usage::

    async with HTTPClient() as http:
        source = ReleaseFeedSource(http, default_cache_root())
        package = await source.resolve("DepA", dependency)
        print(package.path, package.version)
"""

from __future__ import annotations

import os
import enum
import shutil
import zipfile
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from unipkg.utils.http import HTTPClient
from unipkg.utils.logger import get_logger
from unipkg.utils.filesystem import scratch_directory
from unipkg.models.manifest import (
    Dependency,
    RegistrySourceSpec,
    ReleaseFeedSourceSpec,
)
from unipkg.models.version import Version, VersionRange, parse_version
from unipkg.exceptions import (
    FileOperationError,
    InvalidVersionFormat,
    NetworkError,
    PackageLayoutNotFound,
    PackageNotFound,
    UnrecognizedSource,
)
from unipkg.constants import (
    CACHE_DIR_NAME,
    GITHUB_PAGE_SIZE,
    GITHUB_RELEASES_API,
    NUGET_PACKAGE_URL,
    PACKAGE_EXTENSION,
)

logger = get_logger("sources")

__all__ = [
    "LocalSource",
    "PackageSource",
    "RegistryLayout",
    "RegistrySource",
    "ReleaseFeedSource",
    "ResolvedPackage",
    "default_cache_root",
]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class RegistryLayout(enum.Enum):
    """Which part of a registry package holds its assemblies."""

    LIBRARY = "library"
    ANALYZER = "analyzer"


@dataclass(frozen=True)
class ResolvedPackage:
    """A package chosen by a source, ready to be applied.

    Attributes:
        package_id: Package identifier.
        version: Version that was selected.
        path: Archive file (local and release-feed sources) or installed
            package directory (registry source).
        layout: Registry layout kind; ``None`` for archives.
        layout_dir: Directory holding the registry package's assemblies.
    """

    package_id: str
    version: Version
    path: Path
    layout: Optional[RegistryLayout] = None
    layout_dir: Optional[Path] = None

    @property
    def is_archive(self) -> bool:
        return self.layout is None


class PackageSource(Protocol):
    """Anything that can resolve a dependency to a concrete package."""

    async def resolve(self, package_id: str, dependency: Dependency) -> ResolvedPackage:
        ...


def default_cache_root() -> Path:
    """Return the shared package cache directory.

    ``UNIPKG_CACHE_DIR`` wins when set; otherwise the cache lives under
    ``%APPDATA%`` on Windows and under ``$XDG_CACHE_HOME`` (or
    ``~/.cache``) elsewhere.
    """
    override = os.environ.get("UNIPKG_CACHE_DIR")
    if override:
        return Path(override).expanduser()

    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata) / CACHE_DIR_NAME

    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg_cache) if xdg_cache else Path.home() / ".cache"
    return base / CACHE_DIR_NAME


def _version_from_name(name: str, package_id: str) -> Optional[Version]:
    """Extract the version from ``{id}.{version}.unitypackage``.

    Returns ``None`` when the name belongs to another package or its
    version suffix does not parse.
    """
    if not name.lower().endswith(PACKAGE_EXTENSION):
        return None
    if not name.startswith(package_id + "."):
        return None

    version_text = name[len(package_id) + 1 : -len(PACKAGE_EXTENSION)]
    try:
        return parse_version(version_text)
    except InvalidVersionFormat:
        logger.debug("Ignoring %s: unparseable version %r", name, version_text)
        return None


# ---------------------------------------------------------------------------
# Local repository
# ---------------------------------------------------------------------------


class LocalSource:
    """Resolve packages from a directory of ``{id}.{version}.unitypackage`` files.

    Args:
        repository_dir: Local repository directory, or ``None`` when none
            is configured.
    """

    def __init__(self, repository_dir: Optional[Path] = None) -> None:
        self.repository_dir = Path(repository_dir) if repository_dir else None

    @property
    def is_configured(self) -> bool:
        return self.repository_dir is not None

    def list_packages(self, package_id: str) -> List[Tuple[Path, Version]]:
        """Return ``(archive, version)`` pairs for ``package_id``, sorted by file name."""
        if self.repository_dir is None or not self.repository_dir.is_dir():
            return []

        packages: List[Tuple[Path, Version]] = []
        for entry in sorted(self.repository_dir.iterdir()):
            if not entry.is_file():
                continue
            version = _version_from_name(entry.name, package_id)
            if version is not None:
                packages.append((entry, version))
        return packages

    def find(self, package_id: str, version_range: VersionRange) -> Optional[ResolvedPackage]:
        """Return the best local archive for the range, or ``None``."""
        packages = self.list_packages(package_id)
        index = version_range.best_satisfying([version for _, version in packages])
        if index is None:
            return None

        archive, version = packages[index]
        logger.debug("Local repository match: %s %s -> %s", package_id, version, archive)
        return ResolvedPackage(package_id=package_id, version=version, path=archive)

    async def resolve(self, package_id: str, dependency: Dependency) -> ResolvedPackage:
        if self.repository_dir is None:
            raise PackageNotFound(
                "Local repository directory is not configured",
                package_id=package_id,
                requested=dependency.version,
                source=str(dependency.source),
            )

        found = self.find(package_id, dependency.version_range)
        if found is None:
            raise PackageNotFound(
                f"Cannot find package from local repository: {package_id}",
                package_id=package_id,
                requested=dependency.version,
                source=str(self.repository_dir),
            )
        return found


# ---------------------------------------------------------------------------
# GitHub releases
# ---------------------------------------------------------------------------


class ReleaseFeedSource:
    """Resolve packages from the release assets of GitHub repositories.

    Args:
        http: Shared HTTP client.
        cache_dir: Package cache root; downloads are stored directly in it.
        token: Optional GitHub token, sent to raise the API rate limit.
        force_refresh: Re-download even when the cache already holds the file.
    """

    def __init__(
        self,
        http: HTTPClient,
        cache_dir: Path,
        *,
        token: Optional[str] = None,
        force_refresh: bool = False,
    ) -> None:
        self.http = http
        self.cache_dir = Path(cache_dir)
        self.token = token
        self.force_refresh = force_refresh

    def _headers(self, accept: str = "application/vnd.github+json") -> Dict[str, str]:
        headers = {"Accept": accept}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def list_releases(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """Return every release of ``owner/repo``, following pagination."""
        url = GITHUB_RELEASES_API.format(owner=owner, repo=repo)
        releases: List[Dict[str, Any]] = []
        page = 1

        while True:
            try:
                batch = await self.http.get_json_list(
                    url,
                    params={"per_page": GITHUB_PAGE_SIZE, "page": page},
                    headers=self._headers(),
                )
            except NetworkError as exc:
                if exc.status_code == 404:
                    raise PackageNotFound(
                        f"GitHub repository not found: {owner}/{repo}",
                        source=f"github:{owner}/{repo}",
                    ) from exc
                raise

            releases.extend(item for item in batch if isinstance(item, dict))
            if len(batch) < GITHUB_PAGE_SIZE:
                return releases
            page += 1

    async def fetch_packages(
        self,
        owner: str,
        repo: str,
        package_id: str,
    ) -> List[Tuple[str, Version]]:
        """Return ``(download_url, version)`` for each asset of ``package_id``.

        Assets whose version suffix does not parse are skipped.
        """
        packages: List[Tuple[str, Version]] = []
        for release in await self.list_releases(owner, repo):
            for asset in release.get("assets") or []:
                name = asset.get("name") or ""
                url = asset.get("browser_download_url")
                version = _version_from_name(name, package_id)
                if version is not None and url:
                    packages.append((url, version))
        return packages

    def cache_path(self, owner: str, repo: str, package_id: str, version: Version) -> Path:
        """Return the cache file for one release asset."""
        return self.cache_dir / (
            f"github~{owner}~{repo}~{package_id}~{version}{PACKAGE_EXTENSION}"
        )

    async def resolve(self, package_id: str, dependency: Dependency) -> ResolvedPackage:
        source = dependency.source
        if not isinstance(source, ReleaseFeedSourceSpec):
            raise UnrecognizedSource(
                f"Not a GitHub source: {source}", source=str(source)
            )

        packages = await self.fetch_packages(source.owner, source.repo, package_id)
        index = dependency.version_range.best_satisfying([v for _, v in packages])
        if index is None:
            raise PackageNotFound(
                "Cannot find a package matched version range",
                package_id=package_id,
                requested=dependency.version,
                source=str(source),
            )

        url, version = packages[index]
        target = self.cache_path(source.owner, source.repo, package_id, version)
        if self.force_refresh or not target.exists():
            logger.info("Downloading %s %s from %s", package_id, version, source)
            await self.http.download(
                url, target, headers=self._headers("application/octet-stream")
            )
        else:
            logger.debug("Using cached %s", target)

        return ResolvedPackage(package_id=package_id, version=version, path=target)


# ---------------------------------------------------------------------------
# NuGet
# ---------------------------------------------------------------------------


class RegistrySource:
    """Resolve packages from the NuGet registry.

    Packages are installed (downloaded and unpacked) into
    ``{cache_dir}/nuget/{id}.{version}`` and reused from there.

    Args:
        http: Shared HTTP client.
        cache_dir: Package cache root.
        force_refresh: Reinstall even when the package is already cached.
    """

    def __init__(
        self,
        http: HTTPClient,
        cache_dir: Path,
        *,
        force_refresh: bool = False,
    ) -> None:
        self.http = http
        self.cache_dir = Path(cache_dir)
        self.force_refresh = force_refresh

    def package_dir(self, package_id: str, version: Version) -> Path:
        return self.cache_dir / "nuget" / f"{package_id}.{version}"

    async def install(self, package_id: str, version: Version) -> Path:
        """Download and unpack ``package_id`` at exactly ``version``.

        Returns:
            The installed package directory.

        Raises:
            PackageNotFound: The registry has no such package version.
        """
        target = self.package_dir(package_id, version)
        if target.is_dir() and not self.force_refresh:
            logger.debug("Using cached NuGet package %s", target)
            return target

        lower_id = package_id.lower()
        url = NUGET_PACKAGE_URL.format(id=lower_id, version=str(version).lower())
        logger.info("Installing NuGet package %s %s", package_id, version)

        with scratch_directory() as scratch:
            nupkg = scratch / f"{lower_id}.nupkg"
            try:
                await self.http.download(url, nupkg)
            except NetworkError as exc:
                if exc.status_code == 404:
                    raise PackageNotFound(
                        f"NuGet package not found: {package_id} {version}",
                        package_id=package_id,
                        requested=str(version),
                        source="nuget",
                    ) from exc
                raise

            unpacked = scratch / "content"
            try:
                with zipfile.ZipFile(nupkg) as archive:
                    archive.extractall(unpacked)
            except (zipfile.BadZipFile, OSError) as exc:
                raise FileOperationError(
                    f"Cannot unpack NuGet package: {exc}",
                    file_path=str(nupkg),
                    operation="extract",
                    original_error=exc,
                ) from exc

            try:
                if target.exists():
                    shutil.rmtree(target)
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(unpacked), str(target))
            except OSError as exc:
                raise FileOperationError(
                    f"Cannot install NuGet package: {exc}",
                    file_path=str(target),
                    operation="write",
                    original_error=exc,
                ) from exc

        return target

    @staticmethod
    def locate_layout(
        package_dir: Path,
        package_id: str,
        target_framework: str,
    ) -> Tuple[RegistryLayout, Path]:
        """Find the assemblies to materialize.

        ``lib/{target_framework}`` is preferred; ``analyzers/dotnet/cs``
        is the fallback.

        Raises:
            PackageLayoutNotFound: Neither directory exists.
        """
        library = package_dir / "lib" / target_framework
        if library.is_dir():
            return RegistryLayout.LIBRARY, library

        analyzers = package_dir / "analyzers" / "dotnet" / "cs"
        if analyzers.is_dir():
            return RegistryLayout.ANALYZER, analyzers

        raise PackageLayoutNotFound(
            f"Cannot find lib directory: {library}",
            package_id=package_id,
            path=str(library),
        )

    async def resolve(self, package_id: str, dependency: Dependency) -> ResolvedPackage:
        source = dependency.source
        if not isinstance(source, RegistrySourceSpec):
            raise UnrecognizedSource(
                f"Not a NuGet source: {source}", source=str(source)
            )

        version = parse_version(dependency.version)
        package_dir = await self.install(package_id, version)
        layout, layout_dir = self.locate_layout(package_dir, package_id, source.target_framework)

        return ResolvedPackage(
            package_id=package_id,
            version=version,
            path=package_dir,
            layout=layout,
            layout_dir=layout_dir,
        )
