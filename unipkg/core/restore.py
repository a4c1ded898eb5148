"""Dependency restoration for unipkg.

A restore walks the dependency graph breadth-first, starting from the
project manifest. Each package is resolved from its source, applied to
the project tree, and its own installed manifest is read back to discover
further dependencies.

The first version resolved for a package id wins. Every later edge that
names the same id must be satisfied by that version, otherwise the run
aborts with :class:`~unipkg.exceptions.VersionConflict`. Packages applied
before the failure stay applied.

Typical usage::

    from unipkg.core.restore import restore_project

    resolved = asyncio.run(restore_project("UnityPackages.json"))
    for package_id, version in resolved.items():
        print(package_id, version)
"""

from __future__ import annotations

from pathlib import Path
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional, Tuple, Union

from unipkg.utils.http import HTTPClient
from unipkg.utils.logger import get_logger
from unipkg.utils.filesystem import resolve_within
from unipkg.models.version import Version, parse_version
from unipkg.models.manifest import (
    Dependency,
    LocalSourceSpec,
    Manifest,
    RegistrySourceSpec,
    ReleaseFeedSourceSpec,
    installed_manifest_path,
)
from unipkg.core.sources import (
    LocalSource,
    RegistrySource,
    ReleaseFeedSource,
    ResolvedPackage,
    default_cache_root,
)
from unipkg.core.extractor import extract_package, install_registry_package
from unipkg.core.remover import remove_installed_packages
from unipkg.exceptions import UnrecognizedSource, VersionConflict
from unipkg.constants import DEFAULT_TIMEOUT

logger = get_logger("restore")

__all__ = ["PackageRestorer", "RestoreContext", "restore_project"]

PathLike = Union[str, Path]
Edge = Tuple[str, Dependency]


@dataclass
class RestoreContext:
    """State of one restore run.

    Attributes:
        output_dir: Root of the project tree packages are applied to.
        package_map: Resolved versions by package id, in resolution order.
        queue: Dependency edges still to process.
    """

    output_dir: Path
    package_map: Dict[str, Version] = field(default_factory=dict)
    queue: Deque[Edge] = field(default_factory=deque)


class PackageRestorer:
    """Resolve and apply a manifest's dependency graph.

    Args:
        output_dir: Project tree packages are applied to.
        local: Local repository source. When it is configured, it also
            shadows remote sources for any version it can satisfy.
        release_feed: GitHub release source.
        registry: NuGet source.
    """

    def __init__(
        self,
        output_dir: PathLike,
        local: LocalSource,
        release_feed: ReleaseFeedSource,
        registry: RegistrySource,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.local = local
        self.release_feed = release_feed
        self.registry = registry

    async def restore(self, manifest: Manifest) -> Dict[str, Version]:
        """Restore every dependency reachable from ``manifest``.

        Returns:
            Resolved version by package id, in the order packages were
            resolved.

        Raises:
            VersionConflict: An edge's range excludes the version already
                resolved for its package.
            PackageNotFound: A source has nothing matching an edge.
            UniPkgError: Any other failure while fetching or applying.
        """
        context = RestoreContext(output_dir=self.output_dir)
        context.queue.extend(manifest.dependencies.items())

        while context.queue:
            package_id, dependency = context.queue.popleft()
            await self._process_step(package_id, dependency, context)

        return context.package_map

    async def _process_step(
        self,
        package_id: str,
        dependency: Dependency,
        context: RestoreContext,
    ) -> None:
        resolved = context.package_map.get(package_id)
        if resolved is not None:
            if not dependency.version_range.is_satisfied(resolved):
                raise VersionConflict(package_id, dependency.version, str(resolved))
            logger.debug("%s already resolved to %s", package_id, resolved)
            return

        logger.info("Restore: %s", package_id)
        package = await self._resolve(package_id, dependency)
        context.package_map[package_id] = package.version

        source = dependency.source
        if isinstance(source, RegistrySourceSpec) and not package.is_archive:
            install_registry_package(package, source.target_framework, context.output_dir)
            return

        extract_package(
            package.path,
            context.output_dir,
            package_id,
            include_extra=dependency.include_extra,
            include_merged=dependency.include_merged,
        )

        manifest_file = resolve_within(context.output_dir, installed_manifest_path(package_id))
        if not manifest_file.is_file():
            return

        installed = Manifest.load(manifest_file)
        if dependency.include_merged:
            for merged_id, merged in installed.merged_dependencies.items():
                if merged_id not in context.package_map:
                    context.package_map[merged_id] = parse_version(merged.version)
        context.queue.extend(installed.dependencies.items())

    async def _resolve(self, package_id: str, dependency: Dependency) -> ResolvedPackage:
        source = dependency.source

        if isinstance(source, LocalSourceSpec):
            return await self.local.resolve(package_id, dependency)

        if self.local.is_configured:
            shadow = self.local.find(package_id, dependency.version_range)
            if shadow is not None:
                logger.info("Using local repository for %s %s", package_id, shadow.version)
                return shadow

        if isinstance(source, ReleaseFeedSourceSpec):
            return await self.release_feed.resolve(package_id, dependency)
        if isinstance(source, RegistrySourceSpec):
            return await self.registry.resolve(package_id, dependency)

        raise UnrecognizedSource(f"Cannot recognize source: {source}", source=str(source))


async def restore_project(
    project_file: PathLike,
    output_dir: Optional[PathLike] = None,
    local_repository: Optional[PathLike] = None,
    remove: bool = False,
    token: Optional[str] = None,
    force_refresh: bool = False,
    cache_dir: Optional[PathLike] = None,
    http: Optional[HTTPClient] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> Dict[str, Version]:
    """Restore the dependencies of a project manifest.

    Args:
        project_file: Project manifest (usually ``UnityPackages.json``).
        output_dir: Project tree to apply packages to. Defaults to the
            directory holding ``project_file``.
        local_repository: Directory of ``.unitypackage`` files.
        remove: Remove every installed package before restoring.
        token: GitHub token.
        force_refresh: Re-download packages already in the cache.
        cache_dir: Download cache. Defaults to :func:`default_cache_root`.
        http: HTTP client to use. One is created (and closed) when omitted.
        timeout: Request timeout for the client created when ``http`` is
            omitted.

    Returns:
        Resolved version by package id.
    """
    project_file = Path(project_file)
    manifest = Manifest.load(project_file)
    target = Path(output_dir) if output_dir is not None else project_file.resolve().parent

    if remove:
        removed = remove_installed_packages(target)
        logger.info("Removed %d installed package(s)", len(removed))

    if not manifest.dependencies:
        logger.info("%s declares no dependencies", project_file)
        return {}

    cache_root = Path(cache_dir) if cache_dir is not None else default_cache_root()
    logger.debug("Using package cache %s", cache_root)

    if http is not None:
        return await _run(manifest, target, local_repository, http, cache_root, token, force_refresh)

    async with HTTPClient(timeout=timeout) as client:
        return await _run(manifest, target, local_repository, client, cache_root, token, force_refresh)


async def _run(
    manifest: Manifest,
    output_dir: Path,
    local_repository: Optional[PathLike],
    http: HTTPClient,
    cache_root: Path,
    token: Optional[str],
    force_refresh: bool,
) -> Dict[str, Version]:
    restorer = PackageRestorer(
        output_dir,
        local=LocalSource(Path(local_repository) if local_repository else None),
        release_feed=ReleaseFeedSource(
            http, cache_root, token=token, force_refresh=force_refresh
        ),
        registry=RegistrySource(http, cache_root, force_refresh=force_refresh),
    )
    return await restorer.restore(manifest)
