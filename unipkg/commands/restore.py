"""Restore command implementation for unipkg.

Reads a project manifest (``UnityPackages.json`` by default), resolves its
dependency graph breadth-first and applies every package to the project
tree.

Typical usage::

    # Restore next to the manifest
    $ unipkg restore

    # Use a local package repository and a separate output tree
    $ unipkg restore UnityPackages.json -l ../packages -o build/Project

    # Start from a clean slate and ignore cached downloads
    $ unipkg restore -r -f
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, Optional

import click

from unipkg.models import Version
from unipkg.constants import DEFAULT_PROJECT_FILE
from unipkg.context import pass_context, UniPkgContext
from unipkg.core import restore_project
from unipkg.utils import get_logger, get_raw_console, print_restored

logger = get_logger("commands.restore")


@click.command()
@click.argument(
    "project_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_PROJECT_FILE,
)
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Project directory to restore into (default: the manifest's directory).",
)
@click.option(
    "--local",
    "-l",
    "local_repository",
    type=click.Path(file_okay=False, path_type=Path),
    help="Local repository directory holding .unitypackage files.",
)
@click.option(
    "--remove",
    "-r",
    is_flag=True,
    help="Remove all installed packages before restoring.",
)
@click.option(
    "--token",
    "-t",
    envvar="GITHUB_TOKEN",
    help="GitHub token used for release lookups.",
)
@click.option(
    "--force-refresh",
    "-f",
    is_flag=True,
    help="Download packages again even if they are cached.",
)
@pass_context
def restore(
    ctx: UniPkgContext,
    project_file: Path,
    output_dir: Optional[Path],
    local_repository: Optional[Path],
    remove: bool,
    token: Optional[str],
    force_refresh: bool,
) -> None:
    """Restore the packages declared in PROJECT_FILE.

    Each dependency is fetched from its source (local repository, GitHub
    releases or NuGet) and applied to the project tree. Packages pulled in
    transitively are restored as well. A version conflict between two
    dependency edges aborts the restore.
    """
    config = ctx.get_config()
    local_repository = local_repository or config.local_repository

    logger.info("Restoring %s", project_file)
    resolved = asyncio.run(
        restore_project(
            project_file,
            output_dir=output_dir,
            local_repository=local_repository,
            remove=remove,
            token=token or None,
            force_refresh=force_refresh or config.force_refresh,
            cache_dir=config.cache_dir,
            timeout=config.timeout,
        )
    )
    _display_restored(resolved)


def _display_restored(resolved: Dict[str, Version]) -> None:
    if not resolved:
        get_raw_console().print("No dependencies.", markup=False)
        return

    for package_id, version in resolved.items():
        print_restored(package_id, str(version))
