"""Remove command implementation for unipkg.

Deletes every package installed into a project tree: the files each
installed manifest lists, the manifests themselves, and directories left
empty.

Typical usage::

    $ unipkg remove MyProject
    $ unipkg remove -y
"""

from __future__ import annotations

from pathlib import Path

import click

from unipkg.context import pass_context, UniPkgContext
from unipkg.core import remove_installed_packages
from unipkg.utils import confirm, get_logger, print_success, print_warning

logger = get_logger("commands.remove")


@click.command()
@click.argument(
    "project_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Skip confirmation prompt.",
)
@pass_context
def remove(ctx: UniPkgContext, project_dir: Path, yes: bool) -> None:
    """Remove all packages installed into PROJECT_DIR."""
    if not yes and not confirm(f"Remove all installed packages from {project_dir}?"):
        print_warning("Nothing removed")
        return

    removed = remove_installed_packages(project_dir)
    if not removed:
        print_warning("No installed packages found")
        return

    for package_id in removed:
        logger.debug("Removed %s", package_id)
    print_success(f"Removed {len(removed)} package(s): {', '.join(removed)}")
