"""
Command-line interface for unipkg.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from unipkg.config import load_config
from unipkg.__version__ import __version__
from unipkg.context import UniPkgContext
from unipkg.exceptions import ConfigError, UniPkgError
from unipkg.utils.console import print_error, print_warning, reconfigure_console
from unipkg.utils.logger import get_logger, level_for_verbosity, setup_logging

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="UNIPKG_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="UNIPKG_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="unipkg",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """unipkg: restore Unity packages declared in UnityPackages.json.

    \b
    Available commands:
      unipkg restore               Restore project dependencies
      unipkg remove                Remove installed packages

    \b
    Examples:
      unipkg restore
      unipkg restore -l ../packages -o MyProject
      unipkg -v restore UnityPackages.json

    Use ``unipkg COMMAND --help`` for command-specific options.
    """
    # Respect NO_COLOR for downstream libraries
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    _configure_logging(verbose)

    try:
        loaded_config = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    unipkg_ctx = UniPkgContext()
    unipkg_ctx.config_path = config or loaded_config.source_path
    unipkg_ctx.color = color
    unipkg_ctx.verbose = verbose
    unipkg_ctx.config = loaded_config
    ctx.obj = unipkg_ctx

    logger.debug("unipkg v%s", __version__)
    logger.debug("Config path: %s", unipkg_ctx.config_path)
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    level = level_for_verbosity(verbose)
    setup_logging(level=level)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
from unipkg.commands.remove import remove  # noqa: E402
from unipkg.commands.restore import restore  # noqa: E402

cli.add_command(restore)
cli.add_command(remove)


def main() -> int:
    """Main entry point for the unipkg CLI.

    Returns:
        Exit code:
            0   Success
            1   Usage, application or unexpected error
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except click.UsageError as exc:
        exc.show()
        return 1

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except click.exceptions.Abort as exc:
        # Click wraps Ctrl+C raised inside a command in Abort.
        if isinstance(exc.__cause__, KeyboardInterrupt):
            print_warning("\nOperation cancelled by user")
            return 130
        print_warning("Aborted")
        return 1

    except UniPkgError as exc:
        print_error(str(exc))
        logger.debug(
            "UniPkgError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
