"""Configuration file loader for unipkg.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``unipkg.toml``: settings under the ``[unipkg]`` table
- ``pyproject.toml``: settings under the ``[tool.unipkg]`` table

Discovery order:

1. Explicit path from ``--config`` or ``UNIPKG_CONFIG``
2. ``unipkg.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.unipkg]`` section

Configuration precedence: defaults < config file < environment < CLI args.
The GitHub token is never read from a file; it comes from ``GITHUB_TOKEN``
or ``--token`` only.

Typical usage::

    config = load_config()  # Auto-discover
    config = load_config(Path("custom.toml"))  # Explicit path

Example (``unipkg.toml``)::

    [unipkg]
    local_repository = "../packages"
    cache_dir = "~/.cache/unipkg"
    force_refresh = false
    timeout = 60
"""

from __future__ import annotations

import os
import tomli
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from unipkg.exceptions import ConfigError
from unipkg.utils.logger import get_logger
from unipkg.constants import DEFAULT_TIMEOUT

logger = get_logger("config")

ENV_LOCAL_REPOSITORY = "UNIPKG_LOCAL_REPOSITORY"
ENV_CACHE_DIR = "UNIPKG_CACHE_DIR"


@dataclass
class UniPkgConfig:
    """Parsed and validated unipkg configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        local_repository: Directory of ``.unitypackage`` files used for
            ``local`` dependencies and for shadowing remote ones.
        cache_dir: Download cache root. ``None`` selects the platform default.
        force_refresh: Re-download packages already in the cache.
        timeout: HTTP timeout in seconds.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    local_repository: Optional[Path] = None
    cache_dir: Optional[Path] = None
    force_refresh: bool = False
    timeout: int = DEFAULT_TIMEOUT

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging."""
        return {
            "local_repository": str(self.local_repository) if self.local_repository else None,
            "cache_dir": str(self.cache_dir) if self.cache_dir else None,
            "force_refresh": self.force_refresh,
            "timeout": self.timeout,
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Search order:

    1. ``explicit_path`` (from ``--config`` or ``UNIPKG_CONFIG``)
    2. ``unipkg.toml`` in current directory
    3. ``pyproject.toml`` with ``[tool.unipkg]`` section in current directory

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    unipkg_toml = cwd / "unipkg.toml"
    if unipkg_toml.is_file():
        logger.debug("Found unipkg.toml: %s", unipkg_toml)
        return unipkg_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_unipkg_section(pyproject_toml):
        logger.debug("Found [tool.unipkg] in pyproject.toml: %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_unipkg_section(path: Path) -> bool:
    """Check if pyproject.toml contains a [tool.unipkg] section.

    A pyproject.toml that cannot be parsed is treated as having none.
    """
    try:
        raw = _read_toml(path)
    except ConfigError as exc:
        logger.debug("Ignoring unreadable %s: %s", path, exc)
        return False
    return "unipkg" in raw.get("tool", {})


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> UniPkgConfig:
    """Load and validate unipkg configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).
        environ: Environment to overlay on the file values. Defaults to
            ``os.environ``.

    Returns:
        Validated :class:`UniPkgConfig`.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        config = UniPkgConfig()
    else:
        logger.info("Loading configuration from %s", resolved)
        raw = _read_toml(resolved)

        if resolved.name == "pyproject.toml":
            section = raw.get("tool", {}).get("unipkg", {})
        else:
            section = raw.get("unipkg", {})

        if not isinstance(section, dict):
            raise ConfigError(
                "The unipkg configuration must be a table",
                config_path=str(resolved),
            )

        config = _parse_section(section, config_path=str(resolved))
        config.source_path = resolved

    _apply_environment(config, os.environ if environ is None else environ)

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _apply_environment(config: UniPkgConfig, environ: Mapping[str, str]) -> None:
    local_repository = environ.get(ENV_LOCAL_REPOSITORY)
    if local_repository:
        config.local_repository = Path(local_repository).expanduser()

    cache_dir = environ.get(ENV_CACHE_DIR)
    if cache_dir:
        config.cache_dir = Path(cache_dir).expanduser()


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomli.load(fh)
    except tomli.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> UniPkgConfig:
    """Parse and validate the ``[unipkg]`` or ``[tool.unipkg]`` table.

    Raises:
        ConfigError: Unknown keys or incorrect types.
    """
    config = UniPkgConfig()

    known = {"local_repository", "cache_dir", "force_refresh", "timeout"}
    unknown = set(section.keys()) - known
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    base = Path(config_path).parent
    for option in ("local_repository", "cache_dir"):
        if option not in section:
            continue
        val = section[option]
        if not isinstance(val, str) or not val:
            raise ConfigError(
                f"{option} must be a non-empty string, got {type(val).__name__}",
                config_path=config_path,
                option=option,
            )
        # Relative paths are taken from the config file's directory.
        setattr(config, option, base / Path(val).expanduser())

    if "force_refresh" in section:
        val = section["force_refresh"]
        if not isinstance(val, bool):
            raise ConfigError(
                f"force_refresh must be a boolean, got {type(val).__name__}",
                config_path=config_path,
                option="force_refresh",
            )
        config.force_refresh = val

    if "timeout" in section:
        val = section["timeout"]
        if isinstance(val, bool) or not isinstance(val, int) or val <= 0:
            raise ConfigError(
                f"timeout must be a positive integer, got {val!r}",
                config_path=config_path,
                option="timeout",
            )
        config.timeout = val

    return config
