"""
Centralized constants for unipkg.

This module defines immutable configuration values used across unipkg,
including the installed-package layout, archive member names, remote
endpoints, network settings, and logging formats. All values are intended
to be treated as read-only.
"""

from typing import Final

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "unipkg/{version} (+https://github.com/unipkg/unipkg)"

#: Project file restored when none is given on the command line.
DEFAULT_PROJECT_FILE: Final[str] = "UnityPackages.json"

# ---------------------------------------------------------------------------
# Installed package layout
# ---------------------------------------------------------------------------

#: Directory (relative to the target tree) holding installed manifests.
INSTALLED_PACKAGES_DIR: Final[str] = "Assets/UnityPackages"

#: Suffix of an installed package manifest.
MANIFEST_SUFFIX: Final[str] = ".unitypackage.json"

#: Suffix of a metadata sidecar.
META_SUFFIX: Final[str] = ".meta"

#: Extension of package archives (local repository and release assets).
PACKAGE_EXTENSION: Final[str] = ".unitypackage"

# ---------------------------------------------------------------------------
# Archive layout
# ---------------------------------------------------------------------------

#: Member holding a logical file's content.
ARCHIVE_ASSET: Final[str] = "asset"

#: Member holding a logical file's metadata sidecar.
ARCHIVE_ASSET_META: Final[str] = "asset.meta"

#: Member holding the logical target path.
ARCHIVE_PATHNAME: Final[str] = "pathname"

# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

#: Literal source string for the local repository.
SOURCE_LOCAL: Final[str] = "local"

#: Prefix of release-feed sources (``github:{owner}/{repo}``).
SOURCE_GITHUB_PREFIX: Final[str] = "github:"

#: Prefix of registry sources (``nuget:{targetFrameworkMoniker}``).
SOURCE_NUGET_PREFIX: Final[str] = "nuget:"

#: GitHub REST endpoint listing a repository's releases.
GITHUB_RELEASES_API: Final[str] = "https://api.github.com/repos/{owner}/{repo}/releases"

#: Page size requested when listing releases.
GITHUB_PAGE_SIZE: Final[int] = 100

#: NuGet v3 flat-container download endpoint.
NUGET_PACKAGE_URL: Final[str] = (
    "https://api.nuget.org/v3-flatcontainer/{id}/{version}/{id}.{version}.nupkg"
)

#: Directory name of the package cache under the application-data root.
CACHE_DIR_NAME: Final[str] = "unipkg"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

#: Chunk size used when streaming downloads to disk.
DOWNLOAD_CHUNK_SIZE: Final[int] = 64 * 1024

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed size (in bytes) of a manifest file.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
