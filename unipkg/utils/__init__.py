"""
Utility helpers for unipkg.

This package provides reusable utilities used across unipkg, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem safety helpers
- Async HTTP client utilities
- Metadata sidecar generation

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from unipkg.utils.filesystem import (
    atomic_write_text,
    copy_file,
    delete_file,
    resolve_within,
    safe_read_file,
    scratch_directory,
    validate_path,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from unipkg.utils.logger import (
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from unipkg.utils.console import (
    confirm,
    get_raw_console,
    print_error,
    print_restored,
    print_success,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP utilities
# ---------------------------------------------------------------------------

from unipkg.utils.http import HTTPClient

# ---------------------------------------------------------------------------
# Metadata sidecars
# ---------------------------------------------------------------------------

from unipkg.utils.meta import asset_guid, generate_meta, write_meta

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "confirm",
    "print_error",
    "print_success",
    "print_warning",
    "print_restored",
    "get_raw_console",
    "reconfigure_console",
    # Logging
    "get_logger",
    "setup_logging",
    "is_logging_configured",
    "level_for_verbosity",
    # Filesystem
    "atomic_write_text",
    "copy_file",
    "delete_file",
    "resolve_within",
    "safe_read_file",
    "scratch_directory",
    "validate_path",
    # HTTP
    "HTTPClient",
    # Metadata
    "asset_guid",
    "generate_meta",
    "write_meta",
]
