"""
Custom exception hierarchy for unipkg.

This module defines structured exception types used across unipkg.
All exceptions inherit from :class:`UniPkgError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging. Every error here aborts a restore run; nothing is retried
or skipped once it has been raised.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional


class UniPkgError(Exception):
    """Base exception for all unipkg errors.

    All unipkg-specific exceptions should inherit from this class.
    It supports structured metadata via ``details`` for richer error
    reporting and debugging.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        # Internally normalize to a mutable dict
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class ManifestParseError(UniPkgError):
    """Raised when a project or package manifest cannot be parsed.

    Args:
        message: Error description.
        file_path: Path to the manifest being parsed.
    """

    __slots__ = ("file_path",)

    def __init__(self, message: str, *, file_path: Optional[str] = None) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "file", file_path)

        super().__init__(message, details)

        self.file_path = file_path


class InvalidVersionFormat(UniPkgError):
    """Raised when a version string cannot be parsed."""

    __slots__ = ("version",)

    def __init__(self, message: str, *, version: Optional[str] = None) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "version", version)

        super().__init__(message, details)

        self.version = version


class InvalidRangeFormat(UniPkgError):
    """Raised when a version constraint cannot be parsed."""

    __slots__ = ("range",)

    def __init__(self, message: str, *, range: Optional[str] = None) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "range", range)

        super().__init__(message, details)

        self.range = range


class PackageNotFound(UniPkgError):
    """Raised when no source can supply a package satisfying a constraint.

    Args:
        message: Error description.
        package_id: Identifier of the missing package.
        requested: Version constraint that could not be met.
        source: Source string the package was looked up in.
    """

    __slots__ = ("package_id", "requested", "source")

    def __init__(
        self,
        message: str,
        *,
        package_id: Optional[str] = None,
        requested: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "package", package_id)
        _add_if(details, "requested", requested)
        _add_if(details, "source", source)

        super().__init__(message, details)

        self.package_id = package_id
        self.requested = requested
        self.source = source


class VersionConflict(UniPkgError):
    """Raised when a dependency edge rejects an already resolved version.

    Args:
        package_id: Identifier of the conflicting package.
        requested: Constraint carried by the rejected edge.
        resolved: Version resolved earlier in the same run.
    """

    __slots__ = ("package_id", "requested", "resolved")

    def __init__(self, package_id: str, requested: str, resolved: str) -> None:
        super().__init__(
            f"Cannot meet version requirement: {package_id} {requested} "
            f"(but {resolved} is already resolved)",
            {"package": package_id, "requested": requested, "resolved": resolved},
        )

        self.package_id = package_id
        self.requested = requested
        self.resolved = resolved


class UnrecognizedSource(UniPkgError):
    """Raised when a dependency names a source unipkg does not know."""

    __slots__ = ("source",)

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "source", source)

        super().__init__(message, details)

        self.source = source


class PackageLayoutNotFound(UniPkgError):
    """Raised when a registry package has neither a library nor analyzer layout."""

    __slots__ = ("package_id", "path")

    def __init__(
        self,
        message: str,
        *,
        package_id: Optional[str] = None,
        path: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "package", package_id)
        _add_if(details, "path", path)

        super().__init__(message, details)

        self.package_id = package_id
        self.path = path


class NetworkError(UniPkgError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class FileOperationError(UniPkgError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/write/copy/delete/extract).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


class ConfigError(UniPkgError):
    """Raised when a configuration file is missing, malformed, or invalid.

    Args:
        message: Error description.
        config_path: Path to the configuration file.
        option: Name of the offending option, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "config", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option
