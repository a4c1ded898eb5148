"""
Filesystem utilities for unipkg.

This module provides safe helpers for reading and atomically writing
manifests, copying and deleting package files inside a target tree, and
managing scratch directories for archive extraction. All filesystem
errors are normalized to ``FileOperationError``.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from unipkg.utils.logger import get_logger
from unipkg.exceptions import FileOperationError
from unipkg.constants import MAX_FILE_SIZE


logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    """Validate that ``path`` is an existing file and resolve it."""
    if not path.exists():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise FileOperationError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def atomic_write_text(target: PathLike, content: str) -> None:
    """Atomically write text to a file using a temporary file + replace.

    Parent directories are created as needed. On failure the temporary
    file is removed and the original target is left untouched.
    """
    target = Path(target)
    temp_path: Optional[Path] = None

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            newline="\n",
            dir=str(target.parent),
            delete=False,
            prefix=f".{target.name}.",
            suffix=".tmp",
        ) as tmp:
            temp_path = Path(tmp.name)
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())

        temp_path.replace(target)

    except OSError as exc:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
                logger.debug("Cleaned up temporary file: %s", temp_path)
            except OSError as cleanup_exc:
                logger.warning(
                    "Failed to clean up temporary file %s: %s",
                    temp_path,
                    cleanup_exc,
                )

        raise FileOperationError(
            f"Atomic write failed: {exc}",
            file_path=str(target),
            operation="write",
            original_error=exc,
        ) from exc


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Safely read a text file with optional size limits.

    Args:
        file_path: Path to the file.
        max_size: Maximum allowed file size in bytes (None disables limit).
        encoding: Text encoding. A leading byte-order mark is stripped.

    Returns:
        File contents as a string.
    """
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        text = path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc

    return text.lstrip("\ufeff")


def validate_path(
    path: PathLike,
    *,
    base_dir: Optional[PathLike] = None,
) -> Path:
    """Resolve and validate a filesystem path.

    If ``base_dir`` is provided, the resolved path must be within it.
    """
    resolved = Path(path).expanduser().resolve(strict=False)

    if base_dir:
        base = Path(base_dir).resolve(strict=False)
        try:
            resolved.relative_to(base)
        except ValueError:
            raise FileOperationError(
                f"Path outside allowed base directory: {resolved}",
                file_path=str(path),
                operation="validate",
            )

    return resolved


def resolve_within(base_dir: PathLike, logical_path: str) -> Path:
    """Map a forward-slash logical path onto ``base_dir``.

    Raises:
        FileOperationError: The logical path is absolute or escapes
            ``base_dir`` (e.g. through ``..`` segments).
    """
    if logical_path.startswith("/") or Path(logical_path).is_absolute():
        raise FileOperationError(
            f"Absolute path not allowed: {logical_path}",
            file_path=logical_path,
            operation="validate",
        )
    return validate_path(Path(base_dir).joinpath(*logical_path.split("/")), base_dir=base_dir)


def copy_file(source: PathLike, destination: PathLike) -> None:
    """Copy file content to ``destination``, creating parent directories.

    An existing destination is overwritten.
    """
    destination = Path(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise FileOperationError(
            f"Failed to copy file: {exc}",
            file_path=str(destination),
            operation="copy",
            original_error=exc,
        ) from exc


def delete_file(path: PathLike, *, best_effort: bool = False) -> bool:
    """Delete a file if it exists.

    Args:
        path: File to delete.
        best_effort: Log and swallow ``OSError`` instead of raising.

    Returns:
        ``True`` if a file was removed.
    """
    path = Path(path)
    if not path.is_file():
        return False

    try:
        path.unlink()
        return True
    except OSError as exc:
        if best_effort:
            logger.warning("Failed to delete %s: %s", path, exc)
            return False
        raise FileOperationError(
            f"Failed to delete file: {exc}",
            file_path=str(path),
            operation="delete",
            original_error=exc,
        ) from exc


@contextmanager
def scratch_directory(prefix: str = "unipkg-") -> Iterator[Path]:
    """Yield a fresh temporary directory that is removed on exit.

    Removal happens on every exit path. A removal failure is logged
    rather than raised so it never masks the error that ended the block.
    """
    path = Path(tempfile.mkdtemp(prefix=prefix))
    logger.debug("Created scratch directory %s", path)
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as exc:
            logger.warning("Failed to remove scratch directory %s: %s", path, exc)
