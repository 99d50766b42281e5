"""
Filesystem helpers for configuration files.

Writes are atomic: data goes to a temporary sibling file which is flushed
to disk and then renamed over the destination, so an interrupted write never
leaves a half-written configuration behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from configurate.errors import ConfigFileNotFoundError, StorageIOError

logger = logging.getLogger(__name__)


def write_file_safely(path: Path, data: bytes) -> None:
    """
    Write bytes to a file atomically with owner-only permissions.

    Parent directories are created as needed.

    Args:
        path: Destination file.
        data: Bytes to write.

    Raises:
        StorageIOError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            prefix=f".{path.name}.",
            suffix=".tmp",
            dir=str(path.parent),
        )
    except OSError as e:
        raise StorageIOError(f"Cannot prepare {path}: {e}") from e

    try:
        with os.fdopen(temp_fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        try:
            os.chmod(temp_path, 0o600)
        except OSError:
            # Windows or permission error - continue anyway
            pass
        os.replace(temp_path, path)
    except OSError as e:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise StorageIOError(f"Cannot write {path}: {e}") from e

    logger.debug(f"Wrote {len(data)} bytes to {path}")


def read_file(path: Path) -> bytes:
    """
    Read a configuration file.

    Raises:
        ConfigFileNotFoundError: If the file does not exist.
        StorageIOError: On any other read failure.
    """
    try:
        return path.read_bytes()
    except FileNotFoundError as e:
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}") from e
    except OSError as e:
        raise StorageIOError(f"Cannot read {path}: {e}") from e


def remove_file(path: Path) -> bool:
    """
    Remove a configuration file. A missing file is not an error.

    Returns:
        True if a file was removed, False if there was nothing to remove.

    Raises:
        StorageIOError: If the file exists but cannot be removed.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageIOError(f"Cannot delete {path}: {e}") from e
    return True
