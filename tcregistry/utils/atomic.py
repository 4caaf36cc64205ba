"""Atomic file operations to prevent store corruption.

The store file is never written in place: content goes to a temporary file
in the same directory which is then renamed over the target.
"""

from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from tcregistry.errors import PersistenceError
from tcregistry.utils.logging import get_logger

logger = get_logger("utils.atomic")


class AtomicWriteError(PersistenceError):
    """Raised when an atomic write operation fails."""

    pass


@contextmanager
def atomic_write(
    path: Path,
    encoding: str = "utf-8",
) -> Generator[Any, None, None]:
    """
    Context manager for atomic file writes.

    Writes to a temporary file first, then atomically renames to the target path.
    If any error occurs, the temp file is cleaned up and the original is untouched.

    Args:
        path: Target file path
        encoding: Text encoding

    Yields:
        File handle for writing

    Raises:
        AtomicWriteError: If the atomic write fails
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory so the rename stays on one filesystem
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )

    temp_path = Path(temp_path)
    success = False

    try:
        os.close(fd)

        with open(temp_path, "w", encoding=encoding) as f:
            yield f

        temp_path.replace(path)
        success = True

        logger.debug("atomic_write_success", path=str(path))

    except Exception as e:
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        raise AtomicWriteError(f"Failed to atomically write {path}: {e}") from e

    finally:
        if not success and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Atomically write text content to a file.

    Args:
        path: Target file path
        content: Text content to write
        encoding: Text encoding
    """
    with atomic_write(path, encoding=encoding) as f:
        f.write(content)


def atomic_write_json(
    path: Path,
    data: Any,
    indent: int = 2,
    default: Any = str,
    encoding: str = "utf-8",
) -> None:
    """
    Atomically write JSON data to a file.

    Args:
        path: Target file path
        data: Data to serialize as JSON
        indent: JSON indentation level
        default: Default function for non-serializable objects
        encoding: Text encoding
    """
    with atomic_write(path, encoding=encoding) as f:
        json.dump(data, f, indent=indent, default=default)
