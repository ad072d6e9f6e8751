"""File I/O operations for rendered output and copied assets."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from ..core.errors import FilesystemError


def ensure_parent(path: Path) -> None:
    """Ensure parent directories exist for the given path.

    Args:
        path: Path whose parent directories should be created
    """
    path.parent.mkdir(parents=True, exist_ok=True)


def _temp_sibling(path: Path) -> tuple[int, str]:
    # Hidden temp names keep the watcher from treating them as output pages
    return tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))


def atomic_write_text(path: Path, text: str, mode: int = 0o644) -> None:
    """Write text to a file atomically using a temporary file.

    Args:
        path: Destination file path
        text: Text content to write
        mode: File permissions (octal)
    """
    try:
        ensure_parent(path)
        fd, tmp_name = _temp_sibling(path)
    except OSError as e:
        raise FilesystemError(f"Cannot write {path}: {e}", path) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        os.chmod(path, mode)
    except OSError as e:
        raise FilesystemError(f"Cannot write {path}: {e}", path) from e
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def atomic_copy(src: Path, dest: Path) -> None:
    """Copy a file byte-for-byte, replacing the destination atomically.

    Args:
        src: Source file
        dest: Destination file (overwritten unconditionally)
    """
    try:
        ensure_parent(dest)
        fd, tmp_name = _temp_sibling(dest)
    except OSError as e:
        raise FilesystemError(f"Cannot write {dest}: {e}", dest) from e

    try:
        with os.fdopen(fd, "wb") as tmp, src.open("rb") as source:
            shutil.copyfileobj(source, tmp)
            tmp.flush()
            os.fsync(tmp.fileno())
        shutil.copymode(src, tmp_name)
        os.replace(tmp_name, dest)
    except OSError as e:
        raise FilesystemError(f"Cannot copy {src} to {dest}: {e}", src) from e
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def remove_file(path: Path) -> bool:
    """Remove a file if it exists.

    Returns:
        True when a file was removed
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise FilesystemError(f"Cannot remove {path}: {e}", path) from e
    return True
