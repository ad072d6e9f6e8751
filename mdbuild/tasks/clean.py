"""Remove the output directory."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..core.errors import FilesystemError

logger = logging.getLogger(__name__)


def clean(output_dir: Path) -> bool:
    """Recursively delete the output directory.

    Removing a directory that does not exist is not an error.

    Args:
        output_dir: Directory to delete

    Returns:
        True when something was deleted
    """
    if not output_dir.exists():
        logger.debug(f"Nothing to clean at {output_dir}")
        return False

    if not output_dir.is_dir():
        raise FilesystemError(f"Output path is not a directory: {output_dir}", output_dir)

    try:
        shutil.rmtree(output_dir)
    except OSError as e:
        raise FilesystemError(f"Cannot remove {output_dir}: {e}", output_dir) from e

    logger.info(f"Cleaned {output_dir}")
    return True
