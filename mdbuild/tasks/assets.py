"""Copy static assets into the output directory."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from ..core.errors import FilesystemError
from ..core.models import AssetMapping, PipelineConfig
from ..core.patterns import expand, matches, relative_to
from ..rendering.io import atomic_copy, remove_file

logger = logging.getLogger(__name__)


def _destination(config: PipelineConfig, mapping: AssetMapping, source: Path) -> Path:
    base = config.output_path / mapping.dest
    if mapping.is_glob:
        # Globbed sets keep their path relative to the root
        return base / source.relative_to(config.root)
    if mapping.dest in ("", ".") or mapping.dest.endswith("/"):
        return base / source.name
    return base


def destination_for(config: PipelineConfig, path: Path) -> Path | None:
    """Return the output path of an asset, or None when no mapping claims it."""
    if relative_to(path, config.output_path) is not None:
        return None
    relative = relative_to(path, config.root)
    if relative is None:
        return None

    for mapping in config.assets:
        if mapping.is_glob:
            claimed = matches(relative, mapping.src)
        else:
            claimed = relative == PurePosixPath(mapping.src)
        if claimed:
            return _destination(config, mapping, path)
    return None


def _mapping_sources(config: PipelineConfig, mapping: AssetMapping) -> list[Path]:
    if not mapping.is_glob:
        source = config.root / mapping.src
        if not source.is_file():
            raise FilesystemError(f"Asset not found: {source}", source)
        return [source]

    sources = [
        path
        for path in expand(config.root, mapping.src)
        if relative_to(path, config.output_path) is None
    ]
    if not sources:
        logger.warning(f"No files match asset pattern {mapping.src!r}")
    return sources


def copy_assets(config: PipelineConfig) -> list[Path]:
    """Copy every configured asset, overwriting existing copies.

    Args:
        config: Pipeline definition

    Returns:
        List of destination paths
    """
    logger.info(f"Copying assets from {len(config.assets)} mapping(s)")

    copied: list[Path] = []
    for mapping in config.assets:
        for source in _mapping_sources(config, mapping):
            destination = _destination(config, mapping, source)
            atomic_copy(source, destination)
            logger.debug(f"Copied {source} → {destination}")
            copied.append(destination)

    logger.info(f"Copied {len(copied)} asset(s)")
    return copied


def copy_asset(config: PipelineConfig, path: Path) -> Path | None:
    """Copy a single changed asset.

    Returns:
        Destination path, or None when ``path`` is not an asset
    """
    destination = destination_for(config, path)
    if destination is None:
        return None
    atomic_copy(path, destination)
    logger.info(f"Copied {path.name} → {destination}")
    return destination


def remove_asset(config: PipelineConfig, path: Path) -> Path | None:
    """Remove the copy of a deleted asset.

    Returns:
        Destination path that was removed, or None
    """
    destination = destination_for(config, path)
    if destination is None or not remove_file(destination):
        return None
    logger.info(f"Removed {destination}")
    return destination
