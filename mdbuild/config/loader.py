"""Build a PipelineConfig from the YAML project file, environment and CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..core.errors import ConfigurationError
from ..core.models import PipelineConfig
from .settings import Settings

logger = logging.getLogger(__name__)

_ENV_OVERRIDES = ("output_dir", "livereload", "livereload_port", "debounce")


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML project file into a plain dictionary.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed mapping (empty when the file is empty)
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _normalize_assets(raw: Any, source: str) -> list[dict[str, str]]:
    if not isinstance(raw, list):
        raise ConfigurationError(f"'assets' in {source} must be a list")

    assets: list[dict[str, str]] = []
    for entry in raw:
        if isinstance(entry, str):
            assets.append({"src": entry})
        elif isinstance(entry, dict) and "src" in entry:
            assets.append(entry)
        else:
            raise ConfigurationError(
                f"Asset entries in {source} must be a pattern or a {{src, dest}} mapping, "
                f"got: {entry!r}"
            )
    return assets


def load_config(
    config_path: Path | None = None,
    *,
    settings: Settings | None = None,
    overrides: dict[str, Any] | None = None,
) -> PipelineConfig:
    """Load the pipeline definition.

    Precedence, lowest first: model defaults, YAML file, ``MDBUILD_*``
    environment, explicit overrides.

    Args:
        config_path: Explicit config file; a missing explicit file is an error
        settings: Environment settings (read from the environment when omitted)
        overrides: Values taking precedence over everything else (None skipped)

    Returns:
        Validated, immutable pipeline definition
    """
    settings = settings or Settings()
    explicit = config_path is not None or "config" in settings.model_fields_set
    path = config_path if config_path is not None else settings.config

    data: dict[str, Any] = {}
    source = "defaults"
    if path.is_file():
        data = read_config_file(path)
        source = str(path)
        root = Path(data.get("root", "."))
        if not root.is_absolute():
            root = path.resolve().parent / root
        data["root"] = root
        logger.debug(f"Loaded config file {path}")
    elif explicit:
        raise ConfigurationError(f"Config file not found: {path}")
    else:
        logger.debug(f"No config file at {path}, using defaults")

    if "assets" in data:
        data["assets"] = _normalize_assets(data["assets"], source)

    for name in _ENV_OVERRIDES:
        value = getattr(settings, name)
        if value is not None:
            data[name] = value

    for name, value in (overrides or {}).items():
        if value is not None:
            data[name] = value

    try:
        return PipelineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration ({source}): {e}") from e
