from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment overrides, read from ``MDBUILD_*`` variables."""

    model_config = SettingsConfigDict(env_prefix="MDBUILD_", case_sensitive=False)

    config: Path = Path("mdbuild.yaml")
    output_dir: Path | None = None
    livereload: bool | None = None
    livereload_port: int | None = None
    debounce: float | None = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
