"""Domain models for the build pipeline definition."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

GLOB_CHARS = frozenset("*?[")


def _literal_prefix(pattern: str) -> str:
    """Return the leading path segments of a glob that contain no wildcard."""
    literal: list[str] = []
    for part in PurePosixPath(pattern).parts:
        if any(char in GLOB_CHARS for char in part):
            break
        literal.append(part)
    return "/".join(literal)


class AssetMapping(BaseModel):
    """A static asset (or glob of assets) copied verbatim into the output."""

    model_config = ConfigDict(frozen=True)

    src: str = Field(
        ..., min_length=1, description="Source file or glob, relative to the root"
    )
    dest: str = Field(
        default=".", description="Destination relative to the output directory"
    )

    @property
    def is_glob(self) -> bool:
        return any(char in GLOB_CHARS for char in self.src)

    @field_validator("src")
    @classmethod
    def _relative_src(cls, value: str) -> str:
        value = value.strip()
        if Path(value).is_absolute():
            raise ValueError(f"Asset source must be relative to the root: {value!r}")
        return value

    @field_validator("dest")
    @classmethod
    def _inside_output(cls, value: str) -> str:
        value = value.strip()
        if Path(value).is_absolute() or ".." in Path(value).parts:
            raise ValueError(f"Asset destination must stay inside the output: {value!r}")
        return value


class PipelineConfig(BaseModel):
    """Immutable pipeline definition built once at startup."""

    model_config = ConfigDict(frozen=True)

    root: Path = Field(default_factory=Path.cwd, description="Project root")
    output_dir: Path = Field(default=Path("build"), description="Output directory")
    sources: tuple[str, ...] = Field(
        default=("*.md",), description="Glob patterns of source documents"
    )
    assets: tuple[AssetMapping, ...] = Field(
        default=(AssetMapping(src="images/**/*"),), description="Asset mappings"
    )
    template: Path | None = Field(
        default=None, description="Jinja2 page template (None: built-in)"
    )
    markdown_extensions: tuple[str, ...] = Field(
        default=("extra",), description="Python-Markdown extensions"
    )
    livereload: bool = Field(default=True, description="Serve output with live reload")
    livereload_host: str = Field(default="127.0.0.1")
    livereload_port: int = Field(default=35729, ge=1, le=65535)
    inject_livereload_script: bool = Field(
        default=False, description="Append the live-reload client script to pages"
    )
    watch_at_begin: bool = Field(
        default=True, description="Run a full build before watching"
    )
    debounce: float = Field(
        default=0.3, ge=0, description="Quiet interval (seconds) for coalescing events"
    )

    @field_validator("root")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @field_validator("sources")
    @classmethod
    def _check_sources(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        patterns = tuple(pattern.strip() for pattern in value)
        if not patterns:
            raise ValueError("At least one source pattern is required")
        for pattern in patterns:
            if not pattern:
                raise ValueError("Source patterns must not be empty")
            if Path(pattern).is_absolute():
                raise ValueError(f"Source pattern must be relative: {pattern!r}")
        return patterns

    @model_validator(mode="after")
    def _check_paths(self) -> PipelineConfig:
        # Cleaning an output dir that contains the root would delete the sources
        if self.root.is_relative_to(self.output_path):
            raise ValueError(
                f"Output directory {self.output_path} must not contain the project root"
            )
        template = self.template_path
        if template is not None and not template.is_file():
            raise ValueError(f"Template not found: {template}")
        if template is not None and template.is_relative_to(self.output_path):
            raise ValueError(
                f"Output directory {self.output_path} must not contain the template"
            )
        # Explicit inputs and the fixed directories of globs would be cleaned
        for pattern in (*self.sources, *(asset.src for asset in self.assets)):
            base = (self.root / _literal_prefix(pattern)).resolve()
            if base.is_relative_to(self.output_path):
                raise ValueError(
                    f"Output directory {self.output_path} must not contain input {pattern!r}"
                )
        return self

    @property
    def output_path(self) -> Path:
        return (self.root / self.output_dir).resolve()

    @property
    def template_path(self) -> Path | None:
        if self.template is None:
            return None
        return (self.root / self.template).resolve()
