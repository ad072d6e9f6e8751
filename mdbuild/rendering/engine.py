"""Markdown-to-HTML rendering engine."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable

import markdown
from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
)

from ..core.errors import ConfigurationError, ContentError, FilesystemError
from ..core.models import PipelineConfig
from ..core.patterns import expand, matches, relative_to
from .io import atomic_write_text, remove_file

logger = logging.getLogger(__name__)

PostRender = Callable[[str], str]

DEFAULT_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ title | e }}</title>
</head>
<body>
<article class="markdown-body">
{{ content }}
</article>
</body>
</html>
"""

_HEADING = re.compile(r"^ {0,3}#[ \t]+(\S.*?)(?:[ \t]+#+)?[ \t]*$")
_FENCE = re.compile(r"^ {0,3}(`{3,}|~{3,})")


def _environment(loader: FileSystemLoader | None = None) -> Environment:
    return Environment(
        loader=loader,
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )


def load_template(template_path: Path | None) -> Template:
    """Load the page template.

    Args:
        template_path: Path to a Jinja2 template, or None for the built-in one

    Returns:
        Compiled Jinja2 template
    """
    if template_path is None:
        return _environment().from_string(DEFAULT_TEMPLATE)

    if not template_path.exists():
        raise ConfigurationError(f"Template not found: {template_path}")

    # Use template's parent directory as loader search path
    env = _environment(FileSystemLoader(str(template_path.parent)))
    try:
        return env.get_template(template_path.name)
    except TemplateError as e:
        raise ConfigurationError(f"Invalid template {template_path}: {e}") from e


def extract_title(text: str, fallback: str) -> str:
    """Return the first level-1 ATX heading outside fenced code, or ``fallback``."""
    fence: str | None = None
    for line in text.splitlines():
        marker = _FENCE.match(line)
        if fence is not None:
            # A fence closes with at least as many of the same character
            closing = marker.group(1) if marker else ""
            if closing[:1] == fence[0] and len(closing) >= len(fence):
                fence = None
            continue
        if marker:
            fence = marker.group(1)
            continue
        heading = _HEADING.match(line)
        if heading:
            return heading.group(1)
    return fallback


class MarkdownRenderer:
    """Render source documents to ``<output>/<stem>.html``.

    The template is loaded once; each document is rendered independently, so a
    failure in one never touches the output of another.
    """

    def __init__(
        self, config: PipelineConfig, post_render: PostRender | None = None
    ) -> None:
        self.config = config
        self.post_render = post_render
        self.extensions = list(config.markdown_extensions)
        self.template = load_template(config.template_path)

        try:
            markdown.Markdown(extensions=self.extensions)
        except (ImportError, AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid markdown extensions: {e}") from e

    def is_source(self, path: Path) -> bool:
        """Return True when ``path`` is a source document of this pipeline."""
        if relative_to(path, self.config.output_path) is not None:
            return False
        relative = relative_to(path, self.config.root)
        if relative is None:
            return False
        return any(matches(relative, pattern) for pattern in self.config.sources)

    def discover(self) -> list[Path]:
        """List every source document, sorted.

        Raises:
            ConfigurationError: if two documents would render to the same file
        """
        found: dict[Path, None] = {}
        for pattern in self.config.sources:
            for path in expand(self.config.root, pattern):
                if self.is_source(path):
                    found[path] = None

        by_output: dict[Path, Path] = {}
        for path in found:
            output = self.output_path_for(path)
            if output in by_output:
                raise ConfigurationError(
                    f"{by_output[output]} and {path} both render to {output}"
                )
            by_output[output] = path

        return sorted(found)

    def output_path_for(self, source: Path) -> Path:
        return self.config.output_path / f"{source.stem}.html"

    def render_text(self, text: str, source: Path) -> str:
        """Convert markdown text and wrap it in the page template."""
        try:
            fragment = markdown.markdown(text, extensions=self.extensions)
        except Exception as e:
            raise ContentError(source, f"markdown conversion failed: {e}") from e

        try:
            page = self.template.render(
                content=fragment,
                title=extract_title(text, source.stem),
                source=source.name,
            )
        except TemplateError as e:
            raise ConfigurationError(f"Template rendering failed: {e}") from e

        if self.post_render is not None:
            page = self.post_render(page)
        return page

    def render_document(self, source: Path) -> Path:
        """Render one source document and write its output.

        Args:
            source: Markdown file to render

        Returns:
            Output file path
        """
        logger.debug(f"Rendering document: {source}")

        try:
            text = source.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ContentError(source, f"not valid UTF-8 ({e.reason})") from e
        except OSError as e:
            raise FilesystemError(f"Cannot read {source}: {e}", source) from e

        output_path = self.output_path_for(source)
        atomic_write_text(output_path, self.render_text(text, source))
        logger.info(f"Rendered {source.name} → {output_path}")

        return output_path

    def render_all(self) -> list[Path]:
        """Render every source document, stopping at the first failure.

        Returns:
            List of output file paths
        """
        sources = self.discover()
        logger.info(f"Rendering {len(sources)} document(s)")

        outputs = [self.render_document(source) for source in sources]

        logger.info(f"Successfully rendered {len(outputs)} file(s)")
        return outputs

    def remove_output(self, source: Path) -> bool:
        """Delete the rendered output of a removed source document."""
        output_path = self.output_path_for(source)
        removed = remove_file(output_path)
        if removed:
            logger.info(f"Removed {output_path}")
        return removed
