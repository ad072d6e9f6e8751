"""
Shared pytest fixtures for mdbuild tests.

This module provides:
- project: a site with a.md, b.md, style.css, img/logo.png and a template
- config: the pipeline definition for that site (live reload off)
- renderer: a MarkdownRenderer bound to config
"""

from __future__ import annotations

from pathlib import Path

import pytest

from mdbuild.core.models import AssetMapping, PipelineConfig
from mdbuild.rendering.engine import MarkdownRenderer

LOGO_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256))

TEMPLATE = (
    "<html><head><title>{{ title }}</title></head>"
    "<body>{{ content }}</body></html>\n"
)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: uses a real filesystem observer or server"
    )


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a small site on disk."""
    root = (tmp_path / "site").resolve()
    (root / "img").mkdir(parents=True)
    (root / "a.md").write_text("# Alpha\n\nFirst *document*.\n", encoding="utf-8")
    (root / "b.md").write_text("# Beta\n\nSecond document.\n", encoding="utf-8")
    (root / "style.css").write_text("body { color: #333; }\n", encoding="utf-8")
    (root / "img" / "logo.png").write_bytes(LOGO_BYTES)
    (root / "template.html").write_text(TEMPLATE, encoding="utf-8")
    return root


@pytest.fixture
def config(project: Path) -> PipelineConfig:
    return PipelineConfig(
        root=project,
        output_dir=Path("build"),
        sources=("*.md",),
        assets=(AssetMapping(src="style.css"), AssetMapping(src="img/**/*")),
        template=Path("template.html"),
        livereload=False,
        debounce=0,
    )


@pytest.fixture
def renderer(config: PipelineConfig) -> MarkdownRenderer:
    return MarkdownRenderer(config)
