"""Full-build properties of the standard pipeline."""

from __future__ import annotations

from pathlib import Path

import pytest

from mdbuild.core.errors import ContentError, FilesystemError, TaskError
from mdbuild.core.models import AssetMapping, PipelineConfig
from mdbuild.pipeline.builder import BUILD, build_pipeline, full_build
from mdbuild.rendering.engine import MarkdownRenderer


def snapshot(directory: Path) -> dict[str, bytes]:
    return {
        path.relative_to(directory).as_posix(): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


def test_pipeline_shape(config: PipelineConfig, renderer: MarkdownRenderer) -> None:
    graph = build_pipeline(config, renderer)
    assert graph.names == ["clean", "copy", "markdown", "build"]
    assert graph[BUILD].depends_on == ("copy", "markdown")
    assert graph.order(["markdown"]) == ["clean", "markdown"]


def test_scenario_output(config: PipelineConfig, renderer: MarkdownRenderer) -> None:
    full_build(config, renderer)
    assert set(snapshot(config.output_path)) == {
        "a.html",
        "b.html",
        "style.css",
        "img/logo.png",
    }


def test_build_is_idempotent(config: PipelineConfig, renderer: MarkdownRenderer) -> None:
    full_build(config, renderer)
    first = snapshot(config.output_path)
    full_build(config, renderer)
    assert snapshot(config.output_path) == first


def test_every_document_has_one_output(
    config: PipelineConfig, renderer: MarkdownRenderer, project: Path
) -> None:
    (project / "c.md").write_text("Third.\n", encoding="utf-8")
    full_build(config, renderer)

    pages = sorted(p.name for p in config.output_path.glob("*.html"))
    assert pages == ["a.html", "b.html", "c.html"]


def test_stale_files_are_removed(config: PipelineConfig, renderer: MarkdownRenderer) -> None:
    config.output_path.mkdir()
    stray = config.output_path / "old-page.html"
    stray.write_text("stale", encoding="utf-8")

    full_build(config, renderer)

    assert not stray.exists()


def test_assets_are_byte_identical(
    config: PipelineConfig, renderer: MarkdownRenderer, project: Path
) -> None:
    full_build(config, renderer)
    out = config.output_path
    assert (out / "style.css").read_bytes() == (project / "style.css").read_bytes()
    assert (out / "img" / "logo.png").read_bytes() == (project / "img" / "logo.png").read_bytes()


def test_malformed_document_is_reported(
    config: PipelineConfig, renderer: MarkdownRenderer, project: Path
) -> None:
    (project / "broken.md").write_bytes(b"\xff\xfe\x00")

    with pytest.raises(TaskError) as excinfo:
        full_build(config, renderer)

    assert excinfo.value.task == "markdown"
    assert isinstance(excinfo.value.cause, ContentError)
    assert excinfo.value.cause.path == project / "broken.md"

    # The valid document still renders on its own
    output = renderer.render_document(project / "a.md")
    assert "Alpha" in output.read_text(encoding="utf-8")


def test_missing_explicit_asset_fails_the_build(
    config: PipelineConfig, renderer: MarkdownRenderer
) -> None:
    config = config.model_copy(update={"assets": (AssetMapping(src="gone.css"),)})
    with pytest.raises(TaskError) as excinfo:
        full_build(config, renderer)
    assert excinfo.value.task == "copy"
    assert isinstance(excinfo.value.cause, FilesystemError)
