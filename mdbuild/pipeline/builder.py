"""The standard clean → copy + markdown pipeline."""

from __future__ import annotations

import logging
from functools import partial

from ..core.models import PipelineConfig
from ..rendering.engine import MarkdownRenderer
from ..tasks.assets import copy_assets
from ..tasks.clean import clean
from .graph import Task, TaskGraph

logger = logging.getLogger(__name__)

BUILD = "build"
CLEAN = "clean"
COPY = "copy"
MARKDOWN = "markdown"


def build_pipeline(config: PipelineConfig, renderer: MarkdownRenderer) -> TaskGraph:
    """Wire the pipeline tasks for one definition.

    ``copy`` and ``markdown`` write disjoint outputs and only depend on
    ``clean``, so they run concurrently during a full build.
    """
    return TaskGraph(
        [
            Task(CLEAN, partial(clean, config.output_path), (), "Delete the output directory"),
            Task(COPY, partial(copy_assets, config), (CLEAN,), "Copy static assets"),
            Task(MARKDOWN, renderer.render_all, (CLEAN,), "Render markdown documents"),
            Task(BUILD, None, (COPY, MARKDOWN), "Clean, copy and render"),
        ]
    )


def full_build(config: PipelineConfig, renderer: MarkdownRenderer) -> list[str]:
    """Run clean, copy and render once."""
    logger.info(f"Building {config.root} → {config.output_path}")
    completed = build_pipeline(config, renderer).run([BUILD])
    logger.info("Build complete")
    return completed
