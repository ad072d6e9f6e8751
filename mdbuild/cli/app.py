"""Main CLI application."""

from __future__ import annotations

import logging
import signal
from functools import partial
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from ..config.loader import load_config
from ..config.settings import get_settings
from ..core.errors import BuildError
from ..core.models import PipelineConfig
from ..pipeline.builder import full_build
from ..reload.notifier import LiveReloadNotifier, Notifier, inject_script, script_tag
from ..rendering.engine import MarkdownRenderer
from ..tasks.assets import copy_assets
from ..tasks.clean import clean as clean_output
from ..watch.watcher import Watcher
from .parsers import parse_asset, parse_debounce

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="mdbuild",
    help="Render markdown documents into a static HTML site.",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="YAML project file (default: mdbuild.yaml).",
        metavar="FILE",
    ),
]
OutputOption = Annotated[
    Optional[Path],
    typer.Option("--output", "-o", help="Output directory.", metavar="DIR"),
]
SourceOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--source",
        "-s",
        help="Glob of source documents. Repeatable; replaces configured sources.",
        metavar="GLOB",
    ),
]
AssetOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--asset",
        "-a",
        help="Asset to copy (format: SRC or SRC=DEST). Repeatable; replaces configured assets.",
        metavar="SRC[=DEST]",
    ),
]
TemplateOption = Annotated[
    Optional[Path],
    typer.Option("--template", "-t", help="Jinja2 page template.", metavar="FILE"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable verbose logging."),
]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def _load(
    config_file: Optional[Path],
    output: Optional[Path] = None,
    sources: Optional[list[str]] = None,
    assets: Optional[list[str]] = None,
    template: Optional[Path] = None,
    **extra: Any,
) -> PipelineConfig:
    overrides: dict[str, Any] = {
        "output_dir": output,
        "sources": sources or None,
        "assets": [parse_asset(value) for value in assets] if assets else None,
        "template": template,
        **extra,
    }
    config = load_config(config_file, settings=get_settings(), overrides=overrides)
    logger.debug(f"Config: {config.model_dump()}")
    return config


def _renderer(config: PipelineConfig, *, live: bool = False) -> MarkdownRenderer:
    post_render = None
    if live and config.inject_livereload_script:
        tag = script_tag(config.livereload_host, config.livereload_port)
        post_render = partial(inject_script, tag=tag)
    return MarkdownRenderer(config, post_render=post_render)


def _fail(error: BuildError) -> typer.Exit:
    logger.error(str(error))
    return typer.Exit(code=1)


@app.command()
def build(
    config_file: ConfigOption = None,
    output: OutputOption = None,
    sources: SourceOption = None,
    assets: AssetOption = None,
    template: TemplateOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Clean the output, copy assets and render every document once."""
    _configure_logging(verbose)
    try:
        config = _load(config_file, output, sources, assets, template)
        full_build(config, _renderer(config))
    except BuildError as e:
        raise _fail(e) from e


@app.command()
def clean(
    config_file: ConfigOption = None,
    output: OutputOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Delete the output directory."""
    _configure_logging(verbose)
    try:
        clean_output(_load(config_file, output).output_path)
    except BuildError as e:
        raise _fail(e) from e


@app.command()
def copy(
    config_file: ConfigOption = None,
    output: OutputOption = None,
    assets: AssetOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Copy static assets into the output directory."""
    _configure_logging(verbose)
    try:
        copy_assets(_load(config_file, output, assets=assets))
    except BuildError as e:
        raise _fail(e) from e


@app.command()
def render(
    config_file: ConfigOption = None,
    output: OutputOption = None,
    sources: SourceOption = None,
    template: TemplateOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Render markdown documents into the output directory."""
    _configure_logging(verbose)
    try:
        config = _load(config_file, output, sources, template=template)
        _renderer(config).render_all()
    except BuildError as e:
        raise _fail(e) from e


@app.command()
def watch(
    config_file: ConfigOption = None,
    output: OutputOption = None,
    sources: SourceOption = None,
    assets: AssetOption = None,
    template: TemplateOption = None,
    livereload: Annotated[
        Optional[bool],
        typer.Option(
            "--livereload/--no-livereload",
            help="Serve the output and reload browsers on change.",
        ),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Live reload server port.", min=1, max=65535),
    ] = None,
    debounce: Annotated[
        Optional[float],
        typer.Option(
            "--debounce",
            help="Seconds without changes before a rebuild starts.",
            callback=parse_debounce,
        ),
    ] = None,
    build_first: Annotated[
        Optional[bool],
        typer.Option("--build/--no-build", help="Run a full build before watching."),
    ] = None,
    verbose: VerboseOption = False,
) -> None:
    """Build, then rebuild incrementally whenever sources or assets change."""
    _configure_logging(verbose)
    try:
        config = _load(
            config_file,
            output,
            sources,
            assets,
            template,
            livereload=livereload,
            livereload_port=port,
            debounce=debounce,
            watch_at_begin=build_first,
        )
        renderer = _renderer(config, live=config.livereload)
    except BuildError as e:
        raise _fail(e) from e

    notifier: Notifier | None = None
    if config.livereload:
        notifier = LiveReloadNotifier(
            config.output_path, config.livereload_host, config.livereload_port
        )

    # Treat SIGTERM like Ctrl-C so the subscription is released on the way out
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    watcher = Watcher(config, renderer, notifier)
    try:
        watcher.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except BuildError as e:
        raise _fail(e) from e


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
