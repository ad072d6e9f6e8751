"""Resident watcher: incremental rebuilds and reload notifications."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from ..core.errors import BuildError, ContentError, FilesystemError, TaskError
from ..core.models import PipelineConfig
from ..core.patterns import relative_to
from ..pipeline.builder import full_build
from ..reload.notifier import Notifier, NullNotifier
from ..rendering.engine import MarkdownRenderer
from ..tasks.assets import copy_asset, destination_for, remove_asset
from .dispatch import CoalescingDispatcher
from .events import Category, ChangeEvent, WatcherState
from .stream import ChangeStream

logger = logging.getLogger(__name__)

StreamFactory = Callable[[list[Path]], ChangeStream]


class Watcher:
    """Watch the project and re-run only what a change affects.

    Documents are re-rendered one by one, assets re-copied one by one, and
    changes inside the output directory only trigger a browser reload.
    """

    def __init__(
        self,
        config: PipelineConfig,
        renderer: MarkdownRenderer,
        notifier: Notifier | None = None,
        stream_factory: StreamFactory = ChangeStream,
    ) -> None:
        self.config = config
        self.renderer = renderer
        self.notifier = notifier or NullNotifier()
        self._stream_factory = stream_factory
        self._stream: ChangeStream | None = None
        self._dispatcher: CoalescingDispatcher | None = None
        self._lock = threading.Lock()
        self._stop_requested = threading.Event()
        self.state = WatcherState.IDLE

    def watch_paths(self) -> list[Path]:
        return [self.config.root, self.config.output_path]

    def classify(self, path: Path) -> Category | None:
        """Return the category of a changed path, or None to ignore it."""
        inside_output = relative_to(path, self.config.output_path)
        if inside_output is not None:
            # Hidden files there are in-progress atomic writes
            return None if path.name.startswith(".") else Category.OUTPUT
        if self.renderer.is_source(path):
            return Category.DOCUMENTS
        if destination_for(self.config, path) is not None:
            return Category.ASSETS
        return None

    def _initial_build(self) -> None:
        try:
            full_build(self.config, self.renderer)
        except TaskError as e:
            if not isinstance(e.cause, ContentError):
                raise
            logger.error(f"Initial build incomplete: {e}")

    def run(self) -> None:
        """Build (if configured), then watch until the stream ends or stop()."""
        if self.state is not WatcherState.IDLE:
            raise RuntimeError("Watcher is already running")

        if self.config.watch_at_begin:
            self._initial_build()
        if self._stop_requested.is_set():
            self._stop_requested.clear()
            logger.info("Stopped before watching")
            return

        try:
            self.config.output_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Cannot create output directory: {e}", self.config.output_path
            ) from e

        self._dispatcher = CoalescingDispatcher(
            {
                Category.DOCUMENTS: self._rebuild_documents,
                Category.ASSETS: self._recopy_assets,
            }
        )
        stream = self._stream_factory(self.watch_paths())
        try:
            self.notifier.start()
            with self._lock:
                stopping = self._stop_requested.is_set()
                if not stopping:
                    stream.start()
                    self._stream = stream
            if not stopping:
                self.state = WatcherState.WATCHING
                logger.info(f"Watching {self.config.root} for changes")
                for batch in stream.batches(self.config.debounce):
                    self.state = WatcherState.DISPATCHING
                    self.dispatch(batch)
                    self.state = WatcherState.WATCHING
        finally:
            with self._lock:
                self._stream = None
                self._stop_requested.clear()
            stream.close()
            self._dispatcher.shutdown(wait=True)
            self.notifier.stop()
            self.state = WatcherState.IDLE
            logger.info("Stopped watching")

    def stop(self) -> None:
        """Close the change subscription; run() returns once dispatches finish.

        Called during the initial build, run() returns when the build ends
        without subscribing.
        """
        with self._lock:
            self._stop_requested.set()
            stream = self._stream
        if stream is not None:
            stream.close()

    def dispatch(self, events: list[ChangeEvent]) -> None:
        """Route one batch of changes to the tasks bound to their categories."""
        if self._dispatcher is None:
            raise RuntimeError("Watcher is not running")

        grouped: dict[Category, list[ChangeEvent]] = {}
        for event in events:
            category = self.classify(event.path)
            if category is None:
                logger.debug(f"Ignoring change to {event.path}")
                continue
            grouped.setdefault(category, []).append(event)

        for category in (Category.DOCUMENTS, Category.ASSETS):
            if category in grouped:
                self._dispatcher.submit(category, grouped[category])

        if Category.OUTPUT in grouped:
            try:
                self.notifier.notify(event.path for event in grouped[Category.OUTPUT])
            except Exception as e:
                logger.error(f"Live reload notification failed: {e}")

    def _rebuild_documents(self, events: list[ChangeEvent]) -> None:
        for event in events:
            started = time.perf_counter()
            try:
                if event.deleted:
                    self.renderer.remove_output(event.path)
                    continue
                output = self.renderer.render_document(event.path)
            except BuildError as e:
                logger.error(f"Failed to render {event.path.name}: {e}")
                continue
            logger.info(f"Rebuilt {output.name} ({time.perf_counter() - started:.2f}s)")

    def _recopy_assets(self, events: list[ChangeEvent]) -> None:
        for event in events:
            try:
                if event.deleted:
                    remove_asset(self.config, event.path)
                else:
                    copy_asset(self.config, event.path)
            except BuildError as e:
                logger.error(f"Failed to copy {event.path.name}: {e}")
