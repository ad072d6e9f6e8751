"""Filesystem change events as a cancellable subscription."""

from __future__ import annotations

import logging
import os
import queue
from pathlib import Path
from typing import Callable, Iterable, Iterator

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .events import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)

_CLOSED = object()


def _event_path(raw: str | bytes) -> Path:
    return Path(os.fsdecode(raw))


class _QueueHandler(FileSystemEventHandler):
    """Translate watchdog callbacks into ChangeEvents."""

    def __init__(self, emit: Callable[[ChangeEvent], None]) -> None:
        self._emit = emit

    def _put(self, raw: str | bytes, kind: ChangeKind) -> None:
        self._emit(ChangeEvent(_event_path(raw), kind))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(event.src_path, ChangeKind.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(event.src_path, ChangeKind.MODIFIED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(event.src_path, ChangeKind.DELETED)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._put(event.src_path, ChangeKind.DELETED)
            self._put(event.dest_path, ChangeKind.CREATED)


def _outermost(paths: Iterable[Path]) -> list[Path]:
    unique = sorted(set(paths))
    return [
        path
        for path in unique
        if not any(other != path and path.is_relative_to(other) for other in unique)
    ]


class ChangeStream:
    """Lazy, unbounded stream of change events under a set of directories.

    A stream is started once and closed once; closing ends iteration and
    releases the observer thread. It cannot be restarted.
    """

    def __init__(
        self,
        paths: Iterable[Path],
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self._paths = _outermost(paths)
        self._observer_factory = observer_factory
        self._observer = None
        self._queue: queue.Queue = queue.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> ChangeStream:
        if self._closed:
            raise RuntimeError("A closed ChangeStream cannot be restarted")
        if self._observer is not None:
            return self

        observer = self._observer_factory()
        handler = _QueueHandler(self._queue.put)
        for path in self._paths:
            if not path.is_dir():
                logger.warning(f"Not watching missing directory {path}")
                continue
            observer.schedule(handler, str(path), recursive=True)
            logger.debug(f"Watching {path}")
        observer.start()
        self._observer = observer
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self._queue.put(_CLOSED)
        logger.debug("Change stream closed")

    def __enter__(self) -> ChangeStream:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get(self, timeout: float | None = None) -> ChangeEvent | None:
        """Return the next event, or None on timeout or once closed."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            # Leave the marker for any later reader
            self._queue.put(_CLOSED)
            return None
        return item

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def batches(self, window: float) -> Iterator[list[ChangeEvent]]:
        """Yield events grouped until ``window`` seconds pass without a new one.

        Events for the same path are collapsed; the latest kind wins.
        """
        while True:
            first = self.get()
            if first is None:
                return

            pending: dict[Path, ChangeEvent] = {first.path: first}
            while True:
                event = self.get(timeout=window)
                if event is None:
                    break
                pending.pop(event.path, None)
                pending[event.path] = event

            yield list(pending.values())
            if self._closed:
                return
