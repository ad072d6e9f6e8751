"""Per-category dispatch with at most one pending re-run."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Mapping

from .events import Category, ChangeEvent

logger = logging.getLogger(__name__)

Handler = Callable[[list[ChangeEvent]], None]
ErrorHook = Callable[[Category, Exception], None]


class _Slot:
    __slots__ = ("running", "pending")

    def __init__(self) -> None:
        self.running = False
        self.pending: dict[Path, ChangeEvent] = {}


def _log_error(category: Category, error: Exception) -> None:
    logger.error(f"Rebuild of {category.value} failed: {error}")


class CoalescingDispatcher:
    """Run category handlers off the watch loop.

    A category never has two runs in flight. Events submitted while it is busy
    are merged into a single pending batch (latest kind per path) that runs
    once the current run completes. Different categories run concurrently.
    """

    def __init__(
        self,
        handlers: Mapping[Category, Handler],
        on_error: ErrorHook = _log_error,
    ) -> None:
        self._handlers = dict(handlers)
        self._on_error = on_error
        self._slots = {category: _Slot() for category in self._handlers}
        self._condition = threading.Condition()
        self._executor = ThreadPoolExecutor(
            max_workers=max(len(self._handlers), 1),
            thread_name_prefix="mdbuild-dispatch",
        )
        self._shutdown = False

    def submit(self, category: Category, events: list[ChangeEvent]) -> bool:
        """Queue events for a category.

        Returns:
            True when a new run was started, False when the events were
            coalesced into the pending re-run of a busy category
        """
        if not events:
            return False
        with self._condition:
            if self._shutdown:
                raise RuntimeError("Dispatcher is shut down")
            slot = self._slots[category]
            for event in events:
                slot.pending.pop(event.path, None)
                slot.pending[event.path] = event
            if slot.running:
                logger.debug(f"Coalesced {len(events)} {category.value} change(s)")
                return False
            slot.running = True

        self._executor.submit(self._drain, category)
        return True

    def _drain(self, category: Category) -> None:
        slot = self._slots[category]
        handler = self._handlers[category]
        while True:
            with self._condition:
                batch = list(slot.pending.values())
                slot.pending = {}
                if not batch:
                    slot.running = False
                    self._condition.notify_all()
                    return
            try:
                handler(batch)
            except Exception as e:
                self._on_error(category, e)

    def busy(self) -> bool:
        with self._condition:
            return any(slot.running for slot in self._slots.values())

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no category is running.

        Returns:
            False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(
                lambda: not any(slot.running for slot in self._slots.values()),
                timeout=timeout,
            )

    def shutdown(self, wait: bool = True) -> None:
        with self._condition:
            self._shutdown = True
        self._executor.shutdown(wait=wait)
