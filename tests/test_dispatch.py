"""Tests for the coalescing dispatcher."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from mdbuild.watch.dispatch import CoalescingDispatcher
from mdbuild.watch.events import Category, ChangeEvent, ChangeKind

A_MODIFIED = ChangeEvent(Path("a.md"), ChangeKind.MODIFIED)


class BlockingHandler:
    """Records batches; the first call blocks until released."""

    def __init__(self) -> None:
        self.batches: list[list[ChangeEvent]] = []
        self.started = threading.Event()
        self.release = threading.Event()

    def __call__(self, batch: list[ChangeEvent]) -> None:
        self.batches.append(batch)
        if len(self.batches) == 1:
            self.started.set()
            assert self.release.wait(5)


@pytest.fixture
def handler() -> BlockingHandler:
    return BlockingHandler()


def test_rapid_edits_coalesce_into_one_rerun(handler: BlockingHandler) -> None:
    dispatcher = CoalescingDispatcher({Category.DOCUMENTS: handler})

    assert dispatcher.submit(Category.DOCUMENTS, [A_MODIFIED]) is True
    assert handler.started.wait(5)
    for _ in range(3):
        assert dispatcher.submit(Category.DOCUMENTS, [A_MODIFIED]) is False

    handler.release.set()
    assert dispatcher.wait_idle(5)
    dispatcher.shutdown()

    assert len(handler.batches) == 2
    assert handler.batches[1] == [A_MODIFIED]


def test_pending_rerun_merges_paths_latest_kind_wins(handler: BlockingHandler) -> None:
    dispatcher = CoalescingDispatcher({Category.DOCUMENTS: handler})
    b_created = ChangeEvent(Path("b.md"), ChangeKind.CREATED)
    b_deleted = ChangeEvent(Path("b.md"), ChangeKind.DELETED)

    dispatcher.submit(Category.DOCUMENTS, [A_MODIFIED])
    assert handler.started.wait(5)
    dispatcher.submit(Category.DOCUMENTS, [b_created])
    dispatcher.submit(Category.DOCUMENTS, [A_MODIFIED, b_deleted])
    handler.release.set()
    assert dispatcher.wait_idle(5)
    dispatcher.shutdown()

    assert sorted(handler.batches[1], key=lambda e: str(e.path)) == [A_MODIFIED, b_deleted]


def test_categories_run_independently(handler: BlockingHandler) -> None:
    copied = threading.Event()
    dispatcher = CoalescingDispatcher(
        {Category.DOCUMENTS: handler, Category.ASSETS: lambda batch: copied.set()}
    )

    dispatcher.submit(Category.DOCUMENTS, [A_MODIFIED])
    assert handler.started.wait(5)
    dispatcher.submit(Category.ASSETS, [ChangeEvent(Path("style.css"), ChangeKind.MODIFIED)])

    # The asset copy completes while the render is still blocked
    assert copied.wait(5)
    assert dispatcher.busy()

    handler.release.set()
    assert dispatcher.wait_idle(5)
    dispatcher.shutdown()


def test_handler_error_does_not_stop_dispatching() -> None:
    errors: list[tuple[Category, Exception]] = []
    calls: list[int] = []

    def flaky(batch: list[ChangeEvent]) -> None:
        calls.append(len(batch))
        if len(calls) == 1:
            raise RuntimeError("render failed")

    dispatcher = CoalescingDispatcher(
        {Category.DOCUMENTS: flaky}, on_error=lambda c, e: errors.append((c, e))
    )

    dispatcher.submit(Category.DOCUMENTS, [A_MODIFIED])
    assert dispatcher.wait_idle(5)
    dispatcher.submit(Category.DOCUMENTS, [A_MODIFIED])
    assert dispatcher.wait_idle(5)
    dispatcher.shutdown()

    assert calls == [1, 1]
    assert [category for category, _ in errors] == [Category.DOCUMENTS]


def test_empty_submit_is_ignored() -> None:
    dispatcher = CoalescingDispatcher({Category.DOCUMENTS: lambda batch: None})
    assert dispatcher.submit(Category.DOCUMENTS, []) is False
    assert not dispatcher.busy()
    dispatcher.shutdown()


def test_submit_after_shutdown() -> None:
    dispatcher = CoalescingDispatcher({Category.DOCUMENTS: lambda batch: None})
    dispatcher.shutdown()
    with pytest.raises(RuntimeError):
        dispatcher.submit(Category.DOCUMENTS, [A_MODIFIED])
