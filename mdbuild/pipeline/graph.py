"""A small dependency-ordered task runner."""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from graphlib import CycleError, TopologicalSorter
from typing import Callable, Iterable

from ..core.errors import ConfigurationError, TaskError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Task:
    """A named unit of work; ``action`` None makes it a pure aggregate."""

    name: str
    action: Callable[[], object] | None = None
    depends_on: tuple[str, ...] = ()
    description: str = ""


class TaskGraph:
    """Immutable set of tasks validated once at construction.

    Tasks whose dependencies are satisfied run concurrently on a thread pool.
    """

    def __init__(self, tasks: Iterable[Task], max_workers: int = 4) -> None:
        self._tasks: dict[str, Task] = {}
        for task in tasks:
            if task.name in self._tasks:
                raise ConfigurationError(f"Duplicate task: {task.name}")
            self._tasks[task.name] = task
        self._max_workers = max_workers

        for task in self._tasks.values():
            for dependency in task.depends_on:
                if dependency not in self._tasks:
                    raise ConfigurationError(
                        f"Task '{task.name}' depends on unknown task '{dependency}'"
                    )

        try:
            TopologicalSorter(self._dependencies(self._tasks)).prepare()
        except CycleError as e:
            raise ConfigurationError(f"Task dependency cycle: {e.args[1]}") from e

    @property
    def names(self) -> list[str]:
        return list(self._tasks)

    def __getitem__(self, name: str) -> Task:
        return self._tasks[name]

    def _dependencies(self, names: Iterable[str]) -> dict[str, tuple[str, ...]]:
        return {name: self._tasks[name].depends_on for name in names}

    def closure(self, targets: Iterable[str]) -> set[str]:
        """Return the targets plus all of their transitive dependencies."""
        needed: set[str] = set()
        pending = list(targets)
        while pending:
            name = pending.pop()
            if name not in self._tasks:
                raise ConfigurationError(f"Unknown task: {name}")
            if name in needed:
                continue
            needed.add(name)
            pending.extend(self._tasks[name].depends_on)
        return needed

    def order(self, targets: Iterable[str]) -> list[str]:
        """Return a sequential execution order for the targets."""
        return list(TopologicalSorter(self._dependencies(self.closure(targets))).static_order())

    def _execute(self, name: str) -> None:
        task = self._tasks[name]
        if task.action is None:
            return
        started = time.perf_counter()
        logger.debug(f"Running task: {name}")
        task.action()
        logger.debug(f"Finished task {name} ({time.perf_counter() - started:.2f}s)")

    def run(self, targets: Iterable[str], *, with_dependencies: bool = True) -> list[str]:
        """Run the targets in dependency order.

        Args:
            targets: Task names to run
            with_dependencies: Also run every transitive dependency

        Returns:
            Names of the tasks that completed, in completion order

        Raises:
            TaskError: for the first task that failed; nothing new is started
                after a failure
        """
        targets = list(targets)
        if with_dependencies:
            selected = self.closure(targets)
        else:
            selected = self.closure(targets) & set(targets)

        graph = {
            name: tuple(dep for dep in self._tasks[name].depends_on if dep in selected)
            for name in selected
        }
        sorter = TopologicalSorter(graph)
        sorter.prepare()

        completed: list[str] = []
        failure: tuple[str, BaseException] | None = None
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="mdbuild-task"
        ) as pool:
            running: dict[Future[None], str] = {}
            while sorter.is_active():
                if failure is None:
                    for name in sorter.get_ready():
                        running[pool.submit(self._execute, name)] = name
                if not running:
                    break

                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    name = running.pop(future)
                    error = future.exception()
                    if error is not None:
                        logger.debug(f"Task {name} failed: {error}")
                        if failure is None:
                            failure = (name, error)
                    else:
                        sorter.done(name)
                        completed.append(name)

        if failure is not None:
            name, error = failure
            raise TaskError(name, error) from error
        return completed
