"""Error types raised by the build pipeline."""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Base class for every failure reported by mdbuild."""


class ConfigurationError(BuildError):
    """Raised when the pipeline definition cannot produce correct output."""


class FilesystemError(BuildError):
    """Raised when reading, writing or deleting a file fails."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ContentError(BuildError):
    """Raised when a single source document cannot be rendered."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class TaskError(BuildError):
    """Raised by the task graph when one of its tasks fails."""

    def __init__(self, task: str, cause: BaseException) -> None:
        super().__init__(f"Task '{task}' failed: {cause}")
        self.task = task
        self.cause = cause
