"""Change events and watcher vocabulary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ChangeKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class Category(str, Enum):
    """What a changed path is to the pipeline."""

    DOCUMENTS = "documents"
    ASSETS = "assets"
    OUTPUT = "output"


class WatcherState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"
    DISPATCHING = "dispatching"


@dataclass(frozen=True)
class ChangeEvent:
    path: Path
    kind: ChangeKind

    @property
    def deleted(self) -> bool:
        return self.kind is ChangeKind.DELETED
