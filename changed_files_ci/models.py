from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


ROOT_DIRECTORY = "."


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


@dataclass(frozen=True)
class FileChange:
    path: str
    status: FileStatus
    previous_path: str | None = None

    @property
    def is_removed(self) -> bool:
        return self.status is FileStatus.REMOVED


@dataclass(frozen=True)
class DirectoryRecord:
    path: str  # "." for the root, otherwise ends with "/"
    may_be_removed: bool = False


@dataclass(frozen=True)
class ChangeSetResult:
    paths: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return len(self.paths) == 0

    def to_dict(self) -> dict[str, Any]:
        return {"files": list(self.paths), "is_empty": self.is_empty}
