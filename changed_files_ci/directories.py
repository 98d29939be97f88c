from __future__ import annotations

import posixpath
from typing import Iterable, Iterator

from changed_files_ci.models import ROOT_DIRECTORY, DirectoryRecord, FileChange, FileStatus


def split_renamed_files(changes: Iterable[FileChange]) -> list[FileChange]:
    """Replace each rename with an addition at the new path and a removal at the old one."""
    out: list[FileChange] = []
    for change in changes:
        if change.status is FileStatus.RENAMED and change.previous_path:
            out.append(FileChange(path=change.path, status=FileStatus.ADDED))
            out.append(FileChange(path=change.previous_path, status=FileStatus.REMOVED))
            continue
        out.append(change)
    return out


def _normalize_path(path: str) -> str:
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def parent_directories(path: str) -> Iterator[str]:
    """Yield the parents of *path*, nearest first, each with a trailing slash.

    The repository root is never yielded: ``a/b/c.txt`` gives ``a/b/`` then ``a/``.
    """
    current = _normalize_path(path)
    while True:
        current = posixpath.dirname(current)
        if current in ("", ".", "/"):
            return
        yield f"{current}/"


def get_changed_directories(changes: Iterable[FileChange]) -> list[DirectoryRecord]:
    """Infer every directory touched by *changes*.

    We can't tell from the change list alone whether a directory survived when
    only removals touched it, so such directories are flagged ``may_be_removed``.
    A single non-removal anywhere below a directory proves it still exists, and
    that proof is never reverted by later removals.
    """
    present: dict[str, bool] = {ROOT_DIRECTORY: True}

    for change in split_renamed_files(changes):
        survives = not change.is_removed
        for dirname in parent_directories(change.path):
            present[dirname] = present.get(dirname, False) or survives

    records = [
        DirectoryRecord(path=dirname, may_be_removed=not exists)
        for dirname, exists in present.items()
        if dirname != ROOT_DIRECTORY
    ]
    records.sort(key=lambda r: r.path)
    return [DirectoryRecord(path=ROOT_DIRECTORY)] + records
