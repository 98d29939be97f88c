from __future__ import annotations

import logging
from typing import Any, Iterable, Protocol

from changed_files_ci.directories import get_changed_directories, split_renamed_files
from changed_files_ci.events import EventDescriptor, classify_event, is_zero_revision
from changed_files_ci.matching import match_directories, match_files, parse_patterns, split_patterns
from changed_files_ci.models import ChangeSetResult, FileChange
from changed_files_ci.reconcile import DEFAULT_MAX_WORKERS, DirectoryProbe, filter_existing_directories


class ChangeSource(Protocol):
    def fetch_changes(self, event: EventDescriptor) -> list[FileChange]: ...


def get_changed_files(
    source: ChangeSource,
    probe: DirectoryProbe,
    patterns: str | Iterable[str],
    event: EventDescriptor,
    max_workers: int = DEFAULT_MAX_WORKERS,
    logger: logging.Logger | None = None,
) -> ChangeSetResult:
    """Resolve the changed files and directories of *event* that match *patterns*.

    Patterns ending with ``/`` select directories, all others select files.
    Removed files are never returned; directories that lost all their files
    are returned only if *probe* confirms they still exist at ``event.after``.
    Errors from *source* or *probe* propagate unchanged.
    """
    if is_zero_revision(event.before):
        if logger:
            logger.info("Before revision is all zeros (new branch), nothing to compare")
        return ChangeSetResult(paths=[])

    file_patterns, directory_patterns = split_patterns(parse_patterns(patterns))

    changes = split_renamed_files(source.fetch_changes(event))
    if logger:
        logger.info("%s %s...%s: %d changed files", event.kind.value, event.before, event.after, len(changes))

    # Only files that still exist are useful to downstream jobs
    existing_files = [c.path for c in changes if not c.is_removed]
    matched_files = match_files(existing_files, file_patterns)

    matched_directories = match_directories(get_changed_directories(changes), directory_patterns)
    kept_directories = filter_existing_directories(
        matched_directories,
        probe,
        event.after,
        max_workers=max_workers,
        logger=logger,
    )

    if logger:
        logger.debug("Matched files: %s", matched_files)
        logger.debug("Matched directories: %s", kept_directories)

    return ChangeSetResult(paths=matched_files + kept_directories)


def resolve_from_payload(
    source: ChangeSource,
    probe: DirectoryProbe,
    patterns: str | Iterable[str],
    payload: dict[str, Any],
    event_name: str | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    logger: logging.Logger | None = None,
) -> ChangeSetResult:
    event = classify_event(payload, event_name=event_name)
    return get_changed_files(source, probe, patterns, event, max_workers=max_workers, logger=logger)
