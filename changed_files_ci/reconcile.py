from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Protocol

from changed_files_ci.errors import ExistenceProbeError
from changed_files_ci.models import DirectoryRecord


DEFAULT_MAX_WORKERS = 8


class DirectoryProbe(Protocol):
    def directory_exists(self, revision: str, path: str) -> bool: ...


def filter_existing_directories(
    directories: list[DirectoryRecord],
    probe: DirectoryProbe,
    revision: str,
    max_workers: int = DEFAULT_MAX_WORKERS,
    logger: logging.Logger | None = None,
) -> list[str]:
    """Keep directories known to exist, probing only the ones that may be gone.

    Probes run concurrently; the result keeps the order of *directories*.
    The first probe failure cancels the probes that have not started and is
    re-raised as is, and so is any answer that is not a plain bool.
    """
    ambiguous = [d.path for d in directories if d.may_be_removed]
    exists: dict[str, bool] = {}

    if ambiguous:
        if logger:
            logger.info("Checking %d possibly removed directories at %s", len(ambiguous), revision)

        pool = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(ambiguous))))
        try:
            futures = {pool.submit(probe.directory_exists, revision, path): path for path in ambiguous}
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                exc = future.exception()
                if exc is not None:
                    raise exc
            for future, path in futures.items():
                found = future.result()
                if not isinstance(found, bool):
                    raise ExistenceProbeError(f"Existence check for {path} at {revision} returned {found!r}")
                exists[path] = found
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

        if logger:
            for path in ambiguous:
                logger.debug("Directory %s exists at %s: %s", path, revision, exists[path])

    return [d.path for d in directories if not d.may_be_removed or exists[d.path]]
