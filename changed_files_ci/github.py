from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, TypeVar
from urllib.parse import quote

import requests

from changed_files_ci import __version__
from changed_files_ci.errors import ExistenceProbeError, GitHubError, UpstreamFetchError
from changed_files_ci.events import EventDescriptor
from changed_files_ci.models import FileChange, FileStatus


DEFAULT_API_URL = "https://api.github.com"

# GitHub reports a few statuses beyond the four we reason about
STATUS_MAP = {
    "added": FileStatus.ADDED,
    "copied": FileStatus.ADDED,
    "modified": FileStatus.MODIFIED,
    "changed": FileStatus.MODIFIED,
    "unchanged": FileStatus.MODIFIED,
    "removed": FileStatus.REMOVED,
    "renamed": FileStatus.RENAMED,
}

RETRYABLE_STATUSES = {429, 500, 502, 503, 504}

log = logging.getLogger(__name__)

T = TypeVar("T")


def _is_retryable(status: int | None) -> bool:
    return status is None or status in RETRYABLE_STATUSES


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "").strip()[:220]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return str(body)[:220]


def parse_file(raw: dict[str, Any]) -> FileChange:
    status = STATUS_MAP.get(str(raw.get("status", "")).lower(), FileStatus.MODIFIED)
    previous = raw.get("previous_filename")
    return FileChange(
        path=str(raw["filename"]),
        status=status,
        previous_path=str(previous) if previous else None,
    )


class GitHubClient:
    """Minimal GitHub REST client for compare, commit and contents lookups."""

    def __init__(
        self,
        token: str | None,
        repository: str,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: int = 30,
        per_page: int = 100,
        session: requests.Session | None = None,
    ):
        self.repository = repository
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.per_page = per_page
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": f"changed-files-ci/{__version__}",
            }
        )
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _get(self, path: str, params: dict[str, Any] | None = None) -> requests.Response:
        return self.session.get(f"{self.api_url}{path}", params=params, timeout=self.timeout_seconds)

    def _files_page(self, path: str, what: str, params: dict[str, Any]) -> list[FileChange]:
        try:
            resp = self._get(path, params=params)
        except requests.RequestException as exc:
            raise UpstreamFetchError(f"Failed to fetch {what}: {exc}", retryable=True) from exc

        if resp.status_code != 200:
            raise UpstreamFetchError(
                f"Failed to fetch {what}: HTTP {resp.status_code} {_error_detail(resp)}",
                status=resp.status_code,
                retryable=_is_retryable(resp.status_code),
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamFetchError(f"Failed to fetch {what}: response is not JSON") from exc
        if not isinstance(body, dict):
            raise UpstreamFetchError(f"Failed to fetch {what}: unexpected response shape")
        return [parse_file(raw) for raw in body.get("files") or []]

    def compare_commits(self, base: str, head: str) -> list[FileChange]:
        # compare pages commits, not files: the file list (max 300) comes whole
        return self._files_page(
            f"/repos/{self.repository}/compare/{base}...{head}",
            f"changed files {base}...{head}",
            params={},
        )

    def list_commit_files(self, ref: str) -> list[FileChange]:
        path = f"/repos/{self.repository}/commits/{quote(ref, safe='')}"
        files: list[FileChange] = []
        page = 1
        while True:
            batch = self._files_page(path, f"files of commit {ref}", {"per_page": self.per_page, "page": page})
            files.extend(batch)
            if len(batch) < self.per_page:
                return files
            page += 1

    def fetch_changes(self, event: EventDescriptor) -> list[FileChange]:
        if event.before == event.after:
            # Nothing to compare against, fall back to the commit's own file list
            return self.list_commit_files(event.after)
        return self.compare_commits(event.before, event.after)

    def directory_exists(self, revision: str, path: str) -> bool:
        dirname = path.rstrip("/")
        try:
            resp = self._get(
                f"/repos/{self.repository}/contents/{quote(dirname)}",
                params={"ref": revision},
            )
        except requests.RequestException as exc:
            raise ExistenceProbeError(
                f"Failed to check directory '{dirname}' at {revision}: {exc}", retryable=True
            ) from exc

        if resp.status_code == 404:
            return False
        if resp.status_code != 200:
            raise ExistenceProbeError(
                f"Failed to check directory '{dirname}' at {revision}: HTTP {resp.status_code} {_error_detail(resp)}",
                status=resp.status_code,
                retryable=_is_retryable(resp.status_code),
            )
        try:
            body = resp.json()
        except ValueError as exc:
            raise ExistenceProbeError(
                f"Failed to check directory '{dirname}' at {revision}: response is not JSON"
            ) from exc
        # Directories come back as a listing, files as a single object
        return isinstance(body, list)


class LoggingGitHub:
    """Logs every call to the wrapped client and any failure before re-raising it."""

    def __init__(self, inner: Any, logger: logging.Logger | None = None):
        self.inner = inner
        self.logger = logger or log

    def _call(self, name: str, fn: Callable[..., T], *args: Any) -> T:
        self.logger.debug("github %s %s", name, args)
        try:
            return fn(*args)
        except Exception as exc:
            self.logger.debug("github %s failed: args=%s err=%s", name, args, exc)
            raise

    def fetch_changes(self, event: EventDescriptor) -> list[FileChange]:
        return self._call("fetch_changes", self.inner.fetch_changes, event)

    def directory_exists(self, revision: str, path: str) -> bool:
        return self._call("directory_exists", self.inner.directory_exists, revision, path)


class RetryingGitHub:
    """Retries transient GitHub failures with capped exponential backoff and jitter."""

    def __init__(
        self,
        inner: Any,
        retries: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 8.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.inner = inner
        self.retries = max(1, retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep

    def _call(self, fn: Callable[..., T], *args: Any) -> T:
        for attempt in range(self.retries):
            try:
                return fn(*args)
            except GitHubError as exc:
                if not exc.retryable or attempt == self.retries - 1:
                    raise
                delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                log.info("Retrying after %s (attempt %d/%d)", exc, attempt + 2, self.retries)
                self.sleep(random.uniform(delay / 2, delay))
        raise AssertionError("unreachable")

    def fetch_changes(self, event: EventDescriptor) -> list[FileChange]:
        return self._call(self.inner.fetch_changes, event)

    def directory_exists(self, revision: str, path: str) -> bool:
        return self._call(self.inner.directory_exists, revision, path)


def build_client(
    token: str | None,
    repository: str,
    api_url: str = DEFAULT_API_URL,
    timeout_seconds: int = 30,
    retries: int = 3,
    logger: logging.Logger | None = None,
) -> RetryingGitHub:
    client = GitHubClient(token, repository, api_url=api_url, timeout_seconds=timeout_seconds)
    return RetryingGitHub(LoggingGitHub(client, logger=logger), retries=retries)
