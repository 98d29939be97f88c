import pytest
import requests

from changed_files_ci.events import EventDescriptor, EventKind
from changed_files_ci.github import (
    ExistenceProbeError,
    GitHubClient,
    LoggingGitHub,
    RetryingGitHub,
    UpstreamFetchError,
    build_client,
    parse_file,
)
from changed_files_ci.models import FileChange, FileStatus


class _Resp:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class _Session:
    def __init__(self, responses):
        self.responses = list(responses)
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


def _client(responses, per_page=100):
    session = _Session(responses)
    return GitHubClient("tok", "octo/repo", per_page=per_page, session=session), session


def _event(before="base", after="head"):
    return EventDescriptor(kind=EventKind.PULL_REQUEST, repository="octo/repo", before=before, after=after)


def test_parse_file_maps_statuses():
    assert parse_file({"filename": "a", "status": "copied"}).status is FileStatus.ADDED
    assert parse_file({"filename": "a", "status": "changed"}).status is FileStatus.MODIFIED
    renamed = parse_file({"filename": "b/a", "status": "renamed", "previous_filename": "c/a"})
    assert renamed == FileChange("b/a", FileStatus.RENAMED, "c/a")


def test_client_sets_auth_header():
    client, session = _client([])
    assert session.headers["Authorization"] == "Bearer tok"
    assert client.repository == "octo/repo"


def test_compare_is_a_single_request():
    files = [{"filename": f"f{i}.txt", "status": "added"} for i in range(150)]
    client, session = _client([_Resp(body={"files": files})], per_page=100)

    out = client.fetch_changes(_event())

    assert len(out) == 150
    assert len(session.calls) == 1
    assert session.calls[0][0] == "https://api.github.com/repos/octo/repo/compare/base...head"


def test_commit_files_page_until_short_page():
    page1 = {"files": [{"filename": "a.txt", "status": "added"}, {"filename": "b.txt", "status": "modified"}]}
    page2 = {"files": [{"filename": "c.txt", "status": "removed"}]}
    client, session = _client([_Resp(body=page1), _Resp(body=page2)], per_page=2)

    out = client.list_commit_files("abc")

    assert [f.path for f in out] == ["a.txt", "b.txt", "c.txt"]
    assert [c[1]["page"] for c in session.calls] == [1, 2]


def test_compare_non_json_body_raises_fetch_error():
    client, _ = _client([_Resp(status_code=200, text="<html>")])
    with pytest.raises(UpstreamFetchError, match="not JSON"):
        client.fetch_changes(_event())


def test_directory_exists_non_json_body_raises_probe_error():
    client, _ = _client([_Resp(status_code=200, text="<html>")])
    with pytest.raises(ExistenceProbeError, match="not JSON"):
        client.directory_exists("sha", "dir/")



def test_same_before_and_after_lists_commit_files():
    client, session = _client([_Resp(body={"files": [{"filename": "a.txt", "status": "added"}]})])
    out = client.fetch_changes(_event(before="abc", after="abc"))
    assert [f.path for f in out] == ["a.txt"]
    assert session.calls[0][0].endswith("/repos/octo/repo/commits/abc")


def test_compare_http_error_raises():
    client, _ = _client([_Resp(status_code=404, body={"message": "Not Found"})])
    with pytest.raises(UpstreamFetchError, match="Not Found") as excinfo:
        client.fetch_changes(_event())
    assert excinfo.value.status == 404
    assert excinfo.value.retryable is False


def test_compare_transport_error_is_retryable():
    client, _ = _client([requests.ConnectionError("boom")])
    with pytest.raises(UpstreamFetchError) as excinfo:
        client.fetch_changes(_event())
    assert excinfo.value.retryable is True


def test_directory_exists_true_for_listing():
    client, session = _client([_Resp(body=[{"name": "x"}])])
    assert client.directory_exists("sha", "packages/package-3/") is True
    url, params = session.calls[0]
    assert url.endswith("/repos/octo/repo/contents/packages/package-3")
    assert params == {"ref": "sha"}


def test_directory_exists_false_on_404_or_file():
    client, _ = _client([_Resp(status_code=404, body={"message": "Not Found"}), _Resp(body={"type": "file"})])
    assert client.directory_exists("sha", "gone/") is False
    assert client.directory_exists("sha", "file/") is False


def test_directory_exists_raises_on_other_errors():
    client, _ = _client([_Resp(status_code=500, text="oops")])
    with pytest.raises(ExistenceProbeError) as excinfo:
        client.directory_exists("sha", "dir/")
    assert excinfo.value.retryable is True


class _Flaky:
    def __init__(self, failures):
        self.failures = list(failures)
        self.calls = 0

    def directory_exists(self, revision, path):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return True

    def fetch_changes(self, event):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return []


def test_retrying_retries_transient_errors():
    sleeps = []
    inner = _Flaky([ExistenceProbeError("HTTP 502", status=502, retryable=True)])
    client = RetryingGitHub(inner, retries=3, sleep=sleeps.append)
    assert client.directory_exists("sha", "dir/") is True
    assert inner.calls == 2
    assert len(sleeps) == 1


def test_retrying_gives_up_after_attempts():
    inner = _Flaky([UpstreamFetchError("HTTP 503", status=503, retryable=True)] * 3)
    client = RetryingGitHub(inner, retries=2, sleep=lambda _: None)
    with pytest.raises(UpstreamFetchError):
        client.fetch_changes(_event())
    assert inner.calls == 2


def test_retrying_does_not_retry_permanent_errors():
    inner = _Flaky([UpstreamFetchError("HTTP 401", status=401, retryable=False)])
    client = RetryingGitHub(inner, retries=3, sleep=lambda _: None)
    with pytest.raises(UpstreamFetchError):
        client.fetch_changes(_event())
    assert inner.calls == 1


def test_logging_wrapper_reraises(caplog):
    inner = _Flaky([UpstreamFetchError("HTTP 401", status=401)])
    client = LoggingGitHub(inner)
    with caplog.at_level("DEBUG", logger="changed_files_ci.github"):
        with pytest.raises(UpstreamFetchError):
            client.fetch_changes(_event())
    assert "fetch_changes failed" in caplog.text


def test_build_client_composes_decorators():
    client = build_client("tok", "octo/repo", retries=5)
    assert isinstance(client, RetryingGitHub)
    assert client.retries == 5
    assert isinstance(client.inner, LoggingGitHub)
    assert isinstance(client.inner.inner, GitHubClient)
