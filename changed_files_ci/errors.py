from __future__ import annotations


class GitHubError(RuntimeError):
    def __init__(self, message: str, status: int | None = None, retryable: bool = False):
        super().__init__(message)
        self.status = status
        self.retryable = retryable


class UpstreamFetchError(GitHubError):
    pass


class ExistenceProbeError(GitHubError):
    pass
