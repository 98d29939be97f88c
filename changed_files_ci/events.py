from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


ZERO_SHA = "0" * 40

PULL_REQUEST_EVENT_NAMES = {"pull_request", "pull_request_target"}


class ConfigurationError(ValueError):
    pass


class EventKind(str, Enum):
    PULL_REQUEST = "pull_request"  # two fixed revisions compared
    PUSH = "push"  # before/after of a ref


@dataclass(frozen=True)
class EventDescriptor:
    kind: EventKind
    repository: str  # owner/name
    before: str
    after: str
    ref: str | None = None


def is_zero_revision(sha: str | None) -> bool:
    return sha == ZERO_SHA


def _repository_name(payload: dict[str, Any]) -> str:
    repo = payload.get("repository")
    if not isinstance(repo, dict):
        raise ConfigurationError("GitHub event has no repository")

    full_name = repo.get("full_name")
    if isinstance(full_name, str) and "/" in full_name:
        return full_name

    owner = repo.get("owner") or {}
    login = owner.get("login") if isinstance(owner, dict) else None
    name = repo.get("name")
    if not login or not name:
        raise ConfigurationError("GitHub event repository is missing owner login or name")
    return f"{login}/{name}"


def _sha(obj: Any, key: str = "sha") -> str | None:
    if not isinstance(obj, dict):
        return None
    value = obj.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _from_pull_request(payload: dict[str, Any]) -> EventDescriptor | None:
    pr = payload.get("pull_request")
    if not isinstance(pr, dict):
        return None

    base = _sha(pr.get("base"))
    # The merge commit is what CI actually checks out; head is the fallback
    # when GitHub has not computed one (e.g. the PR has conflicts).
    after = _sha(pr, "merge_commit_sha") or _sha(pr.get("head"))
    if not base or not after:
        return None

    head = pr.get("head") or {}
    return EventDescriptor(
        kind=EventKind.PULL_REQUEST,
        repository=_repository_name(payload),
        before=base,
        after=after,
        ref=head.get("ref") if isinstance(head, dict) else None,
    )


def _from_push(payload: dict[str, Any]) -> EventDescriptor | None:
    before = _sha(payload, "before")
    after = _sha(payload, "after")
    if not before or not after:
        return None

    ref = payload.get("ref")
    return EventDescriptor(
        kind=EventKind.PUSH,
        repository=_repository_name(payload),
        before=before,
        after=after,
        ref=ref if isinstance(ref, str) else None,
    )


def classify_event(payload: dict[str, Any], event_name: str | None = None) -> EventDescriptor:
    """Work out the revision pair a triggering event describes.

    Raises ``ConfigurationError`` when the payload is neither pull-request nor
    push shaped, or when *event_name* says pull request but the payload is not.
    """
    if not isinstance(payload, dict):
        raise ConfigurationError("GitHub event payload must be a JSON object")

    name = (event_name or "").strip().lower()

    descriptor = _from_pull_request(payload)
    if descriptor is not None:
        return descriptor

    if name in PULL_REQUEST_EVENT_NAMES:
        raise ConfigurationError(
            f"Event '{name}' does not carry pull_request.base.sha and a head or merge commit sha"
        )

    descriptor = _from_push(payload)
    if descriptor is not None:
        return descriptor

    label = f"'{name}'" if name else "payload"
    raise ConfigurationError(
        f"Unsupported GitHub event {label}: expected a pull request or a push with before/after"
    )
