from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any
import json
import os
import yaml

from changed_files_ci.events import ConfigurationError
from changed_files_ci.github import DEFAULT_API_URL
from changed_files_ci.matching import parse_patterns


DEFAULTS = {
    "timeout_seconds": 30,
    "retries": 3,
    "max_workers": 8,
}


@dataclass
class Settings:
    files: list[str] = field(default_factory=list)
    token: str | None = None
    event_path: str | None = None
    event_name: str | None = None
    api_url: str = DEFAULT_API_URL
    output_path: str | None = None
    summary_path: str | None = None
    timeout_seconds: int = DEFAULTS["timeout_seconds"]
    retries: int = DEFAULTS["retries"]
    max_workers: int = DEFAULTS["max_workers"]


def load_env_file(path: Path) -> None:
    """Load simple KEY=VALUE pairs from a .env file without overriding existing env."""
    if not path.exists() or not path.is_file():
        return

    for raw in path.read_text(errors="ignore").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _int_option(data: dict[str, Any], key: str, current: int) -> int:
    value = data.get(key)
    if value is None or value == "":
        return current
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer for '{key}': {value}") from exc


def load_config_file(path: str | None, settings: Settings) -> Settings:
    if not path:
        return settings

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = yaml.safe_load(config_path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping")

    files = data.get("files")
    if files is not None and not isinstance(files, (str, list)):
        raise ValueError("Config 'files' must be a string or a list of patterns")

    return replace(
        settings,
        files=parse_patterns(files) if files is not None else settings.files,
        api_url=str(data.get("api_url") or settings.api_url),
        timeout_seconds=_int_option(data, "timeout_seconds", settings.timeout_seconds),
        retries=_int_option(data, "retries", settings.retries),
        max_workers=_int_option(data, "max_workers", settings.max_workers),
    )


def _env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value
    return None


def load_env_settings(settings: Settings) -> Settings:
    files = _env("INPUT_FILES")
    return replace(
        settings,
        files=parse_patterns(files) if files else settings.files,
        token=_env("INPUT_TOKEN", "GITHUB_TOKEN") or settings.token,
        event_path=_env("GITHUB_EVENT_PATH") or settings.event_path,
        event_name=_env("GITHUB_EVENT_NAME") or settings.event_name,
        api_url=_env("GITHUB_API_URL") or settings.api_url,
        output_path=_env("GITHUB_OUTPUT") or settings.output_path,
        summary_path=_env("GITHUB_STEP_SUMMARY") or settings.summary_path,
        timeout_seconds=int(_env("CHANGED_FILES_TIMEOUT_SECONDS") or settings.timeout_seconds),
        retries=int(_env("CHANGED_FILES_RETRIES") or settings.retries),
        max_workers=int(_env("CHANGED_FILES_MAX_WORKERS") or settings.max_workers),
    )


def load_settings(config_path: str | None = None, **overrides: Any) -> Settings:
    """Defaults, then the YAML config, then the environment, then explicit overrides."""
    settings = load_config_file(config_path, Settings())
    settings = load_env_settings(settings)

    updates = {k: v for k, v in overrides.items() if v is not None}
    if "files" in updates:
        updates["files"] = parse_patterns(updates["files"])
    return replace(settings, **updates)


def load_event(path: str | None) -> dict[str, Any]:
    if not path:
        raise ConfigurationError("GitHub event not found")

    event_path = Path(path)
    if not event_path.exists():
        raise ConfigurationError(f"GitHub event not found: {path}")

    try:
        data = json.loads(event_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"GitHub event is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("GitHub event payload must be a JSON object")
    return data
