from __future__ import annotations

import json
from pathlib import Path

from changed_files_ci.events import EventDescriptor
from changed_files_ci.models import ChangeSetResult


def build_json_report(result: ChangeSetResult) -> str:
    return json.dumps(result.to_dict(), indent=2)


def write_json_report(result: ChangeSetResult, path: Path) -> None:
    path.write_text(build_json_report(result))


def build_github_output(result: ChangeSetResult) -> str:
    lines = [
        f"files={json.dumps(result.paths)}",
        f"is_empty={'true' if result.is_empty else 'false'}",
    ]
    return "\n".join(lines) + "\n"


def write_github_output(result: ChangeSetResult, path: Path) -> None:
    """Append step outputs to the file named by ``GITHUB_OUTPUT``."""
    with path.open("a") as fh:
        fh.write(build_github_output(result))


def build_markdown_summary(result: ChangeSetResult, event: EventDescriptor | None = None) -> str:
    lines = ["# changed-files-ci", ""]
    if event is not None:
        lines.extend(
            [
                f"- **Event:** `{event.kind.value}`",
                f"- **Repository:** `{event.repository}`",
                f"- **Range:** `{event.before[:12]}...{event.after[:12]}`",
            ]
        )
    lines.extend([f"- **Matched Paths:** {len(result.paths)}", ""])

    if result.is_empty:
        lines.append("No matching changes.")
    else:
        lines.extend(f"- `{p}`" for p in result.paths)
    lines.append("")
    return "\n".join(lines)


def write_markdown_summary(result: ChangeSetResult, path: Path, event: EventDescriptor | None = None) -> None:
    with path.open("a") as fh:
        fh.write(build_markdown_summary(result, event))
