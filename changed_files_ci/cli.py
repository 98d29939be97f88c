from __future__ import annotations

import logging
from pathlib import Path
import typer

from changed_files_ci.config import load_env_file, load_event, load_settings
from changed_files_ci.events import ConfigurationError, classify_event
from changed_files_ci.github import GitHubError, build_client
from changed_files_ci.reporters import (
    build_json_report,
    write_github_output,
    write_json_report,
    write_markdown_summary,
)
from changed_files_ci.resolver import get_changed_files

app = typer.Typer(help="changed-files-ci: list changed files and directories matching glob patterns")

log = logging.getLogger("changed_files_ci")


@app.callback()
def main() -> None:
    """changed-files-ci command group."""


@app.command()
def resolve(
    files: str | None = typer.Option(None, help="Newline-separated glob patterns; trailing '/' selects directories"),
    event_path: str | None = typer.Option(None, help="Path to the GitHub event JSON (default: $GITHUB_EVENT_PATH)"),
    event_name: str | None = typer.Option(None, help="GitHub event name (default: $GITHUB_EVENT_NAME)"),
    token: str | None = typer.Option(None, help="GitHub token (default: $INPUT_TOKEN or $GITHUB_TOKEN)"),
    config: str | None = typer.Option(None, help="Optional YAML config path"),
    json_out: str | None = typer.Option(None, help="Optional JSON result output path"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    load_env_file(Path.cwd() / ".env")

    try:
        settings = load_settings(
            config,
            files=files,
            event_path=event_path,
            event_name=event_name,
            token=token,
        )
        event = classify_event(load_event(settings.event_path), event_name=settings.event_name)
    except (ConfigurationError, ValueError, FileNotFoundError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    if not settings.files:
        typer.secho("No file patterns given (use --files or INPUT_FILES)", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    client = build_client(
        settings.token,
        event.repository,
        api_url=settings.api_url,
        timeout_seconds=settings.timeout_seconds,
        retries=settings.retries,
        logger=log,
    )

    try:
        result = get_changed_files(
            client,
            client,
            settings.files,
            event,
            max_workers=settings.max_workers,
            logger=log,
        )
    except GitHubError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if settings.output_path:
        write_github_output(result, Path(settings.output_path))
    if settings.summary_path:
        write_markdown_summary(result, Path(settings.summary_path), event)
    if json_out:
        write_json_report(result, Path(json_out))

    if as_json:
        typer.echo(build_json_report(result))
    else:
        for path in result.paths:
            typer.echo(path)

    log.info("Matched %d paths", len(result.paths))


if __name__ == "__main__":
    app()
