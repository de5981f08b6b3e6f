"""Command-line interface for repowatcher."""

from pathlib import Path
from typing import Any, Dict, Optional

import typer
import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from repowatcher.api.app import create_app
from repowatcher.errors import RunnerConfigError, TransportError
from repowatcher.log import configure_logging
from repowatcher.models.config import WatcherSettings
from repowatcher.models.runner import parse_runner_config_file
from repowatcher.watcher import PollScheduler, RepoWatcher

app = typer.Typer(
    name="repowatcher",
    help="Watch a git repository and serve branch metadata and snapshots over HTTP",
    add_completion=False,
)
console = Console()


def _load_settings(**overrides: Any) -> WatcherSettings:
    """Build settings from the environment, with CLI flags taking precedence."""
    values: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    try:
        return WatcherSettings(**values)
    except ValidationError as e:
        console.print(f"[bold red]Invalid configuration:[/bold red]\n{escape(str(e))}")
        raise typer.Exit(1)


def _open_watcher(settings: WatcherSettings) -> RepoWatcher:
    try:
        return RepoWatcher.from_settings(settings)
    except TransportError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def watch(
    repo_name: Optional[str] = typer.Option(None, "--repo-name", help="Name of the repository"),
    repo_url: Optional[str] = typer.Option(None, "--repo-url", help="URL of the repository"),
    auth_token: Optional[str] = typer.Option(None, "--auth-token", envvar="REPOWATCHER_AUTH_TOKEN", help="API token for authentication"),
    clone_dir: Optional[Path] = typer.Option(None, "--clone-dir", help="Directory for the local mirror"),
    poll_interval: Optional[float] = typer.Option(None, "--poll-interval", help="Seconds between polls"),
    host: Optional[str] = typer.Option(None, "--host", help="HTTP bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="HTTP port"),
    max_workers: Optional[int] = typer.Option(None, "--max-workers", help="Snapshots built concurrently"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
    json_logs: Optional[bool] = typer.Option(None, "--json-logs/--console-logs", help="Log output format"),
) -> None:
    """Mirror the repository, poll it and serve the branch API.

    Interrupt and terminate signals stop the poller and the server gracefully.
    """
    settings = _load_settings(
        repo_name=repo_name,
        repo_url=repo_url,
        auth_token=auth_token,
        clone_dir=clone_dir,
        poll_interval=poll_interval,
        host=host,
        port=port,
        max_workers=max_workers,
        log_level=log_level,
        json_logs=json_logs,
    )
    configure_logging(settings.log_level, json_logs=settings.json_logs)

    console.print(f"[bold green]Watching repository:[/bold green] {settings.repo_url}")
    watcher = _open_watcher(settings)
    scheduler = PollScheduler(watcher, settings.poll_interval)
    api = create_app(watcher, scheduler=scheduler)

    console.print(f"[bold blue]Serving on:[/bold blue] http://{settings.host}:{settings.port}")
    try:
        uvicorn.run(api, host=settings.host, port=settings.port, log_config=None)
    finally:
        watcher.close()


@app.command()
def branches(
    repo_name: Optional[str] = typer.Option(None, "--repo-name", help="Name of the repository"),
    repo_url: Optional[str] = typer.Option(None, "--repo-url", help="URL of the repository"),
    auth_token: Optional[str] = typer.Option(None, "--auth-token", envvar="REPOWATCHER_AUTH_TOKEN", help="API token for authentication"),
    clone_dir: Optional[Path] = typer.Option(None, "--clone-dir", help="Directory for the local mirror"),
) -> None:
    """Fetch once and list the repository's branches."""
    settings = _load_settings(
        repo_name=repo_name, repo_url=repo_url, auth_token=auth_token, clone_dir=clone_dir
    )
    configure_logging("WARNING")

    watcher = _open_watcher(settings)
    try:
        result = watcher.run_pass(build=False)
    finally:
        watcher.close()

    if not result.success:
        console.print(f"[bold red]Error:[/bold red] {escape(result.error)}")
        raise typer.Exit(1)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Branch", style="cyan")
    table.add_column("Commit", style="yellow", width=10)
    table.add_column("Last Update", style="blue")
    table.add_column("Author", style="green")

    for state in watcher.query.list_branches():
        table.add_row(
            state.name,
            state.commit[:7],
            state.last_update.strftime("%Y-%m-%d %H:%M"),
            state.last_updated_by[:30],
        )

    console.print(table)


@app.command("validate-runner")
def validate_runner(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Runner configuration file"),
    repo_name: str = typer.Option("repository", "--repo-name", help="Default model name"),
    branch: str = typer.Option("main", "--branch", "-b", help="Default model namespace"),
) -> None:
    """Validate a runner configuration file and print the resolved result."""
    try:
        config = parse_runner_config_file(path, repo_name, branch)
    except (RunnerConfigError, OSError) as e:
        console.print(f"[bold red]Invalid runner config:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print("[bold green]✓[/bold green] Runner config is valid")
    console.print_json(data=config.model_dump(mode="json"))


if __name__ == "__main__":
    app()
