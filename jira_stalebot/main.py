"""jira-stalebot CLI."""

import signal
import threading
from pathlib import Path
from typing import Annotated

import typer

from jira_stalebot.bot import Stalebot
from jira_stalebot.errors import StalebotError
from jira_stalebot.log import get_logger, setup_logging
from jira_stalebot.settings import load_config, load_personal_access_token
from jira_stalebot.trackers.jira import JiraTracker

app = typer.Typer(help="Mark, unmark and close stale Jira issues.", add_completion=False)


def _install_cancel_handlers(cancel: threading.Event) -> dict[int, object]:
    """Route SIGINT/SIGTERM to cancel so the run stops at the next issue. Returns the previous handlers."""

    def handler(signum: int, frame: object) -> None:
        cancel.set()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, handler)
    return previous


def _restore_handlers(previous: dict[int, object]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)  # type: ignore[arg-type]


@app.command()
def run(
    config: Annotated[Path, typer.Option("--config", help="Stalebot config file (.yaml or .toml)")] = Path(
        "config.yaml"
    ),
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Dry run (don't make any changes)")] = False,
    verbosity: Annotated[
        int,
        typer.Option("--verbosity", "-v", min=0, help="Log verbosity (higher number is more verbose)"),
    ] = 0,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompts for operations")] = False,
) -> None:
    """Run one stalebot pass over the configured Jira project."""
    setup_logging(verbosity)
    setup_log = get_logger("setup")

    try:
        token = load_personal_access_token()
    except StalebotError as exc:
        setup_log.error("load personal access token: %s", exc)
        raise typer.Exit(1)

    try:
        cfg = load_config(config)
    except StalebotError as exc:
        setup_log.error("load stalebot config: %s", exc)
        raise typer.Exit(1)

    try:
        tracker = JiraTracker(cfg.jira_base_url, token)
    except ValueError as exc:
        setup_log.error("create jira client: %s", exc)
        raise typer.Exit(1)

    bot_log = get_logger("bot")
    bot = Stalebot(tracker=tracker, config=cfg, dry_run=dry_run, prompt=not yes, logger=bot_log)

    cancel = threading.Event()
    previous = _install_cancel_handlers(cancel)
    try:
        bot.run(cancel)
    except StalebotError as exc:
        bot_log.error("run stalebot: %s", exc)
        raise typer.Exit(1)
    finally:
        _restore_handlers(previous)
