"""The stalebot run loop: page through eligible issues, decide, confirm, dispatch."""

import logging
import queue
import threading
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import typer

from jira_stalebot.errors import JiraError, OperationError, RunCancelled, StalebotError, TransitionNotFoundError
from jira_stalebot.log import get_logger
from jira_stalebot.models import Issue, Operation, RunSummary, Transition
from jira_stalebot.operations import decide
from jira_stalebot.query import eligible_issues_query
from jira_stalebot.settings import StalebotConfig
from jira_stalebot.trackers.base import IssueTracker

PAGE_SIZE = 1000  # Jira caps maxResults at 1000

Confirm = Callable[[Operation, Issue], bool]


def ask_to_confirm(op: Operation, issue: Issue) -> bool:
    return typer.confirm(f"Perform operation {op} on {issue.issue_type} {issue.key}: {issue.summary}?", default=False)


def prompt_to_confirm(
    op: Operation,
    issue: Issue,
    cancel: threading.Event,
    ask: Confirm = ask_to_confirm,
    poll_interval: float = 0.1,
) -> bool:
    """Ask for confirmation on a worker thread, waiting on either the answer or cancel.

    Raises RunCancelled if cancel is set before an answer arrives.
    """
    answers: queue.Queue[tuple[bool, Exception | None]] = queue.Queue(maxsize=1)

    def worker() -> None:
        try:
            answers.put((ask(op, issue), None))
        except Exception as exc:  # re-raised on the caller's thread below
            answers.put((False, exc))

    threading.Thread(target=worker, name="stalebot-prompt", daemon=True).start()
    while True:
        if cancel.is_set():
            typer.echo("")
            raise RunCancelled("cancelled while waiting for confirmation")
        try:
            answer, error = answers.get(timeout=poll_interval)
        except queue.Empty:
            continue
        if error is not None:
            raise StalebotError(f"read input from prompt: {error}") from error
        return answer


def transition_id(transitions: list[Transition], status_name: str) -> str:
    for t in transitions:
        if t.to_name == status_name:
            return t.id
    raise TransitionNotFoundError(f"no transition found to status {status_name!r}")


class Stalebot:
    def __init__(
        self,
        tracker: IssueTracker,
        config: StalebotConfig,
        dry_run: bool = False,
        prompt: bool = True,
        logger: logging.Logger | None = None,
        confirm: Confirm = ask_to_confirm,
    ) -> None:
        if tracker is None:
            raise ValueError("stalebot requires a tracker: tracker is None")
        self.tracker = tracker
        self.config = config
        self.dry_run = dry_run
        self.prompt = prompt
        self.logger = logger or get_logger("bot")
        self._confirm = confirm

    def run(self, cancel: threading.Event | None = None, now: datetime | None = None) -> RunSummary:
        """Process every eligible issue once.

        Raises ConfigError for an invalid config, JiraError if the search fails,
        OperationError if any dispatched operation fails and RunCancelled if cancel fires.
        """
        self.config.validate_policy()
        cancel = cancel or threading.Event()
        now = now or datetime.now(timezone.utc)

        jql = eligible_issues_query(self.config)
        counts: Counter[Operation] = Counter()
        processed = 0
        performed = 0
        limit_reached = False
        start_at = 0

        self.logger.info("querying jira: jql=%s", jql)
        while not limit_reached:
            try:
                page = self.tracker.search(jql, start_at, PAGE_SIZE)
            except JiraError as exc:
                raise JiraError(f"search for eligible issues: {exc}", status_code=exc.status_code) from exc

            for issue in page.issues:
                if cancel.is_set():
                    raise RunCancelled(f"run cancelled before processing {issue.key}")

                processed += 1
                op = decide(now, self.config, issue)
                counts[op] += 1
                if op is Operation.NONE:
                    continue

                if self.prompt and not prompt_to_confirm(op, issue, cancel, self._confirm):
                    self.logger.debug("operation declined: key=%s op=%s", issue.key, op)
                    continue
                performed += 1

                if self.dry_run:
                    self.logger.info("dry-run operation: key=%s op=%s", issue.key, op)
                else:
                    self.logger.info("performing operation: key=%s op=%s", issue.key, op)
                    try:
                        self._dispatch(op, issue)
                    except Exception as exc:
                        raise OperationError(str(op), issue.key, exc) from exc
                    self.logger.info("operation succeeded: key=%s op=%s", issue.key, op)

                if performed >= self.config.limit_per_run:
                    self.logger.warning("operation limit reached: limitPerRun=%d", self.config.limit_per_run)
                    limit_reached = True
                    break

            start_at = page.start_at + len(page.issues)
            if not page.issues or start_at >= page.total:
                break

        self.logger.info("found eligible issues: count=%d", processed)
        self.logger.info(
            "operations: %s=%d %s=%d %s=%d",
            Operation.ADD_STALE_LABEL,
            counts[Operation.ADD_STALE_LABEL],
            Operation.REMOVE_STALE_LABEL,
            counts[Operation.REMOVE_STALE_LABEL],
            Operation.CLOSE,
            counts[Operation.CLOSE],
        )
        return RunSummary(processed=processed, counts=dict(counts), limit_reached=limit_reached)

    def _dispatch(self, op: Operation, issue: Issue) -> None:
        match op:
            case Operation.ADD_STALE_LABEL:
                self._add_stale_label(issue)
            case Operation.REMOVE_STALE_LABEL:
                self._remove_stale_label(issue)
            case Operation.CLOSE:
                self._close_issue(issue)
            case Operation.NONE:
                pass

    def _step(self, stage: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except JiraError as exc:
            raise JiraError(f"{stage}: {exc}", status_code=exc.status_code) from exc

    def _add_stale_label(self, issue: Issue) -> None:
        label = self.config.stale_label
        self._step("add mark comment to issue", self.tracker.add_comment, issue.id, self.config.mark_comment)
        self._step(f"add stale label {label!r} to issue", self.tracker.update_labels, issue.id, add=label)

    def _remove_stale_label(self, issue: Issue) -> None:
        label = self.config.stale_label
        self._step("add unmark comment to issue", self.tracker.add_comment, issue.id, self.config.unmark_comment)
        self._step(f"remove stale label {label!r} from issue", self.tracker.update_labels, issue.id, remove=label)

    def _close_issue(self, issue: Issue) -> None:
        status = self.config.close_status
        transitions = self._step("get transitions for issue", self.tracker.get_transitions, issue.id)
        tid = transition_id(transitions, status)
        self._step(f"transition to status {status!r}", self.tracker.do_transition, issue.id, tid)
        self._step("add close comment to issue", self.tracker.add_comment, issue.id, self.config.close_comment)
