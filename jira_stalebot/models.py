"""Shared pydantic models — the contract between the Jira tracker, the rule evaluator and the bot."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict

# Jira status category keys: "new" (to do), "indeterminate" (in progress), "done"
STATUS_CATEGORY_DONE = "done"

# Stand-in for a missing `updated` field; old enough to count as stale.
NEVER = datetime.min.replace(tzinfo=timezone.utc)


class Operation(str, Enum):
    NONE = "None"
    ADD_STALE_LABEL = "AddStaleLabel"
    REMOVE_STALE_LABEL = "RemoveStaleLabel"
    CLOSE = "Close"

    def __str__(self) -> str:
        return self.value


class ChangelogItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    from_string: str = ""
    to_string: str = ""


class ChangelogHistory(BaseModel):
    """One changelog entry; a single edit can touch several fields."""

    model_config = ConfigDict(frozen=True)

    items: list[ChangelogItem] = []


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # Jira numeric ID, used in REST paths
    key: str  # ENG-123
    summary: str = ""
    issue_type: str = ""
    status_category: str = ""
    labels: list[str] = []
    updated: datetime = NEVER
    changelog: list[ChangelogHistory] = []  # oldest first


class Transition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    to_name: str  # name of the status the transition leads to


class SearchPage(BaseModel):
    """One page of search results, plus the paging bookkeeping Jira returns."""

    model_config = ConfigDict(frozen=True)

    issues: list[Issue]
    start_at: int
    total: int


class RunSummary(BaseModel):
    """What a single stalebot run looked at and decided."""

    processed: int = 0  # eligible issues evaluated
    counts: dict[Operation, int] = {}
    limit_reached: bool = False
