"""Staleness rules: decide which lifecycle operation, if any, an issue needs right now."""

from datetime import datetime, timedelta

from jira_stalebot.models import STATUS_CATEGORY_DONE, Issue, Operation
from jira_stalebot.settings import StalebotConfig


def decide(now: datetime, config: StalebotConfig, issue: Issue) -> Operation:
    """Return the single operation to apply to issue at time now.

    Lifecycle:
    1. An issue untouched for daysUntilStale gets the stale label.
    2. A stale issue untouched for daysUntilClose after marking gets closed.
    3. A stale issue with any update after marking gets the label removed.
    """
    if issue.status_category == STATUS_CATEGORY_DONE:
        return Operation.NONE

    labels = set(issue.labels)
    if config.exempt_labels:
        if labels & set(config.exempt_labels):
            return Operation.NONE
    elif config.only_labels and labels.issuperset(config.only_labels):
        # Issues carrying ALL of onlyLabels are skipped.
        return Operation.NONE

    if config.stale_label not in labels:
        if issue.updated > now - timedelta(days=config.days_until_stale):
            return Operation.NONE
        return Operation.ADD_STALE_LABEL

    if last_update_added_stale_label(issue, config.stale_label):
        if issue.updated > now - timedelta(days=config.days_until_close):
            return Operation.NONE
        return Operation.CLOSE

    # Any update after the stale label went on, however recent or old, unmarks the issue.
    return Operation.REMOVE_STALE_LABEL


def last_update_added_stale_label(issue: Issue, stale_label: str) -> bool:
    if not issue.changelog:
        return False
    for item in issue.changelog[-1].items:
        if item.field != "labels":
            continue
        before = set(item.from_string.split())
        after = set(item.to_string.split())
        if stale_label not in before and stale_label in after:
            return True
    return False
