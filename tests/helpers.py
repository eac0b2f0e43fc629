"""Issue builders shared across test modules."""

from datetime import datetime, timedelta, timezone

from jira_stalebot.models import ChangelogHistory, ChangelogItem, Issue

NOW = datetime(2000, 1, 1, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def make_issue(**kwargs) -> Issue:
    defaults = {
        "id": "10100",
        "key": "TEST-100",
        "summary": "Flaky login test",
        "issue_type": "Bug",
        "status_category": "new",
        "labels": [],
        "updated": NOW,
        "changelog": [],
    }
    defaults.update(kwargs)
    return Issue(**defaults)


def labels_change(before: str, after: str) -> ChangelogHistory:
    return ChangelogHistory(items=[ChangelogItem(field="labels", from_string=before, to_string=after)])
