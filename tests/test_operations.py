"""Tests for the staleness rules in jira_stalebot.operations."""

from datetime import timedelta

import pytest

from jira_stalebot.models import NEVER, ChangelogHistory, ChangelogItem, Issue, Operation
from jira_stalebot.operations import decide, last_update_added_stale_label
from jira_stalebot.settings import StalebotConfig
from tests.helpers import DAY, NOW, labels_change, make_issue

EXEMPT = ["lifecycle-frozen", "stalebot-exempt"]
ONLY = ["check-stale", "stalebot-allow"]
SECOND = timedelta(seconds=1)

ADDED_STALE = labels_change("", "lifecycle-stale")
UNRELATED = labels_change("foo", "bar")


def _config(config: StalebotConfig, **kwargs) -> StalebotConfig:
    return config.model_copy(update=kwargs)


@pytest.fixture(params=["exempt", "only"])
def filtered_config(request, config: StalebotConfig) -> StalebotConfig:
    if request.param == "exempt":
        return _config(config, exempt_labels=EXEMPT)
    return _config(config, only_labels=ONLY)


class TestDoneIssues:
    @pytest.mark.parametrize("labels", [[], ["lifecycle-stale"]])
    def test_done_is_never_touched(self, filtered_config: StalebotConfig, labels: list[str]) -> None:
        issue = make_issue(
            status_category="done",
            labels=labels,
            updated=NOW - 1000 * DAY,
            changelog=[ADDED_STALE],
        )
        assert decide(NOW, filtered_config, issue) is Operation.NONE


class TestEligibility:
    def test_exempt_label_skips(self, config: StalebotConfig) -> None:
        cfg = _config(config, exempt_labels=EXEMPT)
        issue = make_issue(labels=["bug", "lifecycle-frozen"], updated=NOW - 120 * DAY)
        assert decide(NOW, cfg, issue) is Operation.NONE

    def test_issue_with_all_only_labels_skips(self, config: StalebotConfig) -> None:
        cfg = _config(config, only_labels=ONLY)
        issue = make_issue(labels=[*ONLY, "lifecycle-frozen"], updated=NOW - 120 * DAY)
        assert decide(NOW, cfg, issue) is Operation.NONE

    def test_issue_missing_one_only_label_is_processed(self, config: StalebotConfig) -> None:
        cfg = _config(config, only_labels=ONLY)
        issue = make_issue(labels=["check-stale"], updated=NOW - 120 * DAY)
        assert decide(NOW, cfg, issue) is Operation.ADD_STALE_LABEL

    def test_no_label_filters_processes_everything(self, config: StalebotConfig) -> None:
        issue = make_issue(labels=["bug"], updated=NOW - 120 * DAY)
        assert decide(NOW, config, issue) is Operation.ADD_STALE_LABEL

    def test_labels_are_case_sensitive(self, config: StalebotConfig) -> None:
        cfg = _config(config, exempt_labels=EXEMPT)
        issue = make_issue(labels=["Lifecycle-Frozen"], updated=NOW - 120 * DAY)
        assert decide(NOW, cfg, issue) is Operation.ADD_STALE_LABEL


class TestMarkStale:
    def test_updated_before_stale_days(self, filtered_config: StalebotConfig) -> None:
        issue = make_issue(updated=NOW - 120 * DAY)
        assert decide(NOW, filtered_config, issue) is Operation.ADD_STALE_LABEL

    def test_updated_after_stale_days(self, filtered_config: StalebotConfig) -> None:
        issue = make_issue(updated=NOW - 60 * DAY)
        assert decide(NOW, filtered_config, issue) is Operation.NONE

    def test_exactly_at_threshold_marks(self, config: StalebotConfig) -> None:
        issue = make_issue(updated=NOW - 90 * DAY)
        assert decide(NOW, config, issue) is Operation.ADD_STALE_LABEL

    def test_one_second_short_of_threshold(self, config: StalebotConfig) -> None:
        issue = make_issue(updated=NOW - 90 * DAY + SECOND)
        assert decide(NOW, config, issue) is Operation.NONE

    def test_missing_updated_counts_as_stale(self, config: StalebotConfig) -> None:
        issue = Issue(id="10100", key="TEST-100")
        assert issue.updated == NEVER
        assert decide(NOW, config, issue) is Operation.ADD_STALE_LABEL


class TestStaleLabeled:
    @pytest.mark.parametrize(
        ("updated", "expected"),
        [
            (NOW - 60 * DAY, Operation.CLOSE),
            (NOW, Operation.NONE),
        ],
    )
    def test_last_update_added_stale_label(
        self, filtered_config: StalebotConfig, updated, expected: Operation
    ) -> None:
        issue = make_issue(labels=["lifecycle-stale"], updated=updated, changelog=[ADDED_STALE])
        assert decide(NOW, filtered_config, issue) is expected

    @pytest.mark.parametrize("updated", [NOW - 60 * DAY, NOW])
    def test_last_update_did_not_add_stale_label(self, filtered_config: StalebotConfig, updated) -> None:
        issue = make_issue(labels=["lifecycle-stale"], updated=updated, changelog=[ADDED_STALE, UNRELATED])
        assert decide(NOW, filtered_config, issue) is Operation.REMOVE_STALE_LABEL

    def test_close_exactly_at_threshold(self, config: StalebotConfig) -> None:
        issue = make_issue(labels=["lifecycle-stale"], updated=NOW - 30 * DAY, changelog=[ADDED_STALE])
        assert decide(NOW, config, issue) is Operation.CLOSE

    def test_close_one_second_short(self, config: StalebotConfig) -> None:
        issue = make_issue(labels=["lifecycle-stale"], updated=NOW - 30 * DAY + SECOND, changelog=[ADDED_STALE])
        assert decide(NOW, config, issue) is Operation.NONE

    def test_no_changelog_unmarks(self, config: StalebotConfig) -> None:
        issue = make_issue(labels=["lifecycle-stale"], updated=NOW - 60 * DAY)
        assert decide(NOW, config, issue) is Operation.REMOVE_STALE_LABEL

    def test_custom_stale_label(self, config: StalebotConfig) -> None:
        cfg = _config(config, stale_label="rotting")
        marked = labels_change("bug", "bug rotting")
        issue = make_issue(labels=["bug", "rotting"], updated=NOW - 60 * DAY, changelog=[marked])
        assert decide(NOW, cfg, issue) is Operation.CLOSE

    def test_is_deterministic(self, config: StalebotConfig) -> None:
        issue = make_issue(labels=["lifecycle-stale"], updated=NOW - 60 * DAY, changelog=[ADDED_STALE])
        assert decide(NOW, config, issue) == decide(NOW, config, issue)


class TestLastUpdateAddedStaleLabel:
    def test_tokenizes_label_lists(self) -> None:
        issue = make_issue(changelog=[labels_change("bug ui", "bug lifecycle-stale ui")])
        assert last_update_added_stale_label(issue, "lifecycle-stale")

    def test_label_already_present_before(self) -> None:
        issue = make_issue(changelog=[labels_change("lifecycle-stale", "lifecycle-stale bug")])
        assert not last_update_added_stale_label(issue, "lifecycle-stale")

    def test_only_last_history_counts(self) -> None:
        status_change = ChangelogHistory(items=[ChangelogItem(field="status", from_string="Open", to_string="Done")])
        issue = make_issue(changelog=[ADDED_STALE, status_change])
        assert not last_update_added_stale_label(issue, "lifecycle-stale")

    def test_labels_item_among_other_fields(self) -> None:
        history = ChangelogHistory(
            items=[
                ChangelogItem(field="summary", from_string="a", to_string="b"),
                ChangelogItem(field="labels", from_string="", to_string="lifecycle-stale"),
            ]
        )
        assert last_update_added_stale_label(make_issue(changelog=[history]), "lifecycle-stale")

    def test_empty_changelog(self) -> None:
        assert not last_update_added_stale_label(make_issue(), "lifecycle-stale")
