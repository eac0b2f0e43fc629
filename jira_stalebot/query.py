"""JQL for the issues stalebot should look at."""

from jira_stalebot.settings import StalebotConfig


def eligible_issues_query(config: StalebotConfig) -> str:
    clauses = [
        f"project = {config.project}",
        "statusCategory != Done",
        *_label_clauses(config),
    ]
    return f"{' AND '.join(clauses)} ORDER BY updatedDate DESC"


def _label_clauses(config: StalebotConfig) -> list[str]:
    # exemptLabels wins when both are set; config validation rejects that combination anyway.
    if config.exempt_labels:
        return [f"(labels not in ({','.join(config.exempt_labels)}) OR labels is EMPTY)"]
    return [f"labels = {label}" for label in config.only_labels]
