"""Shared test fixtures."""

import pytest

from jira_stalebot.settings import StalebotConfig


@pytest.fixture
def config() -> StalebotConfig:
    return StalebotConfig(
        jiraBaseURL="https://jira.example.com",
        project="TEST",
        daysUntilStale=90,
        daysUntilClose=30,
        closeStatus="Closed",
    )
