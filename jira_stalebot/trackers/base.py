"""Abstract base class for the issue tracker stalebot operates on."""

from abc import ABC, abstractmethod

from jira_stalebot.models import SearchPage, Transition


class IssueTracker(ABC):
    @abstractmethod
    def search(self, jql: str, start_at: int, max_results: int) -> SearchPage: ...

    @abstractmethod
    def add_comment(self, issue_id: str, body: str) -> None: ...

    @abstractmethod
    def update_labels(self, issue_id: str, add: str | None = None, remove: str | None = None) -> None: ...

    @abstractmethod
    def get_transitions(self, issue_id: str) -> list[Transition]: ...

    @abstractmethod
    def do_transition(self, issue_id: str, transition_id: str) -> None: ...
