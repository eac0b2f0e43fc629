"""Exception types raised by stalebot components."""


class StalebotError(Exception):
    """Base class for every fatal stalebot failure."""


class ConfigError(StalebotError):
    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        if len(problems) == 1:
            message = problems[0]
        else:
            message = f"multiple errors: {'; '.join(problems)}"
        super().__init__(message)


class CredentialError(StalebotError):
    pass


class JiraError(StalebotError):
    """A Jira REST call failed.

    `status_code` is None for transport failures that never produced a response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransitionNotFoundError(StalebotError):
    pass


class OperationError(StalebotError):
    def __init__(self, operation: str, issue_key: str, cause: Exception) -> None:
        self.operation = operation
        self.issue_key = issue_key
        super().__init__(f"operation {operation!r} failed on issue {issue_key!r}: {cause}")


class RunCancelled(StalebotError):
    pass
