"""Abstract issue API the controller is written against."""

from abc import ABC, abstractmethod

from ghir.models import IssueRequest, RemoteIssue


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API answers with an error status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class IssueNotFoundError(GitHubAPIError):
    """The issue does not exist (HTTP 404)."""


class IssuesProvider(ABC):
    @abstractmethod
    def create_issue(
        self,
        owner: str,
        repo: str,
        request: IssueRequest,
        timeout: float | None = None,
    ) -> RemoteIssue: ...

    @abstractmethod
    def get_issue(
        self,
        owner: str,
        repo: str,
        number: int,
        etag: str | None = None,
        timeout: float | None = None,
    ) -> RemoteIssue | None:
        """Fetch one issue. None means the issue still matches etag (304)."""

    @abstractmethod
    def edit_issue(
        self,
        owner: str,
        repo: str,
        number: int,
        request: IssueRequest,
        timeout: float | None = None,
    ) -> RemoteIssue: ...

    @abstractmethod
    def lock_issue(
        self,
        owner: str,
        repo: str,
        number: int,
        reason: str,
        timeout: float | None = None,
    ) -> None: ...
