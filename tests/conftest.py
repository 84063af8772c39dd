"""Shared test fixtures."""

import pytest

from ghir.models import IssueRecord, IssueRequest, IssueSpec, RemoteIssue
from ghir.providers.base import IssueNotFoundError, IssuesProvider


class FakeIssuesProvider(IssuesProvider):
    """In-memory GitHub. Every change bumps the issue's etag."""

    def __init__(self) -> None:
        self.issues: dict[tuple[str, str, int], dict] = {}
        self.calls: list[tuple] = []
        self._next_number = 1

    def _lookup(self, owner: str, repo: str, number: int) -> dict:
        data = self.issues.get((owner, repo, number))
        if data is None:
            raise IssueNotFoundError("Not Found", status=404)
        return data

    def _remote(self, data: dict) -> RemoteIssue:
        return RemoteIssue.model_validate({**data, "etag": f'W/"v{data["version"]}"'})

    def add_issue(self, owner: str, repo: str, number: int, **fields) -> dict:
        data = {
            "id": 5000 + number,
            "node_id": f"I_kwDOnode{number}",
            "number": number,
            "title": "Existing issue",
            "body": "Already on GitHub.",
            "state": "open",
            "labels": [],
            "assignees": [],
            "milestone": None,
            "locked": False,
            "active_lock_reason": None,
            "version": 1,
        }
        data.update(fields)
        self.issues[(owner, repo, number)] = data
        self._next_number = max(self._next_number, number + 1)
        return data

    def create_issue(self, owner, repo, request: IssueRequest, timeout=None) -> RemoteIssue:
        self.calls.append(("create", owner, repo, request))
        number = self._next_number
        data = self.add_issue(
            owner,
            repo,
            number,
            title=request.title,
            body=request.body,
            labels=[{"name": name} for name in request.labels],
            assignees=[{"login": login} for login in request.assignees],
            milestone={"number": request.milestone} if request.milestone else None,
        )
        return self._remote(data)

    def get_issue(self, owner, repo, number, etag=None, timeout=None) -> RemoteIssue:
        self.calls.append(("get", owner, repo, number, etag))
        return self._remote(self._lookup(owner, repo, number))

    def edit_issue(self, owner, repo, number, request: IssueRequest, timeout=None) -> RemoteIssue:
        self.calls.append(("edit", owner, repo, number, request))
        data = self._lookup(owner, repo, number)
        data.update(
            title=request.title,
            body=request.body,
            labels=[{"name": name} for name in request.labels],
            assignees=[{"login": login} for login in request.assignees],
            milestone={"number": request.milestone} if request.milestone else None,
        )
        if request.state is not None:
            data["state"] = request.state
        data["version"] += 1
        return self._remote(data)

    def lock_issue(self, owner, repo, number, reason, timeout=None) -> None:
        self.calls.append(("lock", owner, repo, number, reason))
        data = self._lookup(owner, repo, number)
        data.update(locked=True, active_lock_reason=reason)
        data["version"] += 1


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own GHIR_* variables out of the tests."""
    for var in ("GHIR_PROFILE", "GHIR_GITHUB_TOKEN", "GHIR_GITHUB_AUTH", "GHIR_API_URL", "GHIR_TIMEOUT", "GHIR_STATE_FILE"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def provider() -> FakeIssuesProvider:
    return FakeIssuesProvider()


@pytest.fixture
def desired() -> IssueSpec:
    return IssueSpec(
        owner="acme",
        repository="widgets",
        title="T",
        body="B",
        labels=["x", "y"],
        assignees=["alice"],
        milestone_number=3,
    )


@pytest.fixture
def tracked_record() -> IssueRecord:
    return IssueRecord(
        id="I_kwDOnode7",
        owner="acme",
        repository="widgets",
        title="Existing issue",
        body="Already on GitHub.",
        assignees=["alice"],
        node_id="I_kwDOnode7",
        etag='W/"v1"',
        number=7,
        issue_id=5007,
    )
