"""Shared pydantic models: the contract between the provider, the controller and main.py."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_LOCK_REASON = "Controlled by Terraform"

IssueState = Literal["open", "closed"]


class IssueSpec(BaseModel):
    """Desired state for one issue, as declared by the user."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    owner: str = Field(min_length=1)
    repository: str = Field(min_length=1)
    title: str = Field(min_length=1)
    body: str
    state: IssueState = "open"
    labels: list[str] = []
    assignees: list[str] = []
    milestone_number: int = Field(default=0, ge=0)  # 0 = no milestone
    lock_reason: str = DEFAULT_LOCK_REASON

    @field_validator("state", mode="before")
    @classmethod
    def lower_state(cls, value: object) -> object:
        # "Open" and "CLOSED" are accepted, stored lower-case
        return value.lower() if isinstance(value, str) else value


class IssueRecord(BaseModel):
    """Tracked local state for one issue: declared fields plus computed ones."""

    model_config = ConfigDict(frozen=True)

    id: str = ""  # node_id, or OWNER/REPOSITORY/NUMBER right after import; "" = gone
    owner: str
    repository: str
    title: str = ""
    body: str = ""
    state: IssueState = "open"
    labels: list[str] = []
    assignees: list[str] = []
    milestone_number: int = 0
    lock_reason: str = DEFAULT_LOCK_REASON

    # computed, never user-supplied
    node_id: str = ""
    etag: str = ""
    number: int = 0
    issue_id: int = 0

    @field_validator("state", mode="before")
    @classmethod
    def lower_state(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @property
    def import_id(self) -> str:
        return f"{self.owner}/{self.repository}/{self.number}"

    @property
    def exists(self) -> bool:
        return bool(self.id)


class RemoteUser(BaseModel):
    login: str | None = None


class RemoteLabel(BaseModel):
    name: str | None = None


class RemoteMilestone(BaseModel):
    number: int
    title: str | None = None


class RemoteIssue(BaseModel):
    """GitHub's representation of an issue (REST v3)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    node_id: str
    number: int
    title: str
    body: str | None = None
    state: str = "open"
    labels: list[RemoteLabel] = []
    assignees: list[RemoteUser] = []
    milestone: RemoteMilestone | None = None
    locked: bool = False
    active_lock_reason: str | None = None
    html_url: str | None = None
    etag: str | None = None  # from the ETag response header, not the body


class IssueRequest(BaseModel):
    """Payload for issue create (POST) and edit (PATCH)."""

    title: str
    body: str
    state: IssueState | None = None  # not sent on create
    assignees: list[str] = []
    labels: list[str] = []
    milestone: int | None = None  # null removes the milestone

    @classmethod
    def from_spec(cls, spec: IssueSpec, *, with_state: bool) -> "IssueRequest":
        return cls(
            title=spec.title,
            body=spec.body,
            state=spec.state if with_state else None,
            assignees=list(spec.assignees),
            labels=list(spec.labels),
            milestone=spec.milestone_number or None,
        )

    def payload(self) -> dict:
        data = self.model_dump()
        if self.state is None:
            del data["state"]
        return data
