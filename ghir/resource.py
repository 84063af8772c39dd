"""Issue resource controller: maps desired issue state onto GitHub API calls.

Every verb takes the provider explicitly and returns a new IssueRecord; nothing
here keeps state between calls. Delete locks the issue instead of removing it.
"""

import logging
import re
from collections.abc import Callable, Sequence

from ghir.models import IssueRecord, IssueRequest, IssueSpec, RemoteIssue, RemoteLabel, RemoteUser
from ghir.providers.base import IssueNotFoundError, IssuesProvider

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"[+-]?[0-9]+")


class ImportIdFormatError(ValueError):
    """Import ID is not OWNER/REPOSITORY/NUMBER."""


class ImportIdParseError(ValueError):
    """NUMBER segment of an import ID is not an integer."""


class ReplacementRequiredError(ValueError):
    """Owner or repository changed; the issue has to be recreated."""


class IdentityConflictError(RuntimeError):
    """owner/repository/number resolved to a different node than the one tracked."""


def users_to_names(users: Sequence[RemoteUser]) -> list[str]:
    return [user.login or "" for user in users]


def labels_to_names(labels: Sequence[RemoteLabel]) -> list[str]:
    return [label.name or "" for label in labels]


def requires_replacement(record: IssueRecord, desired: IssueSpec) -> bool:
    return record.owner != desired.owner or record.repository != desired.repository


def create_issue(
    provider: IssuesProvider,
    desired: IssueSpec,
    *,
    checkpoint: Callable[[IssueRecord], None] | None = None,
    timeout: float | None = None,
) -> IssueRecord:
    """Open a new issue and return the record read back from GitHub.

    checkpoint receives the record as soon as the issue exists remotely, before
    the follow-up read. If that read fails the checkpointed record is the only
    copy of the new identifier; it is possibly stale and should be read again.
    """
    logger.debug("Creating issue in %s/%s", desired.owner, desired.repository)
    issue = provider.create_issue(
        desired.owner,
        desired.repository,
        IssueRequest.from_spec(desired, with_state=False),
        timeout=timeout,
    )

    record = IssueRecord(
        **{
            **desired.model_dump(),
            "state": issue.state,
            "issue_id": issue.id,
            "number": issue.number,
            "node_id": issue.node_id,
            "id": issue.node_id,
        }
    )
    if checkpoint is not None:
        checkpoint(record)
    return read_issue(provider, record, new=True, timeout=timeout)


def read_issue(
    provider: IssuesProvider,
    record: IssueRecord,
    *,
    new: bool = False,
    timeout: float | None = None,
) -> IssueRecord:
    """Refresh the record from GitHub.

    A record that is not new sends its stored etag; when GitHub answers 304
    the record comes back as it is. If the issue is gone the returned record has an
    empty id and the caller should stop tracking it.
    """
    etag = None if new or not record.etag else record.etag

    logger.debug("Reading issue %s (%s)", record.id, record.import_id)
    try:
        issue = provider.get_issue(record.owner, record.repository, record.number, etag=etag, timeout=timeout)
    except IssueNotFoundError:
        logger.warning("Removing issue %s from state because it no longer exists in GitHub", record.id)
        return record.model_copy(update={"id": ""})

    if issue is None:
        # unchanged since the stored etag, which describes this very record
        return record

    if record.node_id and record.node_id != issue.node_id:
        raise IdentityConflictError(
            f"{record.import_id} now resolves to node {issue.node_id}, tracked node is {record.node_id}"
        )

    return record.model_copy(update=_observed_fields(issue, record))


def _observed_fields(issue: RemoteIssue, record: IssueRecord) -> dict:
    fields = {
        "labels": labels_to_names(issue.labels),
        "assignees": users_to_names(issue.assignees),
        "state": issue.state.lower(),
        "body": issue.body or "",
        "title": issue.title,
        "number": issue.number,
        "issue_id": issue.id,
        "milestone_number": issue.milestone.number if issue.milestone else 0,
        "etag": issue.etag or record.etag,
    }
    if not record.node_id:
        # first read after import: adopt the node id as the identifier
        fields["node_id"] = issue.node_id
        fields["id"] = issue.node_id
    return fields


def update_issue(
    provider: IssuesProvider,
    record: IssueRecord,
    desired: IssueSpec,
    *,
    timeout: float | None = None,
) -> IssueRecord:
    """Send every declared field to GitHub, then read the issue back.

    Labels and assignees replace the remote lists outright.
    """
    if requires_replacement(record, desired):
        raise ReplacementRequiredError(
            f"owner/repository changed from {record.owner}/{record.repository} "
            f"to {desired.owner}/{desired.repository}; the issue must be recreated"
        )

    logger.debug("Updating issue %s (%s)", record.id, record.import_id)
    provider.edit_issue(
        record.owner,
        record.repository,
        record.number,
        IssueRequest.from_spec(desired, with_state=True),
        timeout=timeout,
    )

    updated = record.model_copy(update=desired.model_dump())
    return read_issue(provider, updated, timeout=timeout)


def delete_issue(provider: IssuesProvider, record: IssueRecord, *, timeout: float | None = None) -> None:
    logger.debug("Locking issue %s (%s): %s", record.id, record.import_id, record.lock_reason)
    provider.lock_issue(record.owner, record.repository, record.number, record.lock_reason, timeout=timeout)


def import_issue(import_id: str) -> IssueRecord:
    """Build a record from an OWNER/REPOSITORY/NUMBER string without calling GitHub."""
    parts = import_id.split("/")
    if len(parts) != 3 or not all(parts):
        raise ImportIdFormatError(
            f"Invalid ID format {import_id!r}, must be provided as OWNER/REPOSITORY/NUMBER"
        )
    owner, repository, raw_number = parts
    if not _NUMBER_RE.fullmatch(raw_number):
        raise ImportIdParseError(f"Invalid issue number {raw_number!r} in {import_id!r}")
    number = int(raw_number)

    return IssueRecord(id=f"{owner}/{repository}/{number}", owner=owner, repository=repository, number=number)
