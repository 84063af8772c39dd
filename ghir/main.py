"""ghir CLI: drives the issue controller against the local state file."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

import httpx
import typer
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from ghir.logging import configure_logging
from ghir.models import DEFAULT_LOCK_REASON, IssueRecord, IssueSpec
from ghir.providers.base import GitHubAPIError, IssuesProvider
from ghir.providers.github import GitHubProvider
from ghir.resource import IdentityConflictError, create_issue, delete_issue, import_issue, read_issue, update_issue
from ghir.settings import GhirSettings, get_settings
from ghir.state import get_record, load_records, remove_record, save_record

app = typer.Typer(help="ghir: keep declared GitHub issues in sync with GitHub", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Profile name from ~/.config/ghir/config.toml"),
]
NameArg = Annotated[str, typer.Argument(help="Resource name in the state file")]
LabelOpt = Annotated[list[str] | None, typer.Option("--label", "-l", help="Label (repeatable)")]
AssigneeOpt = Annotated[list[str] | None, typer.Option("--assignee", "-a", help="Assignee login (repeatable)")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_provider(settings: GhirSettings) -> IssuesProvider:
    return GitHubProvider(settings)


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Turn API and validation failures into a red message and exit code 1."""
    try:
        yield
    except (GitHubAPIError, IdentityConflictError, ValueError, httpx.HTTPError) as exc:
        rprint(f"[red]error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _tracked(settings: GhirSettings, name: str) -> IssueRecord:
    record = get_record(settings.state_file, name)
    if record is None:
        rprint(f"[red]'{name}' is not tracked in {settings.state_file}[/red]")
        raise typer.Exit(1)
    return record


def _untracked(settings: GhirSettings, name: str) -> None:
    if get_record(settings.state_file, name) is not None:
        rprint(f"[red]'{name}' is already tracked in {settings.state_file}[/red]")
        raise typer.Exit(1)


def _drop_vanished(settings: GhirSettings, name: str, record: IssueRecord) -> None:
    remove_record(settings.state_file, name)
    rprint(f"[yellow]{record.import_id} no longer exists in GitHub; removed '{name}' from state[/yellow]")


def _render_record(name: str, record: IssueRecord) -> None:
    table = Table(title=f"{name}: {record.import_id}")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("ID", record.id)
    table.add_row("Title", escape(record.title))
    table.add_row("State", record.state)
    table.add_row("Labels", ", ".join(record.labels) if record.labels else "none")
    table.add_row("Assignees", ", ".join(record.assignees) if record.assignees else "none")
    table.add_row("Milestone", str(record.milestone_number) if record.milestone_number else "none")
    table.add_row("Issue ID", str(record.issue_id))
    table.add_row("ETag", record.etag or "[dim](none)[/dim]")
    table.add_row("Lock reason", escape(record.lock_reason))
    table.add_row("Body", escape(record.body) or "_No body._")

    rprint(table)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log every GitHub API call")] = False,
) -> None:
    configure_logging(verbose=verbose)


@app.command("create")
def create(
    name: NameArg,
    owner: Annotated[str, typer.Option("--owner", help="Repository owner")],
    repo: Annotated[str, typer.Option("--repo", help="Repository name")],
    title: Annotated[str, typer.Option("--title", help="Issue title")],
    body: Annotated[str, typer.Option("--body", help="Issue body")],
    label: LabelOpt = None,
    assignee: AssigneeOpt = None,
    milestone: Annotated[int, typer.Option("--milestone", min=0, help="Milestone number, 0 for none")] = 0,
    lock_reason: Annotated[str, typer.Option("--lock-reason", help="Reason used when locking")] = DEFAULT_LOCK_REASON,
    profile: ProfileOpt = None,
) -> None:
    """Open a new issue and start tracking it."""
    settings = get_settings(profile=profile)
    _untracked(settings, name)

    with _reported_errors():
        desired = IssueSpec(
            owner=owner,
            repository=repo,
            title=title,
            body=body,
            labels=label or [],
            assignees=assignee or [],
            milestone_number=milestone,
            lock_reason=lock_reason,
        )
        record = create_issue(
            get_provider(settings),
            desired,
            checkpoint=lambda created: save_record(settings.state_file, name, created),
            timeout=settings.timeout,
        )

    save_record(settings.state_file, name, record)
    rprint(f"[green]✓[/green] [bold]{record.import_id}[/bold] {escape(record.title)}")


@app.command("refresh")
def refresh(name: NameArg, profile: ProfileOpt = None) -> None:
    """Re-read a tracked issue from GitHub."""
    settings = get_settings(profile=profile)
    record = _tracked(settings, name)

    with _reported_errors():
        refreshed = read_issue(get_provider(settings), record, timeout=settings.timeout)

    if not refreshed.exists:
        _drop_vanished(settings, name, record)
        return
    save_record(settings.state_file, name, refreshed)
    _render_record(name, refreshed)


@app.command("update")
def update(
    name: NameArg,
    title: Annotated[str | None, typer.Option("--title", help="New title")] = None,
    body: Annotated[str | None, typer.Option("--body", help="New body")] = None,
    state: Annotated[str | None, typer.Option("--state", help="open or closed")] = None,
    label: LabelOpt = None,
    clear_labels: Annotated[bool, typer.Option("--clear-labels", help="Remove every label")] = False,
    assignee: AssigneeOpt = None,
    clear_assignees: Annotated[bool, typer.Option("--clear-assignees", help="Remove every assignee")] = False,
    milestone: Annotated[int | None, typer.Option("--milestone", min=0, help="Milestone number, 0 for none")] = None,
    lock_reason: Annotated[str | None, typer.Option("--lock-reason", help="Reason used when locking")] = None,
    profile: ProfileOpt = None,
) -> None:
    """Push changed fields of a tracked issue to GitHub.

    Options left out keep their tracked value. Labels and assignees given here
    replace the whole list on GitHub.
    """
    settings = get_settings(profile=profile)
    record = _tracked(settings, name)

    changes: dict = {
        key: value
        for key, value in {
            "title": title,
            "body": body,
            "state": state,
            "milestone_number": milestone,
            "lock_reason": lock_reason,
        }.items()
        if value is not None
    }
    if label:
        changes["labels"] = label
    elif clear_labels:
        changes["labels"] = []
    if assignee:
        changes["assignees"] = assignee
    elif clear_assignees:
        changes["assignees"] = []

    with _reported_errors():
        desired = IssueSpec(**{**record.model_dump(include=set(IssueSpec.model_fields)), **changes})
        updated = update_issue(get_provider(settings), record, desired, timeout=settings.timeout)

    if not updated.exists:
        _drop_vanished(settings, name, record)
        return
    save_record(settings.state_file, name, updated)
    rprint(f"[green]✓[/green] Updated [bold]{updated.import_id}[/bold] {escape(updated.title)}")


@app.command("lock")
def lock(name: NameArg, profile: ProfileOpt = None) -> None:
    """Lock a tracked issue on GitHub and stop tracking it. The issue itself stays."""
    settings = get_settings(profile=profile)
    record = _tracked(settings, name)

    with _reported_errors():
        delete_issue(get_provider(settings), record, timeout=settings.timeout)

    remove_record(settings.state_file, name)
    rprint(f"[green]✓[/green] Locked [bold]{record.import_id}[/bold] ({escape(record.lock_reason)})")


@app.command("import")
def import_cmd(
    name: NameArg,
    import_id: Annotated[str, typer.Argument(help="OWNER/REPOSITORY/NUMBER")],
    profile: ProfileOpt = None,
) -> None:
    """Start tracking an issue that already exists on GitHub."""
    settings = get_settings(profile=profile)
    _untracked(settings, name)

    with _reported_errors():
        record = import_issue(import_id)
        record = read_issue(get_provider(settings), record, new=True, timeout=settings.timeout)

    if not record.exists:
        rprint(f"[red]{import_id} does not exist in GitHub[/red]")
        raise typer.Exit(1)
    save_record(settings.state_file, name, record)
    _render_record(name, record)


@app.command("show")
def show(name: NameArg, profile: ProfileOpt = None) -> None:
    """Show the tracked state of an issue (no API call)."""
    settings = get_settings(profile=profile)
    _render_record(name, _tracked(settings, name))


@app.command("list")
def list_cmd(profile: ProfileOpt = None) -> None:
    """List tracked issues."""
    settings = get_settings(profile=profile)
    records = load_records(settings.state_file)

    table = Table(title=f"Tracked issues ({settings.state_file})")
    table.add_column("Name", style="cyan")
    table.add_column("Issue")
    table.add_column("State")
    table.add_column("Title")
    table.add_column("ID", style="dim")

    for name, record in records.items():
        table.add_row(name, record.import_id, record.state, escape(record.title), record.id)

    rprint(table)


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(profile=profile)

    def mask(val: str | None, prefix: str = "") -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"{prefix}...{val[-5:]}"

    table = Table(title="ghir Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_profile", settings.default_profile or "[dim](not set)[/dim]")
    table.add_row(
        "github_token",
        mask(
            settings.github_token.get_secret_value() if settings.github_token else None,
            prefix="ghp_",
        ),
    )
    table.add_row("github_auth", settings.github_auth)
    table.add_row("api_url", settings.api_url)
    table.add_row("timeout", f"{settings.timeout:g}s")
    table.add_row("state_file", str(settings.state_file))

    rprint(table)
