"""GitHub REST API v3 issues provider."""

import logging
import subprocess

import httpx

from ghir.models import IssueRequest, RemoteIssue
from ghir.providers.base import GitHubAPIError, IssueNotFoundError, IssuesProvider
from ghir.settings import GhirSettings

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text


class GitHubProvider(IssuesProvider):
    def __init__(self, settings: GhirSettings) -> None:
        self._token = self._resolve_token(settings)
        self._base_url = settings.api_url.rstrip("/")
        self._timeout = settings.timeout
        self._headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _resolve_token(self, settings: GhirSettings) -> str:
        if settings.github_auth == "gh-cli":
            result = subprocess.run(
                ["gh", "auth", "token"],
                capture_output=True,
                text=True,
            )
            if result.returncode != 0:
                raise RuntimeError("gh auth token failed. Run: gh auth login")
            return result.stdout.strip()
        if settings.github_token:
            return settings.github_token.get_secret_value()
        raise RuntimeError("No GitHub credentials. Set GHIR_GITHUB_TOKEN or github_token in your config profile.")

    def _request(
        self,
        method: str,
        path: str,
        *,
        body: dict | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        response = httpx.request(
            method,
            f"{self._base_url}{path}",
            headers={**self._headers, **(headers or {})},
            json=body,
            timeout=timeout if timeout is not None else self._timeout,
            # transferred issues and renamed repositories answer 301/307
            follow_redirects=True,
        )
        if response.status_code == 401:
            raise GitHubAPIError(
                "GitHub API returned 401. Check the github_token of the active profile (ghir config-show).",
                status=401,
            )
        if response.status_code == 404:
            raise IssueNotFoundError(f"{method} {path}: {_error_message(response)}", status=404)
        if response.status_code >= 400:
            raise GitHubAPIError(
                f"{method} {path} failed with {response.status_code}: {_error_message(response)}",
                status=response.status_code,
            )
        if 300 <= response.status_code < 400 and response.status_code != 304:
            raise GitHubAPIError(
                f"{method} {path} answered {response.status_code} without a followable Location",
                status=response.status_code,
            )
        return response

    def _issue_from_response(self, response: httpx.Response) -> RemoteIssue:
        return RemoteIssue.model_validate({**response.json(), "etag": response.headers.get("ETag")})

    def create_issue(
        self,
        owner: str,
        repo: str,
        request: IssueRequest,
        timeout: float | None = None,
    ) -> RemoteIssue:
        response = self._request("POST", f"/repos/{owner}/{repo}/issues", body=request.payload(), timeout=timeout)
        return self._issue_from_response(response)

    def get_issue(
        self,
        owner: str,
        repo: str,
        number: int,
        etag: str | None = None,
        timeout: float | None = None,
    ) -> RemoteIssue | None:
        headers = {"If-None-Match": etag} if etag else None
        response = self._request("GET", f"/repos/{owner}/{repo}/issues/{number}", headers=headers, timeout=timeout)
        if response.status_code == 304:
            logger.info("Issue %s/%s#%d not modified since %s", owner, repo, number, etag)
            return None
        return self._issue_from_response(response)

    def edit_issue(
        self,
        owner: str,
        repo: str,
        number: int,
        request: IssueRequest,
        timeout: float | None = None,
    ) -> RemoteIssue:
        response = self._request(
            "PATCH", f"/repos/{owner}/{repo}/issues/{number}", body=request.payload(), timeout=timeout
        )
        return self._issue_from_response(response)

    def lock_issue(
        self,
        owner: str,
        repo: str,
        number: int,
        reason: str,
        timeout: float | None = None,
    ) -> None:
        body = {"lock_reason": reason} if reason else None
        self._request("PUT", f"/repos/{owner}/{repo}/issues/{number}/lock", body=body, timeout=timeout)
