"""Jira REST API v2 tracker provider."""

import logging

import httpx

from scrum_master.errors import TrackerError
from scrum_master.models import CreatedIssue, IssueKind, IssueRequest, Project
from scrum_master.providers.base import TrackerProvider
from scrum_master.settings import ScrumSettings

logger = logging.getLogger(__name__)

API_PREFIX = "/rest/api/2"


def issue_payload(request: IssueRequest) -> dict:
    """Build the create-issue body. Epics never get a parent."""
    fields: dict = {
        "project": {"key": request.project_key},
        "summary": request.summary,
        "description": request.description,
        "issuetype": {"name": request.issue_kind.value},
    }
    if request.parent_key and request.issue_kind != IssueKind.EPIC:
        fields["parent"] = {"key": request.parent_key}
    return {"fields": fields}


class JiraProvider(TrackerProvider):
    def __init__(self, settings: ScrumSettings) -> None:
        if not (settings.jira_base_url and settings.jira_username and settings.jira_api_token):
            raise RuntimeError("jira_base_url, jira_username and jira_api_token are required")
        self._base_url = settings.jira_base_url.rstrip("/")
        self._auth = (settings.jira_username, settings.jira_api_token.get_secret_value())
        self._timeout = settings.jira_timeout_seconds

    def _request(self, method: str, path: str, body: dict | None = None, expected: int = 200) -> dict | list:
        url = f"{self._base_url}{API_PREFIX}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = httpx.request(
                method,
                url,
                json=body,
                auth=self._auth,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise TrackerError(f"Jira request {method} {path} failed: {exc}") from exc
        if response.status_code != expected:
            raise TrackerError(f"Jira API {method} {path} failed", status_code=response.status_code, body=response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise TrackerError(f"Jira API {method} {path} returned invalid JSON: {exc}") from exc

    def list_projects(self) -> list[Project]:
        nodes = self._request("GET", "/project")
        return [Project(key=n["key"], name=n.get("name", "")) for n in nodes]  # type: ignore[union-attr]

    def verify_project_access(self, project_key: str) -> Project:
        node = self._request("GET", f"/project/{project_key}")
        return Project(key=node["key"], name=node.get("name", ""))  # type: ignore[call-overload,union-attr]

    def create_issue(self, request: IssueRequest) -> CreatedIssue:
        node = self._request("POST", "/issue", body=issue_payload(request), expected=201)
        return CreatedIssue(id=str(node["id"]), key=node["key"])  # type: ignore[call-overload]
