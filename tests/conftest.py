"""Shared test fixtures."""

import os

import pytest

from scrum_master.errors import TrackerError
from scrum_master.models import Breakdown, CreatedIssue, Epic, IssueKind, IssueRequest, Priority, Project, Story
from scrum_master.providers.base import TrackerProvider
from scrum_master.reporting import Reporter
from scrum_master.settings import ScrumSettings


class FakeTracker(TrackerProvider):
    """In-memory tracker. ``fail_summaries`` always fail; keys are PROJ-1, PROJ-2, ..."""

    def __init__(self, projects: list[Project] | None = None, fail_summaries: set[str] | None = None) -> None:
        self.projects = projects if projects is not None else [Project(key="PROJ", name="Project")]
        self.fail_summaries = fail_summaries or set()
        self.requests: list[IssueRequest] = []
        self.created: list[IssueRequest] = []

    def list_projects(self) -> list[Project]:
        return self.projects

    def verify_project_access(self, project_key: str) -> Project:
        for project in self.projects:
            if project.key == project_key:
                return project
        raise TrackerError("no access", status_code=404, body="not found")

    def create_issue(self, request: IssueRequest) -> CreatedIssue:
        self.requests.append(request)
        if request.summary in self.fail_summaries:
            raise TrackerError("create failed", status_code=400, body='{"errors":{"summary":"bad"}}')
        self.created.append(request)
        n = len(self.created)
        return CreatedIssue(id=str(1000 + n), key=f"PROJ-{n}")

    def kinds(self) -> list[IssueKind]:
        return [request.issue_kind for request in self.created]



class RecordingReporter(Reporter):
    """Keeps (level, message) pairs in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def title(self, message: str) -> None:
        self.events.append(("title", message))

    def info(self, message: str) -> None:
        self.events.append(("info", message))

    def success(self, message: str) -> None:
        self.events.append(("success", message))

    def warn(self, message: str) -> None:
        self.events.append(("warn", message))

    def error(self, message: str) -> None:
        self.events.append(("error", message))

    def messages(self, level: str) -> list[str]:
        return [message for kind, message in self.events if kind == level]

@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Env vars beat constructor values, so clear any the developer has set; keep .env out of reach."""
    for name in [k for k in os.environ if k.startswith("SCRUM_")]:
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def settings(tmp_path) -> ScrumSettings:
    return ScrumSettings(  # type: ignore[call-arg]
        anthropic_api_key="sk-ant-test",
        jira_base_url="https://example.atlassian.net",
        jira_username="pm@example.com",
        jira_api_token="jira-token",
        jira_project_key="PROJ",
        retry_count=3,
        retry_delay_seconds=0,
        output_dir=tmp_path / "output",
        save_intermediate=False,
    )


@pytest.fixture
def login_story() -> Story:
    return Story(
        title="Login page",
        description="As a user, I want to log in so that I can see my projects.",
        priority=Priority.HIGH,
        story_points=3,
        acceptance_criteria=["Valid credentials log in", "Invalid credentials show an error"],
        dependencies=["Session service"],
    )


@pytest.fixture
def sample_breakdown(login_story: Story) -> Breakdown:
    return Breakdown(
        project_name="Task Tracker",
        overview="A small task tracking app.",
        epics=[
            Epic(
                title="Authentication",
                description="Users can sign in and out.",
                priority=Priority.HIGH,
                chunk=1,
                stories=[
                    login_story,
                    Story(title="Logout", description="As a user, I want to log out.", story_points=1),
                ],
            ),
            Epic(
                title="Tasks",
                description="Create and complete tasks.",
                priority=Priority.MEDIUM,
                chunk=1,
                stories=[Story(title="Create task", description="As a user, I want to add tasks.", story_points=5)],
            ),
        ],
        processed_chunks=1,
    ).with_totals()


@pytest.fixture
def no_sleep() -> list[float]:
    """Collects requested sleeps instead of sleeping."""
    return []
