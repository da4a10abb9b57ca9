"""Two-phase ticket creation: each epic, then that epic's stories."""

import logging
import time
from collections.abc import Callable

from scrum_master.errors import (
    RetryError,
    TrackerConnectivityError,
    TrackerEpicError,
    TrackerError,
    TrackerStoryError,
)
from scrum_master.merge import normalize_title
from scrum_master.models import (
    Breakdown,
    CreatedIssue,
    CreationState,
    Epic,
    IssueKind,
    IssueRequest,
    Story,
    StoryFailure,
    TicketRunReport,
)
from scrum_master.providers.base import TrackerProvider
from scrum_master.reporting import Reporter
from scrum_master.retry import with_retry

logger = logging.getLogger(__name__)

# Fixed for issue creation regardless of the AI retry settings
CREATE_ATTEMPTS = 3
CREATE_RETRY_DELAY = 2.0

STORY_PAUSE = 0.1
EPIC_PAUSE = 0.5


def story_description(story: Story) -> str:
    """Story description with acceptance criteria and dependencies appended."""
    lines = [story.description, "", "*Acceptance Criteria:*"]
    lines += [f"• {criterion}" for criterion in story.acceptance_criteria]
    description = "\n".join(lines) + "\n"
    if story.dependencies:
        description += "\n*Dependencies:* " + ", ".join(story.dependencies)
    return description


class TicketCreator:
    """Drives a tracker through pre-check, epic creation and story creation.

    An epic failure stops the run (nothing is rolled back); a story failure is
    recorded and skipped. One instance serves one run at a time.
    """

    def __init__(
        self,
        tracker: TrackerProvider,
        project_key: str,
        reporter: Reporter,
        *,
        sleep: Callable[[float], None] = time.sleep,
        story_pause: float = STORY_PAUSE,
        epic_pause: float = EPIC_PAUSE,
    ) -> None:
        self._tracker = tracker
        self._project_key = project_key
        self._reporter = reporter
        self._sleep = sleep
        self._story_pause = story_pause
        self._epic_pause = epic_pause
        self.report = TicketRunReport()

    def verify_connection(self) -> None:
        """Check credentials and that the configured project is accessible."""
        self._reporter.info("Testing tracker authentication and listing accessible projects...")
        try:
            projects = self._tracker.list_projects()
        except TrackerError as exc:
            self.report.state = CreationState.FAILED
            raise TrackerConnectivityError(
                f"authentication failed: {exc}", status_code=exc.status_code, body=exc.body
            ) from exc

        self._reporter.success(f"Authentication successful! Found {len(projects)} accessible projects")
        for project in projects:
            marker = "*" if project.key == self._project_key else "-"
            self._reporter.info(f"  {marker} {project.key} ({project.name})")

        if not any(project.key == self._project_key for project in projects):
            self.report.state = CreationState.FAILED
            raise TrackerConnectivityError(f"project key '{self._project_key}' not found in accessible projects")

        try:
            self._tracker.verify_project_access(self._project_key)
        except TrackerError as exc:
            self.report.state = CreationState.FAILED
            raise TrackerConnectivityError(
                f"failed to access project '{self._project_key}': {exc}", status_code=exc.status_code, body=exc.body
            ) from exc

        self.report.state = CreationState.CONNECTION_VERIFIED
        self._reporter.success(f"Successfully accessed project '{self._project_key}'")

    def _create(self, summary: str, description: str, kind: IssueKind, parent_key: str | None) -> CreatedIssue:
        request = IssueRequest(
            project_key=self._project_key,
            summary=summary,
            description=description,
            issue_kind=kind,
            parent_key=parent_key if kind != IssueKind.EPIC else None,
        )

        def on_failure(attempt: int, exc: Exception) -> None:
            self._reporter.warn(f"Attempt {attempt} failed: {exc}")

        return with_retry(
            lambda: self._tracker.create_issue(request),
            CREATE_ATTEMPTS,
            CREATE_RETRY_DELAY,
            sleep=self._sleep,
            on_failure=on_failure,
        )

    def _create_epic(self, epic: Epic) -> str:
        try:
            created = self._create(epic.title, epic.description, IssueKind.EPIC, None)
        except RetryError as exc:
            raise TrackerEpicError(f"failed to create epic '{epic.title}': {exc}") from exc
        return created.key

    def _create_story(self, story: Story, epic: Epic, epic_key: str) -> None:
        try:
            created = self._create(story.title, story_description(story), IssueKind.TASK, epic_key)
        except RetryError as exc:
            error = TrackerStoryError(f"failed to create story '{story.title}': {exc}")
            logger.debug("story under %s skipped", epic_key, exc_info=exc)
            self.report.story_failures.append(
                StoryFailure(epic_title=epic.title, story_title=story.title, error=str(error))
            )
            self._reporter.warn(str(error))
            return
        self.report.story_keys.append(created.key)
        self._reporter.success(f"Created story: {created.key}")

    def create_tickets(self, breakdown: Breakdown) -> TicketRunReport:
        """Verify the connection, then create every epic and its stories.

        Raises TrackerConnectivityError or TrackerEpicError; the report on
        ``self.report`` reflects whatever was created before the failure.
        """
        self.report = TicketRunReport()
        self.verify_connection()
        self.report.state = CreationState.CREATING_EPICS

        for i, epic in enumerate(breakdown.epics, start=1):
            self._reporter.progress(i, len(breakdown.epics), f"Creating epic: {epic.title}")
            try:
                epic_key = self._create_epic(epic)
            except TrackerEpicError:
                self.report.failed_epic = epic.title
                self._reporter.error(f"Epic '{epic.title}' could not be created; stopping")
                raise
            self.report.epic_keys[normalize_title(epic.title)] = epic_key
            self._reporter.success(f"Created epic: {epic_key}")

            for j, story in enumerate(epic.stories, start=1):
                self._reporter.progress(j, len(epic.stories), f"Creating story: {story.title}")
                self._create_story(story, epic, epic_key)
                if j < len(epic.stories):
                    self._sleep(self._story_pause)

            if i < len(breakdown.epics):
                self._sleep(self._epic_pause)

        self.report.state = CreationState.DONE
        if self.report.story_failures:
            self._reporter.warn(f"{len(self.report.story_failures)} story ticket(s) could not be created")
        self._reporter.success(f"Tracker tickets created: {self.report.created_count}")
        return self.report
