"""Abstract base classes for the AI and issue tracker collaborators."""

from abc import ABC, abstractmethod

from scrum_master.models import Breakdown, CreatedIssue, IssueRequest, Project


class BreakdownProvider(ABC):
    @abstractmethod
    def breakdown(self, content: str, chunk_index: int, total_chunks: int) -> Breakdown:
        """Turn one chunk of project text into a breakdown.

        Raises ProviderError (or ParseError) on any failure; callers retry.
        """


class TrackerProvider(ABC):
    @abstractmethod
    def verify_project_access(self, project_key: str) -> Project: ...

    @abstractmethod
    def list_projects(self) -> list[Project]: ...

    @abstractmethod
    def create_issue(self, request: IssueRequest) -> CreatedIssue: ...
