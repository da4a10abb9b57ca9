"""Shared pydantic models — the contract between providers, the pipeline and main.py."""

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def _coerce_priority(value: object) -> object:
    # Model output is loose about casing and sometimes omits priority entirely
    if isinstance(value, Priority) or value is None:
        return value if value is not None else Priority.MEDIUM
    if isinstance(value, str):
        for member in Priority:
            if member.value.lower() == value.strip().lower():
                return member
        return Priority.MEDIUM
    return value


def _blank_if_none(value: object) -> object:
    return "" if value is None else value


def _zero_if_none(value: object) -> object:
    return 0 if value is None else value


class Story(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    priority: Priority = Priority.MEDIUM
    story_points: int = 0
    acceptance_criteria: list[str] = []
    dependencies: list[str] = []

    normalize_priority = field_validator("priority", mode="before")(_coerce_priority)
    blank_description = field_validator("description", mode="before")(_blank_if_none)
    zero_points = field_validator("story_points", mode="before")(_zero_if_none)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("story title must not be blank")
        return value

    @field_validator("acceptance_criteria", "dependencies", mode="before")
    @classmethod
    def none_is_empty(cls, value: object) -> object:
        return [] if value is None else value


class Epic(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    priority: Priority = Priority.MEDIUM
    chunk: int | None = None  # 1-based source chunk, informational only
    stories: list[Story] = []

    normalize_priority = field_validator("priority", mode="before")(_coerce_priority)
    blank_description = field_validator("description", mode="before")(_blank_if_none)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("epic title must not be blank")
        return value

    @field_validator("stories", mode="before")
    @classmethod
    def none_is_empty(cls, value: object) -> object:
        return [] if value is None else value


class Breakdown(BaseModel):
    """The full epic/story tree for one project description."""

    project_name: str = ""
    overview: str = ""
    epics: list[Epic] = []
    total_epics: int = 0
    total_stories: int = 0
    total_story_points: int = 0
    # older analysis files call this total_chunks
    processed_chunks: int = Field(default=0, validation_alias=AliasChoices("processed_chunks", "total_chunks"))
    input_file_size: int = 0

    blank_text = field_validator("project_name", "overview", mode="before")(_blank_if_none)
    zero_counts = field_validator(
        "total_epics", "total_stories", "total_story_points", "processed_chunks", "input_file_size", mode="before"
    )(_zero_if_none)

    @field_validator("epics", mode="before")
    @classmethod
    def none_is_empty(cls, value: object) -> object:
        return [] if value is None else value

    def with_totals(self) -> "Breakdown":
        """Return a copy whose counters are recomputed from ``epics``."""
        stories = [story for epic in self.epics for story in epic.stories]
        return self.model_copy(
            update={
                "total_epics": len(self.epics),
                "total_stories": len(stories),
                "total_story_points": sum(story.story_points for story in stories),
            }
        )


class AnalysisResult(BaseModel):
    """On-disk wrapper for a saved analysis."""

    project_breakdown: Breakdown
    analysis_time: datetime
    processing_mode: str


class Chunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    index: int  # 1-based
    total: int


class ChunkAnalysis(BaseModel):
    """Intermediate per-chunk result written when save_intermediate is on."""

    chunk_index: int
    content: str
    epics: list[Epic]


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str


class IssueKind(str, Enum):
    EPIC = "Epic"
    TASK = "Task"


class IssueRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_key: str
    summary: str
    description: str
    issue_kind: IssueKind
    parent_key: str | None = None


class CreatedIssue(BaseModel):
    """Returned by create_issue — minimal, just what the caller needs."""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str


class CreationState(str, Enum):
    IDLE = "idle"
    CONNECTION_VERIFIED = "connection_verified"
    CREATING_EPICS = "creating_epics"
    DONE = "done"
    FAILED = "failed"


class StoryFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    epic_title: str
    story_title: str
    error: str


class TicketRunReport(BaseModel):
    state: CreationState = CreationState.IDLE
    epic_keys: dict[str, str] = {}  # normalized epic title -> tracker key
    story_keys: list[str] = []
    story_failures: list[StoryFailure] = []
    failed_epic: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == CreationState.DONE

    @property
    def created_count(self) -> int:
        return len(self.epic_keys) + len(self.story_keys)
