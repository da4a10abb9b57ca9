"""Tests for scrum_master.pipeline."""

import json
from pathlib import Path

import pytest

from scrum_master.errors import InputError, ParseError, ProviderError
from scrum_master.models import Breakdown, Epic, Priority, Story
from scrum_master.pipeline import Pipeline
from scrum_master.providers.base import BreakdownProvider
from scrum_master.settings import ScrumSettings
from scrum_master.tickets import TicketCreator


class ScriptedAI(BreakdownProvider):
    """Returns queued results (or raises queued exceptions) in call order."""

    def __init__(self, results: list) -> None:
        self.results = list(results)
        self.calls: list[tuple[str, int, int]] = []

    def breakdown(self, content: str, chunk_index: int, total_chunks: int) -> Breakdown:
        self.calls.append((content, chunk_index, total_chunks))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _chunk_result(name: str, *epics: Epic) -> Breakdown:
    return Breakdown(project_name=name, overview=f"{name} overview", epics=list(epics), total_stories=42)


@pytest.fixture
def three_chunk_text() -> str:
    return "".join(f"line {i:02d} of the description\n" for i in range(9))  # 9 lines x 27 chars


def _settings(settings: ScrumSettings, **updates) -> ScrumSettings:
    return settings.model_copy(update=updates)


def test_single_chunk_passes_whole_text(settings, reporter) -> None:
    ai = ScriptedAI([_chunk_result("Tracker", Epic(title="Auth", stories=[Story(title="Login", story_points=3)]))])
    breakdown = Pipeline(settings, ai, reporter).analyze_text("short text")

    assert ai.calls == [("short text", 1, 1)]
    assert breakdown.project_name == "Tracker"
    assert breakdown.epics[0].chunk == 1
    assert (breakdown.total_epics, breakdown.total_stories, breakdown.total_story_points) == (1, 1, 3)
    assert breakdown.processed_chunks == 1


def test_chunks_processed_in_order_and_merged(settings, reporter, three_chunk_text: str) -> None:
    ai = ScriptedAI(
        [
            _chunk_result("First", Epic(title="Auth", priority=Priority.LOW, stories=[Story(title="Login", story_points=3)])),
            _chunk_result("Second", Epic(title="Tasks", stories=[Story(title="Create", story_points=5)])),
            _chunk_result(
                "Third",
                Epic(title=" auth ", priority=Priority.HIGH, stories=[Story(title="login", story_points=3)]),
            ),
        ]
    )
    breakdown = Pipeline(_settings(settings, chunk_size_chars=90), ai, reporter).analyze_text(three_chunk_text)

    assert [(index, total) for _, index, total in ai.calls] == [(1, 3), (2, 3), (3, 3)]
    assert "".join(content for content, _, _ in ai.calls) == three_chunk_text
    assert breakdown.project_name == "First"
    assert breakdown.overview == "First overview"
    assert [e.title for e in breakdown.epics] == ["Auth", "Tasks"]
    assert breakdown.epics[0].priority == Priority.HIGH
    assert breakdown.epics[0].chunk == 1
    assert breakdown.epics[1].chunk == 2
    # upstream total_stories=42 is ignored; duplicate Login collapsed
    assert (breakdown.total_epics, breakdown.total_stories, breakdown.total_story_points) == (2, 2, 8)
    assert breakdown.processed_chunks == 3


def test_retries_then_succeeds(settings, reporter) -> None:
    sleeps: list[float] = []
    ai = ScriptedAI([ParseError("not json"), ProviderError("503"), _chunk_result("Ok", Epic(title="E"))])
    pipeline = Pipeline(_settings(settings, retry_delay_seconds=1.5), ai, reporter, sleep=sleeps.append)

    breakdown = pipeline.analyze_text("text")

    assert breakdown.project_name == "Ok"
    assert len(ai.calls) == 3
    assert sleeps == [1.5, 1.5]
    assert len(reporter.messages("warn")) == 2


def test_chunk_failure_aborts_run(settings, reporter, three_chunk_text: str) -> None:
    ai = ScriptedAI([_chunk_result("First", Epic(title="E"))] + [ProviderError("overloaded")] * 3)
    pipeline = Pipeline(_settings(settings, chunk_size_chars=90), ai, reporter, sleep=lambda _: None)

    with pytest.raises(ProviderError, match="chunk 2/3") as info:
        pipeline.analyze_text(three_chunk_text)
    assert "overloaded" in str(info.value)
    assert len(ai.calls) == 4  # chunk 3 never started


def test_unreadable_input_is_input_error(settings, reporter, tmp_path: Path) -> None:
    with pytest.raises(InputError):
        Pipeline(settings, ScriptedAI([]), reporter).analyze_file(tmp_path / "missing.md")


def test_intermediate_chunk_files_written(settings, reporter, three_chunk_text: str) -> None:
    ai = ScriptedAI([_chunk_result(str(i), Epic(title=f"E{i}")) for i in range(3)])
    s = _settings(settings, chunk_size_chars=90, save_intermediate=True)
    Pipeline(s, ai, reporter).analyze_text(three_chunk_text)

    files = sorted(s.output_dir.glob("chunk-*.json"))
    assert len(files) == 3
    first = json.loads(files[0].read_text())
    assert first["chunk_index"] == 1
    assert first["epics"][0]["chunk"] == 1


def test_run_dry_run_never_touches_tracker(settings, reporter, tracker, tmp_path: Path) -> None:
    source = tmp_path / "project.md"
    source.write_text("Build a task tracker\n")
    ai = ScriptedAI([_chunk_result("Tracker", Epic(title="Auth", stories=[Story(title="Login")]))])

    breakdown, report = Pipeline(settings, ai, reporter).run(source)

    assert report is None
    assert breakdown.total_stories == 1
    assert tracker.requests == []


def test_run_with_creator_files_tickets(settings, reporter, tracker, tmp_path: Path) -> None:
    source = tmp_path / "project.md"
    source.write_text("Build a task tracker\n")
    ai = ScriptedAI([_chunk_result("Tracker", Epic(title="Auth", stories=[Story(title="Login")]))])
    creator = TicketCreator(tracker, "PROJ", reporter, sleep=lambda _: None)

    _, report = Pipeline(settings, ai, reporter).run(source, creator)

    assert report is not None and report.succeeded
    assert [r.summary for r in tracker.created] == ["Auth", "Login"]


def test_successful_chunks_are_paced(settings, reporter, three_chunk_text: str) -> None:
    sleeps: list[float] = []
    ai = ScriptedAI([_chunk_result(str(i), Epic(title=f"E{i}")) for i in range(3)])
    s = _settings(settings, chunk_size_chars=90, retry_delay_seconds=5.0)

    Pipeline(s, ai, reporter, sleep=sleeps.append).analyze_text(three_chunk_text)

    assert sleeps == [5.0, 5.0]  # between chunks, not after the last


def test_run_records_input_size(settings, reporter, tmp_path: Path) -> None:
    source = tmp_path / "project.md"
    source.write_text("Build a task tracker\n")
    ai = ScriptedAI([_chunk_result("Tracker", Epic(title="Auth"))])

    breakdown, _ = Pipeline(settings, ai, reporter).run(source)

    assert breakdown.input_file_size == len("Build a task tracker\n")


def test_run_review_can_stop_before_creation(settings, reporter, tracker, tmp_path: Path) -> None:
    source = tmp_path / "project.md"
    source.write_text("Build a task tracker\n")
    ai = ScriptedAI([_chunk_result("Tracker", Epic(title="Auth", stories=[Story(title="Login")]))])
    reviewed: list[Breakdown] = []

    def review(breakdown: Breakdown) -> bool:
        reviewed.append(breakdown)
        return False

    creator = TicketCreator(tracker, "PROJ", reporter, sleep=lambda _: None)
    breakdown, report = Pipeline(settings, ai, reporter).run(source, creator, review=review)

    assert reviewed == [breakdown]
    assert report is None
    assert tracker.requests == []
