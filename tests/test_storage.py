"""Tests for scrum_master.storage."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from scrum_master.errors import InputError
from scrum_master.models import AnalysisResult, Breakdown
from scrum_master.storage import load_breakdown, read_text, render_summary, save_analysis

NOW = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)


class TestSaveAnalysis:
    def test_writes_json_and_markdown(self, sample_breakdown: Breakdown, tmp_path: Path) -> None:
        analysis_path, summary_path = save_analysis(sample_breakdown, tmp_path / "out", "full", now=NOW)

        assert analysis_path.name == "project-desc-analysis-20250304-050607.json"
        assert summary_path.name == "project-desc-summary-20250304-050607.md"
        data = json.loads(analysis_path.read_text())
        assert data["processing_mode"] == "full"
        assert data["project_breakdown"]["project_name"] == "Task Tracker"
        assert data["project_breakdown"]["epics"][0]["stories"][0]["priority"] == "High"
        assert summary_path.read_text().startswith("# Task Tracker")

    def test_round_trip(self, sample_breakdown: Breakdown, tmp_path: Path) -> None:
        analysis_path, _ = save_analysis(sample_breakdown, tmp_path, "analyze-only", now=NOW)
        assert load_breakdown(analysis_path) == sample_breakdown

    def test_wrapper_round_trip(self, sample_breakdown: Breakdown, tmp_path: Path) -> None:
        analysis_path, _ = save_analysis(sample_breakdown, tmp_path, "full", now=NOW)
        result = AnalysisResult.model_validate_json(analysis_path.read_text())
        assert result.analysis_time == NOW
        assert result.project_breakdown == sample_breakdown


class TestLoadBreakdown:
    def test_accepts_bare_breakdown(self, sample_breakdown: Breakdown, tmp_path: Path) -> None:
        path = tmp_path / "bare.json"
        path.write_text(sample_breakdown.model_dump_json())
        assert load_breakdown(path) == sample_breakdown

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputError, match="failed to read"):
            load_breakdown(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(InputError, match="failed to parse"):
            load_breakdown(path)

    def test_wrong_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "shape.json"
        path.write_text(json.dumps({"epics": [{"title": ""}]}))
        with pytest.raises(InputError, match="not a valid breakdown"):
            load_breakdown(path)

    def test_total_chunks_from_older_files(self, tmp_path: Path) -> None:
        path = tmp_path / "older.json"
        path.write_text(json.dumps({"project_name": "Tracker", "epics": [], "total_chunks": 3, "input_file_size": 900}))
        breakdown = load_breakdown(path)
        assert (breakdown.processed_chunks, breakdown.input_file_size) == (3, 900)

    def test_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[]")
        with pytest.raises(InputError):
            load_breakdown(path)


def test_render_summary_sections(sample_breakdown: Breakdown) -> None:
    text = render_summary(sample_breakdown.model_copy(update={"input_file_size": 512}), "full", NOW)
    assert "**Generated:** 2025-03-04 05:06:07" in text
    assert "**Processing Mode:** full" in text
    assert "**Total Chunks:** 1" in text
    assert "**Input File Size:** 512 bytes" in text
    assert "**Total Stories:** 3" in text
    assert "**Total Story Points:** 9" in text
    assert "## Epic 1: Authentication" in text
    assert "### Story 1.1: Login page" in text
    assert "- Valid credentials log in" in text
    assert "**Dependencies:** Session service" in text
    assert "## Epic 2: Tasks" in text


def test_read_text_missing_raises_input_error(tmp_path: Path) -> None:
    with pytest.raises(InputError):
        read_text(tmp_path / "missing.md")
