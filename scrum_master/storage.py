"""Reading and writing analysis files."""

import json
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from scrum_master.errors import InputError
from scrum_master.models import AnalysisResult, Breakdown, Chunk, ChunkAnalysis

ANALYSIS_PREFIX = "project-desc-analysis"
SUMMARY_PREFIX = "project-desc-summary"


def _timestamp(now: datetime) -> str:
    return now.strftime("%Y%m%d-%H%M%S")


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputError(f"failed to read input file {path}: {exc}") from exc


def render_summary(breakdown: Breakdown, mode: str, generated_at: datetime) -> str:
    """Render a markdown summary of the breakdown."""
    lines = [
        f"# {breakdown.project_name}",
        "",
        f"**Generated:** {generated_at:%Y-%m-%d %H:%M:%S}",
        f"**Processing Mode:** {mode}",
    ]
    if breakdown.processed_chunks:
        lines.append(f"**Total Chunks:** {breakdown.processed_chunks}")
    lines += [
        f"**Input File Size:** {breakdown.input_file_size} bytes",
        "",
        f"**Overview:** {breakdown.overview}",
        "",
        f"**Total Epics:** {breakdown.total_epics}",
        f"**Total Stories:** {breakdown.total_stories}",
        f"**Total Story Points:** {breakdown.total_story_points}",
        "",
    ]
    for i, epic in enumerate(breakdown.epics, start=1):
        chunk = f" | **Chunk:** {epic.chunk}" if epic.chunk is not None else ""
        lines += [
            f"## Epic {i}: {epic.title}",
            "",
            f"**Priority:** {epic.priority.value}{chunk}",
            "",
            epic.description,
            "",
        ]
        for j, story in enumerate(epic.stories, start=1):
            lines += [
                f"### Story {i}.{j}: {story.title}",
                "",
                f"**Points:** {story.story_points} | **Priority:** {story.priority.value}",
                "",
                story.description,
                "",
            ]
            if story.acceptance_criteria:
                lines.append("**Acceptance Criteria:**")
                lines += [f"- {criterion}" for criterion in story.acceptance_criteria]
                lines.append("")
            if story.dependencies:
                lines += [f"**Dependencies:** {', '.join(story.dependencies)}", ""]
    return "\n".join(lines)


def save_analysis(
    breakdown: Breakdown,
    output_dir: Path,
    mode: str,
    now: datetime | None = None,
) -> tuple[Path, Path]:
    """Write the analysis JSON and its markdown summary. Returns (json_path, md_path)."""
    now = now or datetime.now(timezone.utc)
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = _timestamp(now)

    result = AnalysisResult(project_breakdown=breakdown, analysis_time=now, processing_mode=mode)
    analysis_path = output_dir / f"{ANALYSIS_PREFIX}-{stamp}.json"
    analysis_path.write_text(result.model_dump_json(indent=2), encoding="utf-8")

    summary_path = output_dir / f"{SUMMARY_PREFIX}-{stamp}.md"
    summary_path.write_text(render_summary(breakdown, mode, now), encoding="utf-8")
    return analysis_path, summary_path


def save_chunk_analysis(chunk: Chunk, breakdown: Breakdown, output_dir: Path, now: datetime | None = None) -> Path:
    now = now or datetime.now(timezone.utc)
    output_dir.mkdir(parents=True, exist_ok=True)
    analysis = ChunkAnalysis(chunk_index=chunk.index, content=chunk.text, epics=breakdown.epics)
    path = output_dir / f"chunk-{chunk.index}-{_timestamp(now)}.json"
    path.write_text(analysis.model_dump_json(indent=2), encoding="utf-8")
    return path


def load_breakdown(path: Path) -> Breakdown:
    """Load a breakdown from a saved analysis file.

    Accepts the wrapped AnalysisResult shape or a bare breakdown object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise InputError(f"failed to read analysis file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InputError(f"failed to parse analysis file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise InputError(f"analysis file {path} does not contain a JSON object")
    try:
        if "project_breakdown" in data:
            return AnalysisResult.model_validate(data).project_breakdown
        return Breakdown.model_validate(data)
    except ValidationError as exc:
        raise InputError(f"analysis file {path} is not a valid breakdown: {exc}") from exc
