"""Chunk, analyze, merge and optionally file a project description."""

import logging
import time
from collections.abc import Callable
from pathlib import Path

from scrum_master.chunker import split_text
from scrum_master.errors import ProviderError, RetryError
from scrum_master.merge import merge_epics
from scrum_master.models import Breakdown, Chunk, Epic, TicketRunReport
from scrum_master.providers.base import BreakdownProvider
from scrum_master.reporting import Reporter
from scrum_master.retry import with_retry
from scrum_master.settings import ScrumSettings
from scrum_master.storage import read_text, save_chunk_analysis
from scrum_master.tickets import TicketCreator

logger = logging.getLogger(__name__)


class Pipeline:
    """Runs one breakdown operation. Chunks are processed strictly in order."""

    def __init__(
        self,
        settings: ScrumSettings,
        ai: BreakdownProvider,
        reporter: Reporter,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._ai = ai
        self._reporter = reporter
        self._sleep = sleep

    def _analyze_chunk(self, chunk: Chunk) -> Breakdown:
        def attempt() -> Breakdown:
            return self._ai.breakdown(chunk.text, chunk.index, chunk.total)

        def on_failure(attempt_no: int, exc: Exception) -> None:
            self._reporter.warn(f"Attempt {attempt_no}/{self._settings.retry_count} failed: {exc}")
            if attempt_no < self._settings.retry_count:
                self._reporter.info(f"Retrying in {self._settings.retry_delay_seconds:g} seconds...")

        try:
            return with_retry(
                attempt,
                self._settings.retry_count,
                self._settings.retry_delay_seconds,
                sleep=self._sleep,
                on_failure=on_failure,
            )
        except RetryError as exc:
            raise ProviderError(f"failed to process chunk {chunk.index}/{chunk.total}: {exc}") from exc

    def _save_intermediate(self, chunk: Chunk, breakdown: Breakdown) -> None:
        try:
            path = save_chunk_analysis(chunk, breakdown, self._settings.output_dir)
        except OSError as exc:
            self._reporter.warn(f"Failed to save intermediate result for chunk {chunk.index}: {exc}")
            return
        logger.debug("saved chunk %d analysis to %s", chunk.index, path)

    def analyze_text(self, text: str) -> Breakdown:
        """Produce the merged breakdown for ``text``."""
        chunks = split_text(text, self._settings.chunk_size_chars)
        self._reporter.info(f"Processing with AI ({len(chunks)} chunk{'s' if len(chunks) != 1 else ''})...")

        project_name = ""
        overview = ""
        collected: list[Epic] = []
        for chunk in chunks:
            self._reporter.progress(chunk.index, chunk.total, f"Processing chunk {chunk.index}")
            result = self._analyze_chunk(chunk)
            if chunk.index == 1:
                project_name, overview = result.project_name, result.overview
            tagged = [epic.model_copy(update={"chunk": chunk.index}) for epic in result.epics]
            collected.extend(tagged)
            if self._settings.save_intermediate and chunk.total > 1:
                self._save_intermediate(chunk, result.model_copy(update={"epics": tagged}))
            if chunk.index < chunk.total:
                # pace consecutive calls against the API rate limit
                self._sleep(self._settings.retry_delay_seconds)

        merged = Breakdown(
            project_name=project_name,
            overview=overview,
            epics=merge_epics(collected),
            processed_chunks=len(chunks),
        ).with_totals()
        self._reporter.success(
            f"AI processing complete - {len(chunks)} chunks processed, {merged.total_epics} epics found"
        )
        return merged

    def analyze_file(self, path: Path) -> Breakdown:
        self._reporter.info(f"Reading input file: {path}")
        text = read_text(path)
        self._reporter.success(f"Read {len(text)} characters from input file")
        breakdown = self.analyze_text(text)
        return breakdown.model_copy(update={"input_file_size": len(text.encode("utf-8"))})

    def create_tickets(self, breakdown: Breakdown, creator: TicketCreator) -> TicketRunReport:
        return creator.create_tickets(breakdown)

    def run(
        self,
        path: Path,
        creator: TicketCreator | None = None,
        review: Callable[[Breakdown], bool] | None = None,
    ) -> tuple[Breakdown, TicketRunReport | None]:
        """Analyze ``path`` and, when a creator is given, file the result.

        Passing no creator is the dry run: the merged breakdown is returned and
        the tracker is never touched. ``review`` sees the merged breakdown
        before any ticket exists; returning False stops the run there.
        """
        breakdown = self.analyze_file(path)
        if review is not None and not review(breakdown):
            return breakdown, None
        if creator is None:
            return breakdown, None
        return breakdown, self.create_tickets(breakdown, creator)
