"""
Report generation: from the raw event log to ``reports/report.md``.

Pipeline:
1. read every shard (snapshot taken before any network call)
2. sort by timestamp and keep the aggregated event kinds
3. fold into BaseBlocks
4. one provider call turning BaseBlocks into ReasoningBlocks (skipped
   without a provider, in which case BaseBlocks are rendered directly)
5. render markdown and write it

Generation failures (transport, schema, empty result) propagate and nothing
is written, so a failed run never overwrites the previous report with an
empty one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

import aiofiles

from .aggregation.blocks import (
    AGGREGATED_TYPES,
    MERGE_WINDOW,
    BaseBlock,
    build_base_blocks,
    format_block_time,
    sort_events,
)
from .events.types import RawEvent, utc_now
from .exceptions import LogWriteError
from .generation.providers import GenerationProvider
from .generation.service import generate_reasoning
from .generation.types import ReasoningBlock
from .store.log_store import EventLogStore

logger = logging.getLogger(__name__)

REPORT_FILE = "report.md"
NO_EVENTS_MESSAGE = "No events recorded yet. Save some files or record a note first."
NO_BLOCKS_MESSAGE = "Could not build any summary blocks. Check the event log contents."


@dataclass
class GeneratedReport:
    """Result of one report run."""

    markdown: str
    report_path: Path
    base_blocks: list[BaseBlock] = field(default_factory=list)
    reasoning_blocks: list[ReasoningBlock] | None = None


def render_reasoning_markdown(blocks: Sequence[ReasoningBlock]) -> str:
    """Default markdown rendering of ReasoningBlocks."""
    lines: list[str] = [f"## Overview ({len(blocks)} work items)", ""]

    for index, block in enumerate(blocks, start=1):
        lines.append(f"## {index}. {block.file or 'project'} ({block.time})")
        lines.append(f"- Summary: {block.one_line_summary}")
        lines.append(f"- Problem: {block.problem}")
        lines.append("")

        if block.behavior:
            lines.append("### What was done")
            lines.extend(f"- {item}" for item in block.behavior)
            lines.append("")

        if block.why_chosen or block.alternatives:
            lines.append("### Why this approach")
            lines.extend(f"- {reason}" for reason in block.why_chosen)
            for alt in block.alternatives:
                lines.append(f"- Alternative: {alt.name}")
                if alt.pros:
                    lines.append(f"  - Pros: {', '.join(alt.pros)}")
                if alt.cons:
                    lines.append(f"  - Cons: {', '.join(alt.cons)}")
            lines.append("")

        if block.concepts:
            lines.append("### Key concepts")
            for concept in block.concepts:
                lines.append(f"- {concept.name}")
                if concept.what_it_is:
                    lines.append(f"  - What it is: {concept.what_it_is}")
                if concept.why_relevant_here:
                    lines.append(f"  - Why it matters here: {concept.why_relevant_here}")
                if concept.pitfalls:
                    lines.append(f"  - Pitfalls: {', '.join(concept.pitfalls)}")
            lines.append("")

        if block.tradeoffs:
            lines.append("### Trade-offs")
            lines.extend(f"- {item}" for item in block.tradeoffs)
            lines.append("")

        if block.remember_this:
            lines.append("### Remember next time")
            lines.extend(f"- {item}" for item in block.remember_this)
            lines.append("")

    return "\n".join(lines).strip()


def render_base_blocks_markdown(blocks: Sequence[BaseBlock]) -> str:
    """Markdown timeline of BaseBlocks, used when generation is skipped."""
    lines: list[str] = [f"## Timeline ({len(blocks)} blocks)", ""]
    for index, block in enumerate(blocks, start=1):
        lines.append(f"## {index}. {block.file} ({block.time})")
        if block.work_type:
            lines.append(f"- Work type: {block.work_type.value}")
        if block.main_goal:
            lines.append(f"- Goal: {block.main_goal}")
        lines.append(f"- Changes: {block.change_summary}")
        if block.important_functions:
            lines.append(f"- Functions: {', '.join(block.important_functions)}")
        if block.risks:
            lines.append(f"- Risks: {block.risks}")
        if block.next_steps:
            lines.append(f"- Next steps: {block.next_steps}")
        lines.append("")
    return "\n".join(lines).strip()


class ReportGenerator:
    """
    Builds and writes the development report for one project.

    Each ``generate()`` call owns its BaseBlocks and ReasoningBlocks; nothing
    is shared between calls.
    """

    def __init__(
        self,
        store: EventLogStore,
        provider: GenerationProvider | None = None,
        *,
        merge_window: timedelta = MERGE_WINDOW,
        snippet_root: Path | str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            store: Event log to read from; reports go to its reports dir
            provider: Generation provider; None renders BaseBlocks directly
            merge_window: Aggregation window
            snippet_root: Project root for code excerpts; None disables them
            clock: Source of "now" for the report header
        """
        self.store = store
        self.provider = provider
        self.merge_window = merge_window
        self.snippet_root = snippet_root
        self.clock = clock

    def snapshot(self) -> list[RawEvent]:
        """Read the log once and return the aggregated kinds, sorted by time."""
        return [e for e in sort_events(self.store.read_all()) if e.event_type in AGGREGATED_TYPES]

    def build_blocks(self) -> list[BaseBlock]:
        """Snapshot the log and aggregate it into BaseBlocks."""
        return build_base_blocks(self.snapshot(), self.merge_window, self.snippet_root)

    async def generate(self) -> GeneratedReport:
        """
        Generate the report and write it to ``reports/report.md``.

        Raises:
            TransportError, SchemaError, EmptyResultError: Generation failed
            LogWriteError: The report could not be written
        """
        events = self.snapshot()
        base_blocks: list[BaseBlock] = []
        reasoning: list[ReasoningBlock] | None = None

        if not events:
            body = NO_EVENTS_MESSAGE
        else:
            base_blocks = build_base_blocks(events, self.merge_window, self.snippet_root)
            if not base_blocks:
                body = NO_BLOCKS_MESSAGE
            elif self.provider is None:
                body = render_base_blocks_markdown(base_blocks)
            else:
                reasoning = await generate_reasoning(self.provider, base_blocks)
                body = render_reasoning_markdown(reasoning)

        markdown = f"{self._header()}\n{body.strip()}\n"
        report_path = await self._write(markdown)
        logger.info(
            f"Report written to {report_path} "
            f"({len(events)} events, {len(base_blocks)} blocks)"
        )
        return GeneratedReport(
            markdown=markdown,
            report_path=report_path,
            base_blocks=base_blocks,
            reasoning_blocks=reasoning,
        )

    def _header(self) -> str:
        return "\n".join(
            [
                "# Development Report",
                "",
                f"**Generated**: {format_block_time(self.clock())}",
                "",
                "A study sheet of recent work, grouped by file along the timeline.",
                "",
            ]
        )

    async def _write(self, markdown: str) -> Path:
        _, reports_dir = self.store.ensure_directories()
        path = reports_dir / REPORT_FILE
        try:
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(markdown)
        except OSError as e:
            raise LogWriteError("write_report", str(path), e) from e
        return path
