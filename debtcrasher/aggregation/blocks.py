"""
Time-window aggregation of raw events into BaseBlocks.

Raw save events are too fine-grained to reason about one by one, and every
BaseBlock costs part of an external generation call, so bursts of activity on
the same file collapse into one block.

Merging is by temporal adjacency only: an event joins the most recently
opened block when it is for the same file and no more than the merge window
after that block's last event. Older blocks for the same file are never
re-opened. Input must already be sorted by timestamp.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from ..events.types import (
    AiNoteEvent,
    BugfixEvent,
    DecisionEvent,
    EventType,
    FileSaveEvent,
    RawEvent,
    WorkType,
)
from .snippet import PROJECT_PSEUDO_FILE, extract_code_snippet

MERGE_WINDOW = timedelta(minutes=30)
SUMMARY_SEPARATOR = " / "

AGGREGATED_TYPES = frozenset(
    {EventType.FILE_SAVE, EventType.DECISION, EventType.BUGFIX, EventType.AI_NOTE}
)

FILE_CHANGE_GOAL = "file change"
DECISION_GOAL = "decision memo"
BUGFIX_GOAL = "bugfix memo"


def format_block_time(ts: datetime) -> str:
    """Render a block time as ``YYYY-MM-DD HH:MM`` (UTC)."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(UTC)
    return ts.strftime("%Y-%m-%d %H:%M")


def sort_events(events: Iterable[RawEvent]) -> list[RawEvent]:
    """Sort events by timestamp, keeping append order for ties."""
    return sorted(events, key=lambda event: event.timestamp)


@dataclass
class BaseBlock:
    """A time-windowed aggregation of events on one file.

    Attributes:
        time_start: Timestamp of the first folded event
        time_end: Timestamp of the last folded event
        file: Project-relative path, or "project" for file-less notes
        work_type: Classification of the work, if known
        main_goal: What the developer was trying to do
        change_summary: Fragments of every folded event, joined
        important_functions: Function names, deduplicated in first-seen order
        risks: Known risks from the latest AI note
        next_steps: Follow-ups from the latest AI note
        code_snippet: Optional excerpt of the file
    """

    time_start: datetime
    time_end: datetime
    file: str
    change_summary: str
    work_type: WorkType | None = None
    main_goal: str | None = None
    important_functions: list[str] = field(default_factory=list)
    risks: str | None = None
    next_steps: str | None = None
    code_snippet: str | None = None

    @property
    def time(self) -> str:
        """Display time of the block (its end)."""
        return format_block_time(self.time_end)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the outbound generation payload; None fields are omitted."""
        data: dict[str, Any] = {
            "time": self.time,
            "timeStart": format_block_time(self.time_start),
            "timeEnd": format_block_time(self.time_end),
            "file": self.file,
            "workType": self.work_type.value if self.work_type else None,
            "mainGoal": self.main_goal,
            "changeSummary": self.change_summary,
            "importantFunctions": self.important_functions or None,
            "risks": self.risks,
            "nextSteps": self.next_steps,
            "codeSnippet": self.code_snippet,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass
class _BlockBuilder:
    time_start: datetime
    time_end: datetime
    file: str
    work_type: WorkType | None = None
    main_goal: str | None = None
    parts: list[str] = field(default_factory=list)
    functions: dict[str, None] = field(default_factory=dict)
    risks: str | None = None
    next_steps: str | None = None

    def fold(self, event: RawEvent) -> None:
        self.time_end = event.timestamp

        if isinstance(event, AiNoteEvent):
            self.work_type = event.work_type
            self.main_goal = event.main_goal or self.main_goal
            if event.change_summary:
                self.parts.append(event.change_summary)
            for name in event.important_functions:
                self.functions.setdefault(name, None)
            self.risks = event.risks or self.risks
            self.next_steps = event.next_steps or self.next_steps
        elif isinstance(event, DecisionEvent):
            self._defaults(WorkType.CHORE, DECISION_GOAL)
            self.parts.append(f"decision: {event.note}")
        elif isinstance(event, BugfixEvent):
            self._defaults(WorkType.BUGFIX, BUGFIX_GOAL)
            self.parts.append(f"bugfix note: {event.note}")
        elif isinstance(event, FileSaveEvent):
            self._defaults(WorkType.CHORE, FILE_CHANGE_GOAL)
            self.parts.append(f"saved (+{event.added_lines}/-{event.removed_lines})")

    def _defaults(self, work_type: WorkType, main_goal: str) -> None:
        if self.work_type is None:
            self.work_type = work_type
        if self.main_goal is None:
            self.main_goal = main_goal

    def build(self, snippet_root: Path | str | None) -> BaseBlock:
        return BaseBlock(
            time_start=self.time_start,
            time_end=self.time_end,
            file=self.file,
            change_summary=SUMMARY_SEPARATOR.join(part for part in self.parts if part),
            work_type=self.work_type,
            main_goal=self.main_goal,
            important_functions=list(self.functions),
            risks=self.risks,
            next_steps=self.next_steps,
            code_snippet=(
                extract_code_snippet(snippet_root, self.file) if snippet_root is not None else None
            ),
        )


def build_base_blocks(
    events: Iterable[RawEvent],
    window: timedelta = MERGE_WINDOW,
    snippet_root: Path | str | None = None,
) -> list[BaseBlock]:
    """
    Fold timestamp-sorted events into BaseBlocks.

    Args:
        events: Events sorted by timestamp (see ``sort_events``)
        window: Maximum gap between consecutive same-file events in one block
        snippet_root: Project root for code excerpts; None disables them

    Returns:
        Blocks in the order they were opened. Blocks whose summary would be
        empty are dropped.
    """
    builders: list[_BlockBuilder] = []
    current: _BlockBuilder | None = None

    for event in events:
        if event.event_type not in AGGREGATED_TYPES:
            continue

        file = event.file_path or PROJECT_PSEUDO_FILE
        within_window = (
            current is not None
            and current.file == file
            and event.timestamp - current.time_end <= window
        )
        if not within_window:
            current = _BlockBuilder(time_start=event.timestamp, time_end=event.timestamp, file=file)
            builders.append(current)

        current.fold(event)

    blocks = [builder.build(snippet_root) for builder in builders]
    return [block for block in blocks if block.change_summary]
