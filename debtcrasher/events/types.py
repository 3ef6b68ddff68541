"""
Raw event types for the activity log.

Each event is immutable once appended. Events serialize to one JSON object
per log line using the camelCase field names of the on-disk format, so logs
written by earlier versions of the tool stay readable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar


class EventType(Enum):
    """Kinds of raw events in the activity log."""

    FILE_SAVE = "file_save"
    DECISION = "decision"
    BUGFIX = "bugfix"
    AI_NOTE = "ai_note"
    LLM_CALL = "llm_call"


class WorkType(Enum):
    """Coarse classification of a unit of work."""

    FEATURE = "feature"
    REFACTOR = "refactor"
    BUGFIX = "bugfix"
    TEST = "test"
    CHORE = "chore"

    @classmethod
    def parse(cls, value: Any, default: WorkType | None = None) -> WorkType:
        """Parse a wire value, falling back to ``default`` (chore) when unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return default or cls.CHORE


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def format_timestamp(ts: datetime) -> str:
    """Serialize a timestamp the way the log format stores it (``...T..:..:..sssZ``)."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC.

    Raises:
        ValueError: If the value is not an ISO 8601 string
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"timestamp must be a non-empty string, got {value!r}")
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


def _require_count(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"'{key}' must be a non-negative integer")
    return value


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


@dataclass(frozen=True, kw_only=True)
class RawEvent:
    """Fields shared by every event kind.

    Attributes:
        timestamp: When the event happened (aware, UTC)
        file_path: Project-relative path the event refers to, if any
        branch: VCS branch at the time of the event, if resolved
    """

    event_type: ClassVar[EventType]

    timestamp: datetime
    file_path: str | None = None
    branch: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk dictionary form."""
        data: dict[str, Any] = {
            "type": self.event_type.value,
            "timestamp": format_timestamp(self.timestamp),
        }
        if self.branch is not None:
            data["branch"] = self.branch
        if self.file_path is not None:
            data["filePath"] = self.file_path
        data.update(self._payload())
        return data

    def _payload(self) -> dict[str, Any]:
        return {}

    @staticmethod
    def _common(data: dict[str, Any]) -> dict[str, Any]:
        return {
            "timestamp": parse_timestamp(data.get("timestamp")),
            "file_path": _optional_str(data, "filePath"),
            "branch": _optional_str(data, "branch"),
        }


@dataclass(frozen=True, kw_only=True)
class FileSaveEvent(RawEvent):
    """A file was saved; carries line-level change counts."""

    event_type: ClassVar[EventType] = EventType.FILE_SAVE

    added_lines: int
    removed_lines: int
    language_id: str = ""

    def _payload(self) -> dict[str, Any]:
        return {
            "addedLines": self.added_lines,
            "removedLines": self.removed_lines,
            "languageId": self.language_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileSaveEvent:
        return cls(
            **cls._common(data),
            added_lines=_require_count(data, "addedLines"),
            removed_lines=_require_count(data, "removedLines"),
            language_id=_optional_str(data, "languageId") or "",
        )


@dataclass(frozen=True, kw_only=True)
class NoteEvent(RawEvent):
    """Manual annotation with an optional 1-based line context."""

    note: str
    line: int | None = None

    def _payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {"note": self.note}
        if self.line is not None:
            data["context"] = {"line": self.line}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NoteEvent:
        context = data.get("context")
        line = None
        if isinstance(context, dict) and isinstance(context.get("line"), int):
            line = context["line"]
        return cls(**cls._common(data), note=_require_str(data, "note"), line=line)


@dataclass(frozen=True, kw_only=True)
class DecisionEvent(NoteEvent):
    """A design decision memo."""

    event_type: ClassVar[EventType] = EventType.DECISION


@dataclass(frozen=True, kw_only=True)
class BugfixEvent(NoteEvent):
    """A bugfix memo."""

    event_type: ClassVar[EventType] = EventType.BUGFIX


@dataclass(frozen=True, kw_only=True)
class AiNoteEvent(RawEvent):
    """A generated summary of recent work on a file.

    Treated as authoritative by the aggregator.
    """

    event_type: ClassVar[EventType] = EventType.AI_NOTE

    work_type: WorkType
    main_goal: str
    change_summary: str = ""
    important_functions: tuple[str, ...] = field(default_factory=tuple)
    risks: str | None = None
    next_steps: str | None = None

    def _payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "workType": self.work_type.value,
            "mainGoal": self.main_goal,
            "changeSummary": self.change_summary,
            "importantFunctions": list(self.important_functions),
        }
        if self.risks is not None:
            data["risks"] = self.risks
        if self.next_steps is not None:
            data["nextSteps"] = self.next_steps
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AiNoteEvent:
        functions = data.get("importantFunctions")
        if not isinstance(functions, list):
            functions = []
        return cls(
            **cls._common(data),
            work_type=WorkType.parse(data.get("workType")),
            main_goal=_require_str(data, "mainGoal"),
            change_summary=_optional_str(data, "changeSummary") or "",
            important_functions=tuple(f for f in functions if isinstance(f, str)),
            risks=_optional_str(data, "risks"),
            next_steps=_optional_str(data, "nextSteps"),
        )


@dataclass(frozen=True, kw_only=True)
class LlmCallEvent(RawEvent):
    """An external tool invocation record. Not aggregated."""

    event_type: ClassVar[EventType] = EventType.LLM_CALL

    tool: str
    args_summary: str = ""

    def _payload(self) -> dict[str, Any]:
        return {"tool": self.tool, "argsSummary": self.args_summary}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LlmCallEvent:
        return cls(
            **cls._common(data),
            tool=_require_str(data, "tool"),
            args_summary=_optional_str(data, "argsSummary") or "",
        )


_EVENT_CLASSES: dict[EventType, Any] = {
    EventType.FILE_SAVE: FileSaveEvent,
    EventType.DECISION: DecisionEvent,
    EventType.BUGFIX: BugfixEvent,
    EventType.AI_NOTE: AiNoteEvent,
    EventType.LLM_CALL: LlmCallEvent,
}


def event_from_dict(data: Any) -> RawEvent:
    """Deserialize one log record into its event class.

    Raises:
        ValueError: If the record is not a dict, has an unknown type,
            or is missing required fields
    """
    if not isinstance(data, dict):
        raise ValueError(f"event record must be an object, got {type(data).__name__}")
    try:
        event_type = EventType(data.get("type"))
    except ValueError as e:
        raise ValueError(f"unknown event type: {data.get('type')!r}") from e
    return _EVENT_CLASSES[event_type].from_dict(data)
