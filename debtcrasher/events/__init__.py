"""
Raw activity events.

The log stores one event per line; these classes define the wire format.
"""

from .types import (
    AiNoteEvent,
    BugfixEvent,
    DecisionEvent,
    EventType,
    FileSaveEvent,
    LlmCallEvent,
    NoteEvent,
    RawEvent,
    WorkType,
    event_from_dict,
    format_timestamp,
    parse_timestamp,
    utc_now,
)

__all__ = [
    "EventType",
    "WorkType",
    "RawEvent",
    "FileSaveEvent",
    "NoteEvent",
    "DecisionEvent",
    "BugfixEvent",
    "AiNoteEvent",
    "LlmCallEvent",
    "event_from_dict",
    "format_timestamp",
    "parse_timestamp",
    "utc_now",
]
