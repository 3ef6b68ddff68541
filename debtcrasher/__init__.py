"""
debtcrasher

Captures a developer's activity as events and condenses it into study-sheet
reports.

Provides:
- Diff-based change detection on save
- A rotating, crash-tolerant JSON-lines event log
- Time-window aggregation of events into BaseBlocks
- Validation of free-text generation responses into ReasoningBlocks

Usage:

    >>> from debtcrasher import DebtCrasherEngine
    >>> async with DebtCrasherEngine.from_project("/path/to/project") as engine:
    ...     engine.on_open(path, text)
    ...     engine.on_save(path, new_text, "python")
    ...     report = await engine.generate_report()
"""

from .aggregation import BaseBlock, build_base_blocks, sort_events
from .capture import ChangeDetector, GitBranchResolver, count_line_changes
from .config import DebtCrasherConfig
from .engine import DebtCrasherEngine
from .events import (
    AiNoteEvent,
    BugfixEvent,
    DecisionEvent,
    EventType,
    FileSaveEvent,
    LlmCallEvent,
    RawEvent,
    WorkType,
    event_from_dict,
)

# Exceptions
from .exceptions import (
    DebtCrasherError,
    EmptyResultError,
    GenerationError,
    LogWriteError,
    ProviderConfigError,
    SchemaError,
    TransportError,
    ValidationError,
)
from .generation import (
    GenerationProvider,
    ReasoningBlock,
    create_provider,
    parse_reasoning_response,
)
from .logging_utils import ProjectLoggerAdapter, configure_structured_logging, get_logger
from .report import GeneratedReport, ReportGenerator
from .store import EventLogStore, LogReadResult

__all__ = [
    # Engine
    "DebtCrasherEngine",
    "DebtCrasherConfig",
    # Events
    "EventType",
    "WorkType",
    "RawEvent",
    "FileSaveEvent",
    "DecisionEvent",
    "BugfixEvent",
    "AiNoteEvent",
    "LlmCallEvent",
    "event_from_dict",
    # Components
    "ChangeDetector",
    "GitBranchResolver",
    "count_line_changes",
    "EventLogStore",
    "LogReadResult",
    "BaseBlock",
    "build_base_blocks",
    "sort_events",
    "ReasoningBlock",
    "GenerationProvider",
    "create_provider",
    "parse_reasoning_response",
    "ReportGenerator",
    "GeneratedReport",
    # Logging
    "configure_structured_logging",
    "get_logger",
    "ProjectLoggerAdapter",
    # Exceptions
    "DebtCrasherError",
    "LogWriteError",
    "ValidationError",
    "ProviderConfigError",
    "GenerationError",
    "TransportError",
    "SchemaError",
    "EmptyResultError",
]

__version__ = "0.1.0"
