"""
Engine: one explicit instance per tracked project.

The engine is the inbound port for an editor host. It owns the change
detector (content cache), the event log store (shard handles) and, when
configured, the generation provider. Engines share no state, so several
projects or test cases can run side by side.

Example usage:
    async with DebtCrasherEngine.from_project(root) as engine:
        engine.on_open(path, text)
        engine.on_save(path, new_text, "python")
        engine.record_decision("Chose SQLite for faster iteration")
        report = await engine.generate_report()
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path, PurePath
from typing import Any

from .capture.branch import GitBranchResolver
from .capture.detector import ChangeDetector
from .config import DebtCrasherConfig
from .events.types import (
    AiNoteEvent,
    BugfixEvent,
    DecisionEvent,
    FileSaveEvent,
    LlmCallEvent,
    NoteEvent,
    WorkType,
    format_timestamp,
    utc_now,
)
from .exceptions import ProviderConfigError, ValidationError
from .generation.providers import GenerationProvider, create_provider
from .generation.service import build_diff_snippet, generate_ai_note
from .generation.types import AiNoteRequest
from .logging_utils import ProjectLoggerAdapter, get_logger
from .report import GeneratedReport, ReportGenerator
from .store.log_store import EventLogStore

logger = get_logger("engine")

RECENT_SAVES_LIMIT = 5


class DebtCrasherEngine:
    """Capture and report engine for one project root."""

    def __init__(
        self,
        project_root: Path | str,
        config: DebtCrasherConfig | None = None,
        provider: GenerationProvider | None = None,
        *,
        branch_resolver: Callable[[], str | None] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            project_root: Root of the tracked project
            config: Settings; defaults when None
            provider: Generation provider; None disables AI notes and
                renders reports from BaseBlocks
            branch_resolver: Branch lookup; defaults to git in project_root
            clock: Source of event timestamps
        """
        self.project_root = Path(project_root)
        self.config = config or DebtCrasherConfig()
        self.provider = provider
        self.clock = clock
        self.detector = ChangeDetector(
            max_entries=self.config.content_cache_size,
            branch_resolver=branch_resolver or GitBranchResolver(self.project_root),
        )
        self.store = EventLogStore(
            self.project_root,
            self.config.state_dir,
            max_shard_bytes=self.config.max_shard_bytes,
            clock=clock,
        )
        self.log = ProjectLoggerAdapter.for_project(logger, self.project_root, self.config.state_dir)

    @classmethod
    def from_project(cls, project_root: Path | str, **kwargs: Any) -> DebtCrasherEngine:
        """Build an engine from the project's settings.yaml and environment.

        A provider is created when one is configured; otherwise the engine
        runs without generation.
        """
        config = DebtCrasherConfig.load(project_root)
        provider = None
        if config.provider != "none":
            provider = create_provider(
                config.provider,
                config.api_key,
                reasoning_model=config.reasoning_model,
                note_model=config.note_model,
                timeout=config.request_timeout,
            )
        return cls(project_root, config, provider, **kwargs)

    # Lifecycle

    def open(self) -> DebtCrasherEngine:
        """Create the state directories."""
        self.store.open()
        return self

    def close(self) -> None:
        """Release shard handles and drop cached contents."""
        self.store.close()
        self.detector.clear()

    async def aclose(self) -> None:
        """Close the engine and its provider."""
        self.close()
        if self.provider is not None:
            await self.provider.close()

    def __enter__(self) -> DebtCrasherEngine:
        return self.open()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    async def __aenter__(self) -> DebtCrasherEngine:
        return self.open()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    # Host notifications

    def relative_path(self, file_id: str) -> str:
        """Project-relative POSIX path for a file id, when it is inside the root."""
        path = Path(file_id)
        if path.is_absolute():
            try:
                return path.relative_to(self.project_root).as_posix()
            except ValueError:
                return path.as_posix()
        return PurePath(file_id).as_posix()

    def on_open(self, file_id: str, content: str) -> None:
        """A document was opened: remember its content as the diff baseline."""
        self.detector.prime(file_id, content)

    def on_save(self, file_id: str, content: str, language_id: str = "") -> FileSaveEvent:
        """A document was saved: diff, append and return the save event.

        Raises:
            LogWriteError: If the event could not be persisted
        """
        event = self.detector.capture(
            file_id,
            content,
            language_id,
            file_path=self.relative_path(file_id),
            timestamp=self.clock(),
        )
        self.store.append(event)
        self.log.debug(
            f"Captured save (+{event.added_lines}/-{event.removed_lines})",
            extra={"event_type": event.event_type.value, "file_path": event.file_path},
        )
        return event

    def on_close(self, file_id: str) -> None:
        """A document was closed: evict its cached content."""
        self.detector.forget(file_id)

    # Manual annotations

    def record_decision(
        self, note: str, file_id: str | None = None, line: int | None = None
    ) -> DecisionEvent:
        """Append a decision memo, optionally tied to a file and 1-based line."""
        return self._record_note(DecisionEvent, note, file_id, line)

    def record_bugfix(
        self, note: str, file_id: str | None = None, line: int | None = None
    ) -> BugfixEvent:
        """Append a bugfix memo, optionally tied to a file and 1-based line."""
        return self._record_note(BugfixEvent, note, file_id, line)

    def _record_note(
        self, event_cls: type[NoteEvent], note: str, file_id: str | None, line: int | None
    ) -> Any:
        note = (note or "").strip()
        if not note:
            raise ValidationError("note", "must not be empty")
        if line is not None and line < 1:
            raise ValidationError("line", "must be >= 1", str(line))

        event = event_cls(
            timestamp=self.clock(),
            file_path=self.relative_path(file_id) if file_id else None,
            branch=self.detector.resolve_branch(),
            note=note,
            line=line if file_id else None,
        )
        self.store.append(event)
        self.log.info(
            f"Recorded {event.event_type.value} note",
            extra={"event_type": event.event_type.value, "file_path": event.file_path},
        )
        return event

    # Generation

    def recent_file_saves(self, file_path: str, limit: int = RECENT_SAVES_LIMIT) -> list[str]:
        """Describe the latest saves of a file, oldest first."""
        saves = sorted(
            (
                event
                for event in self.store.read_all()
                if isinstance(event, FileSaveEvent) and event.file_path == file_path
            ),
            key=lambda event: event.timestamp,
        )[-limit:]
        return [
            f"{format_timestamp(e.timestamp)} (+{e.added_lines}/-{e.removed_lines}) {e.file_path}"
            for e in saves
        ]

    def _require_provider(self) -> GenerationProvider:
        if self.provider is None:
            raise ProviderConfigError(self.config.provider, "no provider configured")
        return self.provider

    async def record_ai_note(
        self,
        file_id: str,
        content: str,
        language_id: str,
        work_type: WorkType | str = WorkType.CHORE,
        hint: str | None = None,
    ) -> AiNoteEvent:
        """
        Generate a note about recent work on a file and append it.

        Raises:
            ProviderConfigError: No provider configured
            TransportError, SchemaError: Generation failed; nothing is appended
        """
        provider = self._require_provider()
        file_path = self.relative_path(file_id)
        request = AiNoteRequest(
            work_type=WorkType.parse(work_type),
            file_path=file_path,
            language_id=language_id,
            recent_file_saves=self.recent_file_saves(file_path),
            diff_snippet=build_diff_snippet(content, self.detector.cached(file_id)),
            user_hint=hint,
        )

        payload = await generate_ai_note(provider, request)
        self._record_llm_call(provider, f"ai_note {file_path}")

        event = AiNoteEvent(
            timestamp=self.clock(),
            file_path=file_path,
            branch=self.detector.resolve_branch(),
            work_type=payload.work_type,
            main_goal=payload.main_goal,
            change_summary=payload.change_summary,
            important_functions=tuple(payload.important_functions),
            risks=payload.risks,
            next_steps=payload.next_steps,
        )
        self.store.append(event)
        self.log.info(
            f"Recorded AI note ({event.work_type.value})",
            extra={"event_type": event.event_type.value, "file_path": file_path},
        )
        return event

    async def generate_report(self) -> GeneratedReport:
        """
        Build the report and write ``reports/report.md``.

        Raises:
            TransportError, SchemaError, EmptyResultError: Generation failed
        """
        generator = ReportGenerator(
            self.store,
            self.provider,
            merge_window=self.config.merge_window,
            snippet_root=self.project_root if self.config.attach_snippets else None,
            clock=self.clock,
        )
        report = await generator.generate()
        if report.reasoning_blocks is not None and self.provider is not None:
            self._record_llm_call(self.provider, f"report {len(report.base_blocks)} blocks")
        return report

    def _record_llm_call(self, provider: GenerationProvider, summary: str) -> None:
        self.store.append(
            LlmCallEvent(
                timestamp=self.clock(),
                branch=self.detector.resolve_branch(),
                tool=provider.name,
                args_summary=summary,
            )
        )
        self.log.debug(
            f"Recorded generation call: {summary}",
            extra={"event_type": "llm_call", "provider": provider.name},
        )
