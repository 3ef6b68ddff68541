"""
Rotating append-only event log.

Events are stored as JSON lines in date-named shard files under
``<project-root>/<state-dir>/logs``:

    2024-05-01.log        base shard for the day
    2024-05-01-2.log      first overflow shard (index 1 is never used)
    2024-05-01-3.log      next overflow shard, and so on

A shard rolls over once it reaches ``max_shard_bytes``. The overflow index
starts at 2 to stay compatible with logs written by earlier versions.

The reader is tolerant: a line that is not a valid event (partial write after
a crash, hand edits) is skipped and counted, never raised.

Concurrency: a single writer process is assumed. Small appends rely on the
filesystem's O_APPEND behaviour; there is no cross-process lock.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, TextIO

from ..events.types import RawEvent, event_from_dict, utc_now
from ..exceptions import LogWriteError

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".devcrasher"
MAX_SHARD_BYTES = 5 * 1024 * 1024
FIRST_OVERFLOW_INDEX = 2

_SHARD_RE = re.compile(r"^(?P<date>\d{4}-\d{2}-\d{2})(?:-(?P<index>\d+))?\.log$")


@dataclass
class LogReadResult:
    """Outcome of reading every shard.

    Attributes:
        events: Parsed events in append order
        skipped_lines: Non-empty lines that could not be parsed
        shards_read: Number of shard files read
    """

    events: list[RawEvent] = field(default_factory=list)
    skipped_lines: int = 0
    shards_read: int = 0


def shard_sort_key(path: Path) -> tuple[str, int, str]:
    """Order shards by date, then numeric overflow index.

    The base shard sorts first; ``-10`` sorts after ``-9``. Files that do not
    follow the naming scheme sort by name.
    """
    match = _SHARD_RE.match(path.name)
    if not match:
        return (path.name, 0, path.name)
    index = int(match.group("index")) if match.group("index") else 0
    return (match.group("date"), index, path.name)


class EventLogStore:
    """
    Append-only JSON-lines store with date-based size rotation.

    Example usage:
        with EventLogStore(project_root) as store:
            store.append(event)
            events = store.read_all()

    Or manual management:
        store = EventLogStore(project_root)
        store.open()
        store.append(event)
        store.close()
    """

    def __init__(
        self,
        project_root: Path | str,
        state_dir: str = DEFAULT_STATE_DIR,
        *,
        max_shard_bytes: int = MAX_SHARD_BYTES,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the store.

        Args:
            project_root: Root of the project being tracked
            state_dir: Directory (relative to the root) holding logs and reports
            max_shard_bytes: Rotation threshold for a shard
            clock: Source of "now", used to pick the day's shard
        """
        if max_shard_bytes < 1:
            raise ValueError(f"max_shard_bytes must be >= 1, got {max_shard_bytes}")

        self.project_root = Path(project_root)
        self.base_dir = self.project_root / state_dir
        self.logs_dir = self.base_dir / "logs"
        self.reports_dir = self.base_dir / "reports"
        self.max_shard_bytes = max_shard_bytes
        self.clock = clock

        self._file: TextIO | None = None
        self._file_path: Path | None = None
        self._event_count = 0

    def ensure_directories(self) -> tuple[Path, Path]:
        """Create the logs and reports directories.

        Returns:
            (logs_dir, reports_dir)
        """
        for directory in (self.logs_dir, self.reports_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise LogWriteError("create_directory", str(directory), e) from e
        return self.logs_dir, self.reports_dir

    def open(self) -> EventLogStore:
        """Prepare the store for writing.

        Returns:
            Self for method chaining
        """
        self.ensure_directories()
        return self

    def close(self) -> None:
        """Close the active shard handle."""
        if self._file is not None:
            self._file.close()
            self._file = None
            self._file_path = None

    def __enter__(self) -> EventLogStore:
        return self.open()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def active_shard_path(self, day: str | None = None) -> Path:
        """Resolve the shard the next append for ``day`` goes to.

        Args:
            day: ISO date (YYYY-MM-DD); defaults to today (UTC)
        """
        day = day or self.clock().date().isoformat()
        base = self.logs_dir / f"{day}.log"
        if not base.exists() or base.stat().st_size < self.max_shard_bytes:
            return base

        overflow = sorted(self._overflow_shards(day), key=shard_sort_key)
        if overflow and overflow[-1].stat().st_size < self.max_shard_bytes:
            return overflow[-1]

        index = len(overflow) + FIRST_OVERFLOW_INDEX
        candidate = self.logs_dir / f"{day}-{index}.log"
        # Gaps in historical numbering can make count+2 collide with a full shard
        while candidate.exists() and candidate.stat().st_size >= self.max_shard_bytes:
            index += 1
            candidate = self.logs_dir / f"{day}-{index}.log"

        logger.debug(f"Rotating event log to {candidate.name}")
        return candidate

    def append(self, event: RawEvent) -> Path:
        """Append one event as a JSON line.

        Args:
            event: Event to persist

        Returns:
            Path of the shard written to

        Raises:
            LogWriteError: If the filesystem write fails
        """
        line = json.dumps(event.to_dict(), ensure_ascii=False)
        path: Path | None = None

        try:
            self.ensure_directories()
            path = self.active_shard_path()
            if self._file is None or self._file_path != path:
                self.close()
                # Line buffered so size checks see every completed line
                self._file = open(path, "a", encoding="utf-8", buffering=1)
                self._file_path = path
            self._file.write(line + "\n")
        except OSError as e:
            self.close()
            raise LogWriteError("append", str(path or self.logs_dir), e) from e

        self._event_count += 1
        return path

    def shard_paths(self) -> list[Path]:
        """All shard files, oldest first."""
        if not self.logs_dir.is_dir():
            return []
        return sorted(self.logs_dir.glob("*.log"), key=shard_sort_key)

    def read_all(self) -> list[RawEvent]:
        """Read every event from every shard, in append order.

        Malformed lines are skipped.
        """
        return self.read_all_with_stats().events

    def read_all_with_stats(self) -> LogReadResult:
        """Read every shard and report how many lines were skipped."""
        result = LogReadResult()

        for path in self.shard_paths():
            try:
                with open(path, "rb") as f:
                    result.skipped_lines += self._read_shard(f, result.events)
            except OSError as e:
                logger.warning(f"Could not read event log shard {path}: {e}")
                continue
            result.shards_read += 1

        if result.skipped_lines:
            logger.warning(
                f"Skipped {result.skipped_lines} malformed event log lines "
                f"across {result.shards_read} shards"
            )
        return result

    @staticmethod
    def _read_shard(f: BinaryIO, events: list[RawEvent]) -> int:
        skipped = 0
        for raw in f:
            raw = raw.strip()
            if not raw:
                continue
            try:
                events.append(event_from_dict(json.loads(raw.decode("utf-8"))))
            except (
                UnicodeDecodeError,
                json.JSONDecodeError,
                ValueError,
                TypeError,
                KeyError,
                RecursionError,
            ):
                skipped += 1
        return skipped

    def _overflow_shards(self, day: str) -> list[Path]:
        shards = []
        for path in self.logs_dir.glob(f"{day}-*.log"):
            match = _SHARD_RE.match(path.name)
            if match and match.group("index"):
                shards.append(path)
        return shards

    @property
    def event_count(self) -> int:
        """Number of events appended through this instance."""
        return self._event_count

    @property
    def is_open(self) -> bool:
        """Whether a shard handle is currently open."""
        return self._file is not None
