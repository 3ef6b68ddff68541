"""
Diff-based change detection for saved files.

The detector remembers the last observed content of every tracked file and,
on save, counts how many lines were added and removed since then. The content
cache is a bounded LRU so long editing sessions do not grow memory without
limit.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from collections.abc import Callable
from datetime import datetime
from difflib import SequenceMatcher
from typing import Any

from ..events.types import FileSaveEvent, utc_now
from .branch import UNKNOWN_BRANCH

logger = logging.getLogger(__name__)

# A line keeps its terminator; the last line may have none.
_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+$")


def split_lines(text: str) -> list[str]:
    """Split text into lines, keeping terminators.

    A trailing newline does not produce an extra empty line, and
    ``"\\r\\n"`` stays attached to its line.
    """
    return _LINE_RE.findall(text)


def count_line_changes(previous: str, current: str) -> tuple[int, int]:
    """Count added and removed lines between two versions of a text.

    A modified line counts as one removal plus one addition.

    Returns:
        (added_lines, removed_lines)
    """
    if previous == current:
        return 0, 0

    matcher = SequenceMatcher(None, split_lines(previous), split_lines(current), autojunk=False)
    added = 0
    removed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += i2 - i1
        if tag in ("replace", "insert"):
            added += j2 - j1
    return added, removed


class ChangeDetector:
    """
    Tracks last-known content per file and emits FileSaveEvents on save.

    Features:
    - prime-once semantics (opening a file twice keeps the first baseline)
    - Least Recently Used eviction of cached contents
    - explicit eviction when the host reports a closed document
    """

    def __init__(
        self,
        max_entries: int = 500,
        branch_resolver: Callable[[], str | None] | None = None,
    ):
        """
        Initialize the detector.

        Args:
            max_entries: Maximum number of file contents to keep
            branch_resolver: Callable returning the current branch or None
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")

        self.max_entries = max_entries
        self.branch_resolver = branch_resolver
        self._cache: OrderedDict[str, str] = OrderedDict()

    def prime(self, file_id: str, content: str) -> None:
        """Remember ``content`` as the baseline unless one already exists."""
        if file_id in self._cache:
            return
        self._store(file_id, content)

    def capture(
        self,
        file_id: str,
        content: str,
        language_id: str = "",
        *,
        file_path: str | None = None,
        timestamp: datetime | None = None,
    ) -> FileSaveEvent:
        """
        Diff ``content`` against the cached baseline and emit a save event.

        A file that was never primed diffs against an empty baseline, so its
        whole content counts as added.

        Args:
            file_id: Cache key for the file (usually its absolute path)
            content: Full text of the file as saved
            language_id: Host language identifier (e.g. "python")
            file_path: Path recorded in the event; defaults to ``file_id``
            timestamp: Event time; defaults to now (UTC)

        Returns:
            FileSaveEvent with the line counts
        """
        baseline = self._cache.get(file_id, "")
        added, removed = count_line_changes(baseline, content)
        self._store(file_id, content)

        return FileSaveEvent(
            timestamp=timestamp or utc_now(),
            file_path=file_path if file_path is not None else file_id,
            branch=self.resolve_branch(),
            added_lines=added,
            removed_lines=removed,
            language_id=language_id,
        )

    def cached(self, file_id: str) -> str | None:
        """Return the cached content for a file, if any."""
        content = self._cache.get(file_id)
        if content is not None:
            self._cache.move_to_end(file_id)
        return content

    def forget(self, file_id: str) -> bool:
        """Drop a file's baseline (host reported the document closed).

        Returns:
            True if an entry was removed
        """
        return self._cache.pop(file_id, None) is not None

    def clear(self) -> None:
        """Drop all cached contents."""
        self._cache.clear()

    def size(self) -> int:
        """Number of files currently cached."""
        return len(self._cache)

    def stats(self) -> dict[str, Any]:
        """Cache statistics."""
        return {
            "size": len(self._cache),
            "max_entries": self.max_entries,
            "utilization": len(self._cache) / self.max_entries,
        }

    def _store(self, file_id: str, content: str) -> None:
        if file_id in self._cache:
            del self._cache[file_id]
        self._cache[file_id] = content

        if len(self._cache) > self.max_entries:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug(f"Evicted cached content for {evicted}")

    def resolve_branch(self) -> str:
        """Current branch name, or "unknown" when it cannot be resolved."""
        if self.branch_resolver is None:
            return UNKNOWN_BRANCH
        try:
            return self.branch_resolver() or UNKNOWN_BRANCH
        except Exception as e:
            # Branch lookup must never break a save
            logger.debug(f"Branch resolver raised: {e}")
            return UNKNOWN_BRANCH
