"""
Configuration for debtcrasher.

Values come from, in increasing priority:
1. dataclass defaults
2. ``<project-root>/<state-dir>/settings.yaml`` (``debtcrasher:`` section)
3. ``DEBTCRASHER_*`` environment variables

Example settings.yaml:

```yaml
debtcrasher:
  provider: openai
  api_key: "sk-..."
  reasoning_model: gpt-4o
  merge_window_minutes: 30
```
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ValidationError
from .store.log_store import DEFAULT_STATE_DIR, MAX_SHARD_BYTES

logger = logging.getLogger(__name__)

ENV_PREFIX = "DEBTCRASHER_"
SETTINGS_FILE = "settings.yaml"


@dataclass
class DebtCrasherConfig:
    """Settings for one project.

    Attributes:
        state_dir: Directory under the project root for logs and reports
        max_shard_bytes: Event log rotation threshold
        merge_window_minutes: Max gap between same-file events in one block
        content_cache_size: Max files whose content the detector remembers
        provider: Generation provider name ("none", "openai", "deepseek", "gemini")
        api_key: Provider API key
        reasoning_model: Model for report reasoning (provider default if empty)
        note_model: Model for AI notes (provider default if empty)
        request_timeout: Seconds before a generation request is abandoned
        attach_snippets: Attach code excerpts to BaseBlocks
    """

    state_dir: str = DEFAULT_STATE_DIR
    max_shard_bytes: int = MAX_SHARD_BYTES
    merge_window_minutes: float = 30
    content_cache_size: int = 500
    provider: str = "none"
    api_key: str | None = None
    reasoning_model: str = ""
    note_model: str = ""
    request_timeout: float = 120.0
    attach_snippets: bool = True

    def __post_init__(self) -> None:
        if self.max_shard_bytes < 1:
            raise ValidationError("max_shard_bytes", "must be >= 1", str(self.max_shard_bytes))
        if self.merge_window_minutes < 0:
            raise ValidationError(
                "merge_window_minutes", "must be >= 0", str(self.merge_window_minutes)
            )
        if self.content_cache_size < 1:
            raise ValidationError("content_cache_size", "must be >= 1", str(self.content_cache_size))
        if self.request_timeout <= 0:
            raise ValidationError("request_timeout", "must be > 0", str(self.request_timeout))

    @property
    def merge_window(self) -> timedelta:
        return timedelta(minutes=self.merge_window_minutes)

    @classmethod
    def from_env(cls, base: DebtCrasherConfig | None = None) -> DebtCrasherConfig:
        """
        Create config from environment variables, on top of ``base``.

        Env vars (all optional):
            DEBTCRASHER_STATE_DIR, DEBTCRASHER_MAX_SHARD_BYTES,
            DEBTCRASHER_MERGE_WINDOW_MINUTES, DEBTCRASHER_CONTENT_CACHE_SIZE,
            DEBTCRASHER_PROVIDER, DEBTCRASHER_API_KEY,
            DEBTCRASHER_REASONING_MODEL, DEBTCRASHER_NOTE_MODEL,
            DEBTCRASHER_REQUEST_TIMEOUT, DEBTCRASHER_ATTACH_SNIPPETS

        Examples:
            export DEBTCRASHER_PROVIDER="openai"
            export DEBTCRASHER_API_KEY="sk-..."
        """
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is not None:
                values[f.name] = raw
        return replace(base or cls(), **_coerce(values))

    @classmethod
    def from_file(cls, path: Path | str, base: DebtCrasherConfig | None = None) -> DebtCrasherConfig:
        """Load the ``debtcrasher`` section of a YAML settings file.

        A missing file yields ``base`` (or defaults) unchanged.
        """
        path = Path(path)
        if not path.exists():
            return base or cls()

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ValidationError("settings", f"could not read {path}: {e}") from e

        section = data.get("debtcrasher", {}) if isinstance(data, dict) else {}
        if not isinstance(section, dict):
            raise ValidationError("settings", f"'debtcrasher' section in {path} must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            logger.warning(f"Ignoring unknown settings in {path}: {', '.join(unknown)}")

        values = {key: value for key, value in section.items() if key in known}
        return replace(base or cls(), **_coerce(values))

    @classmethod
    def load(cls, project_root: Path | str) -> DebtCrasherConfig:
        """Defaults, then the project's settings.yaml, then the environment."""
        state_dir = os.environ.get(f"{ENV_PREFIX}STATE_DIR", DEFAULT_STATE_DIR)
        config = cls.from_file(Path(project_root) / state_dir / SETTINGS_FILE)
        return cls.from_env(config)


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    """Convert raw (string or YAML) values to the field types."""
    coerced: dict[str, Any] = {}
    for key, value in values.items():
        try:
            if key in ("max_shard_bytes", "content_cache_size"):
                coerced[key] = int(value)
            elif key in ("merge_window_minutes", "request_timeout"):
                coerced[key] = float(value)
            elif key == "attach_snippets":
                coerced[key] = (
                    value if isinstance(value, bool)
                    else str(value).strip().lower() in ("1", "true", "yes", "on")
                )
            elif key == "api_key":
                coerced[key] = str(value) if value else None
            else:
                coerced[key] = str(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(key, "invalid value", str(value)) from e
    return coerced
