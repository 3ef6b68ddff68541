"""
Structured logging for debtcrasher.

Editor hosts capture stderr of helper processes line by line, so the package
can emit one JSON object per record. Only the context fields this package
attaches (project, state dir, event kind, file, shard) are copied from
``extra``; anything else a caller passes is ignored by the formatter.

Usage:

    >>> configure_structured_logging(logging.DEBUG)
    >>> log = ProjectLoggerAdapter.for_project(get_logger("engine"), root, ".devcrasher")
    >>> log.info("Captured save", extra={"event_type": "file_save", "file_path": "a.py"})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

PACKAGE_LOGGER = "debtcrasher"

CONTEXT_FIELDS = (
    "project_root",
    "state_dir",
    "event_type",
    "file_path",
    "shard",
    "provider",
)

# Marks handlers installed by configure_structured_logging
_HANDLER_TAG = "_debtcrasher_handler"


class StructuredJsonFormatter(logging.Formatter):
    """
    Formats a record as a single JSON line.

    Keys: ``ts`` (record creation time, UTC), ``level``, ``logger``,
    ``message``, the context fields present on the record, and
    ``exception`` when exc_info is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value if isinstance(value, (str, int, float, bool)) else str(value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def configure_structured_logging(
    level: int = logging.INFO,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Send the package's log records to ``stream`` as JSON lines.

    Calling it again replaces the handler it installed earlier; handlers added
    by the host application are left alone.

    Args:
        level: Level for the ``debtcrasher`` logger
        stream: Destination (default: stderr)

    Returns:
        The ``debtcrasher`` logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in logger.handlers if getattr(h, _HANDLER_TAG, False)]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredJsonFormatter())
    setattr(handler, _HANDLER_TAG, True)

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the package namespace.

    Accepts a short component name ("engine") or a module ``__name__``.
    """
    if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


class ProjectLoggerAdapter(logging.LoggerAdapter):
    """
    Attaches the project root and state dir to every record.

    Per-call ``extra`` values win over the adapter's defaults.
    """

    @classmethod
    def for_project(
        cls, logger: logging.Logger, project_root: Path | str, state_dir: str
    ) -> "ProjectLoggerAdapter":
        return cls(logger, {"project_root": str(project_root), "state_dir": state_dir})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs
