"""
Durable storage for raw activity events.
"""

from .log_store import (
    DEFAULT_STATE_DIR,
    FIRST_OVERFLOW_INDEX,
    MAX_SHARD_BYTES,
    EventLogStore,
    LogReadResult,
    shard_sort_key,
)

__all__ = [
    "EventLogStore",
    "LogReadResult",
    "DEFAULT_STATE_DIR",
    "MAX_SHARD_BYTES",
    "FIRST_OVERFLOW_INDEX",
    "shard_sort_key",
]
