"""
Aggregation of raw events into BaseBlocks.
"""

from .blocks import (
    AGGREGATED_TYPES,
    MERGE_WINDOW,
    SUMMARY_SEPARATOR,
    BaseBlock,
    build_base_blocks,
    format_block_time,
    sort_events,
)
from .snippet import PROJECT_PSEUDO_FILE, extract_code_snippet

__all__ = [
    "BaseBlock",
    "build_base_blocks",
    "sort_events",
    "format_block_time",
    "extract_code_snippet",
    "AGGREGATED_TYPES",
    "MERGE_WINDOW",
    "SUMMARY_SEPARATOR",
    "PROJECT_PSEUDO_FILE",
]
