"""
Capture of raw activity from the editor host.

Provides:
- ChangeDetector: line-level added/removed counts per save
- GitBranchResolver: current branch lookup that never raises
"""

from .branch import UNKNOWN_BRANCH, GitBranchResolver
from .detector import ChangeDetector, count_line_changes, split_lines

__all__ = [
    "ChangeDetector",
    "GitBranchResolver",
    "UNKNOWN_BRANCH",
    "count_line_changes",
    "split_lines",
]
