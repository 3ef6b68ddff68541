"""
Git branch resolution for captured events.

Shells out to ``git`` in the project root. Any failure (not a repository,
git missing, detached timeout) resolves to ``None``; callers record
"unknown" in that case.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

UNKNOWN_BRANCH = "unknown"


class GitBranchResolver:
    """Resolve the current branch name of a working tree.

    Usage:
        resolver = GitBranchResolver(project_root)
        branch = resolver() or UNKNOWN_BRANCH
    """

    def __init__(self, project_root: Path | str, *, git_executable: str = "git", timeout: float = 5.0):
        self.project_root = Path(project_root)
        self.git_executable = git_executable
        self.timeout = timeout

    def resolve(self) -> str | None:
        """Return the current branch name, or None if it cannot be determined."""
        try:
            result = subprocess.run(
                [self.git_executable, "rev-parse", "--abbrev-ref", "HEAD"],
                cwd=self.project_root,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Branch resolution failed in {self.project_root}: {e}")
            return None

        if result.returncode != 0:
            logger.debug(
                f"git rev-parse exited with {result.returncode} in {self.project_root}"
            )
            return None

        branch = result.stdout.strip()
        return branch or None

    def __call__(self) -> str | None:
        return self.resolve()
