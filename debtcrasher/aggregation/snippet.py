"""Code excerpt extraction for BaseBlocks."""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

PROJECT_PSEUDO_FILE = "project"
SNIPPET_MAX_LINES = 40
SNIPPET_MAX_CHARS = 1200
SNIPPET_LEAD_LINES = 2

_DEFINITION_RE = re.compile(
    r"^\s*(export\s+)?(async\s+)?(function|class|def)\s+\w+"
    r"|^\s*(export\s+)?(const|let|var)\s+\w+\s*=\s*(async\s*)?\("
)


def extract_code_snippet(root: Path | str, relative_file: str | None) -> str | None:
    """Return a short excerpt around the first definition in a file.

    Starts two lines above the first function/class-looking line (or at the
    top when none is found), spans at most 40 lines and 1200 characters.
    Returns None for the project pseudo-file, missing files, files outside
    ``root`` and blank excerpts.
    """
    if not relative_file or relative_file == PROJECT_PSEUDO_FILE:
        return None

    root_path = Path(root).resolve()
    path = (root_path / relative_file).resolve()
    if not path.is_relative_to(root_path) or not path.is_file():
        return None

    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Could not read {path} for snippet: {e}")
        return None

    lines = content.splitlines()
    match_index = next((i for i, line in enumerate(lines) if _DEFINITION_RE.search(line)), None)
    start = 0 if match_index is None else max(0, match_index - SNIPPET_LEAD_LINES)
    snippet = "\n".join(lines[start:start + SNIPPET_MAX_LINES]).strip()
    if not snippet:
        return None

    if len(snippet) > SNIPPET_MAX_CHARS:
        return f"{snippet[:SNIPPET_MAX_CHARS]}\n..."
    return snippet
