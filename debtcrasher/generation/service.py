"""
Generation calls built on a provider: report reasoning and AI notes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from ..aggregation.blocks import BaseBlock
from ..events.types import WorkType
from .parser import parse_ai_note_payload, parse_reasoning_response
from .prompts import AI_NOTE_SYSTEM_PROMPT, REPORT_REASONING_PROMPT
from .providers import GenerationProvider
from .types import AiNotePayload, AiNoteRequest, ReasoningBlock

logger = logging.getLogger(__name__)

DIFF_SNIPPET_LINES = 120
FULL_FILE_MAX_LINES = 200
TAIL_LINES = 80


def build_reasoning_payload(blocks: Sequence[BaseBlock]) -> str:
    """Serialize BaseBlocks as the user prompt of a reasoning request."""
    return json.dumps({"blocks": [block.to_dict() for block in blocks]}, indent=2, ensure_ascii=False)


async def generate_reasoning(
    provider: GenerationProvider,
    blocks: Sequence[BaseBlock],
) -> list[ReasoningBlock]:
    """
    Turn BaseBlocks into validated ReasoningBlocks with one provider call.

    Raises:
        TransportError: The provider call failed
        SchemaError: The response had no usable JSON or the wrong shape
        EmptyResultError: No block in the response passed validation
    """
    logger.info(f"Requesting reasoning for {len(blocks)} blocks from {provider.name}")
    content = await provider.complete(
        REPORT_REASONING_PROMPT,
        build_reasoning_payload(blocks),
        model=provider.reasoning_model,
    )
    return parse_reasoning_response(content)


def build_ai_note_prompt(request: AiNoteRequest) -> str:
    """Render an AI note request as the user prompt."""
    recent = "\n".join(request.recent_file_saves) or "(no recent file_save events)"
    hint = request.user_hint.strip() if request.user_hint and request.user_hint.strip() else "(none)"

    # chore is the usual default, so let the model refine it
    if request.work_type is WorkType.CHORE:
        work_type_line = "workType: chore (please infer actual type if possible based on diff)"
    else:
        work_type_line = f"workType: {request.work_type.value}"

    return "\n".join(
        [
            work_type_line,
            f"filePath: {request.file_path}",
            f"languageId: {request.language_id}",
            f"userHint: {hint}",
            "recent file_save events:",
            recent,
            "diff or snippet:",
            request.diff_snippet,
        ]
    )


async def generate_ai_note(provider: GenerationProvider, request: AiNoteRequest) -> AiNotePayload:
    """
    Ask the provider for a structured note about recent work on a file.

    Raises:
        TransportError: The provider call failed
        SchemaError: The response did not hold a usable note object
    """
    content = await provider.complete(
        AI_NOTE_SYSTEM_PROMPT,
        build_ai_note_prompt(request),
        model=provider.note_model,
    )
    return parse_ai_note_payload(content)


def build_diff_snippet(current: str, cached: str | None = None) -> str:
    """Excerpt of a file for an AI note request.

    With a differing cached version: the first 120 lines before and after.
    Otherwise the whole file when it has at most 200 lines, else its first
    120 and last 80 lines.
    """
    if cached and cached != current:
        before = "\n".join(cached.splitlines()[:DIFF_SNIPPET_LINES])
        after = "\n".join(current.splitlines()[:DIFF_SNIPPET_LINES])
        return "\n".join(["before (truncated):", before, "", "after (truncated):", after])

    lines = current.splitlines()
    if len(lines) <= FULL_FILE_MAX_LINES:
        return "\n".join(lines)

    head = "\n".join(lines[:DIFF_SNIPPET_LINES])
    tail = "\n".join(lines[-TAIL_LINES:])
    return "\n".join([head, "", "...", "", tail])
