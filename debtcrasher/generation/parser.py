"""
Recovery and validation of structured results from free-text responses.

Generation endpoints are asked for a single JSON value but may wrap it in
commentary or code fences, or cut it short. The parser tries, in order:

1. the whole text as JSON
2. the span from the first ``{`` to the last ``}``
3. the span from the first ``[`` to the last ``]``

and fails with SchemaError when none of these parse. A structurally valid
response that yields no acceptable blocks fails with EmptyResultError, so a
degenerate response never turns into an empty report.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..events.types import WorkType
from ..exceptions import EmptyResultError, SchemaError
from .types import AiNotePayload, AlternativeInfo, ConceptInfo, ReasoningBlock, coerce_str_list

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("time", "oneLineSummary", "problem")


def _slice_between(text: str, open_char: str, close_char: str) -> str | None:
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def extract_json(content: Any, *, allow_array: bool = True) -> Any:
    """
    Parse a JSON value out of free text.

    Args:
        content: Response text
        allow_array: Whether to fall back to ``[``/``]`` extraction

    Returns:
        The decoded JSON value

    Raises:
        SchemaError: If the content is not text or no JSON can be decoded
    """
    if not isinstance(content, str) or not content.strip():
        raise SchemaError("response was empty")

    try:
        return json.loads(content)
    except (json.JSONDecodeError, RecursionError):
        pass

    text = content.strip()
    candidate = _slice_between(text, "{", "}")
    if candidate is None and allow_array:
        candidate = _slice_between(text, "[", "]")
    if candidate is None:
        raise SchemaError("no JSON found in response", content)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise SchemaError(f"extracted JSON did not parse: {e.msg}", content) from e
    except RecursionError as e:
        raise SchemaError("extracted JSON is nested too deeply", content) from e


def _normalize_block(raw: Any) -> ReasoningBlock | None:
    if not isinstance(raw, dict):
        return None
    for key in _REQUIRED_FIELDS:
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            return None

    concepts = raw.get("concepts")
    alternatives = raw.get("alternatives")
    file = raw.get("file")
    return ReasoningBlock(
        time=raw["time"],
        file=file if isinstance(file, str) else "",
        one_line_summary=raw["oneLineSummary"],
        problem=raw["problem"],
        behavior=coerce_str_list(raw.get("behavior")),
        concepts=[
            ConceptInfo.from_dict(c) for c in (concepts if isinstance(concepts, list) else [])
            if isinstance(c, dict)
        ],
        alternatives=[
            AlternativeInfo.from_dict(a)
            for a in (alternatives if isinstance(alternatives, list) else [])
            if isinstance(a, dict)
        ],
        why_chosen=coerce_str_list(raw.get("whyChosen")),
        tradeoffs=coerce_str_list(raw.get("tradeoffs")),
        remember_this=coerce_str_list(raw.get("rememberThis")),
    )


def parse_reasoning_response(content: Any) -> list[ReasoningBlock]:
    """
    Parse and validate a reasoning response.

    Accepts either a bare array of blocks or an object with a ``blocks``
    array. Entries missing a non-empty ``time``, ``oneLineSummary`` or
    ``problem`` are discarded.

    Raises:
        SchemaError: Unparseable text or a value of the wrong shape
        EmptyResultError: Every candidate block was discarded
    """
    parsed = extract_json(content)
    candidates = parsed if isinstance(parsed, list) else None
    if candidates is None and isinstance(parsed, dict):
        blocks = parsed.get("blocks")
        candidates = blocks if isinstance(blocks, list) else None
    if candidates is None:
        raise SchemaError("expected a list of blocks or an object with a 'blocks' list", content)

    valid = [block for block in map(_normalize_block, candidates) if block is not None]
    if not valid:
        raise EmptyResultError(len(candidates))

    if len(valid) < len(candidates):
        logger.info(f"Discarded {len(candidates) - len(valid)} of {len(candidates)} reasoning blocks")
    return valid


def parse_ai_note_payload(content: Any) -> AiNotePayload:
    """
    Parse an AI note response (a single JSON object).

    Unknown work types fall back to chore.

    Raises:
        SchemaError: Unparseable text, a non-object value, or missing
            ``mainGoal``/``changeSummary``
    """
    parsed = extract_json(content, allow_array=False)
    if not isinstance(parsed, dict):
        raise SchemaError("expected a JSON object for the AI note", content)

    main_goal = parsed.get("mainGoal")
    change_summary = parsed.get("changeSummary")
    if not isinstance(main_goal, str) or not main_goal.strip():
        raise SchemaError("AI note is missing 'mainGoal'", content)
    if not isinstance(change_summary, str):
        raise SchemaError("AI note is missing 'changeSummary'", content)

    risks = parsed.get("risks")
    next_steps = parsed.get("nextSteps")
    return AiNotePayload(
        work_type=WorkType.parse(parsed.get("workType")),
        main_goal=main_goal,
        change_summary=change_summary,
        important_functions=coerce_str_list(parsed.get("importantFunctions")),
        risks=risks if isinstance(risks, str) and risks else None,
        next_steps=next_steps if isinstance(next_steps, str) and next_steps else None,
    )
