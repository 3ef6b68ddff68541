"""
External generation step: providers, prompts and response validation.

Usage:

    >>> from debtcrasher.generation import create_provider, generate_reasoning
    >>> async with create_provider("openai", api_key) as provider:
    ...     reasoning = await generate_reasoning(provider, base_blocks)
"""

from .parser import extract_json, parse_ai_note_payload, parse_reasoning_response
from .providers import (
    PROVIDERS,
    DeepSeekProvider,
    GeminiProvider,
    GenerationProvider,
    OpenAIProvider,
    create_provider,
)
from .service import (
    build_ai_note_prompt,
    build_diff_snippet,
    build_reasoning_payload,
    generate_ai_note,
    generate_reasoning,
)
from .types import AiNotePayload, AiNoteRequest, AlternativeInfo, ConceptInfo, ReasoningBlock

__all__ = [
    # Types
    "ReasoningBlock",
    "ConceptInfo",
    "AlternativeInfo",
    "AiNotePayload",
    "AiNoteRequest",
    # Parsing
    "extract_json",
    "parse_reasoning_response",
    "parse_ai_note_payload",
    # Providers
    "GenerationProvider",
    "OpenAIProvider",
    "DeepSeekProvider",
    "GeminiProvider",
    "PROVIDERS",
    "create_provider",
    # Calls
    "generate_reasoning",
    "generate_ai_note",
    "build_reasoning_payload",
    "build_ai_note_prompt",
    "build_diff_snippet",
]
