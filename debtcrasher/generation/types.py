"""
Types exchanged with the external generation step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..events.types import WorkType


def coerce_str_list(value: Any) -> list[str]:
    """Coerce a wire value to a list of strings; anything else becomes []."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass
class ConceptInfo:
    """A technical concept surfaced by a change."""

    name: str
    what_it_is: str = ""
    why_relevant_here: str = ""
    pitfalls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "whatItIs": self.what_it_is,
            "whyRelevantHere": self.why_relevant_here,
            "pitfalls": list(self.pitfalls),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConceptInfo:
        return cls(
            name=_str(data.get("name")),
            what_it_is=_str(data.get("whatItIs")),
            why_relevant_here=_str(data.get("whyRelevantHere")),
            pitfalls=coerce_str_list(data.get("pitfalls")),
        )


@dataclass
class AlternativeInfo:
    """An alternative approach with its pros and cons."""

    name: str
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "pros": list(self.pros), "cons": list(self.cons)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AlternativeInfo:
        return cls(
            name=_str(data.get("name")),
            pros=coerce_str_list(data.get("pros")),
            cons=coerce_str_list(data.get("cons")),
        )


@dataclass
class ReasoningBlock:
    """A validated narrative unit recovered from a generation response.

    ``time``, ``one_line_summary`` and ``problem`` are guaranteed non-empty
    when built by the parser; list fields are always lists.
    """

    time: str
    file: str
    one_line_summary: str
    problem: str
    behavior: list[str] = field(default_factory=list)
    concepts: list[ConceptInfo] = field(default_factory=list)
    alternatives: list[AlternativeInfo] = field(default_factory=list)
    why_chosen: list[str] = field(default_factory=list)
    tradeoffs: list[str] = field(default_factory=list)
    remember_this: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "file": self.file,
            "oneLineSummary": self.one_line_summary,
            "problem": self.problem,
            "behavior": list(self.behavior),
            "concepts": [c.to_dict() for c in self.concepts],
            "alternatives": [a.to_dict() for a in self.alternatives],
            "whyChosen": list(self.why_chosen),
            "tradeoffs": list(self.tradeoffs),
            "rememberThis": list(self.remember_this),
        }


@dataclass
class AiNotePayload:
    """Structured note describing recent work on one file."""

    work_type: WorkType
    main_goal: str
    change_summary: str
    important_functions: list[str] = field(default_factory=list)
    risks: str | None = None
    next_steps: str | None = None


@dataclass
class AiNoteRequest:
    """Inputs for generating an AI note.

    Attributes:
        work_type: Work type chosen by the developer
        file_path: Project-relative path of the file
        language_id: Host language identifier
        recent_file_saves: Human-readable lines for the latest saves
        diff_snippet: Before/after or plain excerpt of the file
        user_hint: Optional one-line hint from the developer
    """

    work_type: WorkType
    file_path: str
    language_id: str
    recent_file_saves: list[str]
    diff_snippet: str
    user_hint: str | None = None
