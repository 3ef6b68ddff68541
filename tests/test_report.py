"""Tests for report generation."""

import json

import pytest

from debtcrasher.events import DecisionEvent, FileSaveEvent, LlmCallEvent
from debtcrasher.exceptions import EmptyResultError, SchemaError, TransportError
from debtcrasher.generation import parse_reasoning_response
from debtcrasher.report import NO_EVENTS_MESSAGE, ReportGenerator, render_reasoning_markdown
from debtcrasher.store import EventLogStore

REASONING = json.dumps(
    {
        "blocks": [
            {
                "time": "2024-05-01 10:05",
                "file": "a.py",
                "oneLineSummary": "Added login form",
                "problem": "Users could not sign in",
                "behavior": ["Validates the form"],
                "whyChosen": ["Simplest option"],
                "alternatives": [{"name": "OAuth", "pros": ["no passwords"], "cons": ["setup"]}],
                "concepts": [{"name": "CSRF", "whatItIs": "forged requests"}],
                "tradeoffs": ["No MFA yet"],
                "rememberThis": ["Hash passwords"],
            }
        ]
    }
)


@pytest.fixture
def store(project_root, clock):
    with EventLogStore(project_root, clock=clock) as store:
        yield store


def seed(store, clock) -> None:
    store.append(
        FileSaveEvent(timestamp=clock(), file_path="a.py", added_lines=4, removed_lines=1)
    )
    clock.advance(minutes=5)
    store.append(DecisionEvent(timestamp=clock(), file_path="a.py", note="plain sessions"))


class TestReportGenerator:
    async def test_no_events(self, store, clock, mock_provider) -> None:
        report = await ReportGenerator(store, mock_provider, clock=clock).generate()

        assert NO_EVENTS_MESSAGE in report.markdown
        assert report.report_path.read_text(encoding="utf-8") == report.markdown
        assert mock_provider.calls == []

    async def test_llm_calls_alone_count_as_no_events(self, store, clock) -> None:
        store.append(LlmCallEvent(timestamp=clock(), tool="openai"))
        report = await ReportGenerator(store, clock=clock).generate()
        assert NO_EVENTS_MESSAGE in report.markdown

    async def test_without_provider_renders_timeline(self, store, clock) -> None:
        seed(store, clock)

        report = await ReportGenerator(store, clock=clock).generate()

        assert report.reasoning_blocks is None
        assert len(report.base_blocks) == 1
        assert "## Timeline (1 blocks)" in report.markdown
        assert "- Changes: saved (+4/-1) / decision: plain sessions" in report.markdown
        assert report.report_path == store.reports_dir / "report.md"

    async def test_with_provider(self, store, clock, provider_factory) -> None:
        seed(store, clock)
        provider = provider_factory([REASONING])

        report = await ReportGenerator(store, provider, clock=clock).generate()

        assert report.markdown.startswith("# Development Report\n")
        assert "**Generated**: 2024-05-01 10:05" in report.markdown
        assert "## Overview (1 work items)" in report.markdown
        assert "Added login form" in report.markdown
        assert len(report.reasoning_blocks) == 1
        sent = json.loads(provider.calls[0]["user"])
        assert sent["blocks"][0]["changeSummary"] == "saved (+4/-1) / decision: plain sessions"

    @pytest.mark.parametrize(
        "response,error",
        [
            (TransportError(502, "bad gateway"), TransportError),
            ("not json at all", SchemaError),
            ('{"blocks": [{"time": "x"}]}', EmptyResultError),
        ],
    )
    async def test_failure_writes_nothing(
        self, store, clock, provider_factory, response, error
    ) -> None:
        seed(store, clock)
        report_path = store.reports_dir / "report.md"
        report_path.write_text("previous report", encoding="utf-8")

        with pytest.raises(error):
            await ReportGenerator(store, provider_factory([response]), clock=clock).generate()

        assert report_path.read_text(encoding="utf-8") == "previous report"

    async def test_snippets_attached(self, store, clock, project_root) -> None:
        (project_root / "a.py").write_text("def login():\n    return True\n")
        seed(store, clock)

        generator = ReportGenerator(store, clock=clock, snippet_root=project_root)

        assert generator.build_blocks()[0].code_snippet.startswith("def login():")


class TestRenderReasoning:
    def test_sections(self) -> None:
        markdown = render_reasoning_markdown(parse_reasoning_response(REASONING))

        assert "## 1. a.py (2024-05-01 10:05)" in markdown
        for heading in (
            "### What was done",
            "### Why this approach",
            "### Key concepts",
            "### Trade-offs",
            "### Remember next time",
        ):
            assert heading in markdown
        assert "  - Cons: setup" in markdown

    def test_empty_sections_omitted(self) -> None:
        blocks = parse_reasoning_response('[{"time": "t", "oneLineSummary": "s", "problem": "p"}]')
        markdown = render_reasoning_markdown(blocks)
        assert "###" not in markdown
        assert "## 1. project (t)" in markdown
