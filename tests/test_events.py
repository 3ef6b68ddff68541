"""Tests for raw event serialization."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from debtcrasher.events import (
    AiNoteEvent,
    BugfixEvent,
    DecisionEvent,
    EventType,
    FileSaveEvent,
    LlmCallEvent,
    WorkType,
    event_from_dict,
    format_timestamp,
    parse_timestamp,
)

TS = datetime(2024, 5, 1, 10, 0, 0, 123000, tzinfo=UTC)


class TestTimestamps:
    def test_format_uses_z_suffix_and_millis(self) -> None:
        assert format_timestamp(TS) == "2024-05-01T10:00:00.123Z"

    def test_format_converts_offsets_to_utc(self) -> None:
        local = datetime(2024, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2024-05-01T10:00:00.000Z"

    def test_parse_z_suffix(self) -> None:
        assert parse_timestamp("2024-05-01T10:00:00.123Z") == TS

    def test_parse_naive_is_utc(self) -> None:
        assert parse_timestamp("2024-05-01T10:00:00").tzinfo is not None

    @pytest.mark.parametrize("value", [None, "", 42, "yesterday"])
    def test_parse_rejects_garbage(self, value) -> None:
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestWorkType:
    def test_known_value(self) -> None:
        assert WorkType.parse("refactor") is WorkType.REFACTOR

    def test_unknown_value_falls_back_to_chore(self) -> None:
        assert WorkType.parse("docs") is WorkType.CHORE
        assert WorkType.parse(None) is WorkType.CHORE

    def test_explicit_default(self) -> None:
        assert WorkType.parse("docs", WorkType.FEATURE) is WorkType.FEATURE


class TestSerialization:
    def test_file_save_wire_format(self) -> None:
        event = FileSaveEvent(
            timestamp=TS,
            file_path="src/app.py",
            branch="main",
            added_lines=3,
            removed_lines=1,
            language_id="python",
        )

        assert event.to_dict() == {
            "type": "file_save",
            "timestamp": "2024-05-01T10:00:00.123Z",
            "branch": "main",
            "filePath": "src/app.py",
            "addedLines": 3,
            "removedLines": 1,
            "languageId": "python",
        }

    def test_note_line_context(self) -> None:
        event = DecisionEvent(timestamp=TS, file_path="a.py", note="use sqlite", line=12)

        data = event.to_dict()

        assert data["type"] == "decision"
        assert data["context"] == {"line": 12}
        assert "branch" not in data

    def test_note_without_file_has_no_path(self) -> None:
        data = BugfixEvent(timestamp=TS, note="fixed race").to_dict()
        assert "filePath" not in data
        assert "context" not in data

    def test_ai_note_optional_fields_omitted(self) -> None:
        event = AiNoteEvent(
            timestamp=TS,
            file_path="a.py",
            work_type=WorkType.FEATURE,
            main_goal="add login",
            change_summary="new form",
            important_functions=("login",),
        )

        data = event.to_dict()

        assert data["workType"] == "feature"
        assert data["importantFunctions"] == ["login"]
        assert "risks" not in data
        assert "nextSteps" not in data

    @pytest.mark.parametrize(
        "event",
        [
            FileSaveEvent(timestamp=TS, file_path="a.py", added_lines=1, removed_lines=0),
            DecisionEvent(timestamp=TS, note="n", file_path="a.py", line=3),
            BugfixEvent(timestamp=TS, note="n", branch="dev"),
            AiNoteEvent(
                timestamp=TS,
                work_type=WorkType.BUGFIX,
                main_goal="g",
                risks="r",
                next_steps="s",
                important_functions=("f", "g"),
            ),
            LlmCallEvent(timestamp=TS, tool="openai", args_summary="report 2 blocks"),
        ],
    )
    def test_from_dict_restores_event(self, event) -> None:
        assert event_from_dict(event.to_dict()) == event


class TestEventFromDict:
    def test_dispatches_on_type(self) -> None:
        record = {"type": "bugfix", "timestamp": "2024-05-01T10:00:00Z", "note": "x"}
        event = event_from_dict(record)
        assert isinstance(event, BugfixEvent)
        assert event.event_type is EventType.BUGFIX

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="unknown event type"):
            event_from_dict({"type": "telemetry", "timestamp": "2024-05-01T10:00:00Z"})

    def test_not_an_object(self) -> None:
        with pytest.raises(ValueError):
            event_from_dict(["file_save"])

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValueError):
            event_from_dict(
                {
                    "type": "file_save",
                    "timestamp": "2024-05-01T10:00:00Z",
                    "addedLines": -1,
                    "removedLines": 0,
                }
            )

    def test_missing_note_rejected(self) -> None:
        with pytest.raises(ValueError):
            event_from_dict({"type": "decision", "timestamp": "2024-05-01T10:00:00Z"})

    def test_unknown_work_type_becomes_chore(self) -> None:
        event = event_from_dict(
            {
                "type": "ai_note",
                "timestamp": "2024-05-01T10:00:00Z",
                "workType": "docs",
                "mainGoal": "g",
                "importantFunctions": ["a", 3, "b"],
            }
        )
        assert event.work_type is WorkType.CHORE
        assert event.important_functions == ("a", "b")
