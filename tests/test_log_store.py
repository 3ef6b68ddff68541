"""Tests for the rotating event log store."""

import json
from pathlib import Path

import pytest

from debtcrasher.events import DecisionEvent, FileSaveEvent
from debtcrasher.exceptions import LogWriteError
from debtcrasher.store import EventLogStore, shard_sort_key


def make_save(clock, path: str = "a.py", added: int = 1) -> FileSaveEvent:
    return FileSaveEvent(
        timestamp=clock(), file_path=path, branch="main", added_lines=added, removed_lines=0
    )


def write_shard(logs_dir: Path, name: str, *events) -> None:
    logs_dir.mkdir(parents=True, exist_ok=True)
    with open(logs_dir / name, "w", encoding="utf-8") as f:
        for event in events:
            f.write(json.dumps(event.to_dict()) + "\n")


class TestAppendAndRead:
    """Round trips through the store."""

    def test_directories_created(self, project_root, clock) -> None:
        """Opening the store creates the logs and reports directories."""
        with EventLogStore(project_root, clock=clock) as store:
            assert store.logs_dir == project_root / ".devcrasher" / "logs"
            assert store.logs_dir.is_dir()
            assert store.reports_dir.is_dir()

    def test_events_read_back_in_order(self, project_root, clock) -> None:
        """Events come back in append order."""
        with EventLogStore(project_root, clock=clock) as store:
            written = []
            for i in range(5):
                event = make_save(clock, f"f{i}.py", added=i)
                store.append(event)
                written.append(event)
                clock.advance(minutes=1)

            assert store.read_all() == written
            assert store.event_count == 5

    def test_append_returns_dated_shard(self, project_root, clock) -> None:
        """The first append of a day goes to the base shard."""
        with EventLogStore(project_root, clock=clock) as store:
            path = store.append(make_save(clock))
        assert path.name == "2024-05-01.log"

    def test_one_json_object_per_line(self, project_root, clock) -> None:
        """Each event is stored as one JSON line."""
        with EventLogStore(project_root, clock=clock) as store:
            store.append(make_save(clock))
            store.append(DecisionEvent(timestamp=clock(), note="ship it"))
            path = store.active_shard_path()

        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["type"] for line in lines] == ["file_save", "decision"]

    def test_new_day_uses_new_shard(self, project_root, clock) -> None:
        """A date change starts a new base shard."""
        with EventLogStore(project_root, clock=clock) as store:
            store.append(make_save(clock))
            clock.advance(days=1)
            path = store.append(make_save(clock))

            assert path.name == "2024-05-02.log"
            assert len(store.read_all()) == 2

    def test_empty_store_reads_nothing(self, project_root) -> None:
        """A store with no logs directory reads as empty."""
        store = EventLogStore(project_root)
        assert store.read_all() == []
        assert store.shard_paths() == []

    def test_close_releases_handle(self, project_root, clock) -> None:
        """Closing drops the active shard handle."""
        store = EventLogStore(project_root, clock=clock).open()
        store.append(make_save(clock))
        assert store.is_open
        store.close()
        assert not store.is_open

    def test_invalid_threshold(self, project_root) -> None:
        """A non-positive rotation threshold is rejected."""
        with pytest.raises(ValueError):
            EventLogStore(project_root, max_shard_bytes=0)


class TestRotation:
    """Size-based shard rotation."""

    def test_overflow_numbering_starts_at_two(self, project_root, clock) -> None:
        """Overflow shards are numbered -2, -3, ..."""
        with EventLogStore(project_root, max_shard_bytes=1, clock=clock) as store:
            names = [store.append(make_save(clock, added=i)).name for i in range(3)]

        assert names == ["2024-05-01.log", "2024-05-01-2.log", "2024-05-01-3.log"]

    def test_overflow_shard_reused_until_full(self, project_root, clock) -> None:
        """Appends stay on an overflow shard until it reaches the threshold."""
        with EventLogStore(project_root, max_shard_bytes=200, clock=clock) as store:
            names = [store.append(make_save(clock, added=i)).name for i in range(5)]

        assert names == [
            "2024-05-01.log",
            "2024-05-01.log",
            "2024-05-01-2.log",
            "2024-05-01-2.log",
            "2024-05-01-3.log",
        ]

    def test_rotated_events_read_in_order(self, project_root, clock) -> None:
        """Append order survives more than ten shards."""
        with EventLogStore(project_root, max_shard_bytes=1, clock=clock) as store:
            written = [make_save(clock, added=i) for i in range(12)]
            for event in written:
                store.append(event)

            result = store.read_all_with_stats()

        assert result.events == written
        assert result.shards_read == 12

    def test_gap_in_numbering_is_skipped(self, project_root, clock) -> None:
        """A full shard at the computed index pushes rotation past it."""
        store = EventLogStore(project_root, max_shard_bytes=1, clock=clock)
        logs = store.logs_dir
        write_shard(logs, "2024-05-01.log", make_save(clock))
        write_shard(logs, "2024-05-01-3.log", make_save(clock))

        assert store.active_shard_path().name == "2024-05-01-4.log"


class TestShardOrdering:
    """Numeric ordering of shard files."""

    def test_numeric_index_ordering(self, tmp_path) -> None:
        """-10 sorts after -9 and the base shard sorts first."""
        names = ["2024-05-01-10.log", "2024-05-01-2.log", "2024-05-01.log", "2024-05-01-9.log"]
        ordered = sorted((tmp_path / n for n in names), key=shard_sort_key)
        assert [p.name for p in ordered] == [
            "2024-05-01.log",
            "2024-05-01-2.log",
            "2024-05-01-9.log",
            "2024-05-01-10.log",
        ]

    def test_read_all_follows_numeric_order(self, project_root, clock) -> None:
        """read_all walks shards in numeric order."""
        store = EventLogStore(project_root, clock=clock)
        first = make_save(clock, "base.py")
        ninth = make_save(clock, "nine.py")
        tenth = make_save(clock, "ten.py")
        write_shard(store.logs_dir, "2024-05-01-10.log", tenth)
        write_shard(store.logs_dir, "2024-05-01-9.log", ninth)
        write_shard(store.logs_dir, "2024-05-01.log", first)

        assert [e.file_path for e in store.read_all()] == ["base.py", "nine.py", "ten.py"]


class TestCorruption:
    """Malformed lines are skipped, never raised."""

    def test_corrupt_lines_skipped_and_counted(self, project_root, clock, caplog) -> None:
        """Bad JSON, bad UTF-8 and unknown types are counted and logged."""
        store = EventLogStore(project_root, clock=clock)
        store.ensure_directories()
        good = make_save(clock)
        with open(store.logs_dir / "2024-05-01.log", "wb") as f:
            f.write((json.dumps(good.to_dict()) + "\n").encode())
            f.write(b'{"type": "file_save", "timest\n')
            f.write(b"\xff\xfe not utf-8\n")
            f.write(b'{"type": "mystery", "timestamp": "2024-05-01T10:00:00Z"}\n')
            f.write(b"\n")
            f.write((json.dumps(good.to_dict()) + "\n").encode())

        with caplog.at_level("WARNING"):
            result = store.read_all_with_stats()

        assert result.events == [good, good]
        assert result.skipped_lines == 3
        assert "Skipped 3 malformed" in caplog.text

    def test_truncated_final_line(self, project_root, clock) -> None:
        """A partial last line from a crash is skipped."""
        store = EventLogStore(project_root, clock=clock)
        store.ensure_directories()
        line = json.dumps(make_save(clock).to_dict())
        (store.logs_dir / "2024-05-01.log").write_text(line + "\n" + line[:20], encoding="utf-8")

        result = store.read_all_with_stats()

        assert len(result.events) == 1
        assert result.skipped_lines == 1

    def test_deeply_nested_line_skipped(self, project_root, clock) -> None:
        """A line nested too deep to decode is skipped like any other bad line."""
        store = EventLogStore(project_root, clock=clock)
        store.ensure_directories()
        good = make_save(clock)
        (store.logs_dir / "2024-05-01.log").write_text(
            "[" * 200000 + "\n" + json.dumps(good.to_dict()) + "\n", encoding="utf-8"
        )

        result = store.read_all_with_stats()

        assert result.events == [good]
        assert result.skipped_lines == 1

    def test_foreign_files_ignored(self, project_root, clock) -> None:
        """Files that are not shards are not read."""
        store = EventLogStore(project_root, clock=clock)
        store.ensure_directories()
        (store.logs_dir / "notes.txt").write_text("hello")

        assert store.read_all() == []


class TestWriteFailures:
    """Filesystem errors during append."""

    def test_unwritable_state_dir_raises(self, project_root, clock) -> None:
        """A blocked logs directory raises LogWriteError and appends nothing."""
        state = project_root / ".devcrasher"
        state.mkdir()
        (state / "logs").write_text("blocked")

        store = EventLogStore(project_root, clock=clock)

        with pytest.raises(LogWriteError) as exc_info:
            store.append(make_save(clock))

        assert exc_info.value.details["operation"] == "create_directory"
        assert store.event_count == 0
