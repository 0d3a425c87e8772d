"""Tests for the timetable engine types."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta, timezone

import pytest

from timetable.schedule import (
    ConflictError,
    EmptyScheduleError,
    Task,
    TaskNotFoundError,
    TimeParseError,
    Timetable,
    format_rfc3339,
    parse_rfc3339,
)
from timetable.store import DocumentMeta, MemoryTimetableStore

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)


def at(minutes: int = 0, seconds: int = 0) -> str:
    return format_rfc3339(NOW + timedelta(minutes=minutes, seconds=seconds))


class TestParseRFC3339:
    """Tests for RFC 3339 parsing."""

    def test_parses_utc_designator(self):
        assert parse_rfc3339("2030-01-01T12:00:00Z") == NOW

    def test_parses_numeric_offset(self):
        parsed = parse_rfc3339("2030-01-01T14:00:00+02:00")
        assert parsed == NOW
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_accepts_lowercase_separators(self):
        assert parse_rfc3339("2030-01-01t12:00:00z") == NOW

    def test_truncates_long_fractional_seconds(self):
        parsed = parse_rfc3339("2030-01-01T12:00:00.123456789Z")
        assert parsed.microsecond == 123456

    def test_pads_short_fractional_seconds(self):
        parsed = parse_rfc3339("2030-01-01T12:00:00.5Z")
        assert parsed.microsecond == 500000

    @pytest.mark.parametrize(
        "value",
        [
            "2030-01-01",
            "2030-01-01T12:00:00",
            "2030-01-01 12:00:00Z",
            "2030-13-01T12:00:00Z",
            "2030-01-01T12:00:00Z\n",
            " 2030-01-01T12:00:00Z",
            "\u0662030-01-01T12:00:00Z",
            "soon",
            "",
        ],
    )
    def test_rejects_non_rfc3339(self, value):
        with pytest.raises(TimeParseError):
            parse_rfc3339(value)

    def test_rejects_non_string(self):
        with pytest.raises(TimeParseError, match="not a string"):
            parse_rfc3339(1234)  # type: ignore[arg-type]

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_rfc3339("tomorrow")

    def test_format_uses_z_for_utc(self):
        assert format_rfc3339(NOW) == "2030-01-01T12:00:00Z"

    def test_format_keeps_other_offsets(self):
        tz = timezone(timedelta(hours=-5))
        value = datetime(2030, 1, 1, 7, 0, tzinfo=tz)
        assert format_rfc3339(value) == "2030-01-01T07:00:00-05:00"


class TestTask:
    def test_wire_shape(self):
        task = Task(id="build", run_at=at())
        assert task.to_dict() == {"id": "build", "runAt": "2030-01-01T12:00:00Z"}

    def test_from_dict(self):
        task = Task.from_dict({"id": "build", "runAt": at()})
        assert task == Task(id="build", run_at=at())

    @pytest.mark.parametrize(
        "data",
        [
            {"runAt": "2030-01-01T12:00:00Z"},
            {"id": "build"},
            {"id": 7, "runAt": "2030-01-01T12:00:00Z"},
            "build",
        ],
    )
    def test_from_dict_rejects_malformed(self, data):
        with pytest.raises(ValueError):
            Task.from_dict(data)


class TestInsert:
    """Tests for Timetable.insert."""

    def test_insert_adds_task(self):
        timetable = Timetable("t")
        timetable.insert(Task(id="a", run_at=at(5)))

        assert timetable.list() == [Task(id="a", run_at=at(5))]
        assert at(5) in timetable
        assert len(timetable) == 1

    def test_conflict_leaves_schedule_unchanged(self):
        timetable = Timetable("t")
        timetable.insert(Task(id="a", run_at=at(5)))

        with pytest.raises(ConflictError, match="schedule conflict") as exc_info:
            timetable.insert(Task(id="b", run_at=at(5)))

        assert exc_info.value.run_at == at(5)
        assert timetable.list() == [Task(id="a", run_at=at(5))]

    def test_same_instant_different_encoding_does_not_conflict(self):
        timetable = Timetable("t")
        timetable.insert(Task(id="a", run_at="2030-01-01T12:00:00Z"))
        timetable.insert(Task(id="b", run_at="2030-01-01T14:00:00+02:00"))

        assert len(timetable) == 2

    def test_same_id_in_different_slots_is_allowed(self):
        timetable = Timetable("t")
        timetable.insert(Task(id="a", run_at=at(5)))
        timetable.insert(Task(id="a", run_at=at(10)))

        assert len(timetable) == 2

    def test_insert_accepts_unparsable_run_at(self):
        timetable = Timetable("t")
        timetable.insert(Task(id="a", run_at="whenever"))

        assert "whenever" in timetable

    def test_insert_rejects_empty_run_at(self):
        timetable = Timetable("t")
        with pytest.raises(ValueError, match="runAt is required"):
            timetable.insert(Task(id="a", run_at=""))

    def test_insert_rejects_empty_id(self):
        timetable = Timetable("t")
        with pytest.raises(ValueError, match="id is required"):
            timetable.insert(Task(id="", run_at=at()))


class TestRemove:
    """Tests for Timetable.remove."""

    def test_remove_returns_removed_task(self):
        timetable = Timetable("t", [Task(id="a", run_at=at(5))])

        removed = timetable.remove(at(5))

        assert removed == Task(id="a", run_at=at(5))
        assert len(timetable) == 0

    def test_remove_missing_raises(self):
        timetable = Timetable("t", [Task(id="a", run_at=at(5))])

        with pytest.raises(TaskNotFoundError, match="not found"):
            timetable.remove(at(6))

        assert len(timetable) == 1

    def test_remove_matches_literal_string_only(self):
        timetable = Timetable("t", [Task(id="a", run_at="2030-01-01T12:00:00Z")])

        with pytest.raises(TaskNotFoundError):
            timetable.remove("2030-01-01T14:00:00+02:00")

    def test_remove_rejects_empty_run_at(self):
        timetable = Timetable("t")
        with pytest.raises(ValueError):
            timetable.remove("")

    def test_slot_can_be_reused_after_remove(self):
        timetable = Timetable("t", [Task(id="a", run_at=at(5))])
        timetable.remove(at(5))
        timetable.insert(Task(id="b", run_at=at(5)))

        assert timetable.list() == [Task(id="b", run_at=at(5))]


class TestNext:
    """Tests for Timetable.next."""

    def test_empty_returns_none(self):
        assert Timetable("t").next() is None

    def test_returns_chronologically_earliest(self):
        timetable = Timetable(
            "t",
            [
                Task(id="late", run_at=at(30)),
                Task(id="early", run_at=at(5)),
                Task(id="middle", run_at=at(10)),
            ],
        )

        assert timetable.next() == Task(id="early", run_at=at(5))

    def test_compares_instants_not_strings(self):
        # Lexically "2030-01-01T13:00:00+02:00" sorts after "...T12:00:00Z"
        # but it is an hour earlier.
        timetable = Timetable(
            "t",
            [
                Task(id="utc", run_at="2030-01-01T12:00:00Z"),
                Task(id="offset", run_at="2030-01-01T13:00:00+02:00"),
            ],
        )

        assert timetable.next().id == "offset"

    def test_tie_breaks_on_smallest_string(self):
        timetable = Timetable(
            "t",
            [
                Task(id="b", run_at="2030-01-01T13:00:00+01:00"),
                Task(id="a", run_at="2030-01-01T12:00:00Z"),
            ],
        )

        assert timetable.next().id == "a"

    def test_skips_unparsable_entries(self, caplog):
        timetable = Timetable(
            "t",
            [Task(id="bad", run_at="soon"), Task(id="good", run_at=at(5))],
        )

        with caplog.at_level(logging.WARNING):
            task = timetable.next()

        assert task == Task(id="good", run_at=at(5))
        assert any(r.getMessage() == "unparsable_run_at" for r in caplog.records)

    def test_all_unparsable_returns_none(self):
        timetable = Timetable("t", [Task(id="bad", run_at="soon")])
        assert timetable.next() is None

    def test_next_does_not_remove(self):
        timetable = Timetable("t", [Task(id="a", run_at=at(5))])
        timetable.next()
        assert len(timetable) == 1


class TestDelay:
    """Tests for Timetable.delay."""

    def test_empty_raises(self):
        with pytest.raises(EmptyScheduleError, match="empty schedule"):
            Timetable("t").delay(NOW)

    @pytest.mark.parametrize(
        ("minutes", "seconds", "expected"),
        [
            (4, 0, 4),
            (5, 0, 5),
            (4, 10, 5),
            (4, 59, 5),
            (1, 1, 2),
            (0, 30, 0),
            (0, 59, 0),
            (0, 0, 0),
            (-1, 0, -1),
            (-2, -30, -2),
        ],
    )
    def test_rounding(self, minutes, seconds, expected):
        timetable = Timetable("t", [Task(id="a", run_at=at(minutes, seconds))])
        assert timetable.delay(NOW) == expected

    def test_uses_earliest_task(self):
        timetable = Timetable(
            "t",
            [Task(id="a", run_at=at(60)), Task(id="b", run_at=at(4, 10))],
        )

        assert timetable.delay(NOW) == 5

    def test_skips_unparsable_entries(self):
        timetable = Timetable(
            "t",
            [Task(id="bad", run_at="soon"), Task(id="good", run_at=at(3))],
        )

        assert timetable.delay(NOW) == 3

    def test_all_unparsable_raises(self):
        timetable = Timetable("t", [Task(id="bad", run_at="soon")])

        with pytest.raises(TimeParseError, match="no parsable runAt"):
            timetable.delay(NOW)

    def test_defaults_to_current_time(self):
        run_at = format_rfc3339(datetime.now(UTC) + timedelta(minutes=5))
        timetable = Timetable("t", [Task(id="a", run_at=run_at)])

        assert timetable.delay() == 5


class TestSerialization:
    """Tests for the wire shape and document round trips."""

    def test_to_dict(self):
        timetable = Timetable("t", [Task(id="a", run_at=at(5))])

        assert timetable.to_dict() == {
            "key": "t",
            "schedule": [{"id": "a", "runAt": "2030-01-01T12:05:00Z"}],
        }

    def test_empty_timetable_has_empty_schedule(self):
        assert Timetable("t").to_dict() == {"key": "t", "schedule": []}

    def test_round_trip_ignores_schedule_order(self):
        original = Timetable(
            "t",
            [Task(id="a", run_at=at(5)), Task(id="b", run_at=at(1))],
        )
        document = original.to_dict()
        document["schedule"].reverse()

        restored = Timetable.from_dict(document)

        assert restored.key == "t"
        assert sorted(restored.list(), key=lambda t: t.run_at) == sorted(
            original.list(), key=lambda t: t.run_at
        )

    @pytest.mark.parametrize(
        "document",
        [
            {"schedule": []},
            {"key": "", "schedule": []},
            {"key": "t"},
            {"key": "t", "schedule": {"id": "a"}},
            {"key": "t", "schedule": [{"id": "a"}]},
            ["t"],
        ],
    )
    def test_from_dict_rejects_malformed(self, document):
        with pytest.raises(ValueError):
            Timetable.from_dict(document)

    def test_copy_is_independent(self):
        timetable = Timetable("t", [Task(id="a", run_at=at(5))])
        snapshot = timetable.copy()

        timetable.insert(Task(id="b", run_at=at(6)))

        assert len(snapshot) == 1
        assert len(timetable) == 2

    async def test_save_writes_document(self):
        store = MemoryTimetableStore()
        timetable = Timetable("t", [Task(id="a", run_at=at(5))])

        meta = await timetable.save(store)

        assert meta == DocumentMeta(id="timetables/t")
        assert store.documents["t"] == timetable.to_dict()
