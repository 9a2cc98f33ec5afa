"""Tests for slot generation."""

import pytest
from datetime import date

from practice_site.core.content.models import WeeklyScheduleEntry
from practice_site.core.errors import ValidationError
from practice_site.core.scheduling.slots import (
    TimeSlot,
    day_of_week,
    format_time,
    generate_slots,
    parse_date,
    parse_time,
)

MONDAY = "2024-03-04"
SUNDAY = "2024-03-03"


def entry(day, start, end, doctor_id="doc-1"):
    return WeeklyScheduleEntry(doctor_id=doctor_id, day_of_week=day, start_time=start, end_time=end)


class TestTimeParsing:
    """Test time/date helpers."""

    def test_parse_time(self):
        assert parse_time("08:00") == 480
        assert parse_time("08:30:00") == 510
        assert parse_time("24:00") == 1440

    def test_parse_time_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_time("8h")
        assert exc_info.value.field == "time"

        with pytest.raises(ValidationError):
            parse_time("10:75")

    def test_format_time(self):
        assert format_time(0) == "00:00"
        assert format_time(615) == "10:15"

    def test_parse_date(self):
        assert parse_date("2024-03-04") == date(2024, 3, 4)
        assert parse_date(date(2024, 3, 4)) == date(2024, 3, 4)

    def test_parse_date_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date("04/03/2024")
        assert exc_info.value.field == "date"

    def test_day_of_week_sunday_is_zero(self):
        assert day_of_week(SUNDAY) == 0
        assert day_of_week(MONDAY) == 1
        assert day_of_week("2024-03-09") == 6


class TestGenerateSlots:
    """Test expansion of weekly schedules into slots."""

    def test_morning_block_thirty_minutes(self):
        """08:00-12:00 in 30 minute windows gives 8 slots."""
        slots = generate_slots([entry(1, "08:00", "12:00")], MONDAY, 30)

        assert len(slots) == 8
        assert slots[0] == TimeSlot(start="08:00", end="08:30")
        assert slots[-1] == TimeSlot(start="11:30", end="12:00")
        assert all(s.available for s in slots)

    def test_partial_window_is_dropped(self):
        """45 minutes over 09:00-10:00 gives only 09:00-09:45."""
        slots = generate_slots([entry(1, "09:00", "10:00")], MONDAY, 45)

        assert slots == [TimeSlot(start="09:00", end="09:45")]

    def test_other_weekdays_ignored(self):
        slots = generate_slots(
            [entry(2, "08:00", "12:00"), entry(0, "08:00", "09:00")],
            MONDAY,
            30,
        )

        assert slots == []

    def test_no_schedule_gives_empty(self):
        assert generate_slots([], MONDAY, 30) == []

    def test_accepts_seconds_in_schedule(self):
        slots = generate_slots([entry(1, "14:00:00", "15:00:00")], MONDAY, 30)

        assert [s.start for s in slots] == ["14:00", "14:30"]

    def test_multiple_blocks_sorted_by_start(self):
        slots = generate_slots(
            [entry(1, "14:00", "15:00"), entry(1, "08:00", "09:00")],
            MONDAY,
            30,
        )

        assert [s.start for s in slots] == ["08:00", "08:30", "14:00", "14:30"]

    def test_overlapping_blocks_keep_duplicates(self):
        """Deduplication happens in the resolver, not here."""
        slots = generate_slots(
            [entry(1, "08:00", "09:00"), entry(1, "08:30", "09:30")],
            MONDAY,
            30,
        )

        assert [s.start for s in slots] == ["08:00", "08:30", "08:30", "09:00"]

    def test_accepts_date_object(self):
        slots = generate_slots([entry(1, "08:00", "09:00")], date(2024, 3, 4), 30)

        assert len(slots) == 2

    @pytest.mark.parametrize("duration", [0, -15, None])
    def test_non_positive_duration_rejected(self, duration):
        with pytest.raises(ValidationError) as exc_info:
            generate_slots([entry(1, "08:00", "12:00")], MONDAY, duration)

        assert exc_info.value.field == "duration"

    def test_duration_longer_than_block(self):
        assert generate_slots([entry(1, "08:00", "08:20")], MONDAY, 30) == []


class TestTimeSlot:
    """Test TimeSlot dataclass."""

    def test_from_dict(self):
        slot = TimeSlot.from_dict({"start": "09:00:00", "end": "09:30:00", "available": False})

        assert slot.start == "09:00"
        assert slot.end == "09:30"
        assert slot.available is False

    def test_from_dict_with_alternate_keys(self):
        slot = TimeSlot.from_dict({"start_time": "10:00", "end_time": "10:30"})

        assert slot.start == "10:00"
        assert slot.available is True

    def test_to_dict(self):
        assert TimeSlot("10:00", "10:30").to_dict() == {
            "start": "10:00",
            "end": "10:30",
            "available": True,
        }
