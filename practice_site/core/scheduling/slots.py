"""
Slot generation.

Expands a doctor's recurring weekly schedule into the full grid of
fixed-duration windows for one calendar date. Existing bookings are not
considered here; see availability.py.
"""

import logging
from dataclasses import dataclass
from datetime import date as Date
from typing import Iterable, Union

from practice_site.core.content.models import WeeklyScheduleEntry
from practice_site.core.errors import ValidationError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class TimeSlot:
    """A candidate appointment window `[start, end)` on a single day."""

    start: str  # HH:MM
    end: str  # HH:MM
    available: bool = True

    @property
    def start_minutes(self) -> int:
        return parse_time(self.start)

    @property
    def end_minutes(self) -> int:
        return parse_time(self.end)

    @classmethod
    def from_dict(cls, data: dict) -> "TimeSlot":
        """Create from API response dict."""
        return cls(
            start=format_time(parse_time(data.get("start", data.get("start_time", "")))),
            end=format_time(parse_time(data.get("end", data.get("end_time", "")))),
            available=bool(data.get("available", True)),
        )

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "available": self.available}


def parse_time(value: str) -> int:
    """Parse `HH:MM` or `HH:MM:SS` into minutes after midnight."""
    try:
        parts = str(value).strip().split(":")
        hours, minutes = int(parts[0]), int(parts[1])
    except (IndexError, ValueError) as e:
        raise ValidationError(f"Hora inválida: {value!r}", field="time") from e

    if not (0 <= hours <= 24 and 0 <= minutes < 60) or hours * 60 + minutes > MINUTES_PER_DAY:
        raise ValidationError(f"Hora inválida: {value!r}", field="time")
    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    """Format minutes after midnight as `HH:MM`."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: Union[str, Date]) -> Date:
    """Accept a date or an ISO `YYYY-MM-DD` string."""
    if isinstance(value, Date):
        return value
    try:
        return Date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Fecha inválida: {value!r}", field="date") from e


def day_of_week(value: Union[str, Date]) -> int:
    """Weekday index with 0=Sunday .. 6=Saturday."""
    return (parse_date(value).weekday() + 1) % 7


def generate_slots(
    entries: Iterable[WeeklyScheduleEntry],
    on_date: Union[str, Date],
    duration_minutes: int,
) -> list[TimeSlot]:
    """Generate every window of `duration_minutes` for `on_date`.

    Each matching entry is walked independently from its start time; a window
    is emitted only when it ends at or before the entry's end time. Windows
    from different entries are concatenated (duplicates allowed) and ordered
    by start time, ties keeping entry order.

    Args:
        entries: Weekly schedule entries (typically for one doctor)
        on_date: Target date
        duration_minutes: Window length

    Returns:
        Slots, all marked available

    Raises:
        ValidationError: duration is not positive, or a bad date/time
    """
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError(
            f"La duración del turno debe ser positiva: {duration_minutes}",
            field="duration",
        )

    weekday = day_of_week(on_date)
    generated: list[tuple[int, TimeSlot]] = []

    for entry in entries:
        if entry.day_of_week != weekday:
            continue

        block_start = parse_time(entry.start_time)
        block_end = parse_time(entry.end_time)

        cursor = block_start
        while cursor + duration_minutes <= block_end:
            generated.append(
                (cursor, TimeSlot(start=format_time(cursor), end=format_time(cursor + duration_minutes)))
            )
            cursor += duration_minutes

    # sort is stable: equal starts keep entry order
    generated.sort(key=lambda item: item[0])
    logger.debug(f"Generated {len(generated)} slots for {on_date} (weekday {weekday})")
    return [slot for _, slot in generated]
