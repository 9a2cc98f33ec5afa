"""
Availability resolution.

Cross-references candidate slots against the doctor's existing appointments
for the date. Stateless and pure: identical inputs always yield an identical
result.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union
from datetime import date as Date

from practice_site.core.errors import ValidationError
from practice_site.core.scheduling.slots import (
    TimeSlot,
    format_time,
    parse_date,
    parse_time,
)

logger = logging.getLogger(__name__)

NO_SCHEDULE_MESSAGE = "El profesional no atiende en la fecha seleccionada."
FULLY_BOOKED_MESSAGE = "No quedan horarios disponibles para esta fecha."


class AvailabilityStatus(str, Enum):
    """Why a result has (or lacks) bookable slots."""

    AVAILABLE = "available"
    NO_SCHEDULE = "no_schedule"  # doctor has no schedule that day
    FULLY_BOOKED = "fully_booked"  # slots exist, all taken


@dataclass(frozen=True)
class Appointment:
    """An existing booking occupying `[start, end)`."""

    start: str
    end: str
    doctor_id: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, default_duration: int = 30) -> "Appointment":
        """Accept `start`/`end` or `time`/`hora` plus `duration`."""
        start = data.get("start") or data.get("time") or data.get("hora") or ""
        start_minutes = parse_time(start)
        end = data.get("end")
        if not end:
            end = format_time(start_minutes + int(data.get("duration") or default_duration))
        return cls(
            start=format_time(start_minutes),
            end=format_time(parse_time(end)),
            doctor_id=data.get("doctor_id"),
            date=data.get("date") or data.get("fecha"),
        )

    def overlaps(self, slot: TimeSlot) -> bool:
        return slot.start_minutes < parse_time(self.end) and parse_time(self.start) < slot.end_minutes


@dataclass(frozen=True)
class DoctorRef:
    id: str
    name: str = ""


@dataclass(frozen=True)
class AvailableSlotsResult:
    """Bookable view of one doctor's day."""

    doctor: DoctorRef
    date: str
    duration_minutes: int
    slots: tuple[TimeSlot, ...] = ()
    status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    message: Optional[str] = None

    @property
    def available_slots(self) -> list[TimeSlot]:
        return [s for s in self.slots if s.available]

    @property
    def has_availability(self) -> bool:
        return self.status == AvailabilityStatus.AVAILABLE

    def is_bookable(self, start: str) -> bool:
        """True if a slot starting at `start` is in this view and free."""
        try:
            minutes = parse_time(start)
        except ValidationError:
            return False
        return any(s.available and s.start_minutes == minutes for s in self.slots)

    def to_dict(self) -> dict:
        result = {
            "doctor": {"id": self.doctor.id, "name": self.doctor.name},
            "date": self.date,
            "duration_minutes": self.duration_minutes,
            "slots": [s.to_dict() for s in self.slots],
            "status": self.status.value,
        }
        if self.message:
            result["message"] = self.message
        return result

    @classmethod
    def from_payload(cls, data: dict) -> "AvailableSlotsResult":
        """Create from a `get-available-slots` response body.

        The backend's side-channel `message` is kept, but the status is
        derived from the slots themselves unless the payload states a known one.

        Raises:
            ValidationError: a slot with an unparseable time
        """
        doctor = data.get("doctor") or {}
        slots = tuple(TimeSlot.from_dict(s) for s in data.get("slots") or [])

        status = _derive_status(slots)
        status_value = data.get("status")
        if status_value:
            try:
                status = AvailabilityStatus(status_value)
            except ValueError:
                logger.warning(f"Unknown availability status {status_value!r}, deriving from slots")

        message = data.get("message") or None
        if status != AvailabilityStatus.AVAILABLE and not message:
            message = _message_for(status)

        return cls(
            doctor=DoctorRef(
                id=doctor.get("id") or "",
                name=doctor.get("nombre") or doctor.get("name") or "",
            ),
            date=data.get("date") or "",
            duration_minutes=int(data.get("duration") or data.get("duration_minutes") or 30),
            slots=slots,
            status=status,
            message=message,
        )


def resolve_availability(
    candidates: Iterable[TimeSlot],
    appointments: Iterable[Appointment],
    doctor: DoctorRef,
    on_date: Union[str, Date],
    duration_minutes: int,
) -> AvailableSlotsResult:
    """Mark candidates taken by existing appointments and de-duplicate.

    Appointments tagged with another doctor or date are ignored. Candidates
    sharing a start time collapse into one slot, which is unavailable if any
    instance is.

    Args:
        candidates: Output of `generate_slots`
        appointments: Existing bookings for the doctor/date
        doctor: Doctor the slots belong to
        on_date: Target date
        duration_minutes: Slot length used to generate candidates

    Returns:
        AvailableSlotsResult with an explicit status
    """
    date_iso = parse_date(on_date).isoformat()
    relevant = [
        a
        for a in appointments
        if (a.doctor_id is None or a.doctor_id == doctor.id)
        and (a.date is None or a.date == date_iso)
    ]

    merged: dict[int, TimeSlot] = {}
    for candidate in candidates:
        taken = any(a.overlaps(candidate) for a in relevant)
        slot = TimeSlot(start=candidate.start, end=candidate.end, available=not taken)

        existing = merged.get(candidate.start_minutes)
        if existing is None:
            merged[candidate.start_minutes] = slot
        elif existing.available and not slot.available:
            merged[candidate.start_minutes] = slot

    slots = tuple(merged[start] for start in sorted(merged))
    status = _derive_status(slots)

    logger.debug(
        f"Resolved {len(slots)} slots for doctor {doctor.id} on {date_iso}: "
        f"{sum(1 for s in slots if s.available)} free ({status.value})"
    )

    return AvailableSlotsResult(
        doctor=doctor,
        date=date_iso,
        duration_minutes=duration_minutes,
        slots=slots,
        status=status,
        message=_message_for(status),
    )


def _derive_status(slots: tuple[TimeSlot, ...]) -> AvailabilityStatus:
    if not slots:
        return AvailabilityStatus.NO_SCHEDULE
    if not any(s.available for s in slots):
        return AvailabilityStatus.FULLY_BOOKED
    return AvailabilityStatus.AVAILABLE


def _message_for(status: AvailabilityStatus) -> Optional[str]:
    if status == AvailabilityStatus.NO_SCHEDULE:
        return NO_SCHEDULE_MESSAGE
    if status == AvailabilityStatus.FULLY_BOOKED:
        return FULLY_BOOKED_MESSAGE
    return None
