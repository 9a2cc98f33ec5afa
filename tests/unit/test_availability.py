"""Tests for availability resolution."""

import pytest

from practice_site.core.content.models import WeeklyScheduleEntry
from practice_site.core.scheduling.availability import (
    FULLY_BOOKED_MESSAGE,
    NO_SCHEDULE_MESSAGE,
    Appointment,
    AvailabilityStatus,
    AvailableSlotsResult,
    DoctorRef,
    resolve_availability,
)
from practice_site.core.scheduling.slots import TimeSlot, generate_slots

MONDAY = "2024-03-04"
DOCTOR = DoctorRef(id="doc-1", name="Ana Pérez")


@pytest.fixture
def morning_slots():
    """08:00-12:00 Monday, 30 minute windows."""
    schedule = [WeeklyScheduleEntry(doctor_id="doc-1", day_of_week=1, start_time="08:00", end_time="12:00")]
    return generate_slots(schedule, MONDAY, 30)


class TestAppointment:
    """Test Appointment parsing and overlap."""

    def test_from_dict_with_duration(self):
        appt = Appointment.from_dict({"hora": "10:00:00", "duration": 45, "fecha": MONDAY})

        assert appt.start == "10:00"
        assert appt.end == "10:45"
        assert appt.date == MONDAY

    def test_from_dict_defaults_duration(self):
        appt = Appointment.from_dict({"time": "10:00"})

        assert appt.end == "10:30"

    def test_overlap_is_half_open(self):
        appt = Appointment(start="10:00", end="10:30")

        assert appt.overlaps(TimeSlot("10:00", "10:30"))
        assert appt.overlaps(TimeSlot("09:45", "10:15"))
        assert not appt.overlaps(TimeSlot("09:30", "10:00"))
        assert not appt.overlaps(TimeSlot("10:30", "11:00"))


class TestResolveAvailability:
    """Test marking of taken slots."""

    def test_single_appointment_takes_one_slot(self, morning_slots):
        """A 10:00-10:30 booking marks exactly the 10:00 slot."""
        result = resolve_availability(
            morning_slots,
            [Appointment(start="10:00", end="10:30")],
            DOCTOR,
            MONDAY,
            30,
        )

        taken = [s.start for s in result.slots if not s.available]
        assert taken == ["10:00"]
        assert len(result.available_slots) == 7
        assert result.status == AvailabilityStatus.AVAILABLE
        assert result.message is None

    def test_long_appointment_spans_slots(self, morning_slots):
        result = resolve_availability(
            morning_slots,
            [Appointment(start="09:15", end="10:15")],
            DOCTOR,
            MONDAY,
            30,
        )

        taken = [s.start for s in result.slots if not s.available]
        assert taken == ["09:00", "09:30", "10:00"]

    def test_idempotent(self, morning_slots):
        appointments = [Appointment(start="10:00", end="10:30")]

        first = resolve_availability(morning_slots, appointments, DOCTOR, MONDAY, 30)
        second = resolve_availability(morning_slots, appointments, DOCTOR, MONDAY, 30)

        assert first == second

    def test_no_schedule_status(self):
        result = resolve_availability([], [], DOCTOR, MONDAY, 30)

        assert result.status == AvailabilityStatus.NO_SCHEDULE
        assert result.message == NO_SCHEDULE_MESSAGE
        assert not result.has_availability

    def test_fully_booked_status(self):
        slots = [TimeSlot("08:00", "08:30"), TimeSlot("08:30", "09:00")]

        result = resolve_availability(
            slots,
            [Appointment(start="08:00", end="09:00")],
            DOCTOR,
            MONDAY,
            30,
        )

        assert result.status == AvailabilityStatus.FULLY_BOOKED
        assert result.message == FULLY_BOOKED_MESSAGE
        assert result.slots  # slots are still listed, just unavailable

    def test_duplicates_collapse_and_unavailable_wins(self):
        slots = [
            TimeSlot("08:00", "08:30"),
            TimeSlot("08:30", "09:00"),
            TimeSlot("08:30", "09:00"),
            TimeSlot("09:00", "09:30"),
        ]

        result = resolve_availability(
            slots,
            [Appointment(start="08:30", end="09:00")],
            DOCTOR,
            MONDAY,
            30,
        )

        assert [s.start for s in result.slots] == ["08:00", "08:30", "09:00"]
        assert result.slots[1].available is False

    def test_appointments_for_other_doctor_or_date_ignored(self, morning_slots):
        result = resolve_availability(
            morning_slots,
            [
                Appointment(start="10:00", end="10:30", doctor_id="doc-2"),
                Appointment(start="11:00", end="11:30", date="2024-03-05"),
                Appointment(start="08:00", end="08:30", doctor_id="doc-1", date=MONDAY),
            ],
            DOCTOR,
            MONDAY,
            30,
        )

        taken = [s.start for s in result.slots if not s.available]
        assert taken == ["08:00"]

    def test_is_bookable(self, morning_slots):
        result = resolve_availability(
            morning_slots,
            [Appointment(start="10:00", end="10:30")],
            DOCTOR,
            MONDAY,
            30,
        )

        assert result.is_bookable("08:00")
        assert not result.is_bookable("10:00")
        assert not result.is_bookable("13:00")
        assert not result.is_bookable("garbage")


class TestAvailableSlotsResult:
    """Test parsing of backend availability payloads."""

    def test_from_payload(self):
        result = AvailableSlotsResult.from_payload(
            {
                "doctor": {"id": "doc-1", "nombre": "Ana Pérez"},
                "date": MONDAY,
                "duration": 30,
                "slots": [
                    {"start": "08:00", "end": "08:30", "available": True},
                    {"start": "08:30", "end": "09:00", "available": False},
                ],
            }
        )

        assert result.doctor.name == "Ana Pérez"
        assert result.status == AvailabilityStatus.AVAILABLE
        assert [s.start for s in result.available_slots] == ["08:00"]

    def test_from_payload_empty_derives_no_schedule(self):
        result = AvailableSlotsResult.from_payload(
            {"doctor": {"id": "doc-1"}, "date": MONDAY, "duration": 30, "slots": [], "message": "Sin atención"}
        )

        assert result.status == AvailabilityStatus.NO_SCHEDULE
        assert result.message == "Sin atención"

    def test_to_dict(self):
        result = resolve_availability([], [], DOCTOR, MONDAY, 30)

        d = result.to_dict()

        assert d["status"] == "no_schedule"
        assert d["doctor"] == {"id": "doc-1", "name": "Ana Pérez"}
        assert d["message"] == NO_SCHEDULE_MESSAGE

    def test_from_payload_unknown_status_falls_back_to_slots(self):
        result = AvailableSlotsResult.from_payload(
            {
                "doctor": {"id": "doc-1"},
                "date": MONDAY,
                "status": "ok",
                "slots": [{"start": "08:00", "end": "08:30", "available": False}],
            }
        )

        assert result.status == AvailabilityStatus.FULLY_BOOKED
        assert result.message == FULLY_BOOKED_MESSAGE

    def test_from_payload_known_status_kept(self):
        result = AvailableSlotsResult.from_payload(
            {"doctor": {"id": "doc-1"}, "date": MONDAY, "status": "no_schedule", "slots": []}
        )

        assert result.status == AvailabilityStatus.NO_SCHEDULE
        assert result.message == NO_SCHEDULE_MESSAGE
