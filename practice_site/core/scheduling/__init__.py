"""
Scheduling Module

Provides slot generation, availability resolution, the backend client,
booking submission, and the booking flow step machine.

Usage:
    from practice_site.core.scheduling import (
        BookingFlow,
        PatientData,
        get_scheduling_engine,
    )

    engine = get_scheduling_engine()
    flow = BookingFlow(practice_slug="acme-clinic", preselected_doctor_id="d1")
    flow.select_service("s1")
    flow.select_date("2024-03-04")
    await engine.load_availability(flow)
    flow.select_slot(flow.availability.available_slots[0])
    outcome = await engine.submit(flow, PatientData("30111222", "Ana", "Paz"))
"""

# Slot Generation
from practice_site.core.scheduling.slots import (
    TimeSlot,
    day_of_week,
    format_time,
    generate_slots,
    parse_date,
    parse_time,
)

# Availability
from practice_site.core.scheduling.availability import (
    Appointment,
    AvailabilityStatus,
    AvailableSlotsResult,
    DoctorRef,
    resolve_availability,
)

# Backend Client
from practice_site.core.scheduling.gema_client import (
    GemaClient,
    get_gema_client,
)

# Booking
from practice_site.core.scheduling.booking import (
    BookingFailure,
    BookingHandler,
    BookingOutcome,
    BookingRequest,
    BookingSuccess,
    PatientData,
    RecoveryAction,
    get_booking_handler,
    normalize_phone,
)

# Booking Flow
from practice_site.core.scheduling.flow import (
    BookingFlow,
    BookingStep,
    can_transition,
)

# Scheduling Engine (main orchestrator)
from practice_site.core.scheduling.engine import (
    SchedulingEngine,
    get_scheduling_engine,
)

__all__ = [
    # Slots
    "TimeSlot",
    "day_of_week",
    "format_time",
    "generate_slots",
    "parse_date",
    "parse_time",
    # Availability
    "Appointment",
    "AvailabilityStatus",
    "AvailableSlotsResult",
    "DoctorRef",
    "resolve_availability",
    # Backend Client
    "GemaClient",
    "get_gema_client",
    # Booking
    "BookingFailure",
    "BookingHandler",
    "BookingOutcome",
    "BookingRequest",
    "BookingSuccess",
    "PatientData",
    "RecoveryAction",
    "get_booking_handler",
    "normalize_phone",
    # Booking Flow
    "BookingFlow",
    "BookingStep",
    "can_transition",
    # Scheduling Engine
    "SchedulingEngine",
    "get_scheduling_engine",
]
