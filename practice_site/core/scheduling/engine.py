"""
Scheduling Engine - Main Orchestrator.

Coordinates slot generation, availability resolution, the backend client and
the booking handler, and routes results into a BookingFlow.
"""

import logging
from typing import Iterable, Optional

from practice_site.config import get_settings
from practice_site.core.content.models import ContentSnapshot
from practice_site.core.errors import (
    FailureKind,
    NotFoundError,
    TransportError,
    ValidationError,
)
from practice_site.core.scheduling.availability import (
    Appointment,
    AvailableSlotsResult,
    DoctorRef,
    resolve_availability,
)
from practice_site.core.scheduling.booking import (
    BookingFailure,
    BookingHandler,
    BookingOutcome,
    PatientData,
    get_booking_handler,
)
from practice_site.core.scheduling.flow import BookingFlow
from practice_site.core.scheduling.gema_client import GemaClient, get_gema_client
from practice_site.core.scheduling.slots import generate_slots

logger = logging.getLogger(__name__)


class SchedulingEngine:
    """
    Main orchestrator for availability and booking.

    Coordinates:
    - Local slot computation from a content snapshot
    - Backend availability lookups
    - Booking submission and flow recovery
    """

    def __init__(
        self,
        client: Optional[GemaClient] = None,
        booking_handler: Optional[BookingHandler] = None,
    ):
        """Initialize engine with optional dependencies.

        Args:
            client: Backend client
            booking_handler: Booking handler
        """
        self._client = client
        self._booking_handler = booking_handler

    def _get_client(self) -> GemaClient:
        if self._client is None:
            self._client = get_gema_client()
        return self._client

    def _get_booking_handler(self) -> BookingHandler:
        if self._booking_handler is None:
            self._booking_handler = BookingHandler(client=self._client) if self._client else get_booking_handler()
        return self._booking_handler

    # === Availability ===

    def compute_availability(
        self,
        snapshot: ContentSnapshot,
        doctor_id: str,
        date: str,
        duration_minutes: Optional[int] = None,
        appointments: Iterable[Appointment] = (),
    ) -> AvailableSlotsResult:
        """Compute availability locally from the snapshot's weekly schedules.

        Raises:
            NotFoundError: doctor is not part of the practice
            ValidationError: bad duration or date
        """
        duration = duration_minutes or get_settings().default_slot_duration

        doctor = snapshot.find_doctor(doctor_id)
        if doctor is None:
            raise NotFoundError(
                f"Doctor {doctor_id} not found", kind=FailureKind.DOCTOR_NOT_FOUND
            )

        candidates = generate_slots(snapshot.schedules_for(doctor_id), date, duration)
        return resolve_availability(
            candidates,
            appointments,
            DoctorRef(id=doctor.id, name=doctor.name),
            date,
            duration,
        )

    async def get_availability(
        self,
        slug: str,
        doctor_id: str,
        date: str,
        duration_minutes: Optional[int] = None,
    ) -> AvailableSlotsResult:
        """Fetch the authoritative availability view from the backend."""
        duration = duration_minutes or get_settings().default_slot_duration
        return await self._get_client().get_available_slots(
            slug=slug,
            doctor_id=doctor_id,
            date=date,
            duration_minutes=duration,
        )

    async def load_availability(self, flow: BookingFlow) -> bool:
        """Fetch availability for the flow's doctor/date and install it.

        Returns:
            True if the view was applied; False if stale, or on fetch failure
            (the flow then carries a retryable error message)
        """
        if not (flow.doctor_id and flow.date):
            return False

        version = flow.version
        try:
            result = await self.get_availability(
                flow.practice_slug, flow.doctor_id, flow.date, flow.duration_minutes
            )
        except TransportError as e:
            logger.warning(f"Availability load failed for {flow.practice_slug}: {e}")
            if version == flow.version:
                flow.availability = None
                flow.error = "No se pudieron cargar los horarios disponibles. Intente nuevamente."
            return False

        return flow.apply_availability(result, version)

    # === Booking ===

    async def submit(
        self,
        flow: BookingFlow,
        patient: PatientData,
        notes: Optional[str] = None,
    ) -> BookingOutcome:
        """Submit the flow's current selection and apply the outcome to it."""
        version = flow.version
        try:
            request = flow.build_request(patient, notes)
        except ValidationError as e:
            outcome = BookingFailure(
                kind=FailureKind.INVALID_DATA, message=e.message, field=e.field
            )
            flow.error = e.message
            return outcome

        outcome = await self._get_booking_handler().submit(request)

        if isinstance(outcome, BookingFailure) and outcome.kind == FailureKind.INVALID_DATA:
            flow.error = outcome.message
            return outcome

        flow.apply_outcome(outcome, version)
        return outcome


# Singleton
_engine: Optional[SchedulingEngine] = None


def get_scheduling_engine() -> SchedulingEngine:
    """Get singleton SchedulingEngine."""
    global _engine
    if _engine is None:
        _engine = SchedulingEngine()
    return _engine
