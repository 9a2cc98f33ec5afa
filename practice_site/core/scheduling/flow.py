"""
Booking flow state machine.

Sequences the visitor through doctor -> service -> date/time -> patient form
-> success, holding the current selection. Every selection change bumps a
version number; availability views and booking outcomes produced for an older
version are discarded so a late response can never overwrite a newer choice.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Set

from practice_site.core.errors import FailureKind, ValidationError
from practice_site.core.scheduling.availability import AvailableSlotsResult
from practice_site.core.scheduling.booking import (
    BookingOutcome,
    BookingRequest,
    BookingSuccess,
    PatientData,
)
from practice_site.core.scheduling.slots import TimeSlot

logger = logging.getLogger(__name__)


class BookingStep(str, Enum):
    """Steps in the booking flow."""

    DOCTOR = "doctor"
    SERVICE = "service"
    DATETIME = "datetime"
    FORM = "form"
    SUCCESS = "success"


VALID_TRANSITIONS: dict[BookingStep, Set[BookingStep]] = {
    BookingStep.DOCTOR: {BookingStep.SERVICE, BookingStep.DATETIME},
    BookingStep.SERVICE: {BookingStep.DATETIME, BookingStep.DOCTOR},
    BookingStep.DATETIME: {BookingStep.FORM, BookingStep.DOCTOR},
    BookingStep.FORM: {
        BookingStep.SUCCESS,
        BookingStep.DATETIME,  # back, or slot conflict
        BookingStep.DOCTOR,  # doctor vanished
    },
    BookingStep.SUCCESS: {BookingStep.DOCTOR},  # book another
}


def can_transition(from_step: BookingStep, to_step: BookingStep) -> bool:
    """Check if a step transition is valid."""
    return to_step in VALID_TRANSITIONS.get(from_step, set())


@dataclass
class BookingFlow:
    """Selection state for one booking modal/section."""

    practice_slug: str
    preselected_doctor_id: Optional[str] = None
    preselected_service_id: Optional[str] = None
    duration_minutes: int = 30

    step: BookingStep = BookingStep.DOCTOR
    doctor_id: Optional[str] = None
    service_id: Optional[str] = None
    date: Optional[str] = None
    slot: Optional[TimeSlot] = None
    availability: Optional[AvailableSlotsResult] = None
    patient: Optional[PatientData] = None
    notes: Optional[str] = None
    error: Optional[str] = None
    last_success: Optional[BookingSuccess] = None
    version: int = 0

    history: list[BookingStep] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.start()

    # === Step control ===

    def start(self) -> None:
        """(Re)open the flow honouring pre-selections."""
        self.doctor_id = self.preselected_doctor_id
        self.service_id = self.preselected_service_id
        self.date = None
        self.slot = None
        self.availability = None
        self.error = None
        self.history = []

        if self.doctor_id and self.service_id:
            self.step = BookingStep.DATETIME
        elif self.doctor_id:
            self.step = BookingStep.SERVICE
        else:
            self.step = BookingStep.DOCTOR
        self._bump()

    def _check_move(self, to_step: BookingStep) -> None:
        """Raise before any field changes if the step change is not allowed."""
        if to_step != self.step and not can_transition(self.step, to_step):
            raise ValidationError(
                f"Paso inválido: {self.step.value} -> {to_step.value}", field="step"
            )

    def _move(self, to_step: BookingStep) -> None:
        self._check_move(to_step)
        if to_step == self.step:
            return
        self.history.append(self.step)
        self.step = to_step

    def _bump(self) -> None:
        self.version += 1

    # === Selections ===

    def select_doctor(self, doctor_id: str) -> None:
        if not doctor_id:
            raise ValidationError("Por favor seleccione un médico", field="doctor_id")
        target = BookingStep.DATETIME if self.service_id else BookingStep.SERVICE
        self._check_move(target)
        self.doctor_id = doctor_id
        self.date = None
        self.slot = None
        self.availability = None
        self._bump()
        self._move(target)

    def select_service(self, service_id: str) -> None:
        if self.step != BookingStep.SERVICE:
            raise ValidationError("El servicio se elige después del médico", field="service_id")
        self._check_move(BookingStep.DATETIME)
        self.service_id = service_id
        self._bump()
        self._move(BookingStep.DATETIME)

    def select_date(self, date: str) -> None:
        """Pick a date; the previous slot and availability view are dropped."""
        if self.step != BookingStep.DATETIME:
            raise ValidationError("Seleccione primero un médico", field="date")
        self.date = date
        self.slot = None
        self.availability = None
        self._bump()

    def apply_availability(self, result: AvailableSlotsResult, version: int) -> bool:
        """Install an availability view fetched for `version`.

        Returns:
            False if the view is stale (selection changed meanwhile)
        """
        if version != self.version:
            logger.debug(f"Discarding stale availability (v{version}, current v{self.version})")
            return False
        if result.doctor.id and result.doctor.id != self.doctor_id:
            return False
        self.availability = result
        self.error = result.message if not result.has_availability else None
        return True

    def select_slot(self, slot: TimeSlot) -> None:
        """Choose a slot from the last resolved availability view."""
        if self.availability is None or not self.availability.is_bookable(slot.start):
            raise ValidationError("Por favor seleccione un horario disponible", field="time")
        self._check_move(BookingStep.FORM)
        self.slot = slot
        self._bump()
        self._move(BookingStep.FORM)

    def back(self) -> None:
        """Return from the patient form to date/time selection."""
        if self.step != BookingStep.FORM:
            raise ValidationError("Solo se puede volver desde el formulario", field="step")
        self._move(BookingStep.DATETIME)

    # === Submission ===

    def build_request(self, patient: PatientData, notes: Optional[str] = None) -> BookingRequest:
        """Snapshot the full selection into one atomic request.

        The form values are remembered so they survive a failed submission.
        """
        self.patient = patient
        self.notes = notes

        if self.step != BookingStep.FORM or not (self.doctor_id and self.date and self.slot):
            raise ValidationError("La selección de turno está incompleta", field="time")

        return BookingRequest(
            practice_slug=self.practice_slug,
            doctor_id=self.doctor_id,
            date=self.date,
            time=self.slot.start,
            patient=patient,
            duration_minutes=self.duration_minutes,
            service_ids=(self.service_id,) if self.service_id else (),
            notes=notes,
        )

    def apply_outcome(self, outcome: BookingOutcome, version: int) -> bool:
        """Route a booking outcome back into the flow.

        Returns:
            False if the outcome belongs to a superseded selection
        """
        if version != self.version:
            logger.debug(f"Discarding stale booking outcome (v{version}, current v{self.version})")
            return False

        if isinstance(outcome, BookingSuccess):
            self.last_success = outcome
            self.error = None
            self._move(BookingStep.SUCCESS)
            return True

        self.error = outcome.message

        if outcome.kind == FailureKind.SLOT_NOT_AVAILABLE:
            self.slot = None
            self.availability = outcome.refreshed_availability
            self._bump()
            self._move(BookingStep.DATETIME)
        elif outcome.kind == FailureKind.DOCTOR_NOT_FOUND:
            self.doctor_id = None
            self.date = None
            self.slot = None
            self.availability = None
            self._bump()
            self._move(BookingStep.DOCTOR)
        # other failures keep the selection so the visitor can retry

        return True

    def reset(self) -> None:
        """Book another: clear everything, including the patient form."""
        self.patient = None
        self.notes = None
        self.last_success = None
        self.start()

    def to_dict(self) -> dict:
        return {
            "step": self.step.value,
            "doctor_id": self.doctor_id,
            "service_id": self.service_id,
            "date": self.date,
            "slot": self.slot.to_dict() if self.slot else None,
            "availability": self.availability.to_dict() if self.availability else None,
            "error": self.error,
            "version": self.version,
        }
