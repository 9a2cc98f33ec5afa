"""
Booking transaction handling.

Validates a slot selection, submits it to the backend and interprets the
structured outcome. The backend is the sole authority for booking IDs and
confirmation codes and for preventing double-booking; this module never
generates either and never resubmits a booking.
"""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from practice_site.config import get_settings
from practice_site.core.errors import FailureKind, TransportError, ValidationError
from practice_site.core.scheduling.availability import AvailableSlotsResult
from practice_site.core.scheduling.gema_client import GemaClient, get_gema_client
from practice_site.core.scheduling.slots import format_time, parse_date, parse_time

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

GENERIC_ERROR_MESSAGE = "Ocurrió un error al reservar el turno. Por favor intente nuevamente."
SLOT_TAKEN_MESSAGE = "Este horario ya no está disponible. Por favor seleccione otro horario."
DOCTOR_GONE_MESSAGE = "El médico seleccionado no está disponible. Por favor seleccione otro médico."


class RecoveryAction(str, Enum):
    """Next step offered to the visitor after a failed submission."""

    FIX_INPUT = "fix_input"
    REFRESH_SLOTS = "refresh_slots"
    RESELECT_DOCTOR = "reselect_doctor"
    RETRY = "retry"


@dataclass(frozen=True)
class PatientData:
    """Patient identity as typed by the visitor (display values)."""

    national_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    insurance_provider_id: Optional[str] = None
    plan: Optional[str] = None


@dataclass(frozen=True)
class BookingRequest:
    """One atomic slot selection: doctor, date and time travel together."""

    practice_slug: str
    doctor_id: str
    date: str
    time: str
    patient: PatientData
    duration_minutes: int = 30
    service_ids: tuple[str, ...] = ()
    notes: Optional[str] = None


@dataclass(frozen=True)
class BookingSuccess:
    booking_id: str
    confirmation_code: str
    date: str
    time: str
    doctor_name: str
    message: str = ""
    medical_record_number: Optional[str] = None

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> dict:
        return {
            "success": True,
            "booking_id": self.booking_id,
            "confirmation_code": self.confirmation_code,
            "message": self.message,
            "appointment": {
                "date": self.date,
                "time": self.time,
                "doctor_name": self.doctor_name,
            },
            "patient": {"medical_record_number": self.medical_record_number},
        }


@dataclass(frozen=True)
class BookingFailure:
    kind: FailureKind
    message: str
    field: Optional[str] = None
    refreshed_availability: Optional[AvailableSlotsResult] = None

    @property
    def success(self) -> bool:
        return False

    @property
    def recovery(self) -> RecoveryAction:
        if self.kind == FailureKind.INVALID_DATA:
            return RecoveryAction.FIX_INPUT
        if self.kind == FailureKind.SLOT_NOT_AVAILABLE:
            return RecoveryAction.REFRESH_SLOTS
        if self.kind == FailureKind.DOCTOR_NOT_FOUND:
            return RecoveryAction.RESELECT_DOCTOR
        return RecoveryAction.RETRY

    def to_dict(self) -> dict:
        result = {
            "success": False,
            "error": self.kind.value,
            "message": self.message,
            "recovery": self.recovery.value,
        }
        if self.field:
            result["field"] = self.field
        if self.refreshed_availability is not None:
            result["availability"] = self.refreshed_availability.to_dict()
        return result


BookingOutcome = Union[BookingSuccess, BookingFailure]


def normalize_phone(raw: Optional[str], country_code: Optional[str] = None) -> Optional[str]:
    """Coerce a phone number to `+<country><number>` for submission.

    Numbers already starting with `+` pass through; numbers starting with the
    country code get a `+`; anything else loses its trunk-prefix zeros and
    gains `+<country>`. Empty input yields None.
    """
    if country_code is None:
        country_code = get_settings().phone_country_code

    phone = (raw or "").strip()
    if not phone:
        return None
    if phone.startswith("+"):
        return phone
    if phone.startswith(country_code):
        return f"+{phone}"
    return f"+{country_code}{phone.lstrip('0')}"


def validate_booking_request(request: BookingRequest) -> None:
    """Client-side checks, in the order the form reports them.

    Raises:
        ValidationError: first failing field
    """
    patient = request.patient

    if not (patient.national_id or "").strip():
        raise ValidationError("Por favor ingrese su DNI", field="national_id")
    if not (patient.first_name or "").strip():
        raise ValidationError("Por favor ingrese su nombre", field="first_name")
    if not (patient.last_name or "").strip():
        raise ValidationError("Por favor ingrese su apellido", field="last_name")

    email = (patient.email or "").strip()
    if email and not EMAIL_PATTERN.match(email):
        raise ValidationError("Por favor ingrese un email válido", field="email")

    if not (request.doctor_id or "").strip():
        raise ValidationError("Por favor seleccione un médico", field="doctor_id")
    if not (request.date or "").strip():
        raise ValidationError("Por favor seleccione una fecha", field="date")
    if not (request.time or "").strip():
        raise ValidationError("Por favor seleccione un horario", field="time")

    parse_date(request.date)
    parse_time(request.time)
    if request.duration_minutes <= 0:
        raise ValidationError("Duración de turno inválida", field="duration")


def build_payload(request: BookingRequest, country_code: Optional[str] = None) -> dict:
    """Serialize a validated request with the backend's wire keys."""
    patient = request.patient

    patient_payload: dict = {
        "dni": patient.national_id.strip(),
        "nombre": patient.first_name.strip(),
        "apellido": patient.last_name.strip(),
    }
    email = (patient.email or "").strip()
    if email:
        patient_payload["email"] = email
    phone = normalize_phone(patient.phone, country_code)
    if phone:
        patient_payload["telefono"] = phone
    if patient.insurance_provider_id:
        patient_payload["obra_social_id"] = patient.insurance_provider_id
    if patient.plan:
        patient_payload["plan"] = patient.plan

    payload: dict = {
        "slug": request.practice_slug,
        "doctor_id": request.doctor_id,
        "date": parse_date(request.date).isoformat(),
        "time": format_time(parse_time(request.time)),
        "duration": request.duration_minutes,
        "patient": patient_payload,
    }
    if request.service_ids:
        payload["service_ids"] = list(request.service_ids)
    notes = (request.notes or "").strip()
    if notes:
        payload["notas"] = notes
    return payload


def parse_outcome(data: dict) -> BookingOutcome:
    """Interpret a `create-public-booking` response body."""
    if data.get("success"):
        appointment = data.get("turno") or {}
        patient = data.get("patient") or {}
        return BookingSuccess(
            booking_id=str(data.get("turno_id") or ""),
            confirmation_code=str(data.get("confirmation_code") or ""),
            message=data.get("message") or "",
            date=appointment.get("fecha") or "",
            time=appointment.get("hora") or "",
            doctor_name=appointment.get("doctor") or "",
            medical_record_number=patient.get("historia_clinica"),
        )

    kind = FailureKind.parse(data.get("error"))
    return BookingFailure(kind=kind, message=data.get("message") or GENERIC_ERROR_MESSAGE)


class BookingHandler:
    """
    Submits bookings and drives conflict recovery.

    Each submission is independent; the handler keeps no state between calls.
    """

    def __init__(
        self,
        client: Optional[GemaClient] = None,
        country_code: Optional[str] = None,
    ):
        """Initialize handler.

        Args:
            client: Backend client (uses singleton if not provided)
            country_code: Phone calling code (defaults to settings)
        """
        self._client = client
        self._country_code = country_code

    def _get_client(self) -> GemaClient:
        if self._client is None:
            self._client = get_gema_client()
        return self._client

    async def submit(self, request: BookingRequest) -> BookingOutcome:
        """Validate and submit one booking.

        Args:
            request: Complete doctor/date/slot selection plus patient data

        Returns:
            BookingSuccess, or BookingFailure with a recovery action
        """
        try:
            validate_booking_request(request)
        except ValidationError as e:
            logger.info(f"Booking rejected locally: {e.field}")
            return BookingFailure(kind=FailureKind.INVALID_DATA, message=e.message, field=e.field)

        payload = build_payload(request, self._country_code)
        client = self._get_client()

        try:
            data = await client.create_booking(payload)
        except TransportError as e:
            logger.error(f"Booking transport failure for {request.practice_slug}: {e}")
            return BookingFailure(kind=FailureKind.INTERNAL_ERROR, message=GENERIC_ERROR_MESSAGE)

        outcome = parse_outcome(data)

        if isinstance(outcome, BookingSuccess):
            logger.info(
                f"Booking confirmed: {outcome.confirmation_code} "
                f"(doctor {request.doctor_id}, {request.date} {request.time})"
            )
            return outcome

        logger.warning(f"Booking failed: {outcome.kind.value} - {outcome.message}")

        if outcome.kind == FailureKind.SLOT_NOT_AVAILABLE:
            refreshed = await self._refresh_availability(request)
            return replace(outcome, message=SLOT_TAKEN_MESSAGE, refreshed_availability=refreshed)

        if outcome.kind == FailureKind.DOCTOR_NOT_FOUND:
            return replace(outcome, message=DOCTOR_GONE_MESSAGE)

        return outcome

    async def _refresh_availability(self, request: BookingRequest) -> Optional[AvailableSlotsResult]:
        """Single re-fetch after a slot conflict; failures are not retried."""
        try:
            return await self._get_client().get_available_slots(
                slug=request.practice_slug,
                doctor_id=request.doctor_id,
                date=request.date,
                duration_minutes=request.duration_minutes,
            )
        except TransportError as e:
            logger.warning(f"Availability refresh after conflict failed: {e}")
            return None


# Singleton
_handler: Optional[BookingHandler] = None


def get_booking_handler() -> BookingHandler:
    """Get singleton BookingHandler."""
    global _handler
    if _handler is None:
        _handler = BookingHandler()
    return _handler
