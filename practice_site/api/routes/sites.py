"""
Practice Site Endpoints.

Content, availability and booking for one practice, addressed by slug.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from practice_site.config import get_settings
from practice_site.core.chat.content_cache import get_content_cache
from practice_site.core.content.slug import extract_slug
from practice_site.core.errors import FailureKind, TransportError
from practice_site.core.scheduling.booking import (
    BookingHandler,
    BookingRequest,
    BookingSuccess,
    PatientData,
    get_booking_handler,
)
from practice_site.core.scheduling.engine import SchedulingEngine, get_scheduling_engine
from practice_site.core.scheduling.gema_client import GemaClient, get_gema_client
from practice_site.core.scheduling.slots import parse_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sites", tags=["Sites"])

FAILURE_STATUS = {
    FailureKind.INVALID_DATA: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FailureKind.SLOT_NOT_AVAILABLE: status.HTTP_409_CONFLICT,
    FailureKind.GROUP_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.DOCTOR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.INTERNAL_ERROR: status.HTTP_502_BAD_GATEWAY,
}


def site_slug(slug: str) -> str:
    """Path dependency: validated practice slug."""
    return extract_slug(slug)


class PatientBody(BaseModel):
    """Patient identity entered in the booking form."""

    national_id: str = Field(default="", max_length=20, description="DNI")
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=30)
    insurance_provider_id: Optional[str] = None
    plan: Optional[str] = None


class BookingBody(BaseModel):
    """Booking request: doctor, date and time are submitted together."""

    doctor_id: str = Field(..., description="Doctor identifier")
    date: str = Field(..., examples=["2024-03-04"])
    time: str = Field(..., examples=["10:30"])
    duration: Optional[int] = Field(default=None, gt=0, description="Minutes")
    service_ids: list[str] = Field(default_factory=list)
    patient: PatientBody
    notes: Optional[str] = Field(default=None, max_length=1000)


@router.get(
    "/{slug}",
    summary="Website content",
    description="The practice's Website Content Document.",
)
async def get_site(
    practice_slug: str = Depends(site_slug),
    client: GemaClient = Depends(get_gema_client),
) -> dict:
    snapshot = await client.get_website(practice_slug)
    return snapshot.to_dict()


@router.get(
    "/{slug}/slots",
    summary="Available slots",
    description=(
        "Bookable slots for a doctor on a date. `source=backend` (default) asks the "
        "booking backend, which knows existing appointments; `source=schedule` "
        "expands the weekly schedule from the content document."
    ),
)
async def get_slots(
    practice_slug: str = Depends(site_slug),
    doctor_id: str = Query(..., min_length=1),
    date: str = Query(..., examples=["2024-03-04"]),
    duration: Optional[int] = Query(default=None, gt=0),
    source: Literal["backend", "schedule"] = Query(default="backend"),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
) -> dict:
    parse_date(date)

    if source == "schedule":
        snapshot = await get_content_cache(practice_slug).get()
        if snapshot is None:
            raise TransportError("No se pudo cargar la información del centro médico")
        result = engine.compute_availability(snapshot, doctor_id, date, duration)
    else:
        result = await engine.get_availability(practice_slug, doctor_id, date, duration)

    return result.to_dict()


@router.post(
    "/{slug}/bookings",
    summary="Book an appointment",
    responses={
        201: {"description": "Booking confirmed"},
        404: {"description": "Doctor or practice not found"},
        409: {"description": "Slot no longer available (includes refreshed availability)"},
        422: {"description": "Invalid patient or selection data"},
        502: {"description": "Booking backend unavailable"},
    },
)
async def create_booking(
    body: BookingBody,
    practice_slug: str = Depends(site_slug),
    handler: BookingHandler = Depends(get_booking_handler),
) -> JSONResponse:
    request = BookingRequest(
        practice_slug=practice_slug,
        doctor_id=body.doctor_id,
        date=body.date,
        time=body.time,
        patient=PatientData(**body.patient.model_dump()),
        duration_minutes=body.duration or get_settings().default_slot_duration,
        service_ids=tuple(body.service_ids),
        notes=body.notes,
    )

    outcome = await handler.submit(request)

    if isinstance(outcome, BookingSuccess):
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=outcome.to_dict())

    return JSONResponse(status_code=FAILURE_STATUS[outcome.kind], content=outcome.to_dict())
