"""
HTTP client for the practice-management backend.

The backend runs separately and exposes three functions:
- GET  /get-medical-group-website  - Website Content Document
- GET  /get-available-slots        - Bookable slots for a doctor/date
- POST /create-public-booking      - Book an appointment
"""

import logging
from typing import Any, Optional

import httpx

from practice_site.config import get_settings
from practice_site.core.content.models import ContentSnapshot
from practice_site.core.errors import TransportError, ValidationError
from practice_site.core.scheduling.availability import AvailableSlotsResult

logger = logging.getLogger(__name__)


class GemaClient:
    """
    HTTP client for the backend functions.

    Errors are normalised to TransportError; interpreting structured booking
    failures is left to the caller, which receives the decoded body.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize client.

        Args:
            base_url: Backend base URL (defaults to settings)
            api_key: Anon key (defaults to settings)
            timeout: Request timeout in seconds
        """
        settings = get_settings()
        self.base_url = (base_url or settings.gema_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.gema_anon_key
        self.timeout = timeout or settings.http_timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "apikey": self.api_key,
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # === Content ===

    async def get_website(self, slug: str) -> ContentSnapshot:
        """Fetch and parse the Website Content Document.

        Raises:
            TransportError: network failure, non-2xx, or error envelope
        """
        client = await self._get_client()

        try:
            response = await client.get("/get-medical-group-website", params={"slug": slug})
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch website for {slug}: {e}")
            raise TransportError("No se pudo cargar la información del centro médico") from e

        if response.status_code >= 400:
            logger.error(f"Website fetch for {slug} returned {response.status_code}: {response.text[:200]}")
            raise TransportError("No se pudo cargar la información del centro médico")

        return ContentSnapshot.from_payload(self._decode(response))

    # === Availability ===

    async def get_available_slots(
        self,
        slug: str,
        doctor_id: str,
        date: str,
        duration_minutes: int = 30,
    ) -> AvailableSlotsResult:
        """Fetch the backend's availability view for a doctor/date.

        Raises:
            TransportError: network failure, non-2xx, error envelope, or malformed slots
        """
        client = await self._get_client()

        params = {
            "slug": slug,
            "doctor_id": doctor_id,
            "date": date,
            "duration": str(duration_minutes),
        }

        try:
            response = await client.get("/get-available-slots", params=params)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch slots for doctor {doctor_id} on {date}: {e}")
            raise TransportError("No se pudieron cargar los horarios disponibles") from e

        if response.status_code >= 400:
            logger.error(f"Slot fetch returned {response.status_code}")
            raise TransportError("No se pudieron cargar los horarios disponibles")

        data = self._decode(response)
        if not isinstance(data, dict):
            raise TransportError("Respuesta inválida del servidor de turnos")
        if data.get("error"):
            raise TransportError(str(data["error"]))

        try:
            return AvailableSlotsResult.from_payload(data)
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Malformed slots response for doctor {doctor_id} on {date}: {e}")
            raise TransportError("Respuesta inválida del servidor de turnos") from e

    # === Bookings ===

    async def create_booking(self, payload: dict) -> dict:
        """Submit a booking and return the decoded outcome body.

        The body is returned for any status code: the backend reports
        conflicts and validation failures as `{"success": false, ...}`.

        Raises:
            TransportError: network failure or non-JSON body
        """
        client = await self._get_client()

        try:
            response = await client.post("/create-public-booking", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Failed to create booking: {e}")
            raise TransportError("No se pudo conectar con el sistema de turnos") from e

        data = self._decode(response)
        if not isinstance(data, dict) or "success" not in data:
            logger.error(f"Unstructured booking response ({response.status_code})")
            raise TransportError("Respuesta inválida del sistema de turnos")
        return data

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from backend ({response.status_code})")
            raise TransportError("Respuesta inválida del servidor") from e


# Singleton
_client: Optional[GemaClient] = None


def get_gema_client() -> GemaClient:
    """Get singleton GemaClient."""
    global _client
    if _client is None:
        _client = GemaClient()
    return _client
