"""Tests for the backend HTTP client."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from practice_site.core.errors import TransportError
from practice_site.core.scheduling.availability import AvailabilityStatus
from practice_site.core.scheduling.gema_client import GemaClient


def make_response(status_code=200, body=None, invalid_json=False):
    response = MagicMock()
    response.status_code = status_code
    response.text = ""
    if invalid_json:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = body
    return response


class TestGemaClient:
    """Test GemaClient."""

    @pytest.fixture
    def client(self):
        """Create client with explicit config."""
        return GemaClient(base_url="http://backend.test/functions/v1/", api_key="anon", timeout=5)

    @pytest.fixture
    def mock_httpx_client(self):
        """Create mock httpx client."""
        return AsyncMock()

    def test_base_url_trailing_slash_stripped(self, client):
        assert client.base_url == "http://backend.test/functions/v1"

    @pytest.mark.asyncio
    async def test_get_website_enveloped(self, client, mock_httpx_client):
        mock_httpx_client.get = AsyncMock(
            return_value=make_response(
                body={"data": {"group": {"id": "g1", "name": "Clínica Acme", "slug": "acme"}}}
            )
        )
        client._client = mock_httpx_client

        snapshot = await client.get_website("acme")

        assert snapshot.group.name == "Clínica Acme"
        mock_httpx_client.get.assert_awaited_once_with(
            "/get-medical-group-website", params={"slug": "acme"}
        )

    @pytest.mark.asyncio
    async def test_get_website_error_envelope(self, client, mock_httpx_client):
        mock_httpx_client.get = AsyncMock(return_value=make_response(body={"error": "Group not found"}))
        client._client = mock_httpx_client

        with pytest.raises(TransportError):
            await client.get_website("missing")

    @pytest.mark.asyncio
    async def test_get_website_http_error(self, client, mock_httpx_client):
        mock_httpx_client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        client._client = mock_httpx_client

        with pytest.raises(TransportError):
            await client.get_website("acme")

    @pytest.mark.asyncio
    async def test_get_website_bad_status(self, client, mock_httpx_client):
        mock_httpx_client.get = AsyncMock(return_value=make_response(status_code=500, body={}))
        client._client = mock_httpx_client

        with pytest.raises(TransportError):
            await client.get_website("acme")

    @pytest.mark.asyncio
    async def test_get_available_slots(self, client, mock_httpx_client):
        mock_httpx_client.get = AsyncMock(
            return_value=make_response(
                body={
                    "doctor": {"id": "doc-1", "nombre": "Ana Pérez"},
                    "date": "2024-03-04",
                    "duration": 30,
                    "slots": [{"start": "08:00", "end": "08:30", "available": True}],
                }
            )
        )
        client._client = mock_httpx_client

        result = await client.get_available_slots("acme", "doc-1", "2024-03-04", 30)

        assert result.status == AvailabilityStatus.AVAILABLE
        assert result.doctor.name == "Ana Pérez"
        mock_httpx_client.get.assert_awaited_once_with(
            "/get-available-slots",
            params={"slug": "acme", "doctor_id": "doc-1", "date": "2024-03-04", "duration": "30"},
        )

    @pytest.mark.asyncio
    async def test_get_available_slots_error_envelope(self, client, mock_httpx_client):
        mock_httpx_client.get = AsyncMock(return_value=make_response(body={"error": "Doctor not found"}))
        client._client = mock_httpx_client

        with pytest.raises(TransportError):
            await client.get_available_slots("acme", "doc-x", "2024-03-04")

    @pytest.mark.asyncio
    async def test_get_available_slots_unknown_status(self, client, mock_httpx_client):
        mock_httpx_client.get = AsyncMock(
            return_value=make_response(
                body={
                    "doctor": {"id": "doc-1"},
                    "date": "2024-03-04",
                    "status": "ok",
                    "slots": [{"start": "08:00", "end": "08:30", "available": True}],
                }
            )
        )
        client._client = mock_httpx_client

        result = await client.get_available_slots("acme", "doc-1", "2024-03-04")

        assert result.status == AvailabilityStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_get_available_slots_malformed_slot(self, client, mock_httpx_client):
        mock_httpx_client.get = AsyncMock(
            return_value=make_response(
                body={"doctor": {"id": "doc-1"}, "slots": [{"start": "noon", "end": "later"}]}
            )
        )
        client._client = mock_httpx_client

        with pytest.raises(TransportError):
            await client.get_available_slots("acme", "doc-1", "2024-03-04")

    @pytest.mark.asyncio
    async def test_create_booking_returns_failure_body(self, client, mock_httpx_client):
        """Structured failures are returned, not raised, whatever the status."""
        body = {"success": False, "error": "SLOT_NOT_AVAILABLE", "message": "Ocupado"}
        mock_httpx_client.post = AsyncMock(return_value=make_response(status_code=409, body=body))
        client._client = mock_httpx_client

        data = await client.create_booking({"slug": "acme"})

        assert data == body

    @pytest.mark.asyncio
    async def test_create_booking_invalid_json(self, client, mock_httpx_client):
        mock_httpx_client.post = AsyncMock(return_value=make_response(status_code=502, invalid_json=True))
        client._client = mock_httpx_client

        with pytest.raises(TransportError):
            await client.create_booking({"slug": "acme"})

    @pytest.mark.asyncio
    async def test_create_booking_unstructured_body(self, client, mock_httpx_client):
        mock_httpx_client.post = AsyncMock(return_value=make_response(body={"ok": True}))
        client._client = mock_httpx_client

        with pytest.raises(TransportError):
            await client.create_booking({"slug": "acme"})

    @pytest.mark.asyncio
    async def test_close(self, client, mock_httpx_client):
        client._client = mock_httpx_client

        await client.close()

        mock_httpx_client.aclose.assert_awaited_once()
        assert client._client is None
