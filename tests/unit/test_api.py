"""Tests for the HTTP layer: routing, status codes and error mapping."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from practice_site.core.chat.service import ChatService, get_chat_service
from practice_site.core.chat.session import SessionManager
from practice_site.core.content.models import ContentSnapshot
from practice_site.core.errors import ConflictError, FailureKind, TransportError
from practice_site.core.scheduling.availability import AvailableSlotsResult, DoctorRef
from practice_site.core.scheduling.booking import BookingFailure, BookingSuccess, get_booking_handler
from practice_site.core.scheduling.engine import get_scheduling_engine
from practice_site.core.scheduling.gema_client import get_gema_client
from practice_site.main import app, status_for

BOOKING = {
    "doctor_id": "doc-1",
    "date": "2024-03-04",
    "time": "10:30",
    "patient": {"national_id": "30123456", "first_name": "Ana", "last_name": "Pérez"},
}


@pytest.fixture
def client():
    """Client without lifespan, so no Redis or backend connection is attempted."""
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestErrors:
    """Test error-to-status mapping."""

    def test_root_names_no_practice(self, client):
        response = client.get("/")

        assert response.status_code == 400

    def test_malformed_slug(self, client):
        response = client.get("/sites/ACME!")

        assert response.status_code == 400

    def test_backend_outage_is_bad_gateway(self, client):
        gema = MagicMock()
        gema.get_website = AsyncMock(side_effect=TransportError("down"))
        app.dependency_overrides[get_gema_client] = lambda: gema

        response = client.get("/sites/acme")

        assert response.status_code == 502
        assert response.json()["error"] == "INTERNAL_ERROR"

    def test_conflict_maps_to_409(self):
        error = ConflictError("Horario ocupado")

        assert error.kind == FailureKind.SLOT_NOT_AVAILABLE
        assert status_for(error) == 409


class TestSites:
    """Test content, slots and booking endpoints."""

    def test_get_site(self, client):
        gema = MagicMock()
        gema.get_website = AsyncMock(
            return_value=ContentSnapshot.from_payload({"group": {"name": "Clínica Acme", "slug": "acme"}})
        )
        app.dependency_overrides[get_gema_client] = lambda: gema

        response = client.get("/sites/acme")

        assert response.status_code == 200
        assert response.json()["group"]["name"] == "Clínica Acme"
        gema.get_website.assert_awaited_once_with("acme")

    def test_get_slots(self, client):
        engine = MagicMock()
        engine.get_availability = AsyncMock(
            return_value=AvailableSlotsResult(doctor=DoctorRef("doc-1", "Ana"), date="2024-03-04", duration_minutes=30)
        )
        app.dependency_overrides[get_scheduling_engine] = lambda: engine

        response = client.get("/sites/acme/slots", params={"doctor_id": "doc-1", "date": "2024-03-04"})

        assert response.status_code == 200
        assert response.json()["doctor"] == {"id": "doc-1", "name": "Ana"}

    def test_get_slots_invalid_date(self, client):
        app.dependency_overrides[get_scheduling_engine] = lambda: MagicMock()

        response = client.get("/sites/acme/slots", params={"doctor_id": "doc-1", "date": "04/03/2024"})

        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_DATA"

    def test_booking_created(self, client):
        handler = MagicMock()
        handler.submit = AsyncMock(
            return_value=BookingSuccess(
                booking_id="b1",
                confirmation_code="ABC123",
                date="2024-03-04",
                time="10:30",
                doctor_name="Ana Pérez",
            )
        )
        app.dependency_overrides[get_booking_handler] = lambda: handler

        response = client.post("/sites/acme/bookings", json=BOOKING)

        assert response.status_code == 201
        assert response.json()["confirmation_code"] == "ABC123"
        request = handler.submit.call_args.args[0]
        assert request.practice_slug == "acme"
        assert request.patient.national_id == "30123456"

    @pytest.mark.parametrize(
        "kind,code",
        [
            (FailureKind.INVALID_DATA, 422),
            (FailureKind.SLOT_NOT_AVAILABLE, 409),
            (FailureKind.DOCTOR_NOT_FOUND, 404),
            (FailureKind.INTERNAL_ERROR, 502),
        ],
    )
    def test_booking_failure_status(self, client, kind, code):
        handler = MagicMock()
        handler.submit = AsyncMock(return_value=BookingFailure(kind=kind, message="x"))
        app.dependency_overrides[get_booking_handler] = lambda: handler

        response = client.post("/sites/acme/bookings", json=BOOKING)

        assert response.status_code == code
        assert response.json()["error"] == kind.value

    def test_booking_missing_fields(self, client):
        response = client.post("/sites/acme/bookings", json={"doctor_id": "doc-1"})

        assert response.status_code == 422


class TestChat:
    """Test chat endpoints."""

    @pytest.fixture(autouse=True)
    def chat_service(self):
        cache = MagicMock()
        cache.get = AsyncMock(return_value=ContentSnapshot.from_payload({"group": {"name": "Clínica Acme"}}))
        service = ChatService(session_manager=SessionManager(), cache_factory=lambda slug: cache)
        app.dependency_overrides[get_chat_service] = lambda: service
        with patch("practice_site.core.chat.session.get_redis", return_value=None):
            yield service

    def test_message(self, client):
        response = client.post("/sites/acme/chat", json={"message": "gracias"})

        assert response.status_code == 200
        data = response.json()
        assert data["intent"] == "thanks"
        assert data["handoff"] is None
        assert data["messages"][0]["sender"] == "bot"

    def test_session_continuity(self, client):
        first = client.post("/sites/acme/chat", json={"message": "hola"}).json()

        client.post("/sites/acme/chat", json={"message": "gracias", "session_id": first["session_id"]})
        session = client.get(f"/sites/acme/chat/{first['session_id']}").json()

        assert len(session["messages"]) == 5

    def test_quick_reply_handoff(self, client):
        response = client.post("/sites/acme/chat", json={"quick_reply": "whatsapp"})

        data = response.json()
        assert data["messages"] == []
        assert data["handoff"]["delay_ms"] == 0

    @pytest.mark.parametrize("body", [{}, {"message": "hola", "quick_reply": "booking"}])
    def test_exactly_one_input(self, client, body):
        response = client.post("/sites/acme/chat", json=body)

        assert response.status_code == 422

    def test_empty_message(self, client):
        response = client.post("/sites/acme/chat", json={"message": "  "})

        assert response.status_code == 422
        assert response.json()["field"] == "message"

    def test_missing_session(self, client):
        response = client.get("/sites/acme/chat/nope")

        assert response.status_code == 404

    def test_reset(self, client):
        first = client.post("/sites/acme/chat", json={"message": "hola"}).json()

        response = client.delete(f"/sites/acme/chat/{first['session_id']}")

        assert response.status_code == 200
        assert response.json()["session_id"] != first["session_id"]
        assert client.get(f"/sites/acme/chat/{first['session_id']}").status_code == 404
