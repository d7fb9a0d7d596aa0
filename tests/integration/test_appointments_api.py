"""
HTTP tests for /api/appointments (TestClient + mocked session).
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest

from shared.config import get_settings

ARTIST_ID = uuid4()
CLIENT_ID = uuid4()


def booking(**overrides) -> dict:
    body = {
        "client_id": str(CLIENT_ID),
        "artist_id": str(ARTIST_ID),
        "appointment_time": "2025-06-10T14:00:00Z",
        "duration_minutes": 60,
        "total_price": 100000,
    }
    body.update(overrides)
    return body


class TestAuthRequired:
    def test_missing_token_is_401(self, client):
        response = client.get("/api/appointments")

        assert response.status_code == 401

    def test_garbage_token_is_401(self, client):
        response = client.get("/api/appointments", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401


class TestCreateAppointment:
    def test_create_returns_201(self, client, auth_headers, mock_session, make_result):
        mock_session.execute.side_effect = [
            make_result(scalar=SimpleNamespace(id=ARTIST_ID)),
            make_result(scalar=CLIENT_ID),
            make_result(rows=[]),
        ]

        response = client.post("/api/appointments", json=booking(), headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["artist_id"] == str(ARTIST_ID)
        assert body["status"] == "scheduled"
        assert body["payment_status"] == "pending"
        assert datetime.fromisoformat(body["end_time"]) == datetime(2025, 6, 10, 15, 0, tzinfo=UTC)

    def test_overlap_is_409_conflict(self, client, auth_headers, mock_session, make_result, make_appointment):
        existing = make_appointment(
            artist_id=ARTIST_ID,
            appointment_time=datetime(2025, 6, 10, 14, 0, tzinfo=UTC),
            duration_minutes=60,
        )
        mock_session.execute.side_effect = [
            make_result(scalar=SimpleNamespace(id=ARTIST_ID)),
            make_result(scalar=CLIENT_ID),
            make_result(rows=[existing]),
        ]

        response = client.post(
            "/api/appointments",
            json=booking(appointment_time="2025-06-10T14:30:00Z", duration_minutes=30),
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "conflict"
        mock_session.commit.assert_not_awaited()

    def test_unknown_artist_is_reference_error(self, client, auth_headers, mock_session, make_result):
        mock_session.execute.side_effect = [make_result(scalar=None)]

        response = client.post("/api/appointments", json=booking(), headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {
            "kind": "reference_error",
            "message": f"Artist {ARTIST_ID} does not exist.",
            "field": "artist_id",
        }

    def test_non_positive_duration_never_reaches_store(self, client, auth_headers, mock_session):
        response = client.post(
            "/api/appointments", json=booking(duration_minutes=0), headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "validation_error"
        mock_session.execute.assert_not_called()

    @pytest.mark.parametrize("duration", [True, "30", 30.5])
    def test_non_integer_duration_rejected(self, client, auth_headers, mock_session, duration):
        response = client.post(
            "/api/appointments", json=booking(duration_minutes=duration), headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "validation_error"
        mock_session.execute.assert_not_called()

    def test_fractional_money_rejected(self, client, auth_headers, mock_session):
        response = client.post(
            "/api/appointments", json=booking(amount_paid="12.50"), headers=auth_headers
        )

        assert response.status_code == 400
        mock_session.execute.assert_not_called()

    def test_paid_above_total_rejected(self, client, auth_headers, mock_session):
        response = client.post(
            "/api/appointments",
            json=booking(total_price=1000, amount_paid=2000),
            headers=auth_headers,
        )

        assert response.status_code == 400
        mock_session.execute.assert_not_called()


class TestUpdateAppointment:
    def test_empty_patch_rejected(self, client, auth_headers, mock_session):
        response = client.put(f"/api/appointments/{uuid4()}", json={}, headers=auth_headers)

        assert response.status_code == 400
        mock_session.execute.assert_not_called()

    def test_unknown_appointment_is_404(self, client, auth_headers, mock_session, make_result):
        mock_session.execute.return_value = make_result(scalar=None)

        response = client.put(
            f"/api/appointments/{uuid4()}", json={"description": "touch-up"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"


class TestReadAppointments:
    def test_list_includes_names(self, client, auth_headers, mock_session, make_result, make_appointment):
        row = make_appointment(
            client=SimpleNamespace(name="Lucia"),
            artist=SimpleNamespace(name="Diego"),
            created_at=None,
            updated_at=None,
        )
        row.end_time = row.appointment_time
        mock_session.execute.return_value = make_result(rows=[row])

        response = client.get("/api/appointments", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()[0]["client_name"] == "Lucia"
        assert response.json()[0]["artist_name"] == "Diego"

    def test_reversed_range_rejected(self, client, auth_headers, mock_session):
        response = client.get(
            "/api/appointments",
            params={"start": "2025-06-30T00:00:00Z", "end": "2025-06-01T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        mock_session.execute.assert_not_called()


@pytest.fixture
def new_york_studio(monkeypatch):
    """Studio in a zone with daylight saving (settings are cached)."""
    monkeypatch.setenv("STUDIO_TIMEZONE", "America/New_York")
    get_settings.cache_clear()
    yield
    monkeypatch.undo()
    get_settings.cache_clear()


class TestDaylightSavingBookings:
    """Local times without an offset, on the 2025-03-09 spring-forward day."""

    def test_end_time_is_elapsed_duration(
        self, new_york_studio, client, auth_headers, mock_session, make_result
    ):
        mock_session.execute.side_effect = [
            make_result(scalar=SimpleNamespace(id=ARTIST_ID)),
            make_result(scalar=CLIENT_ID),
            make_result(rows=[]),
        ]

        response = client.post(
            "/api/appointments",
            json=booking(appointment_time="2025-03-09T01:30:00", duration_minutes=120),
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert datetime.fromisoformat(response.json()["end_time"]) == datetime(
            2025, 3, 9, 8, 30, tzinfo=UTC
        )
        added = mock_session.add.call_args[0][0]
        assert added.appointment_time == datetime(2025, 3, 9, 6, 30, tzinfo=UTC)
        assert added.ends_at - added.appointment_time == timedelta(hours=2)

    def test_overlap_after_clock_change_is_409(
        self, new_york_studio, client, auth_headers, mock_session, make_result, make_appointment
    ):
        existing = make_appointment(
            artist_id=ARTIST_ID,
            appointment_time=datetime(2025, 3, 9, 8, 0, tzinfo=UTC),
            duration_minutes=30,
        )
        mock_session.execute.side_effect = [
            make_result(scalar=SimpleNamespace(id=ARTIST_ID)),
            make_result(scalar=CLIENT_ID),
            make_result(rows=[existing]),
        ]

        response = client.post(
            "/api/appointments",
            json=booking(appointment_time="2025-03-09T01:30:00", duration_minutes=120),
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "conflict"
        mock_session.commit.assert_not_awaited()
