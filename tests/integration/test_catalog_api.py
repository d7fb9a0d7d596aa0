"""
HTTP tests for /api/clients, /api/artists, /api/expenses and /api/auth.
"""

from datetime import UTC, date, datetime
from types import SimpleNamespace
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from api.auth import hash_password


class FakePgError(Exception):
    def __init__(self, sqlstate: str, constraint_name: str | None = None):
        super().__init__(f"SQLSTATE {sqlstate}")
        self.sqlstate = sqlstate
        self.constraint_name = constraint_name


def stamp(obj):
    """Emulate server defaults applied by session.refresh()."""
    obj.id = obj.id or uuid4()
    obj.created_at = datetime(2025, 6, 1, tzinfo=UTC)
    if hasattr(type(obj), "updated_at"):
        obj.updated_at = datetime(2025, 6, 1, tzinfo=UTC)


class TestAuthRoutes:
    def test_short_password_rejected(self, client, mock_session):
        response = client.post("/api/auth/register", json={"username": "ana", "password": "123"})

        assert response.status_code == 400
        mock_session.add.assert_not_called()

    def test_register_creates_user(self, client, mock_session):
        mock_session.refresh.side_effect = stamp

        response = client.post(
            "/api/auth/register", json={"username": " ana ", "password": "secret123"}
        )

        assert response.status_code == 201
        assert response.json()["username"] == "ana"
        mock_session.commit.assert_awaited_once()

    def test_login_returns_token(self, client, mock_session, make_result):
        user = SimpleNamespace(id=uuid4(), username="ana", password_hash=hash_password("secret123"))
        mock_session.execute.return_value = make_result(scalar=user)

        response = client.post("/api/auth/login", json={"username": "ana", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["token"]
        assert response.json()["expires_in"] == 8 * 3600

    def test_login_wrong_password_is_401(self, client, mock_session, make_result):
        user = SimpleNamespace(id=uuid4(), username="ana", password_hash=hash_password("secret123"))
        mock_session.execute.return_value = make_result(scalar=user)

        response = client.post("/api/auth/login", json={"username": "ana", "password": "nope"})

        assert response.status_code == 401


class TestClients:
    def test_duplicate_email_is_409(self, client, auth_headers, mock_session):
        mock_session.commit.side_effect = IntegrityError(
            "INSERT", {}, FakePgError("23505", "uq_clients_email")
        )

        response = client.post(
            "/api/clients",
            json={"name": "Lucia", "email": "lucia@example.com"},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "conflict"
        mock_session.rollback.assert_awaited()

    def test_blank_name_rejected(self, client, auth_headers, mock_session):
        response = client.post("/api/clients", json={"name": "   "}, headers=auth_headers)

        assert response.status_code == 400
        mock_session.add.assert_not_called()

    def test_missing_client_is_404(self, client, auth_headers, mock_session, make_result):
        mock_session.execute.return_value = make_result(scalar=None)

        response = client.get(f"/api/clients/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404


class TestArtists:
    def test_artist_with_appointments_cannot_be_deleted(
        self, client, auth_headers, mock_session, make_result
    ):
        mock_session.execute.return_value = make_result(scalar=SimpleNamespace(id=uuid4()))
        mock_session.scalar.return_value = 3

        response = client.delete(f"/api/artists/{uuid4()}", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["appointment_count"] == 3
        mock_session.delete.assert_not_awaited()

    def test_artist_without_appointments_is_deleted(
        self, client, auth_headers, mock_session, make_result
    ):
        artist = SimpleNamespace(id=uuid4())
        mock_session.execute.return_value = make_result(scalar=artist)
        mock_session.scalar.return_value = 0

        response = client.delete(f"/api/artists/{artist.id}", headers=auth_headers)

        assert response.status_code == 204
        mock_session.delete.assert_awaited_once_with(artist)


class TestExpenses:
    def test_create_expense(self, client, auth_headers, mock_session):
        mock_session.refresh.side_effect = stamp

        response = client.post(
            "/api/expenses",
            json={
                "description": "June rent",
                "amount": "150000",
                "category": "rent",
                "expense_date": "2025-06-01",
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["amount"] == 150000
        assert response.json()["category"] == "rent"

    def test_zero_amount_rejected(self, client, auth_headers, mock_session):
        response = client.post(
            "/api/expenses",
            json={"description": "Nothing", "amount": 0, "category": "other"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        mock_session.add.assert_not_called()

    def test_unknown_category_rejected(self, client, auth_headers):
        response = client.post(
            "/api/expenses",
            json={"description": "Coffee", "amount": 10, "category": "snacks"},
            headers=auth_headers,
        )

        assert response.status_code == 400

    def test_reversed_date_filter_rejected(self, client, auth_headers, mock_session):
        response = client.get(
            "/api/expenses",
            params={"start_date": date(2025, 6, 30).isoformat(), "end_date": "2025-06-01"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        mock_session.execute.assert_not_called()
