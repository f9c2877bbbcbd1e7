"""HTTP-level tests for the task, auth and user routers."""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from src.core.config import settings
from src.domain.user import User
from src.interface.email_sender import SendEmailResult
from src.interface.session import SESSION_COOKIE, require_user
from src.main import app


OWNER = User(id="7", email="owner@example.com", name="Owner")


@pytest.fixture
def client(patched_db) -> Generator[TestClient, None, None]:
    """Client whose requests are all made as OWNER."""
    app.dependency_overrides[require_user] = lambda: OWNER
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(patched_db) -> TestClient:
    return TestClient(app)


def _iso(hours: float) -> str:
    return (datetime.now(UTC) + timedelta(hours=hours)).isoformat()


def _create(client: TestClient, **body) -> dict:
    payload = {"title": "Write report", "startTime": _iso(1), "endTime": _iso(2), **body}
    response = client.post("/tasks", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.unit
class TestTaskRoutes:
    def test_create_returns_camel_case_task(self, client):
        task = _create(client)

        assert task["status"] == "active"
        assert task["ownerId"] == "7"
        assert task["isCompleted"] is False
        assert task["priority"] == "medium"
        assert "startTime" in task

    def test_create_recurring_returns_count(self, client):
        body = _create(client, startTime=_iso(0.1), endTime=_iso(1), recurrence={"type": "weekly"})

        assert body["message"] == "Recurring tasks created"
        assert body["count"] == 5

    def test_create_with_bad_range_is_400_with_code(self, client):
        response = client.post("/tasks", json={"title": "x", "startTime": _iso(2), "endTime": _iso(1)})

        assert response.status_code == 400
        assert response.json() == {
            "code": "ERR_INVALID_TIME_RANGE",
            "message": "End time must be after start time",
        }

    @pytest.mark.parametrize(
        "payload",
        [
            {"startTime": "2026-01-01T00:00:00Z", "endTime": "2026-01-01T01:00:00Z"},
            {"title": "   ", "startTime": "2026-01-01T00:00:00Z", "endTime": "2026-01-01T01:00:00Z"},
            {"title": "x", "startTime": "not a time", "endTime": "2026-01-01T01:00:00Z"},
            {"title": "x" * 256, "startTime": "2026-01-01T00:00:00Z", "endTime": "2026-01-01T01:00:00Z"},
            {
                "title": "x",
                "startTime": "2026-01-01T00:00:00Z",
                "endTime": "2026-01-01T01:00:00Z",
                "recurrence": {"type": "custom", "dates": []},
            },
        ],
    )
    def test_malformed_body_is_validation_error(self, client, payload):
        response = client.post("/tasks", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_VALIDATION"

    def test_list_newest_first(self, client):
        first = _create(client, title="First")
        second = _create(client, title="Second")

        response = client.get("/tasks")

        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == [second["id"], first["id"]]

    def test_update_completion_before_start(self, client):
        task = _create(client)

        response = client.put(f"/tasks/{task['id']}", json={"isCompleted": True})

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_TASK_NOT_STARTED"

    def test_update_title(self, client):
        task = _create(client)

        response = client.put(f"/tasks/{task['id']}", json={"title": "Renamed"})

        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"

    @pytest.mark.parametrize(
        "payload",
        [{"isCompleted": True, "title": None}, {"startTime": None}, {"priority": None}, {"isCompleted": None}],
    )
    def test_update_rejects_null_for_required_fields(self, client, payload):
        task = _create(client)

        response = client.put(f"/tasks/{task['id']}", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_VALIDATION"

    def test_update_null_description_clears_it(self, client):
        task = _create(client, description="Draft outline")

        response = client.put(f"/tasks/{task['id']}", json={"description": None})

        assert response.status_code == 200
        assert response.json()["description"] is None

    def test_update_unknown_task_is_404(self, client):
        response = client.put("/tasks/424242", json={"title": "x"})

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_NOT_FOUND"

    def test_delete(self, client):
        task = _create(client)

        response = client.delete(f"/tasks/{task['id']}")

        assert response.status_code == 200
        assert response.json() == {"message": "Task deleted successfully"}
        assert client.get("/tasks").json()[0]["status"] == "deleted"

    def test_analytics_route_not_shadowed_by_task_id(self, client):
        _create(client)

        response = client.get("/tasks/analytics")

        assert response.status_code == 200
        assert response.json() == {
            "total": 1,
            "completed": 0,
            "failed": 0,
            "deleted": 0,
            "active": 1,
            "successRate": 0,
        }

    def test_requires_session(self, anonymous_client):
        response = anonymous_client.get("/tasks")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authenticated"


@pytest.mark.unit
class TestAuthRoutes:
    def test_register_sets_session_and_me_works(self, anonymous_client):
        response = anonymous_client.post(
            "/auth/register", json={"email": "New@Example.com", "password": "hunter22", "name": "Newbie"}
        )

        assert response.status_code == 201
        assert response.json()["user"]["email"] == "new@example.com"
        assert SESSION_COOKIE in response.cookies

        me = anonymous_client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["name"] == "Newbie"

    def test_login_logout_cycle(self, anonymous_client):
        anonymous_client.post("/auth/register", json={"email": "a@example.com", "password": "hunter22", "name": "Al"})
        anonymous_client.post("/auth/logout")
        assert anonymous_client.get("/auth/me").status_code == 401

        response = anonymous_client.post("/auth/login", json={"email": "a@example.com", "password": "hunter22"})

        assert response.status_code == 200
        assert anonymous_client.get("/auth/me").status_code == 200

    def test_bad_login(self, anonymous_client):
        response = anonymous_client.post("/auth/login", json={"email": "a@example.com", "password": "nope"})

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_INVALID_CREDENTIALS"

    def test_tampered_cookie_is_401(self, anonymous_client):
        anonymous_client.cookies.set(SESSION_COOKIE, "forged.value.sig")

        assert anonymous_client.get("/auth/me").status_code == 401

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "not-an-email", "password": "hunter22", "name": "Al"},
            {"email": "a@example.com", "password": "short", "name": "Al"},
            {"email": "a@example.com", "password": "hunter22", "name": "A"},
        ],
    )
    def test_register_validation(self, anonymous_client, payload):
        response = anonymous_client.post("/auth/register", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_VALIDATION"


@pytest.mark.unit
class TestUserRoutes:
    @pytest.fixture
    def logged_in(self, anonymous_client) -> TestClient:
        anonymous_client.post(
            "/auth/register", json={"email": "p@example.com", "password": "hunter22", "name": "Pat"}
        )
        return anonymous_client

    def test_get_and_update_profile(self, logged_in):
        assert logged_in.get("/users/profile").json()["email"] == "p@example.com"

        response = logged_in.put("/users/profile", json={"theme": "dark", "name": "Patricia"})

        assert response.status_code == 200
        assert response.json()["theme"] == "dark"
        assert response.json()["name"] == "Patricia"

    def test_change_password(self, logged_in):
        response = logged_in.put(
            "/users/password", json={"currentPassword": "hunter22", "newPassword": "brand-new"}
        )

        assert response.status_code == 200
        login = logged_in.post("/auth/login", json={"email": "p@example.com", "password": "brand-new"})
        assert login.status_code == 200


    def test_verify_email_round_trip(self, logged_in, monkeypatch):
        send = AsyncMock(return_value=SendEmailResult(success=True))
        monkeypatch.setattr("src.services.user_service.send_verification_email", send)
        monkeypatch.setattr(settings, "frontend_base_url", None)
        assert logged_in.get("/users/profile").json()["emailVerified"] is False

        response = logged_in.post("/users/verify-email")
        verify_url = send.await_args.kwargs["verify_url"]

        assert response.json() == {"message": "Verification email sent"}
        confirm = logged_in.get(verify_url.removeprefix(settings.backend_base_url))
        assert confirm.json() == {"message": "Email verified successfully"}
        assert logged_in.get("/users/profile").json()["emailVerified"] is True
        assert logged_in.post("/users/verify-email").json()["code"] == "ERR_EMAIL_ALREADY_VERIFIED"

    def test_confirm_redirects_to_frontend_when_configured(self, logged_in, monkeypatch):
        send = AsyncMock(return_value=SendEmailResult(success=True))
        monkeypatch.setattr("src.services.user_service.send_verification_email", send)
        monkeypatch.setattr(settings, "frontend_base_url", "https://app.example.com/")
        logged_in.post("/users/verify-email")
        verify_url = send.await_args.kwargs["verify_url"]

        confirm = logged_in.get(verify_url.removeprefix(settings.backend_base_url), follow_redirects=False)

        assert confirm.status_code == 302
        assert confirm.headers["location"] == "https://app.example.com/settings?verified=1"

    @pytest.mark.parametrize("query", ["", "?token=", "?token=unknown"])
    def test_confirm_with_bad_token_is_400(self, anonymous_client, query):
        response = anonymous_client.get(f"/users/verify-email/confirm{query}")

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_INVALID_TOKEN"


@pytest.mark.unit
class TestAppBoundary:
    def test_health(self, anonymous_client):
        assert anonymous_client.get("/health").json() == {"status": "healthy"}

    def test_unexpected_error_is_generic_500(self, monkeypatch, patched_db):
        monkeypatch.setattr(
            "src.services.task_service.list_tasks", AsyncMock(side_effect=RuntimeError("db exploded"))
        )
        app.dependency_overrides[require_user] = lambda: OWNER
        try:
            response = TestClient(app, raise_server_exceptions=False).get("/tasks")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"code": "ERR_SERVER", "message": "Server error"}
