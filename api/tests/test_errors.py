from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.errors import register_exception_handlers
from app.main import app


def _failing_app() -> FastAPI:
    failing = FastAPI()
    register_exception_handlers(failing)

    @failing.get("/boom")
    async def boom() -> None:
        raise RuntimeError("database exploded")

    @failing.get("/conflict")
    async def conflict() -> None:
        raise HTTPException(status_code=409, detail="Already exists.")

    return failing


def test_unknown_route_uses_error_envelope() -> None:
    client = TestClient(app)
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route GET /api/does-not-exist not found"}


def test_validation_errors_are_reported_per_field() -> None:
    client = TestClient(app)
    response = client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": "short", "firstName": "A"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {error.get("field") for error in body["errors"]}
    assert {"email", "password", "firstName"} <= fields
    assert all(error["message"] for error in body["errors"])


def test_invalid_bearer_token_is_unauthorized() -> None:
    client = TestClient(app)
    response = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid access token. Please log in again."}


def test_http_exception_keeps_status_and_message() -> None:
    client = TestClient(_failing_app())
    response = client.get("/conflict")

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Already exists."}


def test_unhandled_error_includes_stack_outside_production() -> None:
    client = TestClient(_failing_app(), raise_server_exceptions=False)
    response = client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Internal server error"
    assert "RuntimeError" in body["stack"]


def test_unhandled_error_hides_stack_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LV_ENVIRONMENT", "production")
    get_settings.cache_clear()
    try:
        client = TestClient(_failing_app(), raise_server_exceptions=False)
        response = client.get("/boom")
    finally:
        monkeypatch.delenv("LV_ENVIRONMENT")
        get_settings.cache_clear()

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}
