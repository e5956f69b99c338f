from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.passwords import hash_password
from app.core.tokens import decode_access_token, issue_token_pair
from app.main import app
from app.services.repository import RepositoryConflictError, UserCredentialRecord, get_repository

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeAuthRepository:
    def __init__(self) -> None:
        self.users: dict[int, dict[str, Any]] = {}
        self.passwords: dict[int, str] = {}
        self.refresh_tokens: dict[int, str | None] = {}
        self.logins: list[int] = []

    def seed(self, *, email: str, password: str, role: str = "normal_user", is_active: bool = True) -> dict[str, Any]:
        user_id = len(self.users) + 1
        self.users[user_id] = {
            "id": user_id,
            "uuid": f"00000000-0000-0000-0000-{user_id:012d}",
            "email": email,
            "first_name": "Asha",
            "last_name": "Rao",
            "phone": None,
            "avatar": None,
            "role": role,
            "is_active": is_active,
            "is_email_verified": False,
            "is_phone_verified": False,
            "last_login_at": None,
            "created_at": NOW,
            "updated_at": NOW,
        }
        self.passwords[user_id] = hash_password(password, rounds=4)
        self.refresh_tokens[user_id] = None
        return self.users[user_id]

    async def create_user(self, *, email: str, password_hash: str, first_name: str, last_name, phone, role: str):
        normalized = email.strip().lower()
        if any(user["email"] == normalized for user in self.users.values()):
            raise RepositoryConflictError("An account with this email address already exists.")
        user = self.seed(email=normalized, password="unused", role=role)
        user["first_name"] = first_name
        self.passwords[user["id"]] = password_hash
        return user

    async def get_user_credentials(self, *, email: str | None = None, user_id: int | None = None):
        for user in self.users.values():
            if (email is not None and user["email"] == email.strip().lower()) or user["id"] == user_id:
                return UserCredentialRecord(
                    id=user["id"],
                    uuid=user["uuid"],
                    email=user["email"],
                    password_hash=self.passwords[user["id"]],
                    role=user["role"],
                    is_active=user["is_active"],
                    refresh_token=self.refresh_tokens[user["id"]],
                )
        return None

    async def store_refresh_token(self, *, user_id: int, refresh_token: str | None, record_login: bool = False):
        self.refresh_tokens[user_id] = refresh_token
        if record_login:
            self.logins.append(user_id)

    async def get_user_profile(self, user_id: int) -> dict[str, Any]:
        return self.users[user_id]


@pytest.fixture
def fake_repo(monkeypatch: pytest.MonkeyPatch) -> FakeAuthRepository:
    monkeypatch.setenv("LV_BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    yield FakeAuthRepository()
    get_settings.cache_clear()


@pytest.fixture
def auth_client(fake_repo: FakeAuthRepository) -> TestClient:
    app.dependency_overrides[get_repository] = lambda: fake_repo

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def test_register_returns_user_and_tokens(auth_client: TestClient, fake_repo: FakeAuthRepository) -> None:
    response = auth_client.post(
        "/api/auth/register",
        json={
            "email": "Owner@Example.com",
            "password": "Str0ngPass",
            "firstName": "Meera",
            "role": "business_user",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "owner@example.com"
    assert body["data"]["user"]["role"] == "business_user"
    assert "password" not in body["data"]["user"]
    claims = decode_access_token(body["data"]["accessToken"], settings=get_settings())
    assert claims["role"] == "business_user"
    assert fake_repo.refresh_tokens[1] == body["data"]["refreshToken"]


def test_register_rejects_weak_password_and_admin_role(auth_client: TestClient) -> None:
    weak = auth_client.post(
        "/api/auth/register",
        json={"email": "a@example.com", "password": "alllowercase1", "firstName": "Meera"},
    )
    admin = auth_client.post(
        "/api/auth/register",
        json={"email": "a@example.com", "password": "Str0ngPass", "firstName": "Meera", "role": "admin"},
    )

    assert weak.status_code == 400
    assert weak.json()["errors"][0]["field"] == "password"
    assert admin.status_code == 400


def test_register_duplicate_email_conflicts(auth_client: TestClient, fake_repo: FakeAuthRepository) -> None:
    fake_repo.seed(email="taken@example.com", password="Str0ngPass")

    response = auth_client.post(
        "/api/auth/register",
        json={"email": "taken@example.com", "password": "Str0ngPass", "firstName": "Meera"},
    )

    assert response.status_code == 409
    assert response.json()["message"] == "An account with this email address already exists."


def test_login_issues_tokens_and_records_login(auth_client: TestClient, fake_repo: FakeAuthRepository) -> None:
    user = fake_repo.seed(email="asha@example.com", password="Str0ngPass")

    response = auth_client.post("/api/auth/login", json={"email": "asha@example.com", "password": "Str0ngPass"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == user["id"]
    assert data["accessToken"]
    assert fake_repo.refresh_tokens[user["id"]] == data["refreshToken"]
    assert fake_repo.logins == [user["id"]]


def test_login_with_wrong_password_or_unknown_email_is_unauthorized(
    auth_client: TestClient,
    fake_repo: FakeAuthRepository,
) -> None:
    fake_repo.seed(email="asha@example.com", password="Str0ngPass")

    wrong = auth_client.post("/api/auth/login", json={"email": "asha@example.com", "password": "Nope12345"})
    unknown = auth_client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "Str0ngPass"})

    for response in (wrong, unknown):
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password."


def test_login_to_deactivated_account_is_forbidden(auth_client: TestClient, fake_repo: FakeAuthRepository) -> None:
    fake_repo.seed(email="asha@example.com", password="Str0ngPass", is_active=False)

    response = auth_client.post("/api/auth/login", json={"email": "asha@example.com", "password": "Str0ngPass"})

    assert response.status_code == 403


def test_refresh_rotates_tokens(auth_client: TestClient, fake_repo: FakeAuthRepository) -> None:
    fake_repo.seed(email="asha@example.com", password="Str0ngPass")
    login = auth_client.post("/api/auth/login", json={"email": "asha@example.com", "password": "Str0ngPass"})
    original_refresh = login.json()["data"]["refreshToken"]

    response = auth_client.post("/api/auth/refresh-token", json={"refreshToken": original_refresh})

    assert response.status_code == 200
    rotated = response.json()["data"]["refreshToken"]
    assert rotated != original_refresh
    assert fake_repo.refresh_tokens[1] == rotated


def test_replayed_refresh_token_revokes_session(auth_client: TestClient, fake_repo: FakeAuthRepository) -> None:
    user = fake_repo.seed(email="asha@example.com", password="Str0ngPass")
    stale = issue_token_pair(
        user_id=user["id"],
        uuid=user["uuid"],
        email=user["email"],
        role=user["role"],
        settings=get_settings(),
    )
    fake_repo.refresh_tokens[user["id"]] = "current-token"

    response = auth_client.post("/api/auth/refresh-token", json={"refreshToken": stale.refresh_token})

    assert response.status_code == 401
    assert fake_repo.refresh_tokens[user["id"]] is None


def test_refresh_with_garbage_token_is_unauthorized(auth_client: TestClient) -> None:
    response = auth_client.post("/api/auth/refresh-token", json={"refreshToken": "garbage"})

    assert response.status_code == 401


def test_auth_endpoints_share_a_strict_attempt_budget(
    auth_client: TestClient,
    fake_repo: FakeAuthRepository,
) -> None:
    fake_repo.seed(email="asha@example.com", password="Str0ngPass")
    credentials = {"email": "asha@example.com", "password": "Nope12345"}

    attempts = [auth_client.post("/api/auth/login", json=credentials) for _ in range(10)]
    blocked = auth_client.post("/api/auth/login", json=credentials)
    refresh = auth_client.post("/api/auth/refresh-token", json={"refreshToken": "whatever"})

    assert {response.status_code for response in attempts} == {401}
    assert blocked.status_code == 429
    assert blocked.json() == {
        "success": False,
        "message": "Too many authentication attempts. Please try again after 15 minutes.",
    }
    assert refresh.status_code == 429


def test_non_auth_routes_are_not_charged_to_the_auth_budget(
    auth_client: TestClient,
    fake_repo: FakeAuthRepository,
) -> None:
    for _ in range(12):
        assert auth_client.get("/api/health").status_code == 200

    fake_repo.seed(email="asha@example.com", password="Str0ngPass")
    login = auth_client.post("/api/auth/login", json={"email": "asha@example.com", "password": "Str0ngPass"})

    assert login.status_code == 200
