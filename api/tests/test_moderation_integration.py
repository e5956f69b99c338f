from __future__ import annotations

import asyncio
import os
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import asyncpg  # type: ignore[import-untyped]
import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.main import app
from app.services.repository import get_repository

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "db" / "schema.sql"
PASSWORD = "Str0ngPass"

T = TypeVar("T")


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.getenv("LV_DATABASE_URL")
    if not url:
        pytest.skip("integration tests require LV_DATABASE_URL")
    _run(_apply_schema(url))
    return url


@pytest.fixture(autouse=True)
def reset_tables(database_url: str) -> None:
    _run(_truncate_tables(database_url))
    _run(
        _execute(
            database_url,
            """
            insert into categories (name, slug, sort_order) values ('Restaurants', 'restaurants', 1);
            insert into subcategories (category_id, name, slug) values (1, 'Cafes', 'cafes');
            """,
        )
    )


@pytest.fixture
def api_client(database_url: str, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("LV_DATABASE_URL", database_url)
    monkeypatch.setenv("LV_BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    get_repository.cache_clear()

    with TestClient(app) as client:
        yield client

    get_repository.cache_clear()
    get_settings.cache_clear()


def test_moderation_flow_over_all_content_kinds(api_client: TestClient, database_url: str) -> None:
    owner_headers = _register(api_client, "owner@example.com")
    business = api_client.post(
        "/api/businesses",
        json={"name": "Spice Garden", "categoryId": 1, "subcategoryId": 1, "city": "Pune"},
        headers=owner_headers,
    )
    assert business.status_code == 201
    business_id = business.json()["data"]["id"]
    assert business.json()["data"]["status"] == "pending"
    assert _run(_fetchval(database_url, "select role::text from users where email = 'owner@example.com'")) == (
        "business_user"
    )

    job = api_client.post(
        f"/api/businesses/{business_id}/jobs",
        json={"title": "Line Cook", "description": "Evening shifts", "skills": ["tandoor", "grill"]},
        headers=owner_headers,
    )
    offer = api_client.post(
        f"/api/businesses/{business_id}/offers",
        json={"title": "Diwali Discount", "discountValue": 15, "expiresAt": "2031-01-01T00:00:00Z"},
        headers=owner_headers,
    )
    assert job.status_code == 201
    assert job.json()["data"]["skills"] == ["tandoor", "grill"]
    assert offer.status_code == 201

    admin_headers = _admin_headers(api_client, database_url)
    job_id = job.json()["data"]["id"]
    offer_id = offer.json()["data"]["id"]

    approved_job = api_client.patch(f"/api/admin/posts/{job_id}/approve", json={"type": "job"}, headers=admin_headers)
    rejected_offer = api_client.patch(
        f"/api/admin/posts/{offer_id}/reject",
        json={"type": "offer", "reason": "Terms missing"},
        headers=admin_headers,
    )
    assert approved_job.json()["data"]["status"] == "approved"
    assert rejected_offer.json()["data"]["rejectionReason"] == "Terms missing"

    feed = api_client.get("/api/admin/posts", params={"status": "all"}, headers=admin_headers)
    assert feed.status_code == 200
    tagged = {(post["type"], post["status"]) for post in feed.json()["data"]["posts"]}
    assert tagged == {("listing", "pending"), ("job", "approved"), ("offer", "rejected")}
    assert all(post["businessName"] == "Spice Garden" for post in feed.json()["data"]["posts"])
    assert all(post["categoryName"] == "Restaurants" for post in feed.json()["data"]["posts"])

    searched = api_client.get("/api/admin/posts", params={"type": "business", "search": "Spice"}, headers=admin_headers)
    assert [post["title"] for post in searched.json()["data"]["posts"]] == ["Spice Garden"]

    approved_business = api_client.patch(
        f"/api/admin/posts/{business_id}/approve",
        json={"type": "business"},
        headers=admin_headers,
    )
    assert approved_business.json()["data"]["status"] == "approved"
    assert approved_business.json()["data"]["rejectionReason"] is None

    reapproved_offer = api_client.patch(
        f"/api/admin/posts/{offer_id}/approve",
        json={"type": "offer"},
        headers=admin_headers,
    )
    assert reapproved_offer.json()["data"]["rejectionReason"] is None

    toggled = api_client.patch(
        f"/api/admin/posts/{job_id}/toggle-status",
        json={"type": "job"},
        headers=admin_headers,
    )
    assert toggled.json()["data"]["isActive"] is False
    assert toggled.json()["data"]["status"] == "approved"

    approved_jobs = api_client.get("/api/approved/jobs")
    approved_offers = api_client.get("/api/approved/offers")
    assert approved_jobs.json()["data"] == []
    assert [row["title"] for row in approved_offers.json()["data"]] == ["Diwali Discount"]

    stats = api_client.get("/api/admin/stats", headers=admin_headers).json()["data"]
    assert stats["totalBusinesses"] == 1
    assert stats["pendingBusinesses"] == 0
    assert stats["totalJobs"] == 1


def test_admin_owned_business_cannot_be_toggled(api_client: TestClient, database_url: str) -> None:
    admin_headers = _admin_headers(api_client, database_url)
    owner_headers = _register(api_client, "owner@example.com")

    admin_business = api_client.post(
        "/api/businesses",
        json={"name": "Admin Cafe", "categoryId": 1},
        headers=admin_headers,
    ).json()["data"]
    owner_business = api_client.post(
        "/api/businesses",
        json={"name": "Chai Point", "categoryId": 1},
        headers=owner_headers,
    ).json()["data"]

    forbidden = api_client.patch(f"/api/admin/businesses/{admin_business['id']}/toggle-status", headers=admin_headers)
    allowed = api_client.patch(f"/api/admin/businesses/{owner_business['id']}/toggle-status", headers=admin_headers)

    assert forbidden.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["data"]["isActive"] is False


def test_business_pages_are_disjoint(api_client: TestClient) -> None:
    owner_headers = _register(api_client, "owner@example.com")
    for name in ("Spice Garden", "Chai Point", "Dosa Corner"):
        response = api_client.post("/api/businesses", json={"name": name, "categoryId": 1}, headers=owner_headers)
        assert response.status_code == 201

    first = api_client.get("/api/businesses", params={"page": 1, "limit": 2}).json()
    second = api_client.get("/api/businesses", params={"page": 2, "limit": 2}).json()

    first_ids = {row["id"] for row in first["data"]}
    second_ids = {row["id"] for row in second["data"]}
    assert first["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
    assert first_ids.isdisjoint(second_ids)
    assert len(first_ids | second_ids) == 3


def test_subcategory_must_belong_to_category(api_client: TestClient, database_url: str) -> None:
    _run(_execute(database_url, "insert into categories (name, slug) values ('Salons', 'salons');"))
    owner_headers = _register(api_client, "owner@example.com")

    response = api_client.post(
        "/api/businesses",
        json={"name": "Hair Studio", "categoryId": 2, "subcategoryId": 1},
        headers=owner_headers,
    )

    assert response.status_code == 400
    assert "subcategory" in response.json()["message"]


def _register(client: TestClient, email: str) -> dict[str, str]:
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "firstName": "Test"},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['data']['accessToken']}"}


def _admin_headers(client: TestClient, database_url: str) -> dict[str, str]:
    _register(client, "admin@example.com")
    _run(_execute(database_url, "update users set role = 'admin' where email = 'admin@example.com';"))
    login = client.post("/api/auth/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert login.status_code == 200
    return {"Authorization": f"Bearer {login.json()['data']['accessToken']}"}


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


async def _apply_schema(database_url: str) -> None:
    await _execute(database_url, SCHEMA_PATH.read_text())


async def _truncate_tables(database_url: str) -> None:
    await _execute(
        database_url,
        "truncate offers, jobs, reviews, businesses, subcategories, categories, users restart identity cascade;",
    )


async def _execute(database_url: str, sql: str) -> None:
    conn = await asyncpg.connect(database_url)
    try:
        await conn.execute(sql)
    finally:
        await conn.close()


async def _fetchval(database_url: str, query: str) -> Any:
    conn = await asyncpg.connect(database_url)
    try:
        return await conn.fetchval(query)
    finally:
        await conn.close()
