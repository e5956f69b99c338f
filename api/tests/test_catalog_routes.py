from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.repository import RepositoryConflictError, RepositoryNotFoundError, get_repository

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeCatalogRepository:
    def __init__(self) -> None:
        self.categories: dict[int, dict[str, Any]] = {
            1: {
                "id": 1,
                "name": "Restaurants",
                "slug": "restaurants",
                "description": None,
                "icon": "utensils",
                "sort_order": 1,
                "created_at": NOW,
                "subcategories": [
                    {"id": 10, "name": "Cafes", "slug": "cafes", "description": None, "icon": None, "sort_order": 0}
                ],
            }
        }
        self.referenced = {1}
        self.approved_calls: list[dict[str, Any]] = []

    async def list_categories(self) -> list[dict[str, Any]]:
        return list(self.categories.values())

    async def create_category(self, *, name: str, description, icon, sort_order: int) -> dict[str, Any]:
        slug = name.strip().lower().replace(" ", "-")
        if any(row["slug"] == slug for row in self.categories.values()):
            raise RepositoryConflictError(f'A category with the name "{name}" already exists.')
        row = {
            "id": len(self.categories) + 1,
            "name": name,
            "slug": slug,
            "description": description,
            "icon": icon,
            "sort_order": sort_order,
            "created_at": NOW,
        }
        self.categories[row["id"]] = row
        return row

    async def delete_category(self, category_id: int) -> None:
        if category_id not in self.categories:
            raise RepositoryNotFoundError("Category not found.")
        if category_id in self.referenced:
            raise RepositoryConflictError("Category is still referenced by 1 business(es).")
        del self.categories[category_id]

    async def list_approved_businesses(self, **kwargs: Any) -> tuple[list[dict[str, Any]], int]:
        self.approved_calls.append(kwargs)
        row = {
            "id": 1,
            "uuid": "biz-uuid",
            "name": "Spice Garden",
            "slug": "spice-garden",
            "description": None,
            "phone": None,
            "city": "Pune",
            "state": None,
            "latitude": None,
            "longitude": None,
            "logo": None,
            "cover_image": None,
            "is_verified": True,
            "average_rating": 4.5,
            "total_reviews": 12,
            "category_name": "Restaurants",
            "created_at": NOW,
        }
        return [row], 1

    async def list_approved_jobs(self, *, limit: int, offset: int) -> tuple[list[dict[str, Any]], int]:
        self.approved_calls.append({"limit": limit, "offset": offset})
        return [], 0

    async def list_approved_offers(self, *, limit: int, offset: int) -> tuple[list[dict[str, Any]], int]:
        self.approved_calls.append({"limit": limit, "offset": offset})
        return [], 0


@pytest.fixture
def fake_repo() -> FakeCatalogRepository:
    return FakeCatalogRepository()


@pytest.fixture
def catalog_client(fake_repo: FakeCatalogRepository) -> TestClient:
    app.dependency_overrides[get_repository] = lambda: fake_repo

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def test_list_categories_is_public_and_nests_subcategories(catalog_client: TestClient) -> None:
    response = catalog_client.get("/api/categories")

    assert response.status_code == 200
    category = response.json()["data"][0]
    assert category["slug"] == "restaurants"
    assert category["sortOrder"] == 1
    assert category["subcategories"][0]["name"] == "Cafes"


def test_create_category_requires_admin(
    catalog_client: TestClient,
    auth_headers: Callable[..., dict[str, str]],
) -> None:
    denied = catalog_client.post("/api/categories", json={"name": "Salons"}, headers=auth_headers(role="business_user"))
    created = catalog_client.post(
        "/api/categories",
        json={"name": "Salons", "sortOrder": 4},
        headers=auth_headers(role="admin"),
    )
    duplicate = catalog_client.post("/api/categories", json={"name": "Salons"}, headers=auth_headers(role="admin"))

    assert denied.status_code == 403
    assert created.status_code == 201
    assert created.json()["data"]["slug"] == "salons"
    assert duplicate.status_code == 409


def test_delete_category_conflicts_while_referenced(
    catalog_client: TestClient,
    fake_repo: FakeCatalogRepository,
    auth_headers: Callable[..., dict[str, str]],
) -> None:
    headers = auth_headers(role="admin")

    referenced = catalog_client.delete("/api/categories/1", headers=headers)
    missing = catalog_client.delete("/api/categories/77", headers=headers)
    fake_repo.referenced.clear()
    deleted = catalog_client.delete("/api/categories/1", headers=headers)

    assert referenced.status_code == 409
    assert missing.status_code == 404
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "message": "Category deleted successfully.", "data": None}


def test_approved_businesses_are_public_and_paginated(
    catalog_client: TestClient,
    fake_repo: FakeCatalogRepository,
) -> None:
    response = catalog_client.get("/api/approved/businesses", params={"search": "Spice", "categoryId": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["data"][0]["averageRating"] == 4.5
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}
    assert fake_repo.approved_calls[0] == {"search": "Spice", "category_id": 1, "limit": 20, "offset": 0}


def test_approved_jobs_and_offers_return_empty_pages(catalog_client: TestClient) -> None:
    jobs = catalog_client.get("/api/approved/jobs", params={"page": 2, "limit": 5})
    offers = catalog_client.get("/api/approved/offers")

    assert jobs.status_code == 200
    assert jobs.json()["data"] == []
    assert jobs.json()["pagination"] == {"page": 2, "limit": 5, "total": 0, "totalPages": 0}
    assert offers.json()["pagination"]["totalPages"] == 0
