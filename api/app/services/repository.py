from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Any
from uuid import uuid4

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc
from opentelemetry import trace

from app.core.config import get_settings
from app.core.slugs import generate_slug, generate_unique_slug
from app.services.moderation import (
    CONTENT_TABLES,
    ContentKind,
    ContentTable,
    ModerationDecision,
    PostFilters,
    kinds_for_type_filter,
    merge_post_feeds,
)

tracer = trace.get_tracer(__name__)


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryConflictError(RepositoryError):
    """Raised when a write collides with an existing unique value or reference."""


class RepositoryForbiddenError(RepositoryError):
    """Raised when an operation is not permitted for the actor."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""


@dataclass(slots=True)
class UserCredentialRecord:
    id: int
    uuid: str
    email: str
    password_hash: str
    role: str
    is_active: bool
    refresh_token: str | None


USER_ROLES = {"normal_user", "business_user", "admin"}
PROTECTED_OWNER_ROLE = "admin"
BUSINESS_SORT_COLUMNS = {
    "name": "b.name",
    "averageRating": "b.average_rating",
    "totalReviews": "b.total_reviews",
    "createdAt": "b.created_at",
}
BUSINESS_WRITABLE_COLUMNS = (
    "category_id",
    "subcategory_id",
    "description",
    "phone",
    "email",
    "website",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "pincode",
    "latitude",
    "longitude",
    "opening_time",
    "closing_time",
    "working_days",
)
JOB_WRITABLE_COLUMNS = (
    "title",
    "description",
    "job_type",
    "experience_level",
    "salary_min",
    "salary_max",
    "salary_currency",
    "location",
    "is_remote",
    "skills",
    "expires_at",
)
OFFER_WRITABLE_COLUMNS = (
    "title",
    "description",
    "discount_type",
    "discount_value",
    "min_order_value",
    "max_discount",
    "coupon_code",
    "terms_and_conditions",
    "image",
    "starts_at",
    "expires_at",
)

USER_PROFILE_COLUMNS = """
  u.id,
  u.uuid,
  u.email,
  u.first_name,
  u.last_name,
  u.phone,
  u.avatar,
  u.role::text as role,
  u.is_active,
  u.is_email_verified,
  u.is_phone_verified,
  u.last_login_at,
  u.created_at,
  u.updated_at
"""

BUSINESS_DETAIL_QUERY = """
select
  b.id,
  b.uuid,
  b.owner_id,
  b.category_id,
  b.subcategory_id,
  b.name,
  b.slug,
  b.description,
  b.phone,
  b.email,
  b.website,
  b.address_line_1,
  b.address_line_2,
  b.city,
  b.state,
  b.pincode,
  b.country,
  b.latitude,
  b.longitude,
  b.logo,
  b.cover_image,
  b.opening_time,
  b.closing_time,
  b.working_days,
  b.is_active,
  b.is_verified,
  b.status::text as status,
  b.rejection_reason,
  b.average_rating,
  b.total_reviews,
  b.created_at,
  b.updated_at,
  c.name as category_name,
  c.slug as category_slug,
  s.name as subcategory_name,
  s.slug as subcategory_slug,
  u.uuid as owner_uuid,
  u.first_name as owner_first_name,
  u.last_name as owner_last_name,
  u.avatar as owner_avatar
from businesses b
left join categories c on c.id = b.category_id
left join subcategories s on s.id = b.subcategory_id
left join users u on u.id = b.owner_id
"""

JOB_COLUMNS = """
  id,
  uuid,
  business_id,
  title,
  description,
  job_type::text as job_type,
  experience_level::text as experience_level,
  salary_min,
  salary_max,
  salary_currency,
  location,
  is_remote,
  skills,
  is_active,
  status::text as status,
  rejection_reason,
  expires_at,
  created_at,
  updated_at
"""

OFFER_COLUMNS = """
  id,
  uuid,
  business_id,
  title,
  description,
  discount_type::text as discount_type,
  discount_value,
  min_order_value,
  max_discount,
  coupon_code,
  terms_and_conditions,
  image,
  is_active,
  status::text as status,
  rejection_reason,
  starts_at,
  expires_at,
  created_at,
  updated_at
"""


class PostgresRepository:
    def __init__(self, database_url: str | None, min_pool_size: int, max_pool_size: int) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    # ------------------------------------------------------------------
    # users and credentials
    # ------------------------------------------------------------------

    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str | None,
        phone: str | None,
        role: str,
    ) -> dict[str, Any]:
        normalized_email = email.strip().lower()
        if role not in USER_ROLES:
            raise RepositoryValidationError("role must be one of: normal_user, business_user, admin")

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            if await conn.fetchval("select 1 from users where email = $1", normalized_email):
                raise RepositoryConflictError("An account with this email address already exists.")
            if phone and await conn.fetchval("select 1 from users where phone = $1", phone):
                raise RepositoryConflictError("An account with this phone number already exists.")

            try:
                row = await conn.fetchrow(
                    f"""
                    insert into users as u (uuid, email, password, first_name, last_name, phone, role)
                    values ($1, $2, $3, $4, $5, $6, $7::user_role)
                    returning {USER_PROFILE_COLUMNS}
                    """,
                    str(uuid4()),
                    normalized_email,
                    password_hash,
                    first_name.strip(),
                    self._coerce_text(last_name),
                    self._coerce_text(phone),
                    role,
                )
            except pg_exc.UniqueViolationError as exc:
                raise RepositoryConflictError("A record with this information already exists.") from exc
        return self._user_row_to_dict(row)

    async def get_user_credentials(
        self,
        *,
        email: str | None = None,
        user_id: int | None = None,
    ) -> UserCredentialRecord | None:
        if email is None and user_id is None:
            raise RepositoryValidationError("email or user_id is required")

        pool = await self._get_pool()
        if user_id is not None:
            row = await pool.fetchrow(
                """
                select id, uuid, email, password, role::text as role, is_active, refresh_token
                from users
                where id = $1
                """,
                user_id,
            )
        else:
            row = await pool.fetchrow(
                """
                select id, uuid, email, password, role::text as role, is_active, refresh_token
                from users
                where email = $1
                """,
                (email or "").strip().lower(),
            )
        if not row:
            return None
        return UserCredentialRecord(
            id=row["id"],
            uuid=row["uuid"],
            email=row["email"],
            password_hash=row["password"],
            role=row["role"],
            is_active=bool(row["is_active"]),
            refresh_token=row["refresh_token"],
        )

    async def store_refresh_token(
        self,
        *,
        user_id: int,
        refresh_token: str | None,
        record_login: bool = False,
    ) -> None:
        pool = await self._get_pool()
        await pool.execute(
            """
            update users
            set
              refresh_token = $2,
              last_login_at = case when $3 then now() else last_login_at end,
              updated_at = now()
            where id = $1
            """,
            user_id,
            refresh_token,
            record_login,
        )

    async def get_user_profile(self, user_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            select {USER_PROFILE_COLUMNS}
            from users u
            where u.id = $1
            """,
            user_id,
        )
        if not row:
            raise RepositoryNotFoundError("User profile not found.")
        return self._user_row_to_dict(row)

    async def update_user_profile(self, *, user_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        allowed = ("first_name", "last_name", "phone", "avatar")
        updates = {key: changes[key] for key in allowed if key in changes}
        if not updates:
            raise RepositoryValidationError("No fields provided for update.")
        for key in ("first_name", "last_name"):
            if isinstance(updates.get(key), str):
                updates[key] = updates[key].strip()

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            phone = updates.get("phone")
            if phone:
                owner_id = await conn.fetchval("select id from users where phone = $1", phone)
                if owner_id is not None and owner_id != user_id:
                    raise RepositoryConflictError("This phone number is already registered to another account.")

            params: list[Any] = [user_id]
            assignments: list[str] = []
            for column, value in updates.items():
                params.append(value)
                assignments.append(f"{column} = ${len(params)}")

            row = await conn.fetchrow(
                f"""
                update users as u
                set {", ".join(assignments)}, updated_at = now()
                where u.id = $1
                returning {USER_PROFILE_COLUMNS}
                """,
                *params,
            )
        if not row:
            raise RepositoryNotFoundError("User profile not found.")
        return self._user_row_to_dict(row)

    async def set_user_role(self, *, user_id: int, role: str) -> dict[str, Any]:
        if role not in USER_ROLES:
            raise RepositoryValidationError("role must be one of: normal_user, business_user, admin")
        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"""
            update users as u
            set role = $2::user_role, updated_at = now()
            where u.id = $1
            returning {USER_PROFILE_COLUMNS}
            """,
            user_id,
            role,
        )
        if not row:
            raise RepositoryNotFoundError("User not found.")
        return self._user_row_to_dict(row)

    async def list_users(
        self,
        *,
        role: str | None,
        search: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        pool = await self._get_pool()
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if role and role != "all":
            conditions.append(f"u.role = {bind(role)}::user_role")
        normalized_search = self._coerce_text(search)
        if normalized_search:
            token = bind(f"%{normalized_search}%")
            conditions.append(f"(u.first_name like {token} or u.email like {token})")

        where_sql = " and ".join(conditions) if conditions else "true"
        total = await pool.fetchval(f"select count(*) from users u where {where_sql}", *params)

        limit_token = bind(limit)
        offset_token = bind(offset)
        rows = await pool.fetch(
            f"""
            select {USER_PROFILE_COLUMNS}
            from users u
            where {where_sql}
            order by u.created_at desc, u.id desc
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._user_row_to_dict(row) for row in rows], int(total or 0)

    async def toggle_user_active(self, user_id: int) -> dict[str, Any]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                existing = await conn.fetchrow(
                    "select id, role::text as role from users where id = $1 for update",
                    user_id,
                )
                if not existing:
                    raise RepositoryNotFoundError("User not found.")
                if existing["role"] == PROTECTED_OWNER_ROLE:
                    raise RepositoryForbiddenError("Cannot modify admin accounts.")

                row = await conn.fetchrow(
                    f"""
                    update users as u
                    set is_active = not u.is_active, updated_at = now()
                    where u.id = $1
                    returning {USER_PROFILE_COLUMNS}
                    """,
                    user_id,
                )
        return self._user_row_to_dict(row)

    # ------------------------------------------------------------------
    # categories
    # ------------------------------------------------------------------

    async def list_categories(self) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        category_rows = await pool.fetch(
            """
            select id, name, slug, description, icon, sort_order, created_at
            from categories
            where is_active = true
            order by sort_order asc, name asc
            """
        )
        category_ids = [row["id"] for row in category_rows]
        subcategory_rows = []
        if category_ids:
            subcategory_rows = await pool.fetch(
                """
                select id, category_id, name, slug, description, icon, sort_order
                from subcategories
                where category_id = any($1::int[])
                order by sort_order asc, name asc
                """,
                category_ids,
            )

        subcategories_by_category: dict[int, list[dict[str, Any]]] = {}
        for row in subcategory_rows:
            subcategories_by_category.setdefault(row["category_id"], []).append(
                {
                    "id": row["id"],
                    "name": row["name"],
                    "slug": row["slug"],
                    "description": row["description"],
                    "icon": row["icon"],
                    "sort_order": row["sort_order"],
                }
            )

        return [
            {
                **self._category_row_to_dict(row),
                "subcategories": subcategories_by_category.get(row["id"], []),
            }
            for row in category_rows
        ]

    async def create_category(
        self,
        *,
        name: str,
        description: str | None,
        icon: str | None,
        sort_order: int,
    ) -> dict[str, Any]:
        normalized_name = name.strip()
        slug = generate_slug(normalized_name)
        if not slug:
            raise RepositoryValidationError("Category name must contain letters or digits.")

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            if await conn.fetchval("select 1 from categories where slug = $1", slug):
                raise RepositoryConflictError(f'A category with the name "{normalized_name}" already exists.')
            try:
                row = await conn.fetchrow(
                    """
                    insert into categories (name, slug, description, icon, sort_order)
                    values ($1, $2, $3, $4, $5)
                    returning id, name, slug, description, icon, sort_order, created_at
                    """,
                    normalized_name,
                    slug,
                    self._coerce_text(description),
                    self._coerce_text(icon),
                    sort_order,
                )
            except pg_exc.UniqueViolationError as exc:
                raise RepositoryConflictError(f'A category with the name "{normalized_name}" already exists.') from exc
        return self._category_row_to_dict(row)

    async def delete_category(self, category_id: int) -> None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                exists = await conn.fetchval("select 1 from categories where id = $1 for update", category_id)
                if not exists:
                    raise RepositoryNotFoundError("Category not found.")

                business_count = await conn.fetchval(
                    "select count(*) from businesses where category_id = $1",
                    category_id,
                )
                if business_count:
                    raise RepositoryConflictError(
                        f"Category is still referenced by {business_count} business(es)."
                    )

                await conn.execute("delete from subcategories where category_id = $1", category_id)
                await conn.execute("delete from categories where id = $1", category_id)

    async def list_admin_categories(self) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            """
            select
              c.id,
              c.name,
              c.slug,
              c.description,
              c.icon,
              c.is_active,
              c.sort_order,
              c.created_at,
              (select count(*) from businesses b where b.category_id = c.id) as business_count
            from categories c
            order by c.sort_order asc, c.id asc
            """
        )
        return [
            {
                **self._category_row_to_dict(row),
                "is_active": bool(row["is_active"]),
                "business_count": int(row["business_count"] or 0),
            }
            for row in rows
        ]

    # ------------------------------------------------------------------
    # businesses
    # ------------------------------------------------------------------

    async def list_businesses(
        self,
        *,
        category_id: int | None,
        subcategory_id: int | None,
        city: str | None,
        state: str | None,
        pincode: str | None,
        is_verified: bool | None,
        search: str | None,
        sort_by: str,
        sort_order: str,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        pool = await self._get_pool()
        conditions: list[str] = ["b.is_active = true"]
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if category_id is not None:
            conditions.append(f"b.category_id = {bind(category_id)}")
        if subcategory_id is not None:
            conditions.append(f"b.subcategory_id = {bind(subcategory_id)}")

        normalized_city = self._coerce_text(city)
        if normalized_city:
            conditions.append(f"b.city = {bind(normalized_city)}")
        normalized_state = self._coerce_text(state)
        if normalized_state:
            conditions.append(f"b.state = {bind(normalized_state)}")
        normalized_pincode = self._coerce_text(pincode)
        if normalized_pincode:
            conditions.append(f"b.pincode = {bind(normalized_pincode)}")

        if is_verified is not None:
            conditions.append(f"b.is_verified = {bind(is_verified)}")

        normalized_search = self._coerce_text(search)
        if normalized_search:
            conditions.append(f"b.name like {bind(f'%{normalized_search}%')}")

        where_sql = " and ".join(conditions)
        total = await pool.fetchval(f"select count(*) from businesses b where {where_sql}", *params)

        sort_expr = self._resolve_business_sort_expr(sort_by)
        direction = "asc" if sort_order == "asc" else "desc"
        limit_token = bind(limit)
        offset_token = bind(offset)

        rows = await pool.fetch(
            f"""
            select
              b.id,
              b.uuid,
              b.name,
              b.slug,
              b.description,
              b.phone,
              b.email,
              b.website,
              b.address_line_1,
              b.city,
              b.state,
              b.pincode,
              b.latitude,
              b.longitude,
              b.logo,
              b.cover_image,
              b.opening_time,
              b.closing_time,
              b.working_days,
              b.is_verified,
              b.average_rating,
              b.total_reviews,
              b.created_at,
              b.category_id,
              c.name as category_name,
              b.subcategory_id,
              s.name as subcategory_name,
              u.first_name as owner_first_name,
              u.last_name as owner_last_name
            from businesses b
            left join categories c on c.id = b.category_id
            left join subcategories s on s.id = b.subcategory_id
            left join users u on u.id = b.owner_id
            where {where_sql}
            order by {sort_expr} {direction}, b.id {direction}
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._business_list_row_to_dict(row) for row in rows], int(total or 0)

    async def get_business(self, identifier: str) -> dict[str, Any]:
        pool = await self._get_pool()
        row = await self._fetch_business_detail_row(conn=pool, identifier=identifier)
        if not row:
            raise RepositoryNotFoundError("Business not found.")
        return self._business_detail_row_to_dict(row)

    async def create_business(self, *, owner_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        name = self._coerce_text(payload.get("name"))
        if not name:
            raise RepositoryValidationError("Business name is required.")
        category_id = payload.get("category_id")
        if category_id is None:
            raise RepositoryValidationError("Category ID must be a positive integer.")

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await self._validate_business_category(
                conn=conn,
                category_id=category_id,
                subcategory_id=payload.get("subcategory_id"),
            )

            columns = ["uuid", "owner_id", "name", "slug", *BUSINESS_WRITABLE_COLUMNS]
            values: list[Any] = [str(uuid4()), owner_id, name, generate_unique_slug(name)]
            values.extend(self._blank_to_none(payload.get(column)) for column in BUSINESS_WRITABLE_COLUMNS)
            placeholders = ", ".join(f"${index}" for index in range(1, len(values) + 1))

            try:
                business_id = await conn.fetchval(
                    f"""
                    insert into businesses ({", ".join(columns)})
                    values ({placeholders})
                    returning id
                    """,
                    *values,
                )
            except pg_exc.UniqueViolationError as exc:
                raise RepositoryConflictError("A record with this information already exists.") from exc

            row = await self._fetch_business_detail_row(conn=conn, identifier=str(business_id))
        if not row:
            raise RepositoryNotFoundError("Business not found.")
        return self._business_detail_row_to_dict(row)

    async def update_business(
        self,
        *,
        identifier: str,
        actor_user_id: int,
        actor_role: str,
        changes: dict[str, Any],
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            existing = await self._fetch_business_detail_row(conn=conn, identifier=identifier)
            if not existing:
                raise RepositoryNotFoundError("Business not found.")
            if existing["owner_id"] != actor_user_id and actor_role != "admin":
                raise RepositoryForbiddenError("You do not have permission to update this business.")

            if changes.get("category_id") is not None or changes.get("subcategory_id") is not None:
                # A kept subcategory must still belong to a newly chosen category.
                subcategory_id = (
                    changes["subcategory_id"] if "subcategory_id" in changes else existing["subcategory_id"]
                )
                await self._validate_business_category(
                    conn=conn,
                    category_id=changes.get("category_id") or existing["category_id"],
                    subcategory_id=subcategory_id,
                )

            updates: dict[str, Any] = {}
            if "name" in changes and changes["name"] is not None:
                name = self._coerce_text(changes["name"])
                if not name:
                    raise RepositoryValidationError("Business name is required.")
                updates["name"] = name
                updates["slug"] = generate_unique_slug(name)
            for column in BUSINESS_WRITABLE_COLUMNS:
                if column not in changes:
                    continue
                if column == "category_id" and changes[column] is None:
                    continue
                updates[column] = self._blank_to_none(changes[column])
            if not updates:
                raise RepositoryValidationError("No fields provided for update.")

            params: list[Any] = [existing["id"]]
            assignments: list[str] = []
            for column, value in updates.items():
                params.append(value)
                assignments.append(f"{column} = ${len(params)}")

            try:
                await conn.execute(
                    f"""
                    update businesses
                    set {", ".join(assignments)}, updated_at = now()
                    where id = $1
                    """,
                    *params,
                )
            except pg_exc.UniqueViolationError as exc:
                raise RepositoryConflictError("A record with this information already exists.") from exc

            row = await self._fetch_business_detail_row(conn=conn, identifier=str(existing["id"]))
        if not row:
            raise RepositoryNotFoundError("Business not found.")
        return self._business_detail_row_to_dict(row)

    async def list_admin_businesses(
        self,
        *,
        status: str | None,
        search: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        pool = await self._get_pool()
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if status and status != "all":
            conditions.append(f"b.status = {bind(status)}::post_status")
        normalized_search = self._coerce_text(search)
        if normalized_search:
            conditions.append(f"b.name like {bind(f'%{normalized_search}%')}")

        where_sql = " and ".join(conditions) if conditions else "true"
        total = await pool.fetchval(f"select count(*) from businesses b where {where_sql}", *params)

        limit_token = bind(limit)
        offset_token = bind(offset)
        rows = await pool.fetch(
            f"""
            select
              b.id,
              b.uuid,
              b.name,
              b.slug,
              b.description,
              b.city,
              b.state,
              b.average_rating,
              b.total_reviews,
              b.is_verified,
              b.is_active,
              b.status::text as status,
              b.rejection_reason,
              b.category_id,
              c.name as category_name,
              u.first_name as owner_name,
              u.role::text as owner_role,
              b.created_at
            from businesses b
            left join categories c on c.id = b.category_id
            left join users u on u.id = b.owner_id
            where {where_sql}
            order by b.created_at desc, b.id desc
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._admin_business_row_to_dict(row) for row in rows], int(total or 0)

    # ------------------------------------------------------------------
    # jobs and offers
    # ------------------------------------------------------------------

    async def create_job(
        self,
        *,
        business_id: int,
        actor_user_id: int,
        actor_role: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        values = dict(payload)
        if isinstance(values.get("skills"), list):
            values["skills"] = json.dumps(values["skills"])
        row = await self._insert_business_content(
            table="jobs",
            columns=JOB_WRITABLE_COLUMNS,
            returning=JOB_COLUMNS,
            casts={"job_type": "job_type", "experience_level": "experience_level"},
            business_id=business_id,
            actor_user_id=actor_user_id,
            actor_role=actor_role,
            payload=values,
        )
        return self._job_row_to_dict(row)

    async def create_offer(
        self,
        *,
        business_id: int,
        actor_user_id: int,
        actor_role: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        row = await self._insert_business_content(
            table="offers",
            columns=OFFER_WRITABLE_COLUMNS,
            returning=OFFER_COLUMNS,
            casts={"discount_type": "discount_type"},
            business_id=business_id,
            actor_user_id=actor_user_id,
            actor_role=actor_role,
            payload=payload,
        )
        return self._offer_row_to_dict(row)

    async def _insert_business_content(
        self,
        *,
        table: str,
        columns: tuple[str, ...],
        returning: str,
        casts: dict[str, str],
        business_id: int,
        actor_user_id: int,
        actor_role: str,
        payload: dict[str, Any],
    ) -> asyncpg.Record:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            owner_id = await conn.fetchval("select owner_id from businesses where id = $1", business_id)
            if owner_id is None:
                raise RepositoryNotFoundError("Business not found.")
            if owner_id != actor_user_id and actor_role != "admin":
                raise RepositoryForbiddenError("You do not have permission to post for this business.")

            present = [column for column in columns if payload.get(column) is not None]
            params: list[Any] = [str(uuid4()), business_id]
            placeholders = ["$1", "$2"]
            for column in present:
                params.append(payload[column])
                cast = f"::{casts[column]}" if column in casts else ""
                placeholders.append(f"${len(params)}{cast}")

            # status falls back to the column default, which is always 'pending'.
            row = await conn.fetchrow(
                f"""
                insert into {table} (uuid, business_id{"".join(f", {column}" for column in present)})
                values ({", ".join(placeholders)})
                returning {returning}
                """,
                *params,
            )
        return row

    # ------------------------------------------------------------------
    # moderation
    # ------------------------------------------------------------------

    async def list_posts(self, filters: PostFilters) -> list[dict[str, Any]]:
        """Return the admin review feed across businesses, jobs and offers.

        ``limit`` and ``offset`` are applied to each kind before the merge, so
        one page holds up to ``limit`` rows per kind.
        """
        feeds: list[list[dict[str, Any]]] = []
        with tracer.start_as_current_span("repository.list_posts") as span:
            for kind in kinds_for_type_filter(filters.type):
                feed = await self._fetch_posts_for_kind(kind=kind, filters=filters)
                span.set_attribute(f"posts.{kind.value}.count", len(feed))
                feeds.append(feed)
        return merge_post_feeds(feeds)

    async def _fetch_posts_for_kind(self, *, kind: ContentKind, filters: PostFilters) -> list[dict[str, Any]]:
        table = CONTENT_TABLES[kind]
        pool = await self._get_pool()
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        status = filters.status_condition
        if status:
            conditions.append(f"{table.column('status')} = {bind(status)}::post_status")
        search = filters.search_term
        if search:
            conditions.append(f"{table.column(table.title_column)} like {bind(f'%{search}%')}")

        where_sql = " and ".join(conditions) if conditions else "true"
        limit_token = bind(filters.limit)
        offset_token = bind(filters.offset)

        rows = await pool.fetch(
            f"""
            select
              {table.column('id')} as id,
              {table.column('uuid')} as uuid,
              {table.column(table.title_column)} as title,
              {table.column('description')} as description,
              {table.column('status')}::text as status,
              {table.column('is_active')} as is_active,
              {table.column('rejection_reason')} as rejection_reason,
              b.name as business_name,
              b.id as business_id,
              c.name as category_name,
              {table.column('created_at')} as created_at
            from {table.source_sql}
            where {where_sql}
            order by {table.column('created_at')} desc, {table.column('id')} desc
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._post_row_to_dict(row, kind=kind) for row in rows]

    async def set_content_status(
        self,
        *,
        kind: ContentKind,
        content_id: int,
        decision: ModerationDecision,
    ) -> dict[str, Any]:
        table = CONTENT_TABLES[kind]
        pool = await self._get_pool()
        # Single-row write; concurrent decisions on one row resolve last-writer-wins.
        row = await pool.fetchrow(
            f"""
            update {table.table}
            set status = $2::post_status, rejection_reason = $3, updated_at = now()
            where id = $1
            returning {self._moderated_returning_sql(table)}
            """,
            content_id,
            decision.status,
            decision.rejection_reason,
        )
        if not row:
            raise RepositoryNotFoundError(f"{kind.label} not found.")
        return self._moderated_row_to_dict(row, kind=kind)

    async def toggle_content_active(self, *, kind: ContentKind, content_id: int) -> dict[str, Any]:
        table = CONTENT_TABLES[kind]
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                existing = await conn.fetchrow(
                    f"""
                    select {table.column('id')} as id, u.role::text as owner_role
                    from {table.source_sql}
                    left join users u on u.id = b.owner_id
                    where {table.column('id')} = $1
                    for update of {table.alias}
                    """,
                    content_id,
                )
                if not existing:
                    raise RepositoryNotFoundError(f"{kind.label} not found.")
                if existing["owner_role"] == PROTECTED_OWNER_ROLE:
                    raise RepositoryForbiddenError(
                        f"Cannot change the active state of a {kind.value} owned by an admin account."
                    )

                row = await conn.fetchrow(
                    f"""
                    update {table.table}
                    set is_active = not is_active, updated_at = now()
                    where id = $1
                    returning {self._moderated_returning_sql(table)}
                    """,
                    content_id,
                )
        return self._moderated_row_to_dict(row, kind=kind)

    async def get_admin_stats(self) -> dict[str, int]:
        pool = await self._get_pool()
        row = await pool.fetchrow(
            """
            select
              (select count(*) from users) as total_users,
              (select count(*) from businesses) as total_businesses,
              (select count(*) from businesses where status = 'pending') as pending_businesses,
              (select count(*) from categories) as total_categories,
              (select count(*) from jobs) as total_jobs,
              (select count(*) from jobs where status = 'pending') as pending_jobs,
              (select count(*) from offers) as total_offers,
              (select count(*) from offers where status = 'pending') as pending_offers,
              (select count(*) from reviews) as total_reviews
            """
        )
        return {key: int(row[key] or 0) for key in row.keys()}

    # ------------------------------------------------------------------
    # approved content
    # ------------------------------------------------------------------

    async def list_approved_businesses(
        self,
        *,
        search: str | None,
        category_id: int | None,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        pool = await self._get_pool()
        conditions: list[str] = ["b.status = 'approved'", "b.is_active = true"]
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        normalized_search = self._coerce_text(search)
        if normalized_search:
            conditions.append(f"b.name like {bind(f'%{normalized_search}%')}")
        if category_id is not None:
            conditions.append(f"b.category_id = {bind(category_id)}")

        where_sql = " and ".join(conditions)
        total = await pool.fetchval(f"select count(*) from businesses b where {where_sql}", *params)

        limit_token = bind(limit)
        offset_token = bind(offset)
        rows = await pool.fetch(
            f"""
            select
              b.id,
              b.uuid,
              b.name,
              b.slug,
              b.description,
              b.phone,
              b.city,
              b.state,
              b.latitude,
              b.longitude,
              b.logo,
              b.cover_image,
              b.is_verified,
              b.average_rating,
              b.total_reviews,
              c.name as category_name,
              b.created_at
            from businesses b
            left join categories c on c.id = b.category_id
            where {where_sql}
            order by b.created_at desc, b.id desc
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._approved_business_row_to_dict(row) for row in rows], int(total or 0)

    async def list_approved_jobs(self, *, limit: int, offset: int) -> tuple[list[dict[str, Any]], int]:
        pool = await self._get_pool()
        where_sql = "j.status = 'approved' and j.is_active = true"
        total = await pool.fetchval(f"select count(*) from jobs j where {where_sql}")
        rows = await pool.fetch(
            f"""
            select
              j.id,
              j.uuid,
              j.title,
              j.description,
              j.job_type::text as job_type,
              j.experience_level::text as experience_level,
              j.salary_min,
              j.salary_max,
              j.location,
              j.is_remote,
              b.name as business_name,
              b.logo as business_logo,
              j.created_at
            from jobs j
            left join businesses b on b.id = j.business_id
            where {where_sql}
            order by j.created_at desc, j.id desc
            limit $1
            offset $2
            """,
            limit,
            offset,
        )
        return [
            {
                "id": row["id"],
                "uuid": row["uuid"],
                "title": row["title"],
                "description": row["description"],
                "job_type": row["job_type"],
                "experience_level": row["experience_level"],
                "salary_min": self._coerce_float(row["salary_min"]),
                "salary_max": self._coerce_float(row["salary_max"]),
                "location": row["location"],
                "is_remote": bool(row["is_remote"]),
                "business_name": row["business_name"],
                "business_logo": row["business_logo"],
                "created_at": row["created_at"],
            }
            for row in rows
        ], int(total or 0)

    async def list_approved_offers(self, *, limit: int, offset: int) -> tuple[list[dict[str, Any]], int]:
        pool = await self._get_pool()
        where_sql = "o.status = 'approved' and o.is_active = true"
        total = await pool.fetchval(f"select count(*) from offers o where {where_sql}")
        rows = await pool.fetch(
            f"""
            select
              o.id,
              o.uuid,
              o.title,
              o.description,
              o.discount_type::text as discount_type,
              o.discount_value,
              o.coupon_code,
              o.image,
              b.name as business_name,
              b.logo as business_logo,
              o.starts_at,
              o.expires_at,
              o.created_at
            from offers o
            left join businesses b on b.id = o.business_id
            where {where_sql}
            order by o.created_at desc, o.id desc
            limit $1
            offset $2
            """,
            limit,
            offset,
        )
        return [
            {
                "id": row["id"],
                "uuid": row["uuid"],
                "title": row["title"],
                "description": row["description"],
                "discount_type": row["discount_type"],
                "discount_value": self._coerce_float(row["discount_value"]),
                "coupon_code": row["coupon_code"],
                "image": row["image"],
                "business_name": row["business_name"],
                "business_logo": row["business_logo"],
                "starts_at": row["starts_at"],
                "expires_at": row["expires_at"],
                "created_at": row["created_at"],
            }
            for row in rows
        ], int(total or 0)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    async def _validate_business_category(
        self,
        *,
        conn: asyncpg.Connection,
        category_id: int,
        subcategory_id: int | None,
    ) -> None:
        if not await conn.fetchval("select 1 from categories where id = $1", category_id):
            raise RepositoryValidationError("The specified category does not exist.")
        if subcategory_id is None:
            return
        belongs = await conn.fetchval(
            "select 1 from subcategories where id = $1 and category_id = $2",
            subcategory_id,
            category_id,
        )
        if not belongs:
            raise RepositoryValidationError(
                "The specified subcategory does not exist or does not belong to the selected category."
            )

    async def _fetch_business_detail_row(
        self,
        *,
        conn: asyncpg.Connection | asyncpg.Pool,
        identifier: str,
    ) -> asyncpg.Record | None:
        if identifier.isdigit():
            return await conn.fetchrow(f"{BUSINESS_DETAIL_QUERY} where b.id = $1", int(identifier))
        return await conn.fetchrow(f"{BUSINESS_DETAIL_QUERY} where b.uuid = $1", identifier)

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("LV_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _moderated_returning_sql(table: ContentTable) -> str:
        return f"""
          id,
          uuid,
          {table.title_column} as title,
          status::text as status,
          rejection_reason,
          is_active,
          {table.business_id_column} as business_id,
          created_at,
          updated_at
        """

    @staticmethod
    def _moderated_row_to_dict(row: asyncpg.Record, *, kind: ContentKind) -> dict[str, Any]:
        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "type": kind.feed_tag,
            "title": row["title"],
            "status": row["status"],
            "rejection_reason": row["rejection_reason"],
            "is_active": bool(row["is_active"]),
            "business_id": row["business_id"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _post_row_to_dict(row: asyncpg.Record, *, kind: ContentKind) -> dict[str, Any]:
        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "title": row["title"],
            "description": row["description"],
            "status": row["status"],
            "is_active": bool(row["is_active"]),
            "rejection_reason": row["rejection_reason"],
            "business_name": row["business_name"],
            "business_id": row["business_id"],
            "category_name": row["category_name"],
            "created_at": row["created_at"],
            "type": kind.feed_tag,
        }

    @staticmethod
    def _user_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "email": row["email"],
            "first_name": row["first_name"],
            "last_name": row["last_name"],
            "phone": row["phone"],
            "avatar": row["avatar"],
            "role": row["role"],
            "is_active": bool(row["is_active"]),
            "is_email_verified": bool(row["is_email_verified"]),
            "is_phone_verified": bool(row["is_phone_verified"]),
            "last_login_at": row["last_login_at"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _category_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "name": row["name"],
            "slug": row["slug"],
            "description": row["description"],
            "icon": row["icon"],
            "sort_order": row["sort_order"],
            "created_at": row["created_at"],
        }

    def _business_list_row_to_dict(self, row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "name": row["name"],
            "slug": row["slug"],
            "description": row["description"],
            "phone": row["phone"],
            "email": row["email"],
            "website": row["website"],
            "address_line_1": row["address_line_1"],
            "city": row["city"],
            "state": row["state"],
            "pincode": row["pincode"],
            "latitude": self._coerce_float(row["latitude"]),
            "longitude": self._coerce_float(row["longitude"]),
            "logo": row["logo"],
            "cover_image": row["cover_image"],
            "opening_time": row["opening_time"],
            "closing_time": row["closing_time"],
            "working_days": row["working_days"],
            "is_verified": bool(row["is_verified"]),
            "average_rating": self._coerce_float(row["average_rating"]) or 0.0,
            "total_reviews": int(row["total_reviews"] or 0),
            "created_at": row["created_at"],
            "category_id": row["category_id"],
            "category_name": row["category_name"],
            "subcategory_id": row["subcategory_id"],
            "subcategory_name": row["subcategory_name"],
            "owner_first_name": row["owner_first_name"],
            "owner_last_name": row["owner_last_name"],
        }

    def _business_detail_row_to_dict(self, row: asyncpg.Record) -> dict[str, Any]:
        category = None
        if row["category_id"] is not None and row["category_name"] is not None:
            category = {"id": row["category_id"], "name": row["category_name"], "slug": row["category_slug"]}
        subcategory = None
        if row["subcategory_id"] is not None and row["subcategory_name"] is not None:
            subcategory = {
                "id": row["subcategory_id"],
                "name": row["subcategory_name"],
                "slug": row["subcategory_slug"],
            }
        owner = None
        if row["owner_uuid"] is not None:
            owner = {
                "id": row["owner_id"],
                "uuid": row["owner_uuid"],
                "first_name": row["owner_first_name"],
                "last_name": row["owner_last_name"],
                "avatar": row["owner_avatar"],
            }

        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "owner_id": row["owner_id"],
            "category_id": row["category_id"],
            "subcategory_id": row["subcategory_id"],
            "name": row["name"],
            "slug": row["slug"],
            "description": row["description"],
            "phone": row["phone"],
            "email": row["email"],
            "website": row["website"],
            "address_line_1": row["address_line_1"],
            "address_line_2": row["address_line_2"],
            "city": row["city"],
            "state": row["state"],
            "pincode": row["pincode"],
            "country": row["country"],
            "latitude": self._coerce_float(row["latitude"]),
            "longitude": self._coerce_float(row["longitude"]),
            "logo": row["logo"],
            "cover_image": row["cover_image"],
            "opening_time": row["opening_time"],
            "closing_time": row["closing_time"],
            "working_days": row["working_days"],
            "is_active": bool(row["is_active"]),
            "is_verified": bool(row["is_verified"]),
            "status": row["status"],
            "rejection_reason": row["rejection_reason"],
            "average_rating": self._coerce_float(row["average_rating"]) or 0.0,
            "total_reviews": int(row["total_reviews"] or 0),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
            "category": category,
            "subcategory": subcategory,
            "owner": owner,
        }

    def _admin_business_row_to_dict(self, row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "name": row["name"],
            "slug": row["slug"],
            "description": row["description"],
            "city": row["city"],
            "state": row["state"],
            "average_rating": self._coerce_float(row["average_rating"]) or 0.0,
            "total_reviews": int(row["total_reviews"] or 0),
            "is_verified": bool(row["is_verified"]),
            "is_active": bool(row["is_active"]),
            "status": row["status"],
            "rejection_reason": row["rejection_reason"],
            "category_id": row["category_id"],
            "category_name": row["category_name"],
            "owner_name": row["owner_name"],
            "owner_role": row["owner_role"],
            "created_at": row["created_at"],
        }

    def _approved_business_row_to_dict(self, row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "name": row["name"],
            "slug": row["slug"],
            "description": row["description"],
            "phone": row["phone"],
            "city": row["city"],
            "state": row["state"],
            "latitude": self._coerce_float(row["latitude"]),
            "longitude": self._coerce_float(row["longitude"]),
            "logo": row["logo"],
            "cover_image": row["cover_image"],
            "is_verified": bool(row["is_verified"]),
            "average_rating": self._coerce_float(row["average_rating"]) or 0.0,
            "total_reviews": int(row["total_reviews"] or 0),
            "category_name": row["category_name"],
            "created_at": row["created_at"],
        }

    def _job_row_to_dict(self, row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "business_id": row["business_id"],
            "title": row["title"],
            "description": row["description"],
            "job_type": row["job_type"],
            "experience_level": row["experience_level"],
            "salary_min": self._coerce_float(row["salary_min"]),
            "salary_max": self._coerce_float(row["salary_max"]),
            "salary_currency": row["salary_currency"],
            "location": row["location"],
            "is_remote": bool(row["is_remote"]),
            "skills": self._coerce_skills(row["skills"]),
            "is_active": bool(row["is_active"]),
            "status": row["status"],
            "rejection_reason": row["rejection_reason"],
            "expires_at": row["expires_at"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    def _offer_row_to_dict(self, row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "uuid": row["uuid"],
            "business_id": row["business_id"],
            "title": row["title"],
            "description": row["description"],
            "discount_type": row["discount_type"],
            "discount_value": self._coerce_float(row["discount_value"]),
            "min_order_value": self._coerce_float(row["min_order_value"]),
            "max_discount": self._coerce_float(row["max_discount"]),
            "coupon_code": row["coupon_code"],
            "terms_and_conditions": row["terms_and_conditions"],
            "image": row["image"],
            "is_active": bool(row["is_active"]),
            "status": row["status"],
            "rejection_reason": row["rejection_reason"],
            "starts_at": row["starts_at"],
            "expires_at": row["expires_at"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _resolve_business_sort_expr(sort_by: str) -> str:
        return BUSINESS_SORT_COLUMNS.get(sort_by, "b.created_at")

    @staticmethod
    def _blank_to_none(value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @staticmethod
    def _coerce_text(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return str(value)

    @staticmethod
    def _coerce_float(value: Any) -> float | None:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return float(value)
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _coerce_skills(value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(item) for item in value]
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except json.JSONDecodeError:
                return [chunk.strip() for chunk in value.split(",") if chunk.strip()]
            if isinstance(decoded, list):
                return [str(item) for item in decoded]
        return []


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
