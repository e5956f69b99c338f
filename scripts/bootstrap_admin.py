#!/usr/bin/env python3
"""Emit deterministic SQL that assigns a LocalVibe role to an existing user."""

from __future__ import annotations

import argparse


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_sql(*, role: str, user_id: int | None, email: str | None, reactivate: bool) -> str:
    role_value = _quote_sql(role)

    if user_id is not None:
        target_where = f"id = {int(user_id)}"
    else:
        assert email is not None
        target_where = f"email = {_quote_sql(email.strip().lower())}"

    assignments = [f"role = {role_value}::user_role"]
    if reactivate:
        assignments.append("is_active = true")
    # Drop the stored refresh token so the next login issues claims with the new role.
    assignments.append("refresh_token = null")
    assignments.append("updated_at = now()")

    return f"""-- LocalVibe role bootstrap SQL
-- Run with: psql "$LV_DATABASE_URL" -f <this file>

update users
set {", ".join(assignments)}
where {target_where};
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to assign a LocalVibe role to a user.")
    parser.add_argument(
        "--role",
        choices=["normal_user", "business_user", "admin"],
        default="admin",
        help="Role to store in users.role",
    )
    identity_group = parser.add_mutually_exclusive_group(required=True)
    identity_group.add_argument("--user-id", type=int, help="users.id of the target account")
    identity_group.add_argument("--email", help="users.email of the target account")
    parser.add_argument(
        "--reactivate",
        action="store_true",
        help="Also set is_active = true on the target account",
    )
    args = parser.parse_args()

    print(
        render_sql(
            role=args.role,
            user_id=args.user_id,
            email=args.email,
            reactivate=args.reactivate,
        )
    )


if __name__ == "__main__":
    main()
