from __future__ import annotations

import asyncio
from typing import Any

from app.services.events import BusinessCreated, handle_business_created


class RecordingRoleWriter:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def set_user_role(self, *, user_id: int, role: str) -> dict[str, Any]:
        self.calls.append({"user_id": user_id, "role": role})
        return {"id": user_id, "role": role}


def test_normal_user_is_promoted_after_creating_business() -> None:
    writer = RecordingRoleWriter()

    result = asyncio.run(
        handle_business_created(writer, BusinessCreated(business_id=10, owner_id=3, owner_role="normal_user"))
    )

    assert result == "business_user"
    assert writer.calls == [{"user_id": 3, "role": "business_user"}]


def test_existing_business_user_and_admin_keep_their_role() -> None:
    writer = RecordingRoleWriter()

    for role in ("business_user", "admin"):
        result = asyncio.run(
            handle_business_created(writer, BusinessCreated(business_id=10, owner_id=3, owner_role=role))
        )
        assert result is None

    assert writer.calls == []
