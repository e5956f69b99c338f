from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from app.core.auth import UserRole

logger = logging.getLogger(__name__)


class RoleWriter(Protocol):
    async def set_user_role(self, *, user_id: int, role: str) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class BusinessCreated:
    business_id: int
    owner_id: int
    owner_role: str


async def handle_business_created(repository: RoleWriter, event: BusinessCreated) -> str | None:
    """Promote a plain user to ``business_user`` once they own a business.

    Returns the new role when a promotion happened, otherwise ``None``.
    """
    if event.owner_role != UserRole.NORMAL_USER.value:
        return None

    await repository.set_user_role(user_id=event.owner_id, role=UserRole.BUSINESS_USER.value)
    logger.info(
        "promoted business owner user_id=%s business_id=%s role=%s",
        event.owner_id,
        event.business_id,
        UserRole.BUSINESS_USER.value,
    )
    return UserRole.BUSINESS_USER.value
