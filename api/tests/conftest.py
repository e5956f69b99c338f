from __future__ import annotations

from collections.abc import Callable

import pytest

from app.core.config import get_settings
from app.core.rate_limit import limiter
from app.core.tokens import issue_token_pair


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    limiter.reset()


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    def _headers(role: str = "normal_user", user_id: int = 1, email: str = "user@example.com") -> dict[str, str]:
        tokens = issue_token_pair(
            user_id=user_id,
            uuid=f"00000000-0000-0000-0000-{user_id:012d}",
            email=email,
            role=role,
            settings=get_settings(),
        )
        return {"Authorization": f"Bearer {tokens.access_token}"}

    return _headers
