from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    NORMAL_USER = "normal_user"
    BUSINESS_USER = "business_user"
    ADMIN = "admin"


@dataclass(slots=True)
class Principal:
    user_id: int
    uuid: str
    email: str
    role: str

    def require_roles(self, allowed: set[str]) -> None:
        if self.role not in allowed:
            raise PermissionError(
                f"Access denied. This action requires one of the following roles: {', '.join(sorted(allowed))}."
            )


def principal_from_claims(claims: dict) -> Principal:
    return Principal(
        user_id=int(claims["userId"]),
        uuid=str(claims["uuid"]),
        email=str(claims["email"]),
        role=str(claims["role"]),
    )
