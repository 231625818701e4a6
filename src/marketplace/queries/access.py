"""Caller identity and order access rules.

Authentication happens upstream; the caller's id and role arrive already
resolved and are trusted here. Roles are parsed once into a closed enum.
"""

from dataclasses import dataclass
from enum import Enum

from marketplace.exceptions import AccessDenied


class Role(Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def caller_from(user_id: str | None, role: str | None) -> Caller:
    if not user_id:
        raise AccessDenied("Caller identity is required")
    try:
        parsed = Role((role or "").strip().lower())
    except ValueError:
        raise AccessDenied(f"Unknown role: {role}") from None
    return Caller(user_id=user_id, role=parsed)


def require_role(caller: Caller, *roles: Role) -> None:
    if caller.role not in roles:
        raise AccessDenied(f"Role '{caller.role.value}' may not perform this action")
