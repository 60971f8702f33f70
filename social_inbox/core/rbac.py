"""
Canonical enumerations for social inbox access control.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class Platform(str, Enum):
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    WHATSAPP = "whatsapp"
    GMAIL = "gmail"


class PermissionLevel(str, Enum):
    VIEW_ONLY = "view_only"
    VIEW_AND_ANSWER = "view_and_answer"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def is_more_permissive_than(self, other: "PermissionLevel") -> bool:
        return self.rank > other.rank

    def satisfies(self, required: "PermissionLevel") -> bool:
        """True when this level grants at least ``required``."""
        return self.rank >= required.rank


_LEVEL_RANK: dict[PermissionLevel, int] = {
    PermissionLevel.VIEW_ONLY: 1,
    PermissionLevel.VIEW_AND_ANSWER: 2,
}


class AccessScope(str, Enum):
    USER = "user"
    TEAM = "team"
    ROLE = "role"


class PermissionSource(str, Enum):
    INDIVIDUAL = "individual"
    TEAM = "team"
    ROLE = "role"


# Declaration order doubles as the deterministic output order
PLATFORM_ORDER: tuple[Platform, ...] = tuple(Platform)


def is_admin_role(role: str | None, admin_roles: Iterable[str]) -> bool:
    if not role:
        return False
    normalized = role.strip().lower()
    return normalized in {r.strip().lower() for r in admin_roles if r and r.strip()}
