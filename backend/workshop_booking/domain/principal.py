"""Caller identity as handed over by the identity service."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    PARENT = "parent"
    CHILD = "child"


STAFF_ROLES = frozenset({Role.ADMIN, Role.STAFF})


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_staff(self) -> bool:
        """Admins count as staff for notification routing."""
        return self.role in STAFF_ROLES
