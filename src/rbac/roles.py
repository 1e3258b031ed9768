"""
Role Definitions

Three roles used by the tax office:

    STAFF
    ├── admin     - Office owner / back-office administrator
    └── preparer  - Tax preparer handling client cases

    CLIENT
    └── client    - Taxpayer using the client portal
"""

from enum import Enum
from typing import FrozenSet, Set


class Role(str, Enum):
    """
    All roles in the system.

    Naming convention: UPPER_SNAKE_CASE for enum, lower_snake_case for value.
    """

    ADMIN = "admin"
    """
    Back-office administrator. Sees every case, document and appointment.
    """

    PREPARER = "preparer"
    """
    Tax preparer. Works client cases and receives office-wide alerts.
    """

    CLIENT = "client"
    """
    Taxpayer. Only receives notifications about their own case.
    """

    @property
    def is_staff(self) -> bool:
        """True for roles that receive office-wide (staff group) notifications."""
        return self in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self is Role.ADMIN

    @classmethod
    def parse(cls, value: str) -> "Role":
        """
        Parse a role string from a credential.

        Raises:
            ValueError: If the value is not one of the known roles
        """
        return cls(str(value).strip().lower())


# Roles that receive office-wide (staff group) notifications.
STAFF_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.PREPARER})


def get_staff_roles() -> Set[Role]:
    """Get all roles that belong to the staff group (admin and preparer)."""
    return set(STAFF_ROLES)
