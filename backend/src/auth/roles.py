"""User roles and permissions for the compliance review service.

Roles are not hierarchical: vendors own submissions, consultants review the
submissions of vendors assigned to them, admins can act as either.

Permission Matrix:
┌──────────────────────────────┬────────┬────────────┬───────┐
│ Action                       │ VENDOR │ CONSULTANT │ ADMIN │
├──────────────────────────────┼────────┼────────────┼───────┤
│ Create / upload / submit     │   ✓    │            │   ✓   │
│ Resubmit rejected documents  │   ✓    │            │   ✓   │
│ Review documents             │        │     ✓      │   ✓   │
│ Finalize submissions         │        │     ✓      │   ✓   │
│ Bulk approve / reject        │        │            │   ✓   │
│ Manage users & assignments   │        │            │   ✓   │
│ MIS reporting, activity log  │        │            │   ✓   │
└──────────────────────────────┴────────┴────────────┴───────┘
"""

from enum import Enum
from typing import Iterable


class UserRole(str, Enum):
    """User roles.

    Values are stored as TEXT in the database and must match exactly.
    """
    VENDOR = "vendor"
    CONSULTANT = "consultant"
    ADMIN = "admin"


# Alias used by routers
Role = UserRole


def has_role(user_role: str, allowed_roles: Iterable[UserRole]) -> bool:
    """Check if a stored role string is one of the allowed roles.

    Examples:
        >>> has_role("admin", [UserRole.CONSULTANT, UserRole.ADMIN])
        True
        >>> has_role("vendor", [UserRole.CONSULTANT])
        False
    """
    try:
        role = UserRole(user_role)
    except ValueError:
        return False
    return role in set(allowed_roles)
