"""
Role Constants for Studio Galleries

Team member roles within a tenant, ordered from least to most privileged.
"""

from enum import Enum


class RoleName(str, Enum):
    """Enumeration of role names in the system."""

    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"
    OWNER = "owner"


# Role assigned to invited team members unless stated otherwise
DEFAULT_ROLE = RoleName.VIEWER

# Role hierarchy (higher number = more permissions)
ROLE_HIERARCHY = {
    RoleName.VIEWER: 1,
    RoleName.EDITOR: 2,
    RoleName.ADMIN: 3,
    RoleName.OWNER: 4,
}


def get_default_role_name() -> str:
    """Get the default role name for new team members."""
    return DEFAULT_ROLE.value


def role_rank(role: str | None) -> int:
    """
    Return the hierarchy rank of a role name.

    Unknown or missing roles rank 0, below every real role.
    """
    if not role:
        return 0
    try:
        return ROLE_HIERARCHY[RoleName(role)]
    except ValueError:
        return 0


def is_higher_role(role1: str, role2: str) -> bool:
    """Check if role1 has strictly higher privileges than role2."""
    return role_rank(role1) > role_rank(role2)
