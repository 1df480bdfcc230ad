"""Role and capability checks for Chapterhub.

Roles are ranked; capabilities name the comment actions a role may take:
- ADMIN (level 4): everything
- LEADER (level 3): moderation plus pinning
- ELITE_FIGHTER (level 2): moderate, delete and ban
- BEGINNER_FIGHTER (level 1): regular reader with upload rights elsewhere
- USER (level 0): registered reader
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels."""

    USER = "user"
    BEGINNER_FIGHTER = "beginner_fighter"
    ELITE_FIGHTER = "elite_fighter"
    LEADER = "leader"
    ADMIN = "admin"


class Capability(str, Enum):
    """Named permissions consulted before comment actions."""

    MODERATE_COMMENTS = "moderate_comments"
    DELETE_COMMENTS = "delete_comments"
    PIN_COMMENTS = "pin_comments"
    BAN_USERS = "ban_users"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.BEGINNER_FIGHTER: 1,
    UserRole.ELITE_FIGHTER: 2,
    UserRole.LEADER: 3,
    UserRole.ADMIN: 4,
}

_MODERATORS = frozenset({UserRole.ELITE_FIGHTER, UserRole.LEADER, UserRole.ADMIN})

CAPABILITY_ROLES: dict[Capability, frozenset[UserRole]] = {
    Capability.MODERATE_COMMENTS: _MODERATORS,
    Capability.DELETE_COMMENTS: _MODERATORS,
    Capability.BAN_USERS: _MODERATORS,
    Capability.PIN_COMMENTS: frozenset({UserRole.LEADER, UserRole.ADMIN}),
}


def _as_role(role: UserRole | str) -> UserRole | None:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role.

    Returns:
        Permission level (0-4), defaults to 0 for unknown roles
    """
    resolved = _as_role(role)
    if resolved is None:
        return 0
    return ROLE_HIERARCHY.get(resolved, 0)


def has_capability(role: UserRole | str | None, capability: Capability | str) -> bool:
    """Check whether a role holds a named capability.

    This is the only authorization check used by the comment services.
    Unknown roles and unknown capability names are denied.

    Examples:
        >>> has_capability("admin", Capability.BAN_USERS)
        True
        >>> has_capability("elite_fighter", "pin_comments")
        False
        >>> has_capability("user", "moderate_comments")
        False
    """
    if role is None:
        return False
    resolved = _as_role(role)
    if resolved is None:
        return False
    try:
        cap = Capability(capability)
    except ValueError:
        return False
    return resolved in CAPABILITY_ROLES[cap]


def is_moderator(role: UserRole | str | None) -> bool:
    """Check if role may moderate comments."""
    return has_capability(role, Capability.MODERATE_COMMENTS)
