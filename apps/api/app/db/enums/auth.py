"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Portal roles, stored as public metadata on the identity provider.

    - ADMIN: Full portal administration, may impersonate users
    - TEAM_MEMBER: Agency staff (form submissions, read-only admin views)
    - CLIENT: End customer, sees only clients they are linked to
    """

    ADMIN = "admin"
    TEAM_MEMBER = "team_member"
    CLIENT = "client"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


# Older provider metadata used "employee" before team members were renamed.
LEGACY_ROLE_ALIASES: dict[str, Role] = {
    "employee": Role.TEAM_MEMBER,
}

ROLES_STAFF = {Role.ADMIN, Role.TEAM_MEMBER}
