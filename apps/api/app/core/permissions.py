"""Contact capability registry.

Each client contact carries six capability flags. A client can hide a
feature for all of its contacts by listing the permission key in
``Client.hidden_features``; hidden always wins over the contact flag.

Precedence: hidden_feature > contact flag
"""

from dataclasses import dataclass
from enum import Enum


class PermissionKey(str, Enum):
    """Portal features a contact can be granted."""

    DASHBOARD = "dashboard"
    BILLING = "billing"
    ANALYTICS = "analytics"
    UPTIME = "uptime"
    SUPPORT = "support"
    SITE_HEALTH = "site_health"


@dataclass(frozen=True)
class PermissionDef:
    """Permission definition with metadata."""

    key: PermissionKey
    label: str
    description: str
    contact_attr: str  # ClientContact column holding the flag


# =============================================================================
# Permission Registry
# =============================================================================

PERMISSION_REGISTRY: dict[PermissionKey, PermissionDef] = {
    PermissionKey.DASHBOARD: PermissionDef(
        PermissionKey.DASHBOARD, "Dashboard",
        "Overview cards on the portal home", "can_dashboard",
    ),
    PermissionKey.BILLING: PermissionDef(
        PermissionKey.BILLING, "Billing",
        "Subscriptions, invoices and payment methods", "can_billing",
    ),
    PermissionKey.ANALYTICS: PermissionDef(
        PermissionKey.ANALYTICS, "Analytics",
        "Visitor and pageview statistics", "can_analytics",
    ),
    PermissionKey.UPTIME: PermissionDef(
        PermissionKey.UPTIME, "Uptime",
        "Website up/down monitoring", "can_uptime",
    ),
    PermissionKey.SUPPORT: PermissionDef(
        PermissionKey.SUPPORT, "Support",
        "View and open support tickets", "can_support",
    ),
    PermissionKey.SITE_HEALTH: PermissionDef(
        PermissionKey.SITE_HEALTH, "Site Health",
        "Page speed and SSL checks", "can_site_health",
    ),
}


# =============================================================================
# Helper Functions
# =============================================================================

def get_all_permissions() -> list[PermissionDef]:
    """Get all permissions in display order."""
    return list(PERMISSION_REGISTRY.values())


def is_valid_permission(key: str) -> bool:
    """Check if permission key exists."""
    return key in PermissionKey._value2member_map_


def normalize_hidden_features(values: list[str] | None) -> list[str]:
    """
    Validate and de-duplicate a hidden-features list, preserving order.

    Raises:
        ValueError: If an entry is not a known permission key
    """
    result: list[str] = []
    for value in values or []:
        if not is_valid_permission(value):
            raise ValueError(f"Unknown feature: {value}")
        if value not in result:
            result.append(value)
    return result
