"""
Subscription Tier Constants

Tier ordering, per-tier quotas and the feature catalogue.
"""

from enum import Enum


class TenantTier(str, Enum):
    STARTER = "starter"
    PRO = "pro"
    STUDIO = "studio"


# Total order used for feature resolution: starter < pro < studio
TIER_ORDER = {
    TenantTier.STARTER: 0,
    TenantTier.PRO: 1,
    TenantTier.STUDIO: 2,
}

GB = 1024 * 1024 * 1024

# None = unlimited
TIER_LIMITS = {
    TenantTier.STARTER: {"max_galleries": 10, "max_storage_bytes": 5 * GB, "max_orders_per_month": 100},
    TenantTier.PRO: {"max_galleries": 50, "max_storage_bytes": 50 * GB, "max_orders_per_month": 1000},
    TenantTier.STUDIO: {"max_galleries": None, "max_storage_bytes": 500 * GB, "max_orders_per_month": None},
}

MAX_ORDER_ITEMS = 100

# feature name -> (minimum tier, display name)
FEATURES = {
    # Starter
    "galleries": (TenantTier.STARTER, "Galleries"),
    "code_access": (TenantTier.STARTER, "Code Access"),
    "downloads": (TenantTier.STARTER, "Downloads"),
    "favorites": (TenantTier.STARTER, "Favorites"),
    # Pro
    "print_orders": (TenantTier.PRO, "Print Orders"),
    "payments": (TenantTier.PRO, "Payments"),
    "coupons": (TenantTier.PRO, "Coupons"),
    "gift_cards": (TenantTier.PRO, "Gift Cards"),
    # Studio
    "white_label": (TenantTier.STUDIO, "White Label"),
    "custom_domain": (TenantTier.STUDIO, "Custom Domain"),
    "invoices": (TenantTier.STUDIO, "Invoices"),
    "api_access": (TenantTier.STUDIO, "API Access"),
    "multi_user": (TenantTier.STUDIO, "Multi-User"),
    "analytics": (TenantTier.STUDIO, "Analytics"),
}


def tier_rank(tier: str) -> int:
    return TIER_ORDER[TenantTier(tier)]


def tier_includes(tenant_tier: str, minimum_tier: str) -> bool:
    """True iff tenant_tier ranks at or above minimum_tier."""
    return tier_rank(tenant_tier) >= tier_rank(minimum_tier)


def get_tier_limits(tier: str) -> dict:
    return TIER_LIMITS[TenantTier(tier)]
