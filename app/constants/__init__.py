"""Constants package for Studio Galleries."""

from .roles import DEFAULT_ROLE, ROLE_HIERARCHY, RoleName, get_default_role_name, is_higher_role, role_rank
from .tiers import FEATURES, MAX_ORDER_ITEMS, TIER_LIMITS, TIER_ORDER, TenantTier, get_tier_limits, tier_includes

__all__ = [
    # Role constants
    "RoleName",
    "DEFAULT_ROLE",
    "ROLE_HIERARCHY",
    "get_default_role_name",
    "is_higher_role",
    "role_rank",
    # Tier constants
    "TenantTier",
    "TIER_ORDER",
    "TIER_LIMITS",
    "FEATURES",
    "MAX_ORDER_ITEMS",
    "get_tier_limits",
    "tier_includes",
]
