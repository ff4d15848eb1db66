"""
Product Roles Configuration
Maps Stripe price lookup keys to the application roles they grant
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple


class LookupKeys:
    """Stripe lookup keys for every paid product and subscription"""

    # Subscription plans
    BASIC = "EFABASIC"
    PREMIUM = "EFAPREMIUM"
    PREMIUM_YEAR = "EFAPREMIUMYEAR"
    VIP_YEAR = "EFAVIPYEAR"
    VIP_MONTHLY = "EFAVIPMONTHLY"

    # One-time products
    DO_IT_FOR_YOU = "EFADOFORU"
    BINDER = "EFABINDER"

    # Custom songs
    SONG_STANDARD = "STANDARDSONG"
    SONG_PREMIUM = "PREMIUMSONG"


class Roles:
    BASIC = "basic"
    VIP = "vip"
    PRINTABLE = "printable"
    DONE_FOR_YOU = "done_for_you"
    BINDER = "binder"
    SONG_STANDARD = "song_standard"
    SONG_PREMIUM = "song_premium"


# Single source of truth: lookup key -> roles granted on purchase
PRODUCT_ROLE_MAP: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    LookupKeys.BASIC: (Roles.BASIC, Roles.PRINTABLE),
    LookupKeys.PREMIUM: (Roles.BASIC, Roles.VIP, Roles.PRINTABLE),
    LookupKeys.PREMIUM_YEAR: (Roles.BASIC, Roles.VIP, Roles.PRINTABLE),
    LookupKeys.VIP_YEAR: (Roles.VIP, Roles.PRINTABLE),
    LookupKeys.VIP_MONTHLY: (Roles.VIP, Roles.PRINTABLE),
    LookupKeys.DO_IT_FOR_YOU: (Roles.DONE_FOR_YOU, Roles.BASIC, Roles.PRINTABLE),
    LookupKeys.BINDER: (Roles.BINDER,),
    LookupKeys.SONG_STANDARD: (Roles.SONG_STANDARD,),
    LookupKeys.SONG_PREMIUM: (Roles.SONG_PREMIUM,),
})

# Roles that unlock the interactive digital planner
DIGITAL_PLANNER_ROLES: FrozenSet[str] = frozenset({Roles.BASIC, Roles.VIP})

# Roles that unlock everything on the platform
FULL_PLATFORM_ROLES: FrozenSet[str] = frozenset({Roles.VIP, Roles.DONE_FOR_YOU})

# Roles that unlock the premium planning tools
PREMIUM_TOOLS_ROLES: FrozenSet[str] = FULL_PLATFORM_ROLES | {Roles.BINDER}

SONG_ROLES: FrozenSet[str] = frozenset({Roles.SONG_STANDARD, Roles.SONG_PREMIUM})

# Recurring products and the plan code stored on the subscription row
SUBSCRIPTION_PLAN_TYPES: Mapping[str, str] = MappingProxyType({
    LookupKeys.BASIC: "basic",
    LookupKeys.PREMIUM: "premium",
    LookupKeys.PREMIUM_YEAR: "premium_annual",
    LookupKeys.VIP_YEAR: "vip_annual",
    LookupKeys.VIP_MONTHLY: "vip_monthly",
})

ONE_TIME_LOOKUP_KEYS: FrozenSet[str] = frozenset({
    LookupKeys.DO_IT_FOR_YOU,
    LookupKeys.BINDER,
    LookupKeys.SONG_STANDARD,
    LookupKeys.SONG_PREMIUM,
})

ALL_LOOKUP_KEYS: Tuple[str, ...] = tuple(PRODUCT_ROLE_MAP.keys())

# Lookup keys shown on the /plans page
PLANS_PAGE_LOOKUP_KEYS: Tuple[str, ...] = (
    LookupKeys.BASIC,
    LookupKeys.PREMIUM_YEAR,
    LookupKeys.VIP_YEAR,
    LookupKeys.VIP_MONTHLY,
)

# Lookup keys shown on the /pricing page
PRICING_PAGE_LOOKUP_KEYS: Tuple[str, ...] = (
    LookupKeys.PREMIUM,
    LookupKeys.BASIC,
    LookupKeys.BINDER,
)


def get_roles_for_lookup_key(
    lookup_key: Optional[str],
    role_map: Mapping[str, Tuple[str, ...]] = PRODUCT_ROLE_MAP,
) -> List[str]:
    """Roles granted by a lookup key, in mapping order; unknown keys grant nothing"""
    if not lookup_key:
        return []
    return list(role_map.get(lookup_key, ()))


def lookup_key_grants_role(
    lookup_key: Optional[str],
    role: str,
    role_map: Mapping[str, Tuple[str, ...]] = PRODUCT_ROLE_MAP,
) -> bool:
    return role in get_roles_for_lookup_key(lookup_key, role_map)


def is_subscription_key(lookup_key: Optional[str]) -> bool:
    return lookup_key in SUBSCRIPTION_PLAN_TYPES


def get_plan_type(lookup_key: Optional[str]) -> str:
    """Plan code for a recurring lookup key (default to free)"""
    return SUBSCRIPTION_PLAN_TYPES.get(lookup_key or "", "free")
