"""
Tests for the lookup key -> role mapping.
"""

import pytest

from finalwishes.config.product_roles import (
    ALL_LOOKUP_KEYS,
    LookupKeys,
    ONE_TIME_LOOKUP_KEYS,
    PRODUCT_ROLE_MAP,
    Roles,
    SUBSCRIPTION_PLAN_TYPES,
    get_plan_type,
    get_roles_for_lookup_key,
    is_subscription_key,
    lookup_key_grants_role,
)


def test_every_key_is_either_recurring_or_one_time():
    recurring = set(SUBSCRIPTION_PLAN_TYPES)
    assert recurring.isdisjoint(ONE_TIME_LOOKUP_KEYS)
    assert recurring | ONE_TIME_LOOKUP_KEYS == set(ALL_LOOKUP_KEYS)


def test_roles_keep_mapping_order():
    assert get_roles_for_lookup_key(LookupKeys.PREMIUM) == [Roles.BASIC, Roles.VIP, Roles.PRINTABLE]


@pytest.mark.parametrize("key", [None, "", "NOT_A_PRODUCT"])
def test_unknown_keys_grant_nothing(key):
    assert get_roles_for_lookup_key(key) == []
    assert lookup_key_grants_role(key, Roles.BASIC) is False


def test_binder_does_not_include_printables():
    assert lookup_key_grants_role(LookupKeys.BINDER, Roles.BINDER)
    assert not lookup_key_grants_role(LookupKeys.BINDER, Roles.PRINTABLE)


def test_custom_role_map_is_honoured():
    role_map = {"CUSTOM": ("special",)}
    assert get_roles_for_lookup_key("CUSTOM", role_map) == ["special"]
    assert get_roles_for_lookup_key(LookupKeys.BASIC, role_map) == []


def test_mapping_is_read_only():
    with pytest.raises(TypeError):
        PRODUCT_ROLE_MAP["NEW"] = ("basic",)


def test_plan_type_defaults_to_free():
    assert get_plan_type(LookupKeys.VIP_MONTHLY) == "vip_monthly"
    assert get_plan_type(LookupKeys.BINDER) == "free"
    assert get_plan_type(None) == "free"
    assert is_subscription_key(LookupKeys.BASIC)
    assert not is_subscription_key(LookupKeys.SONG_PREMIUM)
