"""
Helpers for deciding whether loosely-shaped plan data holds anything
"""

import math
from typing import Any, Dict, List


def has_meaningful_data(value: Any) -> bool:
    """True when value (recursively) holds a non-blank string, a number, True or such a child"""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set)):
        return any(has_meaningful_data(item) for item in value)
    if isinstance(value, dict):
        return any(has_meaningful_data(item) for item in value.values())
    # dates, uuids and other scalars count as filled in
    return True


def as_object(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    return [value] if value else []


def merge_objects(*sources: Any) -> Dict[str, Any]:
    """Merge dicts left to right; a later blank value never hides an earlier filled one"""
    result: Dict[str, Any] = {}
    for source in sources:
        for key, value in as_object(source).items():
            if has_meaningful_data(value) or key not in result:
                result[key] = value
    return result


def flatten_payload(payload: Any) -> Dict[str, Any]:
    """Lift the legacy `data` and `sections` wrappers to the top level of a plan payload"""
    payload = as_object(payload)
    return {**payload, **as_object(payload.get("data")), **as_object(payload.get("sections"))}


# Bookkeeping columns present on every stored record row
RECORD_METADATA_FIELDS = frozenset({"id", "plan_id", "created_at", "updated_at"})


def user_fields(value: Any) -> Any:
    """Drop record bookkeeping columns from a row, or from each row of a list"""
    if isinstance(value, dict):
        return {k: v for k, v in value.items() if k not in RECORD_METADATA_FIELDS}
    if isinstance(value, list):
        return [user_fields(item) for item in value]
    return value
