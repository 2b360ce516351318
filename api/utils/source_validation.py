"""
Source Corpus Validation Utility Module.

Pure functions that check raw location JSON for structural problems and for
blank values anywhere in the document. Used by the validation endpoint to
spot data-quality regressions before they reach an export.
"""

import re
from typing import Any, List, Optional

PRICE_KEY_PATTERN = re.compile(r"amount|price|currency", re.IGNORECASE)

US_STATE_TYPE = "US State"
INTL_SINGLE_TYPE = "Intl Single"
INTL_MULTI_TYPE = "Intl Multi"


def deep_check(value: Any, path: Optional[List[str]] = None) -> List[str]:
    """
    Recursively report blank values.

    A value is blank when it is an empty string or null, or when it is the
    number 0 under a key matching amount/price/currency.

    Examples:
    - {"title": ""} -> ["Missing or blank value at title"]
    - {"plans": [{"monthly_price": {"amount": 0}}]}
      -> ["Missing or blank value at plans.[0].monthly_price.amount"]

    Args:
        value: Parsed JSON value
        path: Path segments leading to value

    Returns:
        List of error messages
    """
    path = path or []
    errors: List[str] = []

    if isinstance(value, list):
        for index, item in enumerate(value):
            errors.extend(deep_check(item, path + [f"[{index}]"]))
    elif isinstance(value, dict):
        for key, child in value.items():
            current = path + [str(key)]
            is_zero_price = (
                isinstance(child, (int, float))
                and not isinstance(child, bool)
                and child == 0
                and PRICE_KEY_PATTERN.search(str(key))
            )
            if child == "" or child is None or is_zero_price:
                errors.append(f"Missing or blank value at {'.'.join(current)}")
            elif isinstance(child, (dict, list)):
                errors.extend(deep_check(child, current))

    return errors


def _check_cities(data: dict, errors: List[str]):
    state_data = data.get("state_data")
    if not state_data:
        errors.append("Missing state_data")
        return
    cities = state_data.get("cities") if isinstance(state_data, dict) else None
    if not isinstance(cities, list):
        errors.append("Missing or invalid cities array")
    elif not cities:
        errors.append("No cities")


def validate_us_state(data: Any) -> List[str]:
    """Structural and deep checks for a US state file."""
    if not isinstance(data, dict):
        return ["Top-level JSON value is not an object"]
    errors = []
    if not data.get("state"):
        errors.append("Missing state")
    _check_cities(data, errors)
    errors.extend(deep_check(data))
    return errors


def validate_single_location(data: Any) -> List[str]:
    """Structural and deep checks for a single-location country file."""
    if not isinstance(data, dict):
        return ["Top-level JSON value is not an object"]
    errors = []
    if not data.get("state"):
        errors.append("Missing country (state)")
    _check_cities(data, errors)
    errors.extend(deep_check(data))
    return errors


def validate_multi_location(data: Any) -> List[str]:
    """Structural and deep checks for a multi-location country file."""
    if not isinstance(data, dict):
        return ["Top-level JSON value is not an object"]
    errors = []
    if not data.get("country"):
        errors.append("Missing country")
    regions = data.get("regions")
    if not isinstance(regions, list):
        errors.append("Missing or invalid regions array")
    elif not regions:
        errors.append("No regions")
    errors.extend(deep_check(data))
    return errors


VALIDATORS = {
    US_STATE_TYPE: validate_us_state,
    INTL_SINGLE_TYPE: validate_single_location,
    INTL_MULTI_TYPE: validate_multi_location,
}
