"""
Pricing Redaction Utility Module.

Pure functions that hide price information in plan features when a document
is exported without prices. Any text that looks like a price is replaced by
the placeholder "Available"; text that explicitly states a price is not
available is left alone.
"""

import re
from typing import Any, Dict

PLACEHOLDER = "Available"

CURRENCY_CODES = r"usd|eur|gbp|jpy|cad|aud|chf|hkd|sgd|nzd|inr|cny|rmb|zar|aed|myr|php|idr|mxn|brl|czk|ron|bgn|huf|pln|sek|dkk|nok|thb|twd|pkr|egp|kes|ngn|mur|omr|uah|zmw|cop|hrk"

NOT_AVAILABLE_PATTERNS = [
    re.compile(r"not\s+available", re.IGNORECASE),
    re.compile(r"\bn/a\b", re.IGNORECASE),
    re.compile(r"unavailable", re.IGNORECASE),
    re.compile(r"no\s+price", re.IGNORECASE),
    re.compile(r"price\s+not\s+available", re.IGNORECASE),
    re.compile(r"contact\s+for\s+pricing", re.IGNORECASE),
    re.compile(r"pricing\s+upon\s+request", re.IGNORECASE),
]

PRICE_PATTERNS = [
    # US$ 10, HK$5, A$20
    re.compile(r"\b[A-Z]{1,3}\$\s*\d"),
    # USD 10, EUR 9.99
    re.compile(rf"\b(?:{CURRENCY_CODES})\s*\d", re.IGNORECASE),
    # $10, € 5, £2.50
    re.compile(r"[$€£¥₹]\s*\d"),
    # 10 USD, 9.99eur
    re.compile(rf"\d+(?:[.,]\d+)?\s*(?:{CURRENCY_CODES})\b", re.IGNORECASE),
    # 10 per month, 120 per year, 5/month
    re.compile(r"\d+(?:[.,]\d+)?\s*(?:per|/)\s*(?:month|mo|year|yr|annum)\b", re.IGNORECASE),
]

PLACEHOLDER_RUN = re.compile(
    rf"\b{PLACEHOLDER}(?:[\s,;/|+-]*\b{PLACEHOLDER}\b)+",
    re.IGNORECASE,
)

PRICING_KEY_MARKERS = ("price", "cost", "fee", "amount", "currency", "pricing")


def states_unavailable(text: str) -> bool:
    """Whether text explicitly states that a price is not available."""
    return any(pattern.search(text) for pattern in NOT_AVAILABLE_PATTERNS)


def contains_price(text: str) -> bool:
    """
    Whether text contains something that looks like a price.

    Examples:
    - "$10.00/month" -> True
    - "USD 25 per year" -> True
    - "15 EUR" -> True
    - "Unlimited mail storage" -> False
    """
    return any(pattern.search(text) for pattern in PRICE_PATTERNS)


def collapse_placeholders(text: str) -> str:
    """Collapse runs such as "Available available" into one placeholder."""
    return PLACEHOLDER_RUN.sub(PLACEHOLDER, text)


def redact_text(text: str) -> str:
    """
    Redact a single display string.

    Args:
        text: Feature or detail value

    Returns:
        "Available" when the text carries a price, the text with collapsed
        placeholder runs otherwise. Unavailability statements are returned
        unchanged.
    """
    if not text or states_unavailable(text):
        return text
    if contains_price(text):
        return PLACEHOLDER
    return collapse_placeholders(text)


def _is_pricing_key(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in PRICING_KEY_MARKERS)


def redact_value(value: Any) -> Any:
    """
    Redact pricing in an arbitrary JSON-like value.

    Strings are redacted with redact_text, lists and dicts recursively. Under
    a pricing key (price, cost, fee, amount, currency, pricing), structured
    values such as {"amount": 10, "currency": "USD"} become "Available".
    """
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, list):
        return [redact_value(item) for item in value]
    if isinstance(value, dict):
        return redact_mapping(value)
    return value


def redact_mapping(mapping: Dict[str, Any]) -> Dict[str, Any]:
    """Redact every value of a label -> value mapping, keeping key order."""
    redacted = {}
    for key, value in mapping.items():
        if _is_pricing_key(str(key)) and isinstance(value, (dict, list)):
            redacted[key] = PLACEHOLDER
        else:
            redacted[key] = redact_value(value)
    return redacted
