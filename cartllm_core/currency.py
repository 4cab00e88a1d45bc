"""
Price patterns - keyword and USD currency detection for checkout totals.

No DOM access here: everything works on plain text, so every pipeline
stage shares one definition of what "looks like a price".
"""

import math
import re
from typing import List, Optional, Pattern, Union

from .config import config

PRICE_KEYWORDS = [
    "total", "amount", "price", "cost", "sum", "grand", "final",
    "checkout", "order", "cart", "payment", "due", "balance",
]

_NUMBER = r"(\d+(?:,\d{3})*(?:\.\d{2})?)"

# Order matters: extract_amount() tries them in this sequence.
CURRENCY_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\$\s*" + _NUMBER),
    re.compile(_NUMBER + r"\s*\$"),
    re.compile(r"USD\s*" + _NUMBER, re.IGNORECASE),
    re.compile(_NUMBER + r"\s*USD", re.IGNORECASE),
]

CHECKOUT_KEYWORDS = [
    "checkout", "cart", "basket", "bag", "payment",
    "order", "purchase", "buy", "shopping-cart",
]


def has_price_keyword(text: str) -> bool:
    lower = (text or "").lower()
    return any(keyword in lower for keyword in PRICE_KEYWORDS)


def has_currency(text: str) -> bool:
    return any(pattern.search(text or "") for pattern in CURRENCY_PATTERNS)


def contains_price_indicators(text: str) -> bool:
    """Both a price keyword and a currency amount are required."""
    return has_price_keyword(text) and has_currency(text)


def parse_number(raw: str) -> Optional[float]:
    """Parse "1,234.56" style numbers; None when not a finite number."""
    try:
        value = float(raw.replace(",", ""))
    except (AttributeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def is_plausible_amount(
    amount: Optional[float],
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
) -> bool:
    """Exclusive sanity bounds, (0, 100000) by default."""
    if amount is None or not math.isfinite(amount):
        return False
    low = config.min_amount if min_amount is None else min_amount
    high = config.max_amount if max_amount is None else max_amount
    return low < amount < high


def extract_amount(
    text: str,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
) -> Optional[float]:
    """
    Extract the first plausible USD amount from text.

    Each pattern contributes at most its first match; a match outside the
    sanity bounds falls through to the next pattern.

        >>> extract_amount("Grand Total: $1,234.56")
        1234.56
    """
    for pattern in CURRENCY_PATTERNS:
        match = pattern.search(text or "")
        if not match:
            continue
        amount = parse_number(match.group(1))
        if is_plausible_amount(amount, min_amount, max_amount):
            return amount
    return None


def coerce_amount(value: Union[int, float, str, None]) -> Optional[float]:
    """
    Coerce a model-reported amount to float.

    Accepts numbers and strings such as "43.00", "$1,234.56" or "15.07 USD".
    Booleans are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        cleaned = re.sub(r"(?i)usd|\$", "", value).strip()
        match = re.search(r"-?\d[\d,]*(?:\.\d+)?", cleaned)
        if not match:
            return None
        return parse_number(match.group(0))
    return None


def is_checkout_page(url: str = "", title: str = "") -> bool:
    """Keyword check on URL (path included) and document title."""
    haystack = f"{url or ''} {title or ''}".lower()
    return any(keyword in haystack for keyword in CHECKOUT_KEYWORDS)
