"""
Price expression parsing.

Only explicit price expressions are accepted from free text:

    literal         "$450", "Price: $89.99", "$1,295"
    range           "$450-650", "$200 - $400", "$200 to $400"  -> higher value
    prefixed        "from $120", "starting at $120"
    was/now         "Was $400 Now $200"  -> price 200, original 400

Discount and threshold phrasing is rejected: "under $100", "save $50",
"$20 off", "free shipping on orders over $150", "$10-20% off".
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from django.conf import settings


_CUR = r"(?:US)?\$"
_NUM = r"\d[\d,]*(?:\.\d{1,2})?"

PRICE_PATTERN = re.compile(
    rf"(?P<wasnow>was:?\s*{_CUR}\s*(?P<was>{_NUM})\W{{0,3}}\s*now:?\s*{_CUR}\s*(?P<now>{_NUM}))"
    rf"|(?P<range>{_CUR}\s*(?P<low>{_NUM})\s*(?:-|–|to)\s*(?:{_CUR})?\s*(?P<high>{_NUM}))"
    rf"|(?P<prefixed>(?:from|starting\s+at)\s*{_CUR}\s*(?P<start>{_NUM}))"
    rf"|(?P<literal>{_CUR}\s*(?P<amount>{_NUM}))",
    re.IGNORECASE,
)

REJECT_BEFORE = re.compile(
    r"(under|below|less\s+than|over|up\s+to|save|extra|spend|orders?\s+of|"
    r"gift\s+card|credit)\s*$",
    re.IGNORECASE,
)

REJECT_AFTER = re.compile(r"^\s*(%|off\b|discount|credit)", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedPrice:
    """A price read from text; price is the value used for banding."""

    price: float
    original_price: Optional[float] = None
    kind: str = "literal"

    @property
    def reference_price(self) -> float:
        return self.original_price or self.price


def _to_number(raw: str) -> Optional[float]:
    try:
        return float(raw.replace(",", ""))
    except (AttributeError, ValueError):
        return None


def find_price_expressions(text: str) -> List[ParsedPrice]:
    """
    Return every accepted price expression in text, in order of appearance.
    """
    if not text:
        return []

    prices = []
    for match in PRICE_PATTERN.finditer(text):
        before = text[max(0, match.start() - 25):match.start()]
        after = text[match.end():match.end() + 12]
        if REJECT_BEFORE.search(before) or REJECT_AFTER.match(after):
            continue

        parsed = _from_match(match)
        if parsed is not None:
            prices.append(parsed)
    return prices


def _from_match(match: re.Match) -> Optional[ParsedPrice]:
    if match.group("wasnow"):
        was = _to_number(match.group("was"))
        now = _to_number(match.group("now"))
        if now is None:
            return None
        if was is not None and was > now:
            return ParsedPrice(price=now, original_price=was, kind="was-now")
        return ParsedPrice(price=now, kind="literal")

    if match.group("range"):
        low = _to_number(match.group("low"))
        high = _to_number(match.group("high"))
        if low is None or high is None:
            return None
        return ParsedPrice(price=max(low, high), kind="range")

    if match.group("prefixed"):
        start = _to_number(match.group("start"))
        return ParsedPrice(price=start, kind="from") if start is not None else None

    amount = _to_number(match.group("amount"))
    return ParsedPrice(price=amount, kind="literal") if amount is not None else None


def parse_price_value(value) -> Optional[float]:
    """
    Read a price from structured data (JSON-LD, meta tags, AI output).

    Accepts numbers and numeric strings with optional currency symbol and
    thousands separators; returns None for anything else or non-positive.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = re.sub(r"[^\d.,]", "", str(value))
        if not cleaned:
            return None
        # "1.295,00" / "450,00" style decimals
        if re.search(r",\d{2}$", cleaned):
            cleaned = re.sub(r"[.,]", "", cleaned[:-3]) + "." + cleaned[-2:]
        number = _to_number(cleaned)

    if number is None or number <= 0:
        return None
    return number


def price_band(tier: int):
    """Accepted (min, max) absolute price for an extraction tier."""
    bands = getattr(
        settings,
        "CURATION_PRICE_BANDS",
        {1: (10.0, 10000.0), 2: (5.0, 12000.0), 3: (5.0, 15000.0)},
    )
    return bands.get(tier, bands[max(bands)])


def within_band(price: Optional[float], tier: int) -> bool:
    if price is None:
        return False
    low, high = price_band(tier)
    return low <= price <= high
