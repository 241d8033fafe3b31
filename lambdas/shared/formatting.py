"""Display formatting helpers for parcel metrics.

Property records arrive with numbers, numeric strings and percentages
encoded as strings ("12.5%").  Every helper here returns ``NOT_AVAILABLE``
instead of raising or leaking ``nan`` / ``None`` into prompt text.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Literal

NOT_AVAILABLE = "N/A"

GrowthDirection = Literal["increasing", "decreasing", "stable"]

_NUMERIC_NOISE_RE = re.compile(r"[$,%\s]")
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")


def to_number(value) -> float | None:
    """Parse an int, float or numeric string; ``None`` when not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        cleaned = _NUMERIC_NOISE_RE.sub("", value)
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def round_half_up(value: float, decimals: int = 0) -> Decimal:
    """Round away from zero on ties, the way a spreadsheet does."""
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    # Decimal("-0.0") is falsy; drop the sign so it prints as 0.0
    return rounded if rounded else abs(rounded)


def format_number(value, decimals: int = 0) -> str:
    """Format with thousands separators and a fixed number of decimals."""
    number = to_number(value)
    if number is None:
        return NOT_AVAILABLE
    try:
        rounded = round_half_up(number, decimals)
    except InvalidOperation:
        return NOT_AVAILABLE
    return f"{rounded:,.{decimals}f}"


def format_currency(value, decimals: int = 0) -> str:
    text = format_number(value, decimals)
    if text == NOT_AVAILABLE:
        return text
    if text.startswith("-"):
        return f"-${text[1:]}"
    return f"${text}"


def format_percent(value, decimals: int = 1) -> str:
    text = format_number(value, decimals)
    if text == NOT_AVAILABLE:
        return text
    return f"{text}%"


def format_distance(value) -> str:
    text = format_number(value, 1)
    if text == NOT_AVAILABLE:
        return text
    return f"{text} miles"


def format_text(value) -> str:
    if value is None:
        return NOT_AVAILABLE
    text = " ".join(str(value).split())
    return text or NOT_AVAILABLE


def format_percentile(value) -> str:
    """Turn a percentile score into an integer rank string.

    Strings have everything other than digits, ``.`` and ``-`` stripped
    first, so ``"87.4%"`` becomes ``"87"`` and ``"abc"`` becomes ``"N/A"``.
    Numbers are rounded as given.
    """
    if value is None or isinstance(value, bool):
        return NOT_AVAILABLE
    if isinstance(value, (int, float)):
        number = to_number(value)
    else:
        try:
            number = float(_NON_NUMERIC_RE.sub("", str(value)))
        except ValueError:
            return NOT_AVAILABLE
    if number is None or math.isnan(number) or math.isinf(number):
        return NOT_AVAILABLE
    try:
        rounded = round_half_up(number)
    except InvalidOperation:
        return NOT_AVAILABLE
    return str(int(rounded))


def ordinal(rank: str) -> str:
    """``"87"`` -> ``"87th"``; non-integers are returned unchanged."""
    try:
        number = int(rank)
    except ValueError:
        return rank
    if 10 <= abs(number) % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(abs(number) % 10, "th")
    return f"{number}{suffix}"


def percentage(numerator, denominator) -> float | None:
    top = to_number(numerator)
    bottom = to_number(denominator)
    if top is None or not bottom:
        return None
    return top / bottom * 100


def calculate_percentage(numerator, denominator) -> str:
    """``numerator / denominator`` as a one-decimal percent string."""
    share = percentage(numerator, denominator)
    if share is None:
        return NOT_AVAILABLE
    return format_percent(share, 1)


def price_per_acre(price, acres) -> str:
    amount = to_number(price)
    area = to_number(acres)
    if amount is None or not area:
        return NOT_AVAILABLE
    return format_currency(amount / area)


def classify_growth(current, future) -> GrowthDirection | None:
    """Compare current vs. projected growth; ``None`` if either is unparseable."""
    now = to_number(current)
    later = to_number(future)
    if now is None or later is None:
        return None
    if later > now:
        return "increasing"
    if later < now:
        return "decreasing"
    return "stable"
