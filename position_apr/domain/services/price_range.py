from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

from position_apr.domain.exceptions import InvalidRangeError


MAX_RANGE_RATIO = 100

REASON_NON_POSITIVE = "non_positive"
REASON_LOWER_NOT_BELOW_UPPER = "lower_not_below_upper"
REASON_OUTSIDE_RANGE = "outside_range"
REASON_TOO_WIDE = "too_wide"

RANGE_MESSAGES = {
    REASON_NON_POSITIVE: "Prices must be positive.",
    REASON_LOWER_NOT_BELOW_UPPER: "Lower price must be less than upper price.",
    REASON_OUTSIDE_RANGE: (
        "Current price is outside your range. You may not earn fees until price moves into range."
    ),
    REASON_TOO_WIDE: (
        "Price range is too wide. Consider a smaller range for better capital efficiency."
    ),
}

SUGGESTION_MULTIPLIERS = {
    "tight": (0.95, 1.05),
    "normal": (0.8, 1.25),
    "wide": (0.5, 2.0),
}


@dataclass(frozen=True)
class RangeValidation:
    is_valid: bool
    reason: str | None = None
    message: str | None = None


def validate_range(lower: float, upper: float, current: float) -> RangeValidation:
    if lower <= 0 or upper <= 0:
        return _invalid(REASON_NON_POSITIVE)
    if lower >= upper:
        return _invalid(REASON_LOWER_NOT_BELOW_UPPER)
    if current < lower or current > upper:
        return _invalid(REASON_OUTSIDE_RANGE)
    if upper / lower > MAX_RANGE_RATIO:
        return _invalid(REASON_TOO_WIDE)
    return RangeValidation(is_valid=True)


def ensure_valid_range(lower: float, upper: float, current: float) -> None:
    validation = validate_range(lower, upper, current)
    if not validation.is_valid:
        raise InvalidRangeError(validation.reason, validation.message)


def _invalid(reason: str) -> RangeValidation:
    return RangeValidation(is_valid=False, reason=reason, message=RANGE_MESSAGES[reason])


def range_suggestions(current_price: float) -> dict[str, tuple[float, float]]:
    return {
        name: (current_price * low, current_price * high)
        for name, (low, high) in SUGGESTION_MULTIPLIERS.items()
    }


def format_price(price: float, max_decimals: int = 6) -> str:
    if price == 0:
        return "0"
    if price < 0.000001:
        return f"{price:.3e}"
    if price > 1_000_000:
        return f"{price / 1_000_000:.2f}M"
    if price > 1000:
        return f"{price / 1000:.2f}K"
    places = min(max_decimals, max(0, -math.floor(math.log10(abs(price))) + 3))
    return f"{price:.{places}f}"


def format_number(value: Decimal | float, decimals: int = 2) -> str:
    number = float(value)
    if number >= 1e9:
        return f"{number / 1e9:.{decimals}f}B"
    if number >= 1e6:
        return f"{number / 1e6:.{decimals}f}M"
    if number >= 1e3:
        return f"{number / 1e3:.{decimals}f}K"
    return f"{number:.{decimals}f}"


def format_percentage(value: Decimal | float, decimals: int = 2) -> str:
    return f"{float(value) * 100:.{decimals}f}%"
