from __future__ import annotations

import math
from decimal import Decimal

from position_apr.domain.entities.pool import Token
from position_apr.domain.exceptions import DomainError


LOG_BASE = math.log(1.0001)
Q96 = 2**96
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342
DEFAULT_TICK_SPACING = 60
TICK_SNAP_TOLERANCE = 1e-9

FEE_TIER_TICK_SPACING = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

_SQRT_RATIO_FACTORS = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


def _require_tick_in_bounds(tick: int) -> None:
    if tick < MIN_TICK or tick > MAX_TICK:
        raise DomainError(f"tick {tick} outside [{MIN_TICK}, {MAX_TICK}].")


def price_from_tick(tick: int) -> float:
    _require_tick_in_bounds(tick)
    return math.exp(tick * LOG_BASE)


def tick_from_price(price: float | Decimal) -> int:
    if price <= 0:
        raise DomainError("price must be positive.")
    value = math.log(float(price)) / LOG_BASE
    nearest = round(value)
    if abs(value - nearest) < TICK_SNAP_TOLERANCE:
        return int(nearest)
    return math.floor(value)


def readable_price(tick: int, token0: Token, token1: Token, invert: bool = False) -> float:
    """Price of token0 in token1 units, decimal-adjusted; token1 in token0 when inverted."""
    adjusted = price_from_tick(tick) * 10 ** (token0.decimals - token1.decimals)
    return 1 / adjusted if invert else adjusted


def readable_price_to_tick(price: float | Decimal, token0: Token, token1: Token, invert: bool = False) -> int:
    if price <= 0:
        raise DomainError("price must be positive.")
    actual = 1 / float(price) if invert else float(price)
    return tick_from_price(actual / 10 ** (token0.decimals - token1.decimals))


def sqrt_ratio_at_tick(tick: int) -> int:
    """sqrt(1.0001^tick) * 2^96 as a uint160, rounded up like the pool contract."""
    _require_tick_in_bounds(tick)
    abs_tick = abs(tick)
    ratio = (
        0xFFFCB933BD6FAD37AA2D162D1A594001
        if abs_tick & 0x1
        else 0x100000000000000000000000000000000
    )
    for mask, factor in _SQRT_RATIO_FACTORS:
        if abs_tick & mask:
            ratio = (ratio * factor) >> 128
    if tick > 0:
        ratio = (2**256 - 1) // ratio
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def sqrt_price_x96_to_price(sqrt_price_x96: int, token0_decimals: int, token1_decimals: int) -> Decimal:
    if sqrt_price_x96 <= 0:
        raise DomainError("Invalid sqrt_price_x96.")
    sqrt_price = Decimal(sqrt_price_x96) / Decimal(Q96)
    decimal_adjust = Decimal(10) ** Decimal(token0_decimals - token1_decimals)
    return sqrt_price * sqrt_price * decimal_adjust


def tick_spacing_for_fee(fee_tier: int) -> int:
    return FEE_TIER_TICK_SPACING.get(fee_tier, DEFAULT_TICK_SPACING)


def full_range_ticks(tick_spacing: int = DEFAULT_TICK_SPACING) -> tuple[int, int]:
    if tick_spacing <= 0:
        raise DomainError("tick_spacing must be > 0.")
    tick_upper = (MAX_TICK // tick_spacing) * tick_spacing
    return -tick_upper, tick_upper
