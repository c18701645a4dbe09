from __future__ import annotations

from position_apr.domain.services.univ3_fee_growth import Q128, delta_uint256


Q96 = 2**96


def _sorted_bounds(sqrt_price_lower: int, sqrt_price_upper: int) -> tuple[int, int]:
    if sqrt_price_lower > sqrt_price_upper:
        return sqrt_price_upper, sqrt_price_lower
    return sqrt_price_lower, sqrt_price_upper


def liquidity_for_amount0(sqrt_price_lower: int, sqrt_price_upper: int, amount0: int) -> int:
    sa, sb = _sorted_bounds(sqrt_price_lower, sqrt_price_upper)
    if sb == sa:
        return 0
    intermediate = (sa * sb) // Q96
    return (amount0 * intermediate) // (sb - sa)


def liquidity_for_amount1(sqrt_price_lower: int, sqrt_price_upper: int, amount1: int) -> int:
    sa, sb = _sorted_bounds(sqrt_price_lower, sqrt_price_upper)
    if sb == sa:
        return 0
    return (amount1 * Q96) // (sb - sa)


def liquidity_for_amounts(
    sqrt_price: int,
    sqrt_price_lower: int,
    sqrt_price_upper: int,
    amount0: int,
    amount1: int,
) -> int:
    sa, sb = _sorted_bounds(sqrt_price_lower, sqrt_price_upper)

    if sqrt_price <= sa:
        return liquidity_for_amount0(sa, sb, amount0)
    if sqrt_price < sb:
        liquidity0 = liquidity_for_amount0(sqrt_price, sb, amount0)
        liquidity1 = liquidity_for_amount1(sa, sqrt_price, amount1)
        return min(liquidity0, liquidity1)
    return liquidity_for_amount1(sa, sb, amount1)


def amount0_for_liquidity(sqrt_price_lower: int, sqrt_price_upper: int, liquidity: int) -> int:
    sa, sb = _sorted_bounds(sqrt_price_lower, sqrt_price_upper)
    if sa == 0:
        return 0
    return ((liquidity << 96) * (sb - sa) // sb) // sa


def amount1_for_liquidity(sqrt_price_lower: int, sqrt_price_upper: int, liquidity: int) -> int:
    sa, sb = _sorted_bounds(sqrt_price_lower, sqrt_price_upper)
    return liquidity * (sb - sa) // Q96


def amounts_for_liquidity(
    sqrt_price: int,
    sqrt_price_lower: int,
    sqrt_price_upper: int,
    liquidity: int,
) -> tuple[int, int]:
    sa, sb = _sorted_bounds(sqrt_price_lower, sqrt_price_upper)

    if sqrt_price <= sa:
        return amount0_for_liquidity(sa, sb, liquidity), 0
    if sqrt_price < sb:
        return (
            amount0_for_liquidity(sqrt_price, sb, liquidity),
            amount1_for_liquidity(sa, sqrt_price, liquidity),
        )
    return 0, amount1_for_liquidity(sa, sb, liquidity)


def fees_from_liquidity(
    liquidity: int,
    growth_inside_start: tuple[int, int],
    growth_inside_end: tuple[int, int],
) -> tuple[int, int]:
    fees0 = liquidity * delta_uint256(growth_inside_end[0], growth_inside_start[0]) // Q128
    fees1 = liquidity * delta_uint256(growth_inside_end[1], growth_inside_start[1]) // Q128
    return fees0, fees1
