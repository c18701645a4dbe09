from __future__ import annotations

from position_apr.domain.services.liquidity import (
    amounts_for_liquidity,
    fees_from_liquidity,
    liquidity_for_amount0,
    liquidity_for_amount1,
    liquidity_for_amounts,
)
from position_apr.domain.services.univ3_fee_growth import Q128, UINT256_MOD
from position_apr.domain.services.univ3_math import sqrt_ratio_at_tick


SQRT_LOWER = sqrt_ratio_at_tick(-600)
SQRT_UPPER = sqrt_ratio_at_tick(600)
SQRT_CURRENT = sqrt_ratio_at_tick(0)
AMOUNT = 10**18


class TestLiquiditySolver:
    def test_below_range_uses_only_token0(self):
        below = sqrt_ratio_at_tick(-1200)
        liquidity = liquidity_for_amounts(below, SQRT_LOWER, SQRT_UPPER, AMOUNT, AMOUNT)
        assert liquidity == liquidity_for_amount0(SQRT_LOWER, SQRT_UPPER, AMOUNT)

    def test_above_range_uses_only_token1(self):
        above = sqrt_ratio_at_tick(1200)
        liquidity = liquidity_for_amounts(above, SQRT_LOWER, SQRT_UPPER, AMOUNT, AMOUNT)
        assert liquidity == liquidity_for_amount1(SQRT_LOWER, SQRT_UPPER, AMOUNT)

    def test_price_at_lower_bound_depends_only_on_token0(self):
        liquidity = liquidity_for_amounts(SQRT_LOWER, SQRT_LOWER, SQRT_UPPER, AMOUNT, AMOUNT)

        assert liquidity == liquidity_for_amount0(SQRT_LOWER, SQRT_UPPER, AMOUNT)
        assert liquidity_for_amounts(SQRT_LOWER, SQRT_LOWER, SQRT_UPPER, AMOUNT, 0) == liquidity
        assert liquidity_for_amounts(SQRT_LOWER, SQRT_LOWER, SQRT_UPPER, AMOUNT, 7 * AMOUNT) == liquidity

    def test_price_at_upper_bound_depends_only_on_token1(self):
        liquidity = liquidity_for_amounts(SQRT_UPPER, SQRT_LOWER, SQRT_UPPER, AMOUNT, AMOUNT)

        assert liquidity == liquidity_for_amount1(SQRT_LOWER, SQRT_UPPER, AMOUNT)
        assert liquidity_for_amounts(SQRT_UPPER, SQRT_LOWER, SQRT_UPPER, 0, AMOUNT) == liquidity
        assert liquidity_for_amounts(SQRT_UPPER, SQRT_LOWER, SQRT_UPPER, 7 * AMOUNT, AMOUNT) == liquidity

    def test_in_range_takes_the_binding_side(self):
        liquidity = liquidity_for_amounts(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, AMOUNT, AMOUNT)
        expected = min(
            liquidity_for_amount0(SQRT_CURRENT, SQRT_UPPER, AMOUNT),
            liquidity_for_amount1(SQRT_LOWER, SQRT_CURRENT, AMOUNT),
        )
        assert liquidity == expected
        assert liquidity > 0

    def test_swapped_bounds_are_normalized(self):
        assert liquidity_for_amounts(SQRT_CURRENT, SQRT_UPPER, SQRT_LOWER, AMOUNT, AMOUNT) == (
            liquidity_for_amounts(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, AMOUNT, AMOUNT)
        )

    def test_degenerate_range_has_no_liquidity(self):
        assert liquidity_for_amount0(SQRT_LOWER, SQRT_LOWER, AMOUNT) == 0
        assert liquidity_for_amount1(SQRT_LOWER, SQRT_LOWER, AMOUNT) == 0

    def test_amounts_for_liquidity_inverts_the_solver(self):
        amount0 = AMOUNT
        amount1 = 3 * AMOUNT
        liquidity = liquidity_for_amounts(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, amount0, amount1)
        back0, back1 = amounts_for_liquidity(SQRT_CURRENT, SQRT_LOWER, SQRT_UPPER, liquidity)

        assert back0 <= amount0
        assert back1 <= amount1
        # token0 is the binding side here, so it comes back almost whole.
        assert (amount0 - back0) / amount0 < 1e-9

    def test_amounts_outside_range_are_single_sided(self):
        liquidity = 10**20
        below = amounts_for_liquidity(sqrt_ratio_at_tick(-1200), SQRT_LOWER, SQRT_UPPER, liquidity)
        above = amounts_for_liquidity(sqrt_ratio_at_tick(1200), SQRT_LOWER, SQRT_UPPER, liquidity)
        assert below[1] == 0 and below[0] > 0
        assert above[0] == 0 and above[1] > 0


class TestFeesFromLiquidity:
    def test_fees_scale_with_liquidity(self):
        fees = fees_from_liquidity(10, (0, 0), (3 * Q128, Q128))
        assert fees == (30, 10)

    def test_fees_floor_fractional_units(self):
        fees = fees_from_liquidity(3, (0, 0), (Q128 // 2, Q128 // 4))
        assert fees == (1, 0)

    def test_fees_survive_accumulator_wrap(self):
        start = UINT256_MOD - Q128
        fees = fees_from_liquidity(7, (start, start), (Q128, 0))
        assert fees == (14, 7)
