from __future__ import annotations

from dataclasses import replace

from position_apr.domain.entities.pool import Pool, PoolState, TickSnapshot, Token
from position_apr.domain.services.pool_canonical import (
    Q192,
    canonicalize_pool,
    canonicalize_pool_state,
    reported_tick_range,
)
from position_apr.domain.services.univ3_fee_growth import fee_growth_inside_pair
from position_apr.domain.services.univ3_math import sqrt_ratio_at_tick


USDC = Token(address="0xa0b8", symbol="USDC", name="USD Coin", decimals=6, chain_id=1)
WETH = Token(address="0xc02a", symbol="WETH", name="Wrapped Ether", decimals=18, chain_id=1)


def _reported_pool(*, tick: int, on_tick: bool = True) -> Pool:
    sqrt_price = sqrt_ratio_at_tick(tick) + (0 if on_tick else 1)
    return Pool(
        pool_id="0xpool",
        chain_id=1,
        token0=WETH,
        token1=USDC,
        fee_tier=3000,
        sqrt_price_x96=sqrt_price,
        liquidity=10**18,
        tick=tick,
        fee_growth_global0_x128=1000,
        fee_growth_global1_x128=50,
    )


def _reported_state(*, tick: int, lower: tuple[int, int], upper: tuple[int, int]) -> PoolState:
    # Canonical range [-600, 1200] read in the reported orientation.
    return PoolState(
        pool=_reported_pool(tick=tick),
        tick_lower=TickSnapshot(-1200, lower[0], lower[1], liquidity_gross=7, liquidity_net=7),
        tick_upper=TickSnapshot(600, upper[0], upper[1], liquidity_gross=7, liquidity_net=-7),
        block_number=123,
    )


class TestCanonicalizePool:
    def test_canonical_pool_is_returned_unchanged(self):
        pool = replace(_reported_pool(tick=10), token0=USDC, token1=WETH)
        assert canonicalize_pool(pool) is pool

    def test_reversed_pool_swaps_tokens_and_accumulators(self):
        pool = canonicalize_pool(_reported_pool(tick=10))

        assert pool.token0 == USDC
        assert pool.token1 == WETH
        assert pool.fee_growth_global0_x128 == 50
        assert pool.fee_growth_global1_x128 == 1000
        assert pool.sqrt_price_x96 == Q192 // sqrt_ratio_at_tick(10)

    def test_tick_on_boundary_negates(self):
        assert canonicalize_pool(_reported_pool(tick=10)).tick == -10

    def test_tick_between_boundaries_floors_inverted_price(self):
        assert canonicalize_pool(_reported_pool(tick=10, on_tick=False)).tick == -11


class TestCanonicalizePoolState:
    def test_reported_tick_range_mirrors_reversed_pairs(self):
        reversed_pool = _reported_pool(tick=10)
        canonical_pool = replace(reversed_pool, token0=USDC, token1=WETH)

        assert reported_tick_range(reversed_pool, -600, 1200) == (-1200, 600)
        assert reported_tick_range(canonical_pool, -600, 1200) == (-600, 1200)

    def test_outside_accumulators_follow_their_token(self):
        state = canonicalize_pool_state(_reported_state(tick=10, lower=(100, 5), upper=(400, 20)))

        assert state.block_number == 123
        assert state.tick_lower.tick_idx == -600
        assert state.tick_upper.tick_idx == 1200
        assert (state.tick_lower.fee_growth_outside0_x128, state.tick_lower.fee_growth_outside1_x128) == (20, 400)
        assert (state.tick_upper.fee_growth_outside0_x128, state.tick_upper.fee_growth_outside1_x128) == (5, 100)
        assert state.tick_lower.liquidity_net == 7
        assert state.tick_upper.liquidity_net == -7

    def test_fee_growth_inside_for_reversed_pair_in_range(self):
        state = canonicalize_pool_state(_reported_state(tick=10, lower=(100, 5), upper=(400, 20)))

        assert fee_growth_inside_pair(state, tick_lower=-600, tick_upper=1200) == (25, 500)

    def test_fee_growth_inside_matches_reported_orientation_out_of_range(self):
        reported = _reported_state(tick=-1300, lower=(400, 20), upper=(100, 5))
        weth_inside, usdc_inside = fee_growth_inside_pair(reported, tick_lower=-1200, tick_upper=600)

        state = canonicalize_pool_state(reported)

        assert state.pool.tick == 1300
        assert fee_growth_inside_pair(state, tick_lower=-600, tick_upper=1200) == (usdc_inside, weth_inside)
        assert (usdc_inside, weth_inside) == (15, 300)
