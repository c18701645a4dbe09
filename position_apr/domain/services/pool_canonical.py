from __future__ import annotations

from dataclasses import replace

from position_apr.domain.entities.pool import Pool, PoolState, TickSnapshot, is_canonical_order
from position_apr.domain.services.univ3_math import MAX_TICK, MIN_TICK, sqrt_ratio_at_tick


Q192 = 2**192


def canonicalize_pool(pool: Pool) -> Pool:
    """Return the pool with tokens in canonical (sorted address) order.

    A reversed pair gets its per-token accumulators swapped and its price
    re-oriented to token1/token0. The current tick is the floor of the
    inverted price, so it only negates cleanly when the price sits exactly
    on a tick.
    """
    if is_canonical_order(pool.token0, pool.token1):
        return pool

    sqrt_price_x96 = Q192 // pool.sqrt_price_x96 if pool.sqrt_price_x96 > 0 else 0
    on_tick = MIN_TICK <= pool.tick <= MAX_TICK and pool.sqrt_price_x96 == sqrt_ratio_at_tick(pool.tick)
    return replace(
        pool,
        token0=pool.token1,
        token1=pool.token0,
        sqrt_price_x96=sqrt_price_x96,
        tick=-pool.tick if on_tick else -pool.tick - 1,
        fee_growth_global0_x128=pool.fee_growth_global1_x128,
        fee_growth_global1_x128=pool.fee_growth_global0_x128,
    )


def reported_tick_range(pool: Pool, tick_lower: int, tick_upper: int) -> tuple[int, int]:
    """Canonical range expressed in the orientation the source reported the pool in."""
    if is_canonical_order(pool.token0, pool.token1):
        return tick_lower, tick_upper
    return -tick_upper, -tick_lower


def _mirror_tick(snapshot: TickSnapshot) -> TickSnapshot:
    return replace(
        snapshot,
        tick_idx=-snapshot.tick_idx,
        fee_growth_outside0_x128=snapshot.fee_growth_outside1_x128,
        fee_growth_outside1_x128=snapshot.fee_growth_outside0_x128,
        liquidity_net=-snapshot.liquidity_net,
    )


def canonicalize_pool_state(state: PoolState) -> PoolState:
    """Canonical order for a pool together with its boundary ticks.

    The ticks must have been read at the reported orientation (see
    `reported_tick_range`). Mirroring swaps which boundary is the lower one,
    and each outside accumulator follows its token.
    """
    if is_canonical_order(state.pool.token0, state.pool.token1):
        return state
    return replace(
        state,
        pool=canonicalize_pool(state.pool),
        tick_lower=_mirror_tick(state.tick_upper),
        tick_upper=_mirror_tick(state.tick_lower),
    )
