from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Token:
    address: str
    symbol: str
    name: str
    decimals: int
    chain_id: int


@dataclass(frozen=True)
class Pool:
    pool_id: str
    chain_id: int
    token0: Token
    token1: Token
    fee_tier: int
    sqrt_price_x96: int
    liquidity: int
    tick: int
    fee_growth_global0_x128: int
    fee_growth_global1_x128: int
    tick_spacing: int | None = None


@dataclass(frozen=True)
class TickSnapshot:
    tick_idx: int
    fee_growth_outside0_x128: int
    fee_growth_outside1_x128: int
    liquidity_gross: int = 0
    liquidity_net: int = 0


@dataclass(frozen=True)
class PoolState:
    pool: Pool
    tick_lower: TickSnapshot
    tick_upper: TickSnapshot
    block_number: int | None = None


def empty_tick_snapshot(tick_idx: int) -> TickSnapshot:
    # Uninitialized ticks carry zero outside accumulators on chain.
    return TickSnapshot(
        tick_idx=tick_idx,
        fee_growth_outside0_x128=0,
        fee_growth_outside1_x128=0,
    )


def is_canonical_order(token0: Token, token1: Token) -> bool:
    return token0.address.lower() < token1.address.lower()

