from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from position_apr.domain.entities.apr import AprResult, CachedAprResult, FeeWindowResult


ADVISORY_FALLBACK_USED = "fallback_used"
ADVISORY_STALE_INDEXED_SOURCE = "stale_indexed_source"
ADVISORY_WINDOW_UNAVAILABLE = "window_unavailable"
ADVISORY_QUOTE_PRICE_UNRESOLVED = "quote_price_unresolved"
ADVISORY_ZERO_LIQUIDITY = "zero_liquidity"


@dataclass(frozen=True)
class PositionAprMetaOutput:
    tick_lower: int
    tick_upper: int
    liquidity: int
    amount0: int
    amount1: int
    lag_seconds: int
    used_fallback: bool
    computed_at: float
    advisories: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PositionAprOutput:
    result: AprResult
    windows: list[FeeWindowResult]
    meta: PositionAprMetaOutput
    from_cache: bool = False


@dataclass(frozen=True)
class RangeSuggestionOutput:
    name: str
    min_price: Decimal
    max_price: Decimal
    tick_lower: int
    tick_upper: int


@dataclass(frozen=True)
class PoolPriceContextOutput:
    chain_id: int
    pool_id: str
    token0_symbol: str
    token1_symbol: str
    tick: int
    price: Decimal
    display_price: Decimal
    display_inverted: bool
    display_base_symbol: str
    display_quote_symbol: str
    suggestions: list[RangeSuggestionOutput]
    used_fallback: bool = False


@dataclass(frozen=True)
class PoolAprHistoryOutput:
    chain_id: int
    pool_id: str
    entries: list[CachedAprResult]
