from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class FeeWindow(str, Enum):
    H24 = "24h"
    D7 = "7d"
    D30 = "30d"

    @property
    def hours(self) -> int:
        return WINDOW_HOURS[self]

    @property
    def seconds(self) -> int:
        return WINDOW_HOURS[self] * 3600


WINDOW_HOURS = {
    FeeWindow.H24: 24,
    FeeWindow.D7: 7 * 24,
    FeeWindow.D30: 30 * 24,
}


@dataclass(frozen=True)
class FeeWindowResult:
    window: FeeWindow
    fee_growth_inside0_start: int
    fee_growth_inside1_start: int
    fee_growth_inside0_end: int
    fee_growth_inside1_end: int
    fees0: int
    fees1: int
    fees0_quote: Decimal
    fees1_quote: Decimal
    total_fees_quote: Decimal
    lag_seconds: int = 0
    used_fallback: bool = False
    error: str | None = None


def zero_fee_window(
    window: FeeWindow,
    *,
    error: str | None = None,
    lag_seconds: int = 0,
    used_fallback: bool = False,
) -> FeeWindowResult:
    return FeeWindowResult(
        window=window,
        fee_growth_inside0_start=0,
        fee_growth_inside1_start=0,
        fee_growth_inside0_end=0,
        fee_growth_inside1_end=0,
        fees0=0,
        fees1=0,
        fees0_quote=Decimal("0"),
        fees1_quote=Decimal("0"),
        total_fees_quote=Decimal("0"),
        lag_seconds=lag_seconds,
        used_fallback=used_fallback,
        error=error,
    )


@dataclass(frozen=True)
class AprResult:
    apr_24h: Decimal
    apr_7d: Decimal
    apr_30d: Decimal
    apy_24h: Decimal
    apy_7d: Decimal
    apy_30d: Decimal
    monthly_revenue: Decimal
    yearly_revenue: Decimal
    position_value: Decimal

    def apr_for(self, window: FeeWindow) -> Decimal:
        return {
            FeeWindow.H24: self.apr_24h,
            FeeWindow.D7: self.apr_7d,
            FeeWindow.D30: self.apr_30d,
        }[window]

    def apy_for(self, window: FeeWindow) -> Decimal:
        return {
            FeeWindow.H24: self.apy_24h,
            FeeWindow.D7: self.apy_7d,
            FeeWindow.D30: self.apy_30d,
        }[window]


@dataclass(frozen=True)
class CachedAprResult:
    result: AprResult
    computed_at: float
    chain_id: int
    pool_id: str
    tick_lower: int
    tick_upper: int
    deposit_key: str = ""
