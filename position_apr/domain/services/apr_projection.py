from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from position_apr.domain.entities.apr import AprResult, FeeWindow


HOURS_PER_YEAR = Decimal(365 * 24)
DAYS_PER_YEAR = 365
PROJECTION_DAYS_MONTH = Decimal("30")
PROJECTION_DAYS_YEAR = Decimal("365")


def apr(fees_quote: Decimal, position_value_quote: Decimal, window_hours: int | Decimal) -> Decimal:
    if position_value_quote == 0 or window_hours == 0:
        return Decimal("0")
    return (fees_quote / position_value_quote) * (HOURS_PER_YEAR / Decimal(window_hours))


def apy(apr_value: Decimal) -> Decimal:
    """Daily-compounded yield for an annual rate."""
    return (Decimal("1") + apr_value / Decimal(DAYS_PER_YEAR)) ** DAYS_PER_YEAR - Decimal("1")


def project_revenue(fees_30d_quote: Decimal) -> tuple[Decimal, Decimal]:
    # Both horizons extrapolate the 30-day sample, never the shorter windows.
    daily = fees_30d_quote / Decimal("30")
    return daily * PROJECTION_DAYS_MONTH, daily * PROJECTION_DAYS_YEAR


def build_apr_result(
    fees_by_window: dict[FeeWindow, Decimal],
    position_value_quote: Decimal,
) -> AprResult:
    aprs = {
        window: apr(fees_by_window.get(window, Decimal("0")), position_value_quote, window.hours)
        for window in FeeWindow
    }
    monthly, yearly = project_revenue(fees_by_window.get(FeeWindow.D30, Decimal("0")))
    return AprResult(
        apr_24h=aprs[FeeWindow.H24],
        apr_7d=aprs[FeeWindow.D7],
        apr_30d=aprs[FeeWindow.D30],
        apy_24h=apy(aprs[FeeWindow.H24]),
        apy_7d=apy(aprs[FeeWindow.D7]),
        apy_30d=apy(aprs[FeeWindow.D30]),
        monthly_revenue=monthly,
        yearly_revenue=yearly,
        position_value=position_value_quote,
    )


def rescale_apr_result(result: AprResult, position_value_quote: Decimal) -> AprResult:
    """Same rates for a different deposit; revenue is linear in the position value."""
    if result.position_value == 0:
        return replace(result, position_value=position_value_quote)
    factor = position_value_quote / result.position_value
    return replace(
        result,
        monthly_revenue=result.monthly_revenue * factor,
        yearly_revenue=result.yearly_revenue * factor,
        position_value=position_value_quote,
    )
