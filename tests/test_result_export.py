from __future__ import annotations

from decimal import Decimal

from position_apr.domain.entities.apr import AprResult
from position_apr.domain.services.result_export import EXPORT_COLUMNS, export_csv


def test_export_csv_has_header_and_one_row_per_window():
    result = AprResult(
        apr_24h=Decimal("3.65"),
        apr_7d=Decimal("0.5"),
        apr_30d=Decimal("0.25"),
        apy_24h=Decimal("37"),
        apy_7d=Decimal("0.6"),
        apy_30d=Decimal("0.28"),
        monthly_revenue=Decimal("300"),
        yearly_revenue=Decimal("3650"),
        position_value=Decimal("1000"),
    )

    lines = export_csv(result).splitlines()

    assert lines[0] == ",".join(EXPORT_COLUMNS)
    assert lines[0] == "Timeframe,APR,APY,MonthlyRevenue,YearlyRevenue"
    assert lines[1:] == [
        "24h,365.00%,3700.00%,300.00,3.65K",
        "7d,50.00%,60.00%,300.00,3.65K",
        "30d,25.00%,28.00%,300.00,3.65K",
    ]
