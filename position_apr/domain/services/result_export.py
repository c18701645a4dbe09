from __future__ import annotations

import csv
import io

from position_apr.domain.entities.apr import AprResult, FeeWindow
from position_apr.domain.services.price_range import format_number, format_percentage


EXPORT_COLUMNS = ("Timeframe", "APR", "APY", "MonthlyRevenue", "YearlyRevenue")


def export_csv(result: AprResult) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for window in FeeWindow:
        writer.writerow(
            (
                window.value,
                format_percentage(result.apr_for(window)),
                format_percentage(result.apy_for(window)),
                format_number(result.monthly_revenue),
                format_number(result.yearly_revenue),
            )
        )
    return buffer.getvalue()
