from __future__ import annotations

from decimal import Decimal
from typing import Protocol


class QuotePricePort(Protocol):
    def native_currency_price_in_quote(self, *, chain_id: int) -> Decimal:
        ...
