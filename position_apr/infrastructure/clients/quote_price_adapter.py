from __future__ import annotations

from decimal import Decimal

from position_apr.application.ports.quote_price_port import QuotePricePort
from position_apr.domain.exceptions import PriceLookupDomainError
from position_apr.infrastructure.clients.pricing import PriceLookupError, PriceService


class PriceServiceAdapter(QuotePricePort):
    def __init__(self, price_service: PriceService):
        self._price_service = price_service

    def native_currency_price_in_quote(self, *, chain_id: int) -> Decimal:
        try:
            return self._price_service.get_native_price_usd(chain_id=chain_id)
        except PriceLookupError as exc:
            raise PriceLookupDomainError(str(exc)) from exc
