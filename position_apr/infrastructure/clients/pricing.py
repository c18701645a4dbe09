from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from threading import Lock
import time

import httpx

from position_apr.domain.entities.chain import CHAINS


logger = logging.getLogger(__name__)


class PriceLookupError(RuntimeError):
    pass


def _normalize_key(value: str) -> str:
    return value.strip().lower()


# CoinGecko coin id of each chain's native currency.
NATIVE_COIN_IDS = {
    "ETH": "ethereum",
}


@dataclass(frozen=True)
class PriceOverrides:
    data: dict

    def get_price(self, network: str, symbol: str) -> Decimal | None:
        network_key = _normalize_key(network)
        symbol_key = _normalize_key(symbol)
        for key in (network_key, "default"):
            bucket = self.data.get(key) if isinstance(self.data, dict) else None
            if not isinstance(bucket, dict):
                continue
            value = bucket.get(symbol) or bucket.get(symbol_key)
            if value is None:
                continue
            return Decimal(str(value))
        return None


class CoingeckoPriceProvider:
    def __init__(
        self,
        api_base: str,
        timeout_seconds: float,
        cache_ttl_seconds: float = 300,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout_seconds
        self.cache_ttl_seconds = cache_ttl_seconds
        self._transport = transport
        self._cache: dict[str, tuple[float, Decimal]] = {}
        self._lock = Lock()

    def _cache_get(self, coin_id: str) -> Decimal | None:
        if self.cache_ttl_seconds <= 0:
            return None
        now = time.monotonic()
        with self._lock:
            cached = self._cache.get(coin_id)
            if cached is None:
                return None
            expires_at, value = cached
            if expires_at <= now:
                self._cache.pop(coin_id, None)
                return None
            return value

    def _cache_set(self, coin_id: str, value: Decimal) -> None:
        if self.cache_ttl_seconds <= 0:
            return
        expires_at = time.monotonic() + self.cache_ttl_seconds
        with self._lock:
            self._cache[coin_id] = (expires_at, value)

    def get_coin_price_usd(self, coin_id: str) -> Decimal:
        cached = self._cache_get(coin_id)
        if cached is not None:
            return cached

        url = f"{self.api_base}/simple/price"
        params = {"ids": coin_id, "vs_currencies": "usd"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise PriceLookupError(f"Coingecko request failed: {exc}") from exc

        if coin_id not in payload or "usd" not in payload[coin_id]:
            raise PriceLookupError(f"Price not found for coin {coin_id}.")
        value = Decimal(str(payload[coin_id]["usd"]))
        self._cache_set(coin_id, value)
        return value


class PriceService:
    def __init__(self, overrides: PriceOverrides, coingecko: CoingeckoPriceProvider):
        self.overrides = overrides
        self.coingecko = coingecko

    def get_native_price_usd(self, *, chain_id: int) -> Decimal:
        chain = CHAINS.get(chain_id)
        if chain is None:
            raise PriceLookupError(f"Unsupported chain_id for pricing: {chain_id}")

        override = self.overrides.get_price(chain.key, chain.native_currency)
        if override is not None:
            return override

        coin_id = NATIVE_COIN_IDS.get(chain.native_currency)
        if coin_id is None:
            raise PriceLookupError(
                "Native price unavailable. Provide PRICE_OVERRIDES for this chain."
            )
        value = self.coingecko.get_coin_price_usd(coin_id)
        logger.info("pricing: native price chain_id=%s coin=%s usd=%s", chain_id, coin_id, value)
        return value
