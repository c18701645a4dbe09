from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from position_apr.domain.entities.pool import Pool
from position_apr.domain.services.pair_orientation import is_chain_native_wrapper, is_stable_token
from position_apr.domain.services.univ3_math import sqrt_price_x96_to_price


@dataclass(frozen=True)
class QuotePrices:
    token0: Decimal
    token1: Decimal
    resolved: bool


def quote_prices(pool: Pool, *, native_price: Decimal | None) -> QuotePrices:
    """Quote-currency price of each pool token.

    Stable tokens are pegged at 1 and the chain's wrapped native token takes the
    oracle price; the other side is derived from the pool price. When neither
    side is recognized token1 is used as the quote unit and `resolved` is False.
    """
    pool_price = sqrt_price_x96_to_price(
        pool.sqrt_price_x96,
        pool.token0.decimals,
        pool.token1.decimals,
    )
    price0 = _anchor_price(pool.token0, native_price)
    price1 = _anchor_price(pool.token1, native_price)

    if price0 is not None and price1 is None:
        price1 = price0 / pool_price
    elif price1 is not None and price0 is None:
        price0 = pool_price * price1

    if price0 is None or price1 is None:
        return QuotePrices(token0=pool_price, token1=Decimal("1"), resolved=False)
    return QuotePrices(token0=price0, token1=price1, resolved=True)


def _anchor_price(token, native_price: Decimal | None) -> Decimal | None:
    if is_stable_token(token):
        return Decimal("1")
    if native_price is not None and native_price > 0 and is_chain_native_wrapper(token):
        return native_price
    return None


def raw_amount_value(amount: int, decimals: int, price: Decimal) -> Decimal:
    return Decimal(amount) / (Decimal(10) ** decimals) * price


def position_value(pool: Pool, prices: QuotePrices, amount0: int, amount1: int) -> Decimal:
    return raw_amount_value(amount0, pool.token0.decimals, prices.token0) + raw_amount_value(
        amount1,
        pool.token1.decimals,
        prices.token1,
    )


def split_deposit(pool: Pool, prices: QuotePrices, deposit_quote: Decimal) -> tuple[int, int]:
    """50/50 split of a quote-currency deposit into raw token amounts."""
    half = deposit_quote / Decimal("2")
    amount0 = _to_raw(half / prices.token0, pool.token0.decimals) if prices.token0 > 0 else 0
    amount1 = _to_raw(half / prices.token1, pool.token1.decimals) if prices.token1 > 0 else 0
    return amount0, amount1


def _to_raw(amount: Decimal, decimals: int) -> int:
    return int((amount * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_FLOOR))
