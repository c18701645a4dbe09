from __future__ import annotations

from decimal import Decimal

from position_apr.domain.entities.pool import Token
from position_apr.domain.exceptions import DomainError
from position_apr.domain.services.univ3_math import readable_price_to_tick


STABLE_SYMBOLS = frozenset({"USDC", "USDT", "DAI", "BUSD", "FRAX"})
WRAPPED_NATIVE_SYMBOLS = frozenset({"WETH", "WBTC"})
NATIVE_WRAPPER_BY_CHAIN = {
    1: "WETH",
    10: "WETH",
    8453: "WETH",
    42161: "WETH",
}


def is_stable_token(token: Token) -> bool:
    return token.symbol.strip().upper() in STABLE_SYMBOLS


def is_wrapped_native(token: Token) -> bool:
    return token.symbol.strip().upper() in WRAPPED_NATIVE_SYMBOLS


def is_chain_native_wrapper(token: Token) -> bool:
    wrapper = NATIVE_WRAPPER_BY_CHAIN.get(token.chain_id)
    return wrapper is not None and token.symbol.strip().upper() == wrapper


def display_should_invert(token0: Token, token1: Token) -> bool:
    stable0 = is_stable_token(token0)
    stable1 = is_stable_token(token1)
    if stable1 and not stable0:
        return False
    if stable0 and not stable1:
        return True

    if is_wrapped_native(token1) and not is_wrapped_native(token0):
        return True
    return False


def invert_decimal_price(price: Decimal, *, field_name: str = "price") -> Decimal:
    if price <= 0:
        raise DomainError(f"{field_name} must be positive.")
    return Decimal("1") / price


def display_range_to_ticks(
    lower_price: float | Decimal,
    upper_price: float | Decimal,
    token0: Token,
    token1: Token,
    *,
    invert: bool,
) -> tuple[int, int]:
    """Map a displayed price range back to canonical (lower, upper) ticks.

    An inverted display flips the order: the displayed upper bound becomes the
    canonical lower tick.
    """
    tick_a = readable_price_to_tick(lower_price, token0, token1, invert=invert)
    tick_b = readable_price_to_tick(upper_price, token0, token1, invert=invert)
    if tick_a == tick_b:
        raise DomainError("price range collapses to a single tick.")
    return min(tick_a, tick_b), max(tick_a, tick_b)
