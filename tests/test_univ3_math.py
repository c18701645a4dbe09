from __future__ import annotations

from decimal import Decimal

import pytest

from position_apr.domain.entities.pool import Token
from position_apr.domain.exceptions import DomainError
from position_apr.domain.services.univ3_math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    full_range_ticks,
    price_from_tick,
    readable_price,
    readable_price_to_tick,
    sqrt_price_x96_to_price,
    sqrt_ratio_at_tick,
    tick_from_price,
    tick_spacing_for_fee,
)


WETH = Token(address="0xc02a", symbol="WETH", name="Wrapped Ether", decimals=18, chain_id=1)
USDC = Token(address="0xa0b8", symbol="USDC", name="USD Coin", decimals=6, chain_id=1)


class TestTickPriceConversion:
    def test_price_at_tick_zero_is_one(self):
        assert price_from_tick(0) == 1.0

    @pytest.mark.parametrize("tick", [MIN_TICK, -200000, -60, -1, 0, 1, 60, 200000, MAX_TICK])
    def test_tick_price_round_trip(self, tick):
        assert tick_from_price(price_from_tick(tick)) == tick

    def test_tick_from_price_floors_between_ticks(self):
        assert tick_from_price(1.5) == 4054
        assert tick_from_price(0.5) == -6932

    def test_non_positive_price_is_rejected(self):
        with pytest.raises(DomainError):
            tick_from_price(0)
        with pytest.raises(DomainError):
            tick_from_price(-1)

    def test_tick_out_of_bounds_is_rejected(self):
        with pytest.raises(DomainError):
            price_from_tick(MAX_TICK + 1)
        with pytest.raises(DomainError):
            sqrt_ratio_at_tick(MIN_TICK - 1)

    def test_readable_price_applies_decimals(self):
        assert readable_price(0, WETH, USDC) == pytest.approx(1e12)
        assert readable_price(0, WETH, USDC, invert=True) == pytest.approx(1e-12)

    def test_readable_price_to_tick_round_trip(self):
        tick = -200000
        price = readable_price(tick, WETH, USDC)
        assert readable_price_to_tick(price, WETH, USDC) == tick

        inverted = readable_price(tick, WETH, USDC, invert=True)
        assert readable_price_to_tick(inverted, WETH, USDC, invert=True) == tick


class TestSqrtRatio:
    def test_sqrt_ratio_matches_protocol_bounds(self):
        assert sqrt_ratio_at_tick(0) == 2**96
        assert sqrt_ratio_at_tick(MIN_TICK) == MIN_SQRT_RATIO
        assert sqrt_ratio_at_tick(MAX_TICK) == MAX_SQRT_RATIO

    def test_sqrt_ratio_is_monotonic(self):
        assert sqrt_ratio_at_tick(-1) < sqrt_ratio_at_tick(0) < sqrt_ratio_at_tick(1)

    def test_sqrt_price_x96_to_price(self):
        assert sqrt_price_x96_to_price(2**96, 18, 6) == Decimal(10) ** 12
        with pytest.raises(DomainError):
            sqrt_price_x96_to_price(0, 18, 6)


class TestTickSpacing:
    def test_full_range_for_default_spacing(self):
        assert full_range_ticks() == (-887220, 887220)

    def test_full_range_for_other_spacings(self):
        assert full_range_ticks(10) == (-887270, 887270)
        assert full_range_ticks(200) == (-887200, 887200)
        with pytest.raises(DomainError):
            full_range_ticks(0)

    def test_tick_spacing_for_fee(self):
        assert tick_spacing_for_fee(500) == 10
        assert tick_spacing_for_fee(3000) == 60
        assert tick_spacing_for_fee(10000) == 200
        assert tick_spacing_for_fee(1234) == 60
