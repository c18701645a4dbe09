from __future__ import annotations

import logging
from decimal import Decimal

from position_apr.application.dto.position_apr import PoolPriceContextOutput, RangeSuggestionOutput
from position_apr.application.services.data_source_arbiter import DataSourceArbiter
from position_apr.domain.entities.chain import is_supported_chain
from position_apr.domain.exceptions import InvalidPositionInputError
from position_apr.domain.services.pair_orientation import (
    display_range_to_ticks,
    display_should_invert,
    invert_decimal_price,
)
from position_apr.domain.services.price_range import range_suggestions
from position_apr.domain.services.univ3_math import sqrt_price_x96_to_price


logger = logging.getLogger(__name__)


class GetPoolPriceContextUseCase:
    """Current price of a pool as a user would read it, plus suggested ranges."""

    def __init__(self, *, arbiter: DataSourceArbiter):
        self._arbiter = arbiter

    def execute(self, *, chain_id: int, pool_id: str) -> PoolPriceContextOutput:
        if not is_supported_chain(chain_id):
            raise InvalidPositionInputError(f"chain_id {chain_id} is not supported.")
        if not pool_id or not pool_id.lower().startswith("0x"):
            raise InvalidPositionInputError("pool_id must start with 0x.")

        pool, used_fallback = self._arbiter.fetch_reference_pool(chain_id=chain_id, pool_id=pool_id)
        price = sqrt_price_x96_to_price(pool.sqrt_price_x96, pool.token0.decimals, pool.token1.decimals)
        invert = display_should_invert(pool.token0, pool.token1)
        display_price = invert_decimal_price(price) if invert else price
        base, quote = (pool.token1, pool.token0) if invert else (pool.token0, pool.token1)

        suggestions = []
        for name, (lower, upper) in range_suggestions(float(display_price)).items():
            tick_lower, tick_upper = display_range_to_ticks(
                lower,
                upper,
                pool.token0,
                pool.token1,
                invert=invert,
            )
            suggestions.append(
                RangeSuggestionOutput(
                    name=name,
                    min_price=Decimal(str(lower)),
                    max_price=Decimal(str(upper)),
                    tick_lower=tick_lower,
                    tick_upper=tick_upper,
                )
            )

        logger.info(
            "get_pool_price_context: chain_id=%s pool=%s tick=%s invert=%s fallback=%s",
            chain_id,
            pool_id,
            pool.tick,
            invert,
            used_fallback,
        )
        return PoolPriceContextOutput(
            chain_id=chain_id,
            pool_id=pool.pool_id,
            token0_symbol=pool.token0.symbol,
            token1_symbol=pool.token1.symbol,
            tick=pool.tick,
            price=price,
            display_price=display_price,
            display_inverted=invert,
            display_base_symbol=base.symbol,
            display_quote_symbol=quote.symbol,
            suggestions=suggestions,
            used_fallback=used_fallback,
        )
