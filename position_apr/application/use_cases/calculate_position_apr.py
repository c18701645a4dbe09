from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from decimal import Decimal
from time import perf_counter
from typing import Callable

from position_apr.application.dto.position_apr import (
    ADVISORY_QUOTE_PRICE_UNRESOLVED,
    ADVISORY_WINDOW_UNAVAILABLE,
    ADVISORY_ZERO_LIQUIDITY,
    PositionAprMetaOutput,
    PositionAprOutput,
)
from position_apr.application.ports.apr_result_cache_port import AprResultCachePort
from position_apr.application.ports.quote_price_port import QuotePricePort
from position_apr.application.services.data_source_arbiter import DataSourceArbiter
from position_apr.domain.entities.apr import (
    AprResult,
    CachedAprResult,
    FeeWindow,
    FeeWindowResult,
    zero_fee_window,
)
from position_apr.domain.entities.chain import is_supported_chain
from position_apr.domain.entities.pool import Pool
from position_apr.domain.entities.position import PositionInput, TokenAmountsDeposit, UsdDeposit
from position_apr.domain.entities.window_data import WindowFetchResult
from position_apr.domain.exceptions import (
    InvalidPositionInputError,
    InvalidRangeError,
    PriceLookupDomainError,
    SourceUnavailableError,
)
from position_apr.domain.services.apr_projection import build_apr_result, rescale_apr_result
from position_apr.domain.services.liquidity import fees_from_liquidity, liquidity_for_amounts
from position_apr.domain.services.pair_orientation import is_chain_native_wrapper
from position_apr.domain.services.price_range import (
    RANGE_MESSAGES,
    REASON_LOWER_NOT_BELOW_UPPER,
    ensure_valid_range,
)
from position_apr.domain.services.univ3_fee_growth import fee_growth_inside_pair
from position_apr.domain.services.univ3_math import (
    MAX_TICK,
    MIN_TICK,
    full_range_ticks,
    price_from_tick,
    sqrt_ratio_at_tick,
)
from position_apr.domain.services.valuation import (
    QuotePrices,
    position_value,
    quote_prices,
    raw_amount_value,
    split_deposit,
)


DEFAULT_FRESHNESS_SECONDS = 300
DEFAULT_MAX_ATTEMPTS = 3
logger = logging.getLogger(__name__)


class CalculatePositionAprUseCase:
    def __init__(
        self,
        *,
        arbiter: DataSourceArbiter,
        quote_price_port: QuotePricePort,
        result_cache: AprResultCachePort,
        freshness_seconds: int = DEFAULT_FRESHNESS_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], float] = time.time,
    ):
        self._arbiter = arbiter
        self._quote_price_port = quote_price_port
        self._result_cache = result_cache
        self._freshness_seconds = freshness_seconds
        self._max_attempts = max(1, max_attempts)
        self._clock = clock

    def execute(self, position: PositionInput) -> PositionAprOutput:
        logger.info(
            "calculate_position_apr: start chain_id=%s pool=%s tick_lower=%s tick_upper=%s full_range=%s",
            position.chain_id,
            position.pool_id,
            position.tick_lower,
            position.tick_upper,
            position.is_full_range,
        )
        position = self._validate(position)

        cached = self._result_cache.get(position)
        if cached is not None:
            age = self._clock() - cached.computed_at
            reused = self._reuse_cached(position, cached)
            if age < self._freshness_seconds and reused is not None:
                logger.info(
                    "calculate_position_apr: cache hit key=%s age=%.1fs",
                    position.cache_key(),
                    age,
                )
                return PositionAprOutput(
                    result=reused,
                    windows=[],
                    meta=PositionAprMetaOutput(
                        tick_lower=position.tick_lower,
                        tick_upper=position.tick_upper,
                        liquidity=0,
                        amount0=0,
                        amount1=0,
                        lag_seconds=0,
                        used_fallback=False,
                        computed_at=cached.computed_at,
                    ),
                    from_cache=True,
                )
            logger.info(
                "calculate_position_apr: cache entry not reusable key=%s age=%.1fs",
                position.cache_key(),
                age,
            )

        started = perf_counter()
        for attempt in range(1, self._max_attempts + 1):
            try:
                output = self._compute(position)
                break
            except SourceUnavailableError as exc:
                if attempt >= self._max_attempts:
                    logger.warning(
                        "calculate_position_apr: giving up after attempts=%s error=%s",
                        attempt,
                        exc,
                    )
                    raise
                logger.warning(
                    "calculate_position_apr: retrying attempt=%s/%s error=%s",
                    attempt,
                    self._max_attempts,
                    exc,
                )

        self._result_cache.set(position, output.result)
        logger.info(
            "calculate_position_apr: done pool=%s apr_24h=%s apr_7d=%s apr_30d=%s advisories=%s elapsed_ms=%.1f",
            position.pool_id,
            output.result.apr_24h,
            output.result.apr_7d,
            output.result.apr_30d,
            ",".join(output.meta.advisories) or "-",
            (perf_counter() - started) * 1000,
        )
        return output

    def _reuse_cached(self, position: PositionInput, cached: CachedAprResult) -> AprResult | None:
        if isinstance(position.deposit, UsdDeposit):
            return rescale_apr_result(cached.result, position.deposit.usd)
        # Token amounts can only be valued against a live pool.
        if cached.deposit_key == position.deposit_key():
            return cached.result
        return None

    def _validate(self, position: PositionInput) -> PositionInput:
        if not is_supported_chain(position.chain_id):
            raise InvalidPositionInputError(f"chain_id {position.chain_id} is not supported.")
        if not position.pool_id or not position.pool_id.lower().startswith("0x"):
            raise InvalidPositionInputError("pool_id must start with 0x.")

        deposit = position.deposit
        if isinstance(deposit, UsdDeposit):
            if deposit.usd <= 0:
                raise InvalidPositionInputError("deposit usd must be positive.")
        elif isinstance(deposit, TokenAmountsDeposit):
            if deposit.token0_amount < 0 or deposit.token1_amount < 0:
                raise InvalidPositionInputError("token amounts must be >= 0.")
            if deposit.token0_amount == 0 and deposit.token1_amount == 0:
                raise InvalidPositionInputError("at least one token amount must be positive.")
        else:
            raise InvalidPositionInputError("deposit must be either usd or token amounts.")

        if position.is_full_range:
            tick_lower, tick_upper = full_range_ticks()
            position = replace(position, tick_lower=tick_lower, tick_upper=tick_upper)

        if position.tick_lower < MIN_TICK or position.tick_upper > MAX_TICK:
            raise InvalidPositionInputError(f"ticks must be within [{MIN_TICK}, {MAX_TICK}].")
        if position.tick_lower >= position.tick_upper:
            raise InvalidRangeError(
                REASON_LOWER_NOT_BELOW_UPPER,
                RANGE_MESSAGES[REASON_LOWER_NOT_BELOW_UPPER],
            )
        return position

    def _compute(self, position: PositionInput) -> PositionAprOutput:
        pool, pool_fallback = self._arbiter.fetch_reference_pool(
            chain_id=position.chain_id,
            pool_id=position.pool_id,
        )
        if not position.is_full_range:
            ensure_valid_range(
                price_from_tick(position.tick_lower),
                price_from_tick(position.tick_upper),
                price_from_tick(pool.tick),
            )

        advisories: set[str] = set()
        prices = self._resolve_prices(pool)
        if not prices.resolved:
            advisories.add(ADVISORY_QUOTE_PRICE_UNRESOLVED)

        deposit = position.deposit
        if isinstance(deposit, UsdDeposit):
            amount0, amount1 = split_deposit(pool, prices, deposit.usd)
            value = deposit.usd
        else:
            amount0, amount1 = deposit.token0_amount, deposit.token1_amount
            value = position_value(pool, prices, amount0, amount1)

        liquidity = liquidity_for_amounts(
            pool.sqrt_price_x96,
            sqrt_ratio_at_tick(position.tick_lower),
            sqrt_ratio_at_tick(position.tick_upper),
            amount0,
            amount1,
        )
        if liquidity == 0:
            advisories.add(ADVISORY_ZERO_LIQUIDITY)

        windows = self._fetch_windows(position)
        window_results: list[FeeWindowResult] = []
        for window in FeeWindow:
            fetched = windows[window]
            advisories.update(fetched.advisories)
            window_results.append(
                self._window_fees(
                    fetched,
                    pool=pool,
                    prices=prices,
                    liquidity=liquidity,
                    tick_lower=position.tick_lower,
                    tick_upper=position.tick_upper,
                )
            )

        result = build_apr_result(
            {item.window: item.total_fees_quote for item in window_results},
            value,
        )
        return PositionAprOutput(
            result=result,
            windows=window_results,
            meta=PositionAprMetaOutput(
                tick_lower=position.tick_lower,
                tick_upper=position.tick_upper,
                liquidity=liquidity,
                amount0=amount0,
                amount1=amount1,
                lag_seconds=max(item.lag_seconds for item in window_results),
                used_fallback=pool_fallback or any(item.used_fallback for item in window_results),
                computed_at=self._clock(),
                advisories=sorted(advisories),
            ),
        )

    def _resolve_prices(self, pool: Pool) -> QuotePrices:
        native_price: Decimal | None = None
        if is_chain_native_wrapper(pool.token0) or is_chain_native_wrapper(pool.token1):
            try:
                native_price = self._quote_price_port.native_currency_price_in_quote(chain_id=pool.chain_id)
            except PriceLookupDomainError as exc:
                logger.warning(
                    "calculate_position_apr: native price unavailable chain_id=%s error=%s",
                    pool.chain_id,
                    exc,
                )
        return quote_prices(pool, native_price=native_price)

    def _fetch_windows(self, position: PositionInput) -> dict[FeeWindow, WindowFetchResult]:
        results: dict[FeeWindow, WindowFetchResult] = {}
        with ThreadPoolExecutor(max_workers=len(FeeWindow), thread_name_prefix="apr-window") as executor:
            futures = {
                window: executor.submit(
                    self._arbiter.fetch_window,
                    chain_id=position.chain_id,
                    pool_id=position.pool_id,
                    window=window,
                    tick_lower=position.tick_lower,
                    tick_upper=position.tick_upper,
                )
                for window in FeeWindow
            }
            for window, future in futures.items():
                try:
                    results[window] = future.result()
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "calculate_position_apr: window crashed window=%s error=%s",
                        window.value,
                        exc,
                        exc_info=True,
                    )
                    results[window] = WindowFetchResult(
                        window=window,
                        data=None,
                        lag_seconds=0,
                        used_fallback=False,
                        advisories=(ADVISORY_WINDOW_UNAVAILABLE,),
                        error=str(exc),
                    )
        return results

    def _window_fees(
        self,
        fetched: WindowFetchResult,
        *,
        pool: Pool,
        prices: QuotePrices,
        liquidity: int,
        tick_lower: int,
        tick_upper: int,
    ) -> FeeWindowResult:
        if not fetched.ok:
            return zero_fee_window(
                fetched.window,
                error=fetched.error or "window data unavailable",
                lag_seconds=fetched.lag_seconds,
                used_fallback=fetched.used_fallback,
            )

        data = fetched.data
        inside_start = fee_growth_inside_pair(data.historical, tick_lower=tick_lower, tick_upper=tick_upper)
        inside_end = fee_growth_inside_pair(data.current, tick_lower=tick_lower, tick_upper=tick_upper)
        fees0, fees1 = fees_from_liquidity(liquidity, inside_start, inside_end)
        fees0_quote = raw_amount_value(fees0, pool.token0.decimals, prices.token0)
        fees1_quote = raw_amount_value(fees1, pool.token1.decimals, prices.token1)
        return FeeWindowResult(
            window=fetched.window,
            fee_growth_inside0_start=inside_start[0],
            fee_growth_inside1_start=inside_start[1],
            fee_growth_inside0_end=inside_end[0],
            fee_growth_inside1_end=inside_end[1],
            fees0=fees0,
            fees1=fees1,
            fees0_quote=fees0_quote,
            fees1_quote=fees1_quote,
            total_fees_quote=fees0_quote + fees1_quote,
            lag_seconds=fetched.lag_seconds,
            used_fallback=fetched.used_fallback,
        )
