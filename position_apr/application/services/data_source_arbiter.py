from __future__ import annotations

import logging
import time
from typing import Callable

from position_apr.application.dto.position_apr import (
    ADVISORY_FALLBACK_USED,
    ADVISORY_STALE_INDEXED_SOURCE,
    ADVISORY_WINDOW_UNAVAILABLE,
)
from position_apr.application.ports.chain_reader_port import ChainReaderPort
from position_apr.application.ports.indexed_pool_source_port import (
    IndexedPool,
    IndexedPoolSourcePort,
)
from position_apr.domain.entities.apr import FeeWindow
from position_apr.domain.entities.chain import CHAINS, DEFAULT_BLOCK_TIME_SECONDS
from position_apr.domain.entities.pool import Pool, PoolState, TickSnapshot, empty_tick_snapshot
from position_apr.domain.entities.window_data import (
    DirectWindowData,
    IndexedWindowData,
    SourceHealth,
    WindowFetchResult,
)
from position_apr.domain.exceptions import (
    PoolNotFoundError,
    SourceUnavailableError,
    StaleDataError,
)
from position_apr.domain.services.pool_canonical import (
    canonicalize_pool,
    canonicalize_pool_state,
    reported_tick_range,
)


DEFAULT_LAG_THRESHOLD_SECONDS = 1800
# Failures a source may raise while answering; anything else is a bug and propagates.
SOURCE_ERRORS = (SourceUnavailableError, RuntimeError, ValueError)
logger = logging.getLogger(__name__)


def default_block_times() -> dict[int, float]:
    return {chain_id: chain.block_time_seconds for chain_id, chain in CHAINS.items()}


class DataSourceArbiter:
    """Chooses between the indexed source and direct chain reads.

    Each window is tried at most once against the indexed source and at most
    once against the chain; failures degrade into an unavailable window
    instead of raising.
    """

    def __init__(
        self,
        *,
        indexed_source: IndexedPoolSourcePort,
        chain_reader: ChainReaderPort,
        lag_threshold_seconds: int = DEFAULT_LAG_THRESHOLD_SECONDS,
        block_times: dict[int, float] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._indexed_source = indexed_source
        self._chain_reader = chain_reader
        self._lag_threshold_seconds = lag_threshold_seconds
        self._block_times = block_times if block_times is not None else default_block_times()
        self._clock = clock

    @property
    def lag_threshold_seconds(self) -> int:
        return self._lag_threshold_seconds

    def block_time(self, chain_id: int) -> float:
        return self._block_times.get(chain_id, DEFAULT_BLOCK_TIME_SECONDS)

    def historical_block(self, *, chain_id: int, head_block: int, window: FeeWindow) -> int:
        blocks_back = int(window.seconds / self.block_time(chain_id))
        return max(1, head_block - blocks_back)

    def fetch_reference_pool(self, *, chain_id: int, pool_id: str) -> tuple[Pool, bool]:
        """Current pool state, preferring the indexed source.

        Returns the pool and whether the chain fallback was needed.
        """
        indexed_missing = False
        try:
            indexed = self._indexed_source.fetch_pool(chain_id=chain_id, pool_id=pool_id)
            if indexed is not None:
                return canonicalize_pool(indexed.pool), False
            indexed_missing = True
            logger.info(
                "data_source_arbiter: pool missing on indexed source chain_id=%s pool=%s",
                chain_id,
                pool_id,
            )
        except SOURCE_ERRORS as exc:
            logger.warning(
                "data_source_arbiter: indexed pool lookup failed chain_id=%s pool=%s error=%s",
                chain_id,
                pool_id,
                exc,
            )

        try:
            pool = self._chain_reader.read_pool_state(chain_id=chain_id, pool_id=pool_id)
            return canonicalize_pool(pool), True
        except SOURCE_ERRORS as exc:
            logger.warning(
                "data_source_arbiter: chain pool read failed chain_id=%s pool=%s error=%s",
                chain_id,
                pool_id,
                exc,
            )
            if indexed_missing:
                raise PoolNotFoundError(f"Pool {pool_id} not found on chain {chain_id}.") from exc
            raise SourceUnavailableError(
                f"No source could load pool {pool_id} on chain {chain_id}."
            ) from exc

    def fetch_window(
        self,
        *,
        chain_id: int,
        pool_id: str,
        window: FeeWindow,
        tick_lower: int,
        tick_upper: int,
    ) -> WindowFetchResult:
        advisories: list[str] = []
        lag_seconds = 0
        try:
            data = self._fetch_indexed_window(
                chain_id=chain_id,
                pool_id=pool_id,
                window=window,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            )
            return WindowFetchResult(
                window=window,
                data=data,
                lag_seconds=data.lag_seconds,
                used_fallback=False,
            )
        except StaleDataError as exc:
            lag_seconds = exc.lag_seconds
            advisories.append(ADVISORY_STALE_INDEXED_SOURCE)
            logger.warning(
                "data_source_arbiter: indexed source stale chain_id=%s window=%s lag=%ss threshold=%ss",
                chain_id,
                window.value,
                exc.lag_seconds,
                exc.threshold_seconds,
            )
        except SOURCE_ERRORS as exc:
            logger.warning(
                "data_source_arbiter: indexed window failed chain_id=%s pool=%s window=%s error=%s",
                chain_id,
                pool_id,
                window.value,
                exc,
            )

        advisories.append(ADVISORY_FALLBACK_USED)
        try:
            direct = self._fetch_direct_window(
                chain_id=chain_id,
                pool_id=pool_id,
                window=window,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            )
        except SOURCE_ERRORS as exc:
            logger.warning(
                "data_source_arbiter: chain window failed chain_id=%s pool=%s window=%s error=%s",
                chain_id,
                pool_id,
                window.value,
                exc,
            )
            advisories.append(ADVISORY_WINDOW_UNAVAILABLE)
            return WindowFetchResult(
                window=window,
                data=None,
                lag_seconds=lag_seconds,
                used_fallback=True,
                advisories=tuple(advisories),
                error=str(exc),
            )

        return WindowFetchResult(
            window=window,
            data=direct,
            lag_seconds=lag_seconds,
            used_fallback=True,
            advisories=tuple(advisories),
        )

    def check_health(self, *, chain_id: int) -> SourceHealth:
        try:
            meta = self._indexed_source.fetch_meta(chain_id=chain_id)
        except SOURCE_ERRORS as exc:
            logger.warning("data_source_arbiter: health probe failed chain_id=%s error=%s", chain_id, exc)
            return SourceHealth(is_healthy=False, lag_seconds=0, block_number=0)

        lag_seconds = self._lag_of(meta.block_timestamp)
        return SourceHealth(
            is_healthy=lag_seconds < self._lag_threshold_seconds,
            lag_seconds=lag_seconds,
            block_number=meta.block_number,
        )

    def _lag_of(self, block_timestamp: int) -> int:
        return max(0, int(self._clock()) - block_timestamp)

    def _fetch_indexed_window(
        self,
        *,
        chain_id: int,
        pool_id: str,
        window: FeeWindow,
        tick_lower: int,
        tick_upper: int,
    ) -> IndexedWindowData:
        current = self._require_indexed_pool(chain_id=chain_id, pool_id=pool_id, block_number=None)
        lag_seconds = self._lag_of(current.meta.block_timestamp)
        if lag_seconds > self._lag_threshold_seconds:
            raise StaleDataError(lag_seconds, self._lag_threshold_seconds)

        head_block = current.meta.block_number
        past_block = self.historical_block(chain_id=chain_id, head_block=head_block, window=window)
        historical = self._require_indexed_pool(chain_id=chain_id, pool_id=pool_id, block_number=past_block)

        return IndexedWindowData(
            current=self._indexed_state(
                chain_id=chain_id,
                pool_id=pool_id,
                pool=current.pool,
                block_number=head_block,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            ),
            historical=self._indexed_state(
                chain_id=chain_id,
                pool_id=pool_id,
                pool=historical.pool,
                block_number=past_block,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            ),
            lag_seconds=lag_seconds,
        )

    def _require_indexed_pool(self, *, chain_id: int, pool_id: str, block_number: int | None) -> IndexedPool:
        indexed = self._indexed_source.fetch_pool(
            chain_id=chain_id,
            pool_id=pool_id,
            block_number=block_number,
        )
        if indexed is None:
            raise SourceUnavailableError(
                f"Indexed source has no pool {pool_id} at block {block_number or 'latest'}."
            )
        return indexed

    def _indexed_state(
        self,
        *,
        chain_id: int,
        pool_id: str,
        pool: Pool,
        block_number: int,
        tick_lower: int,
        tick_upper: int,
    ) -> PoolState:
        lower_idx, upper_idx = reported_tick_range(pool, tick_lower, tick_upper)
        ticks = self._indexed_source.fetch_ticks(
            chain_id=chain_id,
            pool_id=pool_id,
            tick_indices=[lower_idx, upper_idx],
            block_number=block_number,
        )
        state = PoolState(
            pool=pool,
            tick_lower=_tick_or_empty(ticks, lower_idx),
            tick_upper=_tick_or_empty(ticks, upper_idx),
            block_number=block_number,
        )
        return canonicalize_pool_state(state)

    def _fetch_direct_window(
        self,
        *,
        chain_id: int,
        pool_id: str,
        window: FeeWindow,
        tick_lower: int,
        tick_upper: int,
    ) -> DirectWindowData:
        head = self._chain_reader.latest_block(chain_id=chain_id)
        past_block = self.historical_block(chain_id=chain_id, head_block=head.number, window=window)
        logger.info(
            "data_source_arbiter: chain fallback chain_id=%s pool=%s window=%s head=%s past=%s",
            chain_id,
            pool_id,
            window.value,
            head.number,
            past_block,
        )
        return DirectWindowData(
            current=self._direct_state(
                chain_id=chain_id,
                pool_id=pool_id,
                block_number=head.number,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            ),
            historical=self._direct_state(
                chain_id=chain_id,
                pool_id=pool_id,
                block_number=past_block,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            ),
        )

    def _direct_state(
        self,
        *,
        chain_id: int,
        pool_id: str,
        block_number: int,
        tick_lower: int,
        tick_upper: int,
    ) -> PoolState:
        pool = self._chain_reader.read_pool_state(
            chain_id=chain_id,
            pool_id=pool_id,
            block_number=block_number,
        )
        lower_idx, upper_idx = reported_tick_range(pool, tick_lower, tick_upper)
        lower = self._chain_reader.read_tick(
            chain_id=chain_id,
            pool_id=pool_id,
            tick=lower_idx,
            block_number=block_number,
        )
        upper = self._chain_reader.read_tick(
            chain_id=chain_id,
            pool_id=pool_id,
            tick=upper_idx,
            block_number=block_number,
        )
        return canonicalize_pool_state(
            PoolState(pool=pool, tick_lower=lower, tick_upper=upper, block_number=block_number)
        )


def _tick_or_empty(ticks: dict[int, TickSnapshot], tick_idx: int) -> TickSnapshot:
    # The indexer only stores initialized ticks.
    snapshot = ticks.get(tick_idx)
    return snapshot if snapshot is not None else empty_tick_snapshot(tick_idx)
