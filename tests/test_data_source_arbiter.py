from __future__ import annotations

import pytest

from position_apr.application.ports.chain_reader_port import ChainBlock
from position_apr.application.ports.indexed_pool_source_port import IndexedMeta, IndexedPool
from position_apr.application.services.data_source_arbiter import DataSourceArbiter
from position_apr.domain.entities.apr import FeeWindow
from position_apr.domain.entities.pool import Pool, TickSnapshot, Token
from position_apr.domain.entities.window_data import DirectWindowData, IndexedWindowData
from position_apr.domain.exceptions import PoolNotFoundError, SourceUnavailableError


NOW = 1_700_000_000
INDEXED_HEAD = 10_000_000
CHAIN_HEAD = 20_000_000
POOL_ID = "0xpool"


USDC = Token(address="0xa0", symbol="USDC", name="USD Coin", decimals=6, chain_id=1)
USDT = Token(address="0xda", symbol="USDT", name="Tether", decimals=6, chain_id=1)


def _pool(*, tick: int = 0, reversed_pair: bool = False) -> Pool:
    return Pool(
        pool_id=POOL_ID,
        chain_id=1,
        token0=USDT if reversed_pair else USDC,
        token1=USDC if reversed_pair else USDT,
        fee_tier=500,
        sqrt_price_x96=2**96,
        liquidity=10**18,
        tick=tick,
        fee_growth_global0_x128=1000,
        fee_growth_global1_x128=2000,
    )


def _tick(tick_idx: int) -> TickSnapshot:
    return TickSnapshot(tick_idx=tick_idx, fee_growth_outside0_x128=10, fee_growth_outside1_x128=20)


class FakeIndexedSource:
    def __init__(self, *, lag: int = 30, fail_blocks: set | None = None, missing_blocks: set | None = None):
        self.lag = lag
        self.fail_blocks = fail_blocks or set()
        self.missing_blocks = missing_blocks or set()
        self.meta_error: Exception | None = None
        self.ticks_by_block: dict = {}
        self.pool_calls: list = []
        self.tick_calls: list = []
        self.reversed_pair = False

    def fetch_pool(self, *, chain_id: int, pool_id: str, block_number: int | None = None):
        self.pool_calls.append(block_number)
        if block_number in self.fail_blocks:
            raise RuntimeError(f"indexer error at {block_number}")
        if block_number in self.missing_blocks:
            return None
        number = INDEXED_HEAD if block_number is None else block_number
        return IndexedPool(
            pool=_pool(reversed_pair=self.reversed_pair),
            meta=IndexedMeta(block_number=number, block_timestamp=NOW - self.lag),
        )

    def fetch_ticks(self, *, chain_id: int, pool_id: str, tick_indices: list, block_number: int | None = None):
        self.tick_calls.append((tuple(tick_indices), block_number))
        if block_number in self.ticks_by_block:
            return self.ticks_by_block[block_number]
        return {tick: _tick(tick) for tick in tick_indices}

    def fetch_meta(self, *, chain_id: int) -> IndexedMeta:
        if self.meta_error is not None:
            raise self.meta_error
        return IndexedMeta(block_number=INDEXED_HEAD, block_timestamp=NOW - self.lag)


class FakeChainReader:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.head_calls = 0
        self.pool_blocks: list = []
        self.tick_reads: list = []

    def latest_block(self, *, chain_id: int) -> ChainBlock:
        self.head_calls += 1
        if self.fail:
            raise RuntimeError("rpc down")
        return ChainBlock(number=CHAIN_HEAD, timestamp=NOW)

    def read_pool_state(self, *, chain_id: int, pool_id: str, block_number: int | None = None) -> Pool:
        self.pool_blocks.append(block_number)
        if self.fail:
            raise RuntimeError("rpc down")
        return _pool(tick=5)

    def read_tick(self, *, chain_id: int, pool_id: str, tick: int, block_number: int | None = None):
        self.tick_reads.append((tick, block_number))
        return _tick(tick)

    def read_token(self, *, chain_id: int, token_address: str) -> Token:
        raise NotImplementedError


def _arbiter(indexed=None, chain=None) -> DataSourceArbiter:
    return DataSourceArbiter(
        indexed_source=indexed or FakeIndexedSource(),
        chain_reader=chain or FakeChainReader(),
        clock=lambda: NOW,
    )


def _fetch(arbiter: DataSourceArbiter, window: FeeWindow = FeeWindow.H24):
    return arbiter.fetch_window(chain_id=1, pool_id=POOL_ID, window=window, tick_lower=-600, tick_upper=600)


def test_fresh_indexed_source_is_used():
    indexed = FakeIndexedSource(lag=30)
    chain = FakeChainReader()

    result = _fetch(_arbiter(indexed, chain))

    assert result.ok
    assert isinstance(result.data, IndexedWindowData)
    assert result.used_fallback is False
    assert result.lag_seconds == 30
    assert result.advisories == ()
    assert indexed.pool_calls == [None, INDEXED_HEAD - 7200]
    assert indexed.tick_calls == [((-600, 600), INDEXED_HEAD), ((-600, 600), INDEXED_HEAD - 7200)]
    assert result.data.historical.block_number == INDEXED_HEAD - 7200
    assert chain.head_calls == 0


def test_lag_at_threshold_is_still_fresh():
    result = _fetch(_arbiter(FakeIndexedSource(lag=1800)))
    assert result.used_fallback is False


def test_stale_indexed_source_falls_back_to_chain():
    indexed = FakeIndexedSource(lag=2000)
    chain = FakeChainReader()

    result = _fetch(_arbiter(indexed, chain))

    assert result.ok
    assert isinstance(result.data, DirectWindowData)
    assert result.used_fallback is True
    assert result.lag_seconds == 2000
    assert result.advisories == ("stale_indexed_source", "fallback_used")
    assert indexed.pool_calls == [None]
    assert chain.pool_blocks == [CHAIN_HEAD, CHAIN_HEAD - 7200]
    assert chain.tick_reads == [
        (-600, CHAIN_HEAD),
        (600, CHAIN_HEAD),
        (-600, CHAIN_HEAD - 7200),
        (600, CHAIN_HEAD - 7200),
    ]


def test_indexed_error_falls_back_without_stale_advisory():
    result = _fetch(_arbiter(FakeIndexedSource(fail_blocks={None})))

    assert isinstance(result.data, DirectWindowData)
    assert result.advisories == ("fallback_used",)
    assert result.lag_seconds == 0


def test_missing_historical_pool_falls_back():
    past = INDEXED_HEAD - 50400
    result = _fetch(_arbiter(FakeIndexedSource(missing_blocks={past})), FeeWindow.D7)

    assert isinstance(result.data, DirectWindowData)
    assert result.data.historical.block_number == CHAIN_HEAD - 50400


def test_both_sources_failing_marks_window_unavailable():
    indexed = FakeIndexedSource(fail_blocks={None})
    chain = FakeChainReader(fail=True)

    result = _fetch(_arbiter(indexed, chain), FeeWindow.D30)

    assert result.ok is False
    assert result.data is None
    assert result.used_fallback is True
    assert result.error == "rpc down"
    assert result.advisories == ("fallback_used", "window_unavailable")
    assert indexed.pool_calls == [None]
    assert chain.head_calls == 1


def test_missing_ticks_become_empty_snapshots():
    indexed = FakeIndexedSource()
    indexed.ticks_by_block[INDEXED_HEAD] = {600: _tick(600)}

    data = _fetch(_arbiter(indexed)).data

    assert data.current.tick_lower.tick_idx == -600
    assert data.current.tick_lower.fee_growth_outside0_x128 == 0
    assert data.current.tick_lower.fee_growth_outside1_x128 == 0
    assert data.current.tick_upper.fee_growth_outside0_x128 == 10


def test_reversed_pair_is_read_mirrored_and_canonicalized():
    indexed = FakeIndexedSource()
    indexed.reversed_pair = True

    result = _arbiter(indexed).fetch_window(
        chain_id=1,
        pool_id=POOL_ID,
        window=FeeWindow.H24,
        tick_lower=-600,
        tick_upper=1200,
    )

    assert indexed.tick_calls[0] == ((-1200, 600), INDEXED_HEAD)
    current = result.data.current
    assert current.pool.token0 == USDC
    assert current.pool.fee_growth_global0_x128 == 2000
    assert current.pool.fee_growth_global1_x128 == 1000
    assert current.tick_lower.tick_idx == -600
    assert current.tick_upper.tick_idx == 1200
    assert current.tick_lower.fee_growth_outside0_x128 == 20
    assert current.tick_lower.fee_growth_outside1_x128 == 10


def test_reference_pool_is_canonicalized():
    indexed = FakeIndexedSource()
    indexed.reversed_pair = True

    pool, used_fallback = _arbiter(indexed).fetch_reference_pool(chain_id=1, pool_id=POOL_ID)

    assert used_fallback is False
    assert pool.token0 == USDC
    assert pool.tick == 0


@pytest.mark.parametrize(
    ("chain_id", "window", "head", "expected"),
    [
        (1, FeeWindow.H24, 10_000_000, 10_000_000 - 7200),
        (1, FeeWindow.D30, 10_000_000, 10_000_000 - 216_000),
        (42161, FeeWindow.H24, 200_000_000, 200_000_000 - 345_600),
        (8453, FeeWindow.D7, 1_000, 1),
        (999, FeeWindow.H24, 100_000, 100_000 - 43_200),
    ],
)
def test_historical_block(chain_id, window, head, expected):
    assert _arbiter().historical_block(chain_id=chain_id, head_block=head, window=window) == expected


def test_check_health_reports_lag():
    health = _arbiter(FakeIndexedSource(lag=120)).check_health(chain_id=1)
    assert health.is_healthy is True
    assert health.lag_seconds == 120
    assert health.block_number == INDEXED_HEAD

    stale = _arbiter(FakeIndexedSource(lag=1800)).check_health(chain_id=1)
    assert stale.is_healthy is False


def test_check_health_on_error_is_unhealthy():
    indexed = FakeIndexedSource()
    indexed.meta_error = RuntimeError("gateway down")

    health = _arbiter(indexed).check_health(chain_id=1)

    assert (health.is_healthy, health.lag_seconds, health.block_number) == (False, 0, 0)


def test_reference_pool_prefers_indexed_source():
    chain = FakeChainReader()
    pool, used_fallback = _arbiter(FakeIndexedSource(), chain).fetch_reference_pool(chain_id=1, pool_id=POOL_ID)

    assert pool.tick == 0
    assert used_fallback is False
    assert chain.pool_blocks == []


def test_reference_pool_falls_back_when_indexer_misses_pool():
    pool, used_fallback = _arbiter(FakeIndexedSource(missing_blocks={None})).fetch_reference_pool(
        chain_id=1,
        pool_id=POOL_ID,
    )
    assert pool.tick == 5
    assert used_fallback is True


def test_reference_pool_not_found_anywhere():
    arbiter = _arbiter(FakeIndexedSource(missing_blocks={None}), FakeChainReader(fail=True))
    with pytest.raises(PoolNotFoundError):
        arbiter.fetch_reference_pool(chain_id=1, pool_id=POOL_ID)


def test_reference_pool_sources_down():
    arbiter = _arbiter(FakeIndexedSource(fail_blocks={None}), FakeChainReader(fail=True))
    with pytest.raises(SourceUnavailableError):
        arbiter.fetch_reference_pool(chain_id=1, pool_id=POOL_ID)
