from __future__ import annotations

import json
from decimal import Decimal

from position_apr.domain.entities.apr import AprResult
from position_apr.domain.entities.position import PositionInput, UsdDeposit
from position_apr.infrastructure.cache.apr_result_cache import APR_CACHE_PREFIX, AprResultCache
from position_apr.infrastructure.cache.in_memory_store import InMemoryKeyValueStore
from position_apr.infrastructure.cache.result_cache import ResultCache


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class ExplodingStore(InMemoryKeyValueStore):
    def set(self, key: str, value: bytes) -> None:
        raise OSError("disk full")

    def get(self, key: str) -> bytes | None:
        raise OSError("disk gone")


def _result(apr: str = "0.5") -> AprResult:
    value = Decimal(apr)
    return AprResult(
        apr_24h=value,
        apr_7d=value,
        apr_30d=value,
        apy_24h=value,
        apy_7d=value,
        apy_30d=value,
        monthly_revenue=Decimal("12.5"),
        yearly_revenue=Decimal("152.0833333333333333333333333"),
        position_value=Decimal("1000"),
    )


def _position(tick_lower: int = -60, tick_upper: int = 60, pool_id: str = "0xPOOL") -> PositionInput:
    return PositionInput(
        chain_id=1,
        pool_id=pool_id,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
        deposit=UsdDeposit(usd=Decimal("1000")),
    )


def _make(store=None):
    store = store or InMemoryKeyValueStore()
    clock = FakeClock()
    cache = ResultCache(store, prefix=APR_CACHE_PREFIX, clock=clock)
    return AprResultCache(cache, clock=clock), store, clock


def test_round_trip_keeps_decimals_exact():
    apr_cache, store, clock = _make()
    apr_cache.set(_position(), _result())

    cached = apr_cache.get(_position())

    assert cached is not None
    assert cached.result == _result()
    assert cached.computed_at == clock.now
    assert cached.pool_id == "0xpool"
    assert cached.deposit_key == "usd:1000"
    assert store.list_keys() == ["apr:1:0xpool:-60:60"]


def test_pool_id_case_does_not_split_entries():
    apr_cache, _store, _clock = _make()
    apr_cache.set(_position(pool_id="0xPOOL"), _result())

    assert apr_cache.get(_position(pool_id="0xpool")) is not None


def test_malformed_payload_is_a_miss_and_removed():
    apr_cache, store, clock = _make()
    envelope = {"payload": {"result": {"apr_24h": "x"}}, "timestamp": clock.now, "ttl": 300}
    store.set("apr:1:0xpool:-60:60", json.dumps(envelope).encode())

    assert apr_cache.get(_position()) is None
    assert store.list_keys() == []


def test_store_failures_are_swallowed():
    apr_cache, _store, _clock = _make(ExplodingStore())

    apr_cache.set(_position(), _result())
    assert apr_cache.get(_position()) is None


def test_pool_history_is_newest_first_and_scoped_to_pool():
    apr_cache, _store, clock = _make()
    apr_cache.set(_position(-60, 60), _result("0.1"))
    clock.now += 10
    apr_cache.set(_position(-120, 120), _result("0.2"))
    apr_cache.set(_position(pool_id="0xother"), _result("0.3"))

    history = apr_cache.pool_history(chain_id=1, pool_id="0xPool")

    assert [item.tick_lower for item in history] == [-120, -60]
    assert history[0].result.apr_24h == Decimal("0.2")
