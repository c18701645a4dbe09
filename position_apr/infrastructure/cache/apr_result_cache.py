from __future__ import annotations

from dataclasses import fields
from decimal import Decimal, InvalidOperation
import logging
import time
from typing import Callable

from position_apr.application.ports.apr_result_cache_port import AprResultCachePort
from position_apr.domain.entities.apr import AprResult, CachedAprResult
from position_apr.domain.entities.position import PositionInput
from position_apr.domain.exceptions import CacheCorruptionError
from position_apr.infrastructure.cache.result_cache import ResultCache


APR_CACHE_PREFIX = "apr"
RESULT_FIELDS = tuple(item.name for item in fields(AprResult))
logger = logging.getLogger(__name__)


def encode_cached_result(cached: CachedAprResult) -> dict:
    return {
        "chain_id": cached.chain_id,
        "pool_id": cached.pool_id,
        "tick_lower": cached.tick_lower,
        "tick_upper": cached.tick_upper,
        "computed_at": cached.computed_at,
        "deposit_key": cached.deposit_key,
        "result": {name: str(getattr(cached.result, name)) for name in RESULT_FIELDS},
    }


def decode_cached_result(payload) -> CachedAprResult:
    try:
        raw_result = payload["result"]
        result = AprResult(**{name: Decimal(str(raw_result[name])) for name in RESULT_FIELDS})
        return CachedAprResult(
            result=result,
            computed_at=float(payload["computed_at"]),
            chain_id=int(payload["chain_id"]),
            pool_id=str(payload["pool_id"]),
            tick_lower=int(payload["tick_lower"]),
            tick_upper=int(payload["tick_upper"]),
            deposit_key=str(payload.get("deposit_key", "")),
        )
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        raise CacheCorruptionError(f"Malformed APR cache payload: {exc}") from exc


class AprResultCache(AprResultCachePort):
    """APR results keyed by position; a cache failure is never the caller's problem."""

    def __init__(self, cache: ResultCache, *, clock: Callable[[], float] = time.time):
        self._cache = cache
        self._clock = clock

    def get(self, position: PositionInput) -> CachedAprResult | None:
        key = position.cache_key()
        try:
            payload = self._cache.get(key)
            if payload is None:
                return None
            return decode_cached_result(payload)
        except CacheCorruptionError as exc:
            logger.warning("apr_result_cache: corrupt payload key=%s error=%s", key, exc)
            self._safe_delete(key)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.warning("apr_result_cache: get failed key=%s error=%s", key, exc)
            return None

    def set(self, position: PositionInput, result: AprResult) -> None:
        cached = CachedAprResult(
            result=result,
            computed_at=self._clock(),
            chain_id=position.chain_id,
            pool_id=position.pool_id.lower(),
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
            deposit_key=position.deposit_key(),
        )
        try:
            self._cache.set(position.cache_key(), encode_cached_result(cached))
        except Exception as exc:  # noqa: BLE001
            logger.warning("apr_result_cache: set failed key=%s error=%s", position.cache_key(), exc)

    def pool_history(self, *, chain_id: int, pool_id: str) -> list[CachedAprResult]:
        key_prefix = f"{chain_id}:{pool_id.lower()}:"
        try:
            items = self._cache.items(key_prefix)
        except Exception as exc:  # noqa: BLE001
            logger.warning("apr_result_cache: history failed prefix=%s error=%s", key_prefix, exc)
            return []

        history = []
        for key, payload in items:
            try:
                history.append(decode_cached_result(payload))
            except CacheCorruptionError as exc:
                logger.warning("apr_result_cache: corrupt payload key=%s error=%s", key, exc)
                self._safe_delete(key)
        history.sort(key=lambda item: item.computed_at, reverse=True)
        return history

    def _safe_delete(self, key: str) -> None:
        try:
            self._cache.delete(key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("apr_result_cache: delete failed key=%s error=%s", key, exc)
