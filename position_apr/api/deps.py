from __future__ import annotations

from functools import lru_cache

from position_apr.application.ports.key_value_store_port import KeyValueStorePort
from position_apr.application.services.data_source_arbiter import DataSourceArbiter
from position_apr.application.use_cases.calculate_position_apr import CalculatePositionAprUseCase
from position_apr.application.use_cases.check_source_health import CheckSourceHealthUseCase
from position_apr.application.use_cases.export_position_apr import ExportPositionAprUseCase
from position_apr.application.use_cases.get_pool_apr_history import GetPoolAprHistoryUseCase
from position_apr.application.use_cases.get_pool_price_context import GetPoolPriceContextUseCase
from position_apr.infrastructure.cache.apr_result_cache import APR_CACHE_PREFIX, AprResultCache
from position_apr.infrastructure.cache.in_memory_store import InMemoryKeyValueStore
from position_apr.infrastructure.cache.result_cache import ResultCache
from position_apr.infrastructure.cache.sweeper import CacheSweeper
from position_apr.infrastructure.clients.chain_rpc_client import ChainRpcClient, ChainRpcClientSettings
from position_apr.infrastructure.clients.pricing import CoingeckoPriceProvider, PriceOverrides, PriceService
from position_apr.infrastructure.clients.quote_price_adapter import PriceServiceAdapter
from position_apr.infrastructure.clients.univ3_subgraph_client import (
    Univ3SubgraphClient,
    Univ3SubgraphClientSettings,
)
from position_apr.infrastructure.db.engine import get_engine
from position_apr.infrastructure.db.repositories.sql_key_value_store import SqlKeyValueStore
from position_apr.shared.config import get_settings


@lru_cache(maxsize=1)
def get_key_value_store() -> KeyValueStorePort:
    settings = get_settings()
    if not settings.cache_dsn:
        return InMemoryKeyValueStore()
    return SqlKeyValueStore(get_engine(settings.cache_dsn))


@lru_cache(maxsize=1)
def get_result_cache() -> ResultCache:
    settings = get_settings()
    return ResultCache(
        get_key_value_store(),
        prefix=APR_CACHE_PREFIX,
        default_ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )


@lru_cache(maxsize=1)
def get_cache_sweeper() -> CacheSweeper:
    settings = get_settings()
    return CacheSweeper(get_result_cache(), interval_seconds=settings.cache_sweep_interval_seconds)


@lru_cache(maxsize=1)
def _get_apr_result_cache() -> AprResultCache:
    return AprResultCache(get_result_cache())


@lru_cache(maxsize=1)
def _get_price_service() -> PriceService:
    settings = get_settings()
    overrides = PriceOverrides(settings.price_overrides)
    coingecko = CoingeckoPriceProvider(
        api_base=settings.coingecko_api_base,
        timeout_seconds=settings.coingecko_timeout_seconds,
        cache_ttl_seconds=settings.coingecko_cache_ttl_seconds,
    )
    return PriceService(overrides=overrides, coingecko=coingecko)


@lru_cache(maxsize=1)
def _get_univ3_subgraph_client() -> Univ3SubgraphClient:
    settings = get_settings()
    return Univ3SubgraphClient(
        Univ3SubgraphClientSettings(
            graph_gateway_base=settings.graph_gateway_base,
            graph_api_key=settings.graph_api_key,
            graph_subgraph_ids=settings.graph_subgraph_ids,
            timeout_seconds=settings.graph_request_timeout_seconds,
            max_retries=settings.graph_max_retries,
            min_interval_ms=settings.graph_min_interval_ms,
        )
    )


@lru_cache(maxsize=1)
def _get_chain_rpc_client() -> ChainRpcClient:
    settings = get_settings()
    return ChainRpcClient(
        ChainRpcClientSettings(
            rpc_urls=settings.rpc_urls,
            timeout_seconds=settings.rpc_timeout_seconds,
            max_retries=settings.rpc_max_retries,
        )
    )


@lru_cache(maxsize=1)
def _get_data_source_arbiter() -> DataSourceArbiter:
    settings = get_settings()
    return DataSourceArbiter(
        indexed_source=_get_univ3_subgraph_client(),
        chain_reader=_get_chain_rpc_client(),
        lag_threshold_seconds=settings.subgraph_lag_threshold_seconds,
        block_times=settings.block_time_seconds,
    )


def get_calculate_position_apr_use_case() -> CalculatePositionAprUseCase:
    settings = get_settings()
    return CalculatePositionAprUseCase(
        arbiter=_get_data_source_arbiter(),
        quote_price_port=PriceServiceAdapter(_get_price_service()),
        result_cache=_get_apr_result_cache(),
        freshness_seconds=settings.result_freshness_seconds,
        max_attempts=settings.apr_max_attempts,
    )


def get_export_position_apr_use_case() -> ExportPositionAprUseCase:
    return ExportPositionAprUseCase(calculate_use_case=get_calculate_position_apr_use_case())


def get_check_source_health_use_case() -> CheckSourceHealthUseCase:
    return CheckSourceHealthUseCase(arbiter=_get_data_source_arbiter())


def get_pool_price_context_use_case() -> GetPoolPriceContextUseCase:
    return GetPoolPriceContextUseCase(arbiter=_get_data_source_arbiter())


def get_pool_apr_history_use_case() -> GetPoolAprHistoryUseCase:
    return GetPoolAprHistoryUseCase(result_cache=_get_apr_result_cache())
