from __future__ import annotations

import json
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from position_apr.domain.entities.chain import CHAINS


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _json(name: str) -> dict:
    value = _env(name)
    if not value:
        return {}
    return json.loads(value)


@dataclass(frozen=True)
class Settings:
    price_overrides: dict
    coingecko_api_base: str
    coingecko_timeout_seconds: float
    coingecko_cache_ttl_seconds: float
    graph_api_key: str
    graph_gateway_base: str
    graph_subgraph_ids: dict
    graph_request_timeout_seconds: float
    graph_max_retries: int
    graph_min_interval_ms: int
    rpc_urls: dict
    rpc_timeout_seconds: float
    rpc_max_retries: int
    cache_dsn: str
    cache_ttl_seconds: float
    cache_max_entries: int
    cache_sweep_interval_seconds: float
    result_freshness_seconds: float
    subgraph_lag_threshold_seconds: int
    apr_max_attempts: int
    block_time_seconds: dict
    cors_allow_origins: list


def _block_times() -> dict:
    block_times = {chain_id: chain.block_time_seconds for chain_id, chain in CHAINS.items()}
    for chain_id, seconds in _json("BLOCK_TIME_SECONDS").items():
        block_times[int(chain_id)] = float(seconds)
    return block_times


def get_settings() -> Settings:
    subgraphs = {
        chain.key: _env(f"GRAPH_SUBGRAPH_ID_{chain.key.upper()}", "") for chain in CHAINS.values()
    }
    rpc_urls = {
        chain_id: _env(f"RPC_URL_{chain.key.upper()}", "") for chain_id, chain in CHAINS.items()
    }
    origins = _env("CORS_ALLOW_ORIGINS", "*")
    return Settings(
        price_overrides=_json("PRICE_OVERRIDES"),
        coingecko_api_base=_env("COINGECKO_API_BASE", "https://api.coingecko.com/api/v3"),
        coingecko_timeout_seconds=float(_env("COINGECKO_TIMEOUT_SECONDS", "10")),
        coingecko_cache_ttl_seconds=float(_env("COINGECKO_CACHE_TTL_SECONDS", "300")),
        graph_api_key=_env("GRAPH_API_KEY", ""),
        graph_gateway_base=_env("GRAPH_GATEWAY_BASE", "https://gateway.thegraph.com/api"),
        graph_subgraph_ids=subgraphs,
        graph_request_timeout_seconds=float(_env("GRAPH_REQUEST_TIMEOUT_SECONDS", "10")),
        graph_max_retries=int(_env("GRAPH_MAX_RETRIES", "3")),
        graph_min_interval_ms=int(_env("GRAPH_MIN_INTERVAL_MS", "120")),
        rpc_urls=rpc_urls,
        rpc_timeout_seconds=float(_env("RPC_TIMEOUT_SECONDS", "15")),
        rpc_max_retries=int(_env("RPC_MAX_RETRIES", "2")),
        cache_dsn=_env("CACHE_DSN", ""),
        cache_ttl_seconds=float(_env("CACHE_TTL_SECONDS", "300")),
        cache_max_entries=int(_env("CACHE_MAX_ENTRIES", "1000")),
        cache_sweep_interval_seconds=float(_env("CACHE_SWEEP_INTERVAL_SECONDS", "300")),
        result_freshness_seconds=float(_env("RESULT_FRESHNESS_SECONDS", "300")),
        subgraph_lag_threshold_seconds=int(_env("SUBGRAPH_LAG_THRESHOLD_SECONDS", "1800")),
        apr_max_attempts=int(_env("APR_MAX_ATTEMPTS", "3")),
        block_time_seconds=_block_times(),
        cors_allow_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
    )
