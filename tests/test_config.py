from __future__ import annotations

import pytest

from position_apr.shared.config import get_settings


def test_defaults(monkeypatch: pytest.MonkeyPatch):
    for name in ("CACHE_DSN", "SUBGRAPH_LAG_THRESHOLD_SECONDS", "BLOCK_TIME_SECONDS", "CORS_ALLOW_ORIGINS"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.cache_dsn == ""
    assert settings.subgraph_lag_threshold_seconds == 1800
    assert settings.result_freshness_seconds == 300
    assert settings.apr_max_attempts == 3
    assert settings.block_time_seconds[1] == 12
    assert settings.block_time_seconds[42161] == 0.25
    assert settings.cors_allow_origins == ["*"]


def test_per_chain_endpoints_come_from_keyed_variables(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RPC_URL_ARBITRUM", "https://arb.example")
    monkeypatch.setenv("GRAPH_SUBGRAPH_ID_BASE", "base-subgraph")

    settings = get_settings()

    assert settings.rpc_urls[42161] == "https://arb.example"
    assert settings.graph_subgraph_ids["base"] == "base-subgraph"


def test_json_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BLOCK_TIME_SECONDS", '{"8453": 1.5}')
    monkeypatch.setenv("PRICE_OVERRIDES", '{"default": {"ETH": "2500"}}')
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")

    settings = get_settings()

    assert settings.block_time_seconds[8453] == 1.5
    assert settings.block_time_seconds[1] == 12
    assert settings.price_overrides == {"default": {"ETH": "2500"}}
    assert settings.cors_allow_origins == ["https://a.example", "https://b.example"]
