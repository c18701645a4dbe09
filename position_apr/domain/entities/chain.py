from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Chain:
    chain_id: int
    key: str
    name: str
    native_currency: str
    block_time_seconds: float


CHAINS = {
    1: Chain(chain_id=1, key="ethereum", name="Ethereum", native_currency="ETH", block_time_seconds=12),
    10: Chain(chain_id=10, key="optimism", name="Optimism", native_currency="ETH", block_time_seconds=2),
    8453: Chain(chain_id=8453, key="base", name="Base", native_currency="ETH", block_time_seconds=2),
    42161: Chain(
        chain_id=42161,
        key="arbitrum",
        name="Arbitrum One",
        native_currency="ETH",
        block_time_seconds=0.25,
    ),
}

DEFAULT_BLOCK_TIME_SECONDS = 2.0


def is_supported_chain(chain_id: int) -> bool:
    return chain_id in CHAINS
