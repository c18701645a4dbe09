from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from position_apr.domain.entities.pool import Pool, TickSnapshot, Token


@dataclass(frozen=True)
class ChainBlock:
    number: int
    timestamp: int


class ChainReaderPort(Protocol):
    def latest_block(self, *, chain_id: int) -> ChainBlock:
        ...

    def read_pool_state(
        self,
        *,
        chain_id: int,
        pool_id: str,
        block_number: int | None = None,
    ) -> Pool:
        ...

    def read_tick(
        self,
        *,
        chain_id: int,
        pool_id: str,
        tick: int,
        block_number: int | None = None,
    ) -> TickSnapshot:
        ...

    def read_token(self, *, chain_id: int, token_address: str) -> Token:
        ...
