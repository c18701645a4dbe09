from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from position_apr.domain.entities.pool import Pool, TickSnapshot


@dataclass(frozen=True)
class IndexedMeta:
    block_number: int
    block_timestamp: int


@dataclass(frozen=True)
class IndexedPool:
    pool: Pool
    meta: IndexedMeta


class IndexedPoolSourcePort(Protocol):
    def fetch_pool(
        self,
        *,
        chain_id: int,
        pool_id: str,
        block_number: int | None = None,
    ) -> IndexedPool | None:
        ...

    def fetch_ticks(
        self,
        *,
        chain_id: int,
        pool_id: str,
        tick_indices: list[int],
        block_number: int | None = None,
    ) -> dict[int, TickSnapshot]:
        ...

    def fetch_meta(self, *, chain_id: int) -> IndexedMeta:
        ...
