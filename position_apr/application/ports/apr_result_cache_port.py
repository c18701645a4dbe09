from __future__ import annotations

from typing import Protocol

from position_apr.domain.entities.apr import AprResult, CachedAprResult
from position_apr.domain.entities.position import PositionInput


class AprResultCachePort(Protocol):
    def get(self, position: PositionInput) -> CachedAprResult | None:
        ...

    def set(self, position: PositionInput, result: AprResult) -> None:
        ...

    def pool_history(self, *, chain_id: int, pool_id: str) -> list[CachedAprResult]:
        ...
