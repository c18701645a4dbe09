from __future__ import annotations

from dataclasses import dataclass

from position_apr.domain.entities.apr import FeeWindow
from position_apr.domain.entities.pool import PoolState


@dataclass(frozen=True)
class IndexedWindowData:
    current: PoolState
    historical: PoolState
    lag_seconds: int


@dataclass(frozen=True)
class DirectWindowData:
    current: PoolState
    historical: PoolState


WindowData = IndexedWindowData | DirectWindowData


@dataclass(frozen=True)
class WindowFetchResult:
    window: FeeWindow
    data: WindowData | None
    lag_seconds: int
    used_fallback: bool
    advisories: tuple[str, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.data is not None and self.error is None


@dataclass(frozen=True)
class SourceHealth:
    is_healthy: bool
    lag_seconds: int
    block_number: int
