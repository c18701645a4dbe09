from __future__ import annotations

from position_apr.application.dto.position_apr import PoolAprHistoryOutput
from position_apr.application.ports.apr_result_cache_port import AprResultCachePort
from position_apr.domain.exceptions import InvalidPositionInputError


class GetPoolAprHistoryUseCase:
    def __init__(self, *, result_cache: AprResultCachePort):
        self._result_cache = result_cache

    def execute(self, *, chain_id: int, pool_id: str) -> PoolAprHistoryOutput:
        if not pool_id or not pool_id.lower().startswith("0x"):
            raise InvalidPositionInputError("pool_id must start with 0x.")
        entries = self._result_cache.pool_history(chain_id=chain_id, pool_id=pool_id)
        return PoolAprHistoryOutput(chain_id=chain_id, pool_id=pool_id.lower(), entries=entries)
