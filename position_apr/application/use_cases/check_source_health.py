from __future__ import annotations

import logging

from position_apr.application.services.data_source_arbiter import DataSourceArbiter
from position_apr.domain.entities.chain import is_supported_chain
from position_apr.domain.entities.window_data import SourceHealth
from position_apr.domain.exceptions import InvalidPositionInputError


logger = logging.getLogger(__name__)


class CheckSourceHealthUseCase:
    def __init__(self, *, arbiter: DataSourceArbiter):
        self._arbiter = arbiter

    def execute(self, chain_id: int) -> SourceHealth:
        if not is_supported_chain(chain_id):
            raise InvalidPositionInputError(f"chain_id {chain_id} is not supported.")
        health = self._arbiter.check_health(chain_id=chain_id)
        logger.info(
            "check_source_health: chain_id=%s healthy=%s lag=%ss block=%s",
            chain_id,
            health.is_healthy,
            health.lag_seconds,
            health.block_number,
        )
        return health
