from __future__ import annotations

import logging

from position_apr.application.use_cases.calculate_position_apr import CalculatePositionAprUseCase
from position_apr.domain.entities.position import PositionInput
from position_apr.domain.services.result_export import export_csv


logger = logging.getLogger(__name__)


class ExportPositionAprUseCase:
    def __init__(self, *, calculate_use_case: CalculatePositionAprUseCase):
        self._calculate_use_case = calculate_use_case

    def execute(self, position: PositionInput) -> str:
        output = self._calculate_use_case.execute(position)
        logger.info(
            "export_position_apr: exporting pool=%s from_cache=%s",
            position.pool_id,
            output.from_cache,
        )
        return export_csv(output.result)
