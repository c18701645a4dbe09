from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from position_apr.api.deps import get_check_source_health_use_case
from position_apr.api.schemas.position_apr import SourceHealthResponse
from position_apr.application.use_cases.check_source_health import CheckSourceHealthUseCase
from position_apr.domain.exceptions import InvalidPositionInputError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/v1/chains/{chain_id}/health", response_model=SourceHealthResponse)
def check_source_health(
    chain_id: int,
    use_case: CheckSourceHealthUseCase = Depends(get_check_source_health_use_case),
):
    try:
        health = use_case.execute(chain_id)
    except InvalidPositionInputError as exc:
        logger.warning("health_router: invalid_chain chain_id=%s detail=%s", chain_id, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return SourceHealthResponse(
        is_healthy=health.is_healthy,
        lag_seconds=health.lag_seconds,
        block_number=health.block_number,
    )
