from __future__ import annotations

from decimal import Decimal
import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from position_apr.api.deps import (
    get_calculate_position_apr_use_case,
    get_export_position_apr_use_case,
)
from position_apr.api.schemas.position_apr import (
    AprWindowResponse,
    PositionAprRequest,
    PositionAprResponse,
)
from position_apr.application.use_cases.calculate_position_apr import CalculatePositionAprUseCase
from position_apr.application.use_cases.export_position_apr import ExportPositionAprUseCase
from position_apr.domain.entities.position import PositionInput, TokenAmountsDeposit, UsdDeposit
from position_apr.domain.exceptions import (
    DomainError,
    InvalidPositionInputError,
    InvalidRangeError,
    PoolNotFoundError,
    SourceUnavailableError,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_position_input(req: PositionAprRequest) -> PositionInput:
    if req.deposit.usd is not None:
        deposit = UsdDeposit(usd=Decimal(req.deposit.usd))
    else:
        deposit = TokenAmountsDeposit(
            token0_amount=int(req.deposit.token0_amount or "0"),
            token1_amount=int(req.deposit.token1_amount or "0"),
        )
    return PositionInput(
        chain_id=req.chain_id,
        pool_id=req.pool_id,
        tick_lower=req.tick_lower,
        tick_upper=req.tick_upper,
        deposit=deposit,
        is_full_range=req.is_full_range,
    )


def _raise_http_error(exc: Exception, req: PositionAprRequest) -> NoReturn:
    if isinstance(exc, InvalidRangeError):
        logger.warning(
            "positions_router: invalid_range pool=%s chain_id=%s reason=%s",
            req.pool_id,
            req.chain_id,
            exc.reason,
        )
        raise HTTPException(status_code=400, detail={"message": str(exc), "reason": exc.reason}) from exc
    if isinstance(exc, PoolNotFoundError):
        logger.warning("positions_router: pool_not_found pool=%s chain_id=%s", req.pool_id, req.chain_id)
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, SourceUnavailableError):
        logger.warning(
            "positions_router: source_unavailable pool=%s chain_id=%s detail=%s",
            req.pool_id,
            req.chain_id,
            exc,
        )
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    logger.warning(
        "positions_router: invalid_input pool=%s chain_id=%s detail=%s",
        req.pool_id,
        req.chain_id,
        exc,
    )
    raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/v1/positions/apr", response_model=PositionAprResponse)
def calculate_position_apr(
    req: PositionAprRequest,
    use_case: CalculatePositionAprUseCase = Depends(get_calculate_position_apr_use_case),
):
    try:
        output = use_case.execute(_to_position_input(req))
    except (
        InvalidRangeError,
        InvalidPositionInputError,
        DomainError,
        PoolNotFoundError,
        SourceUnavailableError,
    ) as exc:
        _raise_http_error(exc, req)

    result = output.result
    return PositionAprResponse(
        apr_24h=result.apr_24h,
        apr_7d=result.apr_7d,
        apr_30d=result.apr_30d,
        apy_24h=result.apy_24h,
        apy_7d=result.apy_7d,
        apy_30d=result.apy_30d,
        monthly_revenue=result.monthly_revenue,
        yearly_revenue=result.yearly_revenue,
        position_value=result.position_value,
        tick_lower=output.meta.tick_lower,
        tick_upper=output.meta.tick_upper,
        liquidity=str(output.meta.liquidity),
        lag_seconds=output.meta.lag_seconds,
        used_fallback=output.meta.used_fallback,
        from_cache=output.from_cache,
        computed_at=output.meta.computed_at,
        advisories=output.meta.advisories,
        windows=[
            AprWindowResponse(
                window=item.window.value,
                fees0=str(item.fees0),
                fees1=str(item.fees1),
                fees_quote=item.total_fees_quote,
                lag_seconds=item.lag_seconds,
                used_fallback=item.used_fallback,
                error=item.error,
            )
            for item in output.windows
        ],
    )


@router.post("/v1/positions/apr/export", response_class=PlainTextResponse)
def export_position_apr(
    req: PositionAprRequest,
    use_case: ExportPositionAprUseCase = Depends(get_export_position_apr_use_case),
):
    try:
        csv_text = use_case.execute(_to_position_input(req))
    except (
        InvalidRangeError,
        InvalidPositionInputError,
        DomainError,
        PoolNotFoundError,
        SourceUnavailableError,
    ) as exc:
        _raise_http_error(exc, req)

    return PlainTextResponse(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="position-apr.csv"'},
    )
