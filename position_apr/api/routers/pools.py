from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from position_apr.api.deps import get_pool_apr_history_use_case, get_pool_price_context_use_case
from position_apr.api.schemas.position_apr import (
    AprHistoryEntryResponse,
    PoolAprHistoryResponse,
    PoolPriceContextResponse,
    RangeSuggestionResponse,
)
from position_apr.application.use_cases.get_pool_apr_history import GetPoolAprHistoryUseCase
from position_apr.application.use_cases.get_pool_price_context import GetPoolPriceContextUseCase
from position_apr.domain.exceptions import (
    DomainError,
    InvalidPositionInputError,
    PoolNotFoundError,
    SourceUnavailableError,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/v1/pools/{chain_id}/{pool_id}/price", response_model=PoolPriceContextResponse)
def get_pool_price_context(
    chain_id: int,
    pool_id: str,
    use_case: GetPoolPriceContextUseCase = Depends(get_pool_price_context_use_case),
):
    try:
        context = use_case.execute(chain_id=chain_id, pool_id=pool_id)
    except PoolNotFoundError as exc:
        logger.warning("pools_router: pool_not_found pool=%s chain_id=%s", pool_id, chain_id)
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SourceUnavailableError as exc:
        logger.warning("pools_router: source_unavailable pool=%s chain_id=%s detail=%s", pool_id, chain_id, exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except (InvalidPositionInputError, DomainError) as exc:
        logger.warning("pools_router: invalid_input pool=%s chain_id=%s detail=%s", pool_id, chain_id, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return PoolPriceContextResponse(
        chain_id=context.chain_id,
        pool_id=context.pool_id,
        token0=context.token0_symbol,
        token1=context.token1_symbol,
        tick=context.tick,
        price=context.price,
        display_price=context.display_price,
        display_inverted=context.display_inverted,
        display_base=context.display_base_symbol,
        display_quote=context.display_quote_symbol,
        suggestions=[
            RangeSuggestionResponse(
                name=item.name,
                min_price=item.min_price,
                max_price=item.max_price,
                tick_lower=item.tick_lower,
                tick_upper=item.tick_upper,
            )
            for item in context.suggestions
        ],
    )


@router.get("/v1/pools/{chain_id}/{pool_id}/apr-history", response_model=PoolAprHistoryResponse)
def get_pool_apr_history(
    chain_id: int,
    pool_id: str,
    use_case: GetPoolAprHistoryUseCase = Depends(get_pool_apr_history_use_case),
):
    try:
        history = use_case.execute(chain_id=chain_id, pool_id=pool_id)
    except InvalidPositionInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return PoolAprHistoryResponse(
        chain_id=history.chain_id,
        pool_id=history.pool_id,
        entries=[
            AprHistoryEntryResponse(
                tick_lower=entry.tick_lower,
                tick_upper=entry.tick_upper,
                computed_at=entry.computed_at,
                apr_24h=entry.result.apr_24h,
                apr_7d=entry.result.apr_7d,
                apr_30d=entry.result.apr_30d,
                position_value=entry.result.position_value,
            )
            for entry in history.entries
        ],
    )
