from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


# uint256 max has 78 decimal digits.
MAX_AMOUNT_DIGITS = 78


class DepositRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    usd: Decimal | None = Field(None, gt=0, description="Deposito em moeda de cotacao (USD).")
    token0_amount: str | None = Field(
        None,
        alias="token0Amount",
        description="Quantidade bruta de token0 (inteiro em unidades minimas).",
    )
    token1_amount: str | None = Field(
        None,
        alias="token1Amount",
        description="Quantidade bruta de token1 (inteiro em unidades minimas).",
    )

    @model_validator(mode="after")
    def _exclusive(self):
        has_usd = self.usd is not None
        has_amounts = self.token0_amount is not None or self.token1_amount is not None
        if has_usd == has_amounts:
            raise ValueError("deposit must be either {usd} or {token0Amount, token1Amount}.")
        for value in (self.token0_amount, self.token1_amount):
            if value is None:
                continue
            digits = value.strip()
            if not (digits.isascii() and digits.isdigit()):
                raise ValueError("token amounts must be non-negative integer strings.")
            if len(digits) > MAX_AMOUNT_DIGITS:
                raise ValueError(f"token amounts must have at most {MAX_AMOUNT_DIGITS} digits.")
        return self


class PositionAprRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain_id: int = Field(..., alias="chainId", gt=0, description="Identificador numerico da chain.")
    pool_id: str = Field(..., alias="poolId", description="Endereco da pool (0x...).")
    tick_lower: int = Field(0, alias="tickLower", description="Tick inferior da faixa.")
    tick_upper: int = Field(0, alias="tickUpper", description="Tick superior da faixa.")
    is_full_range: bool = Field(
        False,
        alias="isFullRange",
        description="Quando true, ignora os ticks e usa a faixa completa.",
    )
    deposit: DepositRequest = Field(..., description="Deposito em USD ou em quantidades de token.")


class AprWindowResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    window: str
    fees0: str
    fees1: str
    fees_quote: Decimal = Field(..., alias="feesQuote")
    lag_seconds: int = Field(..., alias="lagSeconds")
    used_fallback: bool = Field(..., alias="usedFallback")
    error: str | None = None


class PositionAprResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    apr_24h: Decimal = Field(..., alias="apr24h")
    apr_7d: Decimal = Field(..., alias="apr7d")
    apr_30d: Decimal = Field(..., alias="apr30d")
    apy_24h: Decimal = Field(..., alias="apy24h")
    apy_7d: Decimal = Field(..., alias="apy7d")
    apy_30d: Decimal = Field(..., alias="apy30d")
    monthly_revenue: Decimal = Field(..., alias="monthlyRevenue")
    yearly_revenue: Decimal = Field(..., alias="yearlyRevenue")
    position_value: Decimal = Field(..., alias="positionValue")
    tick_lower: int = Field(..., alias="tickLower")
    tick_upper: int = Field(..., alias="tickUpper")
    liquidity: str
    lag_seconds: int = Field(..., alias="lagSeconds")
    used_fallback: bool = Field(..., alias="usedFallback")
    from_cache: bool = Field(..., alias="fromCache")
    computed_at: float = Field(..., alias="computedAt")
    advisories: list[str]
    windows: list[AprWindowResponse]


class SourceHealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_healthy: bool = Field(..., alias="isHealthy")
    lag_seconds: int = Field(..., alias="lagSeconds")
    block_number: int = Field(..., alias="blockNumber")


class RangeSuggestionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    min_price: Decimal = Field(..., alias="minPrice")
    max_price: Decimal = Field(..., alias="maxPrice")
    tick_lower: int = Field(..., alias="tickLower")
    tick_upper: int = Field(..., alias="tickUpper")


class PoolPriceContextResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain_id: int = Field(..., alias="chainId")
    pool_id: str = Field(..., alias="poolId")
    token0: str
    token1: str
    tick: int
    price: Decimal = Field(..., description="Preco de token0 em unidades de token1.")
    display_price: Decimal = Field(..., alias="displayPrice", description="Preco na orientacao de exibicao.")
    display_inverted: bool = Field(..., alias="displayInverted")
    display_base: str = Field(..., alias="displayBase")
    display_quote: str = Field(..., alias="displayQuote")
    suggestions: list[RangeSuggestionResponse]


class AprHistoryEntryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tick_lower: int = Field(..., alias="tickLower")
    tick_upper: int = Field(..., alias="tickUpper")
    computed_at: float = Field(..., alias="computedAt")
    apr_24h: Decimal = Field(..., alias="apr24h")
    apr_7d: Decimal = Field(..., alias="apr7d")
    apr_30d: Decimal = Field(..., alias="apr30d")
    position_value: Decimal = Field(..., alias="positionValue")


class PoolAprHistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain_id: int = Field(..., alias="chainId")
    pool_id: str = Field(..., alias="poolId")
    entries: list[AprHistoryEntryResponse]
