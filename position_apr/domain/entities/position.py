from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class UsdDeposit:
    usd: Decimal


@dataclass(frozen=True)
class TokenAmountsDeposit:
    token0_amount: int
    token1_amount: int


Deposit = UsdDeposit | TokenAmountsDeposit


@dataclass(frozen=True)
class PositionInput:
    chain_id: int
    pool_id: str
    tick_lower: int
    tick_upper: int
    deposit: Deposit
    is_full_range: bool = False

    def cache_key(self) -> str:
        return f"{self.chain_id}:{self.pool_id.lower()}:{self.tick_lower}:{self.tick_upper}"

    def deposit_key(self) -> str:
        if isinstance(self.deposit, UsdDeposit):
            return f"usd:{self.deposit.usd}"
        return f"tokens:{self.deposit.token0_amount}:{self.deposit.token1_amount}"
