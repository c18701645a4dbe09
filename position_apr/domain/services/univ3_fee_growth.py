from __future__ import annotations

from decimal import Decimal

from position_apr.domain.entities.pool import PoolState


Q128 = 2**128
UINT256_MOD = 2**256


def sub_uint256(a: int, b: int) -> int:
    return (a - b) % UINT256_MOD


def delta_uint256(new_value: int, old_value: int) -> int:
    return (new_value - old_value) % UINT256_MOD


def parse_uint(value: int | str | Decimal | None, *, bits: int = 256) -> int:
    if value is None:
        raise ValueError(f"Missing uint{bits} value.")
    if isinstance(value, bool):
        raise ValueError(f"Unsupported uint{bits} value type.")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise ValueError(f"Empty uint{bits} string.")
        parsed = int(raw, 16) if raw.lower().startswith("0x") else int(raw)
    elif isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise ValueError(f"Decimal uint{bits} value must be integral.")
        parsed = int(value)
    else:
        raise ValueError(f"Unsupported uint{bits} value type.")

    if parsed < 0:
        raise ValueError(f"uint{bits} value must be non-negative.")
    if parsed >= 2**bits:
        raise ValueError(f"uint{bits} value overflows {bits} bits.")
    return parsed


def parse_uint256(value: int | str | Decimal | None) -> int:
    return parse_uint(value, bits=256)


def parse_uint160(value: int | str | Decimal | None) -> int:
    return parse_uint(value, bits=160)


def parse_uint128(value: int | str | Decimal | None) -> int:
    return parse_uint(value, bits=128)


def fee_growth_inside(
    *,
    fee_growth_global: int,
    fee_growth_outside_lower: int,
    fee_growth_outside_upper: int,
    tick_current: int,
    tick_lower: int,
    tick_upper: int,
) -> int:
    fee_growth_below = (
        fee_growth_outside_lower
        if tick_current >= tick_lower
        else sub_uint256(fee_growth_global, fee_growth_outside_lower)
    )
    fee_growth_above = (
        fee_growth_outside_upper
        if tick_current < tick_upper
        else sub_uint256(fee_growth_global, fee_growth_outside_upper)
    )
    return sub_uint256(
        sub_uint256(fee_growth_global, fee_growth_below),
        fee_growth_above,
    )


def fee_growth_inside_pair(state: PoolState, *, tick_lower: int, tick_upper: int) -> tuple[int, int]:
    pool = state.pool
    inside0 = fee_growth_inside(
        fee_growth_global=pool.fee_growth_global0_x128,
        fee_growth_outside_lower=state.tick_lower.fee_growth_outside0_x128,
        fee_growth_outside_upper=state.tick_upper.fee_growth_outside0_x128,
        tick_current=pool.tick,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
    )
    inside1 = fee_growth_inside(
        fee_growth_global=pool.fee_growth_global1_x128,
        fee_growth_outside_lower=state.tick_lower.fee_growth_outside1_x128,
        fee_growth_outside_upper=state.tick_upper.fee_growth_outside1_x128,
        tick_current=pool.tick,
        tick_lower=tick_lower,
        tick_upper=tick_upper,
    )
    return inside0, inside1
