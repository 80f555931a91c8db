"""Swap quotes from current pool state.

Constant-product pools are quoted exactly (same integer math as the pair
contract). Concentrated-liquidity pools are quoted to first order: the swap
is assumed to stay inside the active tick range with liquidity held constant.
No ticks are crossed, so large trades against thin ranges are overestimated.
Exact amounts need an on-chain quoter call.
"""

from __future__ import annotations

from decimal import Decimal
from typing import assert_never

from liquidity_paths.core.adapters.models import (
    ConcentratedPoolState,
    PoolState,
    ProtocolVersion,
    Quote,
    V2PoolState,
)
from liquidity_paths.core.constants.base import FEE_DENOMINATOR
from liquidity_paths.core.errors import ValidationError
from liquidity_paths.core.utils.price_math import (
    Q96,
    amount0_for_liquidity,
    sqrt_price_to_price,
)
from liquidity_paths.core.utils.units import slippage_min

V2_FEE = 3000


def _require_positive(**values: int | float | Decimal) -> None:
    for name, value in values.items():
        if value is None or value <= 0:
            raise ValidationError(f"{name} must be positive, got {value!r}")


def constant_product_amount_out(
    amount_in: int | float | Decimal,
    reserve_in: int | float | Decimal,
    reserve_out: int | float | Decimal,
    fee_pct: float = 0.3,
) -> Decimal:
    """x*y=k output for arbitrary (possibly human-unit) amounts."""
    _require_positive(amount_in=amount_in, reserve_in=reserve_in, reserve_out=reserve_out)
    if not 0 <= fee_pct < 100:
        raise ValidationError(f"fee_pct must be within [0, 100), got {fee_pct}")
    amount_in_with_fee = Decimal(str(amount_in)) * (1 - Decimal(str(fee_pct)) / 100)
    return (Decimal(str(reserve_out)) * amount_in_with_fee) / (
        Decimal(str(reserve_in)) + amount_in_with_fee
    )


def _after_fee(amount_in: int, fee: int) -> int:
    if not 0 <= fee < FEE_DENOMINATOR:
        raise ValidationError(f"fee must be within [0, {FEE_DENOMINATOR}), got {fee}")
    return amount_in * (FEE_DENOMINATOR - fee) // FEE_DENOMINATOR


def _human_ratio(
    amount_out: int, amount_in: int, decimals_in: int, decimals_out: int
) -> float:
    if amount_in <= 0:
        return 0.0
    return float(
        Decimal(amount_out)
        / Decimal(amount_in)
        * (Decimal(10) ** (decimals_in - decimals_out))
    )


def _build_quote(
    version: ProtocolVersion,
    *,
    amount_in: int,
    amount_in_after_fee: int,
    amount_out: int,
    spot_price: float,
    decimals_in: int,
    decimals_out: int,
    slippage_pct: float,
) -> Quote:
    execution_price = _human_ratio(amount_out, amount_in, decimals_in, decimals_out)
    # impact is measured net of the LP fee, which is reported as a cost elsewhere
    net_price = _human_ratio(amount_out, amount_in_after_fee, decimals_in, decimals_out)
    impact = (spot_price - net_price) / spot_price * 100 if spot_price > 0 else 0.0
    return Quote(
        version=version,
        amount_in=amount_in,
        amount_out=amount_out,
        minimum_amount_out=slippage_min(amount_out, slippage_pct),
        price_impact_pct=max(impact, 0.0),
        execution_price=execution_price,
        spot_price=spot_price,
    )


def quote_v2(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    *,
    fee: int = V2_FEE,
    decimals_in: int = 18,
    decimals_out: int = 18,
    slippage_pct: float = 0.5,
) -> Quote:
    _require_positive(amount_in=amount_in, reserve_in=reserve_in, reserve_out=reserve_out)
    amount_in_after_fee = _after_fee(int(amount_in), fee)
    amount_out = (amount_in_after_fee * int(reserve_out)) // (
        int(reserve_in) + amount_in_after_fee
    )
    spot = _human_ratio(int(reserve_out), int(reserve_in), decimals_in, decimals_out)
    return _build_quote(
        ProtocolVersion.V2,
        amount_in=int(amount_in),
        amount_in_after_fee=amount_in_after_fee,
        amount_out=amount_out,
        spot_price=spot,
        decimals_in=decimals_in,
        decimals_out=decimals_out,
        slippage_pct=slippage_pct,
    )


def _constant_liquidity_out(
    amount_in: int, sqrt_price_x96: int, liquidity: int, zero_for_one: bool
) -> int:
    if zero_for_one:
        numerator = liquidity << 96
        product = amount_in * sqrt_price_x96
        # round the next price up, as SqrtPriceMath does for token0 input
        next_sqrt = -(-(numerator * sqrt_price_x96) // (numerator + product))
        return liquidity * (sqrt_price_x96 - next_sqrt) // Q96
    next_sqrt = sqrt_price_x96 + (amount_in << 96) // liquidity
    return amount0_for_liquidity(sqrt_price_x96, next_sqrt, liquidity)


def _linear_out(amount_in: int, sqrt_price_x96: int, zero_for_one: bool) -> int:
    price_x192 = sqrt_price_x96 * sqrt_price_x96
    if zero_for_one:
        return amount_in * price_x192 >> 192
    return (amount_in << 192) // price_x192


def quote_concentrated(
    amount_in: int,
    sqrt_price_x96: int,
    *,
    zero_for_one: bool,
    fee: int,
    liquidity: int = 0,
    decimals_in: int = 18,
    decimals_out: int = 18,
    slippage_pct: float = 0.5,
    version: ProtocolVersion = ProtocolVersion.V3,
) -> Quote:
    """First-order quote for v3/v4 pools.

    With ``liquidity`` the trade moves the price along a single
    constant-liquidity range. Without it the output is ``amount_in * price``
    and the reported impact is zero.
    """
    _require_positive(amount_in=amount_in, sqrt_price_x96=sqrt_price_x96)
    amount_in_after_fee = _after_fee(int(amount_in), fee)
    if liquidity > 0:
        amount_out = _constant_liquidity_out(
            amount_in_after_fee, int(sqrt_price_x96), int(liquidity), zero_for_one
        )
    else:
        amount_out = _linear_out(amount_in_after_fee, int(sqrt_price_x96), zero_for_one)

    # price of the output token per input token, human units
    if zero_for_one:
        spot = sqrt_price_to_price(sqrt_price_x96, decimals_in, decimals_out)
    else:
        spot = sqrt_price_to_price(
            sqrt_price_x96, decimals_in, decimals_out, is_swapped=True
        )
    return _build_quote(
        version,
        amount_in=int(amount_in),
        amount_in_after_fee=amount_in_after_fee,
        amount_out=max(amount_out, 0),
        spot_price=spot,
        decimals_in=decimals_in,
        decimals_out=decimals_out,
        slippage_pct=slippage_pct,
    )


def get_quote(
    state: PoolState,
    amount_in: int,
    *,
    zero_for_one: bool,
    fee: int,
    decimals_in: int = 18,
    decimals_out: int = 18,
    slippage_pct: float = 0.5,
) -> Quote:
    match state:
        case V2PoolState():
            reserve_in, reserve_out = (
                (state.reserve0, state.reserve1)
                if zero_for_one
                else (state.reserve1, state.reserve0)
            )
            return quote_v2(
                amount_in,
                reserve_in,
                reserve_out,
                fee=fee,
                decimals_in=decimals_in,
                decimals_out=decimals_out,
                slippage_pct=slippage_pct,
            )
        case ConcentratedPoolState():
            return quote_concentrated(
                amount_in,
                state.sqrt_price_x96,
                zero_for_one=zero_for_one,
                fee=fee,
                liquidity=state.liquidity,
                decimals_in=decimals_in,
                decimals_out=decimals_out,
                slippage_pct=slippage_pct,
                version=ProtocolVersion(state.version),
            )
        case _:
            assert_never(state)
