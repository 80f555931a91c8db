"""Square-root fixed-point price math and concentrated-liquidity amounts.

Prices returned here are floats and carry roughly 15-16 significant digits.
They are good for display and estimation only. Anything that settles on chain
(amounts, liquidity, minimums) stays an integer.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import assert_never

from liquidity_paths.core.adapters.models import (
    ConcentratedPoolState,
    PoolPriceResult,
    PoolState,
    Token,
    V2PoolState,
)
from liquidity_paths.core.constants.base import MAX_TICK, MIN_TICK
from liquidity_paths.core.errors import ValidationError

Q96 = 1 << 96
Q128 = 1 << 128
MASK_256 = (1 << 256) - 1
TICK_BASE = 1.0001

MIN_SQRT_PRICE = 4295128739
MAX_SQRT_PRICE = 1461446703485210103287273052203988822378723970342
# float slack above 2**160 still treated as the top of the range
_SQRT_PRICE_CEILING = int((1 << 160) * (1 + 1e-9))

# 1/sqrt(1.0001)^(2^i) in Q128, one per bit of |tick|
_TICK_RATIOS: tuple[int, ...] = (
    0xFFFCB933BD6FAD37AA2D162D1A594001,
    0xFFF97272373D413259A46990580E213A,
    0xFFF2E50F5F656932EF12357CF3C7FDCC,
    0xFFE5CACA7E10E4E61C3624EAA0941CD0,
    0xFFCB9843D60F6159C9DB58835C926644,
    0xFF973B41FA98C081472E6896DFB254C0,
    0xFF2EA16466C96A3843EC78B326B52861,
    0xFE5DEE046A99A2A811C461F1969C3053,
    0xFCBE86C7900A88AEDCFFC83B479AA3A4,
    0xF987A7253AC413176F2B074CF7815E54,
    0xF3392B0822B70005940C7A398E4B70F3,
    0xE7159475A2C29B7443B29C7FA6E889D9,
    0xD097F3BDFD2022B8845AD8F792AA5825,
    0xA9F746462D870FDF8A65DC1F90E061E5,
    0x70D869A156D2A1B890BB3DF62BAF32F7,
    0x31BE135F97D08FD981231505542FCFA6,
    0x9AA508B5B7A84E1C677DE54F3E99BC9,
    0x5D6AF8DEDB81196699C329225EE604,
    0x2216E584F5FA1EA926041BEDFE98,
    0x48A170391F7DC42444E8FA2,
)


def _sorted_decimals(
    decimals0: int, decimals1: int, is_swapped: bool
) -> tuple[int, int]:
    return (decimals1, decimals0) if is_swapped else (decimals0, decimals1)


def sqrt_price_to_price(
    sqrt_price_x96: int,
    decimals0: int,
    decimals1: int,
    is_swapped: bool = False,
) -> float:
    """Human price of token1 in token0 units, in the caller's token order.

    ``decimals0``/``decimals1`` follow the caller's order. ``is_swapped`` is
    True when the caller's token0 is the pool's token1.
    """
    if sqrt_price_x96 <= 0:
        return 0.0
    sorted_d0, sorted_d1 = _sorted_decimals(decimals0, decimals1, is_swapped)
    raw = (sqrt_price_x96 / Q96) ** 2
    price = raw * 10 ** (sorted_d0 - sorted_d1)
    if is_swapped:
        return 1 / price if price else 0.0
    return price


def price_to_sqrt_price(
    price: float,
    decimals0: int,
    decimals1: int,
    is_swapped: bool = False,
) -> int:
    """Inverse of ``sqrt_price_to_price``.

    Results between ``MAX_SQRT_PRICE`` and the top of uint160 (including float
    overshoot just past it) clamp to ``MAX_SQRT_PRICE``, the largest price a
    pool can hold. Anything further out is rejected.
    """
    if not math.isfinite(price) or price <= 0:
        raise ValidationError(f"price must be a positive finite number, got {price}")
    sorted_d0, sorted_d1 = _sorted_decimals(decimals0, decimals1, is_swapped)
    sorted_price = 1 / price if is_swapped else price
    raw = sorted_price / 10 ** (sorted_d0 - sorted_d1)
    sqrt_price_x96 = int(math.sqrt(raw) * Q96)
    if MAX_SQRT_PRICE < sqrt_price_x96 <= _SQRT_PRICE_CEILING:
        return MAX_SQRT_PRICE
    if not 0 < sqrt_price_x96 < 1 << 160:
        raise ValidationError(f"price {price} is outside the uint160 sqrt range")
    return sqrt_price_x96


def format_price(value: float) -> str:
    """Fixed-point rendering that never falls back to scientific notation."""
    if value == 0 or not math.isfinite(value):
        return "0"
    magnitude = abs(value)
    if magnitude >= 1:
        return f"{value:.4f}"
    if magnitude >= 1e-4:
        return f"{value:.6f}"
    leading_zeros = -math.floor(math.log10(magnitude)) - 1
    return f"{value:.{leading_zeros + 6}f}"


def tick_to_price_decimal(
    tick: int, token0_decimals: int, token1_decimals: int
) -> float:
    raw = TICK_BASE**tick
    return raw * 10 ** (token0_decimals - token1_decimals)


def round_tick_to_spacing(tick: int, spacing: int) -> int:
    if spacing <= 0:
        return tick
    return tick - (tick % spacing)


def sqrt_price_x96_from_tick(tick: int) -> int:
    """Exact TickMath.getSqrtRatioAtTick port (integer only)."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValidationError(f"tick {tick} out of range [{MIN_TICK}, {MAX_TICK}]")

    abs_tick = abs(tick)
    ratio = 1 << 128
    for bit, multiplier in enumerate(_TICK_RATIOS):
        if abs_tick & (1 << bit):
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = MASK_256 // ratio

    # round up on the Q128 -> Q96 shift
    return (ratio >> 32) + (1 if ratio & 0xFFFFFFFF else 0)


def _bounds(sqrt_a: int, sqrt_b: int) -> tuple[int, int]:
    a, b = sorted((int(sqrt_a), int(sqrt_b)))
    if a <= 0:
        raise ValidationError("sqrt price bounds must be positive")
    return a, b


def amount0_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    a, b = _bounds(sqrt_a, sqrt_b)
    return ((int(liquidity) << 96) * (b - a) // b) // a


def amount1_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    a, b = _bounds(sqrt_a, sqrt_b)
    return int(liquidity) * (b - a) // Q96


def liquidity_for_amount0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    a, b = _bounds(sqrt_a, sqrt_b)
    if a == b:
        return 0
    intermediate = a * b // Q96
    return int(amount0) * intermediate // (b - a)


def liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    a, b = _bounds(sqrt_a, sqrt_b)
    if a == b:
        return 0
    return int(amount1) * Q96 // (b - a)


def liquidity_for_amounts(
    sqrt_price_x96: int, sqrt_a: int, sqrt_b: int, amount0: int, amount1: int
) -> int:
    a, b = _bounds(sqrt_a, sqrt_b)
    if sqrt_price_x96 <= a:
        return liquidity_for_amount0(a, b, amount0)
    if sqrt_price_x96 >= b:
        return liquidity_for_amount1(a, b, amount1)
    return min(
        liquidity_for_amount0(sqrt_price_x96, b, amount0),
        liquidity_for_amount1(a, sqrt_price_x96, amount1),
    )


def amounts_for_liquidity(
    sqrt_price_x96: int, sqrt_a: int, sqrt_b: int, liquidity: int
) -> tuple[int, int]:
    """Token amounts backing ``liquidity`` between two sqrt-price bounds."""
    a, b = _bounds(sqrt_a, sqrt_b)
    if liquidity <= 0:
        return 0, 0
    if sqrt_price_x96 <= a:
        return amount0_for_liquidity(a, b, liquidity), 0
    if sqrt_price_x96 < b:
        return (
            amount0_for_liquidity(sqrt_price_x96, b, liquidity),
            amount1_for_liquidity(a, sqrt_price_x96, liquidity),
        )
    return 0, amount1_for_liquidity(a, b, liquidity)


def amounts_for_position(
    sqrt_price_x96: int, tick_lower: int, tick_upper: int, liquidity: int
) -> tuple[int, int]:
    return amounts_for_liquidity(
        sqrt_price_x96,
        sqrt_price_x96_from_tick(tick_lower),
        sqrt_price_x96_from_tick(tick_upper),
        liquidity,
    )


def fees_from_growth(
    fee_growth_inside_x128: int, fee_growth_inside_last_x128: int, liquidity: int
) -> int:
    """Uncollected fees from fee-growth accumulators (wrapping uint256 delta)."""
    delta = (int(fee_growth_inside_x128) - int(fee_growth_inside_last_x128)) & MASK_256
    return delta * int(liquidity) // Q128


def is_in_range(tick: int, tick_lower: int, tick_upper: int) -> bool:
    return tick_lower <= tick < tick_upper


def pool_price_result(
    state: PoolState | None,
    token0: Token,
    token1: Token,
    *,
    is_swapped: bool,
) -> PoolPriceResult:
    """Price of ``token1`` in ``token0`` units, both in the caller's order.

    ``state`` is None (or empty) when the pool does not exist on chain.
    """
    if state is None:
        return PoolPriceResult(exists=False)

    match state:
        case V2PoolState():
            if state.reserve0 == 0 or state.reserve1 == 0:
                return PoolPriceResult(exists=False)
            sorted_d0, sorted_d1 = _sorted_decimals(
                token0.decimals, token1.decimals, is_swapped
            )
            sorted_price = (Decimal(state.reserve1) / Decimal(10) ** sorted_d1) / (
                Decimal(state.reserve0) / Decimal(10) ** sorted_d0
            )
            price = float(1 / sorted_price if is_swapped else sorted_price)
            sqrt_price_x96 = None
        case ConcentratedPoolState():
            if state.sqrt_price_x96 == 0:
                return PoolPriceResult(exists=False)
            price = sqrt_price_to_price(
                state.sqrt_price_x96, token0.decimals, token1.decimals, is_swapped
            )
            sqrt_price_x96 = state.sqrt_price_x96
        case _:
            assert_never(state)

    return PoolPriceResult(
        exists=True,
        price=price,
        price_display=f"1 {token0.symbol} = {format_price(price)} {token1.symbol}",
        token0_symbol=token0.symbol,
        token1_symbol=token1.symbol,
        sqrt_price_x96=sqrt_price_x96,
    )
