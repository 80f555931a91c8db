from __future__ import annotations

import math
import re
import time
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from liquidity_paths.core.constants.base import BPS_DENOMINATOR, DEFAULT_DEADLINE_SECONDS
from liquidity_paths.core.errors import ValidationError

_NON_DIGITS = re.compile(r"[^\d]")


def _to_decimal(value: str | int | float | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    return Decimal(str(value).strip())


def to_erc20_raw(amount_tokens: str | int | float | Decimal, decimals: int) -> int:
    try:
        amt = _to_decimal(amount_tokens)
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid token amount: {amount_tokens}") from exc
    if amt < 0:
        raise ValidationError("Amount must be non-negative")
    scale = Decimal(10) ** int(decimals)
    return int((amt * scale).to_integral_value(rounding=ROUND_DOWN))


def from_erc20_raw(amount_raw: int, decimals: int) -> float:
    """Display/USD boundary conversion; never feed the result back on chain."""
    return float(Decimal(int(amount_raw)) / (Decimal(10) ** int(decimals)))


def validate_percentage(value: float, field: str = "percentage") -> float:
    try:
        pct = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a number, got {value!r}") from exc
    if not math.isfinite(pct) or pct < 0 or pct > 100:
        raise ValidationError(f"{field} must be within [0, 100], got {value!r}")
    return pct


def slippage_min(amount: int, tolerance_pct: float) -> int:
    """``amount * (1 - tolerance/100)`` in integer basis points, truncated."""
    bps = math.floor(validate_percentage(tolerance_pct, "slippage tolerance") * 100)
    return max(0, int(amount) * (BPS_DENOMINATOR - bps) // BPS_DENOMINATOR)


def scale_by_percentage(total: int, percentage: float) -> int:
    pct = validate_percentage(percentage, "liquidity percentage")
    # half-up on the decimal text, so 0.125% is 13 bps rather than 12
    bps = int((_to_decimal(pct) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return int(total) * bps // BPS_DENOMINATOR


def parse_display_liquidity(text: str | int) -> int:
    # Upstream hands over display strings like "123456789 liquidity"; strip
    # everything but digits and do not extend this to other fields.
    if isinstance(text, int) and not isinstance(text, bool):
        return text
    digits = _NON_DIGITS.sub("", str(text))
    if not digits:
        raise ValidationError(f"No liquidity amount in {text!r}")
    return int(digits)


def deadline(seconds: int = DEFAULT_DEADLINE_SECONDS, *, now: float | None = None) -> int:
    current = time.time() if now is None else now
    return int(current) + int(seconds)
