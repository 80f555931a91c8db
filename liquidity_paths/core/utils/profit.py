"""USD profit accounting for single swaps and two-leg arbitrage.

Every figure is computed from the worst-case ``min_out`` of each leg. The
optimistic ``expected_out`` only feeds the reported slippage cost.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from loguru import logger

from liquidity_paths.core.adapters.models import (
    ArbitrageAnalysis,
    ProfitAnalysis,
    ProfitCosts,
)
from liquidity_paths.core.errors import ValidationError
from liquidity_paths.core.utils.units import from_erc20_raw

NATIVE_DECIMALS = 18

# Returned by min_profitable_amount when no trade size can clear costs.
NEVER_PROFITABLE = math.inf


@dataclass(frozen=True)
class PricedToken:
    symbol: str
    decimals: int
    price_usd: float
    address: str | None = None


@dataclass(frozen=True)
class TradeLeg:
    token_in: PricedToken
    token_out: PricedToken
    expected_out: int
    min_out: int
    amount_in: int | None = None
    gas_cost_wei: int = 0
    gas_cost_usd: float | None = None
    fee_pct: float = 0.3


def _gas_usd(leg: TradeLeg, native_price_usd: float) -> float:
    if leg.gas_cost_usd is not None:
        return float(leg.gas_cost_usd)
    return from_erc20_raw(leg.gas_cost_wei, NATIVE_DECIMALS) * native_price_usd


def _pct(net: float, base: float) -> float:
    return net / base * 100 if base > 0 else 0.0


def trade_profit(leg: TradeLeg, *, native_price_usd: float = 0.0) -> ProfitAnalysis:
    if leg.amount_in is None or leg.amount_in <= 0:
        raise ValidationError(f"amount_in must be positive, got {leg.amount_in!r}")
    if leg.min_out < 0 or leg.expected_out < 0:
        raise ValidationError("output amounts must be non-negative")
    if leg.fee_pct < 0 or leg.fee_pct > 100:
        raise ValidationError(f"fee_pct must be within [0, 100], got {leg.fee_pct}")

    t_in, t_out = leg.token_in, leg.token_out
    amount_in = from_erc20_raw(leg.amount_in, t_in.decimals)
    expected_out = from_erc20_raw(leg.expected_out, t_out.decimals)
    min_out = from_erc20_raw(leg.min_out, t_out.decimals)

    amount_in_usd = amount_in * t_in.price_usd
    expected_out_usd = expected_out * t_out.price_usd
    min_out_usd = min_out * t_out.price_usd

    gas_usd = _gas_usd(leg, native_price_usd)
    fee_usd = amount_in_usd * leg.fee_pct / 100
    slippage_usd = expected_out_usd - min_out_usd
    total_costs = gas_usd + fee_usd

    gross = min_out_usd - amount_in_usd
    net = gross - total_costs
    net_pct = _pct(net, amount_in_usd)

    breakdown = [
        f"Input: {amount_in:.6f} {t_in.symbol} = ${amount_in_usd:.4f}",
        f"Expected: {expected_out:.6f} {t_out.symbol} = ${expected_out_usd:.4f}",
        f"Min (after slippage): {min_out:.6f} {t_out.symbol} = ${min_out_usd:.4f}",
        "",
        "Costs:",
        f"  - Gas: ${gas_usd:.4f}",
        f"  - Swap Fee ({leg.fee_pct}%): ${fee_usd:.4f}",
        f"  - Slippage allowance (not in total): ${slippage_usd:.4f}",
        f"  - Total Costs: ${total_costs:.4f}",
        "",
        "Profit:",
        f"  - Gross: ${gross:.4f}",
        f"  - Net: ${net:.4f} ({net_pct:.2f}%)",
    ]
    return ProfitAnalysis(
        amount_in_usd=amount_in_usd,
        expected_out_usd=expected_out_usd,
        min_out_usd=min_out_usd,
        costs=ProfitCosts(
            gas=gas_usd, fee=fee_usd, slippage=slippage_usd, total=total_costs
        ),
        gross_profit_usd=gross,
        net_profit_usd=net,
        net_profit_pct=net_pct,
        is_profitable=net > 0,
        breakdown=breakdown,
    )


def arbitrage_profit(
    leg1: TradeLeg, leg2: TradeLeg, *, native_price_usd: float = 0.0
) -> ArbitrageAnalysis:
    """Buy on one pool, sell on another.

    The second leg always spends the first leg's ``min_out``.
    """
    if leg2.amount_in is not None and leg2.amount_in != leg1.min_out:
        logger.debug(
            f"Ignoring leg2 amount_in={leg2.amount_in}; chaining leg1 min_out={leg1.min_out}"
        )
    leg2 = replace(leg2, amount_in=leg1.min_out)

    first = trade_profit(leg1, native_price_usd=native_price_usd)
    second = trade_profit(leg2, native_price_usd=native_price_usd)

    costs = ProfitCosts(
        gas=first.costs.gas + second.costs.gas,
        fee=first.costs.fee + second.costs.fee,
        slippage=first.costs.slippage + second.costs.slippage,
        total=first.costs.total + second.costs.total,
    )
    gross = second.min_out_usd - first.amount_in_usd
    net = gross - costs.total
    net_pct = _pct(net, first.amount_in_usd)

    start = from_erc20_raw(int(leg1.amount_in or 0), leg1.token_in.decimals)
    end = from_erc20_raw(leg2.min_out, leg2.token_out.decimals)
    breakdown = [
        "=== TWO-LEG ARBITRAGE ===",
        "",
        f"Leg 1: {leg1.token_in.symbol} -> {leg1.token_out.symbol}",
        *(f"  {line}" for line in first.breakdown),
        "",
        f"Leg 2: {leg2.token_in.symbol} -> {leg2.token_out.symbol}",
        *(f"  {line}" for line in second.breakdown),
        "",
        "=== TOTAL ===",
        f"Start: {start:.6f} {leg1.token_in.symbol} = ${first.amount_in_usd:.4f}",
        f"End: {end:.6f} {leg2.token_out.symbol} = ${second.min_out_usd:.4f}",
        "",
        f"Total Costs: ${costs.total:.4f}",
        f"  - Gas (both legs): ${costs.gas:.4f}",
        f"  - Swap Fees (both legs): ${costs.fee:.4f}",
        "",
        f"Net Profit: ${net:.4f} ({net_pct:.2f}%)",
    ]
    return ArbitrageAnalysis(
        leg1=first,
        leg2=second,
        leg2_amount_in=leg1.min_out,
        costs=costs,
        gross_profit_usd=gross,
        net_profit_usd=net,
        net_profit_pct=net_pct,
        is_profitable=net > 0,
        breakdown=breakdown,
    )


def min_profitable_amount(
    gas_cost_usd: float, fee_pct: float, min_profit_usd: float, spread_pct: float
) -> float:
    """Smallest USD input where ``amount * (spread - fee)% - gas >= min_profit``.

    Returns ``NEVER_PROFITABLE`` when the spread does not exceed the fee.
    """
    net_spread_pct = spread_pct - fee_pct
    if net_spread_pct <= 0:
        return NEVER_PROFITABLE
    return (min_profit_usd + gas_cost_usd) / (net_spread_pct / 100)
