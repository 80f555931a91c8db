from __future__ import annotations

import math

import pytest

from liquidity_paths.core.errors import ValidationError
from liquidity_paths.core.utils.profit import (
    NEVER_PROFITABLE,
    PricedToken,
    TradeLeg,
    arbitrage_profit,
    min_profitable_amount,
    trade_profit,
)

WETH = PricedToken(symbol="WETH", decimals=18, price_usd=3200.0)
USDC = PricedToken(symbol="USDC", decimals=6, price_usd=1.0)


def _sell_weth(**overrides) -> TradeLeg:
    params = {
        "token_in": WETH,
        "token_out": USDC,
        "amount_in": 10**18,
        "expected_out": 3010 * 10**6,
        "min_out": 3000 * 10**6,
        "gas_cost_usd": 5.0,
        "fee_pct": 0.3,
    }
    params.update(overrides)
    return TradeLeg(**params)


class TestTradeProfit:
    def test_reference_loss(self):
        analysis = trade_profit(_sell_weth())
        assert analysis.net_profit_usd == pytest.approx(-214.6)
        assert analysis.is_profitable is False
        assert analysis.gross_profit_usd == pytest.approx(-200.0)

    def test_cost_breakdown(self):
        analysis = trade_profit(_sell_weth())
        assert analysis.costs.gas == pytest.approx(5.0)
        assert analysis.costs.fee == pytest.approx(9.6)
        assert analysis.costs.slippage == pytest.approx(10.0)
        # slippage is reported but not double counted
        assert analysis.costs.total == pytest.approx(14.6)

    def test_gas_from_wei_uses_native_price(self):
        leg = _sell_weth(gas_cost_usd=None, gas_cost_wei=10**15)
        analysis = trade_profit(leg, native_price_usd=3000.0)
        assert analysis.costs.gas == pytest.approx(3.0)

    def test_profitable_trade(self):
        leg = _sell_weth(min_out=3300 * 10**6, expected_out=3310 * 10**6)
        analysis = trade_profit(leg)
        assert analysis.is_profitable is True
        assert analysis.net_profit_pct == pytest.approx(85.4 / 3200 * 100)

    def test_breakdown_lines(self):
        text = "\n".join(trade_profit(_sell_weth()).breakdown)
        assert "Input: 1.000000 WETH = $3200.0000" in text
        assert "Net: $-214.6000" in text

    @pytest.mark.parametrize("amount_in", [None, 0, -5])
    def test_requires_positive_input(self, amount_in):
        with pytest.raises(ValidationError):
            trade_profit(_sell_weth(amount_in=amount_in))

    def test_rejects_bad_fee(self):
        with pytest.raises(ValidationError):
            trade_profit(_sell_weth(fee_pct=101))


class TestArbitrageProfit:
    def test_second_leg_spends_first_leg_minimum(self):
        leg1 = _sell_weth(min_out=3300 * 10**6, expected_out=3300 * 10**6, gas_cost_usd=1.0)
        leg2 = TradeLeg(
            token_in=USDC,
            token_out=WETH,
            amount_in=999,
            expected_out=105 * 10**16,
            min_out=105 * 10**16,
            gas_cost_usd=1.0,
        )
        analysis = arbitrage_profit(leg1, leg2)

        assert analysis.leg2_amount_in == leg1.min_out
        assert analysis.leg2.amount_in_usd == pytest.approx(3300.0)
        assert analysis.gross_profit_usd == pytest.approx(160.0)
        assert analysis.costs.total == pytest.approx(21.5)
        assert analysis.net_profit_usd == pytest.approx(138.5)
        assert analysis.is_profitable is True

    def test_breakdown_has_both_legs(self):
        leg2 = TradeLeg(
            token_in=USDC, token_out=WETH, expected_out=10**18, min_out=10**18
        )
        analysis = arbitrage_profit(_sell_weth(), leg2)
        text = "\n".join(analysis.breakdown)
        assert text.startswith("=== TWO-LEG ARBITRAGE ===")
        assert "Leg 1: WETH -> USDC" in text
        assert "Leg 2: USDC -> WETH" in text


class TestMinProfitableAmount:
    def test_reference_value(self):
        assert min_profitable_amount(1, 0.3, 5, 1) == pytest.approx(857.142857, rel=1e-6)

    def test_spread_not_above_fee(self):
        assert min_profitable_amount(1, 0.3, 5, 0.3) == NEVER_PROFITABLE
        assert math.isinf(min_profitable_amount(1, 0.3, 5, 0.1))
