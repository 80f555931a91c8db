"""Invariants that span pool identity, pricing, quoting and slippage."""

from __future__ import annotations

import pytest

from liquidity_paths.core.utils.pool_identity import (
    FEE_TO_TICK_SPACING,
    build_pool_key,
    compute_pool_id,
    get_tick_range,
    is_swapped,
    sort_tokens,
)
from liquidity_paths.core.utils.price_math import (
    Q96,
    amounts_for_liquidity,
    liquidity_for_amounts,
    price_to_sqrt_price,
    sqrt_price_to_price,
    sqrt_price_x96_from_tick,
)
from liquidity_paths.core.utils.quotes import quote_v2
from liquidity_paths.core.utils.units import slippage_min

WETH = "0x4200000000000000000000000000000000000006"
USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


class TestOrderIndependence:
    def test_sort_tokens(self):
        assert sort_tokens(WETH, USDC) == sort_tokens(USDC, WETH)
        assert is_swapped(WETH, USDC) != is_swapped(USDC, WETH)

    @pytest.mark.parametrize("fee", sorted(FEE_TO_TICK_SPACING))
    def test_pool_id(self, fee):
        forward = compute_pool_id(build_pool_key(WETH, USDC, fee))
        backward = compute_pool_id(build_pool_key(USDC, WETH, fee))
        assert forward == backward

    def test_price_is_reciprocal_across_orders(self):
        sqrt_price = price_to_sqrt_price(2500.0, 18, 6, is_swapped(WETH, USDC))
        forward = sqrt_price_to_price(sqrt_price, 18, 6, is_swapped(WETH, USDC))
        backward = sqrt_price_to_price(sqrt_price, 6, 18, is_swapped(USDC, WETH))
        assert forward == pytest.approx(2500.0, rel=1e-9)
        assert forward * backward == pytest.approx(1.0, rel=1e-9)


class TestTickRange:
    @pytest.mark.parametrize("spacing", sorted(set(FEE_TO_TICK_SPACING.values())))
    def test_symmetric_and_aligned(self, spacing):
        low, high = get_tick_range(spacing)
        assert low == -high
        assert high % spacing == 0
        assert high + spacing > 887272


class TestSlippage:
    def test_never_exceeds_amount(self):
        for pct in (0, 0.01, 0.5, 3, 49.99, 100):
            assert 0 <= slippage_min(10**18, pct) <= 10**18

    def test_monotonic_in_tolerance(self):
        mins = [slippage_min(123_456_789, pct) for pct in (0, 0.1, 0.5, 1, 5, 50, 100)]
        assert mins == sorted(mins, reverse=True)
        assert mins[0] == 123_456_789
        assert mins[-1] == 0


class TestQuoteShape:
    def test_output_grows_but_stays_below_reserve(self):
        outs = [
            quote_v2(amount, 10**24, 10**24).amount_out
            for amount in (10**15, 10**18, 10**21, 10**24, 10**27)
        ]
        assert outs == sorted(outs)
        assert all(out < 10**24 for out in outs)

    def test_impact_grows_with_size(self):
        small = quote_v2(10**18, 10**24, 10**24).price_impact_pct
        large = quote_v2(10**23, 10**24, 10**24).price_impact_pct
        assert large > small


class TestLiquidityAmounts:
    LOWER = sqrt_price_x96_from_tick(-600)
    UPPER = sqrt_price_x96_from_tick(600)

    def test_amounts_monotonic_in_liquidity(self):
        previous = (0, 0)
        for liquidity in (10**6, 10**9, 10**12, 10**18):
            amounts = amounts_for_liquidity(Q96, self.LOWER, self.UPPER, liquidity)
            assert amounts[0] >= previous[0]
            assert amounts[1] >= previous[1]
            previous = amounts

    def test_liquidity_never_overspends(self):
        for sqrt_price in (self.LOWER // 2, Q96, self.UPPER * 2):
            liquidity = liquidity_for_amounts(
                sqrt_price, self.LOWER, self.UPPER, 10**18, 10**18
            )
            amount0, amount1 = amounts_for_liquidity(
                sqrt_price, self.LOWER, self.UPPER, liquidity
            )
            assert amount0 <= 10**18
            assert amount1 <= 10**18
