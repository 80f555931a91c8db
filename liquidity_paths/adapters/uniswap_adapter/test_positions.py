from __future__ import annotations

import pytest

from liquidity_paths.adapters.uniswap_adapter.positions import (
    PositionAggregator,
    can_collect_fees,
)
from liquidity_paths.adapters.uniswap_adapter.types import (
    V2PairSnapshot,
    V3PositionSnapshot,
    V4PositionSnapshot,
)
from liquidity_paths.core.adapters.models import ProtocolVersion, Token
from liquidity_paths.core.utils.pool_identity import build_pool_key, compute_pool_id
from liquidity_paths.core.utils.price_math import Q96, sqrt_price_x96_from_tick

TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x3333333333333333333333333333333333333333"
TOKEN_C = "0x5555555555555555555555555555555555555555"
PAIR = "0x7777777777777777777777777777777777777777"
POOL = "0x9999999999999999999999999999999999999999"
HOOKS = "0x2222222222222222222222222222222222222222"

TOKENS = {
    TOKEN_A: Token(address=TOKEN_A, symbol="AAA", decimals=18),
    TOKEN_B: Token(address=TOKEN_B, symbol="BBB", decimals=6),
}
PRICES = {TOKEN_A: 2.0, TOKEN_B: 1.0}


@pytest.fixture
def aggregator() -> PositionAggregator:
    return PositionAggregator(TOKENS, PRICES)


def _v2(balance: int = 10) -> V2PairSnapshot:
    return V2PairSnapshot(
        pair=PAIR,
        token0=TOKEN_A,
        token1=TOKEN_B,
        reserve0=1000 * 10**18,
        reserve1=2000 * 10**6,
        total_supply=100,
        balance=balance,
    )


def _v3(liquidity: int = 10**12, owed0: int = 0, owed1: int = 0, tick: int = 0):
    return V3PositionSnapshot(
        token_id=42,
        token0=TOKEN_A,
        token1=TOKEN_B,
        fee=3000,
        tick_lower=-600,
        tick_upper=600,
        liquidity=liquidity,
        tokens_owed0=owed0,
        tokens_owed1=owed1,
        sqrt_price_x96=sqrt_price_x96_from_tick(tick),
        tick=tick,
        pool=POOL,
    )


def _v4(liquidity: int = 10**12, growth0: int = 0, growth1: int = 0):
    return V4PositionSnapshot(
        token_id=7,
        pool_key=build_pool_key(TOKEN_A, TOKEN_B, 500, hooks=HOOKS),
        tick_lower=-600,
        tick_upper=600,
        liquidity=liquidity,
        sqrt_price_x96=Q96,
        tick=0,
        fee_growth_inside0=growth0,
        fee_growth_inside1=growth1,
    )


@pytest.mark.parametrize(
    "version,expected", [("v2", False), ("v3", True), (ProtocolVersion.V4, True)]
)
def test_can_collect_fees(version, expected):
    assert can_collect_fees(version) is expected


class TestV2:
    def test_pro_rata_amounts(self, aggregator):
        position = aggregator.from_v2(_v2())
        assert position.id == f"v2-{PAIR}"
        assert position.token0.amount == 100 * 10**18
        assert position.token1.amount == 200 * 10**6
        assert position.value_usd == pytest.approx(400.0)
        assert position.liquidity_display == "10.0000% of pool"
        assert position.fees_usd == 0.0
        assert position.can_collect_fees is False
        assert position.pair == "AAA / BBB"

    def test_empty_balance_is_skipped(self, aggregator):
        assert aggregator.from_v2(_v2(balance=0)) is None


class TestV3:
    def test_in_range_position(self, aggregator):
        position = aggregator.from_v3(_v3(owed0=10**18, owed1=3 * 10**6))
        assert position.id == "v3-42"
        assert position.pool == POOL
        assert position.in_range is True
        assert position.liquidity_display == f"{10**12} liquidity"
        assert position.token0.amount > 0 and position.token1.amount > 0
        assert position.fees_usd == pytest.approx(5.0)
        assert position.can_collect_fees is True
        assert position.price_range_low < position.price_range_high

    def test_out_of_range(self, aggregator):
        position = aggregator.from_v3(_v3(tick=1200))
        assert position.in_range is False
        assert position.token0.amount == 0

    def test_closed_position_is_skipped(self, aggregator):
        assert aggregator.from_v3(_v3(liquidity=0)) is None

    def test_zero_liquidity_with_fees_is_kept(self, aggregator):
        position = aggregator.from_v3(_v3(liquidity=0, owed1=10**6))
        assert position is not None
        assert position.value_usd == 0.0
        assert position.fees_usd == pytest.approx(1.0)


class TestV4:
    def test_fees_from_growth(self, aggregator):
        snap = _v4(liquidity=10**12, growth0=(10**6 << 128) // 10**12)
        position = aggregator.from_v4(snap)
        assert position.id == "v4-7"
        assert position.pool == compute_pool_id(snap.pool_key)
        assert position.hooks == HOOKS
        assert position.tick_spacing == 10
        assert position.fee == 500
        assert position.token0.fees_owed == pytest.approx(10**6, abs=1)

    def test_empty_position_is_skipped(self, aggregator):
        assert aggregator.from_v4(_v4(liquidity=0)) is None


def test_unknown_tokens_fall_back():
    aggregator = PositionAggregator()
    snap = _v3()
    position = aggregator.from_v3(
        V3PositionSnapshot(**{**snap.__dict__, "token0": TOKEN_C})
    )
    assert position.token0.symbol == "UNKNOWN"
    assert position.token0.decimals == 18
    assert position.value_usd == 0.0


def test_aggregate_sorts_by_value(aggregator):
    positions = aggregator.aggregate(
        v2=[_v2(), _v2(balance=0)],
        v3=[_v3(liquidity=10**6), _v3(liquidity=0)],
        v4=[_v4(liquidity=10**20)],
    )
    assert [p.version for p in positions] == [
        ProtocolVersion.V4,
        ProtocolVersion.V2,
        ProtocolVersion.V3,
    ]
    values = [p.value_usd for p in positions]
    assert values == sorted(values, reverse=True)
