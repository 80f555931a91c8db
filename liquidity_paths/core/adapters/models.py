from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from eth_utils import is_hex, to_checksum_address
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from liquidity_paths.core.constants import ZERO_ADDRESS


class ProtocolVersion(StrEnum):
    V2 = "v2"  # constant product
    V3 = "v3"  # concentrated liquidity
    V4 = "v4"  # singleton pool manager with hooks


# On-chain integers stay ints in Python and become decimal strings on the wire.
RawAmount = Annotated[
    int,
    Field(ge=0, lt=2**256),
    PlainSerializer(str, return_type=str, when_used="json"),
]


class _Model(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


class Token(_Model):
    address: str
    symbol: str
    decimals: int = Field(ge=0, le=255)


class PoolKey(_Model):
    token0: str
    token1: str
    fee: int = Field(ge=0, lt=2**24)
    tick_spacing: int
    hooks: str = ZERO_ADDRESS

    @model_validator(mode="after")
    def _check_currency_order(self) -> PoolKey:
        if self.token0.lower() >= self.token1.lower():
            raise ValueError("pool key currencies must be sorted with token0 < token1")
        return self

    def as_tuple(self) -> tuple[str, str, int, int, str]:
        return (
            to_checksum_address(self.token0),
            to_checksum_address(self.token1),
            int(self.fee),
            int(self.tick_spacing),
            to_checksum_address(self.hooks),
        )


class V2PoolState(_Model):
    version: Literal["v2"] = "v2"
    reserve0: RawAmount
    reserve1: RawAmount


class ConcentratedPoolState(_Model):
    version: Literal["v3", "v4"]
    sqrt_price_x96: Annotated[int, Field(ge=0, lt=2**160)]
    tick: int
    liquidity: RawAmount = 0


PoolState = Annotated[
    V2PoolState | ConcentratedPoolState, Field(discriminator="version")
]


class Transaction(_Model):
    to: str
    data: str
    value: str = "0"

    @field_validator("data")
    @classmethod
    def _check_data(cls, v: str) -> str:
        if not v.startswith("0x") or not is_hex(v):
            raise ValueError("data must be 0x-prefixed hex calldata")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def _check_value(cls, v: object) -> str:
        text = str(v)
        if not text.isdigit():
            raise ValueError("value must be a decimal-string wei amount")
        return text


class Quote(_Model):
    version: ProtocolVersion
    amount_in: RawAmount
    amount_out: RawAmount
    minimum_amount_out: RawAmount
    price_impact_pct: float
    execution_price: float
    spot_price: float


class PoolPriceResult(_Model):
    exists: bool
    price: float | None = None
    price_display: str | None = None
    token0_symbol: str | None = None
    token1_symbol: str | None = None
    sqrt_price_x96: RawAmount | None = None


class PositionToken(_Model):
    address: str
    symbol: str
    decimals: int
    amount: RawAmount
    fees_owed: RawAmount = 0
    price_usd: float = 0.0

    @property
    def amount_human(self) -> float:
        return self.amount / 10**self.decimals

    @property
    def fees_human(self) -> float:
        return self.fees_owed / 10**self.decimals


class Position(_Model):
    id: str
    version: ProtocolVersion
    pool: str
    token0: PositionToken
    token1: PositionToken
    liquidity: RawAmount
    liquidity_display: str
    value_usd: float
    fees_usd: float
    can_collect_fees: bool
    token_id: RawAmount | None = None
    fee: int | None = None
    tick_spacing: int | None = None
    hooks: str | None = None
    tick_lower: int | None = None
    tick_upper: int | None = None
    in_range: bool | None = None
    price_range_low: float | None = None
    price_range_high: float | None = None

    @property
    def pair(self) -> str:
        return f"{self.token0.symbol} / {self.token1.symbol}"


class ProfitCosts(_Model):
    gas: float
    fee: float
    slippage: float
    total: float


class ProfitAnalysis(_Model):
    amount_in_usd: float
    expected_out_usd: float
    min_out_usd: float
    costs: ProfitCosts
    gross_profit_usd: float
    net_profit_usd: float
    net_profit_pct: float
    is_profitable: bool
    breakdown: list[str]


class ArbitrageAnalysis(_Model):
    leg1: ProfitAnalysis
    leg2: ProfitAnalysis
    leg2_amount_in: RawAmount
    costs: ProfitCosts
    gross_profit_usd: float
    net_profit_usd: float
    net_profit_pct: float
    is_profitable: bool
    breakdown: list[str]
