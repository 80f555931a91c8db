"""Raw on-chain reads handed from the chain reader to the aggregator."""

from __future__ import annotations

from dataclasses import dataclass

from liquidity_paths.core.adapters.models import PoolKey


@dataclass(frozen=True)
class V2PairSnapshot:
    pair: str
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    total_supply: int
    balance: int


@dataclass(frozen=True)
class V3PositionSnapshot:
    token_id: int
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    tokens_owed0: int
    tokens_owed1: int
    # pool slot0 at read time
    sqrt_price_x96: int
    tick: int
    pool: str = ""


@dataclass(frozen=True)
class V4PositionSnapshot:
    token_id: int
    pool_key: PoolKey
    tick_lower: int
    tick_upper: int
    liquidity: int
    sqrt_price_x96: int
    tick: int
    fee_growth_inside0: int = 0
    fee_growth_inside1: int = 0
    fee_growth_inside0_last: int = 0
    fee_growth_inside1_last: int = 0


@dataclass(frozen=True)
class V4ApprovalStatus:
    """Both legs of the Permit2 chain a v4 spender pulls a token through."""

    token: str
    erc20_allowance: int
    permit2_amount: int
    permit2_expiration: int
    needs_erc20_approval: bool
    needs_permit2_approval: bool
