from __future__ import annotations

from collections.abc import Iterable, Mapping

from liquidity_paths.adapters.uniswap_adapter.types import (
    V2PairSnapshot,
    V3PositionSnapshot,
    V4PositionSnapshot,
)
from liquidity_paths.core.adapters.models import (
    Position,
    PositionToken,
    ProtocolVersion,
    Token,
)
from liquidity_paths.core.constants.base import DEFAULT_DECIMALS, UNKNOWN_SYMBOL
from liquidity_paths.core.utils.pool_identity import (
    compute_pool_id,
    make_position_id,
    parse_version,
)
from liquidity_paths.core.utils.price_math import (
    amounts_for_position,
    fees_from_growth,
    is_in_range,
    tick_to_price_decimal,
)


def can_collect_fees(version: ProtocolVersion | str) -> bool:
    """v2 fees compound into the LP token and are never separately collectible."""
    return parse_version(version) is not ProtocolVersion.V2


class PositionAggregator:
    """Turns raw position snapshots into valued, fee-aware ``Position`` records.

    ``tokens`` and ``prices`` are keyed by lowercased address. A token without
    metadata renders as ``UNKNOWN`` with 18 decimals and a token without a
    price is valued at zero.
    """

    def __init__(
        self,
        tokens: Mapping[str, Token] | None = None,
        prices: Mapping[str, float] | None = None,
    ) -> None:
        self.tokens = {k.lower(): v for k, v in (tokens or {}).items()}
        self.prices = {k.lower(): float(v) for k, v in (prices or {}).items()}

    def _token(self, address: str) -> Token:
        token = self.tokens.get(address.lower())
        if token is None:
            return Token(address=address, symbol=UNKNOWN_SYMBOL, decimals=DEFAULT_DECIMALS)
        return token

    def _position_token(self, address: str, amount: int, fees: int = 0) -> PositionToken:
        token = self._token(address)
        return PositionToken(
            address=address,
            symbol=token.symbol,
            decimals=token.decimals,
            amount=amount,
            fees_owed=fees,
            price_usd=self.prices.get(address.lower(), 0.0),
        )

    @staticmethod
    def _usd(token: PositionToken) -> tuple[float, float]:
        return (
            token.amount_human * token.price_usd,
            token.fees_human * token.price_usd,
        )

    def _range_fields(
        self, token0: PositionToken, token1: PositionToken, tick_lower: int, tick_upper: int
    ) -> dict[str, float]:
        return {
            "price_range_low": tick_to_price_decimal(
                tick_lower, token0.decimals, token1.decimals
            ),
            "price_range_high": tick_to_price_decimal(
                tick_upper, token0.decimals, token1.decimals
            ),
        }

    def from_v2(self, snap: V2PairSnapshot) -> Position | None:
        if snap.balance <= 0 or snap.total_supply <= 0:
            return None
        token0 = self._position_token(
            snap.token0, snap.balance * snap.reserve0 // snap.total_supply
        )
        token1 = self._position_token(
            snap.token1, snap.balance * snap.reserve1 // snap.total_supply
        )
        share_pct = snap.balance / snap.total_supply * 100
        value0, _ = self._usd(token0)
        value1, _ = self._usd(token1)
        return Position(
            id=make_position_id(ProtocolVersion.V2, snap.pair),
            version=ProtocolVersion.V2,
            pool=snap.pair,
            token0=token0,
            token1=token1,
            liquidity=snap.balance,
            liquidity_display=f"{share_pct:.4f}% of pool",
            value_usd=value0 + value1,
            fees_usd=0.0,
            can_collect_fees=False,
        )

    def from_v3(self, snap: V3PositionSnapshot) -> Position | None:
        if snap.liquidity <= 0 and snap.tokens_owed0 <= 0 and snap.tokens_owed1 <= 0:
            return None
        amount0, amount1 = amounts_for_position(
            snap.sqrt_price_x96, snap.tick_lower, snap.tick_upper, snap.liquidity
        )
        token0 = self._position_token(snap.token0, amount0, snap.tokens_owed0)
        token1 = self._position_token(snap.token1, amount1, snap.tokens_owed1)
        value0, fees0 = self._usd(token0)
        value1, fees1 = self._usd(token1)
        return Position(
            id=make_position_id(ProtocolVersion.V3, snap.token_id),
            version=ProtocolVersion.V3,
            pool=snap.pool,
            token0=token0,
            token1=token1,
            liquidity=snap.liquidity,
            liquidity_display=f"{snap.liquidity} liquidity",
            value_usd=value0 + value1,
            fees_usd=fees0 + fees1,
            can_collect_fees=True,
            token_id=snap.token_id,
            fee=snap.fee,
            tick_lower=snap.tick_lower,
            tick_upper=snap.tick_upper,
            in_range=is_in_range(snap.tick, snap.tick_lower, snap.tick_upper),
            **self._range_fields(token0, token1, snap.tick_lower, snap.tick_upper),
        )

    def from_v4(self, snap: V4PositionSnapshot) -> Position | None:
        fees0 = fees_from_growth(
            snap.fee_growth_inside0, snap.fee_growth_inside0_last, snap.liquidity
        )
        fees1 = fees_from_growth(
            snap.fee_growth_inside1, snap.fee_growth_inside1_last, snap.liquidity
        )
        if snap.liquidity <= 0 and fees0 <= 0 and fees1 <= 0:
            return None
        key = snap.pool_key
        amount0, amount1 = amounts_for_position(
            snap.sqrt_price_x96, snap.tick_lower, snap.tick_upper, snap.liquidity
        )
        token0 = self._position_token(key.token0, amount0, fees0)
        token1 = self._position_token(key.token1, amount1, fees1)
        value0, fee_usd0 = self._usd(token0)
        value1, fee_usd1 = self._usd(token1)
        return Position(
            id=make_position_id(ProtocolVersion.V4, snap.token_id),
            version=ProtocolVersion.V4,
            pool=compute_pool_id(key),
            token0=token0,
            token1=token1,
            liquidity=snap.liquidity,
            liquidity_display=f"{snap.liquidity} liquidity",
            value_usd=value0 + value1,
            fees_usd=fee_usd0 + fee_usd1,
            can_collect_fees=True,
            token_id=snap.token_id,
            fee=key.fee,
            tick_spacing=key.tick_spacing,
            hooks=key.hooks,
            tick_lower=snap.tick_lower,
            tick_upper=snap.tick_upper,
            in_range=is_in_range(snap.tick, snap.tick_lower, snap.tick_upper),
            **self._range_fields(token0, token1, snap.tick_lower, snap.tick_upper),
        )

    def aggregate(
        self,
        *,
        v2: Iterable[V2PairSnapshot] = (),
        v3: Iterable[V3PositionSnapshot] = (),
        v4: Iterable[V4PositionSnapshot] = (),
    ) -> list[Position]:
        """All non-empty positions, highest USD value first."""
        positions: list[Position | None] = [self.from_v2(s) for s in v2]
        positions.extend(self.from_v3(s) for s in v3)
        positions.extend(self.from_v4(s) for s in v4)
        found = [p for p in positions if p is not None]
        found.sort(key=lambda p: p.value_usd, reverse=True)
        return found
