from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from liquidity_paths.adapters.uniswap_adapter.types import (
        V2PairSnapshot,
        V3PositionSnapshot,
        V4PositionSnapshot,
    )
    from liquidity_paths.core.adapters.models import ProtocolVersion
    from liquidity_paths.core.utils.event_scan import LogScanResult


class PriceSourceProtocol(Protocol):
    """Token -> USD lookups. Misses are 0.0, never an exception."""

    async def get_price(self, token_address: str) -> float: ...

    async def get_prices(self, token_addresses: Iterable[str]) -> dict[str, float]: ...

    async def close(self) -> Any: ...


class TokenReaderProtocol(Protocol):
    async def erc20_symbol(self, token_address: str) -> str: ...

    async def erc20_decimals(self, token_address: str) -> int: ...

    async def erc20_allowance(
        self, token_address: str, owner: str, spender: str
    ) -> int: ...


class ChainReaderProtocol(TokenReaderProtocol, Protocol):
    async def permit2_allowance(
        self, owner: str, token_address: str, spender: str
    ) -> tuple[int, int, int]: ...

    async def block_number(self) -> int: ...

    async def v2_get_pair(self, token_a: str, token_b: str) -> str | None: ...

    async def v2_reserves(self, pair_address: str) -> tuple[str, int, int]: ...

    async def v2_pair_snapshot(
        self, pair_address: str, owner: str
    ) -> V2PairSnapshot | None: ...

    async def v3_get_pool(self, token_a: str, token_b: str, fee: int) -> str | None: ...

    async def v3_slot0(self, pool_address: str) -> tuple[int, int]: ...

    async def v3_pool_liquidity(self, pool_address: str) -> int: ...

    async def v3_position_snapshots(self, owner: str) -> list[V3PositionSnapshot]: ...

    async def v4_slot0(self, pool_id: str) -> tuple[int, int]: ...

    async def v4_pool_liquidity(self, pool_id: str) -> int: ...

    async def v4_position_snapshot(self, token_id: int) -> V4PositionSnapshot | None: ...

    async def swap_logs(
        self,
        version: ProtocolVersion,
        pool: str,
        from_block: int,
        to_block: int,
    ) -> LogScanResult:
        """Signed (amount0, amount1) per swap; ``pool`` is a v4 pool id for v4."""
        ...

    async def close(self) -> Any: ...
