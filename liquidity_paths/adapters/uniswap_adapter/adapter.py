from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any, assert_never

from liquidity_paths.adapters.uniswap_adapter.positions import PositionAggregator
from liquidity_paths.adapters.uniswap_adapter.reader import Web3PoolReader
from liquidity_paths.adapters.uniswap_adapter.transactions import V2_FEE, TransactionBuilder
from liquidity_paths.adapters.uniswap_adapter.types import V4ApprovalStatus
from liquidity_paths.core.adapters.BaseAdapter import AdapterResult, BaseAdapter, require_wallet
from liquidity_paths.core.adapters.models import (
    ConcentratedPoolState,
    PoolState,
    ProtocolVersion,
    V2PoolState,
)
from liquidity_paths.core.clients.PriceClient import GeckoTerminalPriceClient
from liquidity_paths.core.clients.protocols import ChainReaderProtocol, PriceSourceProtocol
from liquidity_paths.core.config import get_default_slippage_pct
from liquidity_paths.core.constants import ZERO_ADDRESS
from liquidity_paths.core.constants.base import ADAPTER_UNISWAP
from liquidity_paths.core.constants.chains import BLOCKS_PER_DAY, CHAIN_ID_TO_CODE
from liquidity_paths.core.constants.contracts import (
    PERMIT2,
    UNISWAP_V3_NPM,
    UNISWAP_V4_POSITION_MANAGER,
    WETH,
)
from liquidity_paths.core.utils.event_scan import swap_volume_usd
from liquidity_paths.core.utils.pool_identity import (
    build_pool_key,
    compute_pool_id,
    is_swapped,
    parse_version,
    validate_address,
)
from liquidity_paths.core.utils.price_cache import PriceCache
from liquidity_paths.core.utils.price_math import pool_price_result
from liquidity_paths.core.utils.profit import TradeLeg, arbitrage_profit, trade_profit
from liquidity_paths.core.utils.quotes import get_quote
from liquidity_paths.core.utils.tokens import (
    is_native_token,
    read_allowances,
    resolve_tokens,
)

SUPPORTED_CHAIN_IDS = set(UNISWAP_V3_NPM.keys())


class UniswapAdapter(BaseAdapter):
    """Pool pricing, quotes, positions and unsigned transactions across v2/v3/v4.

    Every public coroutine returns ``(ok, result)``. Reads go through the
    chain reader and price source collaborators; transaction building is
    pure and never signs or sends.
    """

    adapter_type = ADAPTER_UNISWAP

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        reader: ChainReaderProtocol | None = None,
        price_source: PriceSourceProtocol | None = None,
        price_cache: PriceCache | None = None,
        builder: TransactionBuilder | None = None,
    ) -> None:
        super().__init__("uniswap_adapter", config)

        if self.chain_id not in SUPPORTED_CHAIN_IDS:
            raise ValueError(
                f"Unsupported chain_id {self.chain_id} for Uniswap. "
                f"Supported: {sorted(SUPPORTED_CHAIN_IDS)}"
            )

        self.slippage_pct = float(
            self.config.get("slippage_pct", get_default_slippage_pct())
        )
        self.reader: ChainReaderProtocol = reader or Web3PoolReader(self.chain_id)
        self.price_cache = price_cache if price_cache is not None else PriceCache()
        self.prices: PriceSourceProtocol = price_source or GeckoTerminalPriceClient(
            cache=self.price_cache, network=CHAIN_ID_TO_CODE[self.chain_id]
        )
        self.builder = builder or TransactionBuilder(
            self.chain_id, slippage_pct=self.slippage_pct
        )

    # ------------------------------------------------------------------ #
    # Pool state, prices, quotes                                          #
    # ------------------------------------------------------------------ #

    async def _pool_state(
        self,
        version: ProtocolVersion,
        token_a: str,
        token_b: str,
        fee: int,
        tick_spacing: int | None,
        hooks: str,
    ) -> PoolState | None:
        swapped = is_swapped(token_a, token_b)
        match version:
            case ProtocolVersion.V2:
                pair = await self.reader.v2_get_pair(token_a, token_b)
                if pair is None:
                    return None
                token0, reserve0, reserve1 = await self.reader.v2_reserves(pair)
                # Reserves come back in the pair's order; normalize to sorted order.
                if token0.lower() != (token_b if swapped else token_a).lower():
                    reserve0, reserve1 = reserve1, reserve0
                return V2PoolState(reserve0=reserve0, reserve1=reserve1)
            case ProtocolVersion.V3:
                pool = await self.reader.v3_get_pool(token_a, token_b, fee)
                if pool is None:
                    return None
                (sqrt_price_x96, tick), liquidity = await asyncio.gather(
                    self.reader.v3_slot0(pool), self.reader.v3_pool_liquidity(pool)
                )
                return ConcentratedPoolState(
                    version="v3",
                    sqrt_price_x96=sqrt_price_x96,
                    tick=tick,
                    liquidity=liquidity,
                )
            case ProtocolVersion.V4:
                key = build_pool_key(
                    token_a, token_b, fee, tick_spacing=tick_spacing, hooks=hooks
                )
                pool_id = compute_pool_id(key)
                (sqrt_price_x96, tick), liquidity = await asyncio.gather(
                    self.reader.v4_slot0(pool_id), self.reader.v4_pool_liquidity(pool_id)
                )
                if sqrt_price_x96 == 0:
                    return None
                return ConcentratedPoolState(
                    version="v4",
                    sqrt_price_x96=sqrt_price_x96,
                    tick=tick,
                    liquidity=liquidity,
                )
            case _:
                assert_never(version)

    async def get_pool_price(
        self,
        version: ProtocolVersion | str,
        token_a: str,
        token_b: str,
        *,
        fee: int = V2_FEE,
        tick_spacing: int | None = None,
        hooks: str = ZERO_ADDRESS,
    ) -> AdapterResult:
        """Price of ``token_b`` per ``token_a``; a missing pool is ``exists=False``."""
        try:
            version = parse_version(version)
            token_a = validate_address(token_a, "token_a")
            token_b = validate_address(token_b, "token_b")
            state, tokens = await asyncio.gather(
                self._pool_state(version, token_a, token_b, fee, tick_spacing, hooks),
                resolve_tokens(self.reader, [token_a, token_b]),
            )
            return True, pool_price_result(
                state,
                tokens[token_a.lower()],
                tokens[token_b.lower()],
                is_swapped=is_swapped(token_a, token_b),
            )
        except Exception as exc:  # noqa: BLE001
            return self._failure("get_pool_price", exc)

    async def get_quote(
        self,
        version: ProtocolVersion | str,
        token_in: str,
        token_out: str,
        amount_in: int,
        *,
        fee: int = V2_FEE,
        tick_spacing: int | None = None,
        hooks: str = ZERO_ADDRESS,
        slippage_pct: float | None = None,
    ) -> AdapterResult:
        try:
            version = parse_version(version)
            token_in = validate_address(token_in, "token_in")
            token_out = validate_address(token_out, "token_out")
            state, tokens = await asyncio.gather(
                self._pool_state(version, token_in, token_out, fee, tick_spacing, hooks),
                resolve_tokens(self.reader, [token_in, token_out]),
            )
            if state is None:
                return False, f"No {version} pool for {token_in}/{token_out}"
            quote = get_quote(
                state,
                int(amount_in),
                zero_for_one=not is_swapped(token_in, token_out),
                fee=fee,
                decimals_in=tokens[token_in.lower()].decimals,
                decimals_out=tokens[token_out.lower()].decimals,
                slippage_pct=self.slippage_pct if slippage_pct is None else slippage_pct,
            )
            return True, quote
        except Exception as exc:  # noqa: BLE001
            return self._failure("get_quote", exc)

    # ------------------------------------------------------------------ #
    # Positions                                                           #
    # ------------------------------------------------------------------ #

    async def get_positions(
        self,
        owner: str | None = None,
        *,
        v2_pairs: Iterable[str] = (),
        v4_token_ids: Iterable[int] = (),
    ) -> AdapterResult:
        """Valued positions across all generations, highest USD value first.

        v2 pairs and v4 token ids are not enumerable on chain and must be
        supplied. A generation whose reads fail is logged and left out.
        """
        owner = owner or self.wallet_address
        if not owner:
            return False, "owner or wallet_address is required"
        try:
            owner = validate_address(owner, "owner")
            v2_pairs = list(v2_pairs)
            v4_token_ids = [int(t) for t in v4_token_ids]
            if not v4_token_ids:
                self.logger.info("No v4 token ids supplied; skipping v4 positions")

            v2_result, v3_result, v4_result = await asyncio.gather(
                asyncio.gather(
                    *(self.reader.v2_pair_snapshot(p, owner) for p in v2_pairs),
                    return_exceptions=True,
                ),
                self.reader.v3_position_snapshots(owner),
                asyncio.gather(
                    *(self.reader.v4_position_snapshot(t) for t in v4_token_ids),
                    return_exceptions=True,
                ),
                return_exceptions=True,
            )
            v2 = self._generation("v2", v2_result)
            v3 = self._generation("v3", v3_result)
            v4 = self._generation("v4", v4_result)

            addresses = {s.token0 for s in v2} | {s.token1 for s in v2}
            addresses |= {s.token0 for s in v3} | {s.token1 for s in v3}
            addresses |= {s.pool_key.token0 for s in v4} | {s.pool_key.token1 for s in v4}
            tokens, prices = await asyncio.gather(
                resolve_tokens(self.reader, addresses),
                self.prices.get_prices(addresses),
            )
            aggregator = PositionAggregator(tokens, prices)
            return True, aggregator.aggregate(v2=v2, v3=v3, v4=v4)
        except Exception as exc:  # noqa: BLE001
            return self._failure("get_positions", exc)

    def _generation(self, label: str, result: Any) -> list[Any]:
        if isinstance(result, BaseException):
            self.logger.warning(f"Reading {label} positions failed: {result}")
            return []
        found = []
        for item in result:
            if isinstance(item, BaseException):
                self.logger.warning(f"Reading a {label} position failed: {item}")
            elif item is not None:
                found.append(item)
        return found

    # ------------------------------------------------------------------ #
    # Allowances, volume, profit                                          #
    # ------------------------------------------------------------------ #

    @require_wallet
    async def get_allowances(
        self, requests: Iterable[tuple[str, str]]
    ) -> AdapterResult:
        """ERC-20 allowances of the wallet for ``(token, spender)`` pairs."""
        try:
            return True, await read_allowances(self.reader, self.wallet_address, requests)
        except Exception as exc:  # noqa: BLE001
            return self._failure("get_allowances", exc)

    @require_wallet
    async def check_v4_approvals(
        self,
        tokens: Iterable[str],
        *,
        amounts: Mapping[str, int] | None = None,
        spender: str | None = None,
    ) -> AdapterResult:
        """Outstanding approvals before a v4 spender can pull each token.

        v4 pulls ERC-20s through Permit2: the token needs an allowance to
        Permit2, and Permit2 needs an unexpired allowance to ``spender``
        (the v4 position manager unless given). ``amounts`` sets the
        required allowance per token, defaulting to any non-zero amount.
        Native currency needs neither and is left out.
        """
        try:
            spender = validate_address(
                spender or UNISWAP_V4_POSITION_MANAGER.get(self.chain_id), "spender"
            )
            required = {k.lower(): int(v) for k, v in (amounts or {}).items()}
            erc20 = list(
                dict.fromkeys(
                    validate_address(t, "token")
                    for t in tokens
                    if not is_native_token(t)
                )
            )
            now = int(time.time())
            statuses = await asyncio.gather(
                *(
                    self._v4_approval(t, spender, required.get(t.lower(), 1), now)
                    for t in erc20
                )
            )
            return True, {s.token.lower(): s for s in statuses}
        except Exception as exc:  # noqa: BLE001
            return self._failure("check_v4_approvals", exc)

    async def _v4_approval(
        self, token: str, spender: str, required: int, now: int
    ) -> V4ApprovalStatus:
        erc20_allowance, (amount, expiration, _nonce) = await asyncio.gather(
            self.reader.erc20_allowance(token, self.wallet_address, PERMIT2),
            self.reader.permit2_allowance(self.wallet_address, token, spender),
        )
        return V4ApprovalStatus(
            token=token,
            erc20_allowance=int(erc20_allowance),
            permit2_amount=int(amount),
            permit2_expiration=int(expiration),
            needs_erc20_approval=int(erc20_allowance) < required,
            needs_permit2_approval=int(amount) < required or int(expiration) <= now,
        )

    async def estimate_swap_volume(
        self,
        version: ProtocolVersion | str,
        pool: str,
        token0: str,
        token1: str,
        *,
        blocks: int | None = None,
    ) -> AdapterResult:
        """USD swap volume over the last ``blocks`` (one day by default).

        ``pool`` is the pair/pool address, or the pool id for v4. Token order
        must match the pool's.
        """
        try:
            version = parse_version(version)
            span = int(blocks or BLOCKS_PER_DAY.get(self.chain_id, 43_200))
            latest = await self.reader.block_number()
            scan, tokens, prices = await asyncio.gather(
                self.reader.swap_logs(version, pool, max(0, latest - span + 1), latest),
                resolve_tokens(self.reader, [token0, token1]),
                self.prices.get_prices([token0, token1]),
            )
            estimate = swap_volume_usd(
                scan.logs,
                decimals0=tokens[token0.lower()].decimals,
                decimals1=tokens[token1.lower()].decimals,
                price0=prices.get(token0.lower(), 0.0),
                price1=prices.get(token1.lower(), 0.0),
            )
            if not scan.complete:
                self.logger.warning(
                    f"Volume for {pool} skipped {len(scan.failed_ranges)} block ranges"
                )
            return True, {
                "volume_usd": estimate.volume_usd,
                "swap_count": estimate.swap_count,
                "complete": scan.complete,
                "failed_ranges": scan.failed_ranges,
            }
        except Exception as exc:  # noqa: BLE001
            return self._failure("estimate_swap_volume", exc)

    async def _native_price(self) -> float:
        weth = WETH.get(self.chain_id)
        return await self.prices.get_price(weth) if weth else 0.0

    async def analyze_trade(self, leg: TradeLeg) -> AdapterResult:
        try:
            return True, trade_profit(leg, native_price_usd=await self._native_price())
        except Exception as exc:  # noqa: BLE001
            return self._failure("analyze_trade", exc)

    async def analyze_arbitrage(self, leg1: TradeLeg, leg2: TradeLeg) -> AdapterResult:
        try:
            return True, arbitrage_profit(
                leg1, leg2, native_price_usd=await self._native_price()
            )
        except Exception as exc:  # noqa: BLE001
            return self._failure("analyze_arbitrage", exc)

    # ------------------------------------------------------------------ #
    # Transactions                                                        #
    # ------------------------------------------------------------------ #

    def _build(self, action: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> AdapterResult:
        try:
            return True, fn(*args, **kwargs)
        except Exception as exc:  # noqa: BLE001
            return self._failure(action, exc)

    def _with_recipient(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if kwargs.get("recipient") is None and self.wallet_address:
            kwargs["recipient"] = self.wallet_address
        return kwargs

    async def build_approve(self, token: str, spender: str, **kwargs: Any) -> AdapterResult:
        return self._build("build_approve", self.builder.approve, token, spender, **kwargs)

    async def build_permit2_approve(
        self, token: str, spender: str, **kwargs: Any
    ) -> AdapterResult:
        return self._build(
            "build_permit2_approve", self.builder.permit2_approve, token, spender, **kwargs
        )

    async def build_swap(self, version: ProtocolVersion | str, **kwargs: Any) -> AdapterResult:
        return self._build(
            "build_swap", self.builder.swap, version, **self._with_recipient(kwargs)
        )

    async def build_create_pool(
        self, version: ProtocolVersion | str, **kwargs: Any
    ) -> AdapterResult:
        return self._build("build_create_pool", self.builder.create_pool, version, **kwargs)

    async def build_mint_position(
        self, version: ProtocolVersion | str, **kwargs: Any
    ) -> AdapterResult:
        return self._build(
            "build_mint_position",
            self.builder.mint_position,
            version,
            **self._with_recipient(kwargs),
        )

    async def build_increase_liquidity(
        self, position_id: str, amount0_desired: int, amount1_desired: int, **kwargs: Any
    ) -> AdapterResult:
        return self._build(
            "build_increase_liquidity",
            self.builder.increase_liquidity,
            position_id,
            amount0_desired,
            amount1_desired,
            **self._with_recipient(kwargs),
        )

    async def build_decrease_liquidity(
        self,
        position_id: str,
        liquidity_percentage: float,
        current_liquidity: str | int,
        **kwargs: Any,
    ) -> AdapterResult:
        return self._build(
            "build_decrease_liquidity",
            self.builder.decrease_liquidity,
            position_id,
            liquidity_percentage,
            current_liquidity,
            **self._with_recipient(kwargs),
        )

    async def build_burn_position(self, position_id: str, **kwargs: Any) -> AdapterResult:
        return self._build(
            "build_burn_position",
            self.builder.burn_position,
            position_id,
            **self._with_recipient(kwargs),
        )

    async def build_collect_fees(self, position_id: str, **kwargs: Any) -> AdapterResult:
        return self._build(
            "build_collect_fees",
            self.builder.collect_fees,
            position_id,
            **self._with_recipient(kwargs),
        )

    async def build_transfer_position(
        self, position_id: str, to: str, **kwargs: Any
    ) -> AdapterResult:
        if kwargs.get("from_address") is None and self.wallet_address:
            kwargs["from_address"] = self.wallet_address
        return self._build(
            "build_transfer_position",
            self.builder.transfer_position,
            position_id,
            to,
            **kwargs,
        )

    async def close(self) -> None:
        await asyncio.gather(self.reader.close(), self.prices.close())
