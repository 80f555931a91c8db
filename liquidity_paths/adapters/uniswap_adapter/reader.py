from __future__ import annotations

import asyncio
from typing import Any, assert_never

from aiocache import Cache
from eth_abi import decode as abi_decode
from eth_utils import keccak, to_checksum_address
from loguru import logger

from liquidity_paths.adapters.uniswap_adapter.types import (
    V2PairSnapshot,
    V3PositionSnapshot,
    V4PositionSnapshot,
)
from liquidity_paths.core.adapters.models import PoolKey, ProtocolVersion
from liquidity_paths.core.constants import ZERO_ADDRESS
from liquidity_paths.core.constants.base import DEFAULT_TOKEN_CACHE_TTL
from liquidity_paths.core.constants.chains import CHAIN_ID_BASE
from liquidity_paths.core.constants.contracts import (
    PERMIT2,
    UNISWAP_V2_FACTORY,
    UNISWAP_V3_FACTORY,
    UNISWAP_V3_NPM,
    UNISWAP_V4_POOL_MANAGER,
    UNISWAP_V4_POSITION_MANAGER,
    UNISWAP_V4_STATE_VIEW,
)
from liquidity_paths.core.constants.erc20_abi import ERC20_ABI
from liquidity_paths.core.constants.uniswap_v2_abi import (
    UNISWAP_V2_FACTORY_ABI,
    UNISWAP_V2_PAIR_ABI,
)
from liquidity_paths.core.constants.uniswap_v3_abi import (
    NONFUNGIBLE_POSITION_MANAGER_ABI,
    UNISWAP_V3_FACTORY_ABI,
    UNISWAP_V3_POOL_ABI,
)
from liquidity_paths.core.constants.uniswap_v4_abi import (
    PERMIT2_ABI,
    POSITION_MANAGER_ABI,
    STATE_VIEW_ABI,
)
from liquidity_paths.core.errors import ValidationError
from liquidity_paths.core.utils.event_scan import LogScanResult, scan_logs
from liquidity_paths.core.utils.pool_identity import (
    compute_pool_id,
    decode_position_info,
    v4_position_key,
)
from liquidity_paths.core.utils.retry import retry_async
from liquidity_paths.core.utils.web3 import is_rate_limited_exception, web3_from_chain_id


def _topic(signature: str) -> str:
    return "0x" + keccak(text=signature).hex()


V2_SWAP_TOPIC0 = _topic("Swap(address,uint256,uint256,uint256,uint256,address)")
V3_SWAP_TOPIC0 = _topic("Swap(address,address,int256,int256,uint160,uint128,int24)")
V4_SWAP_TOPIC0 = _topic(
    "Swap(bytes32,address,int128,int128,uint160,uint128,int24,uint24)"
)

_V2_SWAP_DATA = ["uint256", "uint256", "uint256", "uint256"]
_V3_SWAP_DATA = ["int256", "int256", "uint160", "uint128", "int24"]
_V4_SWAP_DATA = ["int128", "int128", "uint160", "uint128", "int24", "uint24"]


def _bytes32(value: str) -> bytes:
    raw = bytes.fromhex(value.removeprefix("0x"))
    if len(raw) != 32:
        raise ValidationError(f"Expected a 32-byte id, got {value!r}")
    return raw


def _non_zero_address(value: Any) -> str | None:
    if not value or str(value).lower() == ZERO_ADDRESS:
        return None
    return to_checksum_address(value)


def _log_data(log: Any) -> bytes:
    data = log["data"]
    return bytes.fromhex(data.removeprefix("0x")) if isinstance(data, str) else bytes(data)


def decode_swap_amounts(version: ProtocolVersion, log: Any) -> tuple[int, int]:
    """Signed pool-side (amount0, amount1) deltas for one Swap log."""
    data = _log_data(log)
    match version:
        case ProtocolVersion.V2:
            in0, in1, out0, out1 = abi_decode(_V2_SWAP_DATA, data)
            return int(in0) - int(out0), int(in1) - int(out1)
        case ProtocolVersion.V3:
            amount0, amount1, *_ = abi_decode(_V3_SWAP_DATA, data)
            return int(amount0), int(amount1)
        case ProtocolVersion.V4:
            amount0, amount1, *_ = abi_decode(_V4_SWAP_DATA, data)
            return int(amount0), int(amount1)
        case _:
            assert_never(version)


class Web3PoolReader:
    """Chain reads for all three pool generations over ``AsyncWeb3``.

    Each public read opens its own provider through ``web3_from_chain_id``.
    Calls that hit provider rate limits are retried with backoff; every
    other failure propagates to the caller.
    """

    def __init__(
        self,
        chain_id: int = CHAIN_ID_BASE,
        *,
        token_cache_ttl: int = DEFAULT_TOKEN_CACHE_TTL,
    ) -> None:
        self.chain_id = int(chain_id)
        self.token_cache_ttl = int(token_cache_ttl)
        self._cache = Cache(Cache.MEMORY)

    def _address(self, table: dict[int, str], name: str) -> str:
        address = table.get(self.chain_id)
        if address is None:
            raise ValidationError(f"No {name} deployment on chain {self.chain_id}")
        return to_checksum_address(address)

    @staticmethod
    async def _call(fn: Any, label: str) -> Any:
        return await retry_async(
            lambda: fn.call(block_identifier="latest"),
            should_retry=is_rate_limited_exception,
            label=label,
        )

    # ERC-20

    async def _cached(self, key: str, load: Any) -> Any:
        cached = await self._cache.get(key)
        if cached is not None:
            return cached
        value = await load()
        await self._cache.set(key, value, ttl=self.token_cache_ttl)
        return value

    async def erc20_symbol(self, token_address: str) -> str:
        async def load() -> str:
            async with web3_from_chain_id(self.chain_id) as w3:
                token = w3.eth.contract(
                    address=to_checksum_address(token_address), abi=ERC20_ABI
                )
                return str(await self._call(token.functions.symbol(), "symbol"))

        return await self._cached(f"symbol:{token_address.lower()}", load)

    async def erc20_decimals(self, token_address: str) -> int:
        async def load() -> int:
            async with web3_from_chain_id(self.chain_id) as w3:
                token = w3.eth.contract(
                    address=to_checksum_address(token_address), abi=ERC20_ABI
                )
                return int(await self._call(token.functions.decimals(), "decimals"))

        return await self._cached(f"decimals:{token_address.lower()}", load)

    async def erc20_allowance(self, token_address: str, owner: str, spender: str) -> int:
        async with web3_from_chain_id(self.chain_id) as w3:
            token = w3.eth.contract(
                address=to_checksum_address(token_address), abi=ERC20_ABI
            )
            return int(
                await self._call(
                    token.functions.allowance(
                        to_checksum_address(owner), to_checksum_address(spender)
                    ),
                    "allowance",
                )
            )

    async def permit2_allowance(
        self, owner: str, token_address: str, spender: str
    ) -> tuple[int, int, int]:
        """Permit2 ``(amount, expiration, nonce)`` granted by ``owner`` to ``spender``."""
        async with web3_from_chain_id(self.chain_id) as w3:
            permit2 = w3.eth.contract(
                address=to_checksum_address(PERMIT2), abi=PERMIT2_ABI
            )
            amount, expiration, nonce = await self._call(
                permit2.functions.allowance(
                    to_checksum_address(owner),
                    to_checksum_address(token_address),
                    to_checksum_address(spender),
                ),
                "permit2 allowance",
            )
            return int(amount), int(expiration), int(nonce)

    async def block_number(self) -> int:
        async with web3_from_chain_id(self.chain_id) as w3:
            return int(await w3.eth.block_number)

    # Generation 1

    async def v2_get_pair(self, token_a: str, token_b: str) -> str | None:
        async with web3_from_chain_id(self.chain_id) as w3:
            factory = w3.eth.contract(
                address=self._address(UNISWAP_V2_FACTORY, "v2 factory"),
                abi=UNISWAP_V2_FACTORY_ABI,
            )
            pair = await self._call(
                factory.functions.getPair(
                    to_checksum_address(token_a), to_checksum_address(token_b)
                ),
                "getPair",
            )
        return _non_zero_address(pair)

    async def v2_reserves(self, pair_address: str) -> tuple[str, int, int]:
        async with web3_from_chain_id(self.chain_id) as w3:
            pair = w3.eth.contract(
                address=to_checksum_address(pair_address), abi=UNISWAP_V2_PAIR_ABI
            )
            token0, reserves = await asyncio.gather(
                self._call(pair.functions.token0(), "token0"),
                self._call(pair.functions.getReserves(), "getReserves"),
            )
        return to_checksum_address(token0), int(reserves[0]), int(reserves[1])

    async def v2_pair_snapshot(self, pair_address: str, owner: str) -> V2PairSnapshot | None:
        async with web3_from_chain_id(self.chain_id) as w3:
            pair = w3.eth.contract(
                address=to_checksum_address(pair_address), abi=UNISWAP_V2_PAIR_ABI
            )
            balance = int(
                await self._call(
                    pair.functions.balanceOf(to_checksum_address(owner)), "balanceOf"
                )
            )
            if balance <= 0:
                return None
            token0, token1, reserves, total_supply = await asyncio.gather(
                self._call(pair.functions.token0(), "token0"),
                self._call(pair.functions.token1(), "token1"),
                self._call(pair.functions.getReserves(), "getReserves"),
                self._call(pair.functions.totalSupply(), "totalSupply"),
            )
        return V2PairSnapshot(
            pair=to_checksum_address(pair_address),
            token0=to_checksum_address(token0),
            token1=to_checksum_address(token1),
            reserve0=int(reserves[0]),
            reserve1=int(reserves[1]),
            total_supply=int(total_supply),
            balance=balance,
        )

    # Generation 2

    async def v3_get_pool(self, token_a: str, token_b: str, fee: int) -> str | None:
        async with web3_from_chain_id(self.chain_id) as w3:
            factory = w3.eth.contract(
                address=self._address(UNISWAP_V3_FACTORY, "v3 factory"),
                abi=UNISWAP_V3_FACTORY_ABI,
            )
            pool = await self._call(
                factory.functions.getPool(
                    to_checksum_address(token_a),
                    to_checksum_address(token_b),
                    int(fee),
                ),
                "getPool",
            )
        return _non_zero_address(pool)

    async def v3_slot0(self, pool_address: str) -> tuple[int, int]:
        async with web3_from_chain_id(self.chain_id) as w3:
            pool = w3.eth.contract(
                address=to_checksum_address(pool_address), abi=UNISWAP_V3_POOL_ABI
            )
            slot0 = await self._call(pool.functions.slot0(), "slot0")
        return int(slot0[0]), int(slot0[1])

    async def v3_pool_liquidity(self, pool_address: str) -> int:
        async with web3_from_chain_id(self.chain_id) as w3:
            pool = w3.eth.contract(
                address=to_checksum_address(pool_address), abi=UNISWAP_V3_POOL_ABI
            )
            return int(await self._call(pool.functions.liquidity(), "liquidity"))

    async def v3_position_snapshots(self, owner: str) -> list[V3PositionSnapshot]:
        owner = to_checksum_address(owner)
        async with web3_from_chain_id(self.chain_id) as w3:
            npm = w3.eth.contract(
                address=self._address(UNISWAP_V3_NPM, "v3 position manager"),
                abi=NONFUNGIBLE_POSITION_MANAGER_ABI,
            )
            count = int(await self._call(npm.functions.balanceOf(owner), "balanceOf"))
            if count <= 0:
                return []
            token_ids = await asyncio.gather(
                *(
                    self._call(
                        npm.functions.tokenOfOwnerByIndex(owner, i),
                        "tokenOfOwnerByIndex",
                    )
                    for i in range(count)
                )
            )
            raws = await asyncio.gather(
                *(
                    self._call(npm.functions.positions(int(t)), "positions")
                    for t in token_ids
                )
            )

        async def pool_state(
            key: tuple[str, str, int],
        ) -> tuple[tuple[str, str, int], tuple[str, int, int] | None]:
            pool = await self.v3_get_pool(*key)
            if pool is None:
                logger.warning(f"No v3 pool for {key}; skipping its positions")
                return key, None
            sqrt_price_x96, tick = await self.v3_slot0(pool)
            return key, (pool, sqrt_price_x96, tick)

        pool_keys = {(r[2].lower(), r[3].lower(), int(r[4])) for r in raws}
        pools = {
            key: state
            for key, state in await asyncio.gather(*(pool_state(k) for k in pool_keys))
            if state is not None
        }

        snapshots: list[V3PositionSnapshot] = []
        for token_id, raw in zip(token_ids, raws, strict=True):
            key = (raw[2].lower(), raw[3].lower(), int(raw[4]))
            if key not in pools:
                continue
            pool, sqrt_price_x96, tick = pools[key]
            snapshots.append(
                V3PositionSnapshot(
                    token_id=int(token_id),
                    token0=to_checksum_address(raw[2]),
                    token1=to_checksum_address(raw[3]),
                    fee=int(raw[4]),
                    tick_lower=int(raw[5]),
                    tick_upper=int(raw[6]),
                    liquidity=int(raw[7]),
                    tokens_owed0=int(raw[10]),
                    tokens_owed1=int(raw[11]),
                    sqrt_price_x96=sqrt_price_x96,
                    tick=tick,
                    pool=pool,
                )
            )
        return snapshots

    # Generation 3

    async def v4_slot0(self, pool_id: str) -> tuple[int, int]:
        async with web3_from_chain_id(self.chain_id) as w3:
            view = w3.eth.contract(
                address=self._address(UNISWAP_V4_STATE_VIEW, "v4 state view"),
                abi=STATE_VIEW_ABI,
            )
            slot0 = await self._call(view.functions.getSlot0(_bytes32(pool_id)), "getSlot0")
        return int(slot0[0]), int(slot0[1])

    async def v4_pool_liquidity(self, pool_id: str) -> int:
        async with web3_from_chain_id(self.chain_id) as w3:
            view = w3.eth.contract(
                address=self._address(UNISWAP_V4_STATE_VIEW, "v4 state view"),
                abi=STATE_VIEW_ABI,
            )
            return int(
                await self._call(view.functions.getLiquidity(_bytes32(pool_id)), "getLiquidity")
            )

    async def v4_position_snapshot(self, token_id: int) -> V4PositionSnapshot | None:
        posm_address = self._address(UNISWAP_V4_POSITION_MANAGER, "v4 position manager")
        async with web3_from_chain_id(self.chain_id) as w3:
            posm = w3.eth.contract(address=posm_address, abi=POSITION_MANAGER_ABI)
            view = w3.eth.contract(
                address=self._address(UNISWAP_V4_STATE_VIEW, "v4 state view"),
                abi=STATE_VIEW_ABI,
            )
            (raw_key, info), liquidity = await asyncio.gather(
                self._call(
                    posm.functions.getPoolAndPositionInfo(int(token_id)),
                    "getPoolAndPositionInfo",
                ),
                self._call(
                    posm.functions.getPositionLiquidity(int(token_id)),
                    "getPositionLiquidity",
                ),
            )
            # Unminted or burned ids come back with an empty pool key.
            if int(raw_key[3]) == 0:
                return None
            key = PoolKey(
                token0=to_checksum_address(raw_key[0]),
                token1=to_checksum_address(raw_key[1]),
                fee=int(raw_key[2]),
                tick_spacing=int(raw_key[3]),
                hooks=to_checksum_address(raw_key[4]),
            )
            tick_lower, tick_upper = decode_position_info(int(info))
            pool_id = _bytes32(compute_pool_id(key))
            position_key = _bytes32(
                v4_position_key(posm_address, tick_lower, tick_upper, int(token_id))
            )
            slot0, growth_inside, position_info = await asyncio.gather(
                self._call(view.functions.getSlot0(pool_id), "getSlot0"),
                self._call(
                    view.functions.getFeeGrowthInside(pool_id, tick_lower, tick_upper),
                    "getFeeGrowthInside",
                ),
                self._call(
                    view.functions.getPositionInfo(pool_id, position_key),
                    "getPositionInfo",
                ),
            )
        return V4PositionSnapshot(
            token_id=int(token_id),
            pool_key=key,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=int(liquidity),
            sqrt_price_x96=int(slot0[0]),
            tick=int(slot0[1]),
            fee_growth_inside0=int(growth_inside[0]),
            fee_growth_inside1=int(growth_inside[1]),
            fee_growth_inside0_last=int(position_info[1]),
            fee_growth_inside1_last=int(position_info[2]),
        )

    # Events

    def _swap_filter(self, version: ProtocolVersion, pool: str) -> dict[str, Any]:
        match version:
            case ProtocolVersion.V2:
                return {"address": to_checksum_address(pool), "topics": [V2_SWAP_TOPIC0]}
            case ProtocolVersion.V3:
                return {"address": to_checksum_address(pool), "topics": [V3_SWAP_TOPIC0]}
            case ProtocolVersion.V4:
                _bytes32(pool)
                return {
                    "address": self._address(UNISWAP_V4_POOL_MANAGER, "v4 pool manager"),
                    "topics": [V4_SWAP_TOPIC0, pool.lower()],
                }
            case _:
                assert_never(version)

    async def swap_logs(
        self,
        version: ProtocolVersion,
        pool: str,
        from_block: int,
        to_block: int,
    ) -> LogScanResult:
        """Swap deltas over ``[from_block, to_block]``; ``pool`` is a pool id for v4."""
        log_filter = self._swap_filter(version, pool)
        async with web3_from_chain_id(self.chain_id) as w3:

            async def fetch(start: int, end: int) -> list[Any]:
                return await w3.eth.get_logs(
                    {**log_filter, "fromBlock": start, "toBlock": end}
                )

            scan = await scan_logs(fetch, from_block, to_block)

        swaps = [decode_swap_amounts(version, log) for log in scan.logs]
        return LogScanResult(logs=swaps, failed_ranges=scan.failed_ranges)

    async def close(self) -> None:
        await self._cache.close()
