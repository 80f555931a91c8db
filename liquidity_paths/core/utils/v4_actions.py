"""Packed action encoding for the v4 PositionManager and UniversalRouter.

``modifyLiquidities(unlockData, deadline)`` takes
``unlockData = abi.encode(bytes actions, bytes[] params)`` where ``actions`` is
one byte per opcode and ``params[i]`` is the ABI-encoded tuple for opcode i.
The PositionManager runs the opcodes in order against its delta ledger, so
the order is part of the encoding contract.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import IntEnum

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import to_checksum_address

from liquidity_paths.core.adapters.models import PoolKey

POOL_KEY_TYPE = "(address,address,uint24,int24,address)"

# UniversalRouter command byte for a v4 swap
COMMAND_V4_SWAP = 0x10


class V4Action(IntEnum):
    """v4-periphery Actions.sol opcodes."""

    INCREASE_LIQUIDITY = 0x00
    DECREASE_LIQUIDITY = 0x01
    MINT_POSITION = 0x02
    BURN_POSITION = 0x03
    SWAP_EXACT_IN_SINGLE = 0x06
    SETTLE = 0x0B
    SETTLE_ALL = 0x0C
    SETTLE_PAIR = 0x0D
    TAKE = 0x0E
    TAKE_ALL = 0x0F
    TAKE_PAIR = 0x11
    CLOSE_CURRENCY = 0x12
    CLEAR_OR_TAKE = 0x13
    SWEEP = 0x14


ActionStep = tuple[V4Action, bytes]


def encode_unlock_data(steps: Sequence[ActionStep]) -> bytes:
    actions = bytes(int(action) for action, _ in steps)
    params = [bytes(p) for _, p in steps]
    return abi_encode(["bytes", "bytes[]"], [actions, params])


def decode_unlock_data(data: bytes) -> tuple[list[V4Action], list[bytes]]:
    actions, params = abi_decode(["bytes", "bytes[]"], bytes(data))
    return [V4Action(b) for b in actions], list(params)


def increase_liquidity_params(
    token_id: int,
    liquidity: int,
    amount0_max: int,
    amount1_max: int,
    hook_data: bytes = b"",
) -> bytes:
    return abi_encode(
        ["uint256", "uint256", "uint128", "uint128", "bytes"],
        [int(token_id), int(liquidity), int(amount0_max), int(amount1_max), hook_data],
    )


def decrease_liquidity_params(
    token_id: int,
    liquidity: int,
    amount0_min: int,
    amount1_min: int,
    hook_data: bytes = b"",
) -> bytes:
    return abi_encode(
        ["uint256", "uint256", "uint128", "uint128", "bytes"],
        [int(token_id), int(liquidity), int(amount0_min), int(amount1_min), hook_data],
    )


def burn_position_params(
    token_id: int, amount0_min: int, amount1_min: int, hook_data: bytes = b""
) -> bytes:
    return abi_encode(
        ["uint256", "uint128", "uint128", "bytes"],
        [int(token_id), int(amount0_min), int(amount1_min), hook_data],
    )


def mint_position_params(
    key: PoolKey,
    *,
    tick_lower: int,
    tick_upper: int,
    liquidity: int,
    amount0_max: int,
    amount1_max: int,
    owner: str,
    hook_data: bytes = b"",
) -> bytes:
    return abi_encode(
        [
            POOL_KEY_TYPE,
            "int24",
            "int24",
            "uint256",
            "uint128",
            "uint128",
            "address",
            "bytes",
        ],
        [
            key.as_tuple(),
            int(tick_lower),
            int(tick_upper),
            int(liquidity),
            int(amount0_max),
            int(amount1_max),
            to_checksum_address(owner),
            hook_data,
        ],
    )


def close_currency_params(currency: str) -> bytes:
    return abi_encode(["address"], [to_checksum_address(currency)])


def take_pair_params(currency0: str, currency1: str, recipient: str) -> bytes:
    return abi_encode(
        ["address", "address", "address"],
        [
            to_checksum_address(currency0),
            to_checksum_address(currency1),
            to_checksum_address(recipient),
        ],
    )


def swap_exact_in_single_params(
    key: PoolKey,
    *,
    zero_for_one: bool,
    amount_in: int,
    amount_out_minimum: int,
    hook_data: bytes = b"",
) -> bytes:
    return abi_encode(
        [POOL_KEY_TYPE, "bool", "uint128", "uint128", "bytes"],
        [
            key.as_tuple(),
            bool(zero_for_one),
            int(amount_in),
            int(amount_out_minimum),
            hook_data,
        ],
    )


def settle_all_params(currency: str, max_amount: int) -> bytes:
    return abi_encode(["address", "uint256"], [to_checksum_address(currency), int(max_amount)])


def take_all_params(currency: str, min_amount: int) -> bytes:
    return abi_encode(["address", "uint256"], [to_checksum_address(currency), int(min_amount)])
