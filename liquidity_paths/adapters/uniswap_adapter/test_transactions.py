from __future__ import annotations

import pytest
from eth_abi import decode as abi_decode
from eth_utils import to_checksum_address

from liquidity_paths.adapters.uniswap_adapter.transactions import TransactionBuilder
from liquidity_paths.core.constants import MAX_UINT128, MAX_UINT160, MAX_UINT256
from liquidity_paths.core.constants.contracts import (
    PERMIT2,
    UNISWAP_V2_ROUTER,
    UNISWAP_V3_NPM,
    UNISWAP_V3_SWAP_ROUTER,
    UNISWAP_V4_POSITION_MANAGER,
    UNIVERSAL_ROUTER,
)
from liquidity_paths.core.constants.erc20_abi import ERC20_ABI
from liquidity_paths.core.constants.uniswap_v2_abi import UNISWAP_V2_ROUTER_ABI
from liquidity_paths.core.constants.uniswap_v3_abi import (
    NONFUNGIBLE_POSITION_MANAGER_ABI,
    SWAP_ROUTER_02_ABI,
)
from liquidity_paths.core.constants.uniswap_v4_abi import (
    PERMIT2_ABI,
    POSITION_MANAGER_ABI,
    UNIVERSAL_ROUTER_ABI,
)
from liquidity_paths.core.errors import (
    MissingParameterError,
    UnsupportedFeeTierError,
    ValidationError,
)
from liquidity_paths.core.utils.price_math import Q96
from liquidity_paths.core.utils.transaction import decode_function_data
from liquidity_paths.core.utils.v4_actions import (
    POOL_KEY_TYPE,
    V4Action,
    decode_unlock_data,
)

CHAIN = 8453
NOW = 1_700_000_000
DEADLINE = NOW + 1200
OWNER = "0xaAaAaAaaAaAaAaaAaAAAAAAAAaaaAaAaAaaAaaAa"
TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x3333333333333333333333333333333333333333"


@pytest.fixture
def builder() -> TransactionBuilder:
    return TransactionBuilder(CHAIN, slippage_pct=0.5, clock=lambda: NOW + 0.9)


def _to(table: dict[int, str]) -> str:
    return to_checksum_address(table[CHAIN])


def _unlock(tx) -> tuple[list[V4Action], list[bytes]]:
    assert tx.to == _to(UNISWAP_V4_POSITION_MANAGER)
    unlock, deadline = decode_function_data(
        POSITION_MANAGER_ABI, "modifyLiquidities", tx.data
    )
    assert deadline == DEADLINE
    return decode_unlock_data(unlock)


def _lower(values) -> list:
    return [v.lower() if isinstance(v, str) else v for v in values]


class TestApprovals:
    def test_approve_defaults_to_max(self, builder):
        tx = builder.approve(TOKEN_A, OWNER)
        assert tx.to == TOKEN_A
        spender, amount = decode_function_data(ERC20_ABI, "approve", tx.data)
        assert spender.lower() == OWNER.lower()
        assert amount == MAX_UINT256

    def test_approve_rejects_negative(self, builder):
        with pytest.raises(ValidationError):
            builder.approve(TOKEN_A, OWNER, -1)

    def test_permit2_approve(self, builder):
        tx = builder.permit2_approve(TOKEN_A, _to(UNIVERSAL_ROUTER))
        assert tx.to == PERMIT2
        token, spender, amount, expiration = decode_function_data(
            PERMIT2_ABI, "approve", tx.data
        )
        assert token.lower() == TOKEN_A
        assert spender.lower() == UNIVERSAL_ROUTER[CHAIN].lower()
        assert amount == MAX_UINT160
        assert expiration == 2**48 - 1

    def test_permit2_amount_range(self, builder):
        with pytest.raises(ValidationError, match="uint160"):
            builder.permit2_approve(TOKEN_A, OWNER, MAX_UINT160 + 1)


class TestSwap:
    def test_v2_route(self, builder):
        tx = builder.swap(
            "v2",
            token_in=TOKEN_A,
            token_out=TOKEN_B,
            amount_in=10**6,
            expected_out=10**6,
            recipient=OWNER,
        )
        assert tx.to == _to(UNISWAP_V2_ROUTER)
        amount_in, min_out, path, recipient, deadline = decode_function_data(
            UNISWAP_V2_ROUTER_ABI, "swapExactTokensForTokens", tx.data
        )
        assert (amount_in, min_out, deadline) == (10**6, 995_000, DEADLINE)
        assert _lower(path) == [TOKEN_A, TOKEN_B]
        assert recipient.lower() == OWNER.lower()

    def test_v3_exact_input_single(self, builder):
        tx = builder.swap(
            "v3",
            token_in=TOKEN_B,
            token_out=TOKEN_A,
            amount_in=10**6,
            expected_out=2 * 10**6,
            recipient=OWNER,
            fee=500,
            slippage_pct=1.0,
        )
        assert tx.to == _to(UNISWAP_V3_SWAP_ROUTER)
        (params,) = decode_function_data(SWAP_ROUTER_02_ABI, "exactInputSingle", tx.data)
        assert _lower(params) == [
            TOKEN_B,
            TOKEN_A,
            500,
            OWNER.lower(),
            10**6,
            1_980_000,
            0,
        ]

    def test_v4_universal_router(self, builder):
        tx = builder.swap(
            "v4",
            token_in=TOKEN_B,
            token_out=TOKEN_A,
            amount_in=10**6,
            expected_out=10**6,
            recipient=OWNER,
            fee=3000,
        )
        assert tx.to == _to(UNIVERSAL_ROUTER)
        commands, inputs, deadline = decode_function_data(
            UNIVERSAL_ROUTER_ABI, "execute", tx.data
        )
        assert commands == bytes([0x10])
        assert deadline == DEADLINE
        actions, params = decode_unlock_data(inputs[0])
        assert actions == [
            V4Action.SWAP_EXACT_IN_SINGLE,
            V4Action.SETTLE_ALL,
            V4Action.TAKE_ALL,
        ]
        key, zero_for_one, amount_in, min_out, _ = abi_decode(
            [POOL_KEY_TYPE, "bool", "uint128", "uint128", "bytes"], params[0]
        )
        assert _lower(key[:2]) == [TOKEN_A, TOKEN_B]
        assert zero_for_one is False
        assert (amount_in, min_out) == (10**6, 995_000)
        settle_token, settle_amount = abi_decode(["address", "uint256"], params[1])
        assert (settle_token.lower(), settle_amount) == (TOKEN_B, 10**6)
        take_token, take_min = abi_decode(["address", "uint256"], params[2])
        assert (take_token.lower(), take_min) == (TOKEN_A, 995_000)

    def test_rejects_unknown_fee_tier(self, builder):
        with pytest.raises(UnsupportedFeeTierError):
            builder.swap(
                "v3",
                token_in=TOKEN_A,
                token_out=TOKEN_B,
                amount_in=1,
                expected_out=1,
                recipient=OWNER,
                fee=1234,
            )

    def test_rejects_zero_amount(self, builder):
        with pytest.raises(ValidationError, match="amount_in"):
            builder.swap(
                "v2",
                token_in=TOKEN_A,
                token_out=TOKEN_B,
                amount_in=0,
                expected_out=1,
                recipient=OWNER,
            )

    def test_missing_deployment(self):
        builder = TransactionBuilder(1, slippage_pct=0.5)
        with pytest.raises(ValidationError, match="No v2 router deployment"):
            builder.swap(
                "v2",
                token_in=TOKEN_A,
                token_out=TOKEN_B,
                amount_in=1,
                expected_out=1,
                recipient=OWNER,
            )


class TestCreatePool:
    def test_v2_is_rejected(self, builder):
        with pytest.raises(ValidationError):
            builder.create_pool(
                "v2", token_a=TOKEN_A, token_b=TOKEN_B, fee=3000, sqrt_price_x96=Q96
            )

    def test_v3_sorts_tokens(self, builder):
        tx = builder.create_pool(
            "v3", token_a=TOKEN_B, token_b=TOKEN_A, fee=3000, sqrt_price_x96=Q96
        )
        assert tx.to == _to(UNISWAP_V3_NPM)
        decoded = decode_function_data(
            NONFUNGIBLE_POSITION_MANAGER_ABI,
            "createAndInitializePoolIfNecessary",
            tx.data,
        )
        assert _lower(decoded) == [TOKEN_A, TOKEN_B, 3000, Q96]

    def test_v4_initialize(self, builder):
        tx = builder.create_pool(
            "v4", token_a=TOKEN_A, token_b=TOKEN_B, fee=30000, sqrt_price_x96=Q96
        )
        key, sqrt_price = decode_function_data(
            POSITION_MANAGER_ABI, "initializePool", tx.data
        )
        assert key[2:4] == (30000, 200)
        assert sqrt_price == Q96


class TestMintPosition:
    def test_v3_flips_amounts_and_ticks(self, builder):
        tx = builder.mint_position(
            "v3",
            token_a=TOKEN_B,
            token_b=TOKEN_A,
            amount_a_desired=10,
            amount_b_desired=20_000,
            recipient=OWNER,
            tick_lower=-600,
            tick_upper=1200,
        )
        (params,) = decode_function_data(NONFUNGIBLE_POSITION_MANAGER_ABI, "mint", tx.data)
        assert _lower(params) == [
            TOKEN_A,
            TOKEN_B,
            3000,
            -1200,
            600,
            20_000,
            10,
            19_900,
            9,
            OWNER.lower(),
            DEADLINE,
        ]

    def test_v3_defaults_to_full_range(self, builder):
        tx = builder.mint_position(
            "v3",
            token_a=TOKEN_A,
            token_b=TOKEN_B,
            amount_a_desired=1,
            amount_b_desired=1,
            recipient=OWNER,
        )
        (params,) = decode_function_data(NONFUNGIBLE_POSITION_MANAGER_ABI, "mint", tx.data)
        assert params[3:5] == (-887220, 887220)

    def test_v2_add_liquidity(self, builder):
        tx = builder.mint_position(
            "v2",
            token_a=TOKEN_A,
            token_b=TOKEN_B,
            amount_a_desired=1000,
            amount_b_desired=2000,
            recipient=OWNER,
        )
        decoded = decode_function_data(UNISWAP_V2_ROUTER_ABI, "addLiquidity", tx.data)
        assert _lower(decoded) == [
            TOKEN_A,
            TOKEN_B,
            1000,
            2000,
            995,
            1990,
            OWNER.lower(),
            DEADLINE,
        ]

    def test_v4_needs_liquidity_or_price(self, builder):
        with pytest.raises(MissingParameterError) as exc_info:
            builder.mint_position(
                "v4",
                token_a=TOKEN_A,
                token_b=TOKEN_B,
                amount_a_desired=10**18,
                amount_b_desired=10**18,
                recipient=OWNER,
            )
        assert exc_info.value.parameter == "liquidity"

    def test_v4_mint_sequence(self, builder):
        tx = builder.mint_position(
            "v4",
            token_a=TOKEN_A,
            token_b=TOKEN_B,
            amount_a_desired=10**18,
            amount_b_desired=10**18,
            recipient=OWNER,
            tick_lower=-600,
            tick_upper=600,
            sqrt_price_x96=Q96,
        )
        actions, params = _unlock(tx)
        assert actions == [
            V4Action.MINT_POSITION,
            V4Action.CLOSE_CURRENCY,
            V4Action.CLOSE_CURRENCY,
        ]
        decoded = abi_decode(
            [POOL_KEY_TYPE, "int24", "int24", "uint256", "uint128", "uint128", "address", "bytes"],
            params[0],
        )
        assert decoded[1:3] == (-600, 600)
        assert decoded[3] > 0
        assert decoded[4:6] == (10**18, 10**18)

    def test_rejects_zero_amounts(self, builder):
        with pytest.raises(ValidationError, match="At least one"):
            builder.mint_position(
                "v3",
                token_a=TOKEN_A,
                token_b=TOKEN_B,
                amount_a_desired=0,
                amount_b_desired=0,
                recipient=OWNER,
            )


class TestIncreaseLiquidity:
    def test_v3(self, builder):
        tx = builder.increase_liquidity("v3-42", 1000, 2000)
        (params,) = decode_function_data(
            NONFUNGIBLE_POSITION_MANAGER_ABI, "increaseLiquidity", tx.data
        )
        assert params == (42, 1000, 2000, 995, 1990, DEADLINE)

    def test_v4_sequence(self, builder):
        tx = builder.increase_liquidity(
            "v4-7", 1000, 2000, currency0=TOKEN_A, currency1=TOKEN_B, liquidity=5000
        )
        actions, params = _unlock(tx)
        assert [int(a) for a in actions] == [0x00, 0x12, 0x12]
        assert abi_decode(
            ["uint256", "uint256", "uint128", "uint128", "bytes"], params[0]
        ) == (7, 5000, 1000, 2000, b"")
        assert abi_decode(["address"], params[1])[0].lower() == TOKEN_A
        assert abi_decode(["address"], params[2])[0].lower() == TOKEN_B

    def test_v4_requires_currencies(self, builder):
        with pytest.raises(MissingParameterError) as exc_info:
            builder.increase_liquidity("v4-7", 1, 1, currency1=TOKEN_B, liquidity=1)
        assert exc_info.value.parameter == "currency0"

    def test_v4_requires_liquidity(self, builder):
        with pytest.raises(MissingParameterError, match="liquidity"):
            builder.increase_liquidity(
                "v4-7", 1, 1, currency0=TOKEN_A, currency1=TOKEN_B
            )

    def test_v4_derives_liquidity_from_price(self, builder):
        tx = builder.increase_liquidity(
            "v4-7",
            10**18,
            10**18,
            currency0=TOKEN_A,
            currency1=TOKEN_B,
            sqrt_price_x96=Q96,
            tick_lower=-600,
            tick_upper=600,
        )
        _, params = _unlock(tx)
        liquidity = abi_decode(
            ["uint256", "uint256", "uint128", "uint128", "bytes"], params[0]
        )[1]
        assert liquidity > 10**18

    def test_v2_requires_recipient(self, builder):
        with pytest.raises(MissingParameterError, match="recipient"):
            builder.increase_liquidity(
                f"v2-{TOKEN_A}", 1, 1, currency0=TOKEN_A, currency1=TOKEN_B
            )


class TestDecreaseLiquidity:
    def test_v3_display_liquidity_at_half(self, builder):
        tx = builder.decrease_liquidity("v3-42", 50, "123456789 liquidity")
        (params,) = decode_function_data(
            NONFUNGIBLE_POSITION_MANAGER_ABI, "decreaseLiquidity", tx.data
        )
        assert params == (42, 61728394, 0, 0, DEADLINE)

    def test_expected_amounts_set_minimums(self, builder):
        tx = builder.decrease_liquidity(
            "v3-42", 100, 1000, expected_amount0=1000, expected_amount1=2000
        )
        (params,) = decode_function_data(
            NONFUNGIBLE_POSITION_MANAGER_ABI, "decreaseLiquidity", tx.data
        )
        assert params[1:4] == (1000, 995, 1990)

    def test_v4_sequence(self, builder):
        tx = builder.decrease_liquidity(
            "v4-7",
            25,
            4000,
            currency0=TOKEN_A,
            currency1=TOKEN_B,
            recipient=OWNER,
        )
        actions, params = _unlock(tx)
        assert [int(a) for a in actions] == [0x01, 0x11]
        assert abi_decode(
            ["uint256", "uint256", "uint128", "uint128", "bytes"], params[0]
        ) == (7, 1000, 0, 0, b"")
        take = abi_decode(["address", "address", "address"], params[1])
        assert _lower(take) == [TOKEN_A, TOKEN_B, OWNER.lower()]

    def test_v4_requires_recipient(self, builder):
        with pytest.raises(MissingParameterError) as exc_info:
            builder.decrease_liquidity(
                "v4-7", 25, 4000, currency0=TOKEN_A, currency1=TOKEN_B
            )
        assert exc_info.value.parameter == "recipient"
        assert exc_info.value.operation == "v4 decrease liquidity"

    def test_v2_remove_liquidity(self, builder):
        tx = builder.decrease_liquidity(
            f"v2-{TOKEN_A}",
            100,
            5000,
            currency0=TOKEN_A,
            currency1=TOKEN_B,
            recipient=OWNER,
        )
        decoded = decode_function_data(UNISWAP_V2_ROUTER_ABI, "removeLiquidity", tx.data)
        assert _lower(decoded) == [
            TOKEN_A,
            TOKEN_B,
            5000,
            0,
            0,
            OWNER.lower(),
            DEADLINE,
        ]

    @pytest.mark.parametrize("pct,liquidity", [(0, 1000), (50, 1), (50, "0 liquidity")])
    def test_nothing_to_remove(self, builder, pct, liquidity):
        with pytest.raises(ValidationError):
            builder.decrease_liquidity("v3-42", pct, liquidity)


class TestBurnAndCollect:
    def test_v3_burn(self, builder):
        tx = builder.burn_position("v3-42")
        assert decode_function_data(
            NONFUNGIBLE_POSITION_MANAGER_ABI, "burn", tx.data
        ) == (42,)

    def test_v4_burn_sequence(self, builder):
        tx = builder.burn_position(
            "v4-7", currency0=TOKEN_A, currency1=TOKEN_B, recipient=OWNER
        )
        actions, params = _unlock(tx)
        assert [int(a) for a in actions] == [0x03, 0x11]
        assert abi_decode(["uint256", "uint128", "uint128", "bytes"], params[0]) == (
            7,
            0,
            0,
            b"",
        )

    def test_v3_collect(self, builder):
        tx = builder.collect_fees("v3-42", recipient=OWNER)
        (params,) = decode_function_data(
            NONFUNGIBLE_POSITION_MANAGER_ABI, "collect", tx.data
        )
        assert _lower(params) == [42, OWNER.lower(), MAX_UINT128, MAX_UINT128]

    def test_v4_collect_is_zero_decrease(self, builder):
        tx = builder.collect_fees(
            "v4-7", currency0=TOKEN_A, currency1=TOKEN_B, recipient=OWNER
        )
        actions, params = _unlock(tx)
        assert [int(a) for a in actions] == [0x01, 0x11]
        assert abi_decode(
            ["uint256", "uint256", "uint128", "uint128", "bytes"], params[0]
        ) == (7, 0, 0, 0, b"")

    def test_v4_collect_requires_currencies(self, builder):
        with pytest.raises(MissingParameterError, match="currency0"):
            builder.collect_fees("v4-7", recipient=OWNER)

    def test_v2_burn_and_collect_rejected(self, builder):
        with pytest.raises(ValidationError, match="remove liquidity"):
            builder.burn_position(f"v2-{TOKEN_A}")
        with pytest.raises(ValidationError, match="cannot be collected"):
            builder.collect_fees(f"v2-{TOKEN_A}", recipient=OWNER)


class TestTransferPosition:
    def test_v3_safe_transfer(self, builder):
        tx = builder.transfer_position("v3-42", TOKEN_B, from_address=OWNER)
        assert tx.to == _to(UNISWAP_V3_NPM)
        assert tx.data.startswith("0x42842e0e")
        assert _lower(
            decode_function_data(
                NONFUNGIBLE_POSITION_MANAGER_ABI, "safeTransferFrom", tx.data
            )
        ) == [OWNER.lower(), TOKEN_B, 42]

    def test_v4_targets_position_manager(self, builder):
        tx = builder.transfer_position("v4-7", TOKEN_B, from_address=OWNER.lower())
        assert tx.to == _to(UNISWAP_V4_POSITION_MANAGER)
        sender, recipient, token_id = decode_function_data(
            POSITION_MANAGER_ABI, "safeTransferFrom", tx.data
        )
        assert sender == OWNER
        assert (recipient.lower(), token_id) == (TOKEN_B, 7)

    def test_rejects_zero_address(self, builder):
        with pytest.raises(ValidationError, match="zero address"):
            builder.transfer_position(
                "v3-42", "0x0000000000000000000000000000000000000000", from_address=OWNER
            )

    def test_requires_sender(self, builder):
        with pytest.raises(MissingParameterError):
            builder.transfer_position("v3-42", TOKEN_B)

    def test_v2_rejected(self, builder):
        with pytest.raises(ValidationError, match="LP tokens"):
            builder.transfer_position(f"v2-{TOKEN_A}", TOKEN_B, from_address=OWNER)
