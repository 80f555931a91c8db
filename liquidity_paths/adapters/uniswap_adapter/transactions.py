"""Unsigned transaction construction for every supported pool generation.

v2 and v3 operations are single typed calls (router or position manager).
v4 liquidity operations are packed action sequences passed to
``PositionManager.modifyLiquidities`` and v4 swaps go through the
UniversalRouter. Nothing here touches the network; the caller signs and
sends the returned ``Transaction``.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import assert_never

from liquidity_paths.core.adapters.models import PoolKey, ProtocolVersion, Transaction
from liquidity_paths.core.config import get_default_slippage_pct
from liquidity_paths.core.constants import (
    MAX_UINT48,
    MAX_UINT128,
    MAX_UINT160,
    MAX_UINT256,
    ZERO_ADDRESS,
)
from liquidity_paths.core.constants.chains import CHAIN_ID_BASE
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
from liquidity_paths.core.errors import MissingParameterError, ValidationError
from liquidity_paths.core.utils.pool_identity import (
    build_pool_key,
    get_tick_range,
    is_swapped,
    parse_position_id,
    parse_version,
    sort_tokens,
    tick_spacing_for_fee,
    validate_address,
)
from liquidity_paths.core.utils.price_math import (
    liquidity_for_amounts,
    round_tick_to_spacing,
    sqrt_price_x96_from_tick,
)
from liquidity_paths.core.utils.transaction import encode_call
from liquidity_paths.core.utils.units import (
    deadline,
    parse_display_liquidity,
    scale_by_percentage,
    slippage_min,
    validate_percentage,
)
from liquidity_paths.core.utils.v4_actions import (
    COMMAND_V4_SWAP,
    ActionStep,
    V4Action,
    burn_position_params,
    close_currency_params,
    decrease_liquidity_params,
    encode_unlock_data,
    increase_liquidity_params,
    mint_position_params,
    settle_all_params,
    swap_exact_in_single_params,
    take_all_params,
    take_pair_params,
)

V2_FEE = 3000


def _require(operation: str, **params: str | None) -> dict[str, str]:
    """Checksum every named address, raising for the first one missing."""
    resolved: dict[str, str] = {}
    for name, value in params.items():
        if value is None or value == "":
            raise MissingParameterError(name, operation)
        resolved[name] = validate_address(value, name)
    return resolved


def _positive(value: int, field: str) -> int:
    value = int(value)
    if value <= 0:
        raise ValidationError(f"{field} must be positive, got {value}")
    return value


def _non_negative(value: int, field: str) -> int:
    value = int(value)
    if value < 0:
        raise ValidationError(f"{field} must be non-negative, got {value}")
    return value


def _range_ticks(
    tick_lower: int | None, tick_upper: int | None, spacing: int
) -> tuple[int, int]:
    min_tick, max_tick = get_tick_range(spacing)
    if tick_lower is None or tick_upper is None:
        return min_tick, max_tick
    lower = max(round_tick_to_spacing(int(tick_lower), spacing), min_tick)
    upper = min(round_tick_to_spacing(int(tick_upper), spacing), max_tick)
    if upper <= lower:
        upper = lower + spacing
    return lower, upper


@dataclass(frozen=True)
class _RangeMint:
    """Concentrated mint inputs normalized to canonical token order."""

    key: PoolKey
    amount0: int
    amount1: int
    tick_lower: int
    tick_upper: int

    @classmethod
    def build(
        cls,
        version: ProtocolVersion,
        token_a: str,
        token_b: str,
        amount_a: int,
        amount_b: int,
        fee: int,
        tick_lower: int | None,
        tick_upper: int | None,
        tick_spacing: int | None,
        hooks: str,
    ) -> _RangeMint:
        key = build_pool_key(
            token_a,
            token_b,
            fee,
            tick_spacing=tick_spacing,
            hooks=hooks,
            version=version,
        )
        amount0, amount1 = amount_a, amount_b
        if is_swapped(token_a, token_b):
            amount0, amount1 = amount1, amount0
            if tick_lower is not None and tick_upper is not None:
                tick_lower, tick_upper = -tick_upper, -tick_lower
        lower, upper = _range_ticks(tick_lower, tick_upper, key.tick_spacing)
        return cls(key, amount0, amount1, lower, upper)


class TransactionBuilder:
    """Builds ``Transaction`` values against one chain's deployments."""

    def __init__(
        self,
        chain_id: int = CHAIN_ID_BASE,
        *,
        slippage_pct: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.chain_id = int(chain_id)
        self.slippage_pct = validate_percentage(
            get_default_slippage_pct() if slippage_pct is None else slippage_pct,
            "slippage tolerance",
        )
        self._clock = clock

    def _contract(self, table: dict[int, str], name: str) -> str:
        address = table.get(self.chain_id)
        if address is None:
            raise ValidationError(f"No {name} deployment on chain {self.chain_id}")
        return address

    def _deadline(self) -> int:
        return deadline(now=self._clock())

    def _slippage(self, slippage_pct: float | None) -> float:
        if slippage_pct is None:
            return self.slippage_pct
        return validate_percentage(slippage_pct, "slippage tolerance")

    def _modify_liquidities(self, steps: list[ActionStep]) -> Transaction:
        return encode_call(
            target=self._contract(UNISWAP_V4_POSITION_MANAGER, "v4 position manager"),
            abi=POSITION_MANAGER_ABI,
            fn_name="modifyLiquidities",
            args=[encode_unlock_data(steps), self._deadline()],
        )

    # ------------------------------------------------------------------ #
    # Approvals                                                           #
    # ------------------------------------------------------------------ #

    def approve(
        self, token: str, spender: str, amount: int = MAX_UINT256
    ) -> Transaction:
        token = validate_address(token, "token")
        spender = validate_address(spender, "spender")
        return encode_call(
            target=token,
            abi=ERC20_ABI,
            fn_name="approve",
            args=[spender, _non_negative(amount, "amount")],
        )

    def permit2_approve(
        self,
        token: str,
        spender: str,
        amount: int = MAX_UINT160,
        expiration: int = MAX_UINT48,
    ) -> Transaction:
        """Permit2 sub-allowance so the v4 position manager or router can pull ``token``."""
        if not 0 <= int(amount) <= MAX_UINT160:
            raise ValidationError(f"Permit2 amount out of uint160 range: {amount}")
        if not 0 <= int(expiration) <= MAX_UINT48:
            raise ValidationError(f"Permit2 expiration out of uint48 range: {expiration}")
        return encode_call(
            target=PERMIT2,
            abi=PERMIT2_ABI,
            fn_name="approve",
            args=[
                validate_address(token, "token"),
                validate_address(spender, "spender"),
                int(amount),
                int(expiration),
            ],
        )

    # ------------------------------------------------------------------ #
    # Swaps                                                               #
    # ------------------------------------------------------------------ #

    def swap(
        self,
        version: ProtocolVersion | str,
        *,
        token_in: str,
        token_out: str,
        amount_in: int,
        expected_out: int,
        recipient: str,
        fee: int = V2_FEE,
        tick_spacing: int | None = None,
        hooks: str = ZERO_ADDRESS,
        slippage_pct: float | None = None,
        sqrt_price_limit_x96: int = 0,
    ) -> Transaction:
        version = parse_version(version)
        token_in = validate_address(token_in, "token_in")
        token_out = validate_address(token_out, "token_out")
        recipient = validate_address(recipient, "recipient")
        amount_in = _positive(amount_in, "amount_in")
        min_out = slippage_min(
            _non_negative(expected_out, "expected_out"), self._slippage(slippage_pct)
        )

        match version:
            case ProtocolVersion.V2:
                return encode_call(
                    target=self._contract(UNISWAP_V2_ROUTER, "v2 router"),
                    abi=UNISWAP_V2_ROUTER_ABI,
                    fn_name="swapExactTokensForTokens",
                    args=[
                        amount_in,
                        min_out,
                        [token_in, token_out],
                        recipient,
                        self._deadline(),
                    ],
                )
            case ProtocolVersion.V3:
                tick_spacing_for_fee(fee, version)
                params = (
                    token_in,
                    token_out,
                    int(fee),
                    recipient,
                    amount_in,
                    min_out,
                    int(sqrt_price_limit_x96),
                )
                return encode_call(
                    target=self._contract(UNISWAP_V3_SWAP_ROUTER, "v3 swap router"),
                    abi=SWAP_ROUTER_02_ABI,
                    fn_name="exactInputSingle",
                    args=[params],
                )
            case ProtocolVersion.V4:
                key = build_pool_key(
                    token_in, token_out, fee, tick_spacing=tick_spacing, hooks=hooks
                )
                steps: list[ActionStep] = [
                    (
                        V4Action.SWAP_EXACT_IN_SINGLE,
                        swap_exact_in_single_params(
                            key,
                            zero_for_one=not is_swapped(token_in, token_out),
                            amount_in=amount_in,
                            amount_out_minimum=min_out,
                        ),
                    ),
                    (V4Action.SETTLE_ALL, settle_all_params(token_in, amount_in)),
                    (V4Action.TAKE_ALL, take_all_params(token_out, min_out)),
                ]
                # The router sends TAKE_ALL output to msg.sender.
                return encode_call(
                    target=self._contract(UNIVERSAL_ROUTER, "universal router"),
                    abi=UNIVERSAL_ROUTER_ABI,
                    fn_name="execute",
                    args=[
                        bytes([COMMAND_V4_SWAP]),
                        [encode_unlock_data(steps)],
                        self._deadline(),
                    ],
                )
            case _:
                assert_never(version)

    # ------------------------------------------------------------------ #
    # Pool creation and new positions                                     #
    # ------------------------------------------------------------------ #

    def create_pool(
        self,
        version: ProtocolVersion | str,
        *,
        token_a: str,
        token_b: str,
        fee: int,
        sqrt_price_x96: int,
        tick_spacing: int | None = None,
        hooks: str = ZERO_ADDRESS,
    ) -> Transaction:
        """Initialize a pool at ``sqrt_price_x96`` (token1 per token0, sorted order)."""
        version = parse_version(version)
        sqrt_price_x96 = _positive(sqrt_price_x96, "sqrt_price_x96")

        match version:
            case ProtocolVersion.V2:
                raise ValidationError(
                    "v2 pairs are created by the first addLiquidity call"
                )
            case ProtocolVersion.V3:
                token0, token1 = sort_tokens(token_a, token_b)
                tick_spacing_for_fee(fee, version)
                return encode_call(
                    target=self._contract(UNISWAP_V3_NPM, "v3 position manager"),
                    abi=NONFUNGIBLE_POSITION_MANAGER_ABI,
                    fn_name="createAndInitializePoolIfNecessary",
                    args=[token0, token1, int(fee), sqrt_price_x96],
                )
            case ProtocolVersion.V4:
                key = build_pool_key(
                    token_a, token_b, fee, tick_spacing=tick_spacing, hooks=hooks
                )
                return encode_call(
                    target=self._contract(
                        UNISWAP_V4_POSITION_MANAGER, "v4 position manager"
                    ),
                    abi=POSITION_MANAGER_ABI,
                    fn_name="initializePool",
                    args=[key.as_tuple(), sqrt_price_x96],
                )
            case _:
                assert_never(version)

    def mint_position(
        self,
        version: ProtocolVersion | str,
        *,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        recipient: str,
        fee: int = V2_FEE,
        tick_lower: int | None = None,
        tick_upper: int | None = None,
        tick_spacing: int | None = None,
        hooks: str = ZERO_ADDRESS,
        sqrt_price_x96: int | None = None,
        liquidity: int | None = None,
        slippage_pct: float | None = None,
    ) -> Transaction:
        """Open a new position; v3/v4 ranges default to the full usable range.

        Amounts and ticks are in the caller's token order and are flipped when
        ``token_a`` is not the canonical token0.
        """
        version = parse_version(version)
        recipient = validate_address(recipient, "recipient")
        amount_a = _non_negative(amount_a_desired, "amount_a_desired")
        amount_b = _non_negative(amount_b_desired, "amount_b_desired")
        if amount_a == 0 and amount_b == 0:
            raise ValidationError("At least one desired amount must be positive")
        slippage = self._slippage(slippage_pct)

        match version:
            case ProtocolVersion.V2:
                return self._v2_add_liquidity(
                    validate_address(token_a, "token_a"),
                    validate_address(token_b, "token_b"),
                    amount_a,
                    amount_b,
                    recipient,
                    slippage,
                )
            case ProtocolVersion.V3:
                r = _RangeMint.build(
                    version,
                    token_a,
                    token_b,
                    amount_a,
                    amount_b,
                    fee,
                    tick_lower,
                    tick_upper,
                    tick_spacing,
                    hooks,
                )
                params = (
                    r.key.token0,
                    r.key.token1,
                    r.key.fee,
                    r.tick_lower,
                    r.tick_upper,
                    r.amount0,
                    r.amount1,
                    slippage_min(r.amount0, slippage),
                    slippage_min(r.amount1, slippage),
                    recipient,
                    self._deadline(),
                )
                return encode_call(
                    target=self._contract(UNISWAP_V3_NPM, "v3 position manager"),
                    abi=NONFUNGIBLE_POSITION_MANAGER_ABI,
                    fn_name="mint",
                    args=[params],
                )
            case ProtocolVersion.V4:
                r = _RangeMint.build(
                    version,
                    token_a,
                    token_b,
                    amount_a,
                    amount_b,
                    fee,
                    tick_lower,
                    tick_upper,
                    tick_spacing,
                    hooks,
                )
                liquidity = self._v4_liquidity(
                    "v4 mint",
                    liquidity,
                    sqrt_price_x96,
                    r.tick_lower,
                    r.tick_upper,
                    r.amount0,
                    r.amount1,
                )
                return self._modify_liquidities(
                    [
                        (
                            V4Action.MINT_POSITION,
                            mint_position_params(
                                r.key,
                                tick_lower=r.tick_lower,
                                tick_upper=r.tick_upper,
                                liquidity=liquidity,
                                amount0_max=r.amount0,
                                amount1_max=r.amount1,
                                owner=recipient,
                            ),
                        ),
                        (V4Action.CLOSE_CURRENCY, close_currency_params(r.key.token0)),
                        (V4Action.CLOSE_CURRENCY, close_currency_params(r.key.token1)),
                    ]
                )
            case _:
                assert_never(version)

    def _v2_add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a: int,
        amount_b: int,
        recipient: str,
        slippage: float,
    ) -> Transaction:
        return encode_call(
            target=self._contract(UNISWAP_V2_ROUTER, "v2 router"),
            abi=UNISWAP_V2_ROUTER_ABI,
            fn_name="addLiquidity",
            args=[
                token_a,
                token_b,
                amount_a,
                amount_b,
                slippage_min(amount_a, slippage),
                slippage_min(amount_b, slippage),
                recipient,
                self._deadline(),
            ],
        )

    @staticmethod
    def _v4_liquidity(
        operation: str,
        liquidity: int | None,
        sqrt_price_x96: int | None,
        tick_lower: int | None,
        tick_upper: int | None,
        amount0: int,
        amount1: int,
    ) -> int:
        if liquidity is not None:
            return _positive(liquidity, "liquidity")
        if sqrt_price_x96 is None or tick_lower is None or tick_upper is None:
            raise MissingParameterError("liquidity", operation)
        computed = liquidity_for_amounts(
            int(sqrt_price_x96),
            sqrt_price_x96_from_tick(int(tick_lower)),
            sqrt_price_x96_from_tick(int(tick_upper)),
            amount0,
            amount1,
        )
        if computed <= 0:
            raise ValidationError(
                f"Desired amounts yield zero liquidity for {operation}"
            )
        return computed

    # ------------------------------------------------------------------ #
    # Existing positions                                                  #
    # ------------------------------------------------------------------ #

    def increase_liquidity(
        self,
        position_id: str,
        amount0_desired: int,
        amount1_desired: int,
        *,
        slippage_pct: float | None = None,
        currency0: str | None = None,
        currency1: str | None = None,
        recipient: str | None = None,
        liquidity: int | None = None,
        sqrt_price_x96: int | None = None,
        tick_lower: int | None = None,
        tick_upper: int | None = None,
    ) -> Transaction:
        """Add to a position. Amounts are in sorted token order.

        v4 needs ``currency0``/``currency1`` and a liquidity delta, either given
        directly or derived from ``sqrt_price_x96`` and the position's ticks.
        v2 adds to the pair identified by the position id and needs
        ``recipient`` for the LP tokens.
        """
        version, identifier = parse_position_id(position_id)
        amount0 = _non_negative(amount0_desired, "amount0_desired")
        amount1 = _non_negative(amount1_desired, "amount1_desired")
        slippage = self._slippage(slippage_pct)
        min0 = slippage_min(amount0, slippage)
        min1 = slippage_min(amount1, slippage)

        match version:
            case ProtocolVersion.V2:
                req = _require(
                    "v2 increase liquidity",
                    currency0=currency0,
                    currency1=currency1,
                    recipient=recipient,
                )
                return encode_call(
                    target=self._contract(UNISWAP_V2_ROUTER, "v2 router"),
                    abi=UNISWAP_V2_ROUTER_ABI,
                    fn_name="addLiquidity",
                    args=[
                        req["currency0"],
                        req["currency1"],
                        amount0,
                        amount1,
                        min0,
                        min1,
                        req["recipient"],
                        self._deadline(),
                    ],
                )
            case ProtocolVersion.V3:
                params = (int(identifier), amount0, amount1, min0, min1, self._deadline())
                return encode_call(
                    target=self._contract(UNISWAP_V3_NPM, "v3 position manager"),
                    abi=NONFUNGIBLE_POSITION_MANAGER_ABI,
                    fn_name="increaseLiquidity",
                    args=[params],
                )
            case ProtocolVersion.V4:
                req = _require(
                    "v4 increase liquidity", currency0=currency0, currency1=currency1
                )
                delta = self._v4_liquidity(
                    "v4 increase liquidity",
                    liquidity,
                    sqrt_price_x96,
                    tick_lower,
                    tick_upper,
                    amount0,
                    amount1,
                )
                return self._modify_liquidities(
                    [
                        (
                            V4Action.INCREASE_LIQUIDITY,
                            increase_liquidity_params(
                                int(identifier), delta, amount0, amount1
                            ),
                        ),
                        (
                            V4Action.CLOSE_CURRENCY,
                            close_currency_params(req["currency0"]),
                        ),
                        (
                            V4Action.CLOSE_CURRENCY,
                            close_currency_params(req["currency1"]),
                        ),
                    ]
                )
            case _:
                assert_never(version)

    def decrease_liquidity(
        self,
        position_id: str,
        liquidity_percentage: float,
        current_liquidity: str | int,
        *,
        slippage_pct: float | None = None,
        expected_amount0: int | None = None,
        expected_amount1: int | None = None,
        currency0: str | None = None,
        currency1: str | None = None,
        recipient: str | None = None,
    ) -> Transaction:
        """Remove ``liquidity_percentage`` of ``current_liquidity``.

        ``current_liquidity`` may be a display string such as
        ``"123456789 liquidity"``. Minimum amounts are zero unless expected
        amounts are given, in which case the slippage tolerance applies.
        """
        version, identifier = parse_position_id(position_id)
        total = parse_display_liquidity(current_liquidity)
        to_remove = scale_by_percentage(total, liquidity_percentage)
        if to_remove <= 0:
            raise ValidationError(
                f"Nothing to remove: {liquidity_percentage}% of {total}"
            )
        slippage = self._slippage(slippage_pct)
        min0 = slippage_min(expected_amount0, slippage) if expected_amount0 else 0
        min1 = slippage_min(expected_amount1, slippage) if expected_amount1 else 0

        match version:
            case ProtocolVersion.V2:
                req = _require(
                    "v2 decrease liquidity",
                    currency0=currency0,
                    currency1=currency1,
                    recipient=recipient,
                )
                return encode_call(
                    target=self._contract(UNISWAP_V2_ROUTER, "v2 router"),
                    abi=UNISWAP_V2_ROUTER_ABI,
                    fn_name="removeLiquidity",
                    args=[
                        req["currency0"],
                        req["currency1"],
                        to_remove,
                        min0,
                        min1,
                        req["recipient"],
                        self._deadline(),
                    ],
                )
            case ProtocolVersion.V3:
                params = (int(identifier), to_remove, min0, min1, self._deadline())
                return encode_call(
                    target=self._contract(UNISWAP_V3_NPM, "v3 position manager"),
                    abi=NONFUNGIBLE_POSITION_MANAGER_ABI,
                    fn_name="decreaseLiquidity",
                    args=[params],
                )
            case ProtocolVersion.V4:
                req = _require(
                    "v4 decrease liquidity",
                    currency0=currency0,
                    currency1=currency1,
                    recipient=recipient,
                )
                return self._modify_liquidities(
                    [
                        (
                            V4Action.DECREASE_LIQUIDITY,
                            decrease_liquidity_params(
                                int(identifier), to_remove, min0, min1
                            ),
                        ),
                        (
                            V4Action.TAKE_PAIR,
                            take_pair_params(
                                req["currency0"], req["currency1"], req["recipient"]
                            ),
                        ),
                    ]
                )
            case _:
                assert_never(version)

    def burn_position(
        self,
        position_id: str,
        *,
        currency0: str | None = None,
        currency1: str | None = None,
        recipient: str | None = None,
        amount0_min: int = 0,
        amount1_min: int = 0,
    ) -> Transaction:
        """Burn the position NFT. v3 requires liquidity and owed tokens to be zero first."""
        version, identifier = parse_position_id(position_id)
        match version:
            case ProtocolVersion.V2:
                raise ValidationError(
                    "v2 positions are LP tokens; remove liquidity instead of burning"
                )
            case ProtocolVersion.V3:
                return encode_call(
                    target=self._contract(UNISWAP_V3_NPM, "v3 position manager"),
                    abi=NONFUNGIBLE_POSITION_MANAGER_ABI,
                    fn_name="burn",
                    args=[int(identifier)],
                )
            case ProtocolVersion.V4:
                req = _require(
                    "v4 burn position",
                    currency0=currency0,
                    currency1=currency1,
                    recipient=recipient,
                )
                return self._modify_liquidities(
                    [
                        (
                            V4Action.BURN_POSITION,
                            burn_position_params(
                                int(identifier),
                                _non_negative(amount0_min, "amount0_min"),
                                _non_negative(amount1_min, "amount1_min"),
                            ),
                        ),
                        (
                            V4Action.TAKE_PAIR,
                            take_pair_params(
                                req["currency0"], req["currency1"], req["recipient"]
                            ),
                        ),
                    ]
                )
            case _:
                assert_never(version)

    def transfer_position(
        self, position_id: str, to: str, *, from_address: str | None = None
    ) -> Transaction:
        """ERC-721 ``safeTransferFrom`` of a v3 or v4 position NFT."""
        version, identifier = parse_position_id(position_id)
        sender = _require("transfer position", from_address=from_address)["from_address"]
        recipient = validate_address(to, "to")
        if recipient.lower() == ZERO_ADDRESS:
            raise ValidationError("Refusing to transfer a position to the zero address")
        match version:
            case ProtocolVersion.V2:
                raise ValidationError(
                    "v2 positions are ERC-20 LP tokens; transfer them with the token"
                )
            case ProtocolVersion.V3:
                target = self._contract(UNISWAP_V3_NPM, "v3 position manager")
                abi = NONFUNGIBLE_POSITION_MANAGER_ABI
            case ProtocolVersion.V4:
                target = self._contract(
                    UNISWAP_V4_POSITION_MANAGER, "v4 position manager"
                )
                abi = POSITION_MANAGER_ABI
            case _:
                assert_never(version)
        return encode_call(
            target=target,
            abi=abi,
            fn_name="safeTransferFrom",
            args=[sender, recipient, int(identifier)],
        )

    def collect_fees(
        self,
        position_id: str,
        *,
        recipient: str | None = None,
        currency0: str | None = None,
        currency1: str | None = None,
    ) -> Transaction:
        version, identifier = parse_position_id(position_id)
        match version:
            case ProtocolVersion.V2:
                raise ValidationError(
                    "v2 fees accrue into LP token value and cannot be collected"
                )
            case ProtocolVersion.V3:
                req = _require("v3 collect fees", recipient=recipient)
                params = (int(identifier), req["recipient"], MAX_UINT128, MAX_UINT128)
                return encode_call(
                    target=self._contract(UNISWAP_V3_NPM, "v3 position manager"),
                    abi=NONFUNGIBLE_POSITION_MANAGER_ABI,
                    fn_name="collect",
                    args=[params],
                )
            case ProtocolVersion.V4:
                req = _require(
                    "v4 collect fees",
                    currency0=currency0,
                    currency1=currency1,
                    recipient=recipient,
                )
                # A zero-liquidity decrease settles accrued fees into the deltas.
                return self._modify_liquidities(
                    [
                        (
                            V4Action.DECREASE_LIQUIDITY,
                            decrease_liquidity_params(int(identifier), 0, 0, 0),
                        ),
                        (
                            V4Action.TAKE_PAIR,
                            take_pair_params(
                                req["currency0"], req["currency1"], req["recipient"]
                            ),
                        ),
                    ]
                )
            case _:
                assert_never(version)
