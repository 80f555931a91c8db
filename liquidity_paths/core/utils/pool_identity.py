"""Canonical pool and position identity across protocol generations.

Token ordering, pool-key construction, pool-id hashing, fee tier to tick
spacing tables, usable tick bounds, and the packed position-info layout used
by the v4 position manager.
"""

from __future__ import annotations

from eth_abi import encode as abi_encode
from eth_abi.packed import encode_packed
from eth_utils import is_address, keccak, to_checksum_address

from liquidity_paths.core.adapters.models import PoolKey, ProtocolVersion
from liquidity_paths.core.constants import ZERO_ADDRESS
from liquidity_paths.core.constants.base import MAX_TICK
from liquidity_paths.core.errors import (
    UnsupportedFeeTierError,
    UnsupportedVersionError,
    ValidationError,
)

V3_FEE_TO_TICK_SPACING: dict[int, int] = {100: 1, 500: 10, 3000: 60, 10000: 200}

# v4 adds high-fee tiers used by dynamic-fee hook pools
FEE_TO_TICK_SPACING: dict[int, int] = {
    **V3_FEE_TO_TICK_SPACING,
    30000: 200,
    50000: 200,
}

_INT24_SIGN = 0x800000
_UINT24_MASK = 0xFFFFFF
_TICK_LOWER_OFFSET = 8
_TICK_UPPER_OFFSET = 32


def parse_version(value: ProtocolVersion | str) -> ProtocolVersion:
    if isinstance(value, ProtocolVersion):
        return value
    try:
        return ProtocolVersion(str(value).strip().lower())
    except ValueError:
        raise UnsupportedVersionError(
            f"Unsupported protocol version {value!r}; "
            f"expected one of {[v.value for v in ProtocolVersion]}"
        ) from None


def validate_address(value: str | None, field: str = "address") -> str:
    if not isinstance(value, str) or not is_address(value):
        raise ValidationError(f"Invalid {field}: {value!r}")
    return to_checksum_address(value)


def is_swapped(token_a: str, token_b: str) -> bool:
    """True when ``token_a`` is not the canonical token0 of the pair."""
    return token_a.lower() > token_b.lower()


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    a = validate_address(token_a, "token_a")
    b = validate_address(token_b, "token_b")
    if a.lower() == b.lower():
        raise ValidationError(f"Cannot build a pair from identical tokens {a}")
    return (b, a) if is_swapped(a, b) else (a, b)


def tick_spacing_for_fee(
    fee: int, version: ProtocolVersion | str = ProtocolVersion.V3
) -> int:
    version = parse_version(version)
    match version:
        case ProtocolVersion.V2:
            raise UnsupportedVersionError("v2 pools have no tick spacing")
        case ProtocolVersion.V3:
            table = V3_FEE_TO_TICK_SPACING
        case ProtocolVersion.V4:
            table = FEE_TO_TICK_SPACING
    spacing = table.get(int(fee))
    if spacing is None:
        raise UnsupportedFeeTierError(
            f"Unknown {version} fee tier {fee}; expected one of {list(table)}"
        )
    return spacing


def get_tick_range(tick_spacing: int) -> tuple[int, int]:
    """Lowest and highest usable ticks for a spacing (truncated toward zero)."""
    if tick_spacing <= 0:
        raise ValidationError(f"tick_spacing must be positive, got {tick_spacing}")
    max_tick = (MAX_TICK // tick_spacing) * tick_spacing
    return -max_tick, max_tick


def build_pool_key(
    token_a: str,
    token_b: str,
    fee: int,
    *,
    tick_spacing: int | None = None,
    hooks: str = ZERO_ADDRESS,
    version: ProtocolVersion | str = ProtocolVersion.V4,
) -> PoolKey:
    token0, token1 = sort_tokens(token_a, token_b)
    if tick_spacing is None:
        tick_spacing = tick_spacing_for_fee(fee, version)
    return PoolKey(
        token0=token0,
        token1=token1,
        fee=int(fee),
        tick_spacing=int(tick_spacing),
        hooks=validate_address(hooks, "hooks"),
    )


def compute_pool_id(key: PoolKey | tuple[str, str, int, int, str]) -> str:
    """keccak256(abi.encode(currency0, currency1, fee, tickSpacing, hooks)).

    Currencies must already be sorted; this does not reorder them.
    """
    c0, c1, fee, tick_spacing, hooks = (
        key.as_tuple() if isinstance(key, PoolKey) else key
    )
    encoded = abi_encode(
        ["address", "address", "uint24", "int24", "address"],
        [
            to_checksum_address(c0),
            to_checksum_address(c1),
            int(fee),
            int(tick_spacing),
            to_checksum_address(hooks),
        ],
    )
    return "0x" + keccak(encoded).hex()


def make_position_id(version: ProtocolVersion | str, identifier: int | str) -> str:
    return f"{parse_version(version).value}-{identifier}"


def parse_position_id(position_id: str) -> tuple[ProtocolVersion, str]:
    version_part, sep, identifier = str(position_id).strip().partition("-")
    if not sep or not identifier:
        raise ValidationError(
            f"Invalid position id {position_id!r}; expected '<version>-<identifier>'"
        )
    version = parse_version(version_part)
    if version is ProtocolVersion.V2:
        validate_address(identifier, "pair address")
    elif not identifier.isdigit():
        raise ValidationError(f"Invalid {version} token id {identifier!r}")
    return version, identifier


def _signed24(value: int) -> int:
    value &= _UINT24_MASK
    return value - (1 << 24) if value & _INT24_SIGN else value


def decode_position_info(info: int) -> tuple[int, int]:
    """Unpack (tickLower, tickUpper) from a v4 PositionInfo word.

    Layout from the low bit: 8 bits subscriber flag, 24 bits tickLower,
    24 bits tickUpper, 200 bits truncated poolId.
    """
    info = int(info)
    tick_lower = _signed24(info >> _TICK_LOWER_OFFSET)
    tick_upper = _signed24(info >> _TICK_UPPER_OFFSET)
    return tick_lower, tick_upper


def v4_position_key(
    owner: str, tick_lower: int, tick_upper: int, token_id: int
) -> str:
    """Pool-manager position key for a position-manager owned NFT position."""
    packed = encode_packed(
        ["address", "int24", "int24", "bytes32"],
        [
            to_checksum_address(owner),
            int(tick_lower),
            int(tick_upper),
            int(token_id).to_bytes(32, "big"),
        ],
    )
    return "0x" + keccak(packed).hex()
