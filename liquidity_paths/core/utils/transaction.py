"""Calldata encoding from JSON ABI fragments.

Builds ``Transaction`` values through an offline web3 contract; no provider
is contacted. Signing and broadcasting belong to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_utils import is_address, to_checksum_address
from web3 import Web3
from web3.exceptions import Web3Exception

from liquidity_paths.core.adapters.models import Transaction

_OFFLINE = Web3()


def _contract(abi: Sequence[dict[str, Any]]):
    return _OFFLINE.eth.contract(abi=list(abi))


def _checksummed(value: Any) -> Any:
    # web3 rejects lowercase addresses, so normalize nested args first.
    if isinstance(value, str) and is_address(value):
        return to_checksum_address(value)
    if isinstance(value, list | tuple):
        return type(value)(_checksummed(v) for v in value)
    return value


def _positional(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(_positional(v) for v in value.values())
    if isinstance(value, list | tuple):
        return tuple(_positional(v) for v in value)
    return value


def encode_function_data(
    abi: Sequence[dict[str, Any]], fn_name: str, args: Sequence[Any]
) -> str:
    try:
        return _contract(abi).encode_abi(fn_name, args=_checksummed(list(args)))
    except (ValueError, TypeError, Web3Exception) as exc:
        raise ValueError(f"Failed to encode {fn_name}: {exc}") from exc


def decode_function_data(
    abi: Sequence[dict[str, Any]], fn_name: str, data: str | bytes
) -> tuple[Any, ...]:
    """Positional arguments of ``fn_name`` calldata; structs come back as tuples."""
    if isinstance(data, bytes):
        data = "0x" + data.hex()
    fn, params = _contract(abi).decode_function_input(data)
    if fn.fn_name != fn_name:
        raise ValueError(f"Calldata selector {data[:10]} does not match {fn_name}")
    return _positional(params)


def encode_call(
    *,
    target: str,
    abi: Sequence[dict[str, Any]],
    fn_name: str,
    args: Sequence[Any],
    value: int = 0,
) -> Transaction:
    data = encode_function_data(abi, fn_name, args)
    return Transaction(
        to=to_checksum_address(target),
        data=data if data.startswith("0x") else "0x" + data,
        value=str(int(value)),
    )
