"""Concurrent token metadata and allowance reads with per-lookup fallbacks."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from typing import TypeVar

from loguru import logger

from liquidity_paths.core.adapters.models import Token
from liquidity_paths.core.clients.protocols import TokenReaderProtocol
from liquidity_paths.core.constants.base import DEFAULT_DECIMALS, UNKNOWN_SYMBOL

T = TypeVar("T")

NATIVE_TOKEN_ADDRESSES: set[str] = {
    "0x0000000000000000000000000000000000000000",
    "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
}


def is_native_token(token_address: str | None) -> bool:
    if token_address is None:
        return True
    normalized = str(token_address).strip().lower()
    if normalized in ("", "native"):
        return True
    return normalized in NATIVE_TOKEN_ADDRESSES


async def with_fallback(coro: Awaitable[T], fallback: T, *, what: str) -> T:
    """Await ``coro``; on any failure log it and return ``fallback``."""
    try:
        return await coro
    except Exception as exc:  # noqa: BLE001
        logger.warning(f"{what} failed, using {fallback!r}: {exc}")
        return fallback


async def resolve_token(reader: TokenReaderProtocol, token_address: str) -> Token:
    if is_native_token(token_address):
        return Token(address=token_address, symbol="ETH", decimals=18)
    symbol, decimals = await asyncio.gather(
        with_fallback(
            reader.erc20_symbol(token_address),
            UNKNOWN_SYMBOL,
            what=f"symbol({token_address})",
        ),
        with_fallback(
            reader.erc20_decimals(token_address),
            DEFAULT_DECIMALS,
            what=f"decimals({token_address})",
        ),
    )
    return Token(address=token_address, symbol=str(symbol), decimals=int(decimals))


async def resolve_tokens(
    reader: TokenReaderProtocol, token_addresses: Iterable[str]
) -> dict[str, Token]:
    """Metadata for many tokens at once, keyed by lowercased address."""
    unique = list(dict.fromkeys(a.lower() for a in token_addresses))
    tokens = await asyncio.gather(*(resolve_token(reader, a) for a in unique))
    return dict(zip(unique, tokens, strict=True))


async def read_allowances(
    reader: TokenReaderProtocol,
    owner: str,
    requests: Iterable[tuple[str, str]],
) -> dict[tuple[str, str], int]:
    """Allowances for ``(token, spender)`` pairs; failed reads count as 0."""
    pairs = [(t.lower(), s.lower()) for t, s in requests]
    values = await asyncio.gather(
        *(
            with_fallback(
                reader.erc20_allowance(token, owner, spender),
                0,
                what=f"allowance({token}, {spender})",
            )
            for token, spender in pairs
        )
    )
    return {pair: int(v) for pair, v in zip(pairs, values, strict=True)}
