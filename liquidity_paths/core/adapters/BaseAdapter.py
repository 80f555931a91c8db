from __future__ import annotations

import functools
from abc import ABC
from collections.abc import Callable
from typing import Any

from eth_utils import to_checksum_address
from loguru import logger

from liquidity_paths.core.constants.chains import CHAIN_ID_BASE

AdapterResult = tuple[bool, Any]


def require_wallet(fn: Callable) -> Callable:
    """Return ``(False, ...)`` early if ``self.wallet_address`` is not set."""

    @functools.wraps(fn)
    async def wrapper(self: BaseAdapter, *args: Any, **kwargs: Any) -> Any:
        if not getattr(self, "wallet_address", None):
            return False, "wallet address not configured"
        return await fn(self, *args, **kwargs)

    return wrapper


class BaseAdapter(ABC):
    adapter_type: str | None = None

    def __init__(self, name: str, config: dict[str, Any] | None = None):
        self.name = name
        self.config = config or {}
        self.chain_id: int = int(self.config.get("chain_id", CHAIN_ID_BASE))
        wallet = self.config.get("wallet_address")
        self.wallet_address: str | None = (
            to_checksum_address(str(wallet)) if wallet else None
        )
        self.logger = logger.bind(adapter=self.__class__.__name__)

    def _failure(self, action: str, exc: Exception) -> AdapterResult:
        self.logger.warning(f"{action} failed: {exc}")
        return False, str(exc)

    async def close(self) -> None:
        pass
