from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from liquidity_paths.core.config import get_price_cache_ttl


@dataclass(frozen=True)
class CachedPrice:
    price: float
    fetched_at: float
    source: str


class PriceCache:
    """Short-lived token -> USD price store, keyed by lowercased address.

    Owned by the caller and passed to whatever needs it. Writers replace whole
    records; a read inside the TTL window may be stale.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = get_price_cache_ttl() if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[str, CachedPrice] = {}

    @staticmethod
    def _key(address: str) -> str:
        return address.strip().lower()

    def get_entry(self, address: str) -> CachedPrice | None:
        key = self._key(address)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at > self.ttl_seconds:
            self._entries.pop(key, None)
            return None
        return entry

    def get(self, address: str) -> float | None:
        entry = self.get_entry(address)
        return entry.price if entry else None

    def set(self, address: str, price: float, source: str = "gecko") -> None:
        self._entries[self._key(address)] = CachedPrice(
            price=float(price), fetched_at=self._clock(), source=source
        )

    def get_many(self, addresses: Iterable[str]) -> tuple[dict[str, float], list[str]]:
        """Split ``addresses`` into cached prices and misses (both lowercased)."""
        hits: dict[str, float] = {}
        misses: list[str] = []
        for address in addresses:
            key = self._key(address)
            if key in hits or key in misses:
                continue
            price = self.get(key)
            if price is None:
                misses.append(key)
            else:
                hits[key] = price
        return hits, misses

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.get_entry(address) is not None
