from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Iterable
from typing import Any

import httpx
from loguru import logger

from liquidity_paths.core.config import get_price_api_base_url
from liquidity_paths.core.constants.base import DEFAULT_HTTP_TIMEOUT, DEFAULT_PRICE_USD
from liquidity_paths.core.utils.price_cache import PriceCache

GECKO_BATCH_SIZE = 30


class GeckoTerminalPriceClient:
    """USD token prices from GeckoTerminal's simple token_price endpoint.

    Lookups go through a caller-owned ``PriceCache``. Failed or missing
    prices come back as 0.0 and are not cached.
    """

    source = "gecko"

    def __init__(
        self,
        *,
        cache: PriceCache | None = None,
        network: str = "base",
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.cache = cache if cache is not None else PriceCache()
        self.network = network
        self.base_url = (base_url or get_price_api_base_url()).rstrip("/")
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(DEFAULT_HTTP_TIMEOUT)
        )
        self.headers = {"Accept": "application/json"}

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug(f"Making {method} request to {url}")
        start_time = time.time()
        resp = await self.client.request(method, url, headers=self.headers, **kwargs)
        elapsed = time.time() - start_time
        if resp.status_code >= 400:
            logger.warning(
                f"HTTP {resp.status_code} response for {method} {url} after {elapsed:.2f}s"
            )
        else:
            logger.debug(
                f"HTTP {resp.status_code} response for {method} {url} after {elapsed:.2f}s"
            )
        resp.raise_for_status()
        return resp

    async def _fetch_batch(self, addresses: list[str]) -> dict[str, float]:
        url = (
            f"{self.base_url}/simple/networks/{self.network}/token_price/"
            f"{','.join(addresses)}"
        )
        try:
            resp = await self._request("GET", url)
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Price lookup failed for {len(addresses)} tokens: {exc}")
            return {}

        token_prices = (
            (payload or {}).get("data", {}).get("attributes", {}).get("token_prices")
            or {}
        )
        prices: dict[str, float] = {}
        for address, raw in token_prices.items():
            try:
                price = float(raw)
            except (TypeError, ValueError):
                continue
            if price > 0 and math.isfinite(price):
                prices[address.lower()] = price
        return prices

    async def get_prices(self, token_addresses: Iterable[str]) -> dict[str, float]:
        prices, misses = self.cache.get_many(token_addresses)
        if not misses:
            return prices

        batches = [
            misses[i : i + GECKO_BATCH_SIZE]
            for i in range(0, len(misses), GECKO_BATCH_SIZE)
        ]
        results = await asyncio.gather(*(self._fetch_batch(b) for b in batches))
        for fetched in results:
            for address, price in fetched.items():
                self.cache.set(address, price, self.source)
                prices[address] = price

        missing = [a for a in misses if a not in prices]
        if missing:
            logger.debug(f"No price for {len(missing)} tokens; valuing at 0.0")
        for address in missing:
            prices[address] = DEFAULT_PRICE_USD
        return prices

    async def get_price(self, token_address: str) -> float:
        prices = await self.get_prices([token_address])
        return prices.get(token_address.strip().lower(), DEFAULT_PRICE_USD)

    async def close(self) -> None:
        await self.client.aclose()
