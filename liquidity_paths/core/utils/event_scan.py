"""Chunked historical log scanning and swap-volume estimation."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from liquidity_paths.core.errors import ValidationError
from liquidity_paths.core.utils.retry import retry_async
from liquidity_paths.core.utils.units import from_erc20_raw

BLOCKS_PER_BATCH = 2000
RETRY_BATCH_SIZE = 10

FetchLogs = Callable[[int, int], Awaitable[list[Any]]]


@dataclass
class LogScanResult:
    logs: list[Any] = field(default_factory=list)
    failed_ranges: list[tuple[int, int]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_ranges


@dataclass(frozen=True)
class VolumeEstimate:
    volume_usd: float
    swap_count: int


def block_ranges(from_block: int, to_block: int, size: int) -> list[tuple[int, int]]:
    """Inclusive ``(start, end)`` windows covering ``[from_block, to_block]``."""
    if size <= 0:
        raise ValidationError(f"batch size must be positive, got {size}")
    if to_block < from_block:
        return []
    return [
        (start, min(start + size - 1, to_block))
        for start in range(from_block, to_block + 1, size)
    ]


async def _scan_chunk(
    fetch: FetchLogs, start: int, end: int, retry_size: int
) -> LogScanResult:
    result = LogScanResult()
    try:
        result.logs.extend(await fetch(start, end))
        return result
    except Exception as exc:  # noqa: BLE001
        logger.debug(
            f"Log batch {start}-{end} failed ({exc}); retrying in {retry_size}-block chunks"
        )

    for sub_start, sub_end in block_ranges(start, end, retry_size):
        try:
            logs = await retry_async(
                lambda s=sub_start, e=sub_end: fetch(s, e),
                max_retries=2,
                base_delay_s=0.1,
                label=f"getLogs {sub_start}-{sub_end}",
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Skipping blocks {sub_start}-{sub_end}: {exc}")
            result.failed_ranges.append((sub_start, sub_end))
            continue
        result.logs.extend(logs)
    return result


async def scan_logs(
    fetch: FetchLogs,
    from_block: int,
    to_block: int,
    *,
    batch_size: int = BLOCKS_PER_BATCH,
    retry_size: int = RETRY_BATCH_SIZE,
    max_concurrency: int = 4,
) -> LogScanResult:
    """Fetch logs over a block range in provider-sized batches.

    A failed batch is re-read in ``retry_size`` chunks; chunks that still fail
    are recorded in ``failed_ranges`` and everything else is kept.
    """
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _bounded(start: int, end: int) -> LogScanResult:
        async with semaphore:
            return await _scan_chunk(fetch, start, end, retry_size)

    chunks = await asyncio.gather(
        *(_bounded(s, e) for s, e in block_ranges(from_block, to_block, batch_size))
    )
    merged = LogScanResult()
    for chunk in chunks:
        merged.logs.extend(chunk.logs)
        merged.failed_ranges.extend(chunk.failed_ranges)
    return merged


def swap_volume_usd(
    swaps: Iterable[tuple[int, int]],
    *,
    decimals0: int,
    decimals1: int,
    price0: float,
    price1: float,
) -> VolumeEstimate:
    """USD volume from signed (amount0, amount1) swap deltas.

    Averages both sides when both prices are known, otherwise uses the side
    that has a price. Unpriced pools report zero volume.
    """
    total = 0.0
    count = 0
    for amount0, amount1 in swaps:
        count += 1
        human0 = from_erc20_raw(abs(int(amount0)), decimals0)
        human1 = from_erc20_raw(abs(int(amount1)), decimals1)
        if price0 > 0 and price1 > 0:
            total += (human0 * price0 + human1 * price1) / 2
        elif price0 > 0:
            total += human0 * price0
        elif price1 > 0:
            total += human1 * price1
    return VolumeEstimate(volume_usd=total, swap_count=count)
