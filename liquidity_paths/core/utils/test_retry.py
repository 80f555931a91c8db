from unittest.mock import AsyncMock

import pytest

from liquidity_paths.core.utils.retry import exponential_backoff_s, retry_async


def test_exponential_backoff():
    assert exponential_backoff_s(0) == 0.25
    assert exponential_backoff_s(3) == 2.0
    assert exponential_backoff_s(10, max_delay_s=5.0) == 5.0


@pytest.mark.asyncio
async def test_retries_until_success():
    fn = AsyncMock(side_effect=[RuntimeError("429 Too Many Requests"), "ok"])
    result = await retry_async(fn, base_delay_s=0)
    assert result == "ok"
    assert fn.await_count == 2


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_immediately():
    fn = AsyncMock(side_effect=ValueError("execution reverted"))
    with pytest.raises(ValueError, match="reverted"):
        await retry_async(
            fn, base_delay_s=0, should_retry=lambda exc: "429" in str(exc)
        )
    assert fn.await_count == 1


@pytest.mark.asyncio
async def test_last_failure_propagates():
    fn = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), RuntimeError("c")])
    with pytest.raises(RuntimeError, match="c"):
        await retry_async(fn, max_retries=3, base_delay_s=0)
    assert fn.await_count == 3


@pytest.mark.asyncio
async def test_rejects_zero_retries():
    with pytest.raises(ValueError):
        await retry_async(AsyncMock(), max_retries=0)
