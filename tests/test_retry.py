"""
Outpost Stock — Retry Combinator Tests
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from outpost_stock.scraper.retry import RetryExhausted, linear_backoff, retry_async
from tests.conftest import connect_error


def test_linear_backoff() -> None:
    backoff = linear_backoff(1.5)

    assert [backoff(n) for n in (1, 2, 3)] == [1.5, 3.0, 4.5]


@pytest.mark.asyncio
async def test_first_success_no_sleep() -> None:
    operation = AsyncMock(return_value="page")

    with patch("outpost_stock.scraper.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        result = await retry_async(operation, attempts=3, backoff=linear_backoff(1))

    assert result == "page"
    assert operation.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_succeeds_after_transient_failures() -> None:
    operation = AsyncMock(side_effect=[connect_error(), connect_error(), "page"])

    with patch("outpost_stock.scraper.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        result = await retry_async(
            operation, attempts=3, backoff=linear_backoff(2), retry_on=(httpx.HTTPError,)
        )

    assert result == "page"
    assert operation.await_count == 3
    assert [call.args[0] for call in sleep.await_args_list] == [2, 4]


@pytest.mark.asyncio
async def test_exhaustion_raises_with_last_error() -> None:
    errors = [connect_error(), httpx.ReadTimeout("slow")]
    operation = AsyncMock(side_effect=errors)

    with patch("outpost_stock.scraper.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        with pytest.raises(RetryExhausted) as exc_info:
            await retry_async(
                operation,
                attempts=2,
                backoff=linear_backoff(1),
                retry_on=(httpx.HTTPError,),
                label="collection 7",
            )

    assert exc_info.value.attempts == 2
    assert exc_info.value.last_error is errors[1]
    assert exc_info.value.__cause__ is errors[1]
    assert "collection 7" in str(exc_info.value)
    # no sleep after the final attempt
    assert sleep.await_count == 1


@pytest.mark.asyncio
async def test_non_retryable_error_propagates() -> None:
    operation = AsyncMock(side_effect=KeyError("boom"))

    with pytest.raises(KeyError):
        await retry_async(
            operation, attempts=5, backoff=linear_backoff(0), retry_on=(httpx.HTTPError,)
        )

    assert operation.await_count == 1


@pytest.mark.asyncio
async def test_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        await retry_async(AsyncMock(), attempts=0, backoff=linear_backoff(0))
