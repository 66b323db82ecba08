"""Tests for the retry policy."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from draftflow.core.retry import RetryPolicy
from draftflow.errors import ModelError, QuotaExceeded, RetriesExhausted, TransientError


@pytest.mark.asyncio
async def test_transient_failures_then_success(retry_policy, no_sleep):
    operation = AsyncMock(
        side_effect=[TransientError("503"), TransientError("503"), "done"]
    )

    result = await retry_policy.run(operation)

    assert result == "done"
    assert operation.await_count == 3
    assert [c.args[0] for c in no_sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [QuotaExceeded("quota"), ModelError("bad", model="m")])
async def test_non_transient_errors_are_not_retried(retry_policy, no_sleep, error):
    operation = AsyncMock(side_effect=error)

    with pytest.raises(type(error)):
        await retry_policy.run(operation)

    assert operation.await_count == 1
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_exhaustion_raises_with_last_error(retry_policy, no_sleep):
    operation = AsyncMock(side_effect=TransientError("still down"))

    with pytest.raises(RetriesExhausted) as exc_info:
        await retry_policy.run(operation)

    assert exc_info.value.attempts == 3
    assert "still down" in str(exc_info.value.last_error)
    assert operation.await_count == 3
    # No wait after the final attempt
    assert no_sleep.await_count == 2


@pytest.mark.asyncio
async def test_attempt_timeout_counts_as_transient(no_sleep):
    policy = RetryPolicy(max_attempts=2, base_delay=0.0, attempt_timeout=0.01, sleep=no_sleep)
    calls = 0

    async def slow_then_fast():
        nonlocal calls
        calls += 1
        if calls == 1:
            await asyncio.sleep(1)
        return "fast"

    assert await policy.run(slow_then_fast) == "fast"
    assert calls == 2


def test_delay_grows_exponentially():
    policy = RetryPolicy(base_delay=5.0, multiplier=2.0)
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [5.0, 10.0, 20.0]


def test_from_settings(mock_settings):
    policy = RetryPolicy.from_settings(mock_settings)
    assert policy.max_attempts == mock_settings.retry_max_attempts
    assert policy.attempt_timeout == mock_settings.generation_timeout


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
