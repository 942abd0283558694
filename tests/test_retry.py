# File: tests/test_retry.py
import time

import pytest

from conftest import FakeRemote, addr
from site_loader.config import RetryProfile
from site_loader.errors import FetchFailure
from site_loader.remote.retry import backoff_delay, call_with_retry, read_with_retry


def test_backoff_doubles_and_caps():
    profile = RetryProfile(max_attempts=6, base_delay=0.1, max_delay=1.0)
    delays = [backoff_delay(i, profile) for i in range(5)]
    assert delays == pytest.approx([0.1, 0.2, 0.4, 0.8, 1.0])


def test_backoff_jitter_is_bounded():
    profile = RetryProfile(max_attempts=3, base_delay=0.1, max_delay=5.0, jitter=0.05)
    for _ in range(50):
        assert 0.1 <= backoff_delay(0, profile) <= 0.15


@pytest.mark.asyncio()
async def test_succeeds_after_failures_with_backoff():
    target = addr(7)
    remote = FakeRemote({target: b"payload"}, flaky={target: 2})
    profile = RetryProfile(max_attempts=4, base_delay=0.02, max_delay=1.0)

    start = time.monotonic()
    data = await read_with_retry(remote.read, target, profile)
    elapsed = time.monotonic() - start

    assert data == b"payload"
    assert remote.calls[target] == 3
    assert elapsed >= 0.02 + 0.04


@pytest.mark.asyncio()
async def test_exhausted_attempts_raise_fetch_failure():
    target = addr(9)
    remote = FakeRemote({}, failing=[target])
    profile = RetryProfile(max_attempts=3, base_delay=0.0, max_delay=0.0)

    with pytest.raises(FetchFailure) as info:
        await read_with_retry(remote.read, target, profile)

    assert info.value.address == target
    assert info.value.attempts == 3
    assert remote.calls[target] == 3


@pytest.mark.asyncio()
async def test_non_retryable_error_propagates_immediately():
    calls = {"n": 0}

    async def broken():
        calls["n"] += 1
        raise KeyError("bug")

    with pytest.raises(KeyError):
        await call_with_retry(broken, RetryProfile(max_attempts=5, base_delay=0.0))
    assert calls["n"] == 1


@pytest.mark.asyncio()
async def test_single_attempt_profile_never_sleeps():
    target = addr(1)
    remote = FakeRemote({}, failing=[target])
    profile = RetryProfile(max_attempts=1, base_delay=10.0, max_delay=10.0)

    start = time.monotonic()
    with pytest.raises(FetchFailure):
        await read_with_retry(remote.read, target, profile)
    assert time.monotonic() - start < 1.0
    assert remote.calls[target] == 1
