# site_loader/remote/retry.py
"""
Bounded retry primitive: exponential backoff with optional jitter.

Attempt ``i`` (0-indexed) that fails is followed by a wait of
``min(base_delay * 2**i + jitter, max_delay)`` before attempt ``i + 1``.
The first attempt is never delayed.
"""
from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

from aiohttp import ClientError

from site_loader.config import RetryProfile
from site_loader.errors import FetchFailure, RemoteCallError
from site_loader.logger import logger
from site_loader.remote.models import NodeAddress, ReadFn
from site_loader.utils import short_address

__all__ = ["RETRYABLE", "backoff_delay", "call_with_retry", "read_with_retry"]

T = TypeVar("T")

#: ошибки одной попытки, после которых имеет смысл повторить вызов
RETRYABLE = (RemoteCallError, ClientError, asyncio.TimeoutError)


def backoff_delay(attempt: int, profile: RetryProfile) -> float:
    """Wait that follows failed attempt *attempt* (0-indexed)."""
    delay = profile.base_delay * (2**attempt)
    if profile.jitter:
        delay += random.uniform(0, profile.jitter)
    return min(delay, profile.max_delay)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    profile: RetryProfile,
    *,
    label: str = "call",
) -> T:
    """Await ``fn()`` up to ``profile.max_attempts`` times; re-raise the last error."""
    for attempt in range(profile.max_attempts):
        try:
            return await fn()
        except RETRYABLE as exc:
            if attempt + 1 >= profile.max_attempts:
                logger.debug("%s: giving up after %d attempt(s): %s", label, attempt + 1, exc)
                raise
            delay = backoff_delay(attempt, profile)
            logger.debug(
                "Retry %d/%d for %s after %.2f s: %s",
                attempt + 1, profile.max_attempts - 1, label, delay, exc,
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable: max_attempts >= 1")


async def read_with_retry(read: ReadFn, address: NodeAddress, profile: RetryProfile) -> bytes:
    """Read *address* through *read*; raise :class:`FetchFailure` once attempts run out."""
    try:
        return await call_with_retry(lambda: read(address), profile, label=short_address(address))
    except RETRYABLE as exc:
        raise FetchFailure(address, profile.max_attempts) from exc
