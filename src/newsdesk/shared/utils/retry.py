#!/usr/bin/env python3
"""Bounded local retry for transient network failures."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..types.errors import TransientNetworkError

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def with_retries(call: Callable[[], Awaitable[T]],
                       retries: int = 2,
                       backoff_seconds: float = 1.5,
                       incremental: bool = True,
                       timeout: Optional[float] = None,
                       label: str = "call") -> T:
    """
    Await call(), retrying only on TransientNetworkError.

    A timeout is reported as TransientNetworkError so it is retried the same way.
    Quota and every other error propagate on the first occurrence.

    Args:
        call: Zero-argument coroutine factory, invoked once per attempt
        retries: Extra attempts after the first one
        backoff_seconds: Base sleep between attempts
        incremental: Multiply the backoff by the attempt number
        timeout: Per-attempt timeout in seconds
        label: Name used in log messages and the timeout error
    """
    attempt = 0
    while True:
        try:
            if timeout:
                return await asyncio.wait_for(call(), timeout=timeout)
            return await call()
        except asyncio.TimeoutError as e:
            error: TransientNetworkError = TransientNetworkError(label, f"timed out after {timeout}s")
            error.__cause__ = e
        except TransientNetworkError as e:
            error = e

        if attempt >= retries:
            raise error
        attempt += 1
        delay = backoff_seconds * attempt if incremental else backoff_seconds
        logger.debug(f"{label}: transient failure ({error}), retry {attempt}/{retries} in {delay:.1f}s")
        await asyncio.sleep(delay)
