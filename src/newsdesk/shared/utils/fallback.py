#!/usr/bin/env python3
"""
Ordered fallback runner.

A chain is a list of named attempts, each a coroutine returning an
AttemptResult. The runner stops at the first ok result; every failed attempt
is logged with its reason and the chain simply advances.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from ..types.results import AttemptResult

logger = logging.getLogger(__name__)

T = TypeVar('T')

Attempt = Callable[[], Awaitable[AttemptResult[T]]]


@dataclass
class ChainOutcome(Generic[T]):
    value: Optional[T]
    winner: Optional[str]
    attempts: int
    failures: List[Tuple[str, str]]

    @property
    def ok(self) -> bool:
        return self.winner is not None


class FallbackChain(Generic[T]):
    """Runs attempts in order until one succeeds."""

    def __init__(self, name: str, attempts: Sequence[Tuple[str, Attempt]],
                 between: Optional[Callable[[], Awaitable[Any]]] = None):
        self.name = name
        self.attempts = list(attempts)
        self.between = between

    async def run(self) -> ChainOutcome[T]:
        failures: List[Tuple[str, str]] = []
        for index, (label, attempt) in enumerate(self.attempts):
            if index and self.between is not None:
                await self.between()
            try:
                result = await attempt()
            except Exception as e:
                # Unexpected adapter errors count as a failed tier; the chain keeps going
                logger.warning(f"[{self.name}] {label} raised {type(e).__name__}: {e}")
                result = AttemptResult.failure(f"{type(e).__name__}: {e}")

            if result.ok:
                logger.info(f"[{self.name}] {label} succeeded")
                return ChainOutcome(result.value, label, index + 1, failures)

            failures.append((label, result.reason))
            logger.info(f"[{self.name}] {label} failed: {result.reason}")

        if self.attempts:
            logger.warning(f"[{self.name}] all {len(self.attempts)} attempts failed")
        return ChainOutcome(None, None, len(self.attempts), failures)
