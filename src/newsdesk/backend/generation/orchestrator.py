#!/usr/bin/env python3
"""
Generation Orchestrator

Turns a prompt into a validated GenerationResult by walking an ordered chain
of providers: the primary vendor's models in priority order, then a distinct
secondary vendor as last resort.

- Providers the tracker reports as limited are skipped. When every provider is
  limited, a single attempt is made on the tracker's preferred entry.
- A quota error marks the provider limited and advances immediately.
- Transient network errors get a short local retry before the chain advances.
- Malformed output advances the chain without touching rate-limit state.
Each provider is attempted at most once per call, so a call never makes more
than len(primary) + 1 provider attempts.
"""

import logging
from datetime import datetime
from functools import partial
from typing import Callable, List, Optional, Sequence

from ...shared.config.pipeline_config import GenerationConfig
from ...shared.types.errors import ProviderError, ProviderQuotaExceeded, TransientNetworkError
from ...shared.types.results import AttemptResult, GenerationResult
from ...shared.utils.fallback import ChainOutcome, FallbackChain
from ...shared.utils.retry import with_retries
from ..monitoring.rate_limit_tracker import RateLimitTracker
from .prompts import build_system_prompt
from .providers import GenerationProvider
from .response_parser import parse_generation

logger = logging.getLogger(__name__)


class GenerationOrchestrator:
    """Multi-provider article generation with rate-limit aware fallback."""

    def __init__(self,
                 primary: Sequence[GenerationProvider],
                 tracker: RateLimitTracker,
                 secondary: Optional[GenerationProvider] = None,
                 config: Optional[GenerationConfig] = None,
                 now: Optional[Callable[[], datetime]] = None):
        if not primary and secondary is None:
            raise ValueError("at least one generation provider is required")
        self.primary = list(primary)
        self.secondary = secondary
        self.tracker = tracker
        self.config = config or GenerationConfig.load()
        self._now = now
        self.last_outcome: Optional[ChainOutcome[GenerationResult]] = None

    @property
    def providers(self) -> List[GenerationProvider]:
        return self.primary + ([self.secondary] if self.secondary is not None else [])

    def plan(self) -> List[GenerationProvider]:
        """Providers to try for the next call, in order."""
        providers = self.providers
        available = set(self.tracker.available([p.provider_id for p in providers]))
        chain = [p for p in providers if p.provider_id in available]
        if chain:
            skipped = len(providers) - len(chain)
            if skipped:
                logger.info(f"Skipping {skipped} rate-limited provider(s)")
            return chain

        preferred = self.tracker.get_preferred_provider([p.provider_id for p in providers])
        return [p for p in providers if p.provider_id == preferred][:1]

    async def generate(self, prompt: str) -> Optional[GenerationResult]:
        """Return a validated article, or None when every provider failed."""
        system_prompt = build_system_prompt(
            self.config.system_prompt,
            self.config.timezone,
            self._now() if self._now else None,
        )
        logger.debug(f"Generation prompt received ({len(prompt)} chars)")

        attempts = [
            (provider.provider_id, partial(self._attempt, provider, system_prompt, prompt))
            for provider in self.plan()
        ]
        outcome: ChainOutcome[GenerationResult] = await FallbackChain("generation", attempts).run()
        self.last_outcome = outcome
        return outcome.value

    async def _attempt(self, provider: GenerationProvider, system_prompt: str,
                       prompt: str) -> AttemptResult[GenerationResult]:
        try:
            text = await with_retries(
                partial(provider.complete, system_prompt, prompt),
                retries=self.config.retries,
                backoff_seconds=self.config.retry_backoff_seconds,
                timeout=self.config.timeout_seconds,
                label=provider.provider_id,
            )
        except ProviderQuotaExceeded as e:
            self.tracker.mark_limited(provider.provider_id)
            return AttemptResult.failure(f"rate limit / quota exceeded ({e})")
        except TransientNetworkError as e:
            return AttemptResult.failure(f"network failure after retries ({e})")
        except ProviderError as e:
            return AttemptResult.failure(str(e))

        parsed = parse_generation(text)
        if not parsed.ok:
            return AttemptResult.failure(f"malformed response: {parsed.reason}")
        return parsed
