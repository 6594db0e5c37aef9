#!/usr/bin/env python3
"""
Provider Rate-Limit Tracker

Keeps per-provider cooldown state across runs. A provider that returned a
quota error is considered limited until the next UTC midnight, when free-tier
quotas reset. Expiry is lazy: the first is_limited() call after resetAt clears
the entry and persists the cleared state. Writes re-read the store and only
replace the providers they changed, so limits set by another run survive.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...shared.types.results import ProviderState
from ...shared.utils.logging_config import log_step, log_warning
from ..storage.state_store import StateStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_utc_midnight(now: datetime) -> datetime:
    """First 00:00 UTC strictly after now."""
    now_utc = now.astimezone(timezone.utc)
    return (now_utc + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)


class RateLimitTracker:
    """Tracks which generation providers are cooling down and picks the next usable one."""

    def __init__(self, store: StateStore, clock: Callable[[], datetime] = _utc_now):
        self.store = store
        self._clock = clock
        self._states: Dict[str, ProviderState] = self._load()

    def _load(self) -> Dict[str, ProviderState]:
        try:
            raw = self.store.load()
        except Exception as e:
            log_warning(logger, f"Could not load rate limit state, starting fresh: {e}")
            return {}

        states: Dict[str, ProviderState] = {}
        for provider_id, data in (raw or {}).items():
            try:
                states[provider_id] = ProviderState.from_dict(provider_id, data)
            except (TypeError, ValueError, OverflowError) as e:
                log_warning(logger, f"Corrupt rate limit state for {provider_id}, resetting it: {e}")
                states[provider_id] = ProviderState(provider_id)
        return states

    def _persist(self, *changed: str) -> None:
        """Write back the changed providers on top of the latest stored state."""
        for provider_id, state in self._load().items():
            if provider_id not in changed:
                self._states[provider_id] = state
        try:
            self.store.save({pid: state.to_dict() for pid, state in self._states.items()})
        except Exception as e:
            logger.error(f"Failed to save rate limit state: {e}")

    def state_of(self, provider_id: str) -> Optional[ProviderState]:
        return self._states.get(provider_id)

    def mark_limited(self, provider_id: str) -> ProviderState:
        """Put a provider on cooldown until the next UTC midnight."""
        now = self._clock()
        previous = self._states.get(provider_id)
        state = ProviderState(
            provider_id=provider_id,
            is_limited=True,
            limited_since=now,
            reset_at=next_utc_midnight(now),
            failure_count=(previous.failure_count if previous else 0) + 1,
        )
        self._states[provider_id] = state
        self._persist(provider_id)

        hours_left = (state.reset_at - now).total_seconds() / 3600
        log_warning(logger, f"{provider_id} rate limit detected, resets at "
                            f"{state.reset_at.isoformat()} (~{hours_left:.1f}h)")
        return state

    def is_limited(self, provider_id: str) -> bool:
        state = self._states.get(provider_id)
        if state is None or not state.is_limited:
            return False
        if state.reset_at is None or self._clock() >= state.reset_at:
            self.clear_limit(provider_id)
            return False
        return True

    def clear_limit(self, provider_id: str) -> None:
        """Reset every field of a provider's state."""
        self._states[provider_id] = ProviderState(provider_id)
        self._persist(provider_id)
        logger.info(f"{provider_id} rate limit cleared")

    def get_preferred_provider(self, priority: Sequence[str]) -> str:
        """First non-limited provider in priority order, else the first entry."""
        if not priority:
            raise ValueError("priority list is empty")
        for provider_id in priority:
            if not self.is_limited(provider_id):
                return provider_id
        log_warning(logger, f"All of {', '.join(priority)} are rate-limited, returning {priority[0]}")
        return priority[0]

    def available(self, priority: Sequence[str]) -> List[str]:
        """Non-limited providers, in priority order."""
        return [pid for pid in priority if not self.is_limited(pid)]

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot for operators; applies lazy expiry first."""
        status = {}
        for provider_id in sorted(self._states):
            limited = self.is_limited(provider_id)
            state = self._states[provider_id]
            status[provider_id] = {
                'limited': limited,
                'limited_since': state.limited_since.isoformat() if state.limited_since else None,
                'reset_at': state.reset_at.isoformat() if state.reset_at else None,
                'failures': state.failure_count,
            }
        return status

    def reset_all(self) -> None:
        """Manual override: clear every provider."""
        provider_ids = set(self._states) | set(self._load())
        self._states = {pid: ProviderState(pid) for pid in provider_ids}
        self._persist(*provider_ids)
        log_step(logger, "Rate limits reset", f"{len(self._states)} providers cleared")
