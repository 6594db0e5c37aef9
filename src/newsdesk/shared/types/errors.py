#!/usr/bin/env python3
"""
Error types shared across the Newsdesk pipeline.

Vendor SDK exceptions are translated into these at the adapter boundary so the
fallback chains only ever reason about a handful of failure kinds.
"""

from typing import Optional


class NewsdeskError(Exception):
    """Base class for all pipeline errors."""


class ProviderError(NewsdeskError):
    """A generation, image or speech vendor call failed."""

    def __init__(self, provider_id: str, message: str = "", status_code: Optional[int] = None):
        self.provider_id = provider_id
        self.status_code = status_code
        super().__init__(f"{provider_id}: {message}" if message else provider_id)


class ProviderQuotaExceeded(ProviderError):
    """Quota / "too many requests" response. Never retried on the same provider."""


class TransientNetworkError(ProviderError):
    """Connection reset, timeout or 5xx. Eligible for a short local retry."""


class AssetUploadError(NewsdeskError):
    """The asset host rejected or failed an upload."""


class PersistenceError(NewsdeskError):
    """The persistence layer failed for a reason other than a duplicate key."""


def is_quota_message(message: str) -> bool:
    """Check whether an error message looks like a quota / rate-limit response."""
    lowered = (message or "").lower()
    return (
        "429" in lowered
        or "resource_exhausted" in lowered
        or "quota" in lowered
        or "too many requests" in lowered
        or "rate limit" in lowered
    )
