#!/usr/bin/env python3
"""Provider monitoring."""

from .rate_limit_tracker import RateLimitTracker, next_utc_midnight

__all__ = ['RateLimitTracker', 'next_utc_midnight']
