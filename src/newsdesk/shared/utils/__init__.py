#!/usr/bin/env python3
"""Shared utilities."""

from .fallback import ChainOutcome, FallbackChain
from .logging_config import log_error, log_result, log_skip, log_step, log_warning, setup_logging
from .retry import with_retries
from .text_utils import TextUtils

__all__ = [
    'ChainOutcome',
    'FallbackChain',
    'TextUtils',
    'log_error',
    'log_result',
    'log_skip',
    'log_step',
    'log_warning',
    'setup_logging',
    'with_retries',
]
