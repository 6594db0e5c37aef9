#!/usr/bin/env python3
"""Shared data types and errors."""

from .errors import (
    AssetUploadError,
    NewsdeskError,
    PersistenceError,
    ProviderError,
    ProviderQuotaExceeded,
    TransientNetworkError,
)
from .results import (
    ArticleCategory,
    ArticleRecord,
    ArticleStatus,
    AttemptResult,
    CandidateItem,
    CategoryDecision,
    DuplicateCheck,
    GenerationResult,
    MediaAsset,
    MediaType,
    ProviderState,
    PublishMode,
    PublishPolicy,
    RunSummary,
    TopicFingerprint,
)

__all__ = [
    'AssetUploadError',
    'NewsdeskError',
    'PersistenceError',
    'ProviderError',
    'ProviderQuotaExceeded',
    'TransientNetworkError',
    'ArticleCategory',
    'ArticleRecord',
    'ArticleStatus',
    'AttemptResult',
    'CandidateItem',
    'CategoryDecision',
    'DuplicateCheck',
    'GenerationResult',
    'MediaAsset',
    'MediaType',
    'ProviderState',
    'PublishMode',
    'PublishPolicy',
    'RunSummary',
    'TopicFingerprint',
]
