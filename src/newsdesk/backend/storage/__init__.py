#!/usr/bin/env python3
"""State, fingerprint and article stores."""

from .article_store import ArticleStore, FirestoreArticleStore, InMemoryArticleStore, record_id_for
from .fingerprint_store import FingerprintStore, FirestoreFingerprintStore, InMemoryFingerprintStore
from .state_store import InMemoryStateStore, JsonFileStateStore, StateStore

__all__ = [
    'ArticleStore',
    'FirestoreArticleStore',
    'InMemoryArticleStore',
    'record_id_for',
    'FingerprintStore',
    'FirestoreFingerprintStore',
    'InMemoryFingerprintStore',
    'InMemoryStateStore',
    'JsonFileStateStore',
    'StateStore',
]
