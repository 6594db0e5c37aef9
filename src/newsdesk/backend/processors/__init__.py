#!/usr/bin/env python3
"""
Candidate processors: semantic topic deduplication and category reconciliation.
"""

from .category_classifier import CategoryReconciler
from .topic_deduplicator import TopicDeduplicator

__all__ = [
    'CategoryReconciler',
    'TopicDeduplicator',
]
