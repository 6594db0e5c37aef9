#!/usr/bin/env python3
"""
Persistent topic-fingerprint stores.

Records follow the layout
{normalizedKey, wordList, originalText, sourceBotId, timestampMs}; one record
per normalized key, later writes for the same key overwrite earlier ones.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ...shared.types.results import TopicFingerprint
from ...shared.utils.text_utils import TextUtils

logger = logging.getLogger(__name__)

TOPIC_CACHE_COLLECTION = 'topicCache'


def fingerprint_doc_id(normalized_key: str) -> str:
    """Document id safe for any store: first 40 hex chars of SHA-256."""
    return TextUtils.stable_id(normalized_key, 40)


class FingerprintStore(ABC):

    @abstractmethod
    async def put(self, fingerprint: TopicFingerprint) -> None:
        ...

    @abstractmethod
    async def load_since(self, cutoff_ms: int) -> List[TopicFingerprint]:
        ...

    @abstractmethod
    async def delete_older_than(self, cutoff_ms: int, limit: int) -> int:
        """Delete at most `limit` records older than cutoff_ms; return how many were deleted."""
        ...


class InMemoryFingerprintStore(FingerprintStore):

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}

    async def put(self, fingerprint: TopicFingerprint) -> None:
        self.records[fingerprint_doc_id(fingerprint.normalized_key)] = fingerprint.to_dict()

    async def load_since(self, cutoff_ms: int) -> List[TopicFingerprint]:
        return [
            TopicFingerprint.from_dict(data)
            for data in self.records.values()
            if data['timestampMs'] >= cutoff_ms
        ]

    async def delete_older_than(self, cutoff_ms: int, limit: int) -> int:
        stale = [doc_id for doc_id, data in self.records.items() if data['timestampMs'] < cutoff_ms][:limit]
        for doc_id in stale:
            del self.records[doc_id]
        return len(stale)


class FirestoreFingerprintStore(FingerprintStore):
    """Firestore-backed store. The SDK is blocking, so calls run in a worker thread."""

    def __init__(self, db: Any, collection: str = TOPIC_CACHE_COLLECTION):
        self.db = db
        self.collection = collection

    async def put(self, fingerprint: TopicFingerprint) -> None:
        doc_ref = self.db.collection(self.collection).document(fingerprint_doc_id(fingerprint.normalized_key))
        await asyncio.to_thread(doc_ref.set, fingerprint.to_dict(), merge=True)

    async def load_since(self, cutoff_ms: int) -> List[TopicFingerprint]:
        def _query() -> List[Dict[str, Any]]:
            query = self.db.collection(self.collection).where('timestampMs', '>=', cutoff_ms)
            return [doc.to_dict() for doc in query.stream()]

        fingerprints = []
        for data in await asyncio.to_thread(_query):
            try:
                fingerprints.append(TopicFingerprint.from_dict(data))
            except (TypeError, ValueError) as e:
                logger.debug(f"Skipping unreadable fingerprint record: {e}")
        return fingerprints

    async def delete_older_than(self, cutoff_ms: int, limit: int) -> int:
        def _delete() -> int:
            snapshot = (
                self.db.collection(self.collection)
                .where('timestampMs', '<', cutoff_ms)
                .limit(limit)
                .get()
            )
            if not snapshot:
                return 0
            batch = self.db.batch()
            for doc in snapshot:
                batch.delete(doc.reference)
            batch.commit()
            return len(snapshot)

        return await asyncio.to_thread(_delete)
