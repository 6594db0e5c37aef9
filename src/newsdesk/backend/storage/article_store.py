#!/usr/bin/env python3
"""
Article persistence.

Articles are unique on source URL and on normalized headline. Inserting a record
that collides on either key is a no-op that returns None, never an error.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions

from ...shared.types.errors import PersistenceError
from ...shared.types.results import ArticleRecord
from ...shared.utils.text_utils import TextUtils

logger = logging.getLogger(__name__)

ARTICLES_COLLECTION = 'articles'
HEADLINE_KEYS_COLLECTION = 'articleHeadlineKeys'


def record_id_for(source_url: str) -> str:
    """Article id derived from the normalized source URL."""
    return TextUtils.stable_id(TextUtils.normalize_url(source_url))


class ArticleStore(ABC):

    @abstractmethod
    async def exists(self, source_url: str) -> bool:
        ...

    @abstractmethod
    async def insert_if_absent(self, record: ArticleRecord) -> Optional[str]:
        """Insert record; return its id, or None when a record with the same natural key exists."""
        ...

    @abstractmethod
    async def get_audio_url(self, record_id: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set_audio_url(self, record_id: str, url: str) -> None:
        ...


class InMemoryArticleStore(ArticleStore):

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.insert_calls: List[str] = []
        self._source_urls: Dict[str, str] = {}
        self._headlines: Dict[str, str] = {}

    async def exists(self, source_url: str) -> bool:
        return TextUtils.normalize_url(source_url) in self._source_urls

    async def insert_if_absent(self, record: ArticleRecord) -> Optional[str]:
        self.insert_calls.append(record.id)
        url_key = TextUtils.normalize_url(record.source_url)
        if record.id in self.records or url_key in self._source_urls:
            return None
        if record.normalized_headline and record.normalized_headline in self._headlines:
            return None
        self.records[record.id] = record.to_dict()
        self._source_urls[url_key] = record.id
        if record.normalized_headline:
            self._headlines[record.normalized_headline] = record.id
        return record.id

    async def get_audio_url(self, record_id: str) -> Optional[str]:
        return (self.records.get(record_id) or {}).get('audioUrl') or None

    async def set_audio_url(self, record_id: str, url: str) -> None:
        if record_id not in self.records:
            raise PersistenceError(f"article {record_id} not found")
        self.records[record_id]['audioUrl'] = url


class FirestoreArticleStore(ArticleStore):
    """
    Firestore article store.

    The article document and a headline-key claim document are created in one
    batch, so a concurrent duplicate on either key fails the whole write.
    """

    def __init__(self, db: Any, collection: str = ARTICLES_COLLECTION,
                 headline_collection: str = HEADLINE_KEYS_COLLECTION):
        self.db = db
        self.collection = collection
        self.headline_collection = headline_collection

    async def exists(self, source_url: str) -> bool:
        def _lookup() -> bool:
            if self.db.collection(self.collection).document(record_id_for(source_url)).get().exists:
                return True
            # Records written before ids were derived from URLs
            matches = self.db.collection(self.collection).where('sourceUrl', '==', source_url).limit(1).get()
            return len(matches) > 0

        try:
            return await asyncio.to_thread(_lookup)
        except gcp_exceptions.GoogleAPICallError as e:
            raise PersistenceError(f"source URL lookup failed: {e}") from e

    async def insert_if_absent(self, record: ArticleRecord) -> Optional[str]:
        def _create() -> Optional[str]:
            batch = self.db.batch()
            batch.create(self.db.collection(self.collection).document(record.id), record.to_dict())
            if record.normalized_headline:
                key_ref = self.db.collection(self.headline_collection).document(
                    TextUtils.stable_id(record.normalized_headline, 40))
                batch.create(key_ref, {'articleId': record.id, 'normalizedHeadline': record.normalized_headline})
            batch.commit()
            return record.id

        try:
            return await asyncio.to_thread(_create)
        except gcp_exceptions.Conflict:
            logger.info(f"Article {record.id} already exists, insert skipped")
            return None
        except gcp_exceptions.GoogleAPICallError as e:
            raise PersistenceError(f"insert of {record.id} failed: {e}") from e

    async def get_audio_url(self, record_id: str) -> Optional[str]:
        def _get() -> Optional[str]:
            snapshot = self.db.collection(self.collection).document(record_id).get()
            if not snapshot.exists:
                return None
            return (snapshot.to_dict() or {}).get('audioUrl') or None

        try:
            return await asyncio.to_thread(_get)
        except gcp_exceptions.GoogleAPICallError as e:
            raise PersistenceError(f"audio lookup for {record_id} failed: {e}") from e

    async def set_audio_url(self, record_id: str, url: str) -> None:
        doc_ref = self.db.collection(self.collection).document(record_id)
        try:
            await asyncio.to_thread(doc_ref.update, {'audioUrl': url})
        except gcp_exceptions.NotFound as e:
            raise PersistenceError(f"article {record_id} not found") from e
        except gcp_exceptions.GoogleAPICallError as e:
            raise PersistenceError(f"audio update for {record_id} failed: {e}") from e
