#!/usr/bin/env python3
"""
Topic Deduplicator

Decides whether a candidate headline repeats a story accepted within the
recency window, across all bots feeding the desk. Headlines are reduced to
token sets and compared with Jaccard similarity plus a small boost when the
overlap contains high-signal entities (places, incident types, units).

The in-memory cache is authoritative for the running process; the persistent
store only fills it on cold start and lets other processes see our accepts.
"""

import logging
import time
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from ...shared.config.pipeline_config import DedupConfig
from ...shared.types.results import DuplicateCheck, TopicFingerprint
from ...shared.utils.logging_config import log_step, log_warning
from ...shared.utils.text_utils import TextUtils
from ..storage.fingerprint_store import FingerprintStore

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000


class TopicDeduplicator:
    """Semantic duplicate detection over a bounded recency window."""

    def __init__(self,
                 store: Optional[FingerprintStore] = None,
                 config: Optional[DedupConfig] = None,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            store: Persistent fingerprint store, or None for a memory-only deduplicator
            config: Thresholds, boosts and windows; loaded from app.yaml when omitted
            clock: Returns the current time in seconds since the epoch
        """
        self.store = store
        self.config = config or DedupConfig.load()
        self._clock = clock
        self._cache: Dict[str, TopicFingerprint] = {}
        self.key_entities: FrozenSet[str] = frozenset(
            token for entity in self.config.key_entities
            for token in TextUtils.tokenize(str(entity), stop_words=())
        )

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def normalize(self, text: str) -> FrozenSet[str]:
        return TextUtils.tokenize(text)

    @staticmethod
    def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
        union = a | b
        if not union:
            return 0.0
        return len(a & b) / len(union)

    def similarity(self, a: FrozenSet[str], b: FrozenSet[str]) -> float:
        """Jaccard similarity plus the entity boost, capped at 1.0."""
        base = self.jaccard(a, b)
        shared_entities = len(a & b & self.key_entities)
        if shared_entities >= 2:
            base += self.config.multi_entity_boost
        elif shared_entities == 1:
            base += self.config.single_entity_boost
        return min(1.0, base)

    def _eligible(self, fingerprint: TopicFingerprint, source_id: str, cutoff_ms: int) -> bool:
        if fingerprint.timestamp_ms < cutoff_ms:
            return False
        if self.config.cross_source_only and fingerprint.source_bot_id == source_id:
            return False
        return True

    def _best_match(self, words: FrozenSet[str], source_id: str, cutoff_ms: int,
                    fingerprints: Iterable[TopicFingerprint]) -> DuplicateCheck:
        best = DuplicateCheck(duplicate=False)
        for fingerprint in fingerprints:
            if not self._eligible(fingerprint, source_id, cutoff_ms):
                continue
            score = self.similarity(words, fingerprint.word_set)
            if score > best.similarity:
                best = DuplicateCheck(
                    duplicate=score >= self.config.threshold,
                    matched_source=fingerprint.source_bot_id,
                    similarity=score,
                    matched_text=fingerprint.original_text,
                )
        return best

    async def is_duplicate(self, text: str, source_id: str,
                           window_hours: Optional[float] = None) -> DuplicateCheck:
        """Check text against fingerprints accepted within the window."""
        words = self.normalize(text)
        if not words:
            return DuplicateCheck(duplicate=False)

        window = self.config.window_hours if window_hours is None else window_hours
        cutoff_ms = self._now_ms() - int(window * HOUR_MS)
        key = TextUtils.fingerprint_key(words)

        exact = self._cache.get(key)
        if exact and self._eligible(exact, source_id, cutoff_ms):
            logger.info(f"Topic cache hit (exact) for '{text[:50]}', already posted by {exact.source_bot_id}")
            return DuplicateCheck(True, exact.source_bot_id, 1.0, exact.original_text)

        best = self._best_match(words, source_id, cutoff_ms, self._cache.values())
        if best.duplicate:
            logger.info(f"Topic cache hit ({best.similarity:.2f}) for '{text[:50]}' "
                        f"~ '{(best.matched_text or '')[:50]}' from {best.matched_source}")
            return best

        if self.store is not None and len(self._cache) < self.config.cold_start_min_entries:
            loaded = await self._hydrate(cutoff_ms)
            stored = self._best_match(words, source_id, cutoff_ms, loaded)
            if stored.similarity > best.similarity:
                best = stored
            if best.duplicate:
                logger.info(f"Topic store hit ({best.similarity:.2f}) for '{text[:50]}' from {best.matched_source}")

        return best

    async def _hydrate(self, cutoff_ms: int) -> List[TopicFingerprint]:
        try:
            loaded = await self.store.load_since(cutoff_ms)
        except Exception as e:
            log_warning(logger, f"Topic store read failed, using memory only: {e}")
            return []
        for fingerprint in loaded:
            current = self._cache.get(fingerprint.normalized_key)
            if current is None or current.timestamp_ms < fingerprint.timestamp_ms:
                self._cache[fingerprint.normalized_key] = fingerprint
        if loaded:
            logger.debug(f"Hydrated {len(loaded)} fingerprints from the topic store")
        return loaded

    async def log_accepted(self, text: str, source_id: str) -> Optional[TopicFingerprint]:
        """Record an accepted headline. Memory first, store best-effort."""
        words = self.normalize(text)
        if not words:
            return None

        fingerprint = TopicFingerprint(
            normalized_key=TextUtils.fingerprint_key(words),
            word_set=words,
            original_text=text,
            source_bot_id=source_id,
            timestamp_ms=self._now_ms(),
        )
        self._cache[fingerprint.normalized_key] = fingerprint
        self._evict_memory(fingerprint.timestamp_ms - int(self.config.max_age_hours * HOUR_MS))

        if self.store is not None:
            try:
                await self.store.put(fingerprint)
            except Exception as e:
                log_warning(logger, f"Failed to persist topic fingerprint: {e}")
        logger.debug(f"Logged topic '{text[:50]}' from {source_id}")
        return fingerprint

    def _evict_memory(self, cutoff_ms: int) -> int:
        stale = [key for key, fp in self._cache.items() if fp.timestamp_ms < cutoff_ms]
        for key in stale:
            del self._cache[key]
        return len(stale)

    async def cleanup(self, max_age_hours: Optional[float] = None) -> int:
        """Purge fingerprints older than max age from memory and the store, in bounded batches."""
        max_age = self.config.max_age_hours if max_age_hours is None else max_age_hours
        cutoff_ms = self._now_ms() - int(max_age * HOUR_MS)
        evicted = self._evict_memory(cutoff_ms)

        deleted = 0
        if self.store is not None:
            batch_size = self.config.cleanup_batch_size
            try:
                for _ in range(self.config.cleanup_max_batches):
                    removed = await self.store.delete_older_than(cutoff_ms, batch_size)
                    deleted += removed
                    if removed < batch_size:
                        break
            except Exception as e:
                log_warning(logger, f"Topic store cleanup failed after {deleted} deletions: {e}")

        log_step(logger, "Topic cache cleanup", f"{evicted} evicted from memory, {deleted} deleted from store")
        return deleted
