#!/usr/bin/env python3
"""
Content Pipeline

Per candidate: natural-key check → topic dedup → generation → dedup of the
rewritten headline → category reconciliation → image/audio (concurrently) →
publish gate → insert → fingerprint logging → notification.

Nothing that goes wrong with one candidate stops the run; the worst outcome
for a candidate is that it produces nothing this cycle. Only the publish mode
flipping to off ends a run early.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from ...shared.config.pipeline_config import PipelineConfig
from ...shared.types.errors import PersistenceError
from ...shared.types.results import (
    ArticleRecord,
    ArticleStatus,
    CandidateItem,
    MediaAsset,
    MediaType,
    PublishPolicy,
    RunSummary,
)
from ...shared.utils.logging_config import log_error, log_result, log_skip, log_step, log_warning
from ...shared.utils.text_utils import TextUtils
from ..generation.orchestrator import GenerationOrchestrator
from ..generation.prompts import build_article_prompt
from ..media.audio_resolver import AudioResolver
from ..media.image_resolver import ImageResolver
from ..media.stock_images import stock_image_for
from ..processors.category_classifier import CategoryReconciler
from ..processors.topic_deduplicator import TopicDeduplicator
from ..storage.article_store import ArticleStore, record_id_for
from .gatekeeper import PublishGatekeeper
from .notifier import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)


class ItemOutcome(str, Enum):
    ACCEPTED = "accepted"
    SKIPPED = "skipped"
    HALTED = "halted"


class ContentPipeline:
    """Runs candidate items from one bot through the full publish flow."""

    def __init__(self,
                 deduplicator: TopicDeduplicator,
                 generator: GenerationOrchestrator,
                 gatekeeper: PublishGatekeeper,
                 articles: ArticleStore,
                 image_resolver: Optional[ImageResolver] = None,
                 audio_resolver: Optional[AudioResolver] = None,
                 reconciler: Optional[CategoryReconciler] = None,
                 notifier: Optional[Notifier] = None,
                 config: Optional[PipelineConfig] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.deduplicator = deduplicator
        self.generator = generator
        self.gatekeeper = gatekeeper
        self.articles = articles
        self.image_resolver = image_resolver
        self.audio_resolver = audio_resolver
        self.reconciler = reconciler or CategoryReconciler()
        self.notifier = notifier or LoggingNotifier()
        self.config = config or PipelineConfig.load()
        self._sleep = sleep

    async def run(self, candidates: Sequence[CandidateItem], bot_id: str) -> RunSummary:
        summary = RunSummary(bot_id=bot_id, total_candidates=len(candidates))
        policy = await self.gatekeeper.begin_run()
        if policy is None:
            summary.halted = True
            return summary

        items = list(candidates)
        if self.config.max_items_per_run and len(items) > self.config.max_items_per_run:
            logger.info(f"Limiting run to {self.config.max_items_per_run} of {len(items)} candidates")
            items = items[:self.config.max_items_per_run]

        start_time = time.time()
        log_step(logger, f"Processing {len(items)} candidates", bot_id)
        for index, candidate in enumerate(items, start=1):
            logger.info(f"[{index}/{len(items)}] {candidate.headline[:70]}")
            try:
                outcome = await self.process_item(candidate, bot_id, summary)
            except Exception as e:
                summary.errors += 1
                log_error(logger, f"Candidate failed ({type(e).__name__}): {e}")
                logger.debug("Candidate failure details", exc_info=True)
                continue

            if outcome == ItemOutcome.HALTED:
                summary.halted = True
                break
            if outcome == ItemOutcome.ACCEPTED and index < len(items) and self.config.cooldown_seconds > 0:
                logger.debug(f"Cooling down for {self.config.cooldown_seconds}s")
                await self._sleep(self.config.cooldown_seconds)

        log_result(logger, f"Run complete for {bot_id}", len(items), summary.processed, time.time() - start_time)
        if summary.halted:
            log_warning(logger, "Run halted early: publish mode is off")
        return summary

    async def process_item(self, candidate: CandidateItem, bot_id: str, summary: RunSummary) -> ItemOutcome:
        policy = await self.gatekeeper.current_policy()
        if not policy.is_active:
            return ItemOutcome.HALTED

        if not candidate.headline.strip() or not candidate.source_url.strip():
            summary.skipped_invalid += 1
            log_skip(logger, "Missing headline or source URL", candidate.headline)
            return ItemOutcome.SKIPPED

        if await self._source_exists(candidate.source_url):
            summary.skipped_existing += 1
            log_skip(logger, "Source URL already published", candidate.source_url)
            return ItemOutcome.SKIPPED

        check = await self.deduplicator.is_duplicate(candidate.headline, bot_id)
        if check.duplicate:
            summary.skipped_duplicates += 1
            log_skip(logger, f"Duplicate topic ({check.similarity:.2f}) of {check.matched_source}",
                     check.matched_text or "")
            return ItemOutcome.SKIPPED

        result = await self.generator.generate(build_article_prompt(candidate))
        if result is None:
            summary.generation_failures += 1
            log_skip(logger, "Generation chain exhausted", candidate.headline)
            return ItemOutcome.SKIPPED

        rewritten = await self.deduplicator.is_duplicate(result.headline, bot_id)
        if rewritten.duplicate:
            summary.skipped_duplicates += 1
            log_skip(logger, f"Rewritten headline duplicates {rewritten.matched_source} "
                             f"({rewritten.similarity:.2f})", result.headline)
            return ItemOutcome.SKIPPED

        decision = self.reconciler.reconcile(result.category, result.headline, result.content)
        record_id = record_id_for(candidate.source_url)
        content = TextUtils.markdown_to_html(result.content)

        image, audio_url = await self._resolve_media(policy, decision.category, result.image_keyword,
                                                     f"{result.headline}. {result.content}", record_id)

        status = await self.gatekeeper.authorize_write()
        if status is None:
            return ItemOutcome.HALTED

        now = datetime.now(timezone.utc)
        record = ArticleRecord(
            id=record_id,
            headline=result.headline,
            normalized_headline=TextUtils.normalize_headline(result.headline),
            content=content,
            tags=list(dict.fromkeys(result.tags)),
            category=decision.category,
            source_url=candidate.source_url,
            status=status,
            origin_bot_id=bot_id,
            image_url=image.url,
            image_source=image.source_tier,
            audio_url=audio_url,
            published_at=now if status == ArticleStatus.PUBLISHED else None,
            created_at=now,
            metadata={
                'sourceHeadline': candidate.headline,
                'categorySource': decision.source,
                'categoryAgreed': decision.agreed,
                'generatedBy': self.generator.last_outcome.winner if self.generator.last_outcome else None,
            },
        )

        try:
            inserted = await asyncio.wait_for(self.articles.insert_if_absent(record),
                                              timeout=self.config.persistence_timeout_seconds)
        except asyncio.TimeoutError as e:
            raise PersistenceError(f"insert timed out after {self.config.persistence_timeout_seconds}s") from e

        if inserted is None:
            summary.skipped_existing += 1
            log_skip(logger, "Article already exists (concurrent insert)", record.headline)
            return ItemOutcome.SKIPPED

        await self.deduplicator.log_accepted(candidate.headline, bot_id)
        if record.normalized_headline != TextUtils.normalize_headline(candidate.headline):
            await self.deduplicator.log_accepted(result.headline, bot_id)

        summary.processed += 1
        summary.accepted_ids.append(inserted)
        log_step(logger, f"Saved ({status.value})", f"{record.headline[:60]} [{record.category.value}]")

        if status == ArticleStatus.PUBLISHED:
            await self._notify(record)
        return ItemOutcome.ACCEPTED

    async def _source_exists(self, source_url: str) -> bool:
        try:
            return await asyncio.wait_for(self.articles.exists(source_url),
                                          timeout=self.config.persistence_timeout_seconds)
        except (PersistenceError, asyncio.TimeoutError) as e:
            # insert_if_absent still guards the natural key
            log_warning(logger, f"Source URL check failed, continuing: {e}")
            return False

    async def _resolve_media(self, policy: PublishPolicy, category, image_prompt: Optional[str],
                             narration: str, record_id: str):
        async def image_task() -> MediaAsset:
            if self.image_resolver is None:
                return MediaAsset(stock_image_for(category), MediaType.IMAGE, 'stock')
            return await self.image_resolver.resolve_with_fallback(category, image_prompt,
                                                                   enabled=policy.enable_image_gen)

        async def audio_task() -> Optional[str]:
            if self.audio_resolver is None or not policy.enable_audio_gen:
                return None
            return await self.audio_resolver.resolve_audio(narration, record_id)

        image, audio = await asyncio.gather(image_task(), audio_task(), return_exceptions=True)
        if isinstance(image, Exception):
            log_warning(logger, f"Image resolution failed, using stock image: {image}")
            image = MediaAsset(stock_image_for(category), MediaType.IMAGE, 'stock')
        if isinstance(audio, Exception):
            log_warning(logger, f"Audio resolution failed, publishing without audio: {audio}")
            audio = None
        return image, audio

    async def _notify(self, record: ArticleRecord) -> None:
        try:
            await self.notifier.notify({
                'headline': record.headline,
                'id': record.id,
                'imageUrl': record.image_url,
                'category': record.category.value,
            })
        except Exception as e:
            log_warning(logger, f"Notification hand-off failed: {e}")


def load_candidates(records: List[dict], bot_id: str) -> List[CandidateItem]:
    """Build candidates from collector hand-off records."""
    return [CandidateItem.from_dict(record, default_bot_id=bot_id) for record in records]
