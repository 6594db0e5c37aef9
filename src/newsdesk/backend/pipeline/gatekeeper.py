#!/usr/bin/env python3
"""
Publish Gatekeeper

Reads the global publish mode fresh at the start of a run and again right
before every persistence write:
  - off:    the run does not start, or halts before its next write
  - auto:   accepted items persist as published
  - manual: accepted items persist as drafts
A failed settings read reuses the last policy read successfully, or the
defaults (auto, media enabled) when nothing has been read yet.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional, Union

from ...shared.types.results import ArticleStatus, PublishMode, PublishPolicy
from ...shared.utils.logging_config import log_warning

logger = logging.getLogger(__name__)


class SettingsSource(ABC):

    @abstractmethod
    async def fetch(self) -> PublishPolicy:
        ...


class StaticSettingsSource(SettingsSource):
    """In-process settings an operator (or a test) can flip at any time."""

    def __init__(self, policy: Optional[PublishPolicy] = None):
        self.policy = policy or PublishPolicy()
        self.reads = 0

    def set_mode(self, mode: Union[PublishMode, str]) -> None:
        self.policy = replace(self.policy, mode=PublishMode(mode))

    async def fetch(self) -> PublishPolicy:
        self.reads += 1
        return replace(self.policy)


class JsonFileSettingsSource(SettingsSource):
    """Settings file re-read on every fetch. A missing file means defaults."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def fetch(self) -> PublishPolicy:
        if not self.path.exists():
            return PublishPolicy()
        data = json.loads(self.path.read_text(encoding='utf-8'))
        if not isinstance(data, dict):
            raise ValueError(f"settings file {self.path} does not hold an object")
        return PublishPolicy.from_dict(data)


class FirestoreSettingsSource(SettingsSource):
    """Admin panel settings document (settings/global)."""

    def __init__(self, db: Any, collection: str = 'settings', document: str = 'global'):
        self.db = db
        self.collection = collection
        self.document = document

    async def fetch(self) -> PublishPolicy:
        doc_ref = self.db.collection(self.collection).document(self.document)
        snapshot = await asyncio.to_thread(doc_ref.get)
        if not snapshot.exists:
            return PublishPolicy()
        return PublishPolicy.from_dict(snapshot.to_dict() or {})


class PublishGatekeeper:
    """Decides whether a run may proceed and which status accepted items get."""

    def __init__(self, source: SettingsSource):
        self.source = source
        self._last_good: Optional[PublishPolicy] = None

    async def current_policy(self) -> PublishPolicy:
        try:
            policy = await self.source.fetch()
        except Exception as e:
            fallback = self._last_good or PublishPolicy()
            log_warning(logger, f"Settings read failed, using {'last known' if self._last_good else 'default'} "
                                f"policy ({fallback.mode.value}): {e}")
            return fallback
        self._last_good = policy
        return policy

    async def begin_run(self) -> Optional[PublishPolicy]:
        """Policy for a new run, or None when the desk is switched off."""
        policy = await self.current_policy()
        if not policy.is_active:
            logger.info("Publish mode is OFF, run skipped")
            return None
        logger.info(f"Publish mode: {policy.mode.value} (image gen {'on' if policy.enable_image_gen else 'off'}, "
                    f"audio gen {'on' if policy.enable_audio_gen else 'off'})")
        return policy

    async def authorize_write(self) -> Optional[ArticleStatus]:
        """Re-check the mode right before a write; None means halt the run."""
        policy = await self.current_policy()
        if not policy.is_active:
            logger.info("Publish mode switched to OFF, halting before the next write")
            return None
        return policy.article_status
