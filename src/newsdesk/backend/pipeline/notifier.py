#!/usr/bin/env python3
"""Hand-off of freshly published articles to notification delivery."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class Notifier(ABC):

    @abstractmethod
    async def notify(self, payload: Dict[str, Any]) -> None:
        """payload: {headline, id, imageUrl, category}"""


class LoggingNotifier(Notifier):
    """Default notifier: records the hand-off in the log."""

    async def notify(self, payload: Dict[str, Any]) -> None:
        logger.info(f"Notify new article {payload.get('id')}: {str(payload.get('headline', ''))[:60]}")


class CollectingNotifier(Notifier):
    """Keeps payloads in memory, for dry runs and tests."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    async def notify(self, payload: Dict[str, Any]) -> None:
        self.sent.append(dict(payload))
