#!/usr/bin/env python3
"""Run-level flow: publish gate, notifications and the per-candidate pipeline."""

from .content_pipeline import ContentPipeline, ItemOutcome, load_candidates
from .gatekeeper import (
    FirestoreSettingsSource,
    JsonFileSettingsSource,
    PublishGatekeeper,
    SettingsSource,
    StaticSettingsSource,
)
from .notifier import CollectingNotifier, LoggingNotifier, Notifier

__all__ = [
    'ContentPipeline',
    'ItemOutcome',
    'load_candidates',
    'FirestoreSettingsSource',
    'JsonFileSettingsSource',
    'PublishGatekeeper',
    'SettingsSource',
    'StaticSettingsSource',
    'CollectingNotifier',
    'LoggingNotifier',
    'Notifier',
]
