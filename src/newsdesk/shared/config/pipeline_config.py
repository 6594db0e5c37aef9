#!/usr/bin/env python3
"""
Typed configuration objects built from app.yaml sections.

Every field has a default so a missing or partial YAML section still yields a
usable configuration.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Type, TypeVar

from .config_loader import (
    get_dedup_config,
    get_generation_config,
    get_media_config,
    get_pipeline_config,
)

C = TypeVar('C')


def _from_section(cls: Type[C], section: Optional[Dict[str, Any]]) -> C:
    known = {f.name for f in fields(cls)}
    values = {k: v for k, v in (section or {}).items() if k in known and v is not None}
    return cls(**values)


@dataclass
class DedupConfig:
    threshold: float = 0.40
    single_entity_boost: float = 0.10
    multi_entity_boost: float = 0.20
    window_hours: float = 6
    max_age_hours: float = 24
    cold_start_min_entries: int = 10
    cleanup_batch_size: int = 100
    cleanup_max_batches: int = 20
    cross_source_only: bool = False
    key_entities: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> 'DedupConfig':
        return _from_section(cls, section)

    @classmethod
    def load(cls) -> 'DedupConfig':
        return cls.from_dict(get_dedup_config())


@dataclass
class GenerationConfig:
    primary_models: List[str] = field(default_factory=lambda: ['gemini-2.5-flash', 'gemini-2.5-flash-lite'])
    secondary_model: Optional[str] = 'moonshotai/kimi-k2-instruct-0905'
    timeout_seconds: float = 60
    retries: int = 2
    retry_backoff_seconds: float = 1.5
    temperature: float = 0.7
    max_tokens: int = 2048
    timezone: str = 'Asia/Kolkata'
    system_prompt: str = 'Respond with a single JSON object only.'

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> 'GenerationConfig':
        return _from_section(cls, section)

    @classmethod
    def load(cls) -> 'GenerationConfig':
        return cls.from_dict(get_generation_config())


@dataclass
class MediaConfig:
    image_model: str = 'black-forest-labs/FLUX.1-schnell'
    image_timeout_seconds: float = 60
    credential_pause_seconds: float = 2
    retries: int = 1
    retry_backoff_seconds: float = 2
    upload_timeout_seconds: float = 30
    audio_timeout_seconds: float = 45
    audio_max_chars: int = 5000
    native_tts_model: str = 'gemini-2.5-flash-preview-tts'
    native_tts_voice: str = 'Kore'
    native_tts_chunk_chars: int = 4000
    elevenlabs_voice_id: str = 'JBFqnCBsd6RMkjVDRZzb'
    elevenlabs_model: str = 'eleven_multilingual_v2'
    elevenlabs_chunk_chars: int = 5000
    commodity_tts_language: str = 'hi'
    commodity_tts_chunk_chars: int = 200
    audio_folder: str = 'news_audio'

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> 'MediaConfig':
        return _from_section(cls, section)

    @classmethod
    def load(cls) -> 'MediaConfig':
        return cls.from_dict(get_media_config())


@dataclass
class PipelineConfig:
    cooldown_seconds: float = 20
    persistence_timeout_seconds: float = 15
    max_items_per_run: int = 5
    state_file: str = '.rate-limit-state.json'
    settings_file: str = 'settings.json'

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> 'PipelineConfig':
        return _from_section(cls, section)

    @classmethod
    def load(cls) -> 'PipelineConfig':
        return cls.from_dict(get_pipeline_config())
