#!/usr/bin/env python3
"""
Result Types - data structures passed between pipeline components.

Store-facing types serialise to the camelCase record layouts the persistence
layer expects; everything else stays in plain snake_case dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, List, Optional, TypeVar

from dateutil import parser as date_parser
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ArticleCategory(str, Enum):
    """Fixed set of publishable categories."""
    GOVT_SCHEME = "सरकारी योजना"
    MANDI_RATES = "मंडी भाव"
    EDUCATION = "शिक्षा विभाग"
    JOBS_RESULTS = "भर्ती व रिजल्ट"
    LOCAL_NEWS = "नागौर न्यूज़"


class PublishMode(str, Enum):
    """Global tri-state switch set by the operator."""
    AUTO = "auto"
    MANUAL = "manual"
    OFF = "off"


class ArticleStatus(str, Enum):
    PUBLISHED = "published"
    DRAFT = "draft"


class MediaType(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000 if value > 1e11 else value, timezone.utc)
    elif isinstance(value, str) and value.strip():
        parsed = date_parser.parse(value)
    else:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class CandidateItem:
    """A raw news item proposed by a collector. Consumed once."""
    headline: str
    body_text: str
    source_url: str
    published_at: datetime
    origin_bot_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_bot_id: str = "unknown") -> 'CandidateItem':
        """Create from a collector hand-off record (camelCase or snake_case keys)."""
        return cls(
            headline=str(data.get('headline') or data.get('title') or '').strip(),
            body_text=str(data.get('bodyText') or data.get('body_text') or data.get('body') or ''),
            source_url=str(data.get('sourceUrl') or data.get('source_url') or data.get('url') or '').strip(),
            published_at=_parse_datetime(data.get('publishedAt') or data.get('published_at')),
            origin_bot_id=str(data.get('originBotId') or data.get('origin_bot_id') or default_bot_id),
        )


@dataclass
class TopicFingerprint:
    """Normalized token-set representation of an accepted headline."""
    normalized_key: str
    word_set: FrozenSet[str]
    original_text: str
    source_bot_id: str
    timestamp_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'normalizedKey': self.normalized_key,
            'wordList': sorted(self.word_set),
            'originalText': self.original_text,
            'sourceBotId': self.source_bot_id,
            'timestampMs': self.timestamp_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TopicFingerprint':
        words = frozenset(str(w) for w in data.get('wordList') or [])
        return cls(
            normalized_key=data.get('normalizedKey') or ' '.join(sorted(words)),
            word_set=words,
            original_text=data.get('originalText', ''),
            source_bot_id=data.get('sourceBotId', ''),
            timestamp_ms=int(data.get('timestampMs', 0)),
        )


@dataclass
class ProviderState:
    """Cooldown state of one generation provider/model."""
    provider_id: str
    is_limited: bool = False
    limited_since: Optional[datetime] = None
    reset_at: Optional[datetime] = None
    failure_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isLimited': self.is_limited,
            'limitedSince': _isoformat(self.limited_since),
            'resetAt': _isoformat(self.reset_at),
            'failureCount': self.failure_count,
        }

    @classmethod
    def from_dict(cls, provider_id: str, data: Dict[str, Any]) -> 'ProviderState':
        """Parse a stored record. Raises ValueError/TypeError on corrupt input."""
        if not isinstance(data, dict):
            raise TypeError(f"state for {provider_id} is not a mapping")
        is_limited = bool(data.get('isLimited', False))
        reset_at = _parse_datetime(data['resetAt']) if data.get('resetAt') else None
        if is_limited and reset_at is None:
            raise ValueError(f"limited state for {provider_id} has no resetAt")
        return cls(
            provider_id=provider_id,
            is_limited=is_limited,
            limited_since=_parse_datetime(data['limitedSince']) if data.get('limitedSince') else None,
            reset_at=reset_at,
            failure_count=int(data.get('failureCount', 0)),
        )


class GenerationResult(BaseModel):
    """Structured article returned by a generation provider."""
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    headline: str = Field(min_length=1)
    content: str = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    image_keyword: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('image_keyword', 'imageKeyword', 'image_prompt', 'imagePrompt'),
    )
    date: Optional[str] = None

    @field_validator('headline', 'content', mode='before')
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        if value is None:
            return ''
        return str(value).strip()

    @field_validator('tags', mode='before')
    @classmethod
    def _coerce_tags(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = value.split(',')
        if not isinstance(value, (list, tuple)):
            return []
        return [str(tag).strip() for tag in value if str(tag).strip()]

    @field_validator('category', 'image_keyword', 'date', mode='before')
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


@dataclass
class DuplicateCheck:
    """Outcome of a deduplication lookup."""
    duplicate: bool
    matched_source: Optional[str] = None
    similarity: float = 0.0
    matched_text: Optional[str] = None


@dataclass
class MediaAsset:
    url: str
    type: MediaType
    source_tier: str


@dataclass
class PublishPolicy:
    """Global publish settings, read fresh at every decision point."""
    mode: PublishMode = PublishMode.AUTO
    enable_image_gen: bool = True
    enable_audio_gen: bool = True

    @property
    def is_active(self) -> bool:
        return self.mode != PublishMode.OFF

    @property
    def article_status(self) -> Optional[ArticleStatus]:
        if self.mode == PublishMode.AUTO:
            return ArticleStatus.PUBLISHED
        if self.mode == PublishMode.MANUAL:
            return ArticleStatus.DRAFT
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PublishPolicy':
        """Accepts both the snake_case layout and the admin panel's field names."""
        raw_mode = str(data.get('mode') or data.get('botMode') or 'auto').strip().lower()
        try:
            mode = PublishMode(raw_mode)
        except ValueError:
            mode = PublishMode.AUTO
        image = data.get('enable_image_gen', data.get('imageGenEnabled', data.get('enableImageGen', True)))
        audio = data.get('enable_audio_gen', data.get('enableAudioGen', True))
        return cls(mode=mode, enable_image_gen=image is not False, enable_audio_gen=audio is not False)


@dataclass
class CategoryDecision:
    """Reconciled category plus what each classifier layer said."""
    category: ArticleCategory
    provider_category: Optional[ArticleCategory]
    keyword_category: ArticleCategory

    @property
    def agreed(self) -> bool:
        return self.provider_category == self.keyword_category

    @property
    def source(self) -> str:
        return 'provider' if self.provider_category else 'keywords'


@dataclass
class ArticleRecord:
    """Persisted output. Unique on source_url and normalized_headline."""
    id: str
    headline: str
    normalized_headline: str
    content: str
    tags: List[str]
    category: ArticleCategory
    source_url: str
    status: ArticleStatus
    origin_bot_id: str
    image_url: str
    image_source: str
    audio_url: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'headline': self.headline,
            'normalizedHeadline': self.normalized_headline,
            'content': self.content,
            'tags': list(self.tags),
            'category': self.category.value,
            'sourceUrl': self.source_url,
            'status': self.status.value,
            'author': self.origin_bot_id,
            'imageUrl': self.image_url,
            'imageSource': self.image_source,
            'audioUrl': self.audio_url,
            'publishedAt': _isoformat(self.published_at),
            'createdAt': _isoformat(self.created_at),
            'metadata': self.metadata,
        }


@dataclass
class RunSummary:
    """What a single pipeline run produced."""
    bot_id: str
    total_candidates: int = 0
    processed: int = 0
    skipped_duplicates: int = 0
    skipped_existing: int = 0
    skipped_invalid: int = 0
    generation_failures: int = 0
    errors: int = 0
    halted: bool = False
    accepted_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bot_id': self.bot_id,
            'total_candidates': self.total_candidates,
            'processed': self.processed,
            'skipped_duplicates': self.skipped_duplicates,
            'skipped_existing': self.skipped_existing,
            'skipped_invalid': self.skipped_invalid,
            'generation_failures': self.generation_failures,
            'errors': self.errors,
            'halted': self.halted,
            'accepted_ids': list(self.accepted_ids),
        }


T = TypeVar('T')


@dataclass
class AttemptResult(Generic[T]):
    """Tagged ok/err outcome of one fallback attempt."""
    ok: bool
    value: Optional[T] = None
    reason: str = ''

    @classmethod
    def success(cls, value: T) -> 'AttemptResult[T]':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> 'AttemptResult[T]':
        return cls(ok=False, reason=reason)
