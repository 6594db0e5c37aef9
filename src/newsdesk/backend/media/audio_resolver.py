#!/usr/bin/env python3
"""
Audio Fallback Resolver

Narrates an article through ordered speech tiers:
  1. Gemini native TTS
  2. ElevenLabs, walking a pool of API keys
  3. Google Translate TTS
Text is sanitised and capped once, then each tier splits it into chunks it can
accept and joins the synthesised chunks in their original order. An existing
audio URL for the record short-circuits everything.
"""

import asyncio
import io
import logging
import wave
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from google.genai import errors as genai_errors
from google.genai import types

from ...shared.config.pipeline_config import MediaConfig
from ...shared.types.errors import (
    AssetUploadError,
    PersistenceError,
    ProviderError,
    ProviderQuotaExceeded,
    TransientNetworkError,
    is_quota_message,
)
from ...shared.types.results import AttemptResult, MediaType
from ...shared.utils.fallback import FallbackChain
from ...shared.utils.logging_config import log_warning
from ...shared.utils.retry import with_retries
from ...shared.utils.text_utils import TextUtils
from ..storage.article_store import ArticleStore
from .asset_hosts import AssetHost
from .image_resolver import mask_key

logger = logging.getLogger(__name__)

ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
GOOGLE_TRANSLATE_TTS_URL = "https://translate.google.com/translate_tts"
BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"


def pcm_to_wav(pcm: bytes, channels: int = 1, rate: int = 24000, sample_width: int = 2) -> bytes:
    """Wrap raw PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(rate)
        wf.writeframes(pcm)
    return buffer.getvalue()


class SpeechTier(ABC):
    """One synthesis tier. Chunks are synthesised sequentially and assembled in order."""

    name: str = "tier"

    def __init__(self, max_chunk_chars: int, timeout_seconds: float = 45,
                 retries: int = 1, retry_backoff_seconds: float = 2):
        self.max_chunk_chars = max_chunk_chars
        self.timeout_seconds = timeout_seconds
        self.retries = retries
        self.retry_backoff_seconds = retry_backoff_seconds

    @abstractmethod
    async def synthesize_chunk(self, chunk: str) -> bytes:
        """Synthesise one chunk or raise ProviderError."""

    def assemble(self, parts: List[bytes]) -> bytes:
        return b"".join(parts)

    async def _synthesize_all(self, chunks: Sequence[str], call) -> bytes:
        parts = []
        for chunk in chunks:
            part = await with_retries(
                partial(call, chunk),
                retries=self.retries,
                backoff_seconds=self.retry_backoff_seconds,
                timeout=self.timeout_seconds,
                label=self.name,
            )
            if not part:
                raise ProviderError(self.name, "empty audio for chunk")
            parts.append(part)
        return self.assemble(parts)

    async def synthesize(self, text: str) -> bytes:
        chunks = TextUtils.chunk_text(text, self.max_chunk_chars)
        logger.debug(f"{self.name}: {len(chunks)} chunk(s)")
        return await self._synthesize_all(chunks, self.synthesize_chunk)


class GeminiSpeechTier(SpeechTier):
    """Gemini native TTS. Returns 24kHz 16-bit mono PCM, joined and wrapped as WAV."""

    name = "gemini-tts"

    def __init__(self, client: Any, model: str = "gemini-2.5-flash-preview-tts", voice: str = "Kore",
                 max_chunk_chars: int = 4000, **kwargs):
        super().__init__(max_chunk_chars, **kwargs)
        self.client = client
        self.model = model
        self.voice = voice

    async def synthesize_chunk(self, chunk: str) -> bytes:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=chunk,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice)
                        )
                    ),
                ),
            )
        except genai_errors.APIError as e:
            if e.code == 429 or is_quota_message(f"{e.status} {e.message}"):
                raise ProviderQuotaExceeded(self.name, str(e.message), e.code) from e
            if e.code and e.code >= 500:
                raise TransientNetworkError(self.name, str(e.message), e.code) from e
            raise ProviderError(self.name, str(e.message), e.code) from e

        if not response or not response.candidates:
            raise ProviderError(self.name, "no TTS response received")
        candidate = response.candidates[0]
        if not candidate.content or not candidate.content.parts:
            raise ProviderError(self.name, "no audio content in TTS response")
        inline = candidate.content.parts[0].inline_data
        if inline is None or not inline.data:
            raise ProviderError(self.name, "no inline audio data in TTS response")
        return inline.data

    def assemble(self, parts: List[bytes]) -> bytes:
        return pcm_to_wav(b"".join(parts))


class ElevenLabsTier(SpeechTier):
    """ElevenLabs TTS across a key pool; the first key that narrates every chunk wins."""

    name = "elevenlabs"

    def __init__(self, session: aiohttp.ClientSession, api_keys: Sequence[str],
                 voice_id: str = "JBFqnCBsd6RMkjVDRZzb", model_id: str = "eleven_multilingual_v2",
                 max_chunk_chars: int = 5000, **kwargs):
        super().__init__(max_chunk_chars, **kwargs)
        self.session = session
        self.api_keys = [k for k in api_keys if k]
        self.voice_id = voice_id
        self.model_id = model_id

    async def synthesize_chunk(self, chunk: str, api_key: Optional[str] = None) -> bytes:
        api_key = api_key or (self.api_keys[0] if self.api_keys else None)
        if not api_key:
            raise ProviderError(self.name, "no API keys configured")
        headers = {
            'Accept': 'audio/mpeg',
            'xi-api-key': api_key,
            'Content-Type': 'application/json',
        }
        payload = {'text': chunk, 'model_id': self.model_id}
        try:
            async with self.session.post(ELEVENLABS_TTS_URL.format(voice_id=self.voice_id),
                                         headers=headers, json=payload) as response:
                if response.status == 429:
                    raise ProviderQuotaExceeded(self.name, f"key {mask_key(api_key)} quota exceeded", 429)
                if response.status >= 500:
                    raise TransientNetworkError(self.name, f"HTTP {response.status}", response.status)
                if response.status != 200:
                    body = await response.text()
                    raise ProviderError(self.name, f"HTTP {response.status}: {body[:160]}", response.status)
                return await response.read()
        except aiohttp.ClientError as e:
            raise TransientNetworkError(self.name, f"{type(e).__name__}: {e}") from e

    async def synthesize(self, text: str) -> bytes:
        if not self.api_keys:
            raise ProviderError(self.name, "no API keys configured")
        chunks = TextUtils.chunk_text(text, self.max_chunk_chars)
        last_error: Optional[ProviderError] = None
        for index, api_key in enumerate(self.api_keys, start=1):
            try:
                audio = await self._synthesize_all(chunks, partial(self.synthesize_chunk, api_key=api_key))
            except ProviderError as e:
                logger.info(f"{self.name}: key {index}/{len(self.api_keys)} ({mask_key(api_key)}) failed: {e}")
                last_error = e
                continue
            logger.info(f"{self.name}: key {index}/{len(self.api_keys)} succeeded ({len(audio)} bytes)")
            return audio
        raise ProviderError(self.name, f"all {len(self.api_keys)} keys exhausted ({last_error})")


class GoogleTranslateTier(SpeechTier):
    """Google Translate TTS endpoint; only accepts short chunks."""

    name = "google-translate-tts"

    def __init__(self, session: aiohttp.ClientSession, language: str = "hi",
                 max_chunk_chars: int = 200, **kwargs):
        super().__init__(max_chunk_chars, **kwargs)
        self.session = session
        self.language = language

    async def synthesize_chunk(self, chunk: str) -> bytes:
        params = {'ie': 'UTF-8', 'q': chunk, 'tl': self.language, 'client': 'tw-ob'}
        try:
            async with self.session.get(GOOGLE_TRANSLATE_TTS_URL, params=params,
                                        headers={'User-Agent': BROWSER_USER_AGENT}) as response:
                if response.status == 429:
                    raise ProviderQuotaExceeded(self.name, "too many requests", 429)
                if response.status >= 500:
                    raise TransientNetworkError(self.name, f"HTTP {response.status}", response.status)
                if response.status != 200:
                    raise ProviderError(self.name, f"HTTP {response.status}", response.status)
                return await response.read()
        except aiohttp.ClientError as e:
            raise TransientNetworkError(self.name, f"{type(e).__name__}: {e}") from e


class AudioResolver:
    """Idempotent narrated-audio resolution across ordered speech tiers."""

    def __init__(self,
                 tiers: Sequence[SpeechTier],
                 host: AssetHost,
                 store: Optional[ArticleStore] = None,
                 config: Optional[MediaConfig] = None):
        self.tiers = list(tiers)
        self.host = host
        self.store = store
        self.config = config or MediaConfig.load()
        self._resolved: Dict[str, str] = {}

    async def existing_audio(self, record_id: str) -> Optional[str]:
        if record_id in self._resolved:
            return self._resolved[record_id]
        if self.store is None:
            return None
        try:
            return await self.store.get_audio_url(record_id)
        except PersistenceError as e:
            log_warning(logger, f"Audio lookup for {record_id} failed, generating fresh: {e}")
            return None

    async def resolve_audio(self, text: str, record_id: str) -> Optional[str]:
        """Return an audio URL for the record, or None when every tier failed."""
        existing = await self.existing_audio(record_id)
        if existing:
            logger.info(f"Using existing audio for {record_id}")
            return existing

        speech_text = TextUtils.sanitize_for_speech(text, self.config.audio_max_chars)
        if not speech_text:
            logger.info(f"No narratable text for {record_id}, skipping audio")
            return None

        attempts = [(tier.name, partial(self._attempt, tier, speech_text, record_id)) for tier in self.tiers]
        outcome = await FallbackChain("audio", attempts).run()
        if outcome.value:
            self._resolved[record_id] = outcome.value
        return outcome.value

    async def _attempt(self, tier: SpeechTier, text: str, record_id: str) -> AttemptResult[str]:
        try:
            audio = await tier.synthesize(text)
        except ProviderError as e:
            return AttemptResult.failure(str(e))
        if not audio:
            return AttemptResult.failure("empty audio")

        try:
            url = await self.host.upload(audio, MediaType.AUDIO, public_id=record_id,
                                         folder=self.config.audio_folder)
        except AssetUploadError as e:
            return AttemptResult.failure(f"upload failed: {e}")
        return AttemptResult.success(url)

    async def resolve_and_store(self, text: str, record_id: str) -> Optional[str]:
        """Resolve audio for an already persisted record and write the URL back."""
        if self.store is None:
            raise ValueError("resolve_and_store needs an article store")
        existing = await self.existing_audio(record_id)
        if existing:
            logger.info(f"Using existing audio for {record_id}")
            return existing
        url = await self.resolve_audio(text, record_id)
        if url:
            await self.store.set_audio_url(record_id, url)
        return url
