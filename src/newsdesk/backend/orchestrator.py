#!/usr/bin/env python3
"""
Newsdesk Orchestrator
Wires the pipeline from environment credentials and app.yaml, and exposes the
operator commands: run a bot's candidates, purge old topic fingerprints,
inspect or reset provider rate limits, and narrate an existing article.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from dotenv import load_dotenv
from google import genai
from groq import AsyncGroq
from rich.table import Table

from ..shared.config.config_loader import get_env_key_pool
from ..shared.config.pipeline_config import DedupConfig, GenerationConfig, MediaConfig, PipelineConfig
from ..shared.utils.logging_config import console, log_error, log_step, log_warning, setup_logging
from .generation.orchestrator import GenerationOrchestrator
from .generation.providers import GeminiProvider, GenerationProvider, GroqProvider
from .media.asset_hosts import CloudinaryHost, ImgBBHost, configure_cloudinary
from .media.audio_resolver import AudioResolver, ElevenLabsTier, GeminiSpeechTier, GoogleTranslateTier, SpeechTier
from .media.image_resolver import HuggingFaceImageGenerator, ImageResolver
from .monitoring.rate_limit_tracker import RateLimitTracker
from .pipeline.content_pipeline import ContentPipeline, load_candidates
from .pipeline.gatekeeper import FirestoreSettingsSource, JsonFileSettingsSource, PublishGatekeeper
from .processors.topic_deduplicator import TopicDeduplicator
from .storage.article_store import ArticleStore, InMemoryArticleStore, FirestoreArticleStore
from .storage.fingerprint_store import FingerprintStore, FirestoreFingerprintStore, InMemoryFingerprintStore
from .storage.state_store import JsonFileStateStore

load_dotenv('.env.local')
load_dotenv()

logger = logging.getLogger(__name__)

# Legacy single-token variables kept from earlier deployments
HF_LEGACY_TOKEN_VARS = ['HUGGINGTOCK', 'HUGGINGTOCK_BACKUP', 'HUGGINGTOCK_BACKUP2']


def firebase_configured() -> bool:
    return bool(
        os.getenv('FIREBASE_CREDENTIALS')
        or os.getenv('FIREBASE_SERVICE_ACCOUNT')
        or (os.getenv('FIREBASE_PROJECT_ID') and os.getenv('FIREBASE_PRIVATE_KEY'))
    )


def image_token_pool() -> List[str]:
    tokens = get_env_key_pool('HF_API_TOKEN')
    for name in HF_LEGACY_TOKEN_VARS:
        value = (os.getenv(name) or '').strip()
        if value and value not in tokens:
            tokens.append(value)
    return tokens


def build_generation_providers(config: GenerationConfig):
    """Primary (Gemini) models in priority order plus the secondary (Groq) model."""
    primary: List[GenerationProvider] = []
    gemini_key = os.getenv('GEMINI_API_KEY')
    if gemini_key:
        client = genai.Client(api_key=gemini_key)
        primary = [GeminiProvider(client, model, config.temperature, config.max_tokens)
                   for model in config.primary_models]
    else:
        log_warning(logger, "GEMINI_API_KEY not set, primary generation chain disabled")

    secondary: Optional[GenerationProvider] = None
    groq_key = os.getenv('GROQ_API_KEY')
    if groq_key and config.secondary_model:
        # with_retries is the only retry layer; a 429 must reach the chain untouched
        secondary = GroqProvider(AsyncGroq(api_key=groq_key, max_retries=0), config.secondary_model,
                                 config.temperature, config.max_tokens)
    elif config.secondary_model:
        log_warning(logger, "GROQ_API_KEY not set, secondary generation provider disabled")

    if not primary and secondary is None:
        raise ValueError("No generation provider configured: set GEMINI_API_KEY and/or GROQ_API_KEY")
    return primary, secondary


def build_speech_tiers(session: aiohttp.ClientSession, config: MediaConfig) -> List[SpeechTier]:
    common = {
        'timeout_seconds': config.audio_timeout_seconds,
        'retries': config.retries,
        'retry_backoff_seconds': config.retry_backoff_seconds,
    }
    tiers: List[SpeechTier] = []
    gemini_key = os.getenv('GEMINI_API_KEY')
    if gemini_key:
        tiers.append(GeminiSpeechTier(genai.Client(api_key=gemini_key), config.native_tts_model,
                                      config.native_tts_voice, config.native_tts_chunk_chars, **common))
    elevenlabs_keys = get_env_key_pool('ELEVENLABS_API_KEY')
    if elevenlabs_keys:
        tiers.append(ElevenLabsTier(session, elevenlabs_keys, config.elevenlabs_voice_id,
                                    config.elevenlabs_model, config.elevenlabs_chunk_chars, **common))
    tiers.append(GoogleTranslateTier(session, config.commodity_tts_language,
                                     config.commodity_tts_chunk_chars, **common))
    return tiers


class Newsdesk:
    """All pipeline services built once per process."""

    def __init__(self, session: aiohttp.ClientSession):
        self.session = session
        self.pipeline_config = PipelineConfig.load()
        self.generation_config = GenerationConfig.load()
        self.media_config = MediaConfig.load()

        db: Any = None
        if firebase_configured():
            from .storage.firebase_client import init_firestore
            db = init_firestore()
            log_step(logger, "Firestore connected")
        else:
            log_warning(logger, "Firebase not configured, using in-process stores (nothing is persisted)")

        self.fingerprints: FingerprintStore = FirestoreFingerprintStore(db) if db else InMemoryFingerprintStore()
        self.articles: ArticleStore = FirestoreArticleStore(db) if db else InMemoryArticleStore()
        settings = (FirestoreSettingsSource(db) if db
                    else JsonFileSettingsSource(self.pipeline_config.settings_file))
        self.gatekeeper = PublishGatekeeper(settings)

        self.deduplicator = TopicDeduplicator(self.fingerprints, DedupConfig.load())
        self.tracker = RateLimitTracker(JsonFileStateStore(self.pipeline_config.state_file))

        configure_cloudinary()
        self.audio_host = CloudinaryHost(self.media_config.upload_timeout_seconds)
        self.image_host = ImgBBHost(session, os.getenv('IMGBB_API_KEY', ''), self.media_config.upload_timeout_seconds)

    def generator(self) -> GenerationOrchestrator:
        primary, secondary = build_generation_providers(self.generation_config)
        return GenerationOrchestrator(primary, self.tracker, secondary, self.generation_config)

    def image_resolver(self) -> ImageResolver:
        tokens = image_token_pool()
        logger.info(f"Image generation: {len(tokens)} token(s) available")
        generator = HuggingFaceImageGenerator(self.session, self.media_config.image_model)
        return ImageResolver(generator, self.image_host, tokens, self.media_config)

    def audio_resolver(self) -> AudioResolver:
        tiers = build_speech_tiers(self.session, self.media_config)
        logger.info(f"Audio tiers: {', '.join(t.name for t in tiers)}")
        return AudioResolver(tiers, self.audio_host, self.articles, self.media_config)

    def content_pipeline(self) -> ContentPipeline:
        return ContentPipeline(
            deduplicator=self.deduplicator,
            generator=self.generator(),
            gatekeeper=self.gatekeeper,
            articles=self.articles,
            image_resolver=self.image_resolver(),
            audio_resolver=self.audio_resolver(),
            config=self.pipeline_config,
        )


def read_candidates(path: Path, bot_id: str):
    """Collector hand-off file: a JSON list, or an object with an 'items' list."""
    data = json.loads(path.read_text(encoding='utf-8'))
    if isinstance(data, dict):
        data = data.get('items') or data.get('candidates') or []
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of candidates")
    return load_candidates([item for item in data if isinstance(item, dict)], bot_id)


def render_limits(status: Dict[str, Dict[str, Any]]) -> None:
    table = Table(title="Provider rate limits")
    table.add_column("Provider", style="cyan")
    table.add_column("Status")
    table.add_column("Limited since", style="dim")
    table.add_column("Resets at")
    table.add_column("Failures", justify="right")
    for provider_id, entry in status.items():
        table.add_row(
            provider_id,
            "[red]limited[/red]" if entry['limited'] else "[green]available[/green]",
            entry['limited_since'] or "-",
            entry['reset_at'] or "-",
            str(entry['failures']),
        )
    console.print(table)


async def run_bot(desk: Newsdesk, input_path: Path, bot_id: str) -> int:
    candidates = read_candidates(input_path, bot_id)
    log_step(logger, "Loaded candidates", f"{len(candidates)} from {input_path}")
    start_time = time.time()
    summary = await desk.content_pipeline().run(candidates, bot_id)
    logger.info(f"Run finished in {time.time() - start_time:.1f}s")
    console.print_json(data=summary.to_dict())
    return 0


async def run_cleanup(desk: Newsdesk, max_age_hours: Optional[float]) -> int:
    deleted = await desk.deduplicator.cleanup(max_age_hours)
    logger.info(f"Removed {deleted} stored topic fingerprints")
    return 0


async def run_audio(desk: Newsdesk, record_id: str, text: str) -> int:
    url = await desk.audio_resolver().resolve_and_store(text, record_id)
    if not url:
        log_error(logger, f"No audio could be produced for {record_id}")
        return 1
    log_step(logger, "Audio ready", url)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="newsdesk", description="Newsdesk content pipeline")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--quiet", action="store_true", help="Silence third-party library logs")
    commands = parser.add_subparsers(dest="command", required=True)

    run_parser = commands.add_parser("run", help="Process a collector's candidate items")
    run_parser.add_argument("--bot-id", required=True, help="Collector identity recorded as author")
    run_parser.add_argument("--input", type=Path, required=True, help="JSON file with candidate items")

    cleanup_parser = commands.add_parser("cleanup", help="Purge old topic fingerprints")
    cleanup_parser.add_argument("--max-age-hours", type=float, default=None)

    limits_parser = commands.add_parser("limits", help="Inspect or reset provider rate limits")
    limits_parser.add_argument("action", choices=["status", "reset"])

    audio_parser = commands.add_parser("audio", help="Generate narration for a stored article")
    audio_parser.add_argument("--record-id", required=True)
    source = audio_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text")
    source.add_argument("--file", type=Path)

    return parser.parse_args(argv)


async def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main function to run the newsdesk from the command line."""
    args = parse_args(argv)
    setup_logging(level=args.log_level, quiet_mode=args.quiet)

    try:
        if args.command == "limits":
            tracker = RateLimitTracker(JsonFileStateStore(PipelineConfig.load().state_file))
            if args.action == "reset":
                tracker.reset_all()
            render_limits(tracker.get_status())
            return 0

        async with aiohttp.ClientSession() as session:
            log_step(logger, "Initializing Newsdesk")
            desk = Newsdesk(session)
            if args.command == "run":
                return await run_bot(desk, args.input, args.bot_id)
            if args.command == "cleanup":
                return await run_cleanup(desk, args.max_age_hours)
            text = args.text if args.text is not None else args.file.read_text(encoding='utf-8')
            return await run_audio(desk, args.record_id, text)

    except KeyboardInterrupt:
        log_error(logger, "Interrupted by user")
        return 1
    except Exception as e:
        log_error(logger, f"Newsdesk failed: {e}")
        logger.debug(traceback.format_exc())
        return 1


def run():
    """Entry point for the newsdesk command."""
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        sys.exit(1)


if __name__ == "__main__":
    run()
