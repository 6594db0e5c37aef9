#!/usr/bin/env python3
"""
Image Fallback Resolver

Generates an article image by walking a pool of Hugging Face tokens, pausing
briefly between tokens, and uploads the first successful result. Exhausting the
pool is not an error: resolve_image() returns None and
resolve_with_fallback() substitutes the category's stock image.
"""

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable, Optional, Sequence, Union

import aiohttp

from ...shared.config.pipeline_config import MediaConfig
from ...shared.types.errors import AssetUploadError, ProviderError, ProviderQuotaExceeded, TransientNetworkError
from ...shared.types.results import ArticleCategory, AttemptResult, MediaAsset, MediaType
from ...shared.utils.fallback import FallbackChain
from ...shared.utils.retry import with_retries
from .asset_hosts import AssetHost
from .stock_images import stock_image_for

logger = logging.getLogger(__name__)

HF_INFERENCE_URL = "https://router.huggingface.co/hf-inference/models/{model}"


def mask_key(key: str) -> str:
    return f"{key[:4]}..." if key else "<empty>"


class HuggingFaceImageGenerator:
    """Text-to-image through the Hugging Face inference API."""

    def __init__(self, session: aiohttp.ClientSession, model: str = "black-forest-labs/FLUX.1-schnell"):
        self.session = session
        self.model = model

    async def generate(self, prompt: str, token: str) -> bytes:
        headers = {
            'Authorization': f'Bearer {token}',
            'Accept': 'image/png',
            'x-wait-for-model': 'true',
        }
        payload = {
            'inputs': prompt,
            'parameters': {'guidance_scale': 0.0, 'num_inference_steps': 4},
        }
        try:
            async with self.session.post(HF_INFERENCE_URL.format(model=self.model),
                                         headers=headers, json=payload) as response:
                if response.status == 429:
                    raise ProviderQuotaExceeded(self.model, "too many requests", 429)
                if response.status >= 500:
                    raise TransientNetworkError(self.model, f"HTTP {response.status}", response.status)
                if response.status != 200:
                    body = await response.text()
                    raise ProviderError(self.model, f"HTTP {response.status}: {body[:160]}", response.status)
                content_type = response.headers.get('Content-Type', '')
                if not content_type.startswith('image/'):
                    raise ProviderError(self.model, f"unexpected content type {content_type or 'none'}")
                return await response.read()
        except aiohttp.ClientError as e:
            raise TransientNetworkError(self.model, f"{type(e).__name__}: {e}") from e


class ImageResolver:
    """Resolves an image URL across a credential pool, or signals 'use the stock image'."""

    def __init__(self,
                 generator: HuggingFaceImageGenerator,
                 host: AssetHost,
                 tokens: Sequence[str],
                 config: Optional[MediaConfig] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.generator = generator
        self.host = host
        self.tokens = [t for t in tokens if t]
        self.config = config or MediaConfig.load()
        self._sleep = sleep

    async def resolve_image(self, prompt: Optional[str]) -> Optional[str]:
        """Return a hosted image URL, or None when every credential failed."""
        if not prompt or not prompt.strip():
            logger.info("No image prompt, skipping generation")
            return None
        if not self.tokens:
            logger.info("No image generation credentials configured")
            return None

        logger.info(f"Image generation for prompt '{prompt[:50]}'")
        total = len(self.tokens)
        attempts = [
            (f"token {i}/{total} ({mask_key(token)})", partial(self._attempt, token, prompt))
            for i, token in enumerate(self.tokens, start=1)
        ]
        chain = FallbackChain("image", attempts,
                              between=partial(self._sleep, self.config.credential_pause_seconds))
        outcome = await chain.run()
        return outcome.value

    async def _attempt(self, token: str, prompt: str) -> AttemptResult[str]:
        try:
            data = await with_retries(
                partial(self.generator.generate, prompt, token),
                retries=self.config.retries,
                backoff_seconds=self.config.retry_backoff_seconds,
                timeout=self.config.image_timeout_seconds,
                label=f"image {mask_key(token)}",
            )
        except ProviderError as e:
            return AttemptResult.failure(str(e))

        if not data:
            return AttemptResult.failure("empty image payload")
        logger.debug(f"Image generated ({len(data)} bytes), uploading to {self.host.name}")

        try:
            url = await self.host.upload(data, MediaType.IMAGE)
        except AssetUploadError as e:
            return AttemptResult.failure(f"upload failed: {e}")
        return AttemptResult.success(url)

    async def resolve_with_fallback(self, category: Union[ArticleCategory, str, None],
                                    prompt: Optional[str], enabled: bool = True) -> MediaAsset:
        """Generated image when possible, otherwise the deterministic stock image for the category."""
        if enabled:
            url = await self.resolve_image(prompt)
            if url:
                return MediaAsset(url=url, type=MediaType.IMAGE, source_tier='ai_generated')
            logger.info("Image generation unavailable, using stock image")
        else:
            logger.info("Image generation disabled, using stock image")
        return MediaAsset(url=stock_image_for(category), type=MediaType.IMAGE, source_tier='stock')
