#!/usr/bin/env python3
"""Image and audio resolution with fallbacks."""

from .asset_hosts import AssetHost, CloudinaryHost, ImgBBHost, configure_cloudinary
from .audio_resolver import (
    AudioResolver,
    ElevenLabsTier,
    GeminiSpeechTier,
    GoogleTranslateTier,
    SpeechTier,
    pcm_to_wav,
)
from .image_resolver import HuggingFaceImageGenerator, ImageResolver
from .stock_images import STOCK_IMAGES, category_key, stock_image_for

__all__ = [
    'AssetHost',
    'CloudinaryHost',
    'ImgBBHost',
    'configure_cloudinary',
    'AudioResolver',
    'ElevenLabsTier',
    'GeminiSpeechTier',
    'GoogleTranslateTier',
    'SpeechTier',
    'pcm_to_wav',
    'HuggingFaceImageGenerator',
    'ImageResolver',
    'STOCK_IMAGES',
    'category_key',
    'stock_image_for',
]
