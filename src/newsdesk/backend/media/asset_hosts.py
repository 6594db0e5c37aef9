#!/usr/bin/env python3
"""
Asset hosts for generated media.

upload() returns a public URL or raises AssetUploadError; callers treat an
upload failure exactly like a failed generation attempt.
"""

import asyncio
import base64
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp
import cloudinary
import cloudinary.uploader

from ...shared.types.errors import AssetUploadError
from ...shared.types.results import MediaType

logger = logging.getLogger(__name__)

IMGBB_UPLOAD_URL = "https://api.imgbb.com/1/upload"


class AssetHost(ABC):

    name: str = "host"

    @abstractmethod
    async def upload(self, data: bytes, media_type: MediaType,
                     public_id: Optional[str] = None, folder: Optional[str] = None) -> str:
        ...


class ImgBBHost(AssetHost):
    """ImgBB image hosting (base64 form upload)."""

    name = "imgbb"

    def __init__(self, session: aiohttp.ClientSession, api_key: str, timeout_seconds: float = 30):
        self.session = session
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def upload(self, data: bytes, media_type: MediaType,
                     public_id: Optional[str] = None, folder: Optional[str] = None) -> str:
        if media_type != MediaType.IMAGE:
            raise AssetUploadError(f"ImgBB only hosts images, got {media_type.value}")
        if not self.api_key:
            raise AssetUploadError("IMGBB_API_KEY is not configured")

        form = aiohttp.FormData()
        form.add_field('image', base64.b64encode(data).decode('ascii'))
        if public_id:
            form.add_field('name', public_id)

        try:
            async with self.session.post(IMGBB_UPLOAD_URL, params={'key': self.api_key},
                                         data=form, timeout=self.timeout) as response:
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise AssetUploadError(f"ImgBB upload failed: {type(e).__name__}: {e}") from e

        if not isinstance(payload, dict) or not payload.get('success'):
            raise AssetUploadError(f"ImgBB rejected upload: {str(payload)[:200]}")
        url = (payload.get('data') or {}).get('url')
        if not url:
            raise AssetUploadError("ImgBB response has no URL")
        logger.info(f"ImgBB upload complete: {url}")
        return url


def configure_cloudinary() -> bool:
    """Configure the Cloudinary SDK from CLOUDINARY_URL or the split credential variables."""
    url = os.getenv('CLOUDINARY_URL')
    if url:
        cloudinary.config(cloudinary_url=url, secure=True)
        return True
    cloud_name = os.getenv('CLOUDINARY_CLOUD_NAME')
    api_key = os.getenv('CLOUDINARY_API_KEY')
    api_secret = os.getenv('CLOUDINARY_API_SECRET')
    if cloud_name and api_key and api_secret:
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)
        return True
    logger.warning("No Cloudinary credentials, audio uploads will fail")
    return False


class CloudinaryHost(AssetHost):
    """Cloudinary hosting. Audio goes up as resource_type 'video', transcoded to mp3."""

    name = "cloudinary"

    def __init__(self, timeout_seconds: float = 30):
        self.timeout_seconds = timeout_seconds

    async def upload(self, data: bytes, media_type: MediaType,
                     public_id: Optional[str] = None, folder: Optional[str] = None) -> str:
        options = {
            'resource_type': 'video' if media_type == MediaType.AUDIO else 'image',
            'overwrite': True,
        }
        if media_type == MediaType.AUDIO:
            options['format'] = 'mp3'
        if public_id:
            options['public_id'] = public_id
        if folder:
            options['folder'] = folder

        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(cloudinary.uploader.upload, data, **options),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise AssetUploadError(f"Cloudinary upload timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            raise AssetUploadError(f"Cloudinary upload failed: {e}") from e

        url = (result or {}).get('secure_url')
        if not url:
            raise AssetUploadError("Cloudinary response has no secure_url")
        logger.info(f"Cloudinary upload complete: {url}")
        return url
