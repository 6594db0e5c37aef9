#!/usr/bin/env python3
"""
Generation provider adapters.

Each adapter performs one chat-style call and returns the raw text. Vendor SDK
errors are translated here into ProviderQuotaExceeded, TransientNetworkError or
ProviderError so the orchestrator never has to know which SDK raised.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import groq
from google.genai import errors as genai_errors
from google.genai import types
from groq import AsyncGroq

from ...shared.types.errors import (
    ProviderError,
    ProviderQuotaExceeded,
    TransientNetworkError,
    is_quota_message,
)

logger = logging.getLogger(__name__)


def _short(message: Any, limit: int = 160) -> str:
    text = str(message)
    return text if len(text) <= limit else text[:limit] + '...'


class GenerationProvider(ABC):
    """One model behind one vendor. provider_id is the key used by the rate-limit tracker."""

    vendor: str = "unknown"

    def __init__(self, model: str, temperature: float = 0.7, max_tokens: int = 2048):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def provider_id(self) -> str:
        return self.model

    @abstractmethod
    async def complete(self, system_prompt: str, prompt: str) -> str:
        """Return the model's raw text output."""


class GeminiProvider(GenerationProvider):
    """Gemini models through the google-genai async client."""

    vendor = "gemini"

    def __init__(self, client: Any, model: str, temperature: float = 0.7, max_tokens: int = 2048):
        super().__init__(model, temperature, max_tokens)
        self.client = client

    async def complete(self, system_prompt: str, prompt: str) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=self.temperature,
                    max_output_tokens=self.max_tokens,
                    response_mime_type="application/json",
                ),
            )
        except genai_errors.APIError as e:
            if e.code == 429 or is_quota_message(f"{e.status} {e.message}"):
                raise ProviderQuotaExceeded(self.provider_id, _short(e.message), e.code) from e
            if e.code and e.code >= 500:
                raise TransientNetworkError(self.provider_id, _short(e.message), e.code) from e
            raise ProviderError(self.provider_id, _short(e.message), e.code) from e
        except Exception as e:
            if is_quota_message(str(e)):
                raise ProviderQuotaExceeded(self.provider_id, _short(e)) from e
            raise ProviderError(self.provider_id, f"{type(e).__name__}: {_short(e)}") from e

        return (response.text or "") if response is not None else ""


class GroqProvider(GenerationProvider):
    """Groq-hosted models in JSON mode."""

    vendor = "groq"

    def __init__(self, client: AsyncGroq, model: str, temperature: float = 0.7, max_tokens: int = 2048):
        super().__init__(model, temperature, max_tokens)
        self.client = client

    async def complete(self, system_prompt: str, prompt: str) -> str:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                stream=False,
            )
        except groq.RateLimitError as e:
            raise ProviderQuotaExceeded(self.provider_id, _short(e), 429) from e
        except groq.APIConnectionError as e:
            # Includes APITimeoutError
            raise TransientNetworkError(self.provider_id, _short(e)) from e
        except groq.InternalServerError as e:
            raise TransientNetworkError(self.provider_id, _short(e), e.status_code) from e
        except groq.APIStatusError as e:
            if e.status_code == 429 or is_quota_message(str(e)):
                raise ProviderQuotaExceeded(self.provider_id, _short(e), e.status_code) from e
            raise ProviderError(self.provider_id, _short(e), e.status_code) from e

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""
