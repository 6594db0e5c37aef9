# tests/test_generation_orchestrator.py
from datetime import datetime, timezone
from types import SimpleNamespace

import httpx
import pytest
from conftest import ScriptedProvider, article_json
from google.genai import errors as genai_errors

from newsdesk.backend.generation.orchestrator import GenerationOrchestrator
from newsdesk.backend.generation.prompts import build_article_prompt, build_system_prompt
from newsdesk.backend.generation.providers import GeminiProvider
from newsdesk.backend.monitoring.rate_limit_tracker import RateLimitTracker
from newsdesk.backend.orchestrator import build_generation_providers
from newsdesk.backend.storage.state_store import InMemoryStateStore
from newsdesk.shared.config.pipeline_config import GenerationConfig
from newsdesk.shared.types.errors import (
    ProviderError,
    ProviderQuotaExceeded,
    TransientNetworkError,
)
from newsdesk.shared.types.results import CandidateItem


@pytest.fixture
def tracker(clock):
    return RateLimitTracker(InMemoryStateStore(), clock=clock.utc)


def make_orchestrator(tracker, primary, secondary=None, retries=1):
    config = GenerationConfig(retries=retries, retry_backoff_seconds=0, timeout_seconds=5)
    return GenerationOrchestrator(primary, tracker, secondary, config)


async def test_first_healthy_provider_wins(tracker):
    flash = ScriptedProvider("flash", [article_json("First")])
    lite = ScriptedProvider("flash-lite", [article_json("Second")])
    orchestrator = make_orchestrator(tracker, [flash, lite])

    result = await orchestrator.generate("prompt")
    assert result.headline == "First"
    assert lite.calls == 0
    assert orchestrator.last_outcome.winner == "flash"


async def test_quota_error_marks_provider_limited_and_advances(tracker):
    flash = ScriptedProvider("flash", [ProviderQuotaExceeded("flash", "429 RESOURCE_EXHAUSTED")])
    kimi = ScriptedProvider("kimi", [article_json("From secondary")])
    orchestrator = make_orchestrator(tracker, [flash], kimi)

    result = await orchestrator.generate("prompt")
    assert result.headline == "From secondary"
    assert flash.calls == 1
    assert tracker.is_limited("flash")
    assert not tracker.is_limited("kimi")


async def test_limited_provider_is_skipped_on_later_calls(tracker):
    tracker.mark_limited("flash")
    flash = ScriptedProvider("flash", [article_json()])
    lite = ScriptedProvider("flash-lite", [article_json("Lite")])
    orchestrator = make_orchestrator(tracker, [flash, lite])

    assert (await orchestrator.generate("prompt")).headline == "Lite"
    assert flash.calls == 0


async def test_malformed_output_advances_without_touching_limits(tracker):
    flash = ScriptedProvider("flash", ["Sorry, I can only answer in prose."])
    lite = ScriptedProvider("flash-lite", [article_json("Lite")])
    orchestrator = make_orchestrator(tracker, [flash, lite])

    assert (await orchestrator.generate("prompt")).headline == "Lite"
    assert tracker.state_of("flash") is None
    label, reason = orchestrator.last_outcome.failures[0]
    assert label == "flash" and reason.startswith("malformed response")


async def test_transient_error_is_retried_on_the_same_provider(tracker):
    flash = ScriptedProvider("flash", [TransientNetworkError("flash", "connection reset"), article_json("Retry")])
    orchestrator = make_orchestrator(tracker, [flash], retries=1)

    assert (await orchestrator.generate("prompt")).headline == "Retry"
    assert flash.calls == 2
    assert tracker.state_of("flash") is None


async def test_exhausted_chain_returns_none_within_attempt_bound(tracker):
    primary = [
        ScriptedProvider("flash", [ProviderError("flash", "bad request", 400)]),
        ScriptedProvider("flash-lite", ["not json"]),
    ]
    secondary = ScriptedProvider("kimi", [ProviderQuotaExceeded("kimi", "rate limit")])
    orchestrator = make_orchestrator(tracker, primary, secondary, retries=0)

    assert await orchestrator.generate("prompt") is None
    assert orchestrator.last_outcome.attempts <= len(primary) + 1
    assert sum(p.calls for p in primary + [secondary]) == 3
    assert tracker.is_limited("kimi")


async def test_all_limited_makes_one_attempt_on_preferred(tracker):
    flash = ScriptedProvider("flash", [article_json("Anyway")])
    kimi = ScriptedProvider("kimi", [article_json()])
    tracker.mark_limited("flash")
    tracker.mark_limited("kimi")
    orchestrator = make_orchestrator(tracker, [flash], kimi)

    assert [p.provider_id for p in orchestrator.plan()] == ["flash"]
    assert (await orchestrator.generate("prompt")).headline == "Anyway"
    assert kimi.calls == 0


async def test_unexpected_provider_exception_counts_as_failure(tracker):
    flash = ScriptedProvider("flash", [RuntimeError("sdk bug")])
    kimi = ScriptedProvider("kimi", [article_json("Fallback")])
    orchestrator = make_orchestrator(tracker, [flash], kimi)
    assert (await orchestrator.generate("prompt")).headline == "Fallback"


def test_orchestrator_requires_a_provider(tracker):
    with pytest.raises(ValueError):
        GenerationOrchestrator([], tracker, None, GenerationConfig())


def gemini_client(error=None, text=None):
    async def generate_content(**kwargs):
        if error is not None:
            raise error
        return SimpleNamespace(text=text)
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))


def api_error(code, status, message):
    return genai_errors.APIError(code, {'error': {'code': code, 'status': status, 'message': message}})


async def test_gemini_quota_error_is_translated():
    provider = GeminiProvider(gemini_client(api_error(429, "RESOURCE_EXHAUSTED", "Quota exceeded")), "flash")
    with pytest.raises(ProviderQuotaExceeded):
        await provider.complete("system", "prompt")


async def test_gemini_server_error_is_transient():
    provider = GeminiProvider(gemini_client(api_error(503, "UNAVAILABLE", "overloaded")), "flash")
    with pytest.raises(TransientNetworkError):
        await provider.complete("system", "prompt")


async def test_gemini_returns_response_text():
    provider = GeminiProvider(gemini_client(text='{"headline": "H"}'), "flash")
    assert await provider.complete("system", "prompt") == '{"headline": "H"}'


def test_system_prompt_carries_ist_date():
    now = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)  # already the 19th in IST
    prompt = build_system_prompt("Base.", "Asia/Kolkata", now)
    assert prompt.startswith("Base.")
    assert "Monday, 19 October 2026" in prompt


def test_article_prompt_truncates_source_body():
    candidate = CandidateItem(
        headline="Nagaur mandi",
        body_text="<p>" + "word " * 2000 + "</p>",
        source_url="https://example.com/a",
        published_at=datetime(2026, 10, 18, tzinfo=timezone.utc),
        origin_bot_id="bot",
    )
    prompt = build_article_prompt(candidate)
    assert "Headline: Nagaur mandi" in prompt
    raw_line = next(line for line in prompt.splitlines() if line.startswith("Raw Text: "))
    assert len(raw_line) <= len("Raw Text: ") + 3000
    assert "<p>" not in raw_line


async def test_groq_quota_response_is_sent_once_and_advances(tracker, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(429, json={"error": {"message": "Rate limit reached", "type": "tokens"}})

    _, groq_provider = build_generation_providers(GenerationConfig())
    assert groq_provider.client.max_retries == 0
    groq_provider.client = groq_provider.client.with_options(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    orchestrator = make_orchestrator(tracker, [], groq_provider, retries=2)
    assert await orchestrator.generate("prompt") is None
    assert len(requests) == 1
    assert requests[0].url.path.endswith("/chat/completions")
    assert tracker.is_limited(groq_provider.provider_id)
