# tests/conftest.py
import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from google.api_core import exceptions as gcp_exceptions

from newsdesk.backend.generation.providers import GenerationProvider
from newsdesk.backend.media.asset_hosts import AssetHost
from newsdesk.backend.media.audio_resolver import SpeechTier
from newsdesk.shared.types.errors import AssetUploadError, ProviderError
from newsdesk.shared.types.results import MediaType


class FakeClock:
    """Epoch-seconds clock for the deduplicator; .utc() serves the rate-limit tracker."""

    def __init__(self, start: datetime = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> float:
        return self.current.timestamp()

    def utc(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


class ScriptedProvider(GenerationProvider):
    """Plays back a list of responses; an Exception entry is raised instead of returned."""

    def __init__(self, model: str, responses: List[Any]):
        super().__init__(model)
        self.responses = list(responses)
        self.calls = 0

    async def complete(self, system_prompt: str, prompt: str) -> str:
        self.calls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class EchoProvider(GenerationProvider):
    """Returns a valid article whose headline is the source headline from the prompt."""

    def __init__(self, model: str = "echo-model", category: str = "मंडी भाव"):
        super().__init__(model)
        self.category = category
        self.calls = 0

    async def complete(self, system_prompt: str, prompt: str) -> str:
        self.calls += 1
        match = re.search(r'^Headline: (.*)$', prompt, flags=re.MULTILINE)
        headline = match.group(1) if match else "Untitled"
        return json.dumps({
            "headline": headline,
            "content": f"**Update** {headline}",
            "tags": ["nagaur", "nagaur", "local"],
            "category": self.category,
            "image_prompt": "wide shot of a rural market",
        }, ensure_ascii=False)


def article_json(headline: str = "Nagaur mandi jeera price rises", **extra) -> str:
    payload = {"headline": headline, "content": "<p>Body text</p>", "tags": ["mandi"], "category": "मंडी भाव"}
    payload.update(extra)
    return json.dumps(payload, ensure_ascii=False)


class FakeHost(AssetHost):
    name = "fake-host"

    def __init__(self, fail_times: int = 0):
        self.uploads: List[Dict[str, Any]] = []
        self.fail_times = fail_times

    async def upload(self, data: bytes, media_type: MediaType,
                     public_id: Optional[str] = None, folder: Optional[str] = None) -> str:
        if self.fail_times:
            self.fail_times -= 1
            raise AssetUploadError("host unavailable")
        self.uploads.append({'data': data, 'type': media_type, 'public_id': public_id, 'folder': folder})
        return f"https://cdn.example.com/{media_type.value}/{public_id or len(self.uploads)}"


class ScriptedTier(SpeechTier):
    """Speech tier that echoes chunks as bytes, or fails every call."""

    def __init__(self, name: str, fail: Optional[Exception] = None, max_chunk_chars: int = 5000):
        super().__init__(max_chunk_chars, timeout_seconds=5, retries=0, retry_backoff_seconds=0)
        self.name = name
        self.fail = fail
        self.chunks: List[str] = []

    async def synthesize_chunk(self, chunk: str) -> bytes:
        if self.fail is not None:
            raise self.fail
        self.chunks.append(chunk)
        return chunk.encode('utf-8') + b"|"


class FakeImageGenerator:
    """Per-token outcomes: bytes to return or an exception to raise. Unknown tokens succeed."""

    def __init__(self, outcomes: Optional[Dict[str, Any]] = None):
        self.outcomes = outcomes or {}
        self.calls: List[str] = []

    async def generate(self, prompt: str, token: str) -> bytes:
        self.calls.append(token)
        outcome = self.outcomes.get(token, b"\x89PNG fake")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def provider_failure(name: str = "tier") -> ProviderError:
    return ProviderError(name, "service refused")


# Minimal Firestore double covering the calls the stores make


class FakeSnapshot:

    def __init__(self, reference: 'FakeDocRef', data: Optional[Dict[str, Any]]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return dict(self._data) if self._data is not None else None


class FakeDocRef:

    def __init__(self, collection: 'FakeCollection', doc_id: str):
        self.collection = collection
        self.id = doc_id

    def get(self) -> FakeSnapshot:
        return FakeSnapshot(self, self.collection.docs.get(self.id))

    def set(self, data: Dict[str, Any], merge: bool = False) -> None:
        current = self.collection.docs.get(self.id) if merge else None
        self.collection.docs[self.id] = {**(current or {}), **data}

    def update(self, data: Dict[str, Any]) -> None:
        if self.id not in self.collection.docs:
            raise gcp_exceptions.NotFound(f"{self.id} not found")
        self.collection.docs[self.id].update(data)

    def delete(self) -> None:
        self.collection.docs.pop(self.id, None)


_OPS = {
    '==': lambda a, b: a == b,
    '>=': lambda a, b: a >= b,
    '<': lambda a, b: a < b,
}


class FakeQuery:

    def __init__(self, collection: 'FakeCollection', filters, limit: Optional[int] = None):
        self.collection = collection
        self.filters = filters
        self._limit = limit

    def where(self, field: str, op: str, value: Any) -> 'FakeQuery':
        return FakeQuery(self.collection, self.filters + [(field, op, value)], self._limit)

    def limit(self, count: int) -> 'FakeQuery':
        return FakeQuery(self.collection, self.filters, count)

    def get(self) -> List[FakeSnapshot]:
        results = []
        for doc_id, data in self.collection.docs.items():
            if all(field in data and _OPS[op](data[field], value) for field, op, value in self.filters):
                results.append(FakeSnapshot(FakeDocRef(self.collection, doc_id), data))
        return results[:self._limit] if self._limit is not None else results

    def stream(self):
        return iter(self.get())


class FakeCollection:

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}

    def document(self, doc_id: str) -> FakeDocRef:
        return FakeDocRef(self, doc_id)

    def where(self, field: str, op: str, value: Any) -> FakeQuery:
        return FakeQuery(self, [(field, op, value)])


class FakeBatch:

    def __init__(self):
        self.creates = []
        self.deletes = []

    def create(self, ref: FakeDocRef, data: Dict[str, Any]) -> None:
        self.creates.append((ref, data))

    def delete(self, ref: FakeDocRef) -> None:
        self.deletes.append(ref)

    def commit(self) -> None:
        for ref, _ in self.creates:
            if ref.id in ref.collection.docs:
                raise gcp_exceptions.Conflict(f"document {ref.id} already exists")
        for ref, data in self.creates:
            ref.collection.docs[ref.id] = dict(data)
        for ref in self.deletes:
            ref.delete()


class FakeFirestore:

    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}
        self.batches = 0

    def collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    def batch(self) -> FakeBatch:
        self.batches += 1
        return FakeBatch()


@pytest.fixture
def firestore_db():
    return FakeFirestore()
