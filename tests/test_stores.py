# tests/test_stores.py
from datetime import datetime, timezone

import pytest

from newsdesk.backend.storage.article_store import (
    FirestoreArticleStore,
    InMemoryArticleStore,
    record_id_for,
)
from newsdesk.backend.storage.fingerprint_store import (
    TOPIC_CACHE_COLLECTION,
    FirestoreFingerprintStore,
    fingerprint_doc_id,
)
from newsdesk.shared.types.errors import PersistenceError
from newsdesk.shared.types.results import ArticleCategory, ArticleRecord, ArticleStatus, TopicFingerprint


def make_record(url="https://example.com/news/1", headline="nagaur mandi price"):
    return ArticleRecord(
        id=record_id_for(url),
        headline=headline.title(),
        normalized_headline=headline,
        content="<p>Body</p>",
        tags=["mandi"],
        category=ArticleCategory.MANDI_RATES,
        source_url=url,
        status=ArticleStatus.PUBLISHED,
        origin_bot_id="nagaur-bot",
        image_url="https://i.ibb.co/x.png",
        image_source="stock",
        published_at=datetime(2026, 10, 18, 12, tzinfo=timezone.utc),
        created_at=datetime(2026, 10, 18, 12, tzinfo=timezone.utc),
    )


def test_record_id_ignores_url_noise():
    assert record_id_for("https://Example.com/news/1/") == record_id_for("https://example.com/news/1#top")


def test_article_record_serialises_to_store_layout():
    data = make_record().to_dict()
    assert data['author'] == "nagaur-bot"
    assert data['category'] == "मंडी भाव"
    assert data['status'] == "published"
    assert data['publishedAt'] == "2026-10-18T12:00:00+00:00"
    assert data['audioUrl'] is None


@pytest.fixture(params=["memory", "firestore"])
def article_store(request, firestore_db):
    if request.param == "memory":
        return InMemoryArticleStore()
    return FirestoreArticleStore(firestore_db)


async def test_insert_is_idempotent_on_source_url(article_store):
    record = make_record()
    assert await article_store.insert_if_absent(record) == record.id
    assert await article_store.exists(record.source_url)
    assert await article_store.insert_if_absent(make_record(headline="different words here")) is None


async def test_insert_rejects_duplicate_headline_from_another_url(article_store):
    await article_store.insert_if_absent(make_record())
    assert await article_store.insert_if_absent(make_record(url="https://other.com/story")) is None
    assert not await article_store.exists("https://other.com/story")


async def test_audio_url_round_trip(article_store):
    record = make_record()
    await article_store.insert_if_absent(record)
    assert await article_store.get_audio_url(record.id) is None
    await article_store.set_audio_url(record.id, "https://cdn.example.com/a.mp3")
    assert await article_store.get_audio_url(record.id) == "https://cdn.example.com/a.mp3"


async def test_audio_update_of_missing_article_fails(article_store):
    with pytest.raises(PersistenceError):
        await article_store.set_audio_url("missing", "https://cdn.example.com/a.mp3")


async def test_firestore_insert_is_all_or_nothing(firestore_db):
    store = FirestoreArticleStore(firestore_db)
    await store.insert_if_absent(make_record())
    await store.insert_if_absent(make_record(url="https://other.com/story"))

    assert len(firestore_db.collection("articles").docs) == 1
    assert len(firestore_db.collection("articleHeadlineKeys").docs) == 1


async def test_firestore_exists_finds_legacy_records_by_source_url(firestore_db):
    firestore_db.collection("articles").document("legacy-id").set({'sourceUrl': "https://example.com/old"})
    store = FirestoreArticleStore(firestore_db)
    assert await store.exists("https://example.com/old")
    assert not await store.exists("https://example.com/new")


def fingerprint(text_key, timestamp_ms, source="bot"):
    return TopicFingerprint(
        normalized_key=text_key,
        word_set=frozenset(text_key.split()),
        original_text=text_key,
        source_bot_id=source,
        timestamp_ms=timestamp_ms,
    )


async def test_firestore_fingerprint_store_round_trip(firestore_db):
    store = FirestoreFingerprintStore(firestore_db)
    await store.put(fingerprint("jeera mandi nagaur", 1_000))
    await store.put(fingerprint("jeera mandi nagaur", 5_000, source="other"))
    await store.put(fingerprint("metro jaipur", 2_000))

    docs = firestore_db.collection(TOPIC_CACHE_COLLECTION).docs
    assert len(docs) == 2
    assert docs[fingerprint_doc_id("jeera mandi nagaur")]['sourceBotId'] == "other"

    loaded = await store.load_since(3_000)
    assert [(f.normalized_key, f.word_set) for f in loaded] == \
        [("jeera mandi nagaur", frozenset({"jeera", "mandi", "nagaur"}))]


async def test_firestore_fingerprint_delete_is_bounded(firestore_db):
    store = FirestoreFingerprintStore(firestore_db)
    for i in range(5):
        await store.put(fingerprint(f"old story {i}", 1_000))
    await store.put(fingerprint("fresh story", 9_000))

    assert await store.delete_older_than(5_000, limit=3) == 3
    assert await store.delete_older_than(5_000, limit=3) == 2
    assert await store.delete_older_than(5_000, limit=3) == 0
    assert len(firestore_db.collection(TOPIC_CACHE_COLLECTION).docs) == 1
