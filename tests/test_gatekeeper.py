# tests/test_gatekeeper.py
import json

import pytest

from newsdesk.backend.pipeline.gatekeeper import (
    FirestoreSettingsSource,
    JsonFileSettingsSource,
    PublishGatekeeper,
    SettingsSource,
    StaticSettingsSource,
)
from newsdesk.shared.types.results import ArticleStatus, PublishMode, PublishPolicy


class FlakySource(SettingsSource):
    """Returns the scripted policies in order; None entries raise."""

    def __init__(self, script):
        self.script = list(script)

    async def fetch(self):
        policy = self.script.pop(0)
        if policy is None:
            raise ConnectionError("settings backend unreachable")
        return policy


async def test_off_mode_prevents_the_run():
    gatekeeper = PublishGatekeeper(StaticSettingsSource(PublishPolicy(mode=PublishMode.OFF)))
    assert await gatekeeper.begin_run() is None
    assert await gatekeeper.authorize_write() is None


@pytest.mark.parametrize("mode, status", [
    (PublishMode.AUTO, ArticleStatus.PUBLISHED),
    (PublishMode.MANUAL, ArticleStatus.DRAFT),
])
async def test_mode_decides_article_status(mode, status):
    gatekeeper = PublishGatekeeper(StaticSettingsSource(PublishPolicy(mode=mode)))
    assert (await gatekeeper.begin_run()).mode == mode
    assert await gatekeeper.authorize_write() == status


async def test_every_decision_reads_settings_fresh():
    source = StaticSettingsSource()
    gatekeeper = PublishGatekeeper(source)
    assert await gatekeeper.authorize_write() == ArticleStatus.PUBLISHED
    source.set_mode("manual")
    assert await gatekeeper.authorize_write() == ArticleStatus.DRAFT
    source.set_mode(PublishMode.OFF)
    assert await gatekeeper.authorize_write() is None
    assert source.reads == 3


async def test_read_failure_reuses_last_good_policy():
    gatekeeper = PublishGatekeeper(FlakySource([PublishPolicy(mode=PublishMode.MANUAL), None]))
    assert await gatekeeper.authorize_write() == ArticleStatus.DRAFT
    assert await gatekeeper.authorize_write() == ArticleStatus.DRAFT


async def test_read_failure_without_history_uses_defaults():
    gatekeeper = PublishGatekeeper(FlakySource([None]))
    policy = await gatekeeper.begin_run()
    assert policy == PublishPolicy()
    assert policy.mode == PublishMode.AUTO


async def test_json_settings_file(tmp_path):
    path = tmp_path / "settings.json"
    source = JsonFileSettingsSource(path)
    assert await source.fetch() == PublishPolicy()

    path.write_text(json.dumps({"botMode": "manual", "imageGenEnabled": False}), encoding="utf-8")
    policy = await source.fetch()
    assert policy.mode == PublishMode.MANUAL
    assert not policy.enable_image_gen
    assert policy.enable_audio_gen


async def test_json_settings_file_must_hold_an_object(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        await JsonFileSettingsSource(path).fetch()


async def test_firestore_settings_document(firestore_db):
    source = FirestoreSettingsSource(firestore_db)
    assert await source.fetch() == PublishPolicy()

    firestore_db.collection("settings").document("global").set({"botMode": "off", "enableAudioGen": False})
    policy = await source.fetch()
    assert policy.mode == PublishMode.OFF
    assert not policy.enable_audio_gen


def test_policy_from_dict_tolerates_unknown_mode():
    assert PublishPolicy.from_dict({"mode": "turbo"}).mode == PublishMode.AUTO
    assert PublishPolicy.from_dict({"mode": " OFF "}).mode == PublishMode.OFF
