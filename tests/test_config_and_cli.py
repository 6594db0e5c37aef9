# tests/test_config_and_cli.py
import json

import pytest

from newsdesk.backend import orchestrator
from newsdesk.backend.storage.firebase_client import load_service_account
from newsdesk.shared.config.config_loader import ConfigLoader, get_env_key_pool
from newsdesk.shared.config.pipeline_config import DedupConfig, GenerationConfig, MediaConfig, PipelineConfig
from newsdesk.shared.utils.text_utils import TextUtils


@pytest.fixture(autouse=True)
def fresh_config_cache():
    ConfigLoader.clear_cache()
    yield
    ConfigLoader.clear_cache()


def test_packaged_app_yaml_loads_every_section():
    dedup = DedupConfig.load()
    assert dedup.threshold == 0.40
    assert "nagaur" in dedup.key_entities
    assert GenerationConfig.load().primary_models == ["gemini-2.5-flash", "gemini-2.5-flash-lite"]
    assert MediaConfig.load().elevenlabs_voice_id == "JBFqnCBsd6RMkjVDRZzb"
    assert PipelineConfig.load().cooldown_seconds == 20


def test_config_dir_override(tmp_path, monkeypatch):
    (tmp_path / "app.yaml").write_text("pipeline:\n  cooldown_seconds: 3\n  unknown_key: 1\n", encoding="utf-8")
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    config = PipelineConfig.load()
    assert config.cooldown_seconds == 3
    assert config.max_items_per_run == 5
    assert DedupConfig.load() == DedupConfig()


def test_dot_notation_lookup():
    assert ConfigLoader.get("media.audio_folder") == "news_audio"
    assert ConfigLoader.get("media.nothing_here", "fallback") == "fallback"


def test_env_key_pool_order_and_dedup(monkeypatch):
    for i in range(1, 11):
        monkeypatch.delenv(f"ELEVENLABS_API_KEY_{i}", raising=False)
    monkeypatch.setenv("ELEVENLABS_API_KEY_2", "second")
    monkeypatch.setenv("ELEVENLABS_API_KEY_1", "first")
    monkeypatch.setenv("ELEVENLABS_API_KEY_3", "  ")
    monkeypatch.setenv("ELEVENLABS_API_KEY", "first")
    assert get_env_key_pool("ELEVENLABS_API_KEY") == ["first", "second"]


def test_image_token_pool_includes_legacy_variables(monkeypatch):
    for i in range(1, 11):
        monkeypatch.delenv(f"HF_API_TOKEN_{i}", raising=False)
    monkeypatch.setenv("HF_API_TOKEN", "hf-main")
    monkeypatch.setenv("HUGGINGTOCK", "hf-legacy")
    monkeypatch.setenv("HUGGINGTOCK_BACKUP", "hf-main")
    monkeypatch.delenv("HUGGINGTOCK_BACKUP2", raising=False)
    assert orchestrator.image_token_pool() == ["hf-main", "hf-legacy"]


def test_read_candidates_accepts_list_or_items_object(tmp_path):
    path = tmp_path / "items.json"
    path.write_text(json.dumps({"items": [{"title": "A", "url": "https://x/1"}, "junk"]}), encoding="utf-8")
    candidates = orchestrator.read_candidates(path, "bot-7")
    assert [(c.headline, c.source_url, c.origin_bot_id) for c in candidates] == [("A", "https://x/1", "bot-7")]

    path.write_text(json.dumps("nope"), encoding="utf-8")
    with pytest.raises(ValueError):
        orchestrator.read_candidates(path, "bot-7")


def test_generation_providers_need_credentials(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    with pytest.raises(ValueError):
        orchestrator.build_generation_providers(GenerationConfig())


def test_cli_arguments():
    args = orchestrator.parse_args(["run", "--bot-id", "nagaur-bot", "--input", "items.json"])
    assert args.command == "run" and args.bot_id == "nagaur-bot"
    assert orchestrator.parse_args(["limits", "reset"]).action == "reset"
    with pytest.raises(SystemExit):
        orchestrator.parse_args(["audio", "--record-id", "r1"])


async def test_limits_command_resets_state_file(tmp_path, monkeypatch):
    (tmp_path / "app.yaml").write_text(f"pipeline:\n  state_file: {tmp_path / 'limits.json'}\n", encoding="utf-8")
    (tmp_path / "limits.json").write_text(json.dumps({
        "flash": {"isLimited": True, "resetAt": "2999-01-01T00:00:00+00:00", "failureCount": 1},
    }), encoding="utf-8")
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))

    assert await orchestrator.main(["limits", "reset"]) == 0
    assert json.loads((tmp_path / "limits.json").read_text(encoding="utf-8"))["flash"]["isLimited"] is False


def test_service_account_from_file_path_or_inline_json(tmp_path):
    info = {"type": "service_account", "project_id": "newsdesk-test"}
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps(info), encoding="utf-8")

    assert load_service_account(str(path)) == info
    assert load_service_account(f"  {json.dumps(info)}\n") == info
    with pytest.raises(RuntimeError):
        load_service_account(str(tmp_path / "missing.json"))
    with pytest.raises(RuntimeError):
        load_service_account("[1, 2]")


def test_every_packaged_key_entity_survives_tokenization():
    dedup = DedupConfig.load()
    dropped = [e for e in dedup.key_entities if not TextUtils.tokenize(str(e), stop_words=())]
    assert dropped == []
