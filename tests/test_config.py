"""Tests for the JSON configuration layer"""

import json

import pytest
from pydantic import ValidationError

from charabot.config import DEFAULT_CONFIG, Config
from charabot.models import SafetyThreshold


@pytest.fixture
def config(tmp_path, monkeypatch):
    for name in ("GEMINI_API_KEY", "OPENAI_API_KEY", "OLLAMA_HOST", "LINE_CHANNEL_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return Config(tmp_path)


class TestConfigFile:

    def test_first_run_writes_defaults(self, config, tmp_path):
        assert (tmp_path / "data").is_dir()
        with open(tmp_path / "config.json", encoding="utf-8") as f:
            assert json.load(f) == DEFAULT_CONFIG

    def test_set_persists_with_dot_notation(self, config, tmp_path):
        config.set("line.channel_access_token", "secret")
        assert Config(tmp_path).get("line.channel_access_token") == "secret"

    def test_get_falls_back_to_defaults(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"default_provider": "ollama"}), encoding="utf-8")
        config = Config(tmp_path)
        assert config.get("default_provider") == "ollama"
        assert config.get("memory.max_messages") == 20
        assert config.get("missing.key", "fallback") == "fallback"

    def test_corrupt_file_uses_defaults(self, tmp_path):
        (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
        assert Config(tmp_path).get("server.port") == 8000

    def test_delete(self, config):
        config.set("custom.flag", True)
        assert config.delete("custom.flag")
        assert not config.delete("custom.flag")
        assert not config.delete("nothing.here")

    def test_list_keys_with_prefix(self, config):
        keys = config.list_keys("providers.gemini")
        assert "providers.gemini.api_key" in keys
        assert "providers.gemini.safety.harassment" in keys
        assert all(k.startswith("providers.gemini") for k in keys)


class TestEnvironment:

    def test_api_key_env_wins(self, config, monkeypatch):
        config.set("providers.gemini.api_key", "from-file")
        assert config.get_api_key("gemini") == "from-file"
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        assert config.get_api_key("gemini") == "from-env"

    def test_ollama_host(self, config, monkeypatch):
        assert config.get_ollama_host() == "http://localhost:11434"
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
        assert config.get_ollama_host() == "http://gpu-box:11434"

    def test_line_token(self, config, monkeypatch):
        assert config.get_line_token() is None
        monkeypatch.setenv("LINE_CHANNEL_ACCESS_TOKEN", "env-token")
        assert config.get_line_token() == "env-token"


class TestTypedSections:

    def test_generation_settings_coerce_cli_strings(self, config):
        config.set("generation.max_retries", "5")
        config.set("generation.retry_delay", "0.5")
        settings = config.generation_settings()
        assert settings.max_retries == 5
        assert settings.retry_delay == 0.5
        assert settings.history_turns == 6

    def test_invalid_generation_setting(self, config):
        config.set("generation.max_retries", 0)
        with pytest.raises(ValidationError):
            config.generation_settings()

    def test_safety_config(self, config):
        config.set("providers.gemini.safety.harassment", "BLOCK_ONLY_HIGH")
        safety = config.safety_config()
        assert safety.harassment == SafetyThreshold.BLOCK_ONLY_HIGH
        assert safety.hate_speech == SafetyThreshold.BLOCK_MEDIUM_AND_ABOVE
