"""Tests for the typer CLI"""

import pytest
from typer.testing import CliRunner

from charabot import cli
from charabot.config import Config

from conftest import ScriptedBackend

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GEMINI_API_KEY", "OPENAI_API_KEY", "LINE_CHANNEL_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)


class TestConfigCommand:

    def test_set_then_get(self, tmp_path):
        result = runner.invoke(cli.app, ["config", "set", "memory.backend", "json", "-c", str(tmp_path)])
        assert result.exit_code == 0
        assert "Configuration saved" in result.output
        assert Config(tmp_path).get("memory.backend") == "json"

        result = runner.invoke(cli.app, ["config", "get", "memory.backend", "-c", str(tmp_path)])
        assert "json" in result.output

    def test_secrets_are_hidden(self, tmp_path):
        result = runner.invoke(cli.app, ["config", "set", "providers.gemini.api_key", "abc123", "-c", str(tmp_path)])
        assert "abc123" not in result.output

        result = runner.invoke(cli.app, ["config", "list", "providers.gemini.api_key", "-c", str(tmp_path)])
        assert "abc123" not in result.output
        assert "hidden" in result.output

    def test_delete_missing_key(self, tmp_path):
        result = runner.invoke(cli.app, ["config", "delete", "nope", "-c", str(tmp_path)])
        assert "not found" in result.output

    def test_unknown_action(self, tmp_path):
        result = runner.invoke(cli.app, ["config", "frobnicate", "-c", str(tmp_path)])
        assert "Unknown action" in result.output


def test_personas_lists_builtins():
    result = runner.invoke(cli.app, ["personas"])
    assert result.exit_code == 0
    for name in ("Velorien", "Sherlock", "Hermione", "Yoda", "Luna"):
        assert name in result.output


def test_chat_runs_one_turn(tmp_path, monkeypatch):
    backend = ScriptedBackend(default="ผมอยู่ตรงนี้ครับ")
    monkeypatch.setattr(cli, "create_ai_provider", lambda provider, model, config: backend)
    Config(tmp_path).set("generation.template_probability", 0.0)

    result = runner.invoke(cli.app, ["chat", "u1", "เหงาจัง", "-c", str(tmp_path)])

    assert result.exit_code == 0
    assert "ผมอยู่ตรงนี้ครับ" in result.output
    assert backend.calls == 1


def test_admin_commands_report_unreachable_server(tmp_path):
    result = runner.invoke(cli.app, ["pending", "--url", "http://127.0.0.1:9", "-c", str(tmp_path)])
    assert result.exit_code == 1
    assert "failed" in result.output
