"""Tests for the click command line."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from corvus import cli
from corvus.budget import Pricing
from corvus.providers.base import ModelResponse, Usage


class FakeWalletTools:
    """Stands in for WalletTools; answers without any network access."""

    closed = False

    def handlers(self):
        return {"get_token_price": self.get_token_price}

    async def get_token_price(self, tokens):
        if tokens == "BAD":
            return json.dumps({"error": "No tokens provided."})
        return json.dumps({"prices": [{"token": tokens, "price_usd": 80.5}]})

    async def aclose(self):
        FakeWalletTools.closed = True


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setattr("corvus.config.CONFIG_DIR", tmp_path)
    monkeypatch.setattr("corvus.storage.CONFIG_DIR", tmp_path)
    monkeypatch.setattr(cli, "WalletTools", FakeWalletTools)
    FakeWalletTools.closed = False
    return CliRunner()


class TestDirectCommands:

    def test_price_json(self, runner):
        result = runner.invoke(cli.main, ["price", "SOL", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["prices"][0]["price_usd"] == 80.5

    def test_tool_error_exits_nonzero(self, runner):
        result = runner.invoke(cli.main, ["price", "BAD"])
        assert result.exit_code == 1
        assert "No tokens provided." in result.output


class TestManagementCommands:

    def test_models_lists_registry(self, runner):
        result = runner.invoke(cli.main, ["models", "openai"])
        assert result.exit_code == 0
        assert "gpt-4o" in result.output

    def test_models_unknown_provider(self, runner):
        assert runner.invoke(cli.main, ["models", "mystery"]).exit_code == 1

    def test_config_set_then_get(self, runner, tmp_path):
        assert runner.invoke(cli.main, ["config", "set", "chat.max_cost", "1.25"]).exit_code == 0

        result = runner.invoke(cli.main, ["config", "get", "chat.max_cost"])

        assert json.loads(result.output) == 1.25
        assert (tmp_path / "config.yaml").exists()

    def test_config_delete_missing_key(self, runner):
        result = runner.invoke(cli.main, ["config", "delete", "nope.nothing"])
        assert result.exit_code == 1

    def test_sessions_empty(self, runner):
        result = runner.invoke(cli.main, ["sessions"])
        assert result.exit_code == 0
        assert "No saved sessions" in result.output

    def test_sessions_export_missing(self, runner):
        assert runner.invoke(cli.main, ["sessions", "export", "absent"]).exit_code == 1


class TestChat:

    def test_missing_key_is_reported(self, runner, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(cli, "load_dotenv", lambda: None)

        result = runner.invoke(cli.main, ["chat", "-p", "openai"])

        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output

    def test_conversation_with_slash_commands(self, runner, monkeypatch, scripted, tmp_path):
        client = scripted([ModelResponse(content="SOL is $80.50", usage=Usage(10, 5))])
        monkeypatch.setattr(cli, "create_client", lambda *args, **kwargs: client)

        result = runner.invoke(
            cli.main,
            ["chat", "--no-privacy-warning", "--save", "demo"],
            input="price of SOL?\n/cost\n/save snapshot\n/list\nexit\n",
        )

        assert result.exit_code == 0, result.output
        assert "SOL is $80.50" in result.output
        assert "snapshot" in result.output
        assert (tmp_path / "sessions" / "demo.json").exists()
        assert (tmp_path / "sessions" / "snapshot.json").exists()
        assert FakeWalletTools.closed

    def test_turn_limit_is_shown_not_raised(self, runner, monkeypatch, scripted):
        client = scripted([ModelResponse(content="ok")])
        monkeypatch.setattr(cli, "create_client", lambda *args, **kwargs: client)
        runner.invoke(cli.main, ["config", "set", "chat.max_turns", "1"])

        result = runner.invoke(cli.main, ["chat", "--no-privacy-warning"],
                               input="one\ntwo\nquit\n")

        assert result.exit_code == 0, result.output
        assert "Maximum turns (1) exceeded" in result.output

    def test_streamed_answer(self, runner, monkeypatch, scripted):
        client = scripted([ModelResponse(content="unused")], streaming=True,
                          chunks=["SOL ", "is ", "up"])
        monkeypatch.setattr(cli, "create_client", lambda *args, **kwargs: client)

        result = runner.invoke(cli.main, ["chat", "--stream", "--no-privacy-warning"],
                               input="how is SOL?\nexit\n")

        assert result.exit_code == 0, result.output
        assert "SOL is up" in result.output

    def test_cost_command_reports_average_per_call(self, runner, monkeypatch, scripted):
        client = scripted([ModelResponse(content="ok", usage=Usage(1000, 1000))],
                          pricing=Pricing(1.0, 1.0))
        monkeypatch.setattr(cli, "create_client", lambda *args, **kwargs: client)

        result = runner.invoke(cli.main, ["chat", "--no-privacy-warning"],
                               input="hi\n/cost\nexit\n")

        assert result.exit_code == 0, result.output
        assert "Avg Cost/Call" in result.output
        assert "$0.002000" in result.output
