"""Wiring tests for the system facade and the CLI commands."""

from __future__ import annotations

import asyncio

import pytest
from typer.testing import CliRunner

from adaptive_tutor import cli
from adaptive_tutor.config.schema import Settings
from adaptive_tutor.system import TutorSystem

from conftest import ScriptedCompletionClient


@pytest.fixture
def fast_settings() -> Settings:
    """Settings without call spacing or backoff so real sleeps return immediately."""
    return Settings.model_validate(
        {"throttle": {"min_delay_seconds": 0}, "retry": {"backoff_base_seconds": 0}}
    )


def test_system_uses_injected_client(fast_settings):
    client = ScriptedCompletionClient("Variables stand for unknown numbers.")
    system = TutorSystem(fast_settings, client=client)

    answer = asyncio.run(system.service.generate_direct_educational_response("What is x?", "Algebra"))

    assert answer == "Variables stand for unknown numbers."
    assert system.service.client is client
    assert system.service.cache.max_size == fast_settings.cache.max_size


def test_system_requires_api_key_without_client(fast_settings, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        TutorSystem(fast_settings)


@pytest.fixture
def runner(monkeypatch, fast_settings):
    """CLI runner whose commands talk to an always-failing scripted client."""
    monkeypatch.setattr(
        cli,
        "_load_system",
        lambda config, api_key: TutorSystem(fast_settings, client=ScriptedCompletionClient()),
    )
    return CliRunner()


def test_plan_command_prints_template_plan_when_offline(runner):
    result = runner.invoke(cli.app, ["plan", "Algebra"])

    assert result.exit_code == 0, result.output
    assert "Introduction to Algebra" in result.output
    assert "Practice with Algebra" in result.output


def test_ask_command_prints_holding_answer(runner):
    result = runner.invoke(cli.app, ["ask", "What is a variable?", "--subject", "Algebra"])

    assert result.exit_code == 0, result.output
    assert "Let me help you with Algebra." in result.output


def test_content_command_rejects_unknown_type(runner):
    result = runner.invoke(cli.app, ["content", "Algebra", "--type", "hologram"])

    assert result.exit_code == 1
