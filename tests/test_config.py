"""Tests for settings loading and provider failure mapping."""

from __future__ import annotations

import anthropic
import httpx
import pytest

from insightos.config import load_settings
from insightos.copilot.fallback import upstream_failure_status

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def test_settings_report_missing_required_variables(monkeypatch):
    monkeypatch.delenv("LLM_MODEL", raising=False)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")

    assert load_settings().missing() == ["ANTHROPIC_API_KEY", "LLM_MODEL"]


def test_settings_read_environment(monkeypatch, configured_env):
    monkeypatch.setenv("LLM_MAX_TOKENS", "2048")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.missing() == []
    assert settings.model == "claude-sonnet-4-6"
    assert settings.max_tokens == 2048
    assert settings.log_level == "DEBUG"


def test_malformed_integer_falls_back_to_default(monkeypatch, caplog):
    monkeypatch.setenv("LLM_MAX_TOKENS", "lots")

    with caplog.at_level("WARNING"):
        settings = load_settings()

    assert settings.max_tokens == 1024
    assert "LLM_MAX_TOKENS" in caplog.text


@pytest.mark.parametrize(
    "error, status_code",
    [
        (anthropic.RateLimitError("slow down", response=httpx.Response(429, request=_REQUEST), body=None), 429),
        (anthropic.APIStatusError("busy", response=httpx.Response(429, request=_REQUEST), body=None), 429),
        (anthropic.AuthenticationError("bad key", response=httpx.Response(401, request=_REQUEST), body=None), 502),
        (anthropic.APITimeoutError(request=_REQUEST), 502),
        (ValueError("ours"), 500),
    ],
)
def test_upstream_failure_status(error, status_code):
    assert upstream_failure_status(error) == status_code
