"""Shared pytest fixtures."""

from __future__ import annotations

import json

import pytest


@pytest.fixture
def valid_payload() -> dict:
    return {
        "summary": "Revenue is stable.",
        "insights": [
            {"title": "Flat revenue", "description": "Month over month change is under 1%.", "severity": "low"},
        ],
        "suggestedActions": [
            {"label": "Show errors", "actionType": "APPLY_FILTER", "payload": {"filterValue": "error"}},
        ],
        "warnings": [],
        "confidenceScore": 0.82,
    }


@pytest.fixture
def valid_text(valid_payload) -> str:
    return json.dumps(valid_payload)


@pytest.fixture
def configured_env(monkeypatch):
    monkeypatch.setenv("LLM_MODEL", "claude-sonnet-4-6")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
