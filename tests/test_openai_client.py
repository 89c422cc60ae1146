"""Tests for the OpenAI client helper."""
from __future__ import annotations

import importlib
import sys
from types import ModuleType, SimpleNamespace

import pytest


class _FakeCompletions:
    def __init__(self):
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(
            model=kwargs["model"],
            choices=[SimpleNamespace(message=SimpleNamespace(content="hello back"))],
        )


def _install_openai_stub(monkeypatch):
    """Insert a fake ``openai`` module into ``sys.modules``."""

    completions = _FakeCompletions()
    created = []

    class _FakeClient:
        def __init__(self, **kwargs):
            created.append(kwargs)
            self.chat = SimpleNamespace(completions=completions)

    fake_openai = ModuleType("openai")
    fake_openai.OpenAI = _FakeClient  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "openai", fake_openai)
    return completions, created


def reload_client_module():
    """Ensure a fresh import state for openai_client module."""

    if "peerpulse.openai_client" in sys.modules:
        del sys.modules["peerpulse.openai_client"]
    return importlib.import_module("peerpulse.openai_client")


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    _install_openai_stub(monkeypatch)

    oc = reload_client_module()

    with pytest.raises(oc.OpenAIClientError):
        oc.get_openai_client()


def test_client_gets_key_and_org(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("OPENAI_ORG", "org-1")
    _, created = _install_openai_stub(monkeypatch)

    oc = reload_client_module()
    oc.get_openai_client()

    assert created == [{"api_key": "test-key", "organization": "org-1"}]


def test_chat_completion_wrapper(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.delenv("OPENAI_ORG", raising=False)
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    completions, _ = _install_openai_stub(monkeypatch)

    oc = reload_client_module()
    result = oc.chat_completion([{"role": "user", "content": "Hello"}], temperature=0)

    assert result == {"choices": [{"message": {"content": "hello back"}}], "model": "gpt-4.1"}
    assert completions.calls[0]["messages"][0]["content"] == "Hello"
    assert completions.calls[0]["temperature"] == 0
