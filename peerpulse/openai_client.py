"""Lightweight OpenAI client helper.

Only the optional digest summary talks to OpenAI; every dashboard metric is
computed locally. Keeping credential handling here means the rest of the
codebase can do:

    from peerpulse.openai_client import chat_completion
"""
from __future__ import annotations

import os
import types
from typing import Any, Dict, List


class OpenAIClientError(RuntimeError):
    """Raised when client configuration is invalid (e.g., missing API key)."""


_DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1")


def _load_openai() -> types.ModuleType:
    """Import ``openai`` lazily so the package imports without credentials."""

    import importlib

    return importlib.import_module("openai")


def _ensure_api_key_present() -> str:
    """Return the ``OPENAI_API_KEY`` env var or raise.

    Raises
    ------
    OpenAIClientError
        If the env var is missing or empty.
    """

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise OpenAIClientError("OPENAI_API_KEY environment variable is not set.")
    return api_key


def get_openai_client() -> Any:
    """Return an ``openai.OpenAI`` client configured from the environment."""

    openai = _load_openai()
    kwargs: Dict[str, Any] = {"api_key": _ensure_api_key_present()}
    org = os.getenv("OPENAI_ORG")
    if org:
        kwargs["organization"] = org
    return openai.OpenAI(**kwargs)


def chat_completion(
    messages: List[Dict[str, str]],
    *,
    model: str = _DEFAULT_MODEL,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Call ``client.chat.completions.create`` and return a plain ``dict``.

    The result always has at least
    ``{"choices": [{"message": {"content": ...}}], "model": ...}`` so callers
    and tests do not depend on the SDK's response classes.
    """

    client = get_openai_client()
    completion = client.chat.completions.create(
        model=model, messages=messages, **kwargs
    )
    choices = [
        {"message": {"content": choice.message.content}}
        for choice in completion.choices
    ]
    return {"choices": choices, "model": completion.model}
