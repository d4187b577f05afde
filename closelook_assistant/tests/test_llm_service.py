# closelook_assistant/tests/test_llm_service.py
from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from closelook_assistant.llm_service import LLMService


class _Messages:
    def __init__(self):
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(content=[
            SimpleNamespace(type="text", text="Hello "),
            SimpleNamespace(type="tool_use", text="ignored"),
            SimpleNamespace(type="text", text="there"),
        ])


def test_complete_joins_text_blocks(config):
    messages = _Messages()
    service = LLMService(config, client=SimpleNamespace(messages=messages))
    text = asyncio.run(service.complete("hi", temperature=0.7, max_tokens=100, system="be nice"))

    assert text == "Hello there"
    assert messages.kwargs["model"] == config.LLM_MODEL
    assert messages.kwargs["system"] == "be nice"
    assert messages.kwargs["messages"] == [{"role": "user", "content": "hi"}]


def test_system_prompt_is_optional(config):
    messages = _Messages()
    service = LLMService(config, client=SimpleNamespace(messages=messages))
    asyncio.run(service.complete("hi", temperature=0.2, max_tokens=10))
    assert "system" not in messages.kwargs


@pytest.mark.parametrize("key", ["", "not-a-real-key"])
def test_api_key_is_validated(config, key):
    config.ANTHROPIC_API_KEY = key
    with pytest.raises(RuntimeError):
        LLMService(config)
