# closelook_assistant/llm_service.py
"""
LLM service module for AssistantCore
─────────────────────────────────────
The pipeline only needs one capability from a model: turn a prompt into text.
`TextCompletion` names that capability; `LLMService` is the Anthropic-backed
implementation used in production. Tests pass any object with a matching
`complete` coroutine.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import anthropic

from .config import BaseConfig, get_config

log = logging.getLogger(__name__)


class TextCompletion(Protocol):
    async def complete(
        self,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        system: Optional[str] = None,
    ) -> str:
        ...


def _response_text(resp: Any) -> str:
    """Join the text blocks of a Messages API response."""
    parts = []
    for block in getattr(resp, "content", None) or []:
        if getattr(block, "type", None) == "text":
            parts.append(getattr(block, "text", "") or "")
    return "".join(parts)


class LLMService:
    """Service class for all LLM interactions."""

    def __init__(self, config: Optional[BaseConfig] = None, client: Optional[anthropic.AsyncAnthropic] = None) -> None:
        self.config = config or get_config()
        if client is None:
            api_key = getattr(self.config, "ANTHROPIC_API_KEY", "") or ""
            if not api_key:
                raise RuntimeError("Missing ANTHROPIC_API_KEY. Set it in environment or .env file.")
            if not api_key.startswith("sk-ant-"):
                raise RuntimeError("Invalid ANTHROPIC_API_KEY format. It should start with 'sk-ant-'.")
            client = anthropic.AsyncAnthropic(api_key=api_key)
        self.anthropic = client
        self.model = self.config.LLM_MODEL

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        system: Optional[str] = None,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if system:
            kwargs["system"] = system

        resp = await self.anthropic.messages.create(**kwargs)
        text = _response_text(resp)
        log.debug(f"LLM_COMPLETE | model={self.model} | prompt_chars={len(prompt)} | reply_chars={len(text)}")
        return text
