# closelook_assistant/tests/conftest.py
"""
Shared fixtures: small fakes for the model, ticket system and Redis, plus
a couple of catalogs.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from closelook_assistant.config import TestingConfig
from closelook_assistant.models import Product, TicketRequest, TicketResult
from closelook_assistant.ticketing import TicketClient


class FakeLLM:
    """
    Text-completion stand-in. `reply` answers prompts sent with a system
    prompt (the main reply); `intent` answers the bare intent prompt.
    Either may be a string, an exception instance, or a callable(prompt).
    """

    def __init__(
        self,
        reply: Union[str, Exception, Callable[[str], str]] = "",
        intent: Union[str, Exception, Callable[[str], str]] = "{}",
        delay: float = 0.0,
    ) -> None:
        self.reply = reply
        self.intent = intent
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    @property
    def reply_prompts(self) -> List[str]:
        return [c["prompt"] for c in self.calls if c["system"]]

    async def complete(self, prompt, *, temperature, max_tokens, system=None):
        self.calls.append({
            "prompt": prompt, "temperature": temperature,
            "max_tokens": max_tokens, "system": system,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        answer = self.reply if system else self.intent
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(prompt)
        return answer


class FakeTicketClient(TicketClient):
    def __init__(
        self,
        result: Optional[TicketResult] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.result = result or TicketResult(success=True, ticket_id="T-1700000000000-ABC123")
        self.error = error
        self.delay = delay
        self.requests: List[TicketRequest] = []

    def create_ticket(self, ticket: TicketRequest) -> TicketResult:
        self.requests.append(ticket)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class FakeRedis:
    """Just enough of redis.Redis (decode_responses=True) for the transcript store."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value
        return True

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = int(ttl)
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def ping(self):
        return True

    def info(self, section=None):
        return {"used_memory_human": "1M", "maxmemory_human": "0B"}


# ─────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def config() -> TestingConfig:
    cfg = TestingConfig()
    cfg.COMMERCE_API_BASE = ""
    cfg.TICKET_API_URL = ""
    cfg.SCORING_WEIGHTS = {}
    return cfg


@pytest.fixture
def small_catalog() -> List[Product]:
    return [
        Product(id="A", name="Jacket", category="Clothing", type="Jacket", color="Black", price=50),
        Product(id="B", name="Cap", category="Accessories", type="Cap", color="Red", price=20),
        Product(id="C", name="Boots", category="Footwear", type="Boots", color="Brown", price=80),
    ]


@pytest.fixture
def large_catalog() -> List[Product]:
    """15 black jackets followed by 45 blue caps and one branded cap (61 total)."""
    jackets = [
        Product(id=f"J{i:02d}", name=f"Black Jacket {i:02d}", category="Clothing",
                type="Jacket", color="Black", price=40 + i, sizes=["S", "M", "L"])
        for i in range(15)
    ]
    caps = [
        Product(id=f"C{i:02d}", name=f"Blue Cap {i:02d}", category="Accessories",
                type="Cap", color="Blue", price=10 + i)
        for i in range(45)
    ]
    special = [
        Product(id="TB1", name="Trailblazer Cap", category="Accessories", type="Cap",
                color="Green", price=35, description="Lightweight trail cap"),
    ]
    return jackets + caps + special
