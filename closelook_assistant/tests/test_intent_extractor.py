# closelook_assistant/tests/test_intent_extractor.py
from __future__ import annotations

import asyncio

from closelook_assistant.enums import IntentKind
from closelook_assistant.intent_extractor import IntentExtractor, parse_intent_fallback

from .conftest import FakeLLM


def test_fallback_search_with_price_and_color():
    intent = parse_intent_fallback("Show me red shoes under $80")
    assert intent.intent_kind == IntentKind.SEARCH
    assert intent.category == "Shoes"
    assert intent.price_range is not None
    assert intent.price_range.max == 80
    assert intent.price_range.min is None
    assert intent.colors == ["red"]
    assert intent.is_price_query
    assert intent.is_category_query
    assert "shoes" in intent.keywords


def test_fallback_intent_kinds():
    assert parse_intent_fallback("can you recommend a gift").intent_kind == IntentKind.RECOMMENDATION
    assert parse_intent_fallback("compare these two jackets").intent_kind == IntentKind.COMPARISON
    assert parse_intent_fallback("what is this made of?").intent_kind == IntentKind.QUESTION


def test_fallback_never_fails_on_empty_input():
    intent = parse_intent_fallback("")
    assert intent.intent_kind == IntentKind.QUESTION
    assert intent.keywords == []
    assert intent.price_range is None


def test_llm_intent_is_parsed_from_noisy_reply(config):
    config.INTENT_LLM_ENABLED = True
    llm = FakeLLM(intent=(
        'Here you go:\n```json\n{"intent": "recommendation", "category": "Footwear", "type": null, '
        '"priceRange": {"min": null, "max": 100}, "colors": ["black"], "keywords": ["boots"], '
        '"scenario": "winter hike", "isPriceQuery": true}\n```'
    ))
    intent = asyncio.run(IntentExtractor(llm, config).extract("black boots for a winter hike under 100"))

    assert intent.intent_kind == IntentKind.RECOMMENDATION
    assert intent.category == "Footwear"
    assert intent.type is None
    assert intent.price_range.max == 100
    assert intent.colors == ["black"]
    assert intent.scenario == "winter hike"
    assert intent.is_price_query

    call = llm.calls[0]
    assert call["temperature"] == 0.2
    assert call["max_tokens"] == 512
    assert "black boots for a winter hike under 100" in call["prompt"]


def test_llm_error_falls_back(config):
    config.INTENT_LLM_ENABLED = True
    llm = FakeLLM(intent=RuntimeError("quota exceeded"))
    intent = asyncio.run(IntentExtractor(llm, config).extract("find me a watch"))
    assert intent.intent_kind == IntentKind.SEARCH
    assert "watch" in intent.keywords


def test_unparseable_llm_reply_falls_back(config):
    config.INTENT_LLM_ENABLED = True
    llm = FakeLLM(intent="I'm not sure what you mean")
    intent = asyncio.run(IntentExtractor(llm, config).extract("suggest something blue"))
    assert intent.intent_kind == IntentKind.RECOMMENDATION
    assert intent.colors == ["blue"]


def test_disabled_extractor_never_calls_model(config):
    config.INTENT_LLM_ENABLED = False
    llm = FakeLLM(intent='{"intent": "comparison"}')
    extractor = IntentExtractor(llm, config)
    assert not extractor.enabled
    intent = asyncio.run(extractor.extract("show me hats"))
    assert intent.intent_kind == IntentKind.SEARCH
    assert llm.calls == []


def test_no_model_uses_fallback(config):
    config.INTENT_LLM_ENABLED = True
    intent = asyncio.run(IntentExtractor(None, config).extract("compare the boots"))
    assert intent.intent_kind == IntentKind.COMPARISON
