# closelook_assistant/tests/test_retrieval.py
from __future__ import annotations

import asyncio

import pytest

from closelook_assistant.enums import IntentKind, RetrievalStrategy
from closelook_assistant.models import PriceRange, Product, QueryIntent
from closelook_assistant.retrieval import (ProductRetriever, get_product_limit_for_query,
                                           rank_products, retrieve_relevant_products,
                                           score_product)
from closelook_assistant.scoring_config import ScoringWeights

from .conftest import FakeLLM

PARKA = Product(
    id="P1", name="Black Winter Jacket", category="Clothing", type="Jacket",
    color="Black", price=50, description="Warm insulated shell",
)


def test_score_is_additive():
    intent = QueryIntent(
        intent_kind=IntentKind.SEARCH, category="clothing", type="jacket",
        colors=["black"], keywords=["warm"], price_range=PriceRange(max=60),
    )
    # category 10 + type 10 + color 5 + keyword 3 + under max 5 + name word "jacket" 8
    assert score_product(PARKA, intent, "warm jacket") == 41


def test_score_price_range_bonus():
    intent = QueryIntent(price_range=PriceRange(min=20, max=60))
    assert score_product(PARKA, intent, "") == 13
    # under the max but below the min: only the max bonus applies
    assert score_product(PARKA, QueryIntent(price_range=PriceRange(min=70, max=90)), "") == 5
    assert score_product(PARKA, QueryIntent(price_range=PriceRange(min=70)), "") == 0


def test_score_scenario_heuristic():
    assert score_product(PARKA, QueryIntent(scenario="winter hike"), "") == 5
    assert score_product(PARKA, QueryIntent(scenario="beach day"), "") == 0


def test_short_and_stop_words_do_not_score_name_matches():
    product = Product(id="x", name="Show Me Tee")
    assert score_product(product, QueryIntent(), "show me tee") == 0


def test_weight_overrides():
    weights = ScoringWeights.from_overrides({"name_word": 0, "color": "7", "bogus": 1})
    assert weights.name_word == 0
    assert weights.color == 7
    assert weights.category == 10
    intent = QueryIntent(colors=["black"])
    assert score_product(PARKA, intent, "black jacket", weights) == 7


def test_rank_is_stable_for_ties():
    products = [Product(id=str(i), name=f"Item {i}", category="Clothing") for i in range(5)]
    ranked = rank_products(products, QueryIntent(category="clothing"), "")
    assert [sc.product.id for sc in ranked] == ["0", "1", "2", "3", "4"]


def test_rank_orders_by_score_descending():
    products = [
        Product(id="cap", name="Cap", category="Accessories"),
        Product(id="jacket", name="Jacket", category="Clothing", type="Jacket"),
    ]
    ranked = rank_products(products, QueryIntent(category="clothing", type="jacket"), "")
    assert [sc.product.id for sc in ranked] == ["jacket", "cap"]
    assert ranked[0].score == 20


def test_product_limits():
    assert get_product_limit_for_query(QueryIntent(intent_kind=IntentKind.SEARCH)) == 10
    assert get_product_limit_for_query(QueryIntent(intent_kind=IntentKind.RECOMMENDATION)) == 20
    assert get_product_limit_for_query(QueryIntent(intent_kind=IntentKind.QUESTION)) == 5
    assert get_product_limit_for_query(QueryIntent(intent_kind=IntentKind.COMPARISON)) == 4
    assert get_product_limit_for_query(None) == 15
    assert get_product_limit_for_query(QueryIntent(intent_kind=IntentKind.SEARCH), catalog_size=3) == 3


def test_small_catalog_passes_through(config, small_catalog):
    result = asyncio.run(ProductRetriever(None, config).retrieve(small_catalog, "anything at all"))
    assert result.strategy == RetrievalStrategy.PASSTHROUGH
    assert result.products == small_catalog


def test_small_catalog_passthrough_skips_intent_call(config, small_catalog):
    config.INTENT_LLM_ENABLED = True
    llm = FakeLLM(intent='{"intent": "search"}')
    asyncio.run(ProductRetriever(llm, config).retrieve(small_catalog, "show me caps"))
    assert llm.calls == []


def test_under_budget_query_with_filtering_enabled(config, small_catalog):
    config.SMALL_CATALOG_THRESHOLD = 0
    result = asyncio.run(
        ProductRetriever(None, config).retrieve(small_catalog, "show me something under $30", use_llm_intent=False)
    )
    assert [p.id for p in result.products] == ["B"]
    assert result.strategy == RetrievalStrategy.FILTERED


def test_large_catalog_is_scored_and_truncated(config, large_catalog):
    result = asyncio.run(ProductRetriever(None, config).retrieve(large_catalog, "show me a black jacket"))
    assert result.strategy == RetrievalStrategy.SCORED
    assert result.max_products == 10
    # all jackets tie, so catalog order decides
    assert [p.id for p in result.products] == [f"J{i:02d}" for i in range(10)]
    assert len(result.scored) == 10
    assert all(sc.score > 0 for sc in result.scored)


def test_max_products_override(config, large_catalog):
    result = asyncio.run(
        ProductRetriever(None, config).retrieve(large_catalog, "show me a black jacket", max_products=3)
    )
    assert len(result.products) == 3


def test_keyword_fallback_when_filter_is_empty(config, large_catalog):
    result = asyncio.run(
        ProductRetriever(None, config).retrieve(large_catalog, "show me trailblazer jackets under $5")
    )
    assert result.strategy == RetrievalStrategy.KEYWORD_FALLBACK
    assert [p.id for p in result.products] == ["TB1"]


def test_catalog_head_as_last_resort(config, large_catalog):
    result = asyncio.run(ProductRetriever(None, config).retrieve(large_catalog, "xyzzy"))
    assert result.strategy == RetrievalStrategy.CATALOG_HEAD
    assert result.products == large_catalog[:5]


def test_llm_intent_sets_budget(config, large_catalog):
    config.INTENT_LLM_ENABLED = True
    llm = FakeLLM(intent='{"intent": "recommendation", "colors": ["blue"]}')
    result = asyncio.run(ProductRetriever(llm, config).retrieve(large_catalog, "blue please"))
    assert result.intent.intent_kind == IntentKind.RECOMMENDATION
    assert result.max_products == 20
    assert len(result.products) == 20
    assert all(p.color == "Blue" for p in result.products)


def test_retrieve_relevant_products_wrapper(config, large_catalog):
    products = asyncio.run(
        retrieve_relevant_products(large_catalog, "show me a black jacket", max_products=4,
                                   use_llm_intent=False, config=config)
    )
    assert [p.id for p in products] == ["J00", "J01", "J02", "J03"]


@pytest.mark.parametrize("intent_reply, kind, budget", [
    ('{"intent": "search"}', IntentKind.SEARCH, 10),
    ('{"intent": "recommendation"}', IntentKind.RECOMMENDATION, 20),
    ('{"intent": "question"}', IntentKind.QUESTION, 5),
    ('{"intent": "comparison"}', IntentKind.COMPARISON, 4),
    ('{"intent": "browse"}', IntentKind.QUESTION, 5),
])
def test_large_catalog_never_exceeds_budget(config, large_catalog, intent_reply, kind, budget):
    config.INTENT_LLM_ENABLED = True
    llm = FakeLLM(intent=intent_reply)
    for message in ("any blue caps?", "xyzzy", "trailblazer", "black jacket under $45"):
        result = asyncio.run(ProductRetriever(llm, config).retrieve(large_catalog, message))
        assert result.intent.intent_kind == kind
        assert result.max_products == budget
        assert len(result.products) <= budget