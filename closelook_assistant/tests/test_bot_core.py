# closelook_assistant/tests/test_bot_core.py
from __future__ import annotations

import asyncio

from closelook_assistant import bot_core
from closelook_assistant.bot_core import AssistantCore
from closelook_assistant.catalog_provider import CatalogProvider, StaticCatalogProvider
from closelook_assistant.enums import BackendFunction, Role
from closelook_assistant.models import ConversationTurn, CustomerInfo, Product
from closelook_assistant.prompts import FALLBACK_REPLY, SYSTEM_PROMPT
from closelook_assistant.recommendation_merger import SCORED_REASON

from .conftest import FakeLLM, FakeTicketClient

OFFER = "Sorry about that. Would you like me to create a ticket so our support team can follow up?"


class BrokenCatalog(CatalogProvider):
    async def get_all_products(self):
        raise ConnectionError("catalog offline")


def _core(config, llm, products, tickets=None):
    return AssistantCore(llm, StaticCatalogProvider(products), tickets or FakeTicketClient(), config)


def _ask(core, message, history=(), **kw):
    return asyncio.run(core.process_message(message, list(history), **kw))


def test_tagged_reply_becomes_recommendation(config, small_catalog):
    llm = FakeLLM(reply=(
        "This one fits your budget.\n"
        'PRODUCT_RECOMMENDATION: {"id": "B", "name": "Cap", "price": 20, "reason": "fits budget"}'
    ))
    response = _ask(_core(config, llm, small_catalog), "show me something under $30")

    assert response.message == "This one fits your budget."
    assert [r.to_dict() for r in response.recommendations] == [
        {"id": "B", "name": "Cap", "price": 20, "reason": "fits budget"}
    ]
    assert not response.ticket_created
    assert len(llm.calls) == 1
    assert llm.calls[0]["system"] == SYSTEM_PROMPT


def test_small_catalog_prompt_lists_whole_catalog(config, small_catalog):
    config.INTENT_LLM_ENABLED = True
    llm = FakeLLM(reply="Happy to help!")
    _ask(_core(config, llm, small_catalog), "what do you have?")

    prompt = llm.reply_prompts[0]
    for product in small_catalog:
        assert f"ID: {product.id}, Name: {product.name}" in prompt
    # passthrough needs no intent call
    assert len(llm.calls) == 1


def test_current_product_and_customer_in_prompt(config, small_catalog):
    llm = FakeLLM(reply="It's water resistant.")
    _ask(
        _core(config, llm, small_catalog), "is this waterproof?",
        current_product=small_catalog[2], customer=CustomerInfo(name="Ada", email="ada@example.com"),
    )
    prompt = llm.reply_prompts[0]
    assert "The customer is currently viewing: Boots" in prompt
    assert "Name: Ada" in prompt
    assert prompt.rstrip().endswith("Customer: is this waterproof?\nAssistant:")


def test_model_failure_returns_fallback(config, small_catalog):
    llm = FakeLLM(reply=RuntimeError("overloaded"))
    response = _ask(_core(config, llm, small_catalog), "hello")
    assert response.message == FALLBACK_REPLY
    assert response.recommendations == []
    assert not response.ticket_created


def test_model_timeout_returns_fallback(config, small_catalog):
    config.LLM_REPLY_TIMEOUT_SECONDS = 0.05
    llm = FakeLLM(reply="too late", delay=0.5)
    response = _ask(_core(config, llm, small_catalog), "hello")
    assert response.message == FALLBACK_REPLY


def test_catalog_failure_is_survivable(config):
    llm = FakeLLM(reply='Try these. PRODUCT_RECOMMENDATION: {"id": "B"}')
    core = AssistantCore(llm, BrokenCatalog(), FakeTicketClient(), config)
    response = _ask(core, "show me caps")
    assert response.message == "Try these."
    # nothing in an empty snapshot can be recommended
    assert response.recommendations == []
    assert "AVAILABLE PRODUCTS FOR RECOMMENDATIONS:\n(none)" in llm.reply_prompts[0]


def test_unexpected_error_yields_generic_reply(config, small_catalog, monkeypatch):
    llm = FakeLLM(reply="fine")
    core = _core(config, llm, small_catalog)

    def explode(*a, **kw):
        raise ValueError("bad state")

    monkeypatch.setattr(core.extractor, "extract", explode)
    response = _ask(core, "hello")
    assert response.message == FALLBACK_REPLY
    assert response.recommendations == []


def test_large_catalog_search_puts_retrieved_products_first(config, large_catalog):
    llm = FakeLLM(reply="We also love the **Trailblazer Cap** — light and breezy.")
    response = _ask(_core(config, llm, large_catalog), "show me a black jacket")

    ids = [r.id for r in response.recommendations]
    assert ids == [f"J{i:02d}" for i in range(10)]
    assert all(r.reason == SCORED_REASON for r in response.recommendations)
    prompt = llm.reply_prompts[0]
    assert "Name: Black Jacket 09" in prompt
    assert "Name: Black Jacket 10" not in prompt


def test_large_catalog_question_uses_only_extracted(config, large_catalog):
    llm = FakeLLM(reply="The Trailblazer Cap is machine washable.")
    response = _ask(_core(config, llm, large_catalog), "is the trailblazer cap washable?")
    assert [r.id for r in response.recommendations] == ["TB1"]
    assert response.recommendations[0].reason == "Mentioned: Trailblazer Cap"


def test_history_is_trimmed(config, small_catalog):
    history = [
        ConversationTurn(Role.USER if i % 2 == 0 else Role.ASSISTANT, f"message number {i:03d}")
        for i in range(80)
    ]
    llm = FakeLLM(reply="ok")
    _ask(_core(config, llm, small_catalog), "and now?", history)
    prompt = llm.reply_prompts[0]
    assert "message number 029" not in prompt
    assert "message number 030" in prompt
    assert "message number 079" in prompt


def test_order_lookup_is_added_to_context(config, small_catalog, monkeypatch):
    seen = {}

    async def fake_orders(cfg, query, customer):
        seen["order_number"] = query.order_number
        return "ORDER INFORMATION:\n- Order #1001 | fulfillment: shipped"

    def fake_get_fetcher(func):
        assert func == BackendFunction.FETCH_ORDER_STATUS
        return fake_orders

    monkeypatch.setattr(bot_core, "get_fetcher", fake_get_fetcher)
    llm = FakeLLM(reply="It has shipped.")
    _ask(_core(config, llm, small_catalog), "where is my order #1001?")

    assert seen["order_number"] == "1001"
    assert "- Order #1001 | fulfillment: shipped" in llm.reply_prompts[0]


def test_failing_lookup_is_skipped(config, small_catalog, monkeypatch):
    async def broken(cfg, query, customer):
        raise TimeoutError("commerce api down")

    monkeypatch.setattr(bot_core, "get_fetcher", lambda func: broken)
    llm = FakeLLM(reply="Our return window is 30 days.")
    response = _ask(_core(config, llm, small_catalog), "what is your return policy?")
    assert response.message == "Our return window is 30 days."


def test_confirmed_escalation_creates_one_ticket(config, small_catalog):
    tickets = FakeTicketClient()
    history = [
        ConversationTurn(Role.USER, "I need help, this isn't working"),
        ConversationTurn(Role.ASSISTANT, OFFER),
    ]
    llm = FakeLLM(reply="Thanks, I'm passing this on now.")
    response = _ask(
        _core(config, llm, small_catalog, tickets), "yes please create one", history,
        issue="Broken zipper!!", customer=CustomerInfo(email="ada@example.com"),
    )

    assert response.ticket_created
    assert len(tickets.requests) == 1
    assert tickets.requests[0].customer_email == "ada@example.com"
    assert "Support ticket created! Reference #T-1700000000000-ABC123" in response.message


def test_help_request_gets_offer(config, small_catalog):
    history = [
        ConversationTurn(Role.USER, "hi"),
        ConversationTurn(Role.ASSISTANT, "Hello! How can I help?"),
    ]
    llm = FakeLLM(reply="I'm sorry to hear that.")
    response = _ask(_core(config, llm, small_catalog), "my zipper is not working", history)
    assert response.message.endswith("Would you like me to create a ticket so our support team can follow up with you?")
    assert not response.ticket_created


def test_empty_reply_with_products_gets_a_lead_in(config, small_catalog):
    llm = FakeLLM(reply='PRODUCT_RECOMMENDATION: {"id": "A", "reason": "warm"}')
    response = _ask(_core(config, llm, small_catalog), "something warm")
    assert response.message == bot_core.EMPTY_REPLY_WITH_PRODUCTS
    assert [r.id for r in response.recommendations] == ["A"]


def test_catalog_is_read_once_per_message(config, small_catalog):
    class CountingCatalog(StaticCatalogProvider):
        reads = 0

        async def get_all_products(self):
            CountingCatalog.reads += 1
            return await super().get_all_products()

    core = AssistantCore(FakeLLM(reply="hi"), CountingCatalog(small_catalog), FakeTicketClient(), config)
    _ask(core, "hello")
    assert CountingCatalog.reads == 1


def test_product_from_dict_roundtrip_through_prompt(config):
    product = Product.from_dict({"id": 7, "title": "Rain Shell", "price": "$1,049.50", "productType": "Jacket"})
    llm = FakeLLM(reply="ok")
    _ask(_core(config, llm, [product]), "rain gear?")
    assert "ID: 7, Name: Rain Shell, Category: , Type: Jacket, Price: $1049.50" in llm.reply_prompts[0]
