"""
Brain of the shopping assistant.

One call to `AssistantCore.process_message` runs the whole turn:

• Catalog snapshot and query intent are fetched concurrently
• Retrieval narrows the catalog to the context budget
• Optional order / policy lookups are appended as opaque context
• The main reply is raced against its timeout (canned reply on failure)
• Recommendations are extracted from the reply and merged with retrieval
• The escalation state machine inspects the same message/reply pair

Everything is request-local; nothing escapes as an exception.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from .catalog_provider import CatalogProvider
from .config import BaseConfig, get_config
from .data_fetchers import get_fetcher
from .enums import BackendFunction, IntentKind, Role
from .escalation import EscalationManager
from .llm_service import TextCompletion
from .models import (ChatResponse, ConversationTurn, CustomerInfo, Product,
                     QueryIntent, RetrievalResult, ScoredCandidate)
from .prompts import (FALLBACK_REPLY, SYSTEM_PROMPT, build_context,
                      build_reply_prompt)
from .query_detector import QueryType, detect_query_type, extract_order_number
from .recommendation_extractor import RecommendationExtractor
from .recommendation_merger import merge_recommendations
from .retrieval import ProductRetriever
from .ticketing import TicketClient
from .utils.smart_logger import get_smart_logger

log = logging.getLogger(__name__)

# Retrieval ranking only feeds the recommendation list for these intents
RANKED_INTENTS = {IntentKind.SEARCH, IntentKind.RECOMMENDATION}
EMPTY_REPLY_WITH_PRODUCTS = "Here are a few options you might like."


class AssistantCore:
    def __init__(
        self,
        llm: Optional[TextCompletion],
        catalog: CatalogProvider,
        ticket_client: TicketClient,
        config: Optional[BaseConfig] = None,
    ) -> None:
        self.config = config or get_config()
        self.llm = llm
        self.catalog = catalog
        self.retriever = ProductRetriever(llm, self.config)
        self.extractor = RecommendationExtractor()
        self.escalation = EscalationManager(ticket_client, self.config)
        self.smart_log = get_smart_logger("bot_core")

    # ────────────────────────────────────────────────────────
    # Public entry point
    # ────────────────────────────────────────────────────────
    async def process_message(
        self,
        message: str,
        history: Sequence[ConversationTurn],
        *,
        current_product: Optional[Product] = None,
        customer: Optional[CustomerInfo] = None,
        issue: Optional[str] = None,
        session_id: str = "anonymous",
    ) -> ChatResponse:
        started = time.perf_counter()
        turns = list(history or [])[-self.config.HISTORY_MAX_TURNS:]
        self.smart_log.query_start(session_id, message, len(turns))

        try:
            response = await self._run(message, turns, current_product, customer, issue, session_id)
        except Exception as exc:  # noqa: BLE001
            log.error(f"PIPELINE_ERROR | session={session_id} | error={exc}", exc_info=True)
            self.smart_log.error_occurred(session_id, type(exc).__name__, "process_message", str(exc))
            response = ChatResponse(message=FALLBACK_REPLY)

        self.smart_log.response_generated(
            session_id, len(response.recommendations), response.ticket_created,
            time.perf_counter() - started,
        )
        return response

    # ────────────────────────────────────────────────────────
    # Pipeline
    # ────────────────────────────────────────────────────────
    async def _run(
        self,
        message: str,
        history: List[ConversationTurn],
        current_product: Optional[Product],
        customer: Optional[CustomerInfo],
        issue: Optional[str],
        session_id: str,
    ) -> ChatResponse:
        intent_task = asyncio.ensure_future(self.retriever.intent_extractor.extract(message))
        products = await self._load_catalog(session_id)

        intent: Optional[QueryIntent] = None
        if len(products) <= self.retriever.small_catalog_threshold:
            intent_task.cancel()
        else:
            intent = await intent_task
            self.smart_log.intent_extracted(
                session_id, intent.intent_kind.value,
                "llm" if self.retriever.intent_extractor.enabled else "fallback",
            )

        retrieval = await self.retriever.retrieve(products, message, intent=intent)
        self.smart_log.retrieval_done(
            session_id, retrieval.strategy.value, len(products),
            len(retrieval.products), retrieval.max_products,
        )
        self.smart_log.candidates(session_id, [p.id for p in retrieval.products])

        query = detect_query_type(message)
        extra = await self._lookup_context(query, customer, session_id)

        context = build_context(retrieval.products, current_product, customer, extra)
        prompt = build_reply_prompt(message, history, context)
        reply = await self._generate_reply(prompt, session_id)

        extraction = self.extractor.extract(reply, products)
        recommendations = merge_recommendations(
            self._ranked_candidates(retrieval),
            extraction.recommendations,
            limit=self.config.MAX_RECOMMENDATIONS,
        )
        by_strategy: dict = {}
        for rec in extraction.recommendations:
            if rec.strategy is not None:
                by_strategy[rec.strategy.value] = by_strategy.get(rec.strategy.value, 0) + 1
        self.smart_log.extraction_done(session_id, by_strategy, len(recommendations))

        outcome = await self.escalation.evaluate(
            history, message, extraction.cleaned_text,
            issue=issue, customer=customer,
            order_number=query.order_number or self._order_number_from(history),
            session_id=session_id,
        )

        text = outcome.message
        if not text and recommendations:
            text = EMPTY_REPLY_WITH_PRODUCTS
        return ChatResponse(message=text or FALLBACK_REPLY, recommendations=recommendations,
                            ticket_created=outcome.ticket_created)

    # ────────────────────────────────────────────────────────
    # Steps
    # ────────────────────────────────────────────────────────
    async def _load_catalog(self, session_id: str) -> List[Product]:
        try:
            return list(await self.catalog.get_all_products())
        except Exception as exc:  # noqa: BLE001
            log.warning(f"CATALOG_UNAVAILABLE | session={session_id} | error={exc}")
            self.smart_log.warning(session_id, "CATALOG_UNAVAILABLE", str(exc))
            return []

    async def _lookup_context(
        self,
        query: QueryType,
        customer: Optional[CustomerInfo],
        session_id: str,
    ) -> List[str]:
        functions: List[BackendFunction] = []
        if query.is_order or query.is_account:
            functions.append(BackendFunction.FETCH_ORDER_STATUS)
        if query.is_policy:
            functions.append(BackendFunction.FETCH_STORE_POLICIES)
        if not functions:
            return []

        async def _one(func: BackendFunction) -> str:
            try:
                self.smart_log.api_call(session_id, "commerce", func.value)
                return await get_fetcher(func)(self.config, query, customer) or ""
            except Exception as exc:  # noqa: BLE001
                self.smart_log.warning(session_id, "DATA_FETCH_FAILED", f"{func.value}: {exc}")
                return ""

        results = await asyncio.gather(*(_one(f) for f in functions))
        return [r for r in results if r]

    async def _generate_reply(self, prompt: str, session_id: str) -> str:
        if self.llm is None:
            return FALLBACK_REPLY
        try:
            self.smart_log.api_call(session_id, "llm", "complete")
            return await asyncio.wait_for(
                self.llm.complete(
                    prompt,
                    temperature=self.config.LLM_TEMPERATURE,
                    max_tokens=self.config.LLM_MAX_TOKENS,
                    system=SYSTEM_PROMPT,
                ),
                timeout=self.config.LLM_REPLY_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            log.warning(f"LLM_REPLY_TIMEOUT | session={session_id} | timeout={self.config.LLM_REPLY_TIMEOUT_SECONDS}s")
        except Exception as exc:  # noqa: BLE001
            log.warning(f"LLM_REPLY_FAILED | session={session_id} | error={exc}")
        return FALLBACK_REPLY

    @staticmethod
    def _ranked_candidates(retrieval: RetrievalResult) -> List[ScoredCandidate]:
        if retrieval.intent is None or retrieval.intent.intent_kind not in RANKED_INTENTS:
            return []
        return [sc for sc in retrieval.scored if sc.score > 0]

    @staticmethod
    def _order_number_from(history: Sequence[ConversationTurn]) -> Optional[str]:
        for turn in reversed(history):
            if turn.role == Role.USER:
                number = extract_order_number(turn.content)
                if number:
                    return number
        return None
