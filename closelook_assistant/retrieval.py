# closelook_assistant/retrieval.py
"""
Relevance Scorer & Selector
───────────────────────────
Picks the slice of the catalog that goes into the model's context.

Small catalogs pass through untouched. Larger ones are narrowed with the
attribute filter on the raw message, ranked with the additive scorer when
still over budget, widened to a keyword pass over the full catalog when the
filter finds nothing, and finally fall back to the head of the catalog so the
model never sees an empty product list.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .catalog_filter import smart_filter_products
from .config import BaseConfig, get_config
from .enums import RetrievalStrategy
from .intent_extractor import IntentExtractor, parse_intent_fallback
from .llm_service import TextCompletion
from .models import Product, QueryIntent, RetrievalResult, ScoredCandidate
from .scoring_config import (DEFAULT_PRODUCT_LIMIT, DEFAULT_WEIGHTS,
                             INTENT_PRODUCT_LIMITS, NAME_MATCH_MIN_LENGTH,
                             NAME_MATCH_STOP_WORDS, SCENARIO_RULES,
                             ScoringWeights)

log = logging.getLogger(__name__)

_EDGE_PUNCT = "?!.,;:\"'()[]"


# ─────────────────────────────────────────────────────────────
# Scoring
# ─────────────────────────────────────────────────────────────

def _query_name_words(query: str) -> List[str]:
    words = []
    for raw in (query or "").lower().split():
        word = raw.strip(_EDGE_PUNCT)
        if len(word) >= NAME_MATCH_MIN_LENGTH and word not in NAME_MATCH_STOP_WORDS:
            words.append(word)
    return words


def score_product(
    product: Product,
    intent: QueryIntent,
    query: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Additive relevance score; higher is better, no normalisation."""
    score = 0.0
    text = product.search_text()
    category = product.category.lower()
    ptype = product.type.lower()
    color = product.color.lower()

    if intent.category and intent.category.lower() in category:
        score += weights.category

    if intent.type and intent.type.lower() in ptype:
        score += weights.type

    if any(c.lower() in color for c in intent.colors if c):
        score += weights.color

    for keyword in intent.keywords:
        if keyword and keyword.lower() in text:
            score += weights.keyword

    pr = intent.price_range
    if pr is not None:
        if pr.max is not None and product.price <= pr.max:
            score += weights.under_max
        if pr.min is not None and product.price >= pr.min:
            score += weights.over_min
        if pr.min is not None and pr.max is not None and pr.min <= product.price <= pr.max:
            score += weights.within_range

    if intent.scenario:
        scenario = intent.scenario.lower()
        for word, rule in SCENARIO_RULES.items():
            if word in scenario and (rule["category"] in category or rule["type"] in ptype):
                score += weights.scenario

    name = product.name.lower()
    for word in _query_name_words(query):
        if word in name:
            score += weights.name_word

    return score


def rank_products(
    products: List[Product],
    intent: QueryIntent,
    query: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[ScoredCandidate]:
    """Score and sort descending. Stable: ties keep catalog order."""
    scored = [ScoredCandidate(product=p, score=score_product(p, intent, query, weights)) for p in products]
    return sorted(scored, key=lambda sc: -sc.score)


def get_product_limit_for_query(intent: Optional[QueryIntent], catalog_size: Optional[int] = None) -> int:
    limit = DEFAULT_PRODUCT_LIMIT
    if intent is not None:
        limit = INTENT_PRODUCT_LIMITS.get(intent.intent_kind, DEFAULT_PRODUCT_LIMIT)
    if catalog_size is not None:
        limit = min(limit, catalog_size)
    return limit


# ─────────────────────────────────────────────────────────────
# Selector
# ─────────────────────────────────────────────────────────────

class ProductRetriever:
    def __init__(
        self,
        llm: Optional[TextCompletion] = None,
        config: Optional[BaseConfig] = None,
        weights: Optional[ScoringWeights] = None,
    ) -> None:
        self.config = config or get_config()
        self.intent_extractor = IntentExtractor(llm, self.config)
        self.weights = weights or ScoringWeights.from_overrides(getattr(self.config, "SCORING_WEIGHTS", None))
        self.small_catalog_threshold = int(getattr(self.config, "SMALL_CATALOG_THRESHOLD", 50))

    async def _intent_for(self, message: str, use_llm_intent: bool) -> QueryIntent:
        if use_llm_intent:
            return await self.intent_extractor.extract(message)
        return parse_intent_fallback(message)

    async def retrieve(
        self,
        products: List[Product],
        message: str,
        max_products: Optional[int] = None,
        use_llm_intent: bool = True,
        intent: Optional[QueryIntent] = None,
    ) -> RetrievalResult:
        products = list(products or [])

        if len(products) <= self.small_catalog_threshold:
            return RetrievalResult(
                products=products,
                intent=intent,
                strategy=RetrievalStrategy.PASSTHROUGH,
                max_products=len(products),
            )

        if intent is None:
            intent = await self._intent_for(message, use_llm_intent)

        budget = max_products if max_products is not None else get_product_limit_for_query(intent, len(products))
        budget = max(0, budget)

        filtered = smart_filter_products(products, message)

        if len(filtered) > budget:
            ranked = rank_products(filtered, intent, message, self.weights)[:budget]
            return RetrievalResult(
                products=[sc.product for sc in ranked],
                intent=intent,
                strategy=RetrievalStrategy.SCORED,
                max_products=budget,
                scored=ranked,
            )

        if filtered:
            return RetrievalResult(filtered, intent, RetrievalStrategy.FILTERED, budget)

        if intent.keywords:
            words = [k.lower() for k in intent.keywords if k]
            matches = [
                p for p in products
                if any(w in f"{p.name} {p.description} {p.category} {p.type}".lower() for w in words)
            ]
            if matches:
                ranked = rank_products(matches, intent, message, self.weights)[:budget]
                return RetrievalResult(
                    products=[sc.product for sc in ranked],
                    intent=intent,
                    strategy=RetrievalStrategy.KEYWORD_FALLBACK,
                    max_products=budget,
                    scored=ranked,
                )

        log.info(f"RETRIEVAL_CATALOG_HEAD | catalog={len(products)} | budget={budget}")
        return RetrievalResult(products[:budget], intent, RetrievalStrategy.CATALOG_HEAD, budget)


async def retrieve_relevant_products(
    products: List[Product],
    message: str,
    *,
    max_products: Optional[int] = None,
    use_llm_intent: bool = True,
    llm: Optional[TextCompletion] = None,
    config: Optional[BaseConfig] = None,
) -> List[Product]:
    """Convenience wrapper returning only the selected products."""
    result = await ProductRetriever(llm, config).retrieve(
        products, message, max_products=max_products, use_llm_intent=use_llm_intent
    )
    return result.products
