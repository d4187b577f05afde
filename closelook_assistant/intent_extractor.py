# closelook_assistant/intent_extractor.py
"""
Query intent extraction.

Primary path asks the model for a QueryIntent-shaped JSON object; anything
that goes wrong (no model, network/quota error, unparseable reply) falls back
to a deterministic keyword parser. `extract` never raises.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .catalog_filter import COLOR_NAMES, extract_keywords
from .config import BaseConfig, get_config
from .enums import IntentKind
from .llm_service import TextCompletion
from .models import PriceRange, QueryIntent
from .utils.helpers import extract_json_block

log = logging.getLogger(__name__)

INTENT_PROMPT = """Analyze this user query and extract intent and relevant product attributes for product recommendation.

USER QUERY: "{query}"

Return ONLY a JSON object with these keys:
{{
  "intent": "search" | "recommendation" | "question" | "comparison",
  "category": "category name or null",
  "type": "product type or null",
  "priceRange": {{"min": number or null, "max": number or null}} or null,
  "colors": ["color1", "color2"] or null,
  "keywords": ["keyword1", "keyword2"] or null,
  "scenario": "scenario description or null",
  "isPriceQuery": true/false,
  "isCategoryQuery": true/false,
  "isSizeQuery": true/false
}}

Rules:
- intent: "search" if asking to find/show products, "recommendation" if asking for suggestions, "question" if asking about product info, "comparison" if comparing products
- Extract any mentioned categories (Clothing, Footwear, Accessories, etc.)
- Extract any mentioned product types (T-Shirt, Sneakers, Sunglasses, etc.)
- Extract price range if mentioned (e.g., "under $50", "between $20 and $100")
- Extract colors if mentioned
- Extract keywords from the query (meaningful words, not stop words)
- Extract scenario if mentioned (e.g., "winter wedding", "job interview", "casual weekend")
- Set boolean flags based on what the query is asking about

Return ONLY the JSON object, no other text."""

# ─────────────────────────────────────────────────────────────
# Deterministic fallback
# ─────────────────────────────────────────────────────────────

_SEARCH_WORDS = ("show", "find", "search")
_RECOMMEND_WORDS = ("recommend", "suggest")
_COMPARE_WORDS = ("compare", "difference")

_PRICE_QUERY_RGX = re.compile(r"(under|below|less than|over|above|more than|between|price)", re.I)
_CATEGORY_QUERY_RGX = re.compile(r"(shoes|footwear|clothing|accessories|sunglasses|watch|bag|jacket|shirt)", re.I)
_SIZE_QUERY_RGX = re.compile(r"\b(XXL|XL|S|M|L)\b|\b\d{1,2}\b")
_CATEGORY_RGX = re.compile(r"\b(footwear|clothing|accessories|shoes|bags|watches)\b")
_MAX_RGX = re.compile(r"(?:under|below|less than|max|up to|<\s*)\s*\$?\s*(\d+)")
_MIN_RGX = re.compile(r"(?:over|above|more than|min|>\s*)\s*\$?\s*(\d+)")


def _intent_kind(lower: str) -> IntentKind:
    if any(w in lower for w in _SEARCH_WORDS):
        return IntentKind.SEARCH
    if any(w in lower for w in _RECOMMEND_WORDS):
        return IntentKind.RECOMMENDATION
    if any(w in lower for w in _COMPARE_WORDS):
        return IntentKind.COMPARISON
    return IntentKind.QUESTION


def parse_intent_fallback(message: str) -> QueryIntent:
    """Keyword/regex intent builder. Always returns a valid, possibly sparse, QueryIntent."""
    query = message or ""
    lower = query.lower()

    intent = QueryIntent(
        intent_kind=_intent_kind(lower),
        is_price_query=bool(_PRICE_QUERY_RGX.search(query)),
        is_category_query=bool(_CATEGORY_QUERY_RGX.search(query)),
        is_size_query=bool(_SIZE_QUERY_RGX.search(query)),
    )

    cat = _CATEGORY_RGX.search(lower)
    if cat:
        intent.category = cat.group(1).capitalize()

    hi = _MAX_RGX.search(lower)
    lo = _MIN_RGX.search(lower)
    if hi or lo:
        intent.price_range = PriceRange(
            min=float(lo.group(1)) if lo else None,
            max=float(hi.group(1)) if hi else None,
        )

    intent.colors = [c for c in COLOR_NAMES if re.search(rf"\b{c}\b", lower)]
    intent.keywords = extract_keywords(query)
    return intent


# ─────────────────────────────────────────────────────────────
# Extractor
# ─────────────────────────────────────────────────────────────

class IntentExtractor:
    def __init__(self, llm: Optional[TextCompletion] = None, config: Optional[BaseConfig] = None) -> None:
        self.llm = llm
        self.config = config or get_config()

    @property
    def enabled(self) -> bool:
        return self.llm is not None and bool(getattr(self.config, "INTENT_LLM_ENABLED", True))

    async def extract(self, message: str) -> QueryIntent:
        if not self.enabled:
            return parse_intent_fallback(message)

        try:
            text = await self.llm.complete(  # type: ignore[union-attr]
                INTENT_PROMPT.format(query=message),
                temperature=self.config.INTENT_TEMPERATURE,
                max_tokens=self.config.INTENT_MAX_TOKENS,
            )
            data = extract_json_block(text)
            if data:
                intent = QueryIntent.from_dict(data)
                log.debug(f"INTENT_LLM | kind={intent.intent_kind.value} | category={intent.category} | type={intent.type}")
                return intent
            log.warning("INTENT_LLM_UNPARSEABLE | using fallback")
        except Exception as exc:  # noqa: BLE001
            log.warning(f"INTENT_LLM_FAILED | error={exc} | using fallback")

        return parse_intent_fallback(message)
