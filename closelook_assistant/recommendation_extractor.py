# closelook_assistant/recommendation_extractor.py
"""
Recommendation Extractor
────────────────────────
Recovers the products an assistant reply recommends and cleans the reply text.

Passes run in order and never re-emit an id found by an earlier pass:

• TaggedStrategy          – `PRODUCT_RECOMMENDATION: {...}` markers (stripped)
• PriceAnchoredStrategy   – a name-like span right before a `$<price>`
• NameOnlyStrategy        – catalog names mentioned bold, with a colon, or bare

Every pass resolves against the catalog snapshot: an id the catalog does not
hold is never emitted, and the emitted name/price always come from the
catalog, not from the model's text. The two plain-text passes are heuristics;
a stricter structured-output contract only needs a different strategy list.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .enums import MatchStrategy
from .models import ExtractedRecommendation, ExtractionResult, Product

log = logging.getLogger(__name__)

DEFAULT_TAGGED_REASON = "Recommended for you"

_TAGGED_RGX = re.compile(r"PRODUCT_RECOMMENDATION:\s*(\{[^}]+\})")
_PRICE_RGX = re.compile(r"\$\s?(\d[\d,]*(?:\.\d+)?)")
_REASON_RGX = re.compile(r"(?:^|\s)[-–—]\s*([^.\n]+)")

_NAME_CHARS = r"[A-Z][A-Za-z0-9'&\- ]+?"
# Tried in order against the text immediately before a price
_PRICE_NAME_PATTERNS = [
    re.compile(r"\*\*([^*]+)\*\*\s*\(?\s*\Z"),              # **Name** ($
    re.compile(r":\s*(" + _NAME_CHARS + r")\s*\(\s*\Z"),     # : Name ($
    re.compile(r"(" + _NAME_CHARS + r")\s*:\s*\Z"),          # Name: $
    re.compile(r"(" + _NAME_CHARS + r")\s*\(?\s*\Z"),        # Name ($
]

PRICE_LOOKBEHIND_CHARS = 100
REASON_LOOKAHEAD_CHARS = 200
NAME_REASON_LOOKAHEAD_CHARS = 100
MIN_NAME_SPAN = 3


def _same_price(a: float, b: float) -> bool:
    return abs(a - b) < 0.005


def _fmt_price(price: float) -> str:
    return f"{price:.0f}" if float(price).is_integer() else f"{price:.2f}"


def _tidy(text: str) -> str:
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# ─────────────────────────────────────────────────────────────
# Strategies
# ─────────────────────────────────────────────────────────────

class BaseMatchStrategy(ABC):
    """One extraction pass. Returns the (possibly rewritten) text and new matches."""

    strategy: MatchStrategy

    @abstractmethod
    def find(
        self,
        text: str,
        catalog: Sequence[Product],
        found: Set[str],
    ) -> Tuple[str, List[ExtractedRecommendation]]:
        raise NotImplementedError


class TaggedStrategy(BaseMatchStrategy):
    strategy = MatchStrategy.TAGGED

    def find(self, text, catalog, found):
        by_id: Dict[str, Product] = {p.id: p for p in catalog}
        recs: List[ExtractedRecommendation] = []

        for m in _TAGGED_RGX.finditer(text):
            try:
                data = json.loads(m.group(1))
            except json.JSONDecodeError as exc:
                log.debug(f"TAGGED_BAD_JSON | error={exc}")
                continue
            if not isinstance(data, dict):
                continue
            pid = str(data.get("id", ""))
            product = by_id.get(pid)
            if product is None:
                log.debug(f"TAGGED_UNKNOWN_ID | id={pid}")
                continue
            if pid in found:
                continue
            found.add(pid)
            reason = str(data.get("reason") or "").strip() or DEFAULT_TAGGED_REASON
            recs.append(ExtractedRecommendation(
                id=product.id, name=product.name, price=product.price,
                reason=reason, strategy=self.strategy,
            ))

        # markers leave the reply even when their JSON was unusable
        cleaned = _TAGGED_RGX.sub("", text)
        return _tidy(cleaned), recs


class PriceAnchoredStrategy(BaseMatchStrategy):
    strategy = MatchStrategy.PRICE_ANCHORED

    def _candidate_names(self, window: str) -> List[str]:
        names = []
        for pattern in _PRICE_NAME_PATTERNS:
            m = pattern.search(window)
            if m:
                name = m.group(1).strip()
                if len(name) >= MIN_NAME_SPAN:
                    names.append(name)
        return names

    @staticmethod
    def _lookup(name: str, price: float, catalog: Sequence[Product]) -> Optional[Product]:
        low = name.lower()
        for p in catalog:
            pname = p.name.lower()
            if pname and (low in pname or pname in low) and _same_price(p.price, price):
                return p
        return None

    def find(self, text, catalog, found):
        recs: List[ExtractedRecommendation] = []

        for pm in _PRICE_RGX.finditer(text):
            try:
                price = float(pm.group(1).replace(",", ""))
            except ValueError:
                continue
            start = pm.start()
            window = text[max(0, start - PRICE_LOOKBEHIND_CHARS):start]

            for name in self._candidate_names(window):
                product = self._lookup(name, price, catalog)
                if product is None:
                    continue
                if product.id not in found:
                    found.add(product.id)
                    tail = _REASON_RGX.search(text[start:start + REASON_LOOKAHEAD_CHARS])
                    reason = tail.group(1).strip() if tail else f"Matches your criteria (${_fmt_price(price)})"
                    recs.append(ExtractedRecommendation(
                        id=product.id, name=product.name, price=product.price,
                        reason=reason, strategy=self.strategy,
                    ))
                break

        return text, recs


class NameOnlyStrategy(BaseMatchStrategy):
    strategy = MatchStrategy.NAME_ONLY

    @staticmethod
    def _mention(name: str, text: str) -> Optional[re.Match]:
        escaped = re.escape(name)
        for pattern in (
            rf"\*\*{escaped}\*\*",
            rf"(?<!\w){escaped}:",
            rf"(?<!\w){escaped}(?!\w)",
        ):
            m = re.search(pattern, text, re.I)
            if m:
                return m
        return None

    def find(self, text, catalog, found):
        recs: List[ExtractedRecommendation] = []
        lower = text.lower()

        for product in catalog:
            if product.id in found or not product.name.strip():
                continue
            words = product.name.lower().split()
            if not all(w in lower for w in words):
                continue
            m = self._mention(product.name, text)
            if m is None:
                continue

            found.add(product.id)
            after = text[m.end():m.end() + NAME_REASON_LOOKAHEAD_CHARS]
            tail = _REASON_RGX.search(after)
            reason = tail.group(1).strip() if tail else f"Mentioned: {product.name}"
            recs.append(ExtractedRecommendation(
                id=product.id, name=product.name, price=product.price,
                reason=reason, strategy=self.strategy,
            ))

        return text, recs


# ─────────────────────────────────────────────────────────────
# Extractor
# ─────────────────────────────────────────────────────────────

def default_strategies() -> List[BaseMatchStrategy]:
    return [TaggedStrategy(), PriceAnchoredStrategy(), NameOnlyStrategy()]


class RecommendationExtractor:
    def __init__(self, strategies: Optional[List[BaseMatchStrategy]] = None) -> None:
        self.strategies = strategies if strategies is not None else default_strategies()

    def extract(self, reply_text: str, catalog: Sequence[Product]) -> ExtractionResult:
        text = reply_text or ""
        catalog = list(catalog or [])
        found: Set[str] = set()
        recommendations: List[ExtractedRecommendation] = []

        for strategy in self.strategies:
            text, recs = strategy.find(text, catalog, found)
            recommendations.extend(recs)

        return ExtractionResult(cleaned_text=text, recommendations=recommendations)


def extract_recommendations(reply_text: str, catalog: Sequence[Product]) -> ExtractionResult:
    return RecommendationExtractor().extract(reply_text, catalog)
