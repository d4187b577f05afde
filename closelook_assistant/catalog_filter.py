# closelook_assistant/catalog_filter.py
"""
Catalog Filter
──────────────
Deterministic attribute filtering of a product collection, plus a best-effort
regex parser that turns a free-text query into FilterCriteria.

• filter_products        – AND across criteria fields, OR within keywords/sizes
• parse_filter_query     – price phrases, category/type tables, colors, sizes
• smart_filter_products  – parse, fall back to generic keywords, then filter
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from .models import FilterCriteria, Product

log = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────
# Parser tables
# ─────────────────────────────────────────────────────────────

_MAX_PRICE_RGX = re.compile(r"(?:less than|under|below|maximum|max|up to|<\s*)\s*\$?\s*(\d+(?:\.\d+)?)")
_MIN_PRICE_RGX = re.compile(r"(?:more than|over|above|minimum|min|>\s*)\s*\$?\s*(\d+(?:\.\d+)?)")
_BETWEEN_PRICE_RGX = re.compile(
    r"(?:between|from)\s*\$?\s*(\d+(?:\.\d+)?)\s*(?:and|to|-)\s*\$?\s*(\d+(?:\.\d+)?)"
)

# query word -> category
CATEGORY_KEYWORDS: Dict[str, str] = {
    "accessories": "Accessories",
    "clothing": "Clothing",
    "footwear": "Footwear",
    "shoes": "Footwear",
}

# words that name a type directly in the category pass
DIRECT_TYPE_KEYWORDS = ("sunglasses", "watch", "handbag")

# type -> query variations; "shoes" narrows to the Footwear category instead
TYPE_MAPPINGS: Dict[str, List[str]] = {
    "sunglasses": ["sunglasses"],
    "watch": ["watch"],
    "handbag": ["handbag", "bag", "tote"],
    "shoes": ["shoes", "sneakers", "cleats", "boots", "footwear"],
    "jacket": ["jacket", "coat"],
    "shorts": ["shorts"],
    "jersey": ["jersey"],
}

COLOR_NAMES = (
    "black", "white", "brown", "tan", "silver", "gold", "red", "blue", "green",
    "gray", "grey", "navy", "beige", "orange", "yellow", "pink", "purple",
)

FOOTWEAR_HINTS = ("shoe", "sneaker", "cleat", "footwear", "boot")

_SIZE_LEAD = r"\b(?:size|sizes|in size|available in)\s*:?\s*"
_EXPLICIT_CLOTHING_SIZE_RGX = re.compile(_SIZE_LEAD + r"(XXXL|XXL|XL|XS|S|M|L)\b", re.I)
# bare tokens are matched case-sensitively so "I'm" or "men's" never read as sizes
_BARE_CLOTHING_SIZE_RGX = re.compile(r"\b(XXXL|XXL|XL|XS|SM|MD|LG|S|M|L)\b")
_EXPLICIT_SHOE_SIZE_RGX = re.compile(_SIZE_LEAD + r"(\d{1,2})\b", re.I)
_BARE_SHOE_SIZE_RGX = re.compile(r"\b(1[0-5]|[4-9])\b")

SHOE_SIZE_MIN = 4
SHOE_SIZE_MAX = 15

FILTER_STOP_WORDS = frozenset({
    "show", "me", "give", "can", "you", "i", "want", "need", "find", "looking",
    "for", "which", "what", "are", "is", "the", "a", "an", "less", "than",
    "under", "below", "over", "above", "between", "and", "or", "with", "in",
})

_NUMBER_TOKEN = re.compile(r"^\$?\d+(?:\.\d+)?$")
_EDGE_PUNCT = "?!.,;:\"'()[]"


def _num(raw: str) -> float:
    value = float(raw)
    return int(value) if value.is_integer() else value


# ─────────────────────────────────────────────────────────────
# Filtering
# ─────────────────────────────────────────────────────────────

def _color_matches(product_color: str, wanted: str) -> bool:
    product_color = (product_color or "").lower()
    wanted = wanted.lower()
    tokens = [c for c in re.split(r"[/\s,]+", product_color) if c]
    return any(wanted in c for c in tokens) or wanted in product_color


def _size_matches(product: Product, wanted: Iterable[str]) -> bool:
    if not product.sizes:
        return False
    available = {s.lower() for s in product.sizes}
    return any(w.lower() in available for w in wanted)


def filter_products(products: List[Product], criteria: FilterCriteria) -> List[Product]:
    """Filter products by criteria. Output preserves input order and is a subset of it."""
    filtered = list(products)

    if criteria.category:
        cat = criteria.category.lower()
        filtered = [p for p in filtered if cat in p.category.lower()]

    if criteria.type:
        typ = criteria.type.lower()
        filtered = [p for p in filtered if typ in p.type.lower()]

    if criteria.min_price is not None:
        filtered = [p for p in filtered if p.price >= criteria.min_price]

    if criteria.max_price is not None:
        filtered = [p for p in filtered if p.price <= criteria.max_price]

    if criteria.color:
        filtered = [p for p in filtered if _color_matches(p.color, criteria.color)]

    sizes = [criteria.size] if criteria.size else list(criteria.sizes)
    if sizes:
        filtered = [p for p in filtered if _size_matches(p, sizes)]

    if criteria.keywords:
        words = [k.lower() for k in criteria.keywords if k]
        filtered = [p for p in filtered if any(w in p.search_text() for w in words)]

    return filtered


# ─────────────────────────────────────────────────────────────
# Natural-language parsing
# ─────────────────────────────────────────────────────────────

def _parse_sizes(query: str, lower: str, has_price_phrase: bool) -> Optional[str]:
    m = _EXPLICIT_CLOTHING_SIZE_RGX.search(query)
    if m:
        return m.group(1).upper()

    m = _BARE_CLOTHING_SIZE_RGX.search(query)
    if m:
        return m.group(1).upper()

    m = _EXPLICIT_SHOE_SIZE_RGX.search(lower)
    if m:
        size = int(m.group(1))
        return str(size) if SHOE_SIZE_MIN <= size <= SHOE_SIZE_MAX else None

    # A bare number is only a shoe size when the query is about footwear
    if has_price_phrase or not any(h in lower for h in FOOTWEAR_HINTS):
        return None
    m = _BARE_SHOE_SIZE_RGX.search(lower)
    return str(int(m.group(1))) if m else None


def parse_filter_query(query: str) -> FilterCriteria:
    """
    Extract filter criteria from a natural-language query.
    Best-effort: anything it can't read is simply left unset.
    """
    criteria = FilterCriteria()
    lower = (query or "").lower()

    max_match = _MAX_PRICE_RGX.search(lower)
    if max_match:
        criteria.max_price = _num(max_match.group(1))

    min_match = _MIN_PRICE_RGX.search(lower)
    if min_match:
        criteria.min_price = _num(min_match.group(1))

    between = _BETWEEN_PRICE_RGX.search(lower)
    if between:
        criteria.min_price = _num(between.group(1))
        criteria.max_price = _num(between.group(2))

    for word, category in CATEGORY_KEYWORDS.items():
        if word in lower:
            criteria.category = category
    for word in DIRECT_TYPE_KEYWORDS:
        if word in lower:
            criteria.type = word.capitalize()

    if not criteria.type:
        for key, variations in TYPE_MAPPINGS.items():
            if any(v in lower for v in variations):
                if key == "shoes":
                    criteria.category = "Footwear"
                else:
                    criteria.type = key.capitalize()
                break

    for color in COLOR_NAMES:
        if re.search(rf"\b{color}\b", lower):
            criteria.color = color.capitalize()
            break

    criteria.size = _parse_sizes(query or "", lower, bool(max_match or min_match or between))
    return criteria


def extract_keywords(query: str) -> List[str]:
    """Generic keyword extraction: words > 2 chars minus stop words and bare numbers."""
    words: List[str] = []
    for raw in (query or "").lower().split():
        word = raw.strip(_EDGE_PUNCT)
        if len(word) <= 2 or word in FILTER_STOP_WORDS or _NUMBER_TOKEN.match(word):
            continue
        words.append(word)
    return words


def build_criteria(query: str) -> FilterCriteria:
    criteria = parse_filter_query(query)
    if not criteria.has_primary_signal():
        keywords = extract_keywords(query)
        if keywords:
            criteria.keywords = keywords
    return criteria


def smart_filter_products(products: List[Product], query: str) -> List[Product]:
    """Filter using parsed criteria, falling back to keyword search when parsing finds little."""
    criteria = build_criteria(query)
    if criteria.is_empty():
        log.debug(f"SMART_FILTER_NO_CRITERIA | in={len(products)}")
        return list(products)

    result = filter_products(products, criteria)
    log.debug(
        f"SMART_FILTER | in={len(products)} | out={len(result)} | category={criteria.category} | "
        f"type={criteria.type} | price=({criteria.min_price},{criteria.max_price}) | "
        f"color={criteria.color} | size={criteria.size} | keywords={criteria.keywords}"
    )
    return result
