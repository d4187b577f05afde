# closelook_assistant/scoring_config.py
"""
Relevance Scoring Configuration
───────────────────────────────
Additive weights used when ranking catalog candidates against a query intent,
the per-intent context budgets, and the scenario heuristics.

Literal name matches carry the largest weight: a shopper who names a product
wants that product, so it outranks anything that merely shares a category.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Optional

from .enums import IntentKind

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringWeights:
    category: float = 10
    type: float = 10
    color: float = 5
    keyword: float = 3
    under_max: float = 5
    over_min: float = 5
    within_range: float = 3
    scenario: float = 5
    name_word: float = 8

    @classmethod
    def from_overrides(cls, overrides: Optional[Dict[str, Any]] = None) -> "ScoringWeights":
        """Defaults with any known numeric keys replaced; unknown keys are ignored."""
        weights = cls()
        if not overrides:
            return weights
        known = {f.name for f in fields(cls)}
        changes: Dict[str, float] = {}
        for key, value in overrides.items():
            if key not in known:
                log.warning(f"SCORING_WEIGHT_UNKNOWN | key={key}")
                continue
            try:
                changes[key] = float(value)
            except (TypeError, ValueError):
                log.warning(f"SCORING_WEIGHT_INVALID | key={key} | value={value}")
        return replace(weights, **changes)


DEFAULT_WEIGHTS = ScoringWeights()

# Context budget per intent: search wants precision, recommendation wants variety,
# question/comparison want minimal context.
INTENT_PRODUCT_LIMITS: Dict[IntentKind, int] = {
    IntentKind.SEARCH: 10,
    IntentKind.RECOMMENDATION: 20,
    IntentKind.QUESTION: 5,
    IntentKind.COMPARISON: 4,
}
DEFAULT_PRODUCT_LIMIT = 15

# scenario word -> (category substring, type substring); either one is enough
SCENARIO_RULES: Dict[str, Dict[str, str]] = {
    "formal": {"category": "clothing", "type": "suit"},
    "casual": {"category": "clothing", "type": "t-shirt"},
    "winter": {"category": "clothing", "type": "jacket"},
}

# Words ignored when matching query words against product names
NAME_MATCH_STOP_WORDS: List[str] = ["show", "me", "find", "give", "can", "you", "i", "want", "need"]
NAME_MATCH_MIN_LENGTH = 4
