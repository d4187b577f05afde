# closelook_assistant/enums.py
from enum import Enum


class IntentKind(str, Enum):
    SEARCH = "search"
    RECOMMENDATION = "recommendation"
    QUESTION = "question"
    COMPARISON = "comparison"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MatchStrategy(str, Enum):
    """How a recommendation was recovered from the assistant reply"""
    TAGGED = "tagged"                    # PRODUCT_RECOMMENDATION: {...}
    PRICE_ANCHORED = "price_anchored"    # "Trail Boots ($80)"
    NAME_ONLY = "name_only"              # "**Trail Boots**"


class EscalationState(str, Enum):
    NONE = "none"
    OFFERED = "offered"
    CONFIRMED = "confirmed"
    CREATED = "created"


class RetrievalStrategy(str, Enum):
    PASSTHROUGH = "passthrough"            # small catalog, returned unchanged
    FILTERED = "filtered"                  # attribute filter already within budget
    SCORED = "scored"                      # filter + score + truncate
    KEYWORD_FALLBACK = "keyword_fallback"  # keyword pass over full catalog
    CATALOG_HEAD = "catalog_head"          # first N products, unscored


class BackendFunction(str, Enum):
    # Context lookups appended to the prompt as opaque text
    FETCH_ORDER_STATUS = "fetch_order_status"
    FETCH_STORE_POLICIES = "fetch_store_policies"
