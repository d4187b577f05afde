# closelook_assistant/query_detector.py
"""
Cheap keyword detection deciding which context lookups (orders, store
policies, account details) a chat message needs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

ORDER_KEYWORDS = [
    "order", "orders", "ordered", "purchase", "purchased", "delivery",
    "delivered", "track", "tracking", "shipment", "shipped", "fulfill",
    "status", "when will", "where is", "my order", "order number", "order #",
]

POLICY_KEYWORDS = [
    "policy", "policies", "shipping", "return", "refund", "exchange",
    "warranty", "terms", "conditions", "privacy", "faq", "frequently asked",
    "how to return", "return policy", "refund policy", "shipping policy",
    "delivery policy",
]

ACCOUNT_KEYWORDS = [
    "account", "profile", "my info", "my information", "customer",
    "previous order", "past order", "order history", "purchase history",
    "what did i buy", "my purchases", "my size", "size i ordered",
]

_ORDER_NUMBER_PATTERNS = [
    re.compile(r"#(\d+)"),
    re.compile(r"order\s*#?(\d+)", re.I),
    re.compile(r"order\s+(\d+)", re.I),
    re.compile(r"number\s*#?(\d+)", re.I),
]
_EMAIL_RGX = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")


@dataclass
class QueryType:
    is_order: bool = False
    is_policy: bool = False
    is_account: bool = False
    order_number: Optional[str] = None
    email: Optional[str] = None


def _contains_any(message: str, keywords: List[str]) -> bool:
    low = (message or "").lower()
    return any(k in low for k in keywords)


def is_order_query(message: str) -> bool:
    return _contains_any(message, ORDER_KEYWORDS)


def is_policy_query(message: str) -> bool:
    return _contains_any(message, POLICY_KEYWORDS)


def is_account_query(message: str) -> bool:
    return _contains_any(message, ACCOUNT_KEYWORDS)


def extract_order_number(message: str) -> Optional[str]:
    for pattern in _ORDER_NUMBER_PATTERNS:
        m = pattern.search(message or "")
        if m:
            return m.group(1)
    return None


def extract_email(message: str) -> Optional[str]:
    m = _EMAIL_RGX.search(message or "")
    return m.group(0) if m else None


def detect_query_type(message: str) -> QueryType:
    return QueryType(
        is_order=is_order_query(message),
        is_policy=is_policy_query(message),
        is_account=is_account_query(message),
        order_number=extract_order_number(message),
        email=extract_email(message),
    )
