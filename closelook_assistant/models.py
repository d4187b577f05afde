"""
Dataclass models shared across the retrieval → extraction → escalation pipeline.
Catalog products are read-only here; everything else is request-local.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .enums import (EscalationState, IntentKind, MatchStrategy,
                    RetrievalStrategy, Role)


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(str(value).replace("$", "").replace(",", "").strip())
    except (TypeError, ValueError):
        return default


def _str_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v is not None and str(v).strip()]


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: str = ""
    type: str = ""
    color: str = ""
    price: float = 0.0
    images: List[str] = field(default_factory=list, compare=False, hash=False)
    description: str = ""
    sizes: Optional[List[str]] = field(default=None, compare=False, hash=False)
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        sizes = data.get("sizes")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or data.get("title") or ""),
            category=str(data.get("category") or ""),
            type=str(data.get("type") or data.get("productType") or ""),
            color=str(data.get("color") or ""),
            price=_to_float(data.get("price")),
            images=_str_list(data.get("images")),
            description=str(data.get("description") or ""),
            sizes=_str_list(sizes) if sizes is not None else None,
            url=data.get("url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["sizes"] is None:
            data.pop("sizes")
        if data["url"] is None:
            data.pop("url")
        return data

    def search_text(self) -> str:
        return f"{self.name} {self.description} {self.category} {self.type} {self.color}".lower()


@dataclass
class PriceRange:
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass
class QueryIntent:
    intent_kind: IntentKind = IntentKind.QUESTION
    category: Optional[str] = None
    type: Optional[str] = None
    price_range: Optional[PriceRange] = None
    colors: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    scenario: Optional[str] = None
    is_price_query: bool = False
    is_category_query: bool = False
    is_size_query: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryIntent":
        """Build from the LLM's JSON; unknown or null values are dropped."""
        raw_kind = str(data.get("intent") or data.get("intentKind") or "").lower()
        try:
            kind = IntentKind(raw_kind)
        except ValueError:
            kind = IntentKind.QUESTION

        price_range = None
        raw_range = data.get("priceRange") or data.get("price_range")
        if isinstance(raw_range, dict):
            lo = raw_range.get("min")
            hi = raw_range.get("max")
            lo = _to_float(lo, None) if lo is not None else None  # type: ignore[arg-type]
            hi = _to_float(hi, None) if hi is not None else None  # type: ignore[arg-type]
            if lo is not None or hi is not None:
                price_range = PriceRange(min=lo, max=hi)

        def _opt(key: str) -> Optional[str]:
            val = data.get(key)
            if val is None or str(val).strip().lower() in {"", "null", "none"}:
                return None
            return str(val).strip()

        return cls(
            intent_kind=kind,
            category=_opt("category"),
            type=_opt("type"),
            price_range=price_range,
            colors=_str_list(data.get("colors")),
            keywords=_str_list(data.get("keywords")),
            scenario=_opt("scenario"),
            is_price_query=bool(data.get("isPriceQuery", data.get("is_price_query", False))),
            is_category_query=bool(data.get("isCategoryQuery", data.get("is_category_query", False))),
            is_size_query=bool(data.get("isSizeQuery", data.get("is_size_query", False))),
        )


@dataclass
class FilterCriteria:
    category: Optional[str] = None
    type: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    color: Optional[str] = None
    size: Optional[str] = None
    sizes: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    def has_primary_signal(self) -> bool:
        return bool(self.category or self.type) or self.min_price is not None or self.max_price is not None

    def is_empty(self) -> bool:
        return not (
            self.has_primary_signal() or self.color or self.size or self.sizes or self.keywords
        )


@dataclass
class ScoredCandidate:
    product: Product
    score: float


@dataclass
class ExtractedRecommendation:
    id: str
    name: str
    price: float
    reason: str
    strategy: Optional[MatchStrategy] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "price": self.price, "reason": self.reason}


@dataclass
class ExtractionResult:
    cleaned_text: str
    recommendations: List[ExtractedRecommendation] = field(default_factory=list)


@dataclass
class RetrievalResult:
    products: List[Product]
    intent: Optional[QueryIntent]
    strategy: RetrievalStrategy
    max_products: int
    scored: List[ScoredCandidate] = field(default_factory=list)


@dataclass
class ConversationTurn:
    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationTurn":
        role = Role.USER if str(data.get("role", "user")).lower() == "user" else Role.ASSISTANT
        return cls(role=role, content=str(data.get("content") or ""))

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class CustomerInfo:
    name: Optional[str] = None
    email: Optional[str] = None
    customer_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["CustomerInfo"]:
        if not data:
            return None
        return cls(
            name=data.get("name") or data.get("customerName"),
            email=data.get("email") or data.get("customerEmail"),
            customer_id=data.get("id") or data.get("customerId"),
        )


@dataclass
class TicketRequest:
    issue: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_id: Optional[str] = None
    conversation_excerpt: List[ConversationTurn] = field(default_factory=list)
    order_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issue": self.issue,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerId": self.customer_id,
            "orderNumber": self.order_number,
            "conversationHistory": [t.to_dict() for t in self.conversation_excerpt],
        }


@dataclass
class TicketResult:
    success: bool
    ticket_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class EscalationSnapshot:
    state: EscalationState
    help_requested: bool = False
    confirming_message: Optional[str] = None


@dataclass
class EscalationOutcome:
    state: EscalationState
    message: str
    ticket_created: bool = False
    ticket: Optional[TicketRequest] = None
    ticket_id: Optional[str] = None


@dataclass
class ChatResponse:
    message: str
    recommendations: List[ExtractedRecommendation] = field(default_factory=list)
    ticket_created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "ticketCreated": self.ticket_created,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)
