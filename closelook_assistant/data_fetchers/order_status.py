# closelook_assistant/data_fetchers/order_status.py
"""
`fetch_order_status` – look up an order by number, else the customer's recent
orders by email, and render them as prompt context.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from ..enums import BackendFunction
from ..models import CustomerInfo
from ..query_detector import QueryType
from . import register_fetcher
from .commerce_api import commerce_get

MAX_ORDERS = 10


def _format_order(order: Dict[str, Any]) -> str:
    name = order.get("name") or order.get("orderNumber") or order.get("id") or "?"
    if not str(name).startswith("#"):
        name = f"#{name}"
    parts = [f"Order {name}"]
    for label, key in (
        ("placed", "createdAt"),
        ("payment", "financialStatus"),
        ("fulfillment", "fulfillmentStatus"),
        ("total", "total"),
        ("tracking", "trackingUrl"),
    ):
        value = order.get(key)
        if value:
            parts.append(f"{label}: {value}")
    items = order.get("lineItems") or order.get("items") or []
    titles = [str(i.get("title") or i.get("name")) for i in items if isinstance(i, dict)]
    if titles:
        parts.append("items: " + ", ".join(titles))
    return "- " + " | ".join(parts)


def format_orders(orders: List[Dict[str, Any]]) -> str:
    if not orders:
        return ""
    lines = ["ORDER INFORMATION:"]
    lines.extend(_format_order(o) for o in orders[:MAX_ORDERS] if isinstance(o, dict))
    return "\n".join(lines)


def _lookup_orders(config: Any, order_number: Optional[str], email: Optional[str]) -> List[Dict[str, Any]]:
    if order_number:
        data = commerce_get(config, "orders", {"orderName": order_number})
        order = data.get("order")
        if isinstance(order, dict):
            return [order]
    if email:
        data = commerce_get(config, "orders", {"email": email})
        orders = data.get("orders")
        if isinstance(orders, list):
            return orders
    return []


async def fetch_order_status(config: Any, query: QueryType, customer: Optional[CustomerInfo]) -> str:
    email = query.email or (customer.email if customer else None)
    if not (query.order_number or email):
        return ""
    loop = asyncio.get_running_loop()
    orders = await loop.run_in_executor(None, lambda: _lookup_orders(config, query.order_number, email))
    return format_orders(orders)


register_fetcher(BackendFunction.FETCH_ORDER_STATUS, fetch_order_status)
