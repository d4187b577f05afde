# closelook_assistant/data_fetchers/store_policies.py
"""
`fetch_store_policies` – shipping / refund / privacy / terms text for the prompt.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from ..enums import BackendFunction
from ..models import CustomerInfo
from ..query_detector import QueryType
from . import register_fetcher
from .commerce_api import commerce_get

MAX_POLICY_CHARS = 1000


def format_policies(policies: List[Dict[str, Any]]) -> str:
    blocks = []
    for policy in policies:
        if not isinstance(policy, dict):
            continue
        title = policy.get("title") or policy.get("type") or "Policy"
        body = str(policy.get("body") or "").strip()
        if body:
            blocks.append(f"### {title}\n{body[:MAX_POLICY_CHARS]}")
    if not blocks:
        return ""
    return "STORE POLICIES:\n" + "\n\n".join(blocks)


async def fetch_store_policies(config: Any, query: QueryType, customer: Optional[CustomerInfo]) -> str:
    loop = asyncio.get_running_loop()
    data = await loop.run_in_executor(None, lambda: commerce_get(config, "policies"))
    policies = data.get("policies")
    return format_policies(policies if isinstance(policies, list) else [])


register_fetcher(BackendFunction.FETCH_STORE_POLICIES, fetch_store_policies)
