# closelook_assistant/data_fetchers/commerce_api.py
"""
Minimal read-only client for the store's commerce API (orders, policies).
Unconfigured or failing calls yield an empty dict; lookups are optional context.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

log = logging.getLogger(__name__)


def commerce_get(config: Any, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    base = getattr(config, "COMMERCE_API_BASE", "") or ""
    if not base:
        return {}

    headers = {"Accept": "application/json"}
    token = getattr(config, "COMMERCE_API_TOKEN", "") or ""
    if token:
        headers["Authorization"] = f"Bearer {token}"

    url = f"{base}/{path.lstrip('/')}"
    try:
        resp = requests.get(url, params=params or {}, headers=headers,
                            timeout=getattr(config, "HTTP_TIMEOUT_SECONDS", 10))
        resp.raise_for_status()
        data = resp.json()
    except requests.exceptions.Timeout:
        log.warning(f"COMMERCE_API_TIMEOUT | path={path}")
        return {}
    except requests.exceptions.RequestException as exc:
        log.warning(f"COMMERCE_API_ERROR | path={path} | error={exc}")
        return {}
    except ValueError:
        log.warning(f"COMMERCE_API_BAD_JSON | path={path}")
        return {}

    return data if isinstance(data, dict) else {}
