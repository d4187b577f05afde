# closelook_assistant/catalog_provider.py
"""
Read-only catalog access.

The pipeline only ever reads a snapshot of the store's products per request.
`StaticCatalogProvider` serves an in-memory list or a JSON file (local dev,
tests); `HttpCatalogProvider` pulls a storefront JSON feed with `requests`
in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import requests

from .models import Product

log = logging.getLogger(__name__)


def _products_from_payload(payload: Any) -> List[Product]:
    """Accepts a bare list or {"products": [...]}; entries without an id are skipped."""
    if isinstance(payload, dict):
        payload = payload.get("products", [])
    if not isinstance(payload, list):
        return []
    products = []
    for raw in payload:
        if isinstance(raw, dict) and raw.get("id") not in (None, ""):
            products.append(Product.from_dict(raw))
    return products


class CatalogProvider(ABC):
    @abstractmethod
    async def get_all_products(self) -> List[Product]:
        raise NotImplementedError

    async def get_product(self, product_id: str) -> Optional[Product]:
        for product in await self.get_all_products():
            if product.id == product_id:
                return product
        return None


class StaticCatalogProvider(CatalogProvider):
    def __init__(self, products: Optional[Iterable[Product]] = None) -> None:
        self._products: List[Product] = list(products or [])

    @classmethod
    def from_json_file(cls, path: str) -> "StaticCatalogProvider":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        products = _products_from_payload(data)
        log.info(f"CATALOG_FILE_LOADED | path={path} | products={len(products)}")
        return cls(products)

    async def get_all_products(self) -> List[Product]:
        return list(self._products)


class HttpCatalogProvider(CatalogProvider):
    def __init__(self, url: str, timeout: float = 10, headers: Optional[Dict[str, str]] = None) -> None:
        self.url = url
        self.timeout = timeout
        self.headers = headers or {"Accept": "application/json"}

    def _fetch(self) -> List[Product]:
        resp = requests.get(self.url, headers=self.headers, timeout=self.timeout)
        resp.raise_for_status()
        return _products_from_payload(resp.json())

    async def get_all_products(self) -> List[Product]:
        loop = asyncio.get_running_loop()
        products = await loop.run_in_executor(None, self._fetch)
        log.debug(f"CATALOG_HTTP_LOADED | url={self.url} | products={len(products)}")
        return products
