# closelook_assistant/data_fetchers/__init__.py
"""
Context lookup registry.

Each lookup lives in its own module, registers itself against a
BackendFunction and returns plain text that is appended to the prompt
context as-is. Handlers share one signature:

    async def handler(config, query: QueryType, customer: CustomerInfo | None) -> str
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict

from ..enums import BackendFunction

log = logging.getLogger(__name__)

_REGISTRY: Dict[BackendFunction, Callable[..., Awaitable[Any]]] = {}


def register_fetcher(
    function: BackendFunction,
    handler: Callable[..., Awaitable[Any]],
) -> None:
    """Register a fetcher function with its handler"""
    _REGISTRY[function] = handler


def get_fetcher(function: BackendFunction) -> Callable[..., Awaitable[Any]]:
    """Get the handler for a specific function"""
    if function not in _REGISTRY:
        raise ValueError(f"No fetcher registered for {function}")
    return _REGISTRY[function]


# Importing the modules registers their handlers
from . import order_status, store_policies  # noqa: E402, F401


def verify_registry() -> None:
    """Ensure all backend functions have handlers"""
    missing = [func for func in BackendFunction if func not in _REGISTRY]
    if missing:
        log.warning(f"FETCHERS_MISSING | functions={[m.value for m in missing]}")
    else:
        log.debug(f"FETCHERS_REGISTERED | count={len(BackendFunction)}")


verify_registry()

__all__ = ["register_fetcher", "get_fetcher"]
