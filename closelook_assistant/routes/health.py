# closelook_assistant/routes/health.py
"""
Readiness/liveness probe.

200 when Flask is up and the transcript store answers a ping, 500 otherwise.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify

log = logging.getLogger(__name__)
bp = Blueprint("health", __name__)


@bp.get("/health")
def health_check() -> tuple[Dict[str, Any], int]:
    ctx_mgr = current_app.extensions.get("ctx_mgr")
    if ctx_mgr is None:
        return jsonify({"status": "unhealthy", "redis": "not_initialized", "service": "closelook-assistant"}), 500
    try:
        ctx_mgr.redis.ping()
        return jsonify({"status": "healthy", "redis": "connected", "service": "closelook-assistant"}), 200
    except Exception as exc:  # noqa: BLE001
        log.warning(f"HEALTH_REDIS_PING_FAILED | error={exc}")
        return jsonify({"status": "unhealthy", "redis": "disconnected", "service": "closelook-assistant"}), 500
