# closelook_assistant/routes/reset.py
"""
/reset endpoint: clears a stored conversation so a session starts fresh.

POST body:
{
  "session_id": "abc123"
}
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

log = logging.getLogger(__name__)
bp = Blueprint("reset", __name__)


@bp.post("/reset")
def reset_session() -> tuple[Dict[str, Any], int]:
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    session_id = data.get("session_id")
    if not session_id:
        return jsonify({"error": "Missing session_id"}), 400

    ctx_mgr = current_app.extensions.get("ctx_mgr")
    if ctx_mgr is None:
        return jsonify({"error": "Session store not initialized"}), 500

    try:
        ctx_mgr.delete_session(str(session_id))
    except Exception as exc:  # noqa: BLE001
        log.exception("reset endpoint failed")
        return jsonify({"error": str(exc)}), 500

    log.info(f"SESSION_RESET | session={session_id}")
    return jsonify({"message": "Session reset successfully"}), 200
