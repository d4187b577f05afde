# closelook_assistant/routes/chat.py
"""
Chat endpoint
=============

POST /rs/chat
{
  "message": "...",                      (required)
  "session_id": "abc123",
  "conversationHistory": [{"role": "user", "content": "..."}, ...],
  "currentProduct": {...},
  "customer": {"name": "...", "email": "...", "id": "..."},
  "issue": "..."
}

When `conversationHistory` is absent the stored transcript for
`session_id` is used instead. Every completed turn is appended to the store.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from flask import Blueprint, Response, current_app, jsonify, request

from ..enums import Role
from ..models import ConversationTurn, CustomerInfo, Product

log = logging.getLogger(__name__)
bp = Blueprint("chat", __name__)


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────
def _parse_history(raw: Any) -> Optional[List[ConversationTurn]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        return []
    return [ConversationTurn.from_dict(t) for t in raw if isinstance(t, dict)]


def _parse_product(raw: Any) -> Optional[Product]:
    if isinstance(raw, dict) and raw.get("id") not in (None, ""):
        return Product.from_dict(raw)
    return None


def _stored_history(session_id: str) -> List[ConversationTurn]:
    ctx_mgr = current_app.extensions.get("ctx_mgr")
    if ctx_mgr is None:
        return []
    try:
        return ctx_mgr.get_history(session_id)
    except Exception as exc:  # noqa: BLE001
        log.warning(f"CHAT_HISTORY_LOAD_FAILED | session={session_id} | error={exc}")
        return []


def _save_turns(session_id: str, message: str, reply: str) -> None:
    ctx_mgr = current_app.extensions.get("ctx_mgr")
    if ctx_mgr is None:
        return
    try:
        ctx_mgr.append_turns(session_id, [
            ConversationTurn(Role.USER, message),
            ConversationTurn(Role.ASSISTANT, reply),
        ])
    except Exception as exc:  # noqa: BLE001
        log.warning(f"CHAT_HISTORY_SAVE_FAILED | session={session_id} | error={exc}")


# ─────────────────────────────────────────────────────────────
# Main chat endpoint
# ─────────────────────────────────────────────────────────────
@bp.post("/chat")
async def chat() -> Response:
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON format"}), 400

    message = str(data.get("message") or "").strip()
    if not message:
        log.warning("CHAT_EMPTY_MESSAGE | no message in request")
        return jsonify({"error": "Missing required field: message"}), 400

    core = current_app.extensions.get("assistant_core")
    if core is None:
        log.error("CHAT_CORE_MISSING | assistant core not initialized")
        return jsonify({"error": "Assistant not initialized"}), 500

    session_id = str(data.get("session_id") or "anonymous")
    history = _parse_history(data.get("conversationHistory"))
    if history is None:
        history = _stored_history(session_id)

    log.info(f"CHAT_REQUEST | session={session_id} | history_turns={len(history)} | message='{message[:50]}'")

    response = await core.process_message(
        message,
        history,
        current_product=_parse_product(data.get("currentProduct")),
        customer=CustomerInfo.from_dict(data.get("customer")),
        issue=data.get("issue") or None,
        session_id=session_id,
    )

    _save_turns(session_id, message, response.message)
    payload = response.to_dict()
    log.info(
        f"CHAT_RESPONSE | session={session_id} | recommendations={len(payload['recommendations'])} "
        f"| ticket_created={payload['ticketCreated']}"
    )
    return jsonify(payload), 200
