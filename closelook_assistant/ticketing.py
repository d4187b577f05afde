# closelook_assistant/ticketing.py
"""
Support-ticket collaborator and ticket text helpers.

`TicketClient.create_ticket` is synchronous; the escalation manager runs it
in an executor and races it against its own timeout.
"""

from __future__ import annotations

import json
import logging
import random
import re
import string
import time
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from .models import ConversationTurn, CustomerInfo, TicketRequest, TicketResult
from .utils.helpers import truncate

log = logging.getLogger(__name__)

MAX_ISSUE_CHARS = 1000
MAX_NAME_CHARS = 100
MAX_EMAIL_CHARS = 255
MAX_CUSTOMER_ID_CHARS = 200
NOTE_HISTORY_TURNS = 5
NOTE_TURN_CHARS = 200

CONFIRMATION_MARKER = "Support ticket created!"
CONFIRMATION_TEMPLATE = (
    "✓ Support ticket created! Reference #{ticket_id}. Our team will contact you within 24 hours."
)
APOLOGY_MESSAGE = (
    "I'm sorry, I wasn't able to create a support ticket right now. "
    "Please try again in a moment or contact the store directly."
)

_TICKET_JSON_RGX = re.compile(r"TICKET_CREATION:\s*(\{.*?\})", re.I | re.S)
_TICKET_JSON_ISSUE_RGX = re.compile(r"TICKET_CREATION:.*?\"issue\":\s*\"([^\"]+)\"", re.I | re.S)
_TICKET_BLOCK_RGX = re.compile(r"__TICKET_CREATE__([\s\S]*?)__TICKET_END__")
_TICKET_ID_PLACEHOLDER_RGX = re.compile(r"#\[(?:TICKET_)?ID\]")
_CONFIRMATION_LINE_RGX = re.compile(r"✓?[ \t]*Support ticket created![^\n]*")


def generate_ticket_id() -> str:
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"T-{int(time.time() * 1000)}-{suffix}"


def confirmation_message(ticket_id: str) -> str:
    return CONFIRMATION_TEMPLATE.format(ticket_id=ticket_id)


# ─────────────────────────────────────────────────────────────
# Markers in assistant replies
# ─────────────────────────────────────────────────────────────

def extract_ticket_marker(text: str) -> Optional[str]:
    """Issue text from a TICKET_CREATION JSON or a __TICKET_CREATE__ block, if any."""
    if not text:
        return None

    m = _TICKET_JSON_RGX.search(text)
    if m:
        try:
            data = json.loads(m.group(1))
            issue = str(data.get("issue") or "").strip() if isinstance(data, dict) else ""
            if issue:
                return issue
        except json.JSONDecodeError:
            loose = _TICKET_JSON_ISSUE_RGX.search(text)
            if loose:
                return loose.group(1).strip()

    block = _TICKET_BLOCK_RGX.search(text)
    if block:
        issue = ""
        context = ""
        for line in block.group(1).strip().splitlines():
            line = line.strip()
            if line.lower().startswith("issue:"):
                issue = line[len("issue:"):].strip()
            elif line.lower().startswith("context:"):
                context = line[len("context:"):].strip()
        if issue:
            return f"{issue}\n\nContext: {context}" if context else issue

    return None


def strip_confirmation(text: str) -> str:
    """Drop any model-written "Support ticket created!" line."""
    cleaned = _CONFIRMATION_LINE_RGX.sub("", text or "")
    return re.sub(r"\n{3,}", "\n\n", cleaned).strip()


def strip_ticket_markers(text: str, ticket_id: Optional[str] = None) -> str:
    cleaned = _TICKET_BLOCK_RGX.sub("", text or "")
    cleaned = _TICKET_JSON_RGX.sub("", cleaned)
    if ticket_id:
        cleaned = _TICKET_ID_PLACEHOLDER_RGX.sub(f"#{ticket_id}", cleaned)
    return re.sub(r"\n{3,}", "\n\n", cleaned).strip()


# ─────────────────────────────────────────────────────────────
# Request / note formatting
# ─────────────────────────────────────────────────────────────

def build_ticket_request(
    issue: str,
    customer: Optional[CustomerInfo] = None,
    history: Optional[List[ConversationTurn]] = None,
    order_number: Optional[str] = None,
) -> TicketRequest:
    def _clip(value: Optional[str], limit: int) -> Optional[str]:
        return truncate(value.strip(), limit) if value and value.strip() else None

    return TicketRequest(
        issue=truncate(issue.strip(), MAX_ISSUE_CHARS),
        customer_name=_clip(customer.name if customer else None, MAX_NAME_CHARS),
        customer_email=_clip(customer.email if customer else None, MAX_EMAIL_CHARS),
        customer_id=_clip(customer.customer_id if customer else None, MAX_CUSTOMER_ID_CHARS),
        conversation_excerpt=list(history or [])[-NOTE_HISTORY_TURNS:],
        order_number=order_number,
    )


def format_ticket_note(ticket: TicketRequest) -> str:
    note = "🚨 SUPPORT TICKET - CHATBOT ESCALATION 🚨\n\n"
    if ticket.customer_name:
        note += f"Customer: {ticket.customer_name}\n"
    if ticket.customer_email:
        note += f"Email: {ticket.customer_email}\n"
    if ticket.order_number:
        note += f"Order: {ticket.order_number}\n"

    note += f"\nIssue Description:\n{ticket.issue}\n"

    if ticket.conversation_excerpt:
        note += "\nConversation History:\n"
        for idx, turn in enumerate(ticket.conversation_excerpt[-NOTE_HISTORY_TURNS:], start=1):
            who = "Customer" if turn.role.value == "user" else "Chatbot"
            note += f"{idx}. {who}: {turn.content[:NOTE_TURN_CHARS]}\n"

    note += (
        "\nThis ticket was created because the chatbot was unable to resolve the customer's issue. "
        "Please review and contact the customer directly."
    )
    return note


# ─────────────────────────────────────────────────────────────
# Clients
# ─────────────────────────────────────────────────────────────

class TicketClient(ABC):
    @abstractmethod
    def create_ticket(self, ticket: TicketRequest) -> TicketResult:
        raise NotImplementedError


class HttpTicketClient(TicketClient):
    """Posts the ticket and its formatted note to the store's ticket endpoint."""

    def __init__(self, url: str, timeout: float = 10, token: str = "") -> None:
        self.url = url
        self.timeout = timeout
        self.token = token

    def create_ticket(self, ticket: TicketRequest) -> TicketResult:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        payload = {"ticketData": ticket.to_dict(), "note": format_ticket_note(ticket)}

        try:
            resp = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            log.error(f"TICKET_HTTP_ERROR | url={self.url} | error={exc}")
            return TicketResult(success=False, error=str(exc))

        if resp.status_code >= 400:
            log.error(f"TICKET_HTTP_STATUS | url={self.url} | status={resp.status_code}")
            return TicketResult(success=False, error=f"HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if isinstance(body, dict) and body.get("success") is False:
            return TicketResult(success=False, error=str(body.get("error") or "ticket rejected"))

        ticket_id = None
        if isinstance(body, dict):
            ticket_id = body.get("ticketId") or body.get("noteId") or body.get("id")
        return TicketResult(success=True, ticket_id=str(ticket_id) if ticket_id else generate_ticket_id())


class LoggingTicketClient(TicketClient):
    """Development client: logs the note and reports success."""

    def create_ticket(self, ticket: TicketRequest) -> TicketResult:
        ticket_id = generate_ticket_id()
        log.info(f"TICKET_LOGGED | id={ticket_id} | customer={ticket.customer_email or ticket.customer_name} | issue_chars={len(ticket.issue)}")
        log.debug(format_ticket_note(ticket))
        return TicketResult(success=True, ticket_id=ticket_id)
