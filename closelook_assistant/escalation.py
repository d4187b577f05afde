# closelook_assistant/escalation.py
"""
Ticket Escalation State Machine
───────────────────────────────
NONE → OFFERED → CONFIRMED → CREATED

There is no stored state object. Each turn the state is re-derived from the
last assistant message plus the current user message, so a restarted process
resumes exactly where the transcript left off.

When several unrelated issues are raised in one conversation only the most
recent assistant turn is considered; nothing tries to tell the issues apart.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional

from .config import BaseConfig, get_config
from .enums import EscalationState, Role
from .models import (ConversationTurn, CustomerInfo, EscalationOutcome,
                     EscalationSnapshot, TicketResult)
from .ticketing import (APOLOGY_MESSAGE, CONFIRMATION_MARKER, MAX_ISSUE_CHARS,
                        TicketClient, build_ticket_request,
                        confirmation_message, extract_ticket_marker,
                        strip_confirmation, strip_ticket_markers)
from .utils.smart_logger import get_smart_logger

log = logging.getLogger(__name__)
smart_log = get_smart_logger("escalation")

OFFER_PHRASES = (
    "would you like me to create a ticket",
    "would you like me to do that",
)
OFFER_MESSAGE = (
    "Would you like me to create a ticket so our support team can follow up with you?"
)

HELP_KEYWORDS = (
    "talk to someone", "speak to support", "speak with", "talk to",
    "create a ticket", "create ticket", "open a ticket", "file a complaint",
    "complaint", "issue with", "problem with", "not working", "need help",
    "help me", "contact support", "reach out", "human", "person", "agent",
    "representative",
)
_HELP_RGX = re.compile(r"\b(?:" + "|".join(re.escape(k) for k in HELP_KEYWORDS) + r")\b", re.I)

_CONFIRM_PATTERNS = [
    re.compile(r"\b(?:yes|yeah|sure|okay|ok|create|make)\b.*\b(?:ticket|support|help|issue)", re.I | re.S),
    re.compile(r"\b(?:create|make)\b.*\b(?:ticket|support)", re.I | re.S),
    re.compile(r"\b(?:i want|i need)\b.*\b(?:ticket|support|help)", re.I | re.S),
]
_AFFIRMATIVE_RGX = re.compile(r"^\s*(?:yes|yeah|sure|ok|okay|yep|definitely)\b", re.I)
_DECLINE_RGX = re.compile(r"^\s*(?:no|nope|nah|not now|not really|don't|dont|never mind|nevermind|cancel)\b", re.I)
_ISSUE_AFTER_COLON_RGX = re.compile(
    r"\b(?:yes|yeah|sure|okay|ok|create|make|ticket|support)\b.*?:\s*(.+)", re.I | re.S
)

MIN_ISSUE_CHARS = 10


# ─────────────────────────────────────────────────────────────
# Transcript classification
# ─────────────────────────────────────────────────────────────

def has_offer(text: str) -> bool:
    low = (text or "").lower()
    return any(p in low for p in OFFER_PHRASES)


def is_help_request(text: str) -> bool:
    return bool(_HELP_RGX.search(text or ""))


def is_decline(text: str) -> bool:
    return bool(_DECLINE_RGX.search(text or ""))


def is_confirmation(text: str) -> bool:
    text = text or ""
    if is_decline(text):
        return False
    if any(p.search(text) for p in _CONFIRM_PATTERNS):
        return True
    return bool(_AFFIRMATIVE_RGX.search(text))


def _last_assistant(history: List[ConversationTurn]) -> Optional[str]:
    for turn in reversed(history):
        if turn.role == Role.ASSISTANT:
            return turn.content
    return None


def derive_state(history: List[ConversationTurn], message: str) -> EscalationSnapshot:
    last = _last_assistant(history) or ""
    help_requested = is_help_request(message)

    if CONFIRMATION_MARKER in last:
        # a new issue after a created ticket starts over
        if help_requested:
            return EscalationSnapshot(EscalationState.NONE, help_requested=True)
        return EscalationSnapshot(EscalationState.CREATED)

    if has_offer(last):
        if is_confirmation(message):
            return EscalationSnapshot(EscalationState.CONFIRMED, confirming_message=message)
        if is_decline(message):
            return EscalationSnapshot(EscalationState.NONE)
        return EscalationSnapshot(EscalationState.OFFERED, help_requested=help_requested)

    return EscalationSnapshot(EscalationState.NONE, help_requested=help_requested)


# ─────────────────────────────────────────────────────────────
# Manager
# ─────────────────────────────────────────────────────────────

def _resolve_issue(
    explicit: Optional[str],
    reply: str,
    confirming_message: Optional[str],
) -> Optional[str]:
    candidates = [explicit, extract_ticket_marker(reply)]
    if confirming_message:
        after_colon = _ISSUE_AFTER_COLON_RGX.search(confirming_message)
        candidates.append(after_colon.group(1) if after_colon else None)
        candidates.append(confirming_message)
    candidates.append(strip_ticket_markers(reply))

    for candidate in candidates:
        if candidate and len(candidate.strip()) > MIN_ISSUE_CHARS:
            return candidate.strip()[:MAX_ISSUE_CHARS]
    return None


def _discard_result(fut: "asyncio.Future[TicketResult]") -> None:
    if not fut.cancelled():
        fut.exception()


class EscalationManager:
    def __init__(self, ticket_client: TicketClient, config: Optional[BaseConfig] = None) -> None:
        self.ticket_client = ticket_client
        self.config = config or get_config()
        self.min_turns = int(getattr(self.config, "ESCALATION_MIN_TURNS", 2))
        self.timeout = float(getattr(self.config, "TICKET_TIMEOUT_SECONDS", 10))

    async def _create_ticket(self, request) -> TicketResult:
        loop = asyncio.get_running_loop()
        fut = loop.run_in_executor(None, self.ticket_client.create_ticket, request)
        try:
            # shield: a timed-out call is abandoned, its late result discarded
            return await asyncio.wait_for(asyncio.shield(fut), timeout=self.timeout)
        except asyncio.TimeoutError:
            fut.add_done_callback(_discard_result)
            log.error(f"TICKET_TIMEOUT | timeout={self.timeout}s")
            return TicketResult(success=False, error="timeout")
        except Exception as exc:  # noqa: BLE001
            log.error(f"TICKET_CREATE_ERROR | error={exc}", exc_info=True)
            return TicketResult(success=False, error=str(exc))

    async def evaluate(
        self,
        history: List[ConversationTurn],
        message: str,
        reply: str,
        *,
        issue: Optional[str] = None,
        customer: Optional[CustomerInfo] = None,
        order_number: Optional[str] = None,
        session_id: str = "anonymous",
    ) -> EscalationOutcome:
        # only confirmation_message() may put the created marker into the transcript
        cleaned = strip_confirmation(strip_ticket_markers(reply))

        if len(history) < self.min_turns:
            state = EscalationState.OFFERED if has_offer(cleaned) else EscalationState.NONE
            return EscalationOutcome(state=state, message=cleaned)

        snapshot = derive_state(history, message)

        if snapshot.state == EscalationState.CONFIRMED:
            return await self._confirmed(history, message, reply, cleaned, snapshot, issue, customer, order_number, session_id)

        if snapshot.state == EscalationState.CREATED:
            return EscalationOutcome(state=EscalationState.CREATED, message=cleaned)

        if snapshot.help_requested and not has_offer(cleaned):
            cleaned = f"{cleaned}\n\n{OFFER_MESSAGE}" if cleaned else OFFER_MESSAGE

        state = EscalationState.OFFERED if has_offer(cleaned) else EscalationState.NONE
        smart_log.escalation_state(session_id, state.value)
        return EscalationOutcome(state=state, message=cleaned)

    async def _confirmed(self, history, message, reply, cleaned, snapshot, issue, customer, order_number, session_id):
        resolved = _resolve_issue(issue, reply, snapshot.confirming_message)
        if not resolved:
            log.info("TICKET_ISSUE_MISSING | staying at confirmed")
            return EscalationOutcome(state=EscalationState.CONFIRMED, message=cleaned)

        transcript = list(history) + [ConversationTurn(Role.USER, message)]
        request = build_ticket_request(resolved, customer, transcript, order_number)
        result = await self._create_ticket(request)

        if result.success and result.ticket_id:
            confirm = confirmation_message(result.ticket_id)
            body = f"{cleaned}\n\n{confirm}" if cleaned else confirm
            smart_log.escalation_state(session_id, EscalationState.CREATED.value, ticket_created=True)
            return EscalationOutcome(
                state=EscalationState.CREATED, message=body, ticket_created=True,
                ticket=request, ticket_id=result.ticket_id,
            )

        log.error(f"TICKET_FAILED | error={result.error}")
        smart_log.escalation_state(session_id, EscalationState.CONFIRMED.value)
        body = f"{cleaned}\n\n{APOLOGY_MESSAGE}" if cleaned else APOLOGY_MESSAGE
        return EscalationOutcome(state=EscalationState.CONFIRMED, message=body, ticket=request)
