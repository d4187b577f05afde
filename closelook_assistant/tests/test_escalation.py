# closelook_assistant/tests/test_escalation.py
from __future__ import annotations

import asyncio

import pytest

from closelook_assistant.enums import EscalationState, Role
from closelook_assistant.escalation import (OFFER_MESSAGE, EscalationManager, derive_state,
                                            is_confirmation, is_decline, is_help_request)
from closelook_assistant.models import ConversationTurn, CustomerInfo, TicketResult
from closelook_assistant.ticketing import APOLOGY_MESSAGE

from .conftest import FakeTicketClient

OFFER = (
    "I'm sorry to hear that. Would you like me to create a ticket so our support team can follow up?"
)


def _history(*pairs):
    turns = []
    for user, assistant in pairs:
        turns.append(ConversationTurn(Role.USER, user))
        turns.append(ConversationTurn(Role.ASSISTANT, assistant))
    return turns


OFFERED_HISTORY = _history(("I need help, this isn't working", OFFER))


# ─────────────────────────────────────────────────────────────
# Classification
# ─────────────────────────────────────────────────────────────

def test_help_keywords():
    assert is_help_request("I need help with my order")
    assert is_help_request("can I talk to a human?")
    assert not is_help_request("show me some boots")
    # word boundaries: "personal" is not "person"
    assert not is_help_request("any personalised gifts?")


def test_confirmation_and_decline():
    assert is_confirmation("yes please")
    assert is_confirmation("Sure, create a ticket")
    assert is_confirmation("yes, my order is not working")
    assert not is_confirmation("no, don't create one")
    assert not is_confirmation("what sizes do you have?")
    assert is_decline("nope, all good")
    assert not is_decline("I know it's late")
    # a bare affirmative only counts at the start of the message
    assert is_confirmation("ok, go ahead")
    assert not is_confirmation("show me caps please")


@pytest.mark.parametrize("message, expected", [
    ("yes please create one", EscalationState.CONFIRMED),
    ("no thanks", EscalationState.NONE),
    ("what does a ticket involve?", EscalationState.OFFERED),
])
def test_state_after_offer(message, expected):
    assert derive_state(OFFERED_HISTORY, message).state == expected


def test_confirmation_without_offer_is_nothing():
    history = _history(("hi", "Hello! How can I help?"))
    assert derive_state(history, "yes").state == EscalationState.NONE


def test_created_is_recognised_and_new_issue_restarts():
    history = _history(("yes", "✓ Support ticket created! Reference #T-1. Our team will contact you within 24 hours."))
    assert derive_state(history, "thanks!").state == EscalationState.CREATED
    snapshot = derive_state(history, "I have a problem with another order")
    assert snapshot.state == EscalationState.NONE
    assert snapshot.help_requested


def test_only_latest_assistant_turn_counts():
    history = OFFERED_HISTORY + _history(("what colors?", "We have it in black and tan."))
    assert derive_state(history, "yes").state == EscalationState.NONE


# ─────────────────────────────────────────────────────────────
# Manager
# ─────────────────────────────────────────────────────────────

def _run(manager, history, message, reply, **kw):
    return asyncio.run(manager.evaluate(history, message, reply, **kw))


def test_confirmed_creates_ticket(config):
    client = FakeTicketClient()
    outcome = _run(
        EscalationManager(client, config), OFFERED_HISTORY, "yes please create one",
        "Of course, I'll get that started.", issue="Broken zipper!!",
    )

    assert outcome.state == EscalationState.CREATED
    assert outcome.ticket_created
    assert outcome.ticket_id == "T-1700000000000-ABC123"
    assert len(client.requests) == 1
    assert client.requests[0].issue == "Broken zipper!!"
    assert outcome.message.startswith("Of course, I'll get that started.")
    assert outcome.message.endswith(
        "✓ Support ticket created! Reference #T-1700000000000-ABC123. Our team will contact you within 24 hours."
    )


def test_ticket_request_carries_customer_and_transcript(config):
    client = FakeTicketClient()
    _run(
        EscalationManager(client, config), OFFERED_HISTORY, "yes please", "",
        issue="The sole came off my boots", customer=CustomerInfo(name="Ada", email="ada@example.com"),
        order_number="1001",
    )
    req = client.requests[0]
    assert req.customer_name == "Ada"
    assert req.customer_email == "ada@example.com"
    assert req.order_number == "1001"
    assert req.conversation_excerpt[-1].content == "yes please"


def test_issue_from_reply_block_and_markers_hidden(config):
    client = FakeTicketClient()
    reply = (
        "Creating it now.\n__TICKET_CREATE__\nIssue: Parcel lost in transit\n"
        "Context: order #1001\n__TICKET_END__"
    )
    outcome = _run(EscalationManager(client, config), OFFERED_HISTORY, "yes", reply)
    assert client.requests[0].issue == "Parcel lost in transit\n\nContext: order #1001"
    assert "__TICKET_CREATE__" not in outcome.message
    assert outcome.ticket_created


def test_issue_after_colon_in_confirmation(config):
    client = FakeTicketClient()
    _run(EscalationManager(client, config), OFFERED_HISTORY,
         "yes, create a ticket: my parcel never arrived at all", "Okay.")
    assert client.requests[0].issue == "my parcel never arrived at all"


def test_no_usable_issue_stays_confirmed(config):
    client = FakeTicketClient()
    outcome = _run(EscalationManager(client, config), OFFERED_HISTORY, "yes", "Okay.")
    assert outcome.state == EscalationState.CONFIRMED
    assert not outcome.ticket_created
    assert client.requests == []


def test_failed_ticket_apologises_and_hides_false_claim(config):
    client = FakeTicketClient(result=TicketResult(success=False, error="backend down"))
    outcome = _run(
        EscalationManager(client, config), OFFERED_HISTORY, "yes please",
        "Done!\n✓ Support ticket created! Reference #[TICKET_ID].", issue="Wrong item delivered",
    )
    assert outcome.state == EscalationState.CONFIRMED
    assert not outcome.ticket_created
    assert "Support ticket created!" not in outcome.message
    assert outcome.message.endswith(APOLOGY_MESSAGE)


def test_ticket_client_exception_apologises(config):
    client = FakeTicketClient(error=RuntimeError("boom"))
    outcome = _run(EscalationManager(client, config), OFFERED_HISTORY, "yes please", "",
                   issue="Wrong item delivered")
    assert outcome.message == APOLOGY_MESSAGE
    assert not outcome.ticket_created


def test_ticket_timeout_apologises(config):
    config.TICKET_TIMEOUT_SECONDS = 0.05
    client = FakeTicketClient(delay=0.3)
    outcome = _run(EscalationManager(client, config), OFFERED_HISTORY, "yes please", "",
                   issue="Wrong item delivered")
    assert outcome.state == EscalationState.CONFIRMED
    assert outcome.message == APOLOGY_MESSAGE


def test_help_request_appends_offer(config):
    history = _history(("hi", "Hello! How can I help?"))
    outcome = _run(EscalationManager(FakeTicketClient(), config), history,
                   "my order is not working", "I'm sorry about that.")
    assert outcome.state == EscalationState.OFFERED
    assert outcome.message == f"I'm sorry about that.\n\n{OFFER_MESSAGE}"


def test_existing_offer_is_not_duplicated(config):
    history = _history(("hi", "Hello!"))
    outcome = _run(EscalationManager(FakeTicketClient(), config), history, "I need help", OFFER)
    assert outcome.message == OFFER
    assert outcome.state == EscalationState.OFFERED


def test_too_short_conversation_is_ineligible(config):
    client = FakeTicketClient()
    outcome = _run(EscalationManager(client, config), [], "I need help", "Sure, what's up?")
    assert outcome.state == EscalationState.NONE
    assert outcome.message == "Sure, what's up?"
    assert client.requests == []


def test_after_creation_no_second_ticket(config):
    client = FakeTicketClient()
    history = _history(("yes", "✓ Support ticket created! Reference #T-1. Our team will contact you within 24 hours."))
    outcome = _run(EscalationManager(client, config), history, "thanks a lot", "You're welcome!")
    assert outcome.state == EscalationState.CREATED
    assert not outcome.ticket_created
    assert client.requests == []


def test_unrelated_request_after_offer_is_not_a_confirmation(config):
    client = FakeTicketClient()
    message = "Actually can you please show me some caps instead?"
    assert not is_confirmation(message)

    outcome = _run(EscalationManager(client, config), OFFERED_HISTORY, message, "Here are our caps.")
    assert outcome.state == EscalationState.NONE
    assert not outcome.ticket_created
    assert client.requests == []


def test_model_written_confirmation_never_reaches_the_transcript(config):
    client = FakeTicketClient()
    manager = EscalationManager(client, config)
    history = _history(("hi", "hello"))

    outcome = _run(manager, history, "my order never arrived",
                   "Sorry! ✓ Support ticket created! Reference #[ID].")
    assert "Support ticket created!" not in outcome.message
    assert not outcome.ticket_created

    # the stored reply must not read as a created ticket on the next turn
    history = history + _history(("my order never arrived", outcome.message))
    assert derive_state(history, "thanks").state != EscalationState.CREATED
    assert client.requests == []
