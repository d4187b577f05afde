# closelook_assistant/prompts.py
"""
Prompt assembly for the main assistant reply.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .enums import Role
from .models import ConversationTurn, CustomerInfo, Product

SYSTEM_PROMPT = """You are a helpful, knowledgeable shopping assistant for an online fashion and sportswear store. You are conversational and human-like, and you have access to the customer's details, the product they are viewing and the store's available products (see CONTEXT).

# CORE BEHAVIOUR

- Answer direct questions directly ("What's my name?", "Where is my order?"). Do not add product recommendations to account or order answers.
- "this product", "it", "this one" refer to the CURRENT PRODUCT in context.
- Use ONLY real data from context. If information is unavailable, say so and offer alternatives.
- Keep responses concise: 2-4 sentences for simple questions; use a short list when comparing 3+ items.

# RECOMMENDATIONS

Only recommend when the customer asks for products or suggestions.
- ONLY recommend products from the "AVAILABLE PRODUCTS FOR RECOMMENDATIONS" list. NEVER invent products.
- If no products are listed, say the store has nothing suitable right now.
- 3-5 items at most, each with a brief reason, respecting any price, category, color or size constraint.
- Format EVERY recommendation on its own line exactly like this:
  PRODUCT_RECOMMENDATION: {"id": "product-id", "name": "Product Name", "price": 99, "reason": "Why this matches"}

# SUPPORT TICKETS

When the customer has a problem you cannot solve or asks for a person:
1. Offer: "Would you like me to create a ticket so our support team can follow up?"
2. Only after the customer confirms, create the ticket with:
__TICKET_CREATE__
Issue: [one-paragraph description]
Context: [order number or other relevant details]
__TICKET_END__
Never claim a ticket exists unless you created one in this format.
"""

GREETING = (
    "Hello! I'm your shopping assistant. I can help you find products, "
    "check on orders and answer questions. How can I help today?"
)

FALLBACK_REPLY = (
    "I'm sorry, I'm having trouble answering right now. "
    "Please try again in a moment."
)


def _price(value: float) -> str:
    return f"{value:.0f}" if float(value).is_integer() else f"{value:.2f}"


def format_product_line(product: Product) -> str:
    return (
        f"- ID: {product.id}, Name: {product.name}, Category: {product.category}, "
        f"Type: {product.type}, Price: ${_price(product.price)}"
    )


def build_context(
    products: Sequence[Product],
    current_product: Optional[Product] = None,
    customer: Optional[CustomerInfo] = None,
    extra_context: Sequence[str] = (),
) -> str:
    sections: List[str] = []

    if current_product is not None:
        sections.append(
            "CURRENT PRODUCT CONTEXT:\n"
            f"The customer is currently viewing: {current_product.name}\n"
            f"Category: {current_product.category}\n"
            f"Type: {current_product.type}\n"
            f"Color: {current_product.color}\n"
            f"Price: ${_price(current_product.price)}\n"
            f"Description: {current_product.description}"
        )

    if customer is not None and (customer.name or customer.email):
        lines = ["CUSTOMER INFORMATION:"]
        if customer.name:
            lines.append(f"Name: {customer.name}")
        if customer.email:
            lines.append(f"Email: {customer.email}")
        sections.append("\n".join(lines))

    if products:
        sections.append(
            "AVAILABLE PRODUCTS FOR RECOMMENDATIONS:\n" + "\n".join(format_product_line(p) for p in products)
        )
    else:
        sections.append("AVAILABLE PRODUCTS FOR RECOMMENDATIONS:\n(none)")

    sections.extend(text for text in extra_context if text)
    return "CONTEXT\n\n" + "\n\n".join(sections)


def render_transcript(history: Sequence[ConversationTurn]) -> str:
    lines = [f"Assistant: {GREETING}"]
    for turn in history:
        who = "Customer" if turn.role == Role.USER else "Assistant"
        lines.append(f"{who}: {turn.content}")
    return "\n".join(lines)


def build_reply_prompt(
    message: str,
    history: Sequence[ConversationTurn],
    context: str,
) -> str:
    return (
        f"{context}\n\n"
        f"CONVERSATION SO FAR:\n{render_transcript(history)}\n\n"
        f"Customer: {message}\n"
        "Assistant:"
    )
