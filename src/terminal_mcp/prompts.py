"""Conversation starters offered to MCP clients as prompt templates."""

from typing import Optional


def browse_products(search_term: Optional[str] = None) -> str:
    if search_term:
        return (
            f'I\'m interested in browsing Terminal.shop products related to "{search_term}". '
            "Could you show me what's available and help me find something I might like?"
        )
    return (
        "I'd like to browse the products available from Terminal.shop. "
        "Could you show me what coffee options they have and help me find something I might like?"
    )


def manage_cart() -> str:
    return (
        "I want to manage my shopping cart at Terminal.shop. Can you show me what's in my cart, "
        "help me add or remove items, and guide me through the checkout process?"
    )


def place_order(product_name: Optional[str] = None) -> str:
    if product_name:
        return f"I'd like to order some {product_name} from Terminal.shop. Can you help me place this order?"
    return "I want to place an order on Terminal.shop. Can you help me select products and complete my purchase?"


def manage_subscription() -> str:
    return (
        "I'd like to view and manage my coffee subscriptions from Terminal.shop. "
        "Can you show me my active subscriptions and the options available?"
    )


def manage_profile() -> str:
    return (
        "I want to manage my Terminal.shop profile, including my shipping addresses and payment methods. "
        "Can you help me with that?"
    )
