"""
Markdown renderers for Terminal.shop payloads.

Pure functions: same model in, same text out. ``format_money`` is the only
place where minor units are converted for display.
"""

from decimal import Decimal
from typing import Any, List, Optional, Tuple

from .models import (
    AccessToken,
    Address,
    AppData,
    Card,
    CardCollection,
    Cart,
    Order,
    OrderShipping,
    Product,
    Profile,
    Subscription,
)

NO_PRODUCTS = "No products are currently available."
NO_ORDERS = "You haven't placed any orders yet."
NO_ADDRESSES = "You don't have any saved addresses yet."
NO_CARDS = "You don't have any saved payment methods yet."
NO_SUBSCRIPTIONS = "You don't have any active subscriptions."
EMPTY_CART = "Your cart is currently empty."


def no_products_matching(query: str) -> str:
    return f'No products found matching "{query}".'


def format_money(cents: int) -> str:
    """Render an amount in minor units as dollars, e.g. 800 -> "$8.00"."""
    return f"${Decimal(cents) / 100:.2f}"


def resolve_total(subtotal: int, shipping: Optional[int], total: Optional[int] = None) -> int:
    """Prefer the upstream total; otherwise add subtotal and shipping in minor units."""
    if total is not None:
        return total
    return subtotal + (shipping or 0)


def _join(lines: List[str]) -> str:
    return "\n".join(lines).rstrip() + "\n"


def _money(cents: Optional[int]) -> Optional[str]:
    return None if cents is None else format_money(cents)


def _item_line(*fields: Tuple[str, Any]) -> str:
    """Render "- Label: value, ..." leaving out fields upstream did not send."""
    return "- " + ", ".join(f"{label}: {value}" for label, value in fields if value is not None)


def _locality(city: Optional[str], province: Optional[str], zip_code: Optional[str]) -> str:
    region = " ".join(part for part in (province, zip_code) if part)
    if city and region:
        return f"{city}, {region}"
    return city or region or ""


# Products

def _product_summary(product: Product) -> List[str]:
    lines = [f"## {product.name}", f"ID: {product.id}"]
    if product.description:
        lines.append(product.description)
    lines.append("")
    lines.append("### Variants:")
    if product.variants:
        for variant in product.variants:
            if variant.price is None:
                lines.append(f"- {variant.name} (ID: {variant.id})")
            else:
                lines.append(f"- {variant.name}: {format_money(variant.price)} (ID: {variant.id})")
    else:
        lines.append("- No variants available")
    lines.append("")
    return lines


def format_products(products: List[Product], query: Optional[str] = None) -> str:
    if not products:
        return no_products_matching(query) if query else NO_PRODUCTS

    heading = f'# Products matching "{query}"' if query else "# Available Products from Terminal.shop"
    lines = [heading, ""]
    for product in products:
        lines.extend(_product_summary(product))
    return _join(lines)


def format_product_details(product: Product) -> str:
    lines = [f"# {product.name}", "", f"ID: {product.id}", ""]
    if product.description:
        lines.extend(["## Description", product.description, ""])

    lines.append("## Available Variants")
    if not product.variants:
        lines.extend(["No variants available.", ""])
    for variant in product.variants:
        lines.append(f"### {variant.name}")
        if variant.price is not None:
            lines.append(f"- Price: {format_money(variant.price)}")
        lines.extend([f"- ID: {variant.id}", ""])

    if product.subscription:
        verb = "requires" if product.subscription == "required" else "allows"
        lines.extend(["## Subscription Options", f"This product {verb} subscription.", ""])

    if product.tags:
        lines.append("## Product Tags")
        for key, value in product.tags.items():
            lines.append(f"- {key}: {value}")
        lines.append("")
    return _join(lines)


# Cart

def _cart_totals(cart: Cart) -> List[str]:
    subtotal = cart.items_subtotal
    lines = [f"Subtotal: {format_money(subtotal)}"]
    if cart.amount is not None and cart.amount.shipping is not None:
        lines.append(f"Shipping: {format_money(cart.amount.shipping)}")
        total = resolve_total(subtotal, cart.amount.shipping, cart.amount.total)
        lines.append(f"Total: {format_money(total)}")
    return lines


def format_cart(cart: Cart) -> str:
    if not cart.items:
        return _join(["# Your Shopping Cart", "", EMPTY_CART])

    lines = ["# Your Shopping Cart", "", "## Cart Items"]
    for item in cart.items:
        lines.append(_item_line(
            ("Quantity", item.quantity),
            ("Variant ID", item.product_variant_id),
            ("Subtotal", _money(item.subtotal)),
        ))

    lines.extend(["", "## Cart Summary"])
    lines.extend(_cart_totals(cart))

    if cart.address_id:
        lines.extend(["", f"Shipping Address ID: {cart.address_id}"])
    if cart.card_id:
        lines.append(f"Payment Method ID: {cart.card_id}")

    if cart.shipping is not None and (cart.shipping.service or cart.shipping.timeframe):
        lines.extend(["", "## Shipping"])
        if cart.shipping.service:
            lines.append(f"Service: {cart.shipping.service}")
        if cart.shipping.timeframe:
            lines.append(f"Timeframe: {cart.shipping.timeframe}")
    return _join(lines)


def format_cart_update(cart: Cart) -> str:
    lines = [
        "# Item Added to Cart",
        "",
        "Successfully added item to your cart.",
        "",
        "## Updated Cart",
        f"Items: {len(cart.items)}",
    ]
    lines.extend(_cart_totals(cart))
    return _join(lines)


# Orders

def _shipping_lines(shipping: OrderShipping) -> List[str]:
    lines = []
    if shipping.name:
        lines.append(f"Name: {shipping.name}")
    street = ", ".join(part for part in (shipping.street1, shipping.street2) if part)
    if street:
        lines.append(f"Address: {street}")
    locality = _locality(shipping.city, shipping.province, shipping.zip)
    if locality:
        lines.append(locality)
    if shipping.country:
        lines.append(f"Country: {shipping.country}")
    if shipping.phone:
        lines.append(f"Phone: {shipping.phone}")
    return lines


def _order_body(order: Order, level: str) -> List[str]:
    lines = []
    if order.shipping is not None:
        lines.append(f"{level} Shipping Information")
        lines.extend(_shipping_lines(order.shipping))
        lines.append("")

    if order.tracking is not None:
        lines.append(f"{level} Tracking Information")
        if order.tracking.service:
            lines.append(f"Service: {order.tracking.service}")
        lines.append(f"Tracking Number: {order.tracking.number}")
        if order.tracking.url:
            lines.append(f"Tracking URL: {order.tracking.url}")
        lines.append("")

    lines.append(f"{level} Items")
    for item in order.items:
        lines.append(_item_line(
            ("Quantity", item.quantity),
            ("Amount", _money(item.amount)),
            ("Variant ID", item.product_variant_id),
        ))
    lines.append("")

    if order.amount is not None:
        total = resolve_total(order.amount.subtotal, order.amount.shipping, order.amount.total)
        lines.extend([
            f"{level} Order Totals",
            f"Subtotal: {format_money(order.amount.subtotal)}",
            f"Shipping: {format_money(order.amount.shipping)}",
            f"Total: {format_money(total)}",
            "",
        ])
    return lines


def format_orders(orders: List[Order]) -> str:
    if not orders:
        return _join(["# Your Order History", "", NO_ORDERS])

    lines = ["# Your Order History", ""]
    for order in orders:
        lines.append(f"## Order ID: {order.id}")
        if order.index is not None:
            lines.append(f"Order Index: {order.index}")
        lines.append("")
        lines.extend(_order_body(order, "###"))
    return _join(lines)


def format_order_confirmation(order: Order) -> str:
    lines = ["# Order Placed Successfully!", "", f"Order ID: {order.id}", ""]
    lines.extend(_order_body(order, "##"))
    return _join(lines)


def format_order_created(order_id: str) -> str:
    return f"Order created successfully! Order ID: {order_id}"


# Profile

def format_profile(profile: Profile) -> str:
    user = profile.user
    lines = [
        "# Your Profile",
        "",
        f"Name: {user.name or 'Not set'}",
        f"Email: {user.email or 'Not set'}",
        f"User ID: {user.id}",
        f"SSH Key Fingerprint: {user.fingerprint or 'Not set'}",
    ]
    if user.stripe_customer_id:
        lines.append(f"Stripe Customer ID: {user.stripe_customer_id}")
    return _join(lines)


def format_profile_update(profile: Profile) -> str:
    user = profile.user
    return f"Profile updated successfully:\nName: {user.name or 'Not set'}\nEmail: {user.email or 'Not set'}"


# Addresses and cards

def format_addresses(addresses: List[Address]) -> str:
    if not addresses:
        return _join(["# Your Shipping Addresses", "", NO_ADDRESSES])

    lines = ["# Your Shipping Addresses", ""]
    for address in addresses:
        lines.extend([f"## {address.name}", f"ID: {address.id}"])
        for part in (address.street1, address.street2, _locality(address.city, address.province, address.zip), address.country):
            if part:
                lines.append(part)
        if address.phone:
            lines.append(f"Phone: {address.phone}")
        lines.append("")
    return _join(lines)


def format_cards(cards: List[Card]) -> str:
    if not cards:
        return _join(["# Your Payment Methods", "", NO_CARDS])

    lines = ["# Your Payment Methods", ""]
    for card in cards:
        lines.extend([f"## {card.brand or 'Card'} •••• {card.last4 or '????'}", f"ID: {card.id}"])
        if card.expiration is not None:
            lines.append(f"Expires: {card.expiration.month:02d}/{card.expiration.year}")
        lines.append("")
    return _join(lines)


def format_card_collection(collection: CardCollection) -> str:
    return (
        f"Please use this URL to securely enter your card details: {collection.url}\n"
        "After completing the form, your card will be added to your account."
    )


# Subscriptions

def format_subscriptions(subscriptions: List[Subscription]) -> str:
    if not subscriptions:
        return _join(["# Your Subscriptions", "", NO_SUBSCRIPTIONS])

    lines = ["# Your Subscriptions", ""]
    for position, sub in enumerate(subscriptions, start=1):
        lines.extend([f"## Subscription {position}", f"ID: {sub.id}"])
        if sub.product_variant_id:
            lines.append(f"Product Variant ID: {sub.product_variant_id}")
        if sub.quantity is not None:
            lines.append(f"Quantity: {sub.quantity}")
        if sub.address_id:
            lines.append(f"Shipping Address ID: {sub.address_id}")
        if sub.card_id:
            lines.append(f"Payment Method ID: {sub.card_id}")

        if sub.schedule is not None:
            lines.extend(["", "### Schedule", f"Type: {sub.schedule.type}"])
            if sub.schedule.interval:
                unit = "weeks" if sub.schedule.type == "weekly" else "periods"
                lines.append(f"Interval: Every {sub.schedule.interval} {unit}")

        if sub.next is not None:
            lines.append(f"Next Delivery: {sub.next.date().isoformat()}")
        lines.append("")
    return _join(lines)


# Tokens

def format_token_created(token: AccessToken) -> str:
    lines = ["Token created successfully!", "", f"Token ID: {token.id}"]
    if token.token:
        lines.extend([
            f"Token: {token.token}",
            "",
            "IMPORTANT: Save this token securely. You won't be able to see the full token value again.",
        ])
    return "\n".join(lines)


# Account overview

def format_app_data(data: AppData) -> str:
    user = data.profile.user
    lines = [
        "# Terminal.shop Account Overview",
        "",
        "## Your Profile",
        f"Name: {user.name or 'Not set'}",
        f"Email: {user.email or 'Not set'}",
    ]
    if data.region:
        lines.append(f"Region: {data.region}")
    lines.append("")

    lines.append("## Your Cart")
    if not data.cart.items:
        lines.append("Your cart is empty.")
    else:
        lines.append(f"Items in cart: {len(data.cart.items)}")
        lines.append(f"Cart subtotal: {format_money(data.cart.items_subtotal)}")
    lines.append("")

    lines.append("## Recent Orders")
    lines.append(f"You have {len(data.orders)} order(s)." if data.orders else NO_ORDERS)
    lines.append("")

    lines.append("## Subscriptions")
    if data.subscriptions:
        lines.append(f"You have {len(data.subscriptions)} active subscription(s).")
    else:
        lines.append(NO_SUBSCRIPTIONS)
    lines.append("")

    lines.append("## Saved Details")
    lines.append(f"Addresses: {len(data.addresses)}")
    lines.append(f"Payment methods: {len(data.cards)}")
    lines.append("")

    lines.append("## Available Products")
    lines.append(f"{len(data.products)} products available in the shop.")
    return _join(lines)
