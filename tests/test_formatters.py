"""
Tests for the Markdown renderers.
"""

import pytest

from conftest import cart_payload, order_payload, product_payload, profile_payload, subscription_payload
from terminal_mcp import formatters
from terminal_mcp.models import (
    AccessToken,
    Address,
    AppData,
    Card,
    Cart,
    Order,
    Product,
    Profile,
    Subscription,
)


class TestMoney:
    @pytest.mark.parametrize("cents,expected", [
        (0, "$0.00"),
        (5, "$0.05"),
        (800, "$8.00"),
        (2199, "$21.99"),
        (123456, "$1234.56"),
    ])
    def test_format_money(self, cents, expected):
        assert formatters.format_money(cents) == expected

    def test_resolve_total_prefers_upstream(self):
        assert formatters.resolve_total(1000, 500, total=1400) == 1400

    def test_resolve_total_adds_shipping(self):
        assert formatters.resolve_total(1000, 500) == 1500
        assert formatters.resolve_total(1000, None) == 1000


class TestEmptyCollections:
    def test_no_products(self):
        assert formatters.format_products([]) == formatters.NO_PRODUCTS

    def test_no_search_results(self):
        assert formatters.format_products([], "decaf") == 'No products found matching "decaf".'

    @pytest.mark.parametrize("render,sentence", [
        (formatters.format_orders, formatters.NO_ORDERS),
        (formatters.format_addresses, formatters.NO_ADDRESSES),
        (formatters.format_cards, formatters.NO_CARDS),
        (formatters.format_subscriptions, formatters.NO_SUBSCRIPTIONS),
    ])
    def test_empty_lists(self, render, sentence):
        assert sentence in render([])

    def test_empty_cart(self):
        assert formatters.EMPTY_CART in formatters.format_cart(Cart())


class TestCart:
    def test_totals(self):
        text = formatters.format_cart(Cart.model_validate(cart_payload()))

        assert "Subtotal: $8.00" in text
        assert "Shipping: $2.00" in text
        assert "Total: $10.00" in text
        assert "- Quantity: 2, Variant ID: var_a, Subtotal: $5.00" in text
        assert "Shipping Address ID: shp_home" in text
        assert "Payment Method ID: crd_visa" in text

    def test_no_total_without_shipping(self):
        payload = cart_payload()
        del payload["amount"]

        text = formatters.format_cart(Cart.model_validate(payload))

        assert "Subtotal: $8.00" in text
        assert "Total:" not in text

    def test_deterministic(self):
        cart = Cart.model_validate(cart_payload())

        assert formatters.format_cart(cart) == formatters.format_cart(cart)

    def test_cart_update(self):
        text = formatters.format_cart_update(Cart.model_validate(cart_payload()))

        assert "Successfully added item to your cart." in text
        assert "Items: 2" in text


class TestProducts:
    def test_listing(self):
        text = formatters.format_products([Product.model_validate(product_payload())])

        assert text.startswith("# Available Products from Terminal.shop")
        assert "## cron" in text
        assert "- 12oz bag: $22.00 (ID: var_cron_12oz)" in text

    def test_search_heading(self):
        text = formatters.format_products([Product.model_validate(product_payload())], "espresso")

        assert text.startswith('# Products matching "espresso"')

    def test_details(self):
        text = formatters.format_product_details(Product.model_validate(product_payload(subscription="required")))

        assert "## Available Variants" in text
        assert "- Price: $22.00" in text
        assert "This product requires subscription." in text
        assert "- color: #8a4baf" in text


class TestOrders:
    def test_checkout_confirmation_total(self):
        text = formatters.format_order_confirmation(Order.model_validate(order_payload()))

        assert "# Order Placed Successfully!" in text
        assert "Order ID: ord_123" in text
        assert "Subtotal: $10.00" in text
        assert "Shipping: $5.00" in text
        assert "Total: $15.00" in text

    def test_history_includes_tracking(self):
        text = formatters.format_orders([Order.model_validate(order_payload())])

        assert "## Order ID: ord_123" in text
        assert "Tracking Number: 9400100" in text
        assert "London, LDN N1 9GU" in text

    def test_order_without_optional_sections(self):
        order = Order.model_validate({"id": "ord_bare"})

        text = formatters.format_orders([order])

        assert "## Order ID: ord_bare" in text
        assert "Shipping Information" not in text
        assert "Order Totals" not in text


class TestPartialRecords:
    def test_variant_without_price(self):
        product = Product.model_validate(product_payload(variants=[{"id": "var_cron_12oz", "name": "12oz bag"}]))

        assert "- 12oz bag (ID: var_cron_12oz)" in formatters.format_products([product])
        assert "- Price:" not in formatters.format_product_details(product)

    def test_address_without_zip(self):
        address = Address.model_validate({"id": "shp_home", "name": "Home", "street1": "1 Main St", "city": "London", "country": "GB"})

        text = formatters.format_addresses([address])

        assert "1 Main St\nLondon\nGB" in text
        assert "None" not in text

    def test_cart_item_without_subtotal(self):
        cart = Cart.model_validate({"items": [{"id": "itm_1", "productVariantID": "var_a", "quantity": 2}]})

        text = formatters.format_cart(cart)

        assert "- Quantity: 2, Variant ID: var_a\n" in text
        assert "None" not in text

    def test_card_without_brand(self):
        text = formatters.format_cards([Card.model_validate({"id": "crd_1"})])

        assert "## Card •••• ????" in text

    def test_order_shipping_without_city(self):
        order = Order.model_validate(order_payload(shipping={"name": "Ada", "country": "GB", "zip": "N1 9GU"}))

        text = formatters.format_orders([order])

        assert "Name: Ada" in text
        assert "N1 9GU" in text
        assert "Address:" not in text
        assert "None" not in text


class TestAccount:
    def test_profile(self):
        text = formatters.format_profile(Profile.model_validate(profile_payload(name=None)))

        assert "Name: Not set" in text
        assert "Email: ada@example.com" in text

    def test_cards(self):
        card = Card.model_validate({"id": "crd_1", "brand": "Visa", "last4": "4242", "expiration": {"month": 3, "year": 2028}})

        text = formatters.format_cards([card])

        assert "Visa •••• 4242" in text
        assert "Expires: 03/2028" in text

    def test_subscriptions(self):
        text = formatters.format_subscriptions([Subscription.model_validate(subscription_payload())])

        assert "## Subscription 1" in text
        assert "Interval: Every 3 weeks" in text
        assert "Next Delivery: 2026-11-02" in text

    def test_token_shown_once_warning(self):
        text = formatters.format_token_created(AccessToken(id="pat_1", token="trm_secret"))

        assert "Token: trm_secret" in text
        assert "won't be able to see" in text

    def test_app_data(self):
        app = AppData.model_validate({
            "profile": profile_payload(),
            "cart": cart_payload(),
            "products": [product_payload()],
            "region": "na",
        })

        text = formatters.format_app_data(app)

        assert "Region: na" in text
        assert "Items in cart: 2" in text
        assert "Cart subtotal: $8.00" in text
        assert formatters.NO_ORDERS in text
        assert "1 products available" in text
