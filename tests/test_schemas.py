"""
Tests for operation input schemas.
"""

import pytest
from pydantic import ValidationError

from terminal_mcp.schemas import (
    AddToCartInput,
    CreateAddressInput,
    CreateOrderInput,
    CreateSubscriptionInput,
    NoInput,
    ProductIdInput,
    UpdateProfileInput,
)

SUBSCRIPTION = {
    "product_variant_id": "var_a",
    "quantity": 1,
    "address_id": "shp_home",
    "card_id": "crd_visa",
}


class TestAliases:
    """camelCase spellings are accepted alongside snake_case."""

    def test_add_to_cart_camel_case(self):
        params = AddToCartInput.model_validate({"productVariantID": "var_a", "quantity": 2})

        assert params.product_variant_id == "var_a"

    def test_product_id_aliases(self):
        assert ProductIdInput.model_validate({"productId": "prd_1"}).product_id == "prd_1"
        assert ProductIdInput.model_validate({"id": "prd_1"}).product_id == "prd_1"

    def test_idempotency_key_camel_case(self):
        params = CreateOrderInput.model_validate({
            "variants": {"var_a": 1},
            "addressID": "shp_home",
            "cardID": "crd_visa",
            "idempotencyKey": "order-1",
        })

        assert params.idempotency_key == "order-1"


class TestQuantities:
    @pytest.mark.parametrize("quantity", [0, -1])
    def test_add_to_cart_rejects_non_positive(self, quantity):
        with pytest.raises(ValidationError):
            AddToCartInput.model_validate({"product_variant_id": "var_a", "quantity": quantity})

    def test_add_to_cart_rejects_non_integer(self):
        with pytest.raises(ValidationError):
            AddToCartInput.model_validate({"product_variant_id": "var_a", "quantity": "2"})

    def test_create_order_rejects_zero_quantity(self):
        with pytest.raises(ValidationError, match="positive"):
            CreateOrderInput.model_validate({
                "variants": {"var_a": 0},
                "address_id": "shp_home",
                "card_id": "crd_visa",
            })

    @pytest.mark.parametrize("quantity", [True, "2", 1.5])
    def test_create_order_rejects_non_integer_quantity(self, quantity):
        with pytest.raises(ValidationError):
            CreateOrderInput.model_validate({
                "variants": {"var_a": quantity},
                "address_id": "shp_home",
                "card_id": "crd_visa",
            })

    def test_create_order_requires_variants(self):
        with pytest.raises(ValidationError, match="at least one variant"):
            CreateOrderInput.model_validate({"variants": {}, "address_id": "shp_home", "card_id": "crd_visa"})


class TestSubscriptionSchedule:
    def test_weekly_requires_interval(self):
        with pytest.raises(ValidationError, match="interval is required"):
            CreateSubscriptionInput.model_validate({**SUBSCRIPTION, "schedule": {"type": "weekly"}})

    def test_fixed_without_interval(self):
        params = CreateSubscriptionInput.model_validate({**SUBSCRIPTION, "schedule": {"type": "fixed"}})

        assert params.to_payload() == {
            "productVariantID": "var_a",
            "quantity": 1,
            "addressID": "shp_home",
            "cardID": "crd_visa",
            "schedule": {"type": "fixed"},
        }

    def test_weekly_payload_carries_interval(self):
        params = CreateSubscriptionInput.model_validate({**SUBSCRIPTION, "schedule": {"type": "weekly", "interval": 2}})

        assert params.to_payload()["schedule"] == {"type": "weekly", "interval": 2}

    def test_unknown_schedule_type(self):
        with pytest.raises(ValidationError):
            CreateSubscriptionInput.model_validate({**SUBSCRIPTION, "schedule": {"type": "monthly"}})


class TestProfileAndAddress:
    def test_update_profile_needs_a_field(self):
        with pytest.raises(ValidationError, match="at least one"):
            UpdateProfileInput.model_validate({})

    def test_update_profile_rejects_bad_email(self):
        with pytest.raises(ValidationError, match="valid email"):
            UpdateProfileInput.model_validate({"email": "not-an-email"})

    def test_country_code_upper_cased(self):
        params = CreateAddressInput.model_validate({
            "name": "Ada",
            "street1": "1 Analytical Way",
            "city": "London",
            "country": "gb",
            "zip": "N1 9GU",
        })

        assert params.country == "GB"
        assert params.model_dump(exclude_none=True) == {
            "name": "Ada",
            "street1": "1 Analytical Way",
            "city": "London",
            "country": "GB",
            "zip": "N1 9GU",
        }

    @pytest.mark.parametrize("country", ["USA", "U", "1A"])
    def test_country_code_rejected(self, country):
        with pytest.raises(ValidationError):
            CreateAddressInput.model_validate({
                "name": "Ada",
                "street1": "1 Analytical Way",
                "city": "London",
                "country": country,
                "zip": "N1 9GU",
            })


def test_extra_fields_forbidden():
    with pytest.raises(ValidationError):
        NoInput.model_validate({"unexpected": True})
