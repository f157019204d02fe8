"""
Input schemas for the operation catalog.

Field names are snake_case; the camelCase spelling used by the Terminal.shop
API (``productVariantID``, ``addressID`` ...) is accepted as an alias.
"""

import re
from typing import Annotated, Dict, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class OperationInput(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, populate_by_name=True)


class NoInput(OperationInput):
    """Operations that take no arguments."""
    pass


class IdempotentInput(OperationInput):
    idempotency_key: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=255,
        validation_alias=_alias("idempotency_key", "idempotencyKey"),
        description="Optional key that makes retries of this request safe",
    )


# Products

class SearchProductsInput(OperationInput):
    query: Optional[str] = Field(default=None, description="Case-insensitive text matched against product names and descriptions")


class ProductIdInput(OperationInput):
    product_id: str = Field(
        min_length=1,
        validation_alias=_alias("product_id", "productId", "id"),
        description="The product ID to retrieve",
    )


# Cart

class AddToCartInput(OperationInput):
    product_variant_id: str = Field(
        min_length=1,
        validation_alias=_alias("product_variant_id", "productVariantID"),
        description="The product variant ID to add",
    )
    quantity: int = Field(gt=0, strict=True, description="The quantity to add, a positive integer")


class CartAddressInput(OperationInput):
    address_id: str = Field(min_length=1, validation_alias=_alias("address_id", "addressID"), description="Shipping address ID")


class CartCardInput(OperationInput):
    card_id: str = Field(min_length=1, validation_alias=_alias("card_id", "cardID"), description="Payment card ID")


class CheckoutInput(IdempotentInput):
    pass


# Orders

class CreateOrderInput(IdempotentInput):
    variants: Dict[str, Annotated[int, Field(strict=True)]] = Field(description="Mapping of product variant ID to quantity")
    address_id: str = Field(min_length=1, validation_alias=_alias("address_id", "addressID"), description="Shipping address ID")
    card_id: str = Field(min_length=1, validation_alias=_alias("card_id", "cardID"), description="Payment card ID")

    @field_validator("variants")
    @classmethod
    def _positive_quantities(cls, variants: Dict[str, int]) -> Dict[str, int]:
        if not variants:
            raise ValueError("at least one variant is required")
        for variant_id, quantity in variants.items():
            if not variant_id.strip():
                raise ValueError("variant IDs must not be empty")
            if quantity <= 0:
                raise ValueError(f"quantity for {variant_id} must be a positive integer")
        return variants


# Profile

class UpdateProfileInput(OperationInput):
    name: Optional[str] = Field(default=None, min_length=1, description="New display name")
    email: Optional[str] = Field(default=None, description="New email address")

    @field_validator("email")
    @classmethod
    def _email(cls, email: Optional[str]) -> Optional[str]:
        if email is not None and not EMAIL_PATTERN.match(email):
            raise ValueError("email must be a valid email address")
        return email

    @model_validator(mode="after")
    def _at_least_one(self):
        if self.name is None and self.email is None:
            raise ValueError("provide at least one of name or email")
        return self


# Addresses

class CreateAddressInput(OperationInput):
    name: str = Field(min_length=1, description="Recipient name")
    street1: str = Field(min_length=1, description="Street address line 1")
    street2: Optional[str] = Field(default=None, description="Street address line 2")
    city: str = Field(min_length=1, description="City")
    province: Optional[str] = Field(default=None, description="State or province")
    country: str = Field(min_length=2, max_length=2, description="ISO 3166-1 alpha-2 country code (e.g., 'US')")
    zip: str = Field(min_length=1, description="Postal or zip code")
    phone: Optional[str] = Field(default=None, description="Contact phone number")

    @field_validator("country")
    @classmethod
    def _country(cls, country: str) -> str:
        if not country.isalpha():
            raise ValueError("country must be a 2-letter code")
        return country.upper()


class AddressIdInput(OperationInput):
    address_id: str = Field(min_length=1, validation_alias=_alias("address_id", "addressId", "addressID"), description="Address ID")


# Cards

class CreateCardInput(OperationInput):
    token: str = Field(min_length=1, description="Stripe card token")


class CardIdInput(OperationInput):
    card_id: str = Field(min_length=1, validation_alias=_alias("card_id", "cardId", "cardID"), description="Card ID")


# Subscriptions

class ScheduleInput(OperationInput):
    type: Literal["fixed", "weekly"] = Field(description="Schedule type: 'fixed' or 'weekly'")
    interval: Optional[int] = Field(default=None, gt=0, strict=True, description="Weeks between deliveries (weekly only)")

    @model_validator(mode="after")
    def _interval_required_for_weekly(self):
        if self.type == "weekly" and self.interval is None:
            raise ValueError("interval is required when schedule type is 'weekly'")
        return self


class CreateSubscriptionInput(IdempotentInput):
    product_variant_id: str = Field(
        min_length=1,
        validation_alias=_alias("product_variant_id", "productVariantID"),
        description="The product variant ID to subscribe to",
    )
    quantity: int = Field(gt=0, strict=True, description="Quantity per delivery, a positive integer")
    address_id: str = Field(min_length=1, validation_alias=_alias("address_id", "addressID"), description="Shipping address ID")
    card_id: str = Field(min_length=1, validation_alias=_alias("card_id", "cardID"), description="Payment card ID")
    schedule: ScheduleInput

    def to_payload(self) -> Dict:
        schedule = {"type": self.schedule.type}
        if self.schedule.interval is not None:
            schedule["interval"] = self.schedule.interval
        return {
            "productVariantID": self.product_variant_id,
            "quantity": self.quantity,
            "addressID": self.address_id,
            "cardID": self.card_id,
            "schedule": schedule,
        }


class SubscriptionIdInput(OperationInput):
    subscription_id: str = Field(
        min_length=1,
        validation_alias=_alias("subscription_id", "subscriptionId"),
        description="Subscription ID",
    )


# Tokens

class TokenIdInput(OperationInput):
    token_id: str = Field(min_length=1, validation_alias=_alias("token_id", "tokenId"), description="Token ID")


# Prompts

class BrowseProductsPromptInput(OperationInput):
    search_term: Optional[str] = Field(default=None, validation_alias=_alias("search_term", "searchTerm"))


class PlaceOrderPromptInput(OperationInput):
    product_name: Optional[str] = Field(default=None, validation_alias=_alias("product_name", "productName"))
