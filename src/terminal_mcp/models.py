"""
Typed views of Terminal.shop API payloads.

Payloads are decoded at the client boundary so the rest of the package never
handles raw JSON. Money fields are integers in minor units (cents).
Only identity fields (``id``, and ``name`` on products, variants and
addresses) are required. Any other field that is missing, null or malformed
decodes to ``None`` and is left out of the rendering.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class UpstreamModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


def _drop_if_malformed(value: Any, handler, info) -> Any:
    try:
        return handler(value)
    except ValidationError as e:
        logger.warning(f"Dropping malformed optional field '{info.field_name}': {e.error_count()} error(s)")
        return None


# Products

class ProductVariant(UpstreamModel):
    id: str
    name: str
    price: Optional[int] = None

    @field_validator("price", mode="wrap")
    @classmethod
    def _optional_fields(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)


class Product(UpstreamModel):
    id: str
    name: str
    description: Optional[str] = None
    variants: List[ProductVariant] = Field(default_factory=list)
    subscription: Optional[str] = None  # "allowed" or "required"
    tags: Dict[str, str] = Field(default_factory=dict)

    @field_validator("description", "subscription", mode="wrap")
    @classmethod
    def _optional_fields(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)

    @field_validator("tags", mode="wrap")
    @classmethod
    def _tags(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info) or {}


# Cart

class CartItem(UpstreamModel):
    id: Optional[str] = None
    product_variant_id: Optional[str] = Field(default=None, alias="productVariantID")
    quantity: Optional[int] = None
    subtotal: Optional[int] = None

    @field_validator("id", "product_variant_id", "quantity", "subtotal", mode="wrap")
    @classmethod
    def _optional_fields(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)


class CartAmount(UpstreamModel):
    subtotal: Optional[int] = None
    shipping: Optional[int] = None
    total: Optional[int] = None

    @field_validator("subtotal", "shipping", "total", mode="wrap")
    @classmethod
    def _optional_fields(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)


class CartShipping(UpstreamModel):
    service: Optional[str] = None
    timeframe: Optional[str] = None


class Cart(UpstreamModel):
    items: List[CartItem] = Field(default_factory=list)
    subtotal: Optional[int] = None
    address_id: Optional[str] = Field(default=None, alias="addressID")
    card_id: Optional[str] = Field(default=None, alias="cardID")
    amount: Optional[CartAmount] = None
    shipping: Optional[CartShipping] = None

    @field_validator("subtotal", "address_id", "card_id", "amount", "shipping", mode="wrap")
    @classmethod
    def _optional_sections(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)

    @property
    def items_subtotal(self) -> int:
        """Subtotal in cents, falling back to the sum of the known line subtotals."""
        if self.subtotal is not None:
            return self.subtotal
        if self.amount is not None and self.amount.subtotal is not None:
            return self.amount.subtotal
        return sum(item.subtotal for item in self.items if item.subtotal is not None)


# Orders

class OrderShipping(UpstreamModel):
    name: Optional[str] = None
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None


class Tracking(UpstreamModel):
    service: Optional[str] = None
    number: str
    url: Optional[str] = None


class OrderItem(UpstreamModel):
    id: Optional[str] = None
    product_variant_id: Optional[str] = Field(default=None, alias="productVariantID")
    quantity: Optional[int] = None
    amount: Optional[int] = None

    @field_validator("id", "product_variant_id", "quantity", "amount", mode="wrap")
    @classmethod
    def _optional_fields(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)


class OrderAmount(UpstreamModel):
    subtotal: int
    shipping: int = 0
    total: Optional[int] = None


class Order(UpstreamModel):
    id: str
    index: Optional[int] = None
    shipping: Optional[OrderShipping] = None
    tracking: Optional[Tracking] = None
    items: List[OrderItem] = Field(default_factory=list)
    amount: Optional[OrderAmount] = None

    @field_validator("index", "shipping", "tracking", "amount", mode="wrap")
    @classmethod
    def _optional_sections(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)


# Profile

class User(UpstreamModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    fingerprint: Optional[str] = None
    stripe_customer_id: Optional[str] = Field(default=None, alias="stripeCustomerID")


class Profile(UpstreamModel):
    user: User


# Addresses and cards

class Address(UpstreamModel):
    id: str
    name: str
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("street1", "street2", "city", "province", "country", "zip", "phone", mode="wrap")
    @classmethod
    def _optional_fields(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)


class CardExpiration(UpstreamModel):
    month: int
    year: int


class Card(UpstreamModel):
    id: str
    brand: Optional[str] = None
    last4: Optional[str] = None
    expiration: Optional[CardExpiration] = None

    @field_validator("brand", "last4", "expiration", mode="wrap")
    @classmethod
    def _optional_fields(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)


class CardCollection(UpstreamModel):
    url: str


# Subscriptions and tokens

class SubscriptionSchedule(UpstreamModel):
    type: str
    interval: Optional[int] = None


class Subscription(UpstreamModel):
    id: str
    product_variant_id: Optional[str] = Field(default=None, alias="productVariantID")
    quantity: Optional[int] = None
    address_id: Optional[str] = Field(default=None, alias="addressID")
    card_id: Optional[str] = Field(default=None, alias="cardID")
    schedule: Optional[SubscriptionSchedule] = None
    next: Optional[datetime] = None

    @field_validator("product_variant_id", "quantity", "address_id", "card_id", "schedule", "next", mode="wrap")
    @classmethod
    def _optional_sections(cls, value, handler, info):
        return _drop_if_malformed(value, handler, info)


class AccessToken(UpstreamModel):
    id: str
    token: Optional[str] = None


# Aggregated bootstrap view (GET /view/init)

class AppData(UpstreamModel):
    profile: Profile
    cart: Cart = Field(default_factory=Cart)
    region: Optional[str] = None
    products: List[Product] = Field(default_factory=list)
    orders: List[Order] = Field(default_factory=list)
    subscriptions: List[Subscription] = Field(default_factory=list)
    addresses: List[Address] = Field(default_factory=list)
    cards: List[Card] = Field(default_factory=list)
