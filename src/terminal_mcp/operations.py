"""
Operation catalog and registry.

Every operation the server exposes is declared here once: its name, kind,
input schema and handler. ``OperationRegistry.run`` is the single entry
point; it validates input, calls the handler and always returns an
``OperationResult``. Errors never propagate past it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from . import formatters, prompts
from .errors import FormatError, TerminalError, TransportError, ValidationError
from .schemas import (
    AddressIdInput,
    AddToCartInput,
    BrowseProductsPromptInput,
    CardIdInput,
    CartAddressInput,
    CartCardInput,
    CheckoutInput,
    CreateAddressInput,
    CreateCardInput,
    CreateOrderInput,
    CreateSubscriptionInput,
    NoInput,
    PlaceOrderPromptInput,
    ProductIdInput,
    SearchProductsInput,
    SubscriptionIdInput,
    TokenIdInput,
    UpdateProfileInput,
)
from .terminal_client import TerminalClient

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    QUERY = "query"
    COMMAND = "command"
    PROMPT = "prompt"


Handler = Callable[..., Any]


@dataclass(frozen=True)
class OperationDefinition:
    """Complete definition of a catalog operation."""
    name: str
    kind: OperationKind
    description: str
    input_model: Type[BaseModel]
    handler: Handler
    resource_uri: Optional[str] = None


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one operation: text content on success, a message plus error kind on failure."""
    operation: str
    content: List[str]
    is_error: bool = False
    error_kind: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, operation: str, text: str) -> "OperationResult":
        return cls(operation=operation, content=[text])

    @classmethod
    def failure(
        cls,
        operation: str,
        message: str,
        error_kind: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "OperationResult":
        return cls(
            operation=operation,
            content=[message],
            is_error=True,
            error_kind=error_kind,
            details=details or {},
        )

    @property
    def text(self) -> str:
        return "\n".join(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": [{"type": "text", "text": block} for block in self.content],
            "isError": self.is_error,
        }


# Fixed catalog, populated by the @operation decorator at import time
_CATALOG: Dict[str, OperationDefinition] = {}


def operation(
    name: str,
    kind: OperationKind,
    description: str,
    input_model: Type[BaseModel] = NoInput,
    resource_uri: Optional[str] = None,
):
    """
    Decorator to add a handler to the operation catalog.

    Usage:
        @operation("get-cart", OperationKind.QUERY, "View the cart", resource_uri="terminal://cart")
        async def get_cart(client: TerminalClient, params: NoInput) -> str:
            return formatters.format_cart(await client.get_cart())
    """
    def decorator(func: Handler) -> Handler:
        if name in _CATALOG:
            raise ValueError(f"Operation already registered: {name}")
        _CATALOG[name] = OperationDefinition(
            name=name,
            kind=kind,
            description=description,
            input_model=input_model,
            handler=func,
            resource_uri=resource_uri,
        )
        return func

    return decorator


def get_catalog() -> Dict[str, OperationDefinition]:
    """Get all catalog definitions."""
    return _CATALOG.copy()


def _describe_validation_error(error: PydanticValidationError) -> str:
    problems = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        message = err["msg"]
        problems.append(f"{location}: {message}" if location else message)
    return "; ".join(problems)


class OperationRegistry:
    """Binds the operation catalog to one Terminal.shop client."""

    def __init__(self, client: TerminalClient, catalog: Optional[Dict[str, OperationDefinition]] = None):
        self.client = client
        self._operations = catalog if catalog is not None else get_catalog()

    def get(self, name: str) -> Optional[OperationDefinition]:
        return self._operations.get(name)

    def names(self, kind: Optional[OperationKind] = None) -> List[str]:
        return [
            name for name, definition in self._operations.items()
            if kind is None or definition.kind == kind
        ]

    def definitions(self, kind: Optional[OperationKind] = None) -> List[OperationDefinition]:
        return [self._operations[name] for name in self.names(kind)]

    def resources(self) -> List[OperationDefinition]:
        return [definition for definition in self._operations.values() if definition.resource_uri]

    def validate(self, definition: OperationDefinition, arguments: Optional[Dict[str, Any]]) -> BaseModel:
        """
        Validate arguments against the operation's input schema.
        Arguments explicitly set to None are treated as omitted.

        Raises:
            ValidationError: if the input fails schema or cross-field checks
        """
        supplied = {key: value for key, value in (arguments or {}).items() if value is not None}
        try:
            return definition.input_model.model_validate(supplied)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid input for {definition.name}: {_describe_validation_error(e)}",
                details={"errors": e.error_count()},
            )

    async def run(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> OperationResult:
        """
        Public entry point: validate and execute.
        Always returns an OperationResult.
        """
        definition = self.get(name)
        if definition is None:
            return OperationResult.failure(name, f"Unknown operation: {name}", "NotFound")

        try:
            params = self.validate(definition, arguments)
            if definition.kind == OperationKind.PROMPT:
                text = definition.handler(params)
            else:
                text = await definition.handler(self.client, params)
            logger.debug(f"Operation {name} succeeded")
            return OperationResult.success(name, text)
        except ValidationError as e:
            logger.warning(f"Validation error in {name}: {e.message}")
            return OperationResult.failure(name, e.message, "ValidationError", e.details)
        except TransportError as e:
            logger.error(f"Transport error in {name}: {e.message}")
            return OperationResult.failure(name, f"Error running {name}: {e.message}", "TransportError", e.details)
        except FormatError as e:
            logger.error(f"Format error in {name}: {e.message}")
            return OperationResult.failure(name, f"Error running {name}: {e.message}", "FormatError", e.details)
        except TerminalError as e:
            logger.error(f"Error in {name}: {e.message}")
            return OperationResult.failure(name, f"Error running {name}: {e.message}", type(e).__name__, e.details)
        except Exception as e:
            logger.exception(f"Unexpected error in {name}")
            return OperationResult.failure(name, f"Error running {name}: {e}", "InternalError")


# Queries

@operation(
    "search-products",
    OperationKind.QUERY,
    "Search Terminal.shop products by name or description; lists every product when no query is given.",
    input_model=SearchProductsInput,
    resource_uri="terminal://products",
)
async def search_products(client: TerminalClient, params: SearchProductsInput) -> str:
    products = await client.list_products()
    query = (params.query or "").strip()
    if query:
        needle = query.lower()
        products = [
            p for p in products
            if needle in p.name.lower() or needle in (p.description or "").lower()
        ]
    return formatters.format_products(products, query or None)


@operation(
    "get-product-details",
    OperationKind.QUERY,
    "Get detailed information about a product: variants, prices, subscription options and tags.",
    input_model=ProductIdInput,
    resource_uri="terminal://product/{product_id}",
)
async def get_product_details(client: TerminalClient, params: ProductIdInput) -> str:
    return formatters.format_product_details(await client.get_product(params.product_id))


@operation("get-cart", OperationKind.QUERY, "View the current shopping cart.", resource_uri="terminal://cart")
async def get_cart(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_cart(await client.get_cart())


@operation("get-order-history", OperationKind.QUERY, "List past orders with shipping, tracking and totals.", resource_uri="terminal://orders")
async def get_order_history(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_orders(await client.list_orders())


@operation("get-profile", OperationKind.QUERY, "Show the account profile.", resource_uri="terminal://profile")
async def get_profile(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_profile(await client.get_profile())


@operation("list-addresses", OperationKind.QUERY, "List saved shipping addresses.", resource_uri="terminal://addresses")
async def list_addresses(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_addresses(await client.list_addresses())


@operation("list-cards", OperationKind.QUERY, "List saved payment cards.", resource_uri="terminal://cards")
async def list_cards(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_cards(await client.list_cards())


@operation("list-subscriptions", OperationKind.QUERY, "List active subscriptions.", resource_uri="terminal://subscriptions")
async def list_subscriptions(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_subscriptions(await client.list_subscriptions())


@operation("get-app-data", OperationKind.QUERY, "Fetch an overview of the whole account in one call.")
async def get_app_data(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_app_data(await client.get_app_data())


# Cart commands

@operation("add-to-cart", OperationKind.COMMAND, "Add a product variant to the cart.", input_model=AddToCartInput)
async def add_to_cart(client: TerminalClient, params: AddToCartInput) -> str:
    cart = await client.add_cart_item(params.product_variant_id, params.quantity)
    return formatters.format_cart_update(cart)


@operation("set-cart-address", OperationKind.COMMAND, "Set the shipping address for the cart.", input_model=CartAddressInput)
async def set_cart_address(client: TerminalClient, params: CartAddressInput) -> str:
    await client.set_cart_address(params.address_id)
    return "Successfully set shipping address for your cart."


@operation("set-cart-card", OperationKind.COMMAND, "Set the payment method for the cart.", input_model=CartCardInput)
async def set_cart_card(client: TerminalClient, params: CartCardInput) -> str:
    await client.set_cart_card(params.card_id)
    return "Successfully set payment method for your cart."


@operation("clear-cart", OperationKind.COMMAND, "Remove every item from the cart.")
async def clear_cart(client: TerminalClient, params: NoInput) -> str:
    await client.clear_cart()
    return "Your cart has been cleared successfully."


@operation("checkout", OperationKind.COMMAND, "Convert the cart into an order.", input_model=CheckoutInput)
async def checkout(client: TerminalClient, params: CheckoutInput) -> str:
    order = await client.convert_cart(idempotency_key=params.idempotency_key)
    return formatters.format_order_confirmation(order)


# Orders and profile

@operation("create-order", OperationKind.COMMAND, "Create an order directly, without using the cart.", input_model=CreateOrderInput)
async def create_order(client: TerminalClient, params: CreateOrderInput) -> str:
    order_id = await client.create_order(
        params.variants,
        params.address_id,
        params.card_id,
        idempotency_key=params.idempotency_key,
    )
    return formatters.format_order_created(order_id)


@operation("update-profile", OperationKind.COMMAND, "Update the profile name and/or email.", input_model=UpdateProfileInput)
async def update_profile(client: TerminalClient, params: UpdateProfileInput) -> str:
    profile = await client.update_profile(name=params.name, email=params.email)
    return formatters.format_profile_update(profile)


# Addresses

@operation("create-address", OperationKind.COMMAND, "Save a new shipping address.", input_model=CreateAddressInput)
async def create_address(client: TerminalClient, params: CreateAddressInput) -> str:
    address_id = await client.create_address(params.model_dump(exclude_none=True))
    return f"Address created successfully! Address ID: {address_id}"


@operation("delete-address", OperationKind.COMMAND, "Delete a saved shipping address.", input_model=AddressIdInput)
async def delete_address(client: TerminalClient, params: AddressIdInput) -> str:
    await client.delete_address(params.address_id)
    return f"Address {params.address_id} deleted successfully."


# Cards

@operation("collect-card", OperationKind.COMMAND, "Get a secure URL for entering new card details.")
async def collect_card(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_card_collection(await client.collect_card())


@operation("create-card", OperationKind.COMMAND, "Save a card from a Stripe token.", input_model=CreateCardInput)
async def create_card(client: TerminalClient, params: CreateCardInput) -> str:
    card_id = await client.create_card(params.token)
    return f"Card created successfully! Card ID: {card_id}"


@operation("delete-card", OperationKind.COMMAND, "Delete a saved payment card.", input_model=CardIdInput)
async def delete_card(client: TerminalClient, params: CardIdInput) -> str:
    await client.delete_card(params.card_id)
    return f"Card {params.card_id} deleted successfully."


# Subscriptions

@operation(
    "create-subscription",
    OperationKind.COMMAND,
    "Subscribe to recurring deliveries of a product variant on a fixed or weekly schedule.",
    input_model=CreateSubscriptionInput,
)
async def create_subscription(client: TerminalClient, params: CreateSubscriptionInput) -> str:
    await client.create_subscription(params.to_payload(), idempotency_key=params.idempotency_key)
    schedule = params.schedule
    cadence = f"every {schedule.interval} week(s)" if schedule.type == "weekly" else "on a fixed schedule"
    return f"Subscription created successfully! {params.quantity} x {params.product_variant_id}, delivered {cadence}."


@operation("cancel-subscription", OperationKind.COMMAND, "Cancel a subscription.", input_model=SubscriptionIdInput)
async def cancel_subscription(client: TerminalClient, params: SubscriptionIdInput) -> str:
    await client.cancel_subscription(params.subscription_id)
    return f"Subscription {params.subscription_id} canceled successfully."


# Tokens

@operation("create-token", OperationKind.COMMAND, "Create a personal access token. The value is shown only once.")
async def create_token(client: TerminalClient, params: NoInput) -> str:
    return formatters.format_token_created(await client.create_token())


@operation("delete-token", OperationKind.COMMAND, "Delete a personal access token.", input_model=TokenIdInput)
async def delete_token(client: TerminalClient, params: TokenIdInput) -> str:
    await client.delete_token(params.token_id)
    return f"Token {params.token_id} deleted successfully."


# Prompt templates (no upstream call)

@operation("browse-products", OperationKind.PROMPT, "Start a conversation about browsing products.", input_model=BrowseProductsPromptInput)
def browse_products_prompt(params: BrowseProductsPromptInput) -> str:
    return prompts.browse_products(params.search_term)


@operation("manage-cart", OperationKind.PROMPT, "Start a conversation about managing the cart.")
def manage_cart_prompt(params: NoInput) -> str:
    return prompts.manage_cart()


@operation("place-order", OperationKind.PROMPT, "Start a conversation about placing an order.", input_model=PlaceOrderPromptInput)
def place_order_prompt(params: PlaceOrderPromptInput) -> str:
    return prompts.place_order(params.product_name)


@operation("manage-subscription", OperationKind.PROMPT, "Start a conversation about managing subscriptions.")
def manage_subscription_prompt(params: NoInput) -> str:
    return prompts.manage_subscription()


@operation("manage-profile", OperationKind.PROMPT, "Start a conversation about profile, addresses and payment methods.")
def manage_profile_prompt(params: NoInput) -> str:
    return prompts.manage_profile()
