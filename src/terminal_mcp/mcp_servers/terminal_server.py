from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from dataclasses import dataclass
import asyncio
import argparse
import logging
import sys
from typing import Dict, Optional

from ..config import Settings
from ..errors import ConfigurationError
from ..operations import OperationKind, OperationRegistry
from ..terminal_client import TerminalClient

logger = logging.getLogger(__name__)

SERVER_NAME = "terminal-shop"
SERVER_INSTRUCTIONS = (
    "Browse and buy coffee from Terminal.shop: search products, manage the cart, "
    "check out, and manage the profile, addresses, cards and subscriptions."
)


@dataclass
class TerminalContext:
    """Context for the Terminal.shop MCP server."""
    settings: Settings
    registry: OperationRegistry


def create_terminal_server(settings: Settings, client: Optional[TerminalClient] = None) -> FastMCP:
    """Create a FastMCP server exposing the Terminal.shop operation catalog"""

    registry = OperationRegistry(client or TerminalClient(settings))

    @asynccontextmanager
    async def terminal_lifespan(server: FastMCP) -> AsyncIterator[TerminalContext]:
        """Logs the server lifecycle and hands the registry to request handlers."""
        logger.info(
            f"Starting Terminal.shop MCP server against {settings.api_url} "
            f"({len(registry.names())} operations, bearer token configured)"
        )
        try:
            yield TerminalContext(settings=settings, registry=registry)
        finally:
            logger.info("Shutting down Terminal.shop MCP server")

    mcp = FastMCP(
        SERVER_NAME,
        instructions=SERVER_INSTRUCTIONS,
        lifespan=terminal_lifespan,
        host=settings.host,
        port=settings.port,
    )

    async def invoke(name: str, **arguments) -> str:
        result = await registry.run(name, arguments)
        if result.is_error:
            raise ToolError(result.text)
        return result.text

    async def read(name: str, **arguments) -> str:
        # Resources carry the failure text as their content
        return (await registry.run(name, arguments)).text

    # Product tools

    @mcp.tool(name="search-products")
    async def search_products(query: Optional[str] = None) -> str:
        """Search for products on Terminal.shop.

        Matches the query case-insensitively against product names and
        descriptions. Without a query every available product is listed.

        Args:
            query: Optional text to search for

        Returns:
            Markdown list of products with their variants and prices
        """
        return await invoke("search-products", query=query)

    @mcp.tool(name="get-product-details")
    async def get_product_details(product_id: str) -> str:
        """Get detailed information about a specific product by ID.

        Args:
            product_id: The product ID to retrieve

        Returns:
            Markdown description of the product, its variants, subscription options and tags
        """
        return await invoke("get-product-details", product_id=product_id)

    # Cart tools

    @mcp.tool(name="get-cart")
    async def get_cart() -> str:
        """Show the items, totals, address and payment method currently in the cart."""
        return await invoke("get-cart")

    @mcp.tool(name="add-to-cart")
    async def add_to_cart(product_variant_id: str, quantity: int) -> str:
        """Add a product variant to the shopping cart.

        Args:
            product_variant_id: The product variant ID to add
            quantity: The quantity to add, a positive integer

        Returns:
            Confirmation with the updated cart summary
        """
        return await invoke("add-to-cart", product_variant_id=product_variant_id, quantity=quantity)

    @mcp.tool(name="set-cart-address")
    async def set_cart_address(address_id: str) -> str:
        """Set the shipping address for the cart.

        Args:
            address_id: ID of a saved shipping address
        """
        return await invoke("set-cart-address", address_id=address_id)

    @mcp.tool(name="set-cart-card")
    async def set_cart_card(card_id: str) -> str:
        """Set the payment method for the cart.

        Args:
            card_id: ID of a saved payment card
        """
        return await invoke("set-cart-card", card_id=card_id)

    @mcp.tool(name="clear-cart")
    async def clear_cart() -> str:
        """Remove all items from the cart."""
        return await invoke("clear-cart")

    @mcp.tool(name="checkout")
    async def checkout(idempotency_key: Optional[str] = None) -> str:
        """Convert the current cart into an order.

        The cart needs items, a shipping address and a payment method.

        Args:
            idempotency_key: Optional key that makes retrying this checkout safe

        Returns:
            Order confirmation with shipping details and totals
        """
        return await invoke("checkout", idempotency_key=idempotency_key)

    # Order tools

    @mcp.tool(name="get-order-history")
    async def get_order_history() -> str:
        """List past orders with shipping, tracking and totals."""
        return await invoke("get-order-history")

    @mcp.tool(name="create-order")
    async def create_order(
        variants: Dict[str, int],
        address_id: str,
        card_id: str,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Create an order directly without using the cart.

        Args:
            variants: Mapping of product variant ID to quantity
            address_id: Shipping address ID
            card_id: Payment card ID
            idempotency_key: Optional key that makes retrying this order safe

        Returns:
            The new order ID
        """
        return await invoke(
            "create-order",
            variants=variants,
            address_id=address_id,
            card_id=card_id,
            idempotency_key=idempotency_key,
        )

    # Profile tools

    @mcp.tool(name="get-profile")
    async def get_profile() -> str:
        """Show the account profile."""
        return await invoke("get-profile")

    @mcp.tool(name="update-profile")
    async def update_profile(name: Optional[str] = None, email: Optional[str] = None) -> str:
        """Update the profile name and/or email. At least one must be given.

        Args:
            name: New display name
            email: New email address
        """
        return await invoke("update-profile", name=name, email=email)

    @mcp.tool(name="get-app-data")
    async def get_app_data() -> str:
        """Get an overview of the account: profile, cart, orders, subscriptions and saved details."""
        return await invoke("get-app-data")

    # Address tools

    @mcp.tool(name="list-addresses")
    async def list_addresses() -> str:
        """List saved shipping addresses."""
        return await invoke("list-addresses")

    @mcp.tool(name="create-address")
    async def create_address(
        name: str,
        street1: str,
        city: str,
        country: str,
        zip: str,
        street2: Optional[str] = None,
        province: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> str:
        """Save a new shipping address.

        Args:
            name: Recipient name
            street1: Street address line 1
            city: City
            country: ISO 3166-1 alpha-2 country code (e.g., 'US')
            zip: Postal or zip code
            street2: Street address line 2
            province: State or province
            phone: Contact phone number

        Returns:
            The new address ID
        """
        return await invoke(
            "create-address",
            name=name,
            street1=street1,
            street2=street2,
            city=city,
            province=province,
            country=country,
            zip=zip,
            phone=phone,
        )

    @mcp.tool(name="delete-address")
    async def delete_address(address_id: str) -> str:
        """Delete a saved shipping address.

        Args:
            address_id: ID of the address to delete
        """
        return await invoke("delete-address", address_id=address_id)

    # Card tools

    @mcp.tool(name="list-cards")
    async def list_cards() -> str:
        """List saved payment cards."""
        return await invoke("list-cards")

    @mcp.tool(name="collect-card")
    async def collect_card() -> str:
        """Get a secure URL where new card details can be entered."""
        return await invoke("collect-card")

    @mcp.tool(name="create-card")
    async def create_card(token: str) -> str:
        """Save a payment card from a Stripe token.

        Args:
            token: Stripe card token
        """
        return await invoke("create-card", token=token)

    @mcp.tool(name="delete-card")
    async def delete_card(card_id: str) -> str:
        """Delete a saved payment card.

        Args:
            card_id: ID of the card to delete
        """
        return await invoke("delete-card", card_id=card_id)

    # Subscription tools

    @mcp.tool(name="list-subscriptions")
    async def list_subscriptions() -> str:
        """List active subscriptions."""
        return await invoke("list-subscriptions")

    @mcp.tool(name="create-subscription")
    async def create_subscription(
        product_variant_id: str,
        quantity: int,
        address_id: str,
        card_id: str,
        schedule: Dict,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Subscribe to recurring deliveries of a product variant.

        Args:
            product_variant_id: The product variant ID to subscribe to
            quantity: Quantity per delivery, a positive integer
            address_id: Shipping address ID
            card_id: Payment card ID
            schedule: {"type": "fixed"} or {"type": "weekly", "interval": <weeks>}
            idempotency_key: Optional key that makes retrying this request safe
        """
        return await invoke(
            "create-subscription",
            product_variant_id=product_variant_id,
            quantity=quantity,
            address_id=address_id,
            card_id=card_id,
            schedule=schedule,
            idempotency_key=idempotency_key,
        )

    @mcp.tool(name="cancel-subscription")
    async def cancel_subscription(subscription_id: str) -> str:
        """Cancel a subscription.

        Args:
            subscription_id: ID of the subscription to cancel
        """
        return await invoke("cancel-subscription", subscription_id=subscription_id)

    # Token tools

    @mcp.tool(name="create-token")
    async def create_token() -> str:
        """Create a personal access token. The token value is only shown once."""
        return await invoke("create-token")

    @mcp.tool(name="delete-token")
    async def delete_token(token_id: str) -> str:
        """Delete a personal access token.

        Args:
            token_id: ID of the token to delete
        """
        return await invoke("delete-token", token_id=token_id)

    # Resources

    @mcp.resource("terminal://products", name="products", mime_type="text/markdown")
    async def products_resource() -> str:
        """All available products."""
        return await read("search-products")

    @mcp.resource("terminal://product/{product_id}", name="product", mime_type="text/markdown")
    async def product_resource(product_id: str) -> str:
        """Details for one product."""
        return await read("get-product-details", product_id=product_id)

    @mcp.resource("terminal://cart", name="cart", mime_type="text/markdown")
    async def cart_resource() -> str:
        """The current shopping cart."""
        return await read("get-cart")

    @mcp.resource("terminal://orders", name="order-history", mime_type="text/markdown")
    async def orders_resource() -> str:
        """Past orders."""
        return await read("get-order-history")

    @mcp.resource("terminal://profile", name="profile", mime_type="text/markdown")
    async def profile_resource() -> str:
        """The account profile."""
        return await read("get-profile")

    @mcp.resource("terminal://addresses", name="addresses", mime_type="text/markdown")
    async def addresses_resource() -> str:
        """Saved shipping addresses."""
        return await read("list-addresses")

    @mcp.resource("terminal://cards", name="cards", mime_type="text/markdown")
    async def cards_resource() -> str:
        """Saved payment cards."""
        return await read("list-cards")

    @mcp.resource("terminal://subscriptions", name="subscriptions", mime_type="text/markdown")
    async def subscriptions_resource() -> str:
        """Active subscriptions."""
        return await read("list-subscriptions")

    # Prompts

    @mcp.prompt(name="browse-products", description="Browse Terminal.shop products")
    async def browse_products(search_term: Optional[str] = None) -> str:
        return await read("browse-products", search_term=search_term)

    @mcp.prompt(name="manage-cart", description="Manage your shopping cart")
    async def manage_cart() -> str:
        return await read("manage-cart")

    @mcp.prompt(name="place-order", description="Place an order")
    async def place_order(product_name: Optional[str] = None) -> str:
        return await read("place-order", product_name=product_name)

    @mcp.prompt(name="manage-subscription", description="Manage your subscriptions")
    async def manage_subscription() -> str:
        return await read("manage-subscription")

    @mcp.prompt(name="manage-profile", description="Manage your profile, addresses and payment methods")
    async def manage_profile() -> str:
        return await read("manage-profile")

    exposed = len(registry.definitions(OperationKind.QUERY)) + len(registry.definitions(OperationKind.COMMAND))
    logger.debug(f"Registered {exposed} tools, {len(registry.resources())} resources")
    return mcp


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """Configure root logging. Console output goes to stderr; stdout belongs to the stdio transport."""
    log_level = logging.DEBUG if debug else logging.INFO

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    console_formatter = logging.Formatter('[TERMINAL-SHOP] %(levelname)s - %(message)s')

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logger.info(f"Logs saved to: {log_file}")
        except OSError as e:
            logger.warning(f"Could not create log file {log_file}: {e}")


def run_server_cli(argv=None) -> int:
    """Run server with command line interface"""

    parser = argparse.ArgumentParser(description='Terminal.shop MCP Server')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--transport', choices=['stdio', 'sse'], default=None,
                        help='Transport type (default: $TRANSPORT, else stdio)')
    parser.add_argument('--log-file', help='Log file path (optional)')
    args = parser.parse_args(argv)

    setup_logging(args.debug, args.log_file)

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        return 1

    transport = args.transport or settings.transport
    logger.info(f"Starting Terminal.shop MCP server with {transport} transport")

    async def main():
        mcp = create_terminal_server(settings)

        if transport == 'sse':
            await mcp.run_sse_async()
        else:
            await mcp.run_stdio_async()

    asyncio.run(main())
    return 0


def main() -> None:
    sys.exit(run_server_cli())


if __name__ == "__main__":
    main()
