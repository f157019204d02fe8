import asyncio
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
from urllib.parse import quote

import requests
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .config import USER_AGENT, Settings
from .errors import FormatError, TransportError, TransportErrorKind
from .models import (
    AccessToken,
    Address,
    AppData,
    Card,
    CardCollection,
    Cart,
    Order,
    Product,
    Profile,
    Subscription,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Methods that may be retried without an idempotency key
SAFE_METHODS = frozenset({"GET"})

STATUS_HINTS = {
    401: "Authentication failed, check TERMINAL_BEARER_TOKEN",
    403: "Permission denied",
    404: "Resource not found, check the ID is correct",
    429: "Rate limit exceeded, wait a moment and retry",
}


def _segment(value: str) -> str:
    """Quote a caller-supplied identifier for use as a single path segment."""
    return quote(str(value).strip(), safe="")


def decode(model: Type[ModelT], data: Any) -> ModelT:
    """Decode an upstream payload into a model, raising FormatError if identity fields are missing."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise FormatError(
            f"Upstream {model.__name__} payload is missing required fields",
            details={"errors": [".".join(str(p) for p in err["loc"]) for err in e.errors()]},
        )


def decode_list(model: Type[ModelT], data: Any) -> List[ModelT]:
    if data is None:
        return []
    try:
        return TypeAdapter(List[model]).validate_python(data)
    except PydanticValidationError as e:
        raise FormatError(
            f"Upstream {model.__name__} list payload is missing required fields",
            details={"errors": [".".join(str(p) for p in err["loc"]) for err in e.errors()]},
        )


def decode_id(data: Any, what: str) -> str:
    """Commands that create an entity answer with its identifier."""
    if isinstance(data, (str, int)) and str(data).strip():
        return str(data)
    raise FormatError(f"Upstream did not return an identifier for the new {what}")


class TerminalClient:
    """Client for the Terminal.shop REST API.

    Every request is issued on a fresh ``requests.Session`` so concurrent
    operations never share connection state. Blocking I/O runs in a worker
    thread; coroutines only ever see decoded models or a raised
    ``TransportError`` / ``FormatError``.
    """

    def __init__(self, settings: Settings, session_factory: Callable[[], requests.Session] = requests.Session):
        self.base_url = settings.api_url.rstrip("/")
        self.request_timeout = settings.request_timeout
        self.call_deadline = settings.call_deadline
        self.max_attempts = settings.max_attempts
        self.retry_backoff = settings.retry_backoff
        self._token = settings.bearer_token
        self._session_factory = session_factory
        logger.info(f"Terminal.shop client configured for {self.base_url} with a bearer token")

    def open_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        })
        return session

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        *,
        idempotency_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        abort: Optional[threading.Event] = None,
    ) -> Any:
        """Perform one blocking API call and return the response's ``data`` field.

        GET requests (and mutations carrying an idempotency key) are retried on
        network, timeout and 5xx failures with exponential backoff. Any other
        request is attempted exactly once.

        Raises:
            TransportError: on network failure, timeout, abort or non-2xx status
            FormatError: if a JSON response has no ``data`` field
        """
        method = method.upper()
        url = f"{self.base_url}{path}"
        retryable = method in SAFE_METHODS or idempotency_key is not None
        attempts = self.max_attempts if retryable else 1
        delay = self.retry_backoff
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None

        owns_session = session is None
        if session is None:
            session = self.open_session()

        try:
            for attempt in range(1, attempts + 1):
                if abort is not None and abort.is_set():
                    raise TransportError(f"{method} {path} was cancelled", kind=TransportErrorKind.CANCELLED)

                logger.debug(f"{method} {path} (attempt {attempt}/{attempts})")
                try:
                    response = session.request(
                        method,
                        url,
                        json=body,
                        headers=headers,
                        timeout=self.request_timeout,
                    )
                except requests.Timeout:
                    error = TransportError(
                        f"{method} {path} timed out after {self.request_timeout}s",
                        kind=TransportErrorKind.TIMEOUT,
                    )
                except requests.RequestException as e:
                    error = TransportError(f"Network error on {method} {path}: {e}", kind=TransportErrorKind.NETWORK)
                else:
                    if 200 <= response.status_code < 300:
                        return self._parse(response, method, path)
                    error = self._http_error(response, method, path)

                if attempt < attempts and error.is_transient:
                    logger.warning(f"{error.message} (attempt {attempt}/{attempts}), retrying in {delay:.1f}s")
                    time.sleep(delay)
                    delay *= 2
                    continue

                logger.error(f"{method} {path} failed: {error.message}")
                raise error
        finally:
            if owns_session:
                session.close()

    async def call(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        *,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        """Run ``request`` in a worker thread under the per-call deadline."""
        session = self.open_session()
        abort = threading.Event()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(
                    self.request,
                    method,
                    path,
                    body,
                    idempotency_key=idempotency_key,
                    session=session,
                    abort=abort,
                ),
                timeout=self.call_deadline,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{method} {path} exceeded the {self.call_deadline}s deadline")
            raise TransportError(
                f"{method} {path} timed out after {self.call_deadline}s",
                kind=TransportErrorKind.TIMEOUT,
            ) from None
        except asyncio.CancelledError:
            # Work already sent upstream is not rolled back
            logger.info(f"{method} {path} cancelled by caller")
            raise TransportError(f"{method} {path} was cancelled", kind=TransportErrorKind.CANCELLED) from None
        finally:
            abort.set()
            session.close()

    def _parse(self, response: requests.Response, method: str, path: str) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            payload = response.json()
        except ValueError:
            raise TransportError(
                f"{method} {path} returned a body that is not valid JSON",
                kind=TransportErrorKind.DECODE,
                status_code=response.status_code,
            )
        if not isinstance(payload, dict) or "data" not in payload:
            raise FormatError(f"{method} {path} response has no 'data' field")
        return payload["data"]

    def _http_error(self, response: requests.Response, method: str, path: str) -> TransportError:
        status = response.status_code
        detail = ""
        try:
            payload = response.json()
            if isinstance(payload, dict):
                detail = str(payload.get("message") or payload.get("error") or "")
        except ValueError:
            pass
        if not detail:
            detail = (response.text or "").strip()[:500]

        hint = STATUS_HINTS.get(status, f"API returned HTTP {status}")
        message = f"{hint} ({method} {path})"
        if detail:
            message = f"{message}: {detail}"
        return TransportError(message, kind=TransportErrorKind.HTTP, status_code=status)

    # Products

    async def list_products(self) -> List[Product]:
        return decode_list(Product, await self.call("GET", "/product"))

    async def get_product(self, product_id: str) -> Product:
        return decode(Product, await self.call("GET", f"/product/{_segment(product_id)}"))

    # Cart

    async def get_cart(self) -> Cart:
        return decode(Cart, await self.call("GET", "/cart"))

    async def add_cart_item(self, product_variant_id: str, quantity: int) -> Cart:
        data = await self.call("PUT", "/cart/item", {"productVariantID": product_variant_id, "quantity": quantity})
        return decode(Cart, data)

    async def set_cart_address(self, address_id: str) -> None:
        await self.call("PUT", "/cart/address", {"addressID": address_id})

    async def set_cart_card(self, card_id: str) -> None:
        await self.call("PUT", "/cart/card", {"cardID": card_id})

    async def clear_cart(self) -> None:
        await self.call("DELETE", "/cart")

    async def convert_cart(self, idempotency_key: Optional[str] = None) -> Order:
        return decode(Order, await self.call("POST", "/cart/convert", idempotency_key=idempotency_key))

    # Orders

    async def list_orders(self) -> List[Order]:
        return decode_list(Order, await self.call("GET", "/order"))

    async def create_order(
        self,
        variants: Dict[str, int],
        address_id: str,
        card_id: str,
        idempotency_key: Optional[str] = None,
    ) -> str:
        body = {"variants": variants, "addressID": address_id, "cardID": card_id}
        return decode_id(await self.call("POST", "/order", body, idempotency_key=idempotency_key), "order")

    # Profile

    async def get_profile(self) -> Profile:
        return decode(Profile, await self.call("GET", "/profile"))

    async def update_profile(self, name: Optional[str] = None, email: Optional[str] = None) -> Profile:
        body = {}
        if name is not None:
            body["name"] = name
        if email is not None:
            body["email"] = email
        return decode(Profile, await self.call("PUT", "/profile", body))

    # Addresses

    async def list_addresses(self) -> List[Address]:
        return decode_list(Address, await self.call("GET", "/address"))

    async def create_address(self, address: Dict[str, Any]) -> str:
        return decode_id(await self.call("POST", "/address", address), "address")

    async def delete_address(self, address_id: str) -> None:
        await self.call("DELETE", f"/address/{_segment(address_id)}")

    # Cards

    async def list_cards(self) -> List[Card]:
        return decode_list(Card, await self.call("GET", "/card"))

    async def collect_card(self) -> CardCollection:
        return decode(CardCollection, await self.call("POST", "/card/collect"))

    async def create_card(self, token: str) -> str:
        return decode_id(await self.call("POST", "/card", {"token": token}), "card")

    async def delete_card(self, card_id: str) -> None:
        await self.call("DELETE", f"/card/{_segment(card_id)}")

    # Subscriptions

    async def list_subscriptions(self) -> List[Subscription]:
        return decode_list(Subscription, await self.call("GET", "/subscription"))

    async def create_subscription(self, subscription: Dict[str, Any], idempotency_key: Optional[str] = None) -> Any:
        return await self.call("POST", "/subscription", subscription, idempotency_key=idempotency_key)

    async def cancel_subscription(self, subscription_id: str) -> None:
        await self.call("DELETE", f"/subscription/{_segment(subscription_id)}")

    # Tokens

    async def create_token(self) -> AccessToken:
        return decode(AccessToken, await self.call("POST", "/token"))

    async def delete_token(self, token_id: str) -> None:
        await self.call("DELETE", f"/token/{_segment(token_id)}")

    # Aggregated view

    async def get_app_data(self) -> AppData:
        return decode(AppData, await self.call("GET", "/view/init"))
