"""
Shared fixtures: settings, a scripted fake of the upstream API, and payload builders.
"""

import json
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import pytest
import requests

from terminal_mcp.config import Settings
from terminal_mcp.terminal_client import TerminalClient

TEST_TOKEN = "trm_test_0123456789"


def make_response(
    status_code: int = 200,
    payload: Any = None,
    text: Optional[str] = None,
) -> requests.Response:
    """Build a real requests.Response with a JSON (or raw text) body."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    if text is not None:
        response._content = text.encode("utf-8")
        response.headers["Content-Type"] = "text/plain"
    elif payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


def data(value: Any, status_code: int = 200) -> requests.Response:
    """A successful API response wrapping ``value`` in the ``data`` envelope."""
    return make_response(status_code, {"data": value})


Scripted = Union[requests.Response, Exception]


class FakeSession:
    """Stands in for requests.Session; answers from the upstream's script."""

    def __init__(self, upstream: "FakeUpstream"):
        self.upstream = upstream
        self.headers: Dict[str, str] = {}
        self.closed = False

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.upstream.calls.append({
            "method": method,
            "url": url,
            "json": json,
            "headers": {**self.headers, **(headers or {})},
            "timeout": timeout,
        })
        if not self.upstream.script:
            raise AssertionError(f"Unexpected upstream call: {method} {url}")
        outcome = self.upstream.script.popleft()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


class FakeUpstream:
    """Scripted Terminal.shop API. Each request consumes the next scripted outcome."""

    def __init__(self):
        self.script: Deque[Scripted] = deque()
        self.calls: List[Dict[str, Any]] = []
        self.sessions: List[FakeSession] = []

    def respond(self, *outcomes: Scripted) -> "FakeUpstream":
        self.script.extend(outcomes)
        return self

    def session_factory(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session


@pytest.fixture
def settings() -> Settings:
    return Settings(
        bearer_token=TEST_TOKEN,
        api_url="https://api.terminal.test",
        request_timeout=2.0,
        call_deadline=5.0,
        max_attempts=3,
        retry_backoff=0.5,
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def client(settings, upstream) -> TerminalClient:
    return TerminalClient(settings, session_factory=upstream.session_factory)


@pytest.fixture
def no_sleep(monkeypatch) -> List[float]:
    """Record retry delays instead of sleeping."""
    delays: List[float] = []
    monkeypatch.setattr("terminal_mcp.terminal_client.time.sleep", delays.append)
    return delays


@pytest.fixture
def mock_client() -> AsyncMock:
    return AsyncMock(spec=TerminalClient)


# Payload builders

def product_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "id": "prd_cron",
        "name": "cron",
        "description": "Single origin espresso from Ethiopia.",
        "variants": [{"id": "var_cron_12oz", "name": "12oz bag", "price": 2200}],
        "tags": {"app": "cron", "color": "#8a4baf"},
        "subscription": "allowed",
    }
    payload.update(overrides)
    return payload


def cart_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "items": [
            {"id": "itm_1", "productVariantID": "var_a", "quantity": 2, "subtotal": 500},
            {"id": "itm_2", "productVariantID": "var_b", "quantity": 1, "subtotal": 300},
        ],
        "subtotal": 800,
        "addressID": "shp_home",
        "cardID": "crd_visa",
        "amount": {"subtotal": 800, "shipping": 200},
    }
    payload.update(overrides)
    return payload


def order_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "id": "ord_123",
        "index": 4,
        "shipping": {
            "name": "Ada Lovelace",
            "street1": "1 Analytical Way",
            "city": "London",
            "province": "LDN",
            "country": "GB",
            "zip": "N1 9GU",
        },
        "tracking": {"service": "USPS", "number": "9400100", "url": "https://tools.usps.com/track"},
        "items": [{"id": "itm_1", "productVariantID": "var_a", "quantity": 2, "amount": 1000}],
        "amount": {"subtotal": 1000, "shipping": 500},
    }
    payload.update(overrides)
    return payload


def subscription_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "id": "sub_1",
        "productVariantID": "var_a",
        "quantity": 1,
        "addressID": "shp_home",
        "cardID": "crd_visa",
        "schedule": {"type": "weekly", "interval": 3},
        "next": "2026-11-02T09:00:00Z",
    }
    payload.update(overrides)
    return payload


def profile_payload(**overrides) -> Dict[str, Any]:
    user = {
        "id": "usr_1",
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "fingerprint": "SHA256:abc",
        "stripeCustomerID": "cus_1",
    }
    user.update(overrides)
    return {"user": user}
