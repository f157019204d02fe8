import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

# Terminal.shop API configuration
TERMINAL_API_URL = "https://api.terminal.shop"
TOKEN_ENV_VAR = "TERMINAL_BEARER_TOKEN"
USER_AGENT = "terminal-shop-mcp/1.0"

# Request behaviour
REQUEST_TIMEOUT = 10.0   # seconds per HTTP attempt
CALL_DEADLINE = 30.0     # seconds per operation, retries included
MAX_ATTEMPTS = 3         # GET, or mutations with an idempotency key
RETRY_BACKOFF = 0.5      # seconds, doubled after each failed attempt

# MCP server configuration
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8070
DEFAULT_TRANSPORT = "stdio"


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero, got {raw!r}")
    return value


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, loaded once at startup and passed explicitly."""

    bearer_token: str = field(repr=False)
    api_url: str = TERMINAL_API_URL
    request_timeout: float = REQUEST_TIMEOUT
    call_deadline: float = CALL_DEADLINE
    max_attempts: int = MAX_ATTEMPTS
    retry_backoff: float = RETRY_BACKOFF
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    transport: str = DEFAULT_TRANSPORT

    def __post_init__(self):
        if not self.bearer_token or not self.bearer_token.strip():
            raise ConfigurationError(f"{TOKEN_ENV_VAR} environment variable is required")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the process environment (or an explicit mapping).

        Raises:
            ConfigurationError: if the bearer token is missing or a numeric
                override cannot be parsed.
        """
        if env is None:
            env = os.environ

        transport = env.get("TRANSPORT", DEFAULT_TRANSPORT).strip().lower()
        if transport not in ("stdio", "sse"):
            raise ConfigurationError(f"TRANSPORT must be 'stdio' or 'sse', got {transport!r}")

        return cls(
            bearer_token=env.get(TOKEN_ENV_VAR, "").strip(),
            api_url=env.get("TERMINAL_API_URL", TERMINAL_API_URL).rstrip("/"),
            request_timeout=_read_float(env, "TERMINAL_REQUEST_TIMEOUT", REQUEST_TIMEOUT),
            call_deadline=_read_float(env, "TERMINAL_CALL_DEADLINE", CALL_DEADLINE),
            max_attempts=_read_int(env, "TERMINAL_MAX_ATTEMPTS", MAX_ATTEMPTS),
            retry_backoff=_read_float(env, "TERMINAL_RETRY_BACKOFF", RETRY_BACKOFF),
            host=env.get("HOST", DEFAULT_HOST),
            port=_read_int(env, "PORT", DEFAULT_PORT),
            transport=transport,
        )
