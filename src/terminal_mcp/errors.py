"""
Error types shared by the client, the operation registry and the server.

Layers raise these; the operation registry converts them into failure
results so nothing escapes to the calling protocol.
"""

from enum import Enum
from typing import Any, Dict, Optional


class TerminalError(Exception):
    """Base exception for Terminal.shop adapter errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(TerminalError):
    """Raised at startup when required configuration is missing or invalid."""
    pass


class ValidationError(TerminalError):
    """Raised when operation input fails schema or cross-field checks."""
    pass


class FormatError(TerminalError):
    """Raised when an upstream payload lacks a field essential to identity."""
    pass


class TransportErrorKind(str, Enum):
    HTTP = "http"
    NETWORK = "network"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    DECODE = "decode"


class TransportError(TerminalError):
    """Raised when an upstream call fails: network, timeout, cancellation or non-2xx."""

    def __init__(
        self,
        message: str,
        kind: TransportErrorKind = TransportErrorKind.NETWORK,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.kind = kind
        self.status_code = status_code
        self.details.setdefault("reason", kind.value)
        if status_code is not None:
            self.details.setdefault("status_code", status_code)

    @property
    def is_transient(self) -> bool:
        """Whether a retry of an idempotent request may succeed."""
        if self.kind in (TransportErrorKind.NETWORK, TransportErrorKind.TIMEOUT):
            return True
        return self.kind == TransportErrorKind.HTTP and (self.status_code or 0) >= 500
