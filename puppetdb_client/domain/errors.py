from __future__ import annotations

from typing import Optional


class PuppetDBError(Exception):
    """Base class for every error raised by this package."""


class EncodeError(PuppetDBError, ValueError):
    """Raised when a query expression cannot be serialized to the wire format."""


class TypeMismatch(PuppetDBError, TypeError):
    """Raised when a JsonValue is extracted as the wrong kind."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class SchemaError(PuppetDBError, ValueError):
    """Raised when a response body does not have the expected JSON shape."""


class TransportError(PuppetDBError, RuntimeError):
    """Raised when the HTTP round trip itself fails."""


class HttpStatusError(TransportError):
    """Raised when the service answers a GET with a non-2xx status."""

    def __init__(self, status_code: int, url: str, body: Optional[str] = None) -> None:
        super().__init__(f"HTTP {status_code} for {url}")
        self.status_code = status_code
        self.url = url
        self.body = body


class ContractError(PuppetDBError, ValueError):
    """Raised when a request violates documented contract (e.g., empty certname)."""
