from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class HttpResponse:
    """Outcome of one round trip.

    Fields:
        status_code: HTTP status returned by the service.
        body: Raw response bytes (may be empty, e.g. for 204).
    """
    status_code: int
    body: bytes = b""


class Transport(ABC):
    """Port for the HTTP layer (e.g., a requests Session with TLS settings)."""

    @abstractmethod
    def request(self, method: str, url: str, json_body: Optional[Any] = None) -> HttpResponse:
        """Perform a single request and return status plus body.

        Raises:
            TransportError: Connection, TLS or timeout failures.
        """
        raise NotImplementedError


class AttemptLogger(ABC):
    """Port for recording outgoing requests (the verbose trace)."""

    @abstractmethod
    def record_attempt(self, method: str, url: str) -> None:
        """Record that ``method url`` is about to be sent."""
        raise NotImplementedError
