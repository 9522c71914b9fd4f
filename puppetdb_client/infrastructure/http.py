from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Tuple, Union
from urllib.parse import quote, quote_plus

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from ..domain.errors import HttpStatusError, SchemaError, TransportError
from ..domain.interfaces import AttemptLogger, HttpResponse, Transport
from . import config
from .logging import LoggingAttemptLogger, NullAttemptLogger
from .timeouts import http_timeout_seconds


def quote_segment(segment: str) -> str:
    """Percent-encode one caller-supplied path segment (certname, fact, mbean name)."""
    return quote(segment, safe=":=,")


def build_url(base: str, api_prefix: str, endpoint: str, params: Optional[Mapping[str, str]] = None) -> str:
    """Join base, API prefix and endpoint, then append the escaped query string.

    Parameter order follows the mapping's iteration order and is not part of
    the contract; compare parsed query strings, not raw URLs.
    """
    url = f"{base.rstrip('/')}{api_prefix}{endpoint}"
    if not params:
        return url
    if "?" not in endpoint:
        url += "?"
    elif not url.endswith(("?", "&")):
        url += "&"
    return url + "&".join(f"{quote_plus(str(k))}={quote_plus(str(v))}" for k, v in params.items())


class RequestsTransport(Transport):
    """Transport on a requests Session.

    Args:
        cert: Client certificate path (mutual TLS); requires ``key``.
        key: Private key path for ``cert``.
        ca: CA bundle used to verify the service.
        insecure: Skip certificate verification (self-signed masters).
        timeout: Overall per-request timeout in seconds; None waits forever.
        session: Pre-built session, mainly for tests.
    """

    def __init__(
        self,
        cert: Optional[str] = None,
        key: Optional[str] = None,
        ca: Optional[str] = None,
        insecure: bool = False,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._session = session or requests.Session()
        if cert and key:
            self._session.cert = (cert, key)
        elif cert:
            self._session.cert = cert
        verify: Union[bool, str] = True
        if insecure:
            # the master is often reached with a self-signed certificate
            urllib3.disable_warnings(InsecureRequestWarning)
            verify = False
        elif ca:
            verify = ca
        self._session.verify = verify
        self._timeout = timeout

    @classmethod
    def from_env(cls) -> "RequestsTransport":
        return cls(
            cert=config.client_cert(),
            key=config.client_key(),
            ca=config.ca_bundle(),
            insecure=config.insecure(),
            timeout=http_timeout_seconds(),
        )

    @property
    def cert(self) -> Union[None, str, Tuple[str, str]]:
        return self._session.cert

    @property
    def verify(self) -> Union[bool, str]:
        return self._session.verify

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def request(self, method: str, url: str, json_body: Optional[Any] = None) -> HttpResponse:
        kwargs: dict = {"timeout": self._timeout}
        if json_body is not None:
            kwargs["json"] = json_body
        try:
            r = self._session.request(method, url, **kwargs)
        except requests.RequestException as ex:
            raise TransportError(f"{method} {url} failed: {ex}") from ex
        return HttpResponse(status_code=r.status_code, body=r.content or b"")

    def close(self) -> None:
        self._session.close()


def parse_json_body(body: bytes, url: str) -> Any:
    """Decode the first JSON value in ``body``; trailing bytes after it are ignored."""
    try:
        text = body.decode("utf-8").lstrip()
        value, _ = json.JSONDecoder().raw_decode(text)
    except (UnicodeDecodeError, ValueError) as ex:
        raise SchemaError(f"Response from {url} is not JSON: {ex}") from ex
    return value


class JsonClient:
    """Shared plumbing for the PuppetDB and master clients: trace, send, decode."""

    def __init__(
        self,
        base_url: str,
        transport: Optional[Transport] = None,
        attempt_logger: Optional[AttemptLogger] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._transport = transport or RequestsTransport.from_env()
        if attempt_logger is None:
            attempt_logger = LoggingAttemptLogger() if config.verbose() else NullAttemptLogger()
        self._attempts = attempt_logger

    @classmethod
    def from_host(
        cls,
        host: str,
        port: int,
        ssl: bool = False,
        transport: Optional[Transport] = None,
        attempt_logger: Optional[AttemptLogger] = None,
    ):
        """Build a client for ``http(s)://host:port``."""
        return cls(config.base_url(host, port, ssl), transport, attempt_logger)

    def _send(self, method: str, url: str, json_body: Optional[Any] = None) -> HttpResponse:
        self._attempts.record_attempt(method, url)
        return self._transport.request(method, url, json_body=json_body)

    def _get_json(self, url: str) -> Any:
        resp = self._send("GET", url)
        if not 200 <= resp.status_code < 300:
            raise HttpStatusError(resp.status_code, url, resp.body.decode("utf-8", errors="replace"))
        return parse_json_body(resp.body, url)
