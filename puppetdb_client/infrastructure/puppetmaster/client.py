from __future__ import annotations

from typing import Any, Callable, List, Optional

from ...application.mappers import (
    certificate_from_json,
    decode_many,
    jruby_experimental_from_json,
    master_experimental_from_json,
    profiler_experimental_from_json,
    service_experimental_from_json,
    service_status_from_json,
)
from ...domain.errors import ContractError
from ...domain.interfaces import AttemptLogger, Transport
from ...domain.models import CERTIFICATE_STATES, Certificate, ServiceStatus
from ..config import puppetmaster_url
from ..http import JsonClient, build_url, quote_segment

STATUS_PREFIX = "/status/v1/services/"
CA_PREFIX = "/puppet-ca/v1/"

STATUS_SERVICES = ("jruby-metrics", "master", "puppet-profiler", "status-service")


class PuppetMasterClient(JsonClient):
    """Client for a Puppet master: status-service debug metrics and the CA API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[Transport] = None,
        attempt_logger: Optional[AttemptLogger] = None,
    ) -> None:
        super().__init__(base_url or puppetmaster_url(), transport, attempt_logger)

    # --- status service ---
    def status_url(self, service: str) -> str:
        if service not in STATUS_SERVICES:
            raise ContractError(f"Unknown status service '{service}'; expected one of {', '.join(STATUS_SERVICES)}")
        return build_url(self.base_url, STATUS_PREFIX, service, {"level": "debug"})

    def _status(self, service: str, decode_experimental: Callable[[dict], object]) -> ServiceStatus:
        return service_status_from_json(self._get_json(self.status_url(service)), decode_experimental)

    def profiler(self) -> ServiceStatus:
        return self._status("puppet-profiler", profiler_experimental_from_json)

    def jruby(self) -> ServiceStatus:
        return self._status("jruby-metrics", jruby_experimental_from_json)

    def master(self) -> ServiceStatus:
        return self._status("master", master_experimental_from_json)

    def service(self) -> ServiceStatus:
        return self._status("status-service", service_experimental_from_json)

    # --- certificate authority ---
    def _certificate_url(self, certname: str) -> str:
        if not certname:
            raise ContractError("certname must be non-empty")
        return build_url(self.base_url, CA_PREFIX, f"certificate_status/{quote_segment(certname)}")

    def certificates(self) -> List[Certificate]:
        raw = self._get_json(build_url(self.base_url, CA_PREFIX, "certificate_statuses/any"))
        return decode_many(raw, certificate_from_json)

    def certificate(self, certname: str) -> Certificate:
        return certificate_from_json(self._get_json(self._certificate_url(certname)))

    def update_certificate_state(self, certname: str, state: str) -> int:
        """Ask the CA to move a certificate to ``state`` (signed or revoked).

        Returns the HTTP status code; the CA answers 204 on success and 4xx
        with a plain-text reason otherwise.
        """
        if state not in CERTIFICATE_STATES:
            raise ContractError(f"Unknown certificate state '{state}'; expected one of {', '.join(CERTIFICATE_STATES)}")
        resp = self._send("PUT", self._certificate_url(certname), json_body={"desired_state": state})
        return resp.status_code

    def delete_certificate(self, certname: str) -> int:
        """Remove a certificate (or pending request) from the CA; returns the HTTP status code."""
        resp = self._send("DELETE", self._certificate_url(certname))
        return resp.status_code

    def get(self, path: str) -> Any:
        """Raw JSON from any path on the master, e.g. ``status/v1/services``."""
        if not path.startswith("/"):
            path = "/" + path
        return self._get_json(build_url(self.base_url, "", path))
