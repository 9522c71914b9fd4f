"""
Pytest configuration and fixtures for puppetdb_client tests.

Provides a mocked Transport, canned service payloads and a clean environment.
"""

import json
from unittest.mock import Mock

import pytest

from puppetdb_client.domain.interfaces import HttpResponse, Transport


@pytest.fixture
def transport():
    """Mock transport answering every request with an empty JSON array."""
    mock = Mock(spec=Transport)
    mock.request.return_value = HttpResponse(status_code=200, body=b"[]")
    return mock


@pytest.fixture
def respond(transport):
    """Set the next response of the mock transport: respond(payload, status=200).

    ``payload`` may be raw bytes or any JSON-serializable value.
    """

    def _respond(payload, status=200):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        transport.request.return_value = HttpResponse(status_code=status, body=body)
        return transport

    return _respond


@pytest.fixture
def clean_environment(monkeypatch, tmp_path):
    """Drop PUPPETDB_* variables and run from an empty directory (no stray .env)."""
    for var in (
        "PUPPETDB_URL",
        "PUPPETMASTER_URL",
        "PUPPETDB_CERT",
        "PUPPETDB_KEY",
        "PUPPETDB_CA",
        "PUPPETDB_INSECURE",
        "PUPPETDB_TIMEOUT",
        "PUPPETDB_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def node_payload():
    """A nodes response row as returned by PuppetDB."""
    return {
        "deactivated": None,
        "latest_report_hash": "somehashqsdnqosdnlq",
        "facts_environment": "development",
        "cached_catalog_status": "on_failure",
        "report_environment": "development",
        "latest_report_corrective_change": None,
        "catalog_environment": "development",
        "facts_timestamp": "2019-01-30T09:46:27.804Z",
        "latest_report_noop": False,
        "expired": None,
        "latest_report_noop_pending": False,
        "report_timestamp": "2019-01-30T09:46:31.347Z",
        "certname": "nodename",
        "catalog_timestamp": "2018-12-07T08:46:24.216Z",
        "latest_report_job_id": None,
        "latest_report_status": "unchanged",
    }


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "cli: mark test as CLI command test")
