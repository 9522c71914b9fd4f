"""
Unit tests for PuppetDBClient.

Each test answers the request with a canned PuppetDB response through a mocked
Transport and checks both the URL that was built and the decoded records.
"""

from unittest.mock import Mock
from urllib.parse import parse_qs, urlsplit

import pytest

from puppetdb_client.domain.errors import ContractError, HttpStatusError, SchemaError
from puppetdb_client.domain.interfaces import AttemptLogger
from puppetdb_client.domain.models import Version
from puppetdb_client.infrastructure.logging import NullAttemptLogger
from puppetdb_client.infrastructure.puppetdb.client import (
    MBEAN_NUM_NODES,
    MBEAN_RESOURCES_PER_NODE,
    PuppetDBClient,
)

BASE = "http://puppetdb:8080"


@pytest.fixture
def client(transport):
    return PuppetDBClient(BASE, transport=transport, attempt_logger=NullAttemptLogger())


def sent_url(transport):
    """URL of the single request the mock transport received."""
    args, _ = transport.request.call_args
    return args[1]


def sent_params(transport):
    return parse_qs(urlsplit(sent_url(transport)).query)


class TestNodes:
    """Test the nodes endpoint."""

    def test_nodes(self, client, respond, node_payload):
        transport = respond([node_payload])

        nodes = client.nodes()

        transport.request.assert_called_once_with("GET", f"{BASE}/pdb/query/v4/nodes", json_body=None)
        assert len(nodes) == 1
        assert nodes[0].certname == "nodename"
        assert nodes[0].latest_report_status == "unchanged"

    def test_nodes_with_query_and_extra_params(self, client, transport):
        client.nodes(["=", "certname", "web01"], {"limit": "5"})

        assert urlsplit(sent_url(transport)).path == "/pdb/query/v4/nodes"
        assert sent_params(transport) == {"query": ['["=","certname","web01"]'], "limit": ["5"]}

    def test_pre_encoded_query_is_sent_unchanged(self, client, transport):
        client.nodes('["~", "certname", "web"]')
        assert sent_params(transport) == {"query": ['["~", "certname", "web"]']}

    def test_object_response_is_schema_error(self, client, respond, node_payload):
        respond(node_payload)
        with pytest.raises(SchemaError):
            client.nodes()

    def test_server_error(self, client, respond):
        respond(b"boom", status=500)
        with pytest.raises(HttpStatusError) as info:
            client.nodes()
        assert info.value.status_code == 500


class TestFacts:
    """Test the fact endpoints."""

    def test_node_facts(self, client, respond):
        transport = respond(
            [{"certname": "node123", "name": "uptime_seconds", "value": "9708003", "environment": "production"}]
        )

        facts = client.node_facts("node123")

        assert sent_url(transport) == f"{BASE}/pdb/query/v4/nodes/node123/facts"
        assert facts[0].value.as_string() == "9708003"

    def test_fact_per_node(self, client, respond):
        transport = respond([{"certname": "a", "name": "os", "value": {"family": "Debian"}}])

        facts = client.fact_per_node("os")

        assert sent_url(transport) == f"{BASE}/pdb/query/v4/facts/os"
        assert facts[0].value.to_python() == {"family": "Debian"}

    def test_certname_is_path_escaped(self, client, transport):
        client.node_facts("we b/01")
        assert sent_url(transport) == f"{BASE}/pdb/query/v4/nodes/we%20b%2F01/facts"

    def test_fact_names(self, client, respond):
        transport = respond(["fact1", "fact2", "fact3"])
        assert client.fact_names() == ["fact1", "fact2", "fact3"]
        assert sent_url(transport) == f"{BASE}/pdb/query/v4/fact-names"

    def test_facts_query(self, client, transport):
        client.facts(["=", "name", "osfamily"])
        assert sent_params(transport) == {"query": ['["=","name","osfamily"]']}

    @pytest.mark.parametrize("method", ["node_facts", "fact_per_node"])
    def test_empty_name_is_contract_error(self, client, transport, method):
        with pytest.raises(ContractError):
            getattr(client, method)("")
        transport.request.assert_not_called()


class TestEvents:
    """Test events and event counts."""

    def test_events_params(self, client, respond):
        transport = respond([{"certname": "web01", "status": "failure", "old_value": "stopped"}])

        events = client.events(["=", "status", "failure"], {"limit": "10", "order_by": '[{"field":"timestamp"}]'})

        assert sent_params(transport) == {
            "query": ['["=","status","failure"]'],
            "limit": ["10"],
            "order_by": ['[{"field":"timestamp"}]'],
        }
        assert events[0].old_value.as_string() == "stopped"

    def test_event_counts_sends_summarize_by(self, client, respond):
        transport = respond(
            [
                {
                    "subject": {"title": "node123"},
                    "subject-type": "certname",
                    "failures": 0,
                    "successes": 1,
                    "noops": 0,
                    "skips": 0,
                }
            ]
        )

        counts = client.event_counts(["=", "certname", "node123"], "certname")

        assert urlsplit(sent_url(transport)).path == "/pdb/query/v4/event-counts"
        assert sent_params(transport) == {"query": ['["=","certname","node123"]'], "summarize-by": ["certname"]}
        assert counts[0].subject == {"title": "node123"}
        assert counts[0].successes == 1

    def test_event_counts_extra_param_overrides_summarize_by(self, client, transport):
        client.event_counts(None, "certname", {"summarize-by": "resource"})
        assert sent_params(transport) == {"summarize-by": ["resource"]}


class TestReports:
    """Test report queries."""

    def test_reports_in_kebab_case(self, client, respond):
        respond(
            [
                {
                    "certname": "node123",
                    "hash": "abcdefg",
                    "puppet-version": "3.2.4-1",
                    "report-format": 3,
                    "start-time": "2013-12-30T19:15:05.314Z",
                    "end-time": "2013-12-30T19:15:51.521Z",
                    "receive-time": "2013-12-30T19:16:14.911Z",
                    "transaction-uuid": None,
                }
            ]
        )

        reports = client.reports()

        assert reports[0].puppet_version == "3.2.4-1"
        assert reports[0].report_format == 3
        assert reports[0].transaction_uuid == ""

    def test_report_by_hash(self, client, respond):
        transport = respond([{"certname": "node123", "hash": "abcdefg"}])

        reports = client.report_by_hash("abcdefg")

        assert sent_params(transport) == {"query": ['["=","hash","abcdefg"]']}
        assert reports[0].hash == "abcdefg"

    def test_report_by_empty_hash(self, client):
        with pytest.raises(ContractError):
            client.report_by_hash("")


class TestResourcesAndMetadata:
    """Test resources, version and metrics."""

    def test_resources(self, client, respond):
        transport = respond([{"certname": "web01", "type": "Service", "title": "nginx", "parameters": {"ensure": "running"}}])

        resources = client.resources(["=", "type", "Service"])

        assert urlsplit(sent_url(transport)).path == "/pdb/query/v4/resources"
        assert resources[0].parameters["ensure"].as_string() == "running"

    def test_version_tolerates_trailing_comma(self, client, respond):
        transport = respond(b'{"version": "2.2.0"},')
        assert client.version() == Version("2.2.0")
        assert sent_url(transport) == f"{BASE}/pdb/query/v4/version"

    def test_metric_resources_per_node(self, client, respond):
        transport = respond({"Value": 309.13})

        assert client.metric_resources_per_node() == 309.13
        assert sent_url(transport) == f"{BASE}/pdb/query/v4/metrics/mbean/{MBEAN_RESOURCES_PER_NODE}"

    def test_metric_num_nodes(self, client, respond):
        transport = respond({"Value": 42})
        assert client.metric_num_nodes() == 42.0
        assert sent_url(transport).endswith(MBEAN_NUM_NODES)

    def test_raw_metric(self, client, respond):
        respond({"Value": 1, "Count": 7})
        assert client.metric("some:type=x") == {"Value": 1, "Count": 7}


class TestClientSetup:
    """Test construction details."""

    def test_attempt_logger_sees_every_request(self, transport):
        attempts = Mock(spec=AttemptLogger)
        client = PuppetDBClient(BASE, transport=transport, attempt_logger=attempts)

        client.fact_names()

        attempts.record_attempt.assert_called_once_with("GET", f"{BASE}/pdb/query/v4/fact-names")

    def test_base_url_from_environment(self, transport, clean_environment, monkeypatch):
        monkeypatch.setenv("PUPPETDB_URL", "https://pdb.example.com:8081/")
        client = PuppetDBClient(transport=transport)
        assert client.base_url == "https://pdb.example.com:8081"

    def test_default_base_url(self, transport, clean_environment):
        assert PuppetDBClient(transport=transport).base_url == "http://localhost:8080"

    def test_from_host(self, respond):
        transport = respond({"version": "8.0.0"})
        client = PuppetDBClient.from_host("puppetdb", 8080, transport=transport, attempt_logger=NullAttemptLogger())
        client.version()
        assert sent_url(transport) == "http://puppetdb:8080/pdb/query/v4/version"
