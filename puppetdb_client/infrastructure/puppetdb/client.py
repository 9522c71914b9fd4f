from __future__ import annotations

from typing import Any, List, Mapping, Optional

from ...application.mappers import (
    decode_many,
    event_count_from_json,
    event_from_json,
    fact_from_json,
    fact_name_from_json,
    metric_value_from_json,
    node_from_json,
    report_from_json,
    resource_from_json,
    version_from_json,
)
from ...application.query import encode, merge_params, query_param
from ...domain.errors import ContractError
from ...domain.interfaces import AttemptLogger, Transport
from ...domain.models import Event, EventCount, Fact, Node, Report, Resource, Version
from ..config import puppetdb_url
from ..http import JsonClient, build_url, quote_segment

API_PREFIX = "/pdb/query/v4/"

MBEAN_RESOURCES_PER_NODE = "com.puppetlabs.puppetdb.query.population:type=default,name=avg-resources-per-node"
MBEAN_NUM_RESOURCES = "com.puppetlabs.puppetdb.query.population:type=default,name=num-resources"
MBEAN_NUM_NODES = "com.puppetlabs.puppetdb.query.population:type=default,name=num-nodes"


class PuppetDBClient(JsonClient):
    """Client for the PuppetDB v4 query API.

    Every ``query`` argument accepts either a query expression such as
    ``["=", "certname", "web01"]`` (encoded here) or an already encoded
    string. ``extra_params`` are merged after the query and win on collision.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[Transport] = None,
        attempt_logger: Optional[AttemptLogger] = None,
    ) -> None:
        super().__init__(base_url or puppetdb_url(), transport, attempt_logger)

    def url(self, endpoint: str, params: Optional[Mapping[str, str]] = None) -> str:
        return build_url(self.base_url, API_PREFIX, endpoint, params)

    def get(self, endpoint: str, params: Optional[Mapping[str, str]] = None) -> Any:
        """GET ``endpoint`` under the query prefix and return the decoded JSON body."""
        return self._get_json(self.url(endpoint, params))

    def _query(self, endpoint: str, query: Any, extra_params: Optional[Mapping[str, str]]) -> Any:
        return self.get(endpoint, merge_params("query", query_param(query), extra_params))

    def nodes(self, query: Any = None, extra_params: Optional[Mapping[str, str]] = None) -> List[Node]:
        return decode_many(self._query("nodes", query, extra_params), node_from_json)

    def fact_names(self) -> List[str]:
        return decode_many(self.get("fact-names"), fact_name_from_json)

    def node_facts(self, node: str) -> List[Fact]:
        """All facts for one node."""
        if not node:
            raise ContractError("node must be a non-empty certname")
        return decode_many(self.get(f"nodes/{quote_segment(node)}/facts"), fact_from_json)

    def fact_per_node(self, fact: str) -> List[Fact]:
        """The value of one fact on every node."""
        if not fact:
            raise ContractError("fact must be a non-empty fact name")
        return decode_many(self.get(f"facts/{quote_segment(fact)}"), fact_from_json)

    def facts(self, query: Any = None, extra_params: Optional[Mapping[str, str]] = None) -> List[Fact]:
        return decode_many(self._query("facts", query, extra_params), fact_from_json)

    def events(self, query: Any = None, extra_params: Optional[Mapping[str, str]] = None) -> List[Event]:
        return decode_many(self._query("events", query, extra_params), event_from_json)

    def event_counts(
        self,
        query: Any = None,
        summarize_by: str = "",
        extra_params: Optional[Mapping[str, str]] = None,
    ) -> List[EventCount]:
        """Aggregate event counts.

        ``summarize_by`` (certname, resource or containing_class) is sent as
        ``summarize-by`` and merged after ``query`` + ``extra_params``, so a
        ``summarize-by`` key in ``extra_params`` still overrides it.
        """
        params = merge_params("query", query_param(query), extra_params)
        params = merge_params("summarize-by", summarize_by, params)
        return decode_many(self.get("event-counts", params), event_count_from_json)

    def resources(self, query: Any = None, extra_params: Optional[Mapping[str, str]] = None) -> List[Resource]:
        return decode_many(self._query("resources", query, extra_params), resource_from_json)

    def reports(self, query: Any = None, extra_params: Optional[Mapping[str, str]] = None) -> List[Report]:
        return decode_many(self._query("reports", query, extra_params), report_from_json)

    def report_by_hash(self, report_hash: str) -> List[Report]:
        if not report_hash:
            raise ContractError("report hash must be non-empty")
        return self.reports(encode(["=", "hash", report_hash]))

    def version(self) -> Version:
        return version_from_json(self.get("version"))

    def metric(self, name: str) -> Any:
        """Raw JSON of one mbean under ``metrics/mbean/``."""
        return self.get(f"metrics/mbean/{quote_segment(name)}")

    def metric_value(self, name: str) -> float:
        return metric_value_from_json(self.metric(name))

    def metric_resources_per_node(self) -> float:
        return self.metric_value(MBEAN_RESOURCES_PER_NODE)

    def metric_num_resources(self) -> float:
        return self.metric_value(MBEAN_NUM_RESOURCES)

    def metric_num_nodes(self) -> float:
        return self.metric_value(MBEAN_NUM_NODES)
