from __future__ import annotations

import dataclasses
import json
import sys
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..domain.errors import ContractError
from ..domain.values import JsonValue
from ..infrastructure.logging import LoggingAttemptLogger, get_logger
from ..infrastructure.puppetdb.client import (
    MBEAN_NUM_NODES,
    MBEAN_NUM_RESOURCES,
    MBEAN_RESOURCES_PER_NODE,
    PuppetDBClient,
)
from ..infrastructure.puppetmaster.client import PuppetMasterClient
from .parsers import build_parser

logger = get_logger("puppetdb_client.cli")

_METRIC_ALIASES = {
    "resources-per-node": MBEAN_RESOURCES_PER_NODE,
    "num-resources": MBEAN_NUM_RESOURCES,
    "num-nodes": MBEAN_NUM_NODES,
}


def _serialize(obj: Any) -> Any:
    """Convert records (and the JsonValues inside them) into JSON-ready data."""
    if isinstance(obj, JsonValue):
        return obj.to_python()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _serialize(getattr(obj, f.name)) for f in dataclasses.fields(obj) if f.name != "nulls"}
    if isinstance(obj, (list, tuple)):
        return [_serialize(it) for it in obj]
    if isinstance(obj, Mapping):
        return {str(k): _serialize(v) for k, v in obj.items()}
    return obj


def _parse_query(raw: Optional[str]) -> Any:
    """Parse a ``--query`` argument; the client re-encodes it compactly."""
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as ex:
        raise ContractError(f"--query is not valid JSON: {ex}") from ex


def _parse_params(pairs: Sequence[str]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ContractError(f"--param expects key=value, got '{pair}'")
        k, v = pair.split("=", 1)
        k = k.strip()
        if not k:
            raise ContractError(f"--param has an empty key: '{pair}'")
        params[k] = v
    return params


def _ok(result: Any) -> int:
    print(json.dumps({"status": "ok", "result": _serialize(result)}, indent=2))
    return 0


def run(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    ns = ap.parse_args(list(argv or []))

    attempts = LoggingAttemptLogger() if ns.verbose else None
    db = PuppetDBClient(base_url=ns.url, attempt_logger=attempts)
    master = PuppetMasterClient(base_url=ns.master_url, attempt_logger=attempts)

    try:
        return dispatch_commands(ns, db, master)
    except ContractError as ex:
        print(json.dumps({"status": "error", "error": f"{type(ex).__name__}: {ex}"}))
        return 2
    except Exception as ex:  # keep CLI concise and user-friendly
        print(json.dumps({"status": "error", "error": f"{type(ex).__name__}: {ex}"}))
        return 3


def dispatch_commands(ns, db, master):
    """
    Dispatches CLI commands to the PuppetDB or master client.

    Commands:
    - nodes, facts, fact-names, events, event-counts, resources, reports, version, metric: PuppetDB
    - master-status, certs: Puppet master
    """
    if ns.cmd == "nodes":
        return _ok(db.nodes(_parse_query(ns.query), _parse_params(ns.param)))
    if ns.cmd == "facts":
        return facts_command(ns, db)
    if ns.cmd == "fact-names":
        return _ok(db.fact_names())
    if ns.cmd == "events":
        return _ok(db.events(_parse_query(ns.query), _parse_params(ns.param)))
    if ns.cmd == "event-counts":
        return _ok(db.event_counts(_parse_query(ns.query), ns.summarize_by, _parse_params(ns.param)))
    if ns.cmd == "resources":
        return _ok(db.resources(_parse_query(ns.query), _parse_params(ns.param)))
    if ns.cmd == "reports":
        if getattr(ns, "report_hash", None):
            return _ok(db.report_by_hash(ns.report_hash))
        return _ok(db.reports(_parse_query(ns.query), _parse_params(ns.param)))
    if ns.cmd == "version":
        return _ok(db.version())
    if ns.cmd == "metric":
        name = _METRIC_ALIASES.get(ns.name, ns.name)
        return _ok({"name": name, "value": db.metric_value(name)})

    if ns.cmd == "master-status":
        return master_status(ns, master)
    if ns.cmd == "certs":
        return certs_command(ns, master)

    print(json.dumps({"status": "error", "error": f"Unknown command: {ns.cmd}"}))
    return 2


def facts_command(ns, db) -> int:
    """Facts for one node (--node), one fact everywhere (--fact), or a free query."""
    if getattr(ns, "node", None):
        facts = db.node_facts(ns.node)
    elif getattr(ns, "fact", None):
        facts = db.fact_per_node(ns.fact)
    else:
        facts = db.facts(_parse_query(ns.query), _parse_params(ns.param))
    logger.info("Facts fetched | count=%d", len(facts))
    return _ok(facts)


def master_status(ns, master) -> int:
    handlers = {
        "profiler": master.profiler,
        "jruby": master.jruby,
        "master": master.master,
        "service": master.service,
    }
    return _ok(handlers[ns.service]())


def certs_command(ns, master) -> int:
    """
    Certificate authority subcommands.

    update-state and delete print the HTTP status code returned by the CA and
    exit non-zero when it is not 2xx.
    """
    if ns.certs_cmd == "list":
        return _ok(master.certificates())
    if ns.certs_cmd == "show":
        return _ok(master.certificate(ns.certname))
    if ns.certs_cmd == "update-state":
        code = master.update_certificate_state(ns.certname, ns.state)
        logger.info("Certificate state update | certname=%s | state=%s | http=%d", ns.certname, ns.state, code)
        return _status_code_result(ns.certname, code)
    if ns.certs_cmd == "delete":
        code = master.delete_certificate(ns.certname)
        logger.info("Certificate delete | certname=%s | http=%d", ns.certname, code)
        return _status_code_result(ns.certname, code)
    print(json.dumps({"status": "error", "error": f"Unknown certs command: {ns.certs_cmd}"}))
    return 2


def _status_code_result(certname: str, code: int) -> int:
    ok = 200 <= code < 300
    print(json.dumps({"status": "ok" if ok else "error", "certname": certname, "http_status": code}, indent=2))
    return 0 if ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    return run(sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    raise SystemExit(main())
