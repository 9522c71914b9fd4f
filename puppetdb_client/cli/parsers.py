from __future__ import annotations

import argparse


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Query PuppetDB and drive the Puppet master CA")
    ap.add_argument("--url", default=None, help="PuppetDB base URL; defaults to $PUPPETDB_URL")
    ap.add_argument("--master-url", default=None, help="Puppet master base URL; defaults to $PUPPETMASTER_URL")
    ap.add_argument("--verbose", action="store_true", help="Log every request URL")
    sub = ap.add_subparsers(dest="cmd", required=False)

    add_query_subparser(sub, "nodes")
    add_query_subparser(sub, "events")
    add_query_subparser(sub, "resources")

    fc = add_query_subparser(sub, "facts")
    target = fc.add_mutually_exclusive_group()
    target.add_argument("--node", help="All facts of one node")
    target.add_argument("--fact", help="One fact across all nodes")

    sub.add_parser("fact-names")

    ec = add_query_subparser(sub, "event-counts")
    ec.add_argument("--summarize-by", required=True, choices=["certname", "resource", "containing_class"])

    rp = add_query_subparser(sub, "reports")
    rp.add_argument("--hash", dest="report_hash", help="Fetch the report with this hash")

    sub.add_parser("version")

    mt = sub.add_parser("metric")
    mt.add_argument("name", help="mbean name, or one of: resources-per-node, num-resources, num-nodes")

    ms = sub.add_parser("master-status")
    ms.add_argument("service", choices=["profiler", "jruby", "master", "service"])

    # Certificate authority on the master
    cs = sub.add_parser("certs")
    certs = cs.add_subparsers(dest="certs_cmd", required=True)
    certs.add_parser("list")
    show = certs.add_parser("show")
    show.add_argument("certname")
    upd = certs.add_parser("update-state")
    upd.add_argument("certname")
    upd.add_argument("state", choices=["signed", "revoked"])
    dl = certs.add_parser("delete")
    dl.add_argument("certname")

    return ap


def add_query_subparser(sub, name):
    """
    Adds a subparser for an endpoint that accepts a query plus extra parameters.

    Args:
        sub: The subparsers object from argparse.
        name: The name of the subcommand to add.

    Returns:
        argparse.ArgumentParser: The configured subparser.
    """
    result = sub.add_parser(name)
    result.add_argument("--query", default=None, help='Wire query as JSON, e.g. \'["=","certname","web01"]\'')
    result.add_argument(
        "--param",
        action="append",
        default=[],
        help="Extra query parameter as key=value (e.g. limit=10, order_by=...); can repeat",
    )
    return result
