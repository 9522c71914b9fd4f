from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from .values import JsonValue

_ABSENT = JsonValue.absent()


def _nulls() -> Any:
    # Names of fields whose key was missing or null in the payload.
    return field(default=frozenset(), compare=False, repr=False)


def _mapping() -> Any:
    # Read-only view; excluded from the hash.
    return field(default_factory=lambda: MappingProxyType({}), hash=False)


# --- PuppetDB query API ---

@dataclass(frozen=True)
class Node:
    """One row of the ``nodes`` endpoint.

    Timestamps are kept as the ISO-8601 strings the service returns.
    ``deactivated`` and ``expired`` are empty for active nodes; check
    ``nulls`` to tell a null from an empty string.
    """
    certname: str = ""
    deactivated: str = ""
    catalog_timestamp: str = ""
    facts_timestamp: str = ""
    catalog_environment: str = ""
    facts_environment: str = ""
    latest_report_hash: str = ""
    cached_catalog_status: str = ""
    report_environment: str = ""
    report_timestamp: str = ""
    latest_report_corrective_change: str = ""
    latest_report_noop: bool = False
    latest_report_noop_pending: bool = False
    expired: str = ""
    latest_report_job_id: str = ""
    latest_report_status: str = ""
    nulls: FrozenSet[str] = _nulls()


@dataclass(frozen=True)
class Fact:
    """A fact for one node. ``value`` is whatever JSON type the fact holds."""
    certname: str = ""
    environment: str = ""
    name: str = ""
    value: JsonValue = _ABSENT
    nulls: FrozenSet[str] = _nulls()


@dataclass(frozen=True)
class Event:
    """A single resource event."""
    certname: str = ""
    old_value: JsonValue = _ABSENT
    new_value: JsonValue = _ABSENT
    property: str = ""
    timestamp: str = ""
    resource_type: str = ""
    resource_title: str = ""
    message: str = ""
    report: str = ""
    status: str = ""
    file: str = ""
    line: int = 0
    containment_path: Tuple[str, ...] = ()
    containing_class: str = ""
    run_start_time: str = ""
    run_end_time: str = ""
    report_receive_time: str = ""
    nulls: FrozenSet[str] = _nulls()


@dataclass(frozen=True)
class EventCount:
    subject_type: str = ""
    subject: Mapping[str, str] = _mapping()
    failures: int = 0
    successes: int = 0
    noops: int = 0
    skips: int = 0
    nulls: FrozenSet[str] = _nulls()


@dataclass(frozen=True)
class LogEntry:
    new_value: str = ""
    property: str = ""
    file: str = ""
    line: str = ""
    tags: Tuple[str, ...] = ()
    time: str = ""
    level: str = ""
    source: str = ""
    message: str = ""
    nulls: FrozenSet[str] = _nulls()


@dataclass(frozen=True)
class ReportLogs:
    href: str = ""
    data: Tuple[LogEntry, ...] = ()


@dataclass(frozen=True)
class ReportMetric:
    name: str = ""
    value: float = 0.0
    category: str = ""
    nulls: FrozenSet[str] = _nulls()


@dataclass(frozen=True)
class ReportMetrics:
    href: str = ""
    data: Tuple[ReportMetric, ...] = ()


@dataclass(frozen=True)
class ReportResourceEvents:
    href: str = ""
    data: Tuple[Event, ...] = ()


@dataclass(frozen=True)
class Report:
    """A Puppet run report.

    ``logs``, ``metrics`` and ``resource_events`` are expanded sub-objects;
    unless the service was asked to expand them only ``href`` is set.
    """
    certname: str = ""
    puppet_version: str = ""
    hash: str = ""
    report_format: int = 0
    configuration_version: str = ""
    catalog_uuid: str = ""
    transaction_uuid: str = ""
    start_time: str = ""
    end_time: str = ""
    receive_time: str = ""
    noop: bool = False
    producer: str = ""
    corrective_change: str = ""
    producer_timestamp: str = ""
    cached_catalog_status: str = ""
    status: str = ""
    environment: str = ""
    code_id: str = ""
    job_id: str = ""
    noop_pending: bool = False
    logs: ReportLogs = ReportLogs()
    metrics: ReportMetrics = ReportMetrics()
    resource_events: ReportResourceEvents = ReportResourceEvents()
    nulls: FrozenSet[str] = _nulls()


@dataclass(frozen=True)
class Resource:
    certname: str = ""
    type: str = ""
    title: str = ""
    resource: str = ""
    file: str = ""
    line: int = 0
    exported: bool = False
    tags: Tuple[str, ...] = ()
    environment: str = ""
    parameters: Mapping[str, JsonValue] = _mapping()
    nulls: FrozenSet[str] = _nulls()


@dataclass(frozen=True)
class Version:
    version: str = ""


# --- Puppet master status service ---

@dataclass(frozen=True)
class TimedMetric:
    """Count/mean/aggregate triple shared by profiler and http metrics.

    ``key`` holds the identifying column: function, resource, metric or
    route-id depending on the table it came from.
    """
    key: str = ""
    count: int = 0
    mean: int = 0
    aggregate: int = 0


@dataclass(frozen=True)
class ProfilerExperimental:
    function_metrics: Tuple[TimedMetric, ...] = ()
    resource_metrics: Tuple[TimedMetric, ...] = ()
    catalog_metrics: Tuple[TimedMetric, ...] = ()
    puppetdb_metrics: Tuple[TimedMetric, ...] = ()


@dataclass(frozen=True)
class JrubyPoolLockStatus:
    current_state: str = ""
    last_change_time: str = ""


@dataclass(frozen=True)
class JrubyBorrowedInstance:
    time: int = 0
    duration_millis: int = 0
    request_uri: str = ""
    request_method: str = ""
    route_id: str = ""


@dataclass(frozen=True)
class JrubyMetrics:
    average_lock_wait_time: int = 0
    num_free_jrubies: int = 0
    borrow_count: int = 0
    average_requested_jrubies: float = 0.0
    borrow_timeout_count: int = 0
    return_count: int = 0
    borrow_retry_count: int = 0
    borrowed_instances: Tuple[JrubyBorrowedInstance, ...] = ()
    average_borrow_time: int = 0
    num_jrubies: int = 0
    requested_count: int = 0
    queue_limit_hit_rate: float = 0.0
    average_lock_held_time: int = 0
    queue_limit_hit_count: int = 0
    average_free_jrubies: float = 0.0
    num_pool_locks: int = 0
    average_wait_time: int = 0


@dataclass(frozen=True)
class JrubyExperimental:
    pool_lock_status: Optional[JrubyPoolLockStatus] = None
    metrics: Optional[JrubyMetrics] = None


@dataclass(frozen=True)
class HttpClientMetric:
    metric_name: str = ""
    metric_id: Tuple[str, ...] = ()
    count: int = 0
    mean: int = 0
    aggregate: int = 0


@dataclass(frozen=True)
class MasterExperimental:
    http_metrics: Tuple[TimedMetric, ...] = ()
    http_client_metrics: Tuple[HttpClientMetric, ...] = ()


@dataclass(frozen=True)
class MemoryUsage:
    committed: int = 0
    init: int = 0
    max: int = 0
    used: int = 0


@dataclass(frozen=True)
class GcCollector:
    count: int = 0
    total_time_ms: int = 0
    last_gc_duration_ms: Optional[int] = None


@dataclass(frozen=True)
class JvmMetrics:
    cpu_usage: float = 0.0
    up_time_ms: int = 0
    gc_cpu_usage: float = 0.0
    start_time_ms: int = 0
    thread_count: int = 0
    peak_thread_count: int = 0
    heap_memory: Optional[MemoryUsage] = None
    non_heap_memory: Optional[MemoryUsage] = None
    gc_stats: Mapping[str, GcCollector] = _mapping()
    file_descriptors_max: int = 0
    file_descriptors_used: int = 0


@dataclass(frozen=True)
class ServiceExperimental:
    jvm_metrics: Optional[JvmMetrics] = None


@dataclass(frozen=True)
class ServiceStatus:
    """Envelope returned by ``/status/v1/services/<name>?level=debug``.

    ``experimental`` is one of ProfilerExperimental, JrubyExperimental,
    MasterExperimental or ServiceExperimental, or None when the service
    did not include a debug section.
    """
    service_version: str = ""
    service_status_version: int = 0
    detail_level: str = ""
    state: str = ""
    experimental: Optional[object] = None


# --- Puppet CA ---

CERTIFICATE_STATES = ("signed", "revoked")


@dataclass(frozen=True)
class CertificateFingerprints:
    sha1: str = ""
    sha256: str = ""
    sha512: str = ""
    default: str = ""


@dataclass(frozen=True)
class Certificate:
    name: str = ""
    state: str = ""
    dns_alt_names: Tuple[str, ...] = ()
    subject_alt_names: Tuple[str, ...] = ()
    fingerprint: str = ""
    fingerprints: CertificateFingerprints = CertificateFingerprints()
    nulls: FrozenSet[str] = _nulls()
