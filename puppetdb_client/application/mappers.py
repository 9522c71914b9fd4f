"""
Response mappers.

Turn decoded JSON bodies into the frozen records of ``domain.models``.
Envelopes are strict (an object where an array is expected is a
SchemaError); fields inside a record are lenient: unknown keys are
ignored and missing or null keys fall back to the field's zero value
while being listed in the record's ``nulls``.
"""
from __future__ import annotations

import json
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, TypeVar

from ..domain.errors import SchemaError
from ..domain.models import (
    Certificate,
    CertificateFingerprints,
    Event,
    EventCount,
    Fact,
    GcCollector,
    HttpClientMetric,
    JrubyBorrowedInstance,
    JrubyExperimental,
    JrubyMetrics,
    JrubyPoolLockStatus,
    JvmMetrics,
    LogEntry,
    MasterExperimental,
    MemoryUsage,
    Node,
    ProfilerExperimental,
    Report,
    ReportLogs,
    ReportMetric,
    ReportMetrics,
    ReportResourceEvents,
    Resource,
    ServiceExperimental,
    ServiceStatus,
    TimedMetric,
    Version,
)
from ..domain.values import JsonValue

T = TypeVar("T")


def _json_kind(raw: Any) -> str:
    if raw is None:
        return "null"
    if isinstance(raw, bool):
        return "boolean"
    if isinstance(raw, (int, float)):
        return "number"
    if isinstance(raw, str):
        return "string"
    if isinstance(raw, list):
        return "array"
    if isinstance(raw, dict):
        return "object"
    return type(raw).__name__


class _Fields:
    """Typed, null-tracking accessor over one JSON object."""

    def __init__(self, raw: Any, family: str) -> None:
        if not isinstance(raw, dict):
            raise SchemaError(f"{family}: expected JSON object, got {_json_kind(raw)}")
        self._raw = raw
        self._family = family
        self.nulls: Set[str] = set()

    def _get(self, name: str, *aliases: str) -> Any:
        # v4 uses snake_case; older API versions and the status service use kebab-case
        for key in (name, name.replace("_", "-"), *aliases):
            if key in self._raw:
                value = self._raw[key]
                if value is None:
                    self.nulls.add(name)
                return value
        self.nulls.add(name)
        return None

    def _fail(self, name: str, expected: str, value: Any) -> SchemaError:
        return SchemaError(f"{self._family}.{name}: expected {expected}, got {_json_kind(value)}")

    def text(self, name: str, *aliases: str) -> str:
        value = self._get(name, *aliases)
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, (bool, int, float)):
            return json.dumps(value)
        raise self._fail(name, "string", value)

    def integer(self, name: str, *aliases: str) -> int:
        value = self._get(name, *aliases)
        if value is None:
            return 0
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
        raise self._fail(name, "number", value)

    def optional_integer(self, name: str, *aliases: str) -> Optional[int]:
        if self._get(name, *aliases) is None:
            return None
        return self.integer(name, *aliases)

    def number(self, name: str, *aliases: str) -> float:
        value = self._get(name, *aliases)
        if value is None:
            return 0.0
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise self._fail(name, "number", value)

    def flag(self, name: str, *aliases: str) -> bool:
        value = self._get(name, *aliases)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        raise self._fail(name, "boolean", value)

    def str_tuple(self, name: str, *aliases: str) -> Tuple[str, ...]:
        value = self._get(name, *aliases)
        if value is None:
            return ()
        if not isinstance(value, list):
            raise self._fail(name, "array", value)
        out = []
        for item in value:
            if isinstance(item, str):
                out.append(item)
            elif isinstance(item, (bool, int, float)):
                out.append(json.dumps(item))
            else:
                raise self._fail(name, "array of strings", item)
        return tuple(out)

    def str_dict(self, name: str, *aliases: str) -> Dict[str, str]:
        value = self._get(name, *aliases)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise self._fail(name, "object", value)
        return {str(k): ("" if v is None else v if isinstance(v, str) else json.dumps(v)) for k, v in value.items()}

    def value(self, name: str, *aliases: str) -> JsonValue:
        for key in (name, name.replace("_", "-"), *aliases):
            if key in self._raw:
                decoded = JsonValue.decode(self._raw[key])
                if decoded.is_null():
                    self.nulls.add(name)
                return decoded
        self.nulls.add(name)
        return JsonValue.absent()

    def obj(self, name: str, *aliases: str) -> Optional[dict]:
        value = self._get(name, *aliases)
        if value is None:
            return None
        if not isinstance(value, dict):
            raise self._fail(name, "object", value)
        return value

    def items(self, name: str, *aliases: str) -> List[Any]:
        value = self._get(name, *aliases)
        if value is None:
            return []
        if not isinstance(value, list):
            raise self._fail(name, "array", value)
        return value


def decode_many(raw: Any, decode_one: Callable[[Any], T]) -> List[T]:
    """Decode a JSON array with ``decode_one``; anything but an array is a SchemaError."""
    if not isinstance(raw, list):
        family = getattr(decode_one, "__name__", "record").replace("_from_json", "")
        raise SchemaError(f"{family}: expected JSON array, got {_json_kind(raw)}")
    return [decode_one(item) for item in raw]


# --- PuppetDB query API ---

def node_from_json(raw: Any) -> Node:
    f = _Fields(raw, "node")
    return Node(
        certname=f.text("certname"),
        deactivated=f.text("deactivated"),
        catalog_timestamp=f.text("catalog_timestamp"),
        facts_timestamp=f.text("facts_timestamp"),
        catalog_environment=f.text("catalog_environment"),
        facts_environment=f.text("facts_environment"),
        latest_report_hash=f.text("latest_report_hash"),
        cached_catalog_status=f.text("cached_catalog_status"),
        report_environment=f.text("report_environment"),
        report_timestamp=f.text("report_timestamp"),
        latest_report_corrective_change=f.text("latest_report_corrective_change"),
        latest_report_noop=f.flag("latest_report_noop"),
        latest_report_noop_pending=f.flag("latest_report_noop_pending"),
        expired=f.text("expired"),
        latest_report_job_id=f.text("latest_report_job_id"),
        latest_report_status=f.text("latest_report_status"),
        nulls=frozenset(f.nulls),
    )


def fact_from_json(raw: Any) -> Fact:
    f = _Fields(raw, "fact")
    return Fact(
        certname=f.text("certname"),
        environment=f.text("environment"),
        name=f.text("name"),
        value=f.value("value"),
        nulls=frozenset(f.nulls),
    )


def fact_name_from_json(raw: Any) -> str:
    if not isinstance(raw, str):
        raise SchemaError(f"fact_name: expected string, got {_json_kind(raw)}")
    return raw


def event_from_json(raw: Any) -> Event:
    f = _Fields(raw, "event")
    return Event(
        certname=f.text("certname"),
        old_value=f.value("old_value"),
        new_value=f.value("new_value"),
        property=f.text("property"),
        timestamp=f.text("timestamp"),
        resource_type=f.text("resource_type"),
        resource_title=f.text("resource_title"),
        message=f.text("message"),
        report=f.text("report"),
        status=f.text("status"),
        file=f.text("file"),
        line=f.integer("line"),
        containment_path=f.str_tuple("containment_path"),
        containing_class=f.text("containing_class"),
        run_start_time=f.text("run_start_time"),
        run_end_time=f.text("run_end_time"),
        report_receive_time=f.text("report_receive_time"),
        nulls=frozenset(f.nulls),
    )


def event_count_from_json(raw: Any) -> EventCount:
    f = _Fields(raw, "event_count")
    return EventCount(
        subject_type=f.text("subject_type"),
        subject=MappingProxyType(f.str_dict("subject")),
        failures=f.integer("failures"),
        successes=f.integer("successes"),
        noops=f.integer("noops"),
        skips=f.integer("skips"),
        nulls=frozenset(f.nulls),
    )


def log_entry_from_json(raw: Any) -> LogEntry:
    f = _Fields(raw, "log")
    return LogEntry(
        new_value=f.text("new_value"),
        property=f.text("property"),
        file=f.text("file"),
        line=f.text("line"),
        tags=f.str_tuple("tags"),
        time=f.text("time"),
        level=f.text("level"),
        source=f.text("source"),
        message=f.text("message"),
        nulls=frozenset(f.nulls),
    )


def report_metric_from_json(raw: Any) -> ReportMetric:
    f = _Fields(raw, "report_metric")
    return ReportMetric(
        name=f.text("name"),
        value=f.number("value"),
        category=f.text("category"),
        nulls=frozenset(f.nulls),
    )


def _expanded(f: _Fields, name: str) -> Tuple[str, List[Any]]:
    # Sub-collections are {"href": ..., "data": [...]}; data is absent unless expanded
    sub = f.obj(name)
    if sub is None:
        return "", []
    inner = _Fields(sub, name)
    return inner.text("href"), inner.items("data")


def report_from_json(raw: Any) -> Report:
    f = _Fields(raw, "report")
    logs_href, logs = _expanded(f, "logs")
    metrics_href, metrics = _expanded(f, "metrics")
    events_href, events = _expanded(f, "resource_events")
    return Report(
        certname=f.text("certname"),
        puppet_version=f.text("puppet_version"),
        hash=f.text("hash"),
        report_format=f.integer("report_format"),
        configuration_version=f.text("configuration_version"),
        catalog_uuid=f.text("catalog_uuid"),
        transaction_uuid=f.text("transaction_uuid"),
        start_time=f.text("start_time"),
        end_time=f.text("end_time"),
        receive_time=f.text("receive_time"),
        noop=f.flag("noop"),
        producer=f.text("producer"),
        corrective_change=f.text("corrective_change"),
        producer_timestamp=f.text("producer_timestamp"),
        cached_catalog_status=f.text("cached_catalog_status"),
        status=f.text("status", "Status"),
        environment=f.text("environment", "Environment"),
        code_id=f.text("code_id"),
        job_id=f.text("job_id"),
        noop_pending=f.flag("noop_pending"),
        logs=ReportLogs(href=logs_href, data=tuple(log_entry_from_json(it) for it in logs)),
        metrics=ReportMetrics(href=metrics_href, data=tuple(report_metric_from_json(it) for it in metrics)),
        resource_events=ReportResourceEvents(href=events_href, data=tuple(event_from_json(it) for it in events)),
        nulls=frozenset(f.nulls),
    )


def resource_from_json(raw: Any) -> Resource:
    f = _Fields(raw, "resource")
    params = f.obj("parameters") or {}
    return Resource(
        certname=f.text("certname"),
        type=f.text("type"),
        title=f.text("title"),
        resource=f.text("resource"),
        file=f.text("file"),
        line=f.integer("line"),
        exported=f.flag("exported"),
        tags=f.str_tuple("tags"),
        environment=f.text("environment"),
        parameters=MappingProxyType({str(k): JsonValue.decode(v) for k, v in params.items()}),
        nulls=frozenset(f.nulls),
    )


def version_from_json(raw: Any) -> Version:
    return Version(version=_Fields(raw, "version").text("version"))


def metric_value_from_json(raw: Any) -> float:
    """Read the ``Value`` attribute of an mbean response."""
    return _Fields(raw, "metric").number("Value", "value")


# --- Puppet master status service ---

def _timed(raw: Any, column: str) -> TimedMetric:
    f = _Fields(raw, column)
    return TimedMetric(key=f.text(column), count=f.integer("count"), mean=f.integer("mean"), aggregate=f.integer("aggregate"))


def _experimental(raw: Any) -> Optional[dict]:
    status = _Fields(raw, "service_status").obj("status")
    if status is None:
        return None
    return _Fields(status, "status").obj("experimental")


def service_status_from_json(raw: Any, decode_experimental: Callable[[dict], object]) -> ServiceStatus:
    f = _Fields(raw, "service_status")
    experimental = _experimental(raw)
    return ServiceStatus(
        service_version=f.text("service_version"),
        service_status_version=f.integer("service_status_version"),
        detail_level=f.text("detail_level"),
        state=f.text("state"),
        experimental=None if experimental is None else decode_experimental(experimental),
    )


def profiler_experimental_from_json(raw: dict) -> ProfilerExperimental:
    f = _Fields(raw, "profiler")
    return ProfilerExperimental(
        function_metrics=tuple(_timed(it, "function") for it in f.items("function_metrics")),
        resource_metrics=tuple(_timed(it, "resource") for it in f.items("resource_metrics")),
        catalog_metrics=tuple(_timed(it, "metric") for it in f.items("catalog_metrics")),
        puppetdb_metrics=tuple(_timed(it, "metric") for it in f.items("puppetdb_metrics")),
    )


def _borrowed_instance(raw: Any) -> JrubyBorrowedInstance:
    f = _Fields(raw, "borrowed_instance")
    request = _Fields(_Fields(f.obj("reason") or {}, "reason").obj("request") or {}, "request")
    return JrubyBorrowedInstance(
        time=f.integer("time"),
        duration_millis=f.integer("duration_millis"),
        request_uri=request.text("uri"),
        request_method=request.text("request_method"),
        route_id=request.text("route_id"),
    )


def jruby_experimental_from_json(raw: dict) -> JrubyExperimental:
    f = _Fields(raw, "jruby")
    lock = f.obj("jruby_pool_lock_status")
    metrics = f.obj("metrics")
    pool_lock_status = None
    if lock is not None:
        lf = _Fields(lock, "jruby_pool_lock_status")
        pool_lock_status = JrubyPoolLockStatus(
            current_state=lf.text("current_state"),
            last_change_time=lf.text("last_change_time"),
        )
    jruby_metrics = None
    if metrics is not None:
        m = _Fields(metrics, "jruby_metrics")
        jruby_metrics = JrubyMetrics(
            average_lock_wait_time=m.integer("average_lock_wait_time"),
            num_free_jrubies=m.integer("num_free_jrubies"),
            borrow_count=m.integer("borrow_count"),
            average_requested_jrubies=m.number("average_requested_jrubies"),
            borrow_timeout_count=m.integer("borrow_timeout_count"),
            return_count=m.integer("return_count"),
            borrow_retry_count=m.integer("borrow_retry_count"),
            borrowed_instances=tuple(_borrowed_instance(it) for it in m.items("borrowed_instances")),
            average_borrow_time=m.integer("average_borrow_time"),
            num_jrubies=m.integer("num_jrubies"),
            requested_count=m.integer("requested_count"),
            queue_limit_hit_rate=m.number("queue_limit_hit_rate"),
            average_lock_held_time=m.integer("average_lock_held_time"),
            queue_limit_hit_count=m.integer("queue_limit_hit_count"),
            average_free_jrubies=m.number("average_free_jrubies"),
            num_pool_locks=m.integer("num_pool_locks"),
            average_wait_time=m.integer("average_wait_time"),
        )
    return JrubyExperimental(pool_lock_status=pool_lock_status, metrics=jruby_metrics)


def _http_client_metric(raw: Any) -> HttpClientMetric:
    f = _Fields(raw, "http_client_metric")
    return HttpClientMetric(
        metric_name=f.text("metric_name"),
        metric_id=f.str_tuple("metric_id"),
        count=f.integer("count"),
        mean=f.integer("mean"),
        aggregate=f.integer("aggregate"),
    )


def master_experimental_from_json(raw: dict) -> MasterExperimental:
    f = _Fields(raw, "master")
    return MasterExperimental(
        http_metrics=tuple(_timed(it, "route_id") for it in f.items("http_metrics")),
        http_client_metrics=tuple(_http_client_metric(it) for it in f.items("http_client_metrics")),
    )


def _memory(raw: Optional[dict], family: str) -> Optional[MemoryUsage]:
    if raw is None:
        return None
    f = _Fields(raw, family)
    return MemoryUsage(committed=f.integer("committed"), init=f.integer("init"), max=f.integer("max"), used=f.integer("used"))


def _gc_collector(raw: Any) -> GcCollector:
    f = _Fields(raw, "gc_stats")
    last = f.obj("last_gc_info")
    return GcCollector(
        count=f.integer("count"),
        total_time_ms=f.integer("total_time_ms"),
        last_gc_duration_ms=None if last is None else _Fields(last, "last_gc_info").optional_integer("duration_ms"),
    )


def service_experimental_from_json(raw: dict) -> ServiceExperimental:
    jvm = _Fields(raw, "service").obj("jvm_metrics")
    if jvm is None:
        return ServiceExperimental()
    f = _Fields(jvm, "jvm_metrics")
    threading = _Fields(f.obj("threading") or {}, "threading")
    fds = _Fields(f.obj("file_descriptors") or {}, "file_descriptors")
    gc_stats = f.obj("gc_stats") or {}
    return ServiceExperimental(
        jvm_metrics=JvmMetrics(
            cpu_usage=f.number("cpu_usage"),
            up_time_ms=f.integer("up_time_ms"),
            gc_cpu_usage=f.number("gc_cpu_usage"),
            start_time_ms=f.integer("start_time_ms"),
            thread_count=threading.integer("thread_count"),
            peak_thread_count=threading.integer("peak_thread_count"),
            heap_memory=_memory(f.obj("heap_memory"), "heap_memory"),
            non_heap_memory=_memory(f.obj("non_heap_memory"), "non_heap_memory"),
            gc_stats=MappingProxyType({str(name): _gc_collector(stats) for name, stats in gc_stats.items()}),
            file_descriptors_max=fds.integer("max"),
            file_descriptors_used=fds.integer("used"),
        )
    )


# --- Puppet CA ---

def certificate_from_json(raw: Any) -> Certificate:
    f = _Fields(raw, "certificate")
    prints = _Fields(f.obj("fingerprints") or {}, "fingerprints")
    return Certificate(
        name=f.text("name"),
        state=f.text("state"),
        dns_alt_names=f.str_tuple("dns_alt_names"),
        subject_alt_names=f.str_tuple("subject_alt_names"),
        fingerprint=f.text("fingerprint"),
        fingerprints=CertificateFingerprints(
            sha1=prints.text("SHA1"),
            sha256=prints.text("SHA256"),
            sha512=prints.text("SHA512"),
            default=prints.text("default"),
        ),
        nulls=frozenset(f.nulls),
    )