"""
Prometheus metrics for the Licensing Access Layer.
"""

from typing import Dict, Any, Optional
import time
import threading
from contextlib import contextmanager

from prometheus_client import Counter, Gauge, Histogram, Info, CollectorRegistry

# name -> (type, help, labels)
_METRIC_DEFINITIONS = {
    "http_requests_total": (Counter, "Total HTTP requests", ["method", "endpoint", "status_code"]),
    "http_request_duration_seconds": (Histogram, "HTTP request duration in seconds", ["method", "endpoint"]),
    "health_check_total": (Counter, "Total health check requests", ["status"]),
    "errors_total": (Counter, "Total errors by code", ["error_type", "service"]),
    "business_events_total": (Counter, "Total whitelist notifications emitted", ["event_type", "service"]),
    "whitelist_mutations_total": (Counter, "Whitelist add/remove attempts by outcome", ["operation", "outcome"]),
    "hook_decisions_total": (Counter, "Licensing hook decisions by entry point", ["entry_point", "decision"]),
    "collaborator_call_duration_seconds": (
        Histogram, "Latency of calls to the access controller and license terms registry", ["collaborator"]
    ),
    "circuit_breaker_open": (Gauge, "1 while a collaborator circuit is open", ["collaborator"]),
}


class MetricsCollector:
    """Owns one registry and the licensing hook's metric families."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {
            name: metric_type(name, documentation, labels, registry=self.registry)
            for name, (metric_type, documentation, labels) in _METRIC_DEFINITIONS.items()
        }

        Info("service", "Service information", registry=self.registry).info({
            "service": service_name,
            "version": "1.0.0"
        })

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self._metrics["http_requests_total"].labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()
        self._metrics["http_request_duration_seconds"].labels(method=method, endpoint=endpoint).observe(duration)

    def record_health_check(self, status: str):
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        self._metrics["errors_total"].labels(error_type=error_type, service=service or self.service_name).inc()

    def record_business_event(self, event_type: str, service: Optional[str] = None):
        self._metrics["business_events_total"].labels(
            event_type=event_type, service=service or self.service_name
        ).inc()

    def record_whitelist_mutation(self, operation: str, outcome: str):
        """Count an add/remove attempt; outcome is "ok" or the rejection reason."""
        self._metrics["whitelist_mutations_total"].labels(operation=operation, outcome=outcome).inc()

    def record_hook_decision(self, entry_point: str, decision: str):
        self._metrics["hook_decisions_total"].labels(entry_point=entry_point, decision=decision).inc()

    def record_circuit_state(self, collaborator: str, is_open: bool):
        self._metrics["circuit_breaker_open"].labels(collaborator=collaborator).set(1 if is_open else 0)

    @contextmanager
    def time_collaborator_call(self, collaborator: str):
        """Observe the wall time of one collaborator round trip, failures included."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self._metrics["collaborator_call_duration_seconds"].labels(
                collaborator=collaborator
            ).observe(time.perf_counter() - started)


_collectors: Dict[str, MetricsCollector] = {}
_collectors_lock = threading.Lock()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service.

    Without an explicit registry the collector is shared per service name,
    since a registry rejects duplicate registrations of the same series.
    """
    if registry is not None:
        return MetricsCollector(service_name, registry)

    with _collectors_lock:
        if service_name not in _collectors:
            _collectors[service_name] = MetricsCollector(service_name)
        return _collectors[service_name]
