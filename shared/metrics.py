"""
Shared metrics configuration for the compliance rule engine.
"""

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry, generate_latest
from typing import Dict, Any, Optional


class MetricsCollector:
    """Centralized metrics collector for services and engines.

    Each collector owns its registry unless one is supplied, so several
    engines can live in one process without clashing on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_compliance_metrics()

    def _setup_compliance_metrics(self):
        """Set up rule engine metrics."""
        self._metrics["compliance_validations_total"] = Counter(
            "compliance_validations_total",
            "Total validations by kind and decision",
            ["kind", "decision"],
            registry=self.registry
        )

        self._metrics["compliance_validation_duration_seconds"] = Histogram(
            "compliance_validation_duration_seconds",
            "Validation duration in seconds",
            ["kind"],
            registry=self.registry
        )

        self._metrics["compliance_rule_failures_total"] = Counter(
            "compliance_rule_failures_total",
            "Validations rejected, by rule",
            ["kind", "rule"],
            registry=self.registry
        )

        self._metrics["compliance_rule_evaluation_errors_total"] = Counter(
            "compliance_rule_evaluation_errors_total",
            "Rule predicates that raised or returned a non-boolean",
            ["rule"],
            registry=self.registry
        )

        self._metrics["compliance_rules_defined_total"] = Counter(
            "compliance_rules_defined_total",
            "Successful rule set replacements",
            registry=self.registry
        )

        self._metrics["compliance_rule_count"] = Gauge(
            "compliance_rule_count",
            "Number of rules currently installed",
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def get_sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read back a sample value from this collector's registry."""
        return self.registry.get_sample_value(name, labels or {})

    def render(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_validation(self, kind: str, valid: bool, duration: float, failed_rule: Optional[str] = None):
        """Record the outcome of one address or transfer validation."""
        decision = "valid" if valid else "rejected"
        self._metrics["compliance_validations_total"].labels(kind=kind, decision=decision).inc()
        self._metrics["compliance_validation_duration_seconds"].labels(kind=kind).observe(duration)
        if failed_rule is not None:
            self._metrics["compliance_rule_failures_total"].labels(kind=kind, rule=failed_rule).inc()

    def record_rule_error(self, rule: str):
        self._metrics["compliance_rule_evaluation_errors_total"].labels(rule=rule).inc()

    def record_rules_defined(self, count: int):
        """Record a rule set replacement."""
        self._metrics["compliance_rules_defined_total"].inc()
        self._metrics["compliance_rule_count"].set(count)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
