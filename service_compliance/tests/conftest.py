"""
Shared fixtures for Compliance Service tests.
"""

import pytest

from service_compliance.app.rules.authorization import OwnerAuthorizer
from service_compliance.app.rules.engine import RuleEngine
from service_compliance.app.rules.events import EventBus, RulesDefined
from service_compliance.app.rules.registry import RuleRegistry
from shared.metrics import MetricsCollector
from shared.test_helpers import ADMIN, HELPER_RULES, RecordingHandler


@pytest.fixture
def metrics():
    """Metrics collector with its own registry."""
    return MetricsCollector("compliance-test")


@pytest.fixture
def event_bus(metrics):
    return EventBus(metrics)


@pytest.fixture
def rules_defined(event_bus):
    """Records every RulesDefined event."""
    recorder = RecordingHandler()
    event_bus.subscribe(RulesDefined, recorder)
    return recorder


@pytest.fixture
def authorizer():
    return OwnerAuthorizer(ADMIN)


@pytest.fixture
def make_engine(authorizer, event_bus, metrics):
    """Build an engine wired to the test authorizer, bus and metrics."""
    def _make(rules=(), **kwargs):
        return RuleEngine(authorizer, rules, event_bus=event_bus, metrics=metrics, **kwargs)
    return _make


@pytest.fixture
def registry():
    """Registry with the helper rule kinds registered."""
    registry = RuleRegistry()
    for rule_cls in HELPER_RULES:
        registry.register(rule_cls.kind, rule_cls)
    return registry
