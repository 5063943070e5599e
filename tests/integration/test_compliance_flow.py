"""
Integration tests for the compliance validation flow.
"""

import itertools
import threading
from collections import defaultdict

import pytest
from fastapi.testclient import TestClient

from service_compliance.app.main import ComplianceService
from service_compliance.app.rules import OwnerAuthorizer, RuleEngine, RuleRegistry, RulesDefined
from shared.config import get_config
from shared.test_helpers import ADMIN, HELPER_RULES, RecordingHandler


class GenerationRule:
    """Passing rule that records which rule set generation evaluated a call."""

    def __init__(self, generation, seen):
        self.generation = generation
        self.seen = seen
        self.name = f"gen-{generation}"

    def is_address_valid(self, address):
        self.seen[address].append(self.generation)
        return True

    def is_transfer_valid(self, from_, to, amount):
        self.seen[from_].append(self.generation)
        return True


class TestAtomicReplacement:
    """Readers never observe a mix of two rule sets."""

    def test_concurrent_readers_see_whole_rule_sets(self):
        seen = defaultdict(list)
        set_sizes = {"a": 3, "b": 7}
        rule_sets = {
            gen: [GenerationRule(gen, seen) for _ in range(size)]
            for gen, size in set_sizes.items()
        }
        engine = RuleEngine(OwnerAuthorizer(ADMIN), rule_sets["a"])
        stop = threading.Event()
        counter = itertools.count()
        failures = []

        def reader():
            while not stop.is_set():
                call_id = f"call-{next(counter)}"
                if not engine.validate_address(call_id):
                    failures.append(call_id)

        def writer():
            for gen in itertools.islice(itertools.cycle(["b", "a"]), 200):
                engine.define_rules(ADMIN, rule_sets[gen])
            stop.set()

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        writer_thread.join(timeout=30)
        stop.set()
        for thread in readers:
            thread.join(timeout=30)

        assert failures == []
        assert seen
        for call_id, generations in seen.items():
            assert len(set(generations)) == 1, call_id
            assert len(generations) == set_sizes[generations[0]], call_id


class TestComplianceServiceFlow:
    """End-to-end flow: define rules, validate, redefine, validate again."""

    @pytest.fixture
    def service(self):
        registry = RuleRegistry()
        for rule_cls in HELPER_RULES:
            registry.register(rule_cls.kind, rule_cls)
        config = get_config("compliance", 8020, admin_principal=ADMIN)
        return ComplianceService(registry=registry, config=config)

    def test_rule_lifecycle(self, service):
        client = TestClient(service.app)
        events = RecordingHandler()
        service.event_bus.subscribe(RulesDefined, events)
        headers = {"X-Principal": ADMIN}
        transfer = {"from_address": "0xalice", "to_address": "0xbob", "amount": 500}

        # No rules: everything passes
        assert client.post("/compliance/validate/transfer", json=transfer).json()["valid"] is True

        response = client.put(
            "/compliance/rules",
            json={"rules": [
                {"kind": "deny_list", "params": {"addresses": ["0xbob"]}},
                {"kind": "max_amount", "params": {"limit": 100}},
            ]},
            headers=headers
        )
        assert response.json() == {"count": 2}

        result = client.post("/compliance/validate/transfer", json=transfer).json()
        assert result["valid"] is False
        assert result["failed_rule"] == "DenyList"
        assert result["rules_evaluated"] == 1

        client.put(
            "/compliance/rules",
            json={"rules": [{"kind": "max_amount", "params": {"limit": 1000}}]},
            headers=headers
        )
        assert client.post("/compliance/validate/transfer", json=transfer).json()["valid"] is True

        client.put("/compliance/rules", json={"rules": []}, headers=headers)

        assert [event.count for event in events.events] == [2, 1, 0]
        assert service.metrics.get_sample_value("compliance_rules_defined_total") == 3.0
        assert service.metrics.get_sample_value("compliance_rule_count") == 0.0
