"""
Unit tests for the rule kind registry and the Rule base class.
"""

import pytest

from service_compliance.app.rules.models import Rule, RuleSpec, SupportsRule, rule_name
from service_compliance.app.rules.registry import RuleRegistry
from shared.errors import RuleDefinitionError
from shared.test_helpers import ADMIN, DenyListRule, MaxAmountRule, StaticRule, create_rule_specs


class KycRule(Rule):
    """Minimal Rule subclass used to exercise the base class."""

    name = "Kyc"
    kind = "kyc"

    def __init__(self, verified=()):
        self.verified = set(verified)

    def is_address_valid(self, address):
        return address in self.verified

    def is_transfer_valid(self, from_, to, amount):
        return from_ in self.verified and to in self.verified


class TestRuleBase:
    """Test cases for the Rule base class."""

    def test_rule_requires_both_predicates(self):
        class HalfRule(Rule):
            def is_address_valid(self, address):
                return True

        with pytest.raises(TypeError):
            HalfRule()

    def test_subclass_is_a_rule(self):
        rule = KycRule(["0xa"])

        assert isinstance(rule, SupportsRule)
        assert rule_name(rule) == "Kyc"
        assert "Kyc" in repr(rule)

    def test_non_rule_fails_protocol_check(self):
        assert not isinstance(object(), SupportsRule)


class TestRuleRegistry:
    """Test cases for RuleRegistry."""

    def test_register_and_create(self):
        registry = RuleRegistry()
        registry.register("kyc", KycRule)

        rule = registry.create("kyc", verified=["0xa"])

        assert isinstance(rule, KycRule)
        assert rule.is_address_valid("0xa") is True
        assert "kyc" in registry
        assert registry.kinds() == ["kyc"]

    def test_duplicate_kind_rejected(self):
        registry = RuleRegistry()
        registry.register("kyc", KycRule)

        with pytest.raises(RuleDefinitionError):
            registry.register("kyc", KycRule)

        registry.register("kyc", lambda: KycRule(["0xb"]), replace=True)
        assert registry.create("kyc").is_address_valid("0xb") is True

    def test_invalid_registration(self):
        registry = RuleRegistry()

        with pytest.raises(RuleDefinitionError):
            registry.register("", KycRule)
        with pytest.raises(RuleDefinitionError):
            registry.register("kyc", "not callable")

    def test_unregister(self):
        registry = RuleRegistry()
        registry.register("kyc", KycRule)

        assert registry.unregister("kyc") is True
        assert registry.unregister("kyc") is False
        assert registry.kinds() == []

    def test_unknown_kind(self, registry):
        with pytest.raises(RuleDefinitionError) as exc_info:
            registry.create("time_lock")

        assert exc_info.value.details["kind"] == "time_lock"
        assert "static" in exc_info.value.details["known"]

    def test_factory_error_is_wrapped(self, registry):
        with pytest.raises(RuleDefinitionError) as exc_info:
            registry.create("max_amount", ceiling=5)

        assert isinstance(exc_info.value.__cause__, TypeError)

    def test_factory_must_return_rule(self):
        registry = RuleRegistry()
        registry.register("broken", lambda: 42)

        with pytest.raises(RuleDefinitionError):
            registry.create("broken")

    def test_build_preserves_order(self, registry):
        rules = registry.build(create_rule_specs())

        assert [type(rule) for rule in rules] == [DenyListRule, MaxAmountRule]
        assert rules[1].limit == 1000

    def test_build_accepts_rule_specs(self, registry):
        rules = registry.build([RuleSpec(kind="static", params={"result": False})])

        assert isinstance(rules[0], StaticRule)
        assert rules[0].result is False

    def test_build_is_all_or_nothing(self, registry, make_engine, rules_defined):
        """A bad spec anywhere means nothing reaches the engine."""
        engine = make_engine([StaticRule(False)])
        specs = create_rule_specs() + [{"kind": "unknown"}]

        with pytest.raises(RuleDefinitionError) as exc_info:
            engine.define_rules(ADMIN, registry.build(specs))

        assert exc_info.value.details["position"] == 2
        assert engine.rule_count() == 1
        assert rules_defined.events == []

    def test_malformed_spec(self, registry):
        with pytest.raises(RuleDefinitionError) as exc_info:
            registry.build([{"params": {}}])

        assert exc_info.value.details["position"] == 0
