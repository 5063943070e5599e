"""
Rule evaluation engine for the Compliance Service.
"""

import time
from collections import deque
from typing import Any, Deque, Iterable, Optional, Tuple
import threading

from shared.errors import (
    OutOfRangeError, RuleDefinitionError, RuleEvaluationError, UnauthorizedError, ValidationError
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .authorization import Authorizer
from .events import EventBus, RulesDefined
from .models import Address, RuleErrorPolicy, SupportsRule, ValidationResult, rule_name


class RuleEngine:
    """Ordered, short-circuiting rule evaluation engine.

    The rule set is an immutable tuple. ``define_rules`` builds the new
    tuple first and then swaps the reference, so a reader always sees the
    complete old set or the complete new one. Readers take no lock.

    Rules are evaluated in stored order and evaluation stops at the first
    rule that rejects; put cheap rules that reject often first.
    """

    def __init__(
        self,
        authorizer: Authorizer,
        rules: Iterable[SupportsRule] = (),
        event_bus: Optional[EventBus] = None,
        error_policy: RuleErrorPolicy = RuleErrorPolicy.PROPAGATE,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.logger = get_logger("compliance.rule_engine")
        self.authorizer = authorizer
        self.event_bus = event_bus if event_bus is not None else EventBus(metrics)
        self.error_policy = RuleErrorPolicy(error_policy)
        self.metrics = metrics
        self._write_lock = threading.RLock()
        self._pending_events: Deque[RulesDefined] = deque()
        self._draining = False
        self._rules: Tuple[SupportsRule, ...] = self._check_rules(rules)

        if self.metrics:
            self.metrics.get_metric("compliance_rule_count").set(len(self._rules))

    @property
    def rules(self) -> Tuple[SupportsRule, ...]:
        """Snapshot of the installed rule set."""
        return self._rules

    def rule_count(self) -> int:
        """Number of installed rules."""
        return len(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def rule_at(self, index: int) -> SupportsRule:
        """Return the rule at ``index``; negative indexes are out of range."""
        rules = self._rules
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValidationError("Rule index must be an integer", {"index": repr(index)})
        if index < 0 or index >= len(rules):
            raise OutOfRangeError(index, len(rules))
        return rules[index]

    def validate_address(self, address: Address) -> bool:
        """Return True if every rule accepts ``address``."""
        return self.explain_address(address).valid

    def validate_transfer(self, from_: Address, to: Address, amount: int) -> bool:
        """Return True if every rule accepts the transfer."""
        return self.explain_transfer(from_, to, amount).valid

    def explain_address(self, address: Address) -> ValidationResult:
        """Validate ``address`` and report which rule, if any, rejected it."""
        return self._evaluate("address", "is_address_valid", (address,))

    def explain_transfer(self, from_: Address, to: Address, amount: int) -> ValidationResult:
        """Validate a transfer and report which rule, if any, rejected it."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValidationError(
                "Transfer amount must be a non-negative integer",
                {"amount": repr(amount)}
            )
        return self._evaluate("transfer", "is_transfer_valid", (from_, to, amount))

    def define_rules(self, principal: Optional[str], new_rules: Iterable[SupportsRule]) -> int:
        """Replace the whole rule set; only the administrator may call this.

        Returns the new rule count. Emits exactly one ``RulesDefined``.
        """
        if not self.authorizer.is_authorized(principal):
            self.logger.warning("Rule definition rejected", principal=principal)
            if self.metrics:
                self.metrics.record_error("unauthorized")
            raise UnauthorizedError(
                "Only the administrator can define rules",
                {"principal": principal}
            )

        rules = self._check_rules(new_rules)

        with self._write_lock:
            previous_count = len(self._rules)
            self._rules = rules
            if self.metrics:
                self.metrics.record_rules_defined(len(rules))
            self.logger.info(
                "Rules defined",
                principal=principal,
                previous_count=previous_count,
                count=len(rules),
                rules=[rule_name(rule) for rule in rules]
            )
            self._pending_events.append(RulesDefined(count=len(rules), principal=principal))
            self._drain_events()

        return len(rules)

    def _drain_events(self) -> None:
        # A handler that redefines rules only queues its event; the outermost
        # call delivers everything in swap order.
        if self._draining:
            return
        self._draining = True
        try:
            while self._pending_events:
                self.event_bus.publish(self._pending_events.popleft())
        finally:
            self._draining = False

    def _check_rules(self, rules: Iterable[SupportsRule]) -> Tuple[SupportsRule, ...]:
        if isinstance(rules, (str, bytes)):
            raise RuleDefinitionError("Rules must be a sequence of rule objects")
        try:
            checked = tuple(rules)
        except TypeError as e:
            raise RuleDefinitionError("Rules must be iterable") from e

        for index, rule in enumerate(checked):
            if not isinstance(rule, SupportsRule):
                raise RuleDefinitionError(
                    f"Object at index {index} does not implement is_address_valid and is_transfer_valid",
                    {"index": index, "type": type(rule).__name__}
                )
        return checked

    def _evaluate(self, kind: str, predicate: str, args: Tuple[Any, ...]) -> ValidationResult:
        rules = self._rules  # one read; define_rules may swap the reference meanwhile
        start_time = time.perf_counter()

        for index, rule in enumerate(rules):
            try:
                outcome = getattr(rule, predicate)(*args)
            except Exception as e:
                return self._rule_failed(kind, predicate, index, rule, str(e) or type(e).__name__, start_time, e)

            if not isinstance(outcome, bool):
                return self._rule_failed(
                    kind, predicate, index, rule,
                    f"returned {type(outcome).__name__}, expected bool", start_time
                )

            if not outcome:
                result = ValidationResult(
                    valid=False,
                    rules_evaluated=index + 1,
                    failed_rule_index=index,
                    failed_rule=rule_name(rule),
                    evaluation_time_ms=(time.perf_counter() - start_time) * 1000
                )
                self._record(kind, result)
                return result

        result = ValidationResult(
            valid=True,
            rules_evaluated=len(rules),
            evaluation_time_ms=(time.perf_counter() - start_time) * 1000
        )
        self._record(kind, result)
        return result

    def _rule_failed(
        self,
        kind: str,
        predicate: str,
        index: int,
        rule: SupportsRule,
        reason: str,
        start_time: float,
        cause: Optional[BaseException] = None,
    ) -> ValidationResult:
        name = rule_name(rule)
        self.logger.error(
            "Rule evaluation failed",
            kind=kind,
            rule_index=index,
            rule=name,
            reason=reason,
            policy=self.error_policy.value
        )
        if self.metrics:
            self.metrics.record_rule_error(name)

        if self.error_policy is RuleErrorPolicy.PROPAGATE:
            raise RuleEvaluationError(index, name, predicate, reason) from cause

        result = ValidationResult(
            valid=False,
            rules_evaluated=index + 1,
            failed_rule_index=index,
            failed_rule=name,
            error=reason,
            evaluation_time_ms=(time.perf_counter() - start_time) * 1000
        )
        self._record(kind, result)
        return result

    def _record(self, kind: str, result: ValidationResult) -> None:
        self.logger.debug(
            "Validation result",
            kind=kind,
            valid=result.valid,
            failed_rule=result.failed_rule,
            rules_evaluated=result.rules_evaluated
        )
        if self.metrics:
            self.metrics.record_validation(
                kind,
                result.valid,
                result.evaluation_time_ms / 1000,
                result.failed_rule
            )

    def get_engine_stats(self) -> dict:
        """Get engine statistics."""
        rules = self._rules
        return {
            "total_rules": len(rules),
            "rules": [rule_name(rule) for rule in rules],
            "error_policy": self.error_policy.value,
            "subscribers": self.event_bus.handler_count(RulesDefined),
        }
