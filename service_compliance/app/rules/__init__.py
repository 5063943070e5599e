"""
Rules engine package.

Defines the rule capability interface and the engine that evaluates an
ordered rule set against addresses and transfers, returning a boolean
decision (or an explained result naming the first failing rule).

Modules of interest:
- models: Rule interface, validation result and error policy.
- engine: Ordered short-circuit evaluation and atomic rule-set replacement.
- authorization: Administrator checks injected into the engine.
- events: RulesDefined notification and the in-process event bus.
- registry: Rule kinds by name, for building rule sets from data.

Concrete rules (whitelists, freeze lists, time-locks) live with the
caller; the engine only depends on the two predicates.
"""

from .models import Rule, SupportsRule, RuleErrorPolicy, ValidationResult, rule_name
from .engine import RuleEngine
from .authorization import Authorizer, OwnerAuthorizer, AllowListAuthorizer, LockedAuthorizer
from .events import EventBus, RulesDefined, OwnershipTransferred
from .registry import RuleRegistry

__all__ = [
    "Rule",
    "SupportsRule",
    "RuleErrorPolicy",
    "ValidationResult",
    "rule_name",
    "RuleEngine",
    "Authorizer",
    "OwnerAuthorizer",
    "AllowListAuthorizer",
    "LockedAuthorizer",
    "EventBus",
    "RulesDefined",
    "OwnershipTransferred",
    "RuleRegistry",
]
