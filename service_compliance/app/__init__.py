"""
Compliance Service package.

Validates addresses and prospective transfers against an ordered,
administrator-managed set of policy rules. It provides:

- app.main: API surface for validation, rule-set administration and health.
- app.rules: Rule interface, engine, authorization, events and registry.

Guidelines:
- Rule evaluation is synchronous and short-circuits on the first failure.
- The rule set is replaced wholesale; there is no per-rule mutation.
- Keep evaluation deterministic and observable (metrics + logs).
"""
