"""
Registry of rule kinds, used to build rule sets from data.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Union
import threading

from shared.errors import RuleDefinitionError
from shared.logging import get_logger

from .models import RuleSpec, SupportsRule

RuleFactory = Callable[..., SupportsRule]


class RuleRegistry:
    """Maps rule kind names to factories.

    Hosts register the rule kinds they implement; the service then turns
    ``{"kind": ..., "params": {...}}`` specs into rule instances.
    """

    def __init__(self):
        self.logger = get_logger("compliance.registry")
        self._factories: Dict[str, RuleFactory] = {}
        self._lock = threading.Lock()

    def register(self, kind: str, factory: RuleFactory, replace: bool = False) -> None:
        if not kind:
            raise RuleDefinitionError("Rule kind must not be empty")
        if not callable(factory):
            raise RuleDefinitionError("Rule factory must be callable", {"kind": kind})

        with self._lock:
            if kind in self._factories and not replace:
                raise RuleDefinitionError(f"Rule kind '{kind}' is already registered", {"kind": kind})
            self._factories[kind] = factory

        self.logger.info("Rule kind registered", kind=kind)

    def unregister(self, kind: str) -> bool:
        with self._lock:
            return self._factories.pop(kind, None) is not None

    def kinds(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, kind: str) -> bool:
        return kind in self._factories

    def create(self, kind: str, **params: Any) -> SupportsRule:
        """Instantiate one rule of ``kind``."""
        factory = self._factories.get(kind)
        if factory is None:
            raise RuleDefinitionError(f"Unknown rule kind '{kind}'", {"kind": kind, "known": self.kinds()})

        try:
            rule = factory(**params)
        except RuleDefinitionError:
            raise
        except Exception as e:
            raise RuleDefinitionError(
                f"Rule kind '{kind}' could not be built: {e}",
                {"kind": kind}
            ) from e

        if not isinstance(rule, SupportsRule):
            raise RuleDefinitionError(
                f"Factory for '{kind}' did not return a rule",
                {"kind": kind, "type": type(rule).__name__}
            )
        return rule

    def build(self, specs: Iterable[Union[RuleSpec, Mapping[str, Any]]]) -> List[SupportsRule]:
        """Build a complete ordered rule list; nothing is returned unless every spec builds."""
        rules = []
        for position, spec in enumerate(specs):
            if not isinstance(spec, RuleSpec):
                try:
                    spec = RuleSpec.model_validate(spec)
                except Exception as e:
                    raise RuleDefinitionError(
                        f"Rule spec at position {position} is malformed",
                        {"position": position, "error": str(e)}
                    ) from e
            try:
                rules.append(self.create(spec.kind, **spec.params))
            except RuleDefinitionError as e:
                e.details.setdefault("position", position)
                raise
        return rules
