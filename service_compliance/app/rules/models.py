"""
Rule interface and result models for the Compliance Service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field


Address = Hashable


@runtime_checkable
class SupportsRule(Protocol):
    """Structural type for anything the engine can evaluate."""

    def is_address_valid(self, address: Address) -> bool:
        ...

    def is_transfer_valid(self, from_: Address, to: Address, amount: int) -> bool:
        ...


class Rule(ABC):
    """Base class for compliance rules.

    A rule answers two questions without side effects visible to the
    engine: is this address acceptable on its own, and is this transfer
    acceptable. Rules that only care about one of them should return
    ``True`` from the other. Rules may keep private state (a freeze list,
    a whitelist) managed out of band.
    """

    name: Optional[str] = None
    kind: Optional[str] = None

    @abstractmethod
    def is_address_valid(self, address: Address) -> bool:
        """Return True if ``address`` is permitted by this rule."""

    @abstractmethod
    def is_transfer_valid(self, from_: Address, to: Address, amount: int) -> bool:
        """Return True if the transfer is permitted by this rule."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={rule_name(self)!r}>"


def rule_name(rule: Any) -> str:
    """Name used for a rule in logs, metrics and explanations."""
    name = getattr(rule, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(rule).__name__


class RuleErrorPolicy(str, Enum):
    """What the engine does when a rule predicate fails."""
    PROPAGATE = "propagate"
    REJECT = "reject"


@dataclass(frozen=True)
class ValidationResult:
    """Explained outcome of an address or transfer validation."""
    valid: bool
    rules_evaluated: int
    failed_rule_index: Optional[int] = None
    failed_rule: Optional[str] = None
    error: Optional[str] = None
    evaluation_time_ms: float = 0.0

    def __bool__(self) -> bool:
        return self.valid


class RuleSpec(BaseModel):
    """Data description of one rule: a registered kind plus its parameters."""
    kind: str = Field(..., min_length=1, description="Registered rule kind")
    params: dict[str, Any] = Field(default_factory=dict, description="Factory keyword arguments")


class DefineRulesRequest(BaseModel):
    """Request model for replacing the rule set."""
    rules: list[RuleSpec] = Field(default_factory=list, description="Ordered rule specs, cheapest first")


class DefineRulesResponse(BaseModel):
    """Response model for a rule set replacement."""
    count: int


class RuleInfo(BaseModel):
    """Response model describing one installed rule."""
    index: int
    name: str
    kind: Optional[str] = None


class RuleListResponse(BaseModel):
    """Response model for the installed rule set."""
    count: int
    rules: list[RuleInfo]


class AddressValidationRequest(BaseModel):
    """Request model for an address check."""
    address: str = Field(..., min_length=1, description="Address to validate")


class TransferValidationRequest(BaseModel):
    """Request model for a transfer check."""
    from_address: str = Field(..., min_length=1, description="Sender")
    to_address: str = Field(..., min_length=1, description="Receiver")
    amount: int = Field(..., ge=0, description="Transfer amount in base units")


class ValidationResponse(BaseModel):
    """Response model for address and transfer checks."""
    valid: bool
    rules_evaluated: int
    failed_rule_index: Optional[int] = None
    failed_rule: Optional[str] = None
    error: Optional[str] = Field(default=None, description="Set when the failing rule raised instead of answering")
    evaluation_time_ms: float = 0.0

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResponse":
        return cls(
            valid=result.valid,
            rules_evaluated=result.rules_evaluated,
            failed_rule_index=result.failed_rule_index,
            failed_rule=result.failed_rule,
            error=result.error,
            evaluation_time_ms=result.evaluation_time_ms,
        )
