"""
Shared error handling for the compliance rule engine.
"""

from typing import Dict, Any, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ComplianceException(Exception):
    """Base exception for the compliance engine and service."""

    http_status: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class UnauthorizedError(ComplianceException):
    """Raised when a principal may not administer the rule set."""

    http_status = 403

    def __init__(self, message: str = "Principal is not authorized", details: Optional[Dict[str, Any]] = None):
        super().__init__("UNAUTHORIZED", message, details)


class OutOfRangeError(ComplianceException, IndexError):
    """Raised when a rule index is outside the current rule set."""

    http_status = 404

    def __init__(self, index: int, count: int):
        super().__init__(
            "OUT_OF_RANGE",
            f"Rule index {index} is out of range for {count} rules",
            {"index": index, "count": count},
        )
        self.index = index
        self.count = count


class RuleEvaluationError(ComplianceException):
    """Raised when a rule predicate fails to produce a boolean."""

    http_status = 500

    def __init__(self, rule_index: int, rule_name: str, predicate: str, reason: str):
        super().__init__(
            "RULE_EVALUATION_FAILURE",
            f"Rule {rule_index} ({rule_name}) failed in {predicate}: {reason}",
            {"rule_index": rule_index, "rule": rule_name, "predicate": predicate},
        )
        self.rule_index = rule_index
        self.rule_name = rule_name
        self.predicate = predicate


class RuleDefinitionError(ComplianceException):
    """Raised when a rule set cannot be built or installed."""

    http_status = 422

    def __init__(self, message: str = "Invalid rule definition", details: Optional[Dict[str, Any]] = None):
        super().__init__("RULE_DEFINITION_ERROR", message, details)


class ValidationError(ComplianceException):
    """Validation-related errors."""

    http_status = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)
