"""
Compliance service: rule-based address and transfer validation.
"""

from typing import Iterable, Optional

from fastapi import Body, Depends, Header
from pydantic import BaseModel, Field

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import ComplianceException, UnauthorizedError
from shared.logging import set_principal

from .rules.authorization import Authorizer, LockedAuthorizer, OwnerAuthorizer
from .rules.engine import RuleEngine
from .rules.events import EventBus, RulesDefined
from .rules.models import (
    AddressValidationRequest, DefineRulesRequest, DefineRulesResponse, RuleErrorPolicy,
    RuleInfo, RuleListResponse, SupportsRule, TransferValidationRequest, ValidationResponse,
    rule_name
)
from .rules.registry import RuleRegistry

SERVICE_NAME = "compliance"
DEFAULT_PORT = 8020


class OwnershipTransferRequest(BaseModel):
    """Request model for handing over administration."""
    new_owner: str = Field(..., min_length=1, description="Principal that becomes administrator")


class ComplianceService(BaseService):
    """Compliance service implementation."""

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        rules: Iterable[SupportsRule] = (),
        authorizer: Optional[Authorizer] = None,
        config: Optional[ServiceConfig] = None,
    ):
        super().__init__(SERVICE_NAME, DEFAULT_PORT, config=config)

        self.registry = registry or RuleRegistry()
        self.event_bus = EventBus(self.metrics)
        self.authorizer = authorizer or self._default_authorizer()
        self.rule_engine = RuleEngine(
            self.authorizer,
            rules,
            event_bus=self.event_bus,
            error_policy=RuleErrorPolicy(self.config.rule_error_policy),
            metrics=self.metrics,
        )
        self.event_bus.subscribe(RulesDefined, self._on_rules_defined)

        self._setup_compliance_routes()

    def _default_authorizer(self) -> Authorizer:
        if self.config.admin_principal:
            return OwnerAuthorizer(self.config.admin_principal, event_bus=self.event_bus)
        self.logger.warning("No administrator configured; rule set is read-only")
        return LockedAuthorizer()

    def _on_rules_defined(self, event: RulesDefined):
        self.logger.info(
            "Business event",
            event_type="rules_defined",
            count=event.count,
            principal=event.principal,
            defined_at=event.defined_at.isoformat()
        )

    async def _require_admin(self, x_principal: Optional[str] = Header(None)) -> Optional[str]:
        """Resolve the calling principal, rejecting anyone but the administrator.

        Runs as a route dependency, before the request body is validated.
        """
        set_principal(x_principal)
        if not self.authorizer.is_authorized(x_principal):
            self.logger.warning("Administrative request rejected", principal=x_principal)
            raise UnauthorizedError(
                "Only the administrator can change rule administration",
                {"principal": x_principal}
            )
        return x_principal

    def _setup_compliance_routes(self):
        """Set up compliance-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Compliance Service - ordered rule validation",
                "version": "1.0.0",
                "capabilities": ["address_validation", "transfer_validation", "rule_administration"]
            }

        @self.app.get("/compliance/rules", response_model=RuleListResponse)
        async def get_rules():
            """List installed rules in evaluation order."""
            rules = self.rule_engine.rules
            return RuleListResponse(
                count=len(rules),
                rules=[self._rule_info(index, rule) for index, rule in enumerate(rules)]
            )

        @self.app.get("/compliance/rules/{index}", response_model=RuleInfo)
        async def get_rule(index: int):
            """Describe the rule at ``index``."""
            return self._rule_info(index, self.rule_engine.rule_at(index))

        @self.app.put("/compliance/rules", response_model=DefineRulesResponse)
        async def define_rules(
            request: DefineRulesRequest = Body(...),
            principal: Optional[str] = Depends(self._require_admin),
        ):
            """Replace the whole rule set."""
            rules = self.registry.build(request.rules)
            count = self.rule_engine.define_rules(principal, rules)
            return DefineRulesResponse(count=count)

        @self.app.get("/compliance/rule-kinds")
        async def get_rule_kinds():
            """List rule kinds that can be used in rule specs."""
            return {"kinds": self.registry.kinds()}

        @self.app.put("/compliance/owner")
        async def transfer_ownership(
            request: OwnershipTransferRequest,
            principal: Optional[str] = Depends(self._require_admin),
        ):
            """Hand administration to another principal."""
            if not isinstance(self.authorizer, OwnerAuthorizer):
                raise ComplianceException(
                    "OWNERSHIP_NOT_SUPPORTED",
                    "Configured authorizer has no single owner"
                )
            self.authorizer.transfer_ownership(principal, request.new_owner)
            return {"owner": self.authorizer.owner}

        @self.app.post("/compliance/validate/address", response_model=ValidationResponse)
        async def validate_address(request: AddressValidationRequest):
            """Validate a single address against every rule."""
            result = self.rule_engine.explain_address(request.address)
            return ValidationResponse.from_result(result)

        @self.app.post("/compliance/validate/transfer", response_model=ValidationResponse)
        async def validate_transfer(request: TransferValidationRequest):
            """Validate a prospective transfer against every rule."""
            result = self.rule_engine.explain_transfer(
                request.from_address,
                request.to_address,
                request.amount
            )
            return ValidationResponse.from_result(result)

    def _rule_info(self, index: int, rule: SupportsRule) -> RuleInfo:
        kind = getattr(rule, "kind", None)
        return RuleInfo(index=index, name=rule_name(rule), kind=kind if isinstance(kind, str) else None)

    async def _check_dependencies(self):
        return {"rule_engine": "ok", "rules": str(self.rule_engine.rule_count())}


def create_app(
    registry: Optional[RuleRegistry] = None,
    rules: Iterable[SupportsRule] = (),
    config: Optional[ServiceConfig] = None,
):
    """Create compliance service application."""
    service = ComplianceService(registry=registry, rules=rules, config=config)
    return service.app


if __name__ == "__main__":
    service = ComplianceService(config=get_config(SERVICE_NAME, DEFAULT_PORT))
    service.run()
