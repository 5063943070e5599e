"""
Administrator checks for rule set replacement.
"""

from typing import Iterable, Optional, Protocol, runtime_checkable
import threading

from shared.errors import UnauthorizedError, ValidationError
from shared.logging import get_logger

from .events import EventBus, OwnershipTransferred


@runtime_checkable
class Authorizer(Protocol):
    """Decides whether a principal may administer the rule set."""

    def is_authorized(self, principal: Optional[str]) -> bool:
        ...


class OwnerAuthorizer:
    """Single-owner authorization by identity equality."""

    def __init__(self, owner: str, event_bus: Optional[EventBus] = None):
        if not owner:
            raise ValidationError("Owner principal must not be empty")
        self.logger = get_logger("compliance.authorization")
        self.event_bus = event_bus
        self._owner = owner
        self._lock = threading.Lock()

    @property
    def owner(self) -> str:
        return self._owner

    def is_authorized(self, principal: Optional[str]) -> bool:
        return principal is not None and principal == self._owner

    def transfer_ownership(self, principal: Optional[str], new_owner: str) -> None:
        """Hand administration to ``new_owner``; only the current owner may do this."""
        if not new_owner:
            raise ValidationError("New owner principal must not be empty")

        with self._lock:
            if not self.is_authorized(principal):
                self.logger.warning("Ownership transfer rejected", principal=principal)
                raise UnauthorizedError(
                    "Only the current owner can transfer ownership",
                    {"principal": principal}
                )
            previous = self._owner
            self._owner = new_owner

        self.logger.info("Ownership transferred", previous_owner=previous, new_owner=new_owner)
        if self.event_bus:
            self.event_bus.publish(OwnershipTransferred(previous_owner=previous, new_owner=new_owner))


class LockedAuthorizer:
    """Refuses every principal; the rule set stays as constructed."""

    def is_authorized(self, principal: Optional[str]) -> bool:
        return False


class AllowListAuthorizer:
    """Authorizes any principal from a fixed set."""

    def __init__(self, principals: Iterable[str]):
        self.principals = frozenset(p for p in principals if p)
        if not self.principals:
            raise ValidationError("At least one administrator principal is required")

    def is_authorized(self, principal: Optional[str]) -> bool:
        return principal in self.principals
