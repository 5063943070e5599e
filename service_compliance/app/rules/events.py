"""
Notifications emitted by the rule engine.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type
import threading

from shared.logging import get_logger
from shared.metrics import MetricsCollector


@dataclass(frozen=True)
class RulesDefined:
    """Emitted once per successful rule set replacement."""
    count: int
    principal: Optional[str] = None
    defined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class OwnershipTransferred:
    """Emitted when the administrator identity changes."""
    previous_owner: str
    new_owner: str
    transferred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[Any], None]


class EventBus:
    """Synchronous in-process event bus.

    Handlers run in subscription order on the publishing thread. A failing
    handler is logged and skipped; the remaining handlers still receive
    the event.
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("compliance.events")
        self.metrics = metrics
        self._handlers: Dict[Type, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``; returns an unsubscribe callable."""
        with self._lock:
            self._handlers[event_type].append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: Type, handler: Handler) -> bool:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def handler_count(self, event_type: Type) -> int:
        return len(self._handlers.get(event_type, []))

    def publish(self, event: Any) -> int:
        """Deliver ``event`` to its subscribers and return how many succeeded."""
        with self._lock:
            handlers = list(self._handlers.get(type(event), []))

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                self.logger.error(
                    "Event handler failed",
                    event_type=type(event).__name__,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                    exc_info=True
                )
                if self.metrics:
                    self.metrics.record_error("event_handler")

        return delivered
