"""
Action panel for a single order.

Holds the resolved controls and serializes activation: while one action is
in flight, and for a short cool-down after it settles, every control is
disabled. The cool-down gives the backend time to settle before the caller
re-reads the order.

This is UI-level mutual exclusion per order, not a database lock.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from orderdesk.config import settings
from orderdesk.exceptions import ActionInProgressError, ActionNotAllowedError
from orderdesk.models.order import Order
from orderdesk.models.order_event import OrderEvent
from orderdesk.schemas.order_schemas import Control
from orderdesk.services.action_resolver import (
    ACTION_LABELS,
    OrderAction,
    derive_flags,
    resolve_actions,
)

logger = logging.getLogger(__name__)


class ActionGuard:
    def __init__(
        self,
        cooldown: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if cooldown is None:
            cooldown = settings.action_cooldown_ms / 1000
        self.cooldown = cooldown
        self._clock = clock
        self._lock = threading.Lock()
        self._in_flight = False
        self._busy_until = 0.0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def is_busy(self) -> bool:
        return self._in_flight or self._clock() < self._busy_until

    def acquire(self):
        with self._lock:
            if self.is_busy:
                raise ActionInProgressError("Another action is still being processed")
            self._in_flight = True

    def release(self):
        with self._lock:
            self._in_flight = False
            self._busy_until = self._clock() + self.cooldown


class GuardRegistry:
    """
    One ActionGuard per order id, kept only while it is busy.

    Idle entries are dropped whenever the registry is touched. Acquiring
    runs under the registry lock so concurrent requests for one order share
    a guard.
    """

    def __init__(self, factory: Callable[[], ActionGuard] = ActionGuard):
        self._factory = factory
        self._guards: Dict[int, ActionGuard] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._guards)

    def _prune(self, keep: Optional[int] = None):
        idle = [
            order_id for order_id, guard in self._guards.items()
            if order_id != keep and not guard.is_busy
        ]
        for order_id in idle:
            del self._guards[order_id]

    def _get(self, order_id: int) -> ActionGuard:
        self._prune(keep=order_id)
        guard = self._guards.get(order_id)
        if guard is None:
            guard = self._guards[order_id] = self._factory()
        return guard

    def get(self, order_id: int) -> ActionGuard:
        with self._lock:
            return self._get(order_id)

    def peek(self, order_id: int) -> Optional[ActionGuard]:
        with self._lock:
            return self._guards.get(order_id)

    def acquire(self, order_id: int) -> ActionGuard:
        with self._lock:
            guard = self._get(order_id)
            guard.acquire()
            return guard

    def prune(self):
        with self._lock:
            self._prune()

    def clear(self):
        with self._lock:
            self._guards.clear()


guards = GuardRegistry()


class ActionPanel:
    def __init__(
        self,
        order: Order,
        events: Sequence[OrderEvent] = (),
        guard: Optional[ActionGuard] = None,
        on_updated: Optional[List[Callable[[Order], None]]] = None,
        registry: Optional[GuardRegistry] = None,
    ):
        self.order = order
        self.events = list(events)
        self._guard = guard
        self._registry = registry if registry is not None else guards
        self.flags = derive_flags(order, self.events)
        self.actions = resolve_actions(order, self.events, self.flags)
        self._listeners = list(on_updated or [])

    def on_updated(self, listener: Callable[[Order], None]):
        self._listeners.append(listener)

    @property
    def guard(self) -> Optional[ActionGuard]:
        if self._guard is not None:
            return self._guard
        return self._registry.peek(self.order.id)

    @property
    def controls(self) -> List[Control]:
        guard = self.guard
        disabled = guard is not None and guard.is_busy
        return [
            Control(action=a.value, label=ACTION_LABELS[a], disabled=disabled)
            for a in self.actions
        ]

    def _acquire(self) -> ActionGuard:
        if self._guard is not None:
            self._guard.acquire()
            return self._guard
        return self._registry.acquire(self.order.id)

    def activate(self, action: OrderAction, handler: Callable, *args):
        """Run ``handler(order, *args)`` for an offered action.

        The "updated" listeners fire only after the handler returns. A
        failing handler leaves the order untouched here and re-raises.
        """
        if action not in self.actions:
            raise ActionNotAllowedError(action.value, self.order.status)

        guard = self._acquire()
        try:
            logger.info(f"Running {action.value} on order {self.order.id}")
            result = handler(self.order, *args)
        finally:
            guard.release()

        for listener in self._listeners:
            listener(self.order)

        return result
