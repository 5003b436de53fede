"""In-process publish/subscribe bus for crop lifecycle notifications."""

import logging
import threading
import uuid
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Type


@dataclass(kw_only=True)
class Event:
    """Base event; subclasses add their payload as keyword-only fields."""
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class Subscription:
    """Handle returned by subscribe(); can be used to unsubscribe."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: Type = Event
    handler: Callable = field(default=lambda e: None)
    background: bool = False
    active: bool = True

    def cancel(self):
        self.active = False


class EventBus:
    """Deliver events to handlers registered for the exact event type.

    Foreground handlers run on the publishing thread before ``publish``
    returns.  Background handlers are dispatched to a small worker pool that
    is created on first use.
    """

    def __init__(self, logger: logging.Logger = None, max_workers: int = 2):
        self._logger = logger or logging.getLogger(__name__)
        self._subscriptions: Dict[Type[Event], List[Subscription]] = defaultdict(list)
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Event], handler: Callable, background: bool = False) -> Subscription:
        sub = Subscription(event_type=event_type, handler=handler, background=background)
        with self._lock:
            self._subscriptions[event_type].append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription):
        subscription.cancel()
        with self._lock:
            subs = self._subscriptions.get(subscription.event_type, [])
            if subscription in subs:
                subs.remove(subscription)

    def subscriber_count(self, event_type: Type[Event]) -> int:
        with self._lock:
            return sum(1 for sub in self._subscriptions.get(event_type, []) if sub.active)

    def publish(self, event: Event):
        event_type = type(event)
        with self._lock:
            subs = list(self._subscriptions.get(event_type, []))

        for sub in subs:
            if not sub.active:
                continue
            if sub.background:
                self._pool().submit(self._safe_call, sub.handler, event)
            else:
                self._safe_call(sub.handler, event)

    def shutdown(self):
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self._max_workers)
            return self._executor

    def _safe_call(self, handler, event):
        try:
            handler(event)
        except Exception:
            self._logger.exception("Handler failed for %s", type(event).__name__)
