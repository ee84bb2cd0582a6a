import logging
import threading
from typing import Type, Callable, List, Dict, Any, Optional
from vtrim.domain.events import Event


class Subscription:
    """Handle for one subscriber; close() (or leaving a with-block) detaches it."""

    def __init__(self, bus: "EventBus", event_type: Type[Event], callback: Callable[[Any], None]):
        self.event_type = event_type
        self.callback = callback
        self._bus = bus
        self.active = True

    def close(self):
        self._bus.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class EventBus:
    """A simple synchronous event bus for decoupled communication.

    Events are delivered on the publishing thread. Subscribing to a base
    class (e.g. JobEvent) receives every subclass too.
    """

    def __init__(self):
        self._subscribers: Dict[Type[Event], List[Subscription]] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def subscribe(self, event_type: Type[Event], callback: Optional[Callable[[Any], None]] = None):
        """Subscribes a callback to a specific event type. Can be used as a decorator.

        Returns a Subscription when called directly; the decorator form
        returns the decorated function unchanged.
        """
        if callback is None:
            def decorator(func: Callable[[Any], None]):
                self.subscribe(event_type, func)
                return func
            return decorator

        subscription = Subscription(self, event_type, callback)
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        """Detaches a subscription. Unknown or already closed handles are ignored."""
        with self._lock:
            subscription.active = False
            subs = self._subscribers.get(subscription.event_type)
            if subs and subscription in subs:
                subs.remove(subscription)
                if not subs:
                    del self._subscribers[subscription.event_type]

    def subscriber_count(self, event_type: Type[Event]) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))

    def publish(self, event: Event):
        """Publishes an event to all interested subscribers.

        A subscriber that raises is logged and skipped; the publisher (a job
        worker) and the remaining subscribers are unaffected.
        """
        with self._lock:
            targets: List[Subscription] = []
            for cls in type(event).__mro__:
                targets.extend(self._subscribers.get(cls, ()))

        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.callback(event)
            except Exception:
                self.logger.exception(
                    f"EVENT_HANDLER_ERROR: {type(event).__name__} -> {subscription.callback!r}"
                )
