"""
Publish/subscribe bus that fans snapshot changes out to independent views.

One writer (the engine), many readers. Subscribers receive the payload of the
event they subscribed to and must treat it as read-only.
"""
from collections import defaultdict
from typing import Any, Callable, Dict, List

from ganttkit.logs import get_logger

log = get_logger("events")

STATE_CHANGED = "state:changed"
DATA_UPDATED = "data:updated"

EventCallback = Callable[[Any], None]

def collection_event(collection: str) -> str:
    """Name of the narrow event published when one collection changes."""
    return f"data:{collection}:updated"

class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[EventCallback]] = defaultdict(list)

    def subscribe(self, event: str, callback: EventCallback) -> Callable[[], None]:
        """Register a callback; returns a function that removes it again."""
        self._subscribers[event].append(callback)

        def unsubscribe():
            callbacks = self._subscribers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def publish(self, event: str, data: Any = None) -> int:
        """Deliver data to every subscriber of event, returns how many were called."""
        delivered = 0
        # Copy so callbacks may unsubscribe while being notified
        for callback in list(self._subscribers.get(event, [])):
            try:
                callback(data)
                delivered += 1
            except Exception as e:
                log.error(f"Subscriber {getattr(callback, '__name__', callback)!r} failed on {event}: {e}")
        return delivered

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, []))

    def clear(self):
        self._subscribers.clear()
