from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = [
    'Event', 'EventBus', 'BUDGET_CHANGED',
    'TXN_ADDED', 'TXN_APPROVED', 'ANNUAL_TOTAL',
]


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], object]


class EventBus:
    """Same-context publish/subscribe; handlers run synchronously in subscription order."""

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> Callable[[], None]:
        self._subscribers.setdefault(name, []).append(handler)
        return lambda: self.unsubscribe(name, handler)

    def publish(self, name: str, payload: dict) -> List[object]:
        handlers = list(self._subscribers.get(name, ()))
        if not handlers:
            return []

        event = Event(
            name=name,
            ts=datetime.now().isoformat(),
            payload=payload
        )
        return [handler(event, payload) for handler in handlers]

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, ()):
            self._subscribers[name].remove(handler)

    def subscriber_count(self, name: str) -> int:
        return len(self._subscribers.get(name, ()))


BUDGET_CHANGED = "budget:changed"

# values of payload["kind"] on BUDGET_CHANGED
TXN_ADDED = "txn-added"
TXN_APPROVED = "txn-approved"
ANNUAL_TOTAL = "annual-total"
