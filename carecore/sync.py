"""Cross-context change propagation.

Storage change notifications are translated into typed topics, one per
persisted collection, on an ``EventBus``. Collaborators subscribe to topics
and never look at storage events directly.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional

from carecore import keys
from carecore.events import Event, EventBus
from carecore.storage import KeyValueStore, StorageEvent

logger = logging.getLogger(__name__)

TOPIC_BY_KEY: Dict[str, str] = {
    keys.TASKS: "collection:tasks",
    keys.TRANSACTIONS: "collection:transactions",
    keys.REQUESTS: "collection:requests",
    keys.BUDGET_BY_CLIENT: "collection:budget",
    keys.ANNUAL_BUDGET_BY_CLIENT: "collection:annual-budget",
    keys.TASK_FILES: "collection:task-files",
    keys.ORG_STATUS_BY_CLIENT: "collection:org-access",
    keys.CURRENT_ORG_ID: "collection:current-org",
    keys.TASK_CATALOG: "collection:task-catalog",
}

TASKS_TOPIC = TOPIC_BY_KEY[keys.TASKS]
TRANSACTIONS_TOPIC = TOPIC_BY_KEY[keys.TRANSACTIONS]
BUDGET_TOPIC = TOPIC_BY_KEY[keys.BUDGET_BY_CLIENT]
ORG_ACCESS_TOPIC = TOPIC_BY_KEY[keys.ORG_STATUS_BY_CLIENT]

# what the dashboard pages reload on
DASHBOARD_TOPICS = (BUDGET_TOPIC, TASKS_TOPIC, ORG_ACCESS_TOPIC)


def topic_for(key: str) -> Optional[str]:
    return TOPIC_BY_KEY.get(key)


class StoreBridge:
    """Republishes another context's writes to ``store`` as collection topics on ``bus``."""

    def __init__(self, store: KeyValueStore, bus: EventBus):
        self.bus = bus
        self._unsubscribe = store.subscribe(self._on_storage)

    def _on_storage(self, event: StorageEvent) -> None:
        topic = topic_for(event.key)
        if topic is None:
            return
        logger.debug("key %r changed in another context -> %s", event.key, topic)
        self.bus.publish(topic, {"key": event.key, "area": event.area, "ts": event.ts})

    def close(self) -> None:
        self._unsubscribe()


class CollectionWatcher:
    """Calls ``reload`` when any watched collection changes, or when the view regains focus."""

    def __init__(self, bus: EventBus, reload: Callable[[], object],
                 topics: Iterable[str] = DASHBOARD_TOPICS):
        self.reload = reload
        self.reloads = 0
        self._unsubscribers: List[Callable[[], None]] = [
            bus.subscribe(t, self._on_change) for t in topics
        ]

    def _on_change(self, event: Event, payload: dict) -> None:
        self._trigger(event.name)

    def on_visible(self) -> None:
        # events may have been missed while in the background
        self._trigger("visible")

    def _trigger(self, cause: str) -> None:
        self.reloads += 1
        logger.debug("reloading after %s", cause)
        self.reload()

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
