"""In-process publish/subscribe channel keyed by project id."""

import threading
from collections.abc import Callable
from types import TracebackType

from docflow.feed.models import ChangeEvent
from docflow.logging.logger import Log

Listener = Callable[[ChangeEvent], None]


class Subscription:
    """Handle for one listener registered on a Topic key."""

    def __init__(self, topic: "Topic", key: str, listener: Listener) -> None:
        self._topic = topic
        self.key = key
        self.listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        if self._active:
            self._topic._remove(self)
            self._active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unsubscribe()


class Topic:
    """Fans out change events to the listeners subscribed to a project.

    Delivery is synchronous on the publishing thread. A failing listener is
    logged and does not prevent delivery to the others.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, key: str, listener: Listener) -> Subscription:
        subscription = Subscription(self, key, listener)
        with self._lock:
            self._subscriptions.setdefault(key, []).append(subscription)
        Log.debug(f"Subscribed listener to project {key}")
        return subscription

    def publish(self, key: str, event: ChangeEvent) -> int:
        """Deliver an event to every listener of ``key``. Returns the delivery count."""
        with self._lock:
            targets = list(self._subscriptions.get(key, ()))
        delivered = 0
        for subscription in targets:
            try:
                subscription.listener(event)
                delivered += 1
            except Exception as exc:
                Log.error(
                    f"Change listener failed for document {event.document.id}: {exc}"
                )
        return delivered

    def subscriber_count(self, key: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(key, ()))

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._subscriptions.get(subscription.key, [])
            if subscription in listeners:
                listeners.remove(subscription)
            if not listeners:
                self._subscriptions.pop(subscription.key, None)
        Log.debug(f"Unsubscribed listener from project {subscription.key}")
