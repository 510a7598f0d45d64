"""Event Bridge — out-of-band local notifications to store mutations.

The desktop shell emits named notifications outside the daemon channel,
e.g. when the ninja command bar is dismissed. The bridge listens for one
such notification and restores the UI mode remembered by the App Store.

LocalEventBus is the in-process notification source. Anything with the
same listen() signature can stand in for it.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol

from src.stores.app import AppStore

logger = logging.getLogger(__name__)

DISMISS_EVENT = "ninja_dismissed"

EventHandler = Callable[[Any], None]
Unlisten = Callable[[], None]


class LocalEventSource(Protocol):
    """Source of named local notifications."""

    def listen(self, event_name: str, handler: EventHandler) -> Unlisten:
        """Register a handler; the returned callable releases it."""
        ...


class LocalEventBus:
    """In-process named event bus.

    Handlers run synchronously in registration order. Exceptions from
    one handler are logged and do not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def listen(self, event_name: str, handler: EventHandler) -> Unlisten:
        """Register a handler for an event name.

        Args:
            event_name: Notification name, e.g. "ninja_dismissed".
            handler: Called with the event payload.

        Returns:
            Callable that removes the handler. Safe to call twice.
        """
        self._handlers.setdefault(event_name, []).append(handler)

        def _unlisten() -> None:
            handlers = self._handlers.get(event_name, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unlisten

    def emit(self, event_name: str, payload: Any = None) -> int:
        """Deliver an event to every handler registered for it.

        Returns:
            Number of handlers invoked.
        """
        handlers = list(self._handlers.get(event_name, []))
        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.error("Handler for %s failed: %s", event_name, e)
        return len(handlers)

    def listener_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, []))


class EventBridge:
    """Restores the previous UI mode when the dismiss notification arrives.

    At most one listener is active. start() is idempotent and stop()
    releases the listener.

    Args:
        source: Where notifications come from.
        app_store: Store holding the current and remembered UI mode.
        event_name: Notification that triggers the restore.
    """

    def __init__(
        self,
        source: LocalEventSource,
        app_store: AppStore,
        event_name: str = DISMISS_EVENT,
    ):
        self._source = source
        self._app_store = app_store
        self._event_name = event_name
        self._unlisten: Unlisten | None = None

    @property
    def is_listening(self) -> bool:
        return self._unlisten is not None

    def start(self) -> None:
        if self._unlisten is not None:
            return
        self._unlisten = self._source.listen(self._event_name, self._on_event)
        logger.debug("Listening for %s", self._event_name)

    def stop(self) -> None:
        unlisten, self._unlisten = self._unlisten, None
        if unlisten is not None:
            unlisten()
            logger.debug("Stopped listening for %s", self._event_name)

    def _on_event(self, payload: Any) -> None:
        mode = self._app_store.restore_previous_mode()
        logger.info("%s received; UI mode is now %s", self._event_name, mode.value)
