"""Observer support shared by the client state stores.

Stores are passive holders: they know nothing about the daemon channel.
Consumers subscribe to be told after each mutation and then read the
store through its read-only accessors.
"""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

StoreListener = Callable[[Any], None]


class ObservableStore:
    """Base class that notifies listeners after every mutation.

    Listeners run synchronously, in subscription order, once the
    mutation has fully completed. Exceptions from one listener are
    logged and do not stop delivery to the others.
    """

    name = "store"

    def __init__(self) -> None:
        """Initialize with no listeners."""
        self._listeners: list[StoreListener] = []

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a listener called with this store after each change.

        Args:
            listener: Callable receiving the store instance.

        Returns:
            A function that removes the listener. Calling it twice is a no-op.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(
                    "Listener %s failed on %s change: %s",
                    getattr(listener, "__name__", type(listener).__name__),
                    self.name,
                    e,
                )
