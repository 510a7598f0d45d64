"""Secondary local channel: out-of-band desktop notifications."""

from src.bridge.events import (
    DISMISS_EVENT,
    EventBridge,
    LocalEventBus,
    LocalEventSource,
)

__all__ = ["DISMISS_EVENT", "EventBridge", "LocalEventBus", "LocalEventSource"]
