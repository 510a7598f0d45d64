"""Tests for the local event bus and the dismiss-to-restore bridge."""

from src.bridge import DISMISS_EVENT, EventBridge, LocalEventBus
from src.stores import AppStore, UIMode


class TestLocalEventBus:
    def test_emit_reaches_listeners(self):
        bus = LocalEventBus()
        seen = []
        bus.listen("ping", seen.append)
        assert bus.emit("ping", {"n": 1}) == 1
        assert seen == [{"n": 1}]

    def test_unlisten_is_idempotent(self):
        bus = LocalEventBus()
        unlisten = bus.listen("ping", lambda p: None)
        unlisten()
        unlisten()
        assert bus.listener_count("ping") == 0

    def test_failing_handler_does_not_stop_delivery(self):
        bus = LocalEventBus()
        seen = []

        def _boom(_):
            raise RuntimeError("handler bug")

        bus.listen("ping", _boom)
        bus.listen("ping", seen.append)
        assert bus.emit("ping", 1) == 2
        assert seen == [1]

    def test_emit_without_listeners(self):
        assert LocalEventBus().emit("nobody") == 0


class TestEventBridge:
    """Tests for restoring the UI mode on ninja dismiss."""

    def test_dismiss_restores_previous_mode(self):
        bus = LocalEventBus()
        app = AppStore(initial_mode=UIMode.COPILOT)
        app.switch_mode(UIMode.NINJA)
        bridge = EventBridge(bus, app)
        bridge.start()
        bus.emit(DISMISS_EVENT)
        assert app.ui_mode is UIMode.COPILOT

    def test_start_is_idempotent(self):
        bus = LocalEventBus()
        bridge = EventBridge(bus, AppStore())
        bridge.start()
        bridge.start()
        assert bridge.is_listening
        assert bus.listener_count(DISMISS_EVENT) == 1

    def test_stop_releases_listener(self):
        bus = LocalEventBus()
        app = AppStore()
        app.switch_mode(UIMode.NINJA)
        bridge = EventBridge(bus, app)
        bridge.start()
        bridge.stop()
        bridge.stop()
        assert not bridge.is_listening
        assert bus.listener_count(DISMISS_EVENT) == 0
        bus.emit(DISMISS_EVENT)
        assert app.ui_mode is UIMode.NINJA

    def test_other_events_ignored(self):
        bus = LocalEventBus()
        app = AppStore()
        app.switch_mode(UIMode.NINJA)
        EventBridge(bus, app).start()
        bus.emit("window_focused")
        assert app.ui_mode is UIMode.NINJA

    def test_custom_event_name(self):
        bus = LocalEventBus()
        app = AppStore()
        app.switch_mode(UIMode.NINJA)
        EventBridge(bus, app, event_name="palette_closed").start()
        bus.emit("palette_closed")
        assert app.ui_mode is UIMode.FULL
