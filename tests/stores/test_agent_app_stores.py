"""Tests for the credit/agent store, the app store and ClientState."""

from src.stores import AgentStore, AppStore, ClientState, CreditInfo, UIMode


class TestAgentStore:
    """Tests for credit info and the active-agent roster."""

    def test_default_credits(self):
        credits = AgentStore().credits
        assert credits.current == 0
        assert credits.max == 100

    def test_update_credits_replaces_wholesale(self):
        store = AgentStore()
        store.update_credits(CreditInfo(current=50, max=100))
        assert store.credits == CreditInfo(current=50, max=100)

    def test_current_may_exceed_max(self):
        """The store never clamps; only the display fraction does."""
        store = AgentStore()
        store.update_credits(CreditInfo(current=150, max=100))
        assert store.credits.current == 150
        assert store.credits.fraction == 1.0

    def test_fraction_with_zero_max(self):
        assert CreditInfo(current=10, max=0).fraction == 0.0

    def test_active_agents(self):
        store = AgentStore()
        store.set_active_agents(["planner", "executor"])
        assert store.active_agents == ("planner", "executor")


class TestAppStore:
    """Tests for UI mode switching and restore."""

    def test_switch_remembers_previous(self):
        store = AppStore()
        store.switch_mode(UIMode.NINJA)
        assert store.ui_mode is UIMode.NINJA
        assert store.previous_mode is UIMode.FULL

    def test_restore_previous(self):
        store = AppStore(initial_mode=UIMode.COPILOT)
        store.switch_mode("ninja")
        assert store.restore_previous_mode() is UIMode.COPILOT
        assert store.previous_mode is None

    def test_restore_without_previous_is_noop(self):
        store = AppStore()
        notified = []
        store.subscribe(lambda s: notified.append(1))
        assert store.restore_previous_mode() is UIMode.FULL
        assert notified == []

    def test_switch_to_same_mode_is_noop(self):
        store = AppStore()
        store.switch_mode(UIMode.NINJA)
        store.switch_mode(UIMode.NINJA)
        assert store.previous_mode is UIMode.FULL


class TestClientState:
    def test_create_uses_credit_max(self):
        state = ClientState.create(credit_max=250)
        assert state.agent.credits.max == 250

    def test_stores_are_independent(self):
        a, b = ClientState.create(), ClientState.create()
        a.app.switch_mode(UIMode.NINJA)
        assert b.app.ui_mode is UIMode.FULL
