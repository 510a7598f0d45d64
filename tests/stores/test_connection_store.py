"""Tests for the connection store and store observers."""

from src.stores import ConnectionStatus, ConnectionStore


class TestConnectionStore:
    """Tests for ConnectionStore mutators and invariants."""

    def test_defaults(self):
        """A new store is disconnected with nothing known."""
        snap = ConnectionStore().snapshot()
        assert snap.status is ConnectionStatus.DISCONNECTED
        assert snap.daemon_version is None
        assert snap.orchestrator_connected is False
        assert snap.active_tasks == 0
        assert snap.error_message is None

    def test_connected_clears_error(self):
        store = ConnectionStore()
        store.set_error("Daemon failed to start. Run: d1 start")
        store.set_status(ConnectionStatus.CONNECTED)
        assert store.error_message is None

    def test_connecting_keeps_error(self):
        """The banner survives reconnect attempts."""
        store = ConnectionStore()
        store.set_error("Daemon failed to start. Run: d1 start")
        store.set_status(ConnectionStatus.CONNECTING)
        store.set_status(ConnectionStatus.DISCONNECTED)
        assert store.error_message == "Daemon failed to start. Run: d1 start"

    def test_set_status_accepts_strings(self):
        store = ConnectionStore()
        store.set_status("connecting")
        assert store.status is ConnectionStatus.CONNECTING

    def test_decrement_saturates_at_zero(self):
        store = ConnectionStore()
        store.set_daemon_info("0.4.2", True, 1)
        store.decrement_active_tasks()
        store.decrement_active_tasks()
        assert store.active_tasks == 0

    def test_daemon_info_never_negative(self):
        store = ConnectionStore()
        store.set_daemon_info("0.4.2", False, -3)
        assert store.active_tasks == 0

    def test_snapshots_are_immutable_values(self):
        """Old snapshots are unaffected by later mutations."""
        store = ConnectionStore()
        before = store.snapshot()
        store.set_current_task_id("tsk_1")
        assert before.current_task_id is None
        assert store.snapshot().current_task_id == "tsk_1"


class TestObservers:
    """Tests for subscribe/unsubscribe behaviour shared by all stores."""

    def test_listener_called_after_mutation(self):
        store = ConnectionStore()
        seen = []
        store.subscribe(lambda s: seen.append(s.status))
        store.set_status(ConnectionStatus.CONNECTING)
        assert seen == [ConnectionStatus.CONNECTING]

    def test_unsubscribe_is_idempotent(self):
        store = ConnectionStore()
        seen = []
        unsubscribe = store.subscribe(lambda s: seen.append(1))
        unsubscribe()
        unsubscribe()
        store.set_status(ConnectionStatus.CONNECTING)
        assert seen == []

    def test_failing_listener_does_not_block_others(self):
        store = ConnectionStore()
        seen = []

        def _boom(_):
            raise RuntimeError("listener bug")

        store.subscribe(_boom)
        store.subscribe(lambda s: seen.append(s.status))
        store.set_status(ConnectionStatus.CONNECTED)
        assert seen == [ConnectionStatus.CONNECTED]
        assert store.status is ConnectionStatus.CONNECTED
