"""Tests for applying inbound daemon messages to the stores."""

import pytest

from src.daemon.dispatch import InboundDispatcher
from src.protocol.envelope import encode
from src.protocol.messages import parse_inbound
from src.stores import ConnectionStatus, CreditInfo, Role, StepState


def _msg(message_type: str, payload: dict):
    return parse_inbound(encode(message_type, payload))


@pytest.fixture
def dispatcher(client_state, id_factory, fixed_clock):
    return InboundDispatcher(
        client_state,
        phrase_source=lambda: "Bob is a chef, he is cooking …",
        id_factory=id_factory,
        clock=fixed_clock,
    )


def _propose(dispatcher, steps=(("a", "Install brew"), ("b", "Install node"))):
    dispatcher.dispatch(_msg("plan.proposed", {
        "task_id": "tsk_1",
        "plan_id": "p1",
        "steps": [{"step_id": s, "description": d} for s, d in steps],
    }))


class TestDaemonStatus:
    def test_marks_connected_and_copies_info(self, dispatcher, client_state):
        client_state.connection.set_error("old banner")
        dispatcher.dispatch(_msg("daemon.status", {
            "daemon_version": "0.4.2",
            "orchestrator_connected": True,
            "active_tasks": 3,
        }))
        snap = client_state.connection.snapshot()
        assert snap.status is ConnectionStatus.CONNECTED
        assert snap.daemon_version == "0.4.2"
        assert snap.orchestrator_connected is True
        assert snap.active_tasks == 3
        assert snap.error_message is None


class TestPlanAndSteps:
    """Tests for plan.proposed and step.* handling."""

    def test_plan_proposed_replaces_plan(self, dispatcher, client_state):
        _propose(dispatcher)
        plan = client_state.conversation.current_plan
        assert [(s.id, s.label, s.state) for s in plan.steps] == [
            ("a", "Install brew", StepState.PENDING),
            ("b", "Install node", StepState.PENDING),
        ]
        assert plan.approved is None
        snap = client_state.connection.snapshot()
        assert snap.current_plan_id == "p1"
        assert snap.current_task_id == "tsk_1"

    def test_step_lifecycle(self, dispatcher, client_state):
        """Started sets a phrase; completed clears it; other steps untouched."""
        _propose(dispatcher)
        dispatcher.dispatch(_msg("step.started", {"step_id": "a"}))
        plan = client_state.conversation.current_plan
        assert plan.get_step("a").state is StepState.ACTIVE
        assert plan.get_step("b").state is StepState.PENDING
        assert client_state.connection.snapshot().status_phrase == "Bob is a chef, he is cooking …"

        dispatcher.dispatch(_msg("step.completed", {"step_id": "a"}))
        plan = client_state.conversation.current_plan
        assert plan.get_step("a").state is StepState.DONE
        assert plan.get_step("b").state is StepState.PENDING
        assert client_state.connection.snapshot().status_phrase is None

    def test_step_failed(self, dispatcher, client_state):
        _propose(dispatcher)
        dispatcher.dispatch(_msg("step.started", {"step_id": "b"}))
        dispatcher.dispatch(_msg("step.failed", {"step_id": "b", "error": "exit 1"}))
        assert client_state.conversation.current_plan.get_step("b").state is StepState.ERROR
        assert client_state.connection.snapshot().status_phrase is None

    def test_unknown_step_leaves_plan_unchanged(self, dispatcher, client_state):
        _propose(dispatcher)
        before = client_state.conversation.current_plan
        dispatcher.dispatch(_msg("step.completed", {"step_id": "zzz"}))
        assert client_state.conversation.current_plan == before

    def test_step_without_plan(self, dispatcher, client_state):
        dispatcher.dispatch(_msg("step.started", {"step_id": "a"}))
        assert client_state.conversation.current_plan is None


class TestMessagesAndTasks:
    """Tests for agent messages and task outcomes."""

    def test_agent_message_appended(self, dispatcher, client_state):
        dispatcher.dispatch(_msg("agent.message", {"message": "Looking at your PATH"}))
        (message,) = client_state.conversation.messages
        assert message.role is Role.AGENT
        assert message.content == "Looking at your PATH"
        assert message.id == "msg-1"
        assert message.timestamp == 1_718_000_000_000

    def test_task_completed(self, dispatcher, client_state):
        client_state.connection.set_daemon_info("0.4.2", True, 1)
        dispatcher.dispatch(_msg("task.completed", {"task_id": "tsk_1", "summary": "All set"}))
        assert client_state.conversation.messages[-1].content == "All set"
        assert client_state.connection.active_tasks == 0

    def test_task_failed(self, dispatcher, client_state):
        client_state.connection.set_daemon_info("0.4.2", True, 2)
        dispatcher.dispatch(_msg("task.failed", {
            "task_id": "tsk_1", "error": {"code": "E1", "message": "disk full"},
        }))
        assert client_state.conversation.messages[-1].content == "Task failed: disk full"
        assert client_state.connection.active_tasks == 1

    def test_task_completed_at_zero_stays_zero(self, dispatcher, client_state):
        dispatcher.dispatch(_msg("task.completed", {"summary": "done"}))
        assert client_state.connection.active_tasks == 0

    def test_permission_requested(self, dispatcher, client_state):
        dispatcher.dispatch(_msg("permission.requested", {"description": "sudo apt install"}))
        assert client_state.conversation.messages[-1].content == (
            "Permission requested: sudo apt install"
        )


class TestCredits:
    def test_daily_plus_bonus(self, dispatcher, client_state):
        dispatcher.dispatch(_msg("credits.updated", {"daily_balance": 40, "bonus_balance": 10}))
        assert client_state.agent.credits == CreditInfo(current=50, max=100)

    def test_configured_max(self, client_state):
        dispatcher = InboundDispatcher(client_state, credit_max=250)
        dispatcher.dispatch(_msg("credits.updated", {"daily_balance": 5}))
        assert client_state.agent.credits == CreditInfo(current=5, max=250)


class TestInertMessages:
    """Unknown kinds and heartbeats must not change any store."""

    def _snapshots(self, state):
        return (
            state.connection.snapshot(),
            state.conversation.snapshot(),
            state.agent.snapshot(),
            state.app.snapshot(),
        )

    def test_unknown_type(self, dispatcher, client_state):
        _propose(dispatcher)
        before = self._snapshots(client_state)
        dispatcher.dispatch(_msg("telemetry.sample", {"cpu": 3}))
        assert self._snapshots(client_state) == before

    def test_heartbeat(self, dispatcher, client_state):
        before = self._snapshots(client_state)
        dispatcher.dispatch(_msg("heartbeat", {"pong": True}))
        assert self._snapshots(client_state) == before


class TestDaemonErrors:
    def test_version_mismatch_sets_banner(self, dispatcher, client_state):
        dispatcher.dispatch(_msg("error", {
            "code": "PROTOCOL_VERSION_MISMATCH", "message": "v2 required",
        }))
        assert client_state.connection.error_message == (
            "Day 1 Doctor app is out of date. Please update."
        )

    def test_other_codes_only_logged(self, dispatcher, client_state):
        dispatcher.dispatch(_msg("error", {"code": "TASK_NOT_FOUND", "message": "?"}))
        dispatcher.dispatch(_msg("error", {"code": "SOMETHING_NEW"}))
        assert client_state.connection.error_message is None
