"""Tests for typed inbound messages and outbound payload builders."""

import pytest

from src.errors.domain import PayloadError
from src.protocol.envelope import Envelope
from src.protocol.messages import (
    KNOWN_MESSAGES,
    CreditsUpdated,
    DaemonStatus,
    PlanDecision,
    PlanProposed,
    TaskFailed,
    UnknownMessage,
    heartbeat_payload,
    parse_inbound,
    plan_approve_payload,
    task_submit_payload,
)


def _envelope(message_type: str, payload: dict) -> Envelope:
    return Envelope(v=1, id="e-1", ts=1, type=message_type, payload=payload)


class TestParseInbound:
    """Tests for envelope -> typed message."""

    def test_daemon_status(self):
        msg = parse_inbound(_envelope("daemon.status", {
            "daemon_version": "0.4.2",
            "protocol_version": 1,
            "orchestrator_connected": True,
            "active_tasks": 2,
            "device_id": "dev-1",
        }))
        assert isinstance(msg, DaemonStatus)
        assert msg.daemon_version == "0.4.2"
        assert msg.orchestrator_connected is True
        assert msg.active_tasks == 2

    def test_plan_proposed_keeps_step_order(self):
        msg = parse_inbound(_envelope("plan.proposed", {
            "task_id": "tsk_1",
            "plan_id": "p1",
            "steps": [
                {"step_id": "a", "description": "Install brew"},
                {"step_id": "b", "description": "Install node"},
            ],
        }))
        assert isinstance(msg, PlanProposed)
        assert [s.step_id for s in msg.steps] == ["a", "b"]
        assert msg.steps[1].description == "Install node"

    def test_extra_fields_are_ignored(self):
        """Newer daemons may add fields without breaking the client."""
        msg = parse_inbound(_envelope("credits.updated", {
            "daily_balance": 40, "bonus_balance": 10, "tier": "pro",
        }))
        assert isinstance(msg, CreditsUpdated)
        assert msg.daily_balance + msg.bonus_balance == 50

    def test_task_failed_error_detail(self):
        msg = parse_inbound(_envelope("task.failed", {
            "task_id": "tsk_1", "error": {"code": "E1", "message": "disk full"},
        }))
        assert isinstance(msg, TaskFailed)
        assert msg.error.message == "disk full"

    def test_unknown_type_is_inert_variant(self):
        """Unrecognised types become UnknownMessage with the raw payload."""
        msg = parse_inbound(_envelope("telemetry.sample", {"cpu": 3}))
        assert isinstance(msg, UnknownMessage)
        assert msg.message_type == "telemetry.sample"
        assert msg.payload == {"cpu": 3}

    def test_wrong_payload_shape_raises(self):
        """A known type with a bad payload raises PayloadError."""
        with pytest.raises(PayloadError) as exc_info:
            parse_inbound(_envelope("agent.message", {"text": "no message field"}))
        assert exc_info.value.message_type == "agent.message"

    def test_every_known_type_is_registered(self):
        assert set(KNOWN_MESSAGES) == {
            "daemon.status",
            "plan.proposed",
            "step.started",
            "step.completed",
            "step.failed",
            "agent.message",
            "task.completed",
            "task.failed",
            "credits.updated",
            "permission.requested",
            "heartbeat",
            "error",
        }


class TestOutboundPayloads:
    """Tests for outbound payload builders."""

    def test_task_submit_default_context(self):
        assert task_submit_payload("tsk_1", "fix python") == {
            "task_id": "tsk_1",
            "input": "fix python",
            "context": {"env": {}},
        }

    def test_task_submit_custom_context(self):
        payload = task_submit_payload("tsk_1", "x", {"cwd": "/tmp", "env": {}})
        assert payload["context"] == {"cwd": "/tmp", "env": {}}

    def test_plan_approve(self):
        assert plan_approve_payload("tsk_1", "p1", PlanDecision.REJECT) == {
            "task_id": "tsk_1",
            "plan_id": "p1",
            "action": "REJECT",
            "modifications": None,
        }

    def test_plan_decision_from_bool(self):
        assert PlanDecision.from_bool(True) is PlanDecision.APPROVE
        assert PlanDecision.from_bool(False) is PlanDecision.REJECT

    def test_heartbeat(self):
        assert heartbeat_payload() == {"ping": True}
