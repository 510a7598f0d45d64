"""Typed message kinds carried inside envelopes.

Inbound messages form a closed set keyed by envelope type. Anything the
client does not recognise parses to UnknownMessage, which carries the raw
type and payload and is never acted on, so the daemon can add kinds
without breaking older clients. Extra payload fields are ignored for the
same reason.

Outbound payloads are built by small helper functions so the connection
manager never assembles dicts by hand.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.errors.domain import PayloadError
from src.protocol.envelope import Envelope

# Outbound wire types
TASK_SUBMIT = "task.submit"
PLAN_APPROVE = "plan.approve"
HEARTBEAT = "heartbeat"


class PlanDecision(str, Enum):
    """User decision on a proposed plan."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"

    @classmethod
    def from_bool(cls, approved: bool) -> "PlanDecision":
        return cls.APPROVE if approved else cls.REJECT


class InboundPayload(BaseModel):
    """Base for inbound payload models."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    message_type: ClassVar[str] = ""


class DaemonStatus(InboundPayload):
    """Daemon identity and load, sent on connect and on change."""

    message_type: ClassVar[str] = "daemon.status"

    daemon_version: str
    protocol_version: int | None = None
    orchestrator_connected: bool = False
    orchestrator_url: str | None = None
    active_tasks: int = 0
    device_id: str | None = None


class PlanStepSpec(BaseModel):
    """One step as proposed by the daemon."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    step_id: str
    description: str


class PlanProposed(InboundPayload):
    message_type: ClassVar[str] = "plan.proposed"

    task_id: str
    plan_id: str
    steps: list[PlanStepSpec] = Field(default_factory=list)
    summary: str | None = None
    risk_tier: str | None = None
    requires_approval: bool = True


class StepStarted(InboundPayload):
    message_type: ClassVar[str] = "step.started"

    step_id: str
    task_id: str | None = None


class StepCompleted(InboundPayload):
    message_type: ClassVar[str] = "step.completed"

    step_id: str
    task_id: str | None = None
    output: str | None = None


class StepFailed(InboundPayload):
    message_type: ClassVar[str] = "step.failed"

    step_id: str
    task_id: str | None = None
    error: str | dict[str, Any] | None = None


class AgentMessage(InboundPayload):
    message_type: ClassVar[str] = "agent.message"

    message: str
    task_id: str | None = None


class TaskCompleted(InboundPayload):
    message_type: ClassVar[str] = "task.completed"

    summary: str
    task_id: str | None = None


class ErrorDetail(BaseModel):
    """Code and message pair used by task.failed and error payloads."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    code: str = ""
    message: str = ""


class TaskFailed(InboundPayload):
    message_type: ClassVar[str] = "task.failed"

    error: ErrorDetail
    task_id: str | None = None


class CreditsUpdated(InboundPayload):
    message_type: ClassVar[str] = "credits.updated"

    daily_balance: float
    bonus_balance: float = 0


class PermissionRequested(InboundPayload):
    message_type: ClassVar[str] = "permission.requested"

    description: str
    task_id: str | None = None
    permission: str | None = None


class Heartbeat(InboundPayload):
    message_type: ClassVar[str] = "heartbeat"

    pong: bool = False


class ProtocolError(InboundPayload):
    """Daemon-reported error, e.g. PROTOCOL_VERSION_MISMATCH."""

    message_type: ClassVar[str] = "error"

    code: str
    message: str = ""
    request_id: str | None = None


@dataclass(frozen=True)
class UnknownMessage:
    """An envelope type this client does not understand. Always inert."""

    message_type: str
    payload: dict[str, Any] = field(default_factory=dict)


KNOWN_MESSAGES: dict[str, type[InboundPayload]] = {
    model.message_type: model
    for model in (
        DaemonStatus,
        PlanProposed,
        StepStarted,
        StepCompleted,
        StepFailed,
        AgentMessage,
        TaskCompleted,
        TaskFailed,
        CreditsUpdated,
        PermissionRequested,
        Heartbeat,
        ProtocolError,
    )
}

InboundMessage = (
    DaemonStatus
    | PlanProposed
    | StepStarted
    | StepCompleted
    | StepFailed
    | AgentMessage
    | TaskCompleted
    | TaskFailed
    | CreditsUpdated
    | PermissionRequested
    | Heartbeat
    | ProtocolError
    | UnknownMessage
)


def parse_inbound(envelope: Envelope) -> InboundMessage:
    """Turn a decoded envelope into its typed message.

    Args:
        envelope: A successfully decoded envelope.

    Returns:
        The typed payload model, or UnknownMessage for unrecognised types.

    Raises:
        PayloadError: If a known type carries a payload of the wrong shape.
    """
    model = KNOWN_MESSAGES.get(envelope.type)
    if model is None:
        return UnknownMessage(message_type=envelope.type, payload=dict(envelope.payload))
    try:
        return model.model_validate(envelope.payload)
    except ValidationError as e:
        raise PayloadError(envelope.type, f"{e.error_count()} field error(s)") from e


# --- Outbound payload builders ---


def task_submit_payload(
    task_id: str,
    text: str,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a task.submit payload.

    Args:
        task_id: Client-generated task id.
        text: The user's task description.
        context: Optional execution context (cwd, env). Defaults to an
            empty environment.
    """
    return {
        "task_id": task_id,
        "input": text,
        "context": context if context is not None else {"env": {}},
    }


def plan_approve_payload(
    task_id: str,
    plan_id: str,
    decision: PlanDecision,
) -> dict[str, Any]:
    """Build a plan.approve payload. Modifications are not supported."""
    return {
        "task_id": task_id,
        "plan_id": plan_id,
        "action": PlanDecision(decision).value,
        "modifications": None,
    }


def heartbeat_payload() -> dict[str, Any]:
    return {"ping": True}
