"""Inbound dispatch — applies typed daemon messages to the state stores.

Each message kind maps to one handler. Handlers only mutate stores; they
never send on the channel. UnknownMessage has no handler and is ignored,
which leaves every store untouched.
"""

import logging
from collections.abc import Callable

from src.errors.registry import user_message
from src.protocol.envelope import new_message_id, now_ms
from src.protocol.messages import (
    AgentMessage,
    CreditsUpdated,
    DaemonStatus,
    Heartbeat,
    InboundMessage,
    PermissionRequested,
    PlanProposed,
    ProtocolError,
    StepCompleted,
    StepFailed,
    StepStarted,
    TaskCompleted,
    TaskFailed,
)
from src.daemon.phrases import next_status_phrase
from src.stores import (
    ClientState,
    ConnectionStatus,
    CreditInfo,
    Message,
    Plan,
    Role,
    StepState,
)

logger = logging.getLogger(__name__)


class InboundDispatcher:
    """Routes inbound messages to store mutations.

    Args:
        state: The client's stores.
        phrase_source: Returns a status phrase for step.started.
        id_factory: Id source for locally created messages.
        clock: Epoch-ms clock for locally created messages.
        credit_max: Maximum used when building CreditInfo.
    """

    def __init__(
        self,
        state: ClientState,
        *,
        phrase_source: Callable[[], str] = next_status_phrase,
        id_factory: Callable[[], str] = new_message_id,
        clock: Callable[[], int] = now_ms,
        credit_max: float = 100,
    ):
        self._state = state
        self._phrase_source = phrase_source
        self._id_factory = id_factory
        self._clock = clock
        self._credit_max = credit_max
        self._handlers: dict[type, Callable] = {
            DaemonStatus: self._on_daemon_status,
            PlanProposed: self._on_plan_proposed,
            StepStarted: self._on_step_started,
            StepCompleted: self._on_step_completed,
            StepFailed: self._on_step_failed,
            AgentMessage: self._on_agent_message,
            TaskCompleted: self._on_task_completed,
            TaskFailed: self._on_task_failed,
            CreditsUpdated: self._on_credits_updated,
            PermissionRequested: self._on_permission_requested,
            Heartbeat: self._on_heartbeat,
            ProtocolError: self._on_error,
        }

    def dispatch(self, message: InboundMessage) -> None:
        """Apply one message. Unknown kinds are ignored."""
        handler = self._handlers.get(type(message))
        if handler is None:
            logger.debug(
                "Ignoring unrecognised message type %r",
                getattr(message, "message_type", type(message).__name__),
            )
            return
        handler(message)

    def _agent_says(self, content: str) -> None:
        self._state.conversation.append_message(
            Message(
                id=self._id_factory(),
                role=Role.AGENT,
                content=content,
                timestamp=self._clock(),
            )
        )

    # --- Handlers ---

    def _on_daemon_status(self, msg: DaemonStatus) -> None:
        connection = self._state.connection
        connection.set_status(ConnectionStatus.CONNECTED)
        connection.set_daemon_info(
            daemon_version=msg.daemon_version,
            orchestrator_connected=msg.orchestrator_connected,
            active_tasks=msg.active_tasks,
        )
        logger.info(
            "Daemon %s (orchestrator %s, %d active tasks)",
            msg.daemon_version,
            "connected" if msg.orchestrator_connected else "offline",
            msg.active_tasks,
        )

    def _on_plan_proposed(self, msg: PlanProposed) -> None:
        self._state.connection.set_current_task_id(msg.task_id)
        self._state.connection.set_current_plan_id(msg.plan_id)
        self._state.conversation.set_plan(
            Plan.from_specs([(s.step_id, s.description) for s in msg.steps])
        )

    def _on_step_started(self, msg: StepStarted) -> None:
        self._state.conversation.update_step(msg.step_id, StepState.ACTIVE)
        self._state.connection.set_status_phrase(self._phrase_source())

    def _on_step_completed(self, msg: StepCompleted) -> None:
        self._state.conversation.update_step(msg.step_id, StepState.DONE)
        self._state.connection.set_status_phrase(None)

    def _on_step_failed(self, msg: StepFailed) -> None:
        self._state.conversation.update_step(msg.step_id, StepState.ERROR)
        self._state.connection.set_status_phrase(None)

    def _on_agent_message(self, msg: AgentMessage) -> None:
        self._agent_says(msg.message)

    def _on_task_completed(self, msg: TaskCompleted) -> None:
        self._agent_says(msg.summary)
        self._state.connection.decrement_active_tasks()

    def _on_task_failed(self, msg: TaskFailed) -> None:
        self._agent_says(f"Task failed: {msg.error.message}")
        self._state.connection.decrement_active_tasks()

    def _on_credits_updated(self, msg: CreditsUpdated) -> None:
        self._state.agent.update_credits(
            CreditInfo(
                current=msg.daily_balance + msg.bonus_balance,
                max=self._credit_max,
            )
        )

    def _on_permission_requested(self, msg: PermissionRequested) -> None:
        self._agent_says(f"Permission requested: {msg.description}")

    def _on_heartbeat(self, msg: Heartbeat) -> None:
        logger.debug("Heartbeat reply from daemon")

    def _on_error(self, msg: ProtocolError) -> None:
        logger.error("Daemon reported error %s: %s", msg.code, msg.message)
        banner = user_message(msg.code)
        if banner is not None:
            self._state.connection.set_error(banner)
