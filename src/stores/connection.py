"""Connection State Store — daemon reachability and session pointers."""

import logging
from dataclasses import dataclass, replace
from enum import Enum

from src.stores.base import ObservableStore

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    """Reachability of the daemon channel."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot of what the client knows about the daemon."""

    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    daemon_version: str | None = None
    orchestrator_connected: bool = False
    active_tasks: int = 0
    error_message: str | None = None
    current_plan_id: str | None = None
    current_task_id: str | None = None
    status_phrase: str | None = None


class ConnectionStore(ObservableStore):
    """Holds ConnectionState and the mutators the connection layer uses.

    Invariants:
        active_tasks never goes below zero.
        error_message survives CONNECTING so a banner stays visible across
        reconnect attempts; only CONNECTED clears it.
    """

    name = "connection"

    def __init__(self) -> None:
        super().__init__()
        self._state = ConnectionState()

    def snapshot(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def error_message(self) -> str | None:
        return self._state.error_message

    @property
    def active_tasks(self) -> int:
        return self._state.active_tasks

    def _update(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        self._notify()

    def set_status(self, status: ConnectionStatus | str) -> None:
        """Set channel status. CONNECTED also clears any error message."""
        status = ConnectionStatus(status)
        if status is ConnectionStatus.CONNECTED:
            self._update(status=status, error_message=None)
        else:
            self._update(status=status)

    def set_daemon_info(
        self,
        daemon_version: str,
        orchestrator_connected: bool,
        active_tasks: int,
    ) -> None:
        """Copy identity and load reported by daemon.status."""
        self._update(
            daemon_version=daemon_version,
            orchestrator_connected=orchestrator_connected,
            active_tasks=max(0, active_tasks),
        )

    def set_error(self, message: str | None) -> None:
        """Record a user-visible hint. Does not touch status."""
        self._update(error_message=message)

    def set_status_phrase(self, phrase: str | None) -> None:
        self._update(status_phrase=phrase)

    def set_current_plan_id(self, plan_id: str | None) -> None:
        self._update(current_plan_id=plan_id)

    def set_current_task_id(self, task_id: str | None) -> None:
        self._update(current_task_id=task_id)

    def decrement_active_tasks(self) -> None:
        """Decrement the active-task count, saturating at zero."""
        if self._state.active_tasks <= 0:
            logger.debug("active_tasks already 0, decrement ignored")
        self._update(active_tasks=max(0, self._state.active_tasks - 1))
