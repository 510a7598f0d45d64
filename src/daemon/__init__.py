"""Daemon connection layer.

- DaemonConnectionManager: socket lifecycle, heartbeat, reconnect, dispatch
- InboundDispatcher: applies typed inbound messages to the stores
- DaemonLauncher: best-effort "ensure the daemon is running"
- open_websocket: default aiohttp channel factory
"""

from src.daemon.backoff import DEFAULT_RECONNECT_DELAYS, reconnect_delay
from src.daemon.connection import (
    DEFAULT_DAEMON_URL,
    TASK_ID_PREFIX,
    ConnectionPhase,
    DaemonConnectionManager,
    new_task_id,
)
from src.daemon.dispatch import InboundDispatcher
from src.daemon.launcher import DaemonLauncher
from src.daemon.phrases import next_status_phrase
from src.daemon.transport import DaemonChannel, open_websocket

__all__ = [
    "ConnectionPhase",
    "DaemonChannel",
    "DaemonConnectionManager",
    "DaemonLauncher",
    "DEFAULT_DAEMON_URL",
    "DEFAULT_RECONNECT_DELAYS",
    "InboundDispatcher",
    "TASK_ID_PREFIX",
    "new_task_id",
    "next_status_phrase",
    "open_websocket",
    "reconnect_delay",
]
