"""Client state stores.

Passive, observable containers for everything the UI layer displays.
The connection manager (inbound path) and direct user actions (outbound
path) are the only writers; presentation code only reads and subscribes.
"""

from dataclasses import dataclass, field

from src.stores.agent import DEFAULT_CREDIT_MAX, AgentStore, CreditInfo
from src.stores.app import AppStore, UIMode
from src.stores.base import ObservableStore
from src.stores.connection import ConnectionState, ConnectionStatus, ConnectionStore
from src.stores.conversation import (
    ConversationStore,
    Message,
    Plan,
    Role,
    Step,
    StepState,
)


@dataclass
class ClientState:
    """The set of stores created once at application start."""

    connection: ConnectionStore = field(default_factory=ConnectionStore)
    conversation: ConversationStore = field(default_factory=ConversationStore)
    agent: AgentStore = field(default_factory=AgentStore)
    app: AppStore = field(default_factory=AppStore)

    @classmethod
    def create(cls, credit_max: float = DEFAULT_CREDIT_MAX) -> "ClientState":
        return cls(agent=AgentStore(credit_max=credit_max))


__all__ = [
    "AgentStore",
    "AppStore",
    "ClientState",
    "ConnectionState",
    "ConnectionStatus",
    "ConnectionStore",
    "ConversationStore",
    "CreditInfo",
    "Message",
    "ObservableStore",
    "Plan",
    "Role",
    "Step",
    "StepState",
    "UIMode",
]
