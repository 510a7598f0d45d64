"""Conversation State Store — message log and the live step plan.

The message log is append-only and keeps insertion order. At most one
Plan is live; set_plan() discards the previous one. Steps are updated in
place by id and never reordered.
"""

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum

from src.stores.base import ObservableStore

logger = logging.getLogger(__name__)


class Role(str, Enum):
    AGENT = "agent"
    USER = "user"


class StepState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class Message:
    """A single chat message. Immutable once appended."""

    id: str
    role: Role
    content: str
    timestamp: int  # epoch milliseconds


@dataclass
class Step:
    """One step of a plan.

    Attributes:
        id: Daemon-assigned step id.
        label: Human-readable description.
        state: Execution state, updated as status events arrive.
        index: Display-order hint assigned when the plan is created.
    """

    id: str
    label: str
    state: StepState = StepState.PENDING
    index: int = 0


@dataclass
class Plan:
    """Ordered steps proposed for a task, awaiting a single user decision."""

    steps: list[Step] = field(default_factory=list)
    approved: bool | None = None

    @classmethod
    def from_specs(cls, specs: list[tuple[str, str]]) -> "Plan":
        """Build a fresh plan with every step pending.

        Args:
            specs: (step_id, label) pairs in display order.
        """
        return cls(
            steps=[
                Step(id=step_id, label=label, state=StepState.PENDING, index=i)
                for i, (step_id, label) in enumerate(specs)
            ],
            approved=None,
        )

    def get_step(self, step_id: str) -> Step | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


class ConversationStore(ObservableStore):
    """Holds the ordered message log and the current plan."""

    name = "conversation"

    def __init__(self) -> None:
        super().__init__()
        self._messages: list[Message] = []
        self._plan: Plan | None = None

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def current_plan(self) -> Plan | None:
        """A copy of the live plan; mutate through the store only."""
        return copy.deepcopy(self._plan)

    def snapshot(self) -> tuple[tuple[Message, ...], Plan | None]:
        return self.messages, self.current_plan

    def append_message(self, message: Message) -> None:
        self._messages.append(message)
        self._notify()

    def set_plan(self, plan: Plan) -> None:
        """Replace the live plan, discarding any previous one."""
        self._plan = copy.deepcopy(plan)
        self._notify()

    def update_step(self, step_id: str, state: StepState | str) -> bool:
        """Set one step's state in place.

        Args:
            step_id: Id of the step to update.
            state: New state.

        Returns:
            True if the step was found, False if there is no live plan or
            no step with that id (the store is left untouched).
        """
        if self._plan is None:
            logger.debug("update_step(%s) with no live plan", step_id)
            return False
        step = self._plan.get_step(step_id)
        if step is None:
            logger.debug("update_step: step %s not in live plan", step_id)
            return False
        step.state = StepState(state)
        self._notify()
        return True

    def approve_plan(self, approved: bool) -> bool:
        """Record the user's decision. A plan is decided at most once.

        Returns:
            True if the decision was recorded.
        """
        if self._plan is None:
            return False
        if self._plan.approved is not None:
            logger.warning(
                "Plan already %s; ignoring second decision",
                "approved" if self._plan.approved else "rejected",
            )
            return False
        self._plan.approved = approved
        self._notify()
        return True

    def clear_plan(self) -> None:
        self._plan = None
        self._notify()

    def clear_messages(self) -> None:
        """Start a new conversation: empty the log and drop the plan."""
        self._messages = []
        self._plan = None
        self._notify()
