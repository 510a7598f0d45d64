"""Credit/Agent State Store — credit balance and active-agent roster."""

from dataclasses import dataclass

from src.stores.base import ObservableStore

DEFAULT_CREDIT_MAX = 100


@dataclass(frozen=True)
class CreditInfo:
    """Credit balance. current may exceed max; the store never clamps."""

    current: float
    max: float

    @property
    def fraction(self) -> float:
        """current/max clamped to [0, 1], for progress bars."""
        if self.max <= 0:
            return 0.0
        return min(1.0, max(0.0, self.current / self.max))


class AgentStore(ObservableStore):
    name = "agent"

    def __init__(self, credit_max: float = DEFAULT_CREDIT_MAX) -> None:
        super().__init__()
        self._credits = CreditInfo(current=0, max=credit_max)
        self._active_agents: tuple[str, ...] = ()

    @property
    def credits(self) -> CreditInfo:
        return self._credits

    @property
    def active_agents(self) -> tuple[str, ...]:
        return self._active_agents

    def snapshot(self) -> tuple[CreditInfo, tuple[str, ...]]:
        return self._credits, self._active_agents

    def update_credits(self, info: CreditInfo) -> None:
        """Replace credit info wholesale."""
        self._credits = CreditInfo(current=info.current, max=info.max)
        self._notify()

    def set_active_agents(self, agents: list[str]) -> None:
        self._active_agents = tuple(agents)
        self._notify()
