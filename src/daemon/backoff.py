"""Reconnect backoff schedule."""

from collections.abc import Sequence

DEFAULT_RECONNECT_DELAYS: tuple[float, ...] = (1.0, 2.0, 4.0, 8.0, 8.0)


def reconnect_delay(
    attempt: int,
    schedule: Sequence[float] = DEFAULT_RECONNECT_DELAYS,
) -> float:
    """Return the delay in seconds before reconnect attempt number `attempt`.

    Attempts past the end of the schedule reuse its last value, so the
    default schedule yields 1, 2, 4, 8, 8, 8, ...

    Args:
        attempt: Zero-based count of reconnects already scheduled.
        schedule: Ascending delays in seconds. Must not be empty.

    Raises:
        ValueError: If the schedule is empty.
    """
    if not schedule:
        raise ValueError("reconnect schedule must not be empty")
    return schedule[min(max(attempt, 0), len(schedule) - 1)]
