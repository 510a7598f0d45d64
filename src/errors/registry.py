"""Registry of daemon error codes and their user-facing messages.

The daemon reports failures as ``error`` envelopes carrying a string
``code``. Most codes are informational and only logged; a few map to a
persistent hint shown in the connection banner. The client also raises
its own codes for conditions it detects locally (daemon launch failure).

Each entry includes a code, category, title, user message and whether
the condition clears on its own once the connection recovers.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for daemon error codes."""

    PROTOCOL = "protocol"  # Wire format or version problems
    DAEMON = "daemon"  # Daemon process lifecycle
    TASK = "task"  # Task execution reported by the daemon


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Code string as sent on the wire.
        category: Error category for grouping.
        title: Short title for display.
        user_message: Text shown to the user in the connection banner.
        is_retryable: Whether reconnecting can clear the condition.
        surfaces_to_user: Whether the code sets the connection banner.
    """

    code: str
    category: ErrorCategory
    title: str
    user_message: str
    is_retryable: bool = True
    surfaces_to_user: bool = False


PROTOCOL_VERSION_MISMATCH = "PROTOCOL_VERSION_MISMATCH"
PROTOCOL_ERROR = "PROTOCOL_ERROR"
DAEMON_LAUNCH_FAILED = "DAEMON_LAUNCH_FAILED"

ERROR_REGISTRY: dict[str, ErrorCode] = {
    PROTOCOL_VERSION_MISMATCH: ErrorCode(
        code=PROTOCOL_VERSION_MISMATCH,
        category=ErrorCategory.PROTOCOL,
        title="Client Out of Date",
        user_message="Day 1 Doctor app is out of date. Please update.",
        is_retryable=False,
        surfaces_to_user=True,
    ),
    PROTOCOL_ERROR: ErrorCode(
        code=PROTOCOL_ERROR,
        category=ErrorCategory.PROTOCOL,
        title="Malformed Message",
        user_message="The daemon rejected a message from this client.",
    ),
    DAEMON_LAUNCH_FAILED: ErrorCode(
        code=DAEMON_LAUNCH_FAILED,
        category=ErrorCategory.DAEMON,
        title="Daemon Not Running",
        user_message="Daemon failed to start. Run: d1 start",
        surfaces_to_user=True,
    ),
    "TASK_NOT_FOUND": ErrorCode(
        code="TASK_NOT_FOUND",
        category=ErrorCategory.TASK,
        title="Unknown Task",
        user_message="The daemon has no record of that task.",
    ),
    "PLAN_EXPIRED": ErrorCode(
        code="PLAN_EXPIRED",
        category=ErrorCategory.TASK,
        title="Plan Expired",
        user_message="The plan is no longer awaiting approval.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Code string as sent on the wire.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def user_message(code: str) -> str | None:
    """Return the banner text for a code, or None if it stays in the logs.

    Args:
        code: Code string as sent on the wire.

    Returns:
        User-facing message for codes that surface to the user.
    """
    error = ERROR_REGISTRY.get(code)
    if error is None or not error.surfaces_to_user:
        return None
    return error.user_message


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
