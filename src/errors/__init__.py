"""Error handling for the daemon client.

This package provides:
- Typed client exceptions (decode, payload, config)
- Registry of daemon error codes with user-facing messages

Error categories:
- protocol: wire format or version problems
- daemon: daemon process lifecycle
- task: task execution reported by the daemon
"""

from src.errors.domain import (
    ClientError,
    ConfigError,
    DecodeError,
    PayloadError,
)
from src.errors.registry import (
    DAEMON_LAUNCH_FAILED,
    ERROR_REGISTRY,
    PROTOCOL_ERROR,
    PROTOCOL_VERSION_MISMATCH,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
    user_message,
)

__all__ = [
    # Exceptions
    "ClientError",
    "ConfigError",
    "DecodeError",
    "PayloadError",
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "PROTOCOL_VERSION_MISMATCH",
    "PROTOCOL_ERROR",
    "DAEMON_LAUNCH_FAILED",
    "get_error",
    "get_errors_by_category",
    "user_message",
]
