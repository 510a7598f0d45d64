"""Typed exceptions for the daemon client.

These exceptions give the connection layer stronger contracts than
string matching. Only configuration errors ever propagate to a caller;
wire-level failures are logged and dropped by the connection manager.

Usage:
    # In the codec
    return DecodeError("invalid JSON", raw)

    # In the connection manager
    result = decode(raw)
    if isinstance(result, DecodeError):
        logger.warning("Dropping inbound frame: %s", result)
"""


class ClientError(Exception):
    """Base exception for all daemon client errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class DecodeError(ClientError):
    """Inbound frame could not be parsed into an envelope.

    Returned by the codec as a value rather than raised, so a malformed
    frame never unwinds the reader loop.
    """

    _PREVIEW_CHARS = 200

    def __init__(self, reason: str, raw: str | bytes = "") -> None:
        super().__init__(reason)
        self.reason = reason
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        self.raw_preview = raw[: self._PREVIEW_CHARS]

    def __str__(self) -> str:
        """Return reason with a truncated copy of the offending input."""
        if self.raw_preview:
            return f"{self.reason} (input: {self.raw_preview!r})"
        return self.reason


class PayloadError(ClientError):
    """Envelope of a known type carried a payload of the wrong shape."""

    def __init__(self, message_type: str, detail: str) -> None:
        super().__init__(f"Invalid '{message_type}' payload: {detail}")
        self.message_type = message_type
        self.detail = detail


class ConfigError(ClientError):
    """Configuration file is missing or fails validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
