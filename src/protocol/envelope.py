"""Versioned envelope codec for the daemon WebSocket channel.

Every frame on the channel is a JSON object of the form:

    {
        "v": 1,                  # protocol version stamped by the sender
        "id": "<uuid4>",         # unique per message
        "ts": 1718000000000,     # epoch milliseconds
        "type": "task.submit",   # message kind
        "payload": {...}         # kind-specific object
    }

encode() is pure apart from the injected clock and id source. decode()
never raises: parse failures come back as a DecodeError value so the
reader loop can log and keep the channel open.
"""

import json
import time
import uuid
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from src.errors.domain import DecodeError

PROTOCOL_VERSION = 1


def new_message_id() -> str:
    """Return a fresh UUID4 string for an envelope or local message."""
    return str(uuid.uuid4())


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Envelope(BaseModel):
    """A single wire message. Field names match the wire format."""

    v: int
    id: str
    ts: int
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def protocol_version(self) -> int:
        return self.v

    @property
    def timestamp(self) -> int:
        return self.ts

    def to_json(self) -> str:
        """Serialize to the compact JSON text sent on the channel."""
        return json.dumps(self.model_dump(), separators=(",", ":"))


def encode(
    message_type: str,
    payload: dict[str, Any],
    *,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], int] | None = None,
) -> Envelope:
    """Build an outbound envelope stamped with version, id and timestamp.

    Args:
        message_type: Wire type, e.g. "task.submit".
        payload: Kind-specific payload object.
        id_factory: Source of unique ids. Defaults to UUID4.
        clock: Source of epoch-ms timestamps. Defaults to wall clock.

    Returns:
        The envelope, ready for Envelope.to_json().
    """
    return Envelope(
        v=PROTOCOL_VERSION,
        id=(id_factory or new_message_id)(),
        ts=(clock or now_ms)(),
        type=message_type,
        payload=payload,
    )


def decode(raw: str | bytes) -> Envelope | DecodeError:
    """Parse an inbound frame.

    Args:
        raw: Text or UTF-8 bytes received from the channel.

    Returns:
        The parsed Envelope, or a DecodeError describing why the frame
        was rejected.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            text = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            return DecodeError(f"invalid UTF-8: {e.reason}", bytes(raw))
    else:
        text = raw

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return DecodeError(f"invalid JSON: {e.msg}", text)
    except RecursionError:
        return DecodeError("invalid JSON: nesting too deep", text)

    if not isinstance(data, dict):
        return DecodeError("envelope is not a JSON object", text)

    try:
        return Envelope.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) for err in e.errors()
        )
        return DecodeError(f"invalid envelope fields: {fields}", text)
