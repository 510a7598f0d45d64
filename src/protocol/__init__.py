"""Wire protocol for the local daemon channel.

This package provides:
- The versioned envelope codec (encode/decode)
- Typed inbound message kinds with an inert unknown variant
- Outbound payload builders
"""

from src.protocol.envelope import (
    PROTOCOL_VERSION,
    Envelope,
    decode,
    encode,
    new_message_id,
    now_ms,
)
from src.protocol.messages import (
    HEARTBEAT,
    PLAN_APPROVE,
    TASK_SUBMIT,
    InboundMessage,
    PlanDecision,
    UnknownMessage,
    heartbeat_payload,
    parse_inbound,
    plan_approve_payload,
    task_submit_payload,
)

__all__ = [
    # Codec
    "PROTOCOL_VERSION",
    "Envelope",
    "encode",
    "decode",
    "new_message_id",
    "now_ms",
    # Messages
    "InboundMessage",
    "UnknownMessage",
    "PlanDecision",
    "parse_inbound",
    "TASK_SUBMIT",
    "PLAN_APPROVE",
    "HEARTBEAT",
    "task_submit_payload",
    "plan_approve_payload",
    "heartbeat_payload",
]
