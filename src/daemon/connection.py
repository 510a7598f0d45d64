"""Daemon Connection Manager — owns the WebSocket to the local daemon.

Lifecycle per connection attempt:

    IDLE -> CONNECTING -> OPEN -> CLOSED -> (backoff) -> CONNECTING -> ...

A single reader task owns the open channel and feeds decoded messages to
the InboundDispatcher. While OPEN a heartbeat task pings the daemon; while
CLOSED at most one reconnect timer is pending. stop() cancels both and
suppresses the reconnect.

Failures never propagate to callers: transport errors become a
"disconnected" status plus a scheduled reconnect, malformed frames are
logged and dropped, and sends on a closed channel are no-ops.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import Any

from src.daemon.backoff import DEFAULT_RECONNECT_DELAYS, reconnect_delay
from src.daemon.dispatch import InboundDispatcher
from src.daemon.phrases import next_status_phrase
from src.daemon.transport import (
    TRANSPORT_ERRORS,
    ChannelFactory,
    DaemonChannel,
    open_websocket,
)
from src.errors.domain import DecodeError, PayloadError
from src.errors.registry import DAEMON_LAUNCH_FAILED, user_message
from src.protocol.envelope import PROTOCOL_VERSION, decode, encode, new_message_id, now_ms
from src.protocol.messages import (
    HEARTBEAT,
    PLAN_APPROVE,
    TASK_SUBMIT,
    InboundMessage,
    PlanDecision,
    heartbeat_payload,
    parse_inbound,
    plan_approve_payload,
    task_submit_payload,
)
from src.stores import ClientState, ConnectionStatus, Message, Role

logger = logging.getLogger(__name__)

DEFAULT_DAEMON_URL = "ws://localhost:9876/ws"
DEFAULT_HEARTBEAT_INTERVAL = 30.0
TASK_ID_PREFIX = "tsk_"


def new_task_id() -> str:
    """Return a client-side task id such as 'tsk_1a2b3c4d'."""
    return f"{TASK_ID_PREFIX}{uuid.uuid4().hex[:8]}"


class ConnectionPhase(str, Enum):
    """Internal state of the connection state machine."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class DaemonConnectionManager:
    """Maintains one logical connection to the daemon and keeps the stores current.

    Args:
        state: Stores to reconcile inbound events into.
        url: Daemon WebSocket endpoint.
        channel_factory: Opens a DaemonChannel for a URL.
        ensure_daemon_running: Awaited once by start(). Returns False or
            raises when the daemon could not be launched; the manager
            records a hint and connects anyway.
        phrase_source: Status phrase picker for step.started.
        heartbeat_interval: Seconds between keep-alive pings while open.
        reconnect_delays: Backoff schedule in seconds.
        credit_max: Maximum used for CreditInfo.
        id_factory: Id source for envelopes and local messages.
        clock: Epoch-ms clock for envelopes and local messages.
    """

    def __init__(
        self,
        state: ClientState,
        *,
        url: str = DEFAULT_DAEMON_URL,
        channel_factory: ChannelFactory = open_websocket,
        ensure_daemon_running: Callable[[], Awaitable[bool]] | None = None,
        phrase_source: Callable[[], str] = next_status_phrase,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        reconnect_delays: Sequence[float] = DEFAULT_RECONNECT_DELAYS,
        credit_max: float = 100,
        id_factory: Callable[[], str] = new_message_id,
        clock: Callable[[], int] = now_ms,
    ):
        if not reconnect_delays:
            raise ValueError("reconnect_delays must not be empty")
        self._state = state
        self._url = url
        self._channel_factory = channel_factory
        self._ensure_daemon_running = ensure_daemon_running
        self._heartbeat_interval = heartbeat_interval
        self._reconnect_delays = tuple(reconnect_delays)
        self._id_factory = id_factory
        self._clock = clock
        self._dispatcher = InboundDispatcher(
            state,
            phrase_source=phrase_source,
            id_factory=id_factory,
            clock=clock,
            credit_max=credit_max,
        )

        self._phase = ConnectionPhase.IDLE
        self._running = False
        self._closing = False
        self._channel: DaemonChannel | None = None
        self._reader_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_attempt = 0
        self._message_observers: list[Callable[[InboundMessage], None]] = []

    async def __aenter__(self) -> "DaemonConnectionManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    # --- Read accessors ---

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def url(self) -> str:
        return self._url

    @property
    def phase(self) -> ConnectionPhase:
        return self._phase

    @property
    def is_open(self) -> bool:
        return (
            self._phase is ConnectionPhase.OPEN
            and self._channel is not None
            and not self._channel.closed
        )

    @property
    def reconnect_attempt(self) -> int:
        return self._reconnect_attempt

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # --- Lifecycle ---

    async def start(self) -> None:
        """Ensure the daemon is running, then open the channel.

        A launch failure is advisory: it sets the connection hint and the
        manager still connects, since the daemon may be running
        out-of-band.
        """
        if self._running:
            logger.debug("start() called on a running manager; ignoring")
            return
        self._running = True

        if self._ensure_daemon_running is not None:
            try:
                launched = await self._ensure_daemon_running()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Failed to start daemon: %s", e)
                launched = False
            if not self._running:
                logger.debug("Manager stopped while starting the daemon; not connecting")
                return
            if not launched:
                logger.warning("Daemon launch failed; connecting anyway")
                self._state.connection.set_error(user_message(DAEMON_LAUNCH_FAILED))

        self.connect()

    def connect(self) -> None:
        """Enter CONNECTING: open a new channel in a reader task.

        Cancels any pending reconnect timer first. Does nothing if the
        manager has been stopped or a channel is already open or opening.
        """
        self._cancel_reconnect()
        if not self._running:
            logger.debug("Manager not running; connect() ignored")
            return
        if self._reader_task is not None and not self._reader_task.done():
            logger.debug("Channel already active; connect() ignored")
            return
        self._phase = ConnectionPhase.CONNECTING
        self._state.connection.set_status(ConnectionStatus.CONNECTING)
        logger.info("Connecting to daemon at %s", self._url)
        self._reader_task = asyncio.get_running_loop().create_task(
            self._run_channel(), name="daemon-channel-reader"
        )

    async def stop(self) -> None:
        """Close the channel and cancel every timer. No reconnect follows."""
        self._running = False
        self._closing = True
        self._cancel_reconnect()
        heartbeat = self._stop_heartbeat()

        channel = self._channel
        if channel is not None:
            try:
                await channel.close()
            except TRANSPORT_ERRORS as e:
                logger.debug("Error closing daemon channel: %s", e)

        reader = self._reader_task
        if reader is not None and not reader.done():
            if channel is None:
                # Still opening; nothing to close, so abandon the attempt.
                reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)
        if heartbeat is not None:
            await asyncio.gather(heartbeat, return_exceptions=True)

        self._reader_task = None
        self._channel = None
        self._closing = False
        self._phase = ConnectionPhase.IDLE
        if self._state.connection.status is not ConnectionStatus.DISCONNECTED:
            self._state.connection.set_status(ConnectionStatus.DISCONNECTED)
        logger.info("Daemon connection stopped")

    async def wait_connected(self) -> None:
        """Wait until the daemon has reported its status.

        Callers that need a deadline wrap this in asyncio.wait_for().
        """
        connection = self._state.connection
        if connection.status is ConnectionStatus.CONNECTED:
            return
        ready = asyncio.Event()

        def _check(store) -> None:
            if store.status is ConnectionStatus.CONNECTED:
                ready.set()

        unsubscribe = connection.subscribe(_check)
        try:
            await ready.wait()
        finally:
            unsubscribe()

    # --- Channel ownership ---

    async def _run_channel(self) -> None:
        try:
            channel = await self._channel_factory(self._url)
        except TRANSPORT_ERRORS as e:
            logger.warning("Could not connect to daemon at %s: %s", self._url, e)
            self._handle_closed()
            return

        self._channel = channel
        if self._closing:
            await channel.close()
        else:
            self._handle_open()

        try:
            async for frame in channel:
                try:
                    self.handle_frame(frame)
                except Exception:
                    logger.exception("Failed to handle daemon frame")
        except TRANSPORT_ERRORS as e:
            logger.warning("Daemon channel error: %s", e)
        finally:
            self._channel = None
            if not channel.closed:
                try:
                    await channel.close()
                except TRANSPORT_ERRORS as e:
                    logger.debug("Error closing daemon channel: %s", e)
            self._handle_closed()

    def _handle_open(self) -> None:
        """CONNECTING -> OPEN."""
        self._phase = ConnectionPhase.OPEN
        self._reconnect_attempt = 0
        self._start_heartbeat()
        logger.info("Channel open to %s", self._url)

    def _handle_closed(self) -> None:
        """-> CLOSED. Schedules a reconnect unless the close was local."""
        self._stop_heartbeat()
        self._phase = ConnectionPhase.CLOSED
        self._state.connection.set_status(ConnectionStatus.DISCONNECTED)
        if self._closing:
            self._closing = False
            logger.info("Daemon channel closed locally")
            return
        logger.info("Daemon channel closed")
        self._schedule_reconnect()

    def handle_frame(self, raw: str | bytes) -> None:
        """Decode one inbound frame and apply it to the stores."""
        envelope = decode(raw)
        if isinstance(envelope, DecodeError):
            logger.warning("Dropping malformed frame: %s", envelope)
            return
        if envelope.v != PROTOCOL_VERSION:
            logger.debug(
                "Envelope %s carries protocol version %d (client speaks %d)",
                envelope.id, envelope.v, PROTOCOL_VERSION,
            )
        try:
            message = parse_inbound(envelope)
        except PayloadError as e:
            logger.warning("Dropping envelope %s: %s", envelope.id, e)
            return
        self._dispatcher.dispatch(message)
        for observer in list(self._message_observers):
            try:
                observer(message)
            except Exception as e:
                logger.error("Message observer failed: %s", e)

    def add_message_observer(
        self, observer: Callable[[InboundMessage], None]
    ) -> Callable[[], None]:
        """Call observer with every inbound message after the stores are updated.

        Returns:
            Callable that removes the observer.
        """
        self._message_observers.append(observer)

        def _remove() -> None:
            if observer in self._message_observers:
                self._message_observers.remove(observer)

        return _remove

    # --- Timers ---

    def _schedule_reconnect(self) -> None:
        if not self._running:
            return
        if self._reconnect_handle is not None:
            logger.debug("Reconnect already pending")
            return
        delay = reconnect_delay(self._reconnect_attempt, self._reconnect_delays)
        self._reconnect_attempt += 1
        logger.info(
            "Reconnecting in %.1fs (attempt %d)", delay, self._reconnect_attempt
        )
        self._reconnect_handle = asyncio.get_running_loop().call_later(
            delay, self._on_reconnect_timer
        )

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._running:
            self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _start_heartbeat(self) -> None:
        self._stop_heartbeat()
        self._heartbeat_task = asyncio.get_running_loop().create_task(
            self._heartbeat_loop(), name="daemon-heartbeat"
        )

    def _stop_heartbeat(self) -> asyncio.Task | None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None:
            task.cancel()
        return task

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            if self.is_open:
                await self._send(HEARTBEAT, heartbeat_payload())

    # --- Outbound ---

    async def _send(self, message_type: str, payload: dict[str, Any]) -> bool:
        """Send one envelope if the channel is open.

        Returns:
            True if the frame was handed to the channel.
        """
        channel = self._channel
        if not self.is_open or channel is None:
            logger.debug("Not connected; %s not sent", message_type)
            return False
        envelope = encode(
            message_type, payload, id_factory=self._id_factory, clock=self._clock
        )
        try:
            await channel.send_text(envelope.to_json())
        except TRANSPORT_ERRORS as e:
            logger.warning("Failed to send %s: %s", message_type, e)
            return False
        logger.debug("Sent %s (%s)", message_type, envelope.id)
        return True

    async def submit_task(
        self,
        text: str,
        context: dict[str, Any] | None = None,
    ) -> str:
        """Submit a task to the daemon.

        Never raises on a closed channel: the id is generated and returned
        either way, and nothing is sent while disconnected.

        Args:
            text: Task description entered by the user.
            context: Optional execution context (cwd, env).

        Returns:
            The client-generated task id.
        """
        task_id = new_task_id()
        sent = await self._send(TASK_SUBMIT, task_submit_payload(task_id, text, context))
        if sent:
            self._state.connection.set_current_task_id(task_id)
            self._state.conversation.append_message(
                Message(
                    id=self._id_factory(),
                    role=Role.USER,
                    content=text,
                    timestamp=self._clock(),
                )
            )
        return task_id

    async def approve_plan(
        self,
        task_id: str,
        plan_id: str,
        decision: PlanDecision | str | bool,
    ) -> bool:
        """Approve or reject a proposed plan.

        Args:
            task_id: Task the plan belongs to.
            plan_id: Plan being decided.
            decision: APPROVE/REJECT, or a bool (True approves).

        Returns:
            True if the decision was sent. The live plan records the
            decision only once it has been sent.
        """
        if isinstance(decision, bool):
            decision = PlanDecision.from_bool(decision)
        else:
            decision = PlanDecision(decision)
        sent = await self._send(
            PLAN_APPROVE, plan_approve_payload(task_id, plan_id, decision)
        )
        if sent:
            self._state.conversation.approve_plan(decision is PlanDecision.APPROVE)
        return sent
