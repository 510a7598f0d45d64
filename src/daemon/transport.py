"""WebSocket channel to the local daemon.

The connection manager only depends on the DaemonChannel protocol and a
ChannelFactory that opens one, so tests can substitute an in-memory
channel. The default factory uses aiohttp's client WebSocket.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Protocol

import aiohttp

logger = logging.getLogger(__name__)

# Exceptions a channel may raise on open, send or receive.
TRANSPORT_ERRORS = (aiohttp.ClientError, OSError, ConnectionError, TimeoutError)


class DaemonChannel(Protocol):
    """A bidirectional text channel to the daemon."""

    @property
    def closed(self) -> bool:
        """True once the channel can no longer send."""
        ...

    async def send_text(self, data: str) -> None:
        """Send one text frame."""
        ...

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        """Yield inbound frames until the channel closes."""
        ...

    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        ...


ChannelFactory = Callable[[str], Awaitable[DaemonChannel]]


class WebSocketChannel:
    """DaemonChannel backed by an aiohttp client WebSocket."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        ws: aiohttp.ClientWebSocketResponse,
    ):
        self._session = session
        self._ws = ws

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send_text(self, data: str) -> None:
        await self._ws.send_str(data)

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        return self._frames()

    async def _frames(self) -> AsyncIterator[str | bytes]:
        # aiohttp stops iteration on CLOSE/CLOSING/CLOSED frames.
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error("WebSocket error: %s", self._ws.exception())
                break

    async def close(self) -> None:
        try:
            if not self._ws.closed:
                await self._ws.close()
        finally:
            if not self._session.closed:
                await self._session.close()


async def open_websocket(url: str) -> WebSocketChannel:
    """Open a WebSocket to the daemon.

    Args:
        url: Daemon endpoint, e.g. ws://localhost:9876/ws.

    Returns:
        An open WebSocketChannel.

    Raises:
        aiohttp.ClientError: If the handshake fails.
        OSError: If the TCP connection is refused.
    """
    session = aiohttp.ClientSession()
    try:
        ws = await session.ws_connect(url)
    except BaseException:
        await session.close()
        raise
    return WebSocketChannel(session, ws)
