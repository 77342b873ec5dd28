"""
WebSocket connection management with ping/pong liveness tracking.

Every registered connection gets its own liveness task that pings the client
on a fixed interval and drops the connection once no pong has been seen for
longer than the timeout. Business code drives the manager through
``send_to_client`` and ``broadcast``.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
from uuid import uuid4

from fastapi import WebSocket
from fastapi.websockets import WebSocketState
from pydantic import ValidationError as PydanticValidationError

from contact_manager.config import get_settings
from contact_manager.realtime.messages import MessageType, WebSocketMessage
from contact_manager.shared.logging import get_logger

logger = get_logger(__name__)

PING_INTERVAL_SECONDS = 30.0
TIMEOUT_SECONDS = 120.0


class ConnectionState(str, Enum):
    """Connection lifecycle state."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    TIMED_OUT = "timed_out"
    ERRORED = "errored"
    CLOSED = "closed"


def is_socket_open(websocket: WebSocket) -> bool:
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


@dataclass
class Connection:
    """A live client connection owned by the manager."""

    id: str
    websocket: WebSocket
    last_seen: float
    state: ConnectionState = ConnectionState.CONNECTING
    close_reason: ConnectionState | None = None
    ping_task: asyncio.Task | None = None
    # One writer at a time per socket.
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def is_open(self) -> bool:
        return is_socket_open(self.websocket)


class ConnectionManager:
    """Tracks live WebSocket connections and fans messages out to them."""

    def __init__(
        self,
        ping_interval: float = PING_INTERVAL_SECONDS,
        timeout: float = TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the manager.

        Args:
            ping_interval: Seconds between liveness pings per connection.
            timeout: Seconds without a pong after which a connection is dropped.
            clock: Monotonic time source, injectable for tests.
        """
        self._ping_interval = ping_interval
        self._timeout = timeout
        self._clock = clock
        self._connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def connection_ids(self) -> list[str]:
        return list(self._connections.keys())

    def get_connection(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    async def add_connection(self, websocket: WebSocket) -> str:
        """Register an accepted socket and start its liveness task.

        Args:
            websocket: Already accepted WebSocket.

        Returns:
            Generated connection ID.
        """
        connection_id = str(uuid4())
        connection = Connection(
            id=connection_id,
            websocket=websocket,
            last_seen=self._clock(),
        )

        async with self._lock:
            self._connections[connection_id] = connection

        connection.ping_task = asyncio.create_task(
            self._ping_loop(connection_id),
            name=f"ws-ping-{connection_id}",
        )
        connection.state = ConnectionState.OPEN

        logger.info(
            "WebSocket connection added",
            extra={
                "connection_id": connection_id,
                "active_connections": self.connection_count,
            },
        )
        return connection_id

    async def remove_connection(
        self,
        connection_id: str,
        reason: ConnectionState = ConnectionState.CLOSING,
    ) -> None:
        """Tear a connection down. Unknown or already removed IDs are ignored.

        Args:
            connection_id: Connection ID.
            reason: Terminal state recorded before the connection is closed.
        """
        async with self._lock:
            connection = self._connections.pop(connection_id, None)

        if connection is None:
            return

        connection.state = reason
        connection.close_reason = reason

        task = connection.ping_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        if connection.is_open:
            try:
                await connection.websocket.close(code=1000, reason="Connection closed")
            except Exception as e:
                logger.debug(
                    "WebSocket close handshake failed",
                    extra={"connection_id": connection_id, "error": str(e)},
                )

        connection.state = ConnectionState.CLOSED

        logger.info(
            "WebSocket connection removed",
            extra={
                "connection_id": connection_id,
                "reason": reason.value,
                "active_connections": self.connection_count,
            },
        )

    async def send_ping(self, connection_id: str) -> None:
        """Ping a connection and drop it if it is gone or stale.

        The staleness check runs right after the ping is sent, so it measures
        the time since the previous pong.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            return

        if not connection.is_open:
            await self.remove_connection(connection_id, ConnectionState.CLOSING)
            return

        ping = WebSocketMessage(type=MessageType.PING, message="ping")
        try:
            await self._send(connection, ping.to_json())
        except Exception as e:
            logger.error(
                "Error sending ping",
                extra={"connection_id": connection_id, "error": str(e)},
            )
            await self.remove_connection(connection_id, ConnectionState.ERRORED)
            return

        if self._clock() - connection.last_seen > self._timeout:
            logger.warning(
                "WebSocket connection timed out, no pong received",
                extra={"connection_id": connection_id},
            )
            await self.remove_connection(connection_id, ConnectionState.TIMED_OUT)

    def handle_pong(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        connection.last_seen = self._clock()
        logger.debug("Pong received", extra={"connection_id": connection_id})

    async def send_to_client(self, connection_id: str, message: WebSocketMessage) -> None:
        """Send a message to one client.

        Absent or closed connections are ignored. A transport failure tears the
        connection down and is not raised to the caller.
        """
        connection = self._connections.get(connection_id)
        if connection is None or not connection.is_open:
            return

        try:
            await self._send(connection, message.to_json())
        except Exception as e:
            logger.warning(
                "Error sending to WebSocket client",
                extra={"connection_id": connection_id, "error": str(e)},
            )
            await self.remove_connection(connection_id, ConnectionState.ERRORED)
            return

        logger.debug(
            "Sent message to client",
            extra={"connection_id": connection_id, "message_type": message.type.value},
        )

    async def broadcast(self, message: WebSocketMessage) -> int:
        """Send a message to every open connection.

        Args:
            message: Message to broadcast.

        Returns:
            Number of connections the message was delivered to.
        """
        payload = message.to_json()

        async with self._lock:
            targets = [c for c in self._connections.values() if c.is_open]

        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._send(connection, payload) for connection in targets),
            return_exceptions=True,
        )

        failed = [
            connection
            for connection, result in zip(targets, results)
            if isinstance(result, BaseException)
        ]
        for connection in failed:
            logger.warning(
                "Error broadcasting to WebSocket client",
                extra={"connection_id": connection.id},
            )
            await self.remove_connection(connection.id, ConnectionState.ERRORED)

        delivered = len(targets) - len(failed)
        logger.info(
            "Broadcasted message",
            extra={
                "message_type": message.type.value,
                "delivered": delivered,
                "failed": len(failed),
            },
        )
        return delivered

    async def handle_incoming(self, connection_id: str, text: str) -> None:
        """Dispatch a text frame received from a client."""
        try:
            try:
                message = WebSocketMessage.model_validate_json(text)
            except PydanticValidationError:
                echo = WebSocketMessage(type=MessageType.INFO, message=f"Echo: {text}")
                await self.send_to_client(connection_id, echo)
                return

            if message.type is MessageType.PONG:
                self.handle_pong(connection_id)
            elif message.type is MessageType.PING:
                pong = WebSocketMessage(type=MessageType.PONG, message="pong")
                await self.send_to_client(connection_id, pong)
            else:
                await self.broadcast(message)
        except Exception:
            logger.exception(
                "Error processing WebSocket message",
                extra={"connection_id": connection_id},
            )
            error = WebSocketMessage(type=MessageType.ERROR, message="Error processing message")
            await self.send_to_client(connection_id, error)

    async def close_all(self) -> None:
        """Tear down every connection (process shutdown)."""
        for connection_id in self.connection_ids():
            await self.remove_connection(connection_id)

    async def _send(self, connection: Connection, payload: str) -> None:
        async with connection.send_lock:
            await connection.websocket.send_text(payload)

    async def _ping_loop(self, connection_id: str) -> None:
        while connection_id in self._connections:
            await asyncio.sleep(self._ping_interval)
            try:
                await self.send_ping(connection_id)
            except Exception:
                logger.exception(
                    "Liveness probe failed",
                    extra={"connection_id": connection_id},
                )
                await self.remove_connection(connection_id, ConnectionState.ERRORED)


# Global connection manager instance
_connection_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global connection manager instance."""
    global _connection_manager
    if _connection_manager is None:
        settings = get_settings()
        _connection_manager = ConnectionManager(
            ping_interval=settings.ws_ping_interval_seconds,
            timeout=settings.ws_timeout_seconds,
        )
    return _connection_manager
