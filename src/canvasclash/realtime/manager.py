"""Connection manager for game WebSocket sessions.

The manager is also the engine's ``Broadcaster``: events are queued on a
per-connection outbox and written by a dedicated writer task, so the engine
never awaits socket I/O.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from litestar import WebSocket

    from canvasclash.game.events import GameEvent

logger = structlog.get_logger(__name__)

OUTBOX_SIZE = 256

RoomSessions = Callable[[str], Iterable[str]]


@dataclass
class GameConnection:
    """A live WebSocket connection and its outbound queue."""

    session_id: str
    socket: WebSocket
    outbox: asyncio.Queue[dict[str, Any]] = field(default_factory=lambda: asyncio.Queue(maxsize=OUTBOX_SIZE))
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    writer: asyncio.Task[None] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "connected_at": self.connected_at.isoformat(),
            "pending": self.outbox.qsize(),
        }


class ConnectionManager:
    """Tracks game connections by session ID and delivers events to them.

    Delivery is at-most-once and best effort: events for unknown sessions are
    discarded and a full outbox drops the event with a warning.
    """

    def __init__(self, room_sessions: RoomSessions) -> None:
        """Initialize the connection manager.

        Args:
            room_sessions: Resolves a room ID to the session IDs in that room.
        """
        self._room_sessions = room_sessions
        self._connections: dict[str, GameConnection] = {}
        self._lock = threading.Lock()

    def connect(self, session_id: str, socket: WebSocket) -> GameConnection:
        """Register a connection and start its writer task.

        Args:
            session_id: Session ID allocated for the connection.
            socket: The accepted WebSocket.

        Returns:
            The registered connection.
        """
        connection = GameConnection(session_id=session_id, socket=socket)
        connection.writer = asyncio.get_running_loop().create_task(self._write_loop(connection))
        with self._lock:
            self._connections[session_id] = connection
        logger.debug("Connection registered", session_id=session_id, total=len(self._connections))
        return connection

    async def disconnect(self, session_id: str) -> None:
        """Unregister a connection and stop its writer task."""
        with self._lock:
            connection = self._connections.pop(session_id, None)
        if connection is None or connection.writer is None:
            return
        connection.writer.cancel()
        try:
            await connection.writer
        except asyncio.CancelledError:
            pass
        logger.debug("Connection removed", session_id=session_id, total=len(self._connections))

    def get_connection(self, session_id: str) -> GameConnection | None:
        with self._lock:
            return self._connections.get(session_id)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    # Broadcaster

    def broadcast_to_room(self, room_id: str, event: GameEvent) -> None:
        """Queue an event for every session of a room."""
        payload = event.to_dict()
        for session_id in self._room_sessions(room_id):
            self._enqueue(session_id, payload)

    def send_to_player(self, session_id: str, event: GameEvent) -> None:
        """Queue an event for one session."""
        self._enqueue(session_id, event.to_dict())

    def _enqueue(self, session_id: str, payload: dict[str, Any]) -> None:
        connection = self.get_connection(session_id)
        if connection is None:
            return
        try:
            connection.outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning("Outbox full, dropping event", session_id=session_id, event_type=payload.get("type"))

    async def _write_loop(self, connection: GameConnection) -> None:
        while True:
            payload = await connection.outbox.get()
            try:
                await connection.socket.send_json(payload)
            except Exception:
                logger.debug("Send failed", session_id=connection.session_id, event_type=payload.get("type"))
