"""Room registry: room lifecycle and session indexing."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from canvasclash.exceptions import GameInProgressError, PlayerNotFoundError, RoomFullError, RoomNotFoundError
from canvasclash.game.models import Player, Room, RoomSettings, generate_room_id
from canvasclash.game.types import GamePhase

if TYPE_CHECKING:
    from canvasclash.game.timers import TimerManager

logger = structlog.get_logger(__name__)

DEFAULT_INACTIVITY = timedelta(minutes=30)
MAX_ID_ATTEMPTS = 100


class RoomRegistry:
    """Process-scoped owner of every room and of the session index.

    The underlying mappings are never exposed. All access goes through methods
    that hold the registry lock, so timers and player actions may call them
    concurrently.
    """

    def __init__(self, timers: TimerManager, *, inactivity: timedelta = DEFAULT_INACTIVITY) -> None:
        """Initialize the registry.

        Args:
            timers: Timer manager whose room state is dropped with the room.
            inactivity: Idle time after which ``sweep_inactive`` removes a room.
        """
        self._rooms: dict[str, Room] = {}
        self._session_rooms: dict[str, str] = {}
        self._timers = timers
        self._inactivity = inactivity
        self._lock = threading.RLock()

    # Room Management

    def create_room(self, player_name: str, session_id: str, settings: RoomSettings | None = None) -> Room:
        """Create a room with the requesting session as host.

        Args:
            player_name: Display name of the host.
            session_id: Transport session of the host.
            settings: Room settings (defaults if None).

        Returns:
            The created room.
        """
        with self._lock:
            room_id = self._generate_room_id()
            room = Room(id=room_id, host_session_id=session_id, settings=settings or RoomSettings())
            host = Player(name=player_name, session_id=session_id)
            room.add_player(host)
            self._rooms[room_id] = room
            self._session_rooms[session_id] = room_id

        logger.info(
            "Room created",
            room_id=room_id,
            host=player_name,
            mode=room.settings.mode.value,
        )
        return room

    def join_room(self, room_id: str, player_name: str, session_id: str) -> tuple[Room, Player]:
        """Add a player to a lobby.

        Args:
            room_id: Room identifier, case-insensitive.
            player_name: Display name.
            session_id: Transport session of the joining player.

        Returns:
            Tuple of (room, new player).

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            GameInProgressError: If the room is not in the lobby.
            RoomFullError: If the room reached its player limit.
        """
        with self._lock:
            room = self.get_room(room_id)
            with room.lock:
                if room.game.phase is not GamePhase.LOBBY:
                    raise GameInProgressError(room.id)
                if room.is_full:
                    raise RoomFullError(room.id, room.settings.max_players)
                player = Player(name=player_name, session_id=session_id)
                room.add_player(player)
            self._session_rooms[session_id] = room.id

        logger.info("Player joined room", room_id=room.id, player=player_name, players=room.player_count)
        return room, player

    def leave_room(self, session_id: str) -> tuple[Room | None, Player | None]:
        """Remove a session's player from its room.

        The room is deleted when its last player leaves. Host ownership moves
        to a remaining player.

        Args:
            session_id: Session of the leaving player.

        Returns:
            Tuple of (room or None if it was deleted, removed player or None).
        """
        with self._lock:
            room_id = self._session_rooms.pop(session_id, None)
            room = self._rooms.get(room_id) if room_id else None
            if room is None:
                return None, None
            with room.lock:
                player = room.remove_player(session_id)
                empty = room.player_count == 0
            if empty:
                self._delete_room_locked(room.id)

        logger.info(
            "Player left room",
            room_id=room.id,
            player=player.name if player else None,
            room_deleted=empty,
        )
        return (None if empty else room), player

    def get_room(self, room_id: str) -> Room:
        """Get a room by ID.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
        """
        room = self._rooms.get(room_id.strip().upper())
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    def find_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id.strip().upper())

    def delete_room(self, room_id: str) -> None:
        """Delete a room and every session mapping pointing at it."""
        with self._lock:
            self._delete_room_locked(room_id)

    def room_count(self) -> int:
        return len(self._rooms)

    def room_ids(self) -> list[str]:
        with self._lock:
            return list(self._rooms)

    # Sessions

    def get_room_by_session(self, session_id: str) -> Room | None:
        with self._lock:
            room_id = self._session_rooms.get(session_id)
            return self._rooms.get(room_id) if room_id else None

    def get_player_context(self, session_id: str) -> tuple[Room, Player]:
        """Resolve a session to its room and player.

        Raises:
            PlayerNotFoundError: If the session is not in any room.
        """
        room = self.get_room_by_session(session_id)
        player = room.get_player(session_id) if room else None
        if room is None or player is None:
            raise PlayerNotFoundError(session_id)
        return room, player

    def session_ids(self, room_id: str) -> list[str]:
        """Return the sessions currently mapped to a room."""
        with self._lock:
            return [sid for sid, rid in self._session_rooms.items() if rid == room_id]

    def toggle_ready(self, session_id: str) -> tuple[Room, Player]:
        """Flip the ready flag of a session's player."""
        room, player = self.get_player_context(session_id)
        with room.lock:
            player.ready = not player.ready
            room.touch()
        logger.debug("Player ready toggled", room_id=room.id, player=player.name, ready=player.ready)
        return room, player

    def handle_disconnect(self, session_id: str) -> tuple[Room, Player] | None:
        """Mark a session's player as disconnected without removing them.

        Returns:
            Tuple of (room, player), or None if the session was not in a room.
        """
        room = self.get_room_by_session(session_id)
        player = room.get_player(session_id) if room else None
        if room is None or player is None:
            return None
        with room.lock:
            player.connected = False
            room.touch()
        logger.info("Player disconnected", room_id=room.id, player=player.name)
        return room, player

    def reconnect(self, room_id: str, player_id: str, new_session_id: str) -> tuple[Room, Player]:
        """Bind a disconnected player to a new session.

        Args:
            room_id: Room the player belongs to.
            player_id: Stable short player ID.
            new_session_id: The new transport session.

        Returns:
            Tuple of (room, player).

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            PlayerNotFoundError: If no such player is in the room.
        """
        with self._lock:
            room = self.get_room(room_id)
            with room.lock:
                player = room.get_player_by_id(player_id)
                if player is None:
                    raise PlayerNotFoundError(player_id)
                old_session_id = room.rebind_session(player, new_session_id)
            self._session_rooms.pop(old_session_id, None)
            self._session_rooms[new_session_id] = room.id

        logger.info("Player reconnected", room_id=room.id, player=player.name)
        return room, player

    # Expiry

    def sweep_inactive(self, now: datetime | None = None) -> list[str]:
        """Remove rooms idle for longer than the inactivity threshold.

        Args:
            now: Reference time (defaults to the current UTC time).

        Returns:
            IDs of the removed rooms.
        """
        cutoff = (now or datetime.now(UTC)) - self._inactivity
        with self._lock:
            expired = [room_id for room_id, room in self._rooms.items() if room.last_activity < cutoff]
            for room_id in expired:
                self._delete_room_locked(room_id)

        if expired:
            logger.info("Inactive rooms removed", count=len(expired), room_ids=expired)
        return expired

    def _delete_room_locked(self, room_id: str) -> None:
        room = self._rooms.pop(room_id, None)
        if room is None:
            return
        for session_id in [sid for sid, rid in self._session_rooms.items() if rid == room_id]:
            del self._session_rooms[session_id]
        self._timers.cleanup(room_id)
        logger.info("Room deleted", room_id=room_id)

    def _generate_room_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            room_id = generate_room_id()
            if room_id not in self._rooms:
                return room_id
        msg = "Could not generate a unique room ID"
        raise RuntimeError(msg)
