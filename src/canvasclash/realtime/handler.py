"""WebSocket handler translating client messages into engine actions."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from litestar import Router, WebSocket, websocket

from canvasclash.core.logging import bind_session, unbind_session
from canvasclash.exceptions import CanvasClashError
from canvasclash.game.events import GameEvent
from canvasclash.game.models import RoomSettings
from canvasclash.realtime.manager import ConnectionManager
from canvasclash.services.engine import GameEngine

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from canvasclash.config import GameConfig
    from canvasclash.game.protocols import WordBankProtocol

logger = structlog.get_logger(__name__)


class GameMessageType:
    """Inbound message types (client -> server)."""

    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    TOGGLE_READY = "toggle_ready"
    START_GAME = "start_game"
    SELECT_WORD = "select_word"
    DRAW_STROKE = "draw_stroke"
    SUBMIT_DRAWING = "submit_drawing"
    GUESS = "guess"
    TELEPHONE_DRAWING = "telephone_drawing"
    TELEPHONE_GUESS = "telephone_guess"
    VOTE = "vote"
    CHAT = "chat"
    REACTION = "reaction"
    RECONNECT = "reconnect"


class GameWebSocketHandler:
    """Handler for game WebSocket connections.

    Each connection gets its own session ID. Messages are JSON objects with a
    ``type`` field; rejected requests come back as a private ``error`` event.
    """

    def __init__(
        self,
        config: GameConfig | None = None,
        word_bank: WordBankProtocol | None = None,
        engine: GameEngine | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            config: Game configuration for a new engine.
            word_bank: Word source for a new engine.
            engine: Use an existing engine instead of building one. Its
                broadcaster must then deliver to this handler's manager.
        """
        self.manager = ConnectionManager(self._room_sessions)
        self.engine = engine or GameEngine(self.manager, word_bank=word_bank, config=config)
        self._handlers: dict[str, Callable[[str, dict[str, Any]], Awaitable[None]]] = {
            GameMessageType.CREATE_ROOM: self._handle_create_room,
            GameMessageType.JOIN_ROOM: self._handle_join_room,
            GameMessageType.LEAVE_ROOM: self._handle_leave_room,
            GameMessageType.TOGGLE_READY: self._handle_toggle_ready,
            GameMessageType.START_GAME: self._handle_start_game,
            GameMessageType.SELECT_WORD: self._handle_select_word,
            GameMessageType.DRAW_STROKE: self._handle_draw_stroke,
            GameMessageType.SUBMIT_DRAWING: self._handle_submit_drawing,
            GameMessageType.GUESS: self._handle_guess,
            GameMessageType.TELEPHONE_DRAWING: self._handle_telephone_drawing,
            GameMessageType.TELEPHONE_GUESS: self._handle_telephone_guess,
            GameMessageType.VOTE: self._handle_vote,
            GameMessageType.CHAT: self._handle_chat,
            GameMessageType.REACTION: self._handle_reaction,
            GameMessageType.RECONNECT: self._handle_reconnect,
        }

    def _room_sessions(self, room_id: str) -> list[str]:
        return self.engine.registry.session_ids(room_id)

    async def handle_connection(self, socket: WebSocket) -> None:
        """Serve one WebSocket connection until it closes.

        Args:
            socket: The WebSocket connection.
        """
        await socket.accept()
        session_id = uuid4().hex
        bind_session(session_id)
        self.manager.connect(session_id, socket)
        self.manager.send_to_player(session_id, GameEvent.session(session_id))
        logger.debug("WebSocket connection accepted")

        try:
            await self._receive_loop(socket, session_id)
        except Exception:
            logger.exception("WebSocket error")
        finally:
            self.engine.handle_disconnect(session_id)
            await self.manager.disconnect(session_id)
            logger.debug("WebSocket connection closed")
            unbind_session()

    async def _receive_loop(self, socket: WebSocket, session_id: str) -> None:
        async for message in socket.iter_data():
            try:
                data = json.loads(message) if isinstance(message, str | bytes) else message
            except json.JSONDecodeError:
                self._send_error(session_id, "invalid_json", "Invalid JSON message")
                continue

            msg_type = data.get("type") if isinstance(data, dict) else None
            if not msg_type:
                self._send_error(session_id, "missing_type", "Message type required")
                continue

            handler = self._handlers.get(msg_type)
            if handler is None:
                self._send_error(session_id, "unknown_type", f"Unknown message type: {msg_type}")
                continue

            try:
                await handler(session_id, data)
            except CanvasClashError as exc:
                logger.info("Request rejected", message_type=msg_type, code=exc.code, reason=exc.message)
                self._send_error(session_id, exc.code, exc.message)
            except (KeyError, TypeError, ValueError) as exc:
                logger.info("Invalid message payload", message_type=msg_type, error=str(exc))
                self._send_error(session_id, "invalid_payload", f"Invalid payload for {msg_type}")
            except Exception:
                logger.exception("Error handling message", message_type=msg_type)
                self._send_error(session_id, "internal_error", "Internal server error")

    def _send_error(self, session_id: str, code: str, message: str) -> None:
        self.manager.send_to_player(session_id, GameEvent.error(code, message))

    # Lobby

    async def _handle_create_room(self, session_id: str, data: dict[str, Any]) -> None:
        settings = RoomSettings.from_dict(data.get("settings"))
        self.engine.create_room(session_id, str(data["player_name"]), settings)

    async def _handle_join_room(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.join_room(session_id, str(data["room_id"]), str(data["player_name"]))

    async def _handle_leave_room(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.leave_room(session_id)

    async def _handle_toggle_ready(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.toggle_ready(session_id)

    async def _handle_start_game(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.start_game(session_id)

    async def _handle_reconnect(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.reconnect(session_id, str(data["room_id"]), str(data["player_id"]))

    # Game actions

    async def _handle_select_word(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.select_word(session_id, int(data.get("index", 0)))

    async def _handle_draw_stroke(self, session_id: str, data: dict[str, Any]) -> None:
        stroke = data["stroke"]
        if not isinstance(stroke, dict):
            msg = "stroke must be an object"
            raise TypeError(msg)
        self.engine.send_stroke(session_id, stroke)

    async def _handle_submit_drawing(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.submit_drawing(session_id, data.get("drawing"))

    async def _handle_guess(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.submit_guess(session_id, str(data["text"]))

    async def _handle_telephone_drawing(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.submit_telephone_drawing(session_id, data.get("drawing"))

    async def _handle_telephone_guess(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.submit_telephone_guess(session_id, str(data["text"]))

    async def _handle_vote(self, session_id: str, data: dict[str, Any]) -> None:
        round_number = data.get("round_number")
        self.engine.cast_vote(
            session_id, str(data["drawer_id"]), int(round_number) if round_number is not None else None
        )

    async def _handle_chat(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.send_chat(session_id, str(data["text"]))

    async def _handle_reaction(self, session_id: str, data: dict[str, Any]) -> None:
        self.engine.send_reaction(session_id, str(data["emoji"]))


def create_game_router(
    path: str = "/ws",
    handler: GameWebSocketHandler | None = None,
) -> tuple[Router, GameWebSocketHandler]:
    """Create a WebSocket router for game real-time communication.

    Args:
        path: Base path for the WebSocket route.
        handler: Existing handler (a default one is created if None).

    Returns:
        A tuple of (Litestar Router, GameWebSocketHandler instance).
    """
    handler = handler or GameWebSocketHandler()

    @websocket(path="/game")
    async def game_websocket(socket: WebSocket) -> None:
        """WebSocket endpoint for game sessions.

        Args:
            socket: The WebSocket connection.
        """
        await handler.handle_connection(socket)

    router = Router(path=path, route_handlers=[game_websocket], tags=["Game WebSocket"])
    return router, handler
