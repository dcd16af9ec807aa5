"""Tests for the WebSocket adapter and the application factory."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from litestar import Litestar
from litestar.testing import TestClient

from canvasclash.app import create_app
from canvasclash.config import GameConfig
from canvasclash.game.events import GameEvent
from canvasclash.game.wordbank import WordBank
from canvasclash.realtime.handler import GameMessageType, GameWebSocketHandler
from canvasclash.realtime.manager import ConnectionManager


@pytest.fixture
def app() -> Litestar:
    return create_app(GameConfig(countdown_seconds=30), word_bank=WordBank(words=["apple", "banana", "cherry"]))


@pytest.fixture
def client(app: Litestar) -> Iterator[TestClient]:
    with TestClient(app=app) as test_client:
        yield test_client


def receive_until(ws: Any, event_type: str) -> dict[str, Any]:
    """Read events until one of ``event_type`` arrives."""
    for _ in range(10):
        message = ws.receive_json()
        if message["type"] == event_type:
            return message
    msg = f"No {event_type} event received"
    raise AssertionError(msg)


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client: TestClient) -> None:
        """Test that the health endpoint reports engine counters."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["rooms"] == 0

    def test_handler_on_app_state(self, app: Litestar) -> None:
        """Test that the game handler is reachable from the app."""
        assert isinstance(app.state.game_handler, GameWebSocketHandler)


class TestGameWebSocket:
    """Test the game WebSocket protocol."""

    def test_session_event_on_connect(self, client: TestClient) -> None:
        """Test that a new connection learns its session ID."""
        with client.websocket_connect("/ws/game") as ws:
            message = ws.receive_json()
            assert message["type"] == "session"
            assert message["session_id"]

    def test_create_room(self, client: TestClient) -> None:
        """Test creating a room over the socket."""
        with client.websocket_connect("/ws/game") as ws:
            ws.receive_json()
            ws.send_json({"type": GameMessageType.CREATE_ROOM, "player_name": "Alice", "settings": {"total_rounds": 2}})
            state = receive_until(ws, "room_state")
            assert state["room"]["settings"]["total_rounds"] == 2
            assert [p["name"] for p in state["room"]["players"]] == ["Alice"]

    def test_join_room(self, client: TestClient) -> None:
        """Test that joining is announced to everyone in the room."""
        with client.websocket_connect("/ws/game") as host, client.websocket_connect("/ws/game") as guest:
            host.receive_json()
            guest.receive_json()
            host.send_json({"type": "create_room", "player_name": "Alice"})
            room_id = receive_until(host, "room_state")["room"]["id"]

            guest.send_json({"type": "join_room", "room_id": room_id.lower(), "player_name": "Bob"})

            joined = receive_until(host, "player_joined")
            assert joined["player"]["name"] == "Bob"
            state = receive_until(guest, "room_state")
            assert len(state["room"]["players"]) == 2

    def test_start_game_errors_are_reported(self, client: TestClient) -> None:
        """Test that rejected actions come back as error events."""
        with client.websocket_connect("/ws/game") as ws:
            ws.receive_json()
            ws.send_json({"type": "create_room", "player_name": "Alice"})
            receive_until(ws, "room_state")
            ws.send_json({"type": "start_game"})
            error = receive_until(ws, "error")
            assert error["code"] == "not_enough_players"

    @pytest.mark.parametrize(
        ("payload", "code"),
        [
            ({"type": "join_room", "room_id": "ZZZZZZ", "player_name": "Bob"}, "room_not_found"),
            ({"type": "start_game"}, "player_not_found"),
            ({"type": "dance"}, "unknown_type"),
            ({"room_id": "ZZZZZZ"}, "missing_type"),
            ({"type": "join_room"}, "invalid_payload"),
            ({"type": "draw_stroke", "stroke": "line"}, "invalid_payload"),
        ],
    )
    def test_error_codes(self, client: TestClient, payload: dict[str, Any], code: str) -> None:
        """Test the error code of each kind of rejected message."""
        with client.websocket_connect("/ws/game") as ws:
            ws.receive_json()
            ws.send_json(payload)
            assert receive_until(ws, "error")["code"] == code

    def test_invalid_json(self, client: TestClient) -> None:
        """Test that malformed frames are reported and the socket stays open."""
        with client.websocket_connect("/ws/game") as ws:
            ws.receive_json()
            ws.send_text("{not json")
            assert receive_until(ws, "error")["code"] == "invalid_json"
            ws.send_json({"type": "create_room", "player_name": "Alice"})
            assert receive_until(ws, "room_state")["room"]["players"][0]["name"] == "Alice"


class TestConnectionManager:
    """Test event delivery bookkeeping."""

    def test_unknown_session_is_ignored(self) -> None:
        """Test that events for sessions without a connection are dropped."""
        manager = ConnectionManager(lambda room_id: ["ghost"])
        manager.send_to_player("ghost", GameEvent.error("x", "y"))
        manager.broadcast_to_room("ROOM01", GameEvent.error("x", "y"))
        assert manager.connection_count() == 0
