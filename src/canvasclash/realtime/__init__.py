"""Real-time WebSocket module for canvasclash.

This module connects game sessions to the engine: connection tracking, event
delivery and inbound message dispatch.
"""

from __future__ import annotations

from canvasclash.realtime.handler import GameMessageType, GameWebSocketHandler, create_game_router
from canvasclash.realtime.manager import ConnectionManager, GameConnection

__all__ = [
    "ConnectionManager",
    "GameConnection",
    "GameMessageType",
    "GameWebSocketHandler",
    "create_game_router",
]
