"""CanvasClash: a server-authoritative engine for drawing and guessing games.

The engine keeps every room's state on the server. Clients send actions, and
the engine answers with events pushed through a ``Broadcaster``. A Litestar
WebSocket adapter ships in ``canvasclash.realtime``.

Key Components:
    - Models: Room, Player, GameState, RoomSettings, TelephoneChain
    - Engine: GameEngine (inbound actions and stage sequencing)
    - Managers: RoundManager, GuessProcessor, VotingManager, TelephoneManager
    - Infrastructure: TimerManager, PhaseManager, RoomRegistry, WordBank

Quick Start:
    >>> from canvasclash import GameEngine, RoomSettings
    >>> engine = GameEngine(my_broadcaster)
    >>> room, host = engine.create_room("session-1", "Alice", RoomSettings(total_rounds=2))
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "Broadcaster",
    "CanvasClashError",
    "GameConfig",
    "GameEngine",
    "GameEvent",
    "GameMode",
    "GamePhase",
    "Player",
    "Room",
    "RoomSettings",
    "WordBank",
    "WordBankProtocol",
    "__version__",
]

from canvasclash.config import GameConfig
from canvasclash.exceptions import CanvasClashError
from canvasclash.game.events import GameEvent
from canvasclash.game.models import Player, Room, RoomSettings
from canvasclash.game.protocols import Broadcaster, WordBankProtocol
from canvasclash.game.types import GameMode, GamePhase
from canvasclash.game.wordbank import WordBank
from canvasclash.services.engine import GameEngine
