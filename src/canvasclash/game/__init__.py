"""Game domain: models, phases, timers, scoring and words.

Nothing in this package performs I/O. Outbound events leave through the
``Broadcaster`` protocol.
"""

from __future__ import annotations

__all__ = [
    "DifficultyLevel",
    "DrawingEntry",
    "EventType",
    "GameEvent",
    "GameMode",
    "GamePhase",
    "GameState",
    "GuessOutcome",
    "GuessValidator",
    "PhaseManager",
    "Player",
    "Room",
    "RoomSettings",
    "ScoringService",
    "TelephoneChain",
    "TelephoneEntry",
    "TimerManager",
    "WordBank",
]

from canvasclash.game.events import EventType, GameEvent
from canvasclash.game.models import (
    DrawingEntry,
    GameState,
    Player,
    Room,
    RoomSettings,
    TelephoneChain,
    TelephoneEntry,
)
from canvasclash.game.phases import PhaseManager
from canvasclash.game.scoring import ScoringService
from canvasclash.game.timers import TimerManager
from canvasclash.game.types import DifficultyLevel, GameMode, GamePhase, GuessOutcome
from canvasclash.game.validation import GuessValidator
from canvasclash.game.wordbank import WordBank
