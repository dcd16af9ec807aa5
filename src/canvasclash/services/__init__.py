"""Game services: the room registry, per-stage managers and the engine."""

from __future__ import annotations

from canvasclash.services.engine import GameEngine
from canvasclash.services.guesses import GuessProcessor, GuessResult
from canvasclash.services.registry import RoomRegistry
from canvasclash.services.rounds import RoundManager
from canvasclash.services.telephone import TelephoneManager
from canvasclash.services.voting import VotingManager

__all__ = [
    "GameEngine",
    "GuessProcessor",
    "GuessResult",
    "RoomRegistry",
    "RoundManager",
    "TelephoneManager",
    "VotingManager",
]
