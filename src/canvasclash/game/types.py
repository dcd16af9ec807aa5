"""Type definitions for the game session engine."""

from __future__ import annotations

from enum import StrEnum


class GamePhase(StrEnum):
    """Current stage of a room's game session.

    Classic flow:
    LOBBY -> COUNTDOWN -> WORD_SELECTION -> DRAWING -> REVEAL -> RESULTS -> (repeat or GAME_OVER)
    GAME_OVER -> VOTING -> LOBBY

    Telephone flow:
    COUNTDOWN -> TELEPHONE_DRAW <-> TELEPHONE_GUESS -> TELEPHONE_REVEAL -> RESULTS
    """

    LOBBY = "lobby"
    COUNTDOWN = "countdown"
    WORD_SELECTION = "word_selection"
    DRAWING = "drawing"
    REVEAL = "reveal"
    RESULTS = "results"
    GAME_OVER = "game_over"
    VOTING = "voting"
    TELEPHONE_DRAW = "telephone_draw"
    TELEPHONE_GUESS = "telephone_guess"
    TELEPHONE_REVEAL = "telephone_reveal"


class GameMode(StrEnum):
    """Available game modes."""

    CLASSIC = "classic"  # One drawer per round
    COLLABORATIVE = "collaborative"  # 2-4 drawers share a round
    TELEPHONE = "telephone"  # Draw/guess relay chain


class TelephoneEntryType(StrEnum):
    """Kind of turn in a telephone chain."""

    DRAW = "draw"
    GUESS = "guess"


class PromptKind(StrEnum):
    """What a telephone player is shown before their turn."""

    WORD = "word"  # Original word, first drawer only
    GUESS = "guess"  # Previous player's guess, for drawers
    DRAWING = "drawing"  # Previous player's drawing, for guessers


class GuessOutcome(StrEnum):
    """Classification of a processed guess."""

    CORRECT = "correct"
    CLOSE = "close"
    WRONG = "wrong"
    REJECTED = "rejected"  # Not allowed to guess right now


class DifficultyLevel(StrEnum):
    """Difficulty levels for word selection."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
