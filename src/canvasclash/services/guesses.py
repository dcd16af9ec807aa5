"""Guess processing: authorization, classification and scoring side effects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from canvasclash.game.events import GameEvent
from canvasclash.game.types import GamePhase, GuessOutcome

if TYPE_CHECKING:
    from canvasclash.config import GameConfig
    from canvasclash.game.models import Room
    from canvasclash.game.protocols import Broadcaster
    from canvasclash.game.scoring import ScoringService
    from canvasclash.game.validation import GuessValidator

logger = structlog.get_logger(__name__)

GUESSING_PHASES = (GamePhase.DRAWING, GamePhase.REVEAL)


@dataclass
class GuessResult:
    """Result of processing one guess.

    Attributes:
        outcome: How the guess was classified.
        points: Points awarded (correct guesses only).
        all_guessed: Every connected guesser has now found the word.
    """

    outcome: GuessOutcome
    points: int = 0
    all_guessed: bool = False


class GuessProcessor:
    """Classifies guesses and applies their effects.

    A correct guess scores and is announced to the room. A close guess is
    reported privately to the guesser. Any other guess is shown to the room
    as an ordinary chat message.
    """

    def __init__(
        self,
        *,
        broadcaster: Broadcaster,
        scoring: ScoringService,
        validator: GuessValidator,
        config: GameConfig,
    ) -> None:
        self._broadcaster = broadcaster
        self._scoring = scoring
        self._validator = validator
        self._config = config

    def can_player_guess(self, room: Room, session_id: str) -> bool:
        """Check whether a session may guess right now.

        Drawers cannot guess, guessing is only open in DRAWING and REVEAL, and
        each player scores at most once per round.
        """
        game = room.game
        player = room.get_player(session_id)
        if player is None:
            return False
        if game.is_current_drawer(session_id) or game.is_round_drawer(player.id):
            return False
        if game.phase not in GUESSING_PHASES:
            return False
        return not game.has_guessed_correctly(player.id)

    def process_guess(self, room: Room, session_id: str, guess: str) -> GuessResult:
        """Classify a guess and apply its side effects.

        Args:
            room: The room the guess belongs to.
            session_id: Session of the guesser.
            guess: Raw guess text.

        Returns:
            The guess result. ``REJECTED`` guesses have no effect at all.
        """
        with room.lock:
            game = room.game
            word = game.current_word
            player = room.get_player(session_id)
            if (
                player is None
                or word is None
                or not self._validator.is_valid_guess(guess)
                or not self.can_player_guess(room, session_id)
            ):
                return GuessResult(GuessOutcome.REJECTED)

            room.touch()
            if self._validator.is_correct_guess(guess, word):
                return self._apply_correct_guess(room, session_id)

            if self._validator.is_close_guess(guess, word):
                self._broadcaster.send_to_player(session_id, GameEvent.close_guess(player.id, guess.strip()))
                return GuessResult(GuessOutcome.CLOSE)

            self._broadcaster.broadcast_to_room(room.id, GameEvent.chat(player.id, player.name, guess.strip()))
            return GuessResult(GuessOutcome.WRONG)

    def all_players_guessed(self, room: Room) -> bool:
        """Check whether every connected non-drawer guessed correctly."""
        game = room.game
        guessers = [p for p in room.connected_players() if not game.is_round_drawer(p.id)]
        return bool(guessers) and all(game.has_guessed_correctly(p.id) for p in guessers)

    def _apply_correct_guess(self, room: Room, session_id: str) -> GuessResult:
        game = room.game
        player = room.players[session_id]
        is_first = game.correct_guess_count == 0
        total_time = room.settings.draw_time if game.phase is GamePhase.DRAWING else room.settings.reveal_time

        if self._config.streak_scoring:
            points, multiplier = self._scoring.calculate_guesser_points_with_streak(
                game.phase_started_at, total_time, is_first, player.current_streak
            )
        else:
            points = self._scoring.calculate_guesser_points(game.phase_started_at, total_time, is_first)
            multiplier = None

        player.add_score(points)
        game.correct_guessers.add(player.id)
        streak = player.increment_streak()

        logger.info(
            "Correct guess",
            room_id=room.id,
            player=player.name,
            points=points,
            streak=streak,
        )

        if multiplier is not None:
            event = GameEvent.correct_guess(
                player, points, game.correct_guess_count, streak=streak, multiplier=multiplier
            )
        else:
            event = GameEvent.correct_guess(player, points, game.correct_guess_count)
        self._broadcaster.broadcast_to_room(room.id, event)

        return GuessResult(GuessOutcome.CORRECT, points=points, all_guessed=self.all_players_guessed(room))
