"""Point calculation for guessers and drawers.

Every formula rounds half up, so ``247.5`` becomes ``248`` everywhere.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from canvasclash.game.models import Room

MAX_GUESSER_POINTS = 500
FIRST_GUESS_BONUS = 100
MIN_GUESSER_POINTS = 50
MAX_DRAWER_POINTS = 300

STREAK_MULTIPLIERS = {2: 1.25, 3: 1.5}
MAX_STREAK_MULTIPLIER = 2.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return math.floor(value + 0.5)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ScoringService:
    """Pure point calculations over immutable inputs.

    Args:
        clock: Returns the current time. Injected so tests can pin ``now``.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow

    def calculate_guesser_points(self, phase_started_at: datetime, total_time_seconds: float, is_first: bool) -> int:
        """Time-decayed points for a correct guess.

        ``max(50, round(500 * (1 - min(elapsed / total, 1))) + (100 if first))``

        Args:
            phase_started_at: Start of the phase the guess was made in.
            total_time_seconds: Length of that phase.
            is_first: Whether this is the round's first correct guess.

        Returns:
            Points to award, never below 50.
        """
        elapsed = max(0.0, (self._clock() - phase_started_at).total_seconds())
        ratio = min(elapsed / total_time_seconds, 1.0) if total_time_seconds > 0 else 1.0
        points = round_half_up(MAX_GUESSER_POINTS * (1.0 - ratio))
        if is_first:
            points += FIRST_GUESS_BONUS
        return max(MIN_GUESSER_POINTS, points)

    @staticmethod
    def streak_multiplier(streak: int) -> float:
        """Multiplier for a streak value: 1.25 at 2, 1.5 at 3, 2.0 from 4 on, else 1."""
        if streak >= 4:
            return MAX_STREAK_MULTIPLIER
        return STREAK_MULTIPLIERS.get(streak, 1.0)

    def calculate_guesser_points_with_streak(
        self,
        phase_started_at: datetime,
        total_time_seconds: float,
        is_first: bool,
        current_streak: int,
    ) -> tuple[int, float]:
        """Guesser points multiplied by the streak the guess is about to reach.

        Args:
            phase_started_at: Start of the phase the guess was made in.
            total_time_seconds: Length of that phase.
            is_first: Whether this is the round's first correct guess.
            current_streak: The player's streak before this guess.

        Returns:
            Tuple of (points, multiplier).
        """
        base = self.calculate_guesser_points(phase_started_at, total_time_seconds, is_first)
        multiplier = self.streak_multiplier(current_streak + 1)
        return round_half_up(base * multiplier), multiplier

    @staticmethod
    def calculate_drawer_points(correct_guessers: int, total_players: int) -> int:
        """Drawer points proportional to the share of guessers that found the word.

        Args:
            correct_guessers: Number of correct guessers this round.
            total_players: Players in the round, drawer included.

        Returns:
            ``round(300 * correct / (total - 1))``, or 0 when nobody guessed.
        """
        if total_players <= 1 or correct_guessers <= 0:
            return 0
        return round_half_up(MAX_DRAWER_POINTS * correct_guessers / (total_players - 1))

    @staticmethod
    def round_scores(room: Room) -> list[dict[str, Any]]:
        """Scoreboard for the end of a round, highest score first."""
        game = room.game
        players = sorted(room.player_list(), key=lambda p: p.score, reverse=True)
        return [
            {
                "player_id": p.id,
                "player_name": p.name,
                "score": p.score,
                "is_drawer": game.is_round_drawer(p.id),
                "guessed_correctly": game.has_guessed_correctly(p.id),
                "current_streak": p.current_streak,
            }
            for p in players
        ]

    @staticmethod
    def final_scores(room: Room) -> list[dict[str, Any]]:
        """Final ranked scoreboard, highest score first. Ties share a rank."""
        players = sorted(room.player_list(), key=lambda p: p.score, reverse=True)
        scores: list[dict[str, Any]] = []
        rank = 0
        previous: int | None = None
        for position, p in enumerate(players, start=1):
            if p.score != previous:
                rank = position
                previous = p.score
            scores.append(
                {
                    "player_id": p.id,
                    "player_name": p.name,
                    "score": p.score,
                    "rank": rank,
                    "max_streak": p.max_streak,
                }
            )
        return scores
