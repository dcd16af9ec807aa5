"""Runtime configuration for canvasclash.

All game flow delays are expressed in seconds and can be overridden through
``CANVASCLASH_*`` environment variables. Tests build a ``GameConfig`` directly
with tiny delays.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

ENV_PREFIX = "CANVASCLASH_"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    return int(raw) if raw else default


def _env_bool(name: str, *, default: bool) -> bool:
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


@dataclass
class GameConfig:
    """Game engine configuration settings.

    Attributes:
        countdown_seconds: Countdown shown before the first round.
        word_selection_seconds: Time the drawer has to choose a word before the
            first option is picked automatically.
        results_seconds: How long round results stay on screen.
        all_guessed_grace_seconds: Delay before ending a round early once every
            guesser found the word.
        game_over_seconds: How long the final scoreboard stays before voting.
        voting_seconds: Length of the best drawing vote.
        voting_results_seconds: Delay between voting results and the room reset.
        voting_winner_bonus: Points awarded to the drawer of the best drawing.
        telephone_draw_seconds: Time limit for a telephone drawing turn.
        telephone_guess_seconds: Time limit for a telephone guessing turn.
        telephone_reveal_base_seconds: Base display time of a chain reveal.
        telephone_reveal_per_entry_seconds: Extra reveal time per chain entry.
        room_inactivity_minutes: Idle time after which a room is swept.
        sweep_interval_seconds: Period of the inactive room sweep.
        streak_scoring: Apply streak multipliers to guesser points.
        max_message_length: Longest accepted guess or chat message.
        debug: Enable debug level logging.
        json_logs: Emit logs as JSON lines.
    """

    countdown_seconds: float = 3.0
    word_selection_seconds: float = 15.0
    results_seconds: float = 5.0
    all_guessed_grace_seconds: float = 2.0
    game_over_seconds: float = 5.0
    voting_seconds: float = 30.0
    voting_results_seconds: float = 5.0
    voting_winner_bonus: int = 100
    telephone_draw_seconds: float = 60.0
    telephone_guess_seconds: float = 30.0
    telephone_reveal_base_seconds: float = 5.0
    telephone_reveal_per_entry_seconds: float = 3.0
    room_inactivity_minutes: float = 30.0
    sweep_interval_seconds: float = 60.0
    streak_scoring: bool = True
    max_message_length: int = 100
    debug: bool = False
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> GameConfig:
        """Create settings from environment variables.

        Environment variables use the ``CANVASCLASH_`` prefix followed by the
        upper-cased field name, for example ``CANVASCLASH_VOTING_SECONDS=20``.

        Returns:
            GameConfig configured from environment.
        """
        defaults = cls()
        return cls(
            countdown_seconds=_env_float("COUNTDOWN_SECONDS", defaults.countdown_seconds),
            word_selection_seconds=_env_float("WORD_SELECTION_SECONDS", defaults.word_selection_seconds),
            results_seconds=_env_float("RESULTS_SECONDS", defaults.results_seconds),
            all_guessed_grace_seconds=_env_float("ALL_GUESSED_GRACE_SECONDS", defaults.all_guessed_grace_seconds),
            game_over_seconds=_env_float("GAME_OVER_SECONDS", defaults.game_over_seconds),
            voting_seconds=_env_float("VOTING_SECONDS", defaults.voting_seconds),
            voting_results_seconds=_env_float("VOTING_RESULTS_SECONDS", defaults.voting_results_seconds),
            voting_winner_bonus=_env_int("VOTING_WINNER_BONUS", defaults.voting_winner_bonus),
            telephone_draw_seconds=_env_float("TELEPHONE_DRAW_SECONDS", defaults.telephone_draw_seconds),
            telephone_guess_seconds=_env_float("TELEPHONE_GUESS_SECONDS", defaults.telephone_guess_seconds),
            telephone_reveal_base_seconds=_env_float(
                "TELEPHONE_REVEAL_BASE_SECONDS", defaults.telephone_reveal_base_seconds
            ),
            telephone_reveal_per_entry_seconds=_env_float(
                "TELEPHONE_REVEAL_PER_ENTRY_SECONDS", defaults.telephone_reveal_per_entry_seconds
            ),
            room_inactivity_minutes=_env_float("ROOM_INACTIVITY_MINUTES", defaults.room_inactivity_minutes),
            sweep_interval_seconds=_env_float("SWEEP_INTERVAL_SECONDS", defaults.sweep_interval_seconds),
            streak_scoring=_env_bool("STREAK_SCORING", default=defaults.streak_scoring),
            max_message_length=_env_int("MAX_MESSAGE_LENGTH", defaults.max_message_length),
            debug=_env_bool("DEBUG", default=False),
            json_logs=_env_bool("JSON_LOGS", default=False),
        )

    def telephone_reveal_seconds(self, entry_count: int) -> float:
        """Return the reveal display time for a chain with ``entry_count`` entries."""
        return self.telephone_reveal_base_seconds + entry_count * self.telephone_reveal_per_entry_seconds
