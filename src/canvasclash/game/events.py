"""Outbound game events.

Every event is a type tag plus a flat payload. ``GameEvent.to_dict`` produces
the JSON object sent to clients, for example::

    {"type": "correct_guess", "timestamp": "...", "player_id": "3f2a9c1b", "points": 450}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from canvasclash.game.models import DrawingEntry, Player, Room
    from canvasclash.game.types import PromptKind


class EventType(StrEnum):
    """Types of outbound events."""

    ROOM_STATE = "room_state"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    COUNTDOWN = "countdown"
    ROUND_START = "round_start"
    WORD_OPTIONS = "word_options"  # private
    DRAWING_PHASE = "drawing_phase"
    DRAW_STROKE = "draw_stroke"
    WORD_SELECTED = "word_selected"  # private
    REVEAL_PHASE = "reveal_phase"
    CORRECT_GUESS = "correct_guess"
    CLOSE_GUESS = "close_guess"  # private
    CHAT = "chat"
    REACTION = "reaction"
    ROUND_END = "round_end"
    GAME_OVER = "game_over"
    VOTING_START = "voting_start"
    VOTE_RECEIVED = "vote_received"
    VOTING_RESULTS = "voting_results"
    TELEPHONE_DRAW = "telephone_draw"
    TELEPHONE_GUESS = "telephone_guess"
    TELEPHONE_PROMPT = "telephone_prompt"  # private
    TELEPHONE_REVEAL = "telephone_reveal"
    SESSION = "session"  # private
    ERROR = "error"  # private


@dataclass(frozen=True)
class GameEvent:
    """An outbound event with a type tag and payload."""

    type: EventType
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for JSON serialization."""
        return {"type": self.type.value, "timestamp": self.timestamp.isoformat(), **self.payload}

    # Lobby

    @classmethod
    def room_state(cls, room: Room) -> GameEvent:
        return cls(EventType.ROOM_STATE, {"room": room.to_dict()})

    @classmethod
    def player_joined(cls, player: Player) -> GameEvent:
        return cls(EventType.PLAYER_JOINED, {"player": player.to_dict()})

    @classmethod
    def player_left(cls, player: Player, *, disconnected: bool = False) -> GameEvent:
        return cls(
            EventType.PLAYER_LEFT,
            {"player_id": player.id, "player_name": player.name, "disconnected": disconnected},
        )

    @classmethod
    def countdown(cls, seconds: float) -> GameEvent:
        return cls(EventType.COUNTDOWN, {"seconds": seconds})

    # Drawing rounds

    @classmethod
    def round_start(cls, round_number: int, total_rounds: int, drawer_ids: list[str]) -> GameEvent:
        """Announce a new round to everyone.

        The word length and hint are withheld until the word is selected.

        Args:
            round_number: 1-indexed round number.
            total_rounds: Rounds in this game.
            drawer_ids: Player IDs of the drawer(s).

        Returns:
            The ROUND_START event.
        """
        return cls(
            EventType.ROUND_START,
            {
                "round": round_number,
                "total_rounds": total_rounds,
                "drawer_id": drawer_ids[0] if drawer_ids else None,
                "drawer_ids": list(drawer_ids),
                "collaborative": len(drawer_ids) > 1,
            },
        )

    @classmethod
    def word_options(cls, words: list[str], timeout: float) -> GameEvent:
        return cls(EventType.WORD_OPTIONS, {"words": list(words), "timeout": timeout})

    @classmethod
    def drawing_phase(cls, draw_time: int, word_length: int, word_hint: str) -> GameEvent:
        return cls(
            EventType.DRAWING_PHASE,
            {"draw_time": draw_time, "word_length": word_length, "word_hint": word_hint},
        )

    @classmethod
    def word_selected(cls, word: str) -> GameEvent:
        return cls(EventType.WORD_SELECTED, {"word": word})

    @classmethod
    def reveal_phase(cls, drawing: str | None, reveal_time: int, word_hint: str) -> GameEvent:
        return cls(
            EventType.REVEAL_PHASE,
            {"drawing": drawing, "reveal_time": reveal_time, "word_hint": word_hint},
        )

    @classmethod
    def correct_guess(
        cls,
        player: Player,
        points: int,
        total_correct: int,
        *,
        streak: int | None = None,
        multiplier: float | None = None,
    ) -> GameEvent:
        """Announce a correct guess.

        Args:
            player: The guesser.
            points: Points awarded for this guess.
            total_correct: Correct guessers so far this round, including this one.
            streak: New streak value when streak scoring is on.
            multiplier: Streak multiplier applied when streak scoring is on.

        Returns:
            The CORRECT_GUESS event.
        """
        payload: dict[str, Any] = {
            "player_id": player.id,
            "player_name": player.name,
            "points": points,
            "total_correct": total_correct,
        }
        if streak is not None:
            payload["streak"] = streak
            payload["multiplier"] = multiplier
        return cls(EventType.CORRECT_GUESS, payload)

    @classmethod
    def close_guess(cls, player_id: str, guess: str) -> GameEvent:
        return cls(EventType.CLOSE_GUESS, {"player_id": player_id, "guess": guess})

    @classmethod
    def chat(cls, player_id: str, player_name: str, text: str, *, system: bool = False) -> GameEvent:
        return cls(
            EventType.CHAT,
            {"player_id": player_id, "player_name": player_name, "text": text, "system": system},
        )

    @classmethod
    def system_chat(cls, text: str) -> GameEvent:
        return cls.chat("system", "System", text, system=True)

    @classmethod
    def reaction(cls, player: Player, emoji: str) -> GameEvent:
        return cls(EventType.REACTION, {"player_id": player.id, "player_name": player.name, "emoji": emoji})

    @classmethod
    def draw_stroke(cls, player: Player, stroke: dict[str, Any]) -> GameEvent:
        return cls(EventType.DRAW_STROKE, {"player_id": player.id, "stroke": stroke})

    @classmethod
    def round_end(cls, word: str, scores: list[dict[str, Any]]) -> GameEvent:
        return cls(EventType.ROUND_END, {"word": word, "scores": scores})

    @classmethod
    def game_over(cls, final_scores: list[dict[str, Any]]) -> GameEvent:
        return cls(EventType.GAME_OVER, {"final_scores": final_scores})

    # Voting

    @classmethod
    def voting_start(cls, drawings: list[DrawingEntry], voting_time: float) -> GameEvent:
        return cls(
            EventType.VOTING_START,
            {
                "drawings": [
                    {key: value for key, value in entry.to_dict().items() if key != "votes"} for entry in drawings
                ],
                "voting_time": voting_time,
            },
        )

    @classmethod
    def vote_received(cls, votes_cast: int, eligible_voters: int) -> GameEvent:
        return cls(EventType.VOTE_RECEIVED, {"votes_cast": votes_cast, "eligible_voters": eligible_voters})

    @classmethod
    def voting_results(
        cls, results: list[dict[str, Any]], winner: DrawingEntry | None, bonus: int
    ) -> GameEvent:
        return cls(
            EventType.VOTING_RESULTS,
            {
                "results": results,
                "winner_id": winner.drawer_id if winner else None,
                "winner_name": winner.drawer_name if winner else None,
                "bonus": bonus,
            },
        )

    # Telephone

    @classmethod
    def telephone_turn(
        cls, event_type: EventType, player: Player, time_limit: float, remaining_players: int
    ) -> GameEvent:
        """Announce whose telephone turn it is (TELEPHONE_DRAW or TELEPHONE_GUESS)."""
        return cls(
            event_type,
            {
                "player_id": player.id,
                "player_name": player.name,
                "time_limit": time_limit,
                "remaining_players": remaining_players,
            },
        )

    @classmethod
    def telephone_prompt(cls, kind: PromptKind, content: str) -> GameEvent:
        return cls(EventType.TELEPHONE_PROMPT, {"prompt_type": kind.value, "content": content})

    @classmethod
    def telephone_reveal(cls, original_word: str, chain: list[dict[str, Any]], reveal_time: float) -> GameEvent:
        return cls(
            EventType.TELEPHONE_REVEAL,
            {"original_word": original_word, "chain": chain, "reveal_time": reveal_time},
        )

    @classmethod
    def session(cls, session_id: str) -> GameEvent:
        return cls(EventType.SESSION, {"session_id": session_id})

    @classmethod
    def error(cls, code: str, message: str) -> GameEvent:
        return cls(EventType.ERROR, {"code": code, "message": message})
