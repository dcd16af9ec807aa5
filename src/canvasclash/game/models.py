"""Game session data models.

This module defines the mutable aggregate owned by one room: the room itself,
its players, the single ``GameState`` record, drawings kept for voting and the
telephone chain. Every model serializes itself with ``to_dict`` for outbound
events.
"""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from canvasclash.game.types import GameMode, GamePhase, PromptKind, TelephoneEntryType

# Excludes I, O, 0 and 1 which are easily confused when typed
ROOM_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_ID_LENGTH = 6

SKIPPED_WORD = "(skipped)"


def generate_room_id() -> str:
    """Generate a random human-typeable room identifier.

    Uniqueness is not guaranteed; the registry retries on collision.

    Returns:
        A 6 character identifier.
    """
    return "".join(random.choices(ROOM_ID_ALPHABET, k=ROOM_ID_LENGTH))


def generate_player_id() -> str:
    """Generate a short opaque player identifier."""
    return uuid4().hex[:8]


def make_word_hint(word: str) -> str:
    """Build the underscore hint shown to guessers.

    Each letter becomes an underscore separated by a space, and words of a
    multi-word phrase are separated by three spaces.

    Args:
        word: The secret word.

    Returns:
        Hint such as ``"_ _ _"`` for ``"cat"``.
    """
    return "   ".join(" ".join("_" * len(part)) for part in word.split(" "))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


@dataclass
class Player:
    """Represents a participant in a room.

    Attributes:
        name: Display name shown to other players.
        session_id: Current transport session ID. Changes on reconnect.
        id: Short player ID, stable across reconnects within a room.
        score: Cumulative score for the current game.
        ready: Lobby ready flag.
        connected: Whether the transport session is currently alive.
        current_streak: Consecutive rounds with a correct guess.
        max_streak: Best streak reached during the current game.
    """

    name: str
    session_id: str
    id: str = field(default_factory=generate_player_id)
    score: int = 0
    ready: bool = False
    connected: bool = True
    current_streak: int = 0
    max_streak: int = 0

    def add_score(self, points: int) -> None:
        """Add points to the player's total score.

        Args:
            points: Number of points to award.
        """
        self.score += points

    def increment_streak(self) -> int:
        """Increment the streak, tracking the maximum.

        Returns:
            The new streak value.
        """
        self.current_streak += 1
        self.max_streak = max(self.max_streak, self.current_streak)
        return self.current_streak

    def reset_streak(self) -> None:
        """Break the current streak."""
        self.current_streak = 0

    def reset_for_new_game(self) -> None:
        """Clear score, readiness and streaks."""
        self.score = 0
        self.ready = False
        self.current_streak = 0
        self.max_streak = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "ready": self.ready,
            "connected": self.connected,
            "current_streak": self.current_streak,
            "max_streak": self.max_streak,
        }


@dataclass(frozen=True)
class RoomSettings:
    """Room configuration, fixed once the room is created.

    Out-of-range values are clamped rather than rejected.

    Attributes:
        max_players: Player limit (2-12).
        total_rounds: Rounds per game (1-10).
        draw_time: Seconds the drawer has to draw (30-180).
        reveal_time: Seconds guessing stays open after the drawing is submitted.
        mode: Game mode.
        collaborative_drawer_count: Drawers per round in collaborative mode (2-4).
    """

    max_players: int = 12
    total_rounds: int = 3
    draw_time: int = 80
    reveal_time: int = 10
    mode: GameMode = GameMode.CLASSIC
    collaborative_drawer_count: int = 2

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_players", _clamp(int(self.max_players), 2, 12))
        object.__setattr__(self, "total_rounds", _clamp(int(self.total_rounds), 1, 10))
        object.__setattr__(self, "draw_time", _clamp(int(self.draw_time), 30, 180))
        object.__setattr__(self, "reveal_time", max(1, int(self.reveal_time)))
        object.__setattr__(self, "mode", GameMode(self.mode))
        object.__setattr__(self, "collaborative_drawer_count", _clamp(int(self.collaborative_drawer_count), 2, 4))

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RoomSettings:
        """Build settings from a client payload, ignoring unknown keys.

        Args:
            data: Mapping with any of the field names. ``None`` gives defaults.

        Returns:
            Clamped settings.

        Raises:
            ValueError: If a value cannot be converted (for example an unknown mode).
        """
        if not data:
            return cls()
        known = {key: value for key, value in data.items() if key in cls.__dataclass_fields__}
        return cls(**known)

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_players": self.max_players,
            "total_rounds": self.total_rounds,
            "draw_time": self.draw_time,
            "reveal_time": self.reveal_time,
            "mode": self.mode.value,
            "collaborative_drawer_count": self.collaborative_drawer_count,
        }


@dataclass
class DrawingEntry:
    """A drawing kept for the end-of-game vote.

    Attributes:
        round_number: Round the drawing was made in.
        drawer_id: Player ID of the (first) drawer.
        drawer_name: Display name of the (first) drawer.
        word: Word that was drawn.
        drawing: Opaque drawing payload (image data URL).
        drawer_ids: Every drawer of the round, for collaborative rounds.
        votes: Votes received so far.
    """

    round_number: int
    drawer_id: str
    drawer_name: str
    word: str
    drawing: str
    drawer_ids: list[str] = field(default_factory=list)
    votes: int = 0

    def involves(self, player_id: str) -> bool:
        """Check whether ``player_id`` drew this entry."""
        return player_id == self.drawer_id or player_id in self.drawer_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "round_number": self.round_number,
            "drawer_id": self.drawer_id,
            "drawer_name": self.drawer_name,
            "word": self.word,
            "drawing": self.drawing,
            "votes": self.votes,
        }


@dataclass
class TelephoneEntry:
    """One turn of a telephone chain."""

    player_id: str
    player_name: str
    entry_type: TelephoneEntryType
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.entry_type.value,
            "content": self.content,
            "player_id": self.player_id,
            "player_name": self.player_name,
        }


@dataclass
class TelephoneChain:
    """An alternating draw/guess relay across a shuffled player queue.

    Entry types strictly alternate starting with DRAW. The prompt for entry
    *k* is the content of entry *k-1*, or the original word for entry 0.

    Attributes:
        original_word: The word the chain starts from.
        player_queue: Session IDs in turn order, shuffled once at creation.
        cursor: Index into ``player_queue`` of the player whose turn it is.
        entries: Completed turns in order.
    """

    original_word: str
    player_queue: list[str]
    cursor: int = 0
    entries: list[TelephoneEntry] = field(default_factory=list)

    @property
    def current_session_id(self) -> str | None:
        """Session ID whose turn it is, or None when the queue is exhausted."""
        if self.cursor < len(self.player_queue):
            return self.player_queue[self.cursor]
        return None

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.player_queue)

    @property
    def remaining_players(self) -> int:
        return max(0, len(self.player_queue) - self.cursor)

    @property
    def last_entry(self) -> TelephoneEntry | None:
        return self.entries[-1] if self.entries else None

    def next_entry_type(self) -> TelephoneEntryType:
        """Return the type the next entry must have."""
        return TelephoneEntryType.DRAW if len(self.entries) % 2 == 0 else TelephoneEntryType.GUESS

    def current_prompt(self) -> tuple[PromptKind, str]:
        """Return what the current player is shown, tagged by kind."""
        last = self.last_entry
        if last is None:
            return PromptKind.WORD, self.original_word
        if last.entry_type is TelephoneEntryType.DRAW:
            return PromptKind.DRAWING, last.content
        return PromptKind.GUESS, last.content

    def add_entry(self, entry: TelephoneEntry) -> None:
        """Record a completed turn and advance the cursor."""
        self.entries.append(entry)
        self.cursor += 1

    def skip_current(self) -> None:
        """Advance past the current player without recording a turn."""
        self.cursor += 1

    def rebind_session(self, old_session_id: str, new_session_id: str) -> None:
        """Replace a session ID in the queue after a reconnect."""
        self.player_queue = [new_session_id if sid == old_session_id else sid for sid in self.player_queue]

    def word_survived(self) -> bool:
        """Check whether the final entry is a guess equal to the original word."""
        last = self.last_entry
        if last is None or last.entry_type is not TelephoneEntryType.GUESS:
            return False
        return last.content.strip().lower() == self.original_word.strip().lower()

    def to_reveal(self) -> list[dict[str, Any]]:
        """Assemble the full chain for the reveal, original word first."""
        chain: list[dict[str, Any]] = [
            {
                "type": PromptKind.WORD.value,
                "content": self.original_word,
                "player_id": "",
                "player_name": "Original Word",
            }
        ]
        chain.extend(entry.to_dict() for entry in self.entries)
        return chain


@dataclass
class GameState:
    """The single mutable "what is true right now" record of a room.

    ``drawer_session_ids`` is the set of sessions currently responsible for
    drawing and is non-empty only during WORD_SELECTION and DRAWING.
    ``drawer_player_ids`` keeps the drawers of the current round until the
    next round starts, for scoring and guess authorization during REVEAL.

    Attributes:
        phase: Current phase. Change it only through ``PhaseManager``.
        current_round: 1-indexed round counter, 0 before the first round.
        total_rounds: Rounds configured for this game.
        drawer_index: Round-robin cursor over the room's players.
        drawer_session_ids: Sessions currently drawing.
        drawer_player_ids: Player IDs drawing this round.
        current_word: Word being drawn, None until selected.
        word_options: Words offered to the drawer.
        current_drawing: Drawing payload submitted this round.
        correct_guessers: Player IDs that guessed correctly this round.
        ending_early: Every guesser found the word and the grace timer runs.
        voting_open: Votes are being accepted.
        phase_started_at: When the current phase began.
        drawings: Drawings collected this game for voting.
        voted_players: Player IDs that already voted.
        telephone_chain: Chain of the current telephone round.
        telephone_session_id: Session whose telephone turn it is.
        telephone_player_id: Player whose telephone turn it is.
    """

    phase: GamePhase = GamePhase.LOBBY
    current_round: int = 0
    total_rounds: int = 3
    drawer_index: int = -1
    drawer_session_ids: list[str] = field(default_factory=list)
    drawer_player_ids: list[str] = field(default_factory=list)
    current_word: str | None = None
    word_options: list[str] = field(default_factory=list)
    current_drawing: str | None = None
    correct_guessers: set[str] = field(default_factory=set)
    ending_early: bool = False
    voting_open: bool = False
    phase_started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    drawings: list[DrawingEntry] = field(default_factory=list)
    voted_players: set[str] = field(default_factory=set)
    telephone_chain: TelephoneChain | None = None
    telephone_session_id: str | None = None
    telephone_player_id: str | None = None

    @property
    def correct_guess_count(self) -> int:
        return len(self.correct_guessers)

    @property
    def word_hint(self) -> str:
        return make_word_hint(self.current_word) if self.current_word else ""

    def is_current_drawer(self, session_id: str) -> bool:
        return session_id in self.drawer_session_ids

    def is_round_drawer(self, player_id: str) -> bool:
        return player_id in self.drawer_player_ids

    def has_guessed_correctly(self, player_id: str) -> bool:
        return player_id in self.correct_guessers

    def begin_round(self, drawers: list[Player], word_options: list[str]) -> None:
        """Reset per-round state for a new drawing round.

        Args:
            drawers: Players drawing this round.
            word_options: Words offered to the drawers.
        """
        self.current_round += 1
        self.drawer_session_ids = [p.session_id for p in drawers]
        self.drawer_player_ids = [p.id for p in drawers]
        self.word_options = list(word_options)
        self.current_word = None
        self.current_drawing = None
        self.correct_guessers = set()
        self.ending_early = False

    def begin_telephone_round(self, word: str, player_queue: list[str]) -> TelephoneChain:
        """Start a new telephone chain for the next round."""
        self.current_round += 1
        self.current_word = word
        self.drawer_session_ids = []
        self.drawer_player_ids = []
        self.correct_guessers = set()
        self.telephone_chain = TelephoneChain(original_word=word, player_queue=player_queue)
        self.telephone_session_id = None
        self.telephone_player_id = None
        return self.telephone_chain

    def set_telephone_turn(self, session_id: str | None, player_id: str | None) -> None:
        self.telephone_session_id = session_id
        self.telephone_player_id = player_id

    def is_current_telephone_player(self, session_id: str) -> bool:
        return self.telephone_session_id is not None and self.telephone_session_id == session_id

    def rebind_session(self, old_session_id: str, new_session_id: str) -> None:
        """Replace a session ID everywhere it is referenced after a reconnect."""
        self.drawer_session_ids = [new_session_id if s == old_session_id else s for s in self.drawer_session_ids]
        if self.telephone_session_id == old_session_id:
            self.telephone_session_id = new_session_id
        if self.telephone_chain is not None:
            self.telephone_chain.rebind_session(old_session_id, new_session_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "current_round": self.current_round,
            "total_rounds": self.total_rounds,
            "drawer_ids": list(self.drawer_player_ids),
            "word_hint": self.word_hint if self.phase in (GamePhase.DRAWING, GamePhase.REVEAL) else "",
            "correct_guessers": sorted(self.correct_guessers),
        }


@dataclass
class Room:
    """One isolated game session.

    Attributes:
        id: 6 character room identifier.
        host_session_id: Session ID of the host.
        settings: Room configuration.
        players: Mapping of session ID to player.
        game: The room's game state.
        created_at: When the room was created.
        last_activity: Last time any action touched the room.
        lock: Serializes mutations of this room across timers and player actions.
    """

    id: str
    host_session_id: str
    settings: RoomSettings = field(default_factory=RoomSettings)
    players: dict[str, Player] = field(default_factory=dict)
    game: GameState = field(default_factory=GameState)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.game.total_rounds = self.settings.total_rounds

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.settings.max_players

    @property
    def host(self) -> Player | None:
        return self.players.get(self.host_session_id)

    def touch(self) -> None:
        """Update the last activity timestamp."""
        self.last_activity = datetime.now(UTC)

    def get_player(self, session_id: str) -> Player | None:
        return self.players.get(session_id)

    def get_player_by_id(self, player_id: str) -> Player | None:
        return next((p for p in self.players.values() if p.id == player_id), None)

    def player_list(self) -> list[Player]:
        return list(self.players.values())

    def connected_players(self) -> list[Player]:
        return [p for p in self.players.values() if p.connected]

    def add_player(self, player: Player) -> None:
        self.players[player.session_id] = player
        self.touch()

    def remove_player(self, session_id: str) -> Player | None:
        """Remove a player, transferring host ownership when needed.

        Args:
            session_id: Session of the player to remove.

        Returns:
            The removed player, or None if the session was not in the room.
        """
        player = self.players.pop(session_id, None)
        if player is not None and session_id == self.host_session_id and self.players:
            self.host_session_id = next(iter(self.players))
        self.touch()
        return player

    def rebind_session(self, player: Player, new_session_id: str) -> str:
        """Move a player to a new session ID.

        Args:
            player: The reconnecting player.
            new_session_id: The new transport session.

        Returns:
            The previous session ID.
        """
        old_session_id = player.session_id
        self.players.pop(old_session_id, None)
        player.session_id = new_session_id
        player.connected = True
        self.players[new_session_id] = player
        if self.host_session_id == old_session_id:
            self.host_session_id = new_session_id
        self.game.rebind_session(old_session_id, new_session_id)
        self.touch()
        return old_session_id

    def reset_for_new_game(self) -> None:
        """Return the room to a fresh lobby, keeping its players."""
        for player in self.players.values():
            player.reset_for_new_game()
        self.game = GameState(total_rounds=self.settings.total_rounds)
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        host = self.host
        return {
            "id": self.id,
            "host_id": host.id if host else None,
            "settings": self.settings.to_dict(),
            "players": [p.to_dict() for p in self.players.values()],
            "game": self.game.to_dict(),
        }
