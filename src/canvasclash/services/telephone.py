"""Telephone mode: a draw -> guess -> draw relay across a shuffled player queue."""

from __future__ import annotations

import random
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from canvasclash.game.events import EventType, GameEvent
from canvasclash.game.models import TelephoneEntry
from canvasclash.game.types import GamePhase, TelephoneEntryType

if TYPE_CHECKING:
    from canvasclash.config import GameConfig
    from canvasclash.game.models import Player, Room, TelephoneChain
    from canvasclash.game.phases import PhaseManager
    from canvasclash.game.protocols import Broadcaster, WordBankProtocol
    from canvasclash.game.scoring import ScoringService
    from canvasclash.game.timers import TimerManager

logger = structlog.get_logger(__name__)

DRAWER_PARTICIPATION_POINTS = 25
CORRECT_GUESS_POINTS = 100
WORD_SURVIVED_POINTS = 50

TIMED_OUT_DRAWING = ""
TIMED_OUT_GUESS = "(timed out)"

TURN_PHASES = (GamePhase.TELEPHONE_DRAW, GamePhase.TELEPHONE_GUESS)


class TelephoneManager:
    """Relays telephone turns and scores the finished chain.

    Scoring at reveal:
    - every drawing turn earns a participation bonus
    - a guess equal to the original word earns a bonus and extends the
      guesser's streak, any other guess breaks it
    - if the last entry is a guess equal to the original word, every entry's
      player earns the "word survived" bonus
    """

    def __init__(
        self,
        *,
        broadcaster: Broadcaster,
        word_bank: WordBankProtocol,
        scoring: ScoringService,
        phases: PhaseManager,
        timers: TimerManager,
        config: GameConfig,
        on_round_complete: Callable[[Room], None] | None = None,
    ) -> None:
        self._broadcaster = broadcaster
        self._word_bank = word_bank
        self._scoring = scoring
        self._phases = phases
        self._timers = timers
        self._config = config
        self._on_round_complete = on_round_complete

    def start_round(self, room: Room) -> bool:
        """Pick a word, shuffle the connected players and start the first turn.

        Returns:
            False if every round was played or no word is available.
        """
        with room.lock:
            game = room.game
            if game.current_round >= game.total_rounds:
                return False
            words = self._word_bank.get_word_options(1)
            if not words:
                logger.warning("Word bank returned no options", room_id=room.id)
                return False
            word = words[0]
            self._word_bank.mark_used(word)

            queue = [session_id for session_id, player in room.players.items() if player.connected]
            random.shuffle(queue)
            game.begin_telephone_round(word, queue)

            logger.info("Telephone round started", room_id=room.id, round=game.current_round, players=len(queue))
            self._advance(room)
            return True

    def submit_drawing(self, room: Room, session_id: str, drawing: str | None) -> bool:
        """Record the current player's drawing and pass the chain on."""
        with room.lock:
            player = self._current_player(room, session_id, GamePhase.TELEPHONE_DRAW)
            if player is None:
                return False
            chain = room.game.telephone_chain
            chain.add_entry(TelephoneEntry(player.id, player.name, TelephoneEntryType.DRAW, drawing or ""))
            logger.info("Telephone drawing submitted", room_id=room.id, player=player.name)
            self._advance(room)
            return True

    def submit_guess(self, room: Room, session_id: str, guess: str) -> bool:
        """Record the current player's guess and pass the chain on."""
        with room.lock:
            player = self._current_player(room, session_id, GamePhase.TELEPHONE_GUESS)
            if player is None:
                return False
            chain = room.game.telephone_chain
            chain.add_entry(TelephoneEntry(player.id, player.name, TelephoneEntryType.GUESS, (guess or "").strip()))
            logger.info("Telephone guess submitted", room_id=room.id, player=player.name)
            self._advance(room)
            return True

    def on_turn_timeout(self, room: Room) -> bool:
        """Record a placeholder entry for the player who ran out of time."""
        with room.lock:
            game = room.game
            chain = game.telephone_chain
            if game.phase not in TURN_PHASES or chain is None:
                return False
            player = room.get_player(game.telephone_session_id) if game.telephone_session_id else None
            if player is None:
                chain.skip_current()
            else:
                entry_type = chain.next_entry_type()
                content = TIMED_OUT_DRAWING if entry_type is TelephoneEntryType.DRAW else TIMED_OUT_GUESS
                chain.add_entry(TelephoneEntry(player.id, player.name, entry_type, content))
                logger.info("Telephone turn timed out", room_id=room.id, player=player.name)
            self._advance(room)
            return True

    def handle_player_gone(self, room: Room, session_id: str) -> bool:
        """Treat a leaving or disconnecting current player as a timed-out turn."""
        with room.lock:
            game = room.game
            if game.phase not in TURN_PHASES or not game.is_current_telephone_player(session_id):
                return False
            self._timers.cancel_timer(room.id)
            return self.on_turn_timeout(room)

    def end_round(self, room: Room) -> bool:
        """Leave the reveal for RESULTS with a round scoreboard."""
        with room.lock:
            game = room.game
            if game.phase is not GamePhase.TELEPHONE_REVEAL or game.telephone_chain is None:
                return False
            if not self._phases.transition(room, GamePhase.RESULTS):
                return False
            logger.info("Telephone round ended", room_id=room.id, round=game.current_round)
            self._broadcaster.broadcast_to_room(
                room.id,
                GameEvent.round_end(game.telephone_chain.original_word, self._scoring.round_scores(room)),
            )
            if self._on_round_complete is not None:
                self._on_round_complete(room)
            return True

    def score_chain(self, room: Room, chain: TelephoneChain) -> None:
        """Apply the telephone scoring pass for a finished chain."""
        original = chain.original_word.strip().lower()
        for entry in chain.entries:
            player = room.get_player_by_id(entry.player_id)
            if player is None:
                continue
            if entry.entry_type is TelephoneEntryType.DRAW:
                player.add_score(DRAWER_PARTICIPATION_POINTS)
            elif entry.content.strip().lower() == original:
                player.add_score(CORRECT_GUESS_POINTS)
                player.increment_streak()
            else:
                player.reset_streak()

        if chain.word_survived():
            logger.info("Telephone word survived", room_id=room.id, word=chain.original_word)
            for entry in chain.entries:
                player = room.get_player_by_id(entry.player_id)
                if player is not None:
                    player.add_score(WORD_SURVIVED_POINTS)

    def _current_player(self, room: Room, session_id: str, phase: GamePhase) -> Player | None:
        game = room.game
        if game.phase is not phase or game.telephone_chain is None:
            return None
        if not game.is_current_telephone_player(session_id):
            return None
        return room.get_player(session_id)

    def _advance(self, room: Room) -> None:
        game = room.game
        chain = game.telephone_chain
        while True:
            session_id = chain.current_session_id
            if session_id is None:
                self._start_reveal(room)
                return
            player = room.get_player(session_id)
            if player is not None and player.connected:
                break
            logger.debug("Skipping absent telephone player", room_id=room.id)
            chain.skip_current()

        entry_type = chain.next_entry_type()
        if entry_type is TelephoneEntryType.DRAW:
            phase, event_type, time_limit = (
                GamePhase.TELEPHONE_DRAW,
                EventType.TELEPHONE_DRAW,
                self._config.telephone_draw_seconds,
            )
        else:
            phase, event_type, time_limit = (
                GamePhase.TELEPHONE_GUESS,
                EventType.TELEPHONE_GUESS,
                self._config.telephone_guess_seconds,
            )

        if game.phase is phase:
            # A skipped turn hands the same kind of turn to the next player
            self._phases.restart(room)
        elif not self._phases.transition(room, phase):
            return
        game.set_telephone_turn(session_id, player.id)

        kind, content = chain.current_prompt()
        self._broadcaster.broadcast_to_room(
            room.id, GameEvent.telephone_turn(event_type, player, time_limit, chain.remaining_players)
        )
        self._broadcaster.send_to_player(session_id, GameEvent.telephone_prompt(kind, content))
        self._timers.schedule(room.id, time_limit, lambda: self.on_turn_timeout(room), expected_phase=phase)

    def _start_reveal(self, room: Room) -> None:
        game = room.game
        chain = game.telephone_chain
        if not self._phases.fast_forward(room, GamePhase.TELEPHONE_REVEAL):
            return
        game.set_telephone_turn(None, None)
        self.score_chain(room, chain)

        reveal_time = self._config.telephone_reveal_seconds(len(chain.entries))
        logger.info("Telephone reveal started", room_id=room.id, entries=len(chain.entries))
        self._broadcaster.broadcast_to_room(
            room.id, GameEvent.telephone_reveal(chain.original_word, chain.to_reveal(), reveal_time)
        )
        self._timers.schedule(
            room.id,
            reveal_time,
            lambda: self.end_round(room),
            expected_phase=GamePhase.TELEPHONE_REVEAL,
        )
