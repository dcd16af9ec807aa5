"""Round management for drawing rounds (classic and collaborative modes)."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from canvasclash.game.events import GameEvent
from canvasclash.game.models import SKIPPED_WORD, DrawingEntry
from canvasclash.game.types import GameMode, GamePhase

if TYPE_CHECKING:
    from canvasclash.config import GameConfig
    from canvasclash.game.models import Player, Room
    from canvasclash.game.phases import PhaseManager
    from canvasclash.game.protocols import Broadcaster, WordBankProtocol
    from canvasclash.game.scoring import ScoringService
    from canvasclash.game.timers import TimerManager

logger = structlog.get_logger(__name__)

WORD_OPTION_COUNT = 3
MIN_COLLABORATIVE_DRAWERS = 2

RoundCallback = Callable[["Room"], None]


class RoundManager:
    """Drives a drawing round from drawer selection to results.

    Round flow:
    WORD_SELECTION (auto-select on timeout) -> DRAWING (empty drawing on
    timeout) -> REVEAL (round ends on timeout) -> RESULTS

    Every handler that can conclude a round re-checks the phase under the room
    lock and no-ops on mismatch, so racing callers apply effects once.
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
        on_round_complete: RoundCallback | None = None,
    ) -> None:
        """Initialize the round manager.

        Args:
            broadcaster: Outbound event sink.
            word_bank: Word source for the drawer's options.
            scoring: Point calculations.
            phases: Phase transition guard.
            timers: Per-room timer scheduler.
            config: Game timing configuration.
            on_round_complete: Called once a round reached RESULTS.
        """
        self._broadcaster = broadcaster
        self._word_bank = word_bank
        self._scoring = scoring
        self._phases = phases
        self._timers = timers
        self._config = config
        self._on_round_complete = on_round_complete

    # Round start

    def is_game_over(self, room: Room) -> bool:
        return room.game.current_round >= room.game.total_rounds

    def start_next_round(self, room: Room) -> bool:
        """Pick the drawer(s), offer word options and enter WORD_SELECTION.

        Args:
            room: The room to advance.

        Returns:
            False if every round was already played or no round could start.
        """
        with room.lock:
            game = room.game
            if self.is_game_over(room):
                return False

            drawers = self.select_drawers(room)
            if not drawers:
                logger.warning("No eligible drawer", room_id=room.id)
                return False

            options = self._word_bank.get_word_options(WORD_OPTION_COUNT)
            if not options:
                logger.warning("Word bank returned no options", room_id=room.id)
                return False

            if not self._phases.transition(room, GamePhase.WORD_SELECTION):
                return False
            game.begin_round(drawers, options)

            logger.info(
                "Round started",
                room_id=room.id,
                round=game.current_round,
                drawers=[p.name for p in drawers],
            )

            self._broadcaster.broadcast_to_room(
                room.id, GameEvent.round_start(game.current_round, game.total_rounds, game.drawer_player_ids)
            )
            timeout = self._config.word_selection_seconds
            for session_id in game.drawer_session_ids:
                self._broadcaster.send_to_player(session_id, GameEvent.word_options(options, timeout))

            self._timers.schedule(
                room.id,
                timeout,
                lambda: self.auto_select_word(room),
                expected_phase=GamePhase.WORD_SELECTION,
            )
            return True

    def select_drawers(self, room: Room) -> list[Player]:
        """Advance the round-robin cursor and return this round's drawer(s).

        Classic mode picks one player. Collaborative mode advances the same
        cursor until ``min(configured count, players)`` distinct drawers are
        found, falling back to a single drawer with fewer than two players.
        """
        candidates = room.connected_players() or room.player_list()
        if not candidates:
            return []

        game = room.game
        wanted = 1
        if room.settings.mode is GameMode.COLLABORATIVE:
            wanted = min(room.settings.collaborative_drawer_count, len(candidates))
            if wanted < MIN_COLLABORATIVE_DRAWERS:
                wanted = 1

        drawers: list[Player] = []
        for _ in range(len(candidates)):
            game.drawer_index = (game.drawer_index + 1) % len(candidates)
            candidate = candidates[game.drawer_index]
            if candidate not in drawers:
                drawers.append(candidate)
            if len(drawers) == wanted:
                break
        return drawers

    # Word selection and drawing

    def select_word(self, room: Room, session_id: str, index: int) -> bool:
        """Lock in the drawer's word choice and start DRAWING.

        Out-of-range indexes fall back to the first option.

        Returns:
            False if the session is not a drawer or the phase is wrong.
        """
        with room.lock:
            game = room.game
            if game.phase is not GamePhase.WORD_SELECTION or not game.is_current_drawer(session_id):
                logger.debug("Word selection ignored", room_id=room.id, phase=game.phase.value)
                return False
            if not game.word_options:
                return False
            if not 0 <= index < len(game.word_options):
                index = 0

            word = game.word_options[index]
            if not self._phases.transition(room, GamePhase.DRAWING):
                return False
            game.current_word = word
            game.word_options = []
            self._word_bank.mark_used(word)

            logger.info("Word selected", room_id=room.id, round=game.current_round)

            draw_time = room.settings.draw_time
            self._broadcaster.broadcast_to_room(
                room.id, GameEvent.drawing_phase(draw_time, len(word), game.word_hint)
            )
            for drawer_session in game.drawer_session_ids:
                self._broadcaster.send_to_player(drawer_session, GameEvent.word_selected(word))

            self._timers.schedule(
                room.id,
                draw_time,
                lambda: self.on_drawing_timeout(room),
                expected_phase=GamePhase.DRAWING,
            )
            return True

    def auto_select_word(self, room: Room) -> bool:
        """Pick the first option for a drawer who let the selection time run out."""
        with room.lock:
            game = room.game
            if game.phase is not GamePhase.WORD_SELECTION or not game.drawer_session_ids:
                return False
            logger.info("Word selection timed out", room_id=room.id)
            return self.select_word(room, game.drawer_session_ids[0], 0)

    def submit_drawing(self, room: Room, session_id: str, drawing: str | None) -> bool:
        """Accept the drawing (first drawer to submit wins) and start REVEAL.

        Returns:
            False if the session is not a drawer or the phase is not DRAWING.
        """
        with room.lock:
            game = room.game
            if game.phase is not GamePhase.DRAWING or not game.is_current_drawer(session_id):
                return False
            if not self._phases.transition(room, GamePhase.REVEAL):
                return False
            game.current_drawing = drawing

            logger.info("Drawing submitted", room_id=room.id, empty=not drawing)

            reveal_time = room.settings.reveal_time
            self._broadcaster.broadcast_to_room(room.id, GameEvent.reveal_phase(drawing, reveal_time, game.word_hint))
            delay = self._config.all_guessed_grace_seconds if game.ending_early else reveal_time
            self._timers.schedule(
                room.id,
                delay,
                lambda: self.end_round(room),
                expected_phase=GamePhase.REVEAL,
            )
            return True

    def on_drawing_timeout(self, room: Room) -> bool:
        """Submit an empty drawing when draw time runs out."""
        with room.lock:
            game = room.game
            if game.phase is not GamePhase.DRAWING or not game.drawer_session_ids:
                return False
            logger.info("Drawing timed out", room_id=room.id)
            return self.submit_drawing(room, game.drawer_session_ids[0], None)

    def schedule_early_end(self, room: Room) -> None:
        """Replace the running timer with a short grace delay before ending the round.

        If the drawing is submitted during the grace delay, REVEAL keeps the
        grace delay instead of the full reveal time.
        """
        with room.lock:
            if room.game.phase not in (GamePhase.DRAWING, GamePhase.REVEAL):
                return
            room.game.ending_early = True
            self._timers.cancel_timer(room.id)
            self._timers.schedule(
                room.id,
                self._config.all_guessed_grace_seconds,
                lambda: self.end_round(room),
                expected_phase=room.game.phase,
            )
        logger.info("Everyone guessed, ending round early", room_id=room.id)

    # Round end

    def end_round(self, room: Room) -> bool:
        """Score the drawers, store the drawing and show results.

        Only acts from DRAWING or REVEAL, so a second call is a no-op.

        Returns:
            True if the round was ended by this call.
        """
        with room.lock:
            game = room.game
            if game.phase not in (GamePhase.DRAWING, GamePhase.REVEAL):
                return False
            self._timers.cancel_timer(room.id)

            drawers = [p for pid in game.drawer_player_ids if (p := room.get_player_by_id(pid)) is not None]
            guessers = room.player_count - len(drawers)
            drawer_points = self._scoring.calculate_drawer_points(game.correct_guess_count, guessers + 1)
            for drawer in drawers:
                drawer.add_score(drawer_points)

            if game.current_drawing and game.current_word and drawers:
                game.drawings.append(
                    DrawingEntry(
                        round_number=game.current_round,
                        drawer_id=drawers[0].id,
                        drawer_name=" & ".join(p.name for p in drawers),
                        word=game.current_word,
                        drawing=game.current_drawing,
                        drawer_ids=[p.id for p in drawers],
                    )
                )

            for player in room.player_list():
                if not game.is_round_drawer(player.id) and not game.has_guessed_correctly(player.id):
                    player.reset_streak()

            if not self._phases.fast_forward(room, GamePhase.RESULTS):
                return False

            logger.info(
                "Round ended",
                room_id=room.id,
                round=game.current_round,
                correct_guessers=game.correct_guess_count,
                drawer_points=drawer_points,
            )
            self._broadcaster.broadcast_to_room(
                room.id, GameEvent.round_end(game.current_word or SKIPPED_WORD, self._scoring.round_scores(room))
            )
            self._complete(room)
            return True

    def end_game(self, room: Room) -> bool:
        """Enter GAME_OVER and publish the final scoreboard."""
        with room.lock:
            if not self._phases.transition(room, GamePhase.GAME_OVER):
                return False
            self._timers.cancel_timer(room.id)
            logger.info("Game ended", room_id=room.id, rounds=room.game.current_round)
            self._broadcaster.broadcast_to_room(room.id, GameEvent.game_over(self._scoring.final_scores(room)))
            return True

    def handle_drawer_disconnect(self, room: Room, session_id: str) -> bool:
        """Skip the round when its drawer disappears before the drawing exists.

        Only acts in WORD_SELECTION or DRAWING and only for a current drawer.
        In collaborative rounds the round continues while another drawer is
        still connected.

        Returns:
            True if the round was skipped.
        """
        with room.lock:
            game = room.game
            if game.phase not in (GamePhase.WORD_SELECTION, GamePhase.DRAWING):
                return False
            if not game.is_current_drawer(session_id):
                return False
            others = [
                p
                for sid in game.drawer_session_ids
                if sid != session_id and (p := room.get_player(sid)) is not None and p.connected
            ]
            if others:
                logger.info("Drawer left, co-drawers continue", room_id=room.id, remaining=len(others))
                return False

            logger.info("Drawer disconnected during active phase", room_id=room.id)
            self._timers.cancel_timer(room.id)
            self._broadcaster.broadcast_to_room(
                room.id, GameEvent.system_chat("Drawer disconnected, skipping to next round...")
            )
            if not self._phases.fast_forward(room, GamePhase.RESULTS):
                return False
            self._broadcaster.broadcast_to_room(
                room.id, GameEvent.round_end(game.current_word or SKIPPED_WORD, self._scoring.round_scores(room))
            )
            self._complete(room)
            return True

    def _complete(self, room: Room) -> None:
        if self._on_round_complete is not None:
            self._on_round_complete(room)
