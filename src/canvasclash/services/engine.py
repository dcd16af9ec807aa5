"""Game engine: the inbound action surface and the phase sequence between stages.

The engine wires the managers together and owns the transitions between
stages (countdown, next round, game over, voting, reset). Managers own the
transitions inside a stage. Everything outbound goes through the injected
``Broadcaster``, so the engine never depends on the transport layer.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

import structlog

from canvasclash.config import GameConfig
from canvasclash.exceptions import GameInProgressError, NotEnoughPlayersError, NotHostError
from canvasclash.game.events import GameEvent
from canvasclash.game.phases import PhaseManager
from canvasclash.game.scoring import ScoringService
from canvasclash.game.timers import TimerManager
from canvasclash.game.types import GameMode, GamePhase
from canvasclash.game.validation import GuessValidator
from canvasclash.game.wordbank import WordBank
from canvasclash.services.guesses import GuessProcessor, GuessResult
from canvasclash.services.registry import RoomRegistry
from canvasclash.services.rounds import RoundManager
from canvasclash.services.telephone import TelephoneManager
from canvasclash.services.voting import VotingManager

if TYPE_CHECKING:
    from canvasclash.game.models import Player, Room, RoomSettings
    from canvasclash.game.protocols import Broadcaster, WordBankProtocol

logger = structlog.get_logger(__name__)

MIN_PLAYERS = 2

ALLOWED_REACTIONS = frozenset({"👍", "👏", "😂", "🔥", "❤️", "😮", "🤔", "😭", "💀", "🎨"})


class GameEngine:
    """Server-authoritative game session engine.

    Every public method is one inbound player action (or a lifecycle hook of
    the transport). Actions that deserve player feedback raise a
    ``CanvasClashError``; stray actions (a late guess, a non-drawer selecting a
    word) return ``False`` and change nothing.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        word_bank: WordBankProtocol | None = None,
        config: GameConfig | None = None,
        *,
        timers: TimerManager | None = None,
        scoring: ScoringService | None = None,
    ) -> None:
        """Initialize the engine and its managers.

        Args:
            broadcaster: Outbound event sink.
            word_bank: Word source. Uses the default in-memory bank if None.
            config: Game configuration. Uses defaults if None.
            timers: Timer manager (created if None).
            scoring: Scoring service (created if None).
        """
        self.config = config or GameConfig()
        self.broadcaster = broadcaster
        self.word_bank = word_bank or WordBank()
        self.timers = timers or TimerManager()
        self.scoring = scoring or ScoringService()
        self.validator = GuessValidator(self.config.max_message_length)
        self.phases = PhaseManager(self.timers)
        self.registry = RoomRegistry(
            self.timers, inactivity=timedelta(minutes=self.config.room_inactivity_minutes)
        )

        shared: dict[str, Any] = {
            "broadcaster": broadcaster,
            "phases": self.phases,
            "timers": self.timers,
            "config": self.config,
        }
        self.rounds = RoundManager(
            word_bank=self.word_bank, scoring=self.scoring, on_round_complete=self._after_round, **shared
        )
        self.telephone = TelephoneManager(
            word_bank=self.word_bank, scoring=self.scoring, on_round_complete=self._after_round, **shared
        )
        self.voting = VotingManager(on_finished=self._after_voting, **shared)
        self.guesses = GuessProcessor(
            broadcaster=broadcaster, scoring=self.scoring, validator=self.validator, config=self.config
        )

    # Lobby

    def create_room(
        self, session_id: str, player_name: str, settings: RoomSettings | None = None
    ) -> tuple[Room, Player]:
        """Create a room hosted by ``session_id``.

        A session that is still in another room leaves it first.

        Returns:
            Tuple of (room, host player).
        """
        if self.registry.get_room_by_session(session_id) is not None:
            self.leave_room(session_id)
        room = self.registry.create_room(player_name.strip() or "Player", session_id, settings)
        self.broadcaster.broadcast_to_room(room.id, GameEvent.room_state(room))
        return room, room.players[session_id]

    def join_room(self, session_id: str, room_id: str, player_name: str) -> tuple[Room, Player]:
        """Join an existing lobby.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            GameInProgressError: If its game already started.
            RoomFullError: If it is full.
        """
        if self.registry.get_room_by_session(session_id) is not None:
            self.leave_room(session_id)
        room, player = self.registry.join_room(room_id, player_name.strip() or "Player", session_id)
        self.broadcaster.broadcast_to_room(room.id, GameEvent.player_joined(player))
        self.broadcaster.broadcast_to_room(room.id, GameEvent.room_state(room))
        return room, player

    def leave_room(self, session_id: str) -> bool:
        """Remove a session's player from its room.

        A leaving drawer skips the round; a leaving telephone player times out
        their turn. The room is deleted when it becomes empty.

        Returns:
            False if the session was not in a room.
        """
        room = self.registry.get_room_by_session(session_id)
        if room is None:
            return False
        with room.lock:
            self._release_roles(room, session_id)

        remaining, player = self.registry.leave_room(session_id)
        if remaining is None or player is None:
            return True
        with remaining.lock:
            self.broadcaster.broadcast_to_room(remaining.id, GameEvent.player_left(player))
            self.broadcaster.broadcast_to_room(remaining.id, GameEvent.room_state(remaining))
            self._check_round_complete(remaining)
        return True

    def toggle_ready(self, session_id: str) -> bool:
        """Flip the ready flag of a player and publish the room state.

        Returns:
            The new ready flag.
        """
        room, player = self.registry.toggle_ready(session_id)
        self.broadcaster.broadcast_to_room(room.id, GameEvent.room_state(room))
        return player.ready

    def start_game(self, session_id: str) -> Room:
        """Start the countdown of a lobby (host only).

        Raises:
            PlayerNotFoundError: If the session is not in a room.
            NotHostError: If the session is not the host.
            GameInProgressError: If the room is not in the lobby.
            NotEnoughPlayersError: With fewer than two connected players.
        """
        room, _ = self.registry.get_player_context(session_id)
        with room.lock:
            if room.host_session_id != session_id:
                raise NotHostError("start the game")
            if room.game.phase is not GamePhase.LOBBY:
                raise GameInProgressError(room.id)
            connected = len(room.connected_players())
            if connected < MIN_PLAYERS:
                raise NotEnoughPlayersError(MIN_PLAYERS, connected)

            self.phases.transition(room, GamePhase.COUNTDOWN)
            logger.info("Game starting", room_id=room.id, players=connected, mode=room.settings.mode.value)
            self.broadcaster.broadcast_to_room(room.id, GameEvent.countdown(self.config.countdown_seconds))
            self.timers.schedule(
                room.id,
                self.config.countdown_seconds,
                lambda: self._after_countdown(room),
                expected_phase=GamePhase.COUNTDOWN,
            )
        return room

    # Drawing rounds

    def select_word(self, session_id: str, index: int) -> bool:
        room, _ = self.registry.get_player_context(session_id)
        return self.rounds.select_word(room, session_id, index)

    def submit_drawing(self, session_id: str, drawing: str | None) -> bool:
        room, _ = self.registry.get_player_context(session_id)
        return self.rounds.submit_drawing(room, session_id, drawing)

    def submit_guess(self, session_id: str, guess: str) -> GuessResult:
        """Process a guess; the last missing correct guess ends the round early."""
        room, _ = self.registry.get_player_context(session_id)
        with room.lock:
            result = self.guesses.process_guess(room, session_id, guess)
            if result.all_guessed:
                self.rounds.schedule_early_end(room)
        return result

    # Telephone

    def submit_telephone_drawing(self, session_id: str, drawing: str | None) -> bool:
        room, _ = self.registry.get_player_context(session_id)
        return self.telephone.submit_drawing(room, session_id, drawing)

    def submit_telephone_guess(self, session_id: str, guess: str) -> bool:
        room, _ = self.registry.get_player_context(session_id)
        return self.telephone.submit_guess(room, session_id, guess)

    # Voting

    def cast_vote(self, session_id: str, drawer_id: str, round_number: int | None = None) -> bool:
        """Vote for the best drawing.

        Raises:
            VoteRejectedError: For self-votes, repeated votes and unknown drawings.
        """
        room, _ = self.registry.get_player_context(session_id)
        return self.voting.process_vote(room, session_id, drawer_id, round_number)

    # Chat

    def send_chat(self, session_id: str, text: str) -> bool:
        """Broadcast a chat message. Guesses go through ``submit_guess``, never chat.

        Returns:
            False if the message was empty or too long.
        """
        room, player = self.registry.get_player_context(session_id)
        if not self.validator.is_valid_guess(text):
            return False
        with room.lock:
            room.touch()
            self.broadcaster.broadcast_to_room(room.id, GameEvent.chat(player.id, player.name, text.strip()))
        return True

    def send_reaction(self, session_id: str, emoji: str) -> bool:
        """Broadcast a reaction. Emoji outside the allow-list are dropped."""
        room, player = self.registry.get_player_context(session_id)
        if emoji not in ALLOWED_REACTIONS:
            return False
        self.broadcaster.broadcast_to_room(room.id, GameEvent.reaction(player, emoji))
        return True

    def send_stroke(self, session_id: str, stroke: dict[str, Any]) -> bool:
        """Relay a live drawing stroke from a current drawer to the room.

        Strokes from anyone else, or outside DRAWING, are dropped.
        """
        room, player = self.registry.get_player_context(session_id)
        with room.lock:
            game = room.game
            if game.phase is not GamePhase.DRAWING or not game.is_current_drawer(session_id):
                return False
            room.touch()
            self.broadcaster.broadcast_to_room(room.id, GameEvent.draw_stroke(player, stroke))
        return True

    # Sessions

    def reconnect(self, session_id: str, room_id: str, player_id: str) -> tuple[Room, Player]:
        """Bind a known player to a new session and resend their private context.

        A session still seated elsewhere, or as another player, leaves that seat first.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            PlayerNotFoundError: If the player is not in the room.
        """
        current = self.registry.get_room_by_session(session_id)
        if current is not None:
            seated = current.players.get(session_id)
            if current is not self.registry.find_room(room_id) or seated is None or seated.id != player_id:
                self.leave_room(session_id)
        room, player = self.registry.reconnect(room_id, player_id, session_id)
        with room.lock:
            game = room.game
            self.broadcaster.broadcast_to_room(room.id, GameEvent.room_state(room))
            if game.phase is GamePhase.WORD_SELECTION and game.is_current_drawer(session_id):
                self.broadcaster.send_to_player(
                    session_id, GameEvent.word_options(game.word_options, self.config.word_selection_seconds)
                )
            elif game.phase is GamePhase.DRAWING and game.is_current_drawer(session_id) and game.current_word:
                self.broadcaster.send_to_player(session_id, GameEvent.word_selected(game.current_word))
            elif game.is_current_telephone_player(session_id) and game.telephone_chain is not None:
                kind, content = game.telephone_chain.current_prompt()
                self.broadcaster.send_to_player(session_id, GameEvent.telephone_prompt(kind, content))
        return room, player

    def handle_disconnect(self, session_id: str) -> bool:
        """Mark a session's player as disconnected, keeping them in the room.

        Returns:
            False if the session was not in a room.
        """
        result = self.registry.handle_disconnect(session_id)
        if result is None:
            return False
        room, player = result
        with room.lock:
            self._release_roles(room, session_id)
            self.broadcaster.broadcast_to_room(room.id, GameEvent.player_left(player, disconnected=True))
            self._check_round_complete(room)
        return True

    def sweep_inactive(self) -> list[str]:
        """Remove idle rooms. Returns the removed room IDs."""
        return self.registry.sweep_inactive()

    def shutdown(self) -> None:
        """Cancel every pending timer."""
        self.timers.cancel_all()

    # Stage sequencing

    def reset_room(self, room: Room) -> bool:
        """Return a finished game to the lobby with scores and streaks cleared."""
        with room.lock:
            if room.game.phase not in (GamePhase.GAME_OVER, GamePhase.VOTING):
                return False
            self.timers.cancel_timer(room.id)
            if not self.phases.transition(room, GamePhase.LOBBY):
                return False
            room.reset_for_new_game()
            logger.info("Room reset for new game", room_id=room.id)
            self.broadcaster.broadcast_to_room(room.id, GameEvent.room_state(room))
            return True

    def _after_countdown(self, room: Room) -> None:
        with room.lock:
            if room.game.phase is not GamePhase.COUNTDOWN:
                return
            self._start_round(room)

    def _start_round(self, room: Room) -> bool:
        if room.settings.mode is GameMode.TELEPHONE:
            started = self.telephone.start_round(room)
        else:
            started = self.rounds.start_next_round(room)
        if not started:
            logger.warning("Round could not start", room_id=room.id, phase=room.game.phase.value)
        return started

    def _after_round(self, room: Room) -> None:
        self.timers.schedule(
            room.id,
            self.config.results_seconds,
            lambda: self._after_results(room),
            expected_phase=GamePhase.RESULTS,
        )

    def _after_results(self, room: Room) -> None:
        with room.lock:
            if room.game.phase is not GamePhase.RESULTS:
                return
            if not self.rounds.is_game_over(room) and self._start_round(room):
                return
            if self.rounds.end_game(room):
                self.timers.schedule(
                    room.id,
                    self.config.game_over_seconds,
                    lambda: self._after_game_over(room),
                    expected_phase=GamePhase.GAME_OVER,
                )

    def _after_game_over(self, room: Room) -> None:
        with room.lock:
            if room.game.phase is not GamePhase.GAME_OVER:
                return
            if not self.voting.start_voting(room):
                self.reset_room(room)

    def _after_voting(self, room: Room) -> None:
        self.timers.schedule(
            room.id,
            self.config.voting_results_seconds,
            lambda: self.reset_room(room),
            expected_phase=GamePhase.VOTING,
        )

    def _release_roles(self, room: Room, session_id: str) -> None:
        self.rounds.handle_drawer_disconnect(room, session_id)
        self.telephone.handle_player_gone(room, session_id)

    def _check_round_complete(self, room: Room) -> None:
        game = room.game
        if game.phase not in (GamePhase.DRAWING, GamePhase.REVEAL) or game.ending_early:
            return
        if game.correct_guess_count and self.guesses.all_players_guessed(room):
            self.rounds.schedule_early_end(room)
