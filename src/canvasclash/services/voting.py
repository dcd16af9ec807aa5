"""Post-game "best drawing" voting."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from canvasclash.exceptions import PlayerNotFoundError, VoteRejectedError
from canvasclash.game.events import GameEvent
from canvasclash.game.types import GamePhase

if TYPE_CHECKING:
    from canvasclash.config import GameConfig
    from canvasclash.game.models import DrawingEntry, Room
    from canvasclash.game.phases import PhaseManager
    from canvasclash.game.protocols import Broadcaster
    from canvasclash.game.timers import TimerManager

logger = structlog.get_logger(__name__)


class VotingManager:
    """Runs the vote over the drawings collected during a game.

    Voting ends when the window expires or every connected player voted,
    whichever comes first. The entry with the most votes wins; on a tie the
    entry collected first wins. The winner's drawer(s) receive a bonus only if
    the entry received at least one vote.
    """

    def __init__(
        self,
        *,
        broadcaster: Broadcaster,
        phases: PhaseManager,
        timers: TimerManager,
        config: GameConfig,
        on_finished: Callable[[Room], None] | None = None,
    ) -> None:
        self._broadcaster = broadcaster
        self._phases = phases
        self._timers = timers
        self._config = config
        self._on_finished = on_finished

    def start_voting(self, room: Room) -> bool:
        """Open voting from GAME_OVER.

        Returns:
            False if no drawing was collected (the caller resets the room).
        """
        with room.lock:
            game = room.game
            if not game.drawings:
                return False
            if not self._phases.transition(room, GamePhase.VOTING):
                return False
            game.voted_players = set()
            game.voting_open = True
            for entry in game.drawings:
                entry.votes = 0

            logger.info("Voting started", room_id=room.id, drawings=len(game.drawings))
            self._broadcaster.broadcast_to_room(
                room.id, GameEvent.voting_start(game.drawings, self._config.voting_seconds)
            )
            self._timers.schedule(
                room.id,
                self._config.voting_seconds,
                lambda: self.end_voting(room),
                expected_phase=GamePhase.VOTING,
            )
            return True

    def process_vote(
        self,
        room: Room,
        voter_session_id: str,
        voted_drawer_id: str,
        round_number: int | None = None,
    ) -> bool:
        """Record a vote for a drawing.

        Args:
            room: The room.
            voter_session_id: Session of the voter.
            voted_drawer_id: Player ID of the drawer voted for.
            round_number: Disambiguates between several drawings of the same
                drawer. Without it the drawer's first drawing is used.

        Returns:
            False if voting is not open.

        Raises:
            PlayerNotFoundError: If the session is not in the room.
            VoteRejectedError: For self-votes, repeated votes and unknown drawings.
        """
        with room.lock:
            game = room.game
            if game.phase is not GamePhase.VOTING or not game.voting_open:
                return False
            voter = room.get_player(voter_session_id)
            if voter is None:
                raise PlayerNotFoundError(voter_session_id)
            if voter.id in game.voted_players:
                logger.warning("Duplicate vote rejected", room_id=room.id, player=voter.name)
                raise VoteRejectedError("You have already voted")

            entry = self._find_entry(game.drawings, voted_drawer_id, round_number)
            if entry is None:
                raise VoteRejectedError("No drawing found for that player")
            if voted_drawer_id == voter.id or entry.involves(voter.id):
                logger.warning("Self vote rejected", room_id=room.id, player=voter.name)
                raise VoteRejectedError("You cannot vote for your own drawing")

            entry.votes += 1
            game.voted_players.add(voter.id)
            room.touch()

            eligible = self.eligible_voters(room)
            logger.info("Vote recorded", room_id=room.id, voter=voter.name, votes_cast=len(game.voted_players))
            self._broadcaster.broadcast_to_room(room.id, GameEvent.vote_received(len(game.voted_players), eligible))

            if len(game.voted_players) >= eligible:
                self.end_voting(room)
            return True

    def end_voting(self, room: Room) -> bool:
        """Tally votes, award the bonus and publish results. Runs once per vote."""
        with room.lock:
            game = room.game
            if game.phase is not GamePhase.VOTING or not game.voting_open:
                return False
            game.voting_open = False
            self._timers.cancel_timer(room.id)

            winner = self.select_winner(game.drawings)
            bonus = self._config.voting_winner_bonus if winner is not None else 0
            if winner is not None:
                for drawer_id in winner.drawer_ids or [winner.drawer_id]:
                    drawer = room.get_player_by_id(drawer_id)
                    if drawer is not None:
                        drawer.add_score(bonus)

            results: list[dict[str, Any]] = [
                {**entry.to_dict(), "is_winner": entry is winner} for entry in game.drawings
            ]
            logger.info(
                "Voting ended",
                room_id=room.id,
                winner=winner.drawer_name if winner else None,
                votes=winner.votes if winner else 0,
            )
            self._broadcaster.broadcast_to_room(room.id, GameEvent.voting_results(results, winner, bonus))

            if self._on_finished is not None:
                self._on_finished(room)
            return True

    @staticmethod
    def eligible_voters(room: Room) -> int:
        """Count connected players that have at least one drawing they may vote for."""
        drawings = room.game.drawings
        return sum(
            1 for player in room.connected_players() if any(not entry.involves(player.id) for entry in drawings)
        )

    @staticmethod
    def select_winner(drawings: list[DrawingEntry]) -> DrawingEntry | None:
        """Return the most voted entry, the earliest one on ties, or None without votes."""
        winner: DrawingEntry | None = None
        for entry in drawings:
            if winner is None or entry.votes > winner.votes:
                winner = entry
        if winner is None or winner.votes == 0:
            return None
        return winner

    @staticmethod
    def _find_entry(drawings: list[DrawingEntry], drawer_id: str, round_number: int | None) -> DrawingEntry | None:
        for entry in drawings:
            if not entry.involves(drawer_id):
                continue
            if round_number is None or entry.round_number == round_number:
                return entry
        return None
