"""Phase transition table and guard."""

from __future__ import annotations

from collections import deque
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from canvasclash.game.types import GamePhase

if TYPE_CHECKING:
    from canvasclash.game.models import Room
    from canvasclash.game.timers import TimerManager

logger = structlog.get_logger(__name__)

TRANSITIONS: dict[GamePhase, frozenset[GamePhase]] = {
    GamePhase.LOBBY: frozenset({GamePhase.COUNTDOWN}),
    GamePhase.COUNTDOWN: frozenset({GamePhase.WORD_SELECTION, GamePhase.TELEPHONE_DRAW}),
    GamePhase.WORD_SELECTION: frozenset({GamePhase.DRAWING}),
    GamePhase.DRAWING: frozenset({GamePhase.REVEAL}),
    GamePhase.REVEAL: frozenset({GamePhase.RESULTS}),
    GamePhase.RESULTS: frozenset({GamePhase.WORD_SELECTION, GamePhase.GAME_OVER, GamePhase.TELEPHONE_DRAW}),
    GamePhase.GAME_OVER: frozenset({GamePhase.VOTING, GamePhase.LOBBY}),
    GamePhase.VOTING: frozenset({GamePhase.LOBBY}),
    GamePhase.TELEPHONE_DRAW: frozenset({GamePhase.TELEPHONE_GUESS, GamePhase.TELEPHONE_REVEAL}),
    GamePhase.TELEPHONE_GUESS: frozenset({GamePhase.TELEPHONE_DRAW, GamePhase.TELEPHONE_REVEAL}),
    GamePhase.TELEPHONE_REVEAL: frozenset({GamePhase.RESULTS, GamePhase.TELEPHONE_DRAW}),
}

# Phases in which somebody holds the drawer role
DRAWER_PHASES = frozenset({GamePhase.WORD_SELECTION, GamePhase.DRAWING})


def allowed(phase: GamePhase) -> frozenset[GamePhase]:
    """Return the phases reachable from ``phase`` in one step. Unknown phases allow nothing."""
    return TRANSITIONS.get(phase, frozenset())


class PhaseManager:
    """Owns every change of ``GameState.phase``.

    A transition stamps the phase start time, keeps the drawer invariant
    (drawer sessions are cleared outside WORD_SELECTION and DRAWING) and
    reports the new phase to the timer manager.
    """

    def __init__(self, timers: TimerManager) -> None:
        self._timers = timers

    @staticmethod
    def can_transition(current: GamePhase, target: GamePhase) -> bool:
        return target in allowed(current)

    @staticmethod
    def is_in_phase(room: Room, *phases: GamePhase) -> bool:
        return room.game.phase in phases

    def transition(self, room: Room, target: GamePhase) -> bool:
        """Move a room to ``target`` if the edge exists.

        Args:
            room: The room to update.
            target: Phase to enter.

        Returns:
            True if the phase changed. A rejected transition leaves the room
            untouched and is logged as a warning.
        """
        game = room.game
        current = game.phase
        if not self.can_transition(current, target):
            logger.warning(
                "Invalid phase transition rejected",
                room_id=room.id,
                from_phase=current.value,
                to_phase=target.value,
            )
            return False

        game.phase = target
        game.phase_started_at = datetime.now(UTC)
        if target not in DRAWER_PHASES:
            game.drawer_session_ids = []
        self._timers.notify_phase_change(room.id, target)
        room.touch()

        logger.debug("Phase changed", room_id=room.id, from_phase=current.value, to_phase=target.value)
        return True

    def restart(self, room: Room) -> None:
        """Begin the current phase again for a new turn.

        The phase itself is unchanged, but the start time is re-stamped and
        the timer manager sees a phase change, so timers tagged for the
        previous turn become stale.
        """
        room.game.phase_started_at = datetime.now(UTC)
        self._timers.notify_phase_change(room.id, room.game.phase)
        room.touch()
        logger.debug("Phase restarted", room_id=room.id, phase=room.game.phase.value)

    def fast_forward(self, room: Room, target: GamePhase) -> bool:
        """Walk the shortest legal path to ``target``, applying every step.

        Used by abort paths (a drawer leaving mid-selection) so that the
        transition table stays the only way phases change.

        Args:
            room: The room to update.
            target: Phase to reach.

        Returns:
            True if the room ends in ``target``.
        """
        path = self.path(room.game.phase, target)
        if path is None:
            logger.warning(
                "No phase path found",
                room_id=room.id,
                from_phase=room.game.phase.value,
                to_phase=target.value,
            )
            return False
        return all(self.transition(room, step) for step in path)

    @staticmethod
    def path(start: GamePhase, target: GamePhase) -> list[GamePhase] | None:
        """Breadth-first search for the shortest transition path.

        Returns:
            Phases to enter in order (excluding ``start``), or None if unreachable.
        """
        if start == target:
            return []
        queue: deque[tuple[GamePhase, list[GamePhase]]] = deque([(start, [])])
        seen = {start}
        while queue:
            phase, steps = queue.popleft()
            for nxt in sorted(allowed(phase)):
                if nxt in seen:
                    continue
                if nxt == target:
                    return [*steps, nxt]
                seen.add(nxt)
                queue.append((nxt, [*steps, nxt]))
        return None
