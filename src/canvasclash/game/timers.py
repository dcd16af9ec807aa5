"""Per-room delayed task scheduling with stale-timer suppression.

Each room has at most one pending timer. Scheduling a new one cancels the
previous one. A timer may be tagged with the phase it expects: the manager
keeps the room's current phase plus an epoch that is bumped on every phase
change, and a tagged timer only runs if both still match what was recorded
when it was scheduled. This drops a timeout that lost a race against a faster
path even if the room has since come back to the same phase.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from canvasclash.game.types import GamePhase

logger = structlog.get_logger(__name__)

TimerCallback = Callable[[], None]


@dataclass(frozen=True)
class _PhaseTag:
    phase: GamePhase
    epoch: int


class TimerManager:
    """Single-slot delayed task scheduler keyed by room ID.

    Timers run as asyncio tasks on the running event loop, so ``schedule``
    must be called from within a coroutine or a callback of that loop.
    Cancellation is best effort: a callback that already started is allowed
    to finish.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._phases: dict[str, GamePhase] = {}
        self._epochs: dict[str, int] = {}
        self._lock = threading.Lock()

    def schedule(
        self,
        room_id: str,
        delay: float,
        callback: TimerCallback,
        *,
        expected_phase: GamePhase | None = None,
    ) -> None:
        """Schedule ``callback`` after ``delay`` seconds, replacing any pending timer.

        Args:
            room_id: The room the timer belongs to.
            delay: Seconds to wait.
            callback: Synchronous callable run when the timer fires.
            expected_phase: If given, the callback only runs while the room is
                still in this phase and no phase change happened in between.
        """
        with self._lock:
            self._cancel_locked(room_id)
            tag = None
            if expected_phase is not None:
                self._phases.setdefault(room_id, expected_phase)
                tag = _PhaseTag(expected_phase, self._epochs.get(room_id, 0))
            task = asyncio.get_running_loop().create_task(self._run(room_id, delay, callback, tag))
            self._tasks[room_id] = task

        logger.debug(
            "Timer scheduled",
            room_id=room_id,
            delay=delay,
            expected_phase=expected_phase.value if expected_phase else None,
        )

    def notify_phase_change(self, room_id: str, phase: GamePhase) -> None:
        """Record the room's new phase. Must be called on every phase change.

        Args:
            room_id: The room that changed phase.
            phase: The phase just entered.
        """
        with self._lock:
            self._phases[room_id] = phase
            self._epochs[room_id] = self._epochs.get(room_id, 0) + 1

    def current_phase(self, room_id: str) -> GamePhase | None:
        """Return the last phase recorded for a room."""
        with self._lock:
            return self._phases.get(room_id)

    def has_timer(self, room_id: str) -> bool:
        """Check whether a timer is pending for a room."""
        with self._lock:
            task = self._tasks.get(room_id)
            return task is not None and not task.done()

    def cancel_timer(self, room_id: str) -> None:
        """Cancel the pending timer of a room. Idempotent."""
        with self._lock:
            cancelled = self._cancel_locked(room_id)
        if cancelled:
            logger.debug("Timer cancelled", room_id=room_id)

    def cleanup(self, room_id: str) -> None:
        """Forget a room entirely: pending timer, phase and epoch."""
        with self._lock:
            self._cancel_locked(room_id)
            self._phases.pop(room_id, None)
            self._epochs.pop(room_id, None)

    def cancel_all(self) -> None:
        """Cancel every pending timer (application shutdown)."""
        with self._lock:
            for room_id in list(self._tasks):
                self._cancel_locked(room_id)
            self._phases.clear()
            self._epochs.clear()

    def _cancel_locked(self, room_id: str) -> bool:
        task = self._tasks.pop(room_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def _is_current(self, room_id: str, tag: _PhaseTag) -> bool:
        return self._phases.get(room_id) == tag.phase and self._epochs.get(room_id, 0) == tag.epoch

    async def _run(self, room_id: str, delay: float, callback: TimerCallback, tag: _PhaseTag | None) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return

        with self._lock:
            if self._tasks.get(room_id) is asyncio.current_task():
                del self._tasks[room_id]
            if tag is not None and not self._is_current(room_id, tag):
                logger.debug(
                    "Stale timer dropped",
                    room_id=room_id,
                    expected_phase=tag.phase.value,
                    current_phase=self._phases.get(room_id),
                )
                return

        try:
            callback()
        except Exception:
            logger.exception("Timer callback failed", room_id=room_id)
