"""Tests for the per-room timer manager."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from canvasclash.game.timers import TimerManager
from canvasclash.game.types import GamePhase

TICK = 0.01


@pytest_asyncio.fixture
async def timers() -> AsyncIterator[TimerManager]:
    manager = TimerManager()
    yield manager
    manager.cancel_all()
    await asyncio.sleep(0)


class TestScheduling:
    """Test scheduling and cancellation."""

    @pytest.mark.asyncio
    async def test_callback_runs_after_delay(self, timers: TimerManager) -> None:
        """Test that an untagged timer fires."""
        fired: list[str] = []
        timers.schedule("R1", TICK, lambda: fired.append("R1"))
        assert timers.has_timer("R1")
        await asyncio.sleep(TICK * 5)
        assert fired == ["R1"]
        assert not timers.has_timer("R1")

    @pytest.mark.asyncio
    async def test_schedule_replaces_pending_timer(self, timers: TimerManager) -> None:
        """Test that a room has at most one pending timer."""
        fired: list[str] = []
        timers.schedule("R1", TICK, lambda: fired.append("first"))
        timers.schedule("R1", TICK, lambda: fired.append("second"))
        await asyncio.sleep(TICK * 5)
        assert fired == ["second"]

    @pytest.mark.asyncio
    async def test_rooms_are_independent(self, timers: TimerManager) -> None:
        """Test that timers of different rooms do not replace each other."""
        fired: list[str] = []
        timers.schedule("R1", TICK, lambda: fired.append("R1"))
        timers.schedule("R2", TICK, lambda: fired.append("R2"))
        await asyncio.sleep(TICK * 5)
        assert sorted(fired) == ["R1", "R2"]

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, timers: TimerManager) -> None:
        """Test that cancelling twice, or with nothing pending, is harmless."""
        fired: list[str] = []
        timers.schedule("R1", TICK, lambda: fired.append("R1"))
        timers.cancel_timer("R1")
        timers.cancel_timer("R1")
        timers.cancel_timer("unknown")
        await asyncio.sleep(TICK * 5)
        assert fired == []

    @pytest.mark.asyncio
    async def test_failing_callback_is_contained(self, timers: TimerManager) -> None:
        """Test that an exception in a callback does not break later timers."""
        fired: list[str] = []

        def boom() -> None:
            msg = "boom"
            raise RuntimeError(msg)

        timers.schedule("R1", 0, boom)
        await asyncio.sleep(TICK)
        timers.schedule("R1", 0, lambda: fired.append("after"))
        await asyncio.sleep(TICK)
        assert fired == ["after"]

    @pytest.mark.asyncio
    async def test_cleanup_forgets_room(self, timers: TimerManager) -> None:
        """Test that cleanup drops the timer and the recorded phase."""
        fired: list[str] = []
        timers.notify_phase_change("R1", GamePhase.DRAWING)
        timers.schedule("R1", TICK, lambda: fired.append("R1"))
        timers.cleanup("R1")
        await asyncio.sleep(TICK * 5)
        assert fired == []
        assert timers.current_phase("R1") is None


class TestStaleSuppression:
    """Test phase-tagged timers."""

    @pytest.mark.asyncio
    async def test_fires_when_phase_unchanged(self, timers: TimerManager) -> None:
        """Test that a tagged timer runs while its phase holds."""
        fired: list[str] = []
        timers.notify_phase_change("R1", GamePhase.DRAWING)
        timers.schedule("R1", TICK, lambda: fired.append("timeout"), expected_phase=GamePhase.DRAWING)
        await asyncio.sleep(TICK * 5)
        assert fired == ["timeout"]

    @pytest.mark.asyncio
    async def test_dropped_after_phase_change(self, timers: TimerManager) -> None:
        """Test that a tagged timer is dropped once the phase moved on."""
        fired: list[str] = []
        timers.notify_phase_change("R1", GamePhase.DRAWING)
        timers.schedule("R1", TICK, lambda: fired.append("timeout"), expected_phase=GamePhase.DRAWING)
        timers.notify_phase_change("R1", GamePhase.REVEAL)
        await asyncio.sleep(TICK * 5)
        assert fired == []

    @pytest.mark.asyncio
    async def test_dropped_after_returning_to_same_phase(self, timers: TimerManager) -> None:
        """Test that leaving and re-entering the phase still makes the timer stale."""
        fired: list[str] = []
        timers.notify_phase_change("R1", GamePhase.TELEPHONE_DRAW)
        timers.schedule("R1", TICK, lambda: fired.append("timeout"), expected_phase=GamePhase.TELEPHONE_DRAW)
        timers.notify_phase_change("R1", GamePhase.TELEPHONE_GUESS)
        timers.notify_phase_change("R1", GamePhase.TELEPHONE_DRAW)
        await asyncio.sleep(TICK * 5)
        assert fired == []

    @pytest.mark.asyncio
    async def test_untagged_timer_ignores_phase(self, timers: TimerManager) -> None:
        """Test that timers without a phase tag always run."""
        fired: list[str] = []
        timers.notify_phase_change("R1", GamePhase.RESULTS)
        timers.schedule("R1", TICK, lambda: fired.append("untagged"))
        timers.notify_phase_change("R1", GamePhase.GAME_OVER)
        await asyncio.sleep(TICK * 5)
        assert fired == ["untagged"]
