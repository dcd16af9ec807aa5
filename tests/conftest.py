"""Pytest configuration and fixtures for canvasclash tests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from canvasclash.config import GameConfig
from canvasclash.game.wordbank import WordBank
from canvasclash.services.engine import GameEngine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from canvasclash.game.events import EventType, GameEvent
    from canvasclash.game.models import Room, RoomSettings

TEST_WORDS = ["apple", "banana", "cherry", "giraffe", "pencil", "rocket"]


@dataclass
class RecordingBroadcaster:
    """Broadcaster that records every event instead of delivering it."""

    room_events: list[tuple[str, GameEvent]] = field(default_factory=list)
    private_events: list[tuple[str, GameEvent]] = field(default_factory=list)

    def broadcast_to_room(self, room_id: str, event: GameEvent) -> None:
        self.room_events.append((room_id, event))

    def send_to_player(self, session_id: str, event: GameEvent) -> None:
        self.private_events.append((session_id, event))

    def room_types(self) -> list[EventType]:
        return [event.type for _, event in self.room_events]

    def broadcasts(self, event_type: EventType) -> list[GameEvent]:
        return [event for _, event in self.room_events if event.type is event_type]

    def sent_to(self, session_id: str, event_type: EventType | None = None) -> list[GameEvent]:
        return [
            event
            for sid, event in self.private_events
            if sid == session_id and (event_type is None or event.type is event_type)
        ]

    def clear(self) -> None:
        self.room_events.clear()
        self.private_events.clear()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    """Create a fresh recording broadcaster."""
    return RecordingBroadcaster()


@pytest.fixture
def word_bank() -> WordBank:
    """Create a small word bank with predictable words."""
    return WordBank(words=TEST_WORDS)


@pytest.fixture
def config() -> GameConfig:
    """Game config with an instant countdown and long delays everywhere else.

    Timers other than the countdown never fire during a test; tests drive the
    flow through the public actions.
    """
    return GameConfig(
        countdown_seconds=0,
        word_selection_seconds=30,
        results_seconds=30,
        all_guessed_grace_seconds=30,
        game_over_seconds=30,
        voting_seconds=30,
        voting_results_seconds=30,
        telephone_draw_seconds=30,
        telephone_guess_seconds=30,
        telephone_reveal_base_seconds=30,
        telephone_reveal_per_entry_seconds=1,
    )


@pytest_asyncio.fixture
async def engine(
    broadcaster: RecordingBroadcaster, word_bank: WordBank, config: GameConfig
) -> AsyncIterator[GameEngine]:
    """Create a game engine wired to the recording broadcaster."""
    game_engine = GameEngine(broadcaster, word_bank=word_bank, config=config)
    yield game_engine
    game_engine.shutdown()
    await asyncio.sleep(0)


@pytest.fixture
def make_room(engine: GameEngine) -> Callable[..., Room]:
    """Factory creating a lobby with ``count`` players.

    Session IDs are ``s0`` (the host) to ``s{count-1}``; player names are
    ``P0`` to ``P{count-1}``.
    """

    def _make(count: int = 3, settings: RoomSettings | None = None) -> Room:
        room, _ = engine.create_room("s0", "P0", settings)
        for index in range(1, count):
            engine.join_room(f"s{index}", room.id, f"P{index}")
        return room

    return _make


@pytest.fixture
def settle() -> Callable[[], Awaitable[None]]:
    """Return a coroutine function that lets zero-delay timers run."""

    async def _settle() -> None:
        for _ in range(5):
            await asyncio.sleep(0.005)

    return _settle
