"""Tests for telephone mode."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import pytest

from canvasclash.game.events import EventType
from canvasclash.game.models import Room, RoomSettings
from canvasclash.game.types import GameMode, GamePhase, PromptKind, TelephoneEntryType
from canvasclash.services.telephone import TIMED_OUT_DRAWING, TIMED_OUT_GUESS

if TYPE_CHECKING:
    from canvasclash.services.engine import GameEngine
    from tests.conftest import RecordingBroadcaster

MakeRoom = Callable[..., Room]
Settle = Callable[[], Awaitable[None]]

TELEPHONE = RoomSettings(mode=GameMode.TELEPHONE, total_rounds=1)


async def start_telephone(engine: GameEngine, make_room: MakeRoom, settle: Settle, count: int) -> Room:
    room = make_room(count, TELEPHONE)
    engine.start_game("s0")
    await settle()
    return room


def play_turn(engine: GameEngine, room: Room, guess: str | None = None) -> str:
    """Play the current telephone turn. Returns the session that played."""
    game = room.game
    session_id = game.telephone_session_id
    assert session_id is not None
    if game.phase is GamePhase.TELEPHONE_DRAW:
        assert engine.submit_telephone_drawing(session_id, f"data:{session_id}")
    else:
        assert engine.submit_telephone_guess(session_id, guess if guess is not None else game.current_word)
    return session_id


class TestTelephoneRound:
    """Test a telephone chain from start to reveal."""

    @pytest.mark.asyncio
    async def test_first_turn_is_a_drawing_of_the_word(
        self, engine: GameEngine, make_room: MakeRoom, broadcaster: RecordingBroadcaster, settle: Settle
    ) -> None:
        """Test the opening turn."""
        room = await start_telephone(engine, make_room, settle, 3)
        game = room.game

        assert game.phase is GamePhase.TELEPHONE_DRAW
        assert game.telephone_chain is not None
        assert sorted(game.telephone_chain.player_queue) == ["s0", "s1", "s2"]
        first = game.telephone_session_id
        (turn,) = broadcaster.broadcasts(EventType.TELEPHONE_DRAW)
        assert turn.payload["player_id"] == room.players[first].id
        (prompt,) = broadcaster.sent_to(first, EventType.TELEPHONE_PROMPT)
        assert prompt.payload == {"prompt_type": PromptKind.WORD.value, "content": game.current_word}

    @pytest.mark.asyncio
    async def test_only_current_player_may_submit(
        self, engine: GameEngine, make_room: MakeRoom, settle: Settle
    ) -> None:
        """Test that out-of-turn and wrong-kind submissions are ignored."""
        room = await start_telephone(engine, make_room, settle, 3)
        current = room.game.telephone_session_id
        other = next(sid for sid in room.players if sid != current)

        assert not engine.submit_telephone_drawing(other, "data:x")
        assert not engine.submit_telephone_guess(current, "cat")
        assert room.game.telephone_chain.entries == []

    @pytest.mark.asyncio
    async def test_guesser_sees_previous_drawing(
        self, engine: GameEngine, make_room: MakeRoom, broadcaster: RecordingBroadcaster, settle: Settle
    ) -> None:
        """Test that each prompt is the previous entry."""
        room = await start_telephone(engine, make_room, settle, 3)
        drawer = play_turn(engine, room)

        assert room.game.phase is GamePhase.TELEPHONE_GUESS
        guesser = room.game.telephone_session_id
        (prompt,) = broadcaster.sent_to(guesser, EventType.TELEPHONE_PROMPT)
        assert prompt.payload == {"prompt_type": PromptKind.DRAWING.value, "content": f"data:{drawer}"}

    @pytest.mark.asyncio
    async def test_word_survives_four_players(
        self, engine: GameEngine, make_room: MakeRoom, broadcaster: RecordingBroadcaster, settle: Settle
    ) -> None:
        """Test scoring when every guess matches the original word."""
        room = await start_telephone(engine, make_room, settle, 4)
        word = room.game.current_word
        played = [play_turn(engine, room) for _ in range(4)]

        assert room.game.phase is GamePhase.TELEPHONE_REVEAL
        drawers, guessers = played[0::2], played[1::2]
        assert all(room.players[sid].score == 25 + 50 for sid in drawers)
        assert all(room.players[sid].score == 100 + 50 for sid in guessers)
        assert all(room.players[sid].current_streak == 1 for sid in guessers)

        (reveal,) = broadcaster.broadcasts(EventType.TELEPHONE_REVEAL)
        assert reveal.payload["original_word"] == word
        chain = reveal.payload["chain"]
        assert len(chain) == 5
        assert chain[0]["player_name"] == "Original Word"
        assert [entry["type"] for entry in chain[1:]] == ["draw", "guess", "draw", "guess"]
        assert reveal.payload["reveal_time"] == engine.config.telephone_reveal_seconds(4)

    @pytest.mark.asyncio
    async def test_word_lost_along_the_chain(self, engine: GameEngine, make_room: MakeRoom, settle: Settle) -> None:
        """Test scoring when a guess drifts away from the word."""
        room = await start_telephone(engine, make_room, settle, 4)
        room.players["s0"].current_streak = 2
        room.players["s1"].current_streak = 2
        room.players["s2"].current_streak = 2
        room.players["s3"].current_streak = 2

        first_drawer = play_turn(engine, room)
        first_guesser = play_turn(engine, room)
        second_drawer = play_turn(engine, room)
        last_guesser = play_turn(engine, room, guess="something else")

        assert room.players[first_drawer].score == 25
        assert room.players[second_drawer].score == 25
        assert room.players[first_guesser].score == 100
        assert room.players[first_guesser].current_streak == 3
        assert room.players[last_guesser].score == 0
        assert room.players[last_guesser].current_streak == 0

    @pytest.mark.asyncio
    async def test_round_end_after_reveal(
        self, engine: GameEngine, make_room: MakeRoom, broadcaster: RecordingBroadcaster, settle: Settle
    ) -> None:
        """Test leaving the reveal for the results."""
        room = await start_telephone(engine, make_room, settle, 2)
        play_turn(engine, room)
        play_turn(engine, room)
        assert room.game.phase is GamePhase.TELEPHONE_REVEAL

        assert engine.telephone.end_round(room)
        assert room.game.phase is GamePhase.RESULTS
        (end,) = broadcaster.broadcasts(EventType.ROUND_END)
        assert end.payload["word"] == room.game.current_word
        assert not engine.telephone.end_round(room)


class TestTelephoneTimeouts:
    """Test missed and abandoned turns."""

    @pytest.mark.asyncio
    async def test_drawing_timeout_records_placeholder(
        self, engine: GameEngine, make_room: MakeRoom, settle: Settle
    ) -> None:
        """Test that a missed drawing passes an empty drawing on."""
        room = await start_telephone(engine, make_room, settle, 3)
        assert engine.telephone.on_turn_timeout(room)
        entry = room.game.telephone_chain.entries[0]
        assert entry.entry_type is TelephoneEntryType.DRAW
        assert entry.content == TIMED_OUT_DRAWING
        assert room.game.phase is GamePhase.TELEPHONE_GUESS

    @pytest.mark.asyncio
    async def test_guess_timeout_records_placeholder(
        self, engine: GameEngine, make_room: MakeRoom, settle: Settle
    ) -> None:
        """Test that a missed guess passes a placeholder on."""
        room = await start_telephone(engine, make_room, settle, 3)
        play_turn(engine, room)
        assert engine.telephone.on_turn_timeout(room)
        assert room.game.telephone_chain.entries[1].content == TIMED_OUT_GUESS
        assert room.game.phase is GamePhase.TELEPHONE_DRAW

    @pytest.mark.asyncio
    async def test_stale_timeout_ignored_after_reveal(
        self, engine: GameEngine, make_room: MakeRoom, settle: Settle
    ) -> None:
        """Test that a turn timeout during the reveal does nothing."""
        room = await start_telephone(engine, make_room, settle, 2)
        play_turn(engine, room)
        play_turn(engine, room)
        assert not engine.telephone.on_turn_timeout(room)
        assert len(room.game.telephone_chain.entries) == 2

    @pytest.mark.asyncio
    async def test_disconnect_of_current_player(self, engine: GameEngine, make_room: MakeRoom, settle: Settle) -> None:
        """Test that a disconnecting current player times out their turn."""
        room = await start_telephone(engine, make_room, settle, 3)
        current = room.game.telephone_session_id

        engine.handle_disconnect(current)

        chain = room.game.telephone_chain
        assert chain.entries[0].player_id == room.players[current].id
        assert chain.entries[0].content == TIMED_OUT_DRAWING
        assert room.game.telephone_session_id != current
        assert room.game.phase is GamePhase.TELEPHONE_GUESS

    @pytest.mark.asyncio
    async def test_absent_players_are_skipped(self, engine: GameEngine, make_room: MakeRoom, settle: Settle) -> None:
        """Test that disconnected players in the queue lose their turn."""
        room = await start_telephone(engine, make_room, settle, 3)
        queue = room.game.telephone_chain.player_queue
        engine.handle_disconnect(queue[1])

        play_turn(engine, room)

        assert room.game.telephone_session_id == queue[2]
        assert room.game.phase is GamePhase.TELEPHONE_GUESS

    @pytest.mark.asyncio
    async def test_everyone_gone_reveals(self, engine: GameEngine, make_room: MakeRoom, settle: Settle) -> None:
        """Test that an exhausted queue goes straight to the reveal."""
        room = await start_telephone(engine, make_room, settle, 2)
        queue = room.game.telephone_chain.player_queue
        engine.handle_disconnect(queue[1])
        play_turn(engine, room)
        assert room.game.phase is GamePhase.TELEPHONE_REVEAL
