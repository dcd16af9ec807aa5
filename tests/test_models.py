"""Tests for game session models."""

from __future__ import annotations

import pytest

from canvasclash.game.models import (
    ROOM_ID_ALPHABET,
    ROOM_ID_LENGTH,
    DrawingEntry,
    Player,
    Room,
    RoomSettings,
    TelephoneChain,
    TelephoneEntry,
    generate_room_id,
    make_word_hint,
)
from canvasclash.game.types import GameMode, GamePhase, PromptKind, TelephoneEntryType


class TestIdentifiers:
    """Test generated identifiers and hints."""

    def test_room_id_format(self) -> None:
        """Test that room IDs use the unambiguous alphabet."""
        for _ in range(50):
            room_id = generate_room_id()
            assert len(room_id) == ROOM_ID_LENGTH
            assert set(room_id) <= set(ROOM_ID_ALPHABET)
        assert not set("IO01") & set(ROOM_ID_ALPHABET)

    @pytest.mark.parametrize(
        ("word", "hint"),
        [("cat", "_ _ _"), ("ice cream", "_ _ _   _ _ _ _ _"), ("a", "_")],
    )
    def test_word_hint(self, word: str, hint: str) -> None:
        """Test hints for single words and phrases."""
        assert make_word_hint(word) == hint


class TestPlayer:
    """Test player score and streak bookkeeping."""

    def test_streak_tracks_maximum(self) -> None:
        """Test that the maximum streak survives a reset."""
        player = Player(name="Ada", session_id="s1")
        assert player.increment_streak() == 1
        assert player.increment_streak() == 2
        player.reset_streak()
        assert player.increment_streak() == 1
        assert player.max_streak == 2

    def test_reset_for_new_game(self) -> None:
        """Test that a new game clears score, readiness and streaks."""
        player = Player(name="Ada", session_id="s1", score=450, ready=True, current_streak=3, max_streak=4)
        player.reset_for_new_game()
        assert (player.score, player.ready, player.current_streak, player.max_streak) == (0, False, 0, 0)


class TestRoomSettings:
    """Test settings clamping and parsing."""

    def test_defaults(self) -> None:
        """Test the default settings."""
        settings = RoomSettings()
        assert settings.max_players == 12
        assert settings.total_rounds == 3
        assert settings.mode is GameMode.CLASSIC

    def test_values_are_clamped(self) -> None:
        """Test that out-of-range values are clamped."""
        settings = RoomSettings(max_players=50, total_rounds=0, draw_time=5, collaborative_drawer_count=9)
        assert settings.max_players == 12
        assert settings.total_rounds == 1
        assert settings.draw_time == 30
        assert settings.collaborative_drawer_count == 4

    def test_from_dict_ignores_unknown_keys(self) -> None:
        """Test parsing a client payload."""
        settings = RoomSettings.from_dict({"total_rounds": 5, "mode": "telephone", "color": "red"})
        assert settings.total_rounds == 5
        assert settings.mode is GameMode.TELEPHONE

    def test_from_dict_rejects_unknown_mode(self) -> None:
        """Test that an unknown mode is a ValueError."""
        with pytest.raises(ValueError):
            RoomSettings.from_dict({"mode": "battle-royale"})

    def test_from_dict_none(self) -> None:
        """Test that a missing payload gives defaults."""
        assert RoomSettings.from_dict(None) == RoomSettings()


class TestRoom:
    """Test room membership."""

    def test_total_rounds_follow_settings(self) -> None:
        """Test that the game state uses the configured round count."""
        room = Room(id="ROOM01", host_session_id="s0", settings=RoomSettings(total_rounds=5))
        assert room.game.total_rounds == 5

    def test_host_transfer_on_remove(self) -> None:
        """Test that removing the host hands the role to a remaining player."""
        room = Room(id="ROOM01", host_session_id="s0")
        room.add_player(Player(name="P0", session_id="s0"))
        room.add_player(Player(name="P1", session_id="s1"))
        room.remove_player("s0")
        assert room.host_session_id == "s1"

    def test_rebind_session(self) -> None:
        """Test moving a player, and their roles, to a new session."""
        room = Room(id="ROOM01", host_session_id="s0")
        player = Player(name="P0", session_id="s0", connected=False)
        room.add_player(player)
        room.game.drawer_session_ids = ["s0"]

        old = room.rebind_session(player, "s9")

        assert old == "s0"
        assert room.get_player("s9") is player
        assert room.get_player("s0") is None
        assert player.connected
        assert room.host_session_id == "s9"
        assert room.game.drawer_session_ids == ["s9"]

    def test_reset_for_new_game(self) -> None:
        """Test that a reset keeps players and replaces the game state."""
        room = Room(id="ROOM01", host_session_id="s0")
        room.add_player(Player(name="P0", session_id="s0", score=100))
        room.game.phase = GamePhase.GAME_OVER
        room.game.current_round = 3
        room.reset_for_new_game()
        assert room.game.phase is GamePhase.LOBBY
        assert room.game.current_round == 0
        assert room.players["s0"].score == 0

    def test_to_dict_hides_word(self) -> None:
        """Test that the serialized room never carries the secret word."""
        room = Room(id="ROOM01", host_session_id="s0")
        room.add_player(Player(name="P0", session_id="s0"))
        room.game.phase = GamePhase.DRAWING
        room.game.current_word = "giraffe"
        data = room.to_dict()
        assert "giraffe" not in str(data)
        assert data["game"]["word_hint"] == "_ _ _ _ _ _ _"


class TestDrawingEntry:
    """Test drawing entries."""

    def test_involves_all_drawers(self) -> None:
        """Test that collaborative drawings involve every drawer."""
        entry = DrawingEntry(1, "p1", "P1 & P2", "cat", "data:x", drawer_ids=["p1", "p2"])
        assert entry.involves("p1")
        assert entry.involves("p2")
        assert not entry.involves("p3")


class TestTelephoneChain:
    """Test the telephone chain."""

    def make_entry(self, entry_type: TelephoneEntryType, content: str, player_id: str = "p1") -> TelephoneEntry:
        return TelephoneEntry(player_id, player_id.upper(), entry_type, content)

    def test_types_alternate_and_prompts_follow(self) -> None:
        """Test entry type alternation and prompt selection."""
        chain = TelephoneChain(original_word="cat", player_queue=["s1", "s2", "s3"])
        assert chain.next_entry_type() is TelephoneEntryType.DRAW
        assert chain.current_prompt() == (PromptKind.WORD, "cat")

        chain.add_entry(self.make_entry(TelephoneEntryType.DRAW, "data:cat"))
        assert chain.next_entry_type() is TelephoneEntryType.GUESS
        assert chain.current_prompt() == (PromptKind.DRAWING, "data:cat")
        assert chain.current_session_id == "s2"

        chain.add_entry(self.make_entry(TelephoneEntryType.GUESS, "kitten"))
        assert chain.current_prompt() == (PromptKind.GUESS, "kitten")
        assert chain.remaining_players == 1

    def test_skip_keeps_alternation(self) -> None:
        """Test that skipping a player records nothing."""
        chain = TelephoneChain(original_word="cat", player_queue=["s1", "s2"])
        chain.skip_current()
        assert chain.current_session_id == "s2"
        assert chain.next_entry_type() is TelephoneEntryType.DRAW

    def test_word_survived(self) -> None:
        """Test detection of the original word surviving to the last guess."""
        chain = TelephoneChain(original_word="Cat", player_queue=["s1", "s2"])
        chain.add_entry(self.make_entry(TelephoneEntryType.DRAW, "data:cat"))
        chain.add_entry(self.make_entry(TelephoneEntryType.GUESS, " cat "))
        assert chain.is_complete
        assert chain.word_survived()

    def test_word_not_survived_when_last_is_drawing(self) -> None:
        """Test that a chain ending on a drawing never counts as survived."""
        chain = TelephoneChain(original_word="cat", player_queue=["s1"])
        chain.add_entry(self.make_entry(TelephoneEntryType.DRAW, "data:cat"))
        assert not chain.word_survived()

    def test_reveal_starts_with_original_word(self) -> None:
        """Test the reveal layout."""
        chain = TelephoneChain(original_word="cat", player_queue=["s1"])
        chain.add_entry(self.make_entry(TelephoneEntryType.DRAW, "data:cat"))
        reveal = chain.to_reveal()
        assert reveal[0]["content"] == "cat"
        assert reveal[0]["player_name"] == "Original Word"
        assert reveal[1]["type"] == "draw"
