"""Collaborator protocols consumed by the game engine.

The engine depends only on these interfaces. The realtime layer provides the
``Broadcaster`` implementation, ``canvasclash.game.wordbank.WordBank`` the
default word source.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from canvasclash.game.events import GameEvent


@runtime_checkable
class Broadcaster(Protocol):
    """Delivers outbound events to clients.

    Both methods are fire-and-forget: they must not block and the engine does
    not expect a delivery guarantee.
    """

    def broadcast_to_room(self, room_id: str, event: GameEvent) -> None:
        """Send an event to every session of a room.

        Args:
            room_id: The room identifier.
            event: The event to deliver.
        """
        ...

    def send_to_player(self, session_id: str, event: GameEvent) -> None:
        """Send an event to a single session.

        Args:
            session_id: The transport session identifier.
            event: The event to deliver.
        """
        ...


@runtime_checkable
class WordBankProtocol(Protocol):
    """Source of words to draw."""

    def get_word_options(self, count: int = 3) -> list[str]:
        """Return up to ``count`` distinct words that were not used recently.

        Args:
            count: Number of words requested.

        Returns:
            ``min(count, available)`` distinct words.
        """
        ...

    def mark_used(self, word: str) -> None:
        """Exclude a word from future options until the pool is exhausted.

        Args:
            word: The word that was drawn.
        """
        ...
