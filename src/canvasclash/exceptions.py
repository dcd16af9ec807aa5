"""Custom exceptions for canvasclash.

Every exception here describes a rejected player request. The realtime layer
turns them into a private ``error`` event using the ``code`` attribute.
"""

from __future__ import annotations


class CanvasClashError(Exception):
    """Base exception class for all canvasclash errors.

    Attributes:
        code: Machine readable error code sent to clients.
        message: Human readable description.
    """

    code = "error"

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human readable description of the failure.
        """
        self.message = message
        super().__init__(message)


class RoomNotFoundError(CanvasClashError):
    """Raised when a room with the specified ID does not exist.

    Attributes:
        room_id: The room identifier that was not found.
    """

    code = "room_not_found"

    def __init__(self, room_id: str) -> None:
        """Initialize the exception with the room ID.

        Args:
            room_id: The room identifier that was not found.
        """
        self.room_id = room_id
        super().__init__(f"Room not found: {room_id}")


class RoomFullError(CanvasClashError):
    """Raised when joining a room that reached its player limit."""

    code = "room_full"

    def __init__(self, room_id: str, max_players: int) -> None:
        self.room_id = room_id
        self.max_players = max_players
        super().__init__(f"Room {room_id} is full ({max_players} players)")


class GameInProgressError(CanvasClashError):
    """Raised when joining a room whose game already started."""

    code = "game_in_progress"

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"Game already in progress in room {room_id}")


class PlayerNotFoundError(CanvasClashError):
    """Raised when a session or player is not part of any room.

    Attributes:
        identifier: The session ID or player ID that was looked up.
    """

    code = "player_not_found"

    def __init__(self, identifier: str) -> None:
        """Initialize the exception with the missing identifier.

        Args:
            identifier: The session ID or player ID that was looked up.
        """
        self.identifier = identifier
        super().__init__(f"Player not found: {identifier}")


class NotHostError(CanvasClashError):
    """Raised when a host-only action is requested by another player."""

    code = "not_host"

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Only the host can {action}")


class NotEnoughPlayersError(CanvasClashError):
    """Raised when a game is started with too few players."""

    code = "not_enough_players"

    def __init__(self, required: int, actual: int) -> None:
        self.required = required
        self.actual = actual
        super().__init__(f"At least {required} players are required, room has {actual}")


class VoteRejectedError(CanvasClashError):
    """Raised when a vote is a self-vote, a duplicate, or names no drawing."""

    code = "vote_rejected"
