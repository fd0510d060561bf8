"""Domain errors.

Everything derives from ValueError so callers that only care about
"bad request vs. not" can keep catching ValueError.
"""

from __future__ import annotations


class ElectricChairError(ValueError):
    """Base class for game errors."""


class InvalidStateError(ElectricChairError):
    """Action invoked against a round (or game) in the wrong state."""


class StaleRoundError(InvalidStateError):
    """Confirmation sent for a round that has no result to confirm."""


class NotAuthorizedError(ElectricChairError):
    """Caller is not allowed to act on this room or seat."""


class ConflictError(ElectricChairError):
    """Transaction kept losing the race after the retry budget was spent."""

    def __init__(self, room_id: str, attempts: int) -> None:
        self.room_id = room_id
        self.attempts = attempts
        super().__init__(f"Room {room_id} is busy (gave up after {attempts} attempts)")


class RoomNotFoundError(ElectricChairError):
    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__("Room not found")
