from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field, field_validator

# Reserved winner id for a tied game on chair exhaustion. Never a real player id.
DRAW_WINNER_ID = "draw"


class RoundTurn(StrEnum):
    top = "top"
    bottom = "bottom"


class RoundPhase(StrEnum):
    select = "select"
    activate = "activate"
    result = "result"


class ResultStatus(StrEnum):
    shocked = "shocked"
    safe = "safe"


class GameOutcome(StrEnum):
    ongoing = "ongoing"
    won = "won"
    draw = "draw"


class Player(BaseModel):
    player_id: str
    name: str
    ready: bool = False
    point: int = Field(default=0, ge=0)
    shocked_count: int = Field(default=0, ge=0)


class RoundResult(BaseModel):
    status: ResultStatus | None = None

    # Ids of players who acknowledged the shown result, in confirmation order.
    confirmed_ids: list[str] = Field(default_factory=list, max_length=2)
    shown_result: bool = False


class Round(BaseModel):
    attacker_id: str
    turn: RoundTurn = RoundTurn.top
    count: int = Field(default=1, ge=1)
    phase: RoundPhase = RoundPhase.select

    # Placed by the defender; hidden from the attacker until the result is shown.
    electric_chair: int | None = None
    seated_chair: int | None = None

    result: RoundResult = Field(default_factory=RoundResult)


def fresh_round(*, attacker_id: str, turn: RoundTurn = RoundTurn.top, count: int = 1) -> Round:
    """A round in its initial "select" state."""

    return Round(attacker_id=attacker_id, turn=turn, count=count)


class GameRoom(BaseModel):
    room_id: str
    created_at: datetime
    last_updated_at: datetime

    players: list[Player] = Field(default_factory=list, max_length=2)
    round: Round
    remaining_chairs: list[int] = Field(default_factory=list)

    # Player id, DRAW_WINNER_ID, or None while the game is ongoing.
    winner_id: str | None = None

    # Bumped on every committed write.
    version: int = 0

    @field_validator("remaining_chairs")
    @classmethod
    def _sorted_distinct(cls, v: list[int]) -> list[int]:
        # Stored as a sorted list so the JSON document is deterministic.
        return sorted(set(v))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def outcome(self) -> GameOutcome:
        if self.winner_id is None:
            return GameOutcome.ongoing
        if self.winner_id == DRAW_WINNER_ID:
            return GameOutcome.draw
        return GameOutcome.won

    @property
    def is_finished(self) -> bool:
        return self.winner_id is not None

    def player(self, player_id: str) -> Player | None:
        return next((p for p in self.players if p.player_id == player_id), None)

    def is_member(self, player_id: str) -> bool:
        return self.player(player_id) is not None

    def opponent_id(self, player_id: str) -> str | None:
        return next((p.player_id for p in self.players if p.player_id != player_id), None)

    @property
    def defender_id(self) -> str | None:
        return self.opponent_id(self.round.attacker_id)


class RoomCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=40)


class RoomJoinRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=40)


class ChairRequest(BaseModel):
    chair: int = Field(..., ge=1, strict=True)


class PlayerRoomResponse(BaseModel):
    """Returned on create/join so the caller learns its own player id and token.

    The token goes in the X-Player-Token header of every later request.
    """

    player_id: str
    token: str
    room: GameRoom


class RoomListResponse(BaseModel):
    rooms: list[GameRoom]
