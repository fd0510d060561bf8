from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

from app.api.models import GameRoom, RoundPhase
from app.errors import InvalidStateError, NotAuthorizedError


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    room_id: str
    player_id: str
    action: str


class TurnValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, room: GameRoom) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class MembershipValidator(TurnValidator):
    def validate(self, *, ctx: ValidationContext, room: GameRoom) -> None:
        if not room.is_member(ctx.player_id):
            raise NotAuthorizedError("Player is not in this room")


@dataclass(frozen=True, slots=True)
class FinishedGameValidator(TurnValidator):
    """Deny game actions once a winner (or draw) is recorded."""

    def validate(self, *, ctx: ValidationContext, room: GameRoom) -> None:
        if room.is_finished:
            raise InvalidStateError("Game is already decided")


@dataclass(frozen=True, slots=True)
class PlayersReadyValidator(TurnValidator):
    """Both seats must be filled and both players ready before chairs are picked."""

    def validate(self, *, ctx: ValidationContext, room: GameRoom) -> None:
        if len(room.players) != 2:
            raise InvalidStateError("Waiting for a second player")
        if not all(p.ready for p in room.players):
            raise InvalidStateError("Waiting for both players to be ready")


@dataclass(frozen=True, slots=True)
class PhaseValidator(TurnValidator):
    allowed_phases: frozenset[RoundPhase]

    def validate(self, *, ctx: ValidationContext, room: GameRoom) -> None:
        phase = room.round.phase
        if phase not in self.allowed_phases:
            allowed = ",".join(sorted(p.value for p in self.allowed_phases))
            raise InvalidStateError(f"Action '{ctx.action}' not allowed in phase '{phase.value}' (allowed: {allowed})")


@dataclass(frozen=True, slots=True)
class SeatRoleValidator(TurnValidator):
    """The attacker sits; the defender places the electric chair."""

    role: Literal["attacker", "defender"]

    def validate(self, *, ctx: ValidationContext, room: GameRoom) -> None:
        is_attacker = ctx.player_id == room.round.attacker_id
        if (self.role == "attacker") != is_attacker:
            raise NotAuthorizedError(f"Action '{ctx.action}' is only allowed for the {self.role}")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[TurnValidator, ...]

    def validate(self, *, ctx: ValidationContext, room: GameRoom) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, room=room)


DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "ready": ValidatorPipeline(
        validators=(
            MembershipValidator(),
            FinishedGameValidator(),
        )
    ),
    "electric_chair": ValidatorPipeline(
        validators=(
            MembershipValidator(),
            FinishedGameValidator(),
            PlayersReadyValidator(),
            PhaseValidator(allowed_phases=frozenset({RoundPhase.select})),
            SeatRoleValidator(role="defender"),
        )
    ),
    "sit": ValidatorPipeline(
        validators=(
            MembershipValidator(),
            FinishedGameValidator(),
            PlayersReadyValidator(),
            PhaseValidator(allowed_phases=frozenset({RoundPhase.select})),
            SeatRoleValidator(role="attacker"),
        )
    ),
    "activate": ValidatorPipeline(
        validators=(
            MembershipValidator(),
            FinishedGameValidator(),
            PhaseValidator(allowed_phases=frozenset({RoundPhase.activate})),
        )
    ),
    # Phase is checked by the barrier itself so it can report a stale round.
    "confirm": ValidatorPipeline(
        validators=(
            MembershipValidator(),
            FinishedGameValidator(),
        )
    ),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
