from __future__ import annotations

import logging
from enum import StrEnum

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from app.api.models import Round, RoundPhase, RoundResult
from app.errors import InvalidStateError

logger = logging.getLogger(__name__)


class RoundFSM(StateMachine):
    """FSM wrapper around a Round's phase.

    select -> activate (defender placed the electric chair, attacker sat down)
    activate -> result (resolver ran)
    result -> select (both players confirmed; a fresh round starts)
    """

    selecting = State(RoundPhase.select.value, value=RoundPhase.select.value, initial=True)
    activating = State(RoundPhase.activate.value, value=RoundPhase.activate.value)
    showing_result = State(RoundPhase.result.value, value=RoundPhase.result.value)

    seated = selecting.to(activating)
    activated = activating.to(showing_result)
    advanced = showing_result.to(selecting)

    def __init__(self, game_round: Round):
        self.game_round = game_round
        super().__init__(start_value=game_round.phase.value)

    def sync_phase_to_model(self) -> None:
        self.game_round.phase = RoundPhase(str(self.current_state.value))


def transition_round(game_round: Round, event: str) -> None:
    """Apply a phase event to `game_round` in place or raise InvalidStateError."""

    before = game_round.phase
    fsm = RoundFSM(game_round)
    try:
        fsm.send(event)
    except TransitionNotAllowed as e:
        raise InvalidStateError(f"Cannot apply '{event}' while round is in phase '{before.value}'") from e

    fsm.sync_phase_to_model()
    if game_round.phase == before:
        raise InvalidStateError(f"Cannot apply '{event}' while round is in phase '{before.value}'")
    logger.debug("round phase %s -> %s (%s)", before.value, game_round.phase.value, event)


class BarrierState(StrEnum):
    awaiting_first = "awaiting_first"
    awaiting_second = "awaiting_second"
    advanced = "advanced"


def barrier_state(result: RoundResult) -> BarrierState:
    n = len(result.confirmed_ids)
    if n == 0:
        return BarrierState.awaiting_first
    if n == 1:
        return BarrierState.awaiting_second
    return BarrierState.advanced


class ConfirmationBarrierFSM(StateMachine):
    """Two-party rendezvous for a single round's result."""

    awaiting_first = State(BarrierState.awaiting_first.value, value=BarrierState.awaiting_first.value, initial=True)
    awaiting_second = State(BarrierState.awaiting_second.value, value=BarrierState.awaiting_second.value)
    advanced = State(BarrierState.advanced.value, value=BarrierState.advanced.value, final=True)

    confirm = awaiting_first.to(awaiting_second) | awaiting_second.to(advanced)

    def __init__(self, start: BarrierState):
        super().__init__(start_value=start.value)

    @property
    def barrier_state(self) -> BarrierState:
        return BarrierState(str(self.current_state.value))
