from __future__ import annotations

import logging

from app.api.models import GameRoom, Round, RoundPhase, RoundTurn, fresh_round
from app.errors import InvalidStateError, NotAuthorizedError, StaleRoundError
from app.fsm import BarrierState, ConfirmationBarrierFSM, barrier_state, transition_round

logger = logging.getLogger(__name__)


def next_attacker_id(*, game_round: Round, confirmed_ids: list[str]) -> str:
    """The confirmer who did not attack this round.

    Falls back to the first confirmer if every confirmer was the attacker.
    """

    return next((pid for pid in confirmed_ids if pid != game_round.attacker_id), confirmed_ids[0])


def next_round(*, game_round: Round, confirmed_ids: list[str]) -> Round:
    """Build the round that follows a fully confirmed one.

    top -> bottom keeps the count; bottom -> top starts the next count.
    """

    attacker_id = next_attacker_id(game_round=game_round, confirmed_ids=confirmed_ids)
    if game_round.turn == RoundTurn.top:
        return fresh_round(attacker_id=attacker_id, turn=RoundTurn.bottom, count=game_round.count)
    return fresh_round(attacker_id=attacker_id, turn=RoundTurn.top, count=game_round.count + 1)


def confirm_result(room: GameRoom, *, player_id: str) -> GameRoom | None:
    """Record that `player_id` has seen this round's result.

    Returns the updated room, or None when there is nothing to write (the
    player already confirmed, or the barrier is saturated).
    """

    if not room.is_member(player_id):
        raise NotAuthorizedError("Player is not in this room")
    if room.is_finished:
        raise InvalidStateError("Game is already decided")

    rnd = room.round
    if rnd.phase != RoundPhase.result:
        raise StaleRoundError(f"Nothing to confirm while round is in phase '{rnd.phase.value}'")

    state = barrier_state(rnd.result)
    if state == BarrierState.advanced:
        return None
    if player_id in rnd.result.confirmed_ids:
        logger.debug("room=%s player=%s already confirmed", room.room_id, player_id)
        return None

    fsm = ConfirmationBarrierFSM(state)
    fsm.confirm()
    confirmed_ids = [*rnd.result.confirmed_ids, player_id]

    nxt = room.model_copy(deep=True)
    if fsm.barrier_state == BarrierState.awaiting_second:
        nxt.round.result.confirmed_ids = confirmed_ids
        nxt.round.result.shown_result = True
        logger.debug("room=%s first confirmation by %s", room.room_id, player_id)
        return nxt

    # result -> select on the old round, then swap in the fresh one.
    transition_round(nxt.round, "advanced")
    nxt.round = next_round(game_round=rnd, confirmed_ids=confirmed_ids)
    logger.info(
        "room=%s advanced to round %s/%s attacker=%s",
        room.room_id,
        nxt.round.count,
        nxt.round.turn.value,
        nxt.round.attacker_id,
    )
    return nxt
