from __future__ import annotations

import logging

from app.api.models import DRAW_WINNER_ID, GameRoom, Player, ResultStatus, RoundPhase
from app.errors import InvalidStateError
from app.fsm import transition_round
from app.rules import DEFAULT_RULES, GameRules

logger = logging.getLogger(__name__)


def decide_winner(*, players: list[Player], remaining_chairs: list[int], rules: GameRules) -> str | None:
    """Return the winner id after an activation, or None if play continues.

    Checked in order, first match wins:
    - score victory: someone reached `winning_point`
    - elimination: someone took `max_shocks` shocks, the other player wins
    - chair exhaustion: at most one chair left, higher score wins, tie is a draw
    """

    scorer = next((p for p in players if p.point >= rules.winning_point), None)
    if scorer is not None:
        return scorer.player_id

    eliminated = next((p for p in players if p.shocked_count >= rules.max_shocks), None)
    if eliminated is not None:
        survivor = next((p for p in players if p.player_id != eliminated.player_id), None)
        if survivor is None:
            raise InvalidStateError("Room has no opponent to award the win to")
        return survivor.player_id

    if len(remaining_chairs) <= 1:
        first, second = players
        if first.point > second.point:
            return first.player_id
        if second.point > first.point:
            return second.player_id
        return DRAW_WINNER_ID

    return None


def resolve_activation(room: GameRoom, *, rules: GameRules = DEFAULT_RULES) -> GameRoom:
    """Compute the room after the attacker's seat is revealed.

    Not idempotent: points and shock counts move on every call. The store runs
    this inside a transaction and the phase check makes a second application
    against the committed result fail.
    """

    if room.is_finished:
        raise InvalidStateError("Game is already decided")

    rnd = room.round
    if rnd.phase != RoundPhase.activate:
        raise InvalidStateError(f"Cannot activate while round is in phase '{rnd.phase.value}'")
    if rnd.seated_chair is None:
        raise InvalidStateError("No chair has been taken yet")
    if rnd.electric_chair is None:
        raise InvalidStateError("Electric chair has not been placed")
    if len(room.players) != 2:
        raise InvalidStateError("Game needs exactly 2 players")

    nxt = room.model_copy(deep=True)
    seated = rnd.seated_chair
    is_shocked = rnd.electric_chair == seated

    attacker = nxt.player(rnd.attacker_id)
    if attacker is None:
        raise InvalidStateError("Attacker is not a player in this room")

    if is_shocked:
        attacker.point = 0
        attacker.shocked_count += 1
    else:
        attacker.point += seated
        nxt.remaining_chairs = [c for c in nxt.remaining_chairs if c != seated]

    nxt.winner_id = decide_winner(
        players=nxt.players,
        remaining_chairs=nxt.remaining_chairs,
        rules=rules,
    )

    transition_round(nxt.round, "activated")
    nxt.round.result.status = ResultStatus.shocked if is_shocked else ResultStatus.safe

    logger.info(
        "room=%s round=%s/%s attacker=%s chair=%s -> %s winner=%s",
        room.room_id,
        rnd.count,
        rnd.turn.value,
        rnd.attacker_id,
        seated,
        nxt.round.result.status.value,
        nxt.winner_id,
    )
    return nxt
