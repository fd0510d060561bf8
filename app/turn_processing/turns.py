from __future__ import annotations

import logging

from app.api.models import GameRoom, RoundPhase
from app.fsm import transition_round
from app.turn_processing.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)


def _validate(room: GameRoom, *, player_id: str, action: str) -> None:
    ctx = ValidationContext(room_id=room.room_id, player_id=player_id, action=action)
    pipeline_for_action(action).validate(ctx=ctx, room=room)


def _require_chair_in_play(room: GameRoom, chair: int) -> None:
    if chair not in room.remaining_chairs:
        raise ValueError(f"Chair {chair} is not in play")


def mark_ready(room: GameRoom, *, player_id: str) -> GameRoom | None:
    """Flag a player as ready. None if they already were."""

    _validate(room, player_id=player_id, action="ready")
    player = room.player(player_id)
    if player is None or player.ready:
        return None

    nxt = room.model_copy(deep=True)
    nxt.players = [p.model_copy(update={"ready": True}) if p.player_id == player_id else p for p in nxt.players]
    return nxt


def place_electric_chair(room: GameRoom, *, player_id: str, chair: int) -> GameRoom:
    """Defender hides the electric chair under one of the remaining seats."""

    _validate(room, player_id=player_id, action="electric_chair")
    if room.round.electric_chair is not None:
        raise ValueError("Electric chair is already placed this round")
    _require_chair_in_play(room, chair)

    nxt = room.model_copy(deep=True)
    nxt.round.electric_chair = chair
    logger.debug("room=%s electric chair placed by %s", room.room_id, player_id)
    return nxt


def sit_on_chair(room: GameRoom, *, player_id: str, chair: int) -> GameRoom:
    """Attacker commits to a seat; the round becomes ready to activate."""

    _validate(room, player_id=player_id, action="sit")
    if room.round.electric_chair is None:
        raise ValueError("Wait for the electric chair to be placed")
    _require_chair_in_play(room, chair)

    nxt = room.model_copy(deep=True)
    nxt.round.seated_chair = chair
    transition_round(nxt.round, "seated")
    logger.debug("room=%s attacker %s sat on chair %s", room.room_id, player_id, chair)
    return nxt


def view_for(room: GameRoom, *, viewer_id: str | None) -> GameRoom:
    """Copy of the room as `viewer_id` may see it.

    The attacker (and anonymous viewers) must not learn where the electric
    chair is until the result is shown.
    """

    if room.round.electric_chair is None or room.round.phase == RoundPhase.result:
        return room
    if viewer_id is not None and viewer_id == room.defender_id:
        return room

    masked = room.model_copy(deep=True)
    masked.round.electric_chair = None
    return masked
