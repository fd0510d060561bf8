from __future__ import annotations

import logging
from typing import Any, Literal

import redis

from app.api.models import ChairRequest, GameRoom
from app.barrier import confirm_result
from app.resolver import resolve_activation
from app.room_store import RoomUpdate, transactional_update
from app.rules import DEFAULT_RULES, GameRules
from app.turn_processing.turns import mark_ready, place_electric_chair, sit_on_chair
from app.turn_processing.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)

ActionName = Literal["ready", "electric_chair", "sit", "activate", "confirm"]
ACTION_NAMES: frozenset[str] = frozenset({"ready", "electric_chair", "sit", "activate", "confirm"})


def _chair_from(payload: dict[str, Any]) -> int:
    # Same rules as the dedicated chair routes.
    return ChairRequest.model_validate({"chair": payload.get("chair")}).chair


def _activate(room: GameRoom, *, player_id: str, rules: GameRules) -> GameRoom:
    ctx = ValidationContext(room_id=room.room_id, player_id=player_id, action="activate")
    pipeline_for_action("activate").validate(ctx=ctx, room=room)
    return resolve_activation(room, rules=rules)


def _confirm(room: GameRoom, *, player_id: str) -> GameRoom | None:
    ctx = ValidationContext(room_id=room.room_id, player_id=player_id, action="confirm")
    pipeline_for_action("confirm").validate(ctx=ctx, room=room)
    return confirm_result(room, player_id=player_id)


def build_update(*, player_id: str, action: ActionName, payload: dict[str, Any], rules: GameRules) -> RoomUpdate:
    """Turn an action request into the pure function run inside the room transaction."""

    if action == "ready":
        return lambda room: mark_ready(room, player_id=player_id)
    if action == "electric_chair":
        chair = _chair_from(payload)
        return lambda room: place_electric_chair(room, player_id=player_id, chair=chair)
    if action == "sit":
        chair = _chair_from(payload)
        return lambda room: sit_on_chair(room, player_id=player_id, chair=chair)
    if action == "activate":
        return lambda room: _activate(room, player_id=player_id, rules=rules)
    if action == "confirm":
        return lambda room: _confirm(room, player_id=player_id)
    raise ValueError(f"Unknown action: {action}")


def dispatch_action(
    *,
    r: redis.Redis,
    room_id: str,
    player_id: str,
    action: ActionName,
    payload: dict[str, Any] | None = None,
    rules: GameRules = DEFAULT_RULES,
) -> GameRoom:
    """Entry point for every in-game action.

    Applies an action by:
    - building the pure transition for it
    - running it against the latest committed room inside `transactional_update`
      (validators run inside the transition, so a retry re-validates)
    - returning the committed room (unchanged if the transition was a no-op)
    """

    update = build_update(player_id=player_id, action=action, payload=payload or {}, rules=rules)
    room = transactional_update(r=r, room_id=room_id, fn=update, max_attempts=rules.transaction_max_attempts)
    logger.debug("room=%s player=%s action=%s version=%s", room_id, player_id, action, room.version)
    return room
