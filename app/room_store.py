from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import redis

from app.api.models import GameRoom, Player, fresh_round
from app.errors import ConflictError, RoomNotFoundError
from app.rules import DEFAULT_RULES, GameRules

logger = logging.getLogger(__name__)

ROOMS_SET_KEY = "electric_chair:rooms"
ROOM_KEY_PREFIX = "electric_chair:room:"  # + {room_id}
ROOM_TOKENS_SUFFIX = ":tokens"  # hash: token -> player_id

RoomUpdate = Callable[[GameRoom], GameRoom | None]


@dataclass(frozen=True, slots=True)
class PlayerSession:
    """What a player gets back on create/join.

    `player_id` is public (it appears in the room document); `token` is the
    secret the player presents to act or to see their own view of the room.
    """

    player_id: str
    token: str


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _room_key(room_id: str) -> str:
    return f"{ROOM_KEY_PREFIX}{room_id}"


def _new_player_id() -> str:
    # 32 hex chars, so it can never collide with DRAW_WINNER_ID.
    return uuid4().hex


def _tokens_key(room_id: str) -> str:
    return f"{ROOM_KEY_PREFIX}{room_id}{ROOM_TOKENS_SUFFIX}"


def _issue_session(*, r: redis.Redis, room_id: str, player_id: str) -> PlayerSession:
    token = secrets.token_urlsafe(24)
    r.hset(_tokens_key(room_id), token, player_id)
    return PlayerSession(player_id=player_id, token=token)


def player_for_token(*, r: redis.Redis, room_id: str, token: str | None) -> str | None:
    """Resolve a player token to its player id, or None if unknown."""

    if not token:
        return None
    return r.hget(_tokens_key(room_id), token)


def get_room(*, r: redis.Redis, room_id: str) -> GameRoom | None:
    raw = r.get(_room_key(room_id))
    if not raw:
        return None
    return GameRoom.model_validate_json(raw)


def require_room(*, r: redis.Redis, room_id: str) -> GameRoom:
    room = get_room(r=r, room_id=room_id)
    if room is None:
        raise RoomNotFoundError(room_id)
    return room


def transactional_update(
    *,
    r: redis.Redis,
    room_id: str,
    fn: RoomUpdate,
    max_attempts: int = DEFAULT_RULES.transaction_max_attempts,
) -> GameRoom:
    """Apply `fn` to the latest committed room as one atomic read-modify-write.

    Optimistic: WATCH the room key, run `fn`, then MULTI/SET/EXEC. If another
    writer committed in between, EXEC fails and `fn` runs again against the
    fresh snapshot. If `fn` returns None nothing is written and the current
    room is returned. Exceptions from `fn` abort without writing.
    """

    key = _room_key(room_id)
    with r.pipeline() as pipe:
        for attempt in range(1, max_attempts + 1):
            try:
                pipe.watch(key)
                raw = pipe.get(key)
                if not raw:
                    raise RoomNotFoundError(room_id)
                current = GameRoom.model_validate_json(raw)

                updated = fn(current)
                if updated is None:
                    pipe.unwatch()
                    return current

                updated.version = current.version + 1
                updated.last_updated_at = _now()

                pipe.multi()
                pipe.set(key, updated.model_dump_json())
                pipe.execute()
                logger.debug("room=%s committed version=%s (attempt %s)", room_id, updated.version, attempt)
                return updated
            except redis.WatchError:
                logger.warning("room=%s write conflict (attempt %s/%s)", room_id, attempt, max_attempts)
                continue

    raise ConflictError(room_id, max_attempts)


def write_room(*, r: redis.Redis, room_id: str, fields: dict[str, Any]) -> GameRoom:
    """Replace only the given top-level fields of the room, transactionally."""

    unknown = set(fields) - set(GameRoom.model_fields)
    if unknown:
        raise ValueError(f"Unknown room fields: {','.join(sorted(unknown))}")

    def _merge(current: GameRoom) -> GameRoom:
        data = current.model_dump(mode="json")
        data.update(fields)
        return GameRoom.model_validate(data)

    return transactional_update(r=r, room_id=room_id, fn=_merge)


def create_room(*, r: redis.Redis, creator_name: str, rules: GameRules = DEFAULT_RULES) -> tuple[GameRoom, PlayerSession]:
    """Create a room with its creator seated as the first player and first attacker."""

    room_id = uuid4().hex
    player_id = _new_player_id()
    now = _now()

    room = GameRoom(
        room_id=room_id,
        created_at=now,
        last_updated_at=now,
        players=[Player(player_id=player_id, name=creator_name)],
        round=fresh_round(attacker_id=player_id),
        remaining_chairs=rules.initial_chairs,
        winner_id=None,
        version=1,
    )

    r.set(_room_key(room_id), room.model_dump_json())
    r.sadd(ROOMS_SET_KEY, room_id)
    session = _issue_session(r=r, room_id=room_id, player_id=player_id)
    logger.info("room=%s created by player=%s", room_id, player_id)
    return room, session


def join_room(*, r: redis.Redis, room_id: str, name: str) -> tuple[GameRoom, PlayerSession]:
    player_id = _new_player_id()

    def _join(current: GameRoom) -> GameRoom:
        if len(current.players) >= 2:
            raise ValueError("Room is full")
        nxt = current.model_copy(deep=True)
        nxt.players.append(Player(player_id=player_id, name=name))
        return nxt

    room = transactional_update(r=r, room_id=room_id, fn=_join)
    session = _issue_session(r=r, room_id=room_id, player_id=player_id)
    logger.info("room=%s joined by player=%s", room_id, player_id)
    return room, session


def list_rooms(*, r: redis.Redis) -> list[GameRoom]:
    out: list[GameRoom] = []
    for room_id in sorted(r.smembers(ROOMS_SET_KEY)):
        room = get_room(r=r, room_id=room_id)
        if room is not None:
            out.append(room)
    out.sort(key=lambda room: room.created_at, reverse=True)
    return out
