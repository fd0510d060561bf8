from __future__ import annotations

from collections.abc import Generator

import redis
from fastapi import Depends, Header

from app.infra.redis_client import create_redis
from app.room_store import player_for_token
from app.rules import GameRules, rules_from_env


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_rules() -> GameRules:
    return rules_from_env()


def token_player_id(
    room_id: str,
    x_player_token: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> str | None:
    """The player the request's X-Player-Token belongs to, if any.

    Player ids are public; only the token proves who is asking.
    """

    return player_for_token(r=r, room_id=room_id, token=x_player_token)
