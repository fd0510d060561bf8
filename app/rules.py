from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GameRules:
    # Chairs are numbered 1..chair_count; a chair's number is its score.
    chair_count: int = 12
    winning_point: int = 40
    max_shocks: int = 3
    # Optimistic transaction attempts before giving up with ConflictError.
    transaction_max_attempts: int = 5

    @property
    def initial_chairs(self) -> list[int]:
        return list(range(1, self.chair_count + 1))


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    value = int(raw)
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return value


def rules_from_env() -> GameRules:
    d = GameRules()
    return GameRules(
        chair_count=_int_from_env("ELECTRIC_CHAIR_CHAIR_COUNT", d.chair_count),
        winning_point=_int_from_env("ELECTRIC_CHAIR_WINNING_POINT", d.winning_point),
        max_shocks=_int_from_env("ELECTRIC_CHAIR_MAX_SHOCKS", d.max_shocks),
        transaction_max_attempts=_int_from_env("ELECTRIC_CHAIR_TX_ATTEMPTS", d.transaction_max_attempts),
    )


DEFAULT_RULES = GameRules()
