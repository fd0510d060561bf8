from __future__ import annotations

import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path

import fakeredis
import pytest

from app.api.models import GameRoom, Player, ResultStatus, Round, RoundPhase, RoundResult, RoundTurn


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs (PyCharm/CLI).

    In CI we don't auto-load `.env`; opt in with ELECTRIC_CHAIR_LOAD_DOTENV_FOR_TESTS=1.
    Rule overrides in .env never reach the API tests: they pin `get_rules`.
    """

    if os.environ.get("CI") and os.environ.get("ELECTRIC_CHAIR_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def client_and_redis(r: fakeredis.FakeRedis):
    """FastAPI TestClient wired to a fresh fakeredis and default rules."""

    from fastapi.testclient import TestClient

    from app.api.deps import get_redis, get_rules
    from app.main import app
    from app.rules import GameRules

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_rules] = lambda: GameRules()
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()


RoomBuilder = Callable[..., GameRoom]


@pytest.fixture()
def build_room() -> RoomBuilder:
    """Build an in-memory two-player room ("p1", "p2") in an arbitrary state."""

    def _build(
        *,
        attacker_id: str = "p1",
        phase: RoundPhase = RoundPhase.activate,
        electric_chair: int | None = 5,
        seated_chair: int | None = 2,
        turn: RoundTurn = RoundTurn.top,
        count: int = 1,
        status: ResultStatus | None = None,
        confirmed_ids: tuple[str, ...] = (),
        p1_point: int = 0,
        p1_shocks: int = 0,
        p2_point: int = 0,
        p2_shocks: int = 0,
        remaining_chairs: list[int] | None = None,
        winner_id: str | None = None,
        ready: bool = True,
    ) -> GameRoom:
        now = datetime(2025, 1, 1, tzinfo=UTC)
        return GameRoom(
            room_id="room-1",
            created_at=now,
            last_updated_at=now,
            players=[
                Player(player_id="p1", name="Alice", ready=ready, point=p1_point, shocked_count=p1_shocks),
                Player(player_id="p2", name="Bob", ready=ready, point=p2_point, shocked_count=p2_shocks),
            ],
            round=Round(
                attacker_id=attacker_id,
                turn=turn,
                count=count,
                phase=phase,
                electric_chair=electric_chair,
                seated_chair=seated_chair,
                result=RoundResult(status=status, confirmed_ids=list(confirmed_ids), shown_result=bool(confirmed_ids)),
            ),
            remaining_chairs=list(range(1, 13)) if remaining_chairs is None else remaining_chairs,
            winner_id=winner_id,
            version=1,
        )

    return _build
