from __future__ import annotations

import pytest

from app.api.models import DRAW_WINNER_ID, GameOutcome, ResultStatus, RoundPhase
from app.errors import InvalidStateError
from app.resolver import resolve_activation
from app.rules import GameRules


def test_safe_round_scores_seat_value_and_retires_chair(build_room) -> None:
    room = build_room(electric_chair=5, seated_chair=2, p1_point=10)

    nxt = resolve_activation(room)

    p1 = nxt.player("p1")
    assert p1 is not None
    assert p1.point == 12
    assert p1.shocked_count == 0
    assert 2 not in nxt.remaining_chairs
    assert len(nxt.remaining_chairs) == 11
    assert nxt.round.phase == RoundPhase.result
    assert nxt.round.result.status == ResultStatus.safe
    assert nxt.winner_id is None
    assert nxt.outcome == GameOutcome.ongoing


def test_shocked_round_resets_points_and_keeps_chairs(build_room) -> None:
    room = build_room(electric_chair=7, seated_chair=7, p1_point=30)

    nxt = resolve_activation(room)

    p1 = nxt.player("p1")
    assert p1 is not None
    assert p1.point == 0
    assert p1.shocked_count == 1
    assert nxt.remaining_chairs == room.remaining_chairs
    assert nxt.round.result.status == ResultStatus.shocked


def test_defender_stats_untouched(build_room) -> None:
    room = build_room(p2_point=9, p2_shocks=1)

    nxt = resolve_activation(room)

    assert nxt.player("p2") == room.player("p2")


@pytest.mark.parametrize("electric,seated", [(5, 2), (3, 3), (12, 1), (1, 1)])
def test_exactly_one_of_point_or_shock_moves(build_room, electric: int, seated: int) -> None:
    room = build_room(electric_chair=electric, seated_chair=seated, p1_point=4)
    before = room.player("p1")
    after = resolve_activation(room).player("p1")
    assert before is not None and after is not None

    scored = after.point == before.point + seated and after.shocked_count == before.shocked_count
    shocked = after.shocked_count == before.shocked_count + 1
    assert scored != shocked


def test_score_victory(build_room) -> None:
    room = build_room(electric_chair=5, seated_chair=2, p1_point=38)

    nxt = resolve_activation(room)

    assert nxt.player("p1").point == 40  # type: ignore[union-attr]
    assert nxt.winner_id == "p1"
    assert nxt.outcome == GameOutcome.won


def test_elimination_victory_goes_to_other_player(build_room) -> None:
    room = build_room(electric_chair=3, seated_chair=3, p1_shocks=2)

    nxt = resolve_activation(room)

    assert nxt.player("p1").shocked_count == 3  # type: ignore[union-attr]
    assert nxt.winner_id == "p2"


def test_chair_exhaustion_tie_is_draw(build_room) -> None:
    room = build_room(electric_chair=7, seated_chair=4, remaining_chairs=[4], p1_point=16, p2_point=20)

    nxt = resolve_activation(room)

    assert nxt.remaining_chairs == []
    assert nxt.winner_id == DRAW_WINNER_ID
    assert nxt.winner_id not in {p.player_id for p in nxt.players}
    assert nxt.outcome == GameOutcome.draw


def test_chair_exhaustion_higher_score_wins(build_room) -> None:
    room = build_room(attacker_id="p2", electric_chair=1, seated_chair=6, remaining_chairs=[1, 6], p1_point=25, p2_point=14)

    nxt = resolve_activation(room)

    assert nxt.remaining_chairs == [1]
    assert nxt.player("p2").point == 20  # type: ignore[union-attr]
    assert nxt.winner_id == "p1"


def test_two_chairs_left_after_safe_round_keeps_playing(build_room) -> None:
    room = build_room(electric_chair=1, seated_chair=11, remaining_chairs=[1, 6, 11], p1_point=3, p2_point=3)

    nxt = resolve_activation(room)

    assert nxt.remaining_chairs == [1, 6]
    assert nxt.winner_id is None


def test_custom_rules_are_honoured(build_room) -> None:
    room = build_room(electric_chair=5, seated_chair=2, p1_point=8)

    nxt = resolve_activation(room, rules=GameRules(winning_point=10))

    assert nxt.winner_id == "p1"


def test_input_room_is_not_mutated(build_room) -> None:
    room = build_room(p1_point=3)
    snapshot = room.model_dump_json()

    resolve_activation(room)

    assert room.model_dump_json() == snapshot


def test_activate_requires_activate_phase(build_room) -> None:
    room = build_room(phase=RoundPhase.select)
    with pytest.raises(InvalidStateError):
        resolve_activation(room)


def test_activate_is_not_reapplied_to_a_result(build_room) -> None:
    nxt = resolve_activation(build_room())
    with pytest.raises(InvalidStateError):
        resolve_activation(nxt)


def test_activate_requires_seated_chair(build_room) -> None:
    room = build_room(seated_chair=None)
    with pytest.raises(InvalidStateError) as e:
        resolve_activation(room)
    assert "chair" in str(e.value)


def test_activate_rejected_after_game_is_decided(build_room) -> None:
    room = build_room(winner_id="p2")
    with pytest.raises(InvalidStateError):
        resolve_activation(room)
