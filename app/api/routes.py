from __future__ import annotations

from typing import Any

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from app.actions import ACTION_NAMES, ActionName, dispatch_action
from app.api.deps import get_redis, get_rules, token_player_id
from app.api.models import (
    ChairRequest,
    GameRoom,
    PlayerRoomResponse,
    RoomCreateRequest,
    RoomJoinRequest,
    RoomListResponse,
)
from app.errors import ConflictError, InvalidStateError, NotAuthorizedError, RoomNotFoundError
from app.room_store import create_room, get_room, join_room, list_rooms, player_for_token
from app.rules import GameRules
from app.turn_processing.turns import view_for
from app.websocket_hub import hub

router = APIRouter()


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, RoomNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, NotAuthorizedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, (InvalidStateError, ConflictError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


def _require_token_for(player_id: str, caller_id: str | None) -> None:
    if caller_id is None or caller_id != player_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid player token")


async def _apply(
    *,
    r: redis.Redis,
    rules: GameRules,
    room_id: str,
    player_id: str,
    action: ActionName,
    payload: dict[str, Any] | None = None,
) -> GameRoom:
    try:
        room = dispatch_action(r=r, room_id=room_id, player_id=player_id, action=action, payload=payload, rules=rules)
    except ValueError as e:
        raise _http_error(e) from e

    await hub.publish_room(room)
    return view_for(room, viewer_id=player_id)


@router.websocket("/ws/room/{room_id}")
async def room_updates_ws(
    websocket: WebSocket,
    room_id: str,
    token: str | None = None,
    r: redis.Redis = Depends(get_redis),
) -> None:
    # Browsers can't set headers on a WebSocket, so the token rides in the query string.
    viewer_id = player_for_token(r=r, room_id=room_id, token=token)
    await hub.connect(room_id, websocket, viewer_id=viewer_id)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(room_id, websocket)
    except Exception:
        await hub.disconnect(room_id, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/room", response_model=PlayerRoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room_route(
    payload: RoomCreateRequest,
    r: redis.Redis = Depends(get_redis),
    rules: GameRules = Depends(get_rules),
) -> PlayerRoomResponse:
    room, session = create_room(r=r, creator_name=payload.name, rules=rules)
    return PlayerRoomResponse(player_id=session.player_id, token=session.token, room=room)


@router.get("/room", response_model=RoomListResponse)
async def list_rooms_route(r: redis.Redis = Depends(get_redis)) -> RoomListResponse:
    return RoomListResponse(rooms=[view_for(room, viewer_id=None) for room in list_rooms(r=r)])


@router.get("/room/{room_id}", response_model=GameRoom)
async def get_room_route(
    room_id: str,
    viewer_id: str | None = Depends(token_player_id),
    r: redis.Redis = Depends(get_redis),
) -> GameRoom:
    room = get_room(r=r, room_id=room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return view_for(room, viewer_id=viewer_id)


@router.post("/room/{room_id}/join", response_model=PlayerRoomResponse)
async def join_room_route(room_id: str, payload: RoomJoinRequest, r: redis.Redis = Depends(get_redis)) -> PlayerRoomResponse:
    try:
        room, session = join_room(r=r, room_id=room_id, name=payload.name)
    except ValueError as e:
        raise _http_error(e) from e

    await hub.publish_room(room)
    return PlayerRoomResponse(
        player_id=session.player_id,
        token=session.token,
        room=view_for(room, viewer_id=session.player_id),
    )


@router.post("/room/{room_id}/player/{player_id}/ready", response_model=GameRoom)
async def ready_route(
    room_id: str,
    player_id: str,
    caller_id: str | None = Depends(token_player_id),
    r: redis.Redis = Depends(get_redis),
    rules: GameRules = Depends(get_rules),
) -> GameRoom:
    _require_token_for(player_id, caller_id)
    return await _apply(r=r, rules=rules, room_id=room_id, player_id=player_id, action="ready")


@router.post("/room/{room_id}/player/{player_id}/electric_chair", response_model=GameRoom)
async def electric_chair_route(
    room_id: str,
    player_id: str,
    payload: ChairRequest,
    caller_id: str | None = Depends(token_player_id),
    r: redis.Redis = Depends(get_redis),
    rules: GameRules = Depends(get_rules),
) -> GameRoom:
    _require_token_for(player_id, caller_id)
    return await _apply(
        r=r, rules=rules, room_id=room_id, player_id=player_id, action="electric_chair", payload={"chair": payload.chair}
    )


@router.post("/room/{room_id}/player/{player_id}/sit", response_model=GameRoom)
async def sit_route(
    room_id: str,
    player_id: str,
    payload: ChairRequest,
    caller_id: str | None = Depends(token_player_id),
    r: redis.Redis = Depends(get_redis),
    rules: GameRules = Depends(get_rules),
) -> GameRoom:
    _require_token_for(player_id, caller_id)
    return await _apply(r=r, rules=rules, room_id=room_id, player_id=player_id, action="sit", payload={"chair": payload.chair})


@router.post("/room/{room_id}/player/{player_id}/activate", response_model=GameRoom)
async def activate_route(
    room_id: str,
    player_id: str,
    caller_id: str | None = Depends(token_player_id),
    r: redis.Redis = Depends(get_redis),
    rules: GameRules = Depends(get_rules),
) -> GameRoom:
    _require_token_for(player_id, caller_id)
    return await _apply(r=r, rules=rules, room_id=room_id, player_id=player_id, action="activate")


@router.post("/room/{room_id}/player/{player_id}/confirm", response_model=GameRoom)
async def confirm_route(
    room_id: str,
    player_id: str,
    caller_id: str | None = Depends(token_player_id),
    r: redis.Redis = Depends(get_redis),
    rules: GameRules = Depends(get_rules),
) -> GameRoom:
    _require_token_for(player_id, caller_id)
    return await _apply(r=r, rules=rules, room_id=room_id, player_id=player_id, action="confirm")


@router.post("/rooms/{room_id}/actions/{action}", response_model=GameRoom)
async def generic_action_route(
    room_id: str,
    action: str,
    body: dict[str, Any],
    caller_id: str | None = Depends(token_player_id),
    r: redis.Redis = Depends(get_redis),
    rules: GameRules = Depends(get_rules),
) -> GameRoom:
    if action not in ACTION_NAMES:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Unknown action: {action}")
    pid = body.get("player_id")
    if not pid:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="player_id is required")
    _require_token_for(str(pid), caller_id)

    act: ActionName = action  # type: ignore[assignment]
    return await _apply(r=r, rules=rules, room_id=room_id, player_id=str(pid), action=act, payload=body)
