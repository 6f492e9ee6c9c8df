from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/rooms")
async def list_rooms(request: Request):
    """
    List all active rooms (debug/admin).
    """
    repo = request.app.state.repo

    rooms = []
    for room in repo.list_rooms():
        rooms.append(
            {
                "roomId": room.id,
                "status": room.status,
                "players": len(room.players),
                "hostId": room.host_id,
                "gameReady": room.game_ready,
                "createdAt": room.created_at,
                "lastActivity": room.last_activity,
            }
        )

    return {"rooms": rooms}


@router.post("/rooms/{room_id}/close")
async def close_room(room_id: str, request: Request):
    """
    Force close a room (debug/admin). Removes it from the registry and closes member websockets.
    """
    rooms = request.app.state.rooms
    wsman = request.app.state.wsman

    room = rooms.close_room(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")

    for p in room.players:
        await wsman.close_pid(p.id, code=4000, reason="admin_close")

    return {"ok": True, "roomId": room_id}
