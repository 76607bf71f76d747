"""
Real-time Routes

WS /ws?token=<jwt> - Authenticated socket for live events

Client frames are JSON {"event": <name>, "data": <payload>}:
- ping                                  → pong
- join / leave        {"room"}          → join or leave a room
- typing:start / typing:stop {"room"}   → relayed to the rest of a joined room
- notification:read   {"notification_id"}
- notifications:mark_all_read
- analytics:subscribe / analytics:unsubscribe {"internship_id"?}
"""

import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query

from internhub.core.auth import user_from_token
from internhub.services.notification_service import NotificationService
from internhub.services.realtime import manager, user_room, role_room

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

UNAUTHORIZED_CLOSE_CODE = 4001


def analytics_room(data: dict) -> str:
    internship_id = data.get("internship_id")
    return f"analytics:{internship_id}" if internship_id else "analytics:global"


def allowed_room(room: str, user: dict) -> bool:
    """Clients may not join another user's room or another role's room."""
    if room.startswith("user:"):
        return room == user_room(user["user_id"])
    if room.startswith("role:"):
        return room == role_room(user["role"])
    return True


async def handle_event(websocket: WebSocket, user: dict, event: str, data: dict) -> None:
    if event == "ping":
        await manager.send(websocket, "pong", {"user_id": user["user_id"]})

    elif event in ("join", "leave"):
        room = data.get("room")
        if not room or not allowed_room(room, user):
            await manager.send(websocket, "error", {"message": f"Cannot {event} room"})
            return
        if event == "join":
            manager.join(websocket, room)
        else:
            manager.leave(websocket, room)
        await manager.send(websocket, f"room:{event}ed", {"room": room})

    elif event in ("typing:start", "typing:stop"):
        room = data.get("room")
        if not room or not manager.in_room(websocket, room):
            await manager.send(websocket, "error", {"message": "Join the room before typing in it"})
            return
        await manager.emit_to_room(room, event, {
            "room": room, "user_id": user["user_id"], "name": user["name"]
        }, exclude=websocket)

    elif event == "notification:read":
        notification = NotificationService().mark_read(user["user_id"], str(data.get("notification_id", "")))
        if notification is not None:
            await manager.emit_to_user(user["user_id"], "notification:updated", notification)

    elif event == "notifications:mark_all_read":
        count = NotificationService().mark_all_read(user["user_id"])
        await manager.emit_to_user(user["user_id"], "notifications:unread_count", {
            "unread_count": 0, "marked": count
        })

    elif event == "analytics:subscribe":
        room = analytics_room(data)
        manager.join(websocket, room)
        await manager.send(websocket, "analytics:subscribed", {"room": room})

    elif event == "analytics:unsubscribe":
        room = analytics_room(data)
        manager.leave(websocket, room)
        await manager.send(websocket, "analytics:unsubscribed", {"room": room})

    else:
        await manager.send(websocket, "error", {"message": f"Unknown event '{event}'"})


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    await websocket.accept()

    user = user_from_token(token)
    if user is None:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Authentication error")
        return

    if manager.register(websocket, user):
        await manager.broadcast("user:online", {"user_id": user["user_id"], "name": user["name"]}, exclude=websocket)
    await manager.send(websocket, "connected", {"user_id": user["user_id"], "role": user["role"]})

    try:
        while True:
            frame = await websocket.receive_json()
            if not isinstance(frame, dict) or not frame.get("event"):
                await manager.send(websocket, "error", {"message": "Frames must be {\"event\", \"data\"}"})
                continue
            data = frame.get("data")
            await handle_event(websocket, user, frame["event"], data if isinstance(data, dict) else {})
    except WebSocketDisconnect:
        pass
    except ValueError as e:
        logger.warning(f"Closing socket for user {user['user_id']}: {e}")
    finally:
        gone = manager.unregister(websocket)
        if gone is not None:
            await manager.broadcast("user:offline", {"user_id": gone["user_id"]})
