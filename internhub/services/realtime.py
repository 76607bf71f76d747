"""
Real-time Service - WebSocket connection registry and event emitters.

Every socket joins two rooms on connect:
- user:<user_id>  → events for that user (all of their open tabs)
- role:<role>     → role-wide broadcasts (e.g. new postings for students)

Frames on the wire are JSON: {"event": <name>, "data": <payload>}.
Delivery is best effort: a socket that fails to receive is dropped, and
when it was the user's last one the others hear `user:offline`.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


def role_room(role: str) -> str:
    return f"role:{role}"


class ConnectionManager:
    """Tracks open sockets per user and per room."""

    def __init__(self):
        self.user_sockets: Dict[int, Set[WebSocket]] = {}
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.socket_users: Dict[WebSocket, dict] = {}

    # ----------------------------------------------------------------
    # Registration
    # ----------------------------------------------------------------

    def register(self, websocket: WebSocket, user: dict) -> bool:
        """
        Register an accepted socket for `user`.

        Returns True when this is the user's first open socket.
        """
        user_id = user["user_id"]
        first = not self.user_sockets.get(user_id)
        self.user_sockets.setdefault(user_id, set()).add(websocket)
        self.socket_users[websocket] = {
            "user_id": user_id,
            "name": user.get("name"),
            "role": user["role"],
        }
        self.join(websocket, user_room(user_id))
        self.join(websocket, role_room(user["role"]))
        logger.info(f"User {user_id} connected ({len(self.user_sockets[user_id])} socket(s))")
        return first

    def unregister(self, websocket: WebSocket) -> Optional[dict]:
        """
        Forget a socket.

        Returns the user dict when their last socket just closed, else None.
        """
        user = self.socket_users.pop(websocket, None)
        for members in self.rooms.values():
            members.discard(websocket)
        self.rooms = {room: members for room, members in self.rooms.items() if members}

        if user is None:
            return None

        sockets = self.user_sockets.get(user["user_id"], set())
        sockets.discard(websocket)
        if sockets:
            return None

        self.user_sockets.pop(user["user_id"], None)
        logger.info(f"User {user['user_id']} disconnected")
        return user

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, set()).add(websocket)

    def leave(self, websocket: WebSocket, room: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[room]

    # ----------------------------------------------------------------
    # Queries
    # ----------------------------------------------------------------

    def is_online(self, user_id: int) -> bool:
        return bool(self.user_sockets.get(user_id))

    def in_room(self, websocket: WebSocket, room: str) -> bool:
        return websocket in self.rooms.get(room, ())

    def connected_users(self) -> List[dict]:
        """One entry per online user."""
        seen = {}
        for info in self.socket_users.values():
            seen.setdefault(info["user_id"], dict(info))
        return sorted(seen.values(), key=lambda u: u["user_id"])

    def connection_count(self) -> int:
        return len(self.socket_users)

    # ----------------------------------------------------------------
    # Emitters
    # ----------------------------------------------------------------

    async def send(self, websocket: WebSocket, event: str, data: Any = None) -> bool:
        try:
            await websocket.send_json({"event": event, "data": jsonable_encoder(data)})
            return True
        except Exception as e:
            logger.warning(f"Dropping socket after failed send of '{event}': {e}")
            gone = self.unregister(websocket)
            if gone is not None:
                await self.broadcast("user:offline", {"user_id": gone["user_id"]})
            return False

    async def _send_many(self, sockets: Iterable[WebSocket], event: str, data: Any) -> int:
        sent = 0
        # Copy: a failed send mutates the registry
        for websocket in list(sockets):
            if await self.send(websocket, event, data):
                sent += 1
        return sent

    async def emit_to_user(self, user_id: int, event: str, data: Any = None) -> int:
        return await self._send_many(self.user_sockets.get(user_id, ()), event, data)

    async def emit_to_role(self, role: str, event: str, data: Any = None) -> int:
        return await self.emit_to_room(role_room(role), event, data)

    async def emit_to_room(
        self, room: str, event: str, data: Any = None, exclude: Optional[WebSocket] = None
    ) -> int:
        sockets = [ws for ws in self.rooms.get(room, ()) if ws is not exclude]
        return await self._send_many(sockets, event, data)

    async def broadcast(self, event: str, data: Any = None, exclude: Optional[WebSocket] = None) -> int:
        sockets = [ws for ws in self.socket_users if ws is not exclude]
        return await self._send_many(sockets, event, data)


# Process-wide registry used by routes and scheduled jobs
manager = ConnectionManager()
