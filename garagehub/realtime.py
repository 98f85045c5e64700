"""
Realtime event hub over FastAPI WebSockets

Every connection joins its private room (user_{id}) and may join the rooms
of conversations it participates in (conversation_{id}). Services publish
events without awaiting delivery; a failed send only drops that socket.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from .auth import resolve_token_user
from .database import get_db
from .models import Conversation, User
from .shared.access import is_conversation_participant

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


def conversation_room(conversation_id: int) -> str:
    return f"conversation_{conversation_id}"


class ConnectionHub:
    """Room registry and fan-out for connected sockets"""

    def __init__(self):
        self.rooms: dict[str, set[WebSocket]] = {}
        self.connections: dict[WebSocket, int] = {}
        self._tasks: set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket, user_id: int) -> None:
        await websocket.accept()
        self.connections[websocket] = user_id
        self.join(websocket, user_room(user_id))
        logger.info(f"🔌 Socket connected for user {user_id} ({len(self.connections)} open)")

    def disconnect(self, websocket: WebSocket) -> Optional[int]:
        user_id = self.connections.pop(websocket, None)
        for room in list(self.rooms):
            members = self.rooms[room]
            members.discard(websocket)
            if not members:
                del self.rooms[room]
        return user_id

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, set()).add(websocket)

    def leave(self, websocket: WebSocket, room: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[room]

    def is_user_connected(self, user_id: int) -> bool:
        return bool(self.rooms.get(user_room(user_id)))

    async def send_to(self, websocket: WebSocket, message: dict[str, Any]) -> None:
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning(f"⚠️ Dropping socket after failed send: {e}")
            self.disconnect(websocket)

    async def send_room(
        self, room: str, event: str, data: Any, exclude: Optional[WebSocket] = None
    ) -> None:
        message = {"event": event, "data": jsonable_encoder(data)}
        for websocket in list(self.rooms.get(room, ())):
            if websocket is not exclude:
                await self.send_to(websocket, message)

    async def broadcast(self, event: str, data: Any, exclude: Optional[WebSocket] = None) -> None:
        message = {"event": event, "data": jsonable_encoder(data)}
        for websocket in list(self.connections):
            if websocket is not exclude:
                await self.send_to(websocket, message)

    def publish(self, room: str, event: str, data: Any) -> None:
        """
        Fire-and-forget emit to a room.

        Schedules delivery on the running event loop and returns at once;
        without listeners or a loop there is nothing to do.
        """
        if not self.rooms.get(room):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, skipping {event} for {room}")
            return

        task = loop.create_task(self.send_room(room, event, data))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


hub = ConnectionHub()


def _set_presence(db: Session, user: User, online: bool) -> None:
    try:
        user.is_online = online
        user.last_active = datetime.utcnow()
        db.commit()
    except Exception as e:
        logger.error(f"❌ Failed to update presence for user {user.id}: {e}")
        db.rollback()


async def _handle_frame(db: Session, websocket: WebSocket, user: User, frame: dict) -> None:
    event = frame.get("event")
    data = frame.get("data")
    if not isinstance(data, dict):
        data = {}

    if event in ("join_room", "leave_room", "typing"):
        conversation_id = data.get("conversation_id")
        conversation = (
            db.query(Conversation).filter(Conversation.id == conversation_id).first()
            if isinstance(conversation_id, int)
            else None
        )
        if not conversation or not is_conversation_participant(conversation, user):
            await hub.send_to(
                websocket, {"event": "error", "data": {"message": "Conversation not found"}}
            )
            return

        room = conversation_room(conversation.id)
        if event == "join_room":
            hub.join(websocket, room)
        elif event == "leave_room":
            hub.leave(websocket, room)
        else:
            await hub.send_room(
                room,
                "typing",
                {
                    "conversation_id": conversation.id,
                    "user_id": user.id,
                    "is_typing": bool(data.get("is_typing", True)),
                },
                exclude=websocket,
            )
        return

    logger.debug(f"Ignoring unknown socket event {event!r} from user {user.id}")


@router.websocket("/ws")
async def socket_endpoint(
    websocket: WebSocket,
    token: str = Query(""),
    db: Session = Depends(get_db),
):
    """Authenticated realtime channel; the bearer token travels as ?token="""
    user = resolve_token_user(db, token) if token else None
    if not user:
        logger.warning("⚠️ Socket rejected: missing or invalid token")
        await websocket.close(code=1008)
        return

    await hub.connect(websocket, user.id)
    _set_presence(db, user, True)
    await hub.broadcast(
        "user_status_change", {"user_id": user.id, "is_online": True}, exclude=websocket
    )

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                logger.warning(f"⚠️ Malformed socket frame from user {user.id}")
                continue
            if isinstance(frame, dict):
                await _handle_frame(db, websocket, user, frame)
    except WebSocketDisconnect:
        logger.info(f"🔌 Socket disconnected for user {user.id}")
    finally:
        hub.disconnect(websocket)
        if not hub.is_user_connected(user.id):
            _set_presence(db, user, False)
            await hub.broadcast(
                "user_status_change",
                {"user_id": user.id, "is_online": False, "last_active": user.last_active},
            )
