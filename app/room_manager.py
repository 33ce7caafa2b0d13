"""
Room Manager - WebSocket room lifecycle, dispatch and fanout.

Each room instance is a single-threaded actor: connect, message, close and
HTTP handling for one room all run under that room's lock, in arrival order.
Rooms are created on first use and live until the process exits.
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Type

from identity import IdentityLedger, log_security_event
from registry import ConnectionRegistry
from rooms import RoomKind, resolve_kind
from stores.base import Outbound, RoomStore
from stores.chat import ChatStore
from stores.counter import CounterStore
from stores.editor import EditorStore
from stores.graph import GraphStore
from stores.polls import PollStore
from stores.presence import PresenceStore
from utils.ids import connection_id

logger = logging.getLogger(__name__)

STORE_CLASSES: Dict[RoomKind, Type[RoomStore]] = {
    RoomKind.COUNTER: CounterStore,
    RoomKind.GRAPH: GraphStore,
    RoomKind.CHAT: ChatStore,
    RoomKind.EDITOR: EditorStore,
    RoomKind.POLLS: PollStore,
    RoomKind.PRESENCE: PresenceStore,
}

DEFAULT_MAX_MESSAGE_BYTES = 2 * 1024 * 1024  # chat images travel as data URLs


@dataclass
class Room:
    """One room instance and everything it owns."""
    room_id: str
    kind: Optional[RoomKind]
    created_at: datetime
    registry: ConnectionRegistry = field(default_factory=ConnectionRegistry)
    identities: IdentityLedger = field(default_factory=IdentityLedger)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    store: Optional[RoomStore] = None

    def __post_init__(self):
        if self.kind is not None and self.store is None:
            self.store = STORE_CLASSES[self.kind](self.identities, self.registry)

    @property
    def connection_count(self) -> int:
        return len(self.registry)


@dataclass
class Connection:
    """One open WebSocket session in a room."""
    conn_id: str
    room: Room
    websocket: Any


class RoomManager:
    """
    Owns every room instance, keyed by room id.
    Stores never see sockets; the manager delivers what they return.
    """

    def __init__(self, max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES):
        self.rooms: Dict[str, Room] = {}
        self.max_message_bytes = max_message_bytes

    def get_room(self, room_id: str) -> Optional[Room]:
        """Get room by id, None if it was never created."""
        return self.rooms.get(room_id)

    def get_or_create_room(self, room_id: str) -> Room:
        """Get room by id, creating it (and fixing its kind) on first use."""
        room = self.rooms.get(room_id)
        if room is None:
            kind = resolve_kind(room_id)
            room = Room(
                room_id=room_id,
                kind=kind,
                created_at=datetime.now(timezone.utc),
            )
            self.rooms[room_id] = room
            logger.info(f"Room created: {room_id} (kind={kind.value if kind else None})")
        return room

    async def connect(self, websocket: Any, room_id: str, requested_id: Optional[str] = None) -> Connection:
        """
        Accept a socket into a room and send it the room's snapshot.

        The snapshot goes out under the room lock, before any later broadcast.
        """
        room = self.get_or_create_room(room_id)
        await websocket.accept()

        async with room.lock:
            conn_id = connection_id(requested_id, room.registry)
            room.registry.add(conn_id, websocket)
            logger.info(f"Connected: id={conn_id} room={room_id} peers={room.connection_count}")

            if room.store is not None:
                await self._deliver(room, room.store.on_connect(conn_id))

        return Connection(conn_id=conn_id, room=room, websocket=websocket)

    async def disconnect(self, connection: Connection):
        """Remove a connection and notify the remaining peers."""
        room = connection.room
        conn_id = connection.conn_id

        async with room.lock:
            if not room.registry.remove(conn_id):
                return
            room.identities.forget(conn_id)
            logger.info(f"Disconnected: id={conn_id} room={room.room_id} peers={room.connection_count}")

            if room.store is not None:
                await self._deliver(room, room.store.on_close(conn_id))

    async def handle_message(self, connection: Connection, raw: str):
        """Dispatch one inbound frame to the room's store and fan out the result."""
        room = connection.room
        if room.store is None:
            return

        size = len(raw.encode("utf-8"))
        if size > self.max_message_bytes:
            log_security_event("oversize_message", {
                "room": room.room_id,
                "connection": connection.conn_id,
                "bytes": size,
            })
            return

        async with room.lock:
            logger.debug(f"connection {connection.conn_id} sent message: {raw[:200]}")
            await self._deliver(room, room.store.on_message(connection.conn_id, raw))

    async def handle_request(self, room_id: str, method: str) -> str:
        """Plain HTTP request to a room. Returns the response body."""
        room = self.get_or_create_room(room_id)
        if room.store is None:
            return "ok"

        async with room.lock:
            body, outbound = room.store.on_request(method)
            await self._deliver(room, outbound)
        return body

    async def _deliver(self, room: Room, outbound: Iterable[Outbound]):
        """Deliver outbound messages in order."""
        for message in outbound:
            data = message.data if isinstance(message.data, str) else json.dumps(message.data)

            if message.to is not None:
                websocket = room.registry.get(message.to)
                if websocket is not None:
                    await self._safe_send(websocket, data)
            else:
                await self._broadcast(room, data, exclude=message.exclude)

    async def _broadcast(self, room: Room, data: str, exclude: Iterable[str] = ()):
        """
        Broadcast to every connection in the room except `exclude`.
        Uses asyncio.gather for parallel send.
        """
        tasks: List = [
            self._safe_send(websocket, data)
            for _, websocket in room.registry.recipients(exclude)
        ]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _safe_send(self, websocket: Any, data: str):
        """Best-effort send; a failing peer never affects the others."""
        try:
            await websocket.send_text(data)
        except Exception as e:
            # Connection may be closing; its own receive loop will clean up
            logger.debug(f"Send failed: {e!r}")


# Global room manager instance
room_manager = RoomManager()
