"""
Room kind resolution.

A room's name is the only addressing mechanism: the kind of state it carries is
derived from the id once, when the room is first created.
"""
from enum import Enum
from typing import Optional


class RoomKind(str, Enum):
    """Behavioral category of a room instance."""
    COUNTER = "counter"
    GRAPH = "reactflow"
    CHAT = "chat"
    EDITOR = "editor"
    POLLS = "polls"
    PRESENCE = "presence"


# Singleton rooms matched by exact id only
EXACT_ROOMS = {
    "example-room": RoomKind.COUNTER,
}

# Rooms matched by `<prefix>` or `<prefix>-<instance>`, checked in order
PREFIX_ROOMS = [
    ("chat", RoomKind.CHAT),
    ("reactflow", RoomKind.GRAPH),
    ("editor", RoomKind.EDITOR),
    ("polls", RoomKind.POLLS),
    ("presence", RoomKind.PRESENCE),
]


def resolve_kind(room_id: str) -> Optional[RoomKind]:
    """
    Map a room id to its kind.

    Returns None for ids that match no rule; such rooms accept connections
    but have no store attached.
    """
    if room_id in EXACT_ROOMS:
        return EXACT_ROOMS[room_id]

    for prefix, kind in PREFIX_ROOMS:
        if room_id == prefix or room_id.startswith(f"{prefix}-"):
            return kind

    return None
