import pytest

from rooms import RoomKind, resolve_kind


@pytest.mark.parametrize("room_id, kind", [
    ("example-room", RoomKind.COUNTER),
    ("chat", RoomKind.CHAT),
    ("chat-abc", RoomKind.CHAT),
    ("reactflow", RoomKind.GRAPH),
    ("reactflow-team1", RoomKind.GRAPH),
    ("editor-notes", RoomKind.EDITOR),
    ("polls", RoomKind.POLLS),
    ("polls-x", RoomKind.POLLS),
    ("presence", RoomKind.PRESENCE),
    ("presence-default", RoomKind.PRESENCE),
])
def test_known_rooms(room_id, kind):
    assert resolve_kind(room_id) is kind


@pytest.mark.parametrize("room_id", [
    "default",
    "chatroom",
    "example-room-2",
    "counter",
    "Chat-abc",
    "",
])
def test_unknown_rooms_have_no_kind(room_id):
    assert resolve_kind(room_id) is None
