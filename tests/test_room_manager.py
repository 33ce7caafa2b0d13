import asyncio
import json
import logging

import pytest

from fakes import FakeWebSocket, frame
from room_manager import RoomManager
from rooms import RoomKind


async def join(manager, room_id, conn_id=None):
    websocket = FakeWebSocket()
    connection = await manager.connect(websocket, room_id, conn_id)
    return connection, websocket


@pytest.mark.asyncio
async def test_room_kind_fixed_at_creation(manager):
    room = manager.get_or_create_room("chat-abc")
    assert room.kind is RoomKind.CHAT
    assert manager.get_or_create_room("chat-abc") is room
    assert manager.get_room("chat-xyz") is None


@pytest.mark.asyncio
async def test_unknown_room_accepts_but_ignores(manager):
    connection, websocket = await join(manager, "lobby")

    assert websocket.accepted
    assert connection.room.store is None
    await manager.handle_message(connection, frame(type="chat", payload={"id": "m1"}))
    assert websocket.sent == []
    assert await manager.handle_request("lobby", "POST") == "ok"


@pytest.mark.asyncio
async def test_counter_lifecycle(manager):
    _, first = await join(manager, "example-room")
    second_conn, second = await join(manager, "example-room")

    await manager.handle_message(second_conn, "increment")

    assert first.sent == ["0", "1"]
    assert second.sent == ["0", "1"]
    assert await manager.handle_request("example-room", "GET") == "1"
    assert await manager.handle_request("example-room", "POST") == "2"
    assert first.sent[-1] == "2"


@pytest.mark.asyncio
async def test_client_connection_id_is_used(manager):
    connection, _ = await join(manager, "chat-abc", "my-id")
    clash, _ = await join(manager, "chat-abc", "my-id")

    assert connection.conn_id == "my-id"
    assert clash.conn_id != "my-id"


@pytest.mark.asyncio
async def test_joiner_gets_snapshot_and_peers_get_presence(manager):
    first_conn, first = await join(manager, "chat-abc")
    await manager.handle_message(first_conn, frame(type="chat", payload={"id": "m1", "userId": "u1", "text": "hi"}))
    _, second = await join(manager, "chat-abc")

    assert second.json_messages()[0] == {"type": "init", "payload": [
        {"id": "m1", "userId": "u1", "text": "hi", "ts": second.json_messages()[0]["payload"][0]["ts"]},
    ]}
    assert second.json_messages()[1] == {"type": "presence", "count": 2}
    assert first.json_messages()[-1] == {"type": "presence", "count": 2}


@pytest.mark.asyncio
async def test_sender_never_receives_its_own_relay(manager):
    sender_conn, sender = await join(manager, "reactflow-x")
    _, peer = await join(manager, "reactflow-x")
    sender.sent.clear()
    peer.sent.clear()

    for message in (
        frame(type="add-node", node={"id": "n1"}),
        frame(type="update-node", node={"id": "n1", "data": {}}),
        frame(type="add-edge", edge={"id": "e1"}),
        frame(type="graph", nodes=[], edges=[]),
        frame(type="select", ids=["n1"]),
        frame(type="marquee", rect=None),
        frame(type="cursor", x=1, y=2),
    ):
        await manager.handle_message(sender_conn, message)

    assert sender.sent == []
    assert peer.types() == ["add-node", "update-node", "add-edge", "graph", "select", "marquee", "cursor"]
    assert all(m.get("from", sender_conn.conn_id) == sender_conn.conn_id for m in peer.json_messages())


@pytest.mark.asyncio
async def test_disconnect_sends_cleanup_and_forgets_identity(manager, alice_identity):
    leaving_conn, _ = await join(manager, "reactflow-x")
    _, staying = await join(manager, "reactflow-x")
    await manager.handle_message(leaving_conn, frame(type="identify", payload=alice_identity))
    staying.sent.clear()

    await manager.disconnect(leaving_conn)
    await manager.disconnect(leaving_conn)

    room = leaving_conn.room
    assert staying.json_messages() == [{"type": "cursor-leave", "id": leaving_conn.conn_id}]
    assert leaving_conn.conn_id not in room.registry
    assert leaving_conn.conn_id not in room.identities
    assert room.connection_count == 1


@pytest.mark.asyncio
async def test_presence_roster_excludes_departed(manager):
    first_conn, first = await join(manager, "presence")
    second_conn, _ = await join(manager, "presence")

    await manager.disconnect(second_conn)

    last_roster = first.json_messages()[-1]
    assert last_roster["type"] == "roster"
    assert [entry["userId"] for entry in last_roster["payload"]] == [first_conn.conn_id]


@pytest.mark.asyncio
async def test_rooms_of_same_kind_are_independent(manager):
    a_conn, _ = await join(manager, "editor-a")
    await manager.handle_message(a_conn, frame(type="edit", content="only in a", version=1))

    _, b_socket = await join(manager, "editor-b")
    assert b_socket.json_messages() == [{"type": "init", "content": "", "version": 0}]


@pytest.mark.asyncio
async def test_failing_peer_does_not_break_fanout(manager):
    sender_conn, _ = await join(manager, "polls")
    broken = FakeWebSocket(fail=True)
    await manager.connect(broken, "polls")
    _, healthy = await join(manager, "polls")

    await manager.handle_message(sender_conn, frame(type="create-poll", payload={"question": "Q", "options": ["a", "b"]}))

    assert healthy.types()[-1] == "polls"


@pytest.mark.asyncio
async def test_oversize_messages_are_dropped(caplog):
    manager = RoomManager(max_message_bytes=64)
    sender_conn, _ = await join(manager, "editor")

    with caplog.at_level(logging.WARNING, logger="security"):
        await manager.handle_message(sender_conn, frame(type="edit", content="x" * 100, version=1))

    assert sender_conn.room.store.content == ""
    assert "oversize_message" in caplog.text


@pytest.mark.asyncio
async def test_messages_in_one_room_are_processed_in_order(manager):
    sender_conn, _ = await join(manager, "editor")
    _, peer = await join(manager, "editor")
    peer.sent.clear()

    await asyncio.gather(*(
        manager.handle_message(sender_conn, frame(type="edit", content=str(v), version=v))
        for v in range(1, 21)
    ))

    assert [json.loads(data)["version"] for data in peer.sent] == list(range(1, 21))
    assert sender_conn.room.store.version == 20


@pytest.mark.asyncio
async def test_chat_close_rebroadcasts_presence(manager):
    _, staying = await join(manager, "chat-abc")
    leaving_conn, _ = await join(manager, "chat-abc")
    staying.sent.clear()

    await manager.disconnect(leaving_conn)

    assert staying.json_messages() == [{"type": "presence", "count": 1}]


@pytest.mark.asyncio
async def test_message_limit_counts_utf8_bytes(caplog):
    manager = RoomManager(max_message_bytes=100)
    sender_conn, _ = await join(manager, "editor")
    raw = '{"type": "edit", "content": "' + "é" * 40 + '", "version": 1}'
    assert len(raw) <= 100 < len(raw.encode("utf-8"))

    with caplog.at_level(logging.WARNING, logger="security"):
        await manager.handle_message(sender_conn, raw)

    assert sender_conn.room.store.content == ""
    assert f"'bytes': {len(raw.encode('utf-8'))}" in caplog.text
