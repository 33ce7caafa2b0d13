"""
Append-only chat log with typing indicators, reactions and a presence count.
"""
from typing import Any, Dict, List

from room_models import ChatMessage, Reaction
from rooms import RoomKind
from stores.base import Outbound, RoomStore, broadcast, payload_of, reply


class ChatStore(RoomStore):
    kind = RoomKind.CHAT

    def __init__(self, ledger, registry):
        super().__init__(ledger, registry)
        self.history: List[ChatMessage] = []

    def presence(self) -> Dict[str, Any]:
        return {"type": "presence", "count": len(self.registry)}

    def snapshot(self) -> List[Dict[str, Any]]:
        return [message.model_dump(exclude_none=True) for message in self.history]

    def on_connect(self, conn_id: str) -> List[Outbound]:
        presence = self.presence()
        return [
            reply(conn_id, {"type": "init", "payload": self.snapshot()}),
            reply(conn_id, presence),
            broadcast(presence, exclude=(conn_id,)),
        ]

    def on_close(self, conn_id: str) -> List[Outbound]:
        return [broadcast(self.presence())]

    def after_identify(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        return [broadcast(self.presence())]

    def handle_chat(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        incoming = ChatMessage.model_validate(message.get("payload"))

        # The bound identity wins over whatever the payload claims
        for field, value in self.ledger.enrich(conn_id, incoming.model_dump()).items():
            setattr(incoming, field, value)

        self.history.append(incoming)
        return [broadcast(
            {"type": "chat", "payload": incoming.model_dump(exclude_none=True)},
            exclude=(conn_id,),
        )]

    def handle_typing(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        # Not stored; receivers expire the indicator themselves
        return [broadcast({"type": "typing", "payload": {"from": conn_id}}, exclude=(conn_id,))]

    def handle_react(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        reaction = Reaction.model_validate(payload_of(message))

        target = next((m for m in self.history if m.id == reaction.id), None)
        if target is None:
            return []

        if target.reactions is None:
            target.reactions = {}
        target.reactions[reaction.emoji] = target.reactions.get(reaction.emoji, 0) + 1

        return [broadcast(
            {"type": "react", "payload": {"id": reaction.id, "emoji": reaction.emoji}},
            exclude=(conn_id,),
        )]
