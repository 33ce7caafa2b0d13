"""
Single shared text buffer per room. Edits overwrite; the last one processed wins.
"""
from typing import Any, Dict, List

from room_models import DocumentEdit, TextCursor
from rooms import RoomKind
from stores.base import Outbound, RoomStore, broadcast, compact, payload_of, reply


class EditorStore(RoomStore):
    kind = RoomKind.EDITOR

    def __init__(self, ledger, registry):
        super().__init__(ledger, registry)
        self.content = ""
        self.version = 0

    def on_connect(self, conn_id: str) -> List[Outbound]:
        return [reply(conn_id, {"type": "init", "content": self.content, "version": self.version})]

    def handle_edit(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        edit = DocumentEdit.model_validate(payload_of(message))
        # Version is taken as supplied, no monotonicity check
        self.content = edit.content
        self.version = edit.version
        return [broadcast(
            {"type": "edit", "content": self.content, "version": self.version},
            exclude=(conn_id,),
        )]

    def handle_cursor(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        cursor = TextCursor.model_validate(payload_of(message))
        ident = self.ledger.enrich(conn_id, cursor.model_dump(), ("name", "color", "avatar"))
        return [broadcast(
            compact({
                "type": "cursor",
                "from": conn_id,
                "pos": cursor.pos,
                "selStart": cursor.selStart,
                "selEnd": cursor.selEnd,
                **ident,
            }),
            exclude=(conn_id,),
        )]
