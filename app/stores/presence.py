"""
Who is connected, and which page each of them is looking at.
"""
from typing import Any, Dict, List

from room_models import IdentityRecord, PageChange, PresenceEntry
from rooms import RoomKind
from stores.base import Outbound, RoomStore, broadcast, payload_of

PROVISIONAL_COLOR = "#888"
PROVISIONAL_PAGE = "#/counter"


class PresenceStore(RoomStore):
    kind = RoomKind.PRESENCE

    def __init__(self, ledger, registry):
        super().__init__(ledger, registry)
        self.entries: Dict[str, PresenceEntry] = {}

    def roster(self) -> Outbound:
        """Full roster to every connection."""
        entries = [entry.model_dump(exclude_none=True) for entry in self.entries.values()]
        return broadcast({"type": "roster", "payload": entries})

    def on_connect(self, conn_id: str) -> List[Outbound]:
        # Placeholder until the client identifies
        self.entries[conn_id] = PresenceEntry(
            userId=conn_id,
            name=conn_id[:4],
            color=PROVISIONAL_COLOR,
            page=PROVISIONAL_PAGE,
        )
        return [self.roster()]

    def on_close(self, conn_id: str) -> List[Outbound]:
        self.entries.pop(conn_id, None)
        return [self.roster()]

    def handle_identify(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        # Validate the full entry first so ledger and roster change together
        entry = PresenceEntry.model_validate(payload_of(message))
        self.ledger.bind(conn_id, IdentityRecord(**entry.model_dump(exclude={"page"})))
        self.entries[conn_id] = entry
        return [self.roster()]

    def handle_page(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        entry = self.entries.get(conn_id)
        if entry is None:
            return []
        entry.page = PageChange.model_validate(payload_of(message)).page
        return [self.roster()]
