"""
Shared counter. Speaks bare text, not JSON.
"""
from typing import List, Tuple

from rooms import RoomKind
from stores.base import Outbound, RoomStore, broadcast, reply

COUNTER_MODULUS = 100


class CounterStore(RoomStore):
    kind = RoomKind.COUNTER

    def __init__(self, ledger, registry):
        super().__init__(ledger, registry)
        self.count = 0

    def on_connect(self, conn_id: str) -> List[Outbound]:
        return [reply(conn_id, str(self.count))]

    def on_message(self, conn_id: str, raw: str) -> List[Outbound]:
        if raw == "increment":
            return self.increment()
        return []

    def on_request(self, method: str) -> Tuple[str, List[Outbound]]:
        outbound = self.increment() if method == "POST" else []
        return str(self.count), outbound

    def increment(self) -> List[Outbound]:
        self.count = (self.count + 1) % COUNTER_MODULUS
        return [broadcast(str(self.count))]
