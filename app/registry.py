"""
Per-room registry of open connections.
"""
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple


class ConnectionRegistry:
    """Open connections of one room instance, keyed by connection id."""

    def __init__(self):
        self._sockets: Dict[str, Any] = {}

    def add(self, conn_id: str, websocket: Any):
        self._sockets[conn_id] = websocket

    def remove(self, conn_id: str) -> bool:
        """Remove a connection. Returns False if it was not registered."""
        return self._sockets.pop(conn_id, None) is not None

    def get(self, conn_id: str) -> Optional[Any]:
        return self._sockets.get(conn_id)

    def recipients(self, exclude: Iterable[str] = ()) -> Iterator[Tuple[str, Any]]:
        """Yield (conn_id, websocket) pairs, skipping excluded ids."""
        skipped = set(exclude)
        for conn_id, websocket in list(self._sockets.items()):
            if conn_id not in skipped:
                yield conn_id, websocket

    def __contains__(self, conn_id: str) -> bool:
        return conn_id in self._sockets

    def __len__(self) -> int:
        return len(self._sockets)
