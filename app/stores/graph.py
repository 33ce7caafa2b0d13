"""
Collaborative node/edge board.

Nodes and edges are stored as the clients sent them; only their `id` is
inspected. Selection outlines, drag marquees and pointer cursors are relayed
to peers but never stored.
"""
from typing import Any, Dict, List

from room_models import GraphElement, GraphSnapshot, Marquee, PointerCursor, Selection
from rooms import RoomKind
from stores.base import Outbound, RoomStore, broadcast, compact, reply


class GraphStore(RoomStore):
    kind = RoomKind.GRAPH

    def __init__(self, ledger, registry):
        super().__init__(ledger, registry)
        self.nodes: List[Dict[str, Any]] = []
        self.edges: List[Dict[str, Any]] = []

    def on_connect(self, conn_id: str) -> List[Outbound]:
        return [reply(conn_id, {"type": "init", "nodes": self.nodes, "edges": self.edges})]

    def on_close(self, conn_id: str) -> List[Outbound]:
        # Peers drop the stale cursor overlay
        return [broadcast({"type": "cursor-leave", "id": conn_id}, exclude=(conn_id,))]

    # ============ STORED MUTATIONS ============

    def handle_add_node(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        node = message.get("node")
        GraphElement.model_validate(node)
        self.nodes.append(node)
        return [broadcast({"type": "add-node", "node": node}, exclude=(conn_id,))]

    def handle_update_node(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        node = message.get("node")
        node_id = GraphElement.model_validate(node).id

        for index, existing in enumerate(self.nodes):
            if existing.get("id") == node_id:
                self.nodes[index] = node
                return [broadcast({"type": "update-node", "node": node}, exclude=(conn_id,))]

        return []

    def handle_add_edge(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        edge = message.get("edge")
        GraphElement.model_validate(edge)
        self.edges.append(edge)
        return [broadcast({"type": "add-edge", "edge": edge}, exclude=(conn_id,))]

    def handle_graph(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        """Wholesale replace; the last graph processed wins."""
        GraphSnapshot.model_validate(message)
        self.nodes = list(message["nodes"])
        self.edges = list(message["edges"])
        return [broadcast(
            {"type": "graph", "nodes": self.nodes, "edges": self.edges},
            exclude=(conn_id,),
        )]

    def handle_reset(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        self.nodes = []
        self.edges = []
        return [broadcast({"type": "reset"})]

    # ============ EPHEMERAL RELAYS ============

    def handle_select(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        selection = Selection.model_validate(message)
        ident = self.ledger.enrich(conn_id, selection.model_dump(), ("color", "name"))
        return [broadcast(
            compact({"type": "select", "ids": selection.ids, "from": conn_id, **ident}),
            exclude=(conn_id,),
        )]

    def handle_marquee(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        marquee = Marquee.model_validate(message)
        ident = self.ledger.enrich(conn_id, marquee.model_dump(), ("color", "name"))
        rect = marquee.rect.model_dump() if marquee.rect else None
        # rect stays on the wire as null: it tells peers the drag ended
        return [broadcast(
            {"type": "marquee", "rect": rect, "from": conn_id, **compact(ident)},
            exclude=(conn_id,),
        )]

    def handle_cursor(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        cursor = PointerCursor.model_validate(message)
        ident = self.ledger.enrich(conn_id, cursor.model_dump(), ("color", "name", "avatar"))
        return [broadcast(
            compact({"type": "cursor", "from": conn_id, "x": cursor.x, "y": cursor.y, **ident}),
            exclude=(conn_id,),
        )]

    def handle_cursor_leave(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        # Clients send a placeholder id; only the sender's own cursor may be removed
        return [broadcast({"type": "cursor-leave", "id": conn_id}, exclude=(conn_id,))]
