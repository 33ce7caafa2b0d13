"""
Base class for room state stores.

A store owns the authoritative state of one room instance. Lifecycle hooks and
message handlers never talk to sockets: they mutate state and return the
outbound messages the room manager should deliver.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from identity import IdentityLedger
from registry import ConnectionRegistry
from room_models import IdentityRecord
from rooms import RoomKind

logger = logging.getLogger(__name__)


@dataclass
class Outbound:
    """A message to deliver: to one connection, or to the room minus `exclude`."""
    data: Union[str, Dict[str, Any]]
    to: Optional[str] = None
    exclude: Tuple[str, ...] = ()


def reply(conn_id: str, data: Union[str, Dict[str, Any]]) -> Outbound:
    """Send only to `conn_id`."""
    return Outbound(data=data, to=conn_id)


def broadcast(data: Union[str, Dict[str, Any]], exclude: Tuple[str, ...] = ()) -> Outbound:
    """Send to every connection in the room except `exclude`."""
    return Outbound(data=data, exclude=exclude)


def payload_of(message: Dict[str, Any]) -> Dict[str, Any]:
    """Fields of a message, whether sent flat or wrapped in `payload`."""
    payload = message.get("payload")
    if isinstance(payload, dict):
        return payload
    return message


def compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values, so absent optional fields are absent on the wire."""
    return {key: value for key, value in data.items() if value is not None}


class RoomStore:
    """
    Shared dispatch for JSON-speaking stores.

    Inbound messages are `{"type": ..., ...}` envelopes. A message of type
    `add-node` is routed to `handle_add_node(conn_id, message)`. Malformed
    envelopes, unknown types and payloads that fail validation are dropped
    without a reply.
    """

    kind: RoomKind

    def __init__(self, ledger: IdentityLedger, registry: ConnectionRegistry):
        self.ledger = ledger
        self.registry = registry

    def on_connect(self, conn_id: str) -> List[Outbound]:
        """Snapshot for a newly registered connection."""
        return []

    def on_close(self, conn_id: str) -> List[Outbound]:
        """Cleanup after a connection left the registry."""
        return []

    def on_request(self, method: str) -> Tuple[str, List[Outbound]]:
        """Plain HTTP request to the room. Returns (body, outbound)."""
        return "ok", []

    def on_message(self, conn_id: str, raw: str) -> List[Outbound]:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"Dropping malformed message from {conn_id}")
            return []

        if not isinstance(message, dict):
            return []

        msg_type = message.get("type")
        if not isinstance(msg_type, str) or "_" in msg_type:
            return []

        # Wire types are hyphenated: `add-node` -> handle_add_node
        handler = getattr(self, "handle_" + msg_type.replace("-", "_"), None)
        if handler is None:
            logger.debug(f"Ignoring unknown message type {msg_type!r} in {self.kind.value}")
            return []

        try:
            return handler(conn_id, message) or []
        except ValidationError as e:
            logger.debug(f"Invalid {msg_type!r} from {conn_id}: {e.error_count()} error(s)")
            return []

    def handle_identify(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        """Bind the sender's display identity in the ledger."""
        record = IdentityRecord.model_validate(payload_of(message))
        self.ledger.bind(conn_id, record)
        return self.after_identify(conn_id, message)

    def after_identify(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        return []
