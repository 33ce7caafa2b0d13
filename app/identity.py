"""
Identity ledger and trust-boundary logging.

Clients assert their own display identity. Once a connection sends `identify`,
the server remembers that identity and uses it in place of whatever later
payloads claim. Connections that never identify are trusted as-is; this is a
known spoofing surface and is logged, not blocked.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from room_models import IdentityRecord

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
security_logger = logging.getLogger('security')

IDENTITY_FIELDS = ("userId", "name", "color", "avatar")


class IdentityLedger:
    """Per-room record of the identity each connection has bound."""

    def __init__(self):
        self._records: Dict[str, IdentityRecord] = {}

    def bind(self, conn_id: str, record: IdentityRecord):
        """Bind or overwrite the identity of a connection."""
        previous = self._records.get(conn_id)
        if previous and previous.userId != record.userId:
            log_security_event("identity_rebound", {
                "connection": conn_id,
                "from": previous.userId,
                "to": record.userId,
            })
        self._records[conn_id] = record

    def get(self, conn_id: str) -> Optional[IdentityRecord]:
        return self._records.get(conn_id)

    def forget(self, conn_id: str):
        self._records.pop(conn_id, None)

    def __contains__(self, conn_id: str) -> bool:
        return conn_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def enrich(
        self,
        conn_id: str,
        asserted: Dict[str, Any],
        fields: Iterable[str] = IDENTITY_FIELDS,
    ) -> Dict[str, Any]:
        """
        Resolve display fields for a message sent by `conn_id`.

        Each field comes from the bound identity when it has a value there,
        otherwise from the client-asserted payload.

        Args:
            conn_id: The sending connection
            asserted: Fields the client put in its payload
            fields: Which identity fields to resolve

        Returns:
            Mapping of field name to resolved value (may be None)
        """
        record = self._records.get(conn_id)
        if record is None:
            security_logger.debug(f"Unbound identity for {conn_id}, trusting payload")
            return {name: asserted.get(name) for name in fields}

        bound = record.model_dump()
        return {
            name: bound[name] if bound.get(name) is not None else asserted.get(name)
            for name in fields
        }


def log_security_event(event_type: str, details: dict):
    """Log a security-relevant event."""
    security_logger.warning(f"SECURITY_EVENT: {event_type} - {details}")
