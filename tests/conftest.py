import pytest

from fakes import FakeWebSocket
from identity import IdentityLedger
from registry import ConnectionRegistry
from room_manager import RoomManager


@pytest.fixture
def ledger():
    return IdentityLedger()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def make_store(ledger, registry):
    """Build a store and register the given connection ids with it."""
    def _make(store_cls, *conn_ids):
        for conn_id in conn_ids:
            registry.add(conn_id, FakeWebSocket())
        return store_cls(ledger, registry)
    return _make


@pytest.fixture
def manager():
    return RoomManager()


@pytest.fixture
def alice_identity():
    return {"userId": "u-alice", "name": "Alice", "color": "#f00", "avatar": "data:image/png;base64,AAA"}
