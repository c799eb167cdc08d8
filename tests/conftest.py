from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from debtledger.core.auth import ROLE_ADMIN, ADMIN_SUBJECT, ROLE_FRIEND, create_access_token
from debtledger.db.session import get_store
from debtledger.main import app
from debtledger.models.friend import Friend
from debtledger.repositories.memory_store import InMemoryLedgerStore
from debtledger.services.friend_service import FriendService
from debtledger.services.ledger_service import LedgerService
from debtledger.services.split_service import SplitService


@pytest.fixture
def store():
    """Fresh in-memory ledger store."""
    return InMemoryLedgerStore()


@pytest.fixture
def ledger(store):
    return LedgerService(store)


@pytest.fixture
def friends(store):
    return FriendService(store)


@pytest.fixture
def splitter(store, ledger):
    return SplitService(store, ledger)


@pytest_asyncio.fixture
async def alice(store) -> Friend:
    friend = Friend(name="Alice", access_code="111111")
    return await store.insert_friend(friend)


@pytest_asyncio.fixture
async def bob(store) -> Friend:
    friend = Friend(name="Bob", access_code="222222")
    return await store.insert_friend(friend)


@pytest.fixture
def at():
    """Deterministic timestamps: ``at(n)`` is n minutes after a fixed origin."""
    origin = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    return lambda minutes: origin + timedelta(minutes=minutes)


@pytest.fixture
def mock_db():
    """Mocked Motor database for MongoLedgerStore tests."""
    collections = {}
    for name in ("friends", "transactions", "bills"):
        collection = MagicMock()
        collection.insert_one = AsyncMock()
        collection.find_one = AsyncMock(return_value=None)
        collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1))
        collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
        collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=0))
        collections[name] = collection

    transaction_ctx = MagicMock()
    transaction_ctx.__aenter__ = AsyncMock(return_value=None)
    transaction_ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.start_transaction = MagicMock(return_value=transaction_ctx)

    db = MagicMock()
    db.__getitem__.side_effect = lambda name: collections[name]
    db.client.start_session = AsyncMock(return_value=session)
    db.session = session
    return db


@pytest.fixture
def client(store):
    """Test client backed by the in-memory store (lifespan not started)."""
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token(ADMIN_SUBJECT, ROLE_ADMIN)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def friend_headers():
    def _headers(friend_id: str):
        token = create_access_token(friend_id, ROLE_FRIEND)
        return {"Authorization": f"Bearer {token}"}
    return _headers
