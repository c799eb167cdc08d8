import logging
from typing import Optional

from debtledger.core.config import Settings
from debtledger.db.mongo import close_mongo_connection, connect_to_mongo
from debtledger.repositories.memory_store import InMemoryLedgerStore
from debtledger.repositories.mongo_store import MongoLedgerStore
from debtledger.repositories.store import LedgerStore
from debtledger.services.change_feed import ChangeFeed

logger = logging.getLogger(__name__)


class StoreState:
    store: Optional[LedgerStore] = None
    feed: Optional[ChangeFeed] = None


state = StoreState()


async def open_store(settings: Settings) -> LedgerStore:
    """Create the configured store and attach the change feed."""
    if settings.STORE_BACKEND == "memory":
        store = InMemoryLedgerStore()
    else:
        db = await connect_to_mongo(settings)
        store = MongoLedgerStore(db, max_retries=settings.LEDGER_MAX_RETRIES)

    state.store = store
    state.feed = ChangeFeed(store)
    logger.info("Ledger store ready (%s)", settings.STORE_BACKEND)
    return store


async def close_store():
    if state.feed is not None:
        state.feed.close()
    state.store = None
    state.feed = None
    await close_mongo_connection()


def get_store() -> LedgerStore:
    """Return the active ledger store."""
    if state.store is None:
        raise RuntimeError("Ledger store is not initialised")
    return state.store


def get_change_feed() -> ChangeFeed:
    if state.feed is None:
        raise RuntimeError("Change feed is not initialised")
    return state.feed
