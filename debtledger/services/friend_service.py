import logging
import secrets
from typing import List, Optional

from debtledger.core.errors import AccessCodeExhausted, FriendNotFound
from debtledger.models.friend import Friend
from debtledger.repositories.store import DuplicateAccessCode, LedgerStore

logger = logging.getLogger(__name__)


def generate_access_code() -> str:
    """Random 6-digit code (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


class FriendService:
    def __init__(self, store: LedgerStore, max_attempts: int = 10):
        self.store = store
        self.max_attempts = max_attempts

    async def create(self, name: str) -> Friend:
        """Create a friend with zero balance and a fresh unique access code."""
        for _ in range(self.max_attempts):
            friend = Friend(name=name, access_code=generate_access_code())
            try:
                await self.store.insert_friend(friend)
            except DuplicateAccessCode:
                logger.debug("Access code collision, regenerating")
                continue
            logger.info("Created friend %s (%s)", friend.id, name)
            return friend

        raise AccessCodeExhausted(f"No free access code after {self.max_attempts} attempts")

    async def get(self, friend_id: str) -> Friend:
        friend = await self.store.get_friend(friend_id)
        if friend is None:
            raise FriendNotFound(friend_id)
        return friend

    async def find_by_access_code(self, access_code: str) -> Optional[Friend]:
        return await self.store.get_friend_by_access_code(access_code.strip())

    async def list(self) -> List[Friend]:
        return await self.store.list_friends()

    async def delete(self, friend_id: str) -> int:
        """Delete a friend together with all of its transactions."""
        return await self.store.delete_friend(friend_id)
