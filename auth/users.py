"""User directory: profile records keyed by the provider subject.

The directory is the only writer of `users` documents. Every login overwrites
the profile fields with the provider's latest claims; created_at is written
once and preserved.
"""

import logging
from typing import Callable

from auth.types import User, UserProfile
from clients.document_store import DocumentStore
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class UserDirectory:
    """Document-store operations for users."""

    COLLECTION = "users"

    def __init__(self, store: DocumentStore, clock: Callable = now_utc):
        self._store = store
        self._clock = clock

    async def get_user(self, user_id: str) -> User | None:
        """Find user by provider subject."""
        data = await self._store.get(self.COLLECTION, user_id)
        if data is None:
            return None
        return User.model_validate(data)

    async def upsert_user(self, profile: UserProfile) -> User:
        """Create or refresh a user from login claims.

        Concurrent logins for the same subject race benignly: last write wins
        and every write carries a valid timestamp.
        """
        existing = await self.get_user(profile.user_id)
        now = self._clock()

        user = User(
            **profile.model_dump(),
            created_at=existing.created_at if existing else now,
            updated_at=now,
            last_login_at=now,
        )
        await self._store.set(self.COLLECTION, user.user_id, user.model_dump(mode="json"))

        if existing is None:
            logger.info("Created user record")
        return user
