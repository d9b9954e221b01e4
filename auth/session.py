"""Session lifecycle: durable session documents behind an in-process cache.

Sessions are resolved on every authenticated request, so reads go through a
bounded LRU cache (default 1000 entries, 60s TTL) holding the denormalized
session/user pair. The document store stays the source of truth:

- Cached pairs may be up to the cache TTL stale (profile drift only).
- delete_session() evicts synchronously; a deleted session never resolves.
- expires_at is absolute. Expiry is enforced lazily when a session is read.
- last_seen_at is refreshed at most every few minutes, in the background.
"""

import logging
import secrets
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from auth.config import AuthConfig
from auth.exceptions import SessionNotFoundError, UserNotFoundError
from auth.types import ResolvedSession, Session, User
from auth.users import UserDirectory
from clients.document_store import DocumentStore
from utils.background import BackgroundTasks
from utils.hashing import one_way_hash
from utils.timezone import now_utc, to_iso

logger = logging.getLogger(__name__)


@dataclass
class CachedSession:
    session: Session
    user: User
    last_seen_update_time: datetime
    cached_at: datetime


class SessionCache:
    """LRU cache with a per-entry TTL measured from insertion."""

    def __init__(self, max_size: int, ttl: timedelta, clock: Callable = now_utc):
        self._entries: OrderedDict[str, CachedSession] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def get(self, session_id: str) -> CachedSession | None:
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        if self._clock() - entry.cached_at > self._ttl:
            del self._entries[session_id]
            return None
        self._entries.move_to_end(session_id)
        return entry

    def set(self, session_id: str, entry: CachedSession) -> None:
        self._entries[session_id] = entry
        self._entries.move_to_end(session_id)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def delete(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    def delete_user(self, user_id: str) -> int:
        doomed = [sid for sid, entry in self._entries.items() if entry.user.user_id == user_id]
        for sid in doomed:
            del self._entries[sid]
        return len(doomed)


class SessionStore:
    """Issues, resolves, and revokes sessions.

    The cache and the background-task set are owned by the instance; build a
    fresh store per process (or per test).
    """

    COLLECTION = "sessions"

    def __init__(
        self,
        store: DocumentStore,
        users: UserDirectory,
        config: AuthConfig,
        clock: Callable = now_utc,
    ):
        self._store = store
        self._users = users
        self._config = config
        self._clock = clock
        self._cache = SessionCache(
            max_size=config.session_cache_size,
            ttl=timedelta(seconds=config.session_cache_ttl_seconds),
            clock=clock,
        )
        self._last_seen_interval = timedelta(minutes=config.last_seen_update_minutes)
        self._background = BackgroundTasks()

    @property
    def cache(self) -> SessionCache:
        return self._cache

    async def create_session(
        self,
        user_id: str,
        ip_address: str,
        user_agent: str | None = None,
    ) -> str:
        """Create a session for an existing user and return its id.

        Raises:
            UserNotFoundError: No directory record for user_id.
        """
        user = await self._users.get_user(user_id)
        if user is None:
            raise UserNotFoundError("Cannot create session for unknown user")

        now = self._clock()
        session = Session(
            session_id=secrets.token_hex(32),
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(days=self._config.session_expiry_days),
            last_seen_at=now,
            csrf_secret=secrets.token_hex(32),
            ip_hash=one_way_hash(ip_address),
            ua_hash=one_way_hash(user_agent) if user_agent else None,
        )

        await self._store.set(self.COLLECTION, session.session_id, session.model_dump(mode="json"))

        self._cache.set(
            session.session_id,
            CachedSession(session=session, user=user, last_seen_update_time=now, cached_at=now),
        )
        return session.session_id

    async def resolve_session(self, session_id: str) -> ResolvedSession:
        """Return the live session and its user.

        Raises:
            SessionNotFoundError: Session missing, expired, or orphaned.
        """
        now = self._clock()

        cached = self._cache.get(session_id)
        if cached is not None:
            if cached.session.expires_at < now:
                await self.delete_session(session_id)
                raise SessionNotFoundError("Session expired")
            if now - cached.last_seen_update_time > self._last_seen_interval:
                cached.last_seen_update_time = now
                self._background.spawn(self._update_last_seen(session_id, now))
            return ResolvedSession(session=cached.session, user=cached.user)

        data = await self._store.get(self.COLLECTION, session_id)
        if data is None:
            raise SessionNotFoundError("Session not found")

        session = Session.model_validate(data)

        if session.expires_at < now:
            await self.delete_session(session_id)
            raise SessionNotFoundError("Session expired")

        user = await self._users.get_user(session.user_id)
        if user is None:
            logger.warning("Deleting session whose user no longer exists")
            await self.delete_session(session_id)
            raise SessionNotFoundError("Session user not found")

        self._cache.set(
            session_id,
            CachedSession(session=session, user=user, last_seen_update_time=now, cached_at=now),
        )

        if now - session.last_seen_at > self._last_seen_interval:
            self._background.spawn(self._update_last_seen(session_id, now))

        return ResolvedSession(session=session, user=user)

    async def delete_session(self, session_id: str) -> None:
        """Revoke a session. Safe to call with an unknown id."""
        self._cache.delete(session_id)
        await self._store.delete(self.COLLECTION, session_id)

    def invalidate_user(self, user_id: str) -> int:
        """Evict every cached session belonging to user_id."""
        return self._cache.delete_user(user_id)

    async def delete_user_sessions(self, user_id: str) -> int:
        """Revoke every session belonging to user_id. Returns count deleted."""
        self.invalidate_user(user_id)
        return await self._store.delete_where(self.COLLECTION, {"user_id": user_id})

    async def drain(self) -> None:
        """Wait for pending last_seen_at writes."""
        await self._background.drain()

    async def _update_last_seen(self, session_id: str, seen_at: datetime) -> None:
        try:
            await self._store.update(
                self.COLLECTION, session_id, {"last_seen_at": to_iso(seen_at)}
            )
        except Exception:
            logger.warning("Failed to update last_seen_at", exc_info=True)
