"""Pending login attempts (state, nonce, PKCE verifier) keyed by state.

An attempt lives until its callback consumes it or it ages out. Expiry is
checked lazily on access; consumption removes the entry in the same step that
reads it, so a replayed state finds nothing.
"""

import logging
from datetime import timedelta
from typing import Callable, Protocol

from starlette.concurrency import run_in_threadpool

from auth.config import AuthConfig
from auth.types import AuthAttempt
from clients.valkey_client import ValkeyClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class AttemptStore(Protocol):
    async def put(self, attempt: AuthAttempt) -> None: ...

    async def consume(self, state: str) -> AuthAttempt | None: ...


class MemoryAttemptStore:
    """Process-local attempt store.

    consume() has no await between lookup and removal, so two coroutines
    completing the same state cannot both receive the attempt.
    """

    def __init__(self, config: AuthConfig, clock: Callable = now_utc):
        self._ttl = timedelta(minutes=config.login_attempt_expiry_minutes)
        self._clock = clock
        self._attempts: dict[str, AuthAttempt] = {}

    def __len__(self) -> int:
        return len(self._attempts)

    def _expired(self, attempt: AuthAttempt) -> bool:
        return self._clock() - attempt.created_at > self._ttl

    async def put(self, attempt: AuthAttempt) -> None:
        self.purge_expired()
        self._attempts[attempt.state] = attempt

    async def consume(self, state: str) -> AuthAttempt | None:
        attempt = self._attempts.pop(state, None)
        if attempt is None or self._expired(attempt):
            return None
        return attempt

    def purge_expired(self) -> int:
        """Drop aged-out attempts. Safe to run alongside consume()."""
        stale = [state for state, attempt in self._attempts.items() if self._expired(attempt)]
        for state in stale:
            self._attempts.pop(state, None)
        if stale:
            logger.debug(f"Purged {len(stale)} expired login attempts")
        return len(stale)


class ValkeyAttemptStore:
    """Attempt store shared across processes.

    Valkey TTL handles expiry; GETDEL makes consumption atomic.
    """

    KEY_PREFIX = "login_attempt:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._ttl_seconds = config.login_attempt_expiry_minutes * 60

    def _key(self, state: str) -> str:
        return f"{self.KEY_PREFIX}{state}"

    async def put(self, attempt: AuthAttempt) -> None:
        await run_in_threadpool(
            self._valkey.set_json,
            self._key(attempt.state),
            attempt.model_dump(mode="json"),
            self._ttl_seconds,
        )

    async def consume(self, state: str) -> AuthAttempt | None:
        data = await run_in_threadpool(self._valkey.getdel_json, self._key(state))
        if data is None:
            return None
        return AuthAttempt.model_validate(data)
