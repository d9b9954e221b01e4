"""Auth audit trail: login, logout, and error events.

Append-only writes to the `audit_logs` collection. Never read back by this
service. A failed write is logged and dropped; it must not affect the response
being served.
"""

import logging
from typing import Any, Callable

from auth.types import AuditEvent, AuditEventType
from clients.document_store import DocumentStore
from utils.background import BackgroundTasks
from utils.hashing import one_way_hash
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class AuditLogger:
    """Append-only auth event logger."""

    COLLECTION = "audit_logs"

    def __init__(self, store: DocumentStore, clock: Callable = now_utc):
        self._store = store
        self._clock = clock
        self._background = BackgroundTasks()

    async def log(
        self,
        event: AuditEventType,
        ip_address: str,
        user_id: str | None = None,
        session_id: str | None = None,
        user_agent: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Write one audit event. Never raises."""
        record = AuditEvent(
            event=event,
            user_id=user_id,
            session_id=session_id,
            ip_hash=one_way_hash(ip_address),
            user_agent=user_agent,
            timestamp=self._clock(),
            metadata=metadata,
        )
        try:
            await self._store.add(self.COLLECTION, record.model_dump(mode="json"))
        except Exception:
            logger.exception(f"Failed to write audit event: {event.value}")

    def log_in_background(self, event: AuditEventType, ip_address: str, **kwargs: Any) -> None:
        """Schedule log() without waiting for the write."""
        self._background.spawn(self.log(event, ip_address, **kwargs))

    async def drain(self) -> None:
        """Wait for scheduled audit writes."""
        await self._background.drain()
