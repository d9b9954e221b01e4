"""Tests for AuditLogger - append-only, never fails the caller."""

from unittest.mock import AsyncMock, Mock

from auth.security_logger import AuditLogger
from auth.types import AuditEventType
from clients.document_store import MemoryDocumentStore
from utils.hashing import one_way_hash


class TestLog:

    async def test_writes_event(self, audit, store, clock):
        await audit.log(
            AuditEventType.LOGIN,
            "203.0.113.9",
            user_id="google-sub-1",
            session_id="s" * 64,
            user_agent="pytest-agent",
        )

        [(_, record)] = await store.query("audit_logs", {})
        assert record["event"] == "login"
        assert record["user_id"] == "google-sub-1"
        assert record["session_id"] == "s" * 64
        assert record["user_agent"] == "pytest-agent"
        assert record["timestamp"].startswith("2026-01-15T12:00:00")

    async def test_stores_ip_hash_only(self, audit, store):
        await audit.log(AuditEventType.ERROR, "203.0.113.9")

        [(_, record)] = await store.query("audit_logs", {})
        assert record["ip_hash"] == one_way_hash("203.0.113.9")
        assert "203.0.113.9" not in str(record)

    async def test_metadata_kept(self, audit, store):
        await audit.log(AuditEventType.ERROR, "203.0.113.9", metadata={"error": "oauth_error"})

        [(_, record)] = await store.query("audit_logs", {})
        assert record["metadata"] == {"error": "oauth_error"}

    async def test_each_event_is_a_new_document(self, audit, store):
        await audit.log(AuditEventType.LOGIN, "203.0.113.9")
        await audit.log(AuditEventType.LOGOUT, "203.0.113.9")

        assert len(await store.query("audit_logs", {})) == 2

    async def test_store_failure_is_swallowed(self, clock):
        broken = Mock(spec=MemoryDocumentStore)
        broken.add = AsyncMock(side_effect=RuntimeError("write failed"))
        audit = AuditLogger(broken, clock)

        await audit.log(AuditEventType.LOGIN, "203.0.113.9")

        broken.add.assert_awaited_once()


class TestLogInBackground:

    async def test_written_after_drain(self, audit, store):
        audit.log_in_background(AuditEventType.LOGOUT, "203.0.113.9", user_id="google-sub-1")
        await audit.drain()

        [(_, record)] = await store.query("audit_logs", {"event": "logout"})
        assert record["user_id"] == "google-sub-1"
