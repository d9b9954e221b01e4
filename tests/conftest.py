"""Shared test fixtures for the Tasko test suite."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env before anything reads env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton so no test inherits cached secrets
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from auth.config import AuthConfig, GoogleOAuthConfig
from auth.security_logger import AuditLogger
from auth.session import SessionStore
from auth.types import UserProfile
from auth.users import UserDirectory
from clients.document_store import MemoryDocumentStore
from utils.user_context import user_context, clear_current_user_id


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Google subjects are opaque numeric strings
TEST_USER_ID = "google-sub-000000000001"
TEST_USER_EMAIL = "testuser@test.local"

# Secondary test user - use for isolation tests
TEST_USER_B_ID = "google-sub-000000000002"
TEST_USER_B_EMAIL = "testuser-b@test.local"

START_TIME = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> str:
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> str:
    return TEST_USER_B_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Primary test user set as the current user."""
    with user_context(test_user_id):
        yield test_user_id


@pytest.fixture
def as_test_user_b(test_user_b_id):
    """Secondary test user set as the current user."""
    with user_context(test_user_b_id):
        yield test_user_b_id


# =============================================================================
# CONFIG & CLOCK FIXTURES
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> AuthConfig:
    """Test-environment auth config (no Secure flag: TestClient speaks http)."""
    return AuthConfig(environment="test", cookie_secure=False)


@pytest.fixture
def google_config() -> GoogleOAuthConfig:
    return GoogleOAuthConfig(
        client_id="test-client-id.apps.googleusercontent.com",
        client_secret="test-client-secret",
        redirect_uri="https://tasko.test/api/auth/google/callback",
    )


# =============================================================================
# STORE & SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def users(store, clock) -> UserDirectory:
    return UserDirectory(store, clock)


@pytest.fixture
def sessions(store, users, config, clock) -> SessionStore:
    return SessionStore(store, users, config, clock)


@pytest.fixture
def audit(store, clock) -> AuditLogger:
    return AuditLogger(store, clock)


@pytest.fixture
def test_profile(test_user_id) -> UserProfile:
    return UserProfile(
        user_id=test_user_id,
        name="Test User",
        email=TEST_USER_EMAIL,
        email_verified=True,
        picture="https://example.com/a.png",
    )
