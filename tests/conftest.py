"""Shared test fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Settings are read at import time, so the environment must be ready first.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

# Make _helpers importable from test files
sys.path.insert(0, str(Path(__file__).parent))

from _helpers import RecordingStore  # noqa: E402

from worktrack.schemas.signup import SignupRequest, SignupResult  # noqa: E402
from worktrack.services.auth_service import AuthClient  # noqa: E402
from worktrack.services.memory_store import InMemoryRecordStore  # noqa: E402
from worktrack.services.signup_service import SignupService  # noqa: E402


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def store(memory_store: InMemoryRecordStore) -> RecordingStore:
    return RecordingStore(memory_store)


@pytest.fixture
def auth(store: RecordingStore) -> AuthClient:
    return AuthClient(store)


@pytest.fixture
def signup_service(store: RecordingStore, auth: AuthClient) -> SignupService:
    return SignupService(store, auth)


@pytest.fixture
def acme_request() -> SignupRequest:
    return SignupRequest(
        organization_name="Acme Corporation",
        email_domain="acme.com",
        department_name="General",
        email="john@acme.com",
        first_name="John",
        last_name="Doe",
        password="correct-horse",
    )


@pytest_asyncio.fixture
async def acme(signup_service: SignupService, acme_request: SignupRequest) -> SignupResult:
    """Acme Corporation with John Doe as owner."""
    return await signup_service.create_organization(acme_request)
