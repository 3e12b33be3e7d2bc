"""Shared fixtures for the writer_studio test-suite."""

from datetime import datetime, timezone
from typing import Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from writer_studio.api.dependencies import ServiceContainer
from writer_studio.api.main import create_app
from writer_studio.config.settings import Settings
from writer_studio.core.credentials import CredentialVerifier, InMemoryUserStore
from writer_studio.core.lookups import InMemoryLookupStore
from writer_studio.core.submission_store import InMemorySubmissionStore
from writer_studio.models.dtos import Structure, Trope
from writer_studio.tests.fakes import TEST_SECRET, WRITER_ID


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        JWT_SECRET_KEY=TEST_SECRET,
        MOCK_FALLBACK_ENABLED=True,
        REQUIRE_AUTH_FOR_SUBMISSIONS=True,
        INFLUXDB_URL=None,
        BIGQUERY_PROJECT_ID=None,
        FALLBACK_METRICS_API_URL=None,
    )


@pytest.fixture
def user_store() -> InMemoryUserStore:
    store = InMemoryUserStore()
    store.add("alice", "correct", role="writer", writer_id=WRITER_ID, rounds=4)
    store.add("root", "admin-pass", role="admin", rounds=4)
    return store


@pytest.fixture
def verifier(user_store) -> CredentialVerifier:
    return CredentialVerifier(user_store, secret_key=TEST_SECRET)


@pytest.fixture
def submission_store() -> InMemorySubmissionStore:
    return InMemorySubmissionStore(clock=lambda: datetime(2025, 5, 6, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def lookup_store() -> InMemoryLookupStore:
    return InMemoryLookupStore(
        tropes=[Trope(id=n, number=n, name=f"Trope {n}") for n in (3, 1, 2, 5, 4)],
        structures=[Structure(id=2, name="Three Act"), Structure(id=1, name="Hero's Journey")],
    )


@pytest.fixture
def make_services(settings, verifier, submission_store, lookup_store):
    """Factory building a service container from fake sources and optional settings overrides."""

    def _make(metrics_sources=(), content_sources=(), **overrides) -> ServiceContainer:
        return ServiceContainer.assemble(
            settings=settings.model_copy(update=overrides),
            verifier=verifier,
            submissions=submission_store,
            lookups=lookup_store,
            metrics_sources=list(metrics_sources),
            content_sources=list(content_sources),
        )

    return _make


@pytest.fixture
def make_client(make_services):
    """Factory returning an httpx client bound to a fresh app over the given sources."""

    def _make(metrics_sources=(), content_sources=(), **overrides) -> AsyncClient:
        app = create_app(services=make_services(metrics_sources, content_sources, **overrides))
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _make


@pytest_asyncio.fixture
async def client(make_client):
    async with make_client() as http_client:
        yield http_client


@pytest.fixture
def auth_headers(verifier, user_store):
    def _headers(username: str = "alice") -> Dict[str, str]:
        user = next(u for u in user_store._users.values() if u.username == username)
        return {"Authorization": f"Bearer {verifier.issue_token(user)}"}

    return _headers
