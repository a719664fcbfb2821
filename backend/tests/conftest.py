"""
Shared fixtures.

The HTTP tests never touch a database: `get_store` is overridden with a
FakeStore that replays queued QueryResults in order and records every
statement it was given. `get_identity_verifier` is overridden with a stub
that accepts exactly one token.
"""

import datetime
import os
import uuid
from typing import Any

# Settings are read at import time — configure before importing the app.
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["API_KEY_LIFETIME_DAYS"] = "365"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects import postgresql

from pulse.auth.identity import VerificationFailed, VerifiedIdentity, get_identity_verifier
from pulse.core.store import QueryResult, get_store
from pulse.main import app

VALID_TOKEN = "valid-google-id-token"
TEST_KEY = "a" * 64
APP_ID = uuid.UUID("11111111-1111-4111-8111-111111111111")
USER_ID = uuid.UUID("22222222-2222-4222-8222-222222222222")
IDENTITY = VerifiedIdentity(subject_id="g1", email="a@b", name="Ada")


def rows(*items: dict[str, Any]) -> QueryResult:
    return QueryResult(rows=list(items), rowcount=len(items))


def count(n: int) -> QueryResult:
    return QueryResult(rowcount=n)


def key_row(
    *,
    is_revoked: bool = False,
    expires_at: datetime.datetime | None = None,
    application_id: uuid.UUID = APP_ID,
) -> QueryResult:
    """The row KeyAuthenticator reads for a presented key."""
    if expires_at is None:
        expires_at = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=30)
    return rows(
        {
            "application_id": application_id,
            "is_revoked": is_revoked,
            "expires_at": expires_at,
        }
    )


class FakeStore:
    """Replays queued results; an Exception in the queue is raised instead."""

    dialect_name = "postgresql"

    def __init__(self) -> None:
        self.results: list[QueryResult | Exception] = []
        self.statements: list[Any] = []

    def queue(self, *results: QueryResult | Exception) -> None:
        self.results.extend(results)

    def insert(self, model: Any):  # type: ignore[no-untyped-def]
        return postgresql.insert(model)

    async def execute(self, stmt: Any) -> QueryResult:
        self.statements.append(stmt)
        if not self.results:
            raise AssertionError(f"Unexpected statement: {stmt}")
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def compiled(self, index: int) -> Any:
        """Statement `index` compiled for PostgreSQL (for param assertions)."""
        return self.statements[index].compile(dialect=postgresql.dialect())


class StubVerifier:
    """Accepts VALID_TOKEN only."""

    def __init__(self, identity: VerifiedIdentity = IDENTITY) -> None:
        self.identity = identity
        self.calls = 0

    async def verify(self, token: str) -> VerifiedIdentity:
        self.calls += 1
        if token != VALID_TOKEN:
            raise VerificationFailed("bad token")
        return self.identity


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def verifier() -> StubVerifier:
    return StubVerifier()


@pytest.fixture
async def client(fake_store: FakeStore, verifier: StubVerifier):
    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def bearer() -> dict[str, str]:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}


@pytest.fixture
def api_key_header() -> dict[str, str]:
    return {"x-api-key": TEST_KEY}
