"""
Test configuration and fixtures.

Provides:
- A fresh SQLite database (aiosqlite) per test with every table created
- A session factory shared by the app, the aggregator and the webhook handler
- Users, admin grants and JWT-authenticated HTTPX clients
"""
import os
import tempfile
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator

# Configure the app before it is imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{tempfile.mkdtemp()}/app.db"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ.pop("BREVO_API_KEY", None)

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from finalwishes.main import app
from finalwishes.models import AppRole, User, UserRole
from finalwishes.services.plan_aggregator import PlanAggregator, get_plan_aggregator
from finalwishes.services.stripe_webhook import webhook_handler
from finalwishes.utils.database import Base, get_db
from finalwishes.utils.security import create_access_token, hash_password

TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
async def engine(tmp_path):
    """Engine on a throwaway SQLite file with the full schema."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def aggregator(session_factory) -> PlanAggregator:
    return PlanAggregator(session_factory=session_factory)


# =============================================================================
# Identity Fixtures
# =============================================================================

async def make_user(db: AsyncSession, email: str = None, full_name: str = "Test User") -> User:
    user = User(
        email=email or f"test-{uuid.uuid4().hex[:8]}@test.com",
        full_name=full_name,
        password_hash=hash_password(TEST_PASSWORD),
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def test_user(db) -> User:
    return await make_user(db)


@pytest.fixture
async def admin_user(db) -> User:
    user = await make_user(db, full_name="Admin User")
    db.add(UserRole(user_id=user.id, role=AppRole.ADMIN.value))
    await db.commit()
    return user


@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str

    @property
    def headers(self):
        return {"Authorization": f"Bearer {self.token}"}


def auth_for(user: User) -> TestAuth:
    return TestAuth(user=user, token=create_access_token({"sub": str(user.id), "email": user.email}))


@pytest.fixture
def test_auth(test_user) -> TestAuth:
    return auth_for(test_user)


@pytest.fixture
def admin_auth(admin_user) -> TestAuth:
    return auth_for(admin_user)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture
async def client(session_factory, aggregator, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client; every request gets its own session on the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_plan_aggregator] = lambda: aggregator
    monkeypatch.setattr(webhook_handler, "session_factory", session_factory)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
async def authed_client(client, test_auth) -> AsyncClient:
    client.headers.update(test_auth.headers)
    return client


@pytest.fixture
async def admin_client(client, admin_auth) -> AsyncClient:
    client.headers.update(admin_auth.headers)
    return client
