"""
Marketplace Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment variables are set before any `marketplace` import so the
       settings singleton, the engine and the tenacity decorators all see the
       test values (SQLite, zero retry waits, dummy gateway keys).

Fixture Hierarchy:
    ├── mock_db_session:  AsyncMock session for pure unit tests
    ├── db_engine:        in-memory aiosqlite engine (StaticPool), schema created per test
    ├── db_session:       AsyncSession bound to db_engine
    ├── make_user:        async factory → (User, CurrentUser) with roles attached
    ├── auth_headers:     builds a Bearer header for a user id
    └── test_client:      httpx AsyncClient on the ASGI app, DB dependency overridden
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "whsec_test"
os.environ["RETRY_MAX_ATTEMPTS"] = "3"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Iterable, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace.auth import CurrentUser, create_access_token, hash_password
from marketplace.database import Base, get_db_session, run_after_commit
from marketplace.models import Role, User, UserRole


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.get.return_value = some_row
        await service.method(mock_db_session, ...)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.info = {}
    return session


@pytest_asyncio.fixture
async def db_engine():
    # StaticPool keeps the single in-memory connection alive across sessions
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(db_session):
    """
    Creates a user holding `roles` and returns (User, CurrentUser).

    Roles are created on first use. `permissions` only lands on the
    CurrentUser, the same way a token carries them.
    """
    counter = {"n": 0}

    async def _make(
        roles: Iterable[str] = (),
        permissions: Iterable[str] = (),
        email: str = None,
        password: str = "s3cret-pass",
        **fields,
    ) -> Tuple[User, CurrentUser]:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            username=f"user{counter['n']}",
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", f"User{counter['n']}"),
            password_hash=hash_password(password),
            **fields,
        )
        db_session.add(user)
        await db_session.flush()

        for name in roles:
            result = await db_session.execute(select(Role).where(Role.name == name))
            role = result.scalars().first()
            if role is None:
                role = Role(name=name, label=name.title())
                db_session.add(role)
                await db_session.flush()
            db_session.add(UserRole(user_id=user.user_id, role_id=role.role_id))
        await db_session.commit()

        current = CurrentUser(
            user_id=user.user_id,
            email=user.email,
            roles=frozenset(roles),
            permissions=frozenset(permissions),
        )
        return user, current

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user_id: int, permissions: Iterable[str] = ()) -> dict:
        token, _ = create_access_token(user_id, permissions)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the ASGI app in-process.

    get_db_session is overridden to use the per-test SQLite engine with the
    same commit / rollback / after-commit behaviour as production.
    """
    from marketplace.main import app

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await run_after_commit(session)

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
