"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from unittest.mock import AsyncMock

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["EMAIL_BACKEND"] = "console"
# Cheapest bcrypt cost so tests don't spend seconds hashing
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, select

from verifyauth.api.deps import get_email_service
from verifyauth.config import settings
from verifyauth.database import get_session
from verifyauth.main import app
from verifyauth.models import User
from verifyauth.services.auth import hash_password
from verifyauth.services.email import EmailBackend, EmailService

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
async def test_engine(tmp_path: Path):
    """Create a throwaway SQLite database for one test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for test setup and direct service calls."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def email_backend() -> AsyncMock:
    """Mock email backend that records sends and reports success."""
    backend = AsyncMock(spec=EmailBackend)
    backend.send.return_value = True
    return backend


@pytest.fixture
def mailer(email_backend: AsyncMock) -> EmailService:
    return EmailService(settings, backend=email_backend)


@pytest.fixture
async def client(session_factory, mailer: EmailService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client; every request gets its own database session."""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_email_service] = lambda: mailer

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Factory that inserts a user directly, bypassing registration."""

    async def _make_user(
        email: str = "test@example.com",
        name: str = "Test User",
        password: str = DEFAULT_PASSWORD,
        verified: bool = False,
        verification_code: str | None = "123456",
    ) -> User:
        user = User(
            name=name,
            email=email,
            password_digest=hash_password(password),
            verified=verified,
            verification_code=None if verified else verification_code,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _make_user


@pytest.fixture
async def user(make_user) -> User:
    """An unverified user with code 123456."""
    return await make_user()


@pytest.fixture
async def verified_user(make_user) -> User:
    return await make_user(email="verified@example.com", name="Verified User", verified=True)


@pytest.fixture
def fetch_user(session_factory) -> Callable[[str], Awaitable[User | None]]:
    """Read a user's current state from the database in a fresh session."""

    async def _fetch(email: str) -> User | None:
        async with session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    return _fetch


@pytest.fixture
def count_users(session_factory) -> Callable[[], Awaitable[int]]:
    async def _count() -> int:
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(User))
            return result.scalar_one()

    return _count
