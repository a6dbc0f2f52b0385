"""
Global pytest fixtures for the TechStock test suite.

Provides:
- Async database session on a temporary SQLite file
- FastAPI app and async HTTP client sharing that session
- Small catalog factories
"""
import os
from typing import AsyncGenerator, Optional
from uuid import uuid4

import pytest
import pytest_asyncio

# Set test environment BEFORE any techstock imports
os.environ["TESTING"] = "true"
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"


def _register_models():
    # Register all mappers before metadata.create_all
    from techstock.models.inventory import (  # noqa: F401
        Application,
        Resource,
        ResourceApplicationMap,
        ResourceGroup,
        ResourceTag,
        Subscription,
    )


_register_models()


# ============================================================================
# Async Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def async_engine():
    """Create async SQLite engine for testing using a temporary file."""
    from sqlalchemy.ext.asyncio import create_async_engine

    db_file = f"test_{uuid4().hex}.sqlite"
    db_url = f"sqlite+aiosqlite:///{db_file}"

    engine = create_async_engine(db_url, echo=False)
    yield engine
    await engine.dispose()

    if os.path.exists(db_file):
        os.remove(db_file)


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator:
    """Create database tables and provide async session."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from techstock.shared.db.base import Base

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest_asyncio.fixture
async def db(db_session):
    """Alias for db_session to match integration tests."""
    return db_session


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================

@pytest.fixture
def app():
    """Use the real TechStock app for integration tests."""
    from techstock.main import app as techstock_app
    return techstock_app


@pytest_asyncio.fixture
async def async_client(app, db) -> AsyncGenerator:
    """Async test client for FastAPI. Overrides get_db to share test session."""
    from httpx import ASGITransport, AsyncClient
    from techstock.shared.db.session import get_db

    old_override = app.dependency_overrides.get(get_db)
    app.dependency_overrides[get_db] = lambda: db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    if old_override:
        app.dependency_overrides[get_db] = old_override
    else:
        app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def ac(async_client):
    """Alias for async_client to match integration tests."""
    return async_client


# ============================================================================
# Catalog Factories
# ============================================================================

class CatalogFactory:
    """Inserts catalog rows directly, bypassing use-case validation."""

    def __init__(self, session):
        self.session = session

    async def subscription(self, name: Optional[str] = None, **kwargs):
        from techstock.models.inventory import Subscription

        row = Subscription(name=name or f"sub-{uuid4().hex[:8]}", **kwargs)
        self.session.add(row)
        await self.session.flush()
        return row

    async def resource_group(self, subscription, name: Optional[str] = None):
        from techstock.models.inventory import ResourceGroup

        row = ResourceGroup(name=name or f"rg-{uuid4().hex[:8]}", subscription_id=subscription.id)
        self.session.add(row)
        await self.session.flush()
        return row

    async def resource(self, group, name: Optional[str] = None, tags=None, **kwargs):
        from techstock.modules.inventory.domain.resource_store import ResourceStore

        data = {
            "name": name or f"res-{uuid4().hex[:8]}",
            "resource_type": "Virtual machine",
            "location": "westeurope",
            "subscription_id": group.subscription_id,
            "resource_group_id": group.id,
            "tags": tags or {},
        }
        data.update(kwargs)
        return await ResourceStore(self.session).create(data)

    async def application(self, code: Optional[str] = None, **kwargs):
        from techstock.models.inventory import Application

        row = Application(code=code or f"AP{uuid4().hex[:4]}", **kwargs)
        self.session.add(row)
        await self.session.flush()
        return row


@pytest_asyncio.fixture
async def factory(db_session):
    return CatalogFactory(db_session)
