"""Shared fixtures: an in-memory SQLite database per test."""

import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from stockops.core.database import Base
import stockops.models  # noqa: F401
from stockops.models.material import Material, MaterialVariation
from stockops.services.cache import api_cache


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def clear_api_cache():
    api_cache.clear()
    yield
    api_cache.clear()


@pytest.fixture
def make_material(test_session):
    """Insert a material (optionally with variations) and return it."""

    async def _make(name="Cotton thread", stock=10, variations=None, **fields):
        material = Material(name=name, stock_quantity=stock, **fields)
        for variation in variations or []:
            material.variations.append(MaterialVariation(**variation))
        if variations:
            material.type = "variable"
        test_session.add(material)
        await test_session.commit()
        await test_session.refresh(material)
        return material

    return _make
