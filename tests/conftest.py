"""Shared fixtures: an in-memory SQLite database per test and an API client bound to it."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from datetime import date
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from assetbook.database import Base, get_db
from assetbook.main import app
from assetbook.models import Asset, AssetStatus


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_asset(db):
    """Factory persisting an asset; defaults to 1,200,000 over 12 months from 2024-01-15."""
    counter = {"n": 0}

    async def _make(
        value="1200000.00",
        useful_life=12,
        purchase_date=date(2024, 1, 15),
        status=AssetStatus.IN_USE,
        **kwargs,
    ) -> Asset:
        counter["n"] += 1
        asset = Asset(
            asset_tag=kwargs.pop("asset_tag", f"AST-{counter['n']:04d}"),
            name=kwargs.pop("name", f"Test Asset {counter['n']}"),
            value=Decimal(value),
            useful_life=useful_life,
            purchase_date=purchase_date,
            status=status.value,
            **kwargs,
        )
        db.add(asset)
        await db.commit()
        await db.refresh(asset)
        return asset

    return _make
