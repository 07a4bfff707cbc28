import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import random
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from livefeed import models  # noqa: F401
from livefeed.database import Base
from livefeed.main import app
from livefeed.routers.activity import get_activity_engine
from livefeed.schemas import ActivityItem, ActivityKind, Actor
from livefeed.services.engine import ActivityEngine
from livefeed.services.event_store import EventStoreError
from livefeed.services.normalizer import parse_timestamp

# In-memory SQLite on one shared connection, so every session sees the same tables
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

T0 = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FakeEventStore:
    """Rows per source id, served with the same filter/order/limit contract as the real stores."""

    def __init__(self, rows=None, failing=(), honor_since: bool = True) -> None:
        self.rows: dict[str, list[dict]] = rows or {}
        self.failing = set(failing)
        self.honor_since = honor_since
        self.healthy = True
        self.calls: list[tuple] = []

    async def fetch(self, source, since=None, limit=None):
        self.calls.append((source.source_id, since, limit))
        if source.source_id in self.failing:
            raise EventStoreError(f"{source.source_id} unavailable")

        def ts(row):
            return parse_timestamp(row.get(source.timestamp_column)) or _EPOCH

        rows = [dict(row) for row in self.rows.get(source.source_id, [])]
        if since is not None and self.honor_since:
            rows = [row for row in rows if ts(row) > since]
        rows.sort(key=ts, reverse=True)
        return rows[: limit or source.limit]

    async def ping(self) -> bool:
        return self.healthy

    async def close(self) -> None:
        pass


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_store() -> FakeEventStore:
    return FakeEventStore()


@pytest.fixture
def make_item():
    def factory(
        row_id,
        primary: str = "Ana",
        secondary: str | None = None,
        source_id: str = "tips",
        kind: ActivityKind = ActivityKind.TIP,
        timestamp: datetime = T0,
        amount: float = 0,
    ) -> ActivityItem:
        return ActivityItem(
            kind=kind,
            source_id=source_id,
            row_id=str(row_id),
            actor_primary=Actor(display_name=primary),
            actor_secondary=Actor(display_name=secondary) if secondary else None,
            amount=amount,
            timestamp=timestamp,
        )
    return factory


@pytest_asyncio.fixture
async def sql_engine() -> AsyncGenerator[AsyncEngine, None]:
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def activity_engine(fake_store) -> AsyncGenerator[ActivityEngine, None]:
    engine = ActivityEngine(fake_store, enabled=True, rng=random.Random(7))
    yield engine
    engine.dispose()


@pytest_asyncio.fixture
async def client(activity_engine) -> AsyncGenerator[AsyncClient, None]:
    # ASGITransport does not run the lifespan; hand the routes a test engine instead
    app.dependency_overrides[get_activity_engine] = lambda: activity_engine
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.pop(get_activity_engine, None)
