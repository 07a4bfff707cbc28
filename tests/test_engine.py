import asyncio
import random
from datetime import timedelta

import pytest

from conftest import FakeEventStore
from livefeed.services.catalog import get_source
from livefeed.services.engine import ActivityEngine
from livefeed.services.poller import utcnow
from livefeed.services.scheduler import create_scheduler


def _tip(row_id, seconds_ago, sender, receiver):
    return {
        "id": row_id,
        "created_at": (utcnow() - timedelta(seconds=seconds_ago)).isoformat(),
        "amount": 10,
        "sender": {"username": sender},
        "receiver": {"username": receiver},
    }


def _post(row_id, seconds_ago):
    return {
        "id": row_id,
        "created_at": (utcnow() - timedelta(seconds=seconds_ago)).isoformat(),
        "content": "gm",
        "author": {"username": f"user{row_id}"},
    }


class GatedEventStore(FakeEventStore):
    """Holds every fetch until the gate opens."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.gate = asyncio.Event()
        self.gate.set()

    async def fetch(self, source, since=None, limit=None):
        self.calls.append(("gate", source.source_id))
        await self.gate.wait()
        return await super().fetch(source, since, limit)


def _engine(store, **kwargs):
    return ActivityEngine(
        store,
        enabled=kwargs.pop("enabled", True),
        incremental_sources=[get_source("posts")],
        snapshot_sources=[get_source("tips", "snapshot")],
        rng=random.Random(2),
        **kwargs,
    )


class TestScheduler:
    def test_four_interval_jobs(self):
        engine = _engine(
            FakeEventStore(),
            poll_interval_ms=45_000,
            refresh_interval_ms=30_000,
            ticker_rotation_interval_ms=4_000,
            banner_rotation_interval_ms=1_500,
        )
        scheduler = create_scheduler(engine)
        jobs = {job.id: job for job in scheduler.get_jobs()}
        assert set(jobs) == {"poll_job", "refresh_job", "ticker_rotation_job", "banner_rotation_job"}
        assert jobs["poll_job"].trigger.interval == timedelta(seconds=45)
        assert jobs["refresh_job"].trigger.interval == timedelta(seconds=30)
        assert jobs["ticker_rotation_job"].trigger.interval == timedelta(seconds=4)
        assert jobs["banner_rotation_job"].trigger.interval == timedelta(seconds=1.5)


class TestActivityEngine:
    @pytest.mark.asyncio
    async def test_poll_feeds_ticker(self):
        store = FakeEventStore({"posts": [_post(1, 30), _post(2, 20)]})
        engine = _engine(store)
        await engine.poll()
        assert [i.row_id for i in engine.notifications] == ["1", "2"]
        assert engine.ticker.current.row_id == "1"
        assert (await engine.rotate_ticker()).row_id == "2"
        assert (await engine.rotate_ticker()).row_id == "1"
        engine.dispose()

    @pytest.mark.asyncio
    async def test_refresh_feeds_banner(self):
        store = FakeEventStore({"tips": [_tip(n, n, f"s{n}", f"r{n}") for n in range(1, 7)]})
        engine = _engine(store)
        snapshot = await engine.refresh()
        assert len(snapshot) == 6
        assert engine.banner.items == snapshot
        seen = {engine.banner.current.id}
        for _ in range(5):
            seen.add((await engine.rotate_banner()).id)
        assert seen == {i.id for i in snapshot}
        engine.dispose()

    @pytest.mark.asyncio
    async def test_banner_cursor_clamped_on_shorter_snapshot(self):
        store = FakeEventStore({"tips": [_tip(n, n, f"s{n}", f"r{n}") for n in range(1, 7)]})
        engine = _engine(store, top_k=6)
        await engine.refresh()
        for _ in range(5):
            await engine.rotate_banner()
        engine.aggregator.top_k = 2
        await engine.refresh()
        assert engine.banner.current_index == 1
        assert engine.banner.current is not None
        engine.dispose()

    @pytest.mark.asyncio
    async def test_banner_rotates_while_refresh_in_flight(self):
        store = GatedEventStore({"tips": [_tip(n, n, f"s{n}", f"r{n}") for n in range(1, 4)]})
        engine = _engine(store)
        first = await engine.refresh()
        assert len(first) == 3

        store.gate.clear()
        store.rows["tips"].append(_tip(4, 0, "s4", "r4"))
        pending = asyncio.create_task(engine.refresh())
        while len(store.calls) < 3:
            await asyncio.sleep(0)
        assert not pending.done()

        rotated = [(await engine.rotate_banner()).id for _ in range(3)]
        assert engine.banner.current_index == 0
        assert sorted(rotated) == sorted(i.id for i in first)

        store.gate.set()
        second = await pending
        assert len(second) == 4
        assert len(engine.banner) == 4
        engine.dispose()

    @pytest.mark.asyncio
    async def test_ticker_rotates_while_poll_in_flight(self):
        store = GatedEventStore({"posts": [_post(1, 30), _post(2, 20)]})
        engine = _engine(store)
        await engine.poll()

        store.gate.clear()
        pending = asyncio.create_task(engine.poll())
        await asyncio.sleep(0)
        assert (await engine.rotate_ticker()).row_id == "2"
        assert (await engine.rotate_ticker()).row_id == "1"
        assert not pending.done()

        store.gate.set()
        assert await pending == []
        engine.dispose()

    @pytest.mark.asyncio
    async def test_start_and_dispose(self):
        engine = _engine(FakeEventStore())
        engine.start()
        assert engine.running
        engine.dispose()
        assert not engine.running
        with pytest.raises(RuntimeError):
            engine.start()

    @pytest.mark.asyncio
    async def test_disabled_engine_starts_nothing(self):
        store = FakeEventStore({"posts": [_post(1, 5)]})
        engine = _engine(store, enabled=False)
        engine.start()
        assert not engine.running
        assert await engine.poll() == []
        assert await engine.refresh() == []
        assert store.calls == []
