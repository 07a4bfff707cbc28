import pytest

from livefeed.services.ops_log import OpsLog


class TestOpsLog:
    def test_newest_first_and_bounded(self):
        log = OpsLog(capacity=3)
        for n in range(5):
            log.record("info", "poll", f"tick {n}", count=n)
        assert len(log) == 3
        assert [e.count for e in log.entries()] == [4, 3, 2]

    def test_filters_by_category_and_source(self):
        log = OpsLog()
        log.record("warn", "source", "pixels: fetch failed", source_id="pixels")
        log.record("warn", "source", "tips: fetch failed", source_id="tips")
        log.record("success", "poll", "2 new activities", count=2)
        assert [e.source_id for e in log.entries(category="source")] == ["tips", "pixels"]
        assert [e.message for e in log.entries(source_id="pixels")] == ["pixels: fetch failed"]
        assert [e.count for e in log.entries(level="success")] == [2]
        assert len(log.entries(limit=1)) == 1

    def test_entries_are_timestamped_utc(self):
        entry = OpsLog().record("info", "system", "started")
        assert entry.time.tzinfo is not None
        assert entry.source_id is None

    def test_clear(self):
        log = OpsLog()
        log.record("info", "system", "started")
        log.clear()
        assert log.entries() == []

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            OpsLog(capacity=0)
