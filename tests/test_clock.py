"""Tests for timezone helpers and the caller context."""

from datetime import date, datetime, timedelta, timezone

from lifetracker.clock import as_date, as_utc, to_storage
from lifetracker.context import UserContext

UTC = timezone.utc


class TestClock:
    def test_naive_read_as_utc(self):
        assert as_utc(datetime(2025, 6, 1, 9, 0)) == datetime(2025, 6, 1, 9, 0, tzinfo=UTC)

    def test_offset_converted(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2025, 6, 1, 1, 0, tzinfo=plus_two)
        assert as_utc(value) == datetime(2025, 5, 31, 23, 0, tzinfo=UTC)
        assert as_date(value) == date(2025, 5, 31)

    def test_plain_date_is_midnight(self):
        assert as_utc(date(2025, 6, 1)) == datetime(2025, 6, 1, tzinfo=UTC)

    def test_storage_is_naive_utc(self):
        stored = to_storage(datetime(2025, 6, 1, 12, 0, tzinfo=timezone(timedelta(hours=-5))))
        assert stored == datetime(2025, 6, 1, 17, 0)
        assert stored.tzinfo is None

    def test_none_passes_through(self):
        assert as_utc(None) is None
        assert as_date(None) is None
        assert to_storage(None) is None


class TestUserContext:
    def test_pinned_time(self):
        ctx = UserContext(owner_id="tester", now=datetime(2025, 6, 15, 12, 0))
        assert ctx.current_time() == datetime(2025, 6, 15, 12, 0, tzinfo=UTC)

    def test_live_time(self):
        before = datetime.now(UTC)
        now = UserContext(owner_id="tester").current_time()
        assert now.tzinfo is not None
        assert now >= before
