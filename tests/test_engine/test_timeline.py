"""Tests for time and velocity analytics."""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

from lifetracker.engine.timeline import (
    activity_start,
    average_session_length,
    days_active,
    days_overdue,
    days_until,
    estimated_completion,
    estimated_time_remaining,
    is_on_track,
    longest_streak,
    progress_rate,
    projected_finish,
    reading_speed,
    reading_streak,
    reading_velocity,
    round_half_up,
    time_metrics,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def session(minutes: int, pages: int) -> SimpleNamespace:
    return SimpleNamespace(duration_minutes=minutes, pages_read=pages)


class TestRoundHalfUp:
    def test_half_rounds_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.125, 2) == 0.13

    def test_one_decimal(self):
        assert round_half_up(66.666, 1) == 66.7


class TestDays:
    """Tests for day counting."""

    def test_days_active_without_start(self):
        assert days_active(None, NOW) == 0

    def test_days_active_counts_partial_days(self):
        assert days_active(NOW - timedelta(hours=1), NOW) == 1
        assert days_active(NOW - timedelta(days=2), NOW) == 2
        assert days_active(NOW - timedelta(days=2, hours=1), NOW) == 3

    def test_days_active_future_start(self):
        assert days_active(NOW + timedelta(days=1), NOW) == 0

    def test_days_active_accepts_naive_and_date(self):
        assert days_active((NOW - timedelta(days=4)).replace(tzinfo=None), NOW) == 4
        assert days_active(date(2025, 6, 10), NOW) == 6

    def test_days_until(self):
        assert days_until(None, NOW) is None
        assert days_until(NOW + timedelta(days=3), NOW) == 3
        assert days_until(NOW + timedelta(hours=1), NOW) == 1
        assert days_until(NOW - timedelta(days=2), NOW) == -2

    def test_days_overdue(self):
        assert days_overdue(None, NOW) == 0
        assert days_overdue(NOW + timedelta(days=3), NOW) == 0
        assert days_overdue(NOW - timedelta(days=2, hours=3), NOW) == 3


class TestRates:
    """Tests for progress rate and completion estimates."""

    def test_rate_guarded(self):
        assert progress_rate(50, 0) == 0.0

    def test_rate(self):
        assert progress_rate(50, 10) == 5.0
        assert progress_rate(10, 3) == 3.33

    def test_estimated_completion(self):
        assert estimated_completion(50, 5.0, NOW) == NOW + timedelta(days=10)

    def test_estimated_completion_without_rate(self):
        assert estimated_completion(50, 0.0, NOW) is None

    def test_on_track_when_missing(self):
        assert is_on_track(None, NOW) is True
        assert is_on_track(NOW, None) is True

    def test_on_track(self):
        assert is_on_track(NOW, NOW + timedelta(days=1)) is True
        assert is_on_track(NOW + timedelta(days=2), NOW + timedelta(days=1)) is False

    def test_time_metrics(self):
        metrics = time_metrics(50, NOW - timedelta(days=10), NOW + timedelta(days=5), NOW)
        assert metrics.days_active == 10
        assert metrics.days_until_deadline == 5
        assert metrics.progress_rate == 5.0
        assert metrics.estimated_completion == NOW + timedelta(days=10)
        assert metrics.is_on_track is False

    def test_slow_rate_still_estimates(self):
        metrics = time_metrics(1, NOW - timedelta(days=250), NOW + timedelta(days=30), NOW)
        assert metrics.progress_rate == 0.0
        assert metrics.estimated_completion > NOW + timedelta(days=30)
        assert metrics.is_on_track is False

    def test_unrounded_rate(self):
        assert progress_rate(1, 250, digits=None) == 0.004

    def test_time_metrics_not_started(self):
        metrics = time_metrics(0, None, None, NOW)
        assert metrics.days_active == 0
        assert metrics.days_until_deadline is None
        assert metrics.progress_rate == 0.0
        assert metrics.estimated_completion is None
        assert metrics.is_on_track is True


class TestReading:
    """Tests for reading pace and streaks."""

    def test_activity_start_prefers_started_at(self):
        started = NOW - timedelta(days=3)
        assert activity_start(started, [NOW - timedelta(days=9)]) == started

    def test_activity_start_falls_back_to_first_session(self):
        dates = [NOW - timedelta(days=2), NOW - timedelta(days=5)]
        assert activity_start(None, dates) == NOW - timedelta(days=5)

    def test_activity_start_none(self):
        assert activity_start(None, []) is None

    def test_velocity(self):
        assert reading_velocity(150, 2) == 75.0
        assert reading_velocity(100, 3) == 33.3

    def test_unrounded_velocity(self):
        assert reading_velocity(100, 3, digits=None) == 100 / 3

    def test_velocity_guarded(self):
        assert reading_velocity(150, 0) == 0.0
        assert reading_velocity(0, 5) == 0.0

    def test_reading_speed(self):
        sessions = [session(45, 50), session(45, 50), session(45, 50)]
        assert reading_speed(sessions) == 66.7

    def test_reading_speed_ignores_untimed(self):
        assert reading_speed([session(60, 30), session(0, 100)]) == 30.0
        assert reading_speed([session(0, 40)]) == 0.0

    def test_projected_finish(self):
        assert projected_finish(100, 300, 20.0, NOW) == NOW + timedelta(days=10)

    def test_projected_finish_unknown(self):
        assert projected_finish(100, None, 20.0, NOW) is None
        assert projected_finish(100, 300, 0.0, NOW) is None

    def test_estimated_time_remaining(self):
        assert estimated_time_remaining(100, 300) == 600
        assert estimated_time_remaining(100, 300, 1.5) == 300

    def test_estimated_time_remaining_finished_or_unknown(self):
        assert estimated_time_remaining(300, 300) == 0
        assert estimated_time_remaining(10, None) == 0

    def test_streak_through_today(self):
        dates = [NOW, NOW - timedelta(days=1), NOW - timedelta(days=2)]
        assert reading_streak(dates, NOW) == 3

    def test_streak_alive_until_yesterday(self):
        dates = [NOW - timedelta(days=1), NOW - timedelta(days=2)]
        assert reading_streak(dates, NOW) == 2

    def test_streak_broken(self):
        dates = [NOW, NOW - timedelta(days=2)]
        assert reading_streak(dates, NOW) == 1
        assert reading_streak([NOW - timedelta(days=3)], NOW) == 0

    def test_streak_capped_by_lookback(self):
        dates = [NOW - timedelta(days=n) for n in range(10)]
        assert reading_streak(dates, NOW, lookback_days=5) == 5

    def test_same_day_counted_once(self):
        dates = [NOW, NOW - timedelta(hours=2)]
        assert reading_streak(dates, NOW) == 1

    def test_longest_streak(self):
        dates = [
            date(2025, 1, 1),
            date(2025, 1, 2),
            date(2025, 1, 5),
            date(2025, 1, 6),
            date(2025, 1, 7),
            date(2025, 1, 7),
        ]
        assert longest_streak(dates) == 3
        assert longest_streak([]) == 0

    def test_average_session_length(self):
        assert average_session_length([session(30, 0), session(45, 0)]) == 38
        assert average_session_length([]) == 0
