"""Tests for status derivation and the write-side lifecycle."""

from datetime import datetime, timedelta, timezone

import pytest

from lifetracker.engine.status import (
    StatusPolicy,
    apply_explicit_status,
    apply_lifecycle,
    assess,
    derive_status,
    is_auto_completion,
    is_overdue,
)


NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
YESTERDAY = NOW - timedelta(days=1)
TOMORROW = NOW + timedelta(days=1)
IN_THREE_DAYS = NOW + timedelta(days=3)
NEXT_MONTH = NOW + timedelta(days=30)


class TestDeriveStatus:
    """Tests for the derived status precedence."""

    def test_in_progress(self):
        result = derive_status("goal", "in_progress", 50, None, NOW)
        assert result.derived_status == "in_progress"
        assert result.stored_status == "in_progress"
        assert result.is_overdue is False

    def test_initial_with_no_progress(self):
        assert derive_status("project", "planning", 0, None, NOW).derived_status == "planning"
        assert derive_status("reading", "to_read", 0, None, NOW).derived_status == "to_read"

    def test_progress_makes_active_even_if_stored_initial(self):
        assert derive_status("project", "planning", 10, None, NOW).derived_status == "active"
        assert derive_status("reading", "to_read", 10, None, NOW).derived_status == "reading"

    @pytest.mark.parametrize(
        "kind,stored,success",
        [
            ("goal", "in_progress", "achieved"),
            ("project", "active", "completed"),
            ("reading", "reading", "completed"),
        ],
    )
    def test_complete_beats_overdue(self, kind, stored, success):
        result = derive_status(kind, stored, 100, YESTERDAY, NOW)
        assert result.derived_status == success
        assert result.is_overdue is False

    def test_cancelled_is_sticky(self):
        result = derive_status("goal", "cancelled", 60, YESTERDAY, NOW)
        assert result.derived_status == "cancelled"
        assert result.is_overdue is False

    def test_abandoned_is_sticky(self):
        assert derive_status("reading", "abandoned", 100, None, NOW).derived_status == "abandoned"

    def test_stored_success_kept_when_progress_regresses(self):
        result = derive_status("goal", "achieved", 50, YESTERDAY, NOW)
        assert result.derived_status == "achieved"
        assert result.is_overdue is False

    def test_overdue(self):
        result = derive_status("project", "active", 60, YESTERDAY, NOW)
        assert result.derived_status == "overdue"
        assert result.is_overdue is True

    def test_at_risk_within_window(self):
        result = derive_status("project", "active", 50, IN_THREE_DAYS, NOW)
        assert result.derived_status == "at_risk"
        assert result.is_overdue is False

    def test_not_at_risk_above_threshold(self):
        assert derive_status("project", "active", 80, IN_THREE_DAYS, NOW).derived_status == "active"

    def test_goal_threshold_is_higher(self):
        assert derive_status("goal", "in_progress", 78, IN_THREE_DAYS, NOW).derived_status == "at_risk"
        assert derive_status("project", "active", 78, IN_THREE_DAYS, NOW).derived_status == "active"

    def test_not_at_risk_outside_window(self):
        assert derive_status("project", "active", 10, NEXT_MONTH, NOW).derived_status == "active"

    def test_custom_policy(self):
        policy = StatusPolicy(at_risk_window_days=40, project_risk_threshold=20)
        assert derive_status("project", "active", 10, NEXT_MONTH, NOW, policy).derived_status == "at_risk"
        assert derive_status("project", "active", 30, NEXT_MONTH, NOW, policy).derived_status == "active"

    def test_held_state_kept(self):
        assert derive_status("goal", "paused", 40, None, NOW).derived_status == "paused"
        assert derive_status("project", "on_hold", 0, NEXT_MONTH, NOW).derived_status == "on_hold"

    def test_overdue_overrides_held_state(self):
        assert derive_status("project", "on_hold", 40, YESTERDAY, NOW).derived_status == "overdue"

    def test_deadline_equal_to_now_is_not_overdue(self):
        result = derive_status("goal", "in_progress", 10, NOW, NOW)
        assert result.is_overdue is False
        assert result.derived_status == "at_risk"

    def test_naive_deadline_read_as_utc(self):
        naive = YESTERDAY.replace(tzinfo=None)
        assert derive_status("project", "active", 60, naive, NOW).derived_status == "overdue"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            derive_status("task", "open", 0, None, NOW)


class TestIsOverdue:
    """Tests for the overdue flag."""

    def test_no_deadline(self):
        assert is_overdue("goal", "in_progress", 10, None, NOW) is False

    def test_complete(self):
        assert is_overdue("goal", "in_progress", 100, YESTERDAY, NOW) is False

    def test_future_deadline(self):
        assert is_overdue("goal", "in_progress", 10, TOMORROW, NOW) is False

    def test_past_deadline(self):
        assert is_overdue("reading", "reading", 10, YESTERDAY, NOW) is True


class TestAssess:
    """Tests for assessing loaded entities."""

    def test_goal_half_done(self, make_goal):
        progress, status = assess(make_goal(completed=2, total=4, status="in_progress"), NOW)
        assert progress == 50
        assert status.derived_status == "in_progress"

    def test_project_overdue(self, make_project):
        project = make_project(completed=3, total=5, status="active", target_date=YESTERDAY)
        progress, status = assess(project, NOW)
        assert progress == 60
        assert status.derived_status == "overdue"
        assert status.is_overdue is True

    def test_project_at_risk(self, make_project):
        project = make_project(completed=1, total=2, status="active", target_date=IN_THREE_DAYS)
        progress, status = assess(project, NOW)
        assert progress == 50
        assert status.derived_status == "at_risk"

    def test_cancelled_never_in_progress(self, make_goal):
        _, status = assess(make_goal(completed=3, total=4, status="cancelled"), NOW)
        assert status.derived_status == "cancelled"


class TestApplyLifecycle:
    """Tests for moving the stored status after a mutation."""

    def test_first_progress_starts(self, make_goal):
        goal = make_goal(completed=1, total=4)
        assert apply_lifecycle(goal, 25, NOW) == "in_progress"
        assert goal.status == "in_progress"
        assert goal.started_at == NOW.replace(tzinfo=None)
        assert goal.completed_at is None

    def test_full_progress_completes_and_stamps(self, make_goal):
        goal = make_goal(completed=3, total=3)
        assert apply_lifecycle(goal, 100, NOW) == "achieved"
        assert goal.status == "achieved"
        assert goal.completed_at == NOW.replace(tzinfo=None)
        assert goal.achieved_at == goal.completed_at
        assert goal.started_at is not None

    def test_completed_at_not_overwritten(self, make_project):
        earlier = (NOW - timedelta(days=5)).replace(tzinfo=None)
        project = make_project(completed=2, total=2, status="active", completed_at=earlier)
        apply_lifecycle(project, 100, NOW)
        assert project.completed_at == earlier

    def test_regression_keeps_completed_at(self, make_project):
        earlier = (NOW - timedelta(days=5)).replace(tzinfo=None)
        project = make_project(completed=1, total=2, status="completed", completed_at=earlier)
        assert apply_lifecycle(project, 50, NOW) is None
        assert project.status == "completed"
        assert project.completed_at == earlier

    def test_cancelled_untouched(self, make_goal):
        goal = make_goal(completed=2, total=2, status="cancelled")
        assert apply_lifecycle(goal, 100, NOW) is None
        assert goal.status == "cancelled"
        assert goal.completed_at is None

    def test_held_state_not_reactivated(self, make_project):
        project = make_project(completed=1, total=4, status="on_hold")
        assert apply_lifecycle(project, 25, NOW) is None
        assert project.status == "on_hold"

    def test_held_state_completes(self, make_project):
        project = make_project(completed=4, total=4, status="on_hold")
        assert apply_lifecycle(project, 100, NOW) == "completed"

    def test_no_change(self, make_goal):
        goal = make_goal(completed=0, total=3)
        assert apply_lifecycle(goal, 0, NOW) is None
        assert goal.status == "not_started"
        assert goal.started_at is None


class TestApplyExplicitStatus:
    """Tests for user-chosen status writes."""

    def test_active_stamps_started(self, make_reading):
        item = make_reading()
        apply_explicit_status(item, "reading", NOW)
        assert item.status == "reading"
        assert item.started_at == NOW.replace(tzinfo=None)

    def test_success_stamps_both(self, make_project):
        project = make_project()
        apply_explicit_status(project, "completed", NOW)
        assert project.started_at is not None
        assert project.completed_at == NOW.replace(tzinfo=None)

    def test_held_stamps_nothing(self, make_goal):
        goal = make_goal()
        apply_explicit_status(goal, "paused", NOW)
        assert goal.status == "paused"
        assert goal.started_at is None
        assert goal.completed_at is None


class TestIsAutoCompletion:
    def test_success(self):
        assert is_auto_completion("goal", "achieved") is True
        assert is_auto_completion("reading", "completed") is True

    def test_other(self):
        assert is_auto_completion("goal", "in_progress") is False
        assert is_auto_completion("project", None) is False
