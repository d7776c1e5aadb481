"""Status derivation.

The stored status is whatever was last written to an entity. The derived
status is recomputed on every read from progress, deadline and stored status,
and may be one of the display-only overlays ``overdue`` or ``at_risk``.

Rules, first match wins:

1. stored ``cancelled`` / ``abandoned`` is returned unchanged
2. progress >= 100 gives the success terminal
3. a stored success terminal is kept even if progress fell back
4. deadline passed gives ``overdue``
5. deadline within the risk window and progress under the threshold gives ``at_risk``
6. stored held state (``paused`` / ``on_hold``) is returned unchanged
7. progress > 0 gives the active state
8. otherwise the initial state
"""

from dataclasses import dataclass
from typing import Optional

from ..clock import DateLike, as_utc, to_storage
from ..db.schemas import EntityKind, OverlayStatus, lifecycle_for
from .progress import entity_progress
from .timeline import days_until


@dataclass(frozen=True)
class StatusPolicy:
    """Thresholds for the ``at_risk`` overlay."""

    at_risk_window_days: int = 7
    goal_risk_threshold: int = 80
    project_risk_threshold: int = 75
    reading_risk_threshold: int = 75

    def risk_threshold(self, kind) -> int:
        kind = EntityKind(kind)
        if kind == EntityKind.GOAL:
            return self.goal_risk_threshold
        if kind == EntityKind.PROJECT:
            return self.project_risk_threshold
        return self.reading_risk_threshold


DEFAULT_POLICY = StatusPolicy()


@dataclass(frozen=True)
class StatusResult:
    """Stored and derived status side by side."""

    stored_status: str
    derived_status: str
    is_overdue: bool


def is_overdue(
    kind,
    stored_status: str,
    progress: int,
    target_date: Optional[DateLike],
    now: DateLike,
) -> bool:
    """Deadline passed on an unfinished, still-open entity."""
    if target_date is None or progress >= 100:
        return False
    if stored_status in lifecycle_for(kind).terminal:
        return False
    return as_utc(now) > as_utc(target_date)


def derive_status(
    kind,
    stored_status: str,
    progress: int,
    target_date: Optional[DateLike],
    now: DateLike,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> StatusResult:
    """Derive the display status of an entity.

    Args:
        kind: Entity kind (goal, project or reading)
        stored_status: Status last written to the entity
        progress: Current progress percentage
        target_date: Optional deadline
        now: Evaluation time
        policy: At-risk window and thresholds

    Returns:
        StatusResult with both statuses and the overdue flag
    """
    lifecycle = lifecycle_for(kind)
    overdue = is_overdue(kind, stored_status, progress, target_date, now)

    def result(derived: str) -> StatusResult:
        return StatusResult(
            stored_status=stored_status,
            derived_status=derived,
            is_overdue=overdue,
        )

    if stored_status == lifecycle.cancelled:
        return result(stored_status)
    if progress >= 100 or stored_status == lifecycle.success:
        return result(lifecycle.success)
    if overdue:
        return result(OverlayStatus.OVERDUE.value)

    remaining = days_until(target_date, now)
    if (
        remaining is not None
        and remaining <= policy.at_risk_window_days
        and progress < policy.risk_threshold(kind)
    ):
        return result(OverlayStatus.AT_RISK.value)

    if stored_status == lifecycle.held:
        return result(stored_status)
    if progress > 0:
        return result(lifecycle.active)
    return result(lifecycle.initial)


def assess(
    entity, now: DateLike, policy: StatusPolicy = DEFAULT_POLICY
) -> tuple[int, StatusResult]:
    """Progress and derived status of a loaded entity."""
    progress = entity_progress(entity)
    status = derive_status(
        entity.kind, entity.status, progress, entity.target_date, now, policy
    )
    return progress, status


# ============================================================================
# Write-side Lifecycle
# ============================================================================


def apply_lifecycle(entity, progress: int, now: DateLike) -> Optional[str]:
    """Move the stored status forward after a mutation.

    Reaching 100% stores the success terminal and stamps ``completed_at``;
    first progress out of the initial state stores the active state and stamps
    ``started_at``. ``completed_at`` is never cleared.

    Args:
        entity: Goal, project or reading item (mutated in place)
        progress: Progress computed after the mutation
        now: Time of the write

    Returns:
        The new stored status if it changed, else None
    """
    lifecycle = lifecycle_for(entity.kind)
    previous = entity.status

    if entity.status == lifecycle.cancelled:
        return None

    if progress >= 100:
        entity.status = lifecycle.success
        if entity.started_at is None:
            entity.started_at = to_storage(now)
        if entity.completed_at is None:
            entity.completed_at = to_storage(now)
    elif progress > 0 and entity.status == lifecycle.initial:
        entity.status = lifecycle.active
        if entity.started_at is None:
            entity.started_at = to_storage(now)

    return entity.status if entity.status != previous else None


def apply_explicit_status(entity, status: str, now: DateLike) -> None:
    """Store a status chosen by the user, stamping lifecycle timestamps."""
    lifecycle = lifecycle_for(entity.kind)
    entity.status = status
    if status in (lifecycle.active, lifecycle.success) and entity.started_at is None:
        entity.started_at = to_storage(now)
    if status == lifecycle.success and entity.completed_at is None:
        entity.completed_at = to_storage(now)


def is_auto_completion(kind, new_status: Optional[str]) -> bool:
    """Whether a lifecycle change was the success terminal."""
    return new_status is not None and new_status == lifecycle_for(kind).success

