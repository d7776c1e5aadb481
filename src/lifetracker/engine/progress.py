"""Completion percentage for goals, projects and reading items.

Every function here is pure: the same input always yields the same integer in
[0, 100], and empty or missing input yields 0.
"""

from typing import Iterable, Optional

from ..db.schemas import EntityKind, lifecycle_for


def round_percent(numerator: int, denominator: int) -> int:
    """Round ``100 * numerator / denominator`` half-up to an integer percentage.

    Integer arithmetic keeps 1/8 at 13 and 1/3 at 33 without float drift.
    The numerator is clamped into [0, denominator].
    """
    if denominator <= 0:
        return 0
    numerator = max(0, min(numerator, denominator))
    return (200 * numerator + denominator) // (2 * denominator)


def step_progress(items: Iterable) -> int:
    """Percentage of completed roadmap steps or milestones.

    Args:
        items: Child items exposing a ``completed`` flag

    Returns:
        Integer percentage, 0 for an empty list
    """
    items = list(items)
    completed = sum(1 for item in items if item.completed)
    return round_percent(completed, len(items))


def page_progress(current_page: Optional[int], total_pages: Optional[int]) -> int:
    """Percentage of pages read, 0 when the total is unknown."""
    if not total_pages or total_pages <= 0:
        return 0
    return round_percent(current_page or 0, total_pages)


def entity_progress(entity) -> int:
    """Primary progress of any trackable entity.

    Goals count roadmap steps, projects count milestones and reading items
    count pages.
    """
    kind = entity.kind
    if kind == EntityKind.GOAL:
        return step_progress(entity.steps)
    if kind == EntityKind.PROJECT:
        return step_progress(entity.milestones)
    if kind == EntityKind.READING:
        return page_progress(entity.current_page, entity.total_pages)
    return 0


def linked_progress(links: Iterable[tuple[str, int, str]]) -> int:
    """Progress of a goal measured by the entities linked to it.

    Each link is ``(kind, progress, stored_status)``. Finished entities count
    fully, entities in their active state count by their own progress and the
    rest count as nothing.

    Args:
        links: Linked projects and reading items

    Returns:
        Integer percentage, 0 when nothing is linked
    """
    points = 0
    count = 0
    for kind, progress, stored_status in links:
        count += 1
        lifecycle = lifecycle_for(kind)
        if stored_status == lifecycle.success:
            points += 100
        elif stored_status == lifecycle.active:
            points += max(0, min(progress, 100))
    return round_percent(points, 100 * count)
