"""Tagged update commands.

Each mutation of a goal, project or reading item is expressed as one of the
commands below. The ``kind`` field is the discriminator, so a JSON payload such
as ``{"kind": "complete_step", "order": 2}`` validates into the matching
command or fails before it reaches a manager.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from ..clock import as_utc, to_storage
from .schemas import (
    GoalCategory,
    GoalStatus,
    Priority,
    ProjectCategory,
    ProjectStatus,
    ReadingStatus,
    SessionCreate,
    normalize_tags,
)


class EditFields(BaseModel):
    """Plain field edits shared by every entity kind."""

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=5000)
    tags: Optional[list[str]] = None
    target_date: Optional[datetime] = None
    clear_target_date: bool = False

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        if v is None:
            return None
        return normalize_tags(v)

    @field_validator("target_date", mode="after")
    @classmethod
    def target_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


# ============================================================================
# Goal Commands
# ============================================================================


class AddStep(BaseModel):
    """Append a roadmap step."""

    kind: Literal["add_step"] = "add_step"
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    due_date: Optional[datetime] = None


class CompleteStep(BaseModel):
    """Mark a roadmap step complete."""

    kind: Literal["complete_step"] = "complete_step"
    order: int = Field(..., ge=1)


class ReopenStep(BaseModel):
    """Mark a roadmap step incomplete again."""

    kind: Literal["reopen_step"] = "reopen_step"
    order: int = Field(..., ge=1)


class RemoveStep(BaseModel):
    """Remove a roadmap step and re-number the rest."""

    kind: Literal["remove_step"] = "remove_step"
    order: int = Field(..., ge=1)


class SetGoalStatus(BaseModel):
    """Explicitly set a goal's stored status."""

    kind: Literal["set_status"] = "set_status"
    status: GoalStatus


class EditGoal(EditFields):
    """Edit plain goal fields."""

    kind: Literal["edit"] = "edit"
    category: Optional[GoalCategory] = None
    priority: Optional[Priority] = None


class LinkProject(BaseModel):
    """Attach one of the owner's projects to a goal."""

    kind: Literal["link_project"] = "link_project"
    project_id: str = Field(..., min_length=1)


class LinkReading(BaseModel):
    """Attach one of the owner's reading items to a goal."""

    kind: Literal["link_reading"] = "link_reading"
    reading_id: str = Field(..., min_length=1)


GoalCommand = Annotated[
    Union[
        AddStep,
        CompleteStep,
        ReopenStep,
        RemoveStep,
        SetGoalStatus,
        EditGoal,
        LinkProject,
        LinkReading,
    ],
    Field(discriminator="kind"),
]


# ============================================================================
# Project Commands
# ============================================================================


class AddMilestone(BaseModel):
    """Append a milestone."""

    kind: Literal["add_milestone"] = "add_milestone"
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(None, ge=0)


class CompleteMilestone(BaseModel):
    """Mark a milestone complete, optionally recording hours spent."""

    kind: Literal["complete_milestone"] = "complete_milestone"
    order: int = Field(..., ge=1)
    actual_hours: Optional[float] = Field(None, ge=0)


class ReopenMilestone(BaseModel):
    """Mark a milestone incomplete again."""

    kind: Literal["reopen_milestone"] = "reopen_milestone"
    order: int = Field(..., ge=1)


class RemoveMilestone(BaseModel):
    """Remove a milestone and re-number the rest."""

    kind: Literal["remove_milestone"] = "remove_milestone"
    order: int = Field(..., ge=1)


class ReorderMilestones(BaseModel):
    """Reorder milestones; ``new_order`` lists current orders in the desired sequence."""

    kind: Literal["reorder_milestones"] = "reorder_milestones"
    new_order: list[int] = Field(..., min_length=1)


class SetProjectStatus(BaseModel):
    """Explicitly set a project's stored status."""

    kind: Literal["set_status"] = "set_status"
    status: ProjectStatus
    notes: Optional[str] = None


class EditProject(EditFields):
    """Edit plain project fields."""

    kind: Literal["edit"] = "edit"
    category: Optional[ProjectCategory] = None
    priority: Optional[Priority] = None
    estimated_total_hours: Optional[float] = Field(None, ge=0)


ProjectCommand = Annotated[
    Union[
        AddMilestone,
        CompleteMilestone,
        ReopenMilestone,
        RemoveMilestone,
        ReorderMilestones,
        SetProjectStatus,
        EditProject,
    ],
    Field(discriminator="kind"),
]


# ============================================================================
# Reading Commands
# ============================================================================


class UpdateReadingProgress(BaseModel):
    """Move the page counter, optionally recording a timed session."""

    kind: Literal["update_progress"] = "update_progress"
    current_page: Optional[int] = Field(None, ge=0)
    session_duration: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=500)


class LogSession(SessionCreate):
    """Append a reading session."""

    kind: Literal["log_session"] = "log_session"


class SetReadingStatus(BaseModel):
    """Explicitly set a reading item's stored status."""

    kind: Literal["set_status"] = "set_status"
    status: ReadingStatus


class EditReading(EditFields):
    """Edit plain reading item fields."""

    kind: Literal["edit"] = "edit"
    author: Optional[str] = Field(None, max_length=200)
    total_pages: Optional[int] = Field(None, ge=1)
    rating: Optional[int] = Field(None, ge=1, le=5)
    average_page_time: Optional[float] = Field(None, ge=0.5, le=30)


ReadingCommand = Annotated[
    Union[UpdateReadingProgress, LogSession, SetReadingStatus, EditReading],
    Field(discriminator="kind"),
]


goal_command_adapter = TypeAdapter(GoalCommand)
project_command_adapter = TypeAdapter(ProjectCommand)
reading_command_adapter = TypeAdapter(ReadingCommand)


def parse_goal_command(payload: dict):
    """Validate a raw payload into a goal command."""
    return goal_command_adapter.validate_python(payload)


def parse_project_command(payload: dict):
    """Validate a raw payload into a project command."""
    return project_command_adapter.validate_python(payload)


def parse_reading_command(payload: dict):
    """Validate a raw payload into a reading command."""
    return reading_command_adapter.validate_python(payload)


def apply_edit(entity, edit: EditFields) -> list[str]:
    """Copy the set fields of an edit command onto an entity.

    Returns:
        Names of the fields that were written
    """
    changed = []
    for field in edit.model_fields_set:
        if field in ("kind", "clear_target_date"):
            continue
        value = getattr(edit, field)
        if field == "tags":
            entity.set_tags(value or [])
        elif field == "target_date":
            entity.target_date = to_storage(value)
        elif value is None:
            continue
        else:
            setattr(entity, field, value.value if isinstance(value, Enum) else value)
        changed.append(field)
    if edit.clear_target_date:
        entity.target_date = None
        changed.append("target_date")
    return changed
