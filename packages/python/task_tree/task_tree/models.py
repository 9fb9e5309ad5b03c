"""Pydantic models describing team tasks."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


class TaskNode(BaseModel):
    """Representation of a task entry stored in MongoDB."""

    id: str
    title: str = Field(min_length=1)
    parent_id: Optional[str] = None
    position: float = Field(default=0, allow_inf_nan=False)
    team_id: str
    is_deleted: bool = False
    assignments: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class TaskCreate(BaseModel):
    """Payload for creating a task.

    ``position`` wins over the slot hints. ``before_id`` / ``after_id`` name a
    sibling the new task should be placed directly before / after.
    """

    title: str = Field(min_length=1)
    parent_id: Optional[str] = None
    position: Optional[float] = Field(default=None, allow_inf_nan=False)
    before_id: Optional[str] = None
    after_id: Optional[str] = None


class TaskUpdate(BaseModel):
    title: str = Field(min_length=1)


class TaskMove(BaseModel):
    direction: Direction


class TaskReparent(BaseModel):
    new_parent_id: Optional[str] = None
    position: Optional[float] = Field(default=None, allow_inf_nan=False)


class TaskAssignments(BaseModel):
    user_ids: List[str] = Field(default_factory=list)


class TaskClone(BaseModel):
    target_team_id: str = Field(min_length=1)


class PositionChange(BaseModel):
    """A single ``position`` write produced by an ordering operation."""

    task_id: str
    position: float


class MoveResult(BaseModel):
    task_id: str
    changes: List[PositionChange] = Field(default_factory=list)

    @computed_field
    @property
    def moved(self) -> bool:
        return bool(self.changes)


class DeleteResult(BaseModel):
    task_id: str
    affected_ids: List[str] = Field(default_factory=list)


class Completion(BaseModel):
    """One user's check-off of a task on a given day."""

    task_id: str
    user_id: str
    team_id: str
    completed_date: date
    created_at: Optional[datetime] = None


class CompletionToggle(BaseModel):
    """Payload for checking a task off (or un-checking it) for a day.

    ``user_id`` defaults to the caller; recording for somebody else needs
    team admin rights.
    """

    completed_date: date
    completed: bool
    user_id: Optional[str] = None
