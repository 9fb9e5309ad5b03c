"""Team task tree: ordering rules and their MongoDB-backed repository."""

from .errors import (
    ConcurrentUpdateError,
    InvalidArgumentError,
    InvalidParentError,
    PositionCollisionError,
    TaskNotFoundError,
    TaskTreeError,
)
from .models import (
    Completion,
    CompletionToggle,
    DeleteResult,
    Direction,
    MoveResult,
    PositionChange,
    TaskAssignments,
    TaskClone,
    TaskCreate,
    TaskMove,
    TaskNode,
    TaskReparent,
    TaskUpdate,
)
from .ordering import STEP
from .completions import list_completions_for_user, toggle_completion_for_user
from .repo import (
    assign_users_for_user,
    clone_tasks_for_user,
    create_task_for_user,
    delete_task_for_user,
    list_children_for_user,
    list_tasks_for_user,
    move_task_for_user,
    reparent_task_for_user,
    update_task_for_user,
)

__all__ = [
    "STEP",
    "TaskTreeError",
    "TaskNotFoundError",
    "InvalidParentError",
    "PositionCollisionError",
    "ConcurrentUpdateError",
    "InvalidArgumentError",
    "Direction",
    "TaskNode",
    "TaskCreate",
    "TaskUpdate",
    "TaskMove",
    "TaskReparent",
    "TaskAssignments",
    "TaskClone",
    "PositionChange",
    "MoveResult",
    "DeleteResult",
    "Completion",
    "CompletionToggle",
    "list_tasks_for_user",
    "list_children_for_user",
    "create_task_for_user",
    "update_task_for_user",
    "move_task_for_user",
    "reparent_task_for_user",
    "delete_task_for_user",
    "assign_users_for_user",
    "clone_tasks_for_user",
    "list_completions_for_user",
    "toggle_completion_for_user",
]
