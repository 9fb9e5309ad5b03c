"""Domain-level errors for the task tree."""


class TaskTreeError(Exception):
    """Base class for structured task tree failures."""

    code = "task_tree_error"


class TaskNotFoundError(TaskTreeError):
    """Raised when a task is missing or already soft-deleted."""

    code = "not_found"


class InvalidParentError(TaskTreeError):
    """Raised when a reparent would attach a task below itself."""

    code = "invalid_parent"


class PositionCollisionError(TaskTreeError):
    """Raised when no distinct position fits between two neighbours."""

    code = "position_collision"


class ConcurrentUpdateError(TaskTreeError):
    """Raised when a write matched fewer tasks than the snapshot promised."""

    code = "conflict"


class InvalidArgumentError(TaskTreeError):
    """Raised for a direction or position the ordering rules cannot use."""

    code = "invalid_argument"
