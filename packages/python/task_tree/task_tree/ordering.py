"""Pure ordering operations over a team's flat task snapshot.

Tasks form a forest per team: ``parent_id`` links a task to its parent (or
``None`` for the root level) and ``position`` orders a sibling group. Every
function here receives the full node list of one team and returns new values;
nothing touches storage or keeps state between calls, so the repository can
re-run any of them on a fresh snapshot.

Positions are spaced ``STEP`` apart when appended so that later slot inserts
can bisect between neighbours for a long time before the group needs to be
respaced with :func:`renumber`.
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Union
from uuid import uuid4

from .errors import (
    InvalidArgumentError,
    InvalidParentError,
    PositionCollisionError,
    TaskNotFoundError,
)
from .models import Direction, MoveResult, PositionChange, TaskNode

STEP = 1000


def _sort_key(node: TaskNode) -> tuple[float, str]:
    return (node.position, node.id)


def _find(nodes: Iterable[TaskNode], task_id: str) -> Optional[TaskNode]:
    return next((node for node in nodes if node.id == task_id), None)


def _find_live(nodes: Iterable[TaskNode], task_id: str) -> TaskNode:
    node = _find(nodes, task_id)
    if node is None or node.is_deleted:
        raise TaskNotFoundError(f"Task {task_id} not found")
    return node


def _ensure_free(siblings: Sequence[TaskNode], position: float) -> None:
    # NaN compares unequal to everything and would slip past the loop below
    if not math.isfinite(position):
        raise InvalidArgumentError(f"Position {position} is not a finite number")
    for sibling in siblings:
        if sibling.position == position:
            raise PositionCollisionError(
                f"Position {position} is already taken by task {sibling.id}"
            )


def siblings_of(nodes: Iterable[TaskNode], parent_id: Optional[str]) -> List[TaskNode]:
    """Return the live children of ``parent_id`` sorted by ``(position, id)``."""

    return sorted(
        (node for node in nodes if node.parent_id == parent_id and not node.is_deleted),
        key=_sort_key,
    )


def next_position(siblings: Sequence[TaskNode]) -> float:
    """Position one ``STEP`` past the current maximum, ``0`` for an empty group."""

    if not siblings:
        return 0.0
    return max(node.position for node in siblings) + STEP


def renumber(siblings: Sequence[TaskNode]) -> List[PositionChange]:
    """Respace a sibling group to ``0, STEP, 2*STEP, ...`` keeping its order.

    Only tasks whose position actually changes are returned.
    """

    changes: List[PositionChange] = []
    for index, node in enumerate(sorted(siblings, key=_sort_key)):
        target = float(index * STEP)
        if node.position != target:
            changes.append(PositionChange(task_id=node.id, position=target))
    return changes


def _has_ties(siblings: Sequence[TaskNode]) -> bool:
    positions = [node.position for node in siblings]
    return len(set(positions)) != len(positions)


def move(
    nodes: Sequence[TaskNode],
    task_id: str,
    direction: Union[Direction, str],
) -> MoveResult:
    """Move a task one slot up or down among its siblings.

    The task swaps positions with its neighbour; no other sibling is touched.
    Moving the first task up or the last task down returns a result without
    changes. A group holding tied positions is respaced first so the swap
    changes rank, and those writes are part of the same result.
    """

    try:
        direction = Direction(direction)
    except ValueError:
        raise InvalidArgumentError(f"Unknown move direction {direction!r}") from None
    task = _find_live(nodes, task_id)
    siblings = siblings_of(nodes, task.parent_id)

    current_index = next((idx for idx, node in enumerate(siblings) if node.id == task_id), -1)
    if current_index == -1:
        raise TaskNotFoundError(f"Task {task_id} not found among siblings")

    offset = -1 if direction is Direction.UP else 1
    target_index = min(max(current_index + offset, 0), len(siblings) - 1)
    if target_index == current_index:
        return MoveResult(task_id=task_id)

    positions = {node.id: node.position for node in siblings}
    updates: Dict[str, float] = {}
    if _has_ties(siblings):
        for change in renumber(siblings):
            positions[change.task_id] = change.position
            updates[change.task_id] = change.position

    current = siblings[current_index]
    target = siblings[target_index]
    updates[current.id] = positions[target.id]
    updates[target.id] = positions[current.id]

    return MoveResult(
        task_id=task_id,
        changes=[PositionChange(task_id=tid, position=pos) for tid, pos in updates.items()],
    )


def insert_between(before_pos: Optional[float] = None, after_pos: Optional[float] = None) -> float:
    """Position for a task placed between two neighbours.

    ``before_pos`` is the neighbour that ends up above the new task,
    ``after_pos`` the one below it. Missing neighbours mean head / tail of
    the group. Raises :class:`PositionCollisionError` when the two
    neighbours are too close for a distinct integer midpoint.
    """

    if before_pos is None and after_pos is None:
        return 0.0
    if before_pos is None:
        return after_pos - STEP
    if after_pos is None:
        return before_pos + STEP

    midpoint = math.floor(before_pos + (after_pos - before_pos) / 2)
    if not before_pos < midpoint < after_pos:
        raise PositionCollisionError(
            f"No free position between {before_pos} and {after_pos}"
        )
    return float(midpoint)


def position_for_slot(
    nodes: Sequence[TaskNode],
    parent_id: Optional[str],
    before_id: Optional[str] = None,
    after_id: Optional[str] = None,
) -> float:
    """Resolve a "before X" / "after X" slot into a position.

    ``after_id`` takes precedence when both are given. Without hints the
    task is appended.
    """

    siblings = siblings_of(nodes, parent_id)
    if before_id is None and after_id is None:
        return next_position(siblings)

    anchor_id = after_id if after_id is not None else before_id
    index = next((idx for idx, node in enumerate(siblings) if node.id == anchor_id), -1)
    if index == -1:
        raise TaskNotFoundError(f"Task {anchor_id} is not a sibling under {parent_id}")

    if after_id is not None:
        above = siblings[index].position
        below = siblings[index + 1].position if index + 1 < len(siblings) else None
    else:
        above = siblings[index - 1].position if index > 0 else None
        below = siblings[index].position
    return insert_between(above, below)


def descendant_ids(nodes: Iterable[TaskNode], task_id: str) -> Set[str]:
    """Ids of all transitive children of ``task_id``, deleted ones included."""

    children: Dict[str, List[str]] = defaultdict(list)
    for node in nodes:
        if node.parent_id is not None:
            children[node.parent_id].append(node.id)

    found: Set[str] = set()
    stack = list(children.get(task_id, ()))
    while stack:
        current = stack.pop()
        # a corrupted parent chain may loop back; visit each id once
        if current == task_id or current in found:
            continue
        found.add(current)
        stack.extend(children.get(current, ()))
    return found


def soft_delete_subtree(nodes: Sequence[TaskNode], task_id: str) -> Set[str]:
    """Ids to flag as deleted: the task itself plus its whole subtree.

    Re-running on an already deleted subtree yields the same ids.
    """

    if _find(nodes, task_id) is None:
        raise TaskNotFoundError(f"Task {task_id} not found")
    return {task_id} | descendant_ids(nodes, task_id)


def mark_deleted(nodes: Iterable[TaskNode], ids: Set[str]) -> List[TaskNode]:
    return [
        node.model_copy(update={"is_deleted": True}) if node.id in ids else node
        for node in nodes
    ]


def reparent(
    nodes: Sequence[TaskNode],
    task_id: str,
    new_parent_id: Optional[str],
    position: Optional[float] = None,
) -> TaskNode:
    """Return a copy of the task attached to ``new_parent_id``.

    Without an explicit position the task is appended to its new group.
    """

    task = _find_live(nodes, task_id)
    if new_parent_id is not None:
        if new_parent_id == task_id or new_parent_id in descendant_ids(nodes, task_id):
            raise InvalidParentError(
                f"Task {new_parent_id} cannot become the parent of its ancestor {task_id}"
            )
        _find_live(nodes, new_parent_id)

    siblings = [node for node in siblings_of(nodes, new_parent_id) if node.id != task_id]
    if position is None:
        position = next_position(siblings)
    else:
        _ensure_free(siblings, position)
    return task.model_copy(update={"parent_id": new_parent_id, "position": float(position)})


def new_task(
    nodes: Sequence[TaskNode],
    team_id: str,
    title: str,
    parent_id: Optional[str] = None,
    position: Optional[float] = None,
    task_id: Optional[str] = None,
) -> TaskNode:
    """Build a task appended to its sibling group (or at ``position``)."""

    if parent_id is not None:
        _find_live(nodes, parent_id)
    siblings = siblings_of(nodes, parent_id)
    if position is None:
        position = next_position(siblings)
    else:
        _ensure_free(siblings, position)
    return TaskNode(
        id=task_id or uuid4().hex,
        title=title,
        parent_id=parent_id,
        position=float(position),
        team_id=team_id,
        created_at=datetime.now(timezone.utc),
    )


def ordered_tree(nodes: Sequence[TaskNode]) -> List[TaskNode]:
    """Depth-first listing of live tasks, every group in sibling order.

    Tasks below a deleted (or missing) parent are not reachable and are
    left out.
    """

    groups: Dict[Optional[str], List[TaskNode]] = defaultdict(list)
    for node in nodes:
        if not node.is_deleted:
            groups[node.parent_id].append(node)

    result: List[TaskNode] = []
    stack = list(reversed(sorted(groups.get(None, []), key=_sort_key)))
    while stack:
        node = stack.pop()
        result.append(node)
        stack.extend(reversed(sorted(groups.get(node.id, []), key=_sort_key)))
    return result


def clone_tree(
    nodes: Sequence[TaskNode],
    target_team_id: str,
    id_factory: Optional[Callable[[], str]] = None,
    root_offset: float = 0.0,
) -> List[TaskNode]:
    """Copy every live task into another team with fresh ids.

    Structure and positions are kept; assignments are not carried over.
    Root positions are shifted by ``root_offset`` so the copy can follow
    tasks the target team already has.
    """

    make_id = id_factory or (lambda: uuid4().hex)
    created_at = datetime.now(timezone.utc)
    mapping: Dict[str, str] = {}
    clones: List[TaskNode] = []
    for node in ordered_tree(nodes):
        mapping[node.id] = make_id()
        clones.append(
            TaskNode(
                id=mapping[node.id],
                title=node.title,
                parent_id=mapping[node.parent_id] if node.parent_id else None,
                position=node.position if node.parent_id else node.position + root_offset,
                team_id=target_team_id,
                created_at=created_at,
            )
        )
    return clones
