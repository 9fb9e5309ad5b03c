"""Async persistence layer for team tasks along with permission enforcement.

Every operation loads the team's full task snapshot, runs the matching pure
function from :mod:`task_tree.ordering` and writes the result back. Position
writes filter on the value that was read, so a concurrent edit between read
and write surfaces as :class:`ConcurrentUpdateError` instead of silently
producing duplicate positions.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from loguru import logger
from pymongo import UpdateOne

from db_core import MongoDocument, get_db, transaction
from permissions import TeamRole, require_team_role

from . import ordering
from .errors import ConcurrentUpdateError, PositionCollisionError, TaskNotFoundError
from .models import DeleteResult, Direction, MoveResult, PositionChange, TaskNode

COLLECTION_NAME = "tasks"


def _collection():
    return get_db()[COLLECTION_NAME]


def _doc_to_model(doc: MongoDocument) -> TaskNode:
    return TaskNode(
        id=str(doc.get("_id") or doc["id"]),
        title=doc["title"],
        parent_id=doc.get("parent_id"),
        position=float(doc.get("position", 0)),
        team_id=doc["team_id"],
        is_deleted=bool(doc.get("is_deleted", False)),
        assignments=list(doc.get("assignments") or []),
        created_at=doc.get("created_at"),
    )


def _model_to_doc(node: TaskNode) -> dict:
    doc = node.model_dump(exclude={"id"})
    doc["_id"] = node.id
    return doc


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


async def _load_team(team_id: str) -> List[TaskNode]:
    """Snapshot every task of the team, soft-deleted ones included."""

    cursor = _collection().find({"team_id": team_id})
    return [_doc_to_model(doc) async for doc in cursor]


async def _fetch_live_task(team_id: str, task_id: str) -> dict:
    doc = await _collection().find_one({"_id": task_id, "team_id": team_id})
    if not doc or doc.get("is_deleted"):
        raise TaskNotFoundError(f"Task {task_id} not found in team {team_id}")
    return doc


async def _apply_position_changes(
    team_id: str,
    snapshot: Sequence[TaskNode],
    changes: Sequence[PositionChange],
) -> None:
    """Write position changes so they commit together.

    Inside a transaction a short match aborts every write. Without one an
    update that matches nothing is not a write error, so the bulk write runs
    to the end and a swap may be half-applied, leaving two siblings on the
    same position. The caller still sees the conflict, and the next
    :func:`ordering.move` on that group respaces the tie before swapping.
    """

    if not changes:
        return

    read_positions = {node.id: node.position for node in snapshot}
    operations = [
        UpdateOne(
            {
                "_id": change.task_id,
                "team_id": team_id,
                "position": read_positions[change.task_id],
                "is_deleted": False,
            },
            {"$set": {"position": change.position}},
        )
        for change in changes
    ]

    async with transaction() as session:
        result = await _collection().bulk_write(operations, ordered=True, session=session)
        if result.matched_count != len(operations):
            logger.warning(
                "Position write in team {team_id} matched {matched}/{expected} tasks",
                team_id=team_id,
                matched=result.matched_count,
                expected=len(operations),
            )
            raise ConcurrentUpdateError(
                f"Tasks in team {team_id} changed while they were being reordered"
            )


async def _respace_group(
    team_id: str,
    snapshot: List[TaskNode],
    parent_id: Optional[str],
) -> List[TaskNode]:
    changes = ordering.renumber(ordering.siblings_of(snapshot, parent_id))
    logger.info(
        "Respacing {count} tasks under {parent_id} in team {team_id}",
        count=len(changes),
        parent_id=parent_id,
        team_id=team_id,
    )
    await _apply_position_changes(team_id, snapshot, changes)
    updated = {change.task_id: change.position for change in changes}
    return [
        node.model_copy(update={"position": updated[node.id]}) if node.id in updated else node
        for node in snapshot
    ]


async def list_tasks_for_user(team_id: str, user_id: str) -> List[TaskNode]:
    """Return the team's live tasks depth-first in sibling order."""

    await require_team_role(team_id, user_id, TeamRole.MEMBER)
    snapshot = await _load_team(team_id)
    return ordering.ordered_tree(snapshot)


async def list_children_for_user(
    team_id: str,
    user_id: str,
    parent_id: Optional[str],
) -> List[TaskNode]:
    """List the live children of ``parent_id`` (root level for ``None``)."""

    await require_team_role(team_id, user_id, TeamRole.MEMBER)
    snapshot = await _load_team(team_id)
    return ordering.siblings_of(snapshot, parent_id)


async def create_task_for_user(
    team_id: str,
    user_id: str,
    title: str,
    parent_id: Optional[str] = None,
    position: Optional[float] = None,
    before_id: Optional[str] = None,
    after_id: Optional[str] = None,
) -> TaskNode:
    """
    Create a task below ``parent_id``.

    Without ``position`` or slot hints the task is appended to its group.
    When the slot between two neighbours has no room left the group is
    respaced once and the slot resolved again.

    Inserts carry no optimistic filter: two appends racing on the same
    snapshot both land on ``max + STEP``. A unique index cannot prevent
    that because a swap passes through the same tie mid-write. The order
    between the two stays stable by id, and the next move in the group
    respaces it.
    """

    await require_team_role(team_id, user_id, TeamRole.ADMIN)
    snapshot = await _load_team(team_id)

    if position is None and (before_id is not None or after_id is not None):
        try:
            position = ordering.position_for_slot(snapshot, parent_id, before_id, after_id)
        except PositionCollisionError:
            snapshot = await _respace_group(team_id, snapshot, parent_id)
            position = ordering.position_for_slot(snapshot, parent_id, before_id, after_id)

    node = ordering.new_task(snapshot, team_id, title, parent_id=parent_id, position=position)
    await _collection().insert_one(_model_to_doc(node))
    logger.info(
        "Created task {task_id} under {parent_id} in team {team_id} at {position}",
        task_id=node.id,
        parent_id=parent_id,
        team_id=team_id,
        position=node.position,
    )
    return node


async def update_task_for_user(
    team_id: str,
    user_id: str,
    task_id: str,
    title: str,
) -> TaskNode:
    """Rename a task; ordering is not affected."""

    await require_team_role(team_id, user_id, TeamRole.ADMIN)
    doc = await _fetch_live_task(team_id, task_id)
    await _collection().update_one(
        {"_id": task_id, "team_id": team_id},
        {"$set": {"title": title}},
    )
    doc.update({"title": title})
    return _doc_to_model(doc)


async def move_task_for_user(
    team_id: str,
    user_id: str,
    task_id: str,
    direction: Direction,
) -> MoveResult:
    """Move a task one slot up or down among its siblings."""

    await require_team_role(team_id, user_id, TeamRole.ADMIN)
    snapshot = await _load_team(team_id)
    result = ordering.move(snapshot, task_id, direction)
    if not result.moved:
        logger.debug(
            "Task {task_id} already at the {direction} boundary",
            task_id=task_id,
            direction=Direction(direction).value,
        )
        return result

    await _apply_position_changes(team_id, snapshot, result.changes)
    logger.info(
        "Moved task {task_id} {direction} in team {team_id} ({count} writes)",
        task_id=task_id,
        direction=Direction(direction).value,
        team_id=team_id,
        count=len(result.changes),
    )
    return result


async def reparent_task_for_user(
    team_id: str,
    user_id: str,
    task_id: str,
    new_parent_id: Optional[str],
    position: Optional[float] = None,
) -> TaskNode:
    """Attach a task to a new parent, appending it unless ``position`` is given."""

    await require_team_role(team_id, user_id, TeamRole.ADMIN)
    snapshot = await _load_team(team_id)
    node = ordering.reparent(snapshot, task_id, new_parent_id, position)
    previous_parent = next(item.parent_id for item in snapshot if item.id == task_id)

    result = await _collection().update_one(
        {
            "_id": task_id,
            "team_id": team_id,
            "parent_id": previous_parent,
            "is_deleted": False,
        },
        {"$set": {"parent_id": node.parent_id, "position": node.position}},
    )
    if result.matched_count != 1:
        raise ConcurrentUpdateError(f"Task {task_id} changed while it was being moved")

    logger.info(
        "Reparented task {task_id} from {old} to {new} in team {team_id}",
        task_id=task_id,
        old=previous_parent,
        new=new_parent_id,
        team_id=team_id,
    )
    return node


async def delete_task_for_user(
    team_id: str,
    user_id: str,
    task_id: str,
) -> DeleteResult:
    """
    Soft-delete a task and its entire subtree.

    Documents stay in the collection with ``is_deleted`` set; the returned
    ids let callers drop cached entries.
    """

    await require_team_role(team_id, user_id, TeamRole.ADMIN)
    snapshot = await _load_team(team_id)
    affected = sorted(ordering.soft_delete_subtree(snapshot, task_id))

    await _collection().update_many(
        {"_id": {"$in": affected}, "team_id": team_id},
        {"$set": {"is_deleted": True}},
    )
    logger.info(
        "Soft-deleted {count} tasks below {task_id} in team {team_id}",
        count=len(affected),
        task_id=task_id,
        team_id=team_id,
    )
    return DeleteResult(task_id=task_id, affected_ids=affected)


async def assign_users_for_user(
    team_id: str,
    user_id: str,
    task_id: str,
    user_ids: Iterable[str],
) -> TaskNode:
    """Replace the users assigned to a task."""

    await require_team_role(team_id, user_id, TeamRole.ADMIN)
    doc = await _fetch_live_task(team_id, task_id)
    assignments = _dedupe(user_ids)
    await _collection().update_one(
        {"_id": task_id, "team_id": team_id},
        {"$set": {"assignments": assignments}},
    )
    doc.update({"assignments": assignments})
    return _doc_to_model(doc)


async def clone_tasks_for_user(
    team_id: str,
    user_id: str,
    target_team_id: str,
) -> List[TaskNode]:
    """
    Copy the team's live checklist into ``target_team_id``.

    Members of the source team may clone it; the target team needs an
    admin. Cloned root tasks follow the target team's existing roots.
    """

    await require_team_role(team_id, user_id, TeamRole.MEMBER)
    await require_team_role(target_team_id, user_id, TeamRole.ADMIN)

    source = await _load_team(team_id)
    target = await _load_team(target_team_id)
    existing_roots = ordering.siblings_of(target, None)
    source_roots = ordering.siblings_of(source, None)
    offset = 0.0
    if existing_roots and source_roots:
        offset = ordering.next_position(existing_roots) - source_roots[0].position

    clones = ordering.clone_tree(source, target_team_id, root_offset=offset)
    if clones:
        await _collection().insert_many([_model_to_doc(node) for node in clones])
    logger.info(
        "Cloned {count} tasks from team {team_id} into {target}",
        count=len(clones),
        team_id=team_id,
        target=target_team_id,
    )
    return clones
