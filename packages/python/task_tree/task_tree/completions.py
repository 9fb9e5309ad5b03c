"""Daily task completions: who checked off which task on which day."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from loguru import logger
from pymongo.errors import DuplicateKeyError

from db_core import MongoDocument, get_db
from permissions import TeamRole, require_team_role

from . import repo
from .models import Completion

COLLECTION_NAME = "completions"


def _collection():
    return get_db()[COLLECTION_NAME]


def _completion_id(task_id: str, user_id: str, completed_date: date) -> str:
    # one document per (task, user, day); a second insert hits the _id index
    return f"{task_id}:{user_id}:{completed_date.isoformat()}"


def _doc_to_model(doc: MongoDocument) -> Completion:
    return Completion(
        task_id=doc["task_id"],
        user_id=doc["user_id"],
        team_id=doc["team_id"],
        completed_date=doc["completed_date"],
        created_at=doc.get("created_at"),
    )


async def list_completions_for_user(
    team_id: str,
    user_id: str,
    completed_date: date,
) -> List[Completion]:
    """Return every completion the team recorded on ``completed_date``."""

    await require_team_role(team_id, user_id, TeamRole.MEMBER)
    cursor = _collection().find(
        {"team_id": team_id, "completed_date": completed_date.isoformat()}
    )
    return [_doc_to_model(doc) async for doc in cursor]


async def toggle_completion_for_user(
    team_id: str,
    user_id: str,
    task_id: str,
    completed_date: date,
    completed: bool,
    target_user_id: Optional[str] = None,
) -> Optional[Completion]:
    """
    Check a task off for a day, or clear that check.

    Checking off twice keeps the first record. Clearing returns ``None`` and
    is a no-op when nothing was recorded. Members record their own
    completions; recording for another user needs team admin.
    """

    target_user_id = target_user_id or user_id
    role = TeamRole.MEMBER if target_user_id == user_id else TeamRole.ADMIN
    await require_team_role(team_id, user_id, role)

    doc_id = _completion_id(task_id, target_user_id, completed_date)
    collection = _collection()

    if not completed:
        result = await collection.delete_one({"_id": doc_id, "team_id": team_id})
        logger.debug(
            "Cleared completion of {task_id} for {user} on {day} ({count} removed)",
            task_id=task_id,
            user=target_user_id,
            day=completed_date.isoformat(),
            count=result.deleted_count,
        )
        return None

    await repo._fetch_live_task(team_id, task_id)
    record = {
        "_id": doc_id,
        "task_id": task_id,
        "user_id": target_user_id,
        "team_id": team_id,
        "completed_date": completed_date.isoformat(),
        "created_at": datetime.now(timezone.utc),
    }
    try:
        await collection.insert_one(record)
    except DuplicateKeyError:
        doc = await collection.find_one({"_id": doc_id})
        if doc:
            return _doc_to_model(doc)
        raise
    logger.info(
        "Task {task_id} completed by {user} on {day} in team {team_id}",
        task_id=task_id,
        user=target_user_id,
        day=completed_date.isoformat(),
        team_id=team_id,
    )
    return _doc_to_model(record)
