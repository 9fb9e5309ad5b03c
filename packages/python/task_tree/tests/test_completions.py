import asyncio
from datetime import date

import pytest
from fastapi import HTTPException

from task_tree import completions
from task_tree.errors import TaskNotFoundError

TEAM = "team-1"
ADMIN = "admin-1"
MEMBER = "member-1"
DAY = date(2024, 5, 17)


@pytest.fixture(autouse=True)
def _grants(roles):
    roles[(TEAM, ADMIN, "admin")] = True
    roles[(TEAM, MEMBER, "member")] = True
    return roles


@pytest.fixture()
def tasks(collection, task_factory):
    collection.seed(task_factory("a", 0), task_factory("gone", 1000, is_deleted=True))
    return collection


def test_checking_off_twice_keeps_one_record(tasks, completion_collection):
    first = asyncio.run(completions.toggle_completion_for_user(TEAM, MEMBER, "a", DAY, True))
    again = asyncio.run(completions.toggle_completion_for_user(TEAM, MEMBER, "a", DAY, True))

    assert len(completion_collection.docs) == 1
    assert (first.task_id, first.user_id, first.completed_date) == ("a", MEMBER, DAY)
    assert again.created_at == first.created_at


def test_clearing_removes_only_that_day(tasks, completion_collection):
    other_day = date(2024, 5, 18)
    asyncio.run(completions.toggle_completion_for_user(TEAM, MEMBER, "a", DAY, True))
    asyncio.run(completions.toggle_completion_for_user(TEAM, MEMBER, "a", other_day, True))

    cleared = asyncio.run(completions.toggle_completion_for_user(TEAM, MEMBER, "a", DAY, False))
    cleared_again = asyncio.run(completions.toggle_completion_for_user(TEAM, MEMBER, "a", DAY, False))

    assert cleared is None and cleared_again is None
    assert asyncio.run(completions.list_completions_for_user(TEAM, MEMBER, DAY)) == []
    remaining = asyncio.run(completions.list_completions_for_user(TEAM, MEMBER, other_day))
    assert [item.completed_date for item in remaining] == [other_day]


def test_listing_is_scoped_to_team_and_day(tasks, completion_collection, roles):
    roles[("team-2", MEMBER, "member")] = True
    asyncio.run(completions.toggle_completion_for_user(TEAM, MEMBER, "a", DAY, True))
    asyncio.run(completions.toggle_completion_for_user(TEAM, ADMIN, "a", DAY, True))

    listed = asyncio.run(completions.list_completions_for_user(TEAM, MEMBER, DAY))

    assert sorted(item.user_id for item in listed) == [ADMIN, MEMBER]
    assert asyncio.run(completions.list_completions_for_user("team-2", MEMBER, DAY)) == []


def test_deleted_task_cannot_be_completed(tasks, completion_collection):
    with pytest.raises(TaskNotFoundError):
        asyncio.run(completions.toggle_completion_for_user(TEAM, MEMBER, "gone", DAY, True))
    assert completion_collection.docs == {}


def test_recording_for_someone_else_needs_admin(tasks, completion_collection):
    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(
            completions.toggle_completion_for_user(
                TEAM, MEMBER, "a", DAY, True, target_user_id=ADMIN
            )
        )
    assert excinfo.value.status_code == 403

    recorded = asyncio.run(
        completions.toggle_completion_for_user(TEAM, ADMIN, "a", DAY, True, target_user_id=MEMBER)
    )
    assert recorded.user_id == MEMBER


def test_outsiders_cannot_list(completion_collection):
    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(completions.list_completions_for_user(TEAM, "stranger", DAY))
    assert excinfo.value.status_code == 403
