"""FastAPI router exposing team task operations."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from task_tree import (
    Completion,
    CompletionToggle,
    DeleteResult,
    MoveResult,
    TaskAssignments,
    TaskClone,
    TaskCreate,
    TaskMove,
    TaskNode,
    TaskReparent,
    TaskUpdate,
    assign_users_for_user,
    clone_tasks_for_user,
    create_task_for_user,
    delete_task_for_user,
    list_children_for_user,
    list_completions_for_user,
    list_tasks_for_user,
    move_task_for_user,
    reparent_task_for_user,
    toggle_completion_for_user,
    update_task_for_user,
)

from .kratos_client import get_identity

router = APIRouter(prefix="/teams/{team_id}/tasks", tags=["tasks"])


@router.get("", response_model=list[TaskNode])
async def get_tree(team_id: str, identity: dict = Depends(get_identity)):
    """Return the team's checklist depth-first in sibling order."""

    return await list_tasks_for_user(team_id=team_id, user_id=identity["id"])


@router.get("/children", response_model=list[TaskNode])
async def get_children(
    team_id: str,
    parent_id: str | None = Query(default=None),
    identity: dict = Depends(get_identity),
):
    """Return the ordered children of a task, or the root tasks."""

    return await list_children_for_user(
        team_id=team_id,
        user_id=identity["id"],
        parent_id=parent_id,
    )


@router.post("", response_model=TaskNode, status_code=201)
async def create_task(
    team_id: str,
    payload: TaskCreate,
    identity: dict = Depends(get_identity),
):
    return await create_task_for_user(
        team_id=team_id,
        user_id=identity["id"],
        title=payload.title,
        parent_id=payload.parent_id,
        position=payload.position,
        before_id=payload.before_id,
        after_id=payload.after_id,
    )


@router.patch("/{task_id}", response_model=TaskNode)
async def update_task(
    team_id: str,
    task_id: str,
    payload: TaskUpdate,
    identity: dict = Depends(get_identity),
):
    return await update_task_for_user(
        team_id=team_id,
        user_id=identity["id"],
        task_id=task_id,
        title=payload.title,
    )


@router.post("/{task_id}/move", response_model=MoveResult)
async def move_task(
    team_id: str,
    task_id: str,
    payload: TaskMove,
    identity: dict = Depends(get_identity),
):
    """Move a task one slot up or down; a no-op at either end of its group."""

    return await move_task_for_user(
        team_id=team_id,
        user_id=identity["id"],
        task_id=task_id,
        direction=payload.direction,
    )


@router.post("/{task_id}/reparent", response_model=TaskNode)
async def reparent_task(
    team_id: str,
    task_id: str,
    payload: TaskReparent,
    identity: dict = Depends(get_identity),
):
    return await reparent_task_for_user(
        team_id=team_id,
        user_id=identity["id"],
        task_id=task_id,
        new_parent_id=payload.new_parent_id,
        position=payload.position,
    )


@router.delete("/{task_id}", response_model=DeleteResult)
async def delete_task(
    team_id: str,
    task_id: str,
    identity: dict = Depends(get_identity),
):
    """Soft-delete a task with its subtree and report every affected id."""

    return await delete_task_for_user(
        team_id=team_id,
        user_id=identity["id"],
        task_id=task_id,
    )


@router.put("/{task_id}/assignments", response_model=TaskNode)
async def assign_users(
    team_id: str,
    task_id: str,
    payload: TaskAssignments,
    identity: dict = Depends(get_identity),
):
    return await assign_users_for_user(
        team_id=team_id,
        user_id=identity["id"],
        task_id=task_id,
        user_ids=payload.user_ids,
    )


@router.post("/clone", response_model=list[TaskNode], status_code=201)
async def clone_tasks(
    team_id: str,
    payload: TaskClone,
    identity: dict = Depends(get_identity),
):
    """Copy this team's checklist into another team."""

    return await clone_tasks_for_user(
        team_id=team_id,
        user_id=identity["id"],
        target_team_id=payload.target_team_id,
    )


@router.get("/completions", response_model=list[Completion])
async def get_completions(
    team_id: str,
    completed_date: date = Query(...),
    identity: dict = Depends(get_identity),
):
    """Return the completions the team recorded on one day."""

    return await list_completions_for_user(
        team_id=team_id,
        user_id=identity["id"],
        completed_date=completed_date,
    )


@router.put("/{task_id}/completion", response_model=Completion | None)
async def toggle_completion(
    team_id: str,
    task_id: str,
    payload: CompletionToggle,
    identity: dict = Depends(get_identity),
):
    return await toggle_completion_for_user(
        team_id=team_id,
        user_id=identity["id"],
        task_id=task_id,
        completed_date=payload.completed_date,
        completed=payload.completed,
        target_user_id=payload.user_id,
    )
